"""
End-to-end tests for the writer and reader pipelines.
"""

import datetime as dt
import uuid
import zlib

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from secomnet.core.capability import CapabilityDocument
from secomnet.core.reader import SecomReader
from secomnet.core.writer import SecomWriter
from secomnet.protocol.algorithms import (
    CompressionAlgorithm,
    DigitalSignatureAlgorithm,
    EncryptionAlgorithm,
)
from secomnet.protocol.enums import (
    AckRequest,
    AckType,
    CertificateFailureReason,
    ContainerType,
    ValidationState,
)
from secomnet.protocol.errors import (
    DecryptionError,
    EncryptionError,
    InvalidCertificateError,
    SignatureVerificationError,
    UnsupportedAlgorithmError,
    ValidationError,
)
from secomnet.protocol.models import (
    SECOM_PROTECTION_SCHEME,
    EnvelopeAccessNotificationObject,
    EnvelopeAckObject,
    EnvelopeKeyObject,
    EnvelopeLinkObject,
    EnvelopeSearchFilterObject,
    EnvelopeUploadObject,
    ExchangeMetadata,
    SearchParameters,
    SignedEnvelope,
)
from secomnet.security.certificates import CertificateChainValidator
from secomnet.security.compression import ZipCompressionProvider
from secomnet.security.encryption import (
    AesCbcEncryptionProvider,
    SymmetricKey,
    TransactionKeyStore,
)
from secomnet.security.signing import verify_payload
from secomnet.security.trust import TrustContext
from secomnet.security.validator import SignatureValidator
from secomnet.utils.json import json_dumps, json_loads

PAYLOAD = b"<S125:Dataset>" + b"virtual aton " * 100 + b"</S125:Dataset>"


def _over_the_wire(signed: SignedEnvelope) -> SignedEnvelope:
    """Serialise to JSON text and parse back, as a peer would."""
    return SignedEnvelope.from_dict(
        json_loads(json_dumps(signed.to_dict())), type(signed.envelope)
    )


def _upload(transaction_id=None) -> EnvelopeUploadObject:
    return EnvelopeUploadObject(
        data=PAYLOAD,
        containerType=ContainerType.S100_DATASET,
        dataProductType="S125",
        exchangeMetadata=ExchangeMetadata(),
        ackRequest=AckRequest.DELIVERED_ACK_REQUESTED,
        transactionIdentifier=transaction_id or uuid.uuid4(),
    )


class TestAccessNotificationEndToEnd:
    """Tests for signed envelopes without a data payload."""

    @pytest.mark.parametrize(
        "signer_fixture,algorithm",
        [("ec_signer", DigitalSignatureAlgorithm.ECDSA), ("dsa_signer", DigitalSignatureAlgorithm.DSA)],
    )
    def test_sign_serialise_verify(self, request, signature_validator, signer_fixture, algorithm):
        """Test a signed notification is ACCEPTED after a JSON round trip."""
        signer = request.getfixturevalue(signer_fixture)
        transaction_id = uuid.uuid4()
        envelope = EnvelopeAccessNotificationObject(
            decision=True,
            decisionReason="Test",
            transactionIdentifier=transaction_id,
        )

        signed = SecomWriter(signature_provider=signer).write(envelope)
        received = _over_the_wire(signed)
        result = SecomReader(signature_validator=signature_validator).read(received)

        report = result.envelope_report
        assert report.state is ValidationState.ACCEPTED
        assert report.history == [
            ValidationState.RECEIVED,
            ValidationState.CERT_VALIDATED,
            ValidationState.SIGNATURE_VERIFIED,
            ValidationState.ACCEPTED,
        ]
        assert received.envelope == signed.envelope
        assert received.envelope.decision is True
        assert received.envelope.decisionReason == "Test"
        assert received.envelope.transactionIdentifier == transaction_id
        assert received.envelope.digitalSignatureReference is algorithm
        assert result.data is None

    def test_signer_metadata_is_stamped(self, pki, ec_signer):
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAccessNotificationObject(decision=False, transactionIdentifier=uuid.uuid4())
        )
        envelope = signed.envelope

        assert len(envelope.envelopeSignatureCertificate) == 3
        assert envelope.envelopeRootCertificateThumbprint is not None
        assert envelope.envelopeSignatureTime.microsecond == 0
        assert signed.envelopeSignature is not None

    @pytest.mark.parametrize(
        "field,value",
        [
            ("decision", False),
            ("decisionReason", "Tampered"),
            ("transactionIdentifier", uuid.UUID(int=1)),
            ("digitalSignatureReference", DigitalSignatureAlgorithm.DSA),
        ],
    )
    def test_tampered_field_rejected(self, ec_signer, signature_validator, field, value):
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAccessNotificationObject(
                decision=True, decisionReason="Test", transactionIdentifier=uuid.uuid4()
            )
        )
        received = _over_the_wire(signed)
        setattr(received.envelope, field, value)

        with pytest.raises(SignatureVerificationError):
            SecomReader(signature_validator=signature_validator).read(received)

    def test_tampered_signature_time_rejected(self, ec_signer, signature_validator):
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )
        received = _over_the_wire(signed)
        received.envelope.envelopeSignatureTime = received.envelope.envelopeSignatureTime.replace(year=2000)

        with pytest.raises(SignatureVerificationError):
            SecomReader(signature_validator=signature_validator).read(received)

    def test_tampered_root_thumbprint_rejected(self, ec_signer, signature_validator):
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )
        signed.envelope.envelopeRootCertificateThumbprint = "00" * 20

        with pytest.raises(InvalidCertificateError) as exc_info:
            SecomReader(signature_validator=signature_validator).read(signed)
        assert exc_info.value.reason is CertificateFailureReason.ROOT_MISMATCH

    def test_untrusted_signer_rejected(self, pki, ec_signer, cert_factory):
        other_key = ec.generate_private_key(ec.SECP256R1())
        other_root = cert_factory("Test Root CA", other_key.public_key(), pki.root.subject, other_key, ca=True)
        validator = SignatureValidator(CertificateChainValidator(TrustContext(roots=(other_root,))))
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )

        with pytest.raises(InvalidCertificateError):
            SecomReader(signature_validator=validator).read(signed)

    def test_missing_signature_rejected(self, signature_validator):
        signed = SecomWriter().write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )

        assert signed.envelopeSignature is None
        with pytest.raises(SignatureVerificationError, match="Missing signature"):
            SecomReader(signature_validator=signature_validator).read(signed)

    def test_rejection_report(self, signature_validator):
        signed = SecomWriter().write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )

        report = signature_validator.validate_envelope(signed, raise_on_failure=False)

        assert report.state is ValidationState.REJECTED
        assert isinstance(report.error, SignatureVerificationError)
        assert not report.accepted

    def test_unsigned_accepted_when_not_required(self, chain_validator):
        validator = SignatureValidator(chain_validator, require_signature=False)
        signed = SecomWriter().write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )

        result = SecomReader(signature_validator=validator).read(signed)

        assert result.envelope_report.accepted
        assert result.envelope_report.signed is False

    def test_stripped_certificate_is_not_treated_as_unsigned(self, ec_signer, chain_validator):
        """Test removing the signer chain cannot turn a signed envelope into an unsigned one."""
        validator = SignatureValidator(chain_validator, require_signature=False)
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAccessNotificationObject(decision=False, transactionIdentifier=uuid.uuid4())
        )
        signed.envelope.envelopeSignatureCertificate = None

        with pytest.raises(InvalidCertificateError) as exc_info:
            SecomReader(signature_validator=validator).read(_over_the_wire(signed))
        assert exc_info.value.reason is CertificateFailureReason.MALFORMED

    def test_stripped_signature_is_not_treated_as_unsigned(self, ec_signer, chain_validator):
        validator = SignatureValidator(chain_validator, require_signature=False)
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )
        signed.envelopeSignature = None

        report = validator.validate_envelope(signed, raise_on_failure=False)

        assert report.state is ValidationState.REJECTED
        assert isinstance(report.error, SignatureVerificationError)

    def test_reader_without_validator_rejects_signed_envelope(self, ec_signer):
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )

        with pytest.raises(SignatureVerificationError, match="no signature validator"):
            SecomReader().read(signed)

    def test_reader_without_validator_accepts_unsigned_envelope(self):
        signed = SecomWriter().write(
            EnvelopeAccessNotificationObject(decision=True, transactionIdentifier=uuid.uuid4())
        )

        result = SecomReader().read(signed)

        assert result.envelope_report is None
        assert result.envelope.decision is True

    def test_ack_without_algorithm_field(self, ec_signer, signature_validator):
        """Test the algorithm is inferred from the signer key when not carried."""
        signed = SecomWriter(signature_provider=ec_signer).write(
            EnvelopeAckObject(
                createdAt=ec_signer.leaf_certificate().not_valid_before_utc,
                transactionIdentifier=uuid.uuid4(),
                ackType=AckType.DELIVERED_ACK,
            )
        )

        result = SecomReader(signature_validator=signature_validator).read(_over_the_wire(signed))

        assert result.envelope_report.accepted

    @pytest.mark.parametrize(
        "envelope",
        [
            EnvelopeLinkObject(
                containerType=ContainerType.S100_DATASET,
                dataProductType="S125",
                exchangeMetadata=ExchangeMetadata(),
                fromSubscription=False,
                ackRequest=AckRequest.NO_ACK_REQUESTED,
                transactionIdentifier=uuid.UUID(int=7),
                size=2048,
                timeToLive=dt.datetime(2030, 1, 1, tzinfo=dt.timezone.utc),
            ),
            EnvelopeSearchFilterObject(
                query=SearchParameters(dataProductType="S124", unlocode="DEHAM", page=0, pageSize=50),
                includeXml=False,
                localOnly=True,
            ),
        ],
        ids=["link", "search_filter"],
    )
    def test_other_variants_sign_and_verify(self, ec_signer, signature_validator, envelope):
        signed = SecomWriter(signature_provider=ec_signer).write(envelope)

        result = SecomReader(signature_validator=signature_validator).read(_over_the_wire(signed))

        assert result.envelope_report.accepted
        assert result.envelope == envelope

    def test_missing_required_field(self, ec_signer):
        with pytest.raises(ValidationError, match="transactionIdentifier"):
            SecomWriter(signature_provider=ec_signer).write(EnvelopeAccessNotificationObject(decision=True))


class TestUploadEndToEnd:
    """Tests for data-bearing envelopes."""

    @pytest.mark.parametrize("compress", [False, True])
    @pytest.mark.parametrize("encrypt", [False, True])
    def test_round_trip(self, ec_signer, signature_validator, symmetric_key, compress, encrypt):
        writer = SecomWriter(
            compression_provider=ZipCompressionProvider() if compress else None,
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key) if encrypt else None,
            signature_provider=ec_signer,
        )
        reader = SecomReader(
            signature_validator=signature_validator,
            compression_provider=ZipCompressionProvider(),
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
        )

        signed = writer.write(_upload())
        metadata = signed.envelope.exchangeMetadata

        assert metadata.compressionFlag is compress
        assert metadata.dataProtection is encrypt
        assert metadata.protectionScheme == SECOM_PROTECTION_SCHEME
        assert metadata.digitalSignatureReference is DigitalSignatureAlgorithm.ECDSA

        result = reader.read(_over_the_wire(signed))

        assert result.data == PAYLOAD
        assert result.envelope_report.accepted
        assert result.data_report.accepted

    def test_unsigned_round_trip(self, symmetric_key, chain_validator):
        writer = SecomWriter(
            compression_provider=ZipCompressionProvider(),
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
        )
        reader = SecomReader(
            signature_validator=SignatureValidator(chain_validator, require_signature=False),
            compression_provider=ZipCompressionProvider(),
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
        )

        signed = writer.write(_upload())
        metadata = signed.envelope.exchangeMetadata

        assert metadata.protectionScheme is None
        assert metadata.digitalSignatureReference is None
        assert metadata.digitalSignatureValue is None
        assert reader.read(_over_the_wire(signed)).data == PAYLOAD

    def test_compress_before_encrypt(self, symmetric_key):
        writer = SecomWriter(
            compression_provider=ZipCompressionProvider(),
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
        )
        signed = writer.write(_upload())

        decrypted = AesCbcEncryptionProvider(key=symmetric_key).decrypt(signed.envelope.data)

        assert zlib.decompress(decrypted) == PAYLOAD
        assert signed.envelope.exchangeMetadata.compressionAlgorithm is CompressionAlgorithm.ZIP
        assert signed.envelope.exchangeMetadata.encryptionAlgorithm is EncryptionAlgorithm.AES_CBC_PKCS7

    def test_data_signature_covers_transmitted_bytes(self, pki, ec_signer, symmetric_key):
        writer = SecomWriter(
            compression_provider=ZipCompressionProvider(),
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
            signature_provider=ec_signer,
        )
        signed = writer.write(_upload())
        value = signed.envelope.exchangeMetadata.digitalSignatureValue

        assert verify_payload(pki.leaf, DigitalSignatureAlgorithm.ECDSA, signed.envelope.data, value.digitalSignature)
        assert not verify_payload(pki.leaf, DigitalSignatureAlgorithm.ECDSA, PAYLOAD, value.digitalSignature)

    def test_flags_gate_inverse_steps(self, ec_signer, signature_validator):
        """Test configured reader providers are no-ops when flags are false."""
        signed = SecomWriter(signature_provider=ec_signer).write(_upload())
        reader = SecomReader(
            signature_validator=signature_validator,
            compression_provider=ZipCompressionProvider(),
            encryption_provider=AesCbcEncryptionProvider(key=SymmetricKey.generate()),
        )

        assert reader.read(signed).data == PAYLOAD

    def test_encrypted_without_provider(self, ec_signer, signature_validator, symmetric_key):
        signed = SecomWriter(
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
            signature_provider=ec_signer,
        ).write(_upload())

        with pytest.raises(DecryptionError, match="no encryption provider"):
            SecomReader(signature_validator=signature_validator).read(signed)

    def test_compressed_without_provider(self, ec_signer, signature_validator):
        signed = SecomWriter(
            compression_provider=ZipCompressionProvider(),
            signature_provider=ec_signer,
        ).write(_upload())

        with pytest.raises(ValidationError, match="no compression provider"):
            SecomReader(signature_validator=signature_validator).read(signed)

    def test_encryption_without_key_material(self, ec_signer):
        writer = SecomWriter(encryption_provider=AesCbcEncryptionProvider(), signature_provider=ec_signer)

        with pytest.raises(EncryptionError):
            writer.write(_upload())

    def test_tampered_data_rejected_before_decryption(self, ec_signer, signature_validator, symmetric_key):
        signed = SecomWriter(
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
            signature_provider=ec_signer,
        ).write(_upload())
        signed.envelope.data = signed.envelope.data[:-16]
        reader = SecomReader(
            signature_validator=signature_validator,
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
        )

        with pytest.raises(SignatureVerificationError):
            reader.read(signed)

    def test_tampered_data_signature(self, ec_signer, signature_validator):
        metadata = ExchangeMetadata()
        writer = SecomWriter(signature_provider=ec_signer)
        protected = writer.protect_data(PAYLOAD, metadata)

        assert signature_validator.validate_data(protected, metadata).accepted
        with pytest.raises(SignatureVerificationError):
            signature_validator.validate_data(protected + b"!", metadata)

    def test_stripped_data_certificate_is_not_treated_as_unsigned(self, ec_signer, chain_validator):
        validator = SignatureValidator(chain_validator, require_signature=False)
        metadata = ExchangeMetadata()
        protected = SecomWriter(signature_provider=ec_signer).protect_data(PAYLOAD, metadata)
        metadata.digitalSignatureValue.publicCertificate = None

        with pytest.raises(InvalidCertificateError):
            validator.validate_data(protected, metadata)

    def test_data_reference_without_signature_value_rejected(self, ec_signer, chain_validator):
        validator = SignatureValidator(chain_validator, require_signature=False)
        metadata = ExchangeMetadata()
        protected = SecomWriter(signature_provider=ec_signer).protect_data(PAYLOAD, metadata)
        metadata.digitalSignatureValue = None

        with pytest.raises(SignatureVerificationError):
            validator.validate_data(protected, metadata)

    def test_reader_without_validator_rejects_signed_data(self, ec_signer):
        upload = _upload()
        upload.data = SecomWriter(signature_provider=ec_signer).protect_data(upload.data, upload.exchangeMetadata)

        with pytest.raises(SignatureVerificationError, match="Signed data payload"):
            SecomReader().read(SignedEnvelope(envelope=upload))

    def test_disabled_algorithm_rejected(self, ec_signer, signature_validator, symmetric_key):
        signed = SecomWriter(
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
            signature_provider=ec_signer,
        ).write(_upload())
        reader = SecomReader(
            signature_validator=signature_validator,
            encryption_provider=AesCbcEncryptionProvider(key=symmetric_key),
            capabilities=CapabilityDocument(
                compression_algorithms=[CompressionAlgorithm.ZIP],
                signature_algorithms=[DigitalSignatureAlgorithm.ECDSA],
            ),
        )

        with pytest.raises(UnsupportedAlgorithmError, match="aes_cbc_pkcs7"):
            reader.read(signed)

    def test_writer_resets_stale_metadata(self, ec_signer):
        upload = _upload()
        upload.exchangeMetadata.compressionFlag = True
        upload.exchangeMetadata.compressionAlgorithm = CompressionAlgorithm.ZIP

        signed = SecomWriter(signature_provider=ec_signer).write(upload)

        assert signed.envelope.exchangeMetadata.compressionFlag is False
        assert signed.envelope.exchangeMetadata.compressionAlgorithm is None
        assert signed.envelope.data == PAYLOAD

    def test_failed_encryption_leaves_metadata_untouched(self, ec_signer):
        upload = _upload()
        upload.exchangeMetadata.compressionFlag = True
        upload.exchangeMetadata.compressionAlgorithm = CompressionAlgorithm.ZIP
        writer = SecomWriter(
            compression_provider=ZipCompressionProvider(),
            encryption_provider=AesCbcEncryptionProvider(),
            signature_provider=ec_signer,
        )

        with pytest.raises(EncryptionError):
            writer.write(upload)

        assert upload.data == PAYLOAD
        assert upload.exchangeMetadata == ExchangeMetadata(
            compressionFlag=True, compressionAlgorithm=CompressionAlgorithm.ZIP
        )

    def test_per_transaction_keys(self, ec_signer, signature_validator):
        transaction_id = uuid.uuid4()
        sender_store, receiver_store = TransactionKeyStore(), TransactionKeyStore()
        key = SymmetricKey.generate()
        sender_store.add(transaction_id, key)

        # The key travels to the receiver in its own signed envelope
        key_envelope = SecomWriter(signature_provider=ec_signer).write(key.to_envelope(transaction_id))
        received_key = SecomReader(signature_validator=signature_validator).read(_over_the_wire(key_envelope))
        receiver_store.add_from_envelope(received_key.envelope)

        signed = SecomWriter(
            encryption_provider=AesCbcEncryptionProvider(key_store=sender_store),
            signature_provider=ec_signer,
        ).write(_upload(transaction_id))
        result = SecomReader(
            signature_validator=signature_validator,
            encryption_provider=AesCbcEncryptionProvider(key_store=receiver_store),
        ).read(_over_the_wire(signed))

        assert isinstance(received_key.envelope, EnvelopeKeyObject)
        assert result.data == PAYLOAD
