# secomnet/core/writer.py

from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Optional

from ..protocol.canonical import Canonicalizer
from ..protocol.errors import EncryptionError, SecomError, ValidationError
from ..protocol.models import (
    SECOM_PROTECTION_SCHEME,
    AbstractEnvelope,
    DigitalSignatureValue,
    ExchangeMetadata,
    SignedEnvelope,
)
from ..protocol.validators import validate_envelope_fields
from ..security.pem import certificate_thumbprint, chain_to_minified_pem
from ..security.providers import CompressionProvider, EncryptionProvider, SignatureProvider
from ..utils.timestamps import signature_time

logger = logging.getLogger("secomnet.writer")


class SecomWriter:
    """
    Outbound secure envelope pipeline.

    Stage order for data-bearing envelopes:
      1. stage fresh exchange metadata
      2. compress (optional)
      3. encrypt (optional)
      4. sign the transmitted data bytes into exchangeMetadata.digitalSignatureValue
      5. stamp signer metadata and sign the canonical envelope

    The caller's exchange metadata is only replaced once every data stage
    has succeeded.

    Every stage is driven by provider presence. A writer with no providers
    produces an unsigned, unprotected envelope.
    """

    def __init__(
        self,
        *,
        compression_provider: Optional[CompressionProvider] = None,
        encryption_provider: Optional[EncryptionProvider] = None,
        signature_provider: Optional[SignatureProvider] = None,
        canonicalizer: Optional[Canonicalizer] = None,
        clock: Callable = signature_time,
    ) -> None:
        self._compression = compression_provider
        self._encryption = encryption_provider
        self._signer = signature_provider
        self._canonicalizer = canonicalizer or Canonicalizer()
        self._clock = clock

    # ===========================================================
    # Public API
    # ===========================================================
    def write(self, envelope: AbstractEnvelope) -> SignedEnvelope:
        validate_envelope_fields(envelope)

        if envelope.data_bearing:
            if envelope.exchangeMetadata is None:
                envelope.exchangeMetadata = ExchangeMetadata()
            envelope.data = self.protect_data(
                envelope.data,
                envelope.exchangeMetadata,
                transaction_id=getattr(envelope, "transactionIdentifier", None),
            )

        return self.sign_envelope(envelope)

    def protect_data(
        self,
        data: bytes,
        metadata: ExchangeMetadata,
        transaction_id=None,
    ) -> bytes:
        """Compress, encrypt and sign a payload, recording each step in ``metadata``."""
        if data is None:
            raise ValidationError("Cannot protect a missing payload")

        staged = ExchangeMetadata()

        if self._compression is not None:
            data = self._compression.compress(data)
            staged.compressionFlag = True
            staged.compressionAlgorithm = self._compression.algorithm
            logger.debug("Payload compressed with %s", self._compression.algorithm.token)

        if self._encryption is not None:
            data = self._encrypt(data, transaction_id)
            staged.dataProtection = True
            staged.encryptionAlgorithm = self._encryption.algorithm
            logger.debug("Payload encrypted with %s", self._encryption.algorithm.token)

        if self._signer is not None:
            staged.protectionScheme = SECOM_PROTECTION_SCHEME
            staged.digitalSignatureReference = self._signer.algorithm
            staged.digitalSignatureValue = DigitalSignatureValue(
                publicRootCertificateThumbprint=certificate_thumbprint(self._signer.root_certificate()),
                publicCertificate=chain_to_minified_pem(self._signer.certificate_chain()),
                digitalSignature=self._signer.sign(data),
            )
            logger.debug("Payload signed with %s", self._signer.algorithm.token)

        self._commit_metadata(metadata, staged)
        return data

    def sign_envelope(self, envelope: AbstractEnvelope) -> SignedEnvelope:
        """Stamp signer metadata on the envelope and sign its canonical string."""
        if self._signer is None:
            logger.debug("No signature provider, %s envelope left unsigned", envelope.envelope_type)
            return SignedEnvelope(envelope=envelope)

        envelope.envelopeSignatureCertificate = chain_to_minified_pem(self._signer.certificate_chain())
        envelope.envelopeRootCertificateThumbprint = certificate_thumbprint(self._signer.root_certificate())
        envelope.envelopeSignatureTime = self._clock()
        if hasattr(envelope, "digitalSignatureReference"):
            envelope.digitalSignatureReference = self._signer.algorithm

        signature = self._signer.sign(self._canonicalizer.signing_payload(envelope))
        logger.debug("Signed %s envelope", envelope.envelope_type)
        return SignedEnvelope(envelope=envelope, envelopeSignature=signature)

    # ===========================================================
    # Internals
    # ===========================================================
    @staticmethod
    def _commit_metadata(target: ExchangeMetadata, staged: ExchangeMetadata) -> None:
        for f in dataclasses.fields(staged):
            setattr(target, f.name, getattr(staged, f.name))

    def _encrypt(self, data: bytes, transaction_id) -> bytes:
        try:
            return self._encryption.encrypt(data, transaction_id)
        except SecomError:
            raise
        except Exception as e:
            raise EncryptionError(f"Encryption provider failed: {e}") from e
