# secomnet/core/reader.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..protocol.errors import (
    DecryptionError,
    SecomError,
    SignatureVerificationError,
    UnsupportedAlgorithmError,
    ValidationError,
)
from ..protocol.models import AbstractEnvelope, ExchangeMetadata, SignedEnvelope
from ..protocol.validators import validate_envelope_fields, validate_exchange_metadata
from ..security.providers import CompressionProvider, EncryptionProvider
from ..security.validator import (
    SignatureValidator,
    ValidationReport,
    data_claims_signature,
    envelope_claims_signature,
)
from .capability import CapabilityDocument

logger = logging.getLogger("secomnet.reader")


@dataclass
class ReadResult:
    """A verified envelope and its recovered plaintext payload (if any)."""
    envelope: AbstractEnvelope
    data: Optional[bytes] = None
    envelope_report: Optional[ValidationReport] = None
    data_report: Optional[ValidationReport] = None


class SecomReader:
    """
    Inbound secure envelope pipeline.

    Stage order:
      1. structural validation of the envelope
      2. envelope signature (certificate chain, then canonical signature)
      3. data signature over the received bytes
      4. decrypt, only when ``dataProtection`` is set
      5. decompress, only when ``compressionFlag`` is set

    Nothing is decrypted before both signatures have been accepted. The
    received envelope is left untouched; the recovered payload is returned
    in the ReadResult.
    Without a validator only messages that carry no signer material are
    accepted.
    """

    def __init__(
        self,
        *,
        signature_validator: Optional[SignatureValidator] = None,
        compression_provider: Optional[CompressionProvider] = None,
        encryption_provider: Optional[EncryptionProvider] = None,
        capabilities: Optional[CapabilityDocument] = None,
    ) -> None:
        self._validator = signature_validator
        self._compression = compression_provider
        self._encryption = encryption_provider
        self._capabilities = capabilities

    # ===========================================================
    # Public API
    # ===========================================================
    def read(self, signed: SignedEnvelope) -> ReadResult:
        envelope = signed.envelope
        validate_envelope_fields(envelope)
        result = ReadResult(envelope=envelope)

        if self._validator is not None:
            result.envelope_report = self._validator.validate_envelope(signed)
        elif envelope_claims_signature(signed):
            raise SignatureVerificationError(
                f"Signed {envelope.envelope_type} envelope received but no signature validator is configured"
            )
        else:
            logger.debug("No signature validator, unsigned %s envelope accepted", envelope.envelope_type)

        if envelope.data_bearing:
            metadata = envelope.exchangeMetadata
            if self._validator is not None:
                result.data_report = self._validator.validate_data(envelope.data, metadata)
            elif metadata is not None and data_claims_signature(metadata):
                raise SignatureVerificationError(
                    "Signed data payload received but no signature validator is configured"
                )
            result.data = self.unprotect_data(
                envelope.data,
                metadata,
                transaction_id=getattr(envelope, "transactionIdentifier", None),
            )

        logger.debug("Accepted %s envelope", envelope.envelope_type)
        return result

    def unprotect_data(
        self,
        data: Optional[bytes],
        metadata: ExchangeMetadata,
        transaction_id=None,
    ) -> Optional[bytes]:
        """Reverse the writer's data stages as declared by ``metadata`` flags."""
        validate_exchange_metadata(metadata)
        if self._capabilities is not None:
            self._capabilities.check_metadata(metadata)

        if data is None:
            return None

        if metadata.dataProtection:
            if self._encryption is None:
                raise DecryptionError("Payload is encrypted but no encryption provider is configured")
            if metadata.encryptionAlgorithm is not self._encryption.algorithm:
                raise UnsupportedAlgorithmError(
                    f"Cannot decrypt '{metadata.encryptionAlgorithm.token}' payload"
                )
            data = self._decrypt(data, transaction_id)
            logger.debug("Payload decrypted with %s", metadata.encryptionAlgorithm.token)

        if metadata.compressionFlag:
            if self._compression is None:
                raise ValidationError("Payload is compressed but no compression provider is configured")
            if metadata.compressionAlgorithm is not self._compression.algorithm:
                raise UnsupportedAlgorithmError(
                    f"Cannot decompress '{metadata.compressionAlgorithm.token}' payload"
                )
            data = self._compression.decompress(data)
            logger.debug("Payload decompressed with %s", metadata.compressionAlgorithm.token)

        return data

    # ===========================================================
    # Internals
    # ===========================================================
    def _decrypt(self, data: bytes, transaction_id) -> bytes:
        try:
            return self._encryption.decrypt(data, transaction_id)
        except SecomError:
            raise
        except Exception as e:
            raise DecryptionError(f"Encryption provider failed: {e}") from e
