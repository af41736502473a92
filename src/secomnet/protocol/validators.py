from __future__ import annotations

from .models import AbstractEnvelope, ExchangeMetadata, SECOM_PROTECTION_SCHEME
from .errors import ValidationError


def validate_envelope_fields(envelope: AbstractEnvelope) -> None:
    missing = [name for name in envelope.required_fields if getattr(envelope, name) is None]
    if missing:
        raise ValidationError(
            f"{type(envelope).__name__} missing required field(s): {', '.join(missing)}"
        )


def validate_exchange_metadata(metadata: ExchangeMetadata) -> None:
    if metadata.protectionScheme not in (None, SECOM_PROTECTION_SCHEME):
        raise ValidationError(f"Unsupported protection scheme: {metadata.protectionScheme!r}")
    if metadata.digitalSignatureValue is not None and metadata.digitalSignatureReference is None:
        raise ValidationError("Data signature present without a signature algorithm")
    if metadata.compressionFlag and metadata.compressionAlgorithm is None:
        raise ValidationError("compressionFlag set without a compression algorithm")
    if metadata.dataProtection and metadata.encryptionAlgorithm is None:
        raise ValidationError("dataProtection set without an encryption algorithm")
