from .algorithms import CompressionAlgorithm, DigitalSignatureAlgorithm, EncryptionAlgorithm
from .canonical import Canonicalizer, csv_string
from .enums import (
    AckRequest,
    AckType,
    CertificateFailureReason,
    ContainerType,
    ErrorCode,
    NackType,
    RevocationStatus,
    SecomResponseCode,
    ValidationState,
)
from .errors import (
    DecryptionError,
    EncryptionError,
    InvalidCertificateError,
    SecomError,
    SignatureVerificationError,
    UnsupportedAlgorithmError,
    ValidationError,
)
from .models import (
    ENVELOPE_TYPES,
    AbstractEnvelope,
    DigitalSignatureValue,
    EnvelopeAccessNotificationObject,
    EnvelopeAccessObject,
    EnvelopeAckObject,
    EnvelopeKeyNotificationObject,
    EnvelopeKeyObject,
    EnvelopeKeyRequestObject,
    EnvelopeLinkObject,
    EnvelopePublicKeyRequestObject,
    EnvelopeSearchFilterObject,
    EnvelopeUploadObject,
    ExchangeMetadata,
    SearchParameters,
    SignedEnvelope,
    SummaryObject,
)

__all__ = [
    "CompressionAlgorithm",
    "DigitalSignatureAlgorithm",
    "EncryptionAlgorithm",
    "Canonicalizer",
    "csv_string",
    "AckRequest",
    "AckType",
    "CertificateFailureReason",
    "ContainerType",
    "ErrorCode",
    "NackType",
    "RevocationStatus",
    "SecomResponseCode",
    "ValidationState",
    "DecryptionError",
    "EncryptionError",
    "InvalidCertificateError",
    "SecomError",
    "SignatureVerificationError",
    "UnsupportedAlgorithmError",
    "ValidationError",
    "ENVELOPE_TYPES",
    "AbstractEnvelope",
    "DigitalSignatureValue",
    "EnvelopeAccessNotificationObject",
    "EnvelopeAccessObject",
    "EnvelopeAckObject",
    "EnvelopeKeyNotificationObject",
    "EnvelopeKeyObject",
    "EnvelopeKeyRequestObject",
    "EnvelopeLinkObject",
    "EnvelopePublicKeyRequestObject",
    "EnvelopeSearchFilterObject",
    "EnvelopeUploadObject",
    "ExchangeMetadata",
    "SearchParameters",
    "SignedEnvelope",
    "SummaryObject",
]
