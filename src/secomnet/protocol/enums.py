from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    INVALID_CERTIFICATE = "invalid_certificate"
    SIGNATURE_VERIFICATION_FAILED = "signature_verification_failed"
    ENCRYPTION_ERROR = "encryption_error"
    DECRYPTION_ERROR = "decryption_error"
    INTERNAL_ERROR = "internal_error"


class SecomEnum(Enum):
    """
    Protocol enumeration with a fixed textual form for signing.

    The canonical rendering is the lower-cased member name, independent of
    the numeric value used on the wire.
    """

    def as_string(self) -> str:
        return self.name.lower()


class AckType(SecomEnum):
    DELIVERED_ACK = 1
    OPENED_ACK = 2
    ERROR = 3


class NackType(SecomEnum):
    XML_SCHEMA_VALIDATION_ERROR = 1
    UNKNOWN_DATA_TYPE_OR_VERSION = 2
    DATA_HAS_BEEN_DELETED = 3


class AckRequest(SecomEnum):
    NO_ACK_REQUESTED = 0
    DELIVERED_ACK_REQUESTED = 1
    OPENED_ACK_REQUESTED = 2
    DELIVERED_AND_OPENED_ACK_REQUESTED = 3


class ContainerType(SecomEnum):
    S100_DATASET = 0
    S100_EXCHANGESET = 1
    NONE = 2


class SecomResponseCode(SecomEnum):
    MISSING_REQUIRED_DATA_FOR_SERVICE = 0
    FAILED_SIGNATURE_VERIFICATION = 1
    INVALID_CERTIFICATE = 2
    SCHEMA_VALIDATION_ERROR = 3


class CertificateFailureReason(str, Enum):
    CHAIN_BUILDING = "chain_building"
    EXPIRED = "expired"
    REVOKED = "revoked"
    KEY_USAGE = "key_usage"
    MALFORMED = "malformed"
    ROOT_MISMATCH = "root_mismatch"


class RevocationStatus(str, Enum):
    GOOD = "good"
    REVOKED = "revoked"
    UNKNOWN = "unknown"


class ValidationState(str, Enum):
    RECEIVED = "received"
    CERT_VALIDATED = "cert_validated"
    SIGNATURE_VERIFIED = "signature_verified"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
