from typing import Optional
from .enums import CertificateFailureReason, ErrorCode


class SecomError(Exception):
    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or self.default_code


class ValidationError(SecomError):
    """Raised when an envelope is malformed or does not match its schema."""

    default_code = ErrorCode.VALIDATION_ERROR


class UnsupportedAlgorithmError(ValidationError):
    """Raised when an algorithm identifier is unknown or not enabled."""

    default_code = ErrorCode.UNSUPPORTED_ALGORITHM


class InvalidCertificateError(SecomError):
    """Raised when the signer certificate is untrusted, expired, revoked or misused."""

    default_code = ErrorCode.INVALID_CERTIFICATE

    def __init__(
        self,
        message: str,
        reason: CertificateFailureReason = CertificateFailureReason.CHAIN_BUILDING,
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(message, code)
        self.reason = reason


class SignatureVerificationError(SecomError):
    """Raised when a received signature does not match its content."""

    default_code = ErrorCode.SIGNATURE_VERIFICATION_FAILED


class EncryptionError(SecomError):
    """Raised when outgoing data cannot be encrypted."""

    default_code = ErrorCode.ENCRYPTION_ERROR


class DecryptionError(SecomError):
    """Raised when incoming data cannot be decrypted."""

    default_code = ErrorCode.DECRYPTION_ERROR
