"""
secomnet Security Module

Components:
- compression / encryption: payload protection providers
- signing: X.509 signature provider and primitives
- trust / certificates / revocation: signer authentication
- validator: envelope and data signature validation
"""

from .certificates import CertificateChainValidator, CertificateValidationResult
from .compression import ZipCompressionProvider
from .encryption import AesCbcEncryptionProvider, SymmetricKey, TransactionKeyStore
from .providers import (
    CertificateProvider,
    CompressionProvider,
    EncryptionProvider,
    RevocationChecker,
    SignatureProvider,
    TrustStoreProvider,
)
from .revocation import CompositeRevocationChecker, CrlRevocationChecker, OcspRevocationChecker
from .signing import X509SignatureProvider
from .trust import TrustContext
from .validator import SignatureValidator, ValidationReport

__all__ = [
    "CertificateChainValidator",
    "CertificateValidationResult",
    "ZipCompressionProvider",
    "AesCbcEncryptionProvider",
    "SymmetricKey",
    "TransactionKeyStore",
    "CertificateProvider",
    "CompressionProvider",
    "EncryptionProvider",
    "RevocationChecker",
    "SignatureProvider",
    "TrustStoreProvider",
    "CompositeRevocationChecker",
    "CrlRevocationChecker",
    "OcspRevocationChecker",
    "X509SignatureProvider",
    "TrustContext",
    "SignatureValidator",
    "ValidationReport",
]
