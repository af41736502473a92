from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from cryptography import x509

from secomnet.protocol.algorithms import (
    CompressionAlgorithm,
    DigitalSignatureAlgorithm,
    EncryptionAlgorithm,
)
from secomnet.protocol.enums import RevocationStatus


class CompressionProvider(Protocol):
    """Compresses outgoing payloads and decompresses incoming ones."""

    algorithm: CompressionAlgorithm

    def compress(self, data: bytes) -> bytes:
        ...

    def decompress(self, data: bytes) -> bytes:
        ...


class EncryptionProvider(Protocol):
    """Symmetric payload protection keyed per transaction."""

    algorithm: EncryptionAlgorithm

    def encrypt(self, data: bytes, transaction_id: Optional[object] = None) -> bytes:
        ...

    def decrypt(self, data: bytes, transaction_id: Optional[object] = None) -> bytes:
        ...


@runtime_checkable
class SignatureProvider(Protocol):
    """Private-key holder able to produce SECOM signatures."""

    algorithm: DigitalSignatureAlgorithm

    def certificate_chain(self) -> List[x509.Certificate]:
        ...

    def root_certificate(self) -> x509.Certificate:
        ...

    def sign(self, payload: bytes) -> str:
        ...


class CertificateProvider(Protocol):
    """Validates a signer certificate against the local trust configuration."""

    def validate_certificate(self, cert: x509.Certificate):
        ...


class TrustStoreProvider(Protocol):
    """Source of trust anchors and intermediates."""

    def trusted_roots(self) -> Sequence[x509.Certificate]:
        ...

    def intermediate_certificates(self) -> Sequence[x509.Certificate]:
        ...


class RevocationChecker(Protocol):
    """Answers whether a certificate has been revoked by its issuer."""

    def check(self, cert: x509.Certificate, issuer: x509.Certificate) -> RevocationStatus:
        ...
