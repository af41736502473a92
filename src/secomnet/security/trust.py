from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives.serialization import pkcs12

from secomnet.protocol.errors import SecomError

from .pem import certificate_thumbprint, is_self_signed, load_pem_certificates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrustContext:
    """
    Immutable set of trust anchors plus known intermediates.

    Loaded once at startup and shared read-only by every validator.
    """
    roots: Tuple[x509.Certificate, ...]
    intermediates: Tuple[x509.Certificate, ...] = ()

    def __post_init__(self):
        if not self.roots:
            raise ValueError("TrustContext requires at least one trusted root")

    @classmethod
    def from_certificates(cls, certs: Iterable[x509.Certificate]) -> "TrustContext":
        """Split certificates into anchors (self-signed) and intermediates."""
        roots, intermediates = [], []
        for cert in certs:
            (roots if is_self_signed(cert) else intermediates).append(cert)
        return cls(roots=tuple(roots), intermediates=tuple(intermediates))

    @classmethod
    def from_pem_bundle(cls, path: str | Path) -> "TrustContext":
        ctx = cls.from_certificates(load_pem_certificates(Path(path).read_bytes()))
        logger.info(
            "Loaded trust store %s: %d root(s), %d intermediate(s)",
            path,
            len(ctx.roots),
            len(ctx.intermediates),
        )
        return ctx

    @classmethod
    def from_pkcs12(cls, path: str | Path, password: Optional[str] = None) -> "TrustContext":
        try:
            _, cert, additional = pkcs12.load_key_and_certificates(
                Path(path).read_bytes(),
                password.encode("utf-8") if password else None,
            )
        except ValueError as e:
            raise SecomError(f"Unable to load PKCS#12 trust store: {e}") from e

        certs = ([cert] if cert is not None else []) + list(additional or [])
        ctx = cls.from_certificates(certs)
        logger.info(
            "Loaded PKCS#12 trust store %s: %d root(s), %d intermediate(s)",
            path,
            len(ctx.roots),
            len(ctx.intermediates),
        )
        return ctx

    # --- TrustStoreProvider ------------------------------------------

    def trusted_roots(self) -> Tuple[x509.Certificate, ...]:
        return self.roots

    def intermediate_certificates(self) -> Tuple[x509.Certificate, ...]:
        return self.intermediates

    def root_by_thumbprint(self, thumbprint: str) -> Optional[x509.Certificate]:
        wanted = thumbprint.lower()
        for root in self.roots:
            if certificate_thumbprint(root) == wanted:
                return root
        return None
