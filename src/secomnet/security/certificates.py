"""
Certificate chain validation
----------------------------

Builds a path from a signer certificate to a trusted root and validates it:

1. Path building: each certificate must be signed by the next one, and
   every issuer must be a CA (basicConstraints cA=TRUE).
2. Validity window: every certificate on the path must be current.
3. Key usage: the leaf must allow digitalSignature and keyEncipherment.
4. Revocation: every non-root certificate is checked against its issuer.
   Only a confirmed revocation fails; an indeterminate answer passes
   (soft-fail) with a warning.

The outcome is a CertificateValidationResult carrying pass/fail and a
CertificateFailureReason.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from cryptography import x509
from cryptography.exceptions import InvalidSignature

from secomnet.protocol.enums import CertificateFailureReason, RevocationStatus
from secomnet.protocol.errors import InvalidCertificateError
from secomnet.utils.timestamps import utc_now

from .pem import certificate_thumbprint
from .providers import RevocationChecker
from .trust import TrustContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_PATH_LENGTH = 10


@dataclass(frozen=True)
class CertificateValidationResult:
    valid: bool
    reason: Optional[CertificateFailureReason] = None
    message: str = ""
    path: Tuple[x509.Certificate, ...] = ()

    @classmethod
    def failure(cls, reason: CertificateFailureReason, message: str) -> "CertificateValidationResult":
        return cls(valid=False, reason=reason, message=message)

    def raise_for_failure(self) -> None:
        if not self.valid:
            raise InvalidCertificateError(self.message, self.reason)

    def __bool__(self) -> bool:
        return self.valid


def _subject(cert: x509.Certificate) -> str:
    return cert.subject.rfc4514_string()


def _is_ca(cert: x509.Certificate) -> bool:
    try:
        return cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
    except x509.ExtensionNotFound:
        return False


def _issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    if cert.issuer != issuer.subject:
        return False
    try:
        cert.verify_directly_issued_by(issuer)
    except (ValueError, TypeError, InvalidSignature):
        return False
    return True


class CertificateChainValidator:
    """
    Validates signer certificates against trust anchors.

    Two input shapes are supported:
    - ``validate_certificate``: against the preloaded TrustContext
    - ``validate_chain``: against explicitly supplied roots and intermediates
    """

    def __init__(
        self,
        trust_context: Optional[TrustContext] = None,
        revocation_checker: Optional[RevocationChecker] = None,
        clock: Callable = utc_now,
        max_path_length: int = DEFAULT_MAX_PATH_LENGTH,
    ):
        self._trust = trust_context
        self._revocation = revocation_checker
        self._clock = clock
        self._max_path_length = max_path_length

    @property
    def trust_context(self) -> Optional[TrustContext]:
        return self._trust

    def validate_certificate(
        self,
        cert: x509.Certificate,
        intermediates: Sequence[x509.Certificate] = (),
        expected_root_thumbprint: Optional[str] = None,
    ) -> CertificateValidationResult:
        """Validate against the preloaded TrustContext plus any extra intermediates."""
        if self._trust is None:
            return CertificateValidationResult.failure(
                CertificateFailureReason.CHAIN_BUILDING,
                "No trust context configured",
            )
        return self._validate(
            cert,
            self._trust.roots,
            list(self._trust.intermediates) + list(intermediates),
            expected_root_thumbprint,
        )

    def validate_chain(
        self,
        cert: x509.Certificate,
        trusted_roots: Iterable[x509.Certificate],
        intermediates: Iterable[x509.Certificate] = (),
        expected_root_thumbprint: Optional[str] = None,
    ) -> CertificateValidationResult:
        """Validate against explicit anchors; the leaf joins the intermediate set."""
        pool = list(intermediates)
        pool.append(cert)
        return self._validate(cert, list(trusted_roots), pool, expected_root_thumbprint)

    # --- Internals ---------------------------------------------------

    def _validate(
        self,
        cert: x509.Certificate,
        roots: Sequence[x509.Certificate],
        pool: Sequence[x509.Certificate],
        expected_root_thumbprint: Optional[str],
    ) -> CertificateValidationResult:
        if expected_root_thumbprint:
            wanted = expected_root_thumbprint.lower()
            roots = [r for r in roots if certificate_thumbprint(r) == wanted]
            if not roots:
                return CertificateValidationResult.failure(
                    CertificateFailureReason.ROOT_MISMATCH,
                    f"No trusted root matches thumbprint {expected_root_thumbprint}",
                )

        path = self._build_path(cert, list(roots), list(pool))
        if path is None:
            return CertificateValidationResult.failure(
                CertificateFailureReason.CHAIN_BUILDING,
                f"No trusted path for certificate {_subject(cert)}",
            )

        now = self._clock()
        for link in path:
            if not link.not_valid_before_utc <= now <= link.not_valid_after_utc:
                return CertificateValidationResult.failure(
                    CertificateFailureReason.EXPIRED,
                    f"Certificate {_subject(link)} is outside its validity period",
                )

        if not self._has_signing_key_usage(cert):
            return CertificateValidationResult.failure(
                CertificateFailureReason.KEY_USAGE,
                f"Certificate {_subject(cert)} does not allow digitalSignature and keyEncipherment",
            )

        if self._revocation is not None:
            for link, issuer in zip(path, path[1:]):
                status = self._revocation.check(link, issuer)
                if status is RevocationStatus.REVOKED:
                    return CertificateValidationResult.failure(
                        CertificateFailureReason.REVOKED,
                        f"Certificate {_subject(link)} has been revoked",
                    )
                if status is RevocationStatus.UNKNOWN:
                    logger.warning(
                        "Revocation status of %s is unknown, accepting (soft-fail)",
                        _subject(link),
                    )

        logger.debug("Validated certificate path of length %d for %s", len(path), _subject(cert))
        return CertificateValidationResult(valid=True, path=tuple(path))

    def _build_path(
        self,
        cert: x509.Certificate,
        roots: List[x509.Certificate],
        pool: List[x509.Certificate],
    ) -> Optional[List[x509.Certificate]]:
        if cert in roots:
            return [cert]
        return self._extend([cert], roots, pool)

    def _extend(
        self,
        path: List[x509.Certificate],
        roots: List[x509.Certificate],
        pool: List[x509.Certificate],
    ) -> Optional[List[x509.Certificate]]:
        current = path[-1]

        for root in roots:
            if _is_ca(root) and _issued_by(current, root):
                return path + [root]

        if len(path) >= self._max_path_length:
            return None

        for candidate in pool:
            if candidate in path or not _is_ca(candidate):
                continue
            if _issued_by(current, candidate):
                found = self._extend(path + [candidate], roots, pool)
                if found is not None:
                    return found
        return None

    @staticmethod
    def _has_signing_key_usage(cert: x509.Certificate) -> bool:
        try:
            usage = cert.extensions.get_extension_for_class(x509.KeyUsage).value
        except x509.ExtensionNotFound:
            return False
        return usage.digital_signature and usage.key_encipherment
