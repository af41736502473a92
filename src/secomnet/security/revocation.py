"""
Revocation checking
-------------------

Every checker answers GOOD, REVOKED or UNKNOWN. UNKNOWN covers every case
where no authoritative answer could be obtained (no CRL for the issuer, a
stale CRL, no OCSP responder, responder unreachable, unsigned or stale
response).

The chain validator treats UNKNOWN as a pass (soft-fail) and only a
confirmed REVOKED as a failure.
"""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import requests
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, padding, rsa
from cryptography.x509 import ocsp
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtendedKeyUsageOID

from secomnet.protocol.enums import RevocationStatus
from secomnet.utils.timestamps import utc_now

from .providers import RevocationChecker

logger = logging.getLogger(__name__)

# Tolerated drift between our clock and an OCSP responder's
OCSP_CLOCK_SKEW = dt.timedelta(minutes=5)


def _load_crl(data: bytes) -> x509.CertificateRevocationList:
    if b"-----BEGIN" in data:
        return x509.load_pem_x509_crl(data)
    return x509.load_der_x509_crl(data)


class CrlRevocationChecker:
    """Checks certificates against a preloaded set of CRLs."""

    def __init__(self, crls: Iterable[x509.CertificateRevocationList] = ()):
        self._crls: List[x509.CertificateRevocationList] = list(crls)

    @classmethod
    def from_files(cls, paths: Iterable[str | Path]) -> "CrlRevocationChecker":
        crls = [_load_crl(Path(p).read_bytes()) for p in paths]
        logger.info("Loaded %d CRL(s)", len(crls))
        return cls(crls)

    def add_crl(self, crl: x509.CertificateRevocationList) -> None:
        self._crls.append(crl)

    def _crls_for(self, issuer: x509.Certificate) -> List[x509.CertificateRevocationList]:
        now = utc_now()
        matches = []
        for crl in self._crls:
            if crl.issuer != issuer.subject:
                continue
            if not crl.is_signature_valid(issuer.public_key()):
                logger.warning("Ignoring CRL with invalid signature from %s", crl.issuer.rfc4514_string())
                continue
            next_update = crl.next_update_utc
            if next_update is not None and next_update < now:
                logger.warning("Ignoring stale CRL from %s", crl.issuer.rfc4514_string())
                continue
            matches.append(crl)
        return matches

    def check(self, cert: x509.Certificate, issuer: x509.Certificate) -> RevocationStatus:
        crls = self._crls_for(issuer)
        if not crls:
            return RevocationStatus.UNKNOWN

        for crl in crls:
            if crl.get_revoked_certificate_by_serial_number(cert.serial_number) is not None:
                return RevocationStatus.REVOKED
        return RevocationStatus.GOOD


def ocsp_urls(cert: x509.Certificate) -> List[str]:
    try:
        aia = cert.extensions.get_extension_for_class(x509.AuthorityInformationAccess).value
    except x509.ExtensionNotFound:
        return []
    return [
        desc.access_location.value
        for desc in aia
        if desc.access_method == AuthorityInformationAccessOID.OCSP
        and isinstance(desc.access_location, x509.UniformResourceIdentifier)
    ]


def _verify_with(public_key, signature: bytes, data: bytes, hash_alg) -> bool:
    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(signature, data, padding.PKCS1v15(), hash_alg)
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(signature, data, ec.ECDSA(hash_alg))
        elif isinstance(public_key, dsa.DSAPublicKey):
            public_key.verify(signature, data, hash_alg)
        else:
            public_key.verify(signature, data)
    except (InvalidSignature, TypeError, ValueError):
        return False
    return True


def _is_ocsp_signer(cert: x509.Certificate) -> bool:
    try:
        usage = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except x509.ExtensionNotFound:
        return False
    return ExtendedKeyUsageOID.OCSP_SIGNING in usage


class OcspRevocationChecker:
    """
    Queries the OCSP responder named in the certificate's AIA extension.

    Network failures never raise: they produce UNKNOWN and a warning.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self._timeout = timeout
        self._session = session or requests.Session()

    def _responder_key(self, response: ocsp.OCSPResponse, issuer: x509.Certificate):
        # Delegated responders must be issued by the certificate's issuer and carry id-kp-OCSPSigning
        for responder in response.certificates:
            try:
                responder.verify_directly_issued_by(issuer)
            except (ValueError, TypeError, InvalidSignature):
                continue
            if not _is_ocsp_signer(responder):
                logger.warning(
                    "Ignoring OCSP responder %s without OCSP signing usage",
                    responder.subject.rfc4514_string(),
                )
                continue
            return responder.public_key()
        return issuer.public_key()

    def check(self, cert: x509.Certificate, issuer: x509.Certificate) -> RevocationStatus:
        urls = ocsp_urls(cert)
        if not urls:
            return RevocationStatus.UNKNOWN

        request = (
            ocsp.OCSPRequestBuilder()
            .add_certificate(cert, issuer, hashes.SHA1())
            .build()
            .public_bytes(serialization.Encoding.DER)
        )

        for url in urls:
            try:
                resp = self._session.post(
                    url,
                    data=request,
                    headers={"Content-Type": "application/ocsp-request"},
                    timeout=self._timeout,
                )
            except requests.RequestException as e:
                logger.warning("OCSP responder %s unreachable: %s", url, e)
                continue

            if resp.status_code != 200:
                logger.warning("OCSP responder %s returned HTTP %s", url, resp.status_code)
                continue

            status = self._parse(resp.content, cert, issuer)
            if status is not RevocationStatus.UNKNOWN:
                return status

        return RevocationStatus.UNKNOWN

    def _parse(
        self, content: bytes, cert: x509.Certificate, issuer: x509.Certificate
    ) -> RevocationStatus:
        try:
            response = ocsp.load_der_ocsp_response(content)
        except ValueError as e:
            logger.warning("Malformed OCSP response: %s", e)
            return RevocationStatus.UNKNOWN

        if response.response_status != ocsp.OCSPResponseStatus.SUCCESSFUL:
            logger.warning("OCSP response status %s", response.response_status.name)
            return RevocationStatus.UNKNOWN

        if response.serial_number != cert.serial_number:
            logger.warning("OCSP response is for a different certificate")
            return RevocationStatus.UNKNOWN

        if not _verify_with(
            self._responder_key(response, issuer),
            response.signature,
            response.tbs_response_bytes,
            response.signature_hash_algorithm,
        ):
            logger.warning("OCSP response signature could not be verified")
            return RevocationStatus.UNKNOWN

        now = utc_now()
        if response.this_update_utc > now + OCSP_CLOCK_SKEW:
            logger.warning("OCSP response is not yet valid")
            return RevocationStatus.UNKNOWN
        next_update = response.next_update_utc
        if next_update is not None and next_update + OCSP_CLOCK_SKEW < now:
            logger.warning("Ignoring stale OCSP response")
            return RevocationStatus.UNKNOWN

        if response.certificate_status == ocsp.OCSPCertStatus.REVOKED:
            return RevocationStatus.REVOKED
        if response.certificate_status == ocsp.OCSPCertStatus.GOOD:
            return RevocationStatus.GOOD
        return RevocationStatus.UNKNOWN


class CompositeRevocationChecker:
    """Asks each checker in turn; the first definitive answer wins."""

    def __init__(self, checkers: Sequence[RevocationChecker]):
        self._checkers = list(checkers)

    def check(self, cert: x509.Certificate, issuer: x509.Certificate) -> RevocationStatus:
        for checker in self._checkers:
            status = checker.check(cert, issuer)
            if status is not RevocationStatus.UNKNOWN:
                return status
        return RevocationStatus.UNKNOWN
