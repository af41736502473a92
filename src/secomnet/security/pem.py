"""
Certificate helpers
-------------------

SECOM carries certificates as "minified PEM": the Base64 body of the DER
encoding, without armour lines or line breaks. Root certificates are
identified by the SHA-1 hex digest of their DER encoding.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
from typing import Iterable, List, Sequence

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization

from secomnet.protocol.enums import CertificateFailureReason
from secomnet.protocol.errors import InvalidCertificateError


def certificate_to_minified_pem(cert: x509.Certificate) -> str:
    der = cert.public_bytes(serialization.Encoding.DER)
    return base64.b64encode(der).decode("ascii")


def minified_pem_to_certificate(value: str) -> x509.Certificate:
    """Parse a minified or fully armoured PEM string."""
    if not value:
        raise InvalidCertificateError(
            "Empty certificate", CertificateFailureReason.MALFORMED
        )

    try:
        if "-----BEGIN" in value:
            return x509.load_pem_x509_certificate(value.encode("ascii"))
        der = base64.b64decode("".join(value.split()), validate=True)
        return x509.load_der_x509_certificate(der)
    except (ValueError, binascii.Error) as e:
        raise InvalidCertificateError(
            f"Unable to parse certificate: {e}", CertificateFailureReason.MALFORMED
        ) from e


def chain_to_minified_pem(chain: Iterable[x509.Certificate]) -> List[str]:
    return [certificate_to_minified_pem(c) for c in chain]


def minified_pem_to_chain(values: Sequence[str]) -> List[x509.Certificate]:
    return [minified_pem_to_certificate(v) for v in values]


def certificate_thumbprint(cert: x509.Certificate) -> str:
    """SHA-1 hex digest of the DER encoding (root certificate thumbprint)."""
    der = cert.public_bytes(serialization.Encoding.DER)
    return hashlib.sha1(der).hexdigest()


def public_key_to_minified_pem(cert: x509.Certificate) -> str:
    der = cert.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(der).decode("ascii")


def load_pem_certificates(data: bytes) -> List[x509.Certificate]:
    try:
        return x509.load_pem_x509_certificates(data)
    except ValueError as e:
        raise InvalidCertificateError(
            f"Unable to parse PEM bundle: {e}", CertificateFailureReason.MALFORMED
        ) from e


def is_self_signed(cert: x509.Certificate) -> bool:
    if cert.issuer != cert.subject:
        return False
    try:
        cert.verify_directly_issued_by(cert)
    except (ValueError, TypeError, InvalidSignature):
        return False
    return True
