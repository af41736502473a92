"""
Shared fixtures: a throwaway PKI generated on the fly.

    root (EC P-384, self-signed CA)
      └── intermediate (EC P-256, CA)
            ├── leaf   (EC P-256, digitalSignature + keyEncipherment)
            └── dsa_leaf (DSA 2048, digitalSignature + keyEncipherment)
"""

import datetime as dt
from dataclasses import dataclass
from typing import Iterable, List, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec
from cryptography.x509.oid import AuthorityInformationAccessOID, NameOID

from secomnet.security.certificates import CertificateChainValidator
from secomnet.security.encryption import SymmetricKey
from secomnet.security.signing import X509SignatureProvider
from secomnet.security.trust import TrustContext
from secomnet.security.validator import SignatureValidator


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def make_name(cn: str) -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "secomnet tests"),
            x509.NameAttribute(NameOID.COMMON_NAME, cn),
        ]
    )


def _key_usage(*, ca: bool, key_encipherment: bool = True) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=True,
        content_commitment=False,
        key_encipherment=(not ca) and key_encipherment,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=ca,
        crl_sign=ca,
        encipher_only=False,
        decipher_only=False,
    )


def issue_certificate(
    cn: str,
    public_key,
    issuer_name: x509.Name,
    issuer_key,
    *,
    ca: bool = False,
    key_encipherment: bool = True,
    not_before: Optional[dt.datetime] = None,
    not_after: Optional[dt.datetime] = None,
    ocsp_url: Optional[str] = None,
    extended_key_usage: Optional[List[x509.ObjectIdentifier]] = None,
) -> x509.Certificate:
    now = utc_now()
    builder = (
        x509.CertificateBuilder()
        .subject_name(make_name(cn))
        .issuer_name(issuer_name)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - dt.timedelta(days=1))
        .not_valid_after(not_after or now + dt.timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(_key_usage(ca=ca, key_encipherment=key_encipherment), critical=True)
    )
    if ocsp_url:
        builder = builder.add_extension(
            x509.AuthorityInformationAccess(
                [
                    x509.AccessDescription(
                        AuthorityInformationAccessOID.OCSP,
                        x509.UniformResourceIdentifier(ocsp_url),
                    )
                ]
            ),
            critical=False,
        )
    if extended_key_usage:
        builder = builder.add_extension(x509.ExtendedKeyUsage(extended_key_usage), critical=False)
    return builder.sign(issuer_key, hashes.SHA256())


def issue_crl(
    issuer: x509.Certificate,
    issuer_key,
    revoked_serials: Iterable[int] = (),
    *,
    next_update: Optional[dt.datetime] = None,
) -> x509.CertificateRevocationList:
    now = utc_now()
    builder = (
        x509.CertificateRevocationListBuilder()
        .issuer_name(issuer.subject)
        .last_update(now - dt.timedelta(hours=1))
        .next_update(next_update or now + dt.timedelta(days=1))
    )
    for serial in revoked_serials:
        builder = builder.add_revoked_certificate(
            x509.RevokedCertificateBuilder()
            .serial_number(serial)
            .revocation_date(now - dt.timedelta(hours=1))
            .build()
        )
    return builder.sign(issuer_key, hashes.SHA256())


@dataclass
class PKI:
    root_key: ec.EllipticCurvePrivateKey
    root: x509.Certificate
    intermediate_key: ec.EllipticCurvePrivateKey
    intermediate: x509.Certificate
    leaf_key: ec.EllipticCurvePrivateKey
    leaf: x509.Certificate
    dsa_key: dsa.DSAPrivateKey
    dsa_leaf: x509.Certificate

    def chain(self) -> List[x509.Certificate]:
        return [self.leaf, self.intermediate, self.root]

    def dsa_chain(self) -> List[x509.Certificate]:
        return [self.dsa_leaf, self.intermediate, self.root]

    def issue_leaf(self, cn: str, **kwargs):
        """Issue an extra EC leaf under the intermediate; returns (key, cert)."""
        key = ec.generate_private_key(ec.SECP256R1())
        cert = issue_certificate(
            cn, key.public_key(), self.intermediate.subject, self.intermediate_key, **kwargs
        )
        return key, cert


@pytest.fixture(scope="session")
def pki() -> PKI:
    root_key = ec.generate_private_key(ec.SECP384R1())
    root = issue_certificate(
        "Test Root CA", root_key.public_key(), make_name("Test Root CA"), root_key, ca=True
    )

    intermediate_key = ec.generate_private_key(ec.SECP256R1())
    intermediate = issue_certificate(
        "Test Intermediate CA",
        intermediate_key.public_key(),
        root.subject,
        root_key,
        ca=True,
    )

    leaf_key = ec.generate_private_key(ec.SECP256R1())
    leaf = issue_certificate(
        "urn:mrn:mcp:service:test:ecdsa",
        leaf_key.public_key(),
        intermediate.subject,
        intermediate_key,
    )

    dsa_key = dsa.generate_private_key(key_size=2048)
    dsa_leaf = issue_certificate(
        "urn:mrn:mcp:service:test:dsa",
        dsa_key.public_key(),
        intermediate.subject,
        intermediate_key,
    )

    return PKI(
        root_key=root_key,
        root=root,
        intermediate_key=intermediate_key,
        intermediate=intermediate,
        leaf_key=leaf_key,
        leaf=leaf,
        dsa_key=dsa_key,
        dsa_leaf=dsa_leaf,
    )


@pytest.fixture
def trust_context(pki) -> TrustContext:
    return TrustContext(roots=(pki.root,))


@pytest.fixture
def chain_validator(trust_context) -> CertificateChainValidator:
    return CertificateChainValidator(trust_context)


@pytest.fixture
def signature_validator(chain_validator) -> SignatureValidator:
    return SignatureValidator(chain_validator)


@pytest.fixture
def ec_signer(pki) -> X509SignatureProvider:
    return X509SignatureProvider(pki.leaf_key, pki.chain())


@pytest.fixture
def dsa_signer(pki) -> X509SignatureProvider:
    return X509SignatureProvider(pki.dsa_key, pki.dsa_chain())


@pytest.fixture
def symmetric_key() -> SymmetricKey:
    return SymmetricKey.generate()


@pytest.fixture
def crl_factory():
    return issue_crl


@pytest.fixture
def cert_factory():
    return issue_certificate
