"""
X.509 signatures
----------------

Signatures are produced with the signer's private key and verified against
the public key of the leaf certificate carried in the envelope. The wire form
of a signature is a lower-case hex string of the DER signature.

Supported algorithm tokens:
- ``dsa``   : DSA over SHA-256
- ``ecdsa`` : ECDSA over SHA-384
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec
from cryptography.hazmat.primitives.serialization import pkcs12

from secomnet.protocol.algorithms import DigitalSignatureAlgorithm
from secomnet.protocol.errors import SecomError, UnsupportedAlgorithmError

from .pem import load_pem_certificates

logger = logging.getLogger(__name__)


def algorithm_for_key(key) -> DigitalSignatureAlgorithm:
    if isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        return DigitalSignatureAlgorithm.ECDSA
    if isinstance(key, (dsa.DSAPrivateKey, dsa.DSAPublicKey)):
        return DigitalSignatureAlgorithm.DSA
    raise UnsupportedAlgorithmError(
        f"Unsupported signing key type: {type(key).__name__}"
    )


def sign_payload(private_key, algorithm: DigitalSignatureAlgorithm, payload: bytes) -> str:
    if algorithm_for_key(private_key) is not algorithm:
        raise UnsupportedAlgorithmError(
            f"Key type does not support the '{algorithm.token}' algorithm"
        )

    hash_alg = algorithm.hash_algorithm()
    if algorithm is DigitalSignatureAlgorithm.ECDSA:
        signature = private_key.sign(payload, ec.ECDSA(hash_alg))
    else:
        signature = private_key.sign(payload, hash_alg)
    return signature.hex()


def verify_payload(
    cert: x509.Certificate,
    algorithm: DigitalSignatureAlgorithm,
    payload: bytes,
    signature_hex: str,
) -> bool:
    """Return True when ``signature_hex`` is a valid signature over ``payload``."""
    public_key = cert.public_key()
    try:
        if algorithm_for_key(public_key) is not algorithm:
            return False
        signature = bytes.fromhex(signature_hex)
    except (UnsupportedAlgorithmError, ValueError, TypeError):
        return False

    hash_alg = algorithm.hash_algorithm()
    try:
        if algorithm is DigitalSignatureAlgorithm.ECDSA:
            public_key.verify(signature, payload, ec.ECDSA(hash_alg))
        else:
            public_key.verify(signature, payload, hash_alg)
    except InvalidSignature:
        return False
    return True


class X509SignatureProvider:
    """
    Signer backed by a private key and its certificate chain.

    The chain is ordered leaf first. The root certificate (whose thumbprint
    is published in envelopes) defaults to the last certificate of the chain.
    """

    def __init__(
        self,
        private_key,
        certificate_chain: Sequence[x509.Certificate],
        algorithm: Optional[DigitalSignatureAlgorithm | str] = None,
        root_certificate: Optional[x509.Certificate] = None,
    ):
        if not certificate_chain:
            raise ValueError("Signature provider requires at least the leaf certificate")

        key_algorithm = algorithm_for_key(private_key)
        if algorithm is not None:
            algorithm = DigitalSignatureAlgorithm.from_value(algorithm)
            if algorithm is not key_algorithm:
                raise UnsupportedAlgorithmError(
                    f"Configured algorithm '{algorithm.token}' does not match the "
                    f"'{key_algorithm.token}' private key"
                )

        self._private_key = private_key
        self._chain = list(certificate_chain)
        self._root = root_certificate or self._chain[-1]
        self.algorithm = key_algorithm

    # --- Loading -----------------------------------------------------

    @classmethod
    def from_pem_files(
        cls,
        private_key_path: str | Path,
        certificate_path: str | Path,
        password: Optional[str] = None,
        algorithm: Optional[DigitalSignatureAlgorithm | str] = None,
    ) -> "X509SignatureProvider":
        key_data = Path(private_key_path).read_bytes()
        try:
            private_key = serialization.load_pem_private_key(
                key_data,
                password=password.encode("utf-8") if password else None,
            )
        except (ValueError, TypeError) as e:
            raise SecomError(f"Unable to load private key: {e}") from e

        chain = load_pem_certificates(Path(certificate_path).read_bytes())
        logger.info("Loaded signing certificate chain of length %d", len(chain))
        return cls(private_key, chain, algorithm=algorithm)

    @classmethod
    def from_pkcs12(
        cls,
        path: str | Path,
        password: Optional[str] = None,
        algorithm: Optional[DigitalSignatureAlgorithm | str] = None,
    ) -> "X509SignatureProvider":
        try:
            private_key, cert, additional = pkcs12.load_key_and_certificates(
                Path(path).read_bytes(),
                password.encode("utf-8") if password else None,
            )
        except ValueError as e:
            raise SecomError(f"Unable to load PKCS#12 keystore: {e}") from e

        if private_key is None or cert is None:
            raise SecomError("PKCS#12 keystore does not contain a key and certificate")

        chain = [cert] + list(additional or [])
        logger.info("Loaded signing keystore with chain of length %d", len(chain))
        return cls(private_key, chain, algorithm=algorithm)

    # --- SignatureProvider -------------------------------------------

    def certificate_chain(self) -> List[x509.Certificate]:
        return list(self._chain)

    def leaf_certificate(self) -> x509.Certificate:
        return self._chain[0]

    def root_certificate(self) -> x509.Certificate:
        return self._root

    def sign(self, payload: bytes) -> str:
        return sign_payload(self._private_key, self.algorithm, payload)
