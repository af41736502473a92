"""
Algorithm identifiers used in SECOM exchange metadata.

Each member carries the lower-case wire token and the implementation it maps
to. Lookup by token is strict: an unknown token is a validation failure, never
a silent None.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from cryptography.hazmat.primitives import hashes

from .errors import UnsupportedAlgorithmError


class _TaggedAlgorithm(Enum):
    def __init__(self, token: str, implementation: str):
        self.token = token
        self.implementation = implementation

    @classmethod
    def from_value(cls, value: Any):
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.token == value:
                return member
        raise UnsupportedAlgorithmError(
            f"Unsupported {cls.__name__} identifier: {value!r}"
        )

    @classmethod
    def from_optional(cls, value: Any):
        if value is None or value == "":
            return None
        return cls.from_value(value)

    def as_string(self) -> str:
        return self.token


class CompressionAlgorithm(_TaggedAlgorithm):
    ZIP = ("zip", "deflate")


class EncryptionAlgorithm(_TaggedAlgorithm):
    AES_CBC_PKCS7 = ("aes_cbc_pkcs7", "AES/CBC/PKCS7Padding")


class DigitalSignatureAlgorithm(_TaggedAlgorithm):
    DSA = ("dsa", "SHA256withDSA")
    ECDSA = ("ecdsa", "SHA384withECDSA")

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        if self is DigitalSignatureAlgorithm.DSA:
            return hashes.SHA256()
        return hashes.SHA384()


def token_of(algorithm: Optional[_TaggedAlgorithm]) -> Optional[str]:
    return algorithm.token if algorithm is not None else None
