"""
Symmetric payload protection
----------------------------

AES-CBC with PKCS#7 padding for the ``aes_cbc_pkcs7`` algorithm token.

Key material is a key plus IV pair, scoped to a transaction:
- generated at random for a new exchange
- derived deterministically from a shared master secret (HKDF-SHA256)
- received from a peer in an ``EnvelopeKeyObject``

Key bytes are never logged.
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from secomnet.protocol.algorithms import EncryptionAlgorithm
from secomnet.protocol.errors import DecryptionError, EncryptionError, ValidationError
from secomnet.protocol.models import EnvelopeKeyObject

logger = logging.getLogger(__name__)

AES_KEY_SIZES = (16, 24, 32)
AES_BLOCK_SIZE = 16


@dataclass(frozen=True)
class SymmetricKey:
    """
    AES key material for one transaction.

    Attributes:
        key: AES key (16, 24 or 32 bytes)
        iv: CBC initialisation vector (16 bytes)
    """
    key: bytes
    iv: bytes

    def __post_init__(self):
        if len(self.key) not in AES_KEY_SIZES:
            raise ValueError("AES key must be 16, 24 or 32 bytes")
        if len(self.iv) != AES_BLOCK_SIZE:
            raise ValueError("AES-CBC IV must be exactly 16 bytes")

    def __repr__(self) -> str:
        return f"SymmetricKey(key_size={len(self.key) * 8})"

    @classmethod
    def generate(cls, key_size: int = 32) -> "SymmetricKey":
        """Generate fresh random key material."""
        return cls(key=os.urandom(key_size), iv=os.urandom(AES_BLOCK_SIZE))

    @classmethod
    def from_hex(cls, key_hex: str, iv_hex: str) -> "SymmetricKey":
        return cls(key=bytes.fromhex(key_hex), iv=bytes.fromhex(iv_hex))

    @classmethod
    def derive(
        cls,
        transaction_id: uuid.UUID | str,
        master_secret: bytes,
        salt: bytes,
        key_size: int = 32,
    ) -> "SymmetricKey":
        """Derive key material deterministically from a master secret."""
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=key_size + AES_BLOCK_SIZE,
            salt=salt,
            info=f"secom-transaction-key:{transaction_id}".encode("utf-8"),
        )
        material = hkdf.derive(master_secret)
        return cls(key=material[:key_size], iv=material[key_size:])

    # --- Key exchange ------------------------------------------------

    def to_envelope(self, transaction_id: uuid.UUID) -> EnvelopeKeyObject:
        return EnvelopeKeyObject(
            encryptionKey=self.key,
            iv=self.iv,
            transactionIdentifier=transaction_id,
        )

    @classmethod
    def from_envelope(cls, envelope: EnvelopeKeyObject) -> "SymmetricKey":
        if envelope.encryptionKey is None or envelope.iv is None:
            raise ValidationError("Encryption key envelope is missing key material")
        try:
            return cls(key=envelope.encryptionKey, iv=envelope.iv)
        except ValueError as e:
            raise ValidationError(str(e)) from e


class TransactionKeyStore:
    """
    In-memory mapping of transaction identifiers to key material.

    In production, this would be backed by an HSM or KMS.
    """

    def __init__(self):
        self._keys: Dict[str, SymmetricKey] = {}

    def add(self, transaction_id: uuid.UUID | str, key: SymmetricKey) -> None:
        self._keys[str(transaction_id)] = key

    def add_from_envelope(self, envelope: EnvelopeKeyObject) -> SymmetricKey:
        if envelope.transactionIdentifier is None:
            raise ValidationError("Encryption key envelope has no transaction identifier")
        key = SymmetricKey.from_envelope(envelope)
        self.add(envelope.transactionIdentifier, key)
        return key

    def get(self, transaction_id: uuid.UUID | str) -> Optional[SymmetricKey]:
        return self._keys.get(str(transaction_id))

    def remove(self, transaction_id: uuid.UUID | str) -> None:
        self._keys.pop(str(transaction_id), None)

    def __contains__(self, transaction_id: object) -> bool:
        return str(transaction_id) in self._keys

    def __len__(self) -> int:
        return len(self._keys)


class AesCbcEncryptionProvider:
    """
    AES-CBC / PKCS#7 provider.

    Key lookup order: the transaction's entry in the key store, then the
    default key. Missing key material is an error in both directions.
    """

    algorithm = EncryptionAlgorithm.AES_CBC_PKCS7

    def __init__(
        self,
        key: Optional[SymmetricKey] = None,
        key_store: Optional[TransactionKeyStore] = None,
    ):
        self._default_key = key
        self._key_store = key_store

    def _resolve(self, transaction_id) -> Optional[SymmetricKey]:
        if self._key_store is not None and transaction_id is not None:
            key = self._key_store.get(transaction_id)
            if key is not None:
                return key
        return self._default_key

    def encrypt(self, data: bytes, transaction_id=None) -> bytes:
        key = self._resolve(transaction_id)
        if key is None:
            raise EncryptionError(
                f"No encryption key material for transaction {transaction_id}"
            )

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(data) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key.key), modes.CBC(key.iv)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, data: bytes, transaction_id=None) -> bytes:
        key = self._resolve(transaction_id)
        if key is None:
            raise DecryptionError(
                f"No decryption key material for transaction {transaction_id}"
            )

        try:
            decryptor = Cipher(algorithms.AES(key.key), modes.CBC(key.iv)).decryptor()
            padded = decryptor.update(data) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionError(f"AES-CBC decryption failed: {e}") from e
