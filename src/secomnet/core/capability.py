"""
Capability negotiation
----------------------

A CapabilityDocument advertises which compression, encryption and signature
algorithms a service accepts. Peers exchange it as JSON and receivers use it
to reject exchange metadata that relies on a disabled algorithm.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..protocol.algorithms import (
    CompressionAlgorithm,
    DigitalSignatureAlgorithm,
    EncryptionAlgorithm,
    token_of,
)
from ..protocol.errors import UnsupportedAlgorithmError, ValidationError
from ..protocol.models import SECOM_PROTECTION_SCHEME, ExchangeMetadata


def _token_list(data: Dict[str, Any], key: str) -> List[Any]:
    # null means the peer advertises nothing for this stage
    tokens = data.get(key)
    if tokens is None:
        return []
    if not isinstance(tokens, list):
        raise ValidationError(f"Capability field '{key}' must be a list")
    return tokens


@dataclass
class CapabilityDocument:
    compression_algorithms: List[CompressionAlgorithm] = field(default_factory=list)
    encryption_algorithms: List[EncryptionAlgorithm] = field(default_factory=list)
    signature_algorithms: List[DigitalSignatureAlgorithm] = field(default_factory=list)
    protection_scheme: str = SECOM_PROTECTION_SCHEME

    @classmethod
    def all_supported(cls) -> "CapabilityDocument":
        return cls(
            compression_algorithms=list(CompressionAlgorithm),
            encryption_algorithms=list(EncryptionAlgorithm),
            signature_algorithms=list(DigitalSignatureAlgorithm),
        )

    @classmethod
    def from_providers(
        cls,
        compression_provider=None,
        encryption_provider=None,
        signature_provider=None,
    ) -> "CapabilityDocument":
        """Advertise exactly what the configured providers implement."""
        return cls(
            compression_algorithms=[compression_provider.algorithm] if compression_provider else [],
            encryption_algorithms=[encryption_provider.algorithm] if encryption_provider else [],
            signature_algorithms=[signature_provider.algorithm] if signature_provider else [],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protectionScheme": self.protection_scheme,
            "compressionAlgorithms": [a.token for a in self.compression_algorithms],
            "encryptionAlgorithms": [a.token for a in self.encryption_algorithms],
            "digitalSignatureAlgorithms": [a.token for a in self.signature_algorithms],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CapabilityDocument":
        if not isinstance(data, dict):
            raise ValidationError("Capability document must be a JSON object")
        return cls(
            compression_algorithms=[
                CompressionAlgorithm.from_value(t) for t in _token_list(data, "compressionAlgorithms")
            ],
            encryption_algorithms=[
                EncryptionAlgorithm.from_value(t) for t in _token_list(data, "encryptionAlgorithms")
            ],
            signature_algorithms=[
                DigitalSignatureAlgorithm.from_value(t)
                for t in _token_list(data, "digitalSignatureAlgorithms")
            ],
            protection_scheme=data.get("protectionScheme") or SECOM_PROTECTION_SCHEME,
        )

    def check_metadata(self, metadata: Optional[ExchangeMetadata]) -> None:
        """Raise UnsupportedAlgorithmError if ``metadata`` uses a disabled algorithm."""
        if metadata is None:
            return

        if metadata.compressionFlag and metadata.compressionAlgorithm not in self.compression_algorithms:
            raise UnsupportedAlgorithmError(
                f"Compression algorithm not enabled: {token_of(metadata.compressionAlgorithm)}"
            )
        if metadata.dataProtection and metadata.encryptionAlgorithm not in self.encryption_algorithms:
            raise UnsupportedAlgorithmError(
                f"Encryption algorithm not enabled: {token_of(metadata.encryptionAlgorithm)}"
            )
        if (
            metadata.digitalSignatureReference is not None
            and metadata.digitalSignatureReference not in self.signature_algorithms
        ):
            raise UnsupportedAlgorithmError(
                f"Signature algorithm not enabled: {metadata.digitalSignatureReference.token}"
            )
        if metadata.protectionScheme not in (None, self.protection_scheme):
            raise UnsupportedAlgorithmError(
                f"Protection scheme not supported: {metadata.protectionScheme}"
            )
