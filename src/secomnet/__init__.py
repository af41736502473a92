from .core.capability import CapabilityDocument
from .core.reader import ReadResult, SecomReader
from .core.settings import SecomSettings, build_reader, build_writer, get_settings
from .core.writer import SecomWriter
from .protocol import (
    Canonicalizer,
    SignedEnvelope,
    ExchangeMetadata,
    SecomError,
)
from .security.certificates import CertificateChainValidator
from .security.trust import TrustContext
from .security.validator import SignatureValidator

__all__ = [
    "CapabilityDocument",
    "ReadResult",
    "SecomReader",
    "SecomSettings",
    "build_reader",
    "build_writer",
    "get_settings",
    "SecomWriter",
    "Canonicalizer",
    "SignedEnvelope",
    "ExchangeMetadata",
    "SecomError",
    "CertificateChainValidator",
    "TrustContext",
    "SignatureValidator",
]
