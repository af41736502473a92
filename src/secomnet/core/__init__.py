from .capability import CapabilityDocument
from .reader import ReadResult, SecomReader
from .settings import SecomSettings, build_reader, build_writer, get_settings
from .writer import SecomWriter

__all__ = [
    "CapabilityDocument",
    "ReadResult",
    "SecomReader",
    "SecomSettings",
    "build_reader",
    "build_writer",
    "get_settings",
    "SecomWriter",
]
