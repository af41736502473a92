from __future__ import annotations

import logging
import zlib

from secomnet.protocol.algorithms import CompressionAlgorithm
from secomnet.protocol.errors import ValidationError

logger = logging.getLogger(__name__)


class ZipCompressionProvider:
    """
    Deflate compression for the ``zip`` algorithm token.

    Output is a zlib stream so the receiver can detect truncation through the
    trailing checksum.
    """

    algorithm = CompressionAlgorithm.ZIP

    def __init__(self, level: int = zlib.Z_DEFAULT_COMPRESSION):
        if level != zlib.Z_DEFAULT_COMPRESSION and not 0 <= level <= 9:
            raise ValueError("Compression level must be between 0 and 9")
        self._level = level

    def compress(self, data: bytes) -> bytes:
        out = zlib.compress(data, self._level)
        logger.debug("Compressed payload %d -> %d bytes", len(data), len(out))
        return out

    def decompress(self, data: bytes) -> bytes:
        try:
            return zlib.decompress(data)
        except zlib.error as e:
            raise ValidationError(f"Unable to decompress payload: {e}") from e
