from __future__ import annotations

import base64
from typing import Optional


def b64_encode(data: Optional[bytes]) -> Optional[str]:
    if data is None:
        return None
    return base64.b64encode(data).decode("utf-8")


def b64_decode(text: Optional[str]) -> Optional[bytes]:
    """Strict Base64 decoding; raises binascii.Error on malformed input."""
    if text is None:
        return None
    return base64.b64decode(text, validate=True)


