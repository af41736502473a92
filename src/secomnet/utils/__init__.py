from .json import json_dumps, json_loads
from .timestamps import utc_now, signature_time, to_iso, from_iso
from .encoding import b64_encode, b64_decode

__all__ = [
    "json_dumps",
    "json_loads",
    "utc_now",
    "signature_time",
    "to_iso",
    "from_iso",
    "b64_encode",
    "b64_decode",
]
