"""
Canonical signing string
------------------------

Every signable SECOM object exposes ``attribute_array()``: a fixed-order list
of its signable fields. The canonical string renders each attribute to a
fixed textual form and joins them with a dot.

Rendering rules:
- None           -> "" (the position is kept)
- nested object  -> its own canonical string
- datetime       -> epoch seconds (UTC)
- bool           -> "true" / "false"
- UUID           -> canonical string form
- enum           -> ``as_string()`` (lower-case name or wire token)
- bytes          -> Base64
- number         -> str()
- list / tuple   -> "[a, b]"

The attribute order of each envelope variant is part of the protocol and must
not change without a version bump.
"""

from __future__ import annotations

import base64
import datetime as _dt
import uuid
from enum import Enum
from typing import Any, Protocol, Sequence

CSV_SEPARATOR = "."


class Canonicalizable(Protocol):
    def attribute_array(self) -> Sequence[Any]:
        ...


def _epoch_seconds(value: _dt.datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=_dt.timezone.utc)
    return int(value.timestamp())


def attribute_conversion(attribute: Any) -> str:
    if attribute is None:
        return ""
    if hasattr(attribute, "attribute_array"):
        return csv_string(attribute)
    if isinstance(attribute, _dt.datetime):
        return str(_epoch_seconds(attribute))
    # bool before int: bool is an int subclass
    if isinstance(attribute, bool):
        return "true" if attribute else "false"
    if isinstance(attribute, uuid.UUID):
        return str(attribute)
    if isinstance(attribute, Enum):
        as_string = getattr(attribute, "as_string", None)
        return as_string() if as_string else str(attribute.value)
    if isinstance(attribute, (bytes, bytearray)):
        return base64.b64encode(bytes(attribute)).decode("utf-8")
    if isinstance(attribute, (int, float)):
        return str(attribute)
    if isinstance(attribute, (list, tuple)):
        return "[" + ", ".join(attribute_conversion(item) for item in attribute) + "]"
    return str(attribute)


def csv_string(obj: Canonicalizable) -> str:
    return CSV_SEPARATOR.join(attribute_conversion(a) for a in obj.attribute_array())


class Canonicalizer:
    """Builds the deterministic signing payload of an envelope."""

    def canonicalize(self, obj: Canonicalizable) -> str:
        return csv_string(obj)

    def signing_payload(self, obj: Canonicalizable) -> bytes:
        return self.canonicalize(obj).encode("utf-8")
