"""
Strict JSON for the SECOM wire: compact output, UTF-8 text, and no
non-finite numbers in either direction.
"""

import json
from typing import Any, Union


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is not valid on the wire")


def json_dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def json_loads(data: Union[str, bytes]) -> Any:
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return json.loads(data, parse_constant=_reject_constant)
