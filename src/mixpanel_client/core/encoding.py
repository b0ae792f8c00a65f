"""
JSON and base64 encoding of wire payloads.
"""

import base64
import json
from typing import Any


def serialize_json(value: Any) -> str:
    """Default serializer: compact JSON, non-ASCII kept as-is, NaN and infinity rejected."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def to_base64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")
