"""
Scalar value normalization.

Values the ingestion API cannot express are reported as DROPPED and left out
of the message rather than raising.
"""

import math
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

DROPPED: Any = object()

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ISO_FORMAT = "%Y-%m-%dT%H:%M:%S"

Number = Union[int, float]


def to_epoch_seconds(value: Union[datetime, date]) -> int:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return int((datetime(value.year, value.month, value.day, tzinfo=timezone.utc) - EPOCH).total_seconds())


def format_iso(epoch_seconds: Number) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime(ISO_FORMAT)


def parse_iso(text: str) -> int:
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    return to_epoch_seconds(parsed)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_scalar(value: Any) -> Any:
    """Return the wire form of a scalar, or DROPPED if it is not a supported scalar."""
    if value is None:
        return DROPPED
    if isinstance(value, Enum):
        return normalize_scalar(value.value)
    if isinstance(value, (str, bool)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else DROPPED
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else DROPPED
    if isinstance(value, (datetime, date)):
        return to_epoch_seconds(value)
    if isinstance(value, UUID):
        return str(value)
    return DROPPED
