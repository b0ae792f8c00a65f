"""
Message models — kinds, endpoints and built messages.
"""

from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel

from mixpanel_client.core.encoding import serialize_json, to_base64


class MessageKind(str, Enum):
    TRACK = "track"
    ALIAS = "alias"
    PEOPLE_SET = "people_set"
    PEOPLE_SET_ONCE = "people_set_once"
    PEOPLE_ADD = "people_add"
    PEOPLE_APPEND = "people_append"
    PEOPLE_UNION = "people_union"
    PEOPLE_UNSET = "people_unset"
    PEOPLE_DELETE = "people_delete"
    PEOPLE_TRACK_CHARGE = "people_track_charge"
    BATCH = "batch"

    @property
    def is_track_like(self) -> bool:
        return self in TRACK_KINDS

    @property
    def is_engage_like(self) -> bool:
        return self in ENGAGE_KINDS


class MessageEndpoint(str, Enum):
    TRACK = "track"
    ENGAGE = "engage"
    IMPORT = "import"


TRACK_KINDS = frozenset({MessageKind.TRACK, MessageKind.ALIAS})
ENGAGE_KINDS = frozenset({
    MessageKind.PEOPLE_SET, MessageKind.PEOPLE_SET_ONCE, MessageKind.PEOPLE_ADD,
    MessageKind.PEOPLE_APPEND, MessageKind.PEOPLE_UNION, MessageKind.PEOPLE_UNSET,
    MessageKind.PEOPLE_DELETE, MessageKind.PEOPLE_TRACK_CHARGE,
})


class MixpanelMessage(BaseModel):
    """A built message: its kind plus the wire-ready property mapping."""
    kind: MessageKind
    data: dict[str, Any]

    def to_json(self, serialize_json_fn: Optional[Callable[[Any], str]] = None) -> str:
        return (serialize_json_fn or serialize_json)(self.data)

    def to_base64(self, serialize_json_fn: Optional[Callable[[Any], str]] = None) -> str:
        return to_base64(self.to_json(serialize_json_fn))
