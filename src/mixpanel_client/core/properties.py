"""
Semantic property identifiers.

An identifier names a property independently of how a given message kind
spells it on the wire. User keys are matched to identifiers after
normalization, so "DistinctId", "distinct_id" and "$distinct_id" all mean
PropertyId.DISTINCT_ID.
"""

import re
from enum import Enum

_IGNORED_CHARS = re.compile(r"[\s$_\-.]")


class PropertyId(str, Enum):
    EVENT = "Event"
    TOKEN = "Token"
    DISTINCT_ID = "DistinctId"
    TIME = "Time"
    IP = "Ip"
    INSERT_ID = "InsertId"
    DURATION = "Duration"
    OS = "Os"
    SCREEN_WIDTH = "ScreenWidth"
    SCREEN_HEIGHT = "ScreenHeight"
    ALIAS = "Alias"
    IGNORE_TIME = "IgnoreTime"
    FIRST_NAME = "FirstName"
    LAST_NAME = "LastName"
    NAME = "Name"
    EMAIL = "Email"
    PHONE = "Phone"
    CREATED = "Created"
    AMOUNT = "Amount"
    UNSET = "Unset"

    @property
    def match_key(self) -> str:
        return normalize_key(self.value)


def normalize_key(name: str) -> str:
    return _IGNORED_CHARS.sub("", name).lower()
