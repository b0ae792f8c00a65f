"""
Property name formats applied to keys that carry no explicit name.
"""

import re
from enum import Enum

_SEPARATORS = re.compile(r"[_\-.\s]+")
_LOWER_UPPER = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_ACRONYM_WORD = re.compile(r"(?<=[A-Z])(?=[A-Z][a-z])")


class PropertyNameFormat(str, Enum):
    NONE = "none"                    # as-is
    DOTTED = "dotted"                # firstName -> first.name
    UNDERSCORED = "underscored"      # firstName -> first_name
    SENTENCE_CASE = "sentence_case"  # firstName -> First name
    TITLE_CASE = "title_case"        # firstName -> First Name
    LOWER_CASE = "lower_case"        # firstName -> first name


def split_words(name: str) -> list[str]:
    spaced = _SEPARATORS.sub(" ", name)
    spaced = _LOWER_UPPER.sub(" ", spaced)
    spaced = _ACRONYM_WORD.sub(" ", spaced)
    return [word.lower() for word in spaced.split()]


def format_name(name: str, name_format: PropertyNameFormat) -> str:
    if name_format is PropertyNameFormat.NONE:
        return name
    prefix = "$" if name.startswith("$") else ""
    words = split_words(name[len(prefix):])
    if not words:
        return name

    if name_format is PropertyNameFormat.DOTTED:
        formatted = ".".join(words)
    elif name_format is PropertyNameFormat.UNDERSCORED:
        formatted = "_".join(words)
    elif name_format is PropertyNameFormat.SENTENCE_CASE:
        formatted = " ".join(words).capitalize()
    elif name_format is PropertyNameFormat.TITLE_CASE:
        formatted = " ".join(word.capitalize() for word in words)
    else:
        formatted = " ".join(words)
    return prefix + formatted
