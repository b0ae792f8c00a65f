"""
Property extractor — turns a loosely-typed properties object into (name, value) pairs.

Supported inputs:
- None (no properties)
- any Mapping
- dataclass instances (field metadata "mixpanel_name" renames, "mixpanel_ignore" skips)
- pydantic models (a field alias is used as an explicit name)
- instances of classes registered with register_properties() / @mixpanel_properties

Names without an explicit spelling go through the configured PropertyNameFormat.
Values are normalized; unsupported ones are dropped silently.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any, Iterable, Iterator, Optional, Union

from pydantic import BaseModel

from mixpanel_client.core.names import PropertyNameFormat, format_name
from mixpanel_client.core.values import DROPPED, normalize_scalar
from mixpanel_client.errors import MessageBuildError

# attribute name -> explicit wire name (None: format the attribute name)
_REGISTRY: dict[type, dict[str, Optional[str]]] = {}

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def register_properties(cls: type, attributes: Union[Mapping[str, str], Iterable[str]]) -> type:
    """Declare which attributes of ``cls`` are exported as properties.

    ``attributes`` is either an iterable of attribute names, or a mapping of
    attribute name to the property name to use on the wire.
    """
    if isinstance(attributes, Mapping):
        _REGISTRY[cls] = {attr: name for attr, name in attributes.items()}
    else:
        _REGISTRY[cls] = {attr: None for attr in attributes}
    return cls


def mixpanel_properties(*attributes: str, **renamed: str):
    """Class decorator form of register_properties().

    @mixpanel_properties("plan", "seats", user_id="$distinct_id")
    """
    def decorator(cls: type) -> type:
        names: dict[str, Optional[str]] = {attr: None for attr in attributes}
        names.update(renamed)
        _REGISTRY[cls] = names
        return cls
    return decorator


def registered_attributes(cls: type) -> Optional[dict[str, Optional[str]]]:
    for klass in cls.__mro__:
        if klass in _REGISTRY:
            return _REGISTRY[klass]
    return None


class PropertyExtractor:
    def __init__(self, name_format: PropertyNameFormat = PropertyNameFormat.NONE):
        self._name_format = name_format

    @property
    def name_format(self) -> PropertyNameFormat:
        return self._name_format

    def extract(self, obj: Any) -> list[tuple[str, Any]]:
        """Extract top-level properties. Later duplicates of a name win."""
        if obj is None:
            return []
        fields = self._fields(obj)
        if fields is None:
            raise MessageBuildError(
                f"Unsupported properties object of type '{type(obj).__name__}'",
                details={"type": type(obj).__name__},
            )
        return list(self._to_dict(fields, {id(obj)}).items())

    def normalize(self, value: Any) -> Any:
        """Normalize a single value; returns DROPPED for unsupported values."""
        return self._normalize(value, set())

    def _fields(self, obj: Any) -> Optional[Iterator[tuple[str, Any, bool]]]:
        if isinstance(obj, Mapping):
            return ((str(key), value, False) for key, value in obj.items())
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return self._dataclass_fields(obj)
        if isinstance(obj, BaseModel):
            return self._model_fields(obj)
        attributes = registered_attributes(type(obj))
        if attributes is not None:
            return (
                (name or attr, getattr(obj, attr, None), name is not None)
                for attr, name in attributes.items()
            )
        return None

    @staticmethod
    def _dataclass_fields(obj: Any) -> Iterator[tuple[str, Any, bool]]:
        for field in dataclasses.fields(obj):
            if field.metadata.get("mixpanel_ignore"):
                continue
            name = field.metadata.get("mixpanel_name")
            yield name or field.name, getattr(obj, field.name), name is not None

    @staticmethod
    def _model_fields(obj: BaseModel) -> Iterator[tuple[str, Any, bool]]:
        for name, info in type(obj).model_fields.items():
            yield info.alias or name, getattr(obj, name), info.alias is not None

    def _to_dict(self, fields: Iterable[tuple[str, Any, bool]], seen: set[int]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for name, value, explicit in fields:
            normalized = self._normalize(value, seen)
            if normalized is DROPPED:
                continue
            key = name if explicit else format_name(name, self._name_format)
            result[key] = normalized
        return result

    def _normalize(self, value: Any, seen: set[int]) -> Any:
        scalar = normalize_scalar(value)
        if scalar is not DROPPED or value is None:
            return scalar

        if isinstance(value, _SEQUENCE_TYPES):
            with _visiting(value, seen):
                items = (self._normalize(item, seen) for item in value)
                return [item for item in items if item is not DROPPED]

        fields = self._fields(value)
        if fields is None:
            return DROPPED
        with _visiting(value, seen):
            return self._to_dict(fields, seen)


class _visiting:
    """Tracks containers on the current path to detect reference cycles."""

    def __init__(self, container: Any, seen: set[int]):
        self._id = id(container)
        self._seen = seen

    def __enter__(self) -> None:
        if self._id in self._seen:
            raise MessageBuildError("Reference cycle detected in properties")
        self._seen.add(self._id)

    def __exit__(self, *exc: Any) -> None:
        self._seen.discard(self._id)
