"""
Message builder rule table — one immutable RuleSet per message kind.

A rule set declares which semantic properties a kind recognizes and how they
are spelled on the wire, which identifier carries the distinct id, which
super properties it accepts, and the transform that produces the final wire
object from the assembled properties.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from mixpanel_client.core.properties import PropertyId, normalize_key
from mixpanel_client.core.values import format_iso, is_number, parse_iso, to_epoch_seconds
from mixpanel_client.errors import MessageBuildError
from mixpanel_client.models.message import MessageKind, MixpanelMessage


@dataclass
class AssembledProperties:
    special: dict[PropertyId, Any] = field(default_factory=dict)
    ordinary: dict[str, Any] = field(default_factory=dict)


Finalizer = Callable[["RuleSet", AssembledProperties, datetime], dict[str, Any]]


@dataclass(frozen=True)
class RuleSet:
    kind: MessageKind
    bindings: Mapping[PropertyId, str]
    distinct_id: PropertyId = PropertyId.DISTINCT_ID
    # None accepts every super property; otherwise only these identifiers
    super_properties: Optional[frozenset[PropertyId]] = None
    finalize: Optional[Finalizer] = None
    _index: Mapping[str, PropertyId] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "bindings", MappingProxyType(dict(self.bindings)))
        object.__setattr__(self, "_index", MappingProxyType({ident.match_key: ident for ident in self.bindings}))

    def match(self, name: str) -> Optional[PropertyId]:
        """Return the identifier bound to a user-supplied key, if any."""
        return self._index.get(normalize_key(name))

    def accepts_super(self, ident: Optional[PropertyId]) -> bool:
        if self.super_properties is None:
            return True
        return ident is not None and ident in self.super_properties

    def wire(self, props: AssembledProperties, *idents: PropertyId) -> dict[str, Any]:
        """Wire-named special properties, restricted to ``idents`` when given."""
        selected = idents or tuple(self.bindings)
        return {self.bindings[ident]: props.special[ident] for ident in selected if ident in props.special}


def _epoch(value: Any) -> Any:
    if value is None or is_number(value):
        return value
    if isinstance(value, datetime):
        return to_epoch_seconds(value)
    if isinstance(value, str):
        try:
            return parse_iso(value)
        except ValueError as e:
            raise MessageBuildError(f"Invalid time value {value!r}") from e
    raise MessageBuildError(f"Invalid time value of type '{type(value).__name__}'")


# Track / Alias

TRACK_BINDINGS = {
    PropertyId.EVENT: "event",
    PropertyId.TOKEN: "token",
    PropertyId.DISTINCT_ID: "distinct_id",
    PropertyId.TIME: "time",
    PropertyId.IP: "ip",
    PropertyId.INSERT_ID: "$insert_id",
    PropertyId.DURATION: "$duration",
    PropertyId.OS: "$os",
    PropertyId.SCREEN_WIDTH: "$screen_width",
    PropertyId.SCREEN_HEIGHT: "$screen_height",
}

ALIAS_EVENT = "$create_alias"


def _finalize_track(rules: RuleSet, props: AssembledProperties, now: datetime) -> dict[str, Any]:
    event = props.special.get(PropertyId.EVENT)
    if event is None or event == "":
        raise MessageBuildError("'event' property is not set")
    time = _epoch(props.special.get(PropertyId.TIME))
    props.special[PropertyId.TIME] = time if time is not None else to_epoch_seconds(now)

    properties = {
        wire: value for wire, value in rules.wire(props).items()
        if wire != rules.bindings[PropertyId.EVENT]
    }
    properties.update(props.ordinary)
    return {"event": str(event), "properties": properties}


def _finalize_alias(rules: RuleSet, props: AssembledProperties, now: datetime) -> dict[str, Any]:
    if props.special.get(PropertyId.ALIAS) in (None, ""):
        raise MessageBuildError("'alias' property is not set")
    return {"event": ALIAS_EVENT, "properties": rules.wire(props)}


# People

PEOPLE_BINDINGS = {
    PropertyId.TOKEN: "$token",
    PropertyId.DISTINCT_ID: "$distinct_id",
    PropertyId.IP: "$ip",
    PropertyId.TIME: "$time",
    PropertyId.IGNORE_TIME: "$ignore_time",
}

PROFILE_BINDINGS = {
    PropertyId.FIRST_NAME: "$first_name",
    PropertyId.LAST_NAME: "$last_name",
    PropertyId.NAME: "$name",
    PropertyId.EMAIL: "$email",
    PropertyId.PHONE: "$phone",
    PropertyId.CREATED: "$created",
}

PEOPLE_SUPER_PROPERTIES = frozenset(PEOPLE_BINDINGS)


def _people_head(rules: RuleSet, props: AssembledProperties, with_time: bool = True) -> dict[str, Any]:
    idents = [ident for ident in PEOPLE_BINDINGS if with_time or ident is not PropertyId.TIME]
    if with_time and PropertyId.TIME in props.special:
        props.special[PropertyId.TIME] = _epoch(props.special[PropertyId.TIME])
    return rules.wire(props, *idents)


def _profile_update(operation: str) -> Finalizer:
    def finalize(rules: RuleSet, props: AssembledProperties, now: datetime) -> dict[str, Any]:
        created = props.special.get(PropertyId.CREATED)
        if is_number(created):
            props.special[PropertyId.CREATED] = format_iso(created)
        values = dict(props.ordinary)
        values.update(rules.wire(props, *PROFILE_BINDINGS))
        return {**_people_head(rules, props), operation: values}
    return finalize


def _filtered_update(operation: str, accept: Callable[[Any], bool]) -> Finalizer:
    def finalize(rules: RuleSet, props: AssembledProperties, now: datetime) -> dict[str, Any]:
        values = {name: value for name, value in props.ordinary.items() if accept(value)}
        return {**_people_head(rules, props), operation: values}
    return finalize


def _finalize_unset(rules: RuleSet, props: AssembledProperties, now: datetime) -> dict[str, Any]:
    names = props.special.get(PropertyId.UNSET, [])
    if isinstance(names, str):
        names = [names]
    if not isinstance(names, list):
        raise MessageBuildError("'$unset' must be a list of property names")
    return {**_people_head(rules, props), "$unset": [str(name) for name in names]}


def _finalize_delete(rules: RuleSet, props: AssembledProperties, now: datetime) -> dict[str, Any]:
    return {**_people_head(rules, props), "$delete": ""}


def _finalize_track_charge(rules: RuleSet, props: AssembledProperties, now: datetime) -> dict[str, Any]:
    amount = props.special.get(PropertyId.AMOUNT)
    if isinstance(amount, str):
        try:
            amount = float(amount)
        except ValueError as e:
            raise MessageBuildError(f"Charge amount {amount!r} is not a number") from e
    if not is_number(amount):
        raise MessageBuildError("Charge amount must be a number")
    if not math.isfinite(amount):
        raise MessageBuildError(f"Charge amount {amount!r} is not finite")

    time = _epoch(props.special.get(PropertyId.TIME))
    transaction = {
        "$time": format_iso(time if time is not None else to_epoch_seconds(now)),
        "$amount": amount,
    }
    return {**_people_head(rules, props, with_time=False), "$append": {"$transactions": transaction}}


def render_batch(messages: list[MixpanelMessage]) -> list[dict[str, Any]]:
    """The BATCH kind has no properties of its own: it is the list of its messages' data."""
    return [message.data for message in messages]


RULES: Mapping[MessageKind, RuleSet] = MappingProxyType({
    MessageKind.TRACK: RuleSet(
        MessageKind.TRACK, TRACK_BINDINGS, finalize=_finalize_track,
    ),
    MessageKind.ALIAS: RuleSet(
        MessageKind.ALIAS,
        {PropertyId.TOKEN: "token", PropertyId.DISTINCT_ID: "distinct_id", PropertyId.ALIAS: "alias"},
        super_properties=frozenset({PropertyId.TOKEN, PropertyId.DISTINCT_ID}),
        finalize=_finalize_alias,
    ),
    MessageKind.PEOPLE_SET: RuleSet(
        MessageKind.PEOPLE_SET, {**PEOPLE_BINDINGS, **PROFILE_BINDINGS},
        super_properties=PEOPLE_SUPER_PROPERTIES, finalize=_profile_update("$set"),
    ),
    MessageKind.PEOPLE_SET_ONCE: RuleSet(
        MessageKind.PEOPLE_SET_ONCE, {**PEOPLE_BINDINGS, **PROFILE_BINDINGS},
        super_properties=PEOPLE_SUPER_PROPERTIES, finalize=_profile_update("$set_once"),
    ),
    MessageKind.PEOPLE_ADD: RuleSet(
        MessageKind.PEOPLE_ADD, PEOPLE_BINDINGS,
        super_properties=PEOPLE_SUPER_PROPERTIES, finalize=_filtered_update("$add", is_number),
    ),
    MessageKind.PEOPLE_APPEND: RuleSet(
        MessageKind.PEOPLE_APPEND, PEOPLE_BINDINGS,
        super_properties=PEOPLE_SUPER_PROPERTIES, finalize=_filtered_update("$append", lambda value: True),
    ),
    MessageKind.PEOPLE_UNION: RuleSet(
        MessageKind.PEOPLE_UNION, PEOPLE_BINDINGS,
        super_properties=PEOPLE_SUPER_PROPERTIES,
        finalize=_filtered_update("$union", lambda value: isinstance(value, list)),
    ),
    MessageKind.PEOPLE_UNSET: RuleSet(
        MessageKind.PEOPLE_UNSET, {**PEOPLE_BINDINGS, PropertyId.UNSET: "$unset"},
        super_properties=PEOPLE_SUPER_PROPERTIES, finalize=_finalize_unset,
    ),
    MessageKind.PEOPLE_DELETE: RuleSet(
        MessageKind.PEOPLE_DELETE, PEOPLE_BINDINGS,
        super_properties=PEOPLE_SUPER_PROPERTIES, finalize=_finalize_delete,
    ),
    MessageKind.PEOPLE_TRACK_CHARGE: RuleSet(
        MessageKind.PEOPLE_TRACK_CHARGE, {**PEOPLE_BINDINGS, PropertyId.AMOUNT: "$amount"},
        super_properties=PEOPLE_SUPER_PROPERTIES - {PropertyId.TIME},
        finalize=_finalize_track_charge,
    ),
    MessageKind.BATCH: RuleSet(MessageKind.BATCH, {}, super_properties=frozenset()),
})
