"""Property extractor and name formats."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

import pytest
from pydantic import BaseModel, Field

from mixpanel_client import MessageBuildError, PropertyNameFormat, mixpanel_properties, register_properties
from mixpanel_client.core.extractor import PropertyExtractor
from mixpanel_client.core.names import format_name, split_words

T = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
JAN_1 = 1704067200


class Plan(Enum):
    PRO = "pro"


@dataclass
class Signup:
    plan: str
    seats: int
    referrer: str = field(default="ad", metadata={"mixpanel_name": "Referrer Source"})
    secret: str = field(default="x", metadata={"mixpanel_ignore": True})


class Profile(BaseModel):
    model_config = {"populate_by_name": True}

    first_name: str
    user_id: str = Field(alias="$distinct_id")


class Legacy:
    def __init__(self) -> None:
        self.plan = "pro"
        self.internal = "x"
        self.user = "u1"


register_properties(Legacy, {"plan": "Plan", "user": "distinct_id"})


@mixpanel_properties("planName", user_id="$distinct_id")
class Account:
    def __init__(self) -> None:
        self.planName = "team"
        self.user_id = "u2"
        self.password = "hunter2"


class TestExtract:
    def test_none_yields_empty(self):
        assert PropertyExtractor().extract(None) == []

    def test_mapping_keeps_order_and_primitives(self):
        pairs = PropertyExtractor().extract({"a": 1, "b": "x", "c": True, "d": 1.5, "t": T})
        assert pairs == [("a", 1), ("b", "x"), ("c", True), ("d", 1.5), ("t", int(T.timestamp()))]

    def test_unsupported_values_dropped(self):
        pairs = PropertyExtractor().extract({
            "ok": 1, "obj": object(), "none": None, "raw": b"x", "nan": float("nan"),
        })
        assert pairs == [("ok", 1)]

    def test_value_conversions(self):
        uid = uuid.uuid4()
        pairs = dict(PropertyExtractor().extract({
            "price": Decimal("9.5"),
            "id": uid,
            "plan": Plan.PRO,
            "naive": datetime(2024, 1, 1),
            "day": date(2024, 1, 1),
        }))
        assert pairs == {"price": 9.5, "id": str(uid), "plan": "pro", "naive": JAN_1, "day": JAN_1}

    def test_sequences_filtered(self):
        pairs = dict(PropertyExtractor().extract({"tags": ["a", 1, object(), None], "pair": ("x", "y")}))
        assert pairs == {"tags": ["a", 1], "pair": ["x", "y"]}

    def test_nested_mapping(self):
        pairs = PropertyExtractor().extract({"outer": {"inner": {"v": 1, "skip": object()}}})
        assert pairs == [("outer", {"inner": {"v": 1}})]

    def test_shared_reference_is_not_a_cycle(self):
        shared = {"v": 1}
        assert dict(PropertyExtractor().extract({"a": shared, "b": [shared]})) == {"a": {"v": 1}, "b": [{"v": 1}]}

    def test_mapping_cycle_raises(self):
        props: dict = {}
        props["self"] = props
        with pytest.raises(MessageBuildError):
            PropertyExtractor().extract(props)

    def test_list_cycle_raises(self):
        items: list = []
        items.append(items)
        with pytest.raises(MessageBuildError):
            PropertyExtractor().extract({"items": items})

    def test_unregistered_object_rejected(self):
        with pytest.raises(MessageBuildError):
            PropertyExtractor().extract(object())

    def test_unregistered_nested_object_dropped(self):
        assert PropertyExtractor().extract({"obj": object(), "a": 1}) == [("a", 1)]

    def test_name_format_applied(self):
        pairs = PropertyExtractor(PropertyNameFormat.UNDERSCORED).extract({"firstName": "A", "nested": {"lastName": "B"}})
        assert pairs == [("first_name", "A"), ("nested", {"last_name": "B"})]

    def test_collision_after_conversion_last_wins(self):
        pairs = PropertyExtractor(PropertyNameFormat.UNDERSCORED).extract({"firstName": 1, "first_name": 2})
        assert pairs == [("first_name", 2)]

    def test_dataclass(self):
        pairs = PropertyExtractor(PropertyNameFormat.DOTTED).extract(Signup("pro", 3))
        assert pairs == [("plan", "pro"), ("seats", 3), ("Referrer Source", "ad")]

    def test_pydantic_model_alias_is_explicit(self):
        pairs = PropertyExtractor(PropertyNameFormat.TITLE_CASE).extract(Profile(first_name="Ann", user_id="u1"))
        assert pairs == [("First Name", "Ann"), ("$distinct_id", "u1")]

    def test_registered_class(self):
        assert PropertyExtractor().extract(Legacy()) == [("Plan", "pro"), ("distinct_id", "u1")]

    def test_decorated_class(self):
        pairs = PropertyExtractor(PropertyNameFormat.LOWER_CASE).extract(Account())
        assert pairs == [("plan name", "team"), ("$distinct_id", "u2")]

    def test_nested_dataclass(self):
        pairs = dict(PropertyExtractor().extract({"signup": Signup("free", 1)}))
        assert pairs == {"signup": {"plan": "free", "seats": 1, "Referrer Source": "ad"}}


class TestNames:
    @pytest.mark.parametrize("name,fmt,expected", [
        ("firstName", PropertyNameFormat.NONE, "firstName"),
        ("firstName", PropertyNameFormat.DOTTED, "first.name"),
        ("FirstName", PropertyNameFormat.UNDERSCORED, "first_name"),
        ("first_name", PropertyNameFormat.SENTENCE_CASE, "First name"),
        ("first_name", PropertyNameFormat.TITLE_CASE, "First Name"),
        ("FirstName", PropertyNameFormat.LOWER_CASE, "first name"),
        ("$browserVersion", PropertyNameFormat.UNDERSCORED, "$browser_version"),
        ("HTTPStatus", PropertyNameFormat.UNDERSCORED, "http_status"),
    ])
    def test_format_name(self, name, fmt, expected):
        assert format_name(name, fmt) == expected

    def test_split_words(self):
        assert split_words("user-agent.string_value") == ["user", "agent", "string", "value"]
        assert split_words("") == []
