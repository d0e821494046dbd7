import json
from datetime import date, datetime
from decimal import Decimal

import pytest

from ephemera.exceptions import NameResolutionError
from ephemera.serializer import JSONSerializer, TypeAdapter


def test_plain_values_roundtrip():
    s = JSONSerializer()
    value = {"name": "Marc", "n": 3, "tags": ["a", "b"], "nested": {"x": None}}
    assert s.load(s.dump(value)) == value


def test_datetimes_are_tagged_and_revived():
    s = JSONSerializer()
    when = datetime(2024, 5, 1, 12, 30, 15)
    raw = s.dump({"last": when, "day": date(2024, 5, 2)})
    data = json.loads(raw)
    assert data["last"] == {"json_class": "datetime", "data": "2024-05-01 12:30:15"}
    assert data["day"] == {"json_class": "date", "data": "2024-05-02"}
    loaded = s.load(raw.encode("utf-8"))
    assert loaded == {"last": when, "day": date(2024, 5, 2)}
    assert type(loaded["last"]) is datetime


def test_unknown_tag_raises():
    s = JSONSerializer()
    raw = json.dumps({"x": {"json_class": "Widget", "data": "1"}})
    with pytest.raises(NameResolutionError):
        s.load(raw)


def test_disallowed_tag_stays_a_dict():
    s = JSONSerializer(allow=["date"])
    raw = s.dump({"last": datetime(2024, 1, 1)})
    assert s.load(raw) == {"last": {"json_class": "datetime", "data": "2024-01-01 00:00:00"}}


def test_empty_allow_loads_plain_json():
    s = JSONSerializer(allow=[])
    raw = json.dumps({"x": {"json_class": "Widget", "data": "1"}})
    assert s.load(raw) == {"x": {"json_class": "Widget", "data": "1"}}


def test_custom_adapter():
    s = JSONSerializer()
    s.register(TypeAdapter(name="decimal", type=Decimal, encode=str, decode=Decimal))
    assert s.load(s.dump({"price": Decimal("9.95")})) == {"price": Decimal("9.95")}


def test_unsupported_type_raises_type_error():
    with pytest.raises(TypeError):
        JSONSerializer().dump({"x": object()})
