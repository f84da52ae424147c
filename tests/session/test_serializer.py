# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for StructuredSerializer and JSONSerializer."""

import datetime
import decimal
import enum
import pickle
import uuid
from collections import OrderedDict
from dataclasses import dataclass

import pytest

from kvsession.kernel.exceptions import SerializationError
from kvsession.session.serializer import JSONSerializer, SessionSerializer, StructuredSerializer


@dataclass
class Cart:
    items: list
    owner: str


@dataclass
class Unregistered:
    x: int


class Color(enum.Enum):
    RED = "red"
    BLUE = "blue"


def _round_trip(serializer, values):
    out: dict = {}
    serializer.deserialize(serializer.serialize(values), out)
    return out


class TestProtocol:
    def test_both_conform(self):
        assert isinstance(StructuredSerializer(), SessionSerializer)
        assert isinstance(JSONSerializer(), SessionSerializer)


class TestStructuredSerializer:
    def test_round_trips_builtin_types(self):
        values = {
            "s": "text",
            "i": 42,
            "f": 1.5,
            "b": b"\x00\x01",
            "none": None,
            ("tuple", 1): frozenset({1, 2}),
            7: {"nested": [1, (2, 3)]},
            "set": {1, 2},
            "when": datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.UTC),
            "delta": datetime.timedelta(seconds=30),
            "price": decimal.Decimal("9.99"),
            "uid": uuid.UUID("12345678-1234-5678-1234-567812345678"),
            "ordered": OrderedDict([("a", 1), ("b", 2)]),
        }
        assert _round_trip(StructuredSerializer(), values) == values

    def test_exact_types_survive(self):
        result = _round_trip(StructuredSerializer(), {"t": (1, 2), "c": 1 + 2j})
        assert type(result["t"]) is tuple
        assert type(result["c"]) is complex

    def test_shared_references_survive(self):
        shared = [1, 2]
        result = _round_trip(StructuredSerializer(), {"a": shared, "b": shared})
        assert result["a"] is result["b"]

    def test_registered_type_round_trips(self):
        serializer = StructuredSerializer(types=(Cart,))
        values = {"cart": Cart(items=["apple"], owner="ann")}
        result = _round_trip(serializer, values)
        assert result == values
        assert type(result["cart"]) is Cart

    def test_register_as_decorator(self):
        serializer = StructuredSerializer()
        assert serializer.register(Color) is Color
        assert serializer.is_registered(Color)
        assert _round_trip(serializer, {"c": Color.BLUE}) == {"c": Color.BLUE}

    def test_register_rejects_non_class(self):
        with pytest.raises(TypeError):
            StructuredSerializer().register("Cart")  # type: ignore[arg-type]

    def test_unregistered_type_rejected_on_encode(self):
        with pytest.raises(SerializationError, match="not registered"):
            StructuredSerializer().serialize({"x": Unregistered(1)})

    def test_unregistered_type_rejected_on_decode(self):
        data = StructuredSerializer(types=(Unregistered,)).serialize({"x": Unregistered(1)})
        with pytest.raises(SerializationError, match="unregistered"):
            StructuredSerializer().deserialize(data, {})

    def test_foreign_pickle_payload_rejected(self):
        data = pickle.dumps({"cmd": print})
        with pytest.raises(SerializationError):
            StructuredSerializer().deserialize(data, {})

    def test_functions_rejected_on_encode(self):
        with pytest.raises(SerializationError):
            StructuredSerializer().serialize({"f": len})

    def test_deserialize_merges(self):
        serializer = StructuredSerializer()
        values = {"keep": 1, "over": "old"}
        serializer.deserialize(serializer.serialize({"over": "new", "add": 2}), values)
        assert values == {"keep": 1, "over": "new", "add": 2}

    def test_corrupt_payload(self):
        with pytest.raises(SerializationError):
            StructuredSerializer().deserialize(b"\x00not a stream", {})

    def test_truncated_payload(self):
        data = StructuredSerializer().serialize({"k": "v" * 50})
        with pytest.raises(SerializationError):
            StructuredSerializer().deserialize(data[:-5], {})

    def test_non_mapping_payload(self):
        with pytest.raises(SerializationError, match="mapping"):
            StructuredSerializer().deserialize(pickle.dumps([1, 2]), {})

    def test_empty_values(self):
        assert _round_trip(StructuredSerializer(), {}) == {}


class TestJSONSerializer:
    def test_round_trips_plain_values(self):
        values = {"name": "ann", "n": 3, "ok": True, "list": [1, "a"], "obj": {"k": None}}
        assert _round_trip(JSONSerializer(), values) == values

    def test_non_string_key_rejected(self):
        with pytest.raises(SerializationError, match="non-string key") as exc_info:
            JSONSerializer().serialize({"ok": 1, 5: "bad"})
        assert exc_info.value.context["key"] == "5"

    def test_nested_non_string_keys_are_stringified(self):
        assert _round_trip(JSONSerializer(), {"m": {1: "a"}}) == {"m": {"1": "a"}}

    def test_lossy_conversions(self):
        values = {
            "tuple": (1, 2),
            "set": {3},
            "cart": Cart(items=["a"], owner="b"),
            "color": Color.RED,
            "price": decimal.Decimal("1.5"),
            "day": datetime.date(2024, 5, 6),
            "uid": uuid.UUID("12345678-1234-5678-1234-567812345678"),
        }
        assert _round_trip(JSONSerializer(), values) == {
            "tuple": [1, 2],
            "set": [3],
            "cart": {"items": ["a"], "owner": "b"},
            "color": "red",
            "price": 1.5,
            "day": "2024-05-06",
            "uid": "12345678-1234-5678-1234-567812345678",
        }

    def test_unsupported_value_rejected(self):
        with pytest.raises(SerializationError):
            JSONSerializer().serialize({"x": object()})

    def test_nan_rejected(self):
        with pytest.raises(SerializationError):
            JSONSerializer().serialize({"x": float("nan")})

    def test_deserialize_merges(self):
        values = {"keep": 1}
        JSONSerializer().deserialize(b'{"add": 2}', values)
        assert values == {"keep": 1, "add": 2}

    @pytest.mark.parametrize("data", [b"not json", b"\xff\xfe", b"[1, 2]", b'"text"'])
    def test_malformed_input(self, data):
        with pytest.raises(SerializationError):
            JSONSerializer().deserialize(data, {})
