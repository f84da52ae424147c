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
"""Session value-bag serializers.

Two interchangeable strategies convert a session's values to the bytes
stored in the backend:

- :class:`StructuredSerializer` keeps exact types and shared references,
  but only for types registered ahead of use.
- :class:`JSONSerializer` produces plain JSON. Keys must be strings and the
  round trip is lossy for anything JSON has no native form for.
"""

from __future__ import annotations

import collections
import dataclasses
import datetime
import decimal
import enum
import io
import json
import pickle
import uuid
from collections.abc import Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

from kvsession.kernel.exceptions import SerializationError

T = TypeVar("T", bound=type)


@runtime_checkable
class SessionSerializer(Protocol):
    """Converts a session value bag to and from bytes."""

    def serialize(self, values: Mapping[Any, Any]) -> bytes: ...

    def deserialize(self, data: bytes, values: dict[Any, Any]) -> None:
        """Decode *data* and merge the result into *values*."""
        ...


# =============================================================================
# Structured (pickle with an allow-list)
# =============================================================================

_BUILTIN_TYPES: tuple[type, ...] = (
    set,
    frozenset,
    complex,
    bytearray,
    range,
    slice,
    collections.OrderedDict,
    collections.deque,
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    datetime.timezone,
    decimal.Decimal,
    uuid.UUID,
)


def _type_name(cls: type) -> tuple[str, str]:
    return cls.__module__, cls.__qualname__


class _RegistryPickler(pickle.Pickler):
    def __init__(self, file: io.BytesIO, allowed: frozenset[tuple[str, str]]) -> None:
        super().__init__(file, protocol=pickle.HIGHEST_PROTOCOL)
        self._allowed = allowed

    def reducer_override(self, obj: Any) -> Any:
        # Called for everything pickle has no fast path for: instances of
        # non-builtin types, classes and functions.
        cls = obj if isinstance(obj, type) else type(obj)
        if _type_name(cls) not in self._allowed:
            raise SerializationError(
                f"type {cls.__module__}.{cls.__qualname__} is not registered with the serializer",
                context={"type": f"{cls.__module__}.{cls.__qualname__}"},
            )
        return NotImplemented


class _RegistryUnpickler(pickle.Unpickler):
    def __init__(self, file: io.BytesIO, allowed: frozenset[tuple[str, str]]) -> None:
        super().__init__(file)
        self._allowed = allowed

    def find_class(self, module: str, name: str) -> Any:
        if (module, name) not in self._allowed:
            raise SerializationError(
                f"stream references unregistered type {module}.{name}",
                context={"type": f"{module}.{name}"},
            )
        return super().find_class(module, name)


class StructuredSerializer:
    """Byte-exact serializer for arbitrary registered types.

    Round-trips exact types, nested containers and shared references. Any
    type outside the builtin containers and scalars must be registered::

        serializer = StructuredSerializer()

        @serializer.register
        @dataclass
        class Cart:
            items: list[str]

    Encoding an unregistered type, or decoding a payload that references one,
    raises :class:`SerializationError`.
    """

    def __init__(self, types: tuple[type, ...] = ()) -> None:
        self._allowed: set[tuple[str, str]] = {_type_name(t) for t in _BUILTIN_TYPES}
        for cls in types:
            self.register(cls)

    def register(self, cls: T) -> T:
        """Allow *cls* in session values. Returns *cls* so it works as a decorator."""
        if not isinstance(cls, type):
            raise TypeError(f"register() expects a class, got {cls!r}")
        self._allowed.add(_type_name(cls))
        return cls

    def is_registered(self, cls: type) -> bool:
        return _type_name(cls) in self._allowed

    def serialize(self, values: Mapping[Any, Any]) -> bytes:
        buf = io.BytesIO()
        try:
            _RegistryPickler(buf, frozenset(self._allowed)).dump(dict(values))
        except SerializationError:
            raise
        except (pickle.PicklingError, TypeError, AttributeError, RecursionError) as exc:
            raise SerializationError(f"structured: encoding session values: {exc}") from exc
        return buf.getvalue()

    def deserialize(self, data: bytes, values: dict[Any, Any]) -> None:
        try:
            decoded = _RegistryUnpickler(io.BytesIO(data), frozenset(self._allowed)).load()
        except SerializationError:
            raise
        except Exception as exc:
            # A corrupt stream can surface as nearly any exception type.
            raise SerializationError(f"structured: decoding session values: {exc}") from exc
        if not isinstance(decoded, dict):
            raise SerializationError(
                f"structured: expected a mapping, decoded {type(decoded).__name__}"
            )
        values.update(decoded)


# =============================================================================
# JSON
# =============================================================================


def _json_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if isinstance(obj, decimal.Decimal):
        return float(obj)
    if isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
        return obj.isoformat()
    if isinstance(obj, uuid.UUID):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JSONSerializer:
    """Encodes the session values as a JSON object.

    All top-level keys must be strings. Conversions are deliberately lossy:
    tuples, sets and frozensets come back as lists, dataclasses as dicts,
    ``Decimal`` as float, enums as their value, dates, times and UUIDs as
    strings.
    """

    def serialize(self, values: Mapping[Any, Any]) -> bytes:
        for key in values:
            if not isinstance(key, str):
                raise SerializationError(
                    f"json: non-string key value, cannot serialize session values: {key!r}",
                    context={"key": repr(key)},
                )
        try:
            return json.dumps(dict(values), default=_json_default, allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"json: encoding session values: {exc}") from exc

    def deserialize(self, data: bytes, values: dict[Any, Any]) -> None:
        try:
            decoded = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SerializationError(f"json: deserializing session values: {exc}") from exc
        if not isinstance(decoded, dict):
            raise SerializationError(
                f"json: expected an object, decoded {type(decoded).__name__}"
            )
        values.update(decoded)
