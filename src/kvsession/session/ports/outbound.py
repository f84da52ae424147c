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
"""Key-value backend client protocol."""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol, runtime_checkable


@runtime_checkable
class BackendClient(Protocol):
    """Abstract get / set-with-TTL / delete over a string key space.

    Any key-value backend can satisfy it (in-memory, Redis, etc.).
    ``get`` returns ``None`` for a missing key; an implementation may raise
    :class:`~kvsession.kernel.exceptions.NotFoundError` instead, and the
    store treats both the same way. Transport failures should surface as
    :class:`~kvsession.kernel.exceptions.BackendError`.
    """

    async def get(self, key: str) -> bytes | None: ...

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None: ...

    async def delete(self, key: str) -> None: ...
