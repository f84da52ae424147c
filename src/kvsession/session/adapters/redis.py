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
"""Redis-backed backend client."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from kvsession.kernel.exceptions import BackendError

_logger = logging.getLogger(__name__)


class RedisBackendClient:
    """:class:`BackendClient` that delegates to a ``redis.asyncio.Redis``-like client.

    Values are stored as raw bytes with ``SET key value EX ttl``. Clients
    created with ``decode_responses=True`` return ``str``; those replies are
    encoded back to UTF-8 bytes.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    def _wrap(self, operation: str, exc: RedisError) -> BackendError:
        if isinstance(exc, (RedisConnectionError, RedisTimeoutError)):
            _logger.error("Redis unavailable during %s: %s", operation, exc)
            return BackendError(
                f"redis: backend unavailable during {operation}",
                code="BACKEND_UNAVAILABLE",
                context={"operation": operation},
            )
        _logger.error("Redis error during %s: %s", operation, exc)
        return BackendError(f"redis: {operation} failed: {exc}", context={"operation": operation})

    async def get(self, key: str) -> bytes | None:
        try:
            raw = await self._client.get(key)
        except RedisError as exc:
            raise self._wrap("get", exc) from exc
        if raw is None:
            return None
        return raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        """Store *value* with a TTL rounded down to whole seconds (minimum 1)."""
        seconds = max(int(ttl.total_seconds()), 1)
        try:
            await self._client.set(key, value, ex=seconds)
        except RedisError as exc:
            raise self._wrap("set", exc) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as exc:
            raise self._wrap("delete", exc) from exc

    async def ping(self) -> None:
        """Validate connectivity."""
        try:
            await self._client.ping()
        except RedisError as exc:
            raise self._wrap("ping", exc) from exc

    async def close(self) -> None:
        """Close the underlying Redis connection."""
        await self._client.aclose()
