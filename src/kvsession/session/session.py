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
"""Session and SessionOptions — per-request session state."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from kvsession.session.store import SessionStore

DEFAULT_MAX_AGE = 86400 * 30
DEFAULT_PATH = "/"
FLASHES_KEY = "_flash"

SameSite = Literal["lax", "strict", "none"] | None

_EXPIRED = datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)


@dataclass
class SessionOptions:
    """Cookie attributes and lifetime for a session.

    ``max_age`` is in seconds. A value ``<= 0`` tells the store to delete the
    session on save and tells the browser to drop the cookie.
    """

    path: str = DEFAULT_PATH
    domain: str | None = None
    max_age: int = DEFAULT_MAX_AGE
    secure: bool = False
    http_only: bool = False
    same_site: SameSite = "lax"

    def copy(self) -> SessionOptions:
        return dataclasses.replace(self)

    def to_cookie_kwargs(self, now: datetime | None = None) -> dict[str, Any]:
        """Keyword arguments for ``starlette.responses.Response.set_cookie``."""
        kwargs: dict[str, Any] = {
            "max_age": self.max_age,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.http_only,
            "samesite": self.same_site,
        }
        if self.max_age > 0:
            kwargs["expires"] = (now or datetime.now(UTC)) + timedelta(seconds=self.max_age)
        elif self.max_age < 0:
            kwargs["expires"] = _EXPIRED
        return kwargs


class Session:
    """Server-side session handle.

    Attributes:
        id: Backend key suffix. Empty until the first persisting save.
        values: The session's value bag. Keys and values may be any type the
            store's serializer accepts.
        options: Per-session copy of the store's default options.
        is_new: ``True`` unless the session was loaded from the backend.
        name: Name of the cookie carrying the session.
    """

    def __init__(
        self,
        store: SessionStore,
        name: str,
        options: SessionOptions | None = None,
    ) -> None:
        self.id = ""
        self.values: dict[Any, Any] = {}
        self.options = options if options is not None else SessionOptions()
        self.is_new = True
        self.store = store
        self.name = name

    def __repr__(self) -> str:
        return f"Session(name={self.name!r}, is_new={self.is_new}, keys={len(self.values)})"

    async def save(self, request: Any, response: Any) -> None:
        """Persist this session through the store that created it."""
        await self.store.save(request, response, self)

    def add_flash(self, value: Any, key: str = FLASHES_KEY) -> None:
        """Queue a flash message, kept until read with :meth:`flashes`."""
        self.values.setdefault(key, []).append(value)

    def flashes(self, key: str = FLASHES_KEY) -> list[Any]:
        """Return and remove queued flash messages."""
        return list(self.values.pop(key, None) or [])
