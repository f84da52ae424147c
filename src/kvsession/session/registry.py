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
"""Per-request session registry.

Resolving the same cookie name twice within one request returns the same
:class:`Session` object, so handlers and middleware share state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kvsession.session.session import Session
    from kvsession.session.store import SessionStore

_STATE_ATTR = "kvsession_registry"


class Registry:
    """Caches sessions resolved during a single request, keyed by cookie name."""

    def __init__(self, request: Any) -> None:
        self._request = request
        self._sessions: dict[str, Session] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._sessions

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    async def get(self, store: SessionStore, name: str) -> Session:
        session = self._sessions.get(name)
        if session is None:
            session = await store.new(self._request, name)
            self._sessions[name] = session
        return session

    async def save_all(self, response: Any) -> None:
        """Save every registered session; the first failure propagates."""
        for session in self._sessions.values():
            await session.store.save(self._request, response, session)


def get_registry(request: Any) -> Registry:
    """Return the registry attached to *request*, creating it on first use."""
    registry = getattr(request.state, _STATE_ATTR, None)
    if registry is None:
        registry = Registry(request)
        setattr(request.state, _STATE_ATTR, registry)
    return registry
