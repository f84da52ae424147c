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
"""SessionMiddleware — resolves the session per request and saves it on response."""

from __future__ import annotations

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from kvsession.session.registry import get_registry
from kvsession.session.store import SessionStore

DEFAULT_COOKIE_NAME = "session"


class SessionMiddleware:
    """Pure ASGI middleware exposing ``request.state.session``.

    Before the response headers go out, every session resolved through the
    request registry is saved and its ``Set-Cookie`` header appended.
    Sessions that are still new and empty are skipped, so anonymous traffic
    creates no backend records. Save errors propagate to the server.
    """

    def __init__(self, app: ASGIApp, store: SessionStore, cookie_name: str = DEFAULT_COOKIE_NAME) -> None:
        self.app = app
        self._store = store
        self._cookie_name = cookie_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        registry = get_registry(connection)
        connection.state.session = await registry.get(self._store, self._cookie_name)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                cookies = Response()
                for session in registry.sessions():
                    if session.is_new and not session.values:
                        continue
                    await session.store.save(connection, cookies, session)
                headers = MutableHeaders(scope=message)
                for key, value in cookies.raw_headers:
                    if key == b"set-cookie":
                        headers.append("set-cookie", value.decode("latin-1"))
            await send(message)

        await self.app(scope, receive, send_wrapper)
