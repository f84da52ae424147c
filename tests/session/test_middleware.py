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
"""Tests for SessionMiddleware on a Starlette application."""

import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from kvsession.session.adapters.memory import InMemoryBackendClient
from kvsession.session.middleware import SessionMiddleware
from kvsession.session.store import SessionStore


async def login(request: Request) -> JSONResponse:
    request.state.session.values["user"] = request.query_params.get("user", "ann")
    return JSONResponse({"ok": True})


async def whoami(request: Request) -> JSONResponse:
    session = request.state.session
    return JSONResponse({"user": session.values.get("user"), "is_new": session.is_new})


async def logout(request: Request) -> JSONResponse:
    request.state.session.options.max_age = -1
    return JSONResponse({"ok": True})


async def same_object(request: Request) -> JSONResponse:
    cached = await store_for(request).get(request, "session")
    return JSONResponse({"same": cached is request.state.session})


def store_for(request: Request) -> SessionStore:
    return request.app.state.store


@pytest.fixture
def backend() -> InMemoryBackendClient:
    return InMemoryBackendClient()


@pytest.fixture
def client(backend: InMemoryBackendClient) -> TestClient:
    store = SessionStore(backend, [b"h" * 32, b"b" * 32])
    app = Starlette(
        routes=[
            Route("/login", login, methods=["POST"]),
            Route("/whoami", whoami),
            Route("/logout", logout, methods=["POST"]),
            Route("/same", same_object),
        ]
    )
    app.state.store = store
    app.add_middleware(SessionMiddleware, store=store)
    return TestClient(app)


class TestSessionMiddleware:
    def test_anonymous_request_sets_no_cookie(self, client: TestClient, backend: InMemoryBackendClient):
        response = client.get("/whoami")
        assert response.json() == {"user": None, "is_new": True}
        assert "set-cookie" not in response.headers
        assert len(backend) == 0

    def test_login_then_revisit(self, client: TestClient, backend: InMemoryBackendClient):
        response = client.post("/login?user=bob")
        assert "session" in response.cookies
        assert len(backend) == 1

        response = client.get("/whoami")
        assert response.json() == {"user": "bob", "is_new": False}

    def test_logout_clears_backend(self, client: TestClient, backend: InMemoryBackendClient):
        client.post("/login")
        response = client.post("/logout")
        assert "max-age=-1" in response.headers["set-cookie"].lower()
        assert len(backend) == 0

        assert client.get("/whoami").json() == {"user": None, "is_new": True}

    def test_forged_cookie_gets_fresh_session(self, client: TestClient):
        client.cookies.set("session", "forged")
        assert client.get("/whoami").json() == {"user": None, "is_new": True}

    def test_store_get_shares_request_session(self, client: TestClient):
        assert client.get("/same").json() == {"same": True}
