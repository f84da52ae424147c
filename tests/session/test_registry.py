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
"""Tests for the per-request session registry."""

from types import SimpleNamespace

import pytest
from starlette.responses import Response

from kvsession.session.adapters.memory import InMemoryBackendClient
from kvsession.session.registry import Registry, get_registry
from kvsession.session.store import SessionStore


def _request() -> SimpleNamespace:
    return SimpleNamespace(cookies={}, state=SimpleNamespace())


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(InMemoryBackendClient(), [b"h" * 32])


class TestGetRegistry:
    def test_created_once_per_request(self):
        request = _request()
        assert get_registry(request) is get_registry(request)

    def test_separate_requests_get_separate_registries(self):
        assert get_registry(_request()) is not get_registry(_request())


class TestRegistry:
    @pytest.mark.asyncio
    async def test_get_caches_by_name(self, store: SessionStore):
        registry = Registry(_request())
        first = await registry.get(store, "session")
        assert "session" in registry
        assert await registry.get(store, "session") is first
        assert "other" not in registry

    @pytest.mark.asyncio
    async def test_sessions_lists_all(self, store: SessionStore):
        registry = Registry(_request())
        a = await registry.get(store, "a")
        b = await registry.get(store, "b")
        assert registry.sessions() == [a, b]

    @pytest.mark.asyncio
    async def test_save_all(self, store: SessionStore):
        request = _request()
        registry = get_registry(request)
        (await registry.get(store, "a")).values["x"] = 1
        (await registry.get(store, "b")).values["y"] = 2
        response = Response()
        await registry.save_all(response)
        cookies = [v for k, v in response.raw_headers if k == b"set-cookie"]
        assert len(cookies) == 2
        assert all(session.id for session in registry.sessions())
