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
"""Build a SessionStore from configuration.

Example ``session.yaml``::

    kvsession:
      session:
        store: redis
        redis:
          url: redis://localhost:6379/0
        serializer: json
        max-age: 3600
        keys:
          - hash: ${SESSION_HASH_KEY}
            block: ${SESSION_BLOCK_KEY}
"""

from __future__ import annotations

from typing import Any

import structlog

from kvsession.config.properties.session import SessionProperties
from kvsession.core.config import Config
from kvsession.kernel.exceptions import ConfigurationException
from kvsession.session.ports.outbound import BackendClient
from kvsession.session.serializer import JSONSerializer, SessionSerializer, StructuredSerializer
from kvsession.session.session import SessionOptions
from kvsession.session.store import SessionStore

logger = structlog.get_logger("kvsession.session.factory")


def _key_bytes(config: Config, value: Any) -> bytes | None:
    if value is None or value == "":
        return None
    if isinstance(value, bytes):
        return value
    return config.resolve(str(value)).encode("utf-8")


def key_pairs_from_properties(config: Config, props: SessionProperties) -> list[bytes | None]:
    """Flatten ``keys`` entries into the alternating hash/block list."""
    if not props.keys:
        raise ConfigurationException("kvsession.session.keys must list at least one hash key")
    flat: list[bytes | None] = []
    for entry in props.keys:
        if not isinstance(entry, dict):
            raise ConfigurationException(
                "kvsession.session.keys entries must be mappings with 'hash' and optional 'block'"
            )
        flat.append(_key_bytes(config, entry.get("hash")))
        flat.append(_key_bytes(config, entry.get("block")))
    return flat


def serializer_from_properties(props: SessionProperties) -> SessionSerializer:
    if props.serializer == "json":
        return JSONSerializer()
    if props.serializer == "structured":
        return StructuredSerializer()
    raise ConfigurationException(
        f"Unknown session serializer '{props.serializer}'",
        context={"serializer": props.serializer},
    )


def backend_from_properties(props: SessionProperties) -> BackendClient:
    """Create the backend client selected by ``kvsession.session.store``."""
    if props.store == "redis":
        import redis.asyncio as aioredis

        from kvsession.session.adapters.redis import RedisBackendClient

        url = str(props.redis.get("url", "redis://localhost:6379/0"))
        return RedisBackendClient(aioredis.from_url(url))

    if props.store == "memory":
        from kvsession.session.adapters.memory import InMemoryBackendClient

        return InMemoryBackendClient()

    raise ConfigurationException(f"Unknown session store '{props.store}'", context={"store": props.store})


def create_session_store(config: Config, client: BackendClient | None = None) -> SessionStore:
    """Create a :class:`SessionStore` from the ``kvsession.session`` section.

    *client* overrides the configured backend.
    """
    props = config.bind(SessionProperties)
    if client is None:
        client = backend_from_properties(props)

    options = SessionOptions(
        path=props.path,
        domain=props.domain,
        max_age=props.max_age,
        secure=props.secure,
        http_only=props.http_only,
        same_site=props.same_site,  # type: ignore[arg-type]
    )
    store = SessionStore(
        client,
        key_pairs_from_properties(config, props),
        key_prefix=props.key_prefix,
        serializer=serializer_from_properties(props),
        options=options,
        strict=props.strict,
    )
    logger.info(
        "session_store_created",
        backend=type(client).__name__,
        serializer=props.serializer,
        key_pairs=len(store.codecs),
        max_age=props.max_age,
    )
    return store
