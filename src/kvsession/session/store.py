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
"""SessionStore — sessions persisted in a key-value backend.

The browser only receives an authenticated cookie holding the session id;
the values live in the backend under ``key_prefix + id`` with a TTL equal to
the session's max-age.

Loading fails open: a missing, forged or expired cookie, an unreachable
backend and an undecodable record all resolve to a fresh, empty session.
Saving fails closed: every persist or delete error reaches the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from typing import Any

import structlog

from kvsession.kernel.exceptions import (
    BackendError,
    CookieError,
    KvSessionException,
    NotFoundError,
    SerializationError,
)
from kvsession.logging.structlog_adapter import short_id
from kvsession.session.keygen import KeyGenerator, generate_key
from kvsession.session.ports.outbound import BackendClient
from kvsession.session.registry import get_registry
from kvsession.session.securecookie import SecureCookie, codecs_from_pairs, decode_multi, encode_multi
from kvsession.session.serializer import SessionSerializer, StructuredSerializer
from kvsession.session.session import DEFAULT_MAX_AGE, DEFAULT_PATH, Session, SessionOptions

logger = structlog.get_logger("kvsession.session.store")

DEFAULT_KEY_PREFIX = "session_"


class SessionStore:
    """Resolves, loads, saves and deletes backend-persisted sessions.

    Args:
        client: Backend client used for all reads and writes.
        key_pairs: Alternating hash and block keys, newest pair first (see
            :func:`~kvsession.session.securecookie.codecs_from_pairs`).
        key_prefix: Prepended to the session id to form the backend key.
        serializer: Value-bag serializer. Defaults to :class:`StructuredSerializer`.
        key_generator: Produces ids for sessions saved for the first time.
        options: Default cookie options, copied into every new session.
        strict: Raise cookie authentication/expiry errors from :meth:`new`
            instead of starting a fresh session.

    The store holds no per-request state and may be shared across tasks.
    """

    def __init__(
        self,
        client: BackendClient,
        key_pairs: Sequence[bytes | None],
        *,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        serializer: SessionSerializer | None = None,
        key_generator: KeyGenerator | None = None,
        options: SessionOptions | None = None,
        strict: bool = False,
    ) -> None:
        self.codecs: list[SecureCookie] = codecs_from_pairs(*key_pairs)
        self.options = (
            options.copy() if options is not None else SessionOptions(path=DEFAULT_PATH, max_age=DEFAULT_MAX_AGE)
        )
        self._client = client
        self._key_prefix = key_prefix
        self._serializer: SessionSerializer = serializer if serializer is not None else StructuredSerializer()
        self._key_generator: KeyGenerator = key_generator if key_generator is not None else generate_key
        self._strict = strict

        self.set_max_age(self.options.max_age)

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    @property
    def serializer(self) -> SessionSerializer:
        return self._serializer

    def backend_key(self, session_id: str) -> str:
        return self._key_prefix + session_id

    def set_max_age(self, age: int) -> None:
        """Set the default max-age and the cookie codecs' expiry bound.

        Individual sessions are deleted by setting ``session.options.max_age``
        to ``-1`` before saving.
        """
        self.options.max_age = age
        for codec in self.codecs:
            codec.max_age = age

    def set_options(self, options: SessionOptions) -> None:
        """Replace the default options used for new sessions."""
        self.options = options.copy()

    # ------------------------------------------------------------------
    # Resolve / load
    # ------------------------------------------------------------------

    async def get(self, request: Any, name: str) -> Session:
        """Return the session for *name*, cached for the rest of the request."""
        return await get_registry(request).get(self, name)

    async def new(self, request: Any, name: str) -> Session:
        """Resolve a session from the request cookie without touching the registry.

        Always returns a session: a fresh one when there is no cookie, when
        the cookie does not authenticate or has expired, or when the backend
        has no readable record for it.
        """
        session = Session(self, name, self.options.copy())

        cookie = request.cookies.get(name)
        if not cookie:
            return session

        try:
            session_id = decode_multi(name, cookie, self.codecs)
        except CookieError as exc:
            if self._strict:
                raise
            logger.debug("session_cookie_rejected", name=name, reason=type(exc).__name__)
            return session

        if not isinstance(session_id, str) or not session_id:
            logger.debug("session_cookie_rejected", name=name, reason="invalid_id")
            return session

        session.id = session_id
        if await self._load(session):
            session.is_new = False
        return session

    async def _load(self, session: Session) -> bool:
        """Populate *session* from the backend; ``False`` leaves it untouched."""
        try:
            data = await self._client.get(self.backend_key(session.id))
        except NotFoundError:
            data = None
        except Exception as exc:
            logger.warning("session_load_failed", name=session.name, session_id=short_id(session.id), error=str(exc))
            return False

        if data is None:
            logger.debug("session_record_missing", name=session.name, session_id=short_id(session.id))
            return False

        values: dict[Any, Any] = {}
        try:
            self._serializer.deserialize(data, values)
        except SerializationError as exc:
            logger.warning("session_decode_failed", name=session.name, session_id=short_id(session.id), error=str(exc))
            return False

        session.values.update(values)
        return True

    # ------------------------------------------------------------------
    # Save / delete
    # ------------------------------------------------------------------

    async def save(self, request: Any, response: Any, session: Session) -> None:
        """Persist *session* and write its cookie to *response*.

        A max-age ``<= 0`` deletes the backend record and expires the cookie.
        Otherwise the values are written to the backend first and the cookie
        second, so a failure never leaves a cookie pointing at nothing.

        Raises:
            BackendError: The backend write or delete failed.
            SerializationError: The values could not be serialized.
            CookieError: The cookie value could not be encoded.
        """
        if session.options.max_age <= 0:
            await self._delete(session)
            response.set_cookie(session.name, "", **session.options.to_cookie_kwargs())
            return

        if not session.id:
            session.id = self._key_generator()

        await self._persist(session)

        encoded = encode_multi(session.name, session.id, self.codecs)
        response.set_cookie(session.name, encoded, **session.options.to_cookie_kwargs())

    async def _persist(self, session: Session) -> None:
        data = self._serializer.serialize(session.values)
        ttl = timedelta(seconds=session.options.max_age)
        try:
            await self._client.set(self.backend_key(session.id), data, ttl)
        except KvSessionException:
            raise
        except Exception as exc:
            raise BackendError(f"saving session: {exc}", context={"operation": "set"}) from exc
        logger.debug("session_saved", name=session.name, session_id=short_id(session.id), ttl=session.options.max_age)

    async def _delete(self, session: Session) -> None:
        if not session.id:
            return
        try:
            await self._client.delete(self.backend_key(session.id))
        except NotFoundError:
            pass
        except KvSessionException:
            raise
        except Exception as exc:
            raise BackendError(f"deleting session: {exc}", context={"operation": "delete"}) from exc
        logger.debug("session_deleted", name=session.name, session_id=short_id(session.id))
