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
"""Authenticated, optionally encrypted cookie values.

Values are signed with :class:`itsdangerous.URLSafeTimedSerializer` using
HMAC-SHA256 and a timestamp. The salt embeds the cookie name, so a value
issued for one cookie is rejected under another name. When a block key is
configured the JSON payload is first sealed in a Fernet token.

Several codecs can be chained for key rotation: :func:`encode_multi` always
signs with the first one, :func:`decode_multi` accepts any of them.
"""

from __future__ import annotations

import base64
import hashlib
import json
import re
import time
from collections.abc import Callable, Sequence
from typing import Any

from cryptography.fernet import Fernet
from itsdangerous import BadData, SignatureExpired, TimestampSigner, URLSafeTimedSerializer
from itsdangerous.encoding import base64_decode, base64_encode

from kvsession.kernel.exceptions import (
    AuthenticationError,
    ConfigurationException,
    CookieError,
    ExpiredError,
    SerializationError,
)

DEFAULT_MAX_AGE = 86400 * 30
DEFAULT_MAX_LENGTH = 4096

_SALT_PREFIX = "kvsession.cookie:"
_RAW_BLOCK_KEY_SIZE = 32
_TOKEN_CHARS = re.compile(r"[A-Za-z0-9_\-.]+")


class _ClockSigner(TimestampSigner):
    """Timestamp signer that reads the time from an injected clock."""

    def __init__(self, *args: Any, clock: Callable[[], int], **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return self._clock()


class _FernetJSON:
    """JSON payload sealed in a Fernet token, for use as an itsdangerous serializer."""

    def __init__(self, codec: SecureCookie, fernet: Fernet) -> None:
        self._codec = codec
        self._fernet = fernet

    def dumps(self, obj: Any) -> str:
        data = json.dumps(obj, separators=(",", ":")).encode("utf-8")
        return self._fernet.encrypt_at_time(data, self._codec.now()).decode("ascii")

    def loads(self, token: str) -> Any:
        if self._codec.max_age:
            data = self._fernet.decrypt_at_time(token, self._codec.max_age, self._codec.now())
        else:
            data = self._fernet.decrypt(token)
        return json.loads(data)


def _fernet(block_key: bytes) -> Fernet:
    # 32 raw bytes, or the url-safe base64 form produced by Fernet.generate_key().
    key = base64.urlsafe_b64encode(block_key) if len(block_key) == _RAW_BLOCK_KEY_SIZE else block_key
    try:
        return Fernet(key)
    except ValueError as exc:
        raise ConfigurationException(
            "securecookie: block key must be 32 bytes or a url-safe base64 Fernet key",
            context={"length": len(block_key)},
        ) from exc


def _well_formed(value: str) -> bool:
    """Reject text the lenient itsdangerous decoder would still accept.

    Only the URL-safe alphabet and ``.`` are allowed, and the signature must
    be canonical base64 so no unused trailing bits can vary.
    """
    if not _TOKEN_CHARS.fullmatch(value):
        return False
    signature = value.rpartition(".")[2]
    try:
        return base64_encode(base64_decode(signature)) == signature.encode("ascii")
    except BadData:
        return False


class SecureCookie:
    """Encodes and decodes one authenticated cookie value.

    Args:
        hash_key: Signing key. Required; 32 or 64 random bytes recommended.
        block_key: Optional Fernet key, either 32 raw bytes or its url-safe
            base64 form. When given, the payload is encrypted before it is
            signed.
        max_age: Reject cookies older than this many seconds. ``0`` disables
            the check.
        min_age: Reject cookies younger than this many seconds.
        max_length: Reject encoded values longer than this. ``0`` disables
            the check.
        clock: Returns the current Unix time; replaceable in tests.
    """

    def __init__(
        self,
        hash_key: bytes,
        block_key: bytes | None = None,
        *,
        max_age: int = DEFAULT_MAX_AGE,
        min_age: int = 0,
        max_length: int = DEFAULT_MAX_LENGTH,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not hash_key:
            raise ConfigurationException("securecookie: hash key is not set")
        self._hash_key = bytes(hash_key)
        self._payload_serializer = _FernetJSON(self, _fernet(bytes(block_key))) if block_key is not None else None
        self.max_age = max_age
        self.min_age = min_age
        self.max_length = max_length
        self._clock = clock
        self._serializers: dict[str, URLSafeTimedSerializer] = {}

    @property
    def encrypts(self) -> bool:
        return self._payload_serializer is not None

    def now(self) -> int:
        return int(self._clock())

    def _serializer(self, name: str) -> URLSafeTimedSerializer:
        serializer = self._serializers.get(name)
        if serializer is None:
            serializer = URLSafeTimedSerializer(
                self._hash_key,
                salt=_SALT_PREFIX + name,
                serializer=self._payload_serializer,
                signer=_ClockSigner,
                signer_kwargs={"digest_method": hashlib.sha256, "clock": self.now},
            )
            self._serializers[name] = serializer
        return serializer

    def encode(self, name: str, value: Any) -> str:
        """Serialize, optionally encrypt, timestamp and sign *value*."""
        try:
            result = self._serializer(name).dumps(value)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"securecookie: encoding cookie value: {exc}") from exc

        if self.max_length and len(result) > self.max_length:
            raise CookieError(
                "securecookie: the value is too long",
                context={"length": len(result), "max_length": self.max_length},
            )
        return result

    def decode(self, name: str, value: str) -> Any:
        """Verify and decode a cookie value produced by :meth:`encode`.

        Raises:
            AuthenticationError: The value is malformed or its signature does
                not verify.
            ExpiredError: The value authenticated but is older than ``max_age``
                or younger than ``min_age``.
        """
        if self.max_length and len(value) > self.max_length:
            raise AuthenticationError("securecookie: the value is too long")
        if not value.isascii() or not _well_formed(value):
            raise AuthenticationError("securecookie: the value is not valid")

        try:
            payload, issued = self._serializer(name).loads(
                value, max_age=self.max_age or None, return_timestamp=True
            )
        except SignatureExpired as exc:
            raise ExpiredError("securecookie: expired timestamp") from exc
        except BadData as exc:
            raise AuthenticationError("securecookie: the value is not valid") from exc

        if self.min_age and issued.timestamp() > self.now() - self.min_age:
            raise ExpiredError("securecookie: timestamp is too new")
        return payload


def codecs_from_pairs(*keys: bytes | None, **options: Any) -> list[SecureCookie]:
    """Build codecs from alternating hash and block keys.

    ``codecs_from_pairs(new_hash, new_block, old_hash, old_block)`` yields two
    codecs, newest first. The trailing block key may be omitted and any block
    key may be ``None`` to sign without encrypting. *options* are forwarded
    to every :class:`SecureCookie`.
    """
    if not keys:
        raise ConfigurationException("securecookie: at least one hash key is required")
    codecs: list[SecureCookie] = []
    for i in range(0, len(keys), 2):
        hash_key = keys[i]
        block_key = keys[i + 1] if i + 1 < len(keys) else None
        if hash_key is None:
            raise ConfigurationException("securecookie: hash key is not set", context={"pair": i // 2})
        codecs.append(SecureCookie(hash_key, block_key, **options))
    return codecs


def encode_multi(name: str, value: Any, codecs: Sequence[SecureCookie]) -> str:
    """Encode *value* with the first (current) codec."""
    if not codecs:
        raise ConfigurationException("securecookie: no codecs were provided")
    return codecs[0].encode(name, value)


def decode_multi(name: str, value: str, codecs: Sequence[SecureCookie]) -> Any:
    """Decode *value* with the first codec that authenticates it.

    Raises:
        ExpiredError: Some codec authenticated the value but it has expired.
        AuthenticationError: No codec authenticated the value.
    """
    if not codecs:
        raise ConfigurationException("securecookie: no codecs were provided")
    expired: ExpiredError | None = None
    for codec in codecs:
        try:
            return codec.decode(name, value)
        except ExpiredError as exc:
            expired = exc
        except AuthenticationError:
            continue
    if expired is not None:
        raise ExpiredError("securecookie: expired timestamp")
    raise AuthenticationError("securecookie: the value is not valid")
