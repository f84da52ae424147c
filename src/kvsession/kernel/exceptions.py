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
"""Unified exception hierarchy for kvsession.

All library exceptions inherit from KvSessionException, so callers can catch
one base type or target a specific failure.

Categories:
- SecurityException: cookie authentication and expiry failures
- InfrastructureException: key-value backend failures
- SerializationError: session payload encoding/decoding failures
- ConfigurationException: invalid keys or options at construction time
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class KvSessionException(Exception):
    """Base exception for all kvsession errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "COOKIE_EXPIRED").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    default_code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code if code is not None else self.default_code
        self.context: dict = context if context is not None else {}


class ConfigurationException(KvSessionException):
    """Store or codec constructed with invalid settings."""

    default_code = "INVALID_CONFIGURATION"


# =============================================================================
# Security Exceptions
# =============================================================================


class SecurityException(KvSessionException):
    """Cookie integrity and freshness errors."""


class CookieError(SecurityException):
    """A cookie value could not be produced or accepted."""

    default_code = "COOKIE_ERROR"


class AuthenticationError(CookieError):
    """Cookie MAC is invalid under every configured key pair."""

    default_code = "COOKIE_AUTHENTICATION_FAILED"


class ExpiredError(CookieError):
    """Cookie authenticated but its embedded timestamp is out of range."""

    default_code = "COOKIE_EXPIRED"


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(KvSessionException):
    """Failures of external collaborators."""


class BackendError(InfrastructureException):
    """Transport or availability failure reported by the key-value backend."""

    default_code = "BACKEND_ERROR"


class NotFoundError(BackendError):
    """The requested backend key does not exist."""

    default_code = "BACKEND_NOT_FOUND"


# =============================================================================
# Payload Exceptions
# =============================================================================


class SerializationError(KvSessionException):
    """Session payload is malformed, uses an unregistered type, or has a non-string key."""

    default_code = "SERIALIZATION_ERROR"
