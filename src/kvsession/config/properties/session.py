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
"""Session store configuration properties."""

from __future__ import annotations

from dataclasses import dataclass, field

from kvsession.core.config import config_properties


@config_properties(prefix="kvsession.session")
@dataclass
class SessionProperties:
    """Configuration for the session store (kvsession.session.*).

    ``keys`` is a list of ``{"hash": ..., "block": ...}`` mappings, newest
    first. ``block`` may be omitted to sign without encrypting.
    """

    cookie_name: str = "session"
    key_prefix: str = "session_"
    max_age: int = 86400 * 30
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    http_only: bool = False
    same_site: str | None = "lax"
    serializer: str = "structured"
    keys: list = field(default_factory=list)
    store: str = "memory"
    redis: dict = field(default_factory=lambda: {"url": "redis://localhost:6379/0"})
    strict: bool = False
