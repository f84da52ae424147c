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
"""Session identifier generation.

Identifiers are 12 bytes rendered as 20 lowercase base32hex characters:

- 4 bytes: Unix time in seconds, big-endian (ids sort by creation second)
- 5 bytes: random per-process value
- 3 bytes: counter, randomly seeded, incremented per id
"""

from __future__ import annotations

import base64
import os
import secrets
import threading
import time
from collections.abc import Callable

KEY_LENGTH = 20

KeyGenerator = Callable[[], str]


class _IdSource:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reseed()

    def _reseed(self) -> None:
        self._pid = os.getpid()
        self._process_bytes = secrets.token_bytes(5)
        self._counter = secrets.randbelow(1 << 24)

    def next_id(self) -> bytes:
        with self._lock:
            # Forked children must not reuse the parent's process bytes.
            if os.getpid() != self._pid:
                self._reseed()
            self._counter = (self._counter + 1) & 0xFFFFFF
            counter = self._counter
            process_bytes = self._process_bytes
        timestamp = int(time.time()) & 0xFFFFFFFF
        return timestamp.to_bytes(4, "big") + process_bytes + counter.to_bytes(3, "big")


_source = _IdSource()


def generate_key() -> str:
    """Return a new unique, fixed-length, time-sortable session identifier."""
    return base64.b32hexencode(_source.next_id()).decode("ascii").rstrip("=").lower()
