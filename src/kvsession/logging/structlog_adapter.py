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
"""StructlogAdapter — structlog output for kvsession.

Reads ``kvsession.logging.*``::

    kvsession:
      logging:
        format: json          # or "console"
        level:
          root: INFO
          kvsession.session.store: DEBUG

Cookie values and key material never reach the renderer, and session ids
are shortened to a prefix that is enough to correlate log lines.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from kvsession.config.properties.logging import LoggingProperties
from kvsession.core.config import Config
from kvsession.kernel.exceptions import ConfigurationException

SECRET_FIELDS = frozenset({"cookie", "cookie_value", "hash_key", "block_key"})
SESSION_ID_VISIBLE = 6


def short_id(session_id: str) -> str:
    """Loggable prefix of a session id."""
    if len(session_id) <= SESSION_ID_VISIBLE:
        return session_id
    return session_id[:SESSION_ID_VISIBLE] + "..."


def mask_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor hiding secrets and most of the session id."""
    for name in SECRET_FIELDS & event_dict.keys():
        event_dict[name] = "***"
    session_id = event_dict.get("session_id")
    if isinstance(session_id, str):
        event_dict["session_id"] = short_id(session_id)
    return event_dict


def build_processors(log_format: str) -> list[structlog.types.Processor]:
    """Processor chain ending in the renderer for *log_format*."""
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        mask_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    elif log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        raise ConfigurationException(
            f"Unknown log format '{log_format}'", context={"format": log_format}
        )
    return processors


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


class StructlogAdapter:
    """Routes structlog through stdlib logging with per-logger levels."""

    def __init__(self) -> None:
        self.log_format = "console"
        self.root_level = "INFO"
        self.module_levels: dict[str, str] = {}

    def configure(self, config: Config) -> None:
        props = config.bind(LoggingProperties)
        levels = {str(name): str(level).upper() for name, level in props.level.items()}

        self.log_format = props.format.lower()
        self.root_level = levels.pop("root", "INFO")
        self.module_levels = levels

        structlog.configure(
            processors=build_processors(self.log_format),
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(format="%(message)s", stream=sys.stdout, level=_level(self.root_level), force=True)
        for name, level in self.module_levels.items():
            self.set_level(name, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        """Set a stdlib logger's level; unknown level names mean INFO."""
        logging.getLogger(name).setLevel(_level(level))
