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
"""Layered configuration for kvsession.

Values come from a YAML or TOML file, optional profile overlays next to it
and ``KVSESSION_*`` environment variables, in increasing priority. Strings
may reference environment variables or other keys with ``${NAME}`` or
``${NAME:default}``.
"""

from __future__ import annotations

import dataclasses
import os
import re
import tomllib
import types
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints

import yaml  # type: ignore[import-untyped]

from kvsession.kernel.exceptions import ConfigurationException

T = TypeVar("T")

ENV_PREFIX = "KVSESSION_"

_PREFIX_ATTR = "__kvsession_config_prefix__"
_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a dataclass as bindable with :meth:`Config.bind`.

    Usage:
        @config_properties(prefix="kvsession.session")
        @dataclass
        class SessionProperties:
            max_age: int = 2592000
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return decorator


def _read_yaml(path: Path) -> Any:
    with path.open() as f:
        return yaml.safe_load(f)


def _read_toml(path: Path) -> Any:
    with path.open("rb") as f:
        return tomllib.load(f)


_READERS: dict[str, Callable[[Path], Any]] = {
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
    ".toml": _read_toml,
}


def _read(path: Path) -> dict[str, Any]:
    reader = _READERS.get(path.suffix)
    if reader is None:
        raise ConfigurationException(f"Unsupported config file type '{path.suffix}'", context={"path": str(path)})
    data = reader(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationException("Config file must contain a mapping", context={"path": str(path)})
    return data


def _merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        merged[key] = _merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged


_SCALARS = (str, int, float, bool)


def _scalar(hint: Any) -> Any:
    """Return the scalar type behind *hint*, unwrapping ``X | None``."""
    if hint in _SCALARS:
        return hint
    if get_origin(hint) in (Union, types.UnionType):
        members = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(members) == 1 and members[0] in _SCALARS:
            return members[0]
    return None


def _coerce(value: Any, target: Any, key: str) -> Any:
    if not isinstance(value, str) or target is str:
        return value
    if target is bool:
        return value.strip().lower() in _TRUE_STRINGS
    if target in (int, float):
        try:
            return target(value)
        except ValueError as exc:
            raise ConfigurationException(
                f"Config key '{key}' expects {target.__name__}, got {value!r}", context={"key": key}
            ) from exc
    return value


class Config:
    """Read-only view over merged configuration data.

    Lookup priority (highest wins):
    1. ``KVSESSION_*`` environment variables
    2. File and profile overlay values
    3. Dataclass defaults (when binding)
    """

    def __init__(self, data: Mapping[str, Any] | None = None, sources: list[str] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})
        self._sources = list(sources or [])

    @property
    def loaded_sources(self) -> list[str]:
        """Files that contributed to this config, base file first."""
        return list(self._sources)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    @classmethod
    def from_file(cls, path: str | Path, active_profiles: list[str] | None = None) -> Config:
        """Load *path* and the overlays for each active profile.

        The overlay for ``session.yaml`` and profile ``prod`` is
        ``session-prod.yaml``. Missing files are skipped.
        """
        path = Path(path)
        if not path.exists():
            return cls()

        data = _read(path)
        sources = [str(path)]
        for profile in active_profiles or []:
            overlay = path.with_name(f"{path.stem}-{profile}{path.suffix}")
            if overlay.exists():
                data = _merge(data, _read(overlay))
                sources.append(f"{overlay} (profile: {profile})")
        return cls(data, sources)

    @staticmethod
    def env_key(key: str) -> str:
        """Environment variable overriding *key*.

        ``kvsession.session.max-age`` maps to ``KVSESSION_SESSION_MAX_AGE``.
        """
        name = key.removeprefix("kvsession.")
        return ENV_PREFIX + re.sub(r"[.\-]", "_", name).upper()

    def _lookup(self, key: str) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """Value at dot-notation *key*, with env overrides and placeholders applied."""
        override = os.environ.get(self.env_key(key))
        if override is not None:
            return override
        value = self._lookup(key)
        if value is None:
            return default
        return self.resolve(value) if isinstance(value, str) else value

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Raw mapping under *prefix*; empty when absent or not a mapping."""
        section = self._lookup(prefix)
        return section if isinstance(section, dict) else {}

    def resolve(self, value: str) -> str:
        """Expand ``${...}`` placeholders in *value*.

        A name is looked up in the environment first, then as a config key.
        ``${NAME:default}`` falls back to ``default``.

        Raises:
            ConfigurationException: A placeholder has no value and no default,
                or placeholders reference each other in a cycle.
        """
        return self._expand(value, ())

    def _expand(self, value: str, chain: tuple[str, ...]) -> str:
        def replace(match: re.Match[str]) -> str:
            name, sep, fallback = match.group(1).partition(":")
            if name in chain:
                raise ConfigurationException(
                    f"Circular placeholder reference: {' -> '.join((*chain, name))}",
                    context={"placeholder": name},
                )
            env_value = os.environ.get(name)
            if env_value is not None:
                return env_value
            referenced = self._lookup(name)
            if referenced is not None:
                return self._expand(str(referenced), (*chain, name))
            if sep:
                return fallback
            raise ConfigurationException(
                f"Cannot resolve placeholder '${{{match.group(1)}}}': not found in environment or config",
                context={"placeholder": name},
            )

        return _PLACEHOLDER.sub(replace, value) if "${" in value else value

    def bind(self, config_cls: type[T]) -> T:
        """Build a ``@config_properties`` dataclass from its section.

        Keys may use dashes (``max-age``) or underscores. Scalar fields,
        optional ones included, also honour env var overrides; string values
        are coerced to the field type.
        """
        prefix = getattr(config_cls, _PREFIX_ATTR, None)
        if prefix is None:
            raise ConfigurationException(f"{config_cls.__name__} is not decorated with @config_properties")

        section = {str(k).replace("-", "_"): v for k, v in self.get_section(prefix).items()}
        hints = get_type_hints(config_cls)
        kwargs: dict[str, Any] = {}
        for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            target = _scalar(hints.get(field.name))
            key = f"{prefix}.{field.name.replace('_', '-')}"
            if target is not None:
                value = self.get(key)
                if value is None:
                    value = self.get(f"{prefix}.{field.name}")
            else:
                value = section.get(field.name)
            if value is not None:
                kwargs[field.name] = _coerce(value, target, key)
        return config_cls(**kwargs)
