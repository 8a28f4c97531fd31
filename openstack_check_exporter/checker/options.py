"""Check options: loads settings.yaml and resolves per-cloud check options.

Resolution is a three-tier cascade, later tiers win:

  1. hard-coded baseline (interval 60s, timeout 10s)
  2. ``default.global`` then ``default.<check>`` from the settings file
  3. ``clouds.<cloud>.<check>`` from the settings file

The per-cloud tier can only tune keys that the first two tiers already set for
a check. Unknown checks and unknown keys in a cloud section are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .errors import ConfigurationError, OptionTypeError

logger = logging.getLogger(__name__)

GLOBAL = "global"

BASELINE: dict[str, Any] = {
    "interval": 60,
    "timeout": 10,
}


# ── Settings file ────────────────────────────────────────────────────────────


class SettingsFile(BaseModel):
    """Top-level structure of settings.yaml."""

    default: dict[str, dict[str, Any]] = {}
    clouds: dict[str, dict[str, dict[str, Any]]] = {}

    @field_validator("default", mode="before")
    @classmethod
    def _empty_default_sections(cls, value: Any) -> Any:
        return _empty_sections(value, depth=2)

    @field_validator("clouds", mode="before")
    @classmethod
    def _empty_cloud_sections(cls, value: Any) -> Any:
        return _empty_sections(value, depth=3)

    def cloud_options(self, cloud: str) -> CloudOptions:
        """Resolve the option cascade for ``cloud``."""
        global_opts = dict(BASELINE)
        global_opts.update(self.default.get(GLOBAL, {}))

        resolved: dict[str, dict[str, Any]] = {}
        for check, opts in self.default.items():
            if check == GLOBAL:
                continue
            merged = dict(global_opts)
            merged.update(opts)
            resolved[check] = merged

        for check, opts in self.clouds.get(cloud, {}).items():
            target = resolved.get(check)
            if target is None:
                logger.debug("Ignoring %s override for unknown check %s", cloud, check)
                continue
            for key, value in opts.items():
                if key not in target:
                    logger.debug("Ignoring %s override for unset option %s/%s", cloud, check, key)
                    continue
                target[key] = value

        return CloudOptions(resolved)


def _empty_sections(value: Any, depth: int) -> Any:
    """Turn YAML sections left empty (``check:`` with no body) into ``{}``."""
    if value is None:
        return {}
    if depth > 1 and isinstance(value, dict):
        return {k: _empty_sections(v, depth - 1) for k, v in value.items()}
    return value


def load_settings(path: str | Path) -> SettingsFile:
    """Parse a settings.yaml file."""
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Settings file not found: {path}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read {path}: {e}") from e

    try:
        settings = SettingsFile.model_validate(raw or {})
    except ValidationError as e:
        raise ConfigurationError(f"Malformed settings in {path}: {e}") from e

    logger.info(
        "Loaded settings from %s: %d check defaults, %d clouds",
        path, len(settings.default), len(settings.clouds),
    )
    return settings


# ── Resolved options ─────────────────────────────────────────────────────────


class CloudOptions(Mapping[str, Mapping[str, Any]]):
    """Read-only ``check name -> {option: value}`` table for one cloud."""

    def __init__(self, options: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._options = {
            check: MappingProxyType(dict(opts)) for check, opts in (options or {}).items()
        }

    def __getitem__(self, check: str) -> Mapping[str, Any]:
        return self._options[check]

    def __iter__(self) -> Iterator[str]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def __repr__(self) -> str:
        plain = {check: dict(opts) for check, opts in self._options.items()}
        return f"CloudOptions({plain!r})"

    def has(self, check: str, key: str) -> bool:
        return key in self._options.get(check, {})

    def _lookup(self, check: str, key: str) -> tuple[bool, Any]:
        opts = self._options.get(check)
        if opts is None or key not in opts:
            return False, None
        return True, opts[key]

    def get_str(self, check: str, key: str, default: str | None = None) -> str | None:
        found, value = self._lookup(check, key)
        if not found:
            return default
        if not isinstance(value, str):
            raise OptionTypeError(check, key, "string")
        return value

    def get_int(self, check: str, key: str, default: int | None = None) -> int | None:
        found, value = self._lookup(check, key)
        if not found:
            return default
        if isinstance(value, bool) or not isinstance(value, int):
            raise OptionTypeError(check, key, "int")
        return value

    def get_float(self, check: str, key: str, default: float | None = None) -> float | None:
        """Like get_int, but also accepts floats (sub-second intervals)."""
        found, value = self._lookup(check, key)
        if not found:
            return default
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise OptionTypeError(check, key, "number")
        return float(value)

    def get_bool(self, check: str, key: str, default: bool | None = None) -> bool | None:
        found, value = self._lookup(check, key)
        if not found:
            return default
        if not isinstance(value, bool):
            raise OptionTypeError(check, key, "bool")
        return value

    def dump(self) -> str:
        """Render the options as indented ``check: / key: value`` text."""
        lines = []
        for check in sorted(self._options):
            lines.append(f"{check}:")
            for key in sorted(self._options[check]):
                lines.append(f"  {key}: {self._options[check][key]}")
        return "\n".join(lines)
