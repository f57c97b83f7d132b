"""Configuration loading with env var substitution and validation."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from claudeflow.models import DEFAULT_TIMEOUTS, ActivityKind, PatternRule, RequestType


class ConfigError(Exception):
    """Raised on configuration loading or validation errors."""


# --- Env var substitution ---

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


def _replacer(match: re.Match) -> str:
    var = match.group(1)
    val = os.environ.get(var)
    if val is None:
        raise ConfigError(f"Environment variable {var} is not set")
    return val


def substitute_env_vars(obj: Any) -> Any:
    """Recursively substitute ${VAR} in all string values."""
    if isinstance(obj, str):
        return _ENV_VAR_RE.sub(_replacer, obj)
    if isinstance(obj, dict):
        return {k: substitute_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [substitute_env_vars(item) for item in obj]
    return obj


# --- Config dataclasses ---


@dataclass
class TrackerConfig:
    max_history_size: int = 100
    sweep_interval: float = 10.0
    timeouts: dict[RequestType, float] = field(default_factory=lambda: dict(DEFAULT_TIMEOUTS))


@dataclass
class HookLogConfig:
    enabled: bool = False
    file_path: str = ""
    poll_interval: float = 1.0


@dataclass
class PatternConfig:
    use_defaults: bool = True
    rules: list[PatternRule] = field(default_factory=list)


@dataclass
class Config:
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    hooks: HookLogConfig = field(default_factory=HookLogConfig)
    patterns: PatternConfig = field(default_factory=PatternConfig)


# --- Helpers ---


def _require(data: dict, key: str, context: str) -> Any:
    """Get a required key from a dict or raise ConfigError."""
    if key not in data or data[key] is None:
        raise ConfigError(f"Missing required config: {context}.{key}")
    return data[key]


def _section(raw: dict, key: str) -> dict:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section {key!r} must be a mapping")
    return value


def _coerce_int(value: Any, field_name: str) -> int:
    """Coerce a value to int (handles env-substituted strings)."""
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Cannot convert {field_name} to int: {value!r}") from None


def _coerce_positive_float(value: Any, field_name: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Cannot convert {field_name} to float: {value!r}") from None
    if result <= 0:
        raise ConfigError(f"{field_name} must be > 0, got: {value!r}")
    return result


def _coerce_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "yes", "1", "false", "no", "0"):
        return value.lower() in ("true", "yes", "1")
    raise ConfigError(f"{field_name} must be a boolean, got: {value!r}")


# --- Section parsers ---


def _parse_tracker(raw: dict) -> TrackerConfig:
    max_history_size = _coerce_int(
        raw.get("max_history_size", 100), "tracker.max_history_size"
    )
    if max_history_size < 1:
        raise ConfigError(f"tracker.max_history_size must be >= 1, got: {max_history_size!r}")

    sweep_interval = _coerce_positive_float(
        raw.get("sweep_interval", 10.0), "tracker.sweep_interval"
    )

    timeouts = dict(DEFAULT_TIMEOUTS)
    timeouts_raw = raw.get("timeouts") or {}
    if not isinstance(timeouts_raw, dict):
        raise ConfigError("tracker.timeouts must be a mapping")
    for name, seconds in timeouts_raw.items():
        try:
            request_type = RequestType(name)
        except ValueError:
            raise ConfigError(f"Unknown request type in tracker.timeouts: {name!r}") from None
        timeouts[request_type] = _coerce_positive_float(seconds, f"tracker.timeouts.{name}")

    return TrackerConfig(
        max_history_size=max_history_size,
        sweep_interval=sweep_interval,
        timeouts=timeouts,
    )


def _parse_hooks(raw: dict) -> HookLogConfig:
    enabled = _coerce_bool(raw.get("enabled", False), "hooks.enabled")
    file_path = raw.get("file_path") or ""
    if enabled and not file_path:
        raise ConfigError("Missing required config: hooks.file_path (hooks are enabled)")
    return HookLogConfig(
        enabled=enabled,
        file_path=str(file_path),
        poll_interval=_coerce_positive_float(raw.get("poll_interval", 1.0), "hooks.poll_interval"),
    )


def _parse_patterns(raw: dict) -> PatternConfig:
    use_defaults = _coerce_bool(raw.get("use_defaults", True), "patterns.use_defaults")

    rules = []
    for item in raw.get("rules", []) or []:
        if not isinstance(item, dict):
            raise ConfigError(f"patterns.rules[] entries must be mappings, got: {item!r}")
        kind_name = _require(item, "kind", "patterns.rules[]")
        try:
            kind = ActivityKind(kind_name)
        except ValueError:
            raise ConfigError(
                f"Invalid pattern kind: {kind_name!r} "
                f"(must be one of {', '.join(k.value for k in ActivityKind)})"
            ) from None
        rules.append(
            PatternRule(
                name=str(_require(item, "name", "patterns.rules[]")),
                pattern=str(_require(item, "pattern", "patterns.rules[]")),
                kind=kind,
                description=item.get("description", ""),
                case_sensitive=_coerce_bool(
                    item.get("case_sensitive", False), "patterns.rules[].case_sensitive"
                ),
            )
        )

    return PatternConfig(use_defaults=use_defaults, rules=rules)


# --- Loaders ---


def parse_config(raw: dict | None) -> Config:
    """Build a typed Config from an already-loaded mapping."""
    if raw is None:
        return Config()
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")

    raw = substitute_env_vars(raw)
    return Config(
        tracker=_parse_tracker(_section(raw, "tracker")),
        hooks=_parse_hooks(_section(raw, "hooks")),
        patterns=_parse_patterns(_section(raw, "patterns")),
    )


def load_config(path: str = "claudeflow.yaml") -> Config:
    """Load and validate claudeflow.yaml, returning a typed Config."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {path}")

    with open(p) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from None

    return parse_config(raw)
