"""Frozen dataclasses for configuration and YAML loader with env-var interpolation."""

from __future__ import annotations

import os
import re
import types
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class AWSConfig:
    region: str = ""
    credential_profile: str = ""  # empty = use default boto3 credential chain


@dataclass(frozen=True)
class InventoryConfig:
    source: str = "ec2_tags"  # "ec2_tags" or "static"
    role_tag: str = "Fleet:Role"
    state_tag: str = "Fleet:State"
    name_tag: str = "Name"
    allowlist: dict[str, str] = field(default_factory=dict)
    denylist: dict[str, str] = field(default_factory=dict)
    # static source only: role -> [{instance_id, state, name}]
    nodes: dict[str, list] = field(default_factory=dict)


@dataclass(frozen=True)
class ReconcileConfig:
    ready_state: str = "available"
    dry_run: bool = False


@dataclass(frozen=True)
class PollingConfig:
    interval_seconds: int = 300
    jitter_seconds: int = 15
    max_backoff_seconds: int = 900
    backoff_base_seconds: int = 30


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    aws: AWSConfig | None = None
    elbs: dict[str, str | None] = field(default_factory=dict)  # role -> load balancer name
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _get_dataclass_type(ft: Any) -> type | None:
    """Return the underlying dataclass type from a type annotation (handles Optional/X|None)."""
    if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__"):
        return ft
    # Handle X | None (Python 3.10+ types.UnionType, no __origin__, has __args__)
    if isinstance(ft, types.UnionType):
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    # Handle typing.Optional[X] → Union[X, None]
    origin = getattr(ft, "__origin__", None)
    if origin is typing.Union:
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    return None


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        # Resolve string annotations to actual types in the module scope
        if isinstance(ft, str):
            ft = eval(ft, globals(), {cls.__name__: cls})  # noqa: S307
        dc_type = _get_dataclass_type(ft)
        if dc_type is not None and isinstance(value, dict):
            kwargs[key] = _build_nested(dc_type, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_nested(AppConfig, raw)
    _validate(config)
    return config


def _validate(config: AppConfig) -> None:
    """Validate configuration values."""
    if config.aws is None or not config.aws.region:
        raise ConfigError("aws.region is required")

    if not isinstance(config.elbs, dict) or not config.elbs:
        raise ConfigError("elbs must be a non-empty mapping of role -> load balancer name")

    for role, lb_name in config.elbs.items():
        if lb_name is not None and not isinstance(lb_name, str):
            raise ConfigError(f"elbs.{role} must be a load balancer name or null")

    if config.inventory.source not in ("ec2_tags", "static"):
        raise ConfigError("inventory.source must be 'ec2_tags' or 'static'")

    if config.inventory.source == "static" and not isinstance(config.inventory.nodes, dict):
        raise ConfigError("inventory.nodes must be a mapping of role -> node list")

    if not config.reconcile.ready_state:
        raise ConfigError("reconcile.ready_state must not be empty")

    if config.polling.interval_seconds < 5:
        raise ConfigError("polling.interval_seconds must be >= 5")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")
