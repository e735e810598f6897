"""Runtime configuration.

Environment variables:
    GEOSTAX_ENABLE_X64  1 (default) / 0; double precision for all jax arrays
    GEOSTAX_LOG_LEVEL   DEBUG / INFO / WARNING (default) / ERROR
    GEOSTAX_ATOL        fallback absolute tolerance of membership checks (default 1e-8)
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

import jax

from geostax.errors import ConfigurationError


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean flag, got {value!r}.", name, value)


def _parse_float(name: str, value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a float, got {value!r}.", name, value) from exc
    if parsed <= 0.0:
        raise ConfigurationError(f"{name} must be positive, got {parsed}.", name, value)
    return parsed


@dataclass(frozen=True)
class GeostaxConfig:
    enable_x64: bool = True
    log_level: str = "WARNING"
    log_format: str = "%(levelname)s %(name)s: %(message)s"
    default_atol: float = 1e-8

    @classmethod
    def from_env(cls) -> GeostaxConfig:
        return cls(
            enable_x64=_parse_bool("GEOSTAX_ENABLE_X64", os.getenv("GEOSTAX_ENABLE_X64", "1")),
            log_level=os.getenv("GEOSTAX_LOG_LEVEL", "WARNING").upper(),
            default_atol=_parse_float("GEOSTAX_ATOL", os.getenv("GEOSTAX_ATOL", "1e-8")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_global_config = GeostaxConfig.from_env()


def get_config() -> GeostaxConfig:
    """Return the active configuration."""
    return _global_config


def set_config(**overrides: Any) -> GeostaxConfig:
    """Replace the active configuration with updated fields.

    Example:
        >>> set_config(log_level="DEBUG")
    """
    global _global_config
    known = {f.name for f in fields(GeostaxConfig)}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigurationError(f"Unknown configuration option: {key}", key, value)
    _global_config = replace(_global_config, **overrides)
    apply_jax_config(_global_config)
    return _global_config


def reset_config() -> GeostaxConfig:
    """Restore the configuration read from the environment."""
    global _global_config
    _global_config = GeostaxConfig.from_env()
    apply_jax_config(_global_config)
    return _global_config


def apply_jax_config(config: GeostaxConfig) -> None:
    jax.config.update("jax_enable_x64", config.enable_x64)
