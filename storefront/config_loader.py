from __future__ import annotations

import tomllib
from dataclasses import fields, replace
from pathlib import Path
from typing import Any

from storefront.config import StorefrontConfig
from storefront.currency import CURRENCIES
from storefront.errors import ConfigError

SECTIONS = ("currency", "scoring", "segments", "analytics", "inventory")


def load_config(root: Path, overrides: dict[str, Any] | None = None) -> StorefrontConfig:
    """Defaults, then ``[tool.storefront]`` from pyproject.toml, then overrides."""
    overrides = overrides or {}
    config = StorefrontConfig()
    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        try:
            data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as err:
            raise ConfigError(f"cannot parse {pyproject}: {err}") from err
        tool_cfg: dict[str, Any] = data.get("tool", {}).get("storefront", {})
        config = _apply_config(config, tool_cfg)
    config = _apply_config(config, overrides)
    _validate(config)
    return config


def _apply_section(section: Any, values: dict[str, Any], name: str) -> Any:
    known = {f.name for f in fields(section)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"unknown keys in [{name}]: {', '.join(sorted(unknown))}")
    coerced = {
        key: tuple(tuple(v) if isinstance(v, list) else v for v in value)
        if isinstance(value, list)
        else value
        for key, value in values.items()
    }
    return replace(section, **coerced)


def _apply_config(config: StorefrontConfig, cfg: dict[str, Any]) -> StorefrontConfig:
    if not cfg:
        return config
    for name in SECTIONS:
        if name in cfg:
            section = _apply_section(getattr(config, name), cfg[name], name)
            config = replace(config, **{name: section})
    if "alert_pending_critical" in cfg:
        config = replace(config, alert_pending_critical=int(cfg["alert_pending_critical"]))
    if "alert_cancelled_warning" in cfg:
        config = replace(config, alert_cancelled_warning=int(cfg["alert_cancelled_warning"]))
    return config


def _validate(config: StorefrontConfig) -> None:
    for role in ("base", "admin", "display"):
        code = getattr(config.currency, role)
        if code not in CURRENCIES:
            raise ConfigError(f"currency.{role}: unsupported currency {code!r}")
    if config.analytics.window_days < 1:
        raise ConfigError("analytics.window_days must be at least 1")
    if not config.analytics.palette:
        raise ConfigError("analytics.palette must not be empty")
    if config.inventory.low_stock_threshold < 0:
        raise ConfigError("inventory.low_stock_threshold must not be negative")
