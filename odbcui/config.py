"""App configuration loading helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import tomllib

from pydantic import BaseModel, Field, ValidationError

from .store import toml_string

CONFIG_FILE = Path.home() / ".config" / "odbcui" / "config.toml"

LOG = logging.getLogger(__name__)

StoreKind = Literal["registry", "snapshot"]
RegistryViewName = Literal["default", "32", "64"]


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "dark"
    store: StoreKind = "registry"
    snapshot_path: str | None = None
    registry_view: RegistryViewName = "default"
    plugins: dict[str, bool] = Field(default_factory=dict)
    active_dsn: str | None = None

    def plugin_filters(self) -> tuple[set[str] | None, set[str]]:
        """Return allow/block lists for plugin enablement."""

        allowed = {name for name, flag in self.plugins.items() if flag}
        disabled = {name for name, flag in self.plugins.items() if not flag}
        allowlist: set[str] | None = allowed or None
        return allowlist, disabled

    def is_plugin_enabled(self, name: str) -> bool:
        allowlist, disabled = self.plugin_filters()
        if allowlist is not None:
            return name in allowlist
        return name not in disabled

    def with_active_dsn(self, name: str | None) -> AppConfig:
        """Return a copy with the remembered DSN updated."""

        return self.model_copy(update={"active_dsn": name})

    def with_snapshot(self, path: str) -> AppConfig:
        """Return a copy that reads from the given snapshot file."""

        return self.model_copy(update={"store": "snapshot", "snapshot_path": path})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing or invalid."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError) as exc:
        LOG.warning("Ignoring unreadable config file", extra={"path": str(CONFIG_FILE), "error": str(exc)})
        return AppConfig()

    try:
        return AppConfig(**data)
    except ValidationError as exc:
        LOG.warning("Ignoring invalid config file", extra={"path": str(CONFIG_FILE), "error": str(exc)})
        return AppConfig()


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"theme = {toml_string(config.theme)}",
        f"store = {toml_string(config.store)}",
        f"registry_view = {toml_string(config.registry_view)}",
    ]
    if config.snapshot_path:
        lines.append(f"snapshot_path = {toml_string(config.snapshot_path)}")
    if config.active_dsn:
        lines.append(f"active_dsn = {toml_string(config.active_dsn)}")
    if config.plugins:
        lines.append("")
        lines.append("[plugins]")
        for name in sorted(config.plugins):
            flag = "true" if config.plugins[name] else "false"
            lines.append(f"{toml_string(name)} = {flag}")
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    for key in ("theme", "store", "snapshot_path", "registry_view", "active_dsn"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
        elif isinstance(value, int) and key == "registry_view":
            data[key] = str(value)
    plugins = raw.get("plugins")
    if isinstance(plugins, dict):
        data["plugins"] = {str(name): bool(enabled) for name, enabled in plugins.items()}
    return data


__all__ = ["AppConfig", "CONFIG_FILE", "load_config", "save_config"]
