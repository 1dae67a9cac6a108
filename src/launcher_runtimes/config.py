"""Launcher configuration stored in ``<home>/config.toml``."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import toml
from filelock import FileLock, Timeout

from launcher_runtimes.home import get_launcher_home

CONFIG_FILE = "config.toml"
DEFAULT_METADATA_SERVER = "https://master.launchermeta.pages.dev"
DEFAULT_HTTP_TIMEOUT = 60.0


class ConfigError(RuntimeError):
    """Raised when the launcher configuration cannot be read or written."""


@dataclass(slots=True)
class LauncherConfig:
    """Settings that affect where Java builds come from."""

    metadata_server: str = DEFAULT_METADATA_SERVER
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        java_section = dict(data.get("java") or {})
        java_section["http_timeout"] = self.http_timeout
        data["metadata_server"] = self.metadata_server
        data["java"] = java_section
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "LauncherConfig":
        if not isinstance(data, dict):
            return cls(extra={})

        server = data.get("metadata_server")
        if server is not None and (not isinstance(server, str) or not server.strip()):
            raise ConfigError("metadata_server must be a non-empty string")

        timeout = DEFAULT_HTTP_TIMEOUT
        java_section = data.get("java")
        if java_section is not None and not isinstance(java_section, dict):
            raise ConfigError("java must be a table")
        if java_section is not None and "http_timeout" in java_section:
            raw_timeout = java_section["http_timeout"]
            if isinstance(raw_timeout, bool) or not isinstance(raw_timeout, (int, float)) or raw_timeout <= 0:
                raise ConfigError("java.http_timeout must be a positive number of seconds")
            timeout = float(raw_timeout)

        return cls(
            metadata_server=server.strip() if server else DEFAULT_METADATA_SERVER,
            http_timeout=timeout,
            extra={key: value for key, value in data.items() if key != "metadata_server"},
        )


def config_path(home: Path | None = None) -> Path:
    return (home or get_launcher_home()) / CONFIG_FILE


def _lock(path: Path) -> FileLock:
    return FileLock(path.with_suffix(".lock"), timeout=10)


def load_config(home: Path | None = None) -> LauncherConfig:
    """Load the launcher configuration; a missing file yields defaults."""
    path = config_path(home)
    if not path.exists():
        return LauncherConfig()

    try:
        with _lock(path):
            data = toml.load(path)
    except (toml.TomlDecodeError, OSError, Timeout) as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    return LauncherConfig.from_dict(data)


def save_config(config: LauncherConfig, home: Path | None = None) -> Path:
    path = config_path(home)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with _lock(path):
            with open(path, "w", encoding="utf-8") as handle:
                toml.dump(config.to_dict(), handle)
    except (OSError, Timeout) as exc:
        raise ConfigError(f"Cannot write {path}: {exc}") from exc
    return path
