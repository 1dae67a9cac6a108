"""Where the launcher keeps its configuration and Java builds."""

from __future__ import annotations

import os
from pathlib import Path

HOME_ENV_VAR = "LAUNCHER_HOME"


def _is_windows() -> bool:
    """Return True when running on Windows."""
    return os.name == "nt"


def get_launcher_home() -> Path:
    """Directory holding ``config.toml`` and the managed ``java/`` store.

    ``LAUNCHER_HOME`` wins when set. Windows uses the per-user data directory
    from platformdirs; everywhere else it is ``~/.launcher``.
    """
    if env_home := os.environ.get(HOME_ENV_VAR):
        return Path(env_home)

    if _is_windows():
        from platformdirs import user_data_dir

        return Path(user_data_dir("launcher", appauthor=False))

    return Path.home() / ".launcher"


def get_java_directory(home: Path | None = None) -> Path:
    """Return the directory that stores managed Java builds."""
    return (home or get_launcher_home()) / "java"
