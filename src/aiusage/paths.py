"""Per-platform base directories where the supported tools keep their state."""

from __future__ import annotations

from pathlib import Path
import os
import sys


def home() -> Path:
    return Path.home()


def is_macos() -> bool:
    return sys.platform == "darwin"


def is_windows() -> bool:
    return sys.platform.startswith("win")


def config_dir() -> Path:
    if is_macos():
        return home() / "Library/Application Support"
    if is_windows():
        return Path(os.environ.get("APPDATA") or home() / "AppData/Roaming")
    return Path(os.environ.get("XDG_CONFIG_HOME") or home() / ".config")


def data_dir() -> Path:
    if is_macos():
        return home() / "Library/Application Support"
    if is_windows():
        return Path(os.environ.get("APPDATA") or home() / "AppData/Roaming")
    return Path(os.environ.get("XDG_DATA_HOME") or home() / ".local/share")


def vscode_global_storage() -> Path:
    return config_dir() / "Code/User/globalStorage"


def cursor_user_dir() -> Path:
    return config_dir() / "Cursor/User"
