"""
Directory structure management for jundler.

This module resolves the platform-specific cache root and creates the
per-artifact-kind directories beneath it.

Directory Structure:
    Cache root (see get_global_cache_dir):
        - node/               : Compressed Node.js runtime binaries
            - jundler.lockb   : Index of cached runtime binaries
        - esbuild/            : Compressed esbuild binaries
            - jundler.lockb   : Index of cached esbuild binaries
        - lock/               : Advisory inter-process lock files
"""

import os
import sys
from pathlib import Path
from typing import Dict

from jundler.core.exceptions import FilesystemIoError

ARTIFACT_KINDS = ("node", "esbuild")
LOCK_DIR_NAME = "lock"


def get_global_cache_dir() -> Path:
    """
    Get the platform-specific cache root.

    Returns:
        Path: The cache root.
            - Windows: %LOCALAPPDATA%\\jundler
            - macOS: ~/Library/Caches/jundler
            - Linux/other: $XDG_CACHE_HOME/jundler or ~/.cache/jundler

    Example:
        >>> cache_dir = get_global_cache_dir()
        >>> print(cache_dir)
        /home/user/.cache/jundler  # on Linux
    """
    if os.name == "nt":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data) / "jundler"
        return Path.home() / "AppData" / "Local" / "jundler"

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / "jundler"

    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        return Path(xdg_cache) / "jundler"
    return Path.home() / ".cache" / "jundler"


def get_user_config_dir() -> Path:
    """Get the directory holding the optional user configuration file."""
    if os.name == "nt":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / "jundler"
        return Path.home() / "AppData" / "Roaming" / "jundler"

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "jundler"
    return Path.home() / ".config" / "jundler"


def ensure_cache_structure(cache_root: Path) -> Dict[str, Path]:
    """
    Create the cache directory structure (idempotent).

    Args:
        cache_root: Cache root directory

    Returns:
        Dict mapping 'root', 'lock' and each artifact kind to its directory

    Raises:
        FilesystemIoError: If a directory cannot be created
    """
    cache_root = Path(cache_root)
    paths = {"root": cache_root, "lock": cache_root / LOCK_DIR_NAME}
    for kind in ARTIFACT_KINDS:
        paths[kind] = cache_root / kind

    for path in paths.values():
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemIoError("creating cache directory at", path, e) from e

    return paths


__all__ = [
    "ARTIFACT_KINDS",
    "LOCK_DIR_NAME",
    "get_global_cache_dir",
    "get_user_config_dir",
    "ensure_cache_structure",
]
