"""
Readers for the Node.js project descriptors a build consumes.

- ``package.json``: project name, entry point and module type
- ``sea-config.json``: Node.js single executable application configuration

Fields jundler does not interpret are kept so that a rewritten
``sea-config.json`` loses nothing.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from jundler.core.exceptions import ProjectConfigError
from jundler.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

PACKAGE_JSON = "package.json"
SEA_CONFIG_JSON = "sea-config.json"


@dataclass
class PackageConfig:
    """The parts of ``package.json`` that affect a build."""

    name: str
    main: Optional[str] = None
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageConfig":
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ProjectConfigError(f"{PACKAGE_JSON} has no 'name' field")
        main = data.get("main")
        if main is not None and not isinstance(main, str):
            raise ProjectConfigError(f"'main' in {PACKAGE_JSON} must be a string")
        return cls(name=name, main=main, type=data.get("type"))

    @property
    def is_module(self) -> bool:
        return self.type == "module"


@dataclass
class SeaConfig:
    """
    A ``sea-config.json`` document.

    Attributes:
        main: Script embedded in the executable
        output: Name of the blob ``node --experimental-sea-config`` writes
        extra: Every other field, written back unchanged
    """

    main: str
    output: str
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeaConfig":
        extra = dict(data)
        main = extra.pop("main", None)
        output = extra.pop("output", None)
        if not isinstance(main, str) or not main:
            raise ProjectConfigError(f"{SEA_CONFIG_JSON} has no 'main' field")
        if not isinstance(output, str) or not output:
            raise ProjectConfigError(f"{SEA_CONFIG_JSON} has no 'output' field")
        return cls(main=main, output=output, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        data = {"main": self.main, "output": self.output}
        data.update(self.extra)
        return data

    def write(self, path: Path) -> None:
        """Write the document as pretty-printed JSON."""
        try:
            atomic_write(path, json.dumps(self.to_dict(), indent=2) + "\n")
        except OSError as e:
            raise ProjectConfigError(f"Error writing {path}: {e}") from e


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ProjectConfigError(f"Could not find the `{path.name}` file in {path.parent}") from e
    except OSError as e:
        raise ProjectConfigError(f"Could not open the `{path.name}` file: {e}") from e
    except json.JSONDecodeError as e:
        raise ProjectConfigError(f"Could not parse the `{path.name}` file: {e}") from e

    if not isinstance(data, dict):
        raise ProjectConfigError(f"`{path.name}` must contain a JSON object")
    return data


def read_package_config(project_dir: Path) -> PackageConfig:
    """
    Read ``package.json`` from a project directory.

    Raises:
        ProjectConfigError: If the file is missing, malformed or has no name
    """
    return PackageConfig.from_dict(_read_json(Path(project_dir) / PACKAGE_JSON))


def read_sea_config(project_dir: Path) -> SeaConfig:
    """
    Read ``sea-config.json`` from a project directory.

    Raises:
        ProjectConfigError: If the file is missing, malformed or incomplete
    """
    return SeaConfig.from_dict(_read_json(Path(project_dir) / SEA_CONFIG_JSON))


def needs_bundling(package: PackageConfig, force: bool = False) -> bool:
    """
    Decide whether the project must go through esbuild first.

    SEA only embeds a single CommonJS script, so ES module projects and
    TypeScript entry points are always bundled.

    Example:
        >>> needs_bundling(PackageConfig(name="app", main="index.mjs"))
        True
        >>> needs_bundling(PackageConfig(name="app", main="index.js"))
        False
    """
    if force or package.is_module:
        return True
    main = package.main or ""
    return main.endswith(".mjs") or main.endswith(".ts")


__all__ = [
    "PACKAGE_JSON",
    "SEA_CONFIG_JSON",
    "PackageConfig",
    "SeaConfig",
    "read_package_config",
    "read_sea_config",
    "needs_bundling",
]
