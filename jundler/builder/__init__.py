"""
SEA build pipeline: project descriptors and the external build steps.
"""

from .project import (
    PackageConfig,
    SeaConfig,
    read_package_config,
    read_sea_config,
    needs_bundling,
)

from .builder import Builder, current_node_version

__all__ = [
    "PackageConfig",
    "SeaConfig",
    "read_package_config",
    "read_sea_config",
    "needs_bundling",
    "Builder",
    "current_node_version",
]
