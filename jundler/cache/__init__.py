"""
Artifact cache subsystem.

Downloads, verifies, repacks and indexes the platform binaries (Node.js
runtime, esbuild bundler) that a build needs.
"""

from .models import (
    ArtifactVersion,
    ArtifactMetadata,
    ManifestEntry,
    CachedArtifact,
)

from .manifest import parse_manifest, parse_registry_metadata

from .lockfile import LockfileStore

from .sources import (
    ArtifactSource,
    NodeSource,
    EsbuildSource,
    ESBUILD_VERSION,
)

from .manager import (
    ArtifactCacheManager,
    create_cache_manager,
)

__all__ = [
    "ArtifactVersion",
    "ArtifactMetadata",
    "ManifestEntry",
    "CachedArtifact",
    "parse_manifest",
    "parse_registry_metadata",
    "LockfileStore",
    "ArtifactSource",
    "NodeSource",
    "EsbuildSource",
    "ESBUILD_VERSION",
    "ArtifactCacheManager",
    "create_cache_manager",
]
