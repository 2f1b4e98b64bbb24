"""
Core functionality for jundler.

This package contains the foundational modules that the artifact cache and
the build pipeline depend on.
"""

from .directory import (
    get_global_cache_dir,
    get_user_config_dir,
    ensure_cache_structure,
)

from .platform import (
    OperatingSystem,
    Architecture,
    PlatformTarget,
    render,
    current_host,
    get_supported_targets,
    clear_platform_cache,
)

from .exceptions import (
    JundlerError,
    UnsupportedPlatformError,
    ConfigError,
    ArtifactCacheError,
    FilesystemIoError,
    DownloadError,
    LockfileSerializationError,
    UnparseableManifestError,
    ChecksumMismatchError,
    AuthenticityChecksumMismatchError,
    LocalIntegrityChecksumMismatchError,
    ArtifactNotFoundError,
    ArchiveExtractionError,
    UnsupportedArchiveFormat,
    InsecureArchiveError,
    CacheLockTimeout,
    ProjectConfigError,
    BuildError,
)

__all__ = [
    "get_global_cache_dir",
    "get_user_config_dir",
    "ensure_cache_structure",
    "OperatingSystem",
    "Architecture",
    "PlatformTarget",
    "render",
    "current_host",
    "get_supported_targets",
    "clear_platform_cache",
    "JundlerError",
    "UnsupportedPlatformError",
    "ConfigError",
    "ArtifactCacheError",
    "FilesystemIoError",
    "DownloadError",
    "LockfileSerializationError",
    "UnparseableManifestError",
    "ChecksumMismatchError",
    "AuthenticityChecksumMismatchError",
    "LocalIntegrityChecksumMismatchError",
    "ArtifactNotFoundError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "CacheLockTimeout",
    "ProjectConfigError",
    "BuildError",
]
