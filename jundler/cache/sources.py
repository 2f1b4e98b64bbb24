"""
Upstream sources for the artifact kinds held in the cache.

The cache manager is generic; everything that differs between Node.js and
esbuild (URLs, archive layout, authenticity listing, blob naming) lives in a
source object.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from jundler.cache.manifest import parse_manifest, parse_registry_metadata
from jundler.cache.models import ArtifactMetadata, ArtifactVersion, ManifestEntry
from jundler.core.download import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    DownloadProgress,
    download_file,
    fetch_text,
)
from jundler.core.platform import Architecture, OperatingSystem, PlatformTarget

logger = logging.getLogger(__name__)

NODE_DIST_URL = "https://nodejs.org/dist"
NPM_REGISTRY_URL = "https://registry.npmjs.org"

# Default bundler version used when bundling is requested
ESBUILD_VERSION = ArtifactVersion(0, 23, 0)


class ArtifactSource(ABC):
    """
    Where and how to obtain one kind of artifact.

    Attributes:
        kind: Artifact kind, also the cache subdirectory name
        authenticity_algorithm: Hash algorithm of the upstream digests
    """

    kind: str = ""
    authenticity_algorithm: str = "sha256"

    @abstractmethod
    def manifest_url(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        """URL of the authenticity listing covering the artifact."""
        pass

    @abstractmethod
    def archive_url(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        pass

    @abstractmethod
    def archive_filename(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        pass

    @abstractmethod
    def executable_name(self, os: OperatingSystem) -> str:
        pass

    @abstractmethod
    def locate_executable(
        self, extract_dir: Path, version: ArtifactVersion, target: PlatformTarget
    ) -> Path:
        """Path of the executable inside an extracted archive."""
        pass

    @abstractmethod
    def fetch_manifest(
        self,
        version: ArtifactVersion,
        target: PlatformTarget,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> List[ManifestEntry]:
        """
        Fetch and parse the authenticity listing.

        Raises:
            DownloadError: If the listing cannot be fetched
            UnparseableManifestError: If nothing usable could be parsed
        """
        pass

    def fetch_archive(
        self,
        version: ArtifactVersion,
        target: PlatformTarget,
        destination_dir: Path,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ) -> Path:
        """
        Download the release archive into ``destination_dir``.

        Raises:
            DownloadError: If the transfer fails
            FilesystemIoError: If the archive cannot be written
        """
        destination = Path(destination_dir) / self.archive_filename(version, target)
        return download_file(
            self.archive_url(version, target),
            destination,
            progress_callback=progress_callback,
            timeout=timeout,
            max_retries=max_retries,
        )

    def blob_name(self, metadata: ArtifactMetadata) -> str:
        """File name of the compressed binary in the cache directory."""
        return f"{self.kind}-{metadata}.zst"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r})"


class NodeSource(ArtifactSource):
    """
    Node.js runtime binaries from the official distribution site.

    Example:
        >>> source = NodeSource()
        >>> source.archive_url(ArtifactVersion(22, 3, 0), PlatformTarget.parse("linux", "x64"))
        'https://nodejs.org/dist/v22.3.0/node-v22.3.0-linux-x64.tar.gz'
    """

    kind = "node"
    authenticity_algorithm = "sha256"

    def __init__(self, dist_url: str = NODE_DIST_URL):
        self.dist_url = dist_url.rstrip("/")

    def _release_name(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        os_token, arch_token = target.render()
        return f"node-v{version}-{os_token}-{arch_token}"

    def manifest_url(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        return f"{self.dist_url}/v{version}/SHASUMS256.txt"

    def archive_filename(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        extension = ".zip" if target.os == OperatingSystem.WINDOWS else ".tar.gz"
        return self._release_name(version, target) + extension

    def archive_url(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        return f"{self.dist_url}/v{version}/{self.archive_filename(version, target)}"

    def executable_name(self, os: OperatingSystem) -> str:
        return "node.exe" if os == OperatingSystem.WINDOWS else "node"

    def locate_executable(
        self, extract_dir: Path, version: ArtifactVersion, target: PlatformTarget
    ) -> Path:
        root = Path(extract_dir) / self._release_name(version, target)
        if target.os == OperatingSystem.WINDOWS:
            return root / "node.exe"
        return root / "bin" / "node"

    def fetch_manifest(
        self,
        version: ArtifactVersion,
        target: PlatformTarget,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> List[ManifestEntry]:
        url = self.manifest_url(version, target)
        logger.debug(f"Fetching Node.js checksums from {url}")
        return parse_manifest(fetch_text(url, timeout, max_retries), product="node")


# npm platform and architecture names (process.platform / process.arch)
_NPM_OS_TOKENS = {
    OperatingSystem.MACOS: "darwin",
    OperatingSystem.LINUX: "linux",
    OperatingSystem.WINDOWS: "win32",
}

_NPM_ARCH_TOKENS = {
    Architecture.X64: "x64",
    Architecture.X86: "ia32",
    Architecture.ARM64: "arm64",
}


def npm_platform(target: PlatformTarget) -> Tuple[str, str]:
    """Render a target as npm's ``(platform, arch)`` pair, e.g. ``("win32", "ia32")``."""
    return _NPM_OS_TOKENS[target.os], _NPM_ARCH_TOKENS[target.arch]


class EsbuildSource(ArtifactSource):
    """
    esbuild binaries from the npm registry.

    Each platform has its own package (``@esbuild/linux-x64`` and so on)
    whose tarball holds the prebuilt executable. Authenticity is checked
    against the SHA-512 ``dist.integrity`` value of the package version.
    """

    kind = "esbuild"
    authenticity_algorithm = "sha512"

    def __init__(self, registry_url: str = NPM_REGISTRY_URL):
        self.registry_url = registry_url.rstrip("/")

    @staticmethod
    def package_name(target: PlatformTarget) -> str:
        """Unscoped npm package name, e.g. ``win32-ia32``."""
        return "-".join(npm_platform(target))

    def manifest_url(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        return f"{self.registry_url}/@esbuild/{self.package_name(target)}/{version}"

    def archive_filename(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        return f"{self.package_name(target)}-{version}.tgz"

    def archive_url(self, version: ArtifactVersion, target: PlatformTarget) -> str:
        package = self.package_name(target)
        return f"{self.registry_url}/@esbuild/{package}/-/{self.archive_filename(version, target)}"

    def executable_name(self, os: OperatingSystem) -> str:
        return "esbuild.exe" if os == OperatingSystem.WINDOWS else "esbuild"

    def locate_executable(
        self, extract_dir: Path, version: ArtifactVersion, target: PlatformTarget
    ) -> Path:
        package_dir = Path(extract_dir) / "package"
        if target.os == OperatingSystem.WINDOWS:
            return package_dir / "esbuild.exe"
        return package_dir / "bin" / "esbuild"

    def fetch_manifest(
        self,
        version: ArtifactVersion,
        target: PlatformTarget,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> List[ManifestEntry]:
        url = self.manifest_url(version, target)
        logger.debug(f"Fetching esbuild package metadata from {url}")
        metadata = ArtifactMetadata(version=version, os=target.os, arch=target.arch)
        return parse_registry_metadata(fetch_text(url, timeout, max_retries), metadata)


__all__ = [
    "ArtifactSource",
    "NodeSource",
    "EsbuildSource",
    "ESBUILD_VERSION",
    "npm_platform",
    "NODE_DIST_URL",
    "NPM_REGISTRY_URL",
]
