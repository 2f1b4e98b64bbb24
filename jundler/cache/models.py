"""
Value types of the artifact cache.

An artifact is identified by its :class:`ArtifactMetadata` (version, OS,
architecture). Equality on the full key is the only lookup the cache
performs; there is no range matching.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from jundler.core.platform import Architecture, OperatingSystem, PlatformTarget

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


def _field(data: dict, key: str) -> str:
    """Read a string field of a lockfile record."""
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"Field '{key}' must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True, order=True)
class ArtifactVersion:
    """A fully resolved ``major.minor.patch`` version."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: str) -> "ArtifactVersion":
        """
        Parse ``"22.3.0"`` (or ``"v22.3.0"``).

        Raises:
            ValueError: If value is not a dotted triple of decimal integers
        """
        match = _VERSION_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid version {value!r}: expected MAJOR.MINOR.PATCH")
        return cls(*(int(part) for part in match.groups()))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class ArtifactMetadata:
    """Cache key: uniquely identifies one binary artifact of a kind."""

    version: ArtifactVersion
    os: OperatingSystem
    arch: Architecture

    @property
    def target(self) -> PlatformTarget:
        return PlatformTarget(self.os, self.arch)

    def to_dict(self) -> dict:
        return {"version": str(self.version), "os": self.os.token, "arch": self.arch.token}

    @staticmethod
    def from_dict(data: dict) -> "ArtifactMetadata":
        target = PlatformTarget.parse(_field(data, "os"), _field(data, "arch"))
        return ArtifactMetadata(
            version=ArtifactVersion.parse(_field(data, "version")),
            os=target.os,
            arch=target.arch,
        )

    def __str__(self) -> str:
        return f"v{self.version}-{self.os.token}-{self.arch.token}"


@dataclass(frozen=True)
class ManifestEntry:
    """
    One release archive listed upstream.

    Attributes:
        checksum: Authenticity digest published for the archive
        metadata: The artifact the archive contains
    """

    checksum: bytes
    metadata: ArtifactMetadata


@dataclass(frozen=True)
class CachedArtifact:
    """
    A compressed binary held in the cache.

    Attributes:
        metadata: Cache key
        checksum: Local-integrity SHA-256 digest of the compressed blob
        path: Location of the compressed blob
    """

    metadata: ArtifactMetadata
    checksum: bytes
    path: Path

    def to_dict(self) -> dict:
        return {
            "metadata": self.metadata.to_dict(),
            "checksum": self.checksum.hex(),
            "path": str(self.path),
        }

    @staticmethod
    def from_dict(data: dict) -> "CachedArtifact":
        return CachedArtifact(
            metadata=ArtifactMetadata.from_dict(data["metadata"]),
            checksum=bytes.fromhex(_field(data, "checksum")),
            path=Path(_field(data, "path")),
        )


__all__ = ["ArtifactVersion", "ArtifactMetadata", "ManifestEntry", "CachedArtifact"]
