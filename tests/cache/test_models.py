"""
Unit tests for cache value types.
"""

from pathlib import Path

import pytest

from jundler.cache.models import ArtifactMetadata, ArtifactVersion, CachedArtifact
from jundler.core.platform import Architecture, OperatingSystem


class TestArtifactVersion:
    def test_parse(self):
        assert ArtifactVersion.parse("22.3.0") == ArtifactVersion(22, 3, 0)
        assert ArtifactVersion.parse("v18.20.4") == ArtifactVersion(18, 20, 4)

    @pytest.mark.parametrize("value", ["22", "22.3", "22.3.0-rc.1", "a.b.c", ""])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError, match="Invalid version"):
            ArtifactVersion.parse(value)

    def test_ordering(self):
        assert ArtifactVersion(20, 10, 0) < ArtifactVersion(22, 3, 0)
        assert ArtifactVersion(22, 3, 0) < ArtifactVersion(22, 10, 0)

    def test_str(self):
        assert str(ArtifactVersion(0, 23, 0)) == "0.23.0"


class TestCachedArtifact:
    def test_dict_round_trip(self):
        artifact = CachedArtifact(
            metadata=ArtifactMetadata(
                ArtifactVersion(22, 3, 0), OperatingSystem.WINDOWS, Architecture.X86
            ),
            checksum=bytes.fromhex(
                "a56e1446e45adbfc716023c8e903eef829e84e5ac8aae3a65b455213bef9cdb1"
            ),
            path=Path("cache/node-v22.3.0-win-x86.zst"),
        )

        data = artifact.to_dict()

        assert data["metadata"] == {"version": "22.3.0", "os": "win", "arch": "x86"}
        assert CachedArtifact.from_dict(data) == artifact

    def test_metadata_str(self):
        meta = ArtifactMetadata(ArtifactVersion(22, 3, 0), OperatingSystem.MACOS, Architecture.ARM64)

        assert str(meta) == "v22.3.0-darwin-arm64"
