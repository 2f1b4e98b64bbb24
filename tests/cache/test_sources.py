"""
Unit tests for the Node.js and esbuild artifact sources.
"""

from pathlib import Path

import pytest

from jundler.cache.models import ArtifactMetadata, ArtifactVersion
from jundler.cache.sources import EsbuildSource, NodeSource, npm_platform
from jundler.core.platform import Architecture, OperatingSystem, PlatformTarget

V22 = ArtifactVersion(22, 3, 0)
ESBUILD = ArtifactVersion(0, 23, 0)


class TestNodeSource:
    """Test Node.js distribution URLs and layout."""

    def test_manifest_url(self):
        source = NodeSource()

        assert (
            source.manifest_url(V22, PlatformTarget.parse("linux", "x64"))
            == "https://nodejs.org/dist/v22.3.0/SHASUMS256.txt"
        )

    @pytest.mark.parametrize(
        "os_token,arch_token,filename",
        [
            ("linux", "x64", "node-v22.3.0-linux-x64.tar.gz"),
            ("darwin", "arm64", "node-v22.3.0-darwin-arm64.tar.gz"),
            ("win", "x86", "node-v22.3.0-win-x86.zip"),
        ],
    )
    def test_archive_filename(self, os_token, arch_token, filename):
        source = NodeSource()
        target = PlatformTarget.parse(os_token, arch_token)

        assert source.archive_filename(V22, target) == filename
        assert source.archive_url(V22, target) == f"https://nodejs.org/dist/v22.3.0/{filename}"

    def test_custom_mirror(self):
        source = NodeSource("https://mirror.example.com/node/")

        assert source.manifest_url(V22, PlatformTarget.parse("linux", "x64")) == (
            "https://mirror.example.com/node/v22.3.0/SHASUMS256.txt"
        )

    def test_locate_executable(self):
        source = NodeSource()
        root = Path("/scratch")

        assert source.locate_executable(root, V22, PlatformTarget.parse("linux", "arm64")) == (
            root / "node-v22.3.0-linux-arm64" / "bin" / "node"
        )
        assert source.locate_executable(root, V22, PlatformTarget.parse("win", "x64")) == (
            root / "node-v22.3.0-win-x64" / "node.exe"
        )

    def test_blob_name(self):
        meta = ArtifactMetadata(V22, OperatingSystem.LINUX, Architecture.X64)

        assert NodeSource().blob_name(meta) == "node-v22.3.0-linux-x64.zst"

    def test_authenticity_algorithm(self):
        assert NodeSource.authenticity_algorithm == "sha256"


class TestNpmPlatform:
    @pytest.mark.parametrize(
        "os_,arch,expected",
        [
            (OperatingSystem.MACOS, Architecture.ARM64, ("darwin", "arm64")),
            (OperatingSystem.LINUX, Architecture.X64, ("linux", "x64")),
            (OperatingSystem.WINDOWS, Architecture.X86, ("win32", "ia32")),
        ],
    )
    def test_tokens(self, os_, arch, expected):
        assert npm_platform(PlatformTarget(os_, arch)) == expected


class TestEsbuildSource:
    """Test npm registry URLs and package layout."""

    def test_package_name(self):
        assert EsbuildSource.package_name(PlatformTarget.parse("win", "x64")) == "win32-x64"

    def test_urls(self):
        source = EsbuildSource()
        target = PlatformTarget.parse("linux", "arm64")

        assert source.manifest_url(ESBUILD, target) == (
            "https://registry.npmjs.org/@esbuild/linux-arm64/0.23.0"
        )
        assert source.archive_filename(ESBUILD, target) == "linux-arm64-0.23.0.tgz"
        assert source.archive_url(ESBUILD, target) == (
            "https://registry.npmjs.org/@esbuild/linux-arm64/-/linux-arm64-0.23.0.tgz"
        )

    def test_locate_executable(self):
        source = EsbuildSource()
        root = Path("/scratch")

        assert source.locate_executable(root, ESBUILD, PlatformTarget.parse("darwin", "x64")) == (
            root / "package" / "bin" / "esbuild"
        )
        assert source.locate_executable(root, ESBUILD, PlatformTarget.parse("win", "arm64")) == (
            root / "package" / "esbuild.exe"
        )

    def test_executable_name(self):
        source = EsbuildSource()

        assert source.executable_name(OperatingSystem.WINDOWS) == "esbuild.exe"
        assert source.executable_name(OperatingSystem.LINUX) == "esbuild"

    def test_blob_name(self):
        meta = ArtifactMetadata(ESBUILD, OperatingSystem.MACOS, Architecture.ARM64)

        assert EsbuildSource().blob_name(meta) == "esbuild-v0.23.0-darwin-arm64.zst"

    def test_authenticity_algorithm(self):
        assert EsbuildSource.authenticity_algorithm == "sha512"
