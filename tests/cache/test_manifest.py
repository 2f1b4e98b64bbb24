"""
Unit tests for the checksum manifest and registry metadata parsers.
"""

import base64
import hashlib
import json

import pytest

from jundler.cache.manifest import parse_manifest, parse_manifest_line, parse_registry_metadata
from jundler.cache.models import ArtifactMetadata, ArtifactVersion
from jundler.core.exceptions import UnparseableManifestError
from jundler.core.platform import Architecture, OperatingSystem

V22 = ArtifactVersion(22, 3, 0)


class TestParseManifest:
    """Test parsing of SHASUMS256.txt listings."""

    def test_real_sumfile(self, node_sumfile):
        """Test only consumable platform archives are kept, in order."""
        entries = parse_manifest(node_sumfile)

        assert [(e.checksum.hex(), e.metadata) for e in entries] == [
            (
                "b6723f1e4972af1ca8a7ef9ec63305ee8cd4380fce3071e0e1630dfe055d77e3",
                ArtifactMetadata(V22, OperatingSystem.MACOS, Architecture.ARM64),
            ),
            (
                "7fe139f9d769d65c27212f8be8f858e1ee522edf3a66eed1d08d42ba102995f8",
                ArtifactMetadata(V22, OperatingSystem.MACOS, Architecture.X64),
            ),
            (
                "0e25b9a4bc78080de826a90dff82743bec6d9c5085186e75521dc195c8be9ce3",
                ArtifactMetadata(V22, OperatingSystem.LINUX, Architecture.ARM64),
            ),
            (
                "a6d4fbf4306a883b8e1d235a8a890be84b9d95d2d39b929520bed64da41ce540",
                ArtifactMetadata(V22, OperatingSystem.LINUX, Architecture.X64),
            ),
            (
                "727426f9a97238d2dc269fb00bbe50c77629f76adb99a19d68abc41e8cdb4bc5",
                ArtifactMetadata(V22, OperatingSystem.WINDOWS, Architecture.ARM64),
            ),
            (
                "3dadc19ba6b36c6fb93aeda08247107fdb2ed55c24831304566d32de6b6080d7",
                ArtifactMetadata(V22, OperatingSystem.WINDOWS, Architecture.X64),
            ),
            (
                "a56e1446e45adbfc716023c8e903eef829e84e5ac8aae3a65b455213bef9cdb1",
                ArtifactMetadata(V22, OperatingSystem.WINDOWS, Architecture.X86),
            ),
        ]

    def test_checksums_are_raw_bytes(self, node_sumfile):
        entries = parse_manifest(node_sumfile)

        assert all(isinstance(e.checksum, bytes) and len(e.checksum) == 32 for e in entries)

    def test_crlf_line_endings(self, node_sumfile):
        """Test Windows line endings do not break matching."""
        entries = parse_manifest(node_sumfile.replace("\n", "\r\n"))

        assert len(entries) == 7

    def test_other_version(self):
        digest = "ab" * 32
        entries = parse_manifest(f"{digest}  node-v20.1.0-linux-arm64.tar.gz\n")

        assert entries[0].metadata.arch == Architecture.ARM64
        assert entries[0].metadata.version == ArtifactVersion(20, 1, 0)

    @pytest.mark.parametrize(
        "filename",
        [
            "node-v22.3.0-linux-x64.zip",
            "node-v22.3.0-darwin-arm64.zip",
            "node-v22.3.0-win-x64.tar.gz",
            "node-v22.3.0-linux-x86_64.tar.gz",
            "node-v22.3.0-linux-aarch64.tar.gz",
        ],
    )
    def test_rejected_lines(self, filename):
        """Test arch tokens are exact and the archive type follows the OS."""
        with pytest.raises(ValueError):
            parse_manifest_line(f"{'ab' * 32}  {filename}")

    def test_mismatched_archive_type_is_skipped(self):
        digest = "ab" * 32
        text = f"{digest}  node-v22.3.0-win-x64.tar.gz\n{digest}  node-v22.3.0-win-x64.zip\n"

        entries = parse_manifest(text)

        assert [str(e.metadata) for e in entries] == ["v22.3.0-win-x64"]

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "not a manifest",
            ("ab" * 32) + "  node-v22.3.0-linux-x64.tar.xz",
            ("ab" * 32) + "  node-v22.3.0-headers.tar.gz",
            ("ab" * 32) + " node-v22.3.0-linux-x64.tar.gz",  # one space
            ("AB" * 32) + "  node-v22.3.0-linux-x64.tar.gz",  # uppercase hex
            ("ab" * 31) + "  node-v22.3.0-linux-x64.tar.gz",  # short digest
            ("ab" * 32) + "  node-v22.3-linux-x64.tar.gz",
        ],
    )
    def test_nothing_parseable(self, text):
        """Test a listing without a single usable line is an error."""
        with pytest.raises(UnparseableManifestError):
            parse_manifest(text)

    def test_skips_bad_lines_among_good(self):
        digest = "cd" * 32
        text = "\n".join(
            [
                "garbage",
                f"{digest}  node-v22.3.0-linux-armv7l.tar.gz",
                f"{digest}  node-v22.3.0-darwin-arm64.tar.gz",
                f"{digest}  win-x64/node.exe",
            ]
        )

        entries = parse_manifest(text)

        assert len(entries) == 1
        assert str(entries[0].metadata) == "v22.3.0-darwin-arm64"


class TestParseManifestLine:
    def test_single_line(self):
        entry = parse_manifest_line(("12" * 32) + "  node-v18.20.4-win-x86.zip")

        assert entry.metadata == ArtifactMetadata(
            ArtifactVersion(18, 20, 4), OperatingSystem.WINDOWS, Architecture.X86
        )

    def test_other_product(self):
        line = ("12" * 32) + "  esbuild-v0.23.0-linux-x64.tar.gz"

        assert parse_manifest_line(line, product="esbuild").metadata.version == ArtifactVersion(0, 23, 0)
        with pytest.raises(ValueError):
            parse_manifest_line(line)


class TestParseRegistryMetadata:
    """Test reading npm dist.integrity."""

    META = ArtifactMetadata(ArtifactVersion(0, 23, 0), OperatingSystem.LINUX, Architecture.X64)

    def test_sha512_integrity(self):
        digest = hashlib.sha512(b"tarball").digest()
        document = {
            "name": "@esbuild/linux-x64",
            "version": "0.23.0",
            "dist": {"integrity": "sha512-" + base64.b64encode(digest).decode()},
        }

        entries = parse_registry_metadata(json.dumps(document), self.META)

        assert len(entries) == 1
        assert entries[0].checksum == digest
        assert entries[0].metadata == self.META

    def test_accepts_decoded_document(self):
        digest = hashlib.sha512(b"tarball").digest()
        document = {"dist": {"integrity": "sha512-" + base64.b64encode(digest).decode()}}

        assert parse_registry_metadata(document, self.META)[0].checksum == digest

    @pytest.mark.parametrize(
        "document",
        [
            "{not json",
            "[]",
            json.dumps({"dist": {}}),
            json.dumps({"dist": {"integrity": "sha1-abcd"}}),
            json.dumps({"dist": {"integrity": "sha512-!!!notbase64"}}),
            json.dumps({"dist": {"integrity": "sha512-" + base64.b64encode(b"short").decode()}}),
        ],
    )
    def test_unusable_document(self, document):
        with pytest.raises(UnparseableManifestError):
            parse_registry_metadata(document, self.META)
