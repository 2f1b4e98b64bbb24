"""
Pytest configuration and shared fixtures for jundler tests.
"""

import hashlib
import io
import tarfile
import zipfile
from pathlib import Path

import pytest

from jundler.core.platform import OperatingSystem, PlatformTarget, clear_platform_cache

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture(autouse=True)
def reset_platform_cache():
    """Host detection is memoized; keep tests independent of each other."""
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def node_sumfile() -> str:
    """Real SHASUMS256.txt published for Node.js 22.3.0."""
    return (DATA_DIR / "SHASUMS256-v22.3.0.txt").read_text(encoding="utf-8")


def _tar_gz(members: dict) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def _zip(members: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_node_archive():
    """
    Factory building a Node.js release archive in memory.

    Returns the archive bytes, laid out like the official release.
    """

    def _make(version: str, target: PlatformTarget, executable: bytes = b"#!node binary") -> bytes:
        os_token, arch_token = target.render()
        root = f"node-v{version}-{os_token}-{arch_token}"
        if target.os == OperatingSystem.WINDOWS:
            return _zip({f"{root}/node.exe": executable, f"{root}/README.md": b"readme"})
        return _tar_gz(
            {
                f"{root}/bin/node": executable,
                f"{root}/include/node/node.h": b"/* header */",
                f"{root}/README.md": b"readme",
            }
        )

    return _make


@pytest.fixture
def make_esbuild_archive():
    """Factory building an @esbuild/<platform> npm tarball in memory."""

    def _make(target: PlatformTarget, executable: bytes = b"esbuild binary") -> bytes:
        if target.os == OperatingSystem.WINDOWS:
            members = {"package/esbuild.exe": executable}
        else:
            members = {"package/bin/esbuild": executable}
        members["package/package.json"] = b'{"name": "@esbuild/platform"}'
        return _tar_gz(members)

    return _make


@pytest.fixture
def sha256_hex():
    """Hex SHA-256 of some bytes."""
    return lambda data: hashlib.sha256(data).hexdigest()
