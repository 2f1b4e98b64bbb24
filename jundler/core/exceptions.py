"""
Centralized exception hierarchy for jundler.

This module defines the custom exceptions used across the codebase so that
callers (the CLI in particular) can tell failure kinds apart and report them
with full context.
"""

from pathlib import Path
from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class JundlerError(Exception):
    """Base exception for all jundler errors."""

    pass


class UnsupportedPlatformError(JundlerError):
    """Raised when the host OS/architecture pair is not a supported target."""

    def __init__(self, os_name: str, machine: str):
        self.os_name = os_name
        self.machine = machine
        super().__init__(
            f"Unsupported host platform: {os_name}/{machine}. "
            "Supported operating systems are macOS, Linux and Windows on "
            "x64, x86 or arm64."
        )


class ConfigError(JundlerError):
    """Raised when jundler configuration is invalid."""

    pass


# ============================================================================
# Artifact Cache Exceptions
# ============================================================================


class ArtifactCacheError(JundlerError):
    """Base exception for artifact cache errors."""

    pass


class FilesystemIoError(ArtifactCacheError):
    """
    A filesystem operation failed.

    ``action`` is phrased so that it reads naturally in
    "... while {action} {path}", e.g. "writing the lockfile at".
    """

    def __init__(self, action: str, path: Path, source: Optional[BaseException] = None):
        self.action = action
        self.path = Path(path)
        self.source = source
        message = f"An IO error occurred while {action} {self.path}"
        if source is not None:
            message += f": {source}"
        super().__init__(message)


class DownloadError(ArtifactCacheError):
    """A network transfer failed."""

    def __init__(self, url: str, source: Optional[BaseException] = None):
        self.url = url
        self.source = source
        message = f"An error occurred while downloading {url}"
        if source is not None:
            message += f": {source}"
        super().__init__(message)


class LockfileSerializationError(ArtifactCacheError):
    """The lockfile could not be serialized or deserialized."""

    pass


class UnparseableManifestError(ArtifactCacheError):
    """No line of an upstream checksum manifest could be parsed."""

    def __init__(self, message: str = "An error occurred while parsing the checksum file"):
        super().__init__(message)


class ChecksumMismatchError(ArtifactCacheError):
    """A computed digest does not match the expected one."""

    domain = "unknown"

    def __init__(self, path: Path, expected: bytes, actual: bytes):
        self.path = Path(path)
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch ({self.domain}) for file {self.path}! "
            f"Expected: {expected.hex()}, Actual: {actual.hex()}"
        )


class AuthenticityChecksumMismatchError(ChecksumMismatchError):
    """A downloaded archive does not match the digest published upstream."""

    domain = "authenticity"


class LocalIntegrityChecksumMismatchError(ChecksumMismatchError):
    """A cached blob no longer matches the digest recorded in the lockfile."""

    domain = "local-integrity"


class ArtifactNotFoundError(ArtifactCacheError):
    """The upstream manifest has no release for the requested platform."""

    def __init__(self, kind: str, version, os, arch):
        self.kind = kind
        self.version = version
        self.os = os
        self.arch = arch
        super().__init__(
            f"No {kind} release v{version} exists for {os.token}-{arch.token}"
        )


class ArchiveExtractionError(ArtifactCacheError):
    """Failed to extract an archive, or it lacks the expected executable."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


class CacheLockTimeout(ArtifactCacheError):
    """Raised when the cache lock cannot be acquired within the timeout."""

    pass


# ============================================================================
# Build Exceptions
# ============================================================================


class ProjectConfigError(JundlerError):
    """A project descriptor (package.json, sea-config.json) is unusable."""

    pass


class BuildError(JundlerError):
    """An external build step exited unsuccessfully."""

    def __init__(
        self,
        step: str,
        command: Optional[list] = None,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        self.step = step
        self.command = command or []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

        message = f"Error {step}"
        if returncode is not None:
            message += f" (exit code {returncode})"
        output = "\n".join(part for part in (stdout.strip(), stderr.strip()) if part)
        if output:
            message += f":\n{output}"
        super().__init__(message)
