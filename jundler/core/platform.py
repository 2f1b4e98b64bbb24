"""
Platform identification for jundler.

This module models the closed set of operating systems and CPU architectures
Node.js publishes runtime builds for, and detects which of them the current
host is.

The string forms of these values are protocol tokens: they are embedded
verbatim into upstream download URLs, archive names and checksum manifest
lines (``node-v22.3.0-darwin-arm64.tar.gz``). They are therefore spelled out
in explicit tables rather than derived from enum member names.

Usage:
    from jundler.core.platform import current_host, render

    target = current_host()
    os_token, arch_token = render(target)
    print(f"Host target: {os_token}-{arch_token}")
"""

import functools
import platform
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from jundler.core.exceptions import UnsupportedPlatformError


class OperatingSystem(Enum):
    """Operating systems supported as build targets."""

    MACOS = "macos"
    LINUX = "linux"
    WINDOWS = "windows"

    @property
    def token(self) -> str:
        """Upstream token (``darwin``, ``linux``, ``win``)."""
        return _OS_TOKENS[self]

    @property
    def is_posix(self) -> bool:
        return self is not OperatingSystem.WINDOWS

    @classmethod
    def from_name(cls, name: str) -> "OperatingSystem":
        """
        Parse a user-facing OS name.

        Accepts the upstream tokens as well as common spellings
        (``macos``, ``windows``).

        Raises:
            ValueError: If the name is not recognized
        """
        key = name.strip().lower()
        try:
            return _OS_NAMES[key]
        except KeyError:
            raise ValueError(
                f"Unknown operating system: {name!r} "
                f"(expected one of: {', '.join(sorted(_OS_NAMES))})"
            ) from None

    def __str__(self) -> str:
        return self.token


class Architecture(Enum):
    """CPU architectures supported as build targets."""

    X64 = "x64"
    X86 = "x86"
    ARM64 = "arm64"

    @property
    def token(self) -> str:
        """Upstream token (``x64``, ``x86``, ``arm64``)."""
        return _ARCH_TOKENS[self]

    @classmethod
    def from_name(cls, name: str) -> "Architecture":
        """
        Parse a user-facing architecture name.

        Raises:
            ValueError: If the name is not recognized
        """
        key = name.strip().lower()
        try:
            return _ARCH_NAMES[key]
        except KeyError:
            raise ValueError(
                f"Unknown architecture: {name!r} "
                f"(expected one of: {', '.join(sorted(_ARCH_NAMES))})"
            ) from None

    def __str__(self) -> str:
        return self.token


_OS_TOKENS = {
    OperatingSystem.MACOS: "darwin",
    OperatingSystem.LINUX: "linux",
    OperatingSystem.WINDOWS: "win",
}

_ARCH_TOKENS = {
    Architecture.X64: "x64",
    Architecture.X86: "x86",
    Architecture.ARM64: "arm64",
}

# Inverse tables. Upstream listings occasionally use the GNU spellings.
_OS_FROM_TOKEN = {token: os_ for os_, token in _OS_TOKENS.items()}

_ARCH_FROM_TOKEN = {token: arch for arch, token in _ARCH_TOKENS.items()}
_ARCH_FROM_TOKEN.update({"aarch64": Architecture.ARM64, "x86_64": Architecture.X64})

_OS_NAMES = dict(_OS_FROM_TOKEN)
_OS_NAMES.update({"macos": OperatingSystem.MACOS, "windows": OperatingSystem.WINDOWS})

_ARCH_NAMES = dict(_ARCH_FROM_TOKEN)
_ARCH_NAMES.update({"amd64": Architecture.X64})


@dataclass(frozen=True)
class PlatformTarget:
    """
    An (operating system, architecture) pair.

    Attributes:
        os: Target operating system
        arch: Target CPU architecture
    """

    os: OperatingSystem
    arch: Architecture

    def render(self) -> Tuple[str, str]:
        """Return the ``(os_token, arch_token)`` pair used upstream."""
        return render(self)

    @classmethod
    def parse(cls, os_token: str, arch_token: str) -> "PlatformTarget":
        """
        Inverse of :meth:`render`.

        Example:
            >>> PlatformTarget.parse("darwin", "arm64")
            PlatformTarget(os=<OperatingSystem.MACOS: 'macos'>, arch=<Architecture.ARM64: 'arm64'>)
        """
        return cls(parse_os_token(os_token), parse_arch_token(arch_token))

    def __str__(self) -> str:
        return f"{self.os.token}-{self.arch.token}"


def render(target: PlatformTarget) -> Tuple[str, str]:
    """
    Render a target to its upstream tokens.

    Example:
        >>> render(PlatformTarget(OperatingSystem.WINDOWS, Architecture.X64))
        ('win', 'x64')
    """
    return _OS_TOKENS[target.os], _ARCH_TOKENS[target.arch]


def parse_os_token(token: str) -> OperatingSystem:
    """
    Parse an upstream OS token.

    Raises:
        ValueError: If the token is not one of ``darwin``, ``linux``, ``win``
    """
    try:
        return _OS_FROM_TOKEN[token]
    except KeyError:
        raise ValueError(f"Unknown OS token: {token!r}") from None


def parse_arch_token(token: str) -> Architecture:
    """
    Parse an upstream architecture token.

    Raises:
        ValueError: If the token is not a known architecture token
    """
    try:
        return _ARCH_FROM_TOKEN[token]
    except KeyError:
        raise ValueError(f"Unknown architecture token: {token!r}") from None


@functools.lru_cache(maxsize=1)
def current_host() -> PlatformTarget:
    """
    Detect the target describing the running machine.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformTarget of the host

    Raises:
        UnsupportedPlatformError: If the host OS or architecture is not supported
    """
    system = platform.system()
    machine = platform.machine()

    os_ = _detect_os(system)
    arch = _detect_architecture(machine)

    if os_ is None or arch is None:
        raise UnsupportedPlatformError(system, machine)

    return PlatformTarget(os_, arch)


def _detect_os(system: str):
    """Normalize ``platform.system()`` output, or None if unsupported."""
    system = system.lower()

    if system == "darwin":
        return OperatingSystem.MACOS
    elif system == "linux":
        return OperatingSystem.LINUX
    elif system == "windows":
        return OperatingSystem.WINDOWS
    return None


def _detect_architecture(machine: str):
    """Normalize ``platform.machine()`` output, or None if unsupported."""
    machine = machine.lower()

    if machine in ("x86_64", "amd64", "x64"):
        return Architecture.X64
    elif machine in ("aarch64", "arm64"):
        return Architecture.ARM64
    elif machine in ("i386", "i686", "x86"):
        return Architecture.X86
    return None


def get_supported_targets() -> List[PlatformTarget]:
    """
    Get all nine supported targets.

    Example:
        >>> ", ".join(str(t) for t in get_supported_targets())
        'darwin-x64, darwin-x86, darwin-arm64, linux-x64, ...'
    """
    return [PlatformTarget(os_, arch) for os_ in OperatingSystem for arch in Architecture]


def clear_platform_cache():
    """
    Clear the host detection cache.

    Forces the next call to current_host() to re-detect. Useful for testing.
    """
    current_host.cache_clear()


__all__ = [
    "OperatingSystem",
    "Architecture",
    "PlatformTarget",
    "render",
    "parse_os_token",
    "parse_arch_token",
    "current_host",
    "get_supported_targets",
    "clear_platform_cache",
]
