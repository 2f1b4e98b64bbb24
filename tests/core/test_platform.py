"""
Unit tests for platform identification.
"""

import pytest
from unittest.mock import patch

from jundler.core.exceptions import UnsupportedPlatformError
from jundler.core.platform import (
    Architecture,
    OperatingSystem,
    PlatformTarget,
    current_host,
    get_supported_targets,
    parse_arch_token,
    parse_os_token,
    render,
)


class TestTokens:
    """Test upstream token rendering and parsing."""

    def test_render_tokens(self):
        """Test each OS/arch renders to its upstream token."""
        assert render(PlatformTarget(OperatingSystem.MACOS, Architecture.ARM64)) == ("darwin", "arm64")
        assert render(PlatformTarget(OperatingSystem.LINUX, Architecture.X64)) == ("linux", "x64")
        assert render(PlatformTarget(OperatingSystem.WINDOWS, Architecture.X86)) == ("win", "x86")

    @pytest.mark.parametrize("target", get_supported_targets(), ids=str)
    def test_render_parse_inverse(self, target):
        """Test parsing a rendered target gives the target back."""
        assert PlatformTarget.parse(*render(target)) == target

    def test_supported_targets_are_distinct(self):
        """Test there are nine distinct supported targets."""
        targets = get_supported_targets()
        assert len(targets) == 9
        assert len(set(targets)) == 9
        assert len({render(t) for t in targets}) == 9

    def test_gnu_arch_aliases(self):
        """Test aarch64 and x86_64 are accepted."""
        assert parse_arch_token("aarch64") == Architecture.ARM64
        assert parse_arch_token("x86_64") == Architecture.X64

    def test_unknown_tokens(self):
        """Test unknown tokens raise ValueError."""
        with pytest.raises(ValueError, match="Unknown OS token"):
            parse_os_token("aix")
        with pytest.raises(ValueError, match="Unknown architecture token"):
            parse_arch_token("ppc64le")

    def test_str(self):
        """Test string form of a target."""
        assert str(PlatformTarget.parse("win", "arm64")) == "win-arm64"


class TestFromName:
    """Test user-facing name parsing."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("macos", OperatingSystem.MACOS),
            ("darwin", OperatingSystem.MACOS),
            ("Linux", OperatingSystem.LINUX),
            ("windows", OperatingSystem.WINDOWS),
            ("win", OperatingSystem.WINDOWS),
        ],
    )
    def test_os_names(self, name, expected):
        assert OperatingSystem.from_name(name) == expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("x64", Architecture.X64),
            ("amd64", Architecture.X64),
            ("x86_64", Architecture.X64),
            ("x86", Architecture.X86),
            ("arm64", Architecture.ARM64),
            ("aarch64", Architecture.ARM64),
        ],
    )
    def test_arch_names(self, name, expected):
        assert Architecture.from_name(name) == expected

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown operating system"):
            OperatingSystem.from_name("freebsd")


class TestCurrentHost:
    """Test host detection."""

    @pytest.mark.parametrize(
        "system,machine,expected",
        [
            ("Linux", "x86_64", ("linux", "x64")),
            ("Linux", "aarch64", ("linux", "arm64")),
            ("Darwin", "arm64", ("darwin", "arm64")),
            ("Windows", "AMD64", ("win", "x64")),
            ("Windows", "x86", ("win", "x86")),
            ("Linux", "i686", ("linux", "x86")),
        ],
    )
    def test_detects_supported_hosts(self, system, machine, expected):
        """Test supported hosts map to the right target."""
        with patch("platform.system", return_value=system), patch(
            "platform.machine", return_value=machine
        ):
            assert render(current_host()) == expected

    def test_unsupported_os(self):
        """Test an unsupported OS raises a typed error instead of crashing."""
        with patch("platform.system", return_value="FreeBSD"), patch(
            "platform.machine", return_value="amd64"
        ):
            with pytest.raises(UnsupportedPlatformError) as exc_info:
                current_host()

        assert exc_info.value.os_name == "FreeBSD"

    def test_unsupported_arch(self):
        """Test an unsupported architecture raises a typed error."""
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine", return_value="s390x"
        ):
            with pytest.raises(UnsupportedPlatformError, match="s390x"):
                current_host()

    def test_detection_is_cached(self):
        """Test detection runs once until the cache is cleared."""
        with patch("platform.system", return_value="Linux") as system, patch(
            "platform.machine", return_value="x86_64"
        ):
            current_host()
            current_host()

        assert system.call_count == 1
