"""
Shared utilities for CLI commands.
"""

import logging

from jundler.config import JundlerConfig, load_config
from jundler.core.platform import PlatformTarget, current_host

logger = logging.getLogger(__name__)


def load_cli_config(args) -> JundlerConfig:
    """Load configuration honoring the global ``--config`` option."""
    return load_config(getattr(args, "config", None))


def resolve_target(args) -> PlatformTarget:
    """
    Build the target platform from ``--os``/``--arch``.

    Either one left out defaults to the host's.

    Raises:
        UnsupportedPlatformError: If a default is needed and the host is unsupported
    """
    os_ = getattr(args, "os", None)
    arch = getattr(args, "arch", None)
    if os_ is None or arch is None:
        host = current_host()
        os_ = os_ or host.os
        arch = arch or host.arch
    return PlatformTarget(os_, arch)


def format_size(size_bytes: int) -> str:
    """Format a byte count for display (e.g. ``28.4 MB``)."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    size = size_bytes / 1024
    for unit in ("KB", "MB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"
