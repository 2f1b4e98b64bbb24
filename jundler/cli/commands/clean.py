"""
Clean command implementation.

Removes cached binaries.
"""

import logging

from jundler.cache.manager import create_cache_manager
from jundler.cli.utils import load_cli_config
from jundler.core.directory import ARTIFACT_KINDS

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the clean command.

    Args:
        args: Parsed command-line arguments (``kind``: node, esbuild or all)

    Returns:
        Exit code (0 for success)
    """
    config = load_cli_config(args)
    kinds = ARTIFACT_KINDS if args.kind == "all" else (args.kind,)

    for kind in kinds:
        with create_cache_manager(kind, config) as cache:
            cache.clean_cache()

    logger.info(f"Cache cleaned: {config.cache_dir}")
    return 0
