"""
Cache command implementation.

Lists cached binaries per artifact kind.
"""

import logging

from jundler.cache.manager import create_cache_manager
from jundler.cli.utils import format_size, load_cli_config
from jundler.core.directory import ARTIFACT_KINDS

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the cache command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 without a cache sub-command)
    """
    if getattr(args, "cache_command", None) != "list":
        logger.error("No cache sub-command specified (available: list)")
        return 1

    config = load_cli_config(args)
    print(f"Cache directory: {config.cache_dir}")

    for kind in ARTIFACT_KINDS:
        with create_cache_manager(kind, config) as cache:
            artifacts = cache.list_artifacts()

            print()
            print(f"{kind} ({len(artifacts)} cached)")
            for artifact in artifacts:
                if cache.verify(artifact):
                    status = format_size(artifact.path.stat().st_size)
                else:
                    status = "CORRUPT, will be downloaded again"
                print(f"  {artifact.metadata}  {status}")

    return 0
