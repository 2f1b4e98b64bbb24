"""
Fetch command implementation.

Obtains a Node.js or esbuild binary through the cache and copies it to an
output directory.
"""

import logging
import shutil
from pathlib import Path

from jundler.builder.builder import current_node_version
from jundler.cache.manager import create_cache_manager
from jundler.cli.utils import load_cli_config, resolve_target
from jundler.core.exceptions import FilesystemIoError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the fetch command.

    Prints the path of the copied binary.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = load_cli_config(args)
    target = resolve_target(args)

    version = args.artifact_version
    if version is None:
        version = config.esbuild_version if args.kind == "esbuild" else current_node_version()

    output_dir = Path(args.output_dir) if args.output_dir else Path.cwd()

    with create_cache_manager(args.kind, config) as cache:
        binary = cache.get_binary(version, target.os, target.arch)

        destination = output_dir / binary.name
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(binary, destination)
        except OSError as e:
            raise FilesystemIoError("copying binary to", destination, e) from e

    logger.debug(f"Fetched {args.kind} v{version} for {target}")
    print(destination)
    return 0
