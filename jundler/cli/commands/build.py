"""
Build command implementation.

Packages a Node.js project as a single executable application.
"""

import logging

from jundler.builder.builder import Builder, current_node_version
from jundler.cli.utils import load_cli_config, resolve_target

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the build command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    logger.debug(f"Arguments: {args}")

    config = load_cli_config(args)
    target = resolve_target(args)
    node_version = args.node_version or current_node_version()

    logger.info(f"Building {args.project_dir} for {target} with Node.js v{node_version}")
    builder = Builder(config, args.project_dir, node_version, target, bundle=args.bundle)
    app_path = builder.build()

    print(app_path)
    return 0
