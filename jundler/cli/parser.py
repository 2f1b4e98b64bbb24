"""
Argument parsing and command dispatch for the `jundler` executable.

Each subcommand lives in its own module under jundler.cli.commands and is
imported only when selected.
"""

import argparse
import importlib
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional

from jundler.cache.models import ArtifactVersion
from jundler.core.directory import ARTIFACT_KINDS
from jundler.core.exceptions import JundlerError
from jundler.core.platform import Architecture, OperatingSystem

try:
    __version__ = version("jundler")
except PackageNotFoundError:
    __version__ = "0.0.0"

logger = logging.getLogger(__name__)

COMMAND_MODULES = {
    "build": "jundler.cli.commands.build",
    "clean": "jundler.cli.commands.clean",
    "fetch": "jundler.cli.commands.fetch",
    "cache": "jundler.cli.commands.cache",
}


def _argument_type(parse):
    """Wrap a parser raising ValueError as an argparse ``type=`` callable."""

    def convert(value: str):
        try:
            return parse(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(str(e)) from e

    return convert


_version_arg = _argument_type(ArtifactVersion.parse)
_os_arg = _argument_type(OperatingSystem.from_name)
_arch_arg = _argument_type(Architecture.from_name)


class CLI:
    """jundler command-line interface."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="jundler",
            description="jundler - Package Node.js projects as single executable applications",
            epilog='Use "jundler COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument("--version", action="version", version=f"jundler {__version__}")
        parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: <user config dir>/jundler/config.yaml)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_build_command(subparsers)
        self._add_clean_command(subparsers)
        self._add_fetch_command(subparsers)
        self._add_cache_command(subparsers)

        return parser

    @staticmethod
    def _add_target_arguments(parser):
        parser.add_argument(
            "--os",
            type=_os_arg,
            metavar="OS",
            help="Target operating system (macos|linux|windows) [default: host]",
        )
        parser.add_argument(
            "--arch",
            type=_arch_arg,
            metavar="ARCH",
            help="Target architecture (x64|x86|arm64) [default: host]",
        )

    def _add_build_command(self, subparsers):
        """Add 'build' subcommand."""
        parser = subparsers.add_parser(
            "build",
            help="Build a single executable from a Node.js project",
            description=(
                "Build a single executable application from a Node.js project. "
                "The executable is written into the project directory."
            ),
        )
        parser.add_argument(
            "project_dir",
            nargs="?",
            type=Path,
            default=Path("."),
            metavar="PROJECT_DIR",
            help="Project directory holding package.json and sea-config.json [default: .]",
        )
        parser.add_argument(
            "--node-version",
            "-n",
            type=_version_arg,
            metavar="VERSION",
            help="Node.js version to embed, without 'v' prefix [default: installed node]",
        )
        self._add_target_arguments(parser)
        parser.add_argument(
            "--bundle",
            "-b",
            action="store_true",
            help="Bundle the project into a single file with esbuild first",
        )

    def _add_clean_command(self, subparsers):
        """Add 'clean' subcommand."""
        parser = subparsers.add_parser(
            "clean",
            help="Remove cached binaries",
            description="Remove cached Node.js and/or esbuild binaries",
        )
        parser.add_argument(
            "--kind",
            choices=list(ARTIFACT_KINDS) + ["all"],
            default="all",
            help="Which cache to clean [default: all]",
        )

    def _add_fetch_command(self, subparsers):
        """Add 'fetch' subcommand."""
        parser = subparsers.add_parser(
            "fetch",
            help="Fetch a binary into the cache",
            description=(
                "Fetch a Node.js or esbuild binary through the cache and copy it "
                "to an output directory"
            ),
        )
        parser.add_argument("kind", choices=list(ARTIFACT_KINDS), help="Artifact kind")
        parser.add_argument(
            "--version",
            dest="artifact_version",
            type=_version_arg,
            metavar="VERSION",
            help="Version to fetch [default: installed node / configured esbuild]",
        )
        self._add_target_arguments(parser)
        parser.add_argument(
            "--output-dir",
            "-o",
            type=Path,
            metavar="DIR",
            help="Directory to copy the binary into [default: current directory]",
        )

    def _add_cache_command(self, subparsers):
        """Add 'cache' subcommand."""
        parser = subparsers.add_parser(
            "cache",
            help="Inspect the binary cache",
            description="Inspect the binary cache",
        )
        cache_subparsers = parser.add_subparsers(
            dest="cache_command", help="Cache commands", metavar="CACHE_COMMAND"
        )
        cache_subparsers.add_parser(
            "list",
            help="List cached binaries",
            description="List cached binaries and check their integrity",
        )

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """Parse ``args`` (``sys.argv`` when None)."""
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Parse arguments and run the selected command.

        Returns:
            Process exit code: the command's own code, 1 for a jundler error
            or a missing command, 130 when interrupted
        """
        parsed = self.parse_args(args)
        _configure_logging(verbose=parsed.verbose, quiet=parsed.quiet)

        if not parsed.command:
            self.parser.print_help()
            return 1

        try:
            module = importlib.import_module(COMMAND_MODULES[parsed.command])
            return module.run(parsed)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return 130
        except JundlerError as e:
            logger.error(f"Error: {e}")
            logger.debug("Traceback:", exc_info=True)
            return 1


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level, fmt = logging.DEBUG, "%(levelname)s [%(name)s] %(message)s"
    elif quiet:
        level, fmt = logging.ERROR, "%(levelname)s: %(message)s"
    else:
        level, fmt = logging.INFO, "%(message)s"

    logging.basicConfig(level=level, format=fmt, force=True)


def main():
    sys.exit(CLI().run())


if __name__ == "__main__":
    main()
