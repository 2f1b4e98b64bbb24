"""
Single executable application (SEA) build pipeline.

Turns a Node.js project into one native executable:

1. copy the project into a scratch build directory
2. ``npm install`` for the target platform
3. optionally bundle the project with esbuild
4. fetch target and host Node.js binaries from the cache
5. generate the SEA blob with the host ``node``
6. inject the blob into a copy of the target ``node`` with postject
7. copy the result next to the project
8. codesign when the host can sign for the target

External tools run as subprocesses; any non-zero exit raises BuildError.
"""

import logging
import re
import shutil
import subprocess
from contextlib import ExitStack
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Union

from jundler.builder.project import (
    SEA_CONFIG_JSON,
    PackageConfig,
    SeaConfig,
    needs_bundling,
    read_package_config,
    read_sea_config,
)
from jundler.cache.manager import ArtifactCacheManager, create_cache_manager
from jundler.cache.models import ArtifactVersion
from jundler.cache.sources import npm_platform
from jundler.core.exceptions import BuildError, FilesystemIoError
from jundler.core.filesystem import copy_project_tree, temporary_directory
from jundler.core.platform import OperatingSystem, PlatformTarget, current_host

logger = logging.getLogger(__name__)

SEA_SENTINEL_FUSE = "NODE_SEA_FUSE_fce680ab2cc467b6e072b8b5df1996b2"
SEA_RESOURCE_NAME = "NODE_SEA_BLOB"
MACHO_SEGMENT_NAME = "NODE_SEA"
BUNDLE_OUTPUT = "bundled.js"


def _tool(name: str) -> str:
    """Resolve a tool on PATH (npm/npx are ``.cmd`` shims on Windows)."""
    return shutil.which(name) or name


def run_step(step: str, command: List[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """
    Run one external build command.

    Args:
        step: What the command does, phrased for "Error {step}"
        command: Command line
        cwd: Working directory

    Raises:
        BuildError: If the command cannot be started or exits non-zero
    """
    logger.debug(f"Running: {' '.join(command)}")
    try:
        result = subprocess.run(command, cwd=cwd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise BuildError(step, command, stderr=str(e)) from e

    if result.returncode != 0:
        raise BuildError(step, command, result.returncode, result.stdout, result.stderr)

    return result


def current_node_version() -> ArtifactVersion:
    """
    Get the version of the ``node`` on PATH.

    Raises:
        BuildError: If node cannot be run or prints no version
    """
    result = run_step("getting the installed Node.js version", [_tool("node"), "--version"])
    match = re.search(r"v?(\d+\.\d+\.\d+)", result.stdout)
    if not match:
        raise BuildError(
            "parsing the installed Node.js version", ["node", "--version"], stdout=result.stdout
        )
    return ArtifactVersion.parse(match.group(1))


class Builder:
    """
    Builds a SEA executable for one project and target.

    Example:
        >>> builder = Builder(load_config(), Path("my-app"), "22.3.0",
        ...                   PlatformTarget.parse("linux", "x64"))
        >>> builder.build()
        PosixPath('/home/user/my-app/my-app')
    """

    def __init__(
        self,
        config,
        project_dir: Path,
        node_version: Union[str, ArtifactVersion],
        target: PlatformTarget,
        bundle: bool = False,
        node_cache: Optional[ArtifactCacheManager] = None,
        esbuild_cache: Optional[ArtifactCacheManager] = None,
    ):
        """
        Args:
            config: JundlerConfig (cache location, esbuild version, ...)
            project_dir: Directory holding package.json and sea-config.json;
                the executable is written here
            node_version: Node.js version to embed
            target: Platform to build for
            bundle: Force bundling with esbuild
            node_cache: Runtime cache to use instead of the configured one
            esbuild_cache: Bundler cache to use instead of the configured one
        """
        self.config = config
        self.project_dir = Path(project_dir).resolve()
        if isinstance(node_version, str):
            node_version = ArtifactVersion.parse(node_version)
        self.node_version = node_version
        self.target = target
        self.bundle = bundle
        self.host = current_host()
        self._node_cache = node_cache
        self._esbuild_cache = esbuild_cache

    def build(self) -> Path:
        """
        Run the whole pipeline.

        Returns:
            Path of the built executable inside the project directory

        Raises:
            ProjectConfigError: If package.json or sea-config.json is unusable
            BuildError: If an external tool fails
            ArtifactCacheError: If a binary cannot be obtained
        """
        package = read_package_config(self.project_dir)
        sea_config = read_sea_config(self.project_dir)

        with ExitStack() as stack:
            build_dir = stack.enter_context(temporary_directory("jundler-build-"))
            node_cache = self._node_cache or stack.enter_context(
                create_cache_manager("node", self.config)
            )
            logger.debug(f"Building in {build_dir}")

            work_dir = build_dir / "project"
            logger.info("Copying project and preparing for build")
            self._prepare_project(work_dir)

            if needs_bundling(package, self.bundle):
                esbuild_cache = self._esbuild_cache or stack.enter_context(
                    create_cache_manager("esbuild", self.config)
                )
                sea_config = self._bundle_project(work_dir, package, sea_config, esbuild_cache)

            logger.info(f"Retrieving target Node.js binary ({self.target})")
            target_node = node_cache.get_binary(self.node_version, self.target.os, self.target.arch)
            target_copy = build_dir / target_node.name
            self._copy(target_node, target_copy)

            logger.info(f"Retrieving host Node.js binary ({self.host})")
            host_node = node_cache.get_binary(self.node_version, self.host.os, self.host.arch)

            logger.info("Generating SEA blob")
            blob = self._generate_blob(host_node, work_dir, sea_config)

            logger.info("Injecting application into Node.js binary")
            self._inject(target_copy, blob, build_dir)

            app_path = self.project_dir / self._app_name(package)
            self._copy(target_copy, app_path)
            logger.debug(f"Binary moved to: {app_path}")

        self._sign(app_path)
        logger.info(f"Built {app_path}")
        return app_path

    def _prepare_project(self, work_dir: Path) -> None:
        copy_project_tree(self.project_dir, work_dir)
        npm_os, npm_arch = npm_platform(self.target)
        run_step(
            "running npm install",
            [_tool("npm"), "install", f"--target_platform={npm_os}", f"--target_arch={npm_arch}"],
            cwd=work_dir,
        )

    def _bundle_project(
        self,
        work_dir: Path,
        package: PackageConfig,
        sea_config: SeaConfig,
        esbuild_cache: ArtifactCacheManager,
    ) -> SeaConfig:
        """Bundle with esbuild and point sea-config.json at the bundle."""
        logger.info("Retrieving esbuild binary")
        esbuild = esbuild_cache.get_binary(
            self.config.esbuild_version, self.host.os, self.host.arch
        )

        logger.info("Bundling project with esbuild")
        entry = package.main or sea_config.main
        run_step(
            "bundling project with esbuild",
            [str(esbuild), entry, "--bundle", "--platform=node", f"--outfile={BUNDLE_OUTPUT}"],
            cwd=work_dir,
        )

        bundled = replace(sea_config, main=BUNDLE_OUTPUT)
        bundled.write(work_dir / SEA_CONFIG_JSON)
        return bundled

    def _generate_blob(self, host_node: Path, work_dir: Path, sea_config: SeaConfig) -> Path:
        run_step(
            "generating SEA blob file",
            [str(host_node), "--experimental-sea-config", SEA_CONFIG_JSON],
            cwd=work_dir,
        )

        blob = work_dir / sea_config.output
        if not blob.is_file():
            raise BuildError(f"generating SEA blob file: {blob} was not created")
        return blob

    def _inject(self, node_binary: Path, blob: Path, build_dir: Path) -> None:
        command = [
            _tool("npx"),
            "--yes",
            "postject",
            str(node_binary),
            SEA_RESOURCE_NAME,
            str(blob),
            "--sentinel-fuse",
            SEA_SENTINEL_FUSE,
        ]
        if self.target.os == OperatingSystem.MACOS:
            command += ["--macho-segment-name", MACHO_SEGMENT_NAME]

        run_step("injecting app into node binary", command, cwd=build_dir)

    def _app_name(self, package: PackageConfig) -> str:
        # Scoped packages ("@org/app") are named after the unscoped part
        name = package.name.rsplit("/", 1)[-1]
        if self.target.os == OperatingSystem.WINDOWS:
            return name + ".exe"
        return name

    def _sign(self, binary: Path) -> None:
        host_os = self.host.os
        target_os = self.target.os

        if target_os == OperatingSystem.MACOS:
            if host_os == OperatingSystem.MACOS:
                logger.info("Codesigning macOS binary")
                run_step("codesigning the binary", ["codesign", "--force", "--sign", "-", str(binary)])
            else:
                logger.warning(
                    "Not codesigning the binary because the host OS is not macOS. "
                    "It will not run on macOS until it is signed; please codesign it "
                    "manually before distributing or running it."
                )
        elif target_os == OperatingSystem.WINDOWS:
            if host_os == OperatingSystem.WINDOWS:
                logger.info("Signing Windows binary")
                run_step("signing the binary", ["signtool", "sign", "/fd", "SHA256", str(binary)])
            else:
                logger.warning(
                    "Not signing the binary because the host OS is not Windows. "
                    "It will still run, but users will see a warning; please sign it "
                    "manually before distributing it."
                )

    @staticmethod
    def _copy(source: Path, destination: Path) -> None:
        try:
            shutil.copy2(source, destination)
        except OSError as e:
            raise FilesystemIoError(f"copying {source} to", destination, e) from e


__all__ = ["Builder", "current_node_version", "run_step"]
