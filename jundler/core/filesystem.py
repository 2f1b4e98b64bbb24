"""
File system utilities for jundler.

This module provides the platform-aware file operations the artifact cache
and the build pipeline rely on:
- Archive extraction (tar.gz, zip) with directory traversal protection
- Safe file operations (atomic writes, guarded recursive deletion)
- Executable permission handling
- Per-process scratch directories
"""

import os
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Optional, Union

from jundler.core.exceptions import (
    ArchiveExtractionError,
    FilesystemIoError,
    InsecureArchiveError,
    UnsupportedArchiveFormat,
)

IS_WINDOWS = os.name == "nt"


# ============================================================================
# Archive Extraction
# ============================================================================


def _check_member(name: str, destination: Path) -> None:
    """
    Reject archive members that would land outside ``destination``.

    Raises:
        InsecureArchiveError: If the member path escapes the destination
    """
    target = (destination / name).resolve()
    if not target.is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{name}' points outside the extraction directory; "
            "refusing to extract."
        )


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Extract a release archive into a directory.

    The format follows the file name (``.zip``, ``.tar.gz`` or ``.tgz``).
    Every member path is checked before anything is written.

    Raises:
        UnsupportedArchiveFormat: If the file name has no known extension
        InsecureArchiveError: If a member would escape ``destination``
        ArchiveExtractionError: If the archive is missing or malformed

    Example:
        >>> extract_archive('node-v22.3.0-linux-x64.tar.gz', scratch_dir)
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.is_file():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    name = archive_path.name.lower()
    if name.endswith(".zip"):
        extractor = _extract_zip
    elif name.endswith((".tar.gz", ".tgz")):
        extractor = _extract_tar_gz
    else:
        raise UnsupportedArchiveFormat(
            f"Unsupported archive format: {archive_path.name} (expected .zip, .tar.gz or .tgz)"
        )

    try:
        destination.mkdir(parents=True, exist_ok=True)
        extractor(archive_path, destination)
    except ArchiveExtractionError:
        raise
    except (OSError, EOFError, tarfile.TarError, zipfile.BadZipFile) as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(archive_path: Path, destination: Path) -> None:
    with zipfile.ZipFile(archive_path) as zf:
        for name in zf.namelist():
            _check_member(name, destination)
        zf.extractall(destination)


def _extract_tar_gz(archive_path: Path, destination: Path) -> None:
    with tarfile.open(archive_path, "r:gz") as tar:
        for member in tar.getmembers():
            _check_member(member.name, destination)
        # The data filter also rejects links pointing outside destination
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8") -> None:
    """
    Replace a file in one step.

    Content goes to a sibling temp file that is then renamed over the target,
    so readers see either the old or the new file, never a partial one.

    Example:
        >>> atomic_write('jundler.lockb', b'JNDL\\x01...')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    if isinstance(content, str):
        content = content.encode(encoding)

    try:
        with open(temp_fd, "wb") as f:
            f.write(content)
        temp_path.replace(file_path)
    except BaseException:
        with suppress(OSError):
            temp_path.unlink()
        raise


def safe_rmtree(path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None) -> None:
    """
    Remove a directory tree.

    Read-only files are made writable first on Windows.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemIoError: If deletion fails

    Example:
        >>> safe_rmtree(cache_root / 'node', require_prefix=cache_root)
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemIoError("removing directory (not a directory) at", path)

    def handle_remove_readonly(func, failed_path, exc_info):
        """Error handler for read-only files on Windows."""
        if not os.access(failed_path, os.W_OK):
            os.chmod(failed_path, stat.S_IWRITE)
            func(failed_path)
        else:
            raise exc_info[1]

    try:
        if IS_WINDOWS:
            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)
    except OSError as e:
        raise FilesystemIoError("removing directory at", path, e) from e


def make_executable(path: Union[str, Path]) -> None:
    """
    Set the executable bits (0o755) on a file.

    No-op on Windows, where executability is decided by the file extension.

    Raises:
        FilesystemIoError: If permissions cannot be changed
    """
    if IS_WINDOWS:
        return

    path = Path(path)
    try:
        path.chmod(0o755)
    except OSError as e:
        raise FilesystemIoError("setting permissions for binary at", path, e) from e


def copy_project_tree(source: Path, destination: Path, ignore=("node_modules", ".git")) -> None:
    """
    Copy a project directory into a build directory.

    Raises:
        FilesystemIoError: If the copy fails
    """
    try:
        shutil.copytree(
            source,
            destination,
            ignore=shutil.ignore_patterns(*ignore),
            dirs_exist_ok=True,
        )
    except (OSError, shutil.Error) as e:
        raise FilesystemIoError(f"copying project from {source} to", destination, e) from e


# ============================================================================
# Scratch Directories
# ============================================================================


def make_scratch_dir(prefix: str = "jundler-", parent: Optional[Path] = None) -> Path:
    """
    Create a process-unique scratch directory with a randomized suffix.

    Raises:
        FilesystemIoError: If the directory cannot be created
    """
    try:
        if parent is not None:
            Path(parent).mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    except OSError as e:
        raise FilesystemIoError("creating scratch directory in", parent or tempfile.gettempdir(), e) from e


@contextmanager
def temporary_directory(prefix: str = "jundler-"):
    """
    Yield a fresh scratch directory, removed on exit.

    Example:
        >>> with temporary_directory("jundler-build-") as tmp:
        ...     (tmp / 'sea-config.json').write_text('{}')
    """
    temp_dir = make_scratch_dir(prefix)

    try:
        yield temp_dir
    finally:
        if temp_dir.exists():
            safe_rmtree(temp_dir)


__all__ = [
    "extract_archive",
    "atomic_write",
    "safe_rmtree",
    "make_executable",
    "copy_project_tree",
    "make_scratch_dir",
    "temporary_directory",
]
