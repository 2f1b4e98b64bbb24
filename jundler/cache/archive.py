"""
Archive unpack and repack pipeline.

A downloaded release archive is extracted only to pull out the single
executable the cache keeps. That executable is then recompressed on its own
into a zstandard blob, so the cache never holds the rest of the release tree
and never has to re-extract a full archive.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import zstandard as zstd

from jundler.cache.models import ArtifactVersion
from jundler.core.exceptions import ArchiveExtractionError, FilesystemIoError
from jundler.core.filesystem import extract_archive
from jundler.core.platform import PlatformTarget

if TYPE_CHECKING:
    from jundler.cache.sources import ArtifactSource

logger = logging.getLogger(__name__)

DEFAULT_COMPRESSION_LEVEL = 3


def unpack_archive(
    archive_path: Path,
    source: "ArtifactSource",
    version: ArtifactVersion,
    target: PlatformTarget,
    destination_dir: Path,
) -> Path:
    """
    Extract a downloaded archive and locate its executable.

    Args:
        archive_path: Downloaded ``.tar.gz``/``.tgz`` or ``.zip`` archive
        source: Artifact source that knows the archive layout
        version: Release version (part of the extracted directory name)
        target: Platform the archive was built for
        destination_dir: Directory to extract into

    Returns:
        Path to the extracted executable

    Raises:
        ArchiveExtractionError: If the archive is malformed or lacks the executable
    """
    logger.debug(f"Extracting {archive_path} into {destination_dir}")
    extract_archive(archive_path, destination_dir)

    executable = source.locate_executable(destination_dir, version, target)
    if not executable.is_file():
        raise ArchiveExtractionError(
            f"Expected executable not found in {archive_path.name}: {executable}"
        )

    return executable


def repack_binary(
    executable_path: Path, blob_path: Path, level: int = DEFAULT_COMPRESSION_LEVEL
) -> Path:
    """
    Compress a lone executable into a cache blob.

    Args:
        executable_path: Extracted executable
        blob_path: Destination ``.zst`` file
        level: zstandard compression level

    Returns:
        blob_path

    Raises:
        FilesystemIoError: If reading, compressing or writing fails
    """
    try:
        data = Path(executable_path).read_bytes()
    except OSError as e:
        raise FilesystemIoError("reading executable file at", executable_path, e) from e

    cctx = zstd.ZstdCompressor(level=level)
    try:
        with open(blob_path, "wb") as fh, cctx.stream_writer(fh, size=len(data)) as writer:
            writer.write(data)
    except (OSError, zstd.ZstdError) as e:
        raise FilesystemIoError("writing compressed archive file at", blob_path, e) from e

    logger.debug(f"Repacked {executable_path.name} into {blob_path} ({len(data)} bytes raw)")
    return Path(blob_path)


def unpack_from_cache(blob_path: Path, destination: Path) -> Path:
    """
    Decompress a cache blob into a scratch file.

    The executable bit is not restored here; callers set it explicitly.

    Raises:
        FilesystemIoError: If the blob cannot be read or decompressed
    """
    dctx = zstd.ZstdDecompressor()
    try:
        Path(destination).parent.mkdir(parents=True, exist_ok=True)
        with open(blob_path, "rb") as ifh, open(destination, "wb") as ofh:
            dctx.copy_stream(ifh, ofh)
    except (OSError, zstd.ZstdError) as e:
        raise FilesystemIoError("decompressing cached archive file at", blob_path, e) from e

    return Path(destination)


__all__ = [
    "DEFAULT_COMPRESSION_LEVEL",
    "unpack_archive",
    "repack_binary",
    "unpack_from_cache",
]
