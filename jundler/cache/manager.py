"""
Lockfile-backed cache of platform binaries.

One :class:`ArtifactCacheManager` serves one artifact kind (Node.js runtime or
esbuild) through the :class:`~jundler.cache.sources.ArtifactSource` it is
given. Binaries are stored as individual zstandard blobs next to a lockfile
recording each blob's local-integrity checksum:

    <cache_root>/
        node/
            jundler.lockb
            node-v22.3.0-linux-x64.zst
        esbuild/
            jundler.lockb
            esbuild-v0.23.0-linux-x64.zst
        lock/
            node.lock
            esbuild.lock

Every public operation holds an advisory inter-process lock and re-reads the
lockfile after acquiring it, so concurrent jundler processes see each other's
writes.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Union

from filelock import FileLock, Timeout

from jundler.cache.archive import (
    DEFAULT_COMPRESSION_LEVEL,
    repack_binary,
    unpack_archive,
    unpack_from_cache,
)
from jundler.cache.lockfile import LOCKFILE_NAME, LockfileStore
from jundler.cache.models import ArtifactMetadata, ArtifactVersion, CachedArtifact
from jundler.cache.sources import ArtifactSource, EsbuildSource, NodeSource
from jundler.core.directory import LOCK_DIR_NAME, ensure_cache_structure
from jundler.core.download import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT, DownloadProgress
from jundler.core.exceptions import (
    ArtifactNotFoundError,
    AuthenticityChecksumMismatchError,
    CacheLockTimeout,
    FilesystemIoError,
    LocalIntegrityChecksumMismatchError,
)
from jundler.core.filesystem import make_executable, make_scratch_dir, safe_rmtree
from jundler.core.platform import Architecture, OperatingSystem
from jundler.core.verification import compute_digest, digests_equal

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 60


class ArtifactCacheManager:
    """
    Fetches, verifies and caches binaries of one artifact kind.

    Executables handed out by :meth:`get_binary` live in a per-instance
    scratch directory that :meth:`close` removes, so callers must be done
    with them (or copy them) before closing.

    Example:
        >>> with ArtifactCacheManager(NodeSource(), cache_root / "node") as cache:
        ...     node = cache.get_binary("22.3.0", OperatingSystem.LINUX, Architecture.X64)
        ...     subprocess.run([str(node), "--version"])
    """

    def __init__(
        self,
        source: ArtifactSource,
        cache_dir: Path,
        lock_dir: Optional[Path] = None,
        scratch_dir: Optional[Path] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        lock_timeout: int = DEFAULT_LOCK_TIMEOUT,
    ):
        """
        Initialize the cache for ``source.kind``.

        Args:
            source: Upstream source of the artifact kind
            cache_dir: Directory holding the lockfile and blobs
            lock_dir: Directory for the inter-process lock file
                (default: ``lock/`` beside ``cache_dir``)
            scratch_dir: Directory for downloads and unpacked executables
                (default: a fresh temporary directory owned by this instance)
            timeout: HTTP timeout in seconds
            max_retries: Attempts per HTTP request on transient failures
            compression_level: zstandard level for new blobs
            lock_timeout: Seconds to wait for the inter-process lock

        Raises:
            FilesystemIoError: If the directories cannot be created or the
                lockfile cannot be read
        """
        self.source = source
        self.kind = source.kind
        self.cache_dir = Path(cache_dir)
        self.lock_dir = Path(lock_dir) if lock_dir else self.cache_dir.parent / LOCK_DIR_NAME
        self.timeout = timeout
        self.max_retries = max_retries
        self.compression_level = compression_level
        self.lock_timeout = lock_timeout

        for path in (self.cache_dir, self.lock_dir):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemIoError("creating cache directory at", path, e) from e

        self._owns_scratch = scratch_dir is None
        if scratch_dir is None:
            self.scratch_dir = make_scratch_dir(prefix=f"jundler-{self.kind}-")
        else:
            self.scratch_dir = Path(scratch_dir)
            self.scratch_dir.mkdir(parents=True, exist_ok=True)

        self.lock_path = self.lock_dir / f"{self.kind}.lock"
        # One FileLock per instance: it is reentrant, separate instances on
        # the same path are not.
        self._file_lock = FileLock(str(self.lock_path), timeout=lock_timeout)

        self.store = LockfileStore.load(self.lockfile_path)
        logger.debug(f"Initialized {self.kind} cache at {self.cache_dir}")

    @property
    def lockfile_path(self) -> Path:
        return self.cache_dir / LOCKFILE_NAME

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @contextmanager
    def _lock(self):
        """
        Hold the inter-process cache lock and refresh the store.

        Raises:
            CacheLockTimeout: If the lock cannot be acquired within lock_timeout
        """
        try:
            self._file_lock.acquire()
        except Timeout as e:
            logger.error(f"Failed to acquire {self.kind} cache lock within {self.lock_timeout}s")
            raise CacheLockTimeout(
                f"Could not acquire the {self.kind} cache lock ({self.lock_path}) within "
                f"{self.lock_timeout} seconds. Another jundler process may be running."
            ) from e

        try:
            logger.debug(f"Acquired {self.kind} cache lock")
            self.store = LockfileStore.load(self.lockfile_path)
            yield
        finally:
            self._file_lock.release()
            logger.debug(f"Released {self.kind} cache lock")

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def get_binary(
        self,
        version: Union[str, ArtifactVersion],
        os: OperatingSystem,
        arch: Architecture,
    ) -> Path:
        """
        Get a ready-to-run executable for (version, os, arch).

        A cached blob is used when its local checksum still matches the
        lockfile. A corrupted (or vanished) blob is dropped and downloaded
        again. A download is only cached after its archive matched the
        upstream authenticity digest.

        Args:
            version: Fully resolved version (``"22.3.0"`` or ArtifactVersion)
            os: Target operating system
            arch: Target architecture

        Returns:
            Path to the executable inside the scratch directory, with the
            executable bit set on POSIX hosts

        Raises:
            ArtifactNotFoundError: If upstream lists no such release
            AuthenticityChecksumMismatchError: If the download does not match
                the upstream digest (nothing is cached)
            DownloadError: On network failure
            UnparseableManifestError: If the upstream listing is unusable
            ArchiveExtractionError: If the archive is malformed
            FilesystemIoError: On local IO failure
            CacheLockTimeout: If another process holds the cache lock
        """
        if isinstance(version, str):
            version = ArtifactVersion.parse(version)
        metadata = ArtifactMetadata(version=version, os=os, arch=arch)

        with self._lock():
            cached = self.store.find(metadata)
            if cached is not None:
                try:
                    return self._unpack_cached(cached)
                except LocalIntegrityChecksumMismatchError as e:
                    logger.warning(f"{e}. Downloading {self.kind} {metadata} again.")
                    self._remove_entry(cached)

            return self._download(metadata)

    def remove(self, artifact: CachedArtifact) -> None:
        """
        Delete a cached blob and its lockfile entry.

        A blob that is already gone is not an error.

        Raises:
            FilesystemIoError: If the blob cannot be deleted or the lockfile written
        """
        with self._lock():
            self._remove_entry(artifact)

    def clean_cache(self) -> None:
        """
        Delete every cached binary of this kind.

        The cache directory is recreated and holds an empty lockfile
        afterwards.

        Raises:
            FilesystemIoError: If deletion or recreation fails
        """
        with self._lock():
            count = len(self.store)
            self.store.clear()
            safe_rmtree(self.cache_dir, require_prefix=self.cache_dir.parent)
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemIoError("creating cache directory at", self.cache_dir, e) from e
            self.store.save()

        logger.info(f"Cleaned {self.kind} cache ({count} artifact(s) removed)")

    def _log_progress(self, progress: DownloadProgress) -> None:
        logger.debug(f"{self.kind}: {progress}")

    def find(
        self,
        version: Union[str, ArtifactVersion],
        os: OperatingSystem,
        arch: Architecture,
    ) -> Optional[CachedArtifact]:
        """Get the lockfile entry for (version, os, arch), if cached."""
        if isinstance(version, str):
            version = ArtifactVersion.parse(version)
        metadata = ArtifactMetadata(version=version, os=os, arch=arch)

        with self._lock():
            return self.store.find(metadata)

    def list_artifacts(self) -> List[CachedArtifact]:
        """Get all lockfile entries, in insertion order."""
        with self._lock():
            return list(self.store.artifacts)

    def verify(self, artifact: CachedArtifact) -> bool:
        """
        Check a cached blob against its recorded checksum.

        The blob is hashed but not decompressed. A missing blob fails
        verification.
        """
        if not artifact.path.is_file():
            return False
        return digests_equal(artifact.checksum, compute_digest(artifact.path))

    def close(self) -> None:
        """Remove the scratch directory if this instance created it."""
        if self._owns_scratch and self.scratch_dir.exists():
            logger.debug(f"Removing scratch directory {self.scratch_dir}")
            safe_rmtree(self.scratch_dir)

    def __enter__(self) -> "ArtifactCacheManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals (called with the lock held)
    # ------------------------------------------------------------------

    def _unpack_cached(self, cached: CachedArtifact) -> Path:
        """
        Decompress a cached blob after checking its local integrity.

        Raises:
            LocalIntegrityChecksumMismatchError: If the blob is missing or
                does not match its recorded checksum
        """
        if not cached.path.is_file():
            raise LocalIntegrityChecksumMismatchError(cached.path, cached.checksum, b"")

        actual = compute_digest(cached.path)
        if not digests_equal(cached.checksum, actual):
            raise LocalIntegrityChecksumMismatchError(cached.path, cached.checksum, actual)

        metadata = cached.metadata
        destination = (
            self.scratch_dir / f"{self.kind}-{metadata}" / self.source.executable_name(metadata.os)
        )
        unpack_from_cache(cached.path, destination)
        make_executable(destination)

        logger.debug(f"Using cached {self.kind} {metadata}")
        return destination

    def _download(self, metadata: ArtifactMetadata) -> Path:
        version = metadata.version
        target = metadata.target

        entries = self.source.fetch_manifest(
            version, target, timeout=self.timeout, max_retries=self.max_retries
        )
        entry = next((e for e in entries if e.metadata == metadata), None)
        if entry is None:
            raise ArtifactNotFoundError(self.kind, version, metadata.os, metadata.arch)

        logger.info(f"Downloading {self.kind} {metadata}")
        work_dir = make_scratch_dir(prefix=f"{self.kind}-{metadata}-", parent=self.scratch_dir)
        archive_path = self.source.fetch_archive(
            version,
            target,
            work_dir,
            timeout=self.timeout,
            max_retries=self.max_retries,
            progress_callback=self._log_progress,
        )

        actual = compute_digest(archive_path, self.source.authenticity_algorithm)
        if not digests_equal(entry.checksum, actual):
            raise AuthenticityChecksumMismatchError(archive_path, entry.checksum, actual)

        executable = unpack_archive(archive_path, self.source, version, target, work_dir / "extracted")
        try:
            archive_path.unlink()
        except OSError as e:
            logger.debug(f"Could not delete downloaded archive {archive_path}: {e}")

        blob_path = self.cache_dir / self.source.blob_name(metadata)
        repack_binary(executable, blob_path, self.compression_level)

        artifact = CachedArtifact(metadata=metadata, checksum=compute_digest(blob_path), path=blob_path)
        self.store.add(artifact)
        self.store.save()

        make_executable(executable)
        logger.info(f"Cached {self.kind} {metadata} at {blob_path}")
        return executable

    def _remove_entry(self, artifact: CachedArtifact) -> None:
        try:
            artifact.path.unlink()
        except FileNotFoundError:
            logger.debug(f"Cached blob already gone: {artifact.path}")
        except OSError as e:
            raise FilesystemIoError("removing cached archive file at", artifact.path, e) from e

        self.store.remove(artifact)
        self.store.save()
        logger.debug(f"Removed {self.kind} {artifact.metadata} from cache")


def create_source(kind: str, config=None) -> ArtifactSource:
    """
    Build the source for an artifact kind.

    Raises:
        ValueError: If kind is unknown
    """
    if kind == NodeSource.kind:
        return NodeSource(config.node_dist_url) if config else NodeSource()
    if kind == EsbuildSource.kind:
        return EsbuildSource(config.npm_registry_url) if config else EsbuildSource()
    raise ValueError(f"Unknown artifact kind: {kind}")


def create_cache_manager(kind: str, config=None) -> ArtifactCacheManager:
    """
    Create a manager for ``kind`` laid out under the configured cache root.

    Args:
        kind: ``"node"`` or ``"esbuild"``
        config: JundlerConfig (default: :func:`jundler.config.load_config`)
    """
    if config is None:
        from jundler.config import load_config

        config = load_config()

    paths = ensure_cache_structure(config.cache_dir)
    return ArtifactCacheManager(
        create_source(kind, config),
        paths[kind],
        lock_dir=paths["lock"],
        timeout=config.timeout,
        max_retries=config.max_retries,
        compression_level=config.compression_level,
        lock_timeout=config.lock_timeout,
    )


__all__ = [
    "ArtifactCacheManager",
    "create_source",
    "create_cache_manager",
    "DEFAULT_LOCK_TIMEOUT",
]
