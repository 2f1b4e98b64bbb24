"""
Persisted index of cached artifacts.

The lockfile (``jundler.lockb``) records, for every compressed binary in a
cache directory, its metadata, its local-integrity checksum and its path.
It is a cache of re-derivable facts: a lockfile that cannot be read back is
discarded and replaced by an empty one rather than failing the invocation.

On-disk format:
    4 bytes   magic ``JNDL``
    1 byte    schema version
    rest      zstandard frame holding a UTF-8 JSON document
              ``{"artifacts": [{"metadata": {...}, "checksum": hex, "path": str}]}``

Any other schema version is treated like corruption, which lets a future
format change be detected instead of misread.
"""

import json
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import zstandard as zstd

from jundler.cache.models import ArtifactMetadata, CachedArtifact
from jundler.core.exceptions import FilesystemIoError, LockfileSerializationError
from jundler.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

LOCKFILE_NAME = "jundler.lockb"
MAGIC = b"JNDL"
SCHEMA_VERSION = 1


def serialize_artifacts(artifacts: List[CachedArtifact]) -> bytes:
    """Encode artifacts into the lockfile byte format."""
    document = {"artifacts": [artifact.to_dict() for artifact in artifacts]}
    payload = json.dumps(document, separators=(",", ":")).encode("utf-8")
    return MAGIC + bytes([SCHEMA_VERSION]) + zstd.ZstdCompressor().compress(payload)


def deserialize_artifacts(data: bytes) -> List[CachedArtifact]:
    """
    Decode the lockfile byte format.

    Raises:
        LockfileSerializationError: If the data is not a readable lockfile
    """
    header_len = len(MAGIC) + 1
    if len(data) < header_len or data[: len(MAGIC)] != MAGIC:
        raise LockfileSerializationError("Lockfile has no jundler header")

    schema = data[len(MAGIC)]
    if schema != SCHEMA_VERSION:
        raise LockfileSerializationError(
            f"Unsupported lockfile schema version {schema} (expected {SCHEMA_VERSION})"
        )

    try:
        payload = zstd.ZstdDecompressor().decompress(data[header_len:])
        document = json.loads(payload.decode("utf-8"))
        return [CachedArtifact.from_dict(item) for item in document["artifacts"]]
    except (zstd.ZstdError, UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
        raise LockfileSerializationError(f"Failed to decode lockfile: {e}") from e


class LockfileStore:
    """
    Ordered collection of cached artifacts, backed by a lockfile.

    At most one artifact is held per distinct :class:`ArtifactMetadata`.
    Mutations are in-memory until :meth:`save` is called; the cache manager
    saves after every mutation.

    Example:
        >>> store = LockfileStore.load(cache_dir / "jundler.lockb")
        >>> store.add(CachedArtifact(meta, checksum, blob_path))
        >>> store.save()
        >>> store.find(meta).path
        PosixPath('/home/user/.cache/jundler/node/node-v22.3.0-linux-x64.zst')
    """

    def __init__(self, path: Path, artifacts: Optional[List[CachedArtifact]] = None):
        self.path = Path(path)
        self._artifacts: List[CachedArtifact] = []
        for artifact in artifacts or []:
            self.add(artifact)

    @classmethod
    def load(cls, path: Path) -> "LockfileStore":
        """
        Load a store from its backing file.

        A missing file yields an empty store. An unreadable (corrupt, foreign
        or outdated) file yields an empty store and a warning.

        Raises:
            FilesystemIoError: If the file exists but cannot be read
        """
        path = Path(path)

        if not path.exists():
            logger.debug(f"Lockfile not found, starting empty: {path}")
            return cls(path)

        try:
            data = path.read_bytes()
        except OSError as e:
            raise FilesystemIoError("reading the lockfile at", path, e) from e

        try:
            artifacts = deserialize_artifacts(data)
        except LockfileSerializationError as e:
            logger.warning(f"Failed to load lockfile {path}, creating a new one: {e}")
            return cls(path)

        logger.debug(f"Loaded {len(artifacts)} artifact(s) from {path}")
        return cls(path, artifacts)

    def save(self) -> None:
        """
        Overwrite the backing file with the current contents.

        Raises:
            FilesystemIoError: If the file cannot be written
        """
        try:
            atomic_write(self.path, serialize_artifacts(self._artifacts))
        except OSError as e:
            raise FilesystemIoError("writing the lockfile at", self.path, e) from e

        logger.debug(f"Saved lockfile with {len(self._artifacts)} artifact(s): {self.path}")

    @property
    def artifacts(self) -> Tuple[CachedArtifact, ...]:
        return tuple(self._artifacts)

    def find(self, metadata: ArtifactMetadata) -> Optional[CachedArtifact]:
        """Get the artifact whose metadata equals ``metadata``."""
        for artifact in self._artifacts:
            if artifact.metadata == metadata:
                return artifact
        return None

    def add(self, artifact: CachedArtifact) -> None:
        """Insert an artifact, replacing any entry with equal metadata."""
        self._artifacts = [a for a in self._artifacts if a.metadata != artifact.metadata]
        self._artifacts.append(artifact)

    def remove(self, artifact: CachedArtifact) -> bool:
        """
        Remove the entry with the artifact's metadata.

        Returns:
            True if an entry was removed
        """
        before = len(self._artifacts)
        self._artifacts = [a for a in self._artifacts if a.metadata != artifact.metadata]
        return len(self._artifacts) != before

    def clear(self) -> None:
        self._artifacts = []

    def __len__(self) -> int:
        return len(self._artifacts)

    def __iter__(self) -> Iterator[CachedArtifact]:
        return iter(self.artifacts)


__all__ = [
    "LOCKFILE_NAME",
    "MAGIC",
    "SCHEMA_VERSION",
    "LockfileStore",
    "serialize_artifacts",
    "deserialize_artifacts",
]
