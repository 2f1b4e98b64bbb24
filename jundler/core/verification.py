"""
Hash computation and comparison for jundler.

Digests are handled as raw ``bytes`` (32 bytes for SHA-256) and compared with
a constant-time comparison. Two digest domains use these helpers and must not
be confused by callers:

- authenticity: a freshly downloaded archive vs. the digest published upstream
- local integrity: a cached blob vs. the digest recorded in the lockfile
"""

import hashlib
import hmac
import logging
from pathlib import Path

from jundler.core.exceptions import FilesystemIoError

logger = logging.getLogger(__name__)

DIGEST_SIZES = {"sha256": 32, "sha512": 64}

_CHUNK_SIZE = 64 * 1024


def new_hasher(algorithm: str = "sha256"):
    """
    Create a hashlib object for a supported algorithm.

    Raises:
        ValueError: If algorithm is not supported
    """
    algorithm = algorithm.lower()
    if algorithm == "sha256":
        return hashlib.sha256()
    elif algorithm == "sha512":
        return hashlib.sha512()
    raise ValueError(f"Unsupported hash algorithm: {algorithm}")


def compute_digest(file_path: Path, algorithm: str = "sha256") -> bytes:
    """
    Compute the digest of a file.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('sha256' or 'sha512')

    Returns:
        Raw digest bytes

    Raises:
        FilesystemIoError: If the file cannot be read
        ValueError: If algorithm is not supported

    Example:
        >>> digest = compute_digest(Path('node-v22.3.0-linux-x64.tar.gz'))
        >>> print(digest.hex())
    """
    hasher = new_hasher(algorithm)
    file_path = Path(file_path)

    try:
        with open(file_path, "rb") as f:
            while chunk := f.read(_CHUNK_SIZE):
                hasher.update(chunk)
    except OSError as e:
        raise FilesystemIoError(
            f"calculating the {algorithm.upper()} checksum of a file at", file_path, e
        ) from e

    return hasher.digest()


def digests_equal(expected: bytes, actual: bytes) -> bool:
    """Compare two digests byte-for-byte in constant time."""
    return hmac.compare_digest(bytes(expected), bytes(actual))


def parse_hex_digest(value: str, algorithm: str = "sha256") -> bytes:
    """
    Decode a hex digest, validating its length for the algorithm.

    Raises:
        ValueError: If the value is not valid hex of the right length
    """
    value = value.strip().lower()
    expected_len = DIGEST_SIZES[algorithm] * 2
    if len(value) != expected_len:
        raise ValueError(
            f"Invalid {algorithm} digest length: expected {expected_len} hex characters, "
            f"got {len(value)}"
        )
    return bytes.fromhex(value)


__all__ = [
    "DIGEST_SIZES",
    "new_hasher",
    "compute_digest",
    "digests_equal",
    "parse_hex_digest",
]
