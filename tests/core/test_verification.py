"""
Unit tests for digest computation.
"""

import hashlib

import pytest

from jundler.core.exceptions import FilesystemIoError
from jundler.core.verification import (
    compute_digest,
    digests_equal,
    parse_hex_digest,
)


class TestComputeDigest:
    def test_sha256(self, tmp_path):
        path = tmp_path / "f"
        path.write_bytes(b"hello world")

        assert compute_digest(path) == hashlib.sha256(b"hello world").digest()

    def test_sha512(self, tmp_path):
        path = tmp_path / "f"
        path.write_bytes(b"hello world")

        digest = compute_digest(path, "sha512")

        assert digest == hashlib.sha512(b"hello world").digest()
        assert len(digest) == 64

    def test_multi_chunk_file(self, tmp_path):
        data = b"a" * (200 * 1024)
        path = tmp_path / "big"
        path.write_bytes(data)

        assert compute_digest(path) == hashlib.sha256(data).digest()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FilesystemIoError, match="SHA256 checksum"):
            compute_digest(tmp_path / "missing")

    def test_unsupported_algorithm(self, tmp_path):
        path = tmp_path / "f"
        path.write_bytes(b"")

        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            compute_digest(path, "md5")


class TestDigestHelpers:
    def test_digests_equal(self):
        digest = hashlib.sha256(b"x").digest()

        assert digests_equal(digest, bytes(digest))
        assert not digests_equal(digest, hashlib.sha256(b"y").digest())

    def test_parse_hex_digest(self):
        value = "b6723f1e4972af1ca8a7ef9ec63305ee8cd4380fce3071e0e1630dfe055d77e3"

        assert parse_hex_digest(value.upper()) == bytes.fromhex(value)

    def test_parse_hex_digest_wrong_length(self):
        with pytest.raises(ValueError, match="Invalid sha256 digest length"):
            parse_hex_digest("abcd")
