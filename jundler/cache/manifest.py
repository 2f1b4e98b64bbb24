"""
Parsers for upstream authenticity listings.

Node.js publishes a ``SHASUMS256.txt`` per release: one ``<sha256>  <file>``
line per published file. Only lines naming a platform binary archive this
tool can consume are kept, for example::

    a6d4fbf4306a883b8e1d235a8a890be84b9d95d2d39b929520bed64da41ce540  node-v22.3.0-linux-x64.tar.gz

Lines for installers, header tarballs, source tarballs, ``.tar.xz``/``.7z``
variants, unsupported platforms and per-file sums (``win-x64/node.exe``) are
skipped, as are archives whose type does not match the platform (POSIX
builds ship as ``.tar.gz``, Windows builds as ``.zip``). A listing in which
*no* line matches signals upstream format drift and is an error.

The npm registry publishes the equivalent information for the esbuild
binary packages as the ``dist.integrity`` field of a version document.
"""

import base64
import binascii
import functools
import json
import logging
import re
from typing import List, Union

from jundler.cache.models import ArtifactMetadata, ArtifactVersion, ManifestEntry
from jundler.core.exceptions import UnparseableManifestError
from jundler.core.platform import PlatformTarget
from jundler.core.verification import DIGEST_SIZES, parse_hex_digest

logger = logging.getLogger(__name__)

_OS_PATTERN = r"darwin|linux|win"
_ARCH_PATTERN = r"arm64|x64|x86"


@functools.lru_cache(maxsize=None)
def _line_pattern(product: str) -> "re.Pattern[str]":
    return re.compile(
        r"^(?P<digest>[0-9a-f]{64})"
        r"  "
        + re.escape(product)
        + r"-v(?P<version>\d+\.\d+\.\d+)"
        r"-(?P<os>" + _OS_PATTERN + r")"
        r"-(?P<arch>" + _ARCH_PATTERN + r")"
        r"(?P<ext>\.tar\.gz|\.zip)$"
    )


def parse_manifest_line(line: str, product: str = "node") -> ManifestEntry:
    """
    Parse a single manifest line.

    Raises:
        ValueError: If the line does not describe a consumable release archive
    """
    match = _line_pattern(product).match(line)
    if not match:
        raise ValueError(f"Not a {product} release archive entry: {line!r}")

    target = PlatformTarget.parse(match.group("os"), match.group("arch"))
    if (match.group("ext") == ".zip") == target.os.is_posix:
        raise ValueError(f"Unexpected archive type for {target}: {line!r}")

    metadata = ArtifactMetadata(
        version=ArtifactVersion.parse(match.group("version")),
        os=target.os,
        arch=target.arch,
    )
    return ManifestEntry(checksum=parse_hex_digest(match.group("digest")), metadata=metadata)


def parse_manifest(text: str, product: str = "node") -> List[ManifestEntry]:
    """
    Parse a checksum listing into manifest entries.

    Every line is parsed independently; non-matching lines are skipped.
    Output order follows input order.

    Args:
        text: Full text of the listing
        product: File name prefix of the product (``node`` for ``node-v...``)

    Returns:
        Parsed entries, in input order

    Raises:
        UnparseableManifestError: If no line matched

    Example:
        >>> entries = parse_manifest(fetch_text(sums_url))
        >>> [str(e.metadata) for e in entries][:2]
        ['v22.3.0-darwin-arm64', 'v22.3.0-darwin-x64']
    """
    entries = []

    for line in text.splitlines():
        try:
            entries.append(parse_manifest_line(line, product))
        except ValueError:
            logger.debug(f"Skipping checksum file entry: {line!r}")
            continue

    if not entries:
        raise UnparseableManifestError(
            f"No {product} release archives could be parsed from the checksum file"
        )

    logger.debug(f"Parsed {len(entries)} {product} release archive entries")
    return entries


def parse_registry_metadata(
    document: Union[str, dict], metadata: ArtifactMetadata
) -> List[ManifestEntry]:
    """
    Read the authenticity digest from an npm registry version document.

    The registry publishes Subresource-Integrity strings such as
    ``sha512-<base64>`` under ``dist.integrity``.

    Args:
        document: Version document (JSON text or already-decoded dict)
        metadata: The artifact the document describes

    Returns:
        A single-entry list holding the SHA-512 digest

    Raises:
        UnparseableManifestError: If the document has no usable integrity field
    """
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise UnparseableManifestError(f"Registry metadata is not valid JSON: {e}") from e

    integrity = ""
    if isinstance(document, dict):
        dist = document.get("dist")
        if isinstance(dist, dict):
            integrity = dist.get("integrity") or ""

    for candidate in integrity.split():
        algorithm, _, encoded = candidate.partition("-")
        if algorithm != "sha512":
            continue
        try:
            digest = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            continue
        if len(digest) == DIGEST_SIZES["sha512"]:
            return [ManifestEntry(checksum=digest, metadata=metadata)]

    raise UnparseableManifestError(
        f"Registry metadata for {metadata} has no sha512 integrity digest"
    )


__all__ = ["parse_manifest", "parse_manifest_line", "parse_registry_metadata"]
