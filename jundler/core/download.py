"""
Blocking HTTP GETs built on requests.

Bodies are either returned as text (checksum files, registry metadata) or
streamed to disk (release archives) with throttled progress callbacks.
Connection errors and timeouts are retried with exponential backoff; HTTP
error statuses fail immediately.

No checksum verification happens here. Callers that know the expected
digest (the artifact cache) verify the file once it is on disk.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import ConnectionError, HTTPError, RequestException, Timeout

from jundler.core.exceptions import DownloadError, FilesystemIoError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 3
CHUNK_SIZE = 8192
PROGRESS_INTERVAL = 0.5  # seconds between progress callbacks


@dataclass
class DownloadProgress:
    """Snapshot of a running download, handed to progress callbacks."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        return format_progress(self)


def _with_retries(url: str, operation: Callable, max_retries: int):
    """
    Run ``operation`` retrying transient transport failures.

    HTTP error statuses are final; only connection errors and timeouts
    are retried.
    """
    max_retries = max(1, max_retries)

    for attempt in range(max_retries):
        try:
            return operation()
        except HTTPError as e:
            raise DownloadError(url, e) from e
        except (Timeout, ConnectionError) as e:
            if attempt == max_retries - 1:
                raise DownloadError(url, e) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Request to {url} failed (attempt {attempt + 1}/{max_retries}): {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)
        except RequestException as e:
            raise DownloadError(url, e) from e

    # Unreachable: the loop either returns or raises
    raise DownloadError(url)


def fetch_text(
    url: str, timeout: int = DEFAULT_TIMEOUT, max_retries: int = DEFAULT_MAX_RETRIES
) -> str:
    """
    GET a URL and return the decoded body.

    Args:
        url: URL to fetch
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts on transient failures

    Returns:
        Response body as text

    Raises:
        DownloadError: On transport failure or HTTP error status

    Example:
        >>> text = fetch_text("https://nodejs.org/dist/v22.3.0/SHASUMS256.txt")
    """
    if not url:
        raise ValueError("URL cannot be empty")

    def _get() -> str:
        logger.debug(f"Fetching {url}")
        response = requests.get(url, timeout=timeout, allow_redirects=True)
        response.raise_for_status()
        return response.text

    return _with_retries(url, _get, max_retries)


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = DEFAULT_TIMEOUT,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> Path:
    """
    Stream a URL into a file.

    Args:
        url: URL to download from
        destination: Local path to save file (its parent is created)
        progress_callback: Called with a DownloadProgress at most every PROGRESS_INTERVAL
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts on transient failures

    Returns:
        ``destination``

    Raises:
        DownloadError: If the transfer fails
        FilesystemIoError: If the destination cannot be written
        ValueError: If url or destination is empty

    Example:
        >>> download_file(url, Path("scratch/node.tar.gz"), progress_callback=print)
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemIoError("creating download directory at", destination.parent, e) from e

    return _with_retries(
        url,
        lambda: _download_with_progress(url, destination, progress_callback, timeout),
        max_retries,
    )


def _download_with_progress(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
) -> Path:
    logger.debug(f"GET {url} -> {destination}")

    with requests.get(url, stream=True, timeout=timeout, allow_redirects=True) as response:
        response.raise_for_status()
        total = int(response.headers.get("content-length") or 0)
        started = last_report = time.monotonic()
        received = 0

        try:
            out = open(destination, "wb")
        except OSError as e:
            raise FilesystemIoError("creating download file at", destination, e) from e

        with out:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                try:
                    out.write(chunk)
                except OSError as e:
                    raise FilesystemIoError("writing to download file at", destination, e) from e
                received += len(chunk)

                if progress_callback is None:
                    continue
                now = time.monotonic()
                if now - last_report < PROGRESS_INTERVAL and received != total:
                    continue
                progress_callback(_progress(received, total, now - started))
                last_report = now

    logger.debug(f"Saved {received} bytes to {destination}")
    return destination


def _progress(received: int, total: int, elapsed: float) -> DownloadProgress:
    speed = received / elapsed if elapsed > 0 else 0.0
    if total <= 0:
        return DownloadProgress(received, received, 0.0, speed, 0.0)
    eta = (total - received) / speed if speed > 0 else 0.0
    return DownloadProgress(received, total, received * 100 / total, speed, eta)


def format_progress(progress: DownloadProgress) -> str:
    """
    Render a progress record as one line.

    Example:
        >>> print(format_progress(DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mib = 1024 * 1024
    done = f"{progress.bytes_downloaded / mib:.1f}"
    rate = f"at {progress.speed_bps / mib:.1f} MB/s"
    if progress.total_bytes <= 0 or not progress.percentage:
        return f"{done} MB {rate}"
    return (
        f"{done}/{progress.total_bytes / mib:.1f} MB ({progress.percentage:.1f}%) "
        f"{rate} ETA: {progress.eta_seconds:.0f}s"
    )
