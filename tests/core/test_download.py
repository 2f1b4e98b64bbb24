"""
Unit tests for download module.

Tests download functionality with mocked network requests.
"""

import pytest
import requests
import responses
from unittest.mock import patch

from jundler.core.download import (
    DownloadProgress,
    download_file,
    fetch_text,
    format_progress,
)
from jundler.core.exceptions import DownloadError

URL = "https://example.com/dist/file.tar.gz"


class TestDownloadProgress:
    """Test DownloadProgress dataclass."""

    def test_progress_to_string(self):
        """Test progress string representation."""
        progress = DownloadProgress(
            bytes_downloaded=52428800,  # 50 MB
            total_bytes=104857600,  # 100 MB
            percentage=50.0,
            speed_bps=1048576,  # 1 MB/s
            eta_seconds=50,
        )

        result = str(progress)

        assert "50.0/100.0 MB" in result
        assert "50.0%" in result
        assert "1.0 MB/s" in result
        assert "ETA: 50s" in result

    def test_format_unknown_size(self):
        """Test formatting when total size is unknown."""
        progress = DownloadProgress(
            bytes_downloaded=10485760,
            total_bytes=0,
            percentage=0,
            speed_bps=1048576,
            eta_seconds=0,
        )

        assert format_progress(progress) == "10.0 MB at 1.0 MB/s"


class TestFetchText:
    """Test fetch_text."""

    @responses.activate
    def test_fetch_text(self):
        """Test body is returned as text."""
        responses.add(responses.GET, URL, body="hello", status=200)

        assert fetch_text(URL) == "hello"

    @responses.activate
    def test_http_error_is_not_retried(self):
        """Test HTTP error statuses fail immediately."""
        responses.add(responses.GET, URL, status=404)

        with pytest.raises(DownloadError) as exc_info:
            fetch_text(URL, max_retries=3)

        assert exc_info.value.url == URL
        assert len(responses.calls) == 1

    @responses.activate
    def test_connection_error_is_retried(self):
        """Test connection errors are retried with backoff."""
        responses.add(responses.GET, URL, body=requests.exceptions.ConnectionError("refused"))
        responses.add(responses.GET, URL, body="ok", status=200)

        with patch("jundler.core.download.time.sleep") as sleep:
            assert fetch_text(URL, max_retries=3) == "ok"

        sleep.assert_called_once_with(1)
        assert len(responses.calls) == 2

    @responses.activate
    def test_retries_exhausted(self):
        """Test DownloadError after the last attempt times out."""
        responses.add(responses.GET, URL, body=requests.exceptions.Timeout("slow"))

        with patch("jundler.core.download.time.sleep"):
            with pytest.raises(DownloadError, match="slow"):
                fetch_text(URL, max_retries=2)

        assert len(responses.calls) == 2

    def test_empty_url(self):
        with pytest.raises(ValueError):
            fetch_text("")


class TestDownloadFile:
    """Test download_file."""

    @responses.activate
    def test_download_to_file(self, tmp_path):
        """Test body is streamed into the destination."""
        content = b"x" * 20000
        responses.add(responses.GET, URL, body=content, status=200)

        destination = tmp_path / "nested" / "file.tar.gz"
        result = download_file(URL, destination)

        assert result == destination
        assert destination.read_bytes() == content

    @responses.activate
    def test_progress_callback(self, tmp_path):
        """Test progress is reported and reaches the total."""
        content = b"y" * 10000
        responses.add(
            responses.GET,
            URL,
            body=content,
            status=200,
            headers={"content-length": str(len(content))},
        )

        updates = []
        download_file(URL, tmp_path / "file", progress_callback=updates.append)

        assert updates
        assert updates[-1].bytes_downloaded == len(content)
        assert updates[-1].percentage == 100.0

    @responses.activate
    def test_server_error(self, tmp_path):
        """Test HTTP 500 raises DownloadError."""
        responses.add(responses.GET, URL, status=500)

        with pytest.raises(DownloadError):
            download_file(URL, tmp_path / "file")
