"""
Tests for the HTTP downloader.

Uses httpx.MockTransport so no network access is needed.
"""
from __future__ import annotations

from unittest.mock import Mock

import httpx
import pytest

from aptly_cli.console.progress import ConsoleProgress
from aptly_cli.errors import DownloadError
from aptly_cli.http.downloader import USER_AGENT, Downloader

FILES = {
    "/dists/stable/Release": b"Origin: Debian\n",
    "/pool/main/h/hello/hello_1.0_amd64.deb": b"x" * 200_000,
}


def _handler(request: httpx.Request) -> httpx.Response:
    body = FILES.get(request.url.path)
    if body is None:
        return httpx.Response(404)
    return httpx.Response(200, content=body)


@pytest.fixture
def progress():
    return Mock(spec=ConsoleProgress)


@pytest.fixture
def downloader(progress):
    client = httpx.Client(transport=httpx.MockTransport(_handler), base_url="http://mirror.test")
    dl = Downloader(2, progress, client=client)
    yield dl
    dl.shutdown()


class TestDownload:
    """Test single-file downloads."""

    def test_download_writes_file(self, downloader, tmp_path):
        """Test that the body lands at the destination."""
        dest = tmp_path / "out" / "Release"
        assert downloader.download("http://mirror.test/dists/stable/Release", dest) == dest
        assert dest.read_bytes() == b"Origin: Debian\n"

    def test_progress_receives_bytes(self, downloader, progress, tmp_path):
        """Test that transferred bytes are reported to the progress bar."""
        downloader.download("http://mirror.test/pool/main/h/hello/hello_1.0_amd64.deb", tmp_path / "hello.deb")
        reported = sum(call.args[0] for call in progress.add_bar.call_args_list)
        assert reported == 200_000

    def test_http_error_status(self, downloader, tmp_path):
        """Test that a 404 is a DownloadError and leaves no files behind."""
        target_dir = tmp_path / "downloads"
        with pytest.raises(DownloadError, match="HTTP code 404") as exc_info:
            downloader.download("http://mirror.test/missing", target_dir / "missing")
        assert exc_info.value.url == "http://mirror.test/missing"
        assert list(target_dir.iterdir()) == []

    def test_transport_error_retried(self, progress, tmp_path, monkeypatch):
        """Test that a dropped connection is retried and then succeeds."""
        attempts = []

        def flaky(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection reset")
            return httpx.Response(200, content=b"ok")

        monkeypatch.setattr(Downloader._fetch.retry, "sleep", lambda seconds: None)
        dl = Downloader(1, progress, client=httpx.Client(transport=httpx.MockTransport(flaky)))
        try:
            dl.download("http://mirror.test/file", tmp_path / "file")
        finally:
            dl.shutdown()

        assert len(attempts) == 2
        assert (tmp_path / "file").read_bytes() == b"ok"

    def test_transport_error_gives_up(self, progress, tmp_path, monkeypatch):
        """Test that persistent transport failures become DownloadError."""
        def broken(request):
            raise httpx.ConnectError("unreachable")

        monkeypatch.setattr(Downloader._fetch.retry, "sleep", lambda seconds: None)
        dl = Downloader(1, progress, client=httpx.Client(transport=httpx.MockTransport(broken)))
        try:
            with pytest.raises(DownloadError, match="error while fetching"):
                dl.download("http://mirror.test/file", tmp_path / "file")
        finally:
            dl.shutdown()
        assert not (tmp_path / "file").exists()

    def test_default_client_user_agent(self, progress):
        """Test the default client identifies itself."""
        dl = Downloader(1, progress)
        try:
            assert dl.client.headers["User-Agent"] == USER_AGENT
        finally:
            dl.shutdown()


class TestDownloadMany:
    """Test parallel downloads."""

    def test_results_in_input_order(self, downloader, tmp_path):
        """Test that all files download and results keep input order."""
        items = [
            ("http://mirror.test/pool/main/h/hello/hello_1.0_amd64.deb", tmp_path / "a.deb"),
            ("http://mirror.test/dists/stable/Release", tmp_path / "Release"),
        ]
        assert downloader.download_many(items) == [tmp_path / "a.deb", tmp_path / "Release"]
        assert (tmp_path / "Release").read_bytes() == b"Origin: Debian\n"

    def test_failure_after_all_finish(self, downloader, tmp_path):
        """Test that one failure is raised while other files still download."""
        items = [
            ("http://mirror.test/missing", tmp_path / "missing"),
            ("http://mirror.test/dists/stable/Release", tmp_path / "Release"),
        ]
        with pytest.raises(DownloadError, match="HTTP code 404"):
            downloader.download_many(items)
        assert (tmp_path / "Release").exists()


class TestLifecycle:
    """Test construction and shutdown."""

    def test_invalid_concurrency(self, progress):
        with pytest.raises(ValueError, match="concurrency must be at least 1"):
            Downloader(0, progress)

    def test_shutdown_idempotent(self, downloader):
        """Test that shutdown can be called more than once."""
        downloader.shutdown()
        downloader.shutdown()
        assert downloader.closed is True

    def test_download_after_shutdown(self, downloader, tmp_path):
        """Test that a shut-down downloader refuses work."""
        downloader.shutdown()
        with pytest.raises(RuntimeError, match="shut down"):
            downloader.download("http://mirror.test/dists/stable/Release", tmp_path / "Release")
