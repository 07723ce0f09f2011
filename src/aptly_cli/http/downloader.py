"""
HTTP downloader.

Streams files to disk with a bounded worker pool, reporting transferred bytes
to the progress reporter. Transport failures (timeouts, dropped connections)
are retried with exponential backoff; HTTP error statuses are not.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..console.progress import ConsoleProgress
from ..errors import DownloadError

__all__ = ["Downloader", "USER_AGENT"]

logger = logging.getLogger(__name__)

USER_AGENT = "aptly-cli/0.1.0"
CHUNK_SIZE = 64 * 1024

PathLike = Union[str, Path]


class Downloader:
    """
    Parallel HTTP downloader.

    The worker pool size equals the configured download concurrency. The
    downloader does not own the progress reporter; it only reports to it.
    """

    def __init__(self, concurrency: int, progress: ConsoleProgress,
                 client: Optional[httpx.Client] = None):
        """
        Initialize downloader.

        Args:
            concurrency: Maximum number of parallel downloads (>= 1)
            progress: Progress reporter receiving byte counts
            client: HTTP client override (tests inject a mock transport)
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.concurrency = concurrency
        self.progress = progress
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(connect=10.0, read=60.0, write=60.0, pool=10.0),
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        self._pool = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="aptly-download")
        self._lock = threading.Lock()
        self._closed = False
        logger.debug(f"Downloader initialized with concurrency {concurrency}")

    @property
    def closed(self) -> bool:
        return self._closed

    def download(self, url: str, destination: PathLike) -> Path:
        """
        Download ``url`` into ``destination``.

        The file is written to a temporary name in the same directory and
        renamed into place, so a failed download never leaves a partial file.

        Raises:
            DownloadError: On HTTP error status or after transport retries
            RuntimeError: If the downloader was shut down
        """
        if self._closed:
            raise RuntimeError("downloader is shut down")

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=".aptly.tmp.", dir=destination.parent)
        temp_path = Path(temp_name)

        try:
            with os.fdopen(fd, "wb") as out:
                self._fetch(url, out)
            os.replace(temp_path, destination)
        except httpx.HTTPStatusError as e:
            temp_path.unlink(missing_ok=True)
            raise DownloadError(f"HTTP code {e.response.status_code} while fetching {url}", url=url) from e
        except httpx.HTTPError as e:
            temp_path.unlink(missing_ok=True)
            raise DownloadError(f"error while fetching {url}: {e}", url=url) from e
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Downloaded {url} -> {destination}")
        return destination

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _fetch(self, url: str, out) -> None:
        out.seek(0)
        out.truncate()
        with self.client.stream("GET", url) as response:
            response.raise_for_status()
            for chunk in response.iter_bytes(CHUNK_SIZE):
                out.write(chunk)
                self.progress.add_bar(len(chunk))

    def download_many(self, items: Iterable[Tuple[str, PathLike]]) -> List[Path]:
        """
        Download several files in parallel on the worker pool.

        Args:
            items: (url, destination) pairs

        Returns:
            Destinations in input order

        Raises:
            DownloadError: The first failure in input order, after all
                submitted downloads have finished
        """
        if self._closed:
            raise RuntimeError("downloader is shut down")

        futures = [self._pool.submit(self.download, url, dest) for url, dest in items]
        results: List[Path] = []
        first_error: Optional[BaseException] = None
        for future in futures:
            try:
                results.append(future.result())
            except DownloadError as e:
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error
        return results

    def shutdown(self) -> None:
        """Wait for in-flight downloads, then release the pool and client. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.shutdown(wait=True)
        self.client.close()
        logger.debug("Downloader shut down")
