"""
Error classes for aptly-cli.

Provides the taxonomy used by the execution context. Only FatalError is
unrecoverable; the other errors are raised by collaborators and may be
handled by the caller or converted into a FatalError.
"""
from __future__ import annotations


class AptlyError(Exception):
    """Base class for all aptly-cli errors."""
    pass


class FatalError(AptlyError):
    """
    Unrecoverable failure carrying a message and a process exit code.

    Raised wherever the command cannot continue. The top-level command
    boundary (``operations.mappers.run_and_exit``) is the only place that
    turns it into printed output and a process exit.
    """

    def __init__(self, message: str, return_code: int = 1):
        super().__init__(message)
        self.message = message
        self.return_code = return_code


class ConfigError(AptlyError):
    """
    Configuration document exists but cannot be loaded.

    Raised when:
    - the file cannot be read (permissions, is a directory)
    - the file is not valid JSON
    - the document fails validation

    A missing file is reported with the builtin FileNotFoundError instead,
    so that the config fallback chain can move on to the next candidate.
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class DatabaseOpenError(AptlyError):
    """Database could not be opened (lock contention, corruption, I/O)."""
    pass


class DownloadError(AptlyError):
    """
    Download failed after retries, or the server returned an error status.

    Carries the URL so callers can report which file failed.
    """

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class InstrumentationError(AptlyError):
    """A diagnostic output file (profile, memstats) could not be opened."""
    pass


__all__ = [
    "AptlyError",
    "FatalError",
    "ConfigError",
    "DatabaseOpenError",
    "DownloadError",
    "InstrumentationError",
]
