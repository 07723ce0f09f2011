"""HTTP download engine."""
from .downloader import Downloader

__all__ = ["Downloader"]
