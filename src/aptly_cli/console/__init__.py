"""Terminal output helpers."""
from .progress import ConsoleProgress

__all__ = ["ConsoleProgress"]
