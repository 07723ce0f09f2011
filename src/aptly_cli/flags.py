"""
Command-line flag values consumed by the execution context.

The CLI root callback owns parsing; the context only reads these values.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

__all__ = ["ContextFlags", "DEFAULT_MEM_INTERVAL"]

DEFAULT_MEM_INTERVAL = 1.0


@dataclass(frozen=True)
class ContextFlags:
    """
    Read-only flag values shared by every command.

    config: explicit config file path ("" = use fallback chain)
    dep_follow_*: OR-ed with the matching config booleans
    architectures: comma-separated override list ("" = use config)
    cpuprofile/memprofile/memstats: debug output paths ("" = disabled)
    meminterval: memstats sampling period in seconds
    """
    config: str = ""
    dep_follow_suggests: bool = False
    dep_follow_recommends: bool = False
    dep_follow_all_variants: bool = False
    dep_follow_source: bool = False
    architectures: Optional[str] = ""
    cpuprofile: str = ""
    memprofile: str = ""
    memstats: str = ""
    meminterval: float = DEFAULT_MEM_INTERVAL

    def __post_init__(self):
        if self.meminterval <= 0:
            raise ValueError(f"meminterval must be positive, got {self.meminterval}")
