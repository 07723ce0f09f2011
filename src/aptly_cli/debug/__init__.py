"""Debug-only diagnostic instrumentation."""
from .instrumentation import (
    MEMSTATS_HEADER,
    CPUProfile,
    HeapProfile,
    Instrumentation,
    MemStats,
    MemStatsReader,
    MemStatsSampler,
)

__all__ = [
    "MEMSTATS_HEADER",
    "CPUProfile",
    "HeapProfile",
    "Instrumentation",
    "MemStats",
    "MemStatsReader",
    "MemStatsSampler",
]
