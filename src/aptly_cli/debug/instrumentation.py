"""
Diagnostic instrumentation: CPU profile, heap snapshot and memory sampler.

Every feature is opt-in through its own flag and independent of the others.
Output files are opened when instrumentation starts, so a bad path fails the
command immediately; results are written and files closed on stop.

Output formats:
- CPU profile: marshalled ``cProfile`` stats, readable with ``pstats.Stats(path)``
- Heap profile: pickled ``tracemalloc.Snapshot``, readable with
  ``tracemalloc.Snapshot.load(path)``
- Memory stats: tab-separated text, one row per sample after a header row
"""
from __future__ import annotations

import cProfile
import logging
import marshal
import pickle
import threading
import time
import tracemalloc
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, Optional, Union

import psutil

from ..errors import InstrumentationError
from ..flags import ContextFlags

__all__ = [
    "MEMSTATS_HEADER",
    "MemStats",
    "MemStatsReader",
    "CPUProfile",
    "HeapProfile",
    "MemStatsSampler",
    "Instrumentation",
]

logger = logging.getLogger(__name__)

MEMSTATS_HEADER = "# Time\tHeapSys\tHeapAlloc\tHeapIdle\tHeapReleased\n"

PathLike = Union[str, Path]


def _open_output(path: PathLike, mode: str) -> IO:
    try:
        return open(path, mode)
    except OSError as e:
        raise InstrumentationError(f"unable to open {path}: {e}") from e


@dataclass(frozen=True)
class MemStats:
    """
    One memory sample, in bytes.

    heap_sys: memory held by the process (resident set size)
    heap_alloc: memory in live Python allocations (traced size when
        tracemalloc is running, otherwise equal to heap_sys)
    heap_idle: held but not allocated (heap_sys - heap_alloc)
    heap_released: returned to the OS since the resident high-water mark
    """
    heap_sys: int
    heap_alloc: int
    heap_idle: int
    heap_released: int

    def as_row(self, elapsed_ms: int) -> str:
        return f"{elapsed_ms}\t{self.heap_sys}\t{self.heap_alloc}\t{self.heap_idle}\t{self.heap_released}\n"


class MemStatsReader:
    """Reads process memory statistics, tracking the resident high-water mark."""

    def __init__(self, process: Optional[psutil.Process] = None):
        self._process = process or psutil.Process()
        self._peak_rss = 0

    def read(self) -> MemStats:
        rss = self._process.memory_info().rss
        self._peak_rss = max(self._peak_rss, rss)
        if tracemalloc.is_tracing():
            alloc = min(tracemalloc.get_traced_memory()[0], rss)
        else:
            alloc = rss
        return MemStats(
            heap_sys=rss,
            heap_alloc=alloc,
            heap_idle=rss - alloc,
            heap_released=self._peak_rss - rss,
        )


class CPUProfile:
    """CPU profile: off -> recording -> off. Not restartable."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        self._file: Optional[IO] = None
        self._profiler: Optional[cProfile.Profile] = None
        self._used = False

    @property
    def recording(self) -> bool:
        return self._profiler is not None

    def start(self) -> None:
        if self._used:
            raise InstrumentationError("CPU profile cannot be restarted")
        self._used = True
        self._file = _open_output(self.path, "wb")
        profiler = cProfile.Profile()
        try:
            profiler.enable()
        except ValueError as e:
            # another profiler (debugger, coverage tool) already holds the hook
            self._file.close()
            self._file = None
            raise InstrumentationError(f"unable to start CPU profile: {e}") from e
        self._profiler = profiler
        logger.debug(f"CPU profile recording to {self.path}")

    def stop(self) -> None:
        """Stop recording, write the stats and close the file. No-op when not recording."""
        profiler, self._profiler = self._profiler, None
        out, self._file = self._file, None
        if profiler is None:
            return
        profiler.disable()
        profiler.create_stats()
        try:
            marshal.dump(profiler.stats, out)
        finally:
            out.close()
        logger.debug(f"CPU profile written to {self.path}")


class HeapProfile:
    """Heap snapshot: off -> captured. The snapshot is taken once, on write()."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        self._file: Optional[IO] = None
        self._started_tracing = False

    def start(self) -> None:
        self._file = _open_output(self.path, "wb")
        if not tracemalloc.is_tracing():
            tracemalloc.start()
            self._started_tracing = True
        logger.debug(f"Heap profile will be written to {self.path}")

    def write(self) -> None:
        """Capture the snapshot, write it and close the file. No-op when not started."""
        out, self._file = self._file, None
        if out is None:
            return
        try:
            if tracemalloc.is_tracing():
                snapshot = tracemalloc.take_snapshot()
                pickle.dump(snapshot, out, pickle.HIGHEST_PROTOCOL)
        finally:
            out.close()
            if self._started_tracing:
                tracemalloc.stop()
                self._started_tracing = False
        logger.debug(f"Heap profile written to {self.path}")


class MemStatsSampler:
    """
    Background memory-statistics sampler: off -> sampling -> stopped.

    The sampling thread waits on a stop event between samples. ``stop()`` sets
    the event and joins the thread before closing the file, so a row is never
    written to a closed file and no row is written once the thread has seen
    the stop request.
    """

    def __init__(self, path: PathLike, interval: float,
                 reader: Optional[MemStatsReader] = None,
                 clock: Callable[[], float] = time.monotonic):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.path = Path(path)
        self.interval = interval
        self._reader = reader or MemStatsReader()
        self._clock = clock
        self._file: Optional[IO] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self.rows_written = 0

    @property
    def sampling(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._file = _open_output(self.path, "w")
        self._file.write(MEMSTATS_HEADER)
        self._file.flush()
        self._thread = threading.Thread(target=self._run, name="aptly-memstats", daemon=True)
        self._thread.start()
        logger.debug(f"Memory stats sampling every {self.interval}s to {self.path}")

    def _run(self) -> None:
        started = self._clock()
        out = self._file
        while not self._stop.is_set():
            stats = self._reader.read()
            elapsed_ms = int((self._clock() - started) * 1000)
            try:
                out.write(stats.as_row(elapsed_ms))
                out.flush()
            except (OSError, ValueError) as e:
                logger.warning(f"Memory stats sampler stopped: {e}")
                return
            self.rows_written += 1
            self._stop.wait(self.interval)

    def stop(self) -> None:
        """Signal the thread, wait for it, then close the file. Idempotent."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join()
        out, self._file = self._file, None
        if out is not None:
            out.close()
            logger.debug(f"Memory stats closed after {self.rows_written} samples")


class Instrumentation:
    """The enabled subset of diagnostic features for one execution context."""

    def __init__(self, cpu_profile: Optional[CPUProfile] = None,
                 heap_profile: Optional[HeapProfile] = None,
                 memstats: Optional[MemStatsSampler] = None):
        self.cpu_profile = cpu_profile
        self.heap_profile = heap_profile
        self.memstats = memstats

    @classmethod
    def from_flags(cls, flags: ContextFlags) -> Instrumentation:
        return cls(
            cpu_profile=CPUProfile(flags.cpuprofile) if flags.cpuprofile else None,
            heap_profile=HeapProfile(flags.memprofile) if flags.memprofile else None,
            memstats=MemStatsSampler(flags.memstats, flags.meminterval) if flags.memstats else None,
        )

    @property
    def enabled(self) -> bool:
        return any(f is not None for f in (self.cpu_profile, self.heap_profile, self.memstats))

    def start(self) -> None:
        """
        Start every enabled feature.

        Raises:
            InstrumentationError: If an output file cannot be opened; features
                already started are stopped before the error propagates
        """
        try:
            if self.cpu_profile is not None:
                self.cpu_profile.start()
            if self.heap_profile is not None:
                self.heap_profile.start()
            if self.memstats is not None:
                self.memstats.start()
        except InstrumentationError:
            self.stop()
            raise

    def stop(self) -> None:
        """
        Heap snapshot, then CPU profile, then memory sampler.

        Every feature is stopped even if an earlier one fails; the first
        failure is re-raised after the last feature has been stopped.
        """
        steps = []
        if self.heap_profile is not None:
            steps.append(("heap profile", self.heap_profile.write))
        if self.cpu_profile is not None:
            steps.append(("CPU profile", self.cpu_profile.stop))
        if self.memstats is not None:
            steps.append(("memory stats", self.memstats.stop))

        first_error: Optional[BaseException] = None
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.warning(f"Error stopping {name}: {e}")
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error
