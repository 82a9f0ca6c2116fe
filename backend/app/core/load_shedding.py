"""
Load shedding gate for order intake

Admission control, not flow control: when the process is under memory
pressure new orders are rejected with a retry hint instead of being queued.

The verdict is cached and only refreshed when the last sample is older than
the sample interval, so the cost of reading memory usage stays bounded no
matter how many requests arrive. State is per process.
"""
import os
import time
import logging
import threading
from typing import Callable, Optional

from app.core.config import settings
from app.core.exceptions import OverloadedError

logger = logging.getLogger(__name__)


# Container memory limits, cgroup v2 first then v1
CGROUP_MEMORY_LIMIT_FILES = (
    "/sys/fs/cgroup/memory.max",
    "/sys/fs/cgroup/memory/memory.limit_in_bytes",
)


def _resident_memory_bytes() -> Optional[int]:
    """Current resident set size of this process, None without procfs"""
    try:
        with open("/proc/self/statm") as statm:
            resident_pages = int(statm.read().split()[1])
    except (OSError, ValueError, IndexError):
        return None
    return resident_pages * os.sysconf("SC_PAGE_SIZE")


def _physical_memory_bytes() -> int:
    return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")


def _cgroup_memory_limit_bytes(paths=CGROUP_MEMORY_LIMIT_FILES) -> Optional[int]:
    """Memory limit of the enclosing cgroup, None when unlimited or unknown"""
    for path in paths:
        try:
            with open(path) as limit_file:
                raw = limit_file.read().strip()
        except OSError:
            continue
        if raw == "max":
            return None
        try:
            limit = int(raw)
        except ValueError:
            continue
        # cgroup v1 reports "unlimited" as a huge page-aligned number
        if limit >= _physical_memory_bytes():
            return None
        return limit
    return None


def memory_budget_bytes(limit_mb: Optional[int] = None) -> int:
    """MEMORY_LIMIT_MB when set, else the cgroup limit, else physical memory"""
    if limit_mb:
        return limit_mb * 1024 * 1024
    return _cgroup_memory_limit_bytes() or _physical_memory_bytes()


def process_memory_ratio(limit_mb: Optional[int] = None) -> float:
    """
    Fraction of the memory budget used by this process

    Args:
        limit_mb: Memory budget in MB; the container limit or physical
            memory when None

    Returns:
        Used ratio, 0.0 - 1.0 (can exceed 1.0 when over budget). 0.0 when
        the current resident size cannot be read.
    """
    resident = _resident_memory_bytes()
    if resident is None:
        logger.warning("Resident memory unavailable (no /proc); load shedding cannot sample")
        return 0.0
    return resident / memory_budget_bytes(limit_mb)


class LoadSheddingGate:
    """
    Cached high-load verdict with a stale-after refresh policy

    Clock and pressure source are injectable so tests can drive the gate
    deterministically.
    """

    def __init__(
        self,
        threshold: float = 0.85,
        sample_interval: float = 5.0,
        retry_after: int = 60,
        enabled: bool = True,
        pressure_source: Optional[Callable[[], float]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.threshold = threshold
        self.sample_interval = sample_interval
        self.retry_after = retry_after
        self.enabled = enabled
        self._pressure_source = pressure_source or process_memory_ratio
        self._clock = clock
        self._lock = threading.Lock()

        self._high_load = False
        self._last_sample_at: Optional[float] = None
        self._last_ratio: Optional[float] = None

    @classmethod
    def from_settings(cls) -> "LoadSheddingGate":
        return cls(
            threshold=settings.LOAD_SHEDDING_THRESHOLD,
            sample_interval=settings.LOAD_SHEDDING_SAMPLE_INTERVAL_SECONDS,
            retry_after=settings.LOAD_SHEDDING_RETRY_AFTER_SECONDS,
            enabled=not settings.is_relaxed_environment,
            pressure_source=lambda: process_memory_ratio(settings.MEMORY_LIMIT_MB),
        )

    @property
    def last_ratio(self) -> Optional[float]:
        return self._last_ratio

    def is_overloaded(self) -> bool:
        """Return the cached verdict, re-sampling when it has gone stale"""
        with self._lock:
            now = self._clock()
            stale = (
                self._last_sample_at is None
                or now - self._last_sample_at > self.sample_interval
            )
            if stale:
                ratio = self._pressure_source()
                self._high_load = ratio > self.threshold
                self._last_ratio = ratio
                self._last_sample_at = now
                if self._high_load:
                    logger.warning(
                        f"Memory pressure {ratio:.0%} above threshold {self.threshold:.0%}"
                    )
            return self._high_load

    def admit(self) -> None:
        """
        Admit a new order or reject it

        Raises:
            OverloadedError: process is under high load (carries retry_after)
        """
        if not self.enabled:
            return
        if self.is_overloaded():
            raise OverloadedError(retry_after=self.retry_after)
