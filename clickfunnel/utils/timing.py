# ==============================================================================
# Stage Timing Instrumentation
# ==============================================================================
"""
Monotonic per-stage timing for pipeline runs.

Usage:
    timer = StageTimer()
    with timer.stage("sessionize", records=len(events)):
        result = sessionizer.sessionize(events)
    timer.log_final_summary()
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


def _precision(ms: float) -> int:
    """Return decimal precision for millisecond values.

    >= 10ms  → 0 decimals (e.g., 85ms)
    >= 1ms   → 1 decimal  (e.g., 3.2ms)
    < 1ms    → 2 decimals (e.g., 0.45ms)
    """
    if ms >= 10:
        return 0
    elif ms >= 1:
        return 1
    else:
        return 2


class StageTimer:
    """Records elapsed milliseconds and record counts per named stage."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger
        self._start_time = time.monotonic()
        self._stages: dict[str, float] = {}
        self._records: dict[str, int] = {}

    @contextmanager
    def stage(self, name: str, records: int | None = None) -> Iterator[None]:
        """Time the enclosed block and log it at INFO level."""
        t0 = time.monotonic()
        try:
            yield
        finally:
            elapsed_ms = (time.monotonic() - t0) * 1000
            self._stages[name] = self._stages.get(name, 0.0) + elapsed_ms
            if records is not None:
                self._records[name] = self._records.get(name, 0) + records
            self._log.info(
                "Stage %s: %s records in %.*fms",
                name,
                f"{records:,}" if records is not None else "-",
                _precision(elapsed_ms),
                elapsed_ms,
            )

    @property
    def stages(self) -> dict[str, float]:
        """Elapsed milliseconds per stage, in execution order."""
        return dict(self._stages)

    def log_final_summary(self) -> None:
        """Log one line with the total and per-stage timings."""
        total_elapsed = time.monotonic() - self._start_time
        if not self._stages:
            self._log.info("Final: no stages run (%.1fs elapsed)", total_elapsed)
            return

        parts = " ".join(
            f"{name}={ms:.{_precision(ms)}f}ms" for name, ms in self._stages.items()
        )
        self._log.info("Final: %d stages over %.1fs | %s", len(self._stages), total_elapsed, parts)
