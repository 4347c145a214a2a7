"""Timing metrics for fusion passes."""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional
import numpy as np

from ..core.config import Config

logger = logging.getLogger(__name__)


@dataclass
class PassMetrics:
    """Metrics for a single fusion pass."""
    duration_ms: float
    samples: int
    full: bool
    iteration: int


@dataclass
class FusionStats:
    """Aggregated fusion pass statistics."""
    mean_pass_ms: float
    max_pass_ms: float
    mean_samples_per_pass: float
    mean_us_per_sample: float
    full_passes: int
    incremental_passes: int
    total_passes: int

    def to_dict(self) -> dict:
        """Plain dict view for logging and JSON output."""
        return {
            "mean_pass_ms": self.mean_pass_ms,
            "max_pass_ms": self.max_pass_ms,
            "mean_samples_per_pass": self.mean_samples_per_pass,
            "mean_us_per_sample": self.mean_us_per_sample,
            "full_passes": self.full_passes,
            "incremental_passes": self.incremental_passes,
            "total_passes": self.total_passes,
        }


class FusionTimingMonitor:
    """Tracks how long each fusion pass takes.

    A full re-fusion costs time proportional to the window length on
    every push; this monitor makes that cost visible and logs a summary
    periodically.
    """

    def __init__(self, config: Config, clock: Callable[[], float] = time.perf_counter):
        """Initialize timing monitor.

        Args:
            config: System configuration with monitoring settings.
            clock: Monotonic clock in seconds.
        """
        self._mon_cfg = config.monitoring
        self._clock = clock

        window = self._mon_cfg.window_size
        self._durations: Deque[float] = deque(maxlen=window)
        self._sample_counts: Deque[int] = deque(maxlen=window)

        self._iteration = 0
        self._full_passes = 0
        self._incremental_passes = 0
        self._last_log_time = self._clock()
        self._pass_start: Optional[float] = None

    def start_pass(self) -> None:
        """Mark the start of a fusion pass."""
        self._pass_start = self._clock()

    def end_pass(self, samples: int, full: bool = True) -> PassMetrics:
        """Mark the end of a fusion pass.

        Args:
            samples: Number of samples fused in the pass.
            full: True for a restart from initial conditions.

        Returns:
            Metrics for this pass.
        """
        now = self._clock()
        duration_ms = 0.0
        if self._pass_start is not None:
            duration_ms = (now - self._pass_start) * 1000
        self._pass_start = None

        self._durations.append(duration_ms)
        self._sample_counts.append(samples)
        self._iteration += 1
        if full:
            self._full_passes += 1
        else:
            self._incremental_passes += 1

        self._maybe_log_stats(now)

        return PassMetrics(
            duration_ms=duration_ms,
            samples=samples,
            full=full,
            iteration=self._iteration,
        )

    def _maybe_log_stats(self, now: float) -> None:
        """Log statistics periodically."""
        if now - self._last_log_time >= self._mon_cfg.log_interval_s:
            stats = self.get_stats()
            logger.info(
                "Fusion: %d passes, mean=%.2f ms, max=%.2f ms, "
                "%.1f samples/pass, %.1f us/sample",
                stats.total_passes,
                stats.mean_pass_ms,
                stats.max_pass_ms,
                stats.mean_samples_per_pass,
                stats.mean_us_per_sample,
            )
            self._last_log_time = now

    def get_stats(self) -> FusionStats:
        """Get aggregated pass statistics.

        Returns:
            FusionStats over the retained history.
        """
        if not self._durations:
            return FusionStats(
                mean_pass_ms=0.0,
                max_pass_ms=0.0,
                mean_samples_per_pass=0.0,
                mean_us_per_sample=0.0,
                full_passes=0,
                incremental_passes=0,
                total_passes=0,
            )

        durations = np.array(self._durations)
        counts = np.array(self._sample_counts)
        total_samples = float(np.sum(counts))
        us_per_sample = (
            float(np.sum(durations)) * 1000 / total_samples if total_samples > 0 else 0.0
        )

        return FusionStats(
            mean_pass_ms=float(np.mean(durations)),
            max_pass_ms=float(np.max(durations)),
            mean_samples_per_pass=float(np.mean(counts)),
            mean_us_per_sample=us_per_sample,
            full_passes=self._full_passes,
            incremental_passes=self._incremental_passes,
            total_passes=self._iteration,
        )

    def reset(self) -> None:
        """Forget every recorded pass."""
        self._durations.clear()
        self._sample_counts.clear()
        self._iteration = 0
        self._full_passes = 0
        self._incremental_passes = 0
        self._pass_start = None
