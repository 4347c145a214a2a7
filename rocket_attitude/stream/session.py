"""Fusion session: rolling window, raw history and the selected filter.

All mutation goes through FusionSession methods under one lock, so a
reader calling latest() never sees a window that has been pushed to but
not yet re-fused.
"""

import logging
import threading
from collections import deque
from typing import Deque, Iterable, List, Optional, Tuple

from ..core.config import Config
from ..core.types import SensorSample
from ..core.validation import SampleValidator
from ..fusion.base import FusionStrategy
from ..fusion.factory import create_strategy
from ..monitoring.metrics import FusionTimingMonitor

logger = logging.getLogger(__name__)


class InvalidSampleError(ValueError):
    """A sample carries values that cannot be fused."""


class FusionSession:
    """Owns the rolling window, raw sample history and fusion state.

    Every push re-runs the selected filter over the whole window from
    initial conditions. With ``stream.incremental`` enabled the filter
    state is carried forward one sample at a time instead, falling back
    to a full re-run whenever the window evicts a sample or the filter
    state no longer corresponds to the window contents; both modes give
    the same output.
    """

    def __init__(self, config: Config, monitor: Optional[FusionTimingMonitor] = None):
        """Initialize session.

        Args:
            config: System configuration.
            monitor: Optional timing monitor fed with every fusion pass.
        """
        self._config = config
        self._capacity = config.stream.window_capacity
        self._incremental = config.stream.incremental
        self._history_limit = config.stream.history_limit
        self._monitor = monitor

        self._lock = threading.RLock()
        self._history: Deque[SensorSample] = deque(maxlen=self._history_limit)
        self._window: Deque[SensorSample] = deque(maxlen=self._capacity)
        self._fused: List[SensorSample] = []
        self._validator = SampleValidator(config)

        self._kind = config.fusion.filter
        self._strategy: FusionStrategy = create_strategy(self._kind, config.fusion)
        # True while the filter state is exactly the result of a run over _window
        self._synced = True

    @property
    def strategy_kind(self) -> str:
        """Name of the active filter."""
        return self._kind

    @property
    def strategy(self) -> FusionStrategy:
        """Active filter instance."""
        return self._strategy

    @property
    def capacity(self) -> int:
        """Rolling window capacity."""
        return self._capacity

    @property
    def window(self) -> Tuple[SensorSample, ...]:
        """Snapshot of the raw samples in the rolling window, oldest first."""
        with self._lock:
            return tuple(self._window)

    @property
    def history(self) -> Tuple[SensorSample, ...]:
        """Snapshot of the buffered raw samples, oldest first, at most stream.history_limit."""
        with self._lock:
            return tuple(self._history)

    def __len__(self) -> int:
        with self._lock:
            return len(self._window)

    def push(self, sample: SensorSample) -> SensorSample:
        """Append a sample and re-fuse.

        Args:
            sample: Next sample in time order.

        Returns:
            The fused copy of the pushed sample.

        Raises:
            InvalidSampleError: If the sample carries a non-finite value.
        """
        raw = sample.raw()
        with self._lock:
            result = self._validator.validate(raw)
            if not result.is_valid:
                raise InvalidSampleError("; ".join(result.errors))
            for warning in result.warnings:
                logger.debug("Sample t=%d: %s", raw.timestamp, warning)

            evicting = len(self._window) == self._capacity
            self._history.append(raw)
            self._window.append(raw)

            if self._incremental and self._synced and not evicting:
                self._step(raw)
            else:
                self._refuse(self._window)
                self._synced = True

            return self._fused[-1]

    def set_strategy(self, kind: str) -> None:
        """Switch filter and regenerate fused output over the whole history.

        Raises:
            ConfigError: If kind is not a known filter.
        """
        with self._lock:
            strategy = create_strategy(kind, self._config.fusion)
            logger.info("Switching filter %s -> %s", self._kind, kind)
            self._kind = kind
            self._strategy = strategy
            if self._history:
                self._refuse(self._history)
                self._synced = len(self._history) == len(self._window)
            else:
                self._fused = []
                self._synced = True

    def load_batch(self, samples: Iterable[SensorSample]) -> List[SensorSample]:
        """Replace all buffered samples and fuse the batch in one pass.

        Args:
            samples: Complete ordered sequence, e.g. a replayed file.

        Returns:
            Fused copy of every sample in the batch.

        Raises:
            InvalidSampleError: If any sample carries a non-finite value;
                the session is left unchanged.
        """
        batch = [s.raw() for s in samples]
        validator = SampleValidator(self._config)
        for index, sample in enumerate(batch):
            result = validator.validate(sample)
            if not result.is_valid:
                raise InvalidSampleError(f"Sample {index}: " + "; ".join(result.errors))

        with self._lock:
            self._clear()
            # A replayed batch is kept whole so a filter switch re-fuses all of it
            self._history = deque(batch, maxlen=max(self._history_limit, len(batch)))
            self._window.extend(batch)
            self._validator = validator
            logger.info("Loaded batch of %d samples with %s filter", len(batch), self._kind)
            self._refuse(batch)
            self._synced = len(batch) == len(self._window)
            return list(self._fused)

    def latest(self) -> Optional[SensorSample]:
        """Most recent fused sample, else the most recent raw sample, else None."""
        with self._lock:
            if self._fused:
                return self._fused[-1]
            if self._window:
                return self._window[-1]
            return None

    def fused_samples(self) -> List[SensorSample]:
        """Current annotated sequence from the last fusion pass."""
        with self._lock:
            return list(self._fused)

    def sample_at(self, index: int) -> SensorSample:
        """Fused sample at index of the current annotated sequence.

        Raises:
            IndexError: If index is out of range.
        """
        with self._lock:
            return self._fused[index]

    def reset(self) -> None:
        """Drop all samples and return the filter to initial conditions."""
        with self._lock:
            self._clear()

    def _clear(self) -> None:
        self._history = deque(maxlen=self._history_limit)
        self._window.clear()
        self._fused = []
        self._validator.reset()
        self._strategy.reset()
        self._synced = True

    def _refuse(self, samples: Iterable[SensorSample]) -> None:
        """Full pass from initial conditions."""
        samples = list(samples)
        if self._monitor is not None:
            self._monitor.start_pass()
        self._fused = self._strategy.run(samples)
        if self._monitor is not None:
            self._monitor.end_pass(len(samples), full=True)

    def _step(self, sample: SensorSample) -> None:
        """Single causal step carrying filter state forward."""
        if self._monitor is not None:
            self._monitor.start_pass()
        self._fused.append(self._strategy.update(sample))
        if self._monitor is not None:
            self._monitor.end_pass(1, full=False)
