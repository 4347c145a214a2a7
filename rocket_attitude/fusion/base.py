"""Shared contract and time-step policy for orientation filters.

Every filter consumes samples in time order and annotates each one with
roll, pitch and yaw computed from that sample and its predecessors only.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

import numpy as np

from ..core.config import FusionConfig
from ..core.types import SensorSample
from ..core.validation import validate_dt

logger = logging.getLogger(__name__)


def compute_dt(current: SensorSample, previous: Optional[SensorSample]) -> Optional[float]:
    """Seconds between two samples, None for the first sample of a run.

    Uses relative_time when both samples carry it, else the device
    millisecond timestamps.
    """
    if previous is None:
        return None
    if current.relative_time is not None and previous.relative_time is not None:
        return current.relative_time - previous.relative_time
    return (current.timestamp - previous.timestamp) / 1000.0


def clamp_dt(dt: float, max_dt: float) -> float:
    """Limit dt to [0, max_dt] so a gap never injects a large one-step jump.

    Raises:
        ValueError: If dt is not finite.
    """
    check = validate_dt(dt, max_dt)
    if not check.is_valid:
        raise ValueError("; ".join(check.errors))
    for message in check.warnings:
        logger.log(logging.WARNING if dt < 0.0 else logging.DEBUG, message)
    return min(max(dt, 0.0), max_dt)


def wrap_angle(angle: float) -> float:
    """Wrap degrees into [-180, 180] in constant time, whatever the magnitude."""
    if not math.isfinite(angle):
        raise ValueError(f"Cannot wrap non-finite angle: {angle}")
    return math.remainder(angle, 360.0)


def accel_tilt(ax: float, ay: float, az: float) -> Tuple[float, float]:
    """Roll and pitch in degrees implied by the gravity direction."""
    roll = np.degrees(np.arctan2(ay, az))
    pitch = np.degrees(np.arctan2(-ax, np.sqrt(ay * ay + az * az)))
    return float(roll), float(pitch)


class FusionStrategy(ABC):
    """Base class for interchangeable orientation filters.

    Subclasses implement _initialize() for the first sample of a run and
    _step() for every later sample. update() carries state forward one
    sample at a time; run() restarts from initial conditions.
    """

    name = "base"

    def __init__(self, config: FusionConfig):
        """Initialize filter.

        Args:
            config: Fusion configuration (timing and per-filter tuning).
        """
        self._config = config
        self._max_dt = config.timing.max_dt_s
        self._default_dt = config.timing.default_dt_s
        self._previous: Optional[SensorSample] = None
        self._iteration = 0

    def reset(self) -> None:
        """Return to initial conditions."""
        self._previous = None
        self._iteration = 0
        self._reset_state()

    def update(self, sample: SensorSample) -> SensorSample:
        """Fuse one sample, continuing from the current state.

        Args:
            sample: Next sample in time order.

        Returns:
            Annotated copy of the sample.
        """
        raw_dt = compute_dt(sample, self._previous)
        if raw_dt is None:
            fused = self._initialize(sample)
        else:
            fused = self._step(sample, clamp_dt(raw_dt, self._max_dt), raw_dt)

        self._previous = sample
        self._iteration += 1
        return fused

    def run(self, samples: Iterable[SensorSample]) -> List[SensorSample]:
        """Fuse a whole sequence from initial conditions.

        Args:
            samples: Samples in time order.

        Returns:
            Same-length list of annotated copies.
        """
        self.reset()
        return [self.update(sample) for sample in samples]

    @property
    def iteration(self) -> int:
        """Samples fused since the last reset."""
        return self._iteration

    @property
    @abstractmethod
    def state(self) -> dict:
        """Snapshot of the running estimate."""

    @abstractmethod
    def _reset_state(self) -> None:
        """Reset the filter-specific estimate."""

    @abstractmethod
    def _initialize(self, sample: SensorSample) -> SensorSample:
        """Fuse the first sample of a run."""

    @abstractmethod
    def _step(self, sample: SensorSample, dt: float, raw_dt: float) -> SensorSample:
        """Fuse a later sample.

        Args:
            sample: Current sample.
            dt: Clamped time step used for integration.
            raw_dt: Unclamped time step since the previous sample.
        """
