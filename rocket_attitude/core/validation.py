"""Input validation for sensor samples."""

import logging
from typing import Optional
import numpy as np

from .types import SensorSample, ValidationResult
from .config import Config

logger = logging.getLogger(__name__)

FIELD_NAMES = (
    "accel_x", "accel_y", "accel_z",
    "gyro_x", "gyro_y", "gyro_z",
    "altitude",
)


class SampleValidator:
    """Validates sensor samples for plausibility before fusion."""

    def __init__(self, config: Config):
        """Initialize validator with configuration.

        Args:
            config: System configuration with validation thresholds.
        """
        self._config = config
        self._last_relative_time: Optional[float] = None

    def validate(self, sample: SensorSample) -> ValidationResult:
        """Validate a sample and remember its time for the next check.

        Args:
            sample: Sensor sample to validate.

        Returns:
            ValidationResult with validation status and any errors/warnings.
        """
        result = ValidationResult()

        self._check_finite(sample, result)
        if result.is_valid:
            self._check_accelerometer(sample, result)
        self._check_time(sample, result)

        if sample.relative_time is not None:
            self._last_relative_time = sample.relative_time

        return result

    def _check_finite(self, sample: SensorSample, result: ValidationResult) -> None:
        """Check all values are finite (not NaN or Inf)."""
        for name, val in zip(FIELD_NAMES, sample.raw_values):
            if not np.isfinite(val):
                result.errors.append(f"Non-finite {name}: {val}")
        if sample.relative_time is not None and not np.isfinite(sample.relative_time):
            result.errors.append(f"Non-finite relative_time: {sample.relative_time}")

    def _check_accelerometer(self, sample: SensorSample, result: ValidationResult) -> None:
        """Warn when the acceleration magnitude is implausible."""
        cfg = self._config.validation
        magnitude = sample.accel_magnitude

        if magnitude < cfg.accel_min_g:
            result.warnings.append(f"Acceleration magnitude too small: {magnitude:.3f} g")
        elif magnitude > cfg.accel_max_g:
            result.warnings.append(f"Acceleration magnitude too large: {magnitude:.3f} g")

    def _check_time(self, sample: SensorSample, result: ValidationResult) -> None:
        """Warn on non-increasing relative time."""
        if self._last_relative_time is None or sample.relative_time is None:
            return

        dt = sample.relative_time - self._last_relative_time
        if dt < 0:
            result.warnings.append(f"Out-of-order sample: dt={dt:.6f}s")
        elif dt == 0:
            result.warnings.append("Duplicate relative_time: dt=0")

    def reset(self) -> None:
        """Reset validator state."""
        self._last_relative_time = None


def validate_dt(dt: float, max_dt: float) -> ValidationResult:
    """Validate a time step before integration.

    Args:
        dt: Time step in seconds.
        max_dt: Clamp applied by the filters.

    Returns:
        ValidationResult with status.
    """
    result = ValidationResult()

    if not np.isfinite(dt):
        result.errors.append(f"Non-finite dt: {dt}")
    elif dt < 0:
        result.warnings.append(f"Negative dt clamped to 0: {dt*1000:.2f}ms")
    elif dt > max_dt:
        result.warnings.append(f"dt clamped: {dt*1000:.2f}ms > {max_dt*1000:.0f}ms")

    return result
