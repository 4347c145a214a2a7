"""Complementary filter.

Blends integrated gyro rates (trusted short-term) with the tilt implied by
the accelerometer (trusted long-term):

    roll  = alpha * (roll  + gx * dt) + (1 - alpha) * accel_roll
    pitch = alpha * (pitch + gy * dt) + (1 - alpha) * accel_pitch
    yaw   = yaw + gz * dt

Yaw has no accelerometer reference and is gyro-only. With compensation
enabled the accelerometer is first corrected for the sensor's offset from
the center of mass, and the corrected vector is recorded on each sample.
"""

import numpy as np
from numpy.typing import NDArray

from ..core.config import FusionConfig
from ..core.types import SensorSample
from .base import FusionStrategy, accel_tilt, wrap_angle
from .compensation import angular_acceleration, compensate_sample_accel


class ComplementaryFilter(FusionStrategy):
    """Scalar roll/pitch/yaw complementary filter in degrees."""

    name = "complementary"

    def __init__(self, config: FusionConfig):
        super().__init__(config)
        self.alpha = config.complementary.alpha
        self.compensate = config.complementary.compensate
        self._offset = np.asarray(config.compensation.sensor_offset_m, dtype=np.float64)
        self._gravity = config.compensation.gravity
        self._reset_state()

    def _reset_state(self) -> None:
        self.roll = 0.0
        self.pitch = 0.0
        self.yaw = 0.0

    @property
    def state(self) -> dict:
        return {"roll": self.roll, "pitch": self.pitch, "yaw": self.yaw}

    def _compensated(self, sample: SensorSample, raw_dt: float) -> NDArray[np.float64]:
        if self._previous is None:
            alpha_rad = np.zeros(3)
        else:
            alpha_rad = angular_acceleration(sample.gyro, self._previous.gyro, raw_dt)
        return compensate_sample_accel(
            sample.accel, sample.gyro, alpha_rad, self._offset, self._gravity
        )

    def _initialize(self, sample: SensorSample) -> SensorSample:
        self.roll, self.pitch = accel_tilt(sample.accel_x, sample.accel_y, sample.accel_z)
        self.yaw = 0.0

        comp = self._compensated(sample, 0.0) if self.compensate else None
        return sample.with_orientation(self.roll, self.pitch, self.yaw, comp)

    def _step(self, sample: SensorSample, dt: float, raw_dt: float) -> SensorSample:
        if self.compensate:
            comp = self._compensated(sample, raw_dt)
            ax, ay, az = comp
        else:
            comp = None
            ax, ay, az = sample.accel_x, sample.accel_y, sample.accel_z

        accel_roll, accel_pitch = accel_tilt(ax, ay, az)
        a = self.alpha

        self.roll = a * (self.roll + sample.gyro_x * dt) + (1 - a) * accel_roll
        self.pitch = a * (self.pitch + sample.gyro_y * dt) + (1 - a) * accel_pitch
        self.yaw = wrap_angle(self.yaw + sample.gyro_z * dt)

        return sample.with_orientation(self.roll, self.pitch, self.yaw, comp)
