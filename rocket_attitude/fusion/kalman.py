"""Six-state linear Kalman filter.

State vector: [roll, pitch, yaw, roll_rate, pitch_rate, yaw_rate]
(degrees and degrees/second), constant-velocity model per angle.

Every state is observed directly (H = I): roll and pitch from the
accelerometer tilt, the three rates from the gyroscope, and yaw from its
own prediction advanced by the gyro, since gravity carries no heading
information.
"""

import logging
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ..core import linalg
from ..core.config import FusionConfig
from ..core.types import SensorSample
from .base import FusionStrategy, accel_tilt, wrap_angle

logger = logging.getLogger(__name__)

ANGLE_STATES = (0, 1, 2)


class KalmanFilter(FusionStrategy):
    """Linear Kalman filter over Euler angles and their rates.

    The innovation covariance is inverted with its diagonal only by
    default. That is exact while S stays diagonal; F couples angles and
    rates, so S picks up off-diagonal terms and the gain becomes an
    approximation. Set kalman.inverse to "full" for the general inverse.
    """

    name = "kalman"

    def __init__(self, config: FusionConfig):
        super().__init__(config)
        cfg = config.kalman

        self.Q = linalg.diagonal([cfg.process_noise] * 6)
        self.R = linalg.diagonal(
            [cfg.angle_measurement_noise] * 3 + [cfg.rate_measurement_noise] * 3
        )
        self.H = linalg.identity()
        self._P0 = linalg.diagonal(
            [cfg.initial_angle_variance] * 3 + [cfg.initial_rate_variance] * 3
        )
        self.inverse_mode = cfg.inverse
        self._invert = (
            linalg.full_inverse if cfg.inverse == "full" else linalg.diagonal_inverse
        )
        self._reset_state()

    def _reset_state(self) -> None:
        self.x = np.zeros(6)
        self.P = self._P0.copy()
        self.innovation: Optional[NDArray[np.float64]] = None

    @property
    def state(self) -> dict:
        return {
            "x": self.x.copy(),
            "P": self.P.copy(),
        }

    @property
    def covariance(self) -> NDArray[np.float64]:
        """Current 6x6 state covariance."""
        return self.P.copy()

    @staticmethod
    def transition(dt: float) -> NDArray[np.float64]:
        """Constant-velocity transition matrix for one step of dt seconds."""
        F = linalg.identity()
        F[0, 3] = F[1, 4] = F[2, 5] = dt
        return F

    def _initialize(self, sample: SensorSample) -> SensorSample:
        roll, pitch = accel_tilt(sample.accel_x, sample.accel_y, sample.accel_z)
        self.x = np.array(
            [roll, pitch, 0.0, sample.gyro_x, sample.gyro_y, sample.gyro_z],
            dtype=np.float64,
        )
        self.P = self._P0.copy()
        return sample.with_orientation(self.x[0], self.x[1], self.x[2])

    def predict(self, dt: float) -> None:
        """Propagate state and covariance by dt seconds."""
        F = self.transition(dt)
        self.x = linalg.mat_vec(F, self.x)
        self.P = linalg.add(
            linalg.mat_mul(linalg.mat_mul(F, self.P), linalg.transpose(F)),
            self.Q,
        )

    def measurement(self, sample: SensorSample, dt: float) -> NDArray[np.float64]:
        """Measurement vector for a sample, against the predicted yaw."""
        accel_roll, accel_pitch = accel_tilt(
            sample.accel_x, sample.accel_y, sample.accel_z
        )
        return np.array([
            accel_roll,
            accel_pitch,
            self.x[2] + sample.gyro_z * dt,
            sample.gyro_x,
            sample.gyro_y,
            sample.gyro_z,
        ], dtype=np.float64)

    def correct(self, z: NDArray[np.float64]) -> None:
        """Measurement update with a full 6-vector observation."""
        H_T = linalg.transpose(self.H)

        y = linalg.subtract(z, linalg.mat_vec(self.H, self.x))
        S = linalg.add(linalg.mat_mul(linalg.mat_mul(self.H, self.P), H_T), self.R)
        K = linalg.mat_mul(linalg.mat_mul(self.P, H_T), self._invert(S))

        self.x = linalg.add(self.x, linalg.mat_vec(K, y))
        self.P = linalg.mat_mul(
            linalg.subtract(linalg.identity(), linalg.mat_mul(K, self.H)),
            self.P,
        )
        self.innovation = y

        for i in ANGLE_STATES:
            self.x[i] = wrap_angle(self.x[i])

    def _step(self, sample: SensorSample, dt: float, raw_dt: float) -> SensorSample:
        self.predict(dt)
        self.correct(self.measurement(sample, dt))
        return sample.with_orientation(self.x[0], self.x[1], self.x[2])
