"""Madgwick gradient-descent orientation filter (IMU variant).

The quaternion is propagated with the gyro rate and pulled toward the
orientation that aligns the reference gravity direction with the measured
accelerometer vector:

    qdot = 0.5 * q (x) [0, gx, gy, gz] - beta * grad / |grad|
    q    = normalize(q + qdot * dt)

beta trades drift correction speed against accelerometer noise.
"""

import logging

import numpy as np
from numpy.typing import NDArray

from ..core.config import FusionConfig
from ..core.quaternion import QuaternionOps
from ..core.types import Quaternion, SensorSample
from .base import FusionStrategy, wrap_angle

logger = logging.getLogger(__name__)

EPSILON = 1e-12


def objective_gradient(q: NDArray[np.float64], a: NDArray[np.float64]) -> NDArray[np.float64]:
    """Gradient J^T f of the gravity alignment objective.

    Args:
        q: Unit quaternion [w, x, y, z].
        a: Normalized accelerometer vector.
    """
    q0, q1, q2, q3 = q
    ax, ay, az = a

    _2q0 = 2.0 * q0
    _2q1 = 2.0 * q1
    _2q2 = 2.0 * q2
    _2q3 = 2.0 * q3
    _4q0 = 4.0 * q0
    _4q1 = 4.0 * q1
    _4q2 = 4.0 * q2
    _8q1 = 8.0 * q1
    _8q2 = 8.0 * q2
    q0q0 = q0 * q0
    q1q1 = q1 * q1
    q2q2 = q2 * q2
    q3q3 = q3 * q3

    s0 = _4q0 * q2q2 + _2q2 * ax + _4q0 * q1q1 - _2q1 * ay
    s1 = (_4q1 * q3q3 - _2q3 * ax + 4.0 * q0q0 * q1 - _2q0 * ay - _4q1
          + _8q1 * q1q1 + _8q1 * q2q2 + _4q1 * az)
    s2 = (4.0 * q0q0 * q2 + _2q0 * ax + _4q2 * q3q3 - _2q3 * ay - _4q2
          + _8q2 * q1q1 + _8q2 * q2q2 + _4q2 * az)
    s3 = 4.0 * q1q1 * q3 - _2q1 * ax + 4.0 * q2q2 * q3 - _2q2 * ay

    return np.array([s0, s1, s2, s3], dtype=np.float64)


def madgwick_step(
    q: NDArray[np.float64],
    gyro_rad: NDArray[np.float64],
    accel: NDArray[np.float64],
    beta: float,
    dt: float,
) -> NDArray[np.float64]:
    """One Madgwick update.

    A zero accelerometer vector or a zero gradient skips the correction
    term instead of dividing by zero.

    Returns:
        New unit quaternion.
    """
    omega = np.array([0.0, gyro_rad[0], gyro_rad[1], gyro_rad[2]], dtype=np.float64)
    qdot = 0.5 * QuaternionOps.multiply_array(q, omega)

    a_norm = np.linalg.norm(accel)
    if a_norm > EPSILON:
        gradient = objective_gradient(q, np.asarray(accel, dtype=np.float64) / a_norm)
        g_norm = np.linalg.norm(gradient)
        if g_norm > EPSILON:
            qdot = qdot - beta * gradient / g_norm
    else:
        logger.debug("Zero-norm accelerometer, gyro-only Madgwick step")

    q_new = Quaternion.from_array(q + qdot * dt).normalized()
    return q_new.to_array()


class MadgwickFilter(FusionStrategy):
    """Quaternion filter starting from identity.

    The first sample of a run is integrated over the default time step,
    since a quaternion filter has no separate initialization path.
    """

    name = "madgwick"

    def __init__(self, config: FusionConfig):
        super().__init__(config)
        self.beta = config.madgwick.beta
        self._reset_state()

    def _reset_state(self) -> None:
        self.q = Quaternion.identity().to_array()

    @property
    def state(self) -> dict:
        return {"q": self.q.copy()}

    @property
    def quaternion(self) -> Quaternion:
        """Current orientation quaternion."""
        return Quaternion.from_array(self.q)

    def _initialize(self, sample: SensorSample) -> SensorSample:
        return self._step(sample, self._default_dt, self._default_dt)

    def _step(self, sample: SensorSample, dt: float, raw_dt: float) -> SensorSample:
        self.q = madgwick_step(self.q, np.radians(sample.gyro), sample.accel, self.beta, dt)

        euler = QuaternionOps.to_euler(self.quaternion)
        return sample.with_orientation(
            wrap_angle(euler.roll_deg),
            wrap_angle(euler.pitch_deg),
            wrap_angle(euler.yaw_deg),
        )
