"""Center-of-mass compensation for an offset-mounted accelerometer.

An IMU mounted at offset r from the center of mass of a rotating body
also measures centripetal and tangential acceleration:

    a_cm = a_imu - (w x (w x r) + alpha x r)

w is angular velocity (rad/s), alpha angular acceleration (rad/s^2).
"""

import numpy as np
from numpy.typing import NDArray

STANDARD_GRAVITY = 9.80665


def cross(u: NDArray[np.float64], v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Closed-form cross product of two 3-vectors."""
    return np.array([
        u[1] * v[2] - u[2] * v[1],
        u[2] * v[0] - u[0] * v[2],
        u[0] * v[1] - u[1] * v[0],
    ], dtype=np.float64)


def rotation_terms(
    angular_velocity: NDArray[np.float64],
    angular_acceleration: NDArray[np.float64],
    sensor_offset: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Centripetal plus tangential acceleration seen at the sensor offset."""
    w = np.asarray(angular_velocity, dtype=np.float64)
    alpha = np.asarray(angular_acceleration, dtype=np.float64)
    r = np.asarray(sensor_offset, dtype=np.float64)

    return cross(w, cross(w, r)) + cross(alpha, r)


def compensate(
    accel: NDArray[np.float64],
    angular_velocity: NDArray[np.float64],
    angular_acceleration: NDArray[np.float64],
    sensor_offset: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Remove rotation-induced terms from an acceleration reading.

    All quantities in consistent SI units (m/s^2, rad/s, rad/s^2, m).

    Returns:
        Acceleration at the center of mass.
    """
    return np.asarray(accel, dtype=np.float64) - rotation_terms(
        angular_velocity, angular_acceleration, sensor_offset
    )


def angular_acceleration(
    gyro_deg: NDArray[np.float64],
    previous_gyro_deg: NDArray[np.float64],
    dt: float,
) -> NDArray[np.float64]:
    """Finite-difference angular acceleration in rad/s^2.

    Returns zeros when dt is not positive.
    """
    if dt <= 0.0:
        return np.zeros(3)
    return np.radians(np.asarray(gyro_deg) - np.asarray(previous_gyro_deg)) / dt


def compensate_sample_accel(
    accel_g: NDArray[np.float64],
    gyro_deg: NDArray[np.float64],
    alpha_rad: NDArray[np.float64],
    sensor_offset: NDArray[np.float64],
    gravity: float = STANDARD_GRAVITY,
) -> NDArray[np.float64]:
    """Compensate a reading in sensor units (g, deg/s), result in g."""
    terms = rotation_terms(np.radians(gyro_deg), alpha_rad, sensor_offset)
    return np.asarray(accel_g, dtype=np.float64) - terms / gravity
