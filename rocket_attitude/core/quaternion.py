"""Quaternion helpers for the Madgwick filter.

Quaternions are [w, x, y, z] with w the scalar part. Euler angles use the
aerospace ZYX sequence: yaw about Z, then pitch about Y, then roll about X.
"""

import numpy as np
from numpy.typing import NDArray

from .types import EulerAngles, Quaternion


class QuaternionOps:
    """Static quaternion algebra on Quaternion objects and [w, x, y, z] arrays."""

    @staticmethod
    def left_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
        """4x4 matrix L(q) such that q (x) p == L(q) @ p."""
        w, x, y, z = q
        return np.array([
            [w, -x, -y, -z],
            [x, w, -z, y],
            [y, z, w, -x],
            [z, -y, x, w],
        ], dtype=np.float64)

    @staticmethod
    def multiply_array(
        q1: NDArray[np.float64],
        q2: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Hamilton product q1 (x) q2 on arrays."""
        return QuaternionOps.left_matrix(q1) @ np.asarray(q2, dtype=np.float64)

    @staticmethod
    def multiply(q1: Quaternion, q2: Quaternion) -> Quaternion:
        """Hamilton product q1 (x) q2."""
        return Quaternion.from_array(
            QuaternionOps.multiply_array(q1.to_array(), q2.to_array())
        )

    @staticmethod
    def to_euler(q: Quaternion) -> EulerAngles:
        """Unit quaternion to ZYX Euler angles in radians.

        When |sin(pitch)| reaches 1 (gimbal lock) pitch is set to
        +/-pi/2 with the sign of sin(pitch) rather than calling arcsin
        outside its domain.
        """
        w, x, y, z = q.to_array()

        roll = np.arctan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))

        sin_pitch = 2.0 * (w * y - z * x)
        if abs(sin_pitch) >= 1.0:
            pitch = np.copysign(np.pi / 2, sin_pitch)
        else:
            pitch = np.arcsin(sin_pitch)

        yaw = np.arctan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))

        return EulerAngles(roll=float(roll), pitch=float(pitch), yaw=float(yaw))

    @staticmethod
    def from_euler(roll: float, pitch: float, yaw: float) -> Quaternion:
        """Build a quaternion from ZYX Euler angles in radians."""
        cr, sr = np.cos(roll / 2), np.sin(roll / 2)
        cp, sp = np.cos(pitch / 2), np.sin(pitch / 2)
        cy, sy = np.cos(yaw / 2), np.sin(yaw / 2)

        return Quaternion(
            w=float(cr * cp * cy + sr * sp * sy),
            x=float(sr * cp * cy - cr * sp * sy),
            y=float(cr * sp * cy + sr * cp * sy),
            z=float(cr * cp * sy - sr * sp * cy),
        )
