"""Data types for rocket attitude estimation."""

from dataclasses import dataclass, field, replace
from typing import List, Optional
import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class SensorSample:
    """Single IMU reading, optionally annotated by a fusion pass.

    Units as delivered by the flight computer:
    - Accelerometer: g (at rest az is about -1 after Z auto-correction)
    - Gyroscope: deg/s
    - Altitude: m (passed through, not fused)
    """
    timestamp: int  # Device milliseconds since boot
    relative_time: Optional[float]  # Seconds since first sample of the session
    accel_x: float
    accel_y: float
    accel_z: float
    gyro_x: float
    gyro_y: float
    gyro_z: float
    altitude: float = 0.0
    roll: Optional[float] = None
    pitch: Optional[float] = None
    yaw: Optional[float] = None
    comp_accel_x: Optional[float] = None
    comp_accel_y: Optional[float] = None
    comp_accel_z: Optional[float] = None

    @property
    def accel(self) -> NDArray[np.float64]:
        """Accelerometer vector [ax, ay, az] in g."""
        return np.array([self.accel_x, self.accel_y, self.accel_z], dtype=np.float64)

    @property
    def gyro(self) -> NDArray[np.float64]:
        """Gyroscope vector [gx, gy, gz] in deg/s."""
        return np.array([self.gyro_x, self.gyro_y, self.gyro_z], dtype=np.float64)

    @property
    def accel_magnitude(self) -> float:
        """Magnitude of acceleration vector in g."""
        return float(np.linalg.norm(self.accel))

    @property
    def is_fused(self) -> bool:
        """Whether a fusion pass has annotated this sample."""
        return self.roll is not None

    @property
    def raw_values(self) -> tuple:
        """Numeric sensor fields, in declaration order."""
        return (
            self.accel_x, self.accel_y, self.accel_z,
            self.gyro_x, self.gyro_y, self.gyro_z,
            self.altitude,
        )

    def with_orientation(
        self,
        roll: float,
        pitch: float,
        yaw: float,
        comp_accel: Optional[NDArray[np.float64]] = None,
    ) -> "SensorSample":
        """Return an annotated copy; the receiver is left untouched."""
        changes = {"roll": float(roll), "pitch": float(pitch), "yaw": float(yaw)}
        if comp_accel is not None:
            changes.update(
                comp_accel_x=float(comp_accel[0]),
                comp_accel_y=float(comp_accel[1]),
                comp_accel_z=float(comp_accel[2]),
            )
        return replace(self, **changes)

    def raw(self) -> "SensorSample":
        """Return a copy with every fusion annotation cleared."""
        return replace(
            self,
            roll=None, pitch=None, yaw=None,
            comp_accel_x=None, comp_accel_y=None, comp_accel_z=None,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {
            "timestamp": self.timestamp,
            "relative_time": self.relative_time,
            "accel_x": self.accel_x,
            "accel_y": self.accel_y,
            "accel_z": self.accel_z,
            "gyro_x": self.gyro_x,
            "gyro_y": self.gyro_y,
            "gyro_z": self.gyro_z,
            "altitude": self.altitude,
        }
        if self.is_fused:
            data.update(roll=self.roll, pitch=self.pitch, yaw=self.yaw)
        if self.comp_accel_x is not None:
            data.update(
                comp_accel_x=self.comp_accel_x,
                comp_accel_y=self.comp_accel_y,
                comp_accel_z=self.comp_accel_z,
            )
        return data


@dataclass
class Quaternion:
    """Orientation quaternion [w, x, y, z], w being the scalar part."""
    w: float
    x: float
    y: float
    z: float

    @classmethod
    def identity(cls) -> "Quaternion":
        """No rotation."""
        return cls(1.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, arr: NDArray[np.float64]) -> "Quaternion":
        w, x, y, z = (float(v) for v in arr)
        return cls(w, x, y, z)

    def to_array(self) -> NDArray[np.float64]:
        return np.array([self.w, self.x, self.y, self.z], dtype=np.float64)

    @property
    def norm(self) -> float:
        return float(np.linalg.norm(self.to_array()))

    def is_valid(self, tolerance: float = 1e-6) -> bool:
        """Finite and of unit length within tolerance."""
        return self._is_finite() and abs(self.norm - 1.0) <= tolerance

    def _is_finite(self) -> bool:
        return bool(np.isfinite(self.to_array()).all())

    def normalized(self) -> "Quaternion":
        """Unit-length copy.

        A zero-length or non-finite quaternion carries no orientation and
        becomes the identity, so one bad step cannot poison later ones.
        """
        n = self.norm
        if not np.isfinite(n) or n < 1e-10:
            return Quaternion.identity()
        return Quaternion.from_array(self.to_array() / n)


@dataclass(frozen=True)
class EulerAngles:
    """ZYX Euler angles in radians (roll about X, pitch about Y, yaw about Z)."""
    roll: float
    pitch: float
    yaw: float

    @property
    def roll_deg(self) -> float:
        return float(np.degrees(self.roll))

    @property
    def pitch_deg(self) -> float:
        return float(np.degrees(self.pitch))

    @property
    def yaw_deg(self) -> float:
        return float(np.degrees(self.yaw))


@dataclass
class ValidationResult:
    """Outcome of a plausibility check; any error makes it invalid."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors
