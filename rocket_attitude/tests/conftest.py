"""Pytest fixtures for rocket attitude tests."""

from typing import Callable, List, Optional

import pytest

from rocket_attitude.communication import MockRocketSource
from rocket_attitude.core.config import Config
from rocket_attitude.core.types import SensorSample
from rocket_attitude.ingestion.live import LiveRecordParser

HEADER = "millis\taccelX\taccelY\taccelZ\tgyroX\tgyroY\tgyroZ\taltitude"


def make_sample(
    timestamp: int = 0,
    relative_time: Optional[float] = None,
    accel=(0.0, 0.0, -1.0),
    gyro=(0.0, 0.0, 0.0),
    altitude: float = 0.0,
) -> SensorSample:
    """Build a raw sample; relative_time defaults to timestamp / 1000."""
    if relative_time is None:
        relative_time = timestamp / 1000.0
    return SensorSample(
        timestamp=timestamp,
        relative_time=relative_time,
        accel_x=float(accel[0]),
        accel_y=float(accel[1]),
        accel_z=float(accel[2]),
        gyro_x=float(gyro[0]),
        gyro_y=float(gyro[1]),
        gyro_z=float(gyro[2]),
        altitude=altitude,
    )


@pytest.fixture
def config() -> Config:
    """Create default configuration for tests."""
    return Config()


@pytest.fixture
def sample_factory() -> Callable[..., SensorSample]:
    """Factory for raw samples."""
    return make_sample


@pytest.fixture
def rest_samples() -> List[SensorSample]:
    """60 identical at-rest samples at 10 Hz, gravity on -Z."""
    return [make_sample(timestamp=1000 + 100 * i) for i in range(60)]


@pytest.fixture
def flight_samples() -> List[SensorSample]:
    """200 samples of synthetic rocket motion at 10 Hz."""
    parser = LiveRecordParser()
    samples = []
    for i in range(200):
        t = 5000 + 100 * i
        samples.append(parser.parse(MockRocketSource.record_at(t), arrival_time=t / 1000.0))
    return samples


@pytest.fixture
def record_text() -> str:
    """Small flight record with comma decimals, gravity on -Z."""
    rows = [
        "1000\t0,01\t-0,02\t-0,98\t0,5\t-0,3\t1,2\t101,5",
        "1100\t0,02\t-0,01\t-0,99\t0,4\t-0,2\t1,1\t101,7",
        "1200\t0,00\t0,01\t-1,01\t0,3\t-0,1\t1,0\t102,0",
        "1300\t-0,01\t0,02\t-1,00\t0,2\t0,0\t0,9\t102,4",
    ]
    return "\n".join([HEADER] + rows) + "\n"
