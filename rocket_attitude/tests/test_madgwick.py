"""Tests for the Madgwick filter."""

import numpy as np
import pytest
from ahrs.filters import Madgwick
from numpy.testing import assert_allclose

from rocket_attitude.core.quaternion import QuaternionOps
from rocket_attitude.core.types import Quaternion
from rocket_attitude.fusion.madgwick import MadgwickFilter, madgwick_step, objective_gradient


@pytest.fixture
def madgwick(config):
    return MadgwickFilter(config.fusion)


class TestMadgwickStep:
    """Tests for the single update step."""

    @pytest.mark.parametrize("q, gyr, acc", [
        ([1.0, 0.0, 0.0, 0.0], [0.1, -0.2, 0.3], [0.1, 0.2, 0.97]),
        ([0.9, 0.1, -0.3, 0.2], [0.5, 0.05, -0.4], [-0.3, 0.4, 0.8]),
        ([0.7, -0.5, 0.4, 0.3], [-1.0, 2.0, 0.5], [0.0, -0.6, -0.7]),
    ])
    def test_matches_ahrs(self, q, gyr, acc):
        """Same result as the ahrs reference implementation."""
        q = np.asarray(q) / np.linalg.norm(q)
        gyr = np.asarray(gyr)
        acc = np.asarray(acc)

        reference = Madgwick(frequency=10.0, gain=0.1).updateIMU(q.copy(), gyr, acc)
        ours = madgwick_step(q.copy(), gyr, acc, 0.1, 0.1)

        assert_allclose(ours, reference, atol=1e-9)

    def test_gradient_zero_at_alignment(self):
        """No correction is needed when gravity already matches."""
        grad = objective_gradient(np.array([1.0, 0.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]))
        assert_allclose(grad, np.zeros(4), atol=1e-15)

    def test_zero_accel_integrates_gyro_only(self):
        q0 = np.array([1.0, 0.0, 0.0, 0.0])
        gyr = np.array([0.0, 0.0, 1.0])

        q = madgwick_step(q0, gyr, np.zeros(3), 0.1, 0.1)

        expected = q0 + 0.5 * QuaternionOps.multiply_array(q0, np.array([0.0, *gyr])) * 0.1
        assert_allclose(q, expected / np.linalg.norm(expected))
        assert np.all(np.isfinite(q))

    def test_result_is_unit(self):
        q = madgwick_step(np.array([1.0, 0.0, 0.0, 0.0]), np.array([3.0, -2.0, 1.0]),
                          np.array([0.2, 0.3, 0.9]), 0.5, 0.5)
        assert np.linalg.norm(q) == pytest.approx(1.0, abs=1e-12)


class TestMadgwickFilter:
    """Tests for MadgwickFilter."""

    def test_starts_from_identity(self, madgwick):
        assert madgwick.quaternion == Quaternion.identity()

    def test_first_sample_uses_default_dt(self, madgwick, sample_factory):
        sample = sample_factory(accel=(0.1, 0.2, 0.95), gyro=(10.0, -5.0, 20.0))
        madgwick.update(sample)

        expected = madgwick_step(
            np.array([1.0, 0.0, 0.0, 0.0]), np.radians(sample.gyro), sample.accel, 0.1, 0.1
        )
        assert_allclose(madgwick.q, expected)

    def test_unit_norm_every_step(self, madgwick, flight_samples):
        madgwick.reset()
        for sample in flight_samples:
            madgwick.update(sample)
            assert madgwick.quaternion.is_valid(tolerance=1e-6)

    def test_output_matches_quaternion(self, madgwick, flight_samples):
        fused = madgwick.run(flight_samples)
        euler = QuaternionOps.to_euler(madgwick.quaternion)

        assert fused[-1].roll == pytest.approx(euler.roll_deg)
        assert fused[-1].pitch == pytest.approx(euler.pitch_deg)
        assert fused[-1].yaw == pytest.approx(euler.yaw_deg)

    def test_converges_to_accelerometer_tilt(self, madgwick, sample_factory):
        tilt = np.radians(30.0)
        samples = [
            sample_factory(timestamp=100 * i, accel=(0.0, np.sin(tilt), np.cos(tilt)))
            for i in range(300)
        ]
        fused = madgwick.run(samples)

        assert fused[-1].roll == pytest.approx(30.0, abs=2.0)
        assert fused[-1].pitch == pytest.approx(0.0, abs=2.0)

    def test_beta_zero_is_gyro_only(self, config, sample_factory):
        config.fusion.madgwick.beta = 0.0
        filt = MadgwickFilter(config.fusion)
        samples = [
            sample_factory(timestamp=100 * i, accel=(0.0, 0.7, 0.7), gyro=(0.0, 0.0, 10.0))
            for i in range(10)
        ]
        fused = filt.run(samples)

        # ten steps of 1 degree, the first over the default dt
        assert fused[-1].yaw == pytest.approx(10.0, abs=0.01)
        assert fused[-1].roll == pytest.approx(0.0, abs=1e-9)

    def test_zero_accel_sample_keeps_state_finite(self, madgwick, sample_factory):
        samples = [
            sample_factory(timestamp=0),
            sample_factory(timestamp=100, accel=(0.0, 0.0, 0.0), gyro=(5.0, 5.0, 5.0)),
            sample_factory(timestamp=200),
        ]
        for fused in madgwick.run(samples):
            assert np.isfinite([fused.roll, fused.pitch, fused.yaw]).all()
