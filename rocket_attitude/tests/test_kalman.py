"""Tests for the six-state Kalman filter."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from rocket_attitude.fusion.base import accel_tilt
from rocket_attitude.fusion.kalman import KalmanFilter


@pytest.fixture
def kalman(config):
    return KalmanFilter(config.fusion)


class TestKalmanSetup:
    """Matrices and initial conditions."""

    def test_noise_matrices(self, kalman):
        assert_allclose(kalman.Q, np.eye(6) * 0.01)
        assert_allclose(np.diag(kalman.R), [0.1, 0.1, 0.1, 0.01, 0.01, 0.01])
        assert_allclose(kalman.H, np.eye(6))
        assert_allclose(np.diag(kalman.covariance), [1000, 1000, 1000, 100, 100, 100])

    def test_transition(self):
        F = KalmanFilter.transition(0.2)
        expected = np.eye(6)
        expected[0, 3] = expected[1, 4] = expected[2, 5] = 0.2
        assert_allclose(F, expected)

    def test_initial_state(self, kalman, sample_factory):
        sample = sample_factory(accel=(0.1, 0.4, 0.9), gyro=(1.0, 2.0, 3.0))
        fused = kalman.update(sample)
        roll, pitch = accel_tilt(0.1, 0.4, 0.9)

        assert_allclose(kalman.state["x"], [roll, pitch, 0.0, 1.0, 2.0, 3.0])
        assert fused.roll == pytest.approx(roll)
        assert fused.yaw == 0.0
        assert kalman.innovation is None


class TestKalmanStep:
    """Predict and correct."""

    def test_one_step_matches_reference(self, kalman, sample_factory):
        """One step follows predict/update with the diagonal-only inverse."""
        first = sample_factory(timestamp=0, accel=(0.0, 0.0, 1.0), gyro=(5.0, -3.0, 8.0))
        second = sample_factory(timestamp=100, accel=(0.05, 0.1, 0.99), gyro=(6.0, -2.0, 9.0))

        kalman.update(first)
        fused = kalman.update(second)

        dt = 0.1
        x = np.array([0.0, 0.0, 0.0, 5.0, -3.0, 8.0])
        P = np.diag([1000.0] * 3 + [100.0] * 3)
        F = np.eye(6)
        F[0, 3] = F[1, 4] = F[2, 5] = dt
        Q = np.eye(6) * 0.01
        R = np.diag([0.1] * 3 + [0.01] * 3)

        x = F @ x
        P = F @ P @ F.T + Q
        roll_m, pitch_m = accel_tilt(0.05, 0.1, 0.99)
        z = np.array([roll_m, pitch_m, x[2] + 9.0 * dt, 6.0, -2.0, 9.0])
        y = z - x
        S = P + R
        K = P @ np.diag(1.0 / np.diag(S))
        x = x + K @ y
        P = (np.eye(6) - K) @ P

        assert_allclose(kalman.state["x"], x, atol=1e-9)
        assert_allclose(kalman.covariance, P, atol=1e-9)
        assert_allclose(kalman.innovation, y, atol=1e-12)
        assert fused.roll == pytest.approx(x[0])
        assert fused.yaw == pytest.approx(x[2])

    def test_full_inverse_differs_once_correlated(self, config, flight_samples):
        """S is non-diagonal after the first predict, so the two modes diverge."""
        diagonal = KalmanFilter(config.fusion).run(flight_samples[:10])
        config.fusion.kalman.inverse = "full"
        full = KalmanFilter(config.fusion).run(flight_samples[:10])

        assert diagonal[0].roll == full[0].roll
        assert any(abs(a.roll - b.roll) > 1e-9 for a, b in zip(diagonal[1:], full[1:]))
        assert all(np.isfinite([s.roll, s.pitch, s.yaw]).all() for s in full)

    def test_uncertainty_shrinks(self, kalman, rest_samples):
        kalman.run(rest_samples)
        P = kalman.covariance
        assert np.all(np.diag(P)[:3] < 1000.0)
        assert np.all(np.diag(P)[3:] < 100.0)

    def test_all_angles_wrapped(self, kalman, sample_factory):
        samples = [
            sample_factory(timestamp=100 * i, accel=(0.0, 0.0, 1.0), gyro=(900.0, -900.0, 900.0))
            for i in range(100)
        ]
        for fused in kalman.run(samples):
            for angle in (fused.roll, fused.pitch, fused.yaw):
                assert -180.0 <= angle <= 180.0

    def test_yaw_follows_gyro(self, kalman, sample_factory):
        """Yaw is unobservable from gravity and advances with the gyro rate."""
        samples = [
            sample_factory(timestamp=100 * i, accel=(0.0, 0.0, 1.0), gyro=(0.0, 0.0, 10.0))
            for i in range(30)
        ]
        fused = kalman.run(samples)

        yaws = [s.yaw for s in fused]
        assert all(b > a for a, b in zip(yaws, yaws[1:]))

    def test_run_resets(self, kalman, flight_samples):
        first = kalman.run(flight_samples)
        second = kalman.run(flight_samples)
        assert [s.roll for s in first] == [s.roll for s in second]
