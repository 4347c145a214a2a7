"""Tests for the complementary filter."""

import logging
from dataclasses import replace

import numpy as np
import pytest

from rocket_attitude.fusion.base import accel_tilt, clamp_dt, compute_dt, wrap_angle
from rocket_attitude.fusion.complementary import ComplementaryFilter


@pytest.fixture
def plain_filter(config):
    config.fusion.complementary.compensate = False
    return ComplementaryFilter(config.fusion)


class TestSharedPolicy:
    """Time step, tilt and wrap helpers."""

    def test_compute_dt_prefers_relative_time(self, sample_factory):
        prev = sample_factory(timestamp=1000, relative_time=0.0)
        cur = sample_factory(timestamp=5000, relative_time=0.25)
        assert compute_dt(cur, prev) == pytest.approx(0.25)

    def test_compute_dt_falls_back_to_timestamp(self, sample_factory):
        prev = sample_factory(timestamp=1000)
        cur = sample_factory(timestamp=1150)
        cur = replace(cur, relative_time=None)
        assert compute_dt(cur, prev) == pytest.approx(0.15)

    def test_compute_dt_first_sample(self, sample_factory):
        assert compute_dt(sample_factory(), None) is None

    @pytest.mark.parametrize("dt, expected", [(0.1, 0.1), (10.0, 0.5), (-1.0, 0.0), (0.0, 0.0)])
    def test_clamp_dt(self, dt, expected):
        assert clamp_dt(dt, 0.5) == expected

    @pytest.mark.parametrize("angle, expected", [
        (0.0, 0.0), (180.0, 180.0), (-180.0, -180.0),
        (190.0, -170.0), (-190.0, 170.0), (725.0, 5.0), (-1085.0, -5.0),
    ])
    def test_wrap_angle(self, angle, expected):
        assert wrap_angle(angle) == pytest.approx(expected)

    @pytest.mark.parametrize("angle", [1e20, -1e21, 3.6e300])
    def test_wrap_angle_huge(self, angle):
        assert -180.0 <= wrap_angle(angle) <= 180.0

    def test_clamp_dt_logs_negative(self, caplog):
        with caplog.at_level(logging.WARNING, logger="rocket_attitude.fusion.base"):
            assert clamp_dt(-0.2, 0.5) == 0.0
        assert "Negative dt clamped to 0" in caplog.text

    def test_clamp_dt_non_finite(self):
        with pytest.raises(ValueError):
            clamp_dt(float("inf"), 0.5)

    def test_wrap_angle_non_finite(self):
        with pytest.raises(ValueError):
            wrap_angle(float("nan"))

    def test_accel_tilt(self):
        roll, pitch = accel_tilt(0.0, np.sin(np.radians(30)), np.cos(np.radians(30)))
        assert roll == pytest.approx(30.0)
        assert pitch == pytest.approx(0.0)

        roll, pitch = accel_tilt(-1.0, 0.0, 0.0)
        assert pitch == pytest.approx(90.0)


class TestComplementaryFilter:
    """Tests for ComplementaryFilter."""

    def test_first_sample_from_accelerometer(self, plain_filter, sample_factory):
        fused = plain_filter.update(sample_factory(accel=(-0.5, 0.5, 0.5), gyro=(50, 50, 50)))
        roll, pitch = accel_tilt(-0.5, 0.5, 0.5)

        assert fused.roll == pytest.approx(roll)
        assert fused.pitch == pytest.approx(pitch)
        assert fused.yaw == 0.0

    def test_step_formula(self, plain_filter, sample_factory):
        """roll = a*(roll + gx*dt) + (1-a)*accel_roll, yaw integrates gz."""
        first = sample_factory(timestamp=0, accel=(0.0, 0.0, 1.0))
        second = sample_factory(timestamp=100, accel=(0.0, 0.5, 0.5), gyro=(10.0, -20.0, 30.0))

        plain_filter.update(first)
        fused = plain_filter.update(second)

        accel_roll, accel_pitch = accel_tilt(0.0, 0.5, 0.5)
        assert fused.roll == pytest.approx(0.98 * (0.0 + 10.0 * 0.1) + 0.02 * accel_roll)
        assert fused.pitch == pytest.approx(0.98 * (0.0 - 20.0 * 0.1) + 0.02 * accel_pitch)
        assert fused.yaw == pytest.approx(3.0)

    def test_alpha_configurable(self, config, sample_factory):
        config.fusion.complementary.compensate = False
        config.fusion.complementary.alpha = 0.0
        filt = ComplementaryFilter(config.fusion)

        filt.update(sample_factory(timestamp=0, accel=(0.0, 0.0, 1.0)))
        fused = filt.update(sample_factory(timestamp=100, accel=(0.0, 0.5, 0.5), gyro=(100, 0, 0)))

        assert fused.roll == pytest.approx(45.0)

    def test_yaw_wraps(self, plain_filter, sample_factory):
        samples = [
            sample_factory(timestamp=100 * i, accel=(0.0, 0.0, 1.0), gyro=(0.0, 0.0, 400.0))
            for i in range(20)
        ]
        fused = plain_filter.run(samples)

        assert all(-180.0 <= s.yaw <= 180.0 for s in fused)
        # 19 steps of 40 degrees
        assert fused[-1].yaw == pytest.approx(wrap_angle(19 * 40.0))

    def test_no_compensated_fields_without_compensation(self, plain_filter, sample_factory):
        fused = plain_filter.update(sample_factory())
        assert fused.comp_accel_x is None

    def test_compensated_fields_recorded(self, config, flight_samples):
        fused = ComplementaryFilter(config.fusion).run(flight_samples)

        for sample in fused:
            assert sample.comp_accel_x is not None
            assert np.isfinite([sample.comp_accel_x, sample.comp_accel_y, sample.comp_accel_z]).all()

    def test_compensation_changes_tilt_under_rotation(self, config, flight_samples):
        compensated = ComplementaryFilter(config.fusion).run(flight_samples)
        config.fusion.complementary.compensate = False
        plain = ComplementaryFilter(config.fusion).run(flight_samples)

        diffs = [abs(a.roll - b.roll) for a, b in zip(compensated, plain)]
        assert max(diffs) > 0.0

    def test_compensation_at_rest_is_exact(self, config, rest_samples):
        fused = ComplementaryFilter(config.fusion).run(rest_samples)
        assert all(s.comp_accel_z == -1.0 for s in fused)
        assert all(s.comp_accel_x == 0.0 for s in fused)

    def test_input_not_mutated(self, config, flight_samples):
        before = [s.raw_values for s in flight_samples]
        ComplementaryFilter(config.fusion).run(flight_samples)

        assert [s.raw_values for s in flight_samples] == before
        assert not any(s.is_fused for s in flight_samples)

    def test_reset(self, plain_filter, sample_factory):
        plain_filter.update(sample_factory(timestamp=0))
        plain_filter.update(sample_factory(timestamp=100, gyro=(0, 0, 10)))
        plain_filter.reset()

        assert plain_filter.iteration == 0
        assert plain_filter.state == {"roll": 0.0, "pitch": 0.0, "yaw": 0.0}
