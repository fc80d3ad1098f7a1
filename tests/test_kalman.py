"""Tests for the constant-velocity box Kalman filter."""

from __future__ import annotations

import pytest

from monodistance.kalman import ConstantVelocityKalman


def test_initial_state_has_zero_velocity():
    kf = ConstantVelocityKalman((10.0, 20.0, 30.0, 40.0))

    assert kf.box == (10.0, 20.0, 30.0, 40.0)
    assert kf.velocity == (0.0, 0.0, 0.0, 0.0)


def test_predict_without_measurements_holds_position():
    kf = ConstantVelocityKalman((10.0, 20.0, 30.0, 40.0))

    for _ in range(5):
        predicted = kf.predict()

    assert predicted == pytest.approx((10.0, 20.0, 30.0, 40.0))


def test_correct_moves_state_towards_measurement():
    kf = ConstantVelocityKalman((0.0, 0.0, 10.0, 10.0))
    kf.predict()

    x, _, _, _ = kf.correct((10.0, 0.0, 10.0, 10.0))

    assert 0.0 < x < 10.0
    assert kf.velocity[0] > 0.0


def test_learns_constant_velocity():
    kf = ConstantVelocityKalman((0.0, 0.0, 20.0, 20.0))
    for step in range(1, 60):
        kf.predict()
        kf.correct((5.0 * step, 0.0, 20.0, 20.0))

    predicted_x, _, w, _ = kf.predict()

    assert kf.velocity[0] == pytest.approx(5.0, abs=0.1)
    assert predicted_x == pytest.approx(5.0 * 60, abs=1.0)
    assert w == pytest.approx(20.0, abs=1e-6)
