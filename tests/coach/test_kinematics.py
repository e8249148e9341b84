"""Tests for the planar joint-angle calculator."""

import itertools

import pytest

from coach_service.models import Landmark, calculate_angle
from coach_service.models.kinematics import horizontal_width, midpoint_y


def lm(x, y):
    return Landmark(x=x, y=y, visibility=1.0)


POINTS = [lm(0.1, 0.2), lm(0.5, 0.5), lm(0.9, 0.1), lm(0.3, 0.8), lm(0.7, 0.7)]


def test_right_angle_is_ninety():
    assert calculate_angle(lm(0, 1), lm(0, 0), lm(1, 0)) == pytest.approx(90.0)


def test_straight_line_is_one_eighty():
    assert calculate_angle(lm(0, 0), lm(0.5, 0.5), lm(1, 1)) == pytest.approx(180.0)


def test_reflex_angle_is_reflected():
    # Raw atan2 difference here is 270°, interior angle is 90°
    assert calculate_angle(lm(0, -1), lm(0, 0), lm(-1, 0)) == pytest.approx(90.0)


def test_symmetry_and_range():
    for a, b, c in itertools.permutations(POINTS, 3):
        forward = calculate_angle(a, b, c)
        backward = calculate_angle(c, b, a)
        assert forward == pytest.approx(backward)
        assert 0.0 <= forward <= 180.0


def test_missing_point_returns_zero():
    assert calculate_angle(None, lm(0, 0), lm(1, 0)) == 0.0
    assert calculate_angle(lm(0, 1), None, lm(1, 0)) == 0.0
    assert calculate_angle(lm(0, 1), lm(0, 0), None) == 0.0


def test_depth_is_ignored():
    a = Landmark(x=0, y=1, z=5.0, visibility=1.0)
    c = Landmark(x=1, y=0, z=-3.0, visibility=1.0)
    assert calculate_angle(a, lm(0, 0), c) == pytest.approx(90.0)


def test_width_and_midpoint_helpers():
    assert horizontal_width(lm(0.7, 0), lm(0.4, 0)) == pytest.approx(0.3)
    assert horizontal_width(None, lm(0.4, 0)) == 0.0
    assert midpoint_y(lm(0, 0.2), lm(0, 0.4)) == pytest.approx(0.3)
