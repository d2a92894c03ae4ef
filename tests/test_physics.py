#!/usr/bin/env python3
"""
Test Suite for Physics Primitives

Tests cover:
1. Vector3D operations (add, subtract, scale, dot, cross, normalize, clamp)
2. KinematicState validation and immutability
3. Ballistic propagation (position, velocity, ground impact)
4. Launch angle to velocity vector conversion
"""

import dataclasses
import math

import pytest

from interceptor.physics import (
    G_STANDARD,
    KinematicState,
    Vector3D,
    ballistic_position,
    ballistic_velocity,
    ground_impact_point,
    launch_velocity_vector,
    time_to_ground_impact,
)


# =============================================================================
# VECTOR3D
# =============================================================================

class TestVector3D:
    """Tests for Vector3D operations."""

    def test_addition_and_subtraction(self):
        a = Vector3D(1, 2, 3)
        b = Vector3D(4, 5, 6)
        assert a + b == Vector3D(5, 7, 9)
        assert b - a == Vector3D(3, 3, 3)

    def test_scalar_multiplication_both_sides(self):
        v = Vector3D(1, -2, 3)
        assert v * 2 == Vector3D(2, -4, 6)
        assert 2 * v == Vector3D(2, -4, 6)

    def test_division_by_zero_raises(self):
        with pytest.raises(ValueError):
            Vector3D(1, 1, 1) / 0

    def test_cross_product_is_right_handed(self):
        x = Vector3D(1, 0, 0)
        y = Vector3D(0, 1, 0)
        assert x.cross(y) == Vector3D(0, 0, 1)
        assert y.cross(x) == Vector3D(0, 0, -1)

    def test_dot_product(self):
        assert Vector3D(1, 2, 3).dot(Vector3D(4, -5, 6)) == pytest.approx(12.0)

    def test_magnitude(self):
        assert Vector3D(3, 4, 12).magnitude == pytest.approx(13.0)
        assert Vector3D(3, 4, 12).magnitude_squared == pytest.approx(169.0)
        assert Vector3D(3, 100, 4).horizontal_magnitude == pytest.approx(5.0)

    def test_normalized_zero_vector_stays_zero(self):
        assert Vector3D.zero().normalized() == Vector3D.zero()

    def test_normalized_has_unit_length(self):
        assert Vector3D(10, -20, 5).normalized().magnitude == pytest.approx(1.0)

    def test_is_degenerate(self):
        assert Vector3D(1e-9, 0, 0).is_degenerate()
        assert not Vector3D(0.1, 0, 0).is_degenerate()

    def test_clamped_limits_length(self):
        v = Vector3D(30, 40, 0).clamped(10)
        assert v.magnitude == pytest.approx(10.0)
        assert v.normalized() == Vector3D(0.6, 0.8, 0).normalized()

    def test_clamped_leaves_short_vectors(self):
        assert Vector3D(1, 2, 2).clamped(10) == Vector3D(1, 2, 2)

    def test_tuple_round_trip(self):
        v = Vector3D.from_tuple([1, 2, 3])
        assert v.to_tuple() == (1.0, 2.0, 3.0)


# =============================================================================
# KINEMATIC STATE
# =============================================================================

class TestKinematicState:
    """Tests for the read-only kinematic snapshot."""

    def test_speed_and_altitude(self):
        state = KinematicState(Vector3D(0, 250, 0), Vector3D(3, 4, 0), 5.0)
        assert state.speed == pytest.approx(5.0)
        assert state.altitude == pytest.approx(250.0)

    @pytest.mark.parametrize("mass", [0.0, -1.0])
    def test_non_positive_mass_rejected(self, mass):
        with pytest.raises(ValueError):
            KinematicState(Vector3D.zero(), Vector3D.zero(), mass)

    def test_snapshot_is_frozen(self):
        state = KinematicState.at_rest(Vector3D(1, 2, 3))
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.mass_kg = 2.0

    def test_at_rest_has_zero_velocity(self):
        state = KinematicState.at_rest(Vector3D(1, 2, 3), mass_kg=7.0)
        assert state.speed == 0.0
        assert state.mass_kg == 7.0


# =============================================================================
# BALLISTIC PROPAGATION
# =============================================================================

class TestBallisticPropagation:
    """Tests for constant-gravity propagation helpers."""

    def test_ballistic_position(self):
        p = ballistic_position(Vector3D(0, 100, 0), Vector3D(10, 0, 0), 2.0)
        assert p.x == pytest.approx(20.0)
        assert p.y == pytest.approx(100.0 - 0.5 * G_STANDARD * 4.0)
        assert p.z == pytest.approx(0.0)

    def test_zero_gravity_is_straight_line(self):
        p = ballistic_position(Vector3D(0, 100, 0), Vector3D(10, 5, -2), 3.0, gravity=0.0)
        assert p == Vector3D(30, 115, -6)

    def test_ballistic_velocity(self):
        v = ballistic_velocity(Vector3D(10, 20, 0), 1.0)
        assert v.x == pytest.approx(10.0)
        assert v.y == pytest.approx(20.0 - G_STANDARD)

    def test_time_to_ground_impact_from_rest(self):
        t = time_to_ground_impact(Vector3D(0, 100, 0), Vector3D.zero())
        assert t == pytest.approx(math.sqrt(200.0 / G_STANDARD))

    def test_time_to_ground_impact_on_ground(self):
        assert time_to_ground_impact(Vector3D(5, 0, 5), Vector3D(0, 10, 0)) == 0.0

    def test_time_to_ground_impact_without_gravity(self):
        assert time_to_ground_impact(Vector3D(0, 100, 0), Vector3D(0, -10, 0), gravity=0.0) == pytest.approx(10.0)
        assert time_to_ground_impact(Vector3D(0, 100, 0), Vector3D(50, 0, 0), gravity=0.0) is None

    def test_ground_impact_point(self):
        point = ground_impact_point(Vector3D(0, 100, 0), Vector3D(10, 0, 0))
        assert point is not None
        assert point.x == pytest.approx(10.0 * math.sqrt(200.0 / G_STANDARD))
        assert point.y == 0.0


class TestLaunchVelocityVector:
    """Tests for elevation/azimuth to velocity conversion."""

    def test_horizontal_along_x(self):
        v = launch_velocity_vector(100.0, 0.0, 0.0)
        assert v == Vector3D(100, 0, 0)

    def test_vertical(self):
        v = launch_velocity_vector(100.0, math.pi / 2, 0.0)
        assert v.x == pytest.approx(0.0, abs=1e-9)
        assert v.y == pytest.approx(100.0)

    def test_azimuth_rotates_toward_z(self):
        v = launch_velocity_vector(100.0, math.radians(30), math.pi / 2)
        assert v.x == pytest.approx(0.0, abs=1e-9)
        assert v.y == pytest.approx(50.0)
        assert v.z == pytest.approx(100.0 * math.cos(math.radians(30)))

    def test_speed_preserved(self):
        v = launch_velocity_vector(250.0, 0.7, -1.2)
        assert v.magnitude == pytest.approx(250.0)
