#!/usr/bin/env python3
"""
Test Suite for the Trajectory and Intercept Solver

Tests cover:
1. Launch solver: round trip onto the aim point, direct/lofted roots,
   vertical shots, envelope limits
2. Iterative intercept prediction: concrete scenario, convergence,
   infeasible outcomes, determinism
3. Closed-form constant-velocity intercept
4. Zero-effort miss distance
5. Launch planning
"""

import math

import pytest

from interceptor.errors import NoFeasibleInterceptError, UnreachableTargetError
from interceptor.physics import G_STANDARD, KinematicState, Vector3D, ballistic_position
from interceptor.trajectory import (
    LaunchParameters,
    max_ballistic_range,
    plan_launch,
    predict_intercept,
    predicted_miss_distance,
    project_position,
    solve_constant_velocity_intercept,
    solve_launch,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def scenario_threat():
    """Incoming threat at (1000, 500, 0) m descending toward the battery."""
    return KinematicState(Vector3D(1000, 500, 0), Vector3D(-100, -20, 0), 50.0)


@pytest.fixture
def launcher():
    return Vector3D(0, 0, 0)


def landing_point(launch_pos: Vector3D, target_pos: Vector3D, params: LaunchParameters) -> Vector3D:
    """Fly the launch solution for its time of flight to the target's range."""
    dx = target_pos.x - launch_pos.x
    dz = target_pos.z - launch_pos.z
    time_of_flight = params.time_of_flight(math.hypot(dx, dz))
    return ballistic_position(launch_pos, params.velocity_vector(), time_of_flight)


# =============================================================================
# LAUNCH SOLVER
# =============================================================================

class TestSolveLaunch:
    """Tests for the closed-form ballistic launch solver."""

    @pytest.mark.parametrize("target", [
        Vector3D(400, 50, 300),
        Vector3D(-800, 0, 200),
        Vector3D(150, 400, -150),
        Vector3D(1500, -20, 0),
    ])
    @pytest.mark.parametrize("lofted", [False, True])
    def test_round_trip_lands_on_target(self, launcher, target, lofted):
        params = solve_launch(launcher, target, 150.0, prefer_lofted=lofted)
        assert landing_point(launcher, target, params).distance_to(target) < 0.5

    def test_round_trip_from_raised_launcher(self):
        launch_pos = Vector3D(100, 30, -50)
        target = Vector3D(700, 120, 400)
        params = solve_launch(launch_pos, target, 200.0)
        assert landing_point(launch_pos, target, params).distance_to(target) < 0.5

    def test_lofted_angle_above_direct(self, launcher):
        target = Vector3D(1000, 100, 0)
        direct = solve_launch(launcher, target, 150.0)
        lofted = solve_launch(launcher, target, 150.0, prefer_lofted=True)
        assert lofted.angle > direct.angle
        assert lofted.lofted and not direct.lofted
        assert lofted.time_of_flight(1000) > direct.time_of_flight(1000)

    def test_azimuth_follows_target_bearing(self, launcher):
        params = solve_launch(launcher, Vector3D(0, 0, 500), 150.0)
        assert params.azimuth == pytest.approx(math.pi / 2)
        params = solve_launch(launcher, Vector3D(-500, 0, 0), 150.0)
        assert abs(params.azimuth) == pytest.approx(math.pi)

    def test_beyond_max_range_is_unreachable(self, launcher):
        speed = 100.0
        too_far = max_ballistic_range(speed) * 1.05
        with pytest.raises(UnreachableTargetError) as exc_info:
            solve_launch(launcher, Vector3D(too_far, 0, 0), speed)
        assert exc_info.value.speed == speed
        assert exc_info.value.horizontal_range_m == pytest.approx(too_far)

    def test_inside_max_range_is_reachable(self, launcher):
        speed = 100.0
        params = solve_launch(launcher, Vector3D(max_ballistic_range(speed) * 0.95, 0, 0), speed)
        assert 0 < params.angle < math.pi / 4

    def test_max_ballistic_range(self):
        assert max_ballistic_range(100.0) == pytest.approx(10000.0 / G_STANDARD)

    def test_vertical_shot(self, launcher):
        params = solve_launch(launcher, Vector3D(0, 300, 0), 100.0)
        assert params.angle == pytest.approx(math.pi / 2)
        assert params.azimuth == 0.0
        assert params.time_of_flight(0.0) == float('inf')

    def test_vertical_shot_above_apex_is_unreachable(self, launcher):
        # Apex at 100 m/s is about 510 m
        with pytest.raises(UnreachableTargetError):
            solve_launch(launcher, Vector3D(0, 600, 0), 100.0)

    @pytest.mark.parametrize("speed", [0.0, -10.0])
    def test_non_positive_speed_is_unreachable(self, launcher, speed):
        with pytest.raises(UnreachableTargetError):
            solve_launch(launcher, Vector3D(100, 0, 0), speed)

    def test_non_positive_gravity_rejected(self, launcher):
        with pytest.raises(ValueError):
            solve_launch(launcher, Vector3D(100, 0, 0), 100.0, gravity=0.0)

    def test_velocity_vector_matches_parameters(self, launcher):
        params = solve_launch(launcher, Vector3D(300, 0, 400), 120.0)
        v = params.velocity_vector()
        assert v.magnitude == pytest.approx(120.0)
        assert math.atan2(v.z, v.x) == pytest.approx(params.azimuth)
        assert params.angle_deg == pytest.approx(math.degrees(params.angle))


# =============================================================================
# ITERATIVE INTERCEPT PREDICTION
# =============================================================================

class TestPredictIntercept:
    """Tests for fixed-point intercept prediction."""

    def test_concrete_scenario_is_feasible(self, scenario_threat, launcher):
        solution = predict_intercept(scenario_threat, launcher, 150.0)
        assert solution.feasible
        assert 3.0 <= solution.time_to_intercept <= 8.0
        assert solution.point.y >= 0
        assert solution.iterations > 0

    def test_concrete_scenario_is_bit_reproducible(self, scenario_threat, launcher):
        first = predict_intercept(scenario_threat, launcher, 150.0)
        second = predict_intercept(scenario_threat, launcher, 150.0)
        assert first.time_to_intercept == second.time_to_intercept
        assert first.point.to_tuple() == second.point.to_tuple()
        assert first.iterations == second.iterations

    def test_converged_point_is_consistent(self, scenario_threat, launcher):
        solution = predict_intercept(scenario_threat, launcher, 150.0)
        flight_time = solution.point.distance_to(launcher) / 150.0
        assert flight_time == pytest.approx(solution.time_to_intercept, abs=0.01)
        expected = project_position(scenario_threat, solution.time_to_intercept)
        assert solution.point == expected

    def test_constant_velocity_projection(self, scenario_threat, launcher):
        solution = predict_intercept(scenario_threat, launcher, 150.0, ballistic=False)
        assert solution.feasible
        assert 3.0 <= solution.time_to_intercept <= 8.0

    def test_iteration_cap_reports_infeasible(self, scenario_threat, launcher):
        solution = predict_intercept(scenario_threat, launcher, 150.0, max_iterations=1)
        assert not solution.feasible
        assert solution.iterations == 1
        assert "convergence" in solution.reason

    def test_below_ground_candidate_is_infeasible(self, launcher):
        threat = KinematicState(Vector3D(100, 5, 0), Vector3D(0, -50, 0))
        solution = predict_intercept(threat, launcher, 10.0)
        assert not solution.feasible
        assert "below ground" in solution.reason

    @pytest.mark.parametrize("closing_speed", [0.0, -5.0])
    def test_non_positive_closing_speed_is_infeasible(self, scenario_threat, launcher, closing_speed):
        solution = predict_intercept(scenario_threat, launcher, closing_speed)
        assert not solution.feasible
        assert solution.iterations == 0

    def test_fast_head_on_rocket_converges_within_default_cap(self, launcher):
        threat = KinematicState(Vector3D(1500, 800, 0), Vector3D(-120, 10, 0))
        solution = predict_intercept(threat, launcher, 150.0)
        assert solution.feasible
        assert solution.iterations <= 10
        assert solution.time_to_intercept == pytest.approx(6.50, abs=0.01)
        flight_time = solution.point.distance_to(launcher) / 150.0
        assert flight_time == pytest.approx(solution.time_to_intercept, abs=1e-3)

    def test_scenario_needs_few_iterations(self, scenario_threat, launcher):
        solution = predict_intercept(scenario_threat, launcher, 150.0)
        assert solution.iterations <= 10

    def test_stationary_target_converges_immediately(self, launcher):
        threat = KinematicState.at_rest(Vector3D(300, 400, 0))
        solution = predict_intercept(threat, launcher, 100.0, ballistic=False)
        assert solution.feasible
        assert solution.iterations == 1
        assert solution.time_to_intercept == pytest.approx(5.0)


# =============================================================================
# CLOSED-FORM INTERCEPT
# =============================================================================

class TestConstantVelocityIntercept:
    """Tests for the closed-form quadratic intercept."""

    def test_head_on_target(self, launcher):
        threat = KinematicState(Vector3D(1000, 100, 0), Vector3D(-100, 0, 0))
        solution = solve_constant_velocity_intercept(threat, launcher, 150.0)
        assert solution.feasible
        assert solution.iterations == 0
        assert solution.point.distance_to(launcher) == pytest.approx(150.0 * solution.time_to_intercept)
        assert solution.time_to_intercept == pytest.approx(4.0333, abs=1e-3)

    def test_faster_receding_target_cannot_be_caught(self, launcher):
        threat = KinematicState(Vector3D(1000, 100, 0), Vector3D(300, 0, 0))
        solution = solve_constant_velocity_intercept(threat, launcher, 150.0)
        assert not solution.feasible

    def test_equal_speed_closing_target(self, launcher):
        threat = KinematicState(Vector3D(1000, 100, 0), Vector3D(-150, 0, 0))
        solution = solve_constant_velocity_intercept(threat, launcher, 150.0)
        assert solution.feasible
        assert solution.time_to_intercept == pytest.approx(1010000.0 / 300000.0)

    def test_intercept_beyond_horizon_is_infeasible(self, launcher):
        threat = KinematicState(Vector3D(10000, 100, 0), Vector3D(-10, 0, 0))
        solution = solve_constant_velocity_intercept(threat, launcher, 150.0, max_time_s=30.0)
        assert not solution.feasible


# =============================================================================
# ZERO-EFFORT MISS
# =============================================================================

class TestPredictedMissDistance:
    """Tests for closest-approach miss distance."""

    def test_passing_target(self):
        own = KinematicState(Vector3D(0, 0, 0), Vector3D(100, 0, 0))
        target = KinematicState.at_rest(Vector3D(1000, 30, 0))
        assert predicted_miss_distance(own, target) == pytest.approx(30.0)

    def test_collision_course_is_zero(self):
        own = KinematicState(Vector3D(0, 0, 0), Vector3D(100, 0, 0))
        target = KinematicState(Vector3D(1000, 0, 0), Vector3D(-100, 0, 0))
        assert predicted_miss_distance(own, target) == pytest.approx(0.0, abs=1e-9)

    def test_receding_target_returns_current_range(self):
        own = KinematicState(Vector3D(0, 0, 0), Vector3D(-100, 0, 0))
        target = KinematicState.at_rest(Vector3D(50, 0, 0))
        assert predicted_miss_distance(own, target) == pytest.approx(50.0)

    def test_no_relative_motion(self):
        own = KinematicState(Vector3D(0, 0, 0), Vector3D(10, 0, 0))
        target = KinematicState(Vector3D(0, 40, 0), Vector3D(10, 0, 0))
        assert predicted_miss_distance(own, target) == pytest.approx(40.0)


# =============================================================================
# LAUNCH PLANNING
# =============================================================================

class TestPlanLaunch:
    """Tests for intercept prediction + launch solving."""

    def test_scenario_plan(self, scenario_threat, launcher):
        plan = plan_launch(scenario_threat, launcher, 150.0)
        assert plan.intercept.feasible
        assert 0 < plan.launch.angle < math.pi / 2
        assert plan.launch.speed == 150.0

    def test_powered_threat_uses_closed_form(self, launcher):
        threat = KinematicState(Vector3D(1000, 100, 0), Vector3D(-100, 0, 0))
        plan = plan_launch(threat, launcher, 150.0, ballistic=False)
        assert plan.intercept.iterations == 0

    def test_fast_head_on_rocket_plan(self, launcher):
        threat = KinematicState(Vector3D(1500, 800, 0), Vector3D(-120, 10, 0))
        plan = plan_launch(threat, launcher, 150.0)
        assert plan.intercept.feasible
        assert 0 < plan.launch.angle < math.pi / 2

    def test_no_intercept_raises(self, launcher):
        threat = KinematicState(Vector3D(100, 5, 0), Vector3D(0, -50, 0))
        with pytest.raises(NoFeasibleInterceptError) as exc_info:
            plan_launch(threat, launcher, 10.0)
        assert exc_info.value.solution is not None
        assert not exc_info.value.solution.feasible

    def test_out_of_envelope_raises(self, launcher):
        threat = KinematicState.at_rest(Vector3D(0, 2000, 0))
        with pytest.raises(UnreachableTargetError):
            plan_launch(threat, launcher, 150.0, ballistic=False)
