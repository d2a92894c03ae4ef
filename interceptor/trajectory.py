#!/usr/bin/env python3
"""
Trajectory and Intercept Solver for the Interceptor Kinematics Engine

Stateless function library:
- solve_launch: closed-form ballistic launch angle (direct or lofted root)
- predict_intercept: accelerated fixed-point future intercept point
- solve_constant_velocity_intercept: closed-form quadratic for non-gravity targets
- predicted_miss_distance: zero-effort miss at closest approach
- plan_launch: intercept point + launch solution in one call

Launch formula (no drag, constant gravity):

    tan(theta) = (v^2 +/- sqrt(v^4 - g*(g*R^2 + 2*dh*v^2))) / (g*R)

where R is the horizontal range and dh the height of the target above
the launcher. A negative discriminant means the target is outside the
launch envelope at this speed.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Optional

from .errors import NoFeasibleInterceptError, UnreachableTargetError
from .physics import (
    G_STANDARD,
    KinematicState,
    Vector3D,
    ballistic_position,
    ballistic_velocity,
    launch_velocity_vector,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SOLVER CONSTANTS
# =============================================================================

# Horizontal ranges below this are treated as a vertical shot
VERTICAL_LAUNCH_RANGE_M = 1e-6

# Intercept iteration defaults (1 ms convergence on time-to-intercept)
DEFAULT_TOLERANCE_S = 1e-3
DEFAULT_MAX_ITERATIONS = 20

# Closed-form search horizon
DEFAULT_MAX_INTERCEPT_TIME_S = 30.0


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class LaunchParameters:
    """
    Launch solution handed to the host once, at launch time.

    Attributes:
        angle: Elevation above the horizon (radians)
        azimuth: Horizontal bearing from +X toward +Z (radians)
        speed: Launch speed (m/s)
        lofted: True if the high-angle root was selected
    """
    angle: float
    azimuth: float
    speed: float
    lofted: bool = False

    @property
    def angle_deg(self) -> float:
        """Elevation in degrees."""
        return math.degrees(self.angle)

    @property
    def azimuth_deg(self) -> float:
        """Azimuth in degrees."""
        return math.degrees(self.azimuth)

    def velocity_vector(self) -> Vector3D:
        """Initial velocity for the host's physics body."""
        return launch_velocity_vector(self.speed, self.angle, self.azimuth)

    def time_of_flight(self, horizontal_range_m: float) -> float:
        """
        Time to cover a horizontal range along this launch.

        Returns:
            Seconds, or infinity for a vertical shot.
        """
        horizontal_speed = self.speed * math.cos(self.angle)
        if horizontal_speed < 1e-9:
            return float('inf')
        return horizontal_range_m / horizontal_speed


@dataclass(frozen=True)
class InterceptSolution:
    """
    Predicted meeting point of interceptor and threat.

    Attributes:
        point: Predicted intercept position (meters)
        time_to_intercept: Seconds from now until the meeting
        feasible: False if no usable solution was found
        iterations: Refinement iterations used (0 for closed form)
        reason: Short explanation when infeasible
    """
    point: Vector3D
    time_to_intercept: float
    feasible: bool
    iterations: int = 0
    reason: str = ""

    @classmethod
    def infeasible(cls, point: Vector3D, time_s: float, iterations: int, reason: str) -> InterceptSolution:
        """Build a failed solution."""
        return cls(point=point, time_to_intercept=time_s, feasible=False,
                   iterations=iterations, reason=reason)


@dataclass(frozen=True)
class LaunchPlan:
    """Intercept prediction together with the launch that reaches it."""
    launch: LaunchParameters
    intercept: InterceptSolution


# =============================================================================
# LAUNCH SOLVER
# =============================================================================

def solve_launch(
    launch_pos: Vector3D,
    target_pos: Vector3D,
    speed: float,
    prefer_lofted: bool = False,
    gravity: float = G_STANDARD
) -> LaunchParameters:
    """
    Solve the ballistic launch angle that lands on target_pos.

    Args:
        launch_pos: Launcher position (meters)
        target_pos: Aim point (meters)
        speed: Launch speed (m/s)
        prefer_lofted: Select the larger of the two roots
        gravity: Gravitational acceleration (m/s^2)

    Returns:
        LaunchParameters for the chosen root

    Raises:
        UnreachableTargetError: If no real root exists at this speed.
        ValueError: If gravity is not positive.
    """
    if gravity <= 0:
        raise ValueError("Gravity must be positive")

    offset = target_pos - launch_pos
    dx, dy, dz = offset.x, offset.y, offset.z
    horizontal_range = offset.horizontal_magnitude

    if speed <= 0:
        raise UnreachableTargetError(
            "Launch speed must be positive", horizontal_range, speed
        )

    v2 = speed * speed

    # Directly overhead: fly straight up if the apex reaches the target
    if horizontal_range < VERTICAL_LAUNCH_RANGE_M:
        apex_height = v2 / (2 * gravity)
        if dy > apex_height:
            raise UnreachableTargetError(
                f"Target {dy:.1f} m overhead exceeds apex {apex_height:.1f} m",
                horizontal_range, speed
            )
        return LaunchParameters(angle=math.pi / 2, azimuth=0.0, speed=speed,
                                lofted=prefer_lofted)

    discriminant = v2 * v2 - gravity * (
        gravity * horizontal_range * horizontal_range + 2 * dy * v2
    )
    if discriminant < 0:
        raise UnreachableTargetError(
            f"Target at {horizontal_range:.1f} m outside envelope at {speed:.1f} m/s",
            horizontal_range, speed
        )

    sqrt_disc = math.sqrt(discriminant)
    high_angle = math.atan((v2 + sqrt_disc) / (gravity * horizontal_range))
    low_angle = math.atan((v2 - sqrt_disc) / (gravity * horizontal_range))

    angle = high_angle if prefer_lofted else low_angle
    azimuth = math.atan2(dz, dx)

    return LaunchParameters(angle=angle, azimuth=azimuth, speed=speed,
                            lofted=prefer_lofted)


def max_ballistic_range(speed: float, gravity: float = G_STANDARD) -> float:
    """Flat-ground envelope limit v^2/g (45 degree shot)."""
    return speed * speed / gravity


# =============================================================================
# THREAT MOTION MODEL
# =============================================================================

def project_position(
    state: KinematicState,
    time_s: float,
    ballistic: bool = True,
    gravity: float = G_STANDARD
) -> Vector3D:
    """
    Project a target forward in time.

    Ballistic targets follow constant velocity minus 0.5*g*t^2 on the
    vertical axis; powered targets keep constant velocity.
    """
    return ballistic_position(
        state.position, state.velocity, time_s, gravity if ballistic else 0.0
    )


def project_velocity(
    state: KinematicState,
    time_s: float,
    ballistic: bool = True,
    gravity: float = G_STANDARD
) -> Vector3D:
    """Velocity counterpart of project_position."""
    return ballistic_velocity(state.velocity, time_s, gravity if ballistic else 0.0)


# =============================================================================
# INTERCEPT PREDICTION
# =============================================================================

def predict_intercept(
    threat_state: KinematicState,
    launch_pos: Vector3D,
    closing_speed: float,
    ballistic: bool = True,
    tolerance_s: float = DEFAULT_TOLERANCE_S,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    gravity: float = G_STANDARD
) -> InterceptSolution:
    """
    Predict where an interceptor flying at closing_speed meets the threat.

    Fixed-point refinement of the time to intercept:
        t0 = |threat - launch| / closing_speed
        t(n+1) = |project(threat, t(n)) - launch| / closing_speed

    Each pass takes two fixed-point steps and applies Aitken's delta-squared
    extrapolation (Steffensen's method). Extrapolated times that would put
    the threat below ground fall back to the second plain step. Convergence
    is declared on the plain fixed-point residual, so the returned point
    satisfies the defining equation to within tolerance_s.

    Args:
        threat_state: Current threat snapshot
        launch_pos: Interceptor launch (or current) position (meters)
        closing_speed: Average interceptor speed toward the meeting point (m/s)
        ballistic: Include gravity in the threat projection
        tolerance_s: Convergence threshold on successive times (seconds)
        max_iterations: Iteration cap before declaring no solution
        gravity: Gravitational acceleration (m/s^2)

    Returns:
        InterceptSolution; feasible is False if the iteration did not
        converge or the candidate point went below ground.
    """
    if closing_speed <= 0:
        return InterceptSolution.infeasible(
            threat_state.position, float('inf'), 0, "closing speed must be positive"
        )

    def flight_time(t: float) -> tuple[Vector3D, float]:
        point = project_position(threat_state, t, ballistic, gravity)
        return point, point.distance_to(launch_pos) / closing_speed

    t = threat_state.position.distance_to(launch_pos) / closing_speed

    for iteration in range(1, max_iterations + 1):
        candidate, t1 = flight_time(t)
        if candidate.y < 0:
            return InterceptSolution.infeasible(
                candidate, t, iteration, "intercept point below ground"
            )

        if abs(t1 - t) < tolerance_s:
            point = project_position(threat_state, t1, ballistic, gravity)
            if point.y < 0:
                return InterceptSolution.infeasible(
                    point, t1, iteration, "intercept point below ground"
                )
            return InterceptSolution(
                point=point,
                time_to_intercept=t1,
                feasible=True,
                iterations=iteration
            )

        _, t2 = flight_time(t1)
        denominator = t2 - 2 * t1 + t
        t_next = t2
        if abs(denominator) > 1e-12:
            extrapolated = t - (t1 - t) ** 2 / denominator
            if (
                extrapolated > 0 and math.isfinite(extrapolated) and
                project_position(threat_state, extrapolated, ballistic, gravity).y >= 0
            ):
                t_next = extrapolated

        t = t_next

    return InterceptSolution.infeasible(
        project_position(threat_state, t, ballistic, gravity),
        t,
        max_iterations,
        f"no convergence after {max_iterations} iterations"
    )


def solve_constant_velocity_intercept(
    threat_state: KinematicState,
    launch_pos: Vector3D,
    speed: float,
    max_time_s: float = DEFAULT_MAX_INTERCEPT_TIME_S
) -> InterceptSolution:
    """
    Closed-form intercept against a constant-velocity target.

    Solves |rel + v_t * t| = speed * t, i.e.
        (|v_t|^2 - s^2) t^2 + 2 (rel . v_t) t + |rel|^2 = 0
    and keeps the earliest positive root within max_time_s.

    Args:
        threat_state: Current threat snapshot
        launch_pos: Interceptor position (meters)
        speed: Interceptor speed (m/s)
        max_time_s: Latest acceptable intercept time (seconds)

    Returns:
        InterceptSolution with iterations=0
    """
    rel = threat_state.position - launch_pos
    target_vel = threat_state.velocity

    a = target_vel.magnitude_squared - speed * speed
    b = 2 * rel.dot(target_vel)
    c = rel.magnitude_squared

    if abs(a) < 1e-9:
        # Equal speeds: the quadratic collapses to b*t + c = 0
        candidates = [-c / b] if b < 0 else []
    else:
        discriminant = b * b - 4 * a * c
        if discriminant < 0:
            return InterceptSolution.infeasible(
                threat_state.position, float('inf'), 0, "target cannot be caught"
            )
        sqrt_disc = math.sqrt(discriminant)
        candidates = [(-b - sqrt_disc) / (2 * a), (-b + sqrt_disc) / (2 * a)]

    valid_times = [t for t in candidates if 0 < t <= max_time_s]
    if not valid_times:
        return InterceptSolution.infeasible(
            threat_state.position, float('inf'), 0,
            f"no intercept within {max_time_s:.1f} s"
        )

    t = min(valid_times)
    point = threat_state.position + target_vel * t
    if point.y < 0:
        return InterceptSolution.infeasible(point, t, 0, "intercept point below ground")

    return InterceptSolution(point=point, time_to_intercept=t, feasible=True)


def predicted_miss_distance(
    own: KinematicState,
    target: KinematicState,
    own_acceleration: Optional[Vector3D] = None
) -> float:
    """
    Zero-effort miss: distance at closest approach if nobody maneuvers.

    Args:
        own: Interceptor snapshot
        target: Target snapshot
        own_acceleration: Constant interceptor acceleration to include (m/s^2)

    Returns:
        Predicted miss distance in meters (current range if already past
        closest approach).
    """
    if own_acceleration is None:
        own_acceleration = Vector3D.zero()

    rel_pos = target.position - own.position
    rel_vel = target.velocity - own.velocity

    if rel_vel.magnitude_squared == 0:
        return rel_pos.magnitude

    time_to_go = -rel_pos.dot(rel_vel) / rel_vel.magnitude_squared
    if time_to_go <= 0:
        return rel_pos.magnitude

    own_final = (
        own.position +
        own.velocity * time_to_go +
        own_acceleration * (0.5 * time_to_go * time_to_go)
    )
    target_final = target.position + target.velocity * time_to_go

    return own_final.distance_to(target_final)


# =============================================================================
# LAUNCH PLANNING
# =============================================================================

def plan_launch(
    threat_state: KinematicState,
    launch_pos: Vector3D,
    interceptor_speed: float,
    ballistic: bool = True,
    prefer_lofted: bool = False,
    gravity: float = G_STANDARD
) -> LaunchPlan:
    """
    Predict the intercept point and solve the launch that reaches it.

    Non-ballistic threats try the closed-form solution first and fall
    back to iteration.

    Raises:
        NoFeasibleInterceptError: If no intercept point can be predicted.
        UnreachableTargetError: If the intercept point is outside the
            launch envelope.
    """
    intercept = None
    if not ballistic:
        intercept = solve_constant_velocity_intercept(
            threat_state, launch_pos, interceptor_speed
        )
    if intercept is None or not intercept.feasible:
        intercept = predict_intercept(
            threat_state, launch_pos, interceptor_speed,
            ballistic=ballistic, gravity=gravity
        )

    if not intercept.feasible:
        logger.warning("No feasible intercept: %s", intercept.reason)
        raise NoFeasibleInterceptError(intercept.reason, intercept)

    try:
        launch = solve_launch(
            launch_pos, intercept.point, interceptor_speed, prefer_lofted, gravity
        )
    except UnreachableTargetError:
        logger.warning(
            "Intercept point %s unreachable at %.1f m/s", intercept.point, interceptor_speed
        )
        raise

    logger.debug(
        "Launch plan: angle=%.2f deg azimuth=%.2f deg tti=%.3f s",
        launch.angle_deg, launch.azimuth_deg, intercept.time_to_intercept
    )
    return LaunchPlan(launch=launch, intercept=intercept)
