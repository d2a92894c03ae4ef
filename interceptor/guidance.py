#!/usr/bin/env python3
"""
Guidance Controller for the Interceptor Kinematics Engine

Per-interceptor phase machine that turns the current interceptor and target
snapshots into a bounded correction force each tick:

- LAUNCH_CLEARANCE: no steering until the interceptor has cleared the launcher
- MIDCOURSE: proportional correction toward a lead point
- RE_ENGAGEMENT: aggressive turnaround after a near miss

Midcourse law:
    time_to_impact = distance / speed
    lead_point = project(target, time_to_impact * lead_factor)
    los = unit(lead_point - own)
    velocity_error = los * speed - velocity
    correction = clip(velocity_error * mass * gain, mass * max_g * g)

Forward thrust tops the interceptor up to its cruise speed along its current
heading, and a constant mass * g upward term cancels gravity.

proportional_navigation is the stateless line-of-sight-rate law
(a = N * Vc * omega x LOS) for hosts that steer by acceleration demand.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from .fuse import FUSE_PROFILES, ProximityFuse, ProximityFuseConfig
from .physics import G_STANDARD, DEGENERATE_EPSILON, KinematicState, Vector3D
from .trajectory import project_position

logger = logging.getLogger(__name__)


# =============================================================================
# GUIDANCE PHASES & CONFIGURATION
# =============================================================================

class GuidancePhase(Enum):
    """Interceptor guidance phase."""
    LAUNCH_CLEARANCE = auto()  # Leaving the launcher, no steering
    MIDCOURSE = auto()         # Lead-point proportional correction
    RE_ENGAGEMENT = auto()     # Turnaround after a near miss


@dataclass(frozen=True)
class GuidanceConfig:
    """
    Guidance tuning constants.

    Attributes:
        min_speed: Below this speed no guidance is applied (m/s)
        min_guidance_distance_m: Flight distance before guidance starts
        close_range_threshold_m: Inside this range the fuse does the rest
        gain: Velocity-error gain (multiplied by mass)
        max_g: Correction force limit in g
        cruise_speed: Speed the forward thrust maintains (m/s)
        thrust_gain: Forward thrust per m/s of speed deficit (per kg)
        lead_factor: Fraction of time-to-impact used for the lead point
        lead_with_gravity: Project the target ballistically for the lead point
        miss_threshold_m: Closest approach that counts as a near miss
        min_reengage_distance_m: Minimum range before re-engaging
        max_reengagement_attempts: Re-engagement budget per interceptor
        reengage_energy_floor: Minimum speed to attempt a re-engagement (m/s)
        reengage_gain_multiplier: Gain multiplier while re-engaging
        reengage_g_multiplier: G-limit multiplier while re-engaging
        reengage_cruise_speed: Cruise speed while re-engaging (m/s)
        turn_rate_coefficient: Lateral turn term added to the velocity error (m/s)
        reacquisition_distance_m: Range inside which re-engagement may end
        gravity: Gravitational acceleration (m/s^2)
    """
    min_speed: float = 10.0
    min_guidance_distance_m: float = 15.0
    close_range_threshold_m: float = 3.0
    gain: float = 2.0
    max_g: float = 40.0
    cruise_speed: float = 150.0
    thrust_gain: float = 0.5
    lead_factor: float = 0.5
    lead_with_gravity: bool = False
    miss_threshold_m: float = 15.0
    min_reengage_distance_m: float = 10.0
    max_reengagement_attempts: int = 1
    reengage_energy_floor: float = 50.0
    reengage_gain_multiplier: float = 2.0
    reengage_g_multiplier: float = 1.5
    reengage_cruise_speed: float = 180.0
    turn_rate_coefficient: float = 100.0
    reacquisition_distance_m: float = 20.0
    gravity: float = G_STANDARD

    def __post_init__(self) -> None:
        if self.max_g <= 0:
            raise ValueError(f"max_g must be positive, got {self.max_g}")
        if self.gain < 0:
            raise ValueError(f"gain must be non-negative, got {self.gain}")
        if self.max_reengagement_attempts < 0:
            raise ValueError("max_reengagement_attempts must be non-negative")
        if self.reengage_g_multiplier <= 0:
            raise ValueError("reengage_g_multiplier must be positive")

    @classmethod
    def from_engagement_data(cls, engagement_data: dict) -> GuidanceConfig:
        """
        Create guidance tuning from loaded engagement data.

        Keys missing from the "guidance" section keep their defaults.
        Unknown keys raise TypeError.
        """
        return cls(**engagement_data.get("guidance", {}))


# =============================================================================
# GUIDANCE COMMAND
# =============================================================================

@dataclass(frozen=True)
class GuidanceCommand:
    """
    Force the host applies to the interceptor body this tick.

    Attributes:
        force: Total force (N): correction + thrust + gravity compensation
        magnitude: Length of force (N)
        correction: G-limited steering component (N)
        thrust: Forward thrust component (N)
        phase: Guidance phase that produced the command
        reason: Human-readable reason for this command
    """
    force: Vector3D
    magnitude: float
    correction: Vector3D = field(default_factory=Vector3D.zero)
    thrust: Vector3D = field(default_factory=Vector3D.zero)
    phase: GuidancePhase = GuidancePhase.MIDCOURSE
    reason: str = ""

    @classmethod
    def coast(cls, phase: GuidancePhase, reason: str = "coasting") -> GuidanceCommand:
        """Create a zero-force command."""
        return cls(force=Vector3D.zero(), magnitude=0.0, phase=phase, reason=reason)

    @property
    def is_coast(self) -> bool:
        """True if no force is applied."""
        return self.magnitude == 0.0


# =============================================================================
# PROPORTIONAL NAVIGATION
# =============================================================================

# Proportional navigation defaults
PN_NAVIGATION_CONSTANT = 3.0      # N, typically 3-5
PN_MAX_ACCELERATION = 300.0       # m/s^2 (~30 g)
PN_MIN_CLOSING_VELOCITY = 50.0    # Floor for the time-to-go estimate (m/s)
PN_MIN_RANGE_M = 0.1              # Inside this range no command is issued


@dataclass(frozen=True)
class NavigationCommand:
    """
    Lateral acceleration demand from proportional navigation.

    Attributes:
        acceleration: Commanded acceleration after the limit (m/s^2)
        time_to_go: Range over closing velocity, closing velocity floored (s)
        closing_velocity: Rate at which range is shrinking (m/s)
        required_g: Demand before the limit, in g
    """
    acceleration: Vector3D
    time_to_go: float
    closing_velocity: float
    required_g: float

    @property
    def commanded_g(self) -> float:
        """Commanded acceleration in g."""
        return self.acceleration.magnitude / G_STANDARD

    @property
    def saturated(self) -> bool:
        """True if the demand exceeded the acceleration limit."""
        return self.required_g > self.commanded_g + 1e-9


def proportional_navigation(
    own: KinematicState,
    target: KinematicState,
    navigation_constant: float = PN_NAVIGATION_CONSTANT,
    max_acceleration: float = PN_MAX_ACCELERATION,
    target_acceleration: Optional[Vector3D] = None
) -> NavigationCommand:
    """
    True proportional navigation: a = N * Vc * (omega x LOS).

    The line-of-sight rate omega = (r x v_r) / |r|^2 is computed from the
    relative kinematics, so omega x LOS is the component of the relative
    velocity perpendicular to the line of sight divided by range. A target
    acceleration, if given, adds the augmented term N/2 * a_T taken
    perpendicular to the line of sight.

    Args:
        own: Interceptor snapshot
        target: Target snapshot
        navigation_constant: N
        max_acceleration: Magnitude limit on the command (m/s^2)
        target_acceleration: Known target acceleration (m/s^2)

    Returns:
        NavigationCommand; zero acceleration inside PN_MIN_RANGE_M or when
        the range is not closing.
    """
    rel_pos = target.position - own.position
    rel_vel = target.velocity - own.velocity
    range_m = rel_pos.magnitude

    if range_m < PN_MIN_RANGE_M:
        return NavigationCommand(Vector3D.zero(), 0.0, 0.0, 0.0)

    los = rel_pos / range_m
    closing_velocity = -rel_vel.dot(los)
    time_to_go = range_m / max(closing_velocity, PN_MIN_CLOSING_VELOCITY)

    if closing_velocity <= 0:
        return NavigationCommand(Vector3D.zero(), time_to_go, closing_velocity, 0.0)

    los_rate = rel_pos.cross(rel_vel) / (range_m * range_m)
    acceleration = los_rate.cross(los) * (navigation_constant * closing_velocity)

    if target_acceleration is not None:
        lateral = target_acceleration - los * target_acceleration.dot(los)
        acceleration = acceleration + lateral * (navigation_constant / 2)

    required_g = acceleration.magnitude / G_STANDARD
    return NavigationCommand(
        acceleration=acceleration.clamped(max_acceleration),
        time_to_go=time_to_go,
        closing_velocity=closing_velocity,
        required_g=required_g
    )


# =============================================================================
# GUIDANCE CONTROLLER
# =============================================================================

class GuidanceController:
    """
    Phase machine and control law for one interceptor.

    The controller owns the interceptor's distance memory (closest approach
    and previous range) and shares the interceptor's fuse, which it rearms
    with the retarget profile when a re-engagement starts.
    """

    def __init__(
        self,
        config: Optional[GuidanceConfig],
        fuse: ProximityFuse,
        retarget_fuse_config: Optional[ProximityFuseConfig] = None
    ):
        """
        Initialize in LAUNCH_CLEARANCE.

        Args:
            config: Guidance tuning (default: GuidanceConfig())
            fuse: The interceptor's proximity fuse
            retarget_fuse_config: Profile applied on re-engagement
                (default: the "retarget" profile)
        """
        self.config = config if config is not None else GuidanceConfig()
        self.fuse = fuse
        self.retarget_fuse_config = (
            retarget_fuse_config if retarget_fuse_config is not None
            else FUSE_PROFILES["retarget"]
        )
        self.phase = GuidancePhase.LAUNCH_CLEARANCE
        self.reengagement_attempts = 0
        self.min_distance = float('inf')
        self.last_distance: Optional[float] = None

    @property
    def is_reengaging(self) -> bool:
        return self.phase == GuidancePhase.RE_ENGAGEMENT

    @property
    def effective_gain(self) -> float:
        """Velocity-error gain for the current phase."""
        if self.is_reengaging:
            return self.config.gain * self.config.reengage_gain_multiplier
        return self.config.gain

    @property
    def effective_max_g(self) -> float:
        """G-limit for the current phase."""
        if self.is_reengaging:
            return self.config.max_g * self.config.reengage_g_multiplier
        return self.config.max_g

    @property
    def effective_cruise_speed(self) -> float:
        if self.is_reengaging:
            return self.config.reengage_cruise_speed
        return self.config.cruise_speed

    def reset_tracking(self) -> None:
        """Forget closest-approach history, e.g. after switching targets."""
        self.min_distance = float('inf')
        self.last_distance = None

    def update(
        self,
        own: KinematicState,
        target: KinematicState,
        dt: float
    ) -> GuidanceCommand:
        """
        Compute this tick's guidance command.

        Args:
            own: Interceptor snapshot
            target: Target snapshot (a fixed point has zero velocity)
            dt: Time step (seconds)

        Returns:
            GuidanceCommand; zero force when guidance is not active
        """
        config = self.config
        speed = own.speed

        if speed < DEGENERATE_EPSILON:
            return GuidanceCommand.coast(self.phase, "degenerate velocity")

        if self.phase == GuidancePhase.LAUNCH_CLEARANCE:
            if self.fuse.distance_traveled < config.min_guidance_distance_m:
                return GuidanceCommand.coast(self.phase, "launch clearance")
            self._set_phase(GuidancePhase.MIDCOURSE, "cleared launcher")

        if speed < config.min_speed:
            return GuidanceCommand.coast(self.phase, f"speed too low: {speed:.1f} m/s")

        to_target = target.position - own.position
        distance = to_target.magnitude

        if distance < self.min_distance:
            self.min_distance = distance

        if self._should_reengage(distance, speed):
            self._begin_reengagement(own, distance)

        self.last_distance = distance

        if self.is_reengaging and distance < config.reacquisition_distance_m:
            closing_speed = to_target.normalized().dot(own.velocity)
            if closing_speed > 0:
                self._set_phase(GuidancePhase.MIDCOURSE, "target reacquired")

        if distance < config.close_range_threshold_m:
            return GuidanceCommand.coast(self.phase, "close range, fuse only")

        return self._control_law(own, target, distance, speed)

    # =========================================================================
    # PHASE TRANSITIONS
    # =========================================================================

    def _set_phase(self, phase: GuidancePhase, reason: str) -> None:
        if phase != self.phase:
            logger.debug("Guidance %s -> %s (%s)", self.phase.name, phase.name, reason)
            self.phase = phase

    def _should_reengage(self, distance: float, speed: float) -> bool:
        """Near miss that is now diverging, with budget and energy left."""
        config = self.config
        return (
            self.phase == GuidancePhase.MIDCOURSE and
            self.min_distance < config.miss_threshold_m and
            self.last_distance is not None and
            distance > self.last_distance and
            distance > config.min_reengage_distance_m and
            self.reengagement_attempts < config.max_reengagement_attempts and
            speed > config.reengage_energy_floor
        )

    def _begin_reengagement(self, own: KinematicState, distance: float) -> None:
        self.reengagement_attempts += 1
        logger.info(
            "Missed target (closest %.1f m, now %.1f m), re-engaging (attempt %d)",
            self.min_distance, distance, self.reengagement_attempts
        )
        self.min_distance = float('inf')
        self._set_phase(GuidancePhase.RE_ENGAGEMENT, "near miss")
        self.fuse.rearm(self.retarget_fuse_config, own.position)

    # =========================================================================
    # CONTROL LAW
    # =========================================================================

    def _control_law(
        self,
        own: KinematicState,
        target: KinematicState,
        distance: float,
        speed: float
    ) -> GuidanceCommand:
        config = self.config
        mass = own.mass_kg

        time_to_impact = distance / speed
        lead_time = time_to_impact * config.lead_factor
        lead_point = project_position(
            target, lead_time, ballistic=config.lead_with_gravity, gravity=config.gravity
        )

        to_lead = lead_point - own.position
        if to_lead.is_degenerate():
            return GuidanceCommand.coast(self.phase, "degenerate line of sight")
        los = to_lead.normalized()

        velocity_error = los * speed - own.velocity

        if self.is_reengaging:
            turn_axis = own.velocity.cross(los)
            if not turn_axis.is_degenerate():
                velocity_error = velocity_error + turn_axis.normalized() * config.turn_rate_coefficient

        max_force = mass * self.effective_max_g * config.gravity
        correction = (velocity_error * (mass * self.effective_gain)).clamped(max_force)

        speed_deficit = max(0.0, self.effective_cruise_speed - speed)
        thrust = own.velocity.normalized() * (speed_deficit * mass * config.thrust_gain)

        gravity_compensation = Vector3D.up() * (mass * config.gravity)

        force = correction + thrust + gravity_compensation
        return GuidanceCommand(
            force=force,
            magnitude=force.magnitude,
            correction=correction,
            thrust=thrust,
            phase=self.phase,
            reason="re-engaging" if self.is_reengaging else "midcourse"
        )
