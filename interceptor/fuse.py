#!/usr/bin/env python3
"""
Proximity Fuse for the Interceptor Kinematics Engine

One fuse per interceptor, created at launch with a named profile:
- initial: fresh launch, longer arming distance
- retarget: after re-engagement or a mid-flight retarget, shorter arming distance

State machine: UNARMED -> ARMED -> DETONATED (terminal).

The fuse arms once the cumulative flight distance reaches the arming
distance, scans for the target at most once per scan interval, and
detonates when the target is inside the detonation radius. Detonation
quality is 1.0 inside the optimal radius and falls off linearly to 0.0
at the detonation radius.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from .errors import InvalidFuseConfigError
from .physics import Vector3D

logger = logging.getLogger(__name__)


# =============================================================================
# FUSE CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class ProximityFuseConfig:
    """
    Fuse tuning profile.

    Attributes:
        arming_distance_m: Flight distance before the fuse may detonate
        detonation_radius_m: Maximum target distance that triggers detonation
        optimal_radius_m: Target distance at or below which quality is 1.0
        scan_interval_ms: Minimum simulation time between proximity scans
    """
    arming_distance_m: float = 15.0
    detonation_radius_m: float = 8.0
    optimal_radius_m: float = 4.0
    scan_interval_ms: float = 0.0

    def __post_init__(self) -> None:
        """Reject configurations that break the radius ordering."""
        if self.arming_distance_m < 0:
            raise InvalidFuseConfigError(
                f"Arming distance must be non-negative, got {self.arming_distance_m}"
            )
        if self.optimal_radius_m <= 0:
            raise InvalidFuseConfigError(
                f"Optimal radius must be positive, got {self.optimal_radius_m}"
            )
        if self.optimal_radius_m > self.detonation_radius_m:
            raise InvalidFuseConfigError(
                f"Optimal radius {self.optimal_radius_m} exceeds "
                f"detonation radius {self.detonation_radius_m}"
            )
        if self.scan_interval_ms < 0:
            raise InvalidFuseConfigError(
                f"Scan interval must be non-negative, got {self.scan_interval_ms}"
            )

    @classmethod
    def from_engagement_data(cls, engagement_data: dict, profile: str) -> ProximityFuseConfig:
        """
        Create a fuse profile from loaded engagement data.

        Args:
            engagement_data: Dictionary from load_engagement_data().
            profile: Profile name, e.g. "initial" or "retarget".

        Returns:
            Validated ProximityFuseConfig.

        Raises:
            KeyError: If the profile is not defined.
            InvalidFuseConfigError: If the profile violates the invariants.
        """
        profiles = engagement_data.get("fuse_profiles", {})
        if profile not in profiles:
            raise KeyError(f"Fuse profile '{profile}' not found in engagement data")

        entry = profiles[profile]
        return cls(
            arming_distance_m=entry["arming_distance_m"],
            detonation_radius_m=entry["detonation_radius_m"],
            optimal_radius_m=entry["optimal_radius_m"],
            scan_interval_ms=entry.get("scan_interval_ms", 0.0)
        )


# Fresh launch vs. re-engagement or mid-flight retarget
FUSE_PROFILES: dict[str, ProximityFuseConfig] = {
    "initial": ProximityFuseConfig(
        arming_distance_m=15.0,
        detonation_radius_m=8.0,
        optimal_radius_m=4.0,
        scan_interval_ms=0.0,
    ),
    "retarget": ProximityFuseConfig(
        arming_distance_m=10.0,
        detonation_radius_m=8.0,
        optimal_radius_m=4.0,
        scan_interval_ms=0.0,
    ),
}


def fuse_profile(name: str) -> ProximityFuseConfig:
    """Look up a built-in fuse profile by name."""
    if name not in FUSE_PROFILES:
        raise KeyError(f"Unknown fuse profile '{name}'")
    return FUSE_PROFILES[name]


# =============================================================================
# DETONATION QUALITY & LETHALITY
# =============================================================================

def detonation_quality(
    distance_m: float,
    optimal_radius_m: float,
    detonation_radius_m: float
) -> float:
    """
    Quality of a detonation at the given miss distance.

    quality = 1.0 for distance <= optimal, otherwise
    max(0, 1 - (distance - optimal) / (detonation - optimal)).

    Args:
        distance_m: Distance to target at detonation (meters)
        optimal_radius_m: Full-quality radius (meters)
        detonation_radius_m: Zero-quality radius (meters)

    Returns:
        Quality in [0, 1]
    """
    if distance_m <= optimal_radius_m:
        return 1.0

    falloff_range = detonation_radius_m - optimal_radius_m
    if falloff_range <= 0:
        return 0.0

    return max(0.0, 1.0 - (distance_m - optimal_radius_m) / falloff_range)


class WarheadClass(Enum):
    """Blast-fragmentation warhead size."""
    SMALL = auto()
    MEDIUM = auto()
    LARGE = auto()


# (lethal, effective, max) radii in meters
WARHEAD_KILL_RADII_M: dict[WarheadClass, tuple[float, float, float]] = {
    WarheadClass.SMALL: (3.0, 6.0, 10.0),
    WarheadClass.MEDIUM: (5.0, 8.0, 15.0),
    WarheadClass.LARGE: (8.0, 12.0, 20.0),
}


def kill_probability(
    detonation_distance_m: float,
    warhead: WarheadClass = WarheadClass.MEDIUM
) -> float:
    """
    Probability that a detonation at this distance destroys the target.

    Piecewise linear:
    - lethal zone: 0.95 to 1.0
    - effective zone: 0.5 to 0.95
    - fringe zone: 0.0 to 0.5
    - beyond max radius: 0.0

    Args:
        detonation_distance_m: Miss distance at detonation (meters)
        warhead: Warhead size class

    Returns:
        Kill probability in [0, 1]
    """
    lethal, effective, maximum = WARHEAD_KILL_RADII_M[warhead]
    d = max(0.0, detonation_distance_m)

    if d <= lethal:
        return 0.95 + (1 - d / lethal) * 0.05
    if d <= effective:
        return 0.95 - ((d - lethal) / (effective - lethal)) * 0.45
    if d <= maximum:
        return 0.5 - ((d - effective) / (maximum - effective)) * 0.5
    return 0.0


# =============================================================================
# FUSE STATE
# =============================================================================

class FuseStatus(Enum):
    """Fuse state machine status."""
    UNARMED = auto()
    ARMED = auto()
    DETONATED = auto()


@dataclass
class ProximityFuseState:
    """
    Mutable state owned by exactly one interceptor's fuse.

    Attributes:
        armed: True once the arming distance has been flown
        detonated: Terminal flag; never returns to False
        distance_traveled_m: Cumulative path length since (re)arming
        last_scan_time_ms: Simulation time of the last proximity scan
        last_position: Position at the previous update
    """
    armed: bool = False
    detonated: bool = False
    distance_traveled_m: float = 0.0
    last_scan_time_ms: Optional[float] = None
    last_position: Vector3D = field(default_factory=Vector3D.zero)

    @property
    def status(self) -> FuseStatus:
        """Current state machine status."""
        if self.detonated:
            return FuseStatus.DETONATED
        if self.armed:
            return FuseStatus.ARMED
        return FuseStatus.UNARMED


@dataclass(frozen=True)
class DetonationEvent:
    """
    Emitted to the host when the fuse fires.

    Attributes:
        position: Interceptor position at detonation (meters)
        target_position: Target position at detonation (meters)
        distance_m: Miss distance at detonation (meters)
        quality: Detonation quality in [0, 1]
        time_ms: Simulation time of detonation
    """
    position: Vector3D
    target_position: Vector3D
    distance_m: float
    quality: float
    time_ms: float


@dataclass(frozen=True)
class ApproachCheck:
    """Whether the interceptor is closing and how close it will pass."""
    is_approaching: bool
    closest_approach_m: float


# =============================================================================
# PROXIMITY FUSE
# =============================================================================

class ProximityFuse:
    """
    Distance-armed, rate-limited proximity fuse.

    Never detonates while unarmed, which keeps the interceptor from
    detonating over its own launcher.
    """

    def __init__(
        self,
        start_position: Vector3D,
        config: Optional[ProximityFuseConfig] = None
    ):
        """
        Initialize an unarmed fuse.

        Args:
            start_position: Interceptor position at launch (meters)
            config: Fuse profile (default: the "initial" profile)
        """
        self.config = config if config is not None else FUSE_PROFILES["initial"]
        self.state = ProximityFuseState(
            last_position=Vector3D(start_position.x, start_position.y, start_position.z)
        )

    @property
    def armed(self) -> bool:
        return self.state.armed

    @property
    def detonated(self) -> bool:
        return self.state.detonated

    @property
    def distance_traveled(self) -> float:
        return self.state.distance_traveled_m

    @property
    def status(self) -> FuseStatus:
        return self.state.status

    def update(
        self,
        position: Vector3D,
        target_position: Vector3D,
        current_time_ms: float
    ) -> Optional[DetonationEvent]:
        """
        Advance the fuse with the interceptor's new position.

        Args:
            position: Interceptor position this tick (meters)
            target_position: Target position this tick (meters)
            current_time_ms: Simulation time (milliseconds)

        Returns:
            DetonationEvent on the tick the fuse fires, otherwise None.
        """
        state = self.state
        if state.detonated:
            return None

        state.distance_traveled_m += position.distance_to(state.last_position)
        state.last_position = Vector3D(position.x, position.y, position.z)

        if not state.armed and state.distance_traveled_m >= self.config.arming_distance_m:
            state.armed = True
            logger.debug("Fuse armed after %.1f m", state.distance_traveled_m)

        if not state.armed:
            return None

        # Rate limit proximity scans
        if (state.last_scan_time_ms is not None and
                current_time_ms - state.last_scan_time_ms < self.config.scan_interval_ms):
            return None
        state.last_scan_time_ms = current_time_ms

        distance_to_target = position.distance_to(target_position)
        if distance_to_target > self.config.detonation_radius_m:
            return None

        state.detonated = True
        quality = detonation_quality(
            distance_to_target,
            self.config.optimal_radius_m,
            self.config.detonation_radius_m
        )
        logger.info(
            "Detonation at %.2f m from target, quality %.0f%%",
            distance_to_target, quality * 100
        )
        return DetonationEvent(
            position=Vector3D(position.x, position.y, position.z),
            target_position=Vector3D(target_position.x, target_position.y, target_position.z),
            distance_m=distance_to_target,
            quality=quality,
            time_ms=current_time_ms
        )

    def rearm(self, config: ProximityFuseConfig, position: Vector3D) -> None:
        """
        Reset the fuse to a new profile, measuring arming distance from position.

        Used on re-engagement and mid-flight retargeting. A detonated fuse
        stays detonated.
        """
        if self.state.detonated:
            return
        self.config = config
        self.state = ProximityFuseState(
            last_position=Vector3D(position.x, position.y, position.z)
        )
        logger.debug("Fuse rearmed, arming distance %.1f m", config.arming_distance_m)

    @staticmethod
    def check_approach(
        position: Vector3D,
        target_position: Vector3D,
        velocity: Vector3D
    ) -> ApproachCheck:
        """
        Check whether the interceptor is closing on the target.

        The closest-approach distance assumes the current velocity is held
        and the target is stationary.
        """
        to_target = target_position - position
        is_approaching = velocity.dot(to_target) > 0

        if velocity.is_degenerate():
            return ApproachCheck(is_approaching=False, closest_approach_m=to_target.magnitude)

        direction = velocity.normalized()
        projection = direction * to_target.dot(direction)
        closest_point = position + projection

        return ApproachCheck(
            is_approaching=is_approaching,
            closest_approach_m=closest_point.distance_to(target_position)
        )
