#!/usr/bin/env python3
"""
Per-Interceptor Engagement Driver

Ties one interceptor's guidance controller and proximity fuse together and
drives them once per host tick:

1. Resolve the interceptor's target reference to a kinematic snapshot
2. Compute the guidance command
3. Update the proximity fuse
4. Emit engagement events to registered callbacks

Which interceptors are chasing which threat is kept in an explicit
EngagementRegistry that the host shares between engagements.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, Optional, Union

from .fuse import FUSE_PROFILES, DetonationEvent, ProximityFuse, ProximityFuseConfig
from .guidance import GuidanceCommand, GuidanceConfig, GuidanceController, GuidancePhase
from .physics import KinematicState, Vector3D
from .threat import ThreatRecord
from .trajectory import LaunchPlan, plan_launch, predicted_miss_distance

logger = logging.getLogger(__name__)


# =============================================================================
# TARGET REFERENCES
# =============================================================================

@dataclass(frozen=True)
class Tracked:
    """Target is a live threat, looked up by id every tick."""
    threat_id: str


@dataclass(frozen=True)
class FixedPoint:
    """Target is a fixed point in space (e.g. a manual aim point)."""
    position: Vector3D


TargetRef = Union[Tracked, FixedPoint]


def resolve_target(
    target: TargetRef,
    threats: Mapping[str, ThreatRecord]
) -> Optional[KinematicState]:
    """
    Resolve a target reference to this tick's kinematic snapshot.

    Args:
        target: Target reference
        threats: Live threats by id

    Returns:
        KinematicState, or None if a tracked threat is gone or inactive
    """
    if isinstance(target, FixedPoint):
        return KinematicState.at_rest(target.position)

    threat = threats.get(target.threat_id)
    if threat is None or not threat.active:
        return None
    return threat.state


# =============================================================================
# ENGAGEMENT REGISTRY
# =============================================================================

class EngagementRegistry:
    """
    Shared bookkeeping of which interceptors are assigned to which threat.

    One instance is owned by the host and passed to every engagement.
    """

    def __init__(self):
        self._assignments: dict[str, str] = {}

    def assign(self, interceptor_id: str, threat_id: str) -> None:
        """Record (or move) an interceptor's assignment."""
        self._assignments[interceptor_id] = threat_id

    def release(self, interceptor_id: str) -> Optional[str]:
        """Drop an interceptor's assignment, returning the threat it was on."""
        return self._assignments.pop(interceptor_id, None)

    def target_of(self, interceptor_id: str) -> Optional[str]:
        return self._assignments.get(interceptor_id)

    def interceptors_for(self, threat_id: str) -> list[str]:
        """Interceptor ids assigned to a threat, in assignment order."""
        return [i for i, t in self._assignments.items() if t == threat_id]

    def is_targeted(self, threat_id: str) -> bool:
        return threat_id in self._assignments.values()

    def targeted_threats(self) -> set[str]:
        return set(self._assignments.values())

    def clear(self) -> None:
        self._assignments.clear()

    def __len__(self) -> int:
        return len(self._assignments)


# =============================================================================
# ENGAGEMENT EVENTS
# =============================================================================

class EngagementEventType(Enum):
    """Host-facing engagement events."""
    LAUNCHED = "launched"
    PHASE_CHANGED = "phase_changed"
    RE_ENGAGED = "re_engaged"
    RETARGETED = "retargeted"
    TARGET_LOST = "target_lost"
    DETONATED = "detonated"


@dataclass
class EngagementEvent:
    """
    An event emitted by an engagement.

    Attributes:
        event_type: The type of event.
        time_ms: Simulation time when the event occurred (milliseconds).
        interceptor_id: Interceptor involved.
        target_id: Threat id, if the target is tracked.
        data: Additional event-specific data.
    """
    event_type: EngagementEventType
    time_ms: float
    interceptor_id: str
    target_id: Optional[str] = None
    data: dict = field(default_factory=dict)

    def __str__(self) -> str:
        target_str = f" -> {self.target_id}" if self.target_id else ""
        return f"T+{self.time_ms / 1000:.3f}s [{self.interceptor_id}] {self.event_type.name}{target_str}"


@dataclass(frozen=True)
class EngagementStep:
    """Outputs of one engagement tick."""
    command: GuidanceCommand
    detonation: Optional[DetonationEvent] = None
    predicted_miss_m: Optional[float] = None


# =============================================================================
# INTERCEPTOR ENGAGEMENT
# =============================================================================

class InterceptorEngagement:
    """
    Guidance and fuse state for one interceptor in flight.

    Attributes:
        interceptor_id: Host id of the interceptor
        target: Current target reference
        fuse: Proximity fuse
        guidance: Guidance controller sharing the fuse
        active: False after detonation
        events: Every event emitted so far
    """

    def __init__(
        self,
        interceptor_id: str,
        target: TargetRef,
        launch_position: Vector3D,
        guidance_config: Optional[GuidanceConfig] = None,
        fuse_config: Optional[ProximityFuseConfig] = None,
        retarget_fuse_config: Optional[ProximityFuseConfig] = None,
        registry: Optional[EngagementRegistry] = None
    ):
        self.interceptor_id = interceptor_id
        self.target = target
        self.registry = registry
        self.retarget_fuse_config = (
            retarget_fuse_config if retarget_fuse_config is not None
            else FUSE_PROFILES["retarget"]
        )
        self.fuse = ProximityFuse(launch_position, fuse_config)
        self.guidance = GuidanceController(guidance_config, self.fuse, self.retarget_fuse_config)
        self.active = True
        self.events: list[EngagementEvent] = []
        self._event_callbacks: list[Callable[[EngagementEvent], None]] = []
        self._target_lost = False

        if registry is not None and isinstance(target, Tracked):
            registry.assign(interceptor_id, target.threat_id)

    @classmethod
    def launch(
        cls,
        interceptor_id: str,
        threat: ThreatRecord,
        launch_position: Vector3D,
        interceptor_speed: float,
        registry: Optional[EngagementRegistry] = None,
        prefer_lofted: bool = False,
        now_ms: float = 0.0,
        guidance_config: Optional[GuidanceConfig] = None,
        fuse_config: Optional[ProximityFuseConfig] = None
    ) -> tuple[InterceptorEngagement, LaunchPlan]:
        """
        Plan a launch against a threat and start the engagement.

        Raises:
            NoFeasibleInterceptError: If no intercept point can be predicted.
            UnreachableTargetError: If the intercept point is out of envelope.
        """
        plan = plan_launch(
            threat.state,
            launch_position,
            interceptor_speed,
            ballistic=threat.threat_class.is_ballistic,
            prefer_lofted=prefer_lofted
        )
        engagement = cls(
            interceptor_id,
            Tracked(threat.threat_id),
            launch_position,
            guidance_config=guidance_config,
            fuse_config=fuse_config,
            registry=registry
        )
        engagement._emit(
            EngagementEventType.LAUNCHED,
            now_ms,
            data={
                "angle_deg": plan.launch.angle_deg,
                "azimuth_deg": plan.launch.azimuth_deg,
                "time_to_intercept": plan.intercept.time_to_intercept,
            }
        )
        return engagement, plan

    @property
    def target_id(self) -> Optional[str]:
        return self.target.threat_id if isinstance(self.target, Tracked) else None

    @property
    def phase(self) -> GuidancePhase:
        return self.guidance.phase

    def add_event_callback(self, callback: Callable[[EngagementEvent], None]) -> None:
        """
        Register a callback to be called for each engagement event.

        Args:
            callback: Function that takes an EngagementEvent.
        """
        self._event_callbacks.append(callback)

    def remove_event_callback(self, callback: Callable[[EngagementEvent], None]) -> None:
        """Remove an event callback."""
        if callback in self._event_callbacks:
            self._event_callbacks.remove(callback)

    def _emit(
        self,
        event_type: EngagementEventType,
        time_ms: float,
        data: Optional[dict] = None
    ) -> EngagementEvent:
        """Record an event and notify callbacks."""
        event = EngagementEvent(
            event_type=event_type,
            time_ms=time_ms,
            interceptor_id=self.interceptor_id,
            target_id=self.target_id,
            data=data or {}
        )
        self.events.append(event)

        for callback in self._event_callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception("Engagement event callback failed for %s", event)

        return event

    def step(
        self,
        own: KinematicState,
        threats: Mapping[str, ThreatRecord],
        dt: float,
        now_ms: float
    ) -> EngagementStep:
        """
        Advance the engagement by one host tick.

        Args:
            own: Interceptor snapshot
            threats: Live threats by id (unused for fixed-point targets)
            dt: Time step (seconds)
            now_ms: Simulation time (milliseconds)

        Returns:
            EngagementStep with the force to apply and any detonation
        """
        if not self.active:
            return EngagementStep(command=GuidanceCommand.coast(self.phase, "inactive"))

        target = resolve_target(self.target, threats)
        if target is None:
            if not self._target_lost:
                self._target_lost = True
                if self.registry is not None:
                    self.registry.release(self.interceptor_id)
                logger.info("%s lost target %s", self.interceptor_id, self.target_id)
                self._emit(EngagementEventType.TARGET_LOST, now_ms)
            return EngagementStep(command=GuidanceCommand.coast(self.phase, "target lost"))

        if self._target_lost:
            self._target_lost = False
            if self.registry is not None and isinstance(self.target, Tracked):
                self.registry.assign(self.interceptor_id, self.target.threat_id)
            logger.info("%s reacquired target %s", self.interceptor_id, self.target_id)

        previous_phase = self.guidance.phase
        previous_attempts = self.guidance.reengagement_attempts

        command = self.guidance.update(own, target, dt)

        if self.guidance.reengagement_attempts > previous_attempts:
            self._emit(
                EngagementEventType.RE_ENGAGED,
                now_ms,
                data={"attempt": self.guidance.reengagement_attempts}
            )
        if self.guidance.phase != previous_phase:
            self._emit(
                EngagementEventType.PHASE_CHANGED,
                now_ms,
                data={"from": previous_phase.name, "to": self.guidance.phase.name}
            )

        detonation = self.fuse.update(own.position, target.position, now_ms)
        if detonation is not None:
            self.active = False
            if self.registry is not None:
                self.registry.release(self.interceptor_id)
            self._emit(
                EngagementEventType.DETONATED,
                now_ms,
                data={"distance_m": detonation.distance_m, "quality": detonation.quality}
            )

        return EngagementStep(
            command=command,
            detonation=detonation,
            predicted_miss_m=predicted_miss_distance(own, target)
        )

    def retarget(self, target: TargetRef, position: Vector3D, now_ms: float) -> None:
        """
        Switch to a new target mid-flight.

        The fuse is rearmed with the retarget profile from the current
        position and the guidance closest-approach memory is cleared.
        """
        if not self.active:
            return

        self.target = target
        self._target_lost = False
        if self.registry is not None:
            self.registry.release(self.interceptor_id)
            if isinstance(target, Tracked):
                self.registry.assign(self.interceptor_id, target.threat_id)

        self.fuse.rearm(self.retarget_fuse_config, position)
        self.guidance.reset_tracking()
        self._emit(EngagementEventType.RETARGETED, now_ms)
