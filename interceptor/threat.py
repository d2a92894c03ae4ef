#!/usr/bin/env python3
"""
Threat Assessment for the Interceptor Kinematics Engine

Scores incoming threats against a registry of protected assets, sizes the
interceptor salvo for each threat and groups simultaneous threats into
clusters:

- Impact analysis: predicted impact point/time and the assets inside the
  damage circle
- Priority (0-100): population at risk, time criticality, strategic value,
  threat class
- Single-shot intercept probability from engagement geometry
- Salvo size n = ceil(ln(1 - P_required) / ln(1 - p)), capped
- Greedy clustering by proximity and time-to-impact

All scoring is pure: nothing here mutates the threats it is given.
"""

from __future__ import annotations
import functools
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from .physics import (
    G_STANDARD,
    KinematicState,
    Vector3D,
    ballistic_velocity,
    ground_impact_point,
    time_to_ground_impact,
)

logger = logging.getLogger(__name__)


# =============================================================================
# THREAT & ASSET TYPES
# =============================================================================

class ThreatClass(Enum):
    """Incoming threat categories."""
    MORTAR = "mortar"
    ROCKET = "rocket"
    CRUISE_MISSILE = "cruise_missile"
    BALLISTIC_MISSILE = "ballistic_missile"
    DRONE = "drone"

    @property
    def is_ballistic(self) -> bool:
        """True if the class flies an unpowered gravity trajectory."""
        return self in (ThreatClass.MORTAR, ThreatClass.ROCKET, ThreatClass.BALLISTIC_MISSILE)


class AssetType(Enum):
    """Protected asset categories."""
    CITY = "city"
    MILITARY = "military"
    INFRASTRUCTURE = "infrastructure"
    INDUSTRIAL = "industrial"


class ClusterPattern(Enum):
    """Attack pattern of a threat cluster."""
    SATURATION = "saturation"      # Near-simultaneous arrivals
    DISTRIBUTED = "distributed"    # Spread out in space
    SEQUENTIAL = "sequential"      # Spread out in time
    MIXED = "mixed"


@dataclass
class ThreatRecord:
    """
    Tracked threat as seen by the assessment layer.

    Attributes:
        threat_id: Unique identifier
        threat_class: Threat category
        state: Current kinematic snapshot
        spawn_time: Simulation time the threat appeared (seconds)
        active: False once destroyed or impacted
        target_position: Aim point of a powered threat, if known
    """
    threat_id: str
    threat_class: ThreatClass
    state: KinematicState
    spawn_time: float = 0.0
    active: bool = True
    target_position: Optional[Vector3D] = None

    @property
    def position(self) -> Vector3D:
        return self.state.position

    @property
    def velocity(self) -> Vector3D:
        return self.state.velocity


@dataclass(frozen=True)
class ProtectedAsset:
    """
    Static defended area.

    Attributes:
        name: Display name
        position: Center on the ground (meters)
        radius: Extent of the area (meters)
        population: People inside the area
        strategic_value: Strategic weight in [0, 1]
        asset_type: Asset category
    """
    name: str
    position: Vector3D
    radius: float
    population: int
    strategic_value: float
    asset_type: AssetType

    @classmethod
    def from_dict(cls, data: dict) -> ProtectedAsset:
        """Create from an engagement-data asset entry."""
        return cls(
            name=data["name"],
            position=Vector3D.from_tuple(data["position"]),
            radius=float(data["radius_m"]),
            population=int(data["population"]),
            strategic_value=float(data["strategic_value"]),
            asset_type=AssetType(data["type"])
        )


DEFAULT_PROTECTED_ASSETS: tuple[ProtectedAsset, ...] = (
    ProtectedAsset("city center", Vector3D(0.0, 0.0, 0.0), 2000.0, 50000, 0.8, AssetType.CITY),
    ProtectedAsset("industrial zone", Vector3D(5000.0, 0.0, 3000.0), 1000.0, 10000, 0.5,
                   AssetType.INDUSTRIAL),
    ProtectedAsset("military base", Vector3D(-3000.0, 0.0, -2000.0), 500.0, 500, 0.9,
                   AssetType.MILITARY),
)


# =============================================================================
# PER-CLASS TABLES
# =============================================================================

DAMAGE_RADIUS_M: dict[ThreatClass, float] = {
    ThreatClass.BALLISTIC_MISSILE: 500.0,
    ThreatClass.CRUISE_MISSILE: 300.0,
    ThreatClass.ROCKET: 200.0,
    ThreatClass.MORTAR: 100.0,
    ThreatClass.DRONE: 50.0,
}

# Single-shot Pk multiplier by class
CLASS_PK_FACTOR: dict[ThreatClass, float] = {
    ThreatClass.BALLISTIC_MISSILE: 0.85,
    ThreatClass.CRUISE_MISSILE: 0.9,
    ThreatClass.ROCKET: 0.95,
    ThreatClass.MORTAR: 0.98,
    ThreatClass.DRONE: 0.99,
}

CLASS_PRIORITY_BONUS: dict[ThreatClass, float] = {
    ThreatClass.BALLISTIC_MISSILE: 10.0,
    ThreatClass.CRUISE_MISSILE: 8.0,
    ThreatClass.ROCKET: 5.0,
    ThreatClass.MORTAR: 0.0,
    ThreatClass.DRONE: 0.0,
}

# Classes that always get one extra interceptor
EXTRA_INTERCEPTOR_CLASSES: frozenset[ThreatClass] = frozenset({ThreatClass.BALLISTIC_MISSILE})

BASE_INTERCEPT_PROBABILITY = 0.9
MIN_INTERCEPT_PROBABILITY = 0.1
MAX_INTERCEPT_PROBABILITY = 0.99

# Powered threats with no usable trajectory are assumed to arrive within this horizon
POWERED_IMPACT_HORIZON_S = 30.0

# Optimal intercept sits a third of the way into the engagement window
INTERCEPT_WINDOW_FRACTION = 0.33
INTERCEPT_WINDOW_CLOSE_FRACTION = 0.7

SATURATION_TIME_SPAN_S = 2.0
SEQUENTIAL_TIME_SPAN_S = 10.0
DISTRIBUTED_RADIUS_M = 2000.0


# =============================================================================
# SCORING HELPERS
# =============================================================================

def overlap_factor(distance: float, radius1: float, radius2: float) -> float:
    """
    Approximate overlap of two circles.

    0 when apart, 1 when one contains the other, otherwise
    (r1 + r2 - d) / (2 * min(r1, r2)) clamped to [0, 1].
    """
    if distance >= radius1 + radius2:
        return 0.0
    if distance <= abs(radius1 - radius2):
        return 1.0
    overlap = (radius1 + radius2 - distance) / (2 * min(radius1, radius2))
    return min(1.0, max(0.0, overlap))


def cumulative_kill_probability(single_shot_pk: float, interceptors: int) -> float:
    """Probability that at least one of n independent shots kills: 1 - (1 - p)^n."""
    return 1.0 - (1.0 - single_shot_pk) ** interceptors


def required_interceptors(
    single_shot_pk: float,
    required_pk: float = 0.95,
    extra: int = 0,
    cap: int = 4
) -> int:
    """
    Salvo size needed to reach required_pk.

    Args:
        single_shot_pk: Kill probability of one interceptor, in (0, 1]
        required_pk: Target cumulative kill probability, in (0, 1)
        extra: Interceptors added on top (e.g. high-value threats)
        cap: Maximum salvo size

    Returns:
        Number of interceptors in [1, cap]
    """
    if single_shot_pk >= 1.0:
        n = 1
    elif single_shot_pk <= 0.0:
        n = cap
    else:
        n = math.ceil(math.log(1 - required_pk) / math.log(1 - single_shot_pk))
    return max(1, min(n + extra, cap))


# =============================================================================
# ASSESSMENT RESULTS
# =============================================================================

@dataclass(frozen=True)
class ImpactAnalysis:
    """Where and when a threat lands and what it endangers."""
    impact_point: Vector3D
    impact_time: float
    impact_velocity: float
    damage_radius: float
    population_at_risk: float = 0.0
    infrastructure_value: float = 0.0
    strategic_importance: float = 0.0


@dataclass(frozen=True)
class ThreatAssessment:
    """
    Scored threat, ready for prioritization and salvo allocation.

    Attributes:
        threat_id: Assessed threat
        threat_class: Threat category
        priority: Score in [0, 100]
        impact_point: Predicted ground impact (meters)
        impact_time: Seconds until impact
        impact_velocity: Speed at impact (m/s)
        damage_radius: Damage circle radius (meters)
        population_at_risk: Overlap-weighted population
        infrastructure_value: Overlap-weighted strategic value
        strategic_importance: Highest strategic value touched
        intercept_probability: Single-shot Pk in [0, 1]
        required_interceptors: Salvo size (>= 1)
        optimal_intercept_time: Preferred time to intercept (seconds from now)
    """
    threat_id: str
    threat_class: ThreatClass
    priority: float
    impact_point: Vector3D
    impact_time: float
    impact_velocity: float
    damage_radius: float
    population_at_risk: float
    infrastructure_value: float
    strategic_importance: float
    intercept_probability: float
    required_interceptors: int
    optimal_intercept_time: float

    @property
    def salvo_kill_probability(self) -> float:
        """Cumulative Pk of the recommended salvo."""
        return cumulative_kill_probability(self.intercept_probability, self.required_interceptors)


@dataclass(frozen=True)
class ThreatCluster:
    """
    Group of threats arriving close together in space and time.

    Attributes:
        cluster_id: Deterministic id ("cluster-1", "cluster-2", ...)
        members: Member threat ids, seed first
        center: Mean member position (meters)
        radius: Largest member distance from the center (meters)
        time_span: Spread of member impact times (seconds)
        pattern: Attack pattern classification
    """
    cluster_id: str
    members: tuple[str, ...]
    center: Vector3D
    radius: float
    time_span: float
    pattern: ClusterPattern

    @property
    def size(self) -> int:
        return len(self.members)


# =============================================================================
# THREAT ANALYZER
# =============================================================================

@dataclass
class ThreatAnalyzer:
    """
    Threat scoring, salvo sizing and clustering.

    Attributes:
        protected_assets: Defended areas used for impact analysis
        clustering_distance_m: Maximum seed-to-member distance in a cluster
        clustering_time_window_s: Maximum impact-time difference in a cluster
        required_kill_probability: Cumulative Pk the salvo must reach
        max_interceptors: Salvo size cap
        interceptor_speed: Average interceptor speed for timing (m/s)
        gravity: Gravitational acceleration (m/s^2)
    """
    protected_assets: Sequence[ProtectedAsset] = DEFAULT_PROTECTED_ASSETS
    clustering_distance_m: float = 1000.0
    clustering_time_window_s: float = 5.0
    required_kill_probability: float = 0.95
    max_interceptors: int = 4
    interceptor_speed: float = 1000.0
    gravity: float = G_STANDARD
    damage_radius_m: dict[ThreatClass, float] = field(default_factory=lambda: dict(DAMAGE_RADIUS_M))
    class_pk_factor: dict[ThreatClass, float] = field(default_factory=lambda: dict(CLASS_PK_FACTOR))
    class_priority_bonus: dict[ThreatClass, float] = field(
        default_factory=lambda: dict(CLASS_PRIORITY_BONUS)
    )

    def __post_init__(self) -> None:
        if not 0 < self.required_kill_probability < 1:
            raise ValueError("required_kill_probability must be in (0, 1)")
        if self.max_interceptors < 1:
            raise ValueError("max_interceptors must be at least 1")
        if self.interceptor_speed <= 0:
            raise ValueError("interceptor_speed must be positive")

    @classmethod
    def from_engagement_data(cls, engagement_data: dict) -> ThreatAnalyzer:
        """
        Create an analyzer from loaded engagement data.

        Uses the "threat_assessment" settings, the per-class "threat_classes"
        tables and the "protected_assets" registry. Missing sections keep
        their defaults.
        """
        settings = engagement_data.get("threat_assessment", {})
        classes = engagement_data.get("threat_classes", {})

        damage_radius = dict(DAMAGE_RADIUS_M)
        pk_factor = dict(CLASS_PK_FACTOR)
        priority_bonus = dict(CLASS_PRIORITY_BONUS)
        for name, entry in classes.items():
            threat_class = ThreatClass(name)
            damage_radius[threat_class] = float(entry.get("damage_radius_m", damage_radius[threat_class]))
            pk_factor[threat_class] = float(entry.get("pk_factor", pk_factor[threat_class]))
            priority_bonus[threat_class] = float(entry.get("priority_bonus", priority_bonus[threat_class]))

        if "protected_assets" in engagement_data:
            assets = tuple(ProtectedAsset.from_dict(a) for a in engagement_data["protected_assets"])
        else:
            assets = DEFAULT_PROTECTED_ASSETS

        return cls(
            protected_assets=assets,
            damage_radius_m=damage_radius,
            class_pk_factor=pk_factor,
            class_priority_bonus=priority_bonus,
            **settings
        )

    # =========================================================================
    # IMPACT ANALYSIS
    # =========================================================================

    def predict_impact(self, threat: ThreatRecord) -> tuple[Vector3D, float, float]:
        """
        Predict a threat's ground impact.

        Ballistic classes follow the gravity trajectory. Powered classes fly
        straight to their aim point when it is known, otherwise along their
        current velocity to the ground, otherwise they are assumed to arrive
        within POWERED_IMPACT_HORIZON_S.

        Returns:
            (impact_point, impact_time_s, impact_speed)
        """
        position = threat.state.position
        velocity = threat.state.velocity
        speed = velocity.magnitude

        if threat.threat_class.is_ballistic:
            impact_time = time_to_ground_impact(position, velocity, self.gravity)
            if impact_time is not None:
                impact_point = ground_impact_point(position, velocity, self.gravity)
                impact_speed = ballistic_velocity(velocity, impact_time, self.gravity).magnitude
                return impact_point, impact_time, impact_speed

        if threat.target_position is not None and speed > 0:
            return (
                threat.target_position,
                position.distance_to(threat.target_position) / speed,
                speed
            )

        impact_time = time_to_ground_impact(position, velocity, gravity=0.0)
        if impact_time is not None:
            return ground_impact_point(position, velocity, gravity=0.0), impact_time, speed

        horizon = POWERED_IMPACT_HORIZON_S
        projected = position + velocity * horizon
        return Vector3D(projected.x, 0.0, projected.z), horizon, speed

    def time_to_impact(self, threat: ThreatRecord) -> float:
        """Seconds until the threat's predicted impact."""
        return self.predict_impact(threat)[1]

    def analyze_impact(self, threat: ThreatRecord) -> ImpactAnalysis:
        """Impact prediction plus the protected assets inside the damage circle."""
        impact_point, impact_time, impact_speed = self.predict_impact(threat)
        damage_radius = self.damage_radius_m[threat.threat_class]

        population = 0.0
        infrastructure = 0.0
        strategic = 0.0
        for asset in self.protected_assets:
            distance = impact_point.distance_to(asset.position)
            if distance >= damage_radius + asset.radius:
                continue
            overlap = overlap_factor(distance, damage_radius, asset.radius)
            population += asset.population * overlap
            infrastructure += asset.strategic_value * overlap
            strategic = max(strategic, asset.strategic_value)

        logger.debug(
            "Impact analysis for %s: point=%s t=%.1f s population=%.0f",
            threat.threat_id, impact_point, impact_time, population
        )
        return ImpactAnalysis(
            impact_point=impact_point,
            impact_time=impact_time,
            impact_velocity=impact_speed,
            damage_radius=damage_radius,
            population_at_risk=population,
            infrastructure_value=infrastructure,
            strategic_importance=strategic
        )

    # =========================================================================
    # SCORING
    # =========================================================================

    def threat_priority(self, threat_class: ThreatClass, impact: ImpactAnalysis) -> float:
        """Priority score in [0, 100]."""
        priority = 0.0

        # Population at risk (0-40)
        if impact.population_at_risk > 10000:
            priority += 40
        elif impact.population_at_risk > 1000:
            priority += 30
        elif impact.population_at_risk > 100:
            priority += 20
        elif impact.population_at_risk > 0:
            priority += 10

        # Time criticality (0-30)
        if impact.impact_time < 10:
            priority += 30
        elif impact.impact_time < 20:
            priority += 20
        elif impact.impact_time < 30:
            priority += 10

        # Strategic importance (0-20)
        priority += impact.strategic_importance * 20

        # Threat class (0-10)
        priority += self.class_priority_bonus.get(threat_class, 0.0)

        return min(100.0, priority)

    def intercept_probability(self, threat: ThreatRecord, battery_position: Vector3D) -> float:
        """Single-shot kill probability from engagement geometry."""
        distance = threat.state.position.distance_to(battery_position)
        altitude = threat.state.position.y
        speed = threat.state.speed

        probability = BASE_INTERCEPT_PROBABILITY

        if distance > 15000:
            probability *= 0.7
        elif distance > 10000:
            probability *= 0.85

        if altitude < 100:
            probability *= 0.8
        elif altitude > 5000:
            probability *= 0.9

        if speed > 1000:
            probability *= 0.7
        elif speed > 500:
            probability *= 0.85

        probability *= self.class_pk_factor.get(threat.threat_class, 0.9)

        return max(MIN_INTERCEPT_PROBABILITY, min(MAX_INTERCEPT_PROBABILITY, probability))

    def optimal_intercept_time(
        self,
        threat: ThreatRecord,
        battery_position: Vector3D,
        impact_time: float
    ) -> float:
        """Preferred intercept time a third of the way into the engagement window."""
        min_time = threat.state.position.distance_to(battery_position) / self.interceptor_speed
        max_time = impact_time * INTERCEPT_WINDOW_CLOSE_FRACTION
        return min_time + (max_time - min_time) * INTERCEPT_WINDOW_FRACTION

    def salvo_size(self, threat_class: ThreatClass, single_shot_pk: float) -> int:
        """Interceptors needed for this threat."""
        extra = 1 if threat_class in EXTRA_INTERCEPTOR_CLASSES else 0
        return required_interceptors(
            single_shot_pk, self.required_kill_probability, extra, self.max_interceptors
        )

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def assess(self, threat: ThreatRecord, battery_position: Vector3D) -> ThreatAssessment:
        """
        Score a single threat.

        Args:
            threat: Threat to assess
            battery_position: Defending battery position (meters)

        Returns:
            ThreatAssessment
        """
        impact = self.analyze_impact(threat)
        pk = self.intercept_probability(threat, battery_position)

        return ThreatAssessment(
            threat_id=threat.threat_id,
            threat_class=threat.threat_class,
            priority=self.threat_priority(threat.threat_class, impact),
            impact_point=impact.impact_point,
            impact_time=impact.impact_time,
            impact_velocity=impact.impact_velocity,
            damage_radius=impact.damage_radius,
            population_at_risk=impact.population_at_risk,
            infrastructure_value=impact.infrastructure_value,
            strategic_importance=impact.strategic_importance,
            intercept_probability=pk,
            required_interceptors=self.salvo_size(threat.threat_class, pk),
            optimal_intercept_time=self.optimal_intercept_time(
                threat, battery_position, impact.impact_time
            )
        )

    def assess_all(
        self,
        threats: Sequence[ThreatRecord],
        battery_position: Vector3D
    ) -> list[ThreatAssessment]:
        """Assess every active threat and return them in engagement order."""
        assessments = [
            self.assess(threat, battery_position)
            for threat in threats
            if threat.active
        ]
        return self.prioritize(assessments)

    @staticmethod
    def prioritize(assessments: Sequence[ThreatAssessment]) -> list[ThreatAssessment]:
        """
        Order assessments for engagement.

        Higher priority first when the scores differ by more than 10 points,
        otherwise the earlier impact first. Returns a new list.
        """
        def compare(a: ThreatAssessment, b: ThreatAssessment) -> float:
            if abs(a.priority - b.priority) > 10:
                return b.priority - a.priority
            return a.impact_time - b.impact_time

        return sorted(assessments, key=functools.cmp_to_key(compare))

    def detect_clusters(self, threats: Sequence[ThreatRecord]) -> list[ThreatCluster]:
        """
        Group active threats close in space and impact time.

        Single greedy pass in input order: each unclustered seed collects
        every unclustered threat strictly within clustering_distance_m of it
        whose impact time differs by strictly less than
        clustering_time_window_s. Only groups of two or more are returned.
        """
        active = [t for t in threats if t.active]
        if len(active) < 2:
            return []

        positions = np.array([t.state.position.to_tuple() for t in active], dtype=float)
        impact_times = np.array([self.time_to_impact(t) for t in active], dtype=float)

        assigned = np.zeros(len(active), dtype=bool)
        clusters = []

        for seed in range(len(active)):
            if assigned[seed]:
                continue
            assigned[seed] = True

            distances = np.linalg.norm(positions - positions[seed], axis=1)
            time_diffs = np.abs(impact_times - impact_times[seed])
            nearby = (~assigned) & (distances < self.clustering_distance_m) & \
                (time_diffs < self.clustering_time_window_s)

            members = [seed] + [int(i) for i in np.flatnonzero(nearby)]
            assigned[members] = True

            if len(members) > 1:
                clusters.append(self._build_cluster(
                    f"cluster-{len(clusters) + 1}",
                    [active[i].threat_id for i in members],
                    positions[members],
                    impact_times[members]
                ))

        return clusters

    @staticmethod
    def _build_cluster(
        cluster_id: str,
        member_ids: list[str],
        positions: np.ndarray,
        impact_times: np.ndarray
    ) -> ThreatCluster:
        center = positions.mean(axis=0)
        radius = float(np.linalg.norm(positions - center, axis=1).max())
        time_span = float(impact_times.max() - impact_times.min())

        if time_span < SATURATION_TIME_SPAN_S:
            pattern = ClusterPattern.SATURATION
        elif time_span > SEQUENTIAL_TIME_SPAN_S:
            pattern = ClusterPattern.SEQUENTIAL
        elif radius > DISTRIBUTED_RADIUS_M:
            pattern = ClusterPattern.DISTRIBUTED
        else:
            pattern = ClusterPattern.MIXED

        logger.debug(
            "%s: %d threats, radius %.0f m, span %.1f s, %s",
            cluster_id, len(member_ids), radius, time_span, pattern.value
        )
        return ThreatCluster(
            cluster_id=cluster_id,
            members=tuple(member_ids),
            center=Vector3D.from_tuple(center),
            radius=radius,
            time_span=time_span,
            pattern=pattern
        )
