"""Guided-interception kinematics engine."""

from .physics import (
    G_STANDARD,
    KinematicState,
    Vector3D,
    ballistic_position,
    ground_impact_point,
    time_to_ground_impact,
)

from .errors import (
    InterceptorError,
    InvalidFuseConfigError,
    NoFeasibleInterceptError,
    UnreachableTargetError,
)

from .trajectory import (
    InterceptSolution,
    LaunchParameters,
    LaunchPlan,
    plan_launch,
    predict_intercept,
    predicted_miss_distance,
    project_position,
    solve_constant_velocity_intercept,
    solve_launch,
)

from .fuse import (
    FUSE_PROFILES,
    DetonationEvent,
    FuseStatus,
    ProximityFuse,
    ProximityFuseConfig,
    WarheadClass,
    detonation_quality,
    kill_probability,
)

from .guidance import (
    GuidanceCommand,
    GuidanceConfig,
    GuidanceController,
    GuidancePhase,
    NavigationCommand,
    proportional_navigation,
)

from .threat import (
    DEFAULT_PROTECTED_ASSETS,
    AssetType,
    ClusterPattern,
    ProtectedAsset,
    ThreatAnalyzer,
    ThreatAssessment,
    ThreatClass,
    ThreatCluster,
    ThreatRecord,
    cumulative_kill_probability,
)

from .engagement import (
    EngagementEvent,
    EngagementEventType,
    EngagementRegistry,
    EngagementStep,
    FixedPoint,
    InterceptorEngagement,
    TargetRef,
    Tracked,
    resolve_target,
)

from .config import load_engagement_data

__all__ = [
    # Physics
    "G_STANDARD",
    "KinematicState",
    "Vector3D",
    "ballistic_position",
    "ground_impact_point",
    "time_to_ground_impact",
    # Errors
    "InterceptorError",
    "InvalidFuseConfigError",
    "NoFeasibleInterceptError",
    "UnreachableTargetError",
    # Trajectory
    "InterceptSolution",
    "LaunchParameters",
    "LaunchPlan",
    "plan_launch",
    "predict_intercept",
    "predicted_miss_distance",
    "project_position",
    "solve_constant_velocity_intercept",
    "solve_launch",
    # Fuse
    "FUSE_PROFILES",
    "DetonationEvent",
    "FuseStatus",
    "ProximityFuse",
    "ProximityFuseConfig",
    "WarheadClass",
    "detonation_quality",
    "kill_probability",
    # Guidance
    "GuidanceCommand",
    "GuidanceConfig",
    "GuidanceController",
    "GuidancePhase",
    "NavigationCommand",
    "proportional_navigation",
    # Threat assessment
    "DEFAULT_PROTECTED_ASSETS",
    "AssetType",
    "ClusterPattern",
    "ProtectedAsset",
    "ThreatAnalyzer",
    "ThreatAssessment",
    "ThreatClass",
    "ThreatCluster",
    "ThreatRecord",
    "cumulative_kill_probability",
    # Engagement
    "EngagementEvent",
    "EngagementEventType",
    "EngagementRegistry",
    "EngagementStep",
    "FixedPoint",
    "InterceptorEngagement",
    "TargetRef",
    "Tracked",
    "resolve_target",
    # Config
    "load_engagement_data",
]
