#!/usr/bin/env python3
"""
Physics Primitives for the Interceptor Kinematics Engine

Implements the plain-vector layer shared by every component:
- 3D vector operations
- Read-only kinematic snapshots (position, velocity, mass)
- Constant-gravity ballistic propagation (position, velocity, ground impact)
- Launch angle/azimuth to velocity vector conversion

The engine never integrates motion itself; these helpers only evaluate
closed-form ballistic equations for prediction.

Frame convention: right-handed, meters, Y is up (altitude), ground is y = 0.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Optional


# =============================================================================
# PHYSICAL CONSTANTS
# =============================================================================

# Standard gravity (m/s^2)
G_STANDARD = 9.81

# Below this length a direction vector is treated as undefined
DEGENERATE_EPSILON = 1e-6


# =============================================================================
# VECTOR3D CLASS
# =============================================================================

@dataclass
class Vector3D:
    """
    3D vector for positions, velocities, forces and directions.

    Uses a right-handed coordinate system where:
    - X: east
    - Y: up (altitude above ground)
    - Z: north

    All units in SI (meters, m/s, N) unless otherwise specified.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3D) -> Vector3D:
        """Vector addition."""
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3D) -> Vector3D:
        """Vector subtraction."""
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vector3D:
        """Scalar multiplication."""
        return Vector3D(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> Vector3D:
        """Right scalar multiplication."""
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> Vector3D:
        """Scalar division."""
        if scalar == 0:
            raise ValueError("Cannot divide vector by zero")
        return Vector3D(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> Vector3D:
        """Negation."""
        return Vector3D(-self.x, -self.y, -self.z)

    def __eq__(self, other: object) -> bool:
        """Equality check with tolerance."""
        if not isinstance(other, Vector3D):
            return False
        eps = 1e-10
        return (abs(self.x - other.x) < eps and
                abs(self.y - other.y) < eps and
                abs(self.z - other.z) < eps)

    def dot(self, other: Vector3D) -> float:
        """Dot product."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector3D) -> Vector3D:
        """Cross product."""
        return Vector3D(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x
        )

    @property
    def magnitude(self) -> float:
        """Vector magnitude (length)."""
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)

    @property
    def magnitude_squared(self) -> float:
        """Squared magnitude (avoids sqrt for comparisons)."""
        return self.x**2 + self.y**2 + self.z**2

    @property
    def horizontal_magnitude(self) -> float:
        """Length of the projection onto the ground (X/Z) plane."""
        return math.sqrt(self.x**2 + self.z**2)

    def normalized(self) -> Vector3D:
        """Return unit vector in same direction (zero vector stays zero)."""
        mag = self.magnitude
        if mag == 0:
            return Vector3D(0, 0, 0)
        return self / mag

    def is_degenerate(self, eps: float = DEGENERATE_EPSILON) -> bool:
        """True if the vector is too short to define a direction."""
        return self.magnitude < eps

    def clamped(self, max_magnitude: float) -> Vector3D:
        """Return this vector scaled down so its length is at most max_magnitude."""
        mag = self.magnitude
        if mag <= max_magnitude or mag == 0:
            return Vector3D(self.x, self.y, self.z)
        return self * (max_magnitude / mag)

    def distance_to(self, other: Vector3D) -> float:
        """Distance to another point."""
        return (self - other).magnitude

    def to_tuple(self) -> tuple[float, float, float]:
        """Convert to tuple."""
        return (self.x, self.y, self.z)

    @classmethod
    def from_tuple(cls, t: tuple[float, float, float]) -> Vector3D:
        """Create from tuple (or any 3-element sequence)."""
        return cls(float(t[0]), float(t[1]), float(t[2]))

    @classmethod
    def zero(cls) -> Vector3D:
        """Zero vector."""
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def up(cls) -> Vector3D:
        """Unit vector pointing up (+Y)."""
        return cls(0.0, 1.0, 0.0)

    def __repr__(self) -> str:
        return f"Vector3D({self.x:.6g}, {self.y:.6g}, {self.z:.6g})"


# =============================================================================
# KINEMATIC STATE
# =============================================================================

@dataclass(frozen=True)
class KinematicState:
    """
    Read-only kinematic snapshot of a body, supplied by the host each tick.

    The physics host owns the living body; the engine only ever sees
    copies of this snapshot and never keeps a reference across ticks.

    Attributes:
        position: World position (meters)
        velocity: World velocity (m/s)
        mass_kg: Body mass (kg)
    """
    position: Vector3D = field(default_factory=Vector3D.zero)
    velocity: Vector3D = field(default_factory=Vector3D.zero)
    mass_kg: float = 1.0

    def __post_init__(self) -> None:
        """Reject non-physical mass."""
        if self.mass_kg <= 0:
            raise ValueError("Mass must be positive")

    @property
    def speed(self) -> float:
        """Magnitude of the velocity (m/s)."""
        return self.velocity.magnitude

    @property
    def altitude(self) -> float:
        """Height above the ground plane (m)."""
        return self.position.y

    @classmethod
    def at_rest(cls, position: Vector3D, mass_kg: float = 1.0) -> KinematicState:
        """Stationary state at a fixed point."""
        return cls(position=position, velocity=Vector3D.zero(), mass_kg=mass_kg)


# =============================================================================
# BALLISTIC PROPAGATION
# =============================================================================

def ballistic_position(
    position: Vector3D,
    velocity: Vector3D,
    time_s: float,
    gravity: float = G_STANDARD
) -> Vector3D:
    """
    Position after time_s under constant gravity, no drag.

    s = s0 + v0*t - 0.5*g*t^2 (vertical only)

    Args:
        position: Initial position (meters)
        velocity: Initial velocity (m/s)
        time_s: Elapsed time (seconds)
        gravity: Gravitational acceleration (m/s^2), 0 for straight-line flight

    Returns:
        Predicted position
    """
    return Vector3D(
        position.x + velocity.x * time_s,
        position.y + velocity.y * time_s - 0.5 * gravity * time_s * time_s,
        position.z + velocity.z * time_s
    )


def ballistic_velocity(
    velocity: Vector3D,
    time_s: float,
    gravity: float = G_STANDARD
) -> Vector3D:
    """
    Velocity after time_s under constant gravity.

    v = v0 - g*t (vertical only)
    """
    return Vector3D(velocity.x, velocity.y - gravity * time_s, velocity.z)


def time_to_ground_impact(
    position: Vector3D,
    velocity: Vector3D,
    gravity: float = G_STANDARD
) -> Optional[float]:
    """
    Time until a ballistic body reaches y = 0.

    Solves 0 = y0 + vy*t - 0.5*g*t^2 for the earliest positive root.
    With zero gravity this degenerates to the linear crossing time.

    Args:
        position: Current position (meters)
        velocity: Current velocity (m/s)
        gravity: Gravitational acceleration (m/s^2)

    Returns:
        Time to impact in seconds, 0.0 if already on or below the ground,
        or None if the body never reaches the ground.
    """
    if position.y <= 0:
        return 0.0

    if gravity == 0:
        if velocity.y >= 0:
            return None
        return -position.y / velocity.y

    a = -0.5 * gravity
    b = velocity.y
    c = position.y

    discriminant = b * b - 4 * a * c
    if discriminant < 0:
        return None

    sqrt_disc = math.sqrt(discriminant)
    t1 = (-b + sqrt_disc) / (2 * a)
    t2 = (-b - sqrt_disc) / (2 * a)

    valid_times = [t for t in (t1, t2) if t > 0]
    return min(valid_times) if valid_times else None


def ground_impact_point(
    position: Vector3D,
    velocity: Vector3D,
    gravity: float = G_STANDARD
) -> Optional[Vector3D]:
    """
    Ground intersection of a ballistic trajectory.

    Returns:
        Impact point on y = 0, or None if the body never lands.
    """
    impact_time = time_to_ground_impact(position, velocity, gravity)
    if impact_time is None:
        return None

    return Vector3D(
        position.x + velocity.x * impact_time,
        0.0,
        position.z + velocity.z * impact_time
    )


def launch_velocity_vector(
    speed: float,
    elevation_rad: float,
    azimuth_rad: float
) -> Vector3D:
    """
    Convert launch speed, elevation and azimuth into a velocity vector.

    Azimuth is measured in the ground plane from +X toward +Z.

    Args:
        speed: Launch speed (m/s)
        elevation_rad: Angle above the horizon (radians)
        azimuth_rad: Horizontal bearing (radians)

    Returns:
        Initial velocity vector (m/s)
    """
    horizontal_speed = speed * math.cos(elevation_rad)
    vertical_speed = speed * math.sin(elevation_rad)

    return Vector3D(
        horizontal_speed * math.cos(azimuth_rad),
        vertical_speed,
        horizontal_speed * math.sin(azimuth_rad)
    )
