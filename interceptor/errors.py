"""Exception taxonomy for the interceptor kinematics engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .trajectory import InterceptSolution


class InterceptorError(Exception):
    """Base class for all engine errors."""


class UnreachableTargetError(InterceptorError):
    """
    The launch solver has no real root: the target lies outside the
    launch envelope at the requested speed.

    Recoverable: the caller skips the allocation or falls back to
    ballistic-only flight.
    """

    def __init__(self, message: str, horizontal_range_m: float = 0.0, speed: float = 0.0):
        super().__init__(message)
        self.horizontal_range_m = horizontal_range_m
        self.speed = speed


class NoFeasibleInterceptError(InterceptorError):
    """
    No usable intercept point: the iteration failed to converge, the
    predicted point is below ground, or no closed-form root exists.
    """

    def __init__(self, message: str, solution: Optional[InterceptSolution] = None):
        super().__init__(message)
        self.solution = solution


class InvalidFuseConfigError(InterceptorError, ValueError):
    """Proximity fuse configuration violates its invariants (programmer error)."""
