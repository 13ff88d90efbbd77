"""2D geometry primitives for path following.

Value types only, no state:
- Vector2: point / displacement in the field frame
- RigidTransform2d: robot pose (translation + heading)
- Twist2d: body-frame velocity or incremental odometry delta
"""

from __future__ import annotations

import math
from dataclasses import dataclass

# Below this rotation the exp() series expansion is used
_EXP_EPSILON = 1e-9


def wrap_angle(theta: float) -> float:
    """Wrap angle to [-pi, pi)."""
    theta_wrapped = theta % (2.0 * math.pi)  # in [0, 2pi)
    if theta_wrapped >= math.pi:
        theta_wrapped -= 2.0 * math.pi  # in [-pi, pi)
    return theta_wrapped


@dataclass(frozen=True)
class Vector2:
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vector2:
        return Vector2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __neg__(self) -> Vector2:
        return Vector2(-self.x, -self.y)

    def norm(self) -> float:
        return math.hypot(self.x, self.y)

    def dot(self, other: Vector2) -> float:
        return self.x * other.x + self.y * other.y

    def rotate(self, angle: float) -> Vector2:
        """Rotate counter-clockwise by angle (radians)."""
        c = math.cos(angle)
        s = math.sin(angle)
        return Vector2(c * self.x - s * self.y, s * self.x + c * self.y)

    def distance_to(self, other: Vector2) -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    @staticmethod
    def distance_between(a: Vector2, b: Vector2) -> float:
        return a.distance_to(b)

    @staticmethod
    def unit_direction(start: Vector2, end: Vector2) -> Vector2:
        """Unit vector pointing from start to end.

        Raises:
            ValueError: If start and end coincide (direction undefined).
        """
        delta = end - start
        length = delta.norm()
        if length == 0.0:
            raise ValueError(f"Direction undefined between coincident points {start}")
        return Vector2(delta.x / length, delta.y / length)


@dataclass(frozen=True)
class Twist2d:
    """Body-frame velocity (dx forward, dy lateral, dtheta angular).

    Also used for per-cycle odometry deltas, where the fields are displacements.
    dy is always zero for a differential drive but kept for composability.
    """

    dx: float = 0.0
    dy: float = 0.0
    dtheta: float = 0.0

    def scaled(self, factor: float) -> Twist2d:
        return Twist2d(self.dx * factor, self.dy * factor, self.dtheta * factor)

    def curvature(self) -> float:
        """Path curvature (1/inch) of this twist, zero for pure rotation."""
        if abs(self.dx) < _EXP_EPSILON:
            return 0.0
        return self.dtheta / self.dx


@dataclass(frozen=True)
class RigidTransform2d:
    """Robot pose in the field frame: translation plus heading (radians, CCW from +x)."""

    translation: Vector2 = Vector2()
    heading: float = 0.0

    @classmethod
    def from_xy_heading(cls, x: float, y: float, heading: float) -> RigidTransform2d:
        return cls(Vector2(x, y), heading)

    @property
    def x(self) -> float:
        return self.translation.x

    @property
    def y(self) -> float:
        return self.translation.y

    @staticmethod
    def exp(delta: Twist2d) -> RigidTransform2d:
        """Pose change produced by following a constant-curvature twist.

        Uses the standard differential-drive integration:
            dx' = dx * sin(dθ)/dθ - dy * (1 - cos(dθ))/dθ
            dy' = dx * (1 - cos(dθ))/dθ + dy * sin(dθ)/dθ
        with a series expansion when dθ is near zero.
        """
        dtheta = delta.dtheta
        if abs(dtheta) < _EXP_EPSILON:
            s = 1.0 - dtheta * dtheta / 6.0
            c = 0.5 * dtheta
        else:
            s = math.sin(dtheta) / dtheta
            c = (1.0 - math.cos(dtheta)) / dtheta
        return RigidTransform2d(
            Vector2(delta.dx * s - delta.dy * c, delta.dx * c + delta.dy * s),
            dtheta,
        )

    def transform_by(self, other: RigidTransform2d) -> RigidTransform2d:
        """Compose: apply other expressed in this pose's frame."""
        return RigidTransform2d(
            self.translation + other.translation.rotate(self.heading),
            wrap_angle(self.heading + other.heading),
        )

    def integrate(self, delta: Twist2d) -> RigidTransform2d:
        """New pose after moving by an odometry twist (pose ⊕ twist)."""
        return self.transform_by(RigidTransform2d.exp(delta))

    def inverse(self) -> RigidTransform2d:
        return RigidTransform2d(
            (-self.translation).rotate(-self.heading),
            wrap_angle(-self.heading),
        )

    def to_local(self, point: Vector2) -> Vector2:
        """Express a field-frame point in this pose's frame (+x forward, +y left)."""
        return (point - self.translation).rotate(-self.heading)

    def interpolate(self, other: RigidTransform2d, fraction: float) -> RigidTransform2d:
        """Blend toward other; fraction is clamped to [0, 1]."""
        if fraction <= 0.0:
            return self
        if fraction >= 1.0:
            return other
        heading_delta = wrap_angle(other.heading - self.heading)
        return RigidTransform2d(
            self.translation + (other.translation - self.translation) * fraction,
            wrap_angle(self.heading + heading_delta * fraction),
        )
