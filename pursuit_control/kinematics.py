"""
Differential drive kinematic model.

This module provides forward and inverse kinematics for a differential drive
robot, converting between body-frame twists and individual wheel velocities.
"""

from typing import NamedTuple, Optional

from .geometry import Twist2d


class DriveVelocity(NamedTuple):
    left: float  # inches/second (or inches, for displacements)
    right: float


class Kinematics:
    """Stateless differential-drive transform for a fixed track width.

    For a differential drive robot, the relationship between the robot's
    linear velocity (v), angular velocity (omega), and the individual
    wheel velocities is:
        v_left = v - (W/2) * omega
        v_right = v + (W/2) * omega

    where W is the track width. forward() and inverse() are exact inverses;
    neither clamps, limiting wheel speeds is the caller's job.
    """

    def __init__(self, track_width: float) -> None:
        """Initialize the kinematic model.

        Args:
            track_width: Distance between left and right wheel contact lines (inches).

        Raises:
            ValueError: If track_width is not positive.
        """
        if track_width <= 0.0:
            raise ValueError(f"track_width must be > 0, got {track_width}")
        self.track_width = float(track_width)

    def forward(self, left: float, right: float) -> Twist2d:
        """Body twist from wheel velocities (or wheel displacements).

        Args:
            left: Left wheel velocity.
            right: Right wheel velocity.

        Returns:
            Twist2d with dx = (l + r) / 2 and dtheta = (r - l) / W.
        """
        return Twist2d((left + right) / 2.0, 0.0, (right - left) / self.track_width)

    def forward_from_deltas(
        self, left_delta: float, right_delta: float, heading_delta: Optional[float] = None
    ) -> Twist2d:
        """Odometry twist from wheel displacements.

        Args:
            left_delta: Left wheel distance since the last sample (inches).
            right_delta: Right wheel distance since the last sample (inches).
            heading_delta: Measured heading change (radians). When given it
                replaces the wheel-derived rotation, since a gyro does not
                suffer from wheel scrub.

        Returns:
            Twist2d displacement for the sample.
        """
        delta = self.forward(left_delta, right_delta)
        if heading_delta is None:
            return delta
        return Twist2d(delta.dx, 0.0, heading_delta)

    def inverse(self, twist: Twist2d) -> DriveVelocity:
        """
        Compute wheel velocities from a desired body twist.

        Args:
            twist: Desired body velocity. dx is the linear velocity of the
                robot center, dtheta the angular velocity (positive = CCW).

        Returns:
            DriveVelocity(left, right), unclamped.

        Example:
            >>> Kinematics(25.0).inverse(Twist2d(60.0, 0.0, 1.0))
            DriveVelocity(left=47.5, right=72.5)
        """
        half_turn = twist.dtheta * self.track_width / 2.0
        return DriveVelocity(twist.dx - half_turn, twist.dx + half_turn)
