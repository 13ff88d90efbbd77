"""Robot pose and velocity tracking from wheel odometry.

This module integrates incremental wheel distances and heading measurements
into a time-ordered pose history:
- Wheel deltas → body twist via differential-drive kinematics
- Measured heading change overrides the wheel-derived rotation
- Pose history queryable by latest sample or interpolated timestamp
- Distance driven since the start of the current following session
- Velocity estimate from the latest delta over elapsed time
"""

import bisect
import threading
from collections import deque
from typing import Deque, Optional, Tuple

from .geometry import RigidTransform2d, Twist2d
from .kinematics import Kinematics


class RobotState:
    """Odometry integrator shared by the control loop and its readers.

    Written only by the control loop. Reads of related fields
    (timestamp + pose, distance + velocity) go through the lock so a
    reader never sees half of an update.

    Attributes:
        kinematics: Drivetrain model used to turn wheel deltas into twists.
    """

    def __init__(
        self,
        kinematics: Kinematics,
        initial_timestamp: float = 0.0,
        initial_pose: Optional[RigidTransform2d] = None,
        history_length: Optional[int] = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            kinematics: Drivetrain model.
            initial_timestamp: Timestamp of the initial pose (seconds).
            initial_pose: Starting pose. Default: origin facing +x.
            history_length: Number of samples kept. Default:
                config.STATE_HISTORY_LENGTH.
        """
        if history_length is None:
            from pursuit_control.config import STATE_HISTORY_LENGTH

            history_length = STATE_HISTORY_LENGTH
        if history_length < 1:
            raise ValueError(f"history_length must be >= 1, got {history_length}")

        self.kinematics = kinematics
        self._lock = threading.RLock()
        self._history: Deque[Tuple[float, RigidTransform2d]] = deque(maxlen=history_length)
        self._distance_driven: float = 0.0
        self._velocity = Twist2d()
        self.reset(initial_timestamp, initial_pose or RigidTransform2d())

    def reset(self, timestamp: float, pose: RigidTransform2d) -> None:
        """Clear history and restart tracking from a known pose."""
        with self._lock:
            self._history.clear()
            self._history.append((timestamp, pose))
            self._distance_driven = 0.0
            self._velocity = Twist2d()

    def integrate(
        self,
        timestamp: float,
        left_delta: float,
        right_delta: float,
        heading_delta: Optional[float] = None,
    ) -> RigidTransform2d:
        """Add one odometry sample.

        Args:
            timestamp: Sample time (seconds), expected to increase.
            left_delta: Left wheel distance since the last sample (inches).
            right_delta: Right wheel distance since the last sample (inches).
            heading_delta: Measured heading change (radians), if available.

        Returns:
            The new latest pose.
        """
        delta = self.kinematics.forward_from_deltas(left_delta, right_delta, heading_delta)

        with self._lock:
            last_timestamp, last_pose = self._history[-1]
            pose = last_pose.integrate(delta)
            self._history.append((timestamp, pose))
            self._distance_driven += delta.dx

            dt = timestamp - last_timestamp
            if dt > 0:
                self._velocity = delta.scaled(1.0 / dt)

        return pose

    def latest_pose(self) -> RigidTransform2d:
        with self._lock:
            return self._history[-1][1]

    def latest_sample(self) -> Tuple[float, RigidTransform2d]:
        """Most recent (timestamp, pose) pair."""
        with self._lock:
            return self._history[-1]

    def pose_at(self, timestamp: float) -> RigidTransform2d:
        """Pose at a timestamp, interpolated between stored samples.

        Timestamps outside the stored history clamp to the oldest or newest
        sample.
        """
        with self._lock:
            samples = list(self._history)

        times = [t for t, _ in samples]
        i = bisect.bisect_right(times, timestamp)
        if i == 0:
            return samples[0][1]
        if i == len(samples):
            return samples[-1][1]

        t0, pose0 = samples[i - 1]
        t1, pose1 = samples[i]
        if t1 <= t0:
            return pose1
        return pose0.interpolate(pose1, (timestamp - t0) / (t1 - t0))

    @property
    def distance_driven(self) -> float:
        """Signed distance driven since the last reset_distance() (inches)."""
        with self._lock:
            return self._distance_driven

    def reset_distance(self) -> None:
        """Zero the distance counter at the start of a following session."""
        with self._lock:
            self._distance_driven = 0.0

    def predicted_velocity(self) -> Twist2d:
        """Latest body velocity estimate (inches/second, rad/s)."""
        with self._lock:
            return self._velocity

    def snapshot(self) -> Tuple[float, RigidTransform2d, float, Twist2d]:
        """Consistent (timestamp, pose, distance driven, velocity) for readers."""
        with self._lock:
            timestamp, pose = self._history[-1]
            return timestamp, pose, self._distance_driven, self._velocity

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)
