"""Drive chain: odometry in, wheel velocity setpoints out.

This module wires the core components into one periodic control step:
    odometry source → RobotState → PathFollower → Kinematics → actuator

The hardware is reached only through two small collaborator interfaces,
WheelActuator.apply() and OdometrySource.read(); everything vendor specific
(encoder units, brake/coast, ramping) lives behind them.
"""

import logging
import threading
from enum import Enum
from typing import Optional, Protocol, Tuple

from .follower import FollowerParameters, PathFollower
from .geometry import Twist2d
from .kinematics import DriveVelocity, Kinematics
from .path import Path
from .robot_state import RobotState


class WheelActuator(Protocol):
    def apply(self, left_velocity: float, right_velocity: float) -> None:
        """Command wheel velocities (inches/second)."""


class OdometrySource(Protocol):
    def read(self) -> Tuple[float, float, Optional[float]]:
        """Return (left_delta, right_delta, heading_delta) since the last read."""


class DriveMode(Enum):
    OPEN_LOOP = "open_loop"
    VELOCITY_SETPOINT = "velocity_setpoint"
    FOLLOW_PATH = "follow_path"


def scale_to_max_setpoint(left: float, right: float, max_setpoint: float) -> DriveVelocity:
    """Scale both wheels down together so neither exceeds max_setpoint.

    Keeps the left/right ratio, and therefore the commanded curvature.
    """
    max_desired = max(abs(left), abs(right))
    scale = max_setpoint / max_desired if max_desired > max_setpoint else 1.0
    return DriveVelocity(left * scale, right * scale)


class Drive:
    """Differential drive subsystem running the path following chain.

    Attributes:
        mode: Current DriveMode.
        robot_state: Odometry tracker, owned by the caller and shared with readers.
        follower: Active PathFollower while in FOLLOW_PATH mode.
    """

    def __init__(
        self,
        actuator: WheelActuator,
        odometry: OdometrySource,
        robot_state: RobotState,
        kinematics: Optional[Kinematics] = None,
        max_setpoint: Optional[float] = None,
    ) -> None:
        """Initialize the drive subsystem in open loop with zero output.

        Args:
            actuator: Wheel velocity sink.
            odometry: Wheel distance and heading source.
            robot_state: Pose tracker updated every loop.
            kinematics: Drivetrain model. Default: robot_state.kinematics.
            max_setpoint: Wheel setpoint limit (inches/second). Default:
                config.MAX_SETPOINT.
        """
        if max_setpoint is None:
            from pursuit_control.config import MAX_SETPOINT

            max_setpoint = MAX_SETPOINT

        self.actuator = actuator
        self.odometry = odometry
        self.robot_state = robot_state
        self.kinematics = kinematics or robot_state.kinematics
        self.max_setpoint = float(max_setpoint)

        self._lock = threading.RLock()
        self.mode = DriveMode.OPEN_LOOP
        self.follower: Optional[PathFollower] = None
        self.current_path: Optional[Path] = None
        self.last_setpoint = DriveVelocity(0.0, 0.0)

        self.set_open_loop(0.0, 0.0)

    def _set_mode(self, mode: DriveMode) -> None:
        if mode is not self.mode:
            logging.info(f"Drive mode: {self.mode.value} -> {mode.value}")
            self.mode = mode

    def set_open_loop(self, left: float, right: float) -> None:
        """Pass wheel commands straight through, unscaled."""
        with self._lock:
            self._set_mode(DriveMode.OPEN_LOOP)
            self.follower = None
            self._apply(DriveVelocity(left, right))

    def set_velocity_setpoint(self, left: float, right: float) -> None:
        """Command wheel velocities (inches/second), scaled to max_setpoint."""
        with self._lock:
            self._set_mode(DriveMode.VELOCITY_SETPOINT)
            self.follower = None
            self._update_velocity_setpoint(left, right)

    def _update_velocity_setpoint(self, left: float, right: float) -> None:
        setpoint = scale_to_max_setpoint(left, right, self.max_setpoint)
        if setpoint != (left, right):
            logging.debug(
                f"Scaled setpoint ({left:.1f}, {right:.1f}) -> "
                f"({setpoint.left:.1f}, {setpoint.right:.1f})"
            )
        self._apply(setpoint)

    def _apply(self, setpoint: DriveVelocity) -> None:
        self.last_setpoint = setpoint
        self.actuator.apply(setpoint.left, setpoint.right)

    def set_want_drive_path(self, path: Path, parameters: FollowerParameters) -> None:
        """Start following path.

        A new path (or entering FOLLOW_PATH from another mode) resets the
        distance driven and starts a fresh follower session. Requesting the
        path already being followed holds the robot with a zero setpoint.

        Args:
            path: Path to follow.
            parameters: Follower tuning.
        """
        with self._lock:
            if path is not self.current_path or self.mode is not DriveMode.FOLLOW_PATH:
                self.robot_state.reset_distance()
                self.follower = PathFollower(path, parameters)
                self.current_path = path
                self._set_mode(DriveMode.FOLLOW_PATH)
                logging.info(f"Following {path}")
            else:
                self._update_velocity_setpoint(0.0, 0.0)

    def is_done_with_path(self) -> bool:
        """True when the follower finished, or when not following a path at all."""
        with self._lock:
            if self.mode is DriveMode.FOLLOW_PATH and self.follower is not None:
                return self.follower.is_finished()
            logging.warning("Robot is not in path following mode")
            return True

    def force_done_with_path(self) -> None:
        with self._lock:
            if self.mode is DriveMode.FOLLOW_PATH and self.follower is not None:
                self.follower.force_finish()
            else:
                logging.warning("Robot is not in path following mode")

    def on_loop(self, timestamp: float) -> Twist2d:
        """Run one control cycle.

        Reads odometry, updates the pose tracker and, in FOLLOW_PATH mode,
        computes and applies the follower's wheel setpoints.

        Args:
            timestamp: Current time (seconds).

        Returns:
            The twist commanded this cycle (zero outside FOLLOW_PATH).
        """
        left_delta, right_delta, heading_delta = self.odometry.read()
        self.robot_state.integrate(timestamp, left_delta, right_delta, heading_delta)

        with self._lock:
            if self.mode is not DriveMode.FOLLOW_PATH or self.follower is None:
                return Twist2d()
            return self._update_path_follower(timestamp)

    def _update_path_follower(self, timestamp: float) -> Twist2d:
        _, pose, distance_driven, velocity = self.robot_state.snapshot()
        command = self.follower.update(timestamp, pose, distance_driven, velocity)
        if not self.follower.is_finished():
            setpoint = self.kinematics.inverse(command)
            self._update_velocity_setpoint(setpoint.left, setpoint.right)
        else:
            self._update_velocity_setpoint(0.0, 0.0)
        return command

    def stop(self) -> None:
        self.set_open_loop(0.0, 0.0)
