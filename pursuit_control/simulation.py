"""Offline simulation of path following on an ideal differential drive.

The simulated drivetrain implements both drive collaborator interfaces
(WheelActuator and OdometrySource), so the real Drive chain runs unchanged
against it at a fixed loop rate.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import numpy.typing as npt

from .config import LOOP_PERIOD, TERM_BLUE, TERM_RESET, TRACK_WIDTH
from .drive import Drive
from .follower import FollowerParameters
from .geometry import RigidTransform2d
from .kinematics import Kinematics
from .path import Path, default_start_pose
from .robot_state import RobotState


def _rate_limit_step(x: float, u: float, max_rate: float, dt: float) -> float:
    dx_max = abs(max_rate) * dt
    return float(np.clip(u, x - dx_max, x + dx_max))


class SimulatedDrivetrain:
    """Ideal differential drive with perfect encoders and gyro.

    Attributes:
        pose: True robot pose in the field frame.
        left_velocity: Current left wheel velocity (inches/second).
        right_velocity: Current right wheel velocity (inches/second).
    """

    def __init__(
        self,
        kinematics: Kinematics,
        pose: Optional[RigidTransform2d] = None,
        max_wheel_acceleration: Optional[float] = None,
    ) -> None:
        """Initialize the simulated drivetrain at rest.

        Args:
            kinematics: Drivetrain model (track width).
            pose: Starting pose. Default: origin facing +x.
            max_wheel_acceleration: Optional wheel acceleration limit
                (inches/second²) modelling motor response. None = instant.
        """
        self.kinematics = kinematics
        self.pose = pose or RigidTransform2d()
        self.max_wheel_acceleration = max_wheel_acceleration

        self.left_velocity: float = 0.0
        self.right_velocity: float = 0.0
        self._commanded: Tuple[float, float] = (0.0, 0.0)

        # Accumulated since the last read()
        self._left_delta: float = 0.0
        self._right_delta: float = 0.0
        self._heading_delta: float = 0.0

    def apply(self, left_velocity: float, right_velocity: float) -> None:
        self._commanded = (float(left_velocity), float(right_velocity))

    def read(self) -> Tuple[float, float, Optional[float]]:
        deltas = (self._left_delta, self._right_delta, self._heading_delta)
        self._left_delta = 0.0
        self._right_delta = 0.0
        self._heading_delta = 0.0
        return deltas

    def step(self, dt: float) -> RigidTransform2d:
        """Advance the simulation by dt seconds using the last applied command."""
        if dt <= 0.0:
            raise ValueError(f"dt must be > 0, got {dt}")

        left_cmd, right_cmd = self._commanded
        if self.max_wheel_acceleration is None:
            self.left_velocity, self.right_velocity = left_cmd, right_cmd
        else:
            self.left_velocity = _rate_limit_step(
                self.left_velocity, left_cmd, self.max_wheel_acceleration, dt
            )
            self.right_velocity = _rate_limit_step(
                self.right_velocity, right_cmd, self.max_wheel_acceleration, dt
            )

        left = self.left_velocity * dt
        right = self.right_velocity * dt
        delta = self.kinematics.forward(left, right)
        self.pose = self.pose.integrate(delta)

        self._left_delta += left
        self._right_delta += right
        self._heading_delta += delta.dtheta
        return self.pose


@dataclass
class SimulationResult:
    """Time series recorded by run_simulation.

    Arrays share one index per control cycle: 't', 'x', 'y', 'heading', 'distance',
    'linear', 'angular', 'left', 'right', 'cross_track_error', 'remaining'.
    """

    series: Dict[str, npt.NDArray[np.float64]]
    finished: bool
    final_pose: RigidTransform2d

    @property
    def duration(self) -> float:
        t = self.series["t"]
        return float(t[-1]) if len(t) else 0.0

    @property
    def max_cross_track_error(self) -> float:
        errors = self.series["cross_track_error"]
        return float(np.max(np.abs(errors))) if len(errors) else 0.0


def run_simulation(
    path: Path,
    parameters: Optional[FollowerParameters] = None,
    start_pose: Optional[RigidTransform2d] = None,
    track_width: float = TRACK_WIDTH,
    period: float = LOOP_PERIOD,
    timeout: float = 15.0,
    max_wheel_acceleration: Optional[float] = None,
) -> SimulationResult:
    """Follow path on a simulated drivetrain until finished or timed out.

    Args:
        path: Path to follow.
        parameters: Follower tuning. Default: from config.
        start_pose: Starting pose. Default: first waypoint, facing along the
            first segment (reversed for backwards paths).
        track_width: Drivetrain track width (inches).
        period: Control loop period (seconds).
        timeout: Simulated time limit (seconds).
        max_wheel_acceleration: Optional simulated motor acceleration limit.

    Returns:
        SimulationResult with per-cycle time series.
    """
    if parameters is None:
        parameters = FollowerParameters.from_config()
    if start_pose is None:
        start_pose = default_start_pose(path)

    kinematics = Kinematics(track_width)
    drivetrain = SimulatedDrivetrain(kinematics, start_pose, max_wheel_acceleration)
    robot_state = RobotState(kinematics, 0.0, start_pose)
    drive = Drive(drivetrain, drivetrain, robot_state, kinematics)
    drive.set_want_drive_path(path, parameters)

    columns = (
        "t", "x", "y", "heading", "distance", "linear", "angular", "left", "right",
        "cross_track_error", "remaining",
    )
    records: Dict[str, List[float]] = {name: [] for name in columns}

    steps = int(round(timeout / period))
    if steps < 1:
        raise ValueError(f"timeout ({timeout}) must cover at least one period ({period})")

    finished = False
    t = 0.0
    for step in range(1, steps + 1):
        t = step * period
        drivetrain.step(period)
        command = drive.on_loop(t)

        pose = robot_state.latest_pose()
        diagnostics = drive.follower.get_diagnostics()
        records["t"].append(t)
        records["x"].append(pose.x)
        records["y"].append(pose.y)
        records["heading"].append(pose.heading)
        records["distance"].append(robot_state.distance_driven)
        records["linear"].append(command.dx)
        records["angular"].append(command.dtheta)
        records["left"].append(drive.last_setpoint.left)
        records["right"].append(drive.last_setpoint.right)
        records["cross_track_error"].append(diagnostics.get("cross_track_error", 0.0))
        records["remaining"].append(diagnostics.get("remaining", 0.0))

        if drive.is_done_with_path():
            finished = True
            break

    if finished:
        logging.info(f"{TERM_BLUE}✓ Path finished after {t:.2f}s{TERM_RESET}")
    else:
        logging.warning(f"Path not finished within {timeout:.1f}s")

    drive.stop()
    series = {name: np.asarray(values, dtype=float) for name, values in records.items()}
    return SimulationResult(series=series, finished=finished, final_pose=drivetrain.pose)
