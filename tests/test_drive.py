import math
from typing import List, Optional, Tuple

import pytest

from pursuit_control.drive import Drive, DriveMode, scale_to_max_setpoint
from pursuit_control.follower import FollowerParameters
from pursuit_control.geometry import RigidTransform2d, Twist2d
from pursuit_control.kinematics import DriveVelocity, Kinematics
from pursuit_control.path import straight_path
from pursuit_control.robot_state import RobotState


class RecordingActuator:
    def __init__(self) -> None:
        self.commands: List[Tuple[float, float]] = []

    def apply(self, left_velocity: float, right_velocity: float) -> None:
        self.commands.append((left_velocity, right_velocity))


class QueuedOdometry:
    def __init__(self) -> None:
        self.deltas: List[Tuple[float, float, Optional[float]]] = []

    def read(self) -> Tuple[float, float, Optional[float]]:
        if self.deltas:
            return self.deltas.pop(0)
        return 0.0, 0.0, None


def _drive(start_pose: Optional[RigidTransform2d] = None):
    actuator = RecordingActuator()
    odometry = QueuedOdometry()
    robot_state = RobotState(Kinematics(25.0), 0.0, start_pose)
    drive = Drive(actuator, odometry, robot_state, max_setpoint=144.0)
    return drive, actuator, odometry


def test_scale_preserves_ratio() -> None:
    assert scale_to_max_setpoint(200.0, 100.0, 144.0) == DriveVelocity(144.0, 72.0)
    assert scale_to_max_setpoint(-288.0, 144.0, 144.0) == DriveVelocity(-144.0, 72.0)
    assert scale_to_max_setpoint(50.0, -60.0, 144.0) == DriveVelocity(50.0, -60.0)


def test_starts_in_open_loop_with_zero_output() -> None:
    drive, actuator, _ = _drive()
    assert drive.mode is DriveMode.OPEN_LOOP
    assert actuator.commands == [(0.0, 0.0)]


def test_velocity_setpoint_is_scaled_open_loop_is_not() -> None:
    drive, actuator, _ = _drive()

    drive.set_velocity_setpoint(200.0, 100.0)
    assert drive.mode is DriveMode.VELOCITY_SETPOINT
    assert actuator.commands[-1] == (144.0, 72.0)

    drive.set_open_loop(200.0, 100.0)
    assert drive.mode is DriveMode.OPEN_LOOP
    assert actuator.commands[-1] == (200.0, 100.0)


def test_done_with_path_when_not_following() -> None:
    drive, _, _ = _drive()
    assert drive.is_done_with_path()


def test_want_drive_path_starts_session_and_resets_distance() -> None:
    drive, _, odometry = _drive()
    odometry.deltas.append((10.0, 10.0, None))
    drive.on_loop(0.1)
    assert drive.robot_state.distance_driven == pytest.approx(10.0)

    path = straight_path((10.0, 0.0), (110.0, 0.0), 0.0, 60.0)
    drive.set_want_drive_path(path, FollowerParameters.from_config())

    assert drive.mode is DriveMode.FOLLOW_PATH
    assert drive.follower is not None
    assert drive.current_path is path
    assert drive.robot_state.distance_driven == 0.0
    assert not drive.is_done_with_path()


def test_same_path_request_holds_with_zero_setpoint() -> None:
    drive, actuator, _ = _drive()
    path = straight_path((0.0, 0.0), (100.0, 0.0), 0.0, 60.0)
    params = FollowerParameters.from_config()

    drive.set_want_drive_path(path, params)
    follower = drive.follower
    drive.on_loop(0.02)
    assert actuator.commands[-1][0] > 0.0

    drive.set_want_drive_path(path, params)
    assert drive.follower is follower
    assert actuator.commands[-1] == (0.0, 0.0)


def test_on_loop_follows_path() -> None:
    start = RigidTransform2d.from_xy_heading(0.0, 0.0, math.pi / 2.0)
    drive, actuator, _ = _drive(start)
    drive.set_want_drive_path(
        straight_path((0.0, 0.0), (0.0, 100.0), 0.0, 60.0), FollowerParameters.from_config()
    )

    command = drive.on_loop(0.02)

    left, right = actuator.commands[-1]
    assert command.dx > 0.0
    assert left == pytest.approx(command.dx)
    assert right == pytest.approx(command.dx)
    assert drive.last_setpoint == DriveVelocity(left, right)


def test_force_done_stops_wheels() -> None:
    drive, actuator, _ = _drive()
    drive.set_want_drive_path(
        straight_path((0.0, 0.0), (100.0, 0.0), 0.0, 60.0), FollowerParameters.from_config()
    )
    drive.on_loop(0.02)

    drive.force_done_with_path()
    command = drive.on_loop(0.04)

    assert drive.is_done_with_path()
    assert command == Twist2d()
    assert actuator.commands[-1] == (0.0, 0.0)


def test_on_loop_tracks_odometry_outside_follow_mode() -> None:
    drive, actuator, odometry = _drive()
    odometry.deltas.append((5.0, 5.0, 0.1))

    command = drive.on_loop(0.1)

    assert command == Twist2d()
    assert drive.robot_state.latest_pose().heading == pytest.approx(0.1)
    assert actuator.commands == [(0.0, 0.0)]


def test_stop_returns_to_open_loop() -> None:
    drive, actuator, _ = _drive()
    drive.set_velocity_setpoint(30.0, 30.0)
    drive.stop()
    assert drive.mode is DriveMode.OPEN_LOOP
    assert drive.follower is None
    assert actuator.commands[-1] == (0.0, 0.0)
