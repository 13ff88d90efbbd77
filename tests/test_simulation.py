import math

import numpy as np
import pytest

from pursuit_control.geometry import RigidTransform2d
from pursuit_control.kinematics import Kinematics
from pursuit_control.path import default_start_pose, straight_path
from pursuit_control.simulation import SimulatedDrivetrain, run_simulation


def test_simulated_drivetrain_reports_deltas_since_last_read() -> None:
    drivetrain = SimulatedDrivetrain(Kinematics(25.0))
    drivetrain.apply(10.0, 10.0)
    drivetrain.step(0.5)
    drivetrain.step(0.5)

    left, right, heading = drivetrain.read()
    assert left == pytest.approx(10.0)
    assert right == pytest.approx(10.0)
    assert heading == pytest.approx(0.0)
    assert drivetrain.pose.x == pytest.approx(10.0)
    assert drivetrain.read() == (0.0, 0.0, 0.0)


def test_simulated_drivetrain_acceleration_limit() -> None:
    drivetrain = SimulatedDrivetrain(Kinematics(25.0), max_wheel_acceleration=100.0)
    drivetrain.apply(60.0, 60.0)
    drivetrain.step(0.1)
    assert drivetrain.left_velocity == pytest.approx(10.0)
    with pytest.raises(ValueError):
        drivetrain.step(0.0)


def test_default_start_pose_faces_travel_direction() -> None:
    forward = straight_path((0.0, 0.0), (0.0, 100.0), 0.0, 60.0)
    backward = straight_path((0.0, 0.0), (0.0, -100.0), 0.0, 60.0, backwards=True)
    assert default_start_pose(forward).heading == pytest.approx(math.pi / 2.0)
    assert default_start_pose(backward).heading == pytest.approx(math.pi / 2.0)


def test_straight_path_reaches_goal() -> None:
    path = straight_path((0.0, 0.0), (0.0, 100.0), 0.0, 60.0)

    result = run_simulation(path)

    assert result.finished
    assert abs(result.final_pose.x) < 0.5
    assert result.final_pose.y == pytest.approx(100.0, abs=1.0)
    assert abs(result.series["remaining"][-1]) < 1.0
    assert result.duration < 15.0


def test_backwards_path_reaches_goal() -> None:
    path = straight_path((0.0, 0.0), (0.0, -100.0), 0.0, 60.0, backwards=True)

    result = run_simulation(path)

    assert result.finished
    assert result.final_pose.y == pytest.approx(-100.0, abs=1.0)
    assert result.final_pose.heading == pytest.approx(math.pi / 2.0, abs=0.05)
    assert np.all(result.series["linear"][:10] < 0.0)


def test_slow_wheels_overshoot_then_back_into_goal() -> None:
    path = straight_path((0.0, 0.0), (0.0, 100.0), 0.0, 60.0)

    result = run_simulation(path, timeout=30.0, max_wheel_acceleration=60.0)

    assert np.min(result.series["remaining"]) < -1.0
    assert np.min(result.series["linear"]) < 0.0
    assert result.finished
    assert result.final_pose.y == pytest.approx(100.0, abs=1.0)


def test_lateral_offset_converges() -> None:
    path = straight_path((0.0, 0.0), (0.0, 100.0), 0.0, 60.0)
    start = RigidTransform2d.from_xy_heading(5.0, 0.0, math.pi / 2.0)

    result = run_simulation(path, start_pose=start)

    assert result.finished
    assert abs(result.final_pose.x) < 1.0
    assert result.max_cross_track_error < 6.0


def test_timeout_shorter_than_one_period_rejected() -> None:
    path = straight_path((0.0, 0.0), (0.0, 100.0), 0.0, 60.0)
    with pytest.raises(ValueError):
        run_simulation(path, timeout=0.0)
