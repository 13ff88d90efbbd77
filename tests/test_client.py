import json
import math

import pytest

from pursuit_control.client import DrivetrainBridge, PathFollowingClient
from pursuit_control.data_collector import DataCollector
from pursuit_control.path import straight_path


def _client(**kwargs) -> PathFollowingClient:
    path = straight_path((0.0, 0.0), (100.0, 0.0), 0.0, 60.0)
    return PathFollowingClient("ws://localhost:8765", path, **kwargs)


def _odometry(timestamp: float, left: float = 0.0, right: float = 0.0, **extra) -> str:
    message = {"message_type": "odometry", "timestamp": timestamp, "left": left, "right": right}
    message.update(extra)
    return json.dumps(message)


def test_invalid_uri_rejected() -> None:
    path = straight_path((0.0, 0.0), (100.0, 0.0), 0.0, 60.0)
    with pytest.raises(ValueError):
        PathFollowingClient("http://localhost:8765", path)


def test_bridge_accumulates_odometry_until_read() -> None:
    bridge = DrivetrainBridge()
    bridge.add_odometry(1.0, 2.0, None)
    bridge.add_odometry(1.0, 2.0, 0.1)

    left, right, heading = bridge.read()
    assert (left, right) == (2.0, 4.0)
    assert heading == pytest.approx(0.1)
    assert bridge.read() == (0.0, 0.0, None)

    bridge.apply(12.0, 13.0)
    assert bridge.pending_command == (12.0, 13.0)


def test_first_odometry_message_starts_following() -> None:
    client = _client()

    assert client.parse_and_route_message(_odometry(0.0))

    assert client.following
    assert client.bridge.pending_command is not None
    left, right = client.bridge.pending_command
    assert left > 0.0
    assert left == pytest.approx(right)
    assert not client.should_stop


def test_odometry_moves_tracked_pose() -> None:
    client = _client()
    client.parse_and_route_message(_odometry(0.0))
    client.parse_and_route_message(_odometry(0.1, 2.0, 2.0, heading=0.0).encode("utf-8"))

    pose = client.robot_state.latest_pose()
    assert pose.x == pytest.approx(2.0)
    assert client.robot_state.distance_driven == pytest.approx(2.0)


def test_stop_message_finishes_path() -> None:
    client = _client()
    client.parse_and_route_message(_odometry(0.0))

    assert not client.parse_and_route_message(json.dumps({"message_type": "stop"}))
    assert client.should_stop
    assert client.drive.is_done_with_path()


def test_bad_messages_are_ignored() -> None:
    client = _client()
    assert not client.parse_and_route_message("not json")
    assert not client.parse_and_route_message(json.dumps({"message_type": "odometry"}))
    assert not client.parse_and_route_message(json.dumps({"message_type": "status"}))
    assert not client.should_stop


def test_cycles_are_logged(tmp_path) -> None:
    collector = DataCollector(run_dir=str(tmp_path / "run"))
    with _client(data_collector=collector) as client:
        client.parse_and_route_message(_odometry(0.0))
        client.parse_and_route_message(_odometry(0.02, 0.1, 0.1))

    state_rows = collector.state_output_path.read_text().strip().splitlines()
    command_rows = collector.command_output_path.read_text().strip().splitlines()
    assert len(state_rows) == 3
    assert len(command_rows) == 3


def test_session_starts_at_path_start_pose() -> None:
    path = straight_path((0.0, 0.0), (0.0, 100.0), 0.0, 60.0)
    client = PathFollowingClient("ws://localhost:8765", path)

    client.parse_and_route_message(_odometry(0.0))

    pose = client.robot_state.latest_pose()
    assert pose.heading == pytest.approx(math.pi / 2.0)
    left, right = client.bridge.pending_command
    assert left > 0.0
    assert left == pytest.approx(right)
