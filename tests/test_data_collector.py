import csv

import pytest

from pursuit_control.data_collector import COMMAND_HEADER, STATE_HEADER, DataCollector
from pursuit_control.geometry import Twist2d
from pursuit_control.kinematics import DriveVelocity


def _rows(path):
    with open(path, newline="") as f:
        return list(csv.reader(f))


def test_writes_state_and_command_csv(tmp_path) -> None:
    collector = DataCollector(run_dir=str(tmp_path / "run"))
    with collector:
        collector.log_state(0.02, 1.0, 2.0, 0.5, 1.5)
        collector.log_command(
            0.02,
            Twist2d(10.0, 0.0, 0.2),
            DriveVelocity(7.5, 12.5),
            {"lookahead": 12.0, "remaining": 98.5},
        )

    state = _rows(collector.state_output_path)
    assert state[0] == STATE_HEADER
    assert [float(v) for v in state[1]] == [0.02, 1.0, 2.0, 0.5, 1.5]

    command = _rows(collector.command_output_path)
    assert command[0] == COMMAND_HEADER
    row = dict(zip(COMMAND_HEADER, command[1]))
    assert float(row["linear"]) == 10.0
    assert float(row["left"]) == 7.5
    assert float(row["lookahead"]) == 12.0
    assert row["cross_track_error"] == ""


def test_default_run_dir_is_timestamped(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("RUN_DIR", raising=False)
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir.parent == tmp_path / "results"
    assert collector.run_dir.name.startswith("run_")


def test_run_dir_from_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("RUN_DIR", str(tmp_path / "from_env"))
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir == tmp_path / "from_env"


def test_output_path_must_be_directory(tmp_path) -> None:
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(ValueError):
        DataCollector(output_dir=str(not_a_dir))
