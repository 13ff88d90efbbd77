"""Data collection and CSV logging for path following runs.

This module provides CSV data logging for:
- Robot state (tracked pose and distance driven)
- Commands (follower twist, wheel setpoints, follower diagnostics)
"""

import csv
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from .config import TERM_BLUE, TERM_RESET
from .geometry import Twist2d
from .kinematics import DriveVelocity

STATE_HEADER = ["timestamp", "x", "y", "heading", "distance_driven"]
COMMAND_HEADER = [
    "timestamp",
    "linear",
    "angular",
    "left",
    "right",
    "lookahead",
    "cross_track_error",
    "remaining",
    "setpoint_velocity",
]


class DataCollector:
    """Manages CSV file creation and logging for a path following run.

    Attributes:
        run_dir: Directory path for this run's output files.
        state_output_path: Path of the robot state CSV.
        command_output_path: Path of the command CSV.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.state_csv_file: Optional[TextIO] = None
        self.state_csv_writer: Any = None
        self.command_csv_file: Optional[TextIO] = None
        self.command_csv_writer: Any = None

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.state_output_path: Path = self.run_dir / "state_data.csv"
        self.command_output_path: Path = self.run_dir / "command_data.csv"

    def setup(self) -> None:
        """Create the run directory and open CSV files with headers.

        Must be called before writing data.
        """
        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.state_csv_file = open(self.state_output_path, "w", newline="")
        self.state_csv_writer = csv.writer(self.state_csv_file)
        self.state_csv_writer.writerow(STATE_HEADER)
        self.state_csv_file.flush()

        self.command_csv_file = open(self.command_output_path, "w", newline="")
        self.command_csv_writer = csv.writer(self.command_csv_file)
        self.command_csv_writer.writerow(COMMAND_HEADER)
        self.command_csv_file.flush()

        print(f"{TERM_BLUE}✓ Initialized data collection to {self.run_dir}/{TERM_RESET}")

    def log_state(
        self, timestamp: float, x: float, y: float, heading: float, distance_driven: float
    ) -> None:
        """Log tracked robot state to CSV.

        Args:
            timestamp: Current time (seconds).
            x: Tracked x position (inches).
            y: Tracked y position (inches).
            heading: Tracked heading (radians).
            distance_driven: Distance driven this session (inches).
        """
        self.state_csv_writer.writerow([timestamp, x, y, heading, distance_driven])
        if self.state_csv_file:
            self.state_csv_file.flush()

    def log_command(
        self,
        timestamp: float,
        command: Twist2d,
        setpoint: DriveVelocity,
        diagnostics: Dict[str, float],
    ) -> None:
        """Log follower command, wheel setpoint and diagnostics to CSV.

        Args:
            timestamp: Current time (seconds).
            command: Twist returned by the follower.
            setpoint: Wheel setpoint applied to the drivetrain.
            diagnostics: PathFollower.get_diagnostics() output; missing keys
                are written as empty cells.
        """
        self.command_csv_writer.writerow(
            [
                timestamp,
                command.dx,
                command.dtheta,
                setpoint.left,
                setpoint.right,
                diagnostics.get("lookahead", ""),
                diagnostics.get("cross_track_error", ""),
                diagnostics.get("remaining", ""),
                diagnostics.get("setpoint_velocity", ""),
            ]
        )
        if self.command_csv_file:
            self.command_csv_file.flush()

    def cleanup(self) -> None:
        """Close all CSV files and log final output location."""
        if self.state_csv_file:
            self.state_csv_file.close()
        if self.command_csv_file:
            self.command_csv_file.close()

        print(f"{TERM_BLUE}✓ Saved run data to {self.run_dir}/{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.cleanup()
