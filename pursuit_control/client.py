#!/usr/bin/env python3
"""
WebSocket Client for Remote Drivetrain Path Following

This module connects the drive chain to a remote drivetrain (robot bridge or
simulator) over a WebSocket. Each odometry message received runs one control
cycle; the resulting wheel velocity setpoints are sent straight back. The loop
ends when the path is finished or the server sends a stop message.

Message protocol (JSON):
    in:  {"message_type": "odometry", "timestamp": t, "left": dl, "right": dr, "heading": dh}
    in:  {"message_type": "stop"}
    out: {"v_left": left, "v_right": right}
"""

import asyncio
import json
import logging
import signal
import time
from typing import Any, Dict, Optional, Tuple, Union

import websockets

from .config import (
    TERM_BLUE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    WS_TIMEOUT_SECONDS,
)
from .data_collector import DataCollector
from .drive import Drive
from .follower import FollowerParameters
from .geometry import RigidTransform2d
from .kinematics import Kinematics
from .path import Path, default_start_pose
from .robot_state import RobotState


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


class DrivetrainBridge:
    """Drive collaborator backed by WebSocket messages.

    Odometry deltas from incoming messages accumulate until the drive reads
    them; the latest applied wheel setpoint waits here until the client sends it.
    """

    def __init__(self) -> None:
        self._left_delta: float = 0.0
        self._right_delta: float = 0.0
        self._heading_delta: Optional[float] = None
        self.pending_command: Optional[Tuple[float, float]] = None

    def add_odometry(self, left: float, right: float, heading: Optional[float]) -> None:
        self._left_delta += left
        self._right_delta += right
        if heading is not None:
            self._heading_delta = (self._heading_delta or 0.0) + heading

    def read(self) -> Tuple[float, float, Optional[float]]:
        deltas = (self._left_delta, self._right_delta, self._heading_delta)
        self._left_delta = 0.0
        self._right_delta = 0.0
        self._heading_delta = None
        return deltas

    def apply(self, left_velocity: float, right_velocity: float) -> None:
        self.pending_command = (left_velocity, right_velocity)


class PathFollowingClient:
    """Remote path following with WebSocket communication and data logging.

    Attributes:
        uri: WebSocket URI to connect to.
        bridge: Collaborator the drive reads odometry from and applies setpoints to.
        robot_state: Odometry tracker.
        start_pose: Pose the tracker restarts from when following begins.
        drive: Drive chain running the path follower.
        data_collector: Optional CSV logger.
        should_stop: Flag indicating whether to stop the control loop.
    """

    def __init__(
        self,
        uri: str,
        path: Path,
        parameters: Optional[FollowerParameters] = None,
        track_width: Optional[float] = None,
        data_collector: Optional[DataCollector] = None,
        start_pose: Optional[RigidTransform2d] = None,
    ) -> None:
        """Initialize the client.

        Args:
            uri: WebSocket URI (must start with ws:// or wss://).
            path: Path to follow.
            parameters: Follower tuning. Default: from config.
            track_width: Drivetrain track width (inches). Default: config.TRACK_WIDTH.
            data_collector: Optional CSV logger for the run.
            start_pose: Pose the robot is placed at when the first odometry
                message arrives. Default: first waypoint, facing along the path.

        Raises:
            ValueError: If URI format is invalid.
        """
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")
        if track_width is None:
            from pursuit_control.config import TRACK_WIDTH

            track_width = TRACK_WIDTH

        self.uri: str = uri
        self.should_stop: bool = False
        self.path = path
        self.parameters = parameters or FollowerParameters.from_config()
        self.data_collector = data_collector

        kinematics = Kinematics(track_width)
        self.bridge = DrivetrainBridge()
        self.start_pose = start_pose or default_start_pose(path)
        self.robot_state = RobotState(kinematics, time.time(), self.start_pose)
        self.drive = Drive(self.bridge, self.bridge, self.robot_state, kinematics)
        self.following: bool = False

    async def send_velocity_command(
        self, websocket: Any, v_left: float, v_right: float, log: bool = False
    ) -> None:
        """Send wheel velocity command to the WebSocket server."""
        await websocket.send(json.dumps({"v_left": v_left, "v_right": v_right}))
        if log:
            logging.debug(f"Sent command: v_left={v_left:.3f}, v_right={v_right:.3f}")

    def process_odometry_message(self, data: Dict[str, Any]) -> float:
        """Queue odometry deltas from a message and run one control cycle.

        Args:
            data: Parsed odometry message.

        Returns:
            The cycle timestamp (seconds).

        Raises:
            KeyError: If wheel deltas are missing.
            ValueError: If a field is not numeric.
        """
        heading = data.get("heading")
        self.bridge.add_odometry(
            float(data["left"]),
            float(data["right"]),
            float(heading) if heading is not None else None,
        )
        timestamp = data.get("timestamp")
        timestamp = float(timestamp) if timestamp is not None else time.time()

        if not self.following:
            self.robot_state.reset(timestamp, self.start_pose)
            self.drive.set_want_drive_path(self.path, self.parameters)
            self.following = True
            logging.info(f"{TERM_BLUE}✓ Running pure pursuit path following{TERM_RESET}")

        command = self.drive.on_loop(timestamp)

        if self.data_collector is not None:
            pose = self.robot_state.latest_pose()
            self.data_collector.log_state(
                timestamp, pose.x, pose.y, pose.heading, self.robot_state.distance_driven
            )
            self.data_collector.log_command(
                timestamp,
                command,
                self.drive.last_setpoint,
                self.drive.follower.get_diagnostics() if self.drive.follower else {},
            )

        if self.drive.is_done_with_path():
            logging.info(f"{TERM_BLUE}✓ Path complete{TERM_RESET}")
            self.should_stop = True
        return timestamp

    def parse_and_route_message(self, message: Union[str, bytes]) -> bool:
        """Parse incoming message and route it.

        Args:
            message: Raw JSON message string or bytes from WebSocket.

        Returns:
            True if a control cycle ran and a command should be sent.
        """
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)

            message_type = data.get("message_type")
            if message_type == "odometry":
                self.process_odometry_message(data)
                return True
            if message_type == "stop":
                logging.info("Stop requested by server")
                self.drive.force_done_with_path()
                self.should_stop = True
            else:
                logging.debug(f"\nReceived unknown message: {json.dumps(data, indent=2)}\n")

        except json.JSONDecodeError as e:
            logging.error(f"Error parsing JSON: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Error processing message data: {e}")
        return False

    async def run_control_loop(self) -> None:
        """Connect to WebSocket and run the control loop.

        Maintains a connection to the WebSocket server with automatic retry logic
        and exponential backoff. Continues running until should_stop is set
        (path finished, stop message, or signal).
        """
        retry_delay = WS_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to server{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS

                    while not self.should_stop:
                        try:
                            message = await asyncio.wait_for(
                                websocket.recv(), timeout=WS_TIMEOUT_SECONDS
                            )
                        except asyncio.TimeoutError:
                            continue

                        if self.parse_and_route_message(message):
                            left, right = self.bridge.pending_command or (0.0, 0.0)
                            await self.send_velocity_command(websocket, left, right, log=True)

                    # Leave the robot stopped
                    await self.send_velocity_command(websocket, 0.0, 0.0)

            except websockets.exceptions.ConnectionClosed:
                logging.warning("Connection closed by server")
            except (OSError, websockets.exceptions.WebSocketException) as e:
                logging.error(f"Connection error: {e}")

            if not self.should_stop:
                logging.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, WS_MAX_RETRY_DELAY_SECONDS)

    def stop(self) -> None:
        """Signal the client to stop and abort the path."""
        self.should_stop = True
        if self.following:
            self.drive.force_done_with_path()

    def __enter__(self) -> "PathFollowingClient":
        if self.data_collector is not None:
            self.data_collector.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.data_collector is not None:
            self.data_collector.cleanup()


async def main(uri: str, path: Path, data_collector: Optional[DataCollector] = None) -> None:
    """Run remote path following until done or interrupted.

    Args:
        uri: WebSocket URI of the drivetrain bridge.
        path: Path to follow.
        data_collector: Optional CSV logger.
    """
    with PathFollowingClient(uri, path, data_collector=data_collector) as client:
        loop = asyncio.get_running_loop()

        def signal_handler() -> None:
            logging.info("\nShutdown signal received...")
            client.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        await client.run_control_loop()
