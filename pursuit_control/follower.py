"""Adaptive Pure Pursuit path follower.

This module implements the path following controller that, once per control
cycle:
- Picks a speed-adaptive lookahead distance
- Finds the nearest point and the aim point on the path (forward-only search)
- Computes a pure pursuit curvature and a damped angular rate
- Runs a rate-limited speed profile with PI + feedforward correction
- Decides when the goal has been reached
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict

import numpy as np

from .geometry import RigidTransform2d, Twist2d
from .lookahead import Lookahead
from .path import Path, PathCursor


class FollowerState(Enum):
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(frozen=True)
class FollowerParameters:
    """Tuning for one PathFollower.

    Attributes:
        lookahead: Speed to lookahead distance model.
        inertia_gain: Steering damping gain on measured angular velocity.
        profile_kp: Proportional gain on speed profile distance error (1/s).
        profile_ki: Integral gain on speed profile distance error (1/s²).
        profile_kffv: Velocity feedforward gain.
        profile_kffa: Acceleration feedforward gain (s).
        max_velocity: Linear command limit (inches/second).
        max_acceleration: Speed profile acceleration limit (inches/second²).
        goal_pos_tolerance: Remaining distance counted as arrived (inches).
        goal_vel_tolerance: Speed counted as stopped (inches/second).
        stop_steering_distance: Remaining distance below which steering is
            disabled (inches).
        loop_period: Elapsed time assumed on the first cycle (seconds).
        integral_limit: Anti-windup clamp on the distance error integral.
    """

    lookahead: Lookahead
    inertia_gain: float
    profile_kp: float
    profile_ki: float
    profile_kffv: float
    profile_kffa: float
    max_velocity: float
    max_acceleration: float
    goal_pos_tolerance: float
    goal_vel_tolerance: float
    stop_steering_distance: float
    loop_period: float
    integral_limit: float

    def __post_init__(self) -> None:
        for name in ("max_velocity", "max_acceleration", "loop_period"):
            if getattr(self, name) <= 0.0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        if self.integral_limit < 0.0:
            raise ValueError(f"integral_limit must be >= 0, got {self.integral_limit}")

    @classmethod
    def from_config(cls, config=None) -> "FollowerParameters":
        """Build parameters from a config module (default: pursuit_control.config)."""
        if config is None:
            from pursuit_control import config as cfg
        else:
            cfg = config

        return cls(
            lookahead=Lookahead.from_config(cfg),
            inertia_gain=cfg.INERTIA_STEERING_GAIN,
            profile_kp=cfg.PROFILE_KP,
            profile_ki=cfg.PROFILE_KI,
            profile_kffv=cfg.PROFILE_KFFV,
            profile_kffa=cfg.PROFILE_KFFA,
            max_velocity=cfg.MAX_VELOCITY,
            max_acceleration=cfg.MAX_ACCELERATION,
            goal_pos_tolerance=cfg.GOAL_POS_TOLERANCE,
            goal_vel_tolerance=cfg.GOAL_VEL_TOLERANCE,
            stop_steering_distance=cfg.STOP_STEERING_DISTANCE,
            loop_period=cfg.LOOP_PERIOD,
            integral_limit=cfg.PROFILE_INTEGRAL_LIMIT,
        )


class PathFollower:
    """Pure Pursuit follower for one path following session.

    Owns the session's PathCursor, so a new follower must be built for every
    session (the Path itself may be shared). FINISHED is terminal: once the
    goal is reached or force_finish() is called, update() only returns a
    zero twist.

    Control law (forward direction, magnitudes along the path):
        L       = lookahead.distance_for(|v_measured|)
        kappa   = 2 * y_aim / L^2
        omega   = v_cmd * kappa - inertia_gain * omega_measured
        v_cmd   = kffv * v_sp + kffa * a_sp + kp * e + ki * integral(e)
    where (v_sp, a_sp) is the rate-limited speed setpoint and e is the
    setpoint distance minus the distance driven.
    """

    def __init__(self, path: Path, parameters: FollowerParameters) -> None:
        """Initialize the follower.

        Args:
            path: Path to follow. Its backwards flag selects reverse driving.
            parameters: Controller tuning.
        """
        self.path = path
        self.params = parameters
        self.backwards: bool = path.backwards
        self.cursor = PathCursor(path)
        self.state = FollowerState.RUNNING

        # Speed profile state
        self._last_timestamp = None
        self._setpoint_velocity: float = 0.0
        self._setpoint_position: float = 0.0
        self._integral: float = 0.0

        self._diagnostics: Dict[str, float] = {}

    def is_finished(self) -> bool:
        return self.state is FollowerState.FINISHED

    def force_finish(self) -> None:
        """Abort: finish immediately regardless of goal tolerances."""
        if self.state is not FollowerState.FINISHED:
            logging.info("Path following force finished")
        self.state = FollowerState.FINISHED

    def update(
        self,
        timestamp: float,
        pose: RigidTransform2d,
        distance_driven: float,
        velocity: Twist2d,
    ) -> Twist2d:
        """Compute the twist command for one control cycle.

        Args:
            timestamp: Current time (seconds), monotonically increasing.
            pose: Current robot pose in the field frame.
            distance_driven: Signed distance driven since the session started (inches).
            velocity: Measured body velocity (dx inches/second, dtheta rad/s).

        Returns:
            Twist2d command (dx linear, dtheta angular). Zero once finished.
        """
        if self.state is FollowerState.FINISHED:
            return Twist2d()

        direction = -1.0 if self.backwards else 1.0
        speed = direction * velocity.dx
        driven = direction * distance_driven

        # 1) Adaptive lookahead, never below the configured minimum
        lookahead = max(
            self.params.lookahead.distance_for(abs(speed)), self.params.lookahead.min_distance
        )

        # 2) Nearest point (forward-only) and aim point along the path
        position = pose.translation
        closest_index = self.cursor.find_closest_index(position)
        station, nearest = self.path.project(position, closest_index)
        # Signed: negative once the robot has overshot the true end
        remaining = self.path.end_station - station
        if station >= self.path.length:
            remaining -= position.distance_to(nearest)
        aim = self.path.point_at_station(station + lookahead)

        # 3) Aim point in the (possibly reversed) robot frame
        heading = pose.heading + math.pi if self.backwards else pose.heading
        aim_local = (aim - position).rotate(-heading)
        nearest_local = (nearest - position).rotate(-heading)

        # 4) Pure pursuit curvature
        if aim_local.norm() == 0.0:
            curvature = 0.0
        else:
            curvature = 2.0 * aim_local.y / (lookahead * lookahead)

        # 6) Speed profile
        linear = self._update_speed(timestamp, closest_index, remaining, driven)

        # 5) Damped steering
        angular = linear * curvature - self.params.inertia_gain * velocity.dtheta

        # 7) Final approach: hold heading
        if abs(remaining) < self.params.stop_steering_distance:
            angular = 0.0

        self._diagnostics = {
            "timestamp": float(timestamp),
            "closest_index": float(closest_index),
            "station": station,
            "remaining": remaining,
            "lookahead": lookahead,
            "aim_x": aim.x,
            "aim_y": aim.y,
            "cross_track_error": nearest_local.y,
            "curvature": curvature,
            "setpoint_velocity": self._setpoint_velocity,
            "setpoint_position": self._setpoint_position,
            "distance_error": self._setpoint_position - driven,
            "linear": direction * linear,
            "angular": angular,
        }

        # 8) Goal check
        if (
            abs(remaining) < self.params.goal_pos_tolerance
            and abs(speed) < self.params.goal_vel_tolerance
        ):
            self.state = FollowerState.FINISHED
            logging.info(
                f"Path following finished: remaining={remaining:.2f}in, speed={speed:.2f}in/s"
            )
            return Twist2d()

        # 9) Reverse driving negates the linear command only
        return Twist2d(direction * linear, 0.0, angular)

    def _update_speed(
        self, timestamp: float, closest_index: int, remaining: float, driven: float
    ) -> float:
        """Advance the speed profile and return the linear speed magnitude.

        Args:
            timestamp: Current time (seconds).
            closest_index: Closest waypoint index from this cycle's search.
            remaining: Signed distance left to the true end of the path (inches),
                negative after an overshoot.
            driven: Distance driven along the travel direction (inches).

        Returns:
            Signed linear speed command along the travel direction (inches/second).
        """
        params = self.params

        if self._last_timestamp is None:
            dt = params.loop_period
            self._setpoint_position = driven
            logging.debug(f"Path following started at t={timestamp:.3f}s, {self.path}")
        else:
            dt = max(0.0, timestamp - self._last_timestamp)
        self._last_timestamp = timestamp

        # Speed of the segment being driven, capped so we can still stop at the end.
        # Past the end the goal reverses to back into the goal tolerance.
        next_index = min(closest_index + 1, self.path.last_index)
        target = max(self.path.target_speed(closest_index), self.path.target_speed(next_index))
        stopping_speed = math.sqrt(2.0 * params.max_acceleration * abs(remaining))
        if remaining >= 0.0:
            goal = max(0.0, min(abs(target), params.max_velocity, stopping_speed))
        else:
            goal = -min(params.max_velocity, stopping_speed)

        # Acceleration-limited setpoint
        previous = self._setpoint_velocity
        max_step = params.max_acceleration * dt
        setpoint = float(np.clip(goal, previous - max_step, previous + max_step))
        acceleration = (setpoint - previous) / dt if dt > 0.0 else 0.0
        self._setpoint_velocity = setpoint
        self._setpoint_position += 0.5 * (previous + setpoint) * dt

        # PI on distance error with anti-windup
        error = self._setpoint_position - driven
        self._integral = float(
            np.clip(self._integral + error * dt, -params.integral_limit, params.integral_limit)
        )

        command = (
            params.profile_kffv * setpoint
            + params.profile_kffa * acceleration
            + params.profile_kp * error
            + params.profile_ki * self._integral
        )

        # Negative commands back the robot up after an overshoot
        return float(np.clip(command, -params.max_velocity, params.max_velocity))

    def get_diagnostics(self) -> Dict[str, float]:
        """Get diagnostic information from the last update for logging.

        Returns:
            Dictionary with the last cycle's lookahead, aim point, cross-track
            error, remaining distance, speed profile state and command.
            Empty before the first update.
        """
        return dict(self._diagnostics)
