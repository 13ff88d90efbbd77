"""Configuration parameters for the pursuit control system.

This module centralizes all configuration parameters including:
- Physical drivetrain parameters
- Lookahead and path parameters
- Path follower gains and limits
- Robot state tracking parameters
- WebSocket bridge parameters

All lengths are in inches, speeds in inches/second, angles in radians.
"""

# ============================================================================
# Physical Robot Parameters
# ============================================================================

TRACK_WIDTH = 25.0
"""Distance between left and right wheel contact lines (inches).
Fixed by drivetrain hardware design."""

MAX_SETPOINT = 144.0
"""Maximum wheel velocity setpoint (inches/second).

Wheel commands whose magnitude exceeds this are scaled down together so the
left/right ratio (and therefore the curvature) is preserved.
"""


# ============================================================================
# Lookahead Parameters (Adaptive Pure Pursuit)
# ============================================================================

LOOKAHEAD_MIN_DISTANCE = 12.0
"""Lookahead distance used at or below LOOKAHEAD_MIN_SPEED (inches).

Also the lower bound of the curvature denominator, so it must be > 0.

Tuning rationale:
- Short lookahead at low speed keeps tracking tight near stops and turns
- Below ~10 in the steering starts to chatter on encoder noise
"""

LOOKAHEAD_MAX_DISTANCE = 24.0
"""Lookahead distance used at or above LOOKAHEAD_MAX_SPEED (inches).

Tuning rationale:
- Longer lookahead at speed avoids oscillatory overcorrection
- Larger values cut corners on tight paths
"""

LOOKAHEAD_MIN_SPEED = 9.0
"""Speed at which lookahead starts growing (inches/second)."""

LOOKAHEAD_MAX_SPEED = 120.0
"""Speed at which lookahead reaches its maximum (inches/second)."""


# ============================================================================
# Path Parameters
# ============================================================================

PATH_EXTENSION_DISTANCE = 24.0
"""Distance the final waypoint is pushed along the last segment (inches).

Gives the controller a valid aim point past the true end of the path.
Matches LOOKAHEAD_MAX_DISTANCE so the aim point never clamps short of the end.
"""


# ============================================================================
# Path Follower Parameters
# ============================================================================

INERTIA_STEERING_GAIN = 0.1
"""Steering damping gain (dimensionless, range: [0, 0.5]).

Angular command = pure pursuit rate - INERTIA_STEERING_GAIN * measured rate.

Tuning rationale:
- Small damping removes the heading overshoot seen on lateral offsets
- Above ~0.3 the robot becomes sluggish entering curves
"""

PROFILE_KP = 2.0
"""Proportional gain on distance error of the speed profile (1/s).

Velocity correction = PROFILE_KP * (setpoint distance - distance driven).
"""

PROFILE_KI = 0.05
"""Integral gain on distance error of the speed profile (1/s²)."""

PROFILE_KFFV = 1.0
"""Velocity feedforward gain (dimensionless).

1.0 passes the setpoint velocity straight through to the command.
"""

PROFILE_KFFA = 0.05
"""Acceleration feedforward gain (seconds).

Anticipates the profile acceleration to reduce tracking lag while speeding up.
"""

PROFILE_INTEGRAL_LIMIT = 10.0
"""Anti-windup limit for the distance error integral (inch·seconds)."""

MAX_VELOCITY = 120.0
"""Maximum commanded linear velocity while following a path (inches/second)."""

MAX_ACCELERATION = 120.0
"""Maximum linear acceleration of the speed profile (inches/second²).

Also sets the deceleration used to stop at the end of the path.
"""

GOAL_POS_TOLERANCE = 1.0
"""Remaining distance below which the goal counts as reached (inches)."""

GOAL_VEL_TOLERANCE = 12.0
"""Speed below which the robot counts as stopped at the goal (inches/second)."""

STOP_STEERING_DISTANCE = 9.0
"""Remaining distance below which steering correction is disabled (inches).

Prevents the heading from snapping around during the terminal approach.
"""


# ============================================================================
# Control Loop Parameters
# ============================================================================

LOOP_PERIOD = 0.02
"""Nominal control loop period (seconds).

Used as the elapsed time on the first follower cycle of a session.
"""

STATE_HISTORY_LENGTH = 100
"""Number of (timestamp, pose) samples kept by the robot state tracker.

At 50 Hz this covers the last two seconds.
"""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status messages (RGB: 35, 116, 247)."""

TERM_ORANGE = "\033[38;2;247;72;35m"
"""Terminal color code for warnings and highlights (RGB: 247, 72, 35)."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# WebSocket Configuration
# ============================================================================

WS_URI = "ws://localhost:8765"
"""WebSocket URI of the drivetrain bridge."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""
