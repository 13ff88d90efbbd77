"""Pursuit Control - Adaptive Pure Pursuit Path Following for Differential-Drive Robots

Follows waypoint paths with target speeds using wheel odometry, an adaptive
lookahead pure pursuit steering law and a rate-limited speed profile.

## Architecture Overview

One control cycle runs through the drive chain:

### Layer 1: State Tracking (robot_state.py)
Integrates wheel distance deltas (and gyro heading deltas when available) into
a bounded, time-stamped pose history.
- Output: Latest pose, distance driven, velocity estimate

### Layer 2: Path Following (follower.py)
Computes the twist command toward an aim point on the path.
- Speed-adaptive lookahead (lookahead.py)
- Forward-only closest waypoint search (path.py)
- Damped pure pursuit steering, disabled on the final approach
- Rate-limited speed profile with PI + feedforward correction
- Output: Linear and angular velocity (v, ω)

### Layer 3: Inverse Kinematics (kinematics.py)
Converts the twist to left/right wheel velocities for a differential drive.

### Layer 4: Drive (drive.py)
Scales wheel setpoints to the hardware limit and applies them through the
WheelActuator collaborator.

## Modules

### Core Control Modules
- `config.py` - Centralized configuration parameters with documentation
- `geometry.py` - Vector2, Twist2d and RigidTransform2d value types
- `path.py` - Immutable waypoint path and per-session PathCursor
- `lookahead.py` - Speed to lookahead distance model
- `kinematics.py` - Differential drive forward and inverse kinematics
- `follower.py` - Pure Pursuit path follower
- `robot_state.py` - Odometry pose tracking
- `drive.py` - Drive chain and hardware collaborator interfaces
- `errors.py` - Path construction and access errors

### Simulation, Communication & Data
- `simulation.py` - Ideal differential drive simulator
- `client.py` - WebSocket drivetrain bridge and control loop
- `data_collector.py` - CSV data logging
- `visualization.py` - Post-run plots

## Quick Start

```python
from pursuit_control import run_simulation, straight_path

path = straight_path((0, 0), (0, 100), 0.0, 60.0)
result = run_simulation(path)
print(result.finished, result.final_pose)
```

Or use the command-line interface:
```bash
python -m pursuit_control --length 100 --speed 60 --offset 5 --plot
```

## Units

Inches, inches/second, radians and seconds throughout.

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"

# Export key classes for convenience
from .data_collector import DataCollector
from .drive import Drive, DriveMode
from .errors import DataError, GeometryError, PathError, RangeError
from .follower import FollowerParameters, FollowerState, PathFollower
from .geometry import RigidTransform2d, Twist2d, Vector2
from .kinematics import DriveVelocity, Kinematics
from .lookahead import Lookahead
from .path import Path, PathCursor, Waypoint, default_start_pose, straight_path
from .robot_state import RobotState
from .simulation import SimulatedDrivetrain, SimulationResult, run_simulation

__all__ = [
    "DataCollector",
    "DataError",
    "Drive",
    "DriveMode",
    "DriveVelocity",
    "FollowerParameters",
    "FollowerState",
    "GeometryError",
    "Kinematics",
    "Lookahead",
    "Path",
    "PathCursor",
    "PathError",
    "PathFollower",
    "RangeError",
    "RigidTransform2d",
    "RobotState",
    "SimulatedDrivetrain",
    "SimulationResult",
    "Twist2d",
    "Vector2",
    "Waypoint",
    "default_start_pose",
    "run_simulation",
    "straight_path",
]
