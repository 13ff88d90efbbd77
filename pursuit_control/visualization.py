"""
Visualization utilities for path following runs.

Plots a simulated run against its path: the driven trajectory, the
commanded velocities, and the tracking error over time.
"""

from pathlib import Path as FilePath
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from .path import Path
from .simulation import SimulationResult

PATH_COLOR = "#2374f7"
TRAJECTORY_COLOR = "#f74823"
GUIDE_COLOR = "#686a5f"


def plot_run(
    result: SimulationResult,
    path: Path,
    title: str = "Path Following",
    save_path: Optional[FilePath] = None,
) -> Figure:
    """Plot trajectory, commands and tracking error of a run.

    Args:
        result: Simulation time series.
        path: Path that was followed.
        title: Figure title.
        save_path: If given, the figure is saved there (PNG, 150 dpi).

    Returns:
        The matplotlib Figure.
    """
    series = result.series
    waypoints = path.as_array()

    fig, (ax_xy, ax_cmd, ax_err) = plt.subplots(1, 3, figsize=(16, 5))
    fig.suptitle(title)

    # Trajectory vs path
    ax_xy.plot(waypoints[:, 0], waypoints[:, 1], "--", color=GUIDE_COLOR, label="Path (extended)")
    ax_xy.plot(path.end.x, path.end.y, "o", color=PATH_COLOR, label="Goal")
    ax_xy.plot(series["x"], series["y"], color=TRAJECTORY_COLOR, linewidth=2, label="Robot")
    ax_xy.set_xlabel("x (in)")
    ax_xy.set_ylabel("y (in)")
    ax_xy.set_aspect("equal", adjustable="datalim")
    ax_xy.grid(True, alpha=0.3)
    ax_xy.legend(loc="best")

    # Commands
    ax_cmd.plot(series["t"], series["linear"], color=TRAJECTORY_COLOR, label="Linear (in/s)")
    ax_cmd.plot(series["t"], series["left"], color=PATH_COLOR, alpha=0.6, label="Left wheel")
    ax_cmd.plot(series["t"], series["right"], color=GUIDE_COLOR, alpha=0.6, label="Right wheel")
    ax_cmd.set_xlabel("Time (s)")
    ax_cmd.set_ylabel("Velocity (in/s)")
    ax_cmd.grid(True, alpha=0.3)
    ax_cmd.legend(loc="best")

    # Tracking error
    ax_err.plot(series["t"], np.abs(series["cross_track_error"]), color=TRAJECTORY_COLOR,
                label="|Cross-track error|")
    ax_err.plot(series["t"], series["remaining"], color=PATH_COLOR, label="Remaining")
    ax_err.set_xlabel("Time (s)")
    ax_err.set_ylabel("Distance (in)")
    ax_err.grid(True, alpha=0.3)
    ax_err.legend(loc="best")

    fig.tight_layout()
    if save_path is not None:
        fig.savefig(save_path, dpi=150)
    return fig
