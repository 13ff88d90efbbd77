"""
Main entry point when running the pursuit_control module with python -m.

Simulates following a straight path by default; --connect runs the
WebSocket drivetrain bridge instead.
"""

import argparse
import asyncio
import logging
import sys

from .client import main, setup_logging
from .config import TERM_ORANGE, TERM_RESET, WS_URI
from .data_collector import DataCollector
from .errors import PathError
from .geometry import RigidTransform2d, Twist2d, Vector2
from .kinematics import DriveVelocity
from .path import Path, default_start_pose, straight_path
from .simulation import SimulationResult, run_simulation


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Pure pursuit path following for a differential drive robot"
    )
    parser.add_argument(
        "--length", type=float, default=100.0, help="Straight path length (inches, default: 100)"
    )
    parser.add_argument(
        "--speed", type=float, default=60.0, help="Target speed (inches/second, default: 60)"
    )
    parser.add_argument(
        "--offset",
        type=float,
        default=0.0,
        help="Lateral start offset from the path (inches, default: 0)",
    )
    parser.add_argument("--backwards", action="store_true", help="Drive the path in reverse")
    parser.add_argument(
        "--timeout", type=float, default=15.0, help="Simulated time limit (seconds, default: 15)"
    )
    parser.add_argument("--output", metavar="DIR", help="Write run CSVs under DIR/results/")
    parser.add_argument("--plot", action="store_true", help="Plot the simulated run")
    parser.add_argument(
        "--connect",
        nargs="?",
        const=WS_URI,
        metavar="URI",
        help=f"Follow the path on a remote drivetrain (default URI: {WS_URI})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    return parser


def save_result(result: SimulationResult, collector: DataCollector) -> None:
    """Write a simulated run to the collector's CSV files."""
    series = result.series
    with collector:
        for i, t in enumerate(series["t"]):
            collector.log_state(
                t, series["x"][i], series["y"][i], series["heading"][i], series["distance"][i]
            )
            collector.log_command(
                t,
                Twist2d(series["linear"][i], 0.0, series["angular"][i]),
                DriveVelocity(series["left"][i], series["right"][i]),
                {
                    "cross_track_error": series["cross_track_error"][i],
                    "remaining": series["remaining"][i],
                },
            )


def simulate(args: argparse.Namespace, path: Path) -> int:
    start = default_start_pose(path)
    start_pose = RigidTransform2d(start.translation + Vector2(args.offset, 0.0), start.heading)

    result = run_simulation(path, start_pose=start_pose, timeout=args.timeout)

    pose = result.final_pose
    logging.info(
        f"Finished: {result.finished}, duration: {result.duration:.2f}s, "
        f"final pose: ({pose.x:.2f}, {pose.y:.2f}, {pose.heading:.3f}), "
        f"max cross-track error: {result.max_cross_track_error:.2f}in"
    )

    if args.output:
        save_result(result, DataCollector(args.output))

    if args.plot:
        import matplotlib.pyplot as plt

        from .visualization import plot_run

        plot_run(result, path, title=f"Path Following ({path})")
        plt.show()

    return 0 if result.finished else 1


def run(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    end_y = -args.length if args.backwards else args.length
    try:
        path = straight_path(
            (0.0, 0.0), (0.0, end_y), args.speed, args.speed, backwards=args.backwards
        )
    except PathError as e:
        logging.error(f"{TERM_ORANGE}Invalid path: {e}{TERM_RESET}")
        return 2

    if args.connect:
        collector = DataCollector(args.output) if args.output else None
        try:
            asyncio.run(main(args.connect, path, collector))
        except ValueError as e:
            logging.error(f"{e}")
            return 2
        return 0

    return simulate(args, path)


if __name__ == "__main__":
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
