"""Waypoint path representation for pure pursuit path following.

A Path is an immutable, ordered sequence of waypoints with target speeds,
built once per routine from already-parsed (x, y, speed) data. The final
waypoint is pushed along the last segment so the follower always has an
aim point past the true end.

Forward-only progress along a path is tracked by a PathCursor, one per
following session, so several sessions can share the same Path.
"""

from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import numpy.typing as npt

from .config import PATH_EXTENSION_DISTANCE
from .errors import DataError, GeometryError, RangeError
from .geometry import RigidTransform2d, Vector2, wrap_angle


class Waypoint(NamedTuple):
    position: Vector2
    speed: float  # target speed (inches/second)


class Path:
    """Immutable waypoint path.

    Attributes:
        backwards: True if the robot drives this path in reverse.
        end: True (un-extended) final waypoint position.
        extension: Distance the final waypoint was extended (inches).
    """

    def __init__(
        self,
        waypoints: Iterable[Waypoint],
        backwards: bool = False,
        extension: float = PATH_EXTENSION_DISTANCE,
    ) -> None:
        """Build a path and extend its final waypoint.

        Args:
            waypoints: Ordered waypoints, at least two.
            backwards: Drive the path in reverse. Default: False.
            extension: Distance to push the last waypoint along the final
                segment direction (inches). Default: PATH_EXTENSION_DISTANCE.

        Raises:
            DataError: If fewer than 2 waypoints are given.
            GeometryError: If the last two waypoints coincide.
        """
        points: List[Waypoint] = list(waypoints)
        if len(points) < 2:
            raise DataError(f"A path needs at least 2 waypoints, got {len(points)}")

        try:
            direction = Vector2.unit_direction(points[-2].position, points[-1].position)
        except ValueError as e:
            raise GeometryError(
                f"Final segment has zero length at {points[-1].position}; "
                "cannot extend the path end"
            ) from e

        self.backwards: bool = bool(backwards)
        self.extension: float = float(extension)
        self.end: Vector2 = points[-1].position

        extended_end = points[-1].position + direction * self.extension
        points[-1] = Waypoint(extended_end, points[-1].speed)
        self._waypoints: Tuple[Waypoint, ...] = tuple(points)

        self._xs = np.array([p.position.x for p in points], dtype=float)
        self._ys = np.array([p.position.y for p in points], dtype=float)
        self._speeds = np.array([p.speed for p in points], dtype=float)

        # Cumulative arc length at each waypoint
        segment_lengths = np.hypot(np.diff(self._xs), np.diff(self._ys))
        self._stations = np.concatenate([[0.0], np.cumsum(segment_lengths)])

        for array in (self._xs, self._ys, self._speeds):
            array.setflags(write=False)
        self._stations.setflags(write=False)

    @classmethod
    def from_points(
        cls,
        points: Sequence[Tuple[float, float]],
        speeds: Sequence[float],
        backwards: bool = False,
        extension: float = PATH_EXTENSION_DISTANCE,
    ) -> "Path":
        """Build a path from parallel point and target-speed sequences.

        Raises:
            DataError: If the sequences differ in length or are too short.
        """
        if len(points) != len(speeds):
            raise DataError(
                f"Waypoint count ({len(points)}) does not match "
                f"target speed count ({len(speeds)})"
            )
        waypoints = [Waypoint(Vector2(float(x), float(y)), float(v)) for (x, y), v in zip(points, speeds)]
        return cls(waypoints, backwards=backwards, extension=extension)

    @classmethod
    def from_array(
        cls,
        data: npt.ArrayLike,
        backwards: bool = False,
        extension: float = PATH_EXTENSION_DISTANCE,
    ) -> "Path":
        """Build a path from an (N, 3) array of (x, y, speed) rows."""
        array = np.asarray(data, dtype=float)
        if array.ndim != 2 or array.shape[1] != 3:
            raise DataError(f"Expected an (N, 3) array of x, y, speed rows, got shape {array.shape}")
        return cls.from_points(array[:, :2].tolist(), array[:, 2].tolist(), backwards, extension)

    def __len__(self) -> int:
        return len(self._waypoints)

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self._waypoints):
            raise RangeError(f"Waypoint index {index} out of range [0, {len(self._waypoints)})")

    def __getitem__(self, index: int) -> Waypoint:
        self._check_index(index)
        return self._waypoints[index]

    def __iter__(self):
        return iter(self._waypoints)

    def point(self, index: int) -> Vector2:
        return self[index].position

    def target_speed(self, index: int) -> float:
        return self[index].speed

    @property
    def last_index(self) -> int:
        return len(self._waypoints) - 1

    @property
    def length(self) -> float:
        """Arc length to the extended end (inches)."""
        return float(self._stations[-1])

    @property
    def end_station(self) -> float:
        """Arc length to the true, un-extended end (inches)."""
        return self.length - self.extension

    def station(self, index: int) -> float:
        """Arc length from the first waypoint to waypoint index."""
        self._check_index(index)
        return float(self._stations[index])

    def find_closest_index(self, position: Vector2, start: int = 0) -> int:
        """Index of the waypoint nearest position, searching [start, len) only.

        Pure query; ties resolve to the earliest index.
        """
        start = max(0, min(int(start), self.last_index))
        distances = np.hypot(self._xs[start:] - position.x, self._ys[start:] - position.y)
        return start + int(np.argmin(distances))

    def project(self, position: Vector2, index: int) -> Tuple[float, Vector2]:
        """Nearest point on the segments adjacent to waypoint index.

        Args:
            position: Point to project (field frame).
            index: Waypoint whose incoming and outgoing segments are searched.

        Returns:
            Tuple of (station, projected point).
        """
        self._check_index(index)
        best_station = float(self._stations[index])
        best_point = self.point(index)
        best_dist = position.distance_to(best_point)

        for i in (index - 1, index):
            if i < 0 or i + 1 > self.last_index:
                continue
            a = self.point(i)
            ab = self.point(i + 1) - a
            denom = ab.dot(ab)
            if denom <= 0.0:
                continue
            t = float(np.clip((position - a).dot(ab) / denom, 0.0, 1.0))
            p = a + ab * t
            dist = position.distance_to(p)
            if dist < best_dist:
                best_dist = dist
                best_point = p
                best_station = float(self._stations[i]) + t * (
                    float(self._stations[i + 1]) - float(self._stations[i])
                )

        return best_station, best_point

    def _segment_at_station(self, station: float) -> Tuple[int, float]:
        """Segment index and fraction along it for a clamped station."""
        station = float(np.clip(station, 0.0, self.length))
        i = int(np.searchsorted(self._stations, station, side="right")) - 1
        i = min(max(i, 0), self.last_index - 1)
        seg_len = self._stations[i + 1] - self._stations[i]
        t = 0.0 if seg_len <= 0.0 else (station - self._stations[i]) / seg_len
        return i, float(min(max(t, 0.0), 1.0))

    def point_at_station(self, station: float) -> Vector2:
        """Point at an arc length along the path, clamped to [0, length]."""
        i, t = self._segment_at_station(station)
        a = self.point(i)
        return a + (self.point(i + 1) - a) * t

    def speed_at_station(self, station: float) -> float:
        """Target speed linearly interpolated at an arc length."""
        i, t = self._segment_at_station(station)
        return float(self._speeds[i] + (self._speeds[i + 1] - self._speeds[i]) * t)

    def as_array(self) -> npt.NDArray[np.float64]:
        """(N, 3) array of (x, y, speed) with the extended final waypoint."""
        return np.column_stack([self._xs, self._ys, self._speeds])

    def __repr__(self) -> str:
        return (
            f"Path({len(self)} waypoints, length={self.length:.1f}, "
            f"backwards={self.backwards})"
        )


class PathCursor:
    """Forward-only progress along a Path for one following session.

    Every query searches from the current index to the end of the path and
    moves the index to the nearest waypoint found. The index never decreases,
    which assumes the robot progresses monotonically along the path. Callers
    wanting a non-mutating peek should use Path.find_closest_index.
    """

    def __init__(self, path: Path, index: int = 0) -> None:
        self.path = path
        self.index: int = 0
        if index:
            path._check_index(index)
            self.index = index

    def find_closest_index(self, position: Vector2) -> int:
        self.index = self.path.find_closest_index(position, start=self.index)
        return self.index

    def closest_point(self, position: Vector2) -> Vector2:
        return self.path.point(self.find_closest_index(position))

    def next_point(self, position: Vector2) -> Vector2:
        """Waypoint one past the closest one, clamped to the last waypoint."""
        index = self.find_closest_index(position)
        return self.path.point(min(index + 1, self.path.last_index))

    def closest_point_target_speed(self, position: Vector2) -> float:
        return self.path.target_speed(self.find_closest_index(position))

    def is_path_complete(self, position: Vector2) -> bool:
        return self.find_closest_index(position) == self.path.last_index

    def reset(self) -> None:
        """Rewind to the start for reuse of the same path."""
        self.index = 0

    def copy(self) -> "PathCursor":
        return PathCursor(self.path, self.index)

    def __repr__(self) -> str:
        return f"PathCursor(index={self.index}, path={self.path!r})"


def straight_path(
    start: Tuple[float, float],
    end: Tuple[float, float],
    start_speed: float,
    end_speed: float,
    backwards: bool = False,
    extension: Optional[float] = None,
) -> Path:
    """Two-waypoint path between two points."""
    return Path.from_points(
        [start, end],
        [start_speed, end_speed],
        backwards=backwards,
        extension=PATH_EXTENSION_DISTANCE if extension is None else extension,
    )


def default_start_pose(path: Path) -> RigidTransform2d:
    """Pose at the first waypoint, facing the direction of travel."""
    start = path.point(0)
    direction = path.point(1) - start
    heading = float(np.arctan2(direction.y, direction.x))
    if path.backwards:
        heading += np.pi
    return RigidTransform2d(start, wrap_angle(heading))
