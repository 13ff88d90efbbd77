"""Exceptions raised by path construction and access."""


class PathError(Exception):
    """Base class for all path errors."""


class DataError(PathError, ValueError):
    """Waypoint data cannot form a path (too few points, mismatched lengths)."""


class GeometryError(PathError, ValueError):
    """Waypoint geometry is degenerate (e.g. coincident final waypoints)."""


class RangeError(PathError, IndexError):
    """Waypoint index outside [0, len(path))."""
