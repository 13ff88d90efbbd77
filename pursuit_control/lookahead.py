"""Speed-adaptive lookahead distance for pure pursuit."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Lookahead:
    """Clamped linear map from speed to lookahead distance.

    Small lookahead at low speed keeps tracking tight near stops and turns;
    larger lookahead at high speed avoids oscillatory overcorrection.

    Attributes:
        min_distance: Lookahead at or below min_speed (inches). Must be > 0.
        max_distance: Lookahead at or above max_speed (inches).
        min_speed: Speed where the ramp starts (inches/second).
        max_speed: Speed where the ramp ends (inches/second).
    """

    min_distance: float
    max_distance: float
    min_speed: float
    max_speed: float

    def __post_init__(self) -> None:
        if self.min_distance <= 0.0:
            raise ValueError(f"min_distance must be > 0, got {self.min_distance}")
        if self.max_distance < self.min_distance:
            raise ValueError(
                f"max_distance ({self.max_distance}) must be >= min_distance ({self.min_distance})"
            )
        if self.max_speed < self.min_speed:
            raise ValueError(
                f"max_speed ({self.max_speed}) must be >= min_speed ({self.min_speed})"
            )

    @classmethod
    def from_config(cls, config=None) -> "Lookahead":
        if config is None:
            from pursuit_control import config as cfg
        else:
            cfg = config
        return cls(
            cfg.LOOKAHEAD_MIN_DISTANCE,
            cfg.LOOKAHEAD_MAX_DISTANCE,
            cfg.LOOKAHEAD_MIN_SPEED,
            cfg.LOOKAHEAD_MAX_SPEED,
        )

    def distance_for(self, speed: float) -> float:
        """Lookahead distance (inches) for a speed (inches/second)."""
        if speed <= self.min_speed:
            return self.min_distance
        if speed >= self.max_speed:
            return self.max_distance
        # min_speed < speed < max_speed, so the span is nonzero here
        fraction = (speed - self.min_speed) / (self.max_speed - self.min_speed)
        return self.min_distance + fraction * (self.max_distance - self.min_distance)
