from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LearnerPoints:
    """Points ledger row.  total_points never decreases."""

    learner_id: str
    total_points: int = 0
    level: int = 1
    updated_at: int | None = None


@dataclass(frozen=True, slots=True)
class NextLevel:
    level: int
    points_needed: int
    progress: int  # percent of the way through the current level


@dataclass(frozen=True, slots=True)
class LevelPolicy:
    """Maps total points to a level.

    thresholds[i] is the minimum total for level i + 1, so thresholds[0]
    is always 0.  The values come from configuration; nothing in the
    awarding path hard-codes them.
    """

    thresholds: tuple[int, ...]

    def level_for(self, points: int) -> int:
        return max(1, bisect_right(self.thresholds, max(points, 0)))

    @property
    def max_level(self) -> int:
        return len(self.thresholds)

    def next_level(self, points: int) -> NextLevel:
        level = self.level_for(points)
        if level >= self.max_level:
            return NextLevel(
                level=self.max_level,
                points_needed=self.thresholds[-1],
                progress=100,
            )
        floor = self.thresholds[level - 1]
        ceiling = self.thresholds[level]
        progress = round((points - floor) * 100 / (ceiling - floor))
        return NextLevel(level=level + 1, points_needed=ceiling, progress=progress)
