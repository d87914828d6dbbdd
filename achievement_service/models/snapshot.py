from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True, slots=True)
class LearnerSnapshot:
    """Point-in-time aggregate of one learner's activity.

    Rebuilt on every evaluation and never persisted.  Two snapshots built
    from the same underlying rows compare equal.
    """

    learner_id: str
    completed_course_count: int = 0
    quiz_pass_count: int = 0
    quiz_perfect_count: int = 0
    total_points: int = 0
    level: int = 1

    def to_dict(self) -> dict[str, int | str]:
        return asdict(self)
