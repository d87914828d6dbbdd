"""Achievement criteria as a closed set of tagged variants.

Persisted and wire form (kept compatible with the course platform's
``criteria_json`` column)::

    {"type": "course_count", "value": 3}

Two entry points turn that bag into a typed value:

  parse_criterion   strict, used when an administrator creates an
                    achievement.  Raises ValidationFailedError naming the
                    offending field.

  decode_criterion  total, used when reading stored achievements.  Anything
                    that parse_criterion would reject becomes Unsatisfiable,
                    so one broken row cannot stop the rest of the catalog
                    from being evaluated.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import ClassVar, Union

from achievement_service.core.errors import ValidationFailedError


@dataclass(frozen=True, slots=True)
class CourseCountAtLeast:
    TAG: ClassVar[str] = "course_count"
    threshold: int


@dataclass(frozen=True, slots=True)
class QuizPassCountAtLeast:
    TAG: ClassVar[str] = "quiz_pass_count"
    threshold: int


@dataclass(frozen=True, slots=True)
class QuizPerfectCountAtLeast:
    TAG: ClassVar[str] = "quiz_perfect_count"
    threshold: int


@dataclass(frozen=True, slots=True)
class PointsAtLeast:
    TAG: ClassVar[str] = "points"
    threshold: int


@dataclass(frozen=True, slots=True)
class LevelAtLeast:
    TAG: ClassVar[str] = "level"
    threshold: int


@dataclass(frozen=True, slots=True)
class Unsatisfiable:
    """A stored criterion that failed to decode.  Never satisfied."""

    TAG: ClassVar[str] = "invalid"
    reason: str
    raw_json: str | None = None


ThresholdCriterion = Union[
    CourseCountAtLeast,
    QuizPassCountAtLeast,
    QuizPerfectCountAtLeast,
    PointsAtLeast,
    LevelAtLeast,
]
Criterion = Union[ThresholdCriterion, Unsatisfiable]

_BY_TAG: dict[str, type[ThresholdCriterion]] = {
    cls.TAG: cls
    for cls in (
        CourseCountAtLeast,
        QuizPassCountAtLeast,
        QuizPerfectCountAtLeast,
        PointsAtLeast,
        LevelAtLeast,
    )
}

CRITERION_TYPES = tuple(_BY_TAG)


def parse_criterion(raw: object) -> ThresholdCriterion:
    """Validate an administrator-supplied criterion bag."""
    if raw is None:
        raise ValidationFailedError("criterion", "is required")
    if not isinstance(raw, dict):
        raise ValidationFailedError("criterion", "must be an object")

    tag = raw.get("type")
    if not isinstance(tag, str) or not tag:
        raise ValidationFailedError("criterion.type", "is required")
    cls = _BY_TAG.get(tag)
    if cls is None:
        raise ValidationFailedError(
            "criterion.type",
            f"unknown type {tag!r}; expected one of {', '.join(CRITERION_TYPES)}",
        )

    value = raw.get("value")
    # bool is an int subclass; True is not a threshold.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailedError(
            "criterion.value", "must be a non-negative integer"
        )
    if value < 0:
        raise ValidationFailedError(
            "criterion.value", "must be a non-negative integer"
        )
    return cls(threshold=value)


def decode_criterion(raw: object) -> Criterion:
    """Decode a stored criterion.  Never raises."""
    raw_json: str | None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        raw_json = raw
        try:
            raw = json.loads(raw_json)
        except ValueError:
            return Unsatisfiable(reason="criterion is not valid JSON", raw_json=raw_json)
    else:
        try:
            raw_json = None if raw is None else json.dumps(raw, default=str)
        except (TypeError, ValueError):
            raw_json = repr(raw)

    try:
        return parse_criterion(raw)
    except ValidationFailedError as e:
        return Unsatisfiable(reason=str(e), raw_json=raw_json)


def encode_criterion(criterion: Criterion) -> dict[str, object]:
    if isinstance(criterion, Unsatisfiable):
        return {"type": Unsatisfiable.TAG, "reason": criterion.reason}
    return {"type": criterion.TAG, "value": criterion.threshold}


def criterion_to_json(criterion: ThresholdCriterion) -> str:
    """Serialize a valid criterion for the ``criteria_json`` column."""
    return json.dumps(encode_criterion(criterion), sort_keys=True)
