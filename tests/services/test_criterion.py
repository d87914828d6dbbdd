from __future__ import annotations

import json

import pytest

from achievement_service.core.errors import ValidationFailedError
from achievement_service.models.criterion import (
    CourseCountAtLeast,
    LevelAtLeast,
    PointsAtLeast,
    QuizPerfectCountAtLeast,
    Unsatisfiable,
    criterion_to_json,
    decode_criterion,
    encode_criterion,
    parse_criterion,
)

# ---- parse_criterion (strict) ----


def test_parse_known_types() -> None:
    assert parse_criterion({"type": "course_count", "value": 3}) == CourseCountAtLeast(3)
    assert parse_criterion({"type": "points", "value": 1000}) == PointsAtLeast(1000)
    assert parse_criterion({"type": "level", "value": 0}) == LevelAtLeast(0)


@pytest.mark.parametrize(
    "raw, field",
    [
        (None, "criterion"),
        ("course_count", "criterion"),
        ([1, 2], "criterion"),
        ({}, "criterion.type"),
        ({"type": ""}, "criterion.type"),
        ({"type": "streak_days", "value": 3}, "criterion.type"),
        ({"type": "course_count"}, "criterion.value"),
        ({"type": "course_count", "value": "3"}, "criterion.value"),
        ({"type": "course_count", "value": 2.5}, "criterion.value"),
        ({"type": "course_count", "value": True}, "criterion.value"),
        ({"type": "course_count", "value": -1}, "criterion.value"),
    ],
)
def test_parse_rejects_and_names_field(raw: object, field: str) -> None:
    with pytest.raises(ValidationFailedError) as exc_info:
        parse_criterion(raw)
    assert exc_info.value.field == field


# ---- decode_criterion (total) ----


def test_decode_valid_json_text() -> None:
    assert decode_criterion('{"type": "quiz_perfect_count", "value": 5}') == (
        QuizPerfectCountAtLeast(5)
    )


def test_decode_bytes() -> None:
    assert decode_criterion(b'{"type": "course_count", "value": 1}') == (
        CourseCountAtLeast(1)
    )


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "",
        "[]",
        '"course_count"',
        '{"type": "streak_days", "value": 3}',
        '{"type": "course_count", "value": -5}',
        '{"type": "course_count", "value": "ten"}',
        b"\xff\xfe",
        None,
        42,
    ],
)
def test_decode_never_raises(raw: object) -> None:
    result = decode_criterion(raw)
    assert isinstance(result, Unsatisfiable)
    assert result.reason


def test_decode_keeps_raw_text_for_diagnosis() -> None:
    result = decode_criterion("{broken")
    assert isinstance(result, Unsatisfiable)
    assert result.raw_json == "{broken"


# ---- encoding ----


def test_encode_uses_wire_format() -> None:
    assert encode_criterion(PointsAtLeast(1000)) == {"type": "points", "value": 1000}


def test_encode_unsatisfiable_reports_reason() -> None:
    encoded = encode_criterion(Unsatisfiable(reason="criterion.type: unknown"))
    assert encoded == {"type": "invalid", "reason": "criterion.type: unknown"}


def test_criterion_to_json_decodes_back() -> None:
    text = criterion_to_json(LevelAtLeast(5))
    assert json.loads(text) == {"type": "level", "value": 5}
    assert decode_criterion(text) == LevelAtLeast(5)
