"""Tests for grading weight normalization, team bounds and score computation."""

import pytest

from services.presentations.errors import SchedulingValidationError
from services.presentations.grading import (
    compute_total_score,
    default_grading_criteria,
    normalize_grading_criteria,
    validate_grades,
    validate_team_sizes,
)
from shared.enums import ParticipationType
from shared.models import GradingCriterion
from shared.utils import config


def _criteria(*pairs: tuple[str, int]) -> list[GradingCriterion]:
    return [GradingCriterion(name=name, weight=weight) for name, weight in pairs]


def test_weights_are_scaled_to_one_hundred() -> None:
    normalized = normalize_grading_criteria(_criteria(("A", 50), ("B", 60)))
    assert [(c.name, c.weight) for c in normalized] == [("A", 45), ("B", 55)]


def test_rounding_remainder_goes_to_first_criterion() -> None:
    normalized = normalize_grading_criteria(_criteria(("A", 1), ("B", 1), ("C", 1)))
    assert [c.weight for c in normalized] == [34, 33, 33]


def test_normalization_is_idempotent() -> None:
    once = normalize_grading_criteria(_criteria(("A", 7), ("B", 13), ("C", 29)))
    twice = normalize_grading_criteria(once)
    assert sum(c.weight for c in once) == 100
    assert once == twice


def test_all_zero_weights_put_everything_on_first_criterion() -> None:
    normalized = normalize_grading_criteria(_criteria(("A", 0), ("B", 0)))
    assert [c.weight for c in normalized] == [100, 0]


def test_empty_criteria_are_rejected() -> None:
    with pytest.raises(SchedulingValidationError):
        normalize_grading_criteria([])


def test_default_criteria_come_from_scheduling_config() -> None:
    defaults = default_grading_criteria()
    assert [(c.name, c.weight) for c in defaults] == [
        ("Content", 30),
        ("Delivery", 30),
        ("Visual Aids", 20),
        ("Q&A", 20),
    ]


def test_default_criteria_follow_config_override() -> None:
    original = config.scheduling_config
    config.set_scheduling_config({"grading": {"default_criteria": [{"name": "Overall", "weight": 100}]}})
    try:
        assert [c.name for c in default_grading_criteria()] == ["Overall"]
    finally:
        config.set_scheduling_config(original)


@pytest.mark.parametrize(
    ("size_min", "size_max", "expected"),
    [
        ("2", "4", (2, 4)),
        (3, None, (3, 3)),
        ("0", "abc", (1, 1)),
        (5, 2, (5, 5)),
        (None, None, (1, 1)),
    ],
)
def test_team_sizes_are_coerced(size_min, size_max, expected) -> None:
    assert validate_team_sizes(ParticipationType.TEAM, size_min, size_max) == expected


def test_individual_participation_forces_single_member() -> None:
    assert validate_team_sizes(ParticipationType.INDIVIDUAL, 3, 6) == (1, 1)


def test_total_score_is_weighted_sum() -> None:
    criteria = default_grading_criteria()
    grades = {"Content": 80, "Delivery": 90, "Visual Aids": 70, "Q&A": 100}
    assert compute_total_score(criteria, grades) == 85.0


def test_total_score_rounds_to_two_decimals() -> None:
    criteria = _criteria(("A", 33), ("B", 67))
    assert compute_total_score(criteria, {"A": 77.7, "B": 81.1}) == 79.98


def test_grades_must_cover_every_criterion() -> None:
    criteria = default_grading_criteria()
    with pytest.raises(SchedulingValidationError, match="Visual Aids"):
        validate_grades(criteria, {"Content": 80, "Delivery": 90, "Q&A": 100})


def test_unknown_and_out_of_range_grades_are_rejected() -> None:
    criteria = _criteria(("A", 100))
    with pytest.raises(SchedulingValidationError, match="Unknown"):
        validate_grades(criteria, {"A": 50, "B": 10})
    with pytest.raises(SchedulingValidationError, match="between"):
        validate_grades(criteria, {"A": 101})
