"""Grading weight normalization, team size coercion and score computation."""

from __future__ import annotations

from typing import Any

from services.presentations.errors import SchedulingValidationError
from shared.enums import ParticipationType
from shared.models import GradingCriterion
from shared.utils import config

DEFAULT_GRADING_CRITERIA: list[dict[str, Any]] = [
    {"name": "Content", "weight": 30},
    {"name": "Delivery", "weight": 30},
    {"name": "Visual Aids", "weight": 20},
    {"name": "Q&A", "weight": 20},
]

TOTAL_WEIGHT = 100
MIN_SCORE = 0.0
MAX_SCORE = 100.0


def default_grading_criteria() -> list[GradingCriterion]:
    raw = config.get_scheduling_value("grading.default_criteria", DEFAULT_GRADING_CRITERIA)
    return [GradingCriterion.model_validate(item) for item in raw]


def score_tolerance() -> float:
    return float(config.get_scheduling_value("grading.score_tolerance", 0.01))


def normalize_grading_criteria(criteria: list[GradingCriterion]) -> list[GradingCriterion]:
    """
    Scale criterion weights so they sum to exactly 100.

    Weights are scaled by ``100 / max(total, 1)`` and rounded; whatever the
    rounding leaves over is added to the first criterion. A zero total puts the
    entire 100 on the first criterion.

    Raises:
        SchedulingValidationError: If no criteria are given
    """
    if not criteria:
        raise SchedulingValidationError("At least one grading criterion is required")

    total = sum(criterion.weight for criterion in criteria)
    if total == TOTAL_WEIGHT:
        return [criterion.model_copy() for criterion in criteria]

    factor = TOTAL_WEIGHT / max(total, 1)
    scaled = [round(criterion.weight * factor) for criterion in criteria]
    scaled[0] += TOTAL_WEIGHT - sum(scaled)
    return [
        GradingCriterion(name=criterion.name, weight=weight)
        for criterion, weight in zip(criteria, scaled)
    ]


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def validate_team_sizes(
    participation_type: ParticipationType, team_size_min: Any, team_size_max: Any
) -> tuple[int, int]:
    """Return ``(min, max)`` team bounds, forcing ``(1, 1)`` for individual sign-up."""
    if participation_type == ParticipationType.INDIVIDUAL:
        return 1, 1

    size_min = _coerce_int(team_size_min)
    if size_min is None or size_min < 1:
        size_min = 1

    size_max = _coerce_int(team_size_max)
    if size_max is None or size_max < size_min:
        size_max = size_min

    return size_min, size_max


def validate_grades(criteria: list[GradingCriterion], grades: dict[str, float]) -> None:
    """Check every criterion is graded once, within range, and nothing else is."""
    expected = {criterion.name for criterion in criteria}
    missing = [name for name in expected if name not in grades]
    if missing:
        raise SchedulingValidationError(
            f"Please grade all criteria before completing: {', '.join(sorted(missing))}"
        )
    unknown = [name for name in grades if name not in expected]
    if unknown:
        raise SchedulingValidationError(f"Unknown grading criteria: {', '.join(sorted(unknown))}")
    for name, score in grades.items():
        if not MIN_SCORE <= score <= MAX_SCORE:
            raise SchedulingValidationError(
                f"Score for '{name}' must be between {MIN_SCORE:g} and {MAX_SCORE:g}"
            )


def compute_total_score(criteria: list[GradingCriterion], grades: dict[str, float]) -> float:
    """Weighted score out of 100: ``sum(grade * weight / 100)``."""
    total = sum(grades.get(criterion.name, 0.0) * criterion.weight / TOTAL_WEIGHT for criterion in criteria)
    return round(total, 2)
