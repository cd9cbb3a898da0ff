"""Slot synthesis from a recurrence description and a date window."""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Iterator
from uuid import uuid4
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from services.presentations.errors import SchedulingValidationError
from shared.enums import SlotStatus
from shared.models import Slot, SlotConfig
from shared.utils import config


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` string into a ``time``."""
    try:
        hours, minutes = (int(part) for part in value.split(":"))
        return time(hours, minutes)
    except (TypeError, ValueError) as exc:
        raise SchedulingValidationError(f"Invalid time of day '{value}', expected HH:MM") from exc


def scheduling_timezone() -> tzinfo:
    """Timezone slot times of day are interpreted in."""
    name = config.get("scheduling_timezone", "UTC")
    if name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise SchedulingValidationError(f"Unknown scheduling timezone '{name}'") from exc


def ensure_aware(value: datetime, tz: tzinfo | None = None) -> datetime:
    """Attach the scheduling timezone to naive datetimes."""
    if value.tzinfo is not None:
        return value
    return value.replace(tzinfo=tz or scheduling_timezone())


def iter_days(period_start: date, period_end: date) -> Iterator[date]:
    current = period_start
    while current <= period_end:
        yield current
        current += timedelta(days=1)


def generate_slots(
    slot_config: SlotConfig,
    period_start: date,
    period_end: date,
    tz: tzinfo | None = None,
) -> list[Slot]:
    """
    Expand a slot configuration over every day of a period.

    Each day starts at ``start_time`` and emits a slot while the slot still ends
    by ``end_time``; consecutive slots are ``duration + buffer`` apart. Days on
    which nothing fits produce no slots. Every call mints fresh slot ids.

    Args:
        slot_config: Daily window, slot duration and buffer
        period_start: First calendar day (inclusive)
        period_end: Last calendar day (inclusive)
        tz: Timezone of the daily window, defaults to the scheduling timezone

    Returns:
        Slots in chronological order, all ``available``
    """
    tz = tz or scheduling_timezone()
    day_start = parse_time_of_day(slot_config.start_time)
    day_end = parse_time_of_day(slot_config.end_time)
    duration = timedelta(minutes=slot_config.duration_minutes)
    step = duration + timedelta(minutes=slot_config.buffer_minutes)

    slots: list[Slot] = []
    for day in iter_days(period_start, period_end):
        # Step in UTC so DST transitions never yield two slots at one instant
        cursor = datetime.combine(day, day_start, tzinfo=tz).astimezone(UTC)
        window_end = datetime.combine(day, day_end, tzinfo=tz).astimezone(UTC)
        while cursor + duration <= window_end:
            slots.append(Slot(id=str(uuid4()), time=cursor.astimezone(tz), status=SlotStatus.AVAILABLE))
            cursor += step
    return slots
