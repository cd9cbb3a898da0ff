"""Tests for versioned presentation document persistence."""

from datetime import UTC, date, datetime

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from models.database import PresentationSlotRecord
from services.presentations.errors import ConflictError, NotFoundError
from services.presentations.repository import PresentationRepository
from services.presentations.slots import generate_slots
from shared.enums import SlotStatus
from shared.models import Presentation, PresentationPeriod, RegistrationPeriod, SlotConfig


def _presentation(presentation_id: str = "p-1", owner_id: str = "faculty-1", end: date = date(2025, 3, 21)):
    slot_config = SlotConfig(start_time="09:00", end_time="10:00", duration_minutes=30, buffer_minutes=0)
    return Presentation(
        id=presentation_id,
        title="Seminar",
        owner_id=owner_id,
        venue="Hall A",
        registration_period=RegistrationPeriod(
            start=datetime(2025, 3, 1, tzinfo=UTC), end=datetime(2025, 3, 15, tzinfo=UTC)
        ),
        presentation_period=PresentationPeriod(start=date(2025, 3, 20), end=end),
        slot_config=slot_config,
        slots=generate_slots(slot_config, date(2025, 3, 20), end, tz=UTC),
        created_at=datetime(2025, 3, 1, tzinfo=UTC),
    )


def test_add_and_get_round_trip_keeps_slots(repository: PresentationRepository) -> None:
    stored = repository.add(_presentation())
    loaded = repository.get("p-1")

    assert stored.version == 1
    assert loaded.version == 1
    assert [slot.id for slot in loaded.slots] == [slot.id for slot in stored.slots]
    assert loaded.slots[0].time == datetime(2025, 3, 20, 9, 0, tzinfo=UTC)


def test_missing_presentation_raises_not_found(repository: PresentationRepository) -> None:
    with pytest.raises(NotFoundError):
        repository.get("nope")


def test_save_bumps_version(repository: PresentationRepository) -> None:
    stored = repository.add(_presentation())
    saved = repository.save(stored.model_copy(update={"title": "Renamed"}))

    assert saved.version == 2
    assert repository.get("p-1").title == "Renamed"
    assert saved.updated_at is not None


def test_stale_save_is_rejected(session_factory) -> None:
    first = PresentationRepository(session_factory())
    second = PresentationRepository(session_factory())
    first.add(_presentation())

    copy_a = first.get("p-1")
    copy_b = second.get("p-1")
    first.save(copy_a.model_copy(update={"title": "First writer"}))

    with pytest.raises(ConflictError):
        second.save(copy_b.model_copy(update={"title": "Second writer"}))
    assert second.get("p-1").title == "First writer"


def test_stale_delete_is_rejected(repository: PresentationRepository) -> None:
    stored = repository.add(_presentation())
    repository.save(stored)

    with pytest.raises(ConflictError):
        repository.delete(stored)
    repository.delete(repository.get("p-1"))
    with pytest.raises(NotFoundError):
        repository.get("p-1")


def test_find_filters_by_owner_end_date_and_predicate(repository: PresentationRepository) -> None:
    repository.add(_presentation("p-1", owner_id="faculty-1", end=date(2025, 3, 20)))
    repository.add(_presentation("p-2", owner_id="faculty-2", end=date(2025, 3, 25)))

    assert [p.id for p in repository.find(owner_id="faculty-2")] == ["p-2"]
    assert [p.id for p in repository.find(ending_on_or_after=date(2025, 3, 21))] == ["p-2"]
    assert [p.id for p in repository.find(lambda p: len(p.slots) == 2)] == ["p-1"]


def test_find_by_slot(repository: PresentationRepository) -> None:
    stored = repository.add(_presentation())
    slot_id = stored.slots[1].id

    assert repository.find_by_slot(slot_id).id == "p-1"
    assert repository.get("p-1").find_slot(slot_id).status == SlotStatus.AVAILABLE
    with pytest.raises(NotFoundError):
        repository.find_by_slot("missing-slot")


def test_find_by_slot_reads_only_the_owning_document(repository: PresentationRepository, monkeypatch) -> None:
    repository.add(_presentation("p-1"))
    other = repository.add(_presentation("p-2"))

    def full_scan(*args, **kwargs):
        raise AssertionError("slot lookup must not scan every presentation")

    monkeypatch.setattr(repository, "find", full_scan)
    assert repository.find_by_slot(other.slots[0].id).id == "p-2"


def test_slot_index_follows_regenerated_and_deleted_slots(repository: PresentationRepository) -> None:
    stored = repository.add(_presentation())
    old_slot_id = stored.slots[0].id
    slot_config = SlotConfig(start_time="14:00", end_time="15:00", duration_minutes=20, buffer_minutes=0)
    regenerated = repository.save(
        stored.model_copy(
            update={
                "slot_config": slot_config,
                "slots": generate_slots(slot_config, date(2025, 3, 20), date(2025, 3, 21), tz=UTC),
            }
        )
    )

    with pytest.raises(NotFoundError):
        repository.find_by_slot(old_slot_id)
    assert repository.find_by_slot(regenerated.slots[-1].id).id == "p-1"

    repository.delete(regenerated)
    remaining = repository.session.execute(select(PresentationSlotRecord.slot_id)).scalars().all()
    assert remaining == []
    with pytest.raises(NotFoundError):
        repository.find_by_slot(regenerated.slots[0].id)


def test_failed_insert_leaves_session_usable(session_factory) -> None:
    first = PresentationRepository(session_factory())
    second = PresentationRepository(session_factory())
    first.add(_presentation())

    with pytest.raises(IntegrityError):
        second.add(_presentation())

    assert second.get("p-1").title == "Seminar"
    assert len(second.find()) == 1
