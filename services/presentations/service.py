"""Presentation management: creation with slot synthesis, edits and owner views."""

from __future__ import annotations

from datetime import datetime
from typing import Callable
from uuid import uuid4

from services.presentations.errors import ConflictError, SchedulingValidationError
from services.presentations.grading import (
    default_grading_criteria,
    normalize_grading_criteria,
    validate_team_sizes,
)
from services.presentations.permissions import CanManage, can_manage, ensure_can_manage, ensure_staff
from services.presentations.repository import PresentationRepository
from services.presentations.slots import ensure_aware, generate_slots, parse_time_of_day
from shared.enums import SlotStatus
from shared.models import (
    GradingCriterion,
    Identity,
    Presentation,
    PresentationCreateRequest,
    PresentationPeriod,
    PresentationSummary,
    PresentationUpdateRequest,
    RegistrationPeriod,
    Slot,
    SlotConfig,
    SlotStatistics,
)
from shared.utils import setup_logging, utc_now

logger = setup_logging("presentation-service")


def slot_statistics(slots: list[Slot]) -> SlotStatistics:
    counts = {status: 0 for status in SlotStatus}
    for slot in slots:
        counts[slot.status] += 1
    return SlotStatistics(
        total=len(slots),
        available=counts[SlotStatus.AVAILABLE],
        booked=counts[SlotStatus.BOOKED],
        in_progress=counts[SlotStatus.IN_PROGRESS],
        completed=counts[SlotStatus.COMPLETED],
    )


def _validate_periods(registration: RegistrationPeriod, presentation: PresentationPeriod) -> RegistrationPeriod:
    registration = RegistrationPeriod(start=ensure_aware(registration.start), end=ensure_aware(registration.end))
    if registration.start > registration.end:
        raise SchedulingValidationError("Registration period must start before it ends")
    if presentation.start > presentation.end:
        raise SchedulingValidationError("Presentation period must start before it ends")
    return registration


def _validate_slot_config(slot_config: SlotConfig) -> None:
    parse_time_of_day(slot_config.start_time)
    parse_time_of_day(slot_config.end_time)


def _resolve_criteria(criteria: list[GradingCriterion] | None) -> list[GradingCriterion]:
    return normalize_grading_criteria(criteria if criteria else default_grading_criteria())


class PresentationService:
    """Create, read and edit presentations on behalf of staff."""

    def __init__(
        self,
        repository: PresentationRepository,
        guard: CanManage = can_manage,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.guard = guard
        self.clock = clock

    def create(self, identity: Identity, request: PresentationCreateRequest) -> Presentation:
        """Create a presentation and materialize its slots."""
        ensure_staff(identity)
        registration = _validate_periods(request.registration_period, request.presentation_period)
        _validate_slot_config(request.slot_config)
        team_size_min, team_size_max = validate_team_sizes(
            request.participation_type, request.team_size_min, request.team_size_max
        )
        slots = generate_slots(
            request.slot_config, request.presentation_period.start, request.presentation_period.end
        )
        if not slots:
            logger.warning("Slot configuration for '%s' produced no slots", request.title)

        now = self.clock()
        presentation = Presentation(
            id=str(uuid4()),
            title=request.title.strip(),
            description=request.description,
            owner_id=identity.id,
            owner_name=identity.name,
            venue=request.venue.strip(),
            registration_period=registration,
            presentation_period=request.presentation_period,
            participation_type=request.participation_type,
            team_size_min=team_size_min,
            team_size_max=team_size_max,
            slot_config=request.slot_config,
            target_audience=request.target_audience,
            grading_criteria=_resolve_criteria(request.grading_criteria),
            custom_grading_criteria=request.custom_grading_criteria,
            slots=slots,
            created_at=now,
            updated_at=now,
        )
        created = self.repository.add(presentation)
        logger.info("Presentation %s created by %s with %d slots", created.id, identity.id, len(slots))
        return created

    def get(self, presentation_id: str) -> Presentation:
        return self.repository.get(presentation_id)

    def update(
        self, presentation_id: str, identity: Identity, request: PresentationUpdateRequest
    ) -> Presentation:
        """
        Apply a partial update.

        Changing the recurrence (``slot_config`` or ``presentation_period``)
        regenerates every slot, so it is only allowed while no slot has been
        taken. The participation type is frozen once slots are taken, and the
        grading criteria once any slot has been graded.
        """
        presentation = self.repository.get(presentation_id)
        ensure_can_manage(presentation, identity, self.guard)

        changes = {field: getattr(request, field) for field in request.model_fields_set}
        changes = {field: value for field, value in changes.items() if value is not None}
        if not changes:
            return presentation

        if "slot_config" in changes:
            # Omitted fields keep their stored values rather than the YAML defaults
            changes["slot_config"] = presentation.slot_config.model_copy(
                update=request.slot_config.model_dump(exclude_unset=True)
            )

        taken = any(slot.status != SlotStatus.AVAILABLE for slot in presentation.slots)
        graded = any(slot.status == SlotStatus.COMPLETED for slot in presentation.slots)

        slot_config = changes.get("slot_config", presentation.slot_config)
        period = changes.get("presentation_period", presentation.presentation_period)
        recurrence_changed = slot_config != presentation.slot_config or period != presentation.presentation_period
        if recurrence_changed and taken:
            raise ConflictError("Slot configuration cannot change once slots have been booked")

        participation_type = changes.get("participation_type", presentation.participation_type)
        if participation_type != presentation.participation_type and taken:
            raise ConflictError("Participation type cannot change once slots have been booked")

        if "grading_criteria" in changes:
            if graded:
                raise ConflictError("Grading criteria cannot change once slots have been graded")
            changes["grading_criteria"] = _resolve_criteria(changes["grading_criteria"])

        changes["registration_period"] = _validate_periods(
            changes.get("registration_period", presentation.registration_period), period
        )
        changes["team_size_min"], changes["team_size_max"] = validate_team_sizes(
            participation_type,
            changes.get("team_size_min", presentation.team_size_min),
            changes.get("team_size_max", presentation.team_size_max),
        )

        if recurrence_changed:
            _validate_slot_config(slot_config)
            changes["slots"] = generate_slots(slot_config, period.start, period.end)
            logger.info(
                "Regenerated %d slots for presentation %s", len(changes["slots"]), presentation.id
            )

        for field in ("title", "venue"):
            if field in changes:
                changes[field] = changes[field].strip()

        saved = self.repository.save(presentation.model_copy(update=changes))
        logger.info("Presentation %s updated by %s (%s)", presentation.id, identity.id, ", ".join(sorted(changes)))
        return saved

    def list_owned(self, identity: Identity) -> list[PresentationSummary]:
        """The caller's own presentations with slot counts per status."""
        return [
            PresentationSummary(**presentation.model_dump(), statistics=slot_statistics(presentation.slots))
            for presentation in self.repository.find(owner_id=identity.id)
        ]

    def slots_for_grading(self, presentation_id: str, identity: Identity) -> list[Slot]:
        presentation = self.repository.get(presentation_id)
        ensure_can_manage(presentation, identity, self.guard)
        return sorted(presentation.slots, key=lambda slot: slot.time)
