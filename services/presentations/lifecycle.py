"""Owner-driven slot transitions: start, complete and presentation deletion."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from services.presentations.errors import ConflictError, SchedulingValidationError
from services.presentations.grading import (
    compute_total_score,
    default_grading_criteria,
    score_tolerance,
    validate_grades,
)
from services.presentations.permissions import CanManage, can_manage, ensure_can_manage
from services.presentations.repository import PresentationRepository
from shared.enums import SlotStatus
from shared.models import CompleteSlotRequest, Identity, Presentation, Slot
from shared.utils import normalize_email, setup_logging, utc_now

logger = setup_logging("slot-lifecycle")

GRADABLE_STATUSES = {SlotStatus.BOOKED, SlotStatus.IN_PROGRESS}


class LifecycleController:
    """Move slots forward through booked -> in-progress -> completed."""

    def __init__(
        self,
        repository: PresentationRepository,
        guard: CanManage = can_manage,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.guard = guard
        self.clock = clock

    def _load_for_slot(self, slot_id: str, identity: Identity) -> tuple[Presentation, Slot]:
        presentation = self.repository.find_by_slot(slot_id)
        ensure_can_manage(presentation, identity, self.guard)
        return presentation, presentation.find_slot(slot_id)

    def _replace_slot(self, presentation: Presentation, slot: Slot) -> Slot:
        updated = presentation.model_copy(
            update={"slots": [slot if item.id == slot.id else item for item in presentation.slots]}
        )
        saved = self.repository.save(updated)
        return saved.find_slot(slot.id)

    def start(self, slot_id: str, identity: Identity) -> Slot:
        """Mark a booked slot as in progress."""
        presentation, slot = self._load_for_slot(slot_id, identity)
        if slot.status == SlotStatus.AVAILABLE:
            raise ConflictError("Only booked slots can be started")
        if slot.status != SlotStatus.BOOKED:
            raise ConflictError(f"Slot is already {slot.status.value}")

        started = slot.model_copy(update={"status": SlotStatus.IN_PROGRESS, "started_at": self.clock()})
        result = self._replace_slot(presentation, started)
        logger.info("Slot %s of presentation %s started by %s", slot_id, presentation.id, identity.id)
        return result

    def complete(self, slot_id: str, identity: Identity, request: CompleteSlotRequest) -> Slot:
        """
        Record grades for a booked or running slot and mark it completed.

        The total score is derived from the presentation's criteria weights. A
        client supplied ``total_score`` is only accepted when it agrees with the
        derived value.
        """
        presentation, slot = self._load_for_slot(slot_id, identity)
        if slot.status not in GRADABLE_STATUSES:
            if slot.status == SlotStatus.COMPLETED:
                raise ConflictError("Slot has already been graded")
            raise ConflictError("Only booked slots can be graded")

        criteria = presentation.grading_criteria or default_grading_criteria()
        validate_grades(criteria, request.grades)
        total_score = compute_total_score(criteria, request.grades)
        if request.total_score is not None and abs(request.total_score - total_score) > score_tolerance():
            raise SchedulingValidationError(
                f"Total score {request.total_score:g} does not match the weighted grades ({total_score:g})"
            )

        individual_grades: dict[str, dict[str, float]] = {}
        individual_scores: dict[str, float] = {}
        members = {normalize_email(member.email) for member in slot.team_members}
        for email, member_grades in (request.individual_grades or {}).items():
            key = normalize_email(email)
            if key not in members:
                raise SchedulingValidationError(f"{email} is not a member of this slot's team")
            validate_grades(criteria, member_grades)
            individual_grades[key] = member_grades
            individual_scores[key] = compute_total_score(criteria, member_grades)

        completed = slot.model_copy(
            update={
                "status": SlotStatus.COMPLETED,
                "completed_at": self.clock(),
                "grades": dict(request.grades),
                "individual_grades": individual_grades,
                "individual_scores": individual_scores,
                "feedback": request.feedback,
                "total_score": total_score,
            }
        )
        result = self._replace_slot(presentation, completed)
        logger.info(
            "Slot %s of presentation %s graded %.2f by %s", slot_id, presentation.id, total_score, identity.id
        )
        return result

    def delete(self, presentation_id: str, identity: Identity, force: bool = False) -> None:
        """Delete a presentation; refused while slots are taken unless forced."""
        presentation = self.repository.get(presentation_id)
        ensure_can_manage(presentation, identity, self.guard)

        taken = [slot for slot in presentation.slots if slot.status != SlotStatus.AVAILABLE]
        if taken and not force:
            raise ConflictError(
                f"Presentation has {len(taken)} booked slot(s); pass force=true to delete it anyway"
            )
        if taken:
            logger.warning(
                "Force deleting presentation %s with taken slots: %s",
                presentation.id,
                ", ".join(f"{slot.id} ({slot.status.value}, booked by {slot.booked_by})" for slot in taken),
            )

        self.repository.delete(presentation)
