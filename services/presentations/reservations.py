"""Slot listing, booking and roster checks for presentation participants."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable

from pydantic import ValidationError

from services.presentations.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SchedulingValidationError,
)
from services.presentations.repository import PresentationRepository
from services.presentations.slots import ensure_aware, scheduling_timezone
from shared.enums import BookingRole, ParticipationType, SlotStatus
from shared.models import (
    BookedMember,
    BookingRequest,
    BookingView,
    FileAttachment,
    Identity,
    Presentation,
    Slot,
    TargetAudience,
    TeamBookingCheckResponse,
    TeamMember,
)
from shared.utils import normalize_email, setup_logging, utc_now

logger = setup_logging("reservation-manager")


def audience_matches(
    audience: TargetAudience,
    year: str | None = None,
    school: str | None = None,
    department: str | None = None,
) -> bool:
    """An empty audience list admits everyone for that dimension."""
    for value, allowed in ((year, audience.years), (school, audience.schools), (department, audience.departments)):
        if value and allowed and value.strip() not in {item.strip() for item in allowed}:
            return False
    return True


def is_taken(slot: Slot) -> bool:
    return slot.status != SlotStatus.AVAILABLE


def roster_emails(slot: Slot) -> set[str]:
    return {normalize_email(member.email) for member in slot.team_members}


def identity_on_slot(slot: Slot, identity: Identity) -> bool:
    """True when the identity booked the slot or is listed on its roster."""
    if slot.booked_by == identity.id:
        return True
    email = normalize_email(identity.email)
    return any(
        member.identity_ref == identity.id or (email and normalize_email(member.email) == email)
        for member in slot.team_members
    )


class ReservationManager:
    """Assign available slots to individuals or teams."""

    def __init__(
        self,
        repository: PresentationRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.clock = clock

    def list_available(
        self,
        year: str | None = None,
        school: str | None = None,
        department: str | None = None,
    ) -> list[Presentation]:
        """Presentations that have not ended, trimmed to their available slots."""
        today = self.clock().astimezone(scheduling_timezone()).date()
        presentations = self.repository.find(
            lambda presentation: audience_matches(presentation.target_audience, year, school, department),
            ending_on_or_after=today,
        )

        available: list[Presentation] = []
        for presentation in presentations:
            open_slots = [slot for slot in presentation.slots if slot.status == SlotStatus.AVAILABLE]
            if open_slots:
                available.append(presentation.model_copy(update={"slots": open_slots}))
        return available

    def book(
        self,
        presentation_id: str,
        identity: Identity,
        request: BookingRequest,
        attachment: FileAttachment | None = None,
    ) -> Slot:
        """
        Book one slot of a presentation for the caller (and their team).

        Args:
            presentation_id: Presentation that embeds the slot
            identity: The booking identity, always placed on the roster
            request: Slot id, topic and the proposed roster
            attachment: Optional file reference from the upload collaborator

        Returns:
            The booked slot as persisted

        Raises:
            SchedulingValidationError: Missing fields or roster size out of bounds
            NotFoundError: Unknown presentation or slot
            ConflictError: Slot taken, caller or a team member already booked,
                or a concurrent write won the race
            ForbiddenError: Registration window closed
        """
        if not request.slot_id:
            raise SchedulingValidationError("Slot ID is required")
        if not request.topic or not request.topic.strip():
            raise SchedulingValidationError("Presentation topic is required")
        if not identity.email:
            raise SchedulingValidationError("Booking identity has no e-mail address")

        presentation = self.repository.get(presentation_id)
        slot = presentation.find_slot(request.slot_id)
        if slot is None:
            raise NotFoundError("Slot not found")

        if slot.status != SlotStatus.AVAILABLE:
            raise ConflictError("This slot is already booked")

        now = self.clock()
        window = presentation.registration_period
        if not ensure_aware(window.start) <= now <= ensure_aware(window.end):
            raise ForbiddenError("Registration is not open for this presentation")

        if any(is_taken(other) and identity_on_slot(other, identity) for other in presentation.slots):
            raise ConflictError("You have already booked a slot for this presentation")

        roster = self._build_roster(identity, request.team_members)

        if presentation.participation_type == ParticipationType.TEAM:
            already_booked = self._members_booked_in(presentation.slots, roster, exclude_slot_id=slot.id)
            if already_booked:
                raise ConflictError(
                    f"Team members already booked in this presentation: {', '.join(already_booked)}"
                )
            if not presentation.team_size_min <= len(roster) <= presentation.team_size_max:
                raise SchedulingValidationError(
                    f"Team size must be between {presentation.team_size_min} and "
                    f"{presentation.team_size_max}, got {len(roster)}"
                )
        elif len(roster) != 1:
            raise SchedulingValidationError("Individual presentations accept a single participant")

        booked = slot.model_copy(
            update={
                "status": SlotStatus.BOOKED,
                "booked_by": identity.id,
                "booked_at": now,
                "team_name": request.team_name,
                "topic": request.topic.strip(),
                "description": request.description,
                "team_members": roster,
                "file_attachment": attachment,
            }
        )
        updated = presentation.model_copy(
            update={"slots": [booked if item.id == slot.id else item for item in presentation.slots]}
        )
        saved = self.repository.save(updated)

        logger.info(
            "Slot %s of presentation %s booked by %s (%d member(s))",
            slot.id,
            presentation.id,
            identity.id,
            len(roster),
        )
        return saved.find_slot(slot.id)

    def check_team_bookings(self, emails: Iterable[str]) -> TeamBookingCheckResponse:
        """Report which e-mails sit on a roster in any presentation."""
        return self._scan_rosters(self.repository.find(), emails)

    def check_team_bookings_in_presentation(
        self, presentation_id: str, emails: Iterable[str]
    ) -> TeamBookingCheckResponse:
        """Report which e-mails sit on a roster of one presentation."""
        return self._scan_rosters([self.repository.get(presentation_id)], emails)

    def my_bookings(self, identity: Identity) -> list[BookingView]:
        """Every taken slot the identity booked or is a member of."""
        bookings: list[BookingView] = []
        for presentation in self.repository.find():
            for slot in presentation.slots:
                if not is_taken(slot) or not identity_on_slot(slot, identity):
                    continue
                role = BookingRole.BOOKER if slot.booked_by == identity.id else BookingRole.MEMBER
                bookings.append(
                    BookingView(
                        presentation_id=presentation.id,
                        presentation_title=presentation.title,
                        venue=presentation.venue,
                        owner_name=presentation.owner_name,
                        role=role,
                        slot=slot,
                    )
                )
        bookings.sort(key=lambda booking: booking.slot.time)
        return bookings

    @staticmethod
    def _build_roster(identity: Identity, members: list[TeamMember]) -> list[TeamMember]:
        booker_email = normalize_email(identity.email)
        roster: list[TeamMember] = []
        seen: set[str] = set()

        for member in members:
            key = normalize_email(member.email)
            if key in seen:
                raise SchedulingValidationError(f"Duplicate team member e-mail: {member.email}")
            seen.add(key)
            if key == booker_email:
                member = member.model_copy(update={"identity_ref": identity.id, "name": member.name or identity.name})
            roster.append(member)

        if booker_email not in seen:
            try:
                booker = TeamMember(name=identity.name, email=identity.email, identity_ref=identity.id)
            except ValidationError as exc:
                raise SchedulingValidationError("Booking identity has an invalid e-mail address") from exc
            roster.insert(0, booker)

        return roster

    @staticmethod
    def _members_booked_in(slots: list[Slot], roster: list[TeamMember], exclude_slot_id: str) -> list[str]:
        proposed = {normalize_email(member.email) for member in roster}
        taken: set[str] = set()
        for slot in slots:
            if slot.id == exclude_slot_id or not is_taken(slot):
                continue
            taken |= proposed & roster_emails(slot)
        return sorted(taken)

    @staticmethod
    def _scan_rosters(presentations: list[Presentation], emails: Iterable[str]) -> TeamBookingCheckResponse:
        wanted = {normalize_email(email) for email in emails if email and email.strip()}
        booked_members: list[BookedMember] = []
        for presentation in presentations:
            for slot in presentation.slots:
                if not is_taken(slot):
                    continue
                for email in sorted(wanted & roster_emails(slot)):
                    booked_members.append(
                        BookedMember(
                            email=email,
                            presentation_id=presentation.id,
                            presentation_title=presentation.title,
                            slot_id=slot.id,
                        )
                    )
        return TeamBookingCheckResponse(has_bookings=bool(booked_members), booked_members=booked_members)
