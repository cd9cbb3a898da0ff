from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from shared.config import config
from shared.enums import BookingRole, ParticipationType, SlotStatus, UserRole


def _slot_default(key: str, fallback: Any) -> Any:
    return config.get_scheduling_value(f"slots.{key}", fallback)


# Identity supplied by the external authentication collaborator
class Identity(BaseModel):
    id: str = Field(..., min_length=1, description="Identity reference of the caller")
    role: UserRole
    email: str = ""
    name: str = ""


# Presentation document
class RegistrationPeriod(BaseModel):
    start: datetime
    end: datetime


class PresentationPeriod(BaseModel):
    start: date
    end: date


class SlotConfig(BaseModel):
    start_time: str = Field(
        default_factory=lambda: _slot_default("default_start_time", "09:00"),
        pattern=r"^\d{1,2}:\d{2}$",
        description="Local time of day the first slot starts (HH:MM)",
    )
    end_time: str = Field(
        default_factory=lambda: _slot_default("default_end_time", "17:00"),
        pattern=r"^\d{1,2}:\d{2}$",
        description="Local time of day no slot may run past (HH:MM)",
    )
    duration_minutes: int = Field(
        default_factory=lambda: _slot_default("default_duration_minutes", 15), ge=1, le=24 * 60
    )
    buffer_minutes: int = Field(
        default_factory=lambda: _slot_default("default_buffer_minutes", 0), ge=0, le=24 * 60
    )


class TargetAudience(BaseModel):
    years: list[str] = Field(default_factory=list)
    schools: list[str] = Field(default_factory=list)
    departments: list[str] = Field(default_factory=list)


class GradingCriterion(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    weight: int = Field(..., ge=0)


class TeamMember(BaseModel):
    name: str = ""
    email: EmailStr
    roll_number: str | None = None
    identity_ref: str | None = None


class FileAttachment(BaseModel):
    original_name: str
    stored_name: str
    mime_type: str
    size: int
    path: str


class Slot(BaseModel):
    id: str
    time: datetime
    status: SlotStatus = SlotStatus.AVAILABLE
    booked_by: str | None = None
    booked_at: datetime | None = None
    team_name: str | None = None
    topic: str | None = None
    description: str | None = None
    team_members: list[TeamMember] = Field(default_factory=list)
    file_attachment: FileAttachment | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    grades: dict[str, float] = Field(default_factory=dict)
    individual_grades: dict[str, dict[str, float]] = Field(default_factory=dict)
    individual_scores: dict[str, float] = Field(default_factory=dict)
    feedback: str | None = None
    total_score: float | None = None


class Presentation(BaseModel):
    id: str
    title: str
    description: str = ""
    owner_id: str
    owner_name: str = ""
    venue: str
    registration_period: RegistrationPeriod
    presentation_period: PresentationPeriod
    participation_type: ParticipationType = ParticipationType.INDIVIDUAL
    team_size_min: int = 1
    team_size_max: int = 1
    slot_config: SlotConfig
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    grading_criteria: list[GradingCriterion] = Field(default_factory=list)
    custom_grading_criteria: bool = False
    slots: list[Slot] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None
    version: int = Field(default=0, description="Persistence version token")

    def find_slot(self, slot_id: str) -> Slot | None:
        for slot in self.slots:
            if slot.id == slot_id:
                return slot
        return None


# Request/Response Models
class PresentationCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    venue: str = Field(..., min_length=1)
    registration_period: RegistrationPeriod
    presentation_period: PresentationPeriod
    participation_type: ParticipationType = ParticipationType.INDIVIDUAL
    team_size_min: int | str | None = Field(None, description="Coerced to an integer >= 1")
    team_size_max: int | str | None = Field(None, description="Coerced to an integer >= team_size_min")
    slot_config: SlotConfig = Field(default_factory=SlotConfig)
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    grading_criteria: list[GradingCriterion] | None = None
    custom_grading_criteria: bool = False


class PresentationUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    venue: str | None = Field(None, min_length=1)
    registration_period: RegistrationPeriod | None = None
    presentation_period: PresentationPeriod | None = None
    participation_type: ParticipationType | None = None
    team_size_min: int | str | None = None
    team_size_max: int | str | None = None
    slot_config: SlotConfig | None = None
    target_audience: TargetAudience | None = None
    grading_criteria: list[GradingCriterion] | None = None
    custom_grading_criteria: bool | None = None


class BookingRequest(BaseModel):
    slot_id: str | None = None
    topic: str | None = Field(None, max_length=300)
    team_name: str | None = Field(None, max_length=200)
    team_members: list[TeamMember] = Field(default_factory=list)
    description: str | None = Field(None, max_length=2000)


class CompleteSlotRequest(BaseModel):
    grades: dict[str, float]
    individual_grades: dict[str, dict[str, float]] | None = None
    feedback: str | None = Field(None, max_length=5000)
    total_score: float | None = Field(None, description="Checked against the weighted sum of grades")


class TeamBookingCheckRequest(BaseModel):
    emails: list[str] = Field(..., min_length=1)
    presentation_id: str | None = Field(
        None, description="Accepted for compatibility; the global check scans every presentation"
    )


class ScopedTeamBookingCheckRequest(BaseModel):
    emails: list[str] = Field(..., min_length=1)


class BookedMember(BaseModel):
    email: str
    presentation_id: str
    presentation_title: str
    slot_id: str


class TeamBookingCheckResponse(BaseModel):
    has_bookings: bool
    booked_members: list[BookedMember] = Field(default_factory=list)


class SlotStatistics(BaseModel):
    total: int = 0
    available: int = 0
    booked: int = 0
    in_progress: int = 0
    completed: int = 0


class PresentationSummary(Presentation):
    statistics: SlotStatistics = Field(default_factory=SlotStatistics)


class BookingView(BaseModel):
    presentation_id: str
    presentation_title: str
    venue: str
    owner_name: str = ""
    role: BookingRole
    slot: Slot
