"""FastAPI application for presentation scheduling, booking and grading."""

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from database import get_db
from services.auth import get_current_identity
from services.presentations.errors import SchedulingError, SchedulingValidationError
from services.presentations.lifecycle import LifecycleController
from services.presentations.permissions import ensure_staff
from services.presentations.repository import PresentationRepository
from services.presentations.reservations import ReservationManager
from services.presentations.service import PresentationService
from services.presentations.uploads import discard_upload, store_upload
from shared.models import (
    BookingRequest,
    BookingView,
    CompleteSlotRequest,
    Identity,
    Presentation,
    PresentationCreateRequest,
    PresentationSummary,
    PresentationUpdateRequest,
    ScopedTeamBookingCheckRequest,
    Slot,
    TeamBookingCheckRequest,
    TeamBookingCheckResponse,
    TeamMember,
)
from shared.response_models import APIResponse, ErrorResponse, HealthResponse
from shared.utils import config, setup_logging, utc_now

logger = setup_logging("presentation-api")

app = FastAPI(
    title="Presentation Scheduling Service",
    description="Schedule presentation slots, book them individually or as a team, and grade them",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

team_members_adapter = TypeAdapter(list[TeamMember])


def _error_response(status_code: int, message: str, error_code: str, error: str | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, error=error, error_code=error_code, timestamp=utc_now().isoformat())
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    if exc.status_code == 409:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.error_code)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(
        500,
        "An unexpected error occurred",
        "server_error",
        error=str(exc) if config.get("debug") else None,
    )


def register_exception_handlers(target: FastAPI) -> None:
    """Render domain errors as ``ErrorResponse`` bodies on the given app."""
    target.add_exception_handler(SchedulingError, scheduling_error_handler)
    target.add_exception_handler(Exception, unexpected_error_handler)


register_exception_handlers(app)


def get_repository(session: Session = Depends(get_db)) -> PresentationRepository:
    return PresentationRepository(session)


def get_presentation_service(
    repository: PresentationRepository = Depends(get_repository),
) -> PresentationService:
    return PresentationService(repository)


def get_reservation_manager(
    repository: PresentationRepository = Depends(get_repository),
) -> ReservationManager:
    return ReservationManager(repository)


def get_lifecycle_controller(
    repository: PresentationRepository = Depends(get_repository),
) -> LifecycleController:
    return LifecycleController(repository)


@app.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health endpoint for the presentation service."""
    return HealthResponse(status="ok", message="Presentation service is running", version=app.version)


@app.post("/", response_model=Presentation, status_code=201)
def create_presentation(
    request: PresentationCreateRequest,
    identity: Identity = Depends(get_current_identity),
    service: PresentationService = Depends(get_presentation_service),
) -> Presentation:
    """Create a presentation and generate its slots (faculty and admins only)."""
    return service.create(identity, request)


@app.get("/available", response_model=list[Presentation])
def list_available_presentations(
    year: str | None = None,
    school: str | None = None,
    department: str | None = None,
    identity: Identity = Depends(get_current_identity),
    reservations: ReservationManager = Depends(get_reservation_manager),
) -> list[Presentation]:
    """Presentations still running that match the audience filters, with open slots only."""
    return reservations.list_available(year=year, school=school, department=department)


@app.get("/faculty", response_model=list[PresentationSummary])
def list_faculty_presentations(
    identity: Identity = Depends(get_current_identity),
    service: PresentationService = Depends(get_presentation_service),
) -> list[PresentationSummary]:
    """The caller's own presentations with slot statistics."""
    ensure_staff(identity)
    return service.list_owned(identity)


@app.get("/my-bookings", response_model=list[BookingView])
def list_my_bookings(
    identity: Identity = Depends(get_current_identity),
    reservations: ReservationManager = Depends(get_reservation_manager),
) -> list[BookingView]:
    """Slots the caller booked or is a team member of, ordered by time."""
    return reservations.my_bookings(identity)


@app.post("/check-team-bookings", response_model=TeamBookingCheckResponse)
def check_team_bookings(
    request: TeamBookingCheckRequest,
    identity: Identity = Depends(get_current_identity),
    reservations: ReservationManager = Depends(get_reservation_manager),
) -> TeamBookingCheckResponse:
    """Check e-mails against the rosters of every presentation."""
    return reservations.check_team_bookings(request.emails)


@app.post("/slots/{slot_id}/start", response_model=Slot)
def start_slot(
    slot_id: str,
    identity: Identity = Depends(get_current_identity),
    lifecycle: LifecycleController = Depends(get_lifecycle_controller),
) -> Slot:
    """Mark a booked slot as in progress."""
    return lifecycle.start(slot_id, identity)


@app.post("/slots/{slot_id}/complete", response_model=Slot)
def complete_slot(
    slot_id: str,
    request: CompleteSlotRequest,
    identity: Identity = Depends(get_current_identity),
    lifecycle: LifecycleController = Depends(get_lifecycle_controller),
) -> Slot:
    """Grade a slot and mark it completed."""
    return lifecycle.complete(slot_id, identity, request)


@app.get("/{presentation_id}", response_model=Presentation)
def get_presentation(
    presentation_id: str,
    identity: Identity = Depends(get_current_identity),
    service: PresentationService = Depends(get_presentation_service),
) -> Presentation:
    """Fetch a single presentation with all of its slots."""
    return service.get(presentation_id)


@app.put("/{presentation_id}", response_model=Presentation)
def update_presentation(
    presentation_id: str,
    request: PresentationUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    service: PresentationService = Depends(get_presentation_service),
) -> Presentation:
    """Update a presentation owned by the caller."""
    return service.update(presentation_id, identity, request)


@app.delete("/{presentation_id}", response_model=APIResponse)
def delete_presentation(
    presentation_id: str,
    force: bool = False,
    identity: Identity = Depends(get_current_identity),
    lifecycle: LifecycleController = Depends(get_lifecycle_controller),
) -> APIResponse:
    """Delete a presentation; taken slots block this unless ``force=true``."""
    lifecycle.delete(presentation_id, identity, force=force)
    return APIResponse(
        message="Presentation deleted successfully",
        data={"id": presentation_id, "force": force},
        timestamp=utc_now().isoformat(),
    )


@app.post("/{presentation_id}/check-team-bookings", response_model=TeamBookingCheckResponse)
def check_team_bookings_in_presentation(
    presentation_id: str,
    request: ScopedTeamBookingCheckRequest,
    identity: Identity = Depends(get_current_identity),
    reservations: ReservationManager = Depends(get_reservation_manager),
) -> TeamBookingCheckResponse:
    """Check e-mails against the rosters of a single presentation."""
    return reservations.check_team_bookings_in_presentation(presentation_id, request.emails)


@app.post("/{presentation_id}/book", response_model=Slot)
def book_slot(
    presentation_id: str,
    request: BookingRequest,
    identity: Identity = Depends(get_current_identity),
    reservations: ReservationManager = Depends(get_reservation_manager),
) -> Slot:
    """Book a slot for the caller and their team."""
    return reservations.book(presentation_id, identity, request)


@app.post("/{presentation_id}/book-with-file", response_model=Slot)
def book_slot_with_file(
    presentation_id: str,
    slot_id: str = Form(...),
    topic: str = Form(...),
    team_name: str | None = Form(None),
    description: str | None = Form(None),
    team_members: str = Form("[]", description="JSON encoded list of team members"),
    file: UploadFile | None = File(None),
    identity: Identity = Depends(get_current_identity),
    reservations: ReservationManager = Depends(get_reservation_manager),
) -> Slot:
    """Book a slot with an optional attachment sent as multipart form data."""
    try:
        members = team_members_adapter.validate_json(team_members or "[]")
    except ValidationError as exc:
        raise SchedulingValidationError("team_members must be a JSON list of members with valid e-mails") from exc
    try:
        request = BookingRequest(
            slot_id=slot_id,
            topic=topic,
            team_name=team_name,
            description=description,
            team_members=members,
        )
    except ValidationError as exc:
        raise SchedulingValidationError(str(exc)) from exc

    attachment = store_upload(file) if file is not None and file.filename else None
    try:
        return reservations.book(presentation_id, identity, request, attachment=attachment)
    except Exception:
        if attachment is not None:
            discard_upload(attachment)
        raise


@app.get("/{presentation_id}/slots", response_model=list[Slot])
def list_slots_for_grading(
    presentation_id: str,
    identity: Identity = Depends(get_current_identity),
    service: PresentationService = Depends(get_presentation_service),
) -> list[Slot]:
    """All slots of a presentation, for its owner or an administrator."""
    return service.slots_for_grading(presentation_id, identity)
