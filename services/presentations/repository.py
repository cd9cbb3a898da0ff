"""Document persistence for the Presentation aggregate with optimistic versioning."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any, Callable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.database import PresentationRecord, PresentationSlotRecord
from services.presentations.errors import ConflictError, NotFoundError
from shared.models import Presentation
from shared.utils import setup_logging

logger = setup_logging("presentation-repository")

PresentationPredicate = Callable[[Presentation], bool]

STALE_WRITE_MESSAGE = "Presentation was modified by another request, please reload and try again"


class PresentationRepository:
    """Load, save and query whole presentation documents.

    Every row carries a ``version`` counter. Writes only succeed when the
    stored version still matches the one the document was loaded with, so two
    requests racing on the same presentation cannot silently overwrite each
    other: the loser gets a ``ConflictError``.
    """

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _to_document(presentation: Presentation) -> dict[str, Any]:
        return presentation.model_dump(mode="json", exclude={"version"})

    @staticmethod
    def _to_model(record: PresentationRecord) -> Presentation:
        return Presentation.model_validate({**record.document, "version": record.version})

    def _index_slots(self, presentation: Presentation) -> None:
        # Slot ids are regenerated with the recurrence, so the index is rebuilt on every write
        self.session.execute(
            delete(PresentationSlotRecord)
            .where(PresentationSlotRecord.presentation_id == presentation.id)
            .execution_options(synchronize_session=False)
        )
        if presentation.slots:
            self.session.execute(
                insert(PresentationSlotRecord),
                [{"slot_id": slot.id, "presentation_id": presentation.id} for slot in presentation.slots],
            )

    def add(self, presentation: Presentation) -> Presentation:
        """Insert a new presentation document."""
        record = PresentationRecord(
            id=presentation.id,
            owner_id=presentation.owner_id,
            title=presentation.title,
            presentation_end=presentation.presentation_period.end,
            document=self._to_document(presentation),
            version=1,
            created_at=presentation.created_at,
            updated_at=presentation.updated_at,
        )
        try:
            self.session.add(record)
            self.session.flush()
            self._index_slots(presentation)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.error("Failed to store presentation %s", presentation.id)
            raise
        logger.info("Stored presentation %s with %d slots", presentation.id, len(presentation.slots))
        return presentation.model_copy(update={"version": 1})

    def get(self, presentation_id: str) -> Presentation:
        """Load a presentation document by id."""
        record = self.session.execute(
            select(PresentationRecord).where(PresentationRecord.id == presentation_id)
        ).scalar_one_or_none()
        if record is None:
            raise NotFoundError("Presentation not found")
        return self._to_model(record)

    def save(self, presentation: Presentation) -> Presentation:
        """Persist a modified document if nobody else wrote it since it was loaded."""
        now = datetime.now(UTC)
        updated = presentation.model_copy(update={"updated_at": now})
        result = self.session.execute(
            update(PresentationRecord)
            .where(
                PresentationRecord.id == presentation.id,
                PresentationRecord.version == presentation.version,
            )
            .values(
                owner_id=updated.owner_id,
                title=updated.title,
                presentation_end=updated.presentation_period.end,
                document=self._to_document(updated),
                version=PresentationRecord.version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            logger.warning(
                "Rejected stale write to presentation %s at version %d", presentation.id, presentation.version
            )
            raise ConflictError(STALE_WRITE_MESSAGE)
        self._index_slots(updated)
        self.session.commit()
        return updated.model_copy(update={"version": presentation.version + 1})

    def delete(self, presentation: Presentation) -> None:
        """Remove a presentation and every embedded slot."""
        self.session.execute(
            delete(PresentationSlotRecord)
            .where(PresentationSlotRecord.presentation_id == presentation.id)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(
            delete(PresentationRecord)
            .where(
                PresentationRecord.id == presentation.id,
                PresentationRecord.version == presentation.version,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise ConflictError(STALE_WRITE_MESSAGE)
        self.session.commit()
        logger.info("Deleted presentation %s", presentation.id)

    def find(
        self,
        predicate: PresentationPredicate | None = None,
        owner_id: str | None = None,
        ending_on_or_after: date | None = None,
    ) -> list[Presentation]:
        """Query presentations, narrowing in SQL first and by predicate after."""
        query = select(PresentationRecord).order_by(PresentationRecord.created_at)
        if owner_id is not None:
            query = query.where(PresentationRecord.owner_id == owner_id)
        if ending_on_or_after is not None:
            query = query.where(PresentationRecord.presentation_end >= ending_on_or_after)

        presentations = [self._to_model(record) for record in self.session.execute(query).scalars()]
        if predicate is None:
            return presentations
        return [presentation for presentation in presentations if predicate(presentation)]

    def find_by_slot(self, slot_id: str) -> Presentation:
        """Load the presentation that embeds the given slot."""
        presentation_id = self.session.execute(
            select(PresentationSlotRecord.presentation_id).where(PresentationSlotRecord.slot_id == slot_id)
        ).scalar_one_or_none()
        if presentation_id is None:
            raise NotFoundError("Slot not found")
        return self.get(presentation_id)
