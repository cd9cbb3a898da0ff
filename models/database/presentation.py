"""
Presentation model - presentation events stored as whole documents
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String

from database import Base


class PresentationRecord(Base):
    """Presentation aggregate; slots live inside ``document``"""

    __tablename__ = "presentations"

    id = Column(String(36), primary_key=True)
    owner_id = Column(String(255), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    presentation_end = Column(Date, nullable=False, index=True)  # for expiry filtering
    document = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<PresentationRecord(id={self.id}, title={self.title}, version={self.version})>"


class PresentationSlotRecord(Base):
    """Maps each embedded slot id to the presentation document holding it"""

    __tablename__ = "presentation_slots"

    slot_id = Column(String(36), primary_key=True)
    presentation_id = Column(
        String(36), ForeignKey("presentations.id", ondelete="CASCADE"), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<PresentationSlotRecord(slot_id={self.slot_id}, presentation_id={self.presentation_id})>"
