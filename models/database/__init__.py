"""
Database models package - SQLAlchemy ORM models
"""

from .presentation import PresentationRecord, PresentationSlotRecord

__all__ = [
    "PresentationRecord",
    "PresentationSlotRecord",
]
