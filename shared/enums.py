"""
Enums and constants used across the application.
"""

from enum import Enum


class UserRole(str, Enum):
    """Roles carried by the authenticated identity."""

    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"


class ParticipationType(str, Enum):
    """How participants sign up for a presentation."""

    INDIVIDUAL = "individual"
    TEAM = "team"


class SlotStatus(str, Enum):
    """Slot lifecycle states, in the only order they can be visited."""

    AVAILABLE = "available"
    BOOKED = "booked"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class BookingRole(str, Enum):
    """How an identity is attached to a booked slot."""

    BOOKER = "booker"
    MEMBER = "member"
