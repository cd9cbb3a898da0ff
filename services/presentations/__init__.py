"""Presentation slot scheduling service.

This service handles:
- Presentation creation with slot synthesis from a recurrence
- Individual and team slot booking, with optional file attachments
- Slot lifecycle transitions and weighted grading
"""

__version__ = "1.0.0"
