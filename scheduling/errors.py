"""Exception types raised by the timetable core.

Every failure a caller can observe is one of these classes.  The message is
short and suitable for showing to the user as-is.
"""

from __future__ import annotations

from typing import Optional


class TimetableError(Exception):
    """Base class for all timetable failures."""

    default_message = "Timetable operation failed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return self.args[0]


class ValidationError(TimetableError):
    """Bad input such as a missing id or a non-positive duration."""

    default_message = "Invalid input."


class NotFoundError(TimetableError):
    """A referenced period, class or source day does not exist."""

    default_message = "Not found."


class AuthorizationError(TimetableError):
    """The caller lacks the role required for the operation."""

    default_message = "You are not allowed to do that."


class StoreError(TimetableError):
    """The data store reported a failure.

    ``step`` names the statement that failed (for example
    ``"insert timetable"``) so multi-step operations can report where they
    stopped.
    """

    default_message = "The data store reported an error."

    def __init__(self, message: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message)
        self.step = step

    def __str__(self) -> str:
        if self.step:
            return f"{self.message} (while trying to {self.step})"
        return self.message
