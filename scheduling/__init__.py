"""Timetable scheduling core: periods, assignments and their views."""

from .assignments import Assignment, AssignmentStore
from .errors import (
    AuthorizationError,
    NotFoundError,
    StoreError,
    TimetableError,
    ValidationError,
)
from .identity import ADMIN_ROLES, Identity
from .periods import Period, PeriodCatalog
from .reference import ClassInstance, NamedRef, ReferenceData
from .store import DataStore
from .timekeeping import (
    DURATION_CHOICES,
    derive_end_time,
    format_date,
    format_time,
    month_bounds,
    parse_date,
    parse_time,
)
from .views import DayRow, ViewProjector

__all__ = [
    "ADMIN_ROLES",
    "Assignment",
    "AssignmentStore",
    "AuthorizationError",
    "ClassInstance",
    "DURATION_CHOICES",
    "DataStore",
    "DayRow",
    "Identity",
    "NamedRef",
    "NotFoundError",
    "Period",
    "PeriodCatalog",
    "ReferenceData",
    "StoreError",
    "TimetableError",
    "ValidationError",
    "ViewProjector",
    "derive_end_time",
    "format_date",
    "format_time",
    "month_bounds",
    "parse_date",
    "parse_time",
]
