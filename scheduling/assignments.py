"""Subject/teacher assignments for each class, date and period.

A timetable row says "on this date, during this period, this class has this
subject with this teacher".  There is never more than one row for the same
``(class_instance_id, class_date, period_number)``: :meth:`AssignmentStore.assign`
replaces the existing row and :meth:`AssignmentStore.copy_day` replaces a
whole day.  Both run their delete and insert steps in a single transaction,
so a failed insert leaves the previous rows in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, time
from typing import Any, List, Mapping, Optional

from .errors import NotFoundError, ValidationError
from .periods import PeriodCatalog, coerce_id
from .store import DataStore
from .timekeeping import DateLike, format_date, format_time, parse_date, parse_time

logger = logging.getLogger(__name__)

TIMETABLE_TABLE = "timetable"


@dataclass(frozen=True)
class Assignment:
    class_instance_id: int
    class_date: date
    period_number: int
    subject_id: int
    teacher_id: int
    school_code: str
    start_time: Optional[time]
    end_time: Optional[time]
    created_by: str
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Assignment":
        return cls(
            id=row.get("id"),
            class_instance_id=row["class_instance_id"],
            class_date=parse_date(row["class_date"]),
            period_number=row["period_number"],
            subject_id=row["subject_id"],
            teacher_id=row["admin_id"],
            school_code=row["school_code"],
            start_time=_optional_time(row["start_time"]),
            end_time=_optional_time(row["end_time"]),
            created_by=row["created_by"],
        )

    def to_row(self) -> dict:
        # The teacher column is called admin_id in the stored schema.
        return {
            "class_instance_id": self.class_instance_id,
            "class_date": format_date(self.class_date),
            "period_number": self.period_number,
            "subject_id": self.subject_id,
            "admin_id": self.teacher_id,
            "school_code": self.school_code,
            "start_time": format_time(self.start_time) if self.start_time is not None else None,
            "end_time": format_time(self.end_time) if self.end_time is not None else None,
            "created_by": self.created_by,
        }


def _optional_time(value: Any) -> Optional[time]:
    # Rows migrated from older databases may lack times.
    if value is None or value == "":
        return None
    return parse_time(value)


def _require_text(value: Any, label: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{label} is required.")
    return text


class AssignmentStore:
    def __init__(self, store: DataStore, periods: Optional[PeriodCatalog] = None):
        self.store = store
        self.periods = periods or PeriodCatalog(store)

    def get_assignments(self, class_instance_id: int, class_date: DateLike) -> List[Assignment]:
        class_instance_id = coerce_id(class_instance_id, "Class")
        rows = self.store.select(
            TIMETABLE_TABLE,
            {"class_instance_id": class_instance_id, "class_date": format_date(class_date)},
            order_by="period_number",
        )
        return [Assignment.from_row(r) for r in rows]

    def assignments_between(
        self, class_instance_id: int, first: DateLike, last: DateLike
    ) -> List[Assignment]:
        """Return assignments dated ``first`` through ``last`` inclusive."""
        class_instance_id = coerce_id(class_instance_id, "Class")
        rows = self.store.select(
            TIMETABLE_TABLE,
            [
                ("class_instance_id", "=", class_instance_id),
                ("class_date", ">=", format_date(first)),
                ("class_date", "<=", format_date(last)),
            ],
            order_by=["class_date", "period_number"],
        )
        return [Assignment.from_row(r) for r in rows]

    def dates_with_assignments(self, class_instance_id: int) -> List[date]:
        """Distinct dates that have a timetable, newest first."""
        class_instance_id = coerce_id(class_instance_id, "Class")
        rows = self.store.select(
            TIMETABLE_TABLE,
            {"class_instance_id": class_instance_id},
            columns=["class_date"],
            order_by="-class_date",
        )
        seen = []
        for r in rows:
            d = parse_date(r["class_date"])
            if not seen or seen[-1] != d:
                seen.append(d)
        return seen

    def assign(
        self,
        class_instance_id: int,
        class_date: DateLike,
        period_number: int,
        subject_id: int,
        teacher_id: int,
        school_code: str,
        created_by: str,
    ) -> Assignment:
        """Set the subject and teacher for one period, replacing any previous entry."""
        class_instance_id = coerce_id(class_instance_id, "Class")
        class_date = parse_date(class_date)
        period_number = coerce_id(period_number, "Period number")
        subject_id = coerce_id(subject_id, "Subject")
        teacher_id = coerce_id(teacher_id, "Teacher")
        school_code = _require_text(school_code, "School code")
        created_by = _require_text(created_by, "Issuer")

        period = self.periods.get_period(class_instance_id, period_number)
        assignment = Assignment(
            class_instance_id=class_instance_id,
            class_date=class_date,
            period_number=period_number,
            subject_id=subject_id,
            teacher_id=teacher_id,
            school_code=school_code,
            start_time=period.start_time,
            end_time=period.end_time,
            created_by=created_by,
        )
        with self.store.transaction():
            replaced = self.store.delete(
                TIMETABLE_TABLE,
                {
                    "class_instance_id": class_instance_id,
                    "class_date": format_date(class_date),
                    "period_number": period_number,
                },
            )
            self.store.insert(TIMETABLE_TABLE, [assignment.to_row()])
        logger.info(
            "Assigned subject %s / teacher %s to class %s on %s period %s (replaced %d)",
            subject_id,
            teacher_id,
            class_instance_id,
            format_date(class_date),
            period_number,
            replaced,
        )
        return assignment

    def copy_day(
        self,
        class_instance_id: int,
        source_date: DateLike,
        target_date: DateLike,
        school_code: str,
        created_by: str,
    ) -> int:
        """Overwrite ``target_date`` with the timetable of ``source_date``.

        Every assignment already on the target date is removed, including
        periods the source day does not use.  Returns the number of rows
        copied.
        """
        class_instance_id = coerce_id(class_instance_id, "Class")
        source_date = parse_date(source_date)
        target_date = parse_date(target_date)
        school_code = _require_text(school_code, "School code")
        created_by = _require_text(created_by, "Issuer")

        with self.store.transaction():
            source = self.get_assignments(class_instance_id, source_date)
            if not source:
                raise NotFoundError("No timetable found for that date.")
            copies = [
                replace(
                    entry,
                    id=None,
                    class_date=target_date,
                    school_code=school_code,
                    created_by=created_by,
                )
                for entry in source
            ]
            removed = self.store.delete(
                TIMETABLE_TABLE,
                {"class_instance_id": class_instance_id, "class_date": format_date(target_date)},
            )
            self.store.insert(TIMETABLE_TABLE, [c.to_row() for c in copies])
        logger.info(
            "Copied %d assignments for class %s from %s to %s (removed %d)",
            len(copies),
            class_instance_id,
            format_date(source_date),
            format_date(target_date),
            removed,
        )
        return len(copies)
