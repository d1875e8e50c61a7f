"""Day and month projections of a class timetable."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional

from .assignments import Assignment, AssignmentStore
from .periods import Period, PeriodCatalog
from .reference import ReferenceData
from .timekeeping import DateLike, format_date, month_bounds


@dataclass(frozen=True)
class DayRow:
    """One line of the day grid: a period and whatever is booked in it."""

    period: Period
    assignment: Optional[Assignment] = None
    subject_name: Optional[str] = None
    teacher_name: Optional[str] = None

    @property
    def is_free(self) -> bool:
        return self.assignment is None


class ViewProjector:
    def __init__(
        self,
        periods: PeriodCatalog,
        assignments: AssignmentStore,
        reference: ReferenceData,
    ):
        self.periods = periods
        self.assignments = assignments
        self.reference = reference

    def project_day(self, class_instance_id: int, day: DateLike) -> List[DayRow]:
        periods = self.periods.list_periods(class_instance_id)
        booked = {a.period_number: a for a in self.assignments.get_assignments(class_instance_id, day)}
        # Names only resolve inside the class's own school.
        school_code = self.reference.school_of(class_instance_id)
        subjects = self.reference.subject_names(school_code, (a.subject_id for a in booked.values()))
        teachers = self.reference.teacher_names(school_code, (a.teacher_id for a in booked.values()))
        rows = []
        for period in periods:
            entry = booked.get(period.period_number)
            if entry is None:
                rows.append(DayRow(period))
                continue
            rows.append(
                DayRow(
                    period,
                    entry,
                    subjects.get(entry.subject_id),
                    teachers.get(entry.teacher_id),
                )
            )
        return rows

    def project_month(self, class_instance_id: int, month: DateLike) -> Dict[str, int]:
        """Count assignments per date in ``month``.

        Dates without assignments are left out; callers treat a missing key
        as zero.
        """
        first, last = month_bounds(month)
        entries = self.assignments.assignments_between(class_instance_id, first, last)
        counts = Counter(format_date(a.class_date) for a in entries)
        return dict(sorted(counts.items()))
