"""Period catalog: the numbered timeslots of each class."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from typing import Any, List, Mapping

from .errors import NotFoundError, ValidationError
from .store import DataStore
from .timekeeping import TimeLike, derive_end_time, format_time, parse_time

logger = logging.getLogger(__name__)

PERIODS_TABLE = "periods"


def coerce_id(value: Any, label: str) -> int:
    """Return ``value`` as a positive integer id or raise ``ValidationError``."""
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required.")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number.") from None
    if number <= 0:
        raise ValidationError(f"{label} must be a positive number.")
    return number


@dataclass(frozen=True)
class Period:
    class_instance_id: int
    period_number: int
    start_time: time
    end_time: time

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Period":
        return cls(
            class_instance_id=row["class_instance_id"],
            period_number=row["period_number"],
            start_time=parse_time(row["start_time"]),
            end_time=parse_time(row["end_time"]),
        )

    def to_row(self) -> dict:
        return {
            "class_instance_id": self.class_instance_id,
            "period_number": self.period_number,
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
        }


class PeriodCatalog:
    def __init__(self, store: DataStore):
        self.store = store

    def list_periods(self, class_instance_id: int) -> List[Period]:
        class_instance_id = coerce_id(class_instance_id, "Class")
        rows = self.store.select(
            PERIODS_TABLE,
            {"class_instance_id": class_instance_id},
            order_by="period_number",
        )
        return [Period.from_row(r) for r in rows if r["period_number"] is not None]

    def get_period(self, class_instance_id: int, period_number: int) -> Period:
        class_instance_id = coerce_id(class_instance_id, "Class")
        period_number = coerce_id(period_number, "Period number")
        rows = self.store.select(
            PERIODS_TABLE,
            {"class_instance_id": class_instance_id, "period_number": period_number},
            limit=1,
        )
        if not rows:
            raise NotFoundError(f"Period {period_number} does not exist for this class.")
        return Period.from_row(rows[0])

    def next_period_number(self, class_instance_id: int) -> int:
        """Number the next period after the highest one stored.

        Rows whose number is missing are ignored, so an empty catalog (or
        one with only unnumbered rows) starts at 1.
        """
        rows = self.store.select(
            PERIODS_TABLE,
            {"class_instance_id": class_instance_id},
            columns=["period_number"],
        )
        numbers = [r["period_number"] for r in rows if isinstance(r["period_number"], int)]
        return max(numbers, default=0) + 1

    def add_period(self, class_instance_id: int, start_time: TimeLike, duration: int) -> Period:
        """Append a period starting at ``start_time`` and lasting ``duration`` minutes."""
        class_instance_id = coerce_id(class_instance_id, "Class")
        start = parse_time(start_time)
        end = derive_end_time(start, duration)
        with self.store.transaction():
            period = Period(
                class_instance_id=class_instance_id,
                period_number=self.next_period_number(class_instance_id),
                start_time=start,
                end_time=end,
            )
            self.store.insert(PERIODS_TABLE, [period.to_row()])
        logger.info(
            "Added period %s (%s-%s) to class %s",
            period.period_number,
            format_time(start),
            format_time(end),
            class_instance_id,
        )
        return period
