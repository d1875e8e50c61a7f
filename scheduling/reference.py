"""Read-only access to the school's classes, subjects and teachers.

These tables are maintained by other screens; the timetable core only reads
them to fill pickers and to put names on the day grid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .errors import NotFoundError
from .store import DataStore


@dataclass(frozen=True)
class ClassInstance:
    id: int
    grade: str
    section: str

    @property
    def label(self) -> str:
        return f"Grade {self.grade} - {self.section}"


@dataclass(frozen=True)
class NamedRef:
    """A subject or a teacher: just an id and a display name."""

    id: int
    name: str


class ReferenceData:
    def __init__(self, store: DataStore):
        self.store = store

    def class_instances(self, school_code: str) -> List[ClassInstance]:
        rows = self.store.select(
            "class_instances",
            {"school_code": school_code},
            order_by=["grade", "section"],
        )
        return [ClassInstance(r["id"], str(r["grade"]), r["section"]) for r in rows]

    def class_instance(self, school_code: str, class_instance_id: int) -> ClassInstance:
        """Return one class of ``school_code``.

        A class belonging to another school is reported as missing.
        """
        rows = self.store.select(
            "class_instances",
            {"id": class_instance_id, "school_code": school_code},
        )
        if not rows:
            raise NotFoundError("That class does not exist in your school.")
        r = rows[0]
        return ClassInstance(r["id"], str(r["grade"]), r["section"])

    def subjects(self, school_code: str) -> List[NamedRef]:
        rows = self.store.select("subjects", {"school_code": school_code}, order_by="subject_name")
        return [NamedRef(r["id"], r["subject_name"]) for r in rows]

    def teachers(self, school_code: str) -> List[NamedRef]:
        rows = self.store.select("admin", {"school_code": school_code}, order_by="full_name")
        return [NamedRef(r["id"], r["full_name"]) for r in rows]

    def school_of(self, class_instance_id: int) -> Optional[str]:
        rows = self.store.select(
            "class_instances", {"id": class_instance_id}, columns=["school_code"], limit=1
        )
        return rows[0]["school_code"] if rows else None

    def subject(self, school_code: str, subject_id: int) -> NamedRef:
        rows = self.store.select("subjects", {"id": subject_id, "school_code": school_code})
        if not rows:
            raise NotFoundError("That subject does not exist in your school.")
        return NamedRef(rows[0]["id"], rows[0]["subject_name"])

    def teacher(self, school_code: str, teacher_id: int) -> NamedRef:
        rows = self.store.select("admin", {"id": teacher_id, "school_code": school_code})
        if not rows:
            raise NotFoundError("That teacher does not exist in your school.")
        return NamedRef(rows[0]["id"], rows[0]["full_name"])

    def subject_names(self, school_code: str, ids: Iterable[int]) -> Dict[int, str]:
        ids = sorted({i for i in ids if i is not None})
        rows = self.store.select(
            "subjects",
            [("school_code", "=", school_code), ("id", "in", ids)],
            columns=["id", "subject_name"],
        )
        return {r["id"]: r["subject_name"] for r in rows}

    def teacher_names(self, school_code: str, ids: Iterable[int]) -> Dict[int, str]:
        ids = sorted({i for i in ids if i is not None})
        rows = self.store.select(
            "admin",
            [("school_code", "=", school_code), ("id", "in", ids)],
            columns=["id", "full_name"],
        )
        return {r["id"]: r["full_name"] for r in rows}
