"""
Data shapes for IEP Minute Pro.

Students and logs are stored and synced as JSON with camelCase keys
(``studentId``, ``subjectGoals``, ``staffName``); in Python the fields are
snake_case. Both spellings are accepted on input.
"""

import datetime as dt
import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Subject(str, Enum):
    MATH = "Math"
    ENGLISH = "English"
    TASK_COMPLETION = "Task Completion"


class Grade(str, Enum):
    SIXTH = "6th"
    SEVENTH = "7th"
    EIGHTH = "8th"


SUBJECTS = list(Subject)
GRADES   = list(Grade)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def leading_int(value) -> int:
    """Integer at the start of ``value`` ("30 min" -> 30, "45.5" -> 45), else 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _goal_minutes(value) -> int:
    return max(leading_int(value), 0)


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Student(_Model):
    id: str
    name: str
    grade: Grade
    subject_goals: dict[Subject, int] = Field(
        default_factory=dict, alias="subjectGoals", validate_default=True
    )

    @field_validator("id", mode="before")
    @classmethod
    def _str_id(cls, value):
        return str(value)

    @field_validator("subject_goals", mode="before")
    @classmethod
    def _fill_goals(cls, value):
        raw = {getattr(k, "value", k): v for k, v in (value or {}).items()}
        return {subj: _goal_minutes(raw.get(subj.value, 0)) for subj in Subject}

    def weekly_goal(self, subject: Subject) -> int:
        return self.subject_goals.get(Subject(subject), 0)


class LogEntry(_Model):
    id: str
    student_id: str = Field(alias="studentId")
    subject: Subject
    minutes: int = Field(ge=0)
    date: dt.date
    staff_name: str = Field(default="", alias="staffName")
    notes: Optional[str] = None
    timestamp: int = 0

    @field_validator("id", "student_id", mode="before")
    @classmethod
    def _str_ids(cls, value):
        return str(value)

    @field_validator("staff_name", mode="before")
    @classmethod
    def _blank_staff(cls, value):
        return "" if value is None else str(value)


class StaffMember(_Model):
    name: str
    color: str = "#9ca3af"


class Backup(_Model):
    students: list[Student]
    logs: list[LogEntry] = Field(default_factory=list)
    version: str = "1.0"
    timestamp: int = 0


DEFAULT_STAFF = [
    StaffMember(name="Ms. Rivera",   color="#6366f1"),
    StaffMember(name="Mr. Thompson", color="#f43f5e"),
    StaffMember(name="Ms. Chen",     color="#f59e0b"),
    StaffMember(name="Mr. Davis",    color="#10b981"),
    StaffMember(name="Ms. Patel",    color="#0ea5e9"),
]
