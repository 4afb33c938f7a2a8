"""
Goal tracking over logged service minutes.

Logs are reduced on a pandas DataFrame: filter to a month (and optionally a
week), scope to a student and subject, then total the minutes, compare them
with the student's goal and split them by staff member for the segmented
progress bar. Weekly goals are scaled x4 in the monthly view.

Nothing here raises on empty input; no logs or a zero goal yield zero
totals, no segments, and ``accomplished=False``.
"""

from typing import Iterable, NamedTuple, Optional

import pandas as pd

from iepminutes.periods import month_label, week_key, weeks_in_month
from iepminutes.schemas import SUBJECTS, LogEntry, Student, Subject

LOG_COLUMNS = ["id", "student_id", "subject", "minutes", "date",
               "staff_name", "notes", "timestamp"]

MONTHLY_GOAL_FACTOR = 4
UNKNOWN_STAFF = "Unknown"


class StaffSegment(NamedTuple):
    name: str
    minutes: int
    percentage: float  # of the effective goal, may exceed 100


class GoalProgress(NamedTuple):
    subject: Subject
    total_minutes: int
    weekly_goal: int
    effective_goal: int
    accomplished: bool
    segments: list


# ── Frames ─────────────────────────────────────────────────────────────────────
def logs_frame(logs: Iterable[LogEntry]) -> pd.DataFrame:
    records = [
        {
            "id":         log.id,
            "student_id": log.student_id,
            "subject":    Subject(log.subject),
            "minutes":    int(log.minutes),
            "date":       log.date,
            "staff_name": log.staff_name,
            "notes":      log.notes or "",
            "timestamp":  log.timestamp,
        }
        for log in logs
    ]
    if not records:
        return pd.DataFrame(columns=LOG_COLUMNS)
    return pd.DataFrame(records, columns=LOG_COLUMNS)


def filter_by_period(df: pd.DataFrame, month: str, week_start=None) -> pd.DataFrame:
    """Rows dated in ``month``; no ``week_start`` means the whole month."""
    if df.empty:
        return df
    mask = df["date"].map(month_label) == month
    if week_start:
        key  = week_start if isinstance(week_start, str) else week_start.isoformat()
        mask &= df["date"].map(week_key) == key
    return df[mask].copy()


def for_student(df: pd.DataFrame, student_id) -> pd.DataFrame:
    if df.empty or student_id is None:
        return df
    return df[df["student_id"] == str(student_id)]


def for_subject(df: pd.DataFrame, subject: Subject) -> pd.DataFrame:
    if df.empty:
        return df
    return df[df["subject"] == Subject(subject)]


# ── Totals ─────────────────────────────────────────────────────────────────────
def subject_totals(df: pd.DataFrame) -> dict:
    totals = {subj: 0 for subj in SUBJECTS}
    if df.empty:
        return totals
    sums = df.groupby("subject")["minutes"].sum()
    for subj, mins in sums.items():
        totals[Subject(subj)] = int(mins)
    return totals


def staff_totals(df: pd.DataFrame) -> dict:
    """Minutes per staff name, alphabetical."""
    if df.empty:
        return {}
    names = df["staff_name"].fillna("").str.strip().replace("", UNKNOWN_STAFF)
    sums  = df["minutes"].groupby(names).sum().sort_index()
    return {name: int(mins) for name, mins in sums.items()}


# ── Goals ──────────────────────────────────────────────────────────────────────
def effective_goal(weekly_goal: int, monthly: bool) -> int:
    return weekly_goal * MONTHLY_GOAL_FACTOR if monthly else weekly_goal


def is_accomplished(total_minutes: int, goal: int) -> bool:
    # a zero goal means "no goal set", never met
    return goal > 0 and total_minutes >= goal


def staff_segments(df: pd.DataFrame, goal: int) -> list:
    return [
        StaffSegment(name, mins, mins / goal * 100 if goal > 0 else 0)
        for name, mins in staff_totals(df).items()
    ]


def goal_progress(logs, student: Optional[Student], subject: Subject,
                  month: str, week_start=None, monthly: bool = None) -> GoalProgress:
    """
    Progress of one student (or everyone, when ``student`` is None) in one
    subject over a month or a week of it.

    ``logs`` may be LogEntry objects or a frame from ``logs_frame``.
    ``monthly`` defaults to "no week selected".
    """
    df = logs if isinstance(logs, pd.DataFrame) else logs_frame(logs)
    if monthly is None:
        monthly = not week_start

    df = filter_by_period(df, month, week_start)
    df = for_student(df, student.id if student else None)
    df = for_subject(df, subject)

    weekly = student.weekly_goal(subject) if student else 0
    goal   = effective_goal(weekly, monthly)
    total  = int(df["minutes"].sum()) if not df.empty else 0
    return GoalProgress(
        subject=Subject(subject),
        total_minutes=total,
        weekly_goal=weekly,
        effective_goal=goal,
        accomplished=is_accomplished(total, goal),
        segments=staff_segments(df, goal),
    )


def session_notes(df: pd.DataFrame, student_id, subject: Subject) -> pd.DataFrame:
    """Logs with a note for one student and subject, newest date first."""
    df = for_subject(for_student(df, student_id), subject)
    if df.empty:
        return df
    df = df[df["notes"].astype(str).str.strip() != ""]
    return df.sort_values("date", ascending=False)


def goal_hits_by_week(logs, students: Iterable[Student], month: str) -> pd.DataFrame:
    """Per week of ``month``: how many students met their weekly goal, by subject."""
    df       = logs if isinstance(logs, pd.DataFrame) else logs_frame(logs)
    students = list(students)
    rows     = []
    for key, label in weeks_in_month(month, []):
        row = {"Week": label, "week_start": key}
        for subj in SUBJECTS:
            row[subj.value] = sum(
                goal_progress(df, stu, subj, month, key, monthly=False).accomplished
                for stu in students
            )
        rows.append(row)
    return pd.DataFrame(rows, columns=["Week", "week_start"] + [s.value for s in SUBJECTS])
