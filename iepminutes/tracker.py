"""
Tracker: in-memory IEP state with write-through persistence.

Built once at startup with a store, a sync client, an id generator and a
clock, then handed to the views. Every mutation saves immediately; syncing
new logs to the remote endpoint happens after the local save and never
blocks or fails it.
"""

import logging
import time
import uuid
from datetime import date
from typing import Callable, Iterable, Optional

from iepminutes.errors import SessionValidationError, StudentValidationError
from iepminutes.exporters import backup_to_json, logs_to_csv, parse_backup
from iepminutes.periods import month_label, week_key
from iepminutes.schemas import Grade, LogEntry, StaffMember, Student, Subject, leading_int
from iepminutes.store import LocalStore
from iepminutes.sync import SyncClient

logger = logging.getLogger(__name__)


def new_uuid() -> str:
    return uuid.uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_minutes(value) -> int:
    """Whole minutes from form input: the leading integer, or 0."""
    return leading_int(value)


def logs_in_period(logs: Iterable[LogEntry], month: str, week_start=None) -> list[LogEntry]:
    key = week_start.isoformat() if isinstance(week_start, date) else week_start
    return [
        log for log in logs
        if month_label(log.date) == month and (not key or week_key(log.date) == key)
    ]


class Tracker:
    def __init__(self, store: LocalStore, sync: SyncClient = None,
                 new_id: Callable[[], str] = new_uuid,
                 clock: Callable[[], int] = now_ms):
        self.store  = store
        self.sync   = sync or SyncClient()
        self.new_id = new_id
        self.clock  = clock

        self.students: list[Student]   = store.load_students()
        self.logs: list[LogEntry]      = store.load_logs()
        self.staff: list[StaffMember]  = store.load_staff()
        self.sync_url: str             = store.load_sync_url()
        self.last_staff_name: str      = store.load_staff_name()

    # ── Lookups ────────────────────────────────────────────────────────────────
    def _unique_id(self, taken: set) -> str:
        new = self.new_id()
        while new in taken:
            new = self.new_id()
        return new

    def get_student(self, student_id) -> Optional[Student]:
        for stu in self.students:
            if stu.id == str(student_id):
                return stu
        return None

    def student_name(self, student_id) -> str:
        stu = self.get_student(student_id)
        return stu.name if stu else "Unknown"

    def students_in_grade(self, grade) -> list[Student]:
        grade = Grade(grade)
        return sorted((s for s in self.students if s.grade == grade), key=lambda s: s.name)

    # ── Students ───────────────────────────────────────────────────────────────
    def add_student(self, name: str, grade, goals: dict = None) -> Student:
        name = (name or "").strip()
        if not name:
            raise StudentValidationError("Please enter a student name.")
        student = Student(
            id=self._unique_id({s.id for s in self.students}),
            name=name,
            grade=Grade(grade),
            subject_goals=goals or {},
        )
        self.students = self.students + [student]
        self.store.save_students(self.students)
        logger.info("Added student %s (%s)", student.id, student.grade.value)
        return student

    def update_student(self, student_id, name: str = None, grade=None,
                       goals: dict = None) -> Student:
        current = self.get_student(student_id)
        if current is None:
            raise StudentValidationError(f"No student with id {student_id}.")
        if name is not None and not name.strip():
            raise StudentValidationError("Please enter a student name.")

        merged = dict(current.subject_goals)
        merged.update(goals or {})
        updated = Student(
            id=current.id,
            name=name.strip() if name else current.name,
            grade=Grade(grade) if grade else current.grade,
            subject_goals=merged,
        )
        self.students = [updated if s.id == current.id else s for s in self.students]
        self.store.save_students(self.students)
        return updated

    # ── Logging sessions ───────────────────────────────────────────────────────
    def log_session(self, student_ids, subject, minutes, log_date=None,
                    staff_name: str = "", notes: str = "") -> list[LogEntry]:
        """
        Record one session for every selected student.

        Raises SessionValidationError, with every problem found, when no
        student is selected, the subject or staff name is missing, or the
        minutes are not positive. Nothing is saved in that case.
        """
        student_ids = [str(sid) for sid in (student_ids or [])]
        staff_name  = (staff_name or "").strip()
        mins        = parse_minutes(minutes)

        errors = []
        try:
            subject = Subject(subject) if subject else None
        except ValueError:
            subject = None
        if subject is None:   errors.append("Select a subject.")
        if not staff_name:    errors.append("Select a staff member.")
        if not student_ids:   errors.append("Select at least one student.")
        if mins <= 0:         errors.append("Minutes must be greater than zero.")
        if errors:
            raise SessionValidationError(errors)

        stamp = self.clock()
        taken = {log.id for log in self.logs}
        entries = []
        for sid in student_ids:
            entry = LogEntry(
                id=self._unique_id(taken),
                student_id=sid,
                subject=subject,
                minutes=mins,
                date=log_date or date.today(),
                staff_name=staff_name,
                notes=(notes or "").strip() or None,
                timestamp=stamp,
            )
            taken.add(entry.id)
            entries.append(entry)

        self.logs = entries + self.logs
        self.store.save_logs(self.logs)
        self.last_staff_name = staff_name
        self.store.save_staff_name(staff_name)
        logger.info("Logged %d session(s) of %s by %s", len(entries), subject.value, staff_name)

        self.sync.push_logs(self.sync_url, entries)
        return entries

    # ── Settings ───────────────────────────────────────────────────────────────
    def set_sync_url(self, url: str):
        self.sync_url = (url or "").strip()
        self.store.save_sync_url(self.sync_url)

    def rename_staff(self, names: list[str]):
        """New names in roster order; blank keeps the old name."""
        roster = []
        for member, new_name in zip(self.staff, names):
            roster.append(StaffMember(name=(new_name or "").strip() or member.name,
                                      color=member.color))
        roster.extend(self.staff[len(roster):])
        self.staff = roster
        self.store.save_staff(self.staff)

    def pull_logs(self) -> bool:
        """
        Replace local logs with the remote collection (last write wins).

        Alternate sync mode; returns False and leaves local logs untouched
        when nothing usable came back.
        """
        remote = self.sync.pull_logs(self.sync_url)
        if remote is None:
            return False
        self.logs = remote
        self.store.save_logs(self.logs)
        logger.info("Replaced local logs with %d remote log(s)", len(remote))
        return True

    # ── Backup / export ────────────────────────────────────────────────────────
    def export_backup(self) -> str:
        return backup_to_json(self.students, self.logs, self.clock())

    def import_backup(self, text):
        """Overwrite students and logs from a backup; raises BackupFormatError."""
        backup = parse_backup(text)
        self.students = list(backup.students)
        self.logs     = list(backup.logs)
        self.store.save_students(self.students)
        self.store.save_logs(self.logs)
        logger.info("Imported %d student(s) and %d log(s)", len(self.students), len(self.logs))

    def export_csv(self, month: str, week_start=None) -> str:
        return logs_to_csv(logs_in_period(self.logs, month, week_start), self.students)

    def factory_reset(self):
        self.students = []
        self.logs     = []
        self.store.clear()
