"""CSV log export and JSON team backup."""

import csv
import json
from datetime import date

import pandas as pd
from pydantic import ValidationError

from iepminutes.errors import BackupFormatError
from iepminutes.schemas import Backup, LogEntry, Student

CSV_COLUMNS = ["Date", "Staff", "Student", "Grade", "Subject", "Minutes", "Notes"]
BACKUP_VERSION = "1.0"


def logs_to_csv(logs: list[LogEntry], students: list[Student]) -> str:
    """
    One row per log. Text columns are always double-quoted, embedded quotes
    doubled; unknown students export as "Unknown" with grade "N/A".
    """
    by_id = {s.id: s for s in students}
    rows  = []
    for log in logs:
        stu = by_id.get(log.student_id)
        rows.append({
            "Date":    log.date.isoformat(),
            "Staff":   log.staff_name or "Anonymous",
            "Student": stu.name if stu else "Unknown",
            "Grade":   stu.grade.value if stu else "N/A",
            "Subject": log.subject.value,
            "Minutes": int(log.minutes),
            "Notes":   log.notes or "",
        })
    df = pd.DataFrame(rows, columns=CSV_COLUMNS)
    return df.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")


def csv_filename(month: str) -> str:
    return f"IEP_Team_Logs_{month.replace(' ', '_')}.csv"


def backup_to_json(students: list[Student], logs: list[LogEntry], timestamp: int) -> str:
    backup = Backup(students=students, logs=logs, version=BACKUP_VERSION, timestamp=timestamp)
    return json.dumps(backup.to_json_dict(), indent=2)


def backup_filename(day: date = None) -> str:
    return f"IEP_Team_Backup_{(day or date.today()).isoformat()}.json"


def parse_backup(text) -> Backup:
    """Read a backup file; it must at least carry a ``students`` array."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise BackupFormatError("Invalid setup file.") from e
    if not isinstance(data, dict) or not isinstance(data.get("students"), list):
        raise BackupFormatError("Invalid setup file: no students list.")
    data.setdefault("logs", [])
    if data["logs"] is None:
        data["logs"] = []
    try:
        return Backup.model_validate(data)
    except ValidationError as e:
        raise BackupFormatError(f"Invalid setup file: {e.error_count()} bad record(s).") from e
