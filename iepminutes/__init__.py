"""IEP Minute Pro: service-minute logging and goal tracking for IEP teams."""

from iepminutes.schemas import (
    DEFAULT_STAFF,
    GRADES,
    SUBJECTS,
    Backup,
    Grade,
    LogEntry,
    StaffMember,
    Student,
    Subject,
)
from iepminutes.errors import (
    BackupFormatError,
    IEPError,
    SessionValidationError,
    StoreError,
    StudentValidationError,
    SyncError,
)
from iepminutes.store import LocalStore
from iepminutes.sync import SheetsSync, SyncClient, WebAppSync
from iepminutes.tracker import Tracker

__version__ = "1.0.0"
