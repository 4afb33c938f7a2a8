"""
sync.py: best-effort sync of session logs to a shared spreadsheet.

The sync URL picks the backend:
  • a Google Sheets URL (docs.google.com/spreadsheets/...) is written with
    gspread through a service account; logs go to a "logs" worksheet with
    columns id, student_id, subject, staff, minutes, date, note, timestamp
  • any other http(s) URL is treated as a web app endpoint (for example a
    Google Apps Script deployment): logs are POSTed as a JSON array, or as
    {"data": [...]} when the envelope option is on; GET returns the same

Pushes are fire-and-forget: failures are logged and never reach the caller.
Local state always stays authoritative.
"""

import logging
import threading
from typing import Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.exceptions import GSpreadException, WorksheetNotFound
from pydantic import TypeAdapter

from iepminutes.errors import SyncError
from iepminutes.schemas import LogEntry

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

SHEETS_URL_MARKER = "docs.google.com/spreadsheets"
LOG_HEADERS = ["id", "student_id", "subject", "staff", "minutes", "date", "note", "timestamp"]
DEFAULT_TIMEOUT = 10

SYNC_ERRORS = (
    requests.RequestException,
    GSpreadException,
    GoogleAuthError,
    SyncError,
    KeyError,
    TypeError,
    ValueError,
)

_log_list = TypeAdapter(list[LogEntry])


def is_sheets_url(url: str) -> bool:
    return SHEETS_URL_MARKER in (url or "")


# ══════════════════════════════════════════════════════════════════════════════
# GOOGLE SHEETS BACKEND
# ══════════════════════════════════════════════════════════════════════════════
class SheetsSync:
    """Thin wrapper around gspread for the shared logs worksheet."""

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_service_account(cls, creds_info: dict) -> "SheetsSync":
        creds = Credentials.from_service_account_info(dict(creds_info), scopes=SCOPES)
        return cls(gspread.authorize(creds))

    def _get_or_create_sheet(self, spreadsheet, title: str, headers: list[str]):
        try:
            ws = spreadsheet.worksheet(title)
        except WorksheetNotFound:
            ws = spreadsheet.add_worksheet(title=title, rows=1000, cols=len(headers))
            ws.append_row(headers)
        return ws

    def _logs_ws(self, url: str):
        spreadsheet = self.client.open_by_url(url)
        return self._get_or_create_sheet(spreadsheet, "logs", LOG_HEADERS)

    def push_logs(self, url: str, logs: list[LogEntry]):
        ws = self._logs_ws(url)
        ws.append_rows([
            [log.id, log.student_id, log.subject.value, log.staff_name,
             int(log.minutes), log.date.isoformat(), log.notes or "", log.timestamp]
            for log in logs
        ])

    def pull_logs(self, url: str) -> list[LogEntry]:
        records = self._logs_ws(url).get_all_records()
        return [
            LogEntry(
                id=rec["id"],
                student_id=rec["student_id"],
                subject=rec["subject"],
                minutes=int(rec["minutes"] or 0),
                date=str(rec["date"]),
                staff_name=rec.get("staff", ""),
                notes=rec.get("note") or None,
                timestamp=int(rec.get("timestamp") or 0),
            )
            for rec in records
        ]


# ══════════════════════════════════════════════════════════════════════════════
# WEB APP BACKEND
# ══════════════════════════════════════════════════════════════════════════════
class WebAppSync:
    """POST/GET JSON log arrays to a user-supplied endpoint."""

    def __init__(self, session: requests.Session = None,
                 timeout: float = DEFAULT_TIMEOUT, envelope: bool = False):
        self.session  = session or requests.Session()
        self.timeout  = timeout
        self.envelope = envelope

    def push_logs(self, url: str, logs: list[LogEntry]):
        payload = [log.to_json_dict() for log in logs]
        if self.envelope:
            payload = {"data": payload}
        resp = self.session.post(url, json=payload, timeout=self.timeout)
        resp.raise_for_status()

    def pull_logs(self, url: str) -> list[LogEntry]:
        resp = self.session.get(url, timeout=self.timeout)
        resp.raise_for_status()
        data = resp.json()
        if isinstance(data, dict):
            data = data.get("data")
        if not isinstance(data, list):
            raise SyncError(f"Expected a JSON array of logs from {url}")
        return _log_list.validate_python(data)


# ══════════════════════════════════════════════════════════════════════════════
# DISPATCHER
# ══════════════════════════════════════════════════════════════════════════════
class SyncClient:
    """
    Routes a sync URL to its backend and keeps failures off the caller.

    ``background=False`` runs pushes inline, which tests rely on.
    """

    def __init__(self, web: WebAppSync = None, sheets: SheetsSync = None,
                 background: bool = True):
        self.web        = web or WebAppSync()
        self.sheets     = sheets
        self.background = background

    def _backend(self, url: str):
        if is_sheets_url(url):
            if self.sheets is None:
                raise SyncError("Google Sheets sync needs gcp_service_account credentials")
            return self.sheets
        return self.web

    def _push(self, url: str, logs: list[LogEntry]):
        try:
            self._backend(url).push_logs(url, logs)
            logger.info("Synced %d log(s) to %s", len(logs), url)
        except SYNC_ERRORS:
            logger.exception("Cloud sync failed for %s", url)

    def push_logs(self, url: str, logs: list[LogEntry]):
        url = (url or "").strip()
        if not url or not logs:
            return
        logs = list(logs)
        if self.background:
            threading.Thread(
                target=self._push, args=(url, logs), name="iep-sync-push", daemon=True
            ).start()
        else:
            self._push(url, logs)

    def pull_logs(self, url: str) -> Optional[list[LogEntry]]:
        """Remote log collection, or None when there is none to be had."""
        url = (url or "").strip()
        if not url:
            return None
        try:
            logs = self._backend(url).pull_logs(url)
        except SYNC_ERRORS:
            logger.exception("Pull from %s failed", url)
            return None
        logger.info("Pulled %d log(s) from %s", len(logs), url)
        return logs
