"""
Configuration for IEP Minute Pro.

Values come from the environment, with a local .env file loaded first.
Google service-account credentials are not read here; the app takes them
from Streamlit secrets (st.secrets["gcp_service_account"]).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATA_DIR = Path.home() / ".iep_minutes"
SYNC_MODES = ("push", "pull")


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    def __init__(self, data_dir=None, sync_mode: str = "push",
                 sync_timeout: float = 10.0, sync_envelope: bool = False,
                 log_level: str = "INFO"):
        self.data_dir      = Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR
        self.sync_mode     = sync_mode if sync_mode in SYNC_MODES else "push"
        self.sync_timeout  = sync_timeout
        self.sync_envelope = sync_envelope
        self.log_level     = log_level.upper()

    @property
    def pull_enabled(self) -> bool:
        return self.sync_mode == "pull"

    @classmethod
    def from_env(cls) -> "Config":
        try:
            timeout = float(os.getenv("IEP_SYNC_TIMEOUT", "10"))
        except ValueError:
            timeout = 10.0
        return cls(
            data_dir=os.getenv("IEP_DATA_DIR") or None,
            sync_mode=os.getenv("IEP_SYNC_MODE", "push").strip().lower(),
            sync_timeout=timeout,
            sync_envelope=_env_bool("IEP_SYNC_ENVELOPE"),
            log_level=os.getenv("IEP_LOG_LEVEL", "INFO"),
        )

    def to_dict(self):
        return {
            "data_dir":      str(self.data_dir),
            "sync_mode":     self.sync_mode,
            "sync_timeout":  self.sync_timeout,
            "sync_envelope": self.sync_envelope,
            "log_level":     self.log_level,
        }
