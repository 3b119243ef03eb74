"""Moodtrack - Configuration.

Filesystem layout constants plus an explicit Settings structure.
Settings is built once at process start (see services.ingest_api.main)
and passed to the components that need it. No external config libraries.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# Repository root (parent of app/)
REPO_ROOT = Path(__file__).parent.parent.resolve()

# Data directory, overridable for tests and deployments
DATA_DIR = Path(os.environ.get("MOODTRACK_DATA_DIR", REPO_ROOT / "data")).resolve()

# Scratch space for extracted audio
TMP_DIR = DATA_DIR / "tmp"

# Default SQLite catalog database
DB_PATH = DATA_DIR / "moodtrack.db"

# Queue directory and Huey database path
QUEUE_DIR = DATA_DIR / "queue"
HUEY_DB_PATH = QUEUE_DIR / "huey.db"

# Remote folder that mood partitions live under
DEFAULT_STORAGE_ROOT_FOLDER = "songs"

# Upload form ceiling
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024

DEFAULT_UPLOAD_TIMEOUT_SEC = 120
DEFAULT_EXTRACT_TIMEOUT_SEC = 60

# How long a SQLite writer waits for another transaction's write lock
SQLITE_BUSY_TIMEOUT_SEC = 30

# Deferred orphan purge retry policy: initial attempt + 3 retries
ORPHAN_PURGE_RETRIES = 3
ORPHAN_PURGE_RETRY_DELAY_SECONDS = 300


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment.

    Args:
        name: Environment variable name.
        default: Value used when unset or malformed.

    Returns:
        The parsed value, or default.
    """
    env_val = os.environ.get(name)
    if env_val:
        try:
            value = int(env_val)
            if value > 0:
                return value
        except ValueError:
            pass
    return default


def _env_flag(name: str, default: bool) -> bool:
    env_val = os.environ.get(name)
    if env_val is None or env_val == "":
        return default
    return env_val.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CloudinaryCredentials:
    """Credentials for the remote blob store."""

    cloud_name: str | None = None
    api_key: str | None = None
    api_secret: str | None = None

    def presence(self) -> dict[str, bool]:
        """Which credentials are set, safe to log."""
        return {
            "cloud_name": bool(self.cloud_name),
            "api_key": bool(self.api_key),
            "api_secret": bool(self.api_secret),
        }


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, constructed once and passed by reference."""

    database_url: str = f"sqlite:///{DB_PATH}"
    cloudinary: CloudinaryCredentials = CloudinaryCredentials()
    tmp_dir: Path = TMP_DIR
    storage_root_folder: str = DEFAULT_STORAGE_ROOT_FOLDER
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    upload_timeout_sec: int = DEFAULT_UPLOAD_TIMEOUT_SEC
    extract_timeout_sec: int = DEFAULT_EXTRACT_TIMEOUT_SEC
    orphan_purge_enabled: bool = True

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables.

        Environment variables:
        - MOODTRACK_DATABASE_URL: SQLAlchemy URL (default: SQLite under DATA_DIR)
        - CLOUD_NAME, CLOUD_API_KEY, CLOUD_API_SECRET: Cloudinary credentials
        - MOODTRACK_TMP_DIR: scratch directory for extracted audio
        - MOODTRACK_MAX_UPLOAD_BYTES, MOODTRACK_UPLOAD_TIMEOUT_SEC,
          MOODTRACK_EXTRACT_TIMEOUT_SEC: positive integers
        - MOODTRACK_ORPHAN_PURGE: "0" disables deferred orphan purge

        Returns:
            A frozen Settings instance.
        """
        return cls(
            database_url=os.environ.get("MOODTRACK_DATABASE_URL") or f"sqlite:///{DB_PATH}",
            cloudinary=CloudinaryCredentials(
                cloud_name=os.environ.get("CLOUD_NAME"),
                api_key=os.environ.get("CLOUD_API_KEY"),
                api_secret=os.environ.get("CLOUD_API_SECRET"),
            ),
            tmp_dir=Path(os.environ.get("MOODTRACK_TMP_DIR") or TMP_DIR),
            storage_root_folder=os.environ.get("MOODTRACK_STORAGE_FOLDER")
            or DEFAULT_STORAGE_ROOT_FOLDER,
            max_upload_bytes=_env_int("MOODTRACK_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
            upload_timeout_sec=_env_int("MOODTRACK_UPLOAD_TIMEOUT_SEC", DEFAULT_UPLOAD_TIMEOUT_SEC),
            extract_timeout_sec=_env_int(
                "MOODTRACK_EXTRACT_TIMEOUT_SEC", DEFAULT_EXTRACT_TIMEOUT_SEC
            ),
            orphan_purge_enabled=_env_flag("MOODTRACK_ORPHAN_PURGE", True),
        )
