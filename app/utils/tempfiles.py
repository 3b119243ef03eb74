"""Moodtrack - Scratch file utilities.

Extracted audio is written to uniquely named files under the scratch
directory. The naming pattern lets startup cleanup recognise leftovers
from a crashed process without touching anything else.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

# Marker embedded in every extraction file name: <uuid>.extract.<ext>
EXTRACT_MARKER = ".extract"


def new_extract_stem(tmp_dir: str | Path) -> Path:
    """Return a unique path stem for an extraction download.

    The downloader appends the real extension. Does NOT create the file,
    but does create tmp_dir.

    Args:
        tmp_dir: Scratch directory.

    Returns:
        Path: {tmp_dir}/{uuid4 hex}.extract
    """
    tmp_dir = Path(tmp_dir)
    tmp_dir.mkdir(parents=True, exist_ok=True)
    return tmp_dir / f"{uuid.uuid4().hex}{EXTRACT_MARKER}"


def remove_quietly(path: str | Path | None) -> bool:
    """Unlink a file, ignoring a missing file.

    Returns:
        True if a file was removed.
    """
    if path is None:
        return False
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError:
        logger.warning("Failed to remove scratch file %s", path, exc_info=True)
        return False


def cleanup_orphan_temp_files(directory: str | Path) -> int:
    """Clean up orphan extraction files in a directory.

    Called during startup to remove downloads abandoned by a crash.

    Args:
        directory: Directory to scan.

    Returns:
        Number of files removed.
    """
    directory = Path(directory)
    removed = 0

    if not directory.exists():
        return 0

    for temp_file in directory.glob(f"*{EXTRACT_MARKER}*"):
        if temp_file.is_file() and remove_quietly(temp_file):
            removed += 1

    return removed
