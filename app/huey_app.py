"""Moodtrack - Huey task queue configuration.

Huey setup with SQLite backend for deferred cleanup of orphaned remote
objects: audio that was stored in Cloudinary but whose song row never
committed, or whose row was deleted while the remote delete failed.

How to run:
1. Start the API:
   uvicorn services.ingest_api.main:app

2. Start the Huey consumer (processes queued purges):
   huey_consumer.py app.huey_app.huey
"""

from __future__ import annotations

import logging
from pathlib import Path

from huey import SqliteHuey

from app.config import (
    HUEY_DB_PATH,
    ORPHAN_PURGE_RETRIES,
    ORPHAN_PURGE_RETRY_DELAY_SECONDS,
    QUEUE_DIR,
    Settings,
)

logger = logging.getLogger(__name__)


class OrphanPurgeFailed(Exception):
    """Raised inside the task so Huey schedules a retry."""


def _ensure_queue_dir() -> None:
    """Ensure the queue directory exists."""
    Path(QUEUE_DIR).mkdir(parents=True, exist_ok=True)


# Ensure queue directory exists before creating Huey instance
_ensure_queue_dir()

huey = SqliteHuey(
    name="moodtrack",
    filename=str(HUEY_DB_PATH),
    immediate=False,  # Tasks queued for consumer processing
)


def _build_blob_store():
    # Import here to avoid circular imports
    from services.ingest_api.blob_store import CloudinaryBlobStore

    settings = Settings.from_env()
    return CloudinaryBlobStore(
        settings.cloudinary,
        root_folder=settings.storage_root_folder,
        timeout_sec=settings.upload_timeout_sec,
    )


@huey.task(retries=ORPHAN_PURGE_RETRIES, retry_delay=ORPHAN_PURGE_RETRY_DELAY_SECONDS)
def purge_orphan_object_task(object_id: str) -> dict:
    """Delete a remote object left behind by a failed pipeline step.

    Args:
        object_id: Remote object identifier (Cloudinary public_id).

    Returns:
        Dict with the purge result (for logging/debugging).

    Raises:
        OrphanPurgeFailed: If the delete did not succeed; Huey retries.
    """
    logger.info("Orphan purge started for public_id=%s", object_id)
    if not _build_blob_store().delete(object_id):
        raise OrphanPurgeFailed(f"Remote delete failed for public_id={object_id}")
    logger.info("Orphan purge completed for public_id=%s", object_id)
    return {"object_id": object_id, "deleted": True}


def enqueue_orphan_purge(object_id: str) -> None:
    """Enqueue a deferred purge of a remote object.

    Non-blocking: returns immediately even if the consumer is not running.
    The task is persisted in SQLite and processed when the consumer starts.

    Args:
        object_id: Remote object identifier.
    """
    logger.info("Enqueueing orphan purge for public_id=%s", object_id)
    purge_orphan_object_task(object_id)
