"""Moodtrack - Ingestion and deletion workflows.

IngestionOrchestrator sequences one ingestion through a linear state machine:

    VALIDATING -> ACQUIRING -> UPLOADING -> PERSISTING -> DONE
                                                  \\-> FAILED (from any of the first four)

The upload finishes before any database session is opened; no connection
or transaction is held while bytes are in flight. If persisting fails after
a successful upload, the stored object is deleted once as a compensating
action and the PersistenceError is re-raised whatever the
compensation's outcome.

DeletionWorkflow runs the same resources in reverse: look up the song,
try to delete its remote object, then delete the row. A failed remote
delete does not stop the row from being removed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from app.errors import NotFoundError, PersistenceError, PipelineError
from services.ingest_api.acquire import AcquiredAudio, MediaAcquirer
from services.ingest_api.blob_store import BlobStore, StoredObject
from services.ingest_api.persistence import SongDraft, TransactionCoordinator
from services.ingest_api.validator import (
    IngestRequest,
    ValidatedTrack,
    validate_catalog_request,
    validate_quick_request,
)

logger = logging.getLogger(__name__)

SINGLE_LABEL = "Single"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_GENRE = "Unknown"
UNTITLED = "Untitled"


class IngestState(StrEnum):
    """Ingestion pipeline states."""

    VALIDATING = "validating"
    ACQUIRING = "acquiring"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


# --- Result Types ---


@dataclass
class IngestOutcome:
    """Result of a successful ingestion."""

    song_id: int
    title: str
    artist: str
    genre: str
    mood: str
    url: str
    object_id: str
    album: str | None = None

    @property
    def album_label(self) -> str:
        return self.album or SINGLE_LABEL


@dataclass
class DeletionResult:
    """Result of a song deletion.

    remote_deleted=False with the row gone is a valid terminal outcome:
    the remote object may still exist.
    """

    song_id: int
    title: str
    artist: str
    mood: str
    remote_deleted: bool


# --- Orphan Purge ---


def _enqueue_orphan_purge_safe(object_id: str) -> None:
    """Enqueue a deferred purge of a remote object, silently handling errors.

    Best-effort: if Huey is not available or enqueueing fails, we log the
    error and carry on.
    """
    try:
        from app.huey_app import enqueue_orphan_purge

        enqueue_orphan_purge(object_id)
    except Exception:
        logger.warning(
            "Failed to enqueue orphan purge for public_id=%s (non-fatal)",
            object_id,
            exc_info=True,
        )


def _delete_remote_safe(blob_store: BlobStore, object_id: str) -> bool:
    try:
        return bool(blob_store.delete(object_id))
    except Exception:
        logger.warning("Remote delete raised for public_id=%s", object_id, exc_info=True)
        return False


# --- Ingestion ---


def complete_draft(track: ValidatedTrack, audio: AcquiredAudio) -> SongDraft:
    """Fill metadata the client left out from what acquisition learned.

    Args:
        track: Validated request.
        audio: Acquired audio, possibly carrying extraction metadata.

    Returns:
        SongDraft with every required field set.
    """
    fallback_title = None
    if track.payload is not None:
        fallback_title = Path(track.payload.filename).stem or None

    if track.duration is not None:
        duration = track.duration
    else:
        duration = audio.duration or 0

    return SongDraft(
        title=track.title or audio.title or fallback_title or UNTITLED,
        artist_name=track.artist_name or audio.uploader or UNKNOWN_ARTIST,
        album_name=track.album_name,
        genre=track.genre or UNKNOWN_GENRE,
        duration=duration,
        mood=track.mood,
    )


class IngestionOrchestrator:
    """Facade over validation, acquisition, upload and persistence."""

    def __init__(
        self,
        acquirer: MediaAcquirer,
        blob_store: BlobStore,
        coordinator: TransactionCoordinator,
        max_upload_bytes: int,
        orphan_purge_enabled: bool = False,
    ):
        self.acquirer = acquirer
        self.blob_store = blob_store
        self.coordinator = coordinator
        self.max_upload_bytes = max_upload_bytes
        self.orphan_purge_enabled = orphan_purge_enabled

    def ingest_catalog(self, request: IngestRequest) -> IngestOutcome:
        """Ingest through the catalog variant (POST /upload)."""
        return self._run(request, validate_catalog_request)

    def ingest_quick(self, request: IngestRequest) -> IngestOutcome:
        """Ingest through the quick variant (POST /upload-simple)."""
        return self._run(request, validate_quick_request)

    def _run(
        self,
        request: IngestRequest,
        validate: Callable[[IngestRequest, int], ValidatedTrack],
    ) -> IngestOutcome:
        """Drive one request through the state machine.

        Raises:
            ValidationError, AcquisitionError, UpstreamUploadError, PersistenceError:
                The error of the stage that failed. failed_state is set on it.
        """
        state = IngestState.VALIDATING
        try:
            track = validate(request, self.max_upload_bytes)
            logger.debug("Validated %s request: mood=%s", track.profile.name, track.mood)

            state = IngestState.ACQUIRING
            with self.acquirer.acquire(track) as audio:
                state = IngestState.UPLOADING
                stored = self.blob_store.upload(audio.source, track.mood)
                draft = complete_draft(track, audio)

            state = IngestState.PERSISTING
            try:
                song_id = self.coordinator.ingest(draft, stored.url, stored.object_id)
            except PersistenceError:
                self._compensate(stored)
                raise
        except PipelineError as e:
            e.failed_state = state
            logger.warning("Ingest failed in state=%s: %s", state, e.message)
            raise

        state = IngestState.DONE
        logger.info("Ingest done: song_id=%s mood=%s", song_id, draft.mood)
        return IngestOutcome(
            song_id=song_id,
            title=draft.title,
            artist=draft.artist_name,
            album=draft.album_name,
            genre=draft.genre,
            mood=draft.mood,
            url=stored.url,
            object_id=stored.object_id,
        )

    def _compensate(self, stored: StoredObject) -> None:
        """Delete an object whose song row never committed. Attempted once."""
        logger.warning("Persisting failed; deleting orphaned public_id=%s", stored.object_id)
        if _delete_remote_safe(self.blob_store, stored.object_id):
            return
        logger.warning("Compensating delete failed for public_id=%s", stored.object_id)
        if self.orphan_purge_enabled:
            _enqueue_orphan_purge_safe(stored.object_id)


# --- Deletion ---


class DeletionWorkflow:
    """Removes a song and, best-effort, its remote object."""

    def __init__(
        self,
        blob_store: BlobStore,
        coordinator: TransactionCoordinator,
        orphan_purge_enabled: bool = False,
    ):
        self.blob_store = blob_store
        self.coordinator = coordinator
        self.orphan_purge_enabled = orphan_purge_enabled

    def delete_song(self, song_id: int) -> DeletionResult:
        """Delete a song.

        Args:
            song_id: Catalog song identifier.

        Returns:
            DeletionResult describing the removed song.

        Raises:
            NotFoundError: If the song does not exist. Nothing is written.
            PersistenceError: If the row delete fails (rolled back).
        """
        record = self.coordinator.find_song(song_id)
        if record is None:
            raise NotFoundError(f"Song {song_id}")

        remote_deleted = False
        if record.object_id:
            remote_deleted = _delete_remote_safe(self.blob_store, record.object_id)
            if not remote_deleted:
                logger.warning(
                    "Remote object public_id=%s kept; deleting song id=%s anyway",
                    record.object_id,
                    song_id,
                )
                if self.orphan_purge_enabled:
                    _enqueue_orphan_purge_safe(record.object_id)

        self.coordinator.delete_song(song_id)
        logger.info("Song deleted: id=%s remote_deleted=%s", song_id, remote_deleted)

        return DeletionResult(
            song_id=record.song_id,
            title=record.title,
            artist=record.artist_name,
            mood=record.mood,
            remote_deleted=remote_deleted,
        )
