"""Moodtrack - Ingest API FastAPI application.

HTTP surface for the ingestion and deletion pipelines:
- POST /upload          catalog variant (full metadata, file only)
- POST /upload-simple   quick variant (mood + file or YouTube URL)
- DELETE /songs/{id}    deletion workflow

Endpoints are plain `def` so FastAPI runs them in its threadpool; the
blocking upload never stalls the event loop. Collaborators are wired
through FastAPI dependencies so tests can override them.

Run with:
    uvicorn services.ingest_api.main:app --reload  # dev server only
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app import __version__
from app.config import Settings
from app.db import init_db
from app.errors import PipelineError, PipelineErrorCode, error_code_to_status
from app.schemas import (
    CatalogIngestResponse,
    DeletedSongSummary,
    DeleteSongResponse,
    ErrorResponse,
    QuickIngestResponse,
    SongSummary,
)
from services.ingest_api.acquire import MediaAcquirer
from services.ingest_api.blob_store import BlobStore, CloudinaryBlobStore
from services.ingest_api.persistence import TransactionCoordinator
from services.ingest_api.service import (
    DeletionWorkflow,
    IngestionOrchestrator,
)
from services.ingest_api.validator import AudioPayload, IngestRequest

logger = logging.getLogger(__name__)

# --- Process State (initialized on startup) ---

_settings: Settings | None = None
_session_factory = None
_blob_store: BlobStore | None = None


def get_settings() -> Settings:
    """Get the process settings.

    Raises:
        RuntimeError: If settings not initialized (app lifespan not invoked).
    """
    if _settings is None:
        raise RuntimeError("Settings not initialized. App lifespan not invoked?")
    return _settings


def get_session_factory():
    """Get the session factory.

    Raises:
        RuntimeError: If session factory not initialized (app lifespan not invoked).
    """
    if _session_factory is None:
        raise RuntimeError("Session factory not initialized. App lifespan not invoked?")
    return _session_factory


def get_blob_store() -> BlobStore:
    """Get the remote blob store.

    Raises:
        RuntimeError: If blob store not initialized (app lifespan not invoked).
    """
    if _blob_store is None:
        raise RuntimeError("Blob store not initialized. App lifespan not invoked?")
    return _blob_store


def get_coordinator(
    session_factory: Annotated[object, Depends(get_session_factory)],
) -> TransactionCoordinator:
    """Dependency that provides the transaction coordinator."""
    return TransactionCoordinator(session_factory)


def get_orchestrator(
    settings: Annotated[Settings, Depends(get_settings)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    coordinator: Annotated[TransactionCoordinator, Depends(get_coordinator)],
) -> IngestionOrchestrator:
    """Dependency that provides an ingestion orchestrator."""
    return IngestionOrchestrator(
        acquirer=MediaAcquirer(settings.tmp_dir, settings.extract_timeout_sec),
        blob_store=blob_store,
        coordinator=coordinator,
        max_upload_bytes=settings.max_upload_bytes,
        orphan_purge_enabled=settings.orphan_purge_enabled,
    )


def get_deletion_workflow(
    settings: Annotated[Settings, Depends(get_settings)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    coordinator: Annotated[TransactionCoordinator, Depends(get_coordinator)],
) -> DeletionWorkflow:
    """Dependency that provides the deletion workflow."""
    return DeletionWorkflow(
        blob_store=blob_store,
        coordinator=coordinator,
        orphan_purge_enabled=settings.orphan_purge_enabled,
    )


# --- Lifespan ---


def _cleanup_orphan_temp_files_safe(settings: Settings) -> None:
    """Remove extraction scratch files left by a previous crash (best-effort).

    Never crashes startup.
    """
    from app.utils.tempfiles import cleanup_orphan_temp_files

    try:
        removed = cleanup_orphan_temp_files(settings.tmp_dir)
        if removed > 0:
            logger.info("Startup cleanup: removed %d orphan scratch files", removed)
    except Exception:
        logger.warning("Startup cleanup failed (non-fatal)", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Builds Settings once, initializes the database and the blob store,
    and cleans up orphan scratch files.
    """
    global _settings, _session_factory, _blob_store
    _settings = Settings.from_env()

    engine, _session_factory = init_db(_settings.database_url)

    logger.info("Cloudinary credentials present: %s", _settings.cloudinary.presence())
    _blob_store = CloudinaryBlobStore(
        _settings.cloudinary,
        root_folder=_settings.storage_root_folder,
        timeout_sec=_settings.upload_timeout_sec,
    )

    _cleanup_orphan_temp_files_safe(_settings)

    yield

    engine.dispose()


# --- FastAPI App ---


app = FastAPI(
    title="Moodtrack - Ingest API",
    description="Music track ingestion into the mood catalog.",
    version=__version__,
    lifespan=lifespan,
)


# --- Error Handling ---


def make_error_response(error_code: str, message: str) -> JSONResponse:
    """Create a JSON error response."""
    return JSONResponse(
        status_code=error_code_to_status(error_code),
        content=ErrorResponse(error=message, error_code=error_code).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed path/form parameters in the standard error shape."""
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part not in ("path", "body"))
        problems.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return make_error_response(
        PipelineErrorCode.VALIDATION_FAILED,
        "Invalid request: " + "; ".join(problems),
    )


def _unexpected_error_response(action: str) -> JSONResponse:
    # Log full exception server-side, return generic message to client
    logger.exception("Unexpected error during %s", action)
    return make_error_response(
        PipelineErrorCode.INTERNAL_ERROR,
        f"An unexpected error occurred during {action}",
    )


def _read_payload(song: UploadFile | None, max_upload_bytes: int) -> AudioPayload | None:
    """Buffer an uploaded file.

    Reads at most one byte past the limit so the validator can reject
    oversized files without buffering all of them.
    """
    if song is None:
        return None
    return AudioPayload(
        data=song.file.read(max_upload_bytes + 1),
        filename=song.filename or "unknown",
        content_type=song.content_type,
    )


_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation failed"},
    500: {"model": ErrorResponse, "description": "Upload or persistence failed"},
}


# --- Endpoints ---


@app.post(
    "/upload",
    response_model=CatalogIngestResponse,
    responses=_ERROR_RESPONSES,
    summary="Upload a song with full catalog metadata",
)
def upload_song(
    settings: Annotated[Settings, Depends(get_settings)],
    orchestrator: Annotated[IngestionOrchestrator, Depends(get_orchestrator)],
    song: Annotated[UploadFile | None, File(description="Audio file")] = None,
    title: Annotated[str | None, Form()] = None,
    artist_name: Annotated[str | None, Form()] = None,
    album_name: Annotated[str | None, Form()] = None,
    genre: Annotated[str | None, Form()] = None,
    duration: Annotated[str | None, Form(description="Duration in whole seconds")] = None,
    mood: Annotated[str | None, Form()] = None,
):
    """Upload a song through the catalog variant.

    Required: song, title, artist_name, genre, duration. Unknown moods are
    stored as "other".
    """
    logger.info("Upload request received: file=%s", song.filename if song else None)
    request = IngestRequest(
        mood=mood,
        title=title,
        artist_name=artist_name,
        album_name=album_name,
        genre=genre,
        duration=duration,
        payload=_read_payload(song, settings.max_upload_bytes),
    )

    try:
        outcome = orchestrator.ingest_catalog(request)
    except PipelineError as e:
        return make_error_response(e.error_code, e.message)
    except Exception:
        return _unexpected_error_response("upload")

    return CatalogIngestResponse(
        url=outcome.url,
        mood=outcome.mood,
        artist=outcome.artist,
        album=outcome.album_label,
        song_id=outcome.song_id,
    )


@app.post(
    "/upload-simple",
    response_model=QuickIngestResponse,
    responses=_ERROR_RESPONSES,
    summary="Upload a song from a file or a YouTube link",
)
def upload_song_simple(
    settings: Annotated[Settings, Depends(get_settings)],
    orchestrator: Annotated[IngestionOrchestrator, Depends(get_orchestrator)],
    mood: Annotated[str | None, Form()] = None,
    song: Annotated[UploadFile | None, File(description="Audio file")] = None,
    youtube_url: Annotated[str | None, Form(alias="youtubeUrl")] = None,
    title: Annotated[str | None, Form()] = None,
    artist_name: Annotated[str | None, Form()] = None,
    genre: Annotated[str | None, Form()] = None,
):
    """Upload a song through the quick variant.

    Requires a mood (love, sadness, old_melody, energy) and either a file or
    a YouTube URL. Missing metadata is filled from the video or file.
    """
    logger.info(
        "Simple upload request received: file=%s url=%s",
        song.filename if song else None,
        youtube_url,
    )
    request = IngestRequest(
        mood=mood,
        title=title,
        artist_name=artist_name,
        genre=genre,
        payload=_read_payload(song, settings.max_upload_bytes),
        video_url=youtube_url,
    )

    try:
        outcome = orchestrator.ingest_quick(request)
    except PipelineError as e:
        return make_error_response(e.error_code, e.message)
    except Exception:
        return _unexpected_error_response("upload")

    return QuickIngestResponse(
        url=outcome.url,
        mood=outcome.mood,
        song=SongSummary(
            id=outcome.song_id,
            title=outcome.title,
            mood=outcome.mood,
            artist=outcome.artist,
            genre=outcome.genre,
            url=outcome.url,
        ),
    )


@app.delete(
    "/songs/{song_id}",
    response_model=DeleteSongResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Song not found"},
        500: {"model": ErrorResponse, "description": "Deletion failed"},
    },
    summary="Delete a song and its stored audio",
)
def delete_song(
    song_id: int,
    workflow: Annotated[DeletionWorkflow, Depends(get_deletion_workflow)],
):
    """Delete a song.

    The row is removed even when the remote delete fails;
    cloudinaryDeleted reports which happened.
    """
    try:
        result = workflow.delete_song(song_id)
    except PipelineError as e:
        return make_error_response(e.error_code, e.message)
    except Exception:
        return _unexpected_error_response("delete")

    return DeleteSongResponse(
        deleted_song=DeletedSongSummary(
            id=result.song_id,
            title=result.title,
            artist=result.artist,
            mood=result.mood,
        ),
        cloudinary_deleted=result.remote_deleted,
    )


@app.get("/health", summary="Health check")
def health_check():
    """Simple health check endpoint."""
    return {"status": "ok"}
