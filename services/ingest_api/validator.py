"""Moodtrack - Ingestion request validation.

Pure functions of their inputs: no I/O, no side effects. Each endpoint
variant has its own entry point because the variants differ in which
fields are required and in their mood profile.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.errors import ValidationError
from app.moods import CATALOG_PROFILE, QUICK_PROFILE, MoodProfile

# Accepted audio MIME types (whitelist)
ALLOWED_AUDIO_TYPES = frozenset(
    {
        "audio/mpeg",
        "audio/mp3",
        "audio/wav",
        "audio/x-wav",
        "audio/wave",
        "audio/mp4",
        "audio/x-m4a",
        "audio/flac",
        "audio/x-flac",
        "audio/aac",
    }
)

CATALOG_REQUIRED_FIELDS = ("title", "artist_name", "genre", "duration")


@dataclass
class AudioPayload:
    """An uploaded audio file, fully buffered in memory."""

    data: bytes
    filename: str
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class IngestRequest:
    """Raw ingestion request fields as submitted by the client."""

    mood: str | None = None
    title: str | None = None
    artist_name: str | None = None
    album_name: str | None = None
    genre: str | None = None
    duration: str | None = None
    payload: AudioPayload | None = None
    video_url: str | None = None


@dataclass
class ValidatedTrack:
    """A request that passed validation, with mood already normalized.

    Metadata fields may still be None for the quick variant; they are
    completed after acquisition.
    """

    mood: str
    profile: MoodProfile
    title: str | None = None
    artist_name: str | None = None
    album_name: str | None = None
    genre: str | None = None
    duration: int | None = None
    payload: AudioPayload | None = None
    video_url: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_duration(raw: str | None) -> int | None:
    """Parse a duration in whole seconds.

    Raises:
        ValidationError: If the value is not a non-negative integer.
    """
    raw = _clean(raw)
    if raw is None:
        return None
    try:
        duration = int(raw)
    except ValueError:
        raise ValidationError(f"Invalid duration: {raw}. Expected whole seconds") from None
    if duration < 0:
        raise ValidationError(f"Invalid duration: {raw}. Must not be negative")
    return duration


def _check_payload(payload: AudioPayload | None, max_upload_bytes: int) -> AudioPayload | None:
    """Validate an uploaded file. Zero-byte payloads count as absent."""
    if payload is None or payload.size == 0:
        return None
    content_type = (payload.content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_AUDIO_TYPES:
        raise ValidationError(
            f"Invalid file type: {payload.content_type}. "
            "Supported types: MP3, WAV, M4A, FLAC, AAC"
        )
    if payload.size > max_upload_bytes:
        raise ValidationError(
            f"File too large: {payload.size} bytes (limit {max_upload_bytes} bytes)"
        )
    return payload


def validate_catalog_request(request: IngestRequest, max_upload_bytes: int) -> ValidatedTrack:
    """Validate a POST /upload request.

    Requires a file plus title, artist_name, genre and duration. Unknown
    moods fall back to "other".

    Args:
        request: Raw request fields.
        max_upload_bytes: Size ceiling for the uploaded file.

    Returns:
        ValidatedTrack ready for acquisition.

    Raises:
        ValidationError: On any missing or malformed input.
    """
    if request.payload is None or request.payload.size == 0:
        raise ValidationError("No file uploaded")

    missing = [name for name in CATALOG_REQUIRED_FIELDS if _clean(getattr(request, name)) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    payload = _check_payload(request.payload, max_upload_bytes)

    return ValidatedTrack(
        mood=CATALOG_PROFILE.normalize(request.mood),
        profile=CATALOG_PROFILE,
        title=_clean(request.title),
        artist_name=_clean(request.artist_name),
        album_name=_clean(request.album_name),
        genre=_clean(request.genre),
        duration=_parse_duration(request.duration),
        payload=payload,
    )


def validate_quick_request(request: IngestRequest, max_upload_bytes: int) -> ValidatedTrack:
    """Validate a POST /upload-simple request.

    Requires a mood from the quick profile and either a file or a video
    URL. When both are present the URL wins and the file is ignored.

    Args:
        request: Raw request fields.
        max_upload_bytes: Size ceiling for the uploaded file.

    Returns:
        ValidatedTrack ready for acquisition.

    Raises:
        ValidationError: On any missing or malformed input.
    """
    video_url = _clean(request.video_url)
    payload = None
    if video_url is None:
        payload = _check_payload(request.payload, max_upload_bytes)
        if payload is None:
            raise ValidationError("Provide either an audio file or a YouTube URL")

    mood = QUICK_PROFILE.normalize(request.mood)

    return ValidatedTrack(
        mood=mood,
        profile=QUICK_PROFILE,
        title=_clean(request.title),
        artist_name=_clean(request.artist_name),
        album_name=_clean(request.album_name),
        genre=_clean(request.genre),
        duration=_parse_duration(request.duration),
        payload=payload,
        video_url=video_url,
    )
