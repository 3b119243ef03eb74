"""Moodtrack - Media acquisition.

Turns a validated track into a single audio source ready for upload:
- Direct mode: the buffered upload is passed through unchanged.
- Extraction mode: only the audio track of a remote video is downloaded
  with yt-dlp into a uniquely named scratch file.

Acquisition is a context manager. The scratch file lives exactly as long
as the with-block, so it is removed after the upload step on every exit
path, including upload failure.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

import yt_dlp
from yt_dlp.utils import DownloadError

from app.errors import AcquisitionError, ValidationError
from app.utils.audio_meta import extract_audio_metadata
from app.utils.tempfiles import new_extract_stem, remove_quietly
from app.utils.video_url import canonical_watch_url, extract_video_id
from services.ingest_api.validator import ValidatedTrack

logger = logging.getLogger(__name__)

# yt-dlp leaves these behind for interrupted downloads
_PARTIAL_SUFFIXES = (".part", ".ytdl")


@dataclass
class AcquiredAudio:
    """Audio ready for upload, plus any metadata learned while acquiring it.

    Attributes:
        source: In-memory stream (direct mode) or scratch file path (extraction mode).
        filename: Name used for format guesses and default titles.
        size: Size in bytes.
        title: Video title, extraction mode only.
        uploader: Video uploader/channel, extraction mode only.
        duration: Duration in whole seconds when it could be determined.
    """

    source: BinaryIO | Path
    filename: str
    size: int
    title: str | None = None
    uploader: str | None = None
    duration: int | None = None


class MediaAcquirer:
    """Normalizes both input modes into one AcquiredAudio."""

    def __init__(self, tmp_dir: str | Path, extract_timeout_sec: int):
        self.tmp_dir = Path(tmp_dir)
        self.extract_timeout_sec = extract_timeout_sec

    @contextmanager
    def acquire(self, track: ValidatedTrack) -> Iterator[AcquiredAudio]:
        """Acquire the audio for a validated track.

        Raises:
            ValidationError: If no video ID can be extracted from the URL,
                or the track carries neither a URL nor a payload.
            AcquisitionError: If the extraction download does not complete.
        """
        if track.video_url is None:
            yield self._passthrough(track)
            return

        video_id = extract_video_id(track.video_url)
        if video_id is None:
            raise ValidationError(f"Could not extract a video ID from URL: {track.video_url}")

        stem = new_extract_stem(self.tmp_dir)
        try:
            yield self._download_audio(video_id, stem)
        finally:
            removed = _remove_stem_files(stem)
            logger.debug("Removed %d scratch file(s) for video %s", removed, video_id)

    def _passthrough(self, track: ValidatedTrack) -> AcquiredAudio:
        payload = track.payload
        if payload is None:
            raise ValidationError("No audio payload to acquire")
        meta = extract_audio_metadata(payload.data, payload.filename)
        return AcquiredAudio(
            source=io.BytesIO(payload.data),
            filename=payload.filename,
            size=payload.size,
            duration=meta.whole_seconds,
        )

    def _download_audio(self, video_id: str, stem: Path) -> AcquiredAudio:
        """Download the best audio-only stream for a video.

        Args:
            video_id: 11-character video ID.
            stem: Unique scratch path without extension.

        Returns:
            AcquiredAudio pointing at the downloaded scratch file.

        Raises:
            AcquisitionError: On any download failure or timeout.
        """
        ydl_opts = {
            "format": "bestaudio/best",
            "outtmpl": f"{stem}.%(ext)s",
            "noplaylist": True,
            "quiet": True,
            "no_warnings": True,
            "socket_timeout": self.extract_timeout_sec,
            "retries": 1,
        }

        logger.info("Extracting audio for video %s", video_id)
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(canonical_watch_url(video_id), download=True)
        except DownloadError as e:
            raise AcquisitionError(f"Download failed for video {video_id}: {e}") from e
        except Exception as e:
            raise AcquisitionError(f"Unexpected error downloading video {video_id}: {e}") from e

        downloaded = _completed_stem_files(stem)
        if not info or not downloaded:
            raise AcquisitionError(f"Download did not complete for video {video_id}")

        path = downloaded[0]
        size = path.stat().st_size
        if size == 0:
            raise AcquisitionError(f"Downloaded audio for video {video_id} is empty")

        logger.info("Extracted audio for video %s -> %s (%d bytes)", video_id, path.name, size)
        return AcquiredAudio(
            source=path,
            filename=path.name,
            size=size,
            title=_info_str(info, "title"),
            uploader=_info_str(info, "uploader") or _info_str(info, "channel"),
            duration=_info_duration(info),
        )


def _stem_files(stem: Path) -> list[Path]:
    return sorted(stem.parent.glob(f"{stem.name}*"))


def _completed_stem_files(stem: Path) -> list[Path]:
    return [p for p in _stem_files(stem) if p.is_file() and p.suffix not in _PARTIAL_SUFFIXES]


def _remove_stem_files(stem: Path) -> int:
    return sum(1 for p in _stem_files(stem) if remove_quietly(p))


def _info_str(info: dict[str, Any], key: str) -> str | None:
    value = info.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _info_duration(info: dict[str, Any]) -> int | None:
    value = info.get("duration")
    if isinstance(value, (int, float)) and value >= 0:
        return int(round(value))
    return None
