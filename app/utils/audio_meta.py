"""Moodtrack - Audio metadata extraction utilities.

Best-effort metadata extraction using only stdlib (wave module for WAV files).
Used to fill in a duration when the client did not supply one.
Extraction failures never block ingest.
"""

import io
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO


@dataclass
class RawAudioMetadata:
    """Raw audio metadata extracted from a payload (best-effort).

    All fields may be None if extraction fails or is not supported.
    """

    duration_sec: float | None = None
    sample_rate: int | None = None
    channels: int | None = None
    format_guess: str | None = None

    @property
    def whole_seconds(self) -> int | None:
        """Duration rounded to whole seconds, as stored on a song."""
        if self.duration_sec is None:
            return None
        return int(round(self.duration_sec))


def extract_audio_metadata(source: bytes | str | Path, filename: str | None = None) -> RawAudioMetadata:
    """Extract metadata from audio bytes or an audio file using stdlib only.

    Best-effort extraction:
    - For WAV payloads: uses stdlib wave module
    - For anything else: returns format_guess from extension only

    This function NEVER raises exceptions.

    Args:
        source: Raw audio bytes, or a path to the audio file.
        filename: Name used for the format guess. Defaults to the path name.

    Returns:
        RawAudioMetadata with available fields filled in.
    """
    if filename is None and not isinstance(source, bytes):
        filename = str(source)
    format_guess = guess_format_from_extension(filename or "")
    metadata = RawAudioMetadata(format_guess=format_guess)

    if format_guess == "wav":
        try:
            if isinstance(source, bytes):
                metadata = _extract_wav_metadata(io.BytesIO(source))
            else:
                with open(source, "rb") as f:
                    metadata = _extract_wav_metadata(f)
        except Exception:
            # Best-effort: keep format guess on failure
            pass

    return metadata


def _extract_wav_metadata(stream: BinaryIO) -> RawAudioMetadata:
    """Extract metadata from a WAV stream using stdlib wave module.

    Raises:
        Exception: If wave module cannot read the stream.
    """
    with wave.open(stream, "rb") as wf:
        sample_rate = wf.getframerate()
        channels = wf.getnchannels()
        n_frames = wf.getnframes()

        duration_sec = n_frames / sample_rate if sample_rate > 0 else None

        return RawAudioMetadata(
            duration_sec=duration_sec,
            sample_rate=sample_rate,
            channels=channels,
            format_guess="wav",
        )


def guess_format_from_extension(filename: str) -> str | None:
    """Guess audio format from filename extension.

    Args:
        filename: Filename or path string.

    Returns:
        Lowercase extension without dot, or None if no extension.
    """
    path = Path(filename)
    ext = path.suffix.lower().lstrip(".")
    return ext if ext else None


__all__ = [
    "RawAudioMetadata",
    "extract_audio_metadata",
    "guess_format_from_extension",
]
