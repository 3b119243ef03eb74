"""Moodtrack - Utility modules."""

from app.utils.audio_meta import extract_audio_metadata, guess_format_from_extension
from app.utils.tempfiles import cleanup_orphan_temp_files, new_extract_stem, remove_quietly
from app.utils.video_url import canonical_watch_url, extract_video_id

__all__ = [
    # audio_meta
    "extract_audio_metadata",
    "guess_format_from_extension",
    # tempfiles
    "cleanup_orphan_temp_files",
    "new_extract_stem",
    "remove_quietly",
    # video_url
    "extract_video_id",
    "canonical_watch_url",
]
