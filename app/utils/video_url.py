"""Moodtrack - Remote video URL parsing.

Pulls the video identifier out of the URL shapes people actually paste:
- Standard: youtube.com/watch?v=ID (also m. and music. hosts)
- Short: youtu.be/ID
- Shorts: youtube.com/shorts/ID
- Embed: youtube.com/embed/ID

Parsing is local; no network access.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")

_LONG_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}
_SHORT_HOSTS = {"youtu.be", "www.youtu.be"}
_PATH_PREFIXES = ("shorts", "embed", "live", "v")


def extract_video_id(url: str | None) -> str | None:
    """Extract the 11-character video ID from a URL.

    Args:
        url: Remote video URL. A scheme is optional.

    Returns:
        The video ID, or None if the URL is not a recognised shape.
    """
    if not url:
        return None
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"

    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except ValueError:
        # e.g. an unbalanced "[" reads as a malformed IPv6 host
        return None
    segments = [s for s in parsed.path.split("/") if s]

    candidate = None
    if host in _SHORT_HOSTS:
        candidate = segments[0] if segments else None
    elif host in _LONG_HOSTS:
        if segments[:1] == ["watch"]:
            candidate = (parse_qs(parsed.query).get("v") or [None])[0]
        elif len(segments) >= 2 and segments[0] in _PATH_PREFIXES:
            candidate = segments[1]

    if candidate and _VIDEO_ID_RE.match(candidate):
        return candidate
    return None


def canonical_watch_url(video_id: str) -> str:
    """Build the canonical watch URL for a video ID."""
    return f"https://www.youtube.com/watch?v={video_id}"
