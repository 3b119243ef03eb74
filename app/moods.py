"""Moodtrack - Mood profiles.

The two ingestion endpoints accept different mood vocabularies. Each is a
named profile so the difference stays explicit:

- catalog: the richer set used by /upload. Unknown or missing moods are
  coerced to the "other" fallback.
- quick: the four categories used by /upload-simple. Unknown or missing
  moods are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.errors import ValidationError

OTHER_MOOD = "other"


@dataclass(frozen=True)
class MoodProfile:
    """A closed mood vocabulary with its fallback policy.

    Attributes:
        name: Profile name, used in logs.
        moods: Accepted lowercase mood values, in display order.
        fallback: Value used for unknown input, or None to reject it.
    """

    name: str
    moods: tuple[str, ...]
    fallback: str | None = None

    def normalize(self, raw: str | None) -> str:
        """Map free-text mood input onto this profile.

        Lookup is case-insensitive and ignores surrounding whitespace.

        Args:
            raw: Mood as submitted by the client.

        Returns:
            The canonical lowercase mood.

        Raises:
            ValidationError: If the mood is unknown and the profile has no fallback.
        """
        candidate = (raw or "").strip().lower()
        if candidate in self.moods:
            return candidate
        if self.fallback is not None:
            return self.fallback
        if not candidate:
            raise ValidationError("Missing required field: mood")
        raise ValidationError(
            f"Invalid mood: {raw}. Supported moods: {', '.join(self.moods)}"
        )


CATALOG_PROFILE = MoodProfile(
    name="catalog",
    moods=(
        "love",
        "happy",
        "sad",
        "energetic",
        "relaxed",
        "romantic",
        "party",
        "workout",
        "chill",
    ),
    fallback=OTHER_MOOD,
)

QUICK_PROFILE = MoodProfile(
    name="quick",
    moods=("love", "sadness", "old_melody", "energy"),
)
