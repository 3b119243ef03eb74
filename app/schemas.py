"""Moodtrack - Pydantic models for API responses.

Wire names follow the JSON contract the web client already consumes
(camelCase for songId, deletedSong, cloudinaryDeleted). Python attributes
stay snake_case and are populated by name.
"""

from pydantic import BaseModel, ConfigDict, Field

SUCCESS_MESSAGE = "Song uploaded successfully!"
DELETED_MESSAGE = "Song deleted successfully"


# --- Ingestion Responses ---


class CatalogIngestResponse(BaseModel):
    """Response for POST /upload."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    message: str = Field(default=SUCCESS_MESSAGE)
    url: str = Field(..., description="Remote retrieval URL of the stored audio")
    mood: str = Field(..., description="Resolved mood")
    artist: str = Field(..., description="Artist name")
    album: str = Field(..., description='Album title, or "Single"')
    song_id: int = Field(..., alias="songId", description="Catalog song identifier")


class SongSummary(BaseModel):
    """Song as echoed back by POST /upload-simple."""

    model_config = ConfigDict(extra="forbid")

    id: int
    title: str
    mood: str
    artist: str
    genre: str
    url: str


class QuickIngestResponse(BaseModel):
    """Response for POST /upload-simple."""

    model_config = ConfigDict(extra="forbid")

    message: str = Field(default=SUCCESS_MESSAGE)
    url: str
    mood: str
    song: SongSummary


# --- Deletion Responses ---


class DeletedSongSummary(BaseModel):
    """Summary of a song removed from the catalog."""

    model_config = ConfigDict(extra="forbid")

    id: int
    title: str
    artist: str
    mood: str


class DeleteSongResponse(BaseModel):
    """Response for DELETE /songs/{song_id}.

    cloudinaryDeleted=False means the row is gone but the remote object
    may still exist. That is a successful outcome.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    message: str = Field(default=DELETED_MESSAGE)
    deleted_song: DeletedSongSummary = Field(..., alias="deletedSong")
    cloudinary_deleted: bool = Field(..., alias="cloudinaryDeleted")


# --- Errors ---


class ErrorResponse(BaseModel):
    """Response for failed operations."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Human-readable error description")
    error_code: str = Field(..., description="Error taxonomy code")


__all__ = [
    "CatalogIngestResponse",
    "SongSummary",
    "QuickIngestResponse",
    "DeletedSongSummary",
    "DeleteSongResponse",
    "ErrorResponse",
]
