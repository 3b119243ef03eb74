"""Moodtrack - SQLAlchemy ORM models.

Catalog tables:
1. artists
2. albums
3. songs
"""

from datetime import UTC, datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class Artist(Base):
    """A performing artist. Created lazily by the first song that references it."""

    __tablename__ = "artists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Exact, case-sensitive name; unique across all artists
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )


class Album(Base):
    """An album. Title uniqueness is scoped to the owning artist."""

    __tablename__ = "albums"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    artist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("artists.id"), nullable=False, index=True
    )
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    artist: Mapped[Artist] = relationship()

    __table_args__ = (UniqueConstraint("title", "artist_id", name="uq_album_title_artist"),)


class Song(Base):
    """A stored track backed by an object in the remote blob store."""

    __tablename__ = "songs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    artist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("artists.id"), nullable=False, index=True
    )
    album_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("albums.id"), nullable=True, index=True
    )

    genre: Mapped[str] = mapped_column(String(64), nullable=False)
    # Whole seconds
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mood: Mapped[str] = mapped_column(String(32), nullable=False)

    # Remote retrieval URL and opaque object identifier
    url: Mapped[str] = mapped_column(Text, nullable=False)
    public_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    artist: Mapped[Artist] = relationship()
    album: Mapped[Album | None] = relationship()

    __table_args__ = (Index("ix_songs_mood", "mood"),)
