"""Moodtrack - Catalog persistence.

Entity resolution (find-or-create for artists and albums) and the
transaction coordinator that owns the ingest unit of work:

    session -> begin -> resolve artist/album -> insert song -> commit

On any failure the transaction is rolled back before the session is
released and a PersistenceError is raised. Remote objects are NOT touched
here; compensating a stored object is the orchestrator's job.

Find-or-create is race-safe: artists.name and (albums.title,
albums.artist_id) are unique, and the insert runs inside a SAVEPOINT.
If a concurrent request wins the insert, the savepoint is rolled back
and the winner's row is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.errors import PersistenceError
from app.models import Album, Artist, Song

logger = logging.getLogger(__name__)


# --- Data Types ---


@dataclass
class SongDraft:
    """Song metadata ready to persist, minus the remote object."""

    title: str
    artist_name: str
    genre: str
    duration: int
    mood: str
    album_name: str | None = None


@dataclass
class SongRecord:
    """A persisted song joined with its artist (and album, if any)."""

    song_id: int
    title: str
    artist_id: int
    artist_name: str
    genre: str
    duration: int
    mood: str
    url: str
    object_id: str | None
    album_id: int | None = None
    album_title: str | None = None


# --- Entity Resolution ---


def _find_artist_id(session: Session, name: str, for_update: bool = False) -> int | None:
    stmt = select(Artist.id).where(Artist.name == name)
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def _find_album_id(
    session: Session, title: str, artist_id: int, for_update: bool = False
) -> int | None:
    stmt = select(Album.id).where(Album.title == title, Album.artist_id == artist_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def _insert_or_get(session: Session, row: Artist | Album, refetch: Callable[[], int | None]) -> int:
    """Insert a row inside a SAVEPOINT, falling back to the existing row.

    refetch must be a locking read. Under REPEATABLE READ (MySQL's default)
    a plain SELECT would see the transaction's old snapshot and miss the
    row the concurrent insert committed.

    Raises:
        IntegrityError: If the insert failed and no existing row explains it.
    """
    try:
        with session.begin_nested():
            session.add(row)
            session.flush()
    except IntegrityError:
        winner = refetch()
        if winner is None:
            raise
        logger.info("Lost insert race for %s; reusing id=%s", type(row).__name__, winner)
        return winner
    return row.id


def resolve_artist(session: Session, name: str) -> int:
    """Find an artist by exact name, creating it if absent.

    Must run inside an open transaction. Does NOT commit.

    Args:
        session: Active database session.
        name: Artist name (exact, case-sensitive match).

    Returns:
        The artist id.
    """
    artist_id = _find_artist_id(session, name)
    if artist_id is not None:
        logger.debug("Found existing artist %r id=%s", name, artist_id)
        return artist_id

    artist_id = _insert_or_get(
        session,
        Artist(name=name),
        lambda: _find_artist_id(session, name, for_update=True),
    )
    logger.info("Resolved new artist %r id=%s", name, artist_id)
    return artist_id


def resolve_album(session: Session, title: str | None, artist_id: int) -> int | None:
    """Find an album by (title, artist), creating it if absent.

    Must run inside an open transaction. Does NOT commit.

    Args:
        session: Active database session.
        title: Album title. Empty or whitespace-only means "no album".
        artist_id: Owning artist.

    Returns:
        The album id, or None when no title was given.
    """
    if title is None or not title.strip():
        return None

    album_id = _find_album_id(session, title, artist_id)
    if album_id is not None:
        logger.debug("Found existing album %r id=%s", title, album_id)
        return album_id

    album_id = _insert_or_get(
        session,
        Album(title=title, artist_id=artist_id),
        lambda: _find_album_id(session, title, artist_id, for_update=True),
    )
    logger.info("Resolved new album %r id=%s", title, album_id)
    return album_id


# --- Transaction Coordinator ---


class TransactionCoordinator:
    """Owns the catalog unit of work for ingestion and deletion."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def ingest(self, draft: SongDraft, url: str, object_id: str) -> int:
        """Persist a song that references an already-stored remote object.

        Args:
            draft: Song metadata.
            url: Remote retrieval URL.
            object_id: Remote object identifier.

        Returns:
            The new song id.

        Raises:
            PersistenceError: On any failure; the transaction is rolled back.
        """
        session = self.session_factory()
        try:
            artist_id = resolve_artist(session, draft.artist_name)
            album_id = resolve_album(session, draft.album_name, artist_id)

            song = Song(
                title=draft.title,
                artist_id=artist_id,
                album_id=album_id,
                genre=draft.genre,
                duration=draft.duration,
                mood=draft.mood,
                url=url,
                public_id=object_id,
            )
            session.add(song)
            session.flush()
            session.commit()
        except Exception as e:
            session.rollback()
            logger.warning("Ingest transaction rolled back: %s", e)
            raise PersistenceError(str(e)) from e
        finally:
            session.close()

        logger.info("Song saved: id=%s title=%r", song.id, draft.title)
        return song.id

    def find_song(self, song_id: int) -> SongRecord | None:
        """Look up a song joined with its artist and album.

        Raises:
            PersistenceError: If the lookup itself fails.
        """
        stmt = (
            select(Song, Artist.name, Album.title)
            .join(Artist, Song.artist_id == Artist.id)
            .outerjoin(Album, Song.album_id == Album.id)
            .where(Song.id == song_id)
        )
        session = self.session_factory()
        try:
            row = session.execute(stmt).one_or_none()
        except Exception as e:
            raise PersistenceError(str(e)) from e
        finally:
            session.close()

        if row is None:
            return None
        song, artist_name, album_title = row
        return SongRecord(
            song_id=song.id,
            title=song.title,
            artist_id=song.artist_id,
            artist_name=artist_name,
            genre=song.genre,
            duration=song.duration,
            mood=song.mood,
            url=song.url,
            object_id=song.public_id,
            album_id=song.album_id,
            album_title=album_title,
        )

    def delete_song(self, song_id: int) -> bool:
        """Delete a song row in its own transaction.

        Returns:
            True if a row was deleted.

        Raises:
            PersistenceError: On any failure; the transaction is rolled back.
        """
        session = self.session_factory()
        try:
            result = session.execute(delete(Song).where(Song.id == song_id))
            session.commit()
        except Exception as e:
            session.rollback()
            logger.warning("Delete transaction rolled back for song id=%s: %s", song_id, e)
            raise PersistenceError(str(e)) from e
        finally:
            session.close()
        return result.rowcount > 0
