"""Tests for the Ingest API endpoints."""

import dataclasses
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from app.models import Album, Artist, Song
from conftest import make_wav_bytes
from services.ingest_api import main as main_module


def _catalog_form(**overrides):
    data = {
        "title": "Test",
        "artist_name": "NewArtist",
        "genre": "Pop",
        "duration": "180",
        "mood": "party",
    }
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}


def _count(SessionFactory, model):
    with SessionFactory() as session:
        return session.execute(select(func.count()).select_from(model)).scalar()


class TestHealthCheck:
    """Tests for health check endpoint."""

    def test_health_check(self, client):
        """Health check should return ok."""
        test_client, _, _ = client
        response = test_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestCatalogUpload:
    """Tests for POST /upload."""

    def test_end_to_end_reuses_artist(self, client):
        """Two identical 3 MB uploads share one freshly created artist."""
        test_client, SessionFactory, fake_store = client
        audio = b"\xff\xfb" * (3 * 1024 * 1024 // 2)

        response1 = test_client.post(
            "/upload",
            files={"song": ("test.mp3", audio, "audio/mpeg")},
            data=_catalog_form(),
        )

        assert response1.status_code == 200
        data1 = response1.json()
        assert data1["message"] == "Song uploaded successfully!"
        assert data1["artist"] == "NewArtist"
        assert data1["mood"] == "party"
        assert data1["album"] == "Single"
        assert data1["songId"] is not None
        assert data1["url"].startswith("https://")
        assert fake_store.uploads[0] == ("party", audio)

        response2 = test_client.post(
            "/upload",
            files={"song": ("test.mp3", audio, "audio/mpeg")},
            data=_catalog_form(),
        )

        assert response2.status_code == 200
        data2 = response2.json()
        assert data2["songId"] != data1["songId"]

        with SessionFactory() as session:
            song1 = session.get(Song, data1["songId"])
            song2 = session.get(Song, data2["songId"])
            assert song1.artist_id == song2.artist_id
        assert _count(SessionFactory, Artist) == 1
        assert _count(SessionFactory, Song) == 2

    def test_with_album(self, client):
        test_client, SessionFactory, _ = client

        response = test_client.post(
            "/upload",
            files={"song": ("a.mp3", b"abc", "audio/mpeg")},
            data=_catalog_form(album_name="Debut"),
        )

        assert response.status_code == 200
        assert response.json()["album"] == "Debut"
        assert _count(SessionFactory, Album) == 1

    def test_whitespace_album_is_single(self, client):
        test_client, SessionFactory, _ = client

        response = test_client.post(
            "/upload",
            files={"song": ("a.mp3", b"abc", "audio/mpeg")},
            data=_catalog_form(album_name="   "),
        )

        assert response.json()["album"] == "Single"
        assert _count(SessionFactory, Album) == 0

    def test_uppercase_mood_stored_lowercase(self, client):
        test_client, SessionFactory, _ = client

        response = test_client.post(
            "/upload",
            files={"song": ("a.mp3", b"abc", "audio/mpeg")},
            data=_catalog_form(mood="HAPPY"),
        )

        assert response.json()["mood"] == "happy"
        with SessionFactory() as session:
            assert session.get(Song, response.json()["songId"]).mood == "happy"

    def test_unknown_mood_stored_as_other(self, client):
        test_client, _, fake_store = client

        response = test_client.post(
            "/upload",
            files={"song": ("a.mp3", b"abc", "audio/mpeg")},
            data=_catalog_form(mood="unknown-mood"),
        )

        assert response.status_code == 200
        assert response.json()["mood"] == "other"
        assert fake_store.uploads[0][0] == "other"

    def test_missing_file(self, client):
        test_client, SessionFactory, fake_store = client

        response = test_client.post("/upload", data=_catalog_form())

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "No file uploaded"
        assert data["error_code"] == "VALIDATION_FAILED"
        assert fake_store.uploads == []
        assert _count(SessionFactory, Song) == 0

    def test_missing_fields(self, client):
        test_client, _, fake_store = client

        response = test_client.post(
            "/upload",
            files={"song": ("a.mp3", b"abc", "audio/mpeg")},
            data=_catalog_form(genre=None, duration=None),
        )

        assert response.status_code == 400
        assert "genre" in response.json()["error"]
        assert "duration" in response.json()["error"]
        assert fake_store.uploads == []

    def test_invalid_file_type(self, client):
        test_client, _, _ = client

        response = test_client.post(
            "/upload",
            files={"song": ("a.txt", b"hello", "text/plain")},
            data=_catalog_form(),
        )

        assert response.status_code == 400
        assert "Invalid file type" in response.json()["error"]

    def test_upload_failure_is_500(self, client):
        test_client, SessionFactory, fake_store = client
        fake_store.fail_upload = True

        response = test_client.post(
            "/upload",
            files={"song": ("a.mp3", b"abc", "audio/mpeg")},
            data=_catalog_form(),
        )

        assert response.status_code == 500
        assert response.json()["error_code"] == "UPLOAD_FAILED"
        assert _count(SessionFactory, Song) == 0
        assert _count(SessionFactory, Artist) == 0

    def test_persistence_failure_is_500_and_compensates(self, client):
        test_client, SessionFactory, fake_store = client

        with patch(
            "services.ingest_api.persistence.resolve_artist",
            side_effect=RuntimeError("connection reset"),
        ):
            response = test_client.post(
                "/upload",
                files={"song": ("a.mp3", b"abc", "audio/mpeg")},
                data=_catalog_form(),
            )

        assert response.status_code == 500
        data = response.json()
        assert data["error_code"] == "PERSISTENCE_FAILED"
        assert "connection reset" in data["error"]
        assert fake_store.delete_calls == ["songs/party/obj1"]
        assert _count(SessionFactory, Song) == 0

    def test_unexpected_error_is_generic_500(self, client):
        test_client, _, _ = client

        with patch(
            "services.ingest_api.service.IngestionOrchestrator.ingest_catalog",
            side_effect=KeyError("secret internals"),
        ):
            response = test_client.post(
                "/upload",
                files={"song": ("a.mp3", b"abc", "audio/mpeg")},
                data=_catalog_form(),
            )

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "An unexpected error occurred during upload"
        assert "secret" not in data["error"]

    def test_oversized_file(self, client):
        test_client, _, _ = client
        small = dataclasses.replace(main_module.get_settings(), max_upload_bytes=4)
        main_module.app.dependency_overrides[main_module.get_settings] = lambda: small

        response = test_client.post(
            "/upload",
            files={"song": ("a.mp3", b"0123456789", "audio/mpeg")},
            data=_catalog_form(),
        )

        assert response.status_code == 400
        assert "File too large" in response.json()["error"]


class TestSimpleUpload:
    """Tests for POST /upload-simple."""

    def test_file_upload(self, client):
        test_client, _, fake_store = client

        response = test_client.post(
            "/upload-simple",
            files={"song": ("Rainy Day.wav", make_wav_bytes(), "audio/wav")},
            data={"mood": "Love"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Song uploaded successfully!"
        assert data["mood"] == "love"
        song = data["song"]
        assert song["id"] is not None
        assert song["title"] == "Rainy Day"
        assert song["mood"] == "love"
        assert song["artist"] == "Unknown Artist"
        assert song["genre"] == "Unknown"
        assert song["url"] == data["url"]
        assert fake_store.uploads[0][0] == "love"

    def test_youtube_url(self, client):
        test_client, _, fake_store = client
        from test_acquire import FakeYoutubeDL

        with patch("services.ingest_api.acquire.yt_dlp.YoutubeDL", FakeYoutubeDL):
            response = test_client.post(
                "/upload-simple",
                data={"mood": "old_melody", "youtubeUrl": "https://youtu.be/dQw4w9WgXcQ"},
            )

        assert response.status_code == 200
        song = response.json()["song"]
        assert song["title"] == "Never Gonna"
        assert song["artist"] == "Rick"
        assert song["mood"] == "old_melody"
        assert fake_store.uploads == [("old_melody", b"audio-track-bytes")]

    def test_unknown_mood_rejected(self, client):
        test_client, SessionFactory, fake_store = client

        response = test_client.post(
            "/upload-simple",
            files={"song": ("a.mp3", b"abc", "audio/mpeg")},
            data={"mood": "unknown-mood"},
        )

        assert response.status_code == 400
        assert "Invalid mood" in response.json()["error"]
        assert fake_store.uploads == []
        assert _count(SessionFactory, Song) == 0

    def test_neither_file_nor_url(self, client):
        test_client, _, _ = client

        response = test_client.post("/upload-simple", data={"mood": "love"})

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/watch?v=nope",
            "https://[youtube.com/watch?v=dQw4w9WgXcQ",
        ],
    )
    def test_bad_youtube_url(self, client, url):
        test_client, _, fake_store = client

        response = test_client.post(
            "/upload-simple",
            data={"mood": "love", "youtubeUrl": url},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_FAILED"
        assert "video ID" in response.json()["error"]
        assert fake_store.uploads == []

    def test_extraction_failure_is_500(self, client):
        test_client, _, fake_store = client
        from test_acquire import FakeYoutubeDL

        class BrokenYoutubeDL(FakeYoutubeDL):
            def extract_info(self, url, download=True):
                return None

        with patch("services.ingest_api.acquire.yt_dlp.YoutubeDL", BrokenYoutubeDL):
            response = test_client.post(
                "/upload-simple",
                data={"mood": "love", "youtubeUrl": "https://youtu.be/dQw4w9WgXcQ"},
            )

        assert response.status_code == 500
        assert response.json()["error_code"] == "ACQUISITION_FAILED"
        assert fake_store.uploads == []


class TestDeleteSong:
    """Tests for DELETE /songs/{song_id}."""

    def _upload(self, test_client):
        response = test_client.post(
            "/upload",
            files={"song": ("a.mp3", b"abc", "audio/mpeg")},
            data=_catalog_form(),
        )
        assert response.status_code == 200
        return response.json()["songId"]

    def test_delete(self, client):
        test_client, SessionFactory, fake_store = client
        song_id = self._upload(test_client)

        response = test_client.delete(f"/songs/{song_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Song deleted successfully"
        assert data["deletedSong"] == {
            "id": song_id,
            "title": "Test",
            "artist": "NewArtist",
            "mood": "party",
        }
        assert data["cloudinaryDeleted"] is True
        assert fake_store.delete_calls == ["songs/party/obj1"]
        assert _count(SessionFactory, Song) == 0

    def test_remote_failure_still_deletes(self, client):
        test_client, SessionFactory, fake_store = client
        song_id = self._upload(test_client)
        fake_store.fail_delete = True

        response = test_client.delete(f"/songs/{song_id}")

        assert response.status_code == 200
        assert response.json()["cloudinaryDeleted"] is False
        assert _count(SessionFactory, Song) == 0

    def test_not_found(self, client):
        test_client, _, fake_store = client

        response = test_client.delete("/songs/4242")

        assert response.status_code == 404
        assert response.json()["error"] == "Song 4242 not found"
        assert response.json()["error_code"] == "NOT_FOUND"
        assert fake_store.delete_calls == []

    def test_non_integer_id(self, client):
        test_client, _, _ = client

        response = test_client.delete("/songs/abc")

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "VALIDATION_FAILED"
        assert data["error"].startswith("Invalid request: song_id")
        assert "detail" not in data
