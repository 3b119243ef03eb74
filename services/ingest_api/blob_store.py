"""Moodtrack - Remote blob storage.

Cloudinary-backed audio storage. Objects are stored under a folder
partitioned by mood ({root}/{mood}). Each upload is a single blocking call
that returns only after Cloudinary has confirmed the object, so the
orchestrator can treat it like any other step.

Credentials come from Settings and are passed per call; the global
cloudinary.config() is never touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol

import cloudinary.uploader

from app.config import CloudinaryCredentials
from app.errors import UpstreamUploadError

logger = logging.getLogger(__name__)

# Cloudinary files audio under the "video" resource type
RESOURCE_TYPE = "video"


@dataclass(frozen=True)
class StoredObject:
    """A confirmed remote object."""

    url: str
    object_id: str


class BlobStore(Protocol):
    """What the pipeline needs from a remote store."""

    def upload(self, source: BinaryIO | Path, mood: str) -> StoredObject: ...

    def delete(self, object_id: str) -> bool: ...


class CloudinaryBlobStore:
    """BlobStore implementation on the Cloudinary upload API.

    Holds no mutable state; concurrent uploads are independent.
    """

    def __init__(
        self,
        credentials: CloudinaryCredentials,
        root_folder: str = "songs",
        timeout_sec: int = 120,
    ):
        self.credentials = credentials
        self.root_folder = root_folder.strip("/")
        self.timeout_sec = timeout_sec

    def folder_for(self, mood: str) -> str:
        """Remote folder for a mood, e.g. songs/party."""
        return f"{self.root_folder}/{mood}"

    def _auth_options(self) -> dict[str, str]:
        creds = self.credentials
        options = {
            "cloud_name": creds.cloud_name,
            "api_key": creds.api_key,
            "api_secret": creds.api_secret,
        }
        return {k: v for k, v in options.items() if v}

    def upload(self, source: BinaryIO | Path, mood: str) -> StoredObject:
        """Upload audio and wait for Cloudinary to confirm it.

        Args:
            source: In-memory stream or path to a local file.
            mood: Resolved mood; selects the remote folder.

        Returns:
            StoredObject with the secure URL and public_id.

        Raises:
            UpstreamUploadError: On any transport, timeout or remote-side error,
                or if the response lacks a URL or object ID.
        """
        folder = self.folder_for(mood)
        file_arg = str(source) if isinstance(source, Path) else source

        logger.info("Uploading audio to folder %s", folder)
        try:
            result = cloudinary.uploader.upload(
                file_arg,
                resource_type=RESOURCE_TYPE,
                folder=folder,
                timeout=self.timeout_sec,
                **self._auth_options(),
            )
        except Exception as e:
            logger.warning("Upload to folder %s failed: %s", folder, e)
            raise UpstreamUploadError(str(e) or e.__class__.__name__) from e

        url = (result or {}).get("secure_url")
        object_id = (result or {}).get("public_id")
        if not url or not object_id:
            raise UpstreamUploadError("upload was not confirmed (missing secure_url or public_id)")

        logger.info("Upload confirmed: public_id=%s", object_id)
        return StoredObject(url=url, object_id=object_id)

    def delete(self, object_id: str) -> bool:
        """Delete a remote object.

        Never raises; deletion tolerates remote failure.

        Returns:
            True only if Cloudinary reports the object destroyed.
        """
        try:
            result = cloudinary.uploader.destroy(
                object_id,
                resource_type=RESOURCE_TYPE,
                invalidate=True,
                timeout=self.timeout_sec,
                **self._auth_options(),
            )
        except Exception:
            logger.warning("Remote delete failed for public_id=%s", object_id, exc_info=True)
            return False

        outcome = (result or {}).get("result")
        if outcome != "ok":
            logger.warning("Remote delete for public_id=%s returned %r", object_id, outcome)
            return False

        logger.info("Remote object deleted: public_id=%s", object_id)
        return True
