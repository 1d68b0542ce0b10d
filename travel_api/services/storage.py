"""
Local photo storage.

Photos live under ``<content_root>/<uploads_dirname>`` with random file
names; the database only stores the relative ``uploads/<name>`` path.
"""
import asyncio
import base64
import binascii
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional

from travel_api.config import Settings
from travel_api.exceptions import BadRequestError
from travel_api.schemas.travel import PhotoRequest
from travel_api.utils.prometheus_metrics import (
    photo_delete_total,
    photo_upload_file_size_bytes,
    photo_upload_total,
)

logger = logging.getLogger("app.storage")

DEFAULT_EXTENSION = ".jpg"


@dataclass(frozen=True)
class DecodedPhoto:
    """Photo bytes that passed decoding and the size limit."""

    file_name: str
    content: bytes

    @property
    def extension(self) -> str:
        return os.path.splitext(self.file_name)[1] or DEFAULT_EXTENSION


class PhotoStorage:
    """Decodes, writes and removes photo files."""

    def __init__(self, settings: Settings):
        self.root = Path(settings.content_root)
        self.uploads_dirname = settings.uploads_dirname
        self.max_bytes = settings.max_photo_bytes

    @property
    def uploads_path(self) -> Path:
        return self.root / self.uploads_dirname

    def decode(self, photo: PhotoRequest) -> Optional[DecodedPhoto]:
        """
        Decode a photo payload.

        Accepts raw base64 as well as data URLs (everything up to the last
        comma is dropped).

        Args:
            photo: Photo from the request body

        Returns:
            Decoded photo, or None when the payload carries no content

        Raises:
            BadRequestError: Invalid base64 or content over the size limit
        """
        if not photo.base64_content:
            return None

        payload = "".join(photo.base64_content.split(",")[-1].split())
        try:
            content = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            photo_upload_total.labels(result="invalid").inc()
            raise BadRequestError("Invalid base64 format for photo")

        file_name = photo.file_name or f"photo{DEFAULT_EXTENSION}"
        if len(content) > self.max_bytes:
            photo_upload_total.labels(result="too_large").inc()
            limit_mb = self.max_bytes // (1024 * 1024)
            raise BadRequestError(f"Photo {file_name} exceeds {limit_mb}MB limit")

        return DecodedPhoto(file_name=file_name, content=content)

    async def save(self, photo: DecodedPhoto) -> str:
        """
        Write photo bytes under a fresh random name.

        The file is written in the default executor.

        Returns:
            Path relative to the content root, e.g. ``uploads/<uuid>.jpg``
        """
        stored_name = f"{uuid.uuid4()}{photo.extension}"
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, stored_name, photo.content)

        photo_upload_total.labels(result="success").inc()
        photo_upload_file_size_bytes.observe(len(photo.content))
        logger.info(
            "Photo stored",
            extra={
                "event": "storage",
                "stored_name": stored_name,
                "original_name": photo.file_name,
                "size": len(photo.content),
            },
        )
        return str(PurePosixPath(self.uploads_dirname) / stored_name)

    def _write(self, stored_name: str, content: bytes) -> None:
        self.uploads_path.mkdir(parents=True, exist_ok=True)
        (self.uploads_path / stored_name).write_bytes(content)

    def resolve(self, relative_path: str) -> Path:
        """Absolute location of a stored relative path."""
        return self.root / relative_path

    def remove(self, relative_path: str) -> bool:
        """
        Delete a stored file if it exists.

        Failures are logged and reported as False; a missing file is not an error.
        """
        path = self.resolve(relative_path)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            photo_delete_total.labels(result="failure").inc()
            logger.warning(
                "Photo file delete failed",
                extra={"event": "storage", "path": relative_path, "error": str(e)},
            )
            return False
        photo_delete_total.labels(result="success").inc()
        return True

    def remove_many(self, relative_paths: Iterable[str]) -> List[str]:
        """Delete several files; returns the paths actually removed."""
        return [p for p in relative_paths if self.remove(p)]
