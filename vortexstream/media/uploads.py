"""Staging of multipart uploads before they are pushed to the media host."""

import logging
import uuid
from pathlib import Path

from fastapi import UploadFile

from vortexstream.config import Settings
from vortexstream.errors import InternalError, InvalidArgument
from vortexstream.media.client import MediaAsset, MediaHostClient, MediaHostError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

# Allowed extension -> MIME types, per kind of upload
ALLOWED_TYPES = {
    "image": {
        ".jpg": {"image/jpeg"},
        ".jpeg": {"image/jpeg"},
        ".png": {"image/png"},
        ".gif": {"image/gif"},
        ".webp": {"image/webp"},
    },
    "video": {
        ".mp4": {"video/mp4"},
        ".webm": {"video/webm"},
        ".mov": {"video/quicktime"},
        ".mkv": {"video/x-matroska"},
    },
}


class UploadStager:
    """Write validated uploads to the temp directory and hand them to the media host."""

    def __init__(self, settings: Settings):
        self.base_path = Path(settings.upload_temp_dir)
        self.limits = {
            "image": settings.max_image_bytes,
            "video": settings.max_video_bytes,
        }
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _check_type(self, upload: UploadFile, kind: str, field: str) -> str:
        suffix = Path(upload.filename or "").suffix.lower()
        allowed = ALLOWED_TYPES[kind]
        if suffix not in allowed:
            raise InvalidArgument(
                f"{field} must be one of: {', '.join(sorted(s.lstrip('.') for s in allowed))}"
            )
        content_type = (upload.content_type or "").lower()
        if content_type not in allowed[suffix]:
            raise InvalidArgument(f"{field} has an unexpected content type {content_type!r}")
        return suffix

    async def stage(self, upload: UploadFile, kind: str, field: str) -> Path:
        """Validate ``upload`` and write it under a unique temp name.

        Raises:
            InvalidArgument: Wrong extension/MIME type, empty file, or too large
        """
        suffix = self._check_type(upload, kind, field)
        limit = self.limits[kind]
        path = self.base_path / f"{uuid.uuid4().hex}{suffix}"

        # Never write outside the staging directory
        if not path.resolve().is_relative_to(self.base_path.resolve()):
            raise InvalidArgument(f"Invalid filename for {field}")

        size = 0
        try:
            with open(path, "wb") as out:
                while chunk := await upload.read(CHUNK_SIZE):
                    size += len(chunk)
                    if size > limit:
                        raise InvalidArgument(f"{field} exceeds the {limit} byte limit")
                    out.write(chunk)
        except Exception:
            self.discard(path)
            raise

        if size == 0:
            self.discard(path)
            raise InvalidArgument(f"{field} is empty")
        return path

    def discard(self, path: Path) -> None:
        path.unlink(missing_ok=True)

    async def stage_and_upload(
        self,
        upload: UploadFile,
        kind: str,
        field: str,
        media: MediaHostClient,
    ) -> MediaAsset:
        """Stage ``upload`` and push it to the media host.

        The temp file is removed whether or not the upload succeeds.
        """
        path = await self.stage(upload, kind, field)
        try:
            return await media.upload(path)
        except MediaHostError as e:
            raise InternalError(f"Error while uploading {field}") from e
        finally:
            self.discard(path)
