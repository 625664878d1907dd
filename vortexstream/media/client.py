"""Cloudinary REST client for storing uploaded media."""

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from vortexstream.config import Settings

logger = logging.getLogger(__name__)


class MediaHostError(Exception):
    """The media host rejected an upload or could not be reached."""


@dataclass(frozen=True)
class MediaAsset:
    """Reference to a binary stored on the media host."""

    public_id: str
    url: str
    resource_type: str
    duration: float = 0.0


def sign(params: dict[str, Any], api_secret: str) -> str:
    """Compute the request signature expected by the Cloudinary API.

    SHA-1 over the parameters sorted by key, formatted as ``k=v`` joined by
    ``&``, with the API secret appended.
    """
    payload = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{payload}{api_secret}".encode("utf-8")).hexdigest()


class MediaHostClient:
    """Upload and delete assets on Cloudinary."""

    BASE = "https://api.cloudinary.com/v1_1"

    def __init__(self, settings: Settings):
        self.settings = settings
        self.cloud_name = settings.cloudinary_cloud_name
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.timeout = settings.media_timeout_seconds

    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        return {
            **params,
            "api_key": self.api_key,
            "signature": sign(params, self.api_secret),
        }

    async def upload(self, path: Path, resource_type: str = "auto") -> MediaAsset:
        """Upload a local file.

        Args:
            path: File to upload
            resource_type: Cloudinary resource type; ``auto`` lets the host detect it

        Returns:
            The stored asset, including its duration for audio/video

        Raises:
            MediaHostError: If the host is not configured or the upload fails
        """
        if not self.is_configured():
            raise MediaHostError("Media host is not configured")

        url = f"{self.BASE}/{self.cloud_name}/{resource_type}/upload"
        try:
            with open(path, "rb") as fh:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        url,
                        data=self._signed({}),
                        files={"file": (path.name, fh)},
                    )
        except httpx.HTTPError as e:
            logger.error(f"Media upload failed for {path.name}: {e}")
            raise MediaHostError("Media host unreachable") from e

        if response.status_code != 200:
            logger.error(
                f"Media upload rejected for {path.name}. Status: {response.status_code}, "
                f"Response: {response.text}"
            )
            raise MediaHostError(f"Upload rejected with status {response.status_code}")

        data = response.json()
        asset = MediaAsset(
            public_id=data["public_id"],
            url=data.get("secure_url") or data["url"],
            resource_type=data.get("resource_type", resource_type),
            duration=float(data.get("duration") or 0.0),
        )
        logger.info(f"Uploaded {path.name} to media host as {asset.public_id}")
        return asset

    async def destroy(self, public_id: str, resource_type: str = "image") -> bool:
        """Delete an asset. Best-effort: failures are logged, never raised.

        Returns:
            True if the host confirmed the deletion, False otherwise
        """
        if not public_id or not self.is_configured():
            return False

        url = f"{self.BASE}/{self.cloud_name}/{resource_type}/destroy"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url, data=self._signed({"public_id": public_id})
                )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to delete media asset {public_id}: {e}")
            return False

        try:
            result = response.json().get("result") if response.status_code == 200 else None
        except ValueError:
            result = None
        if result != "ok":
            logger.warning(
                f"Media host did not delete {public_id}. Status: {response.status_code}"
            )
            return False

        logger.info(f"Deleted media asset {public_id}")
        return True
