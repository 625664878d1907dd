"""Media host client and upload staging."""

from vortexstream.media.client import MediaAsset, MediaHostClient, MediaHostError
from vortexstream.media.uploads import UploadStager

__all__ = ["MediaAsset", "MediaHostClient", "MediaHostError", "UploadStager"]
