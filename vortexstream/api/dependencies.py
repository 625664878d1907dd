"""FastAPI dependencies shared by the API routers."""

from dataclasses import dataclass

from fastapi import Depends, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vortexstream.config import Settings, get_settings
from vortexstream.media import MediaHostClient, UploadStager


class CamelModel(BaseModel):
    """Request body accepting camelCase keys (snake_case also works)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int


def get_pagination(
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int | None = Query(default=None, ge=1, description="Items per page"),
    settings: Settings = Depends(get_settings),
) -> Pagination:
    """Page/limit query parameters; the limit is capped by configuration."""
    limit = min(limit or settings.page_size_default, settings.page_size_max)
    return Pagination(page=page, limit=limit)


def get_media_client(settings: Settings = Depends(get_settings)) -> MediaHostClient:
    return MediaHostClient(settings)


def get_upload_stager(settings: Settings = Depends(get_settings)) -> UploadStager:
    return UploadStager(settings)
