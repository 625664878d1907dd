"""Tests for staging multipart uploads in the temp directory."""

import io
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from starlette.datastructures import Headers, UploadFile

from vortexstream.errors import InternalError, InvalidArgument
from vortexstream.media import MediaAsset, MediaHostClient, MediaHostError, UploadStager


def make_upload(filename: str, content: bytes, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def stager(mock_settings):
    return UploadStager(mock_settings)


def staged_files(stager: UploadStager) -> list[Path]:
    return list(stager.base_path.iterdir())


@pytest.mark.asyncio
async def test_stage_writes_file_under_unique_name(stager):
    upload = make_upload("Holiday.JPG", b"jpeg bytes", "image/jpeg")

    path = await stager.stage(upload, "image", "avatar")

    assert path.parent == stager.base_path
    assert path.suffix == ".jpg"
    assert path.stem != "Holiday"
    assert path.read_bytes() == b"jpeg bytes"


@pytest.mark.asyncio
async def test_stage_ignores_client_directory_parts(stager):
    path = await stager.stage(
        make_upload("../../etc/avatar.png", b"png", "image/png"), "image", "avatar"
    )

    assert path.parent == stager.base_path


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "filename,content_type,kind",
    [
        ("avatar.exe", "application/octet-stream", "image"),
        ("avatar", "image/png", "image"),
        ("avatar.png", "image/jpeg", "image"),
        ("clip.mp4", "image/png", "video"),
        ("clip.png", "image/png", "video"),
    ],
)
async def test_stage_rejects_wrong_type(stager, filename, content_type, kind):
    with pytest.raises(InvalidArgument):
        await stager.stage(make_upload(filename, b"data", content_type), kind, "file")

    assert staged_files(stager) == []


@pytest.mark.asyncio
async def test_stage_rejects_oversize_file(stager, mock_settings):
    content = b"x" * (mock_settings.max_image_bytes + 1)

    with pytest.raises(InvalidArgument, match="limit"):
        await stager.stage(make_upload("big.png", content, "image/png"), "image", "avatar")

    assert staged_files(stager) == []


@pytest.mark.asyncio
async def test_video_limit_is_separate(stager, mock_settings):
    content = b"x" * (mock_settings.max_image_bytes + 1)

    upload = make_upload("clip.webm", content, "video/webm")

    path = await stager.stage(upload, "video", "videoFile")

    assert path.stat().st_size == len(content)


@pytest.mark.asyncio
async def test_stage_rejects_empty_file(stager):
    with pytest.raises(InvalidArgument, match="empty"):
        await stager.stage(make_upload("empty.png", b"", "image/png"), "image", "avatar")

    assert staged_files(stager) == []


@pytest.mark.asyncio
async def test_stage_and_upload_removes_temp_file(stager):
    media = AsyncMock(spec=MediaHostClient)
    media.upload.return_value = MediaAsset("abc", "https://media.test/abc.png", "image")

    asset = await stager.stage_and_upload(
        make_upload("pic.png", b"png", "image/png"), "image", "avatar", media
    )

    assert asset.public_id == "abc"
    uploaded_path = media.upload.await_args[0][0]
    assert uploaded_path.parent == stager.base_path
    assert not uploaded_path.exists()
    assert staged_files(stager) == []


@pytest.mark.asyncio
async def test_stage_and_upload_failure_is_internal_error(stager):
    media = AsyncMock(spec=MediaHostClient)
    media.upload.side_effect = MediaHostError("rejected")

    with pytest.raises(InternalError, match="Error while uploading coverImage"):
        await stager.stage_and_upload(
            make_upload("cover.png", b"png", "image/png"), "image", "coverImage", media
        )

    assert staged_files(stager) == []
