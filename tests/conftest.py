"""Shared fixtures: canned format sources so no test ever runs yt-dlp."""
import os
from typing import List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mediagrab.config.settings import config
from mediagrab.models.format import VideoMetadata
from mediagrab.services.catalog import CatalogService

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

# The two-record scenario: 1080p h264 (50 MB) and m4a audio (3 MB)
SCENARIO_RECORDS = [
    {
        "id": "1",
        "container": "mp4",
        "resolution": "1920x1080",
        "video_codec": "h264",
        "audio_codec": "aac",
        "size_bytes": 52428800,
    },
    {
        "id": "2",
        "container": "m4a",
        "resolution": "N/A",
        "video_codec": "none",
        "audio_codec": "aac",
        "size_bytes": 3145728,
    },
]


class FakeFormatSource:
    """FormatSource returning canned data and recording every call"""

    def __init__(self, formats=None, error: Optional[Exception] = None, path: str = "/srv/downloads/clip [abc].mp4"):
        self.formats = SCENARIO_RECORDS if formats is None else formats
        self.error = error
        self.path = path
        self.fetch_calls: List[str] = []
        self.download_calls: List[tuple] = []

    async def fetch_raw_formats(self, url: str) -> VideoMetadata:
        self.fetch_calls.append(url)
        if self.error:
            raise self.error
        return VideoMetadata(formats=self.formats, title="Sample clip", thumbnail="https://i.ytimg.com/t.jpg", duration=213)

    async def perform_download(self, url: str, format_id: Optional[str] = None) -> str:
        self.download_calls.append((url, format_id))
        if self.error:
            raise self.error
        return self.path


@pytest.fixture
def fake_source():
    return FakeFormatSource()


@pytest.fixture
def catalog_service(fake_source):
    return CatalogService(fake_source)


@pytest.fixture
def output_dir(tmp_path, monkeypatch):
    path = tmp_path / "downloads"
    os.makedirs(path)
    monkeypatch.setattr(config.download, "output_dir", str(path))
    return path


@pytest_asyncio.fixture
async def client(catalog_service):
    from mediagrab.api.deps import get_catalog_service
    from mediagrab.main import app

    app.dependency_overrides[get_catalog_service] = lambda: catalog_service
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
