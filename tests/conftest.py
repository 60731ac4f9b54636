from __future__ import annotations

import io

import httpx
import pytest
from PIL import Image

from surveyreport.adapters.image_fetcher import ImageFetcher, encode_jpeg
from surveyreport.config import get_settings
from surveyreport.types import ImageAsset


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv('SURVEY_REPORT_OUTPUT_DIR', str(tmp_path / 'reports'))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def png_bytes(color=(200, 40, 40), size=(16, 16), mode='RGB') -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format='PNG')
    return buffer.getvalue()


def loaded_asset(url='https://img.example/x.png', color=(10, 120, 200)) -> ImageAsset:
    data, width, height = encode_jpeg(png_bytes(color))
    return ImageAsset.loaded(url, data, width, height)


def mock_fetcher(routes: dict) -> ImageFetcher:
    """Fetcher whose HTTP client answers from ``routes`` (url -> Response or exception)."""

    def handler(request: httpx.Request) -> httpx.Response:
        outcome = routes.get(str(request.url))
        if outcome is None:
            return httpx.Response(404)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ImageFetcher(client=client)
