from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import unquote_to_bytes, urlparse

import httpx
from PIL import Image, ImageOps

from surveyreport.types import ImageAsset


logger = logging.getLogger(__name__)

_REMOTE_SCHEMES = {'http', 'https'}


@dataclass
class ImageFetchConfig:
    timeout_seconds: float | None = None
    follow_redirects: bool = True
    user_agent: str = 'surveyreport/0.1 (+python-httpx)'
    jpeg_quality: int = 85


def _decode_data_uri(url: str) -> bytes:
    header, sep, payload = url.partition(',')
    if not sep:
        raise ValueError('malformed data URI')
    if header.endswith(';base64'):
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as exc:
            raise ValueError(f'invalid base64 payload: {exc}') from exc
    return unquote_to_bytes(payload)


def encode_jpeg(raw: bytes, *, quality: int = 85) -> tuple[bytes, int, int]:
    """Decode any Pillow-readable image and re-encode it as upright RGB JPEG.

    The EXIF orientation tag is applied to the pixels, as a browser does.
    """
    with Image.open(BytesIO(raw)) as source:
        source.load()
        img = ImageOps.exif_transpose(source)
        if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
            rgba = img.convert('RGBA')
            flattened = Image.new('RGB', rgba.size, (255, 255, 255))
            flattened.paste(rgba, mask=rgba.getchannel('A'))
        else:
            flattened = img.convert('RGB')
        try:
            buffer = BytesIO()
            flattened.save(buffer, format='JPEG', quality=max(1, min(95, int(quality))))
            return buffer.getvalue(), flattened.width, flattened.height
        finally:
            flattened.close()


class ImageFetcher:
    """Turns optional image URLs into embeddable JPEG assets.

    ``fetch`` never raises for load or decode problems; every failure comes
    back as ``ImageAsset.absent``. There are no retries, and no timeout
    unless one is configured.
    """

    def __init__(self, cfg: ImageFetchConfig | None = None, *, client: httpx.AsyncClient | None = None):
        self.cfg = cfg or ImageFetchConfig()
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> ImageFetcher:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.cfg.timeout_seconds),
                follow_redirects=self.cfg.follow_redirects,
                headers={'User-Agent': self.cfg.user_agent},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str | None) -> ImageAsset:
        token = str(url or '').strip()
        if not token:
            logger.debug('No image URL supplied')
            return ImageAsset.absent(None, 'missing_url')

        try:
            raw = await self._load_bytes(token)
        except Exception as exc:
            logger.warning('Failed to load image %s: %s', token, exc)
            return ImageAsset.absent(token, f'load_failed: {type(exc).__name__}: {exc}')

        try:
            data, width, height = encode_jpeg(raw, quality=self.cfg.jpeg_quality)
        except Exception as exc:
            logger.warning('Failed to decode image %s: %s', token, exc)
            return ImageAsset.absent(token, f'decode_failed: {type(exc).__name__}: {exc}')

        return ImageAsset.loaded(token, data, width, height)

    async def fetch_all(self, *urls: str | None) -> list[ImageAsset]:
        """Load several images concurrently and wait for every one of them."""
        return list(await asyncio.gather(*(self.fetch(url) for url in urls)))

    async def _load_bytes(self, url: str) -> bytes:
        scheme = urlparse(url).scheme.lower()
        if scheme == 'data':
            return _decode_data_uri(url)
        if scheme not in _REMOTE_SCHEMES:
            raise ValueError(f'unsupported URL scheme: {scheme or "<none>"}')

        response = await self.client().get(url)
        response.raise_for_status()
        if not response.content:
            raise ValueError('empty response body')
        return response.content
