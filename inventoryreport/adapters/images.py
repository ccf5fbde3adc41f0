from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

import httpx

from ..config import get_settings
from ..types import Report


logger = logging.getLogger(__name__)

DATA_URL_PREFIX = 'data:'


@dataclass
class ImageFetchConfig:
    timeout_seconds: int
    max_bytes: int


def is_data_url(value: str) -> bool:
    return str(value or '').strip().lower().startswith(DATA_URL_PREFIX)


def is_remote_url(value: str) -> bool:
    token = str(value or '').strip().lower()
    return token.startswith('http://') or token.startswith('https://')


def bytes_to_data_url(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode('ascii')
    return f'data:{mime_type};base64,{encoded}'


def file_to_data_url(path: Path) -> str:
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith('image/'):
        mime_type = 'image/jpeg'
    return bytes_to_data_url(path.read_bytes(), mime_type)


def decode_data_url(value: str) -> tuple[str, bytes]:
    """Split a ``data:`` URL into (mime type, raw bytes).

    Raises ``ValueError`` for anything that is not a well-formed base64
    data URL.
    """
    token = str(value or '').strip()
    if not is_data_url(token):
        raise ValueError('not a data URL')
    header, sep, payload = token.partition(',')
    if not sep:
        raise ValueError('data URL has no payload')
    meta = header[len(DATA_URL_PREFIX):]
    parts = [part.strip() for part in meta.split(';') if part.strip()]
    mime_type = parts[0] if parts and '/' in parts[0] else 'application/octet-stream'
    if 'base64' not in {part.lower() for part in parts}:
        raise ValueError('only base64 data URLs are supported')
    try:
        raw = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f'invalid base64 payload: {exc}') from exc
    return mime_type, raw


class RemoteImageFetcher:
    """Fetch remote photo URLs so the PDF can embed them as data URLs."""

    def __init__(self, cfg: ImageFetchConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self.transport = transport

    async def fetch_data_url(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(url)
        response.raise_for_status()
        content = response.content
        if len(content) > int(self.cfg.max_bytes):
            raise ValueError(f'image too large: {len(content)} bytes, max {int(self.cfg.max_bytes)}')
        mime_type = response.headers.get('content-type', '').split(';')[0].strip()
        if not mime_type.startswith('image/'):
            mime_type = 'image/jpeg'
        return bytes_to_data_url(content, mime_type)

    async def preload(self, report: Report) -> Report:
        """Return a copy of *report* with remote image URLs inlined.

        A URL that cannot be fetched is left as it is; the exported PDF then
        shows the photo placeholder for it.
        """
        urls: set[str] = {pair.image_url for pair in report.property.image_response_pairs}
        for item in report.items:
            urls.update(item.images)
        remote = sorted(url for url in urls if is_remote_url(url))
        if not remote:
            return report

        resolved: dict[str, str] = {}
        timeout = max(5, int(self.cfg.timeout_seconds))
        client_kwargs = {'timeout': timeout, 'follow_redirects': True, 'transport': self.transport}
        async with httpx.AsyncClient(**client_kwargs) as client:
            for url in remote:
                try:
                    resolved[url] = await self.fetch_data_url(client, url)
                except (httpx.HTTPError, ValueError) as exc:
                    logger.warning('Failed to fetch report image %s: %s', url, exc)

        if not resolved:
            return report

        updated = report.model_copy(deep=True)
        for pair in updated.property.image_response_pairs:
            pair.image_url = resolved.get(pair.image_url, pair.image_url)
        for item in updated.items:
            item.images = [resolved.get(url, url) for url in item.images]
        return updated


async def preload_remote_images(report: Report, cfg: ImageFetchConfig | None = None) -> Report:
    if cfg is None:
        settings = get_settings()
        cfg = ImageFetchConfig(
            timeout_seconds=settings.image_fetch_timeout_seconds,
            max_bytes=settings.max_image_bytes,
        )
    return await RemoteImageFetcher(cfg).preload(report)
