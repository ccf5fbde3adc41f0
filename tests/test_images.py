from __future__ import annotations

import asyncio

import httpx
import pytest

from builders import make_item, make_report, png_bytes, png_url

from inventoryreport.adapters.images import (
    ImageFetchConfig,
    RemoteImageFetcher,
    decode_data_url,
    file_to_data_url,
    is_data_url,
    is_remote_url,
)


def test_decode_data_url() -> None:
    mime, data = decode_data_url(png_url())
    assert mime == 'image/png'
    assert data == png_bytes()


@pytest.mark.parametrize(
    'value',
    ['', 'https://example.com/a.jpg', 'data:image/png,plain-text', 'data:image/png;base64'],
)
def test_decode_data_url_rejects_unusable_values(value: str) -> None:
    with pytest.raises(ValueError):
        decode_data_url(value)


def test_file_to_data_url_uses_extension(tmp_path) -> None:
    path = tmp_path / 'photo.png'
    path.write_bytes(png_bytes())
    url = file_to_data_url(path)
    assert url.startswith('data:image/png;base64,')
    assert decode_data_url(url)[1] == png_bytes()

    odd = tmp_path / 'photo.bin'
    odd.write_bytes(b'xyz')
    assert file_to_data_url(odd).startswith('data:image/jpeg;base64,')


def test_url_kinds() -> None:
    assert is_data_url(png_url())
    assert is_remote_url('HTTPS://example.com/x.png')
    assert not is_remote_url(png_url())


def _transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == '/ok.png':
            return httpx.Response(200, content=png_bytes(), headers={'content-type': 'image/png'})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def test_preload_inlines_remote_images_and_keeps_failures() -> None:
    report = make_report(
        items=[make_item('Sofa', images=['https://img.test/ok.png', 'https://img.test/missing.png', png_url()])]
    )
    fetcher = RemoteImageFetcher(ImageFetchConfig(timeout_seconds=5, max_bytes=1_000_000), transport=_transport())

    updated = asyncio.run(fetcher.preload(report))

    images = updated.items[0].images
    assert decode_data_url(images[0]) == ('image/png', png_bytes())
    assert images[1] == 'https://img.test/missing.png'
    assert images[2] == png_url()
    assert report.items[0].images[0] == 'https://img.test/ok.png'


def test_preload_enforces_size_limit() -> None:
    report = make_report(items=[make_item('Sofa', images=['https://img.test/ok.png'])])
    fetcher = RemoteImageFetcher(ImageFetchConfig(timeout_seconds=5, max_bytes=10), transport=_transport())
    updated = asyncio.run(fetcher.preload(report))
    assert updated.items[0].images == ['https://img.test/ok.png']
