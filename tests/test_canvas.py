from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfReader

from builders import jpeg_bytes, png_bytes

from inventoryreport.exceptions import ImageDecodeError
from inventoryreport.report.canvas import RecordingCanvas
from inventoryreport.report.layout import CONTENT_TOP, CONTENT_WIDTH


def test_pages_are_numbered_from_one() -> None:
    canvas = RecordingCanvas()
    assert canvas.current_page_count() == 0
    assert canvas.start_new_page() == 1
    assert canvas.start_new_page() == 2
    assert canvas.active_page == 2
    canvas.set_active_page(1)
    assert canvas.active_page == 1
    with pytest.raises(ValueError):
        canvas.set_active_page(3)


def test_drawing_without_a_page_fails() -> None:
    with pytest.raises(RuntimeError):
        RecordingCanvas().draw_text('hello', 10, 10)


def test_slot_text_can_be_overwritten_on_an_earlier_page() -> None:
    canvas = RecordingCanvas()
    canvas.start_new_page()
    canvas.draw_text('--', 100, 100, slot='number')
    canvas.start_new_page()
    canvas.overwrite_text(1, 'number', '7')
    assert canvas.slot_text(1, 'number') == ['7']
    assert '7' in canvas.page_text(1)
    with pytest.raises(KeyError):
        canvas.overwrite_text(2, 'number', '8')


def test_draw_text_returns_next_baseline() -> None:
    canvas = RecordingCanvas()
    canvas.start_new_page()
    assert canvas.draw_text(['a', 'b'], 0, 100, font_size=10, leading=12) == pytest.approx(76)


def test_image_decode_is_strict_about_format() -> None:
    canvas = RecordingCanvas()
    canvas.start_new_page()
    x, y, w, h = canvas.draw_image(jpeg_bytes((80, 40)), 'JPEG', 0, 0, 100, 100)
    assert w == pytest.approx(100)
    assert h == pytest.approx(50)

    with pytest.raises(ImageDecodeError) as excinfo:
        canvas.draw_image(png_bytes(), 'JPEG', 0, 0, 100, 100)
    assert excinfo.value.image_format == 'JPEG'

    canvas.draw_image(png_bytes(), 'PNG', 0, 0, 100, 100)
    with pytest.raises(ImageDecodeError):
        canvas.draw_image(b'', 'PNG', 0, 0, 100, 100)


def test_empty_table_takes_one_page() -> None:
    canvas = RecordingCanvas()
    canvas.start_new_page()
    pages = canvas.draw_table([], ['Ref #', 'Description'], CONTENT_TOP - 40, [60, CONTENT_WIDTH - 60])
    assert pages == 1
    assert canvas.current_page_count() == 1
    assert canvas.page_text(1) == ['Ref # | Description']


def test_long_table_continues_with_repeated_header() -> None:
    canvas = RecordingCanvas()
    canvas.start_new_page()
    rows = [[str(index + 1), f'Item {index + 1}'] for index in range(120)]
    pages = canvas.draw_table(rows, ['Ref #', 'Description'], CONTENT_TOP - 40, [60, CONTENT_WIDTH - 60])

    assert pages > 1
    assert canvas.current_page_count() == pages
    for page_number in range(1, pages + 1):
        assert canvas.page_text(page_number)[0] == 'Ref # | Description'
    drawn = [line for page in range(1, pages + 1) for line in canvas.page_text(page)[1:]]
    assert drawn == [f'{index + 1} | Item {index + 1}' for index in range(120)]


def test_export_replays_every_page() -> None:
    canvas = RecordingCanvas(title='Inventory')
    for _ in range(3):
        canvas.start_new_page()
        canvas.draw_text('page', 50, 700)
    reader = PdfReader(BytesIO(canvas.export_as_blob()))
    assert len(reader.pages) == 3
    assert reader.metadata.title == 'Inventory'


def test_export_without_pages_fails() -> None:
    with pytest.raises(RuntimeError):
        RecordingCanvas().export_as_blob()
