from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfReader

from builders import CORRUPT_IMAGE_URL, jpeg_url, make_item, make_report, png_url

from inventoryreport.config import get_settings
from inventoryreport.exceptions import DocumentGenerationError
from inventoryreport.report.assembler import assemble_document, build_report_pdf
from inventoryreport.report.canvas import RecordingCanvas
from inventoryreport.report.plan import (
    CONTENTS,
    DISCLAIMERS,
    IMAGE_ANALYSIS,
    INVENTORY_ITEMS,
    PROPERTY_OVERVIEW,
    REPORT_CONTEXT,
    contents_slot,
)
from inventoryreport.report.sections import CONTENTS_PLACEHOLDER, PHOTO_UNAVAILABLE_TEXT


def _assemble(report):
    canvas = RecordingCanvas()
    document = assemble_document(report, canvas=canvas)
    return document, canvas


def _all_text(canvas: RecordingCanvas) -> list[str]:
    return [line for page in range(1, canvas.current_page_count() + 1) for line in canvas.page_text(page)]


def test_minimal_report_has_six_pages() -> None:
    document, _ = _assemble(make_report())

    assert document.page_count == 6
    assert len(PdfReader(BytesIO(document.pdf_bytes)).pages) == 6
    assert IMAGE_ANALYSIS not in document.ledger
    assert REPORT_CONTEXT not in document.ledger
    assert document.ledger == {
        CONTENTS: 2,
        DISCLAIMERS: 3,
        PROPERTY_OVERVIEW: 5,
        INVENTORY_ITEMS: 6,
    }


def test_ledger_starts_at_contents_and_increases() -> None:
    report = make_report(
        prompt='Check-in inventory for new tenants',
        pair_count=2,
        items=[make_item('Sofa', images=[png_url()], analysis='Good condition')],
    )
    document, _ = _assemble(report)

    pages = list(document.ledger.values())
    assert document.ledger[CONTENTS] == 2
    assert pages == sorted(pages)
    assert len(set(pages)) == len(pages)
    assert list(document.ledger) == [
        CONTENTS,
        DISCLAIMERS,
        PROPERTY_OVERVIEW,
        REPORT_CONTEXT,
        INVENTORY_ITEMS,
        IMAGE_ANALYSIS,
    ]


def test_contents_numbers_are_backfilled() -> None:
    report = make_report(prompt='Annual inspection', items=[make_item('Bed', images=[jpeg_url()])])
    document, canvas = _assemble(report)
    contents_page = document.ledger[CONTENTS]

    assert canvas.slot_text(contents_page, contents_slot(CONTENTS)) == ['1']
    for name, first_page in document.ledger.items():
        if name == CONTENTS:
            continue
        assert canvas.slot_text(contents_page, contents_slot(name)) == [str(first_page - 1)]
    assert CONTENTS_PLACEHOLDER not in canvas.page_text(contents_page)
    assert dict(document.contents_entries)[DISCLAIMERS] == document.ledger[DISCLAIMERS] - 1


def test_contents_lists_only_present_sections() -> None:
    document, canvas = _assemble(make_report())
    contents_text = canvas.page_text(document.ledger[CONTENTS])
    assert 'Report Context' not in contents_text
    assert 'Image Analysis' not in contents_text
    assert 'Inventory Items' in contents_text


def test_cover_has_no_letterhead_chrome() -> None:
    document, canvas = _assemble(make_report())
    tagline = get_settings().company_tagline
    assert tagline not in canvas.page_text(1)
    for page in range(2, document.page_count + 1):
        assert tagline in canvas.page_text(page)


def test_property_pairs_beyond_the_first_share_one_page() -> None:
    document, canvas = _assemble(make_report(pair_count=3))

    assert document.page_count == 7
    first = document.ledger[IMAGE_ANALYSIS]
    assert first == document.page_count
    text = canvas.page_text(first)
    assert 'Property Overview — Ref 1.1' in text
    assert 'Property Overview — Ref 1.2' in text


def test_image_analysis_uses_two_blocks_per_page() -> None:
    items = [make_item(f'Chair {n}', images=[png_url()], analysis=f'Chair {n} is fine') for n in range(1, 6)]
    document, canvas = _assemble(make_report(items=items))

    first = document.ledger[IMAGE_ANALYSIS]
    assert document.page_count - first + 1 == 3
    assert 'Chair 5 — Ref 6.1' in canvas.page_text(document.page_count)


def test_corrupt_photo_becomes_placeholder_without_changing_page_count() -> None:
    analysis = 'Scratched oak table'
    broken = make_report(items=[make_item('Table', images=[CORRUPT_IMAGE_URL], analysis=analysis)])
    healthy = make_report(items=[make_item('Table', images=[png_url()], analysis=analysis)])

    broken_doc, broken_canvas = _assemble(broken)
    healthy_doc, healthy_canvas = _assemble(healthy)

    assert broken_doc.page_count == healthy_doc.page_count == 7
    broken_text = broken_canvas.page_text(broken_doc.ledger[IMAGE_ANALYSIS])
    assert PHOTO_UNAVAILABLE_TEXT in broken_text
    assert analysis in broken_text
    assert 'Table — Ref 2.1' in broken_text
    assert PHOTO_UNAVAILABLE_TEXT not in healthy_canvas.page_text(healthy_doc.ledger[IMAGE_ANALYSIS])


def test_png_payload_under_jpeg_mime_still_renders() -> None:
    report = make_report(items=[make_item('Mirror', images=[png_url().replace('image/png', 'image/jpeg')])])
    document, canvas = _assemble(report)
    assert PHOTO_UNAVAILABLE_TEXT not in canvas.page_text(document.ledger[IMAGE_ANALYSIS])


def test_missing_analysis_shows_placeholder() -> None:
    document, canvas = _assemble(make_report(items=[make_item('Rug', images=[png_url()])]))
    assert 'No analysis available' in canvas.page_text(document.ledger[IMAGE_ANALYSIS])


def test_long_inventory_spills_onto_more_pages() -> None:
    items = [make_item(f'Item {n}', notes='Checked and recorded') for n in range(1, 101)]
    document, canvas = _assemble(make_report(items=items))

    assert document.page_count > 6
    assert document.ledger[INVENTORY_ITEMS] == 6
    rows = [line for line in _all_text(canvas) if line.endswith('| Good | Checked and recorded')]
    assert len(rows) == 100
    assert rows[-1].startswith('100 | Item 100')


class _TableCountingCanvas(RecordingCanvas):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.table_pages: list[int] = []

    def draw_table(self, rows, headers, start_y, column_widths):
        pages = super().draw_table(rows, headers, start_y, column_widths)
        self.table_pages.append(pages)
        return pages


def test_image_analysis_follows_a_multi_page_inventory() -> None:
    long_notes = 'Light wear along the edges, small scuffs near the base and a faint stain on one side. ' * 3
    items = [make_item(f'Item {n}', notes=long_notes) for n in range(1, 61)]
    items.append(make_item('Wardrobe', images=[png_url()], analysis='Doors close properly'))
    canvas = _TableCountingCanvas()

    document = assemble_document(make_report(prompt='Move-out inspection', items=items), canvas=canvas)

    assert len(canvas.table_pages) == 1
    table_pages = canvas.table_pages[0]
    assert table_pages > 1
    analysis_start = document.ledger[IMAGE_ANALYSIS]
    assert analysis_start == document.ledger[INVENTORY_ITEMS] + table_pages
    assert analysis_start == document.page_count
    contents_page = document.ledger[CONTENTS]
    assert canvas.slot_text(contents_page, contents_slot(IMAGE_ANALYSIS)) == [str(analysis_start - 1)]
    assert 'Wardrobe — Ref 62.1' in canvas.page_text(analysis_start)


def test_same_report_gives_identical_bytes() -> None:
    report = make_report(prompt='Inventory', pair_count=2, items=[make_item('Sofa', images=[png_url()])])
    assert build_report_pdf(report) == build_report_pdf(report)


class _ExplodingCanvas(RecordingCanvas):
    def draw_table(self, rows, headers, start_y, column_widths):
        raise RuntimeError('table engine exploded')


def test_unexpected_failures_are_wrapped() -> None:
    with pytest.raises(DocumentGenerationError) as excinfo:
        assemble_document(make_report(), canvas=_ExplodingCanvas())
    assert isinstance(excinfo.value.cause, RuntimeError)
    assert excinfo.value.__cause__ is excinfo.value.cause


def test_non_empty_canvas_is_rejected() -> None:
    canvas = RecordingCanvas()
    canvas.start_new_page()
    with pytest.raises(DocumentGenerationError):
        assemble_document(make_report(), canvas=canvas)
