from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import Settings, get_settings
from ..exceptions import DocumentGenerationError
from ..types import Report
from .canvas import PageCanvas, RecordingCanvas
from .fonts import ReportFonts, resolve_report_fonts
from .plan import CONTENTS, contents_slot, present_sections
from .sections import Letterhead, ReportSections, ReportStyle, build_renderers, displayed_page_number


logger = logging.getLogger(__name__)


@dataclass
class AssembledDocument:
    pdf_bytes: bytes
    page_count: int
    # section name -> first physical page (cover is page 1)
    ledger: dict[str, int] = field(default_factory=dict)
    contents_entries: list[tuple[str, int]] = field(default_factory=list)


def _canvas_for(report: Report, settings: Settings, fonts: ReportFonts) -> RecordingCanvas:
    return RecordingCanvas(
        font_name=fonts.regular,
        bold_font_name=fonts.bold,
        font_size=settings.pdf_body_font_size,
        title=report.title,
        author=settings.company_name,
        invariant=settings.pdf_invariant,
    )


def _sections_for(settings: Settings, fonts: ReportFonts) -> ReportSections:
    style = ReportStyle(
        font_name=fonts.regular,
        bold_font_name=fonts.bold,
        body_size=settings.pdf_body_font_size,
    )
    return ReportSections(Letterhead.from_settings(settings), style)


def _lay_out(canvas: PageCanvas, report: Report, sections: ReportSections) -> dict[str, int]:
    renderers = build_renderers(sections)
    ledger: dict[str, int] = {}
    current_page = 1

    for section in present_sections(report):
        if section.in_contents:
            ledger[section.name] = current_page
        pages = renderers[section.name](canvas, report, current_page)
        if pages < 1:
            raise RuntimeError(f'section {section.name!r} reported {pages} pages for a present section')
        current_page += pages

        actual = canvas.current_page_count()
        if actual != current_page - 1:
            raise RuntimeError(
                f'page ledger out of sync after {section.name!r}: '
                f'expected {current_page - 1} pages, canvas has {actual}'
            )
        logger.debug('Rendered %s: %s page(s), next page %s', section.name, pages, current_page)

    return ledger


def _backfill_contents(canvas: PageCanvas, ledger: dict[str, int]) -> list[tuple[str, int]]:
    contents_page = ledger[CONTENTS]
    entries: list[tuple[str, int]] = []
    for name, first_page in ledger.items():
        # the contents page always calls itself page 1
        shown = 1 if name == CONTENTS else displayed_page_number(first_page)
        canvas.overwrite_text(contents_page, contents_slot(name), str(shown))
        entries.append((name, shown))
    return entries


def assemble_document(
    report: Report,
    *,
    canvas: PageCanvas | None = None,
    settings: Settings | None = None,
) -> AssembledDocument:
    """Lay out *report* as a complete PDF.

    Sections are rendered in their fixed order while a ledger records the
    first physical page of each; the Contents page is then rewritten with
    the final numbers. Any failure other than a single undecodable photo
    raises ``DocumentGenerationError`` and no bytes are returned.
    """
    settings = settings or get_settings()
    try:
        fonts = resolve_report_fonts(settings)
        target = canvas if canvas is not None else _canvas_for(report, settings, fonts)
        if target.current_page_count() != 0:
            raise RuntimeError('assemble_document needs an empty canvas')
        ledger = _lay_out(target, report, _sections_for(settings, fonts))
        contents_entries = _backfill_contents(target, ledger)
        page_count = target.current_page_count()
        pdf_bytes = target.export_as_blob()
    except DocumentGenerationError:
        raise
    except Exception as exc:
        logger.error('PDF generation failed for report %s: %s', report.id, exc)
        raise DocumentGenerationError(f'failed to generate PDF document: {exc}', cause=exc) from exc

    logger.info('Generated report %s: %s pages', report.id, page_count)
    return AssembledDocument(
        pdf_bytes=pdf_bytes,
        page_count=page_count,
        ledger=ledger,
        contents_entries=contents_entries,
    )


def build_report_pdf(report: Report, *, settings: Settings | None = None) -> bytes:
    return assemble_document(report, settings=settings).pdf_bytes
