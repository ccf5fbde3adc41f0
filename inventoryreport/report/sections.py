"""Section renderers of the inventory report PDF.

Every renderer has the shape ``(canvas, report, start_page) -> pages`` and
opens its own first page. Letterhead chrome is not drawn here by the
individual sections; ``with_chrome`` adds it to every page a wrapped
renderer consumed.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Callable

from reportlab.lib.units import mm

from ..config import Settings
from ..exceptions import ImageDecodeError
from ..adapters.images import decode_data_url
from ..types import Report
from .canvas import PageCanvas
from .layout import (
    BLOCK_GAP,
    CONTENT_BOTTOM,
    CONTENT_LEFT,
    CONTENT_RIGHT,
    CONTENT_TOP,
    CONTENT_WIDTH,
    FOOTER_HEIGHT,
    HEADER_HEIGHT,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    Box,
    split_image_and_text,
)
from .plan import (
    CONTENTS,
    COVER,
    DISCLAIMERS,
    IMAGE_ANALYSIS,
    INVENTORY_ITEMS,
    PROPERTY_OVERVIEW,
    REPORT_CONTEXT,
    SECTION_PLAN,
    contents_sections,
    contents_slot,
)
from .references import ImageEntry, NO_ANALYSIS_TEXT, build_image_entries, inventory_reference
from .text_layout import (
    OutputFormat,
    clip_lines,
    escape_reserved_characters,
    format_date,
    markdown_to_plain_text,
    wrap_text,
)


logger = logging.getLogger(__name__)

SectionRenderer = Callable[[PageCanvas, Report, int], int]

IMAGE_FORMATS = ('JPEG', 'PNG')
PHOTO_UNAVAILABLE_TEXT = 'Photo unavailable'
CONTENTS_PLACEHOLDER = '--'
IMAGES_PER_PAGE = 2

BRAND_COLOR = '#1E3A5F'
MUTED_COLOR = '#6B7280'
RULE_COLOR = '#CBD5E1'
PLACEHOLDER_FILL = '#F3F4F6'

COVER_HIGHLIGHTS = (
    'Open 7 days a week, 364 days a year',
    'Over 10,000 inspections completed in our region',
    'Guaranteed 48 hour return of our reports',
    '5% of our profits go to support of local housing charity',
)

DISCLAIMER_GROUPS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        'GENERAL DISCLAIMERS',
        (
            "This inventory provides a record of the property's condition and contents at the time of inspection.",
            'All items are assumed to be in good condition unless otherwise stated.',
            'Estimates in this report are not to be taken as valuations.',
            'The inventory company cannot be held responsible for any errors or omissions.',
        ),
    ),
    (
        'PROPERTY INSPECTION',
        (
            'Items are not moved during inspection unless specified.',
            'Locked areas not accessible during inspection are excluded from this report.',
            'Lofts, attics, and inaccessible high areas are not inspected.',
        ),
    ),
    (
        'FURNITURE AND FURNISHINGS',
        (
            'Fire safety labels are not checked or inspected.',
            'Sofa beds and similar items are not opened or inspected internally.',
            'Mattresses are not examined underneath.',
        ),
    ),
    (
        'UTILITIES',
        (
            'Electrical items are not tested.',
            'Utility meters are not read unless specified.',
            'Boilers and heating systems are not tested.',
        ),
    ),
)
# groups before this index go on the first disclaimer page
DISCLAIMER_PAGE_SPLIT = 2


@dataclass(frozen=True)
class Letterhead:
    company_name: str
    tagline: str
    address: str
    phone: str
    email: str
    website: str
    registration: str

    @classmethod
    def from_settings(cls, settings: Settings) -> Letterhead:
        return cls(
            company_name=settings.company_name,
            tagline=settings.company_tagline,
            address=settings.company_address,
            phone=settings.company_phone,
            email=settings.company_email,
            website=settings.company_website,
            registration=settings.company_registration,
        )


@dataclass(frozen=True)
class ReportStyle:
    font_name: str = 'Helvetica'
    bold_font_name: str = 'Helvetica-Bold'
    body_size: float = 10

    @property
    def leading(self) -> float:
        return self.body_size * 1.4


def _text(value: str) -> str:
    return escape_reserved_characters(value, OutputFormat.canvas)


def displayed_page_number(physical_page: int) -> int:
    """Number printed on a page; the cover is unnumbered."""
    return physical_page - 1


class LetterheadChrome:
    """Company header and report footer shared by all pages but the cover."""

    def __init__(self, letterhead: Letterhead, style: ReportStyle):
        self.letterhead = letterhead
        self.style = style

    def draw(self, canvas: PageCanvas, report: Report, physical_page: int) -> None:
        lh = self.letterhead
        top = PAGE_HEIGHT - 11 * mm

        canvas.draw_text(_text(lh.company_name), CONTENT_LEFT, top, bold=True, font_size=10.5, color=BRAND_COLOR)
        canvas.draw_text(_text(lh.tagline), CONTENT_RIGHT, top, font_size=8, color=MUTED_COLOR, align='right')
        contact = [
            f'A {lh.company_name}, {lh.address}',
            f'T {lh.phone}',
            f'E {lh.email}',
            f'W {lh.website}',
        ]
        canvas.draw_text([_text(line) for line in contact], CONTENT_LEFT, top - 12, font_size=7, leading=8.6,
                         color=MUTED_COLOR)
        rule_y = PAGE_HEIGHT - HEADER_HEIGHT
        canvas.draw_line(CONTENT_LEFT, rule_y, CONTENT_RIGHT, rule_y, color=RULE_COLOR)

        canvas.draw_line(CONTENT_LEFT, FOOTER_HEIGHT, CONTENT_RIGHT, FOOTER_HEIGHT, color=RULE_COLOR)
        footer = [
            'Inventory & Check In',
            f'Date {format_date(report.date)}',
            f'Registered office: {lh.address}',
            f'Property: {report.property.address}',
            f'Registered in England and Wales, Company Number {lh.registration}',
        ]
        canvas.draw_text([_text(line) for line in footer], PAGE_WIDTH / 2, FOOTER_HEIGHT - 5 * mm, font_size=7,
                         leading=8.6, color=MUTED_COLOR, align='center')
        canvas.draw_text(str(displayed_page_number(physical_page)), CONTENT_RIGHT, FOOTER_HEIGHT - 5 * mm,
                         font_size=9, align='right')


def with_chrome(renderer: SectionRenderer, chrome: LetterheadChrome) -> SectionRenderer:
    """Wrap *renderer* so every page it consumed gets the letterhead."""

    @functools.wraps(renderer)
    def wrapped(canvas: PageCanvas, report: Report, start_page: int) -> int:
        pages = renderer(canvas, report, start_page)
        for physical_page in range(start_page, start_page + pages):
            canvas.set_active_page(physical_page)
            chrome.draw(canvas, report, physical_page)
        canvas.set_active_page(canvas.current_page_count())
        return pages

    return wrapped


class ReportSections:
    def __init__(self, letterhead: Letterhead, style: ReportStyle | None = None):
        self.letterhead = letterhead
        self.style = style or ReportStyle()

    # -- shared drawing helpers ------------------------------------------

    def _wrap(self, text: str, width: float, *, size: float | None = None, bold: bool = False) -> list[str]:
        font = self.style.bold_font_name if bold else self.style.font_name
        return wrap_text(text, width, font_name=font, font_size=size or self.style.body_size)

    def _heading(self, canvas: PageCanvas, title: str, y: float = CONTENT_TOP) -> float:
        canvas.draw_text(_text(title), CONTENT_LEFT, y, bold=True, font_size=15, color=BRAND_COLOR)
        rule_y = y - 7
        canvas.draw_line(CONTENT_LEFT, rule_y, CONTENT_RIGHT, rule_y, color=RULE_COLOR)
        return rule_y - 8 * mm

    def _paragraph(self, canvas: PageCanvas, text: str, x: float, y: float, width: float, max_height: float) -> float:
        max_lines = max(0, int(max_height // self.style.leading))
        lines = clip_lines(self._wrap(text, width), max_lines)
        return canvas.draw_text([_text(line) for line in lines], x, y, leading=self.style.leading)

    def _draw_photo(self, canvas: PageCanvas, image_url: str, box: Box) -> bool:
        """Draw a photo into *box*, or a placeholder when it cannot be decoded.

        Each format in ``IMAGE_FORMATS`` is tried in order; an undecodable
        photo never aborts the document.
        """
        try:
            _, data = decode_data_url(image_url)
        except ValueError as exc:
            logger.warning('Report image is not an embeddable data URL: %s', exc)
            data = b''

        for fmt in IMAGE_FORMATS:
            try:
                canvas.draw_image(data, fmt, box.x, box.y, box.width, box.height)
                return True
            except ImageDecodeError as exc:
                logger.debug('Image decode as %s failed: %s', fmt, exc)

        logger.warning('Photo could not be decoded in any of %s; drawing placeholder', ', '.join(IMAGE_FORMATS))
        canvas.draw_rect(box.x, box.y, box.width, box.height, fill_color=PLACEHOLDER_FILL)
        canvas.draw_text(
            PHOTO_UNAVAILABLE_TEXT,
            box.x + box.width / 2,
            box.y + box.height / 2,
            font_size=9,
            color=MUTED_COLOR,
            align='center',
        )
        return False

    def _image_with_analysis(
        self,
        canvas: PageCanvas,
        *,
        image_url: str,
        analysis: str,
        box: Box,
        analysis_label: str = 'AI Analysis:',
    ) -> None:
        image_box, text_box = split_image_and_text(box)
        self._draw_photo(canvas, image_url, image_box)

        y = canvas.draw_text(_text(analysis_label), text_box.x, text_box.top - 10, bold=True, font_size=10.5)
        body = markdown_to_plain_text(analysis) or NO_ANALYSIS_TEXT
        self._paragraph(canvas, body, text_box.x, y - 2, text_box.width, y - text_box.y)

    # -- sections --------------------------------------------------------

    def cover(self, canvas: PageCanvas, report: Report, start_page: int) -> int:
        canvas.start_new_page()
        center = PAGE_WIDTH / 2

        y = PAGE_HEIGHT - 70 * mm
        title_lines = self._wrap(report.title or 'Property Inventory Report', CONTENT_WIDTH, size=24, bold=True)
        y = canvas.draw_text([_text(line) for line in title_lines], center, y, bold=True, font_size=24,
                             leading=30, color=BRAND_COLOR, align='center')
        y = canvas.draw_text(_text(format_date(report.date)), center, y - 14 * mm, font_size=14, align='center')

        y -= 10 * mm
        for label, value in (('Property', report.property.address), ('Property Type', report.property.type)):
            lines = self._wrap(f'{label}: {value}', CONTENT_WIDTH, size=12)
            y = canvas.draw_text([_text(line) for line in lines], center, y, font_size=12, align='center')

        y -= 18 * mm
        for line in COVER_HIGHLIGHTS:
            y = canvas.draw_text(_text(line), center, y, font_size=11, leading=18, color=MUTED_COLOR,
                                 align='center')

        canvas.draw_text(_text(self.letterhead.company_name), center, 30 * mm, bold=True, font_size=14,
                         color=BRAND_COLOR, align='center')
        return 1

    def contents(self, canvas: PageCanvas, report: Report, start_page: int) -> int:
        canvas.start_new_page()
        y = self._heading(canvas, 'CONTENTS')

        title_x = CONTENT_LEFT + 25 * mm
        number_x = CONTENT_RIGHT - 25 * mm
        row_step = 10 * mm
        for section in contents_sections(report):
            canvas.draw_text(_text(section.name), title_x, y, font_size=12)
            canvas.draw_text(CONTENTS_PLACEHOLDER, number_x, y, font_size=12, align='right',
                             slot=contents_slot(section.name))
            canvas.draw_line(title_x, y - 3, number_x, y - 3, color='#E5E7EB', line_width=0.4)
            y -= row_step
        return 1

    def disclaimers(self, canvas: PageCanvas, report: Report, start_page: int) -> int:
        pages = (
            ('DISCLAIMERS', 0, DISCLAIMER_GROUPS[:DISCLAIMER_PAGE_SPLIT]),
            ('DISCLAIMERS (CONTINUED)', DISCLAIMER_PAGE_SPLIT, DISCLAIMER_GROUPS[DISCLAIMER_PAGE_SPLIT:]),
        )
        indent = 10 * mm
        for heading, offset, groups in pages:
            canvas.start_new_page()
            y = self._heading(canvas, heading)
            for group_index, (group_title, clauses) in enumerate(groups, start=offset + 1):
                y = canvas.draw_text(_text(f'{group_index}. {group_title}'), CONTENT_LEFT, y, bold=True,
                                     font_size=11)
                y -= 2
                for clause_index, clause in enumerate(clauses, start=1):
                    number = f'{group_index}.{clause_index}'
                    canvas.draw_text(number, CONTENT_LEFT + 2 * mm, y)
                    lines = self._wrap(clause, CONTENT_WIDTH - indent)
                    y = canvas.draw_text([_text(line) for line in lines], CONTENT_LEFT + indent, y,
                                         leading=self.style.leading)
                    y -= 1.5 * mm
                y -= 5 * mm
        return len(pages)

    def property_overview(self, canvas: PageCanvas, report: Report, start_page: int) -> int:
        canvas.start_new_page()
        y = self._heading(canvas, 'PROPERTY OVERVIEW')

        label_width = 42 * mm
        fields = (
            ('Property Address:', report.property.address),
            ('Property Type:', report.property.type),
            ('Inspection Date:', format_date(report.date)),
        )
        for label, value in fields:
            canvas.draw_text(_text(label), CONTENT_LEFT, y, bold=True)
            lines = self._wrap(value, CONTENT_WIDTH - label_width) or ['']
            y = canvas.draw_text([_text(line) for line in lines], CONTENT_LEFT + label_width, y,
                                 leading=self.style.leading)
            y -= 2 * mm

        pairs = report.property.image_response_pairs
        if pairs:
            y -= 6 * mm
            y = canvas.draw_text('Property Analysis', CONTENT_LEFT, y, bold=True, font_size=12,
                                 color=BRAND_COLOR)
            box_height = min(110 * mm, y - CONTENT_BOTTOM)
            box = Box(CONTENT_LEFT, y - box_height, CONTENT_WIDTH, box_height)
            headline = pairs[0]
            self._image_with_analysis(
                canvas,
                image_url=headline.image_url,
                analysis=headline.response,
                box=box,
                analysis_label='Analysis:',
            )
        return 1

    def report_context(self, canvas: PageCanvas, report: Report, start_page: int) -> int:
        canvas.start_new_page()
        y = self._heading(canvas, 'REPORT CONTEXT')
        self._paragraph(canvas, report.prompt, CONTENT_LEFT, y, CONTENT_WIDTH, y - CONTENT_BOTTOM)
        return 1

    def inventory_items(self, canvas: PageCanvas, report: Report, start_page: int) -> int:
        canvas.start_new_page()
        y = self._heading(canvas, 'INVENTORY ITEMS')

        rows = [
            [
                inventory_reference(index),
                item.description,
                item.condition.value,
                item.notes.strip() or '-',
            ]
            for index, item in enumerate(report.items)
        ]
        ref_width = 16 * mm
        condition_width = 24 * mm
        flexible = CONTENT_WIDTH - ref_width - condition_width
        column_widths = [ref_width, flexible * 0.42, condition_width, flexible * 0.58]
        return canvas.draw_table(rows, ['Ref #', 'Description', 'Condition', 'Notes'], y, column_widths)

    def image_analysis(self, canvas: PageCanvas, report: Report, start_page: int) -> int:
        entries = build_image_entries(report)
        if not entries:
            return 0

        chunks = [entries[i:i + IMAGES_PER_PAGE] for i in range(0, len(entries), IMAGES_PER_PAGE)]
        for page_index, chunk in enumerate(chunks):
            canvas.start_new_page()
            heading = 'IMAGE ANALYSIS' if page_index == 0 else 'IMAGE ANALYSIS (CONTINUED)'
            top = self._heading(canvas, heading)
            block_height = (top - CONTENT_BOTTOM - BLOCK_GAP * (IMAGES_PER_PAGE - 1)) / IMAGES_PER_PAGE
            for slot_index, entry in enumerate(chunk):
                block_top = top - slot_index * (block_height + BLOCK_GAP)
                self._image_block(canvas, entry, Box(CONTENT_LEFT, block_top - block_height, CONTENT_WIDTH,
                                                     block_height))
        return len(chunks)

    def _image_block(self, canvas: PageCanvas, entry: ImageEntry, box: Box) -> None:
        label_lines = clip_lines(self._wrap(entry.label, box.width, size=11.5, bold=True), 2)
        y = canvas.draw_text([_text(line) for line in label_lines], box.x, box.top, bold=True, font_size=11.5,
                             color=BRAND_COLOR)
        body = Box(box.x, box.y, box.width, max(1.0, y - 2 * mm - box.y))
        self._image_with_analysis(canvas, image_url=entry.image_url, analysis=entry.analysis, box=body)


def build_renderers(sections: ReportSections) -> dict[str, SectionRenderer]:
    """Map section names to renderers, letterhead applied where the plan asks."""
    chrome = LetterheadChrome(sections.letterhead, sections.style)
    raw: dict[str, SectionRenderer] = {
        COVER: sections.cover,
        CONTENTS: sections.contents,
        DISCLAIMERS: sections.disclaimers,
        PROPERTY_OVERVIEW: sections.property_overview,
        REPORT_CONTEXT: sections.report_context,
        INVENTORY_ITEMS: sections.inventory_items,
        IMAGE_ANALYSIS: sections.image_analysis,
    }
    renderers: dict[str, SectionRenderer] = {}
    for section in SECTION_PLAN:
        renderer = raw[section.name]
        renderers[section.name] = with_chrome(renderer, chrome) if section.chrome else renderer
    return renderers
