from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from PIL import Image as PILImage
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Paragraph, Table, TableStyle

from ..exceptions import ImageDecodeError
from .layout import PageMargins, fit_rect_preserve_aspect
from .text_layout import OutputFormat, escape_reserved_characters


logger = logging.getLogger(__name__)

DEFAULT_TEXT_COLOR = '#111827'
TABLE_HEADER_BG = '#F1F5F9'
TABLE_GRID = '#CBD5E1'


class PageCanvas(Protocol):
    """Drawing surface the section renderers work against.

    Page numbers are 1-based physical page numbers.
    """

    def start_new_page(self) -> int: ...

    def set_active_page(self, page_number: int) -> None: ...

    def current_page_count(self) -> int: ...

    def draw_text(self, lines: str | Sequence[str], x: float, y: float, **options: Any) -> float: ...

    def overwrite_text(self, page_number: int, slot: str, lines: str | Sequence[str]) -> None: ...

    def draw_image(
        self, data: bytes, fmt: str, x: float, y: float, w: float, h: float
    ) -> tuple[float, float, float, float]: ...

    def draw_rect(self, x: float, y: float, w: float, h: float, **options: Any) -> None: ...

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, **options: Any) -> None: ...

    def draw_table(
        self,
        rows: Sequence[Sequence[str]],
        headers: Sequence[str],
        start_y: float,
        column_widths: Sequence[float],
    ) -> int: ...

    def page_text(self, page_number: int) -> list[str]: ...

    def export_as_blob(self) -> bytes: ...


@dataclass
class TextOp:
    x: float
    y: float
    lines: list[str]
    font_name: str
    font_size: float
    leading: float
    color: str
    align: str = 'left'
    slot: str | None = None

    def draw(self, pdf: Canvas) -> None:
        pdf.setFillColor(colors.HexColor(self.color))
        _safe_canvas_font(pdf, self.font_name, self.font_size)
        for index, line in enumerate(self.lines):
            y = self.y - index * self.leading
            if self.align == 'center':
                pdf.drawCentredString(self.x, y, line)
            elif self.align == 'right':
                pdf.drawRightString(self.x, y, line)
            else:
                pdf.drawString(self.x, y, line)

    def plain_text(self) -> list[str]:
        return list(self.lines)


@dataclass
class ImageOp:
    reader: ImageReader
    x: float
    y: float
    width: float
    height: float

    def draw(self, pdf: Canvas) -> None:
        pdf.drawImage(self.reader, self.x, self.y, width=self.width, height=self.height, mask='auto')

    def plain_text(self) -> list[str]:
        return []


@dataclass
class RectOp:
    x: float
    y: float
    width: float
    height: float
    stroke_color: str | None = TABLE_GRID
    fill_color: str | None = None
    line_width: float = 0.6

    def draw(self, pdf: Canvas) -> None:
        pdf.saveState()
        pdf.setLineWidth(self.line_width)
        if self.stroke_color:
            pdf.setStrokeColor(colors.HexColor(self.stroke_color))
        if self.fill_color:
            pdf.setFillColor(colors.HexColor(self.fill_color))
        pdf.rect(
            self.x,
            self.y,
            self.width,
            self.height,
            stroke=1 if self.stroke_color else 0,
            fill=1 if self.fill_color else 0,
        )
        pdf.restoreState()

    def plain_text(self) -> list[str]:
        return []


@dataclass
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = TABLE_GRID
    line_width: float = 0.7

    def draw(self, pdf: Canvas) -> None:
        pdf.saveState()
        pdf.setStrokeColor(colors.HexColor(self.color))
        pdf.setLineWidth(self.line_width)
        pdf.line(self.x1, self.y1, self.x2, self.y2)
        pdf.restoreState()

    def plain_text(self) -> list[str]:
        return []


@dataclass
class TableOp:
    table: Table
    x: float
    y: float

    def draw(self, pdf: Canvas) -> None:
        self.table.drawOn(pdf, self.x, self.y)

    def plain_text(self) -> list[str]:
        rows: list[str] = []
        for row in getattr(self.table, '_cellvalues', []) or []:
            cells = []
            for cell in row:
                if isinstance(cell, Paragraph):
                    cells.append(cell.getPlainText())
                else:
                    cells.append(str(cell))
            rows.append(' | '.join(cells))
        return rows


@dataclass
class RecordedPage:
    ops: list[Any] = field(default_factory=list)
    slots: dict[str, int] = field(default_factory=dict)


def _safe_canvas_font(pdf: Canvas, font_name: str, size: float) -> None:
    for candidate in (str(font_name or '').strip(), 'Helvetica'):
        if not candidate:
            continue
        try:
            pdf.setFont(candidate, size)
            return
        except Exception:
            logger.warning('PDF font %s is not registered; falling back', candidate)
            continue


def _as_lines(lines: str | Sequence[str]) -> list[str]:
    if isinstance(lines, str):
        return lines.split('\n') if lines else []
    return [str(line) for line in lines]


def _decode_image(data: bytes, fmt: str) -> PILImage.Image:
    token = str(fmt or '').strip().upper()
    if not data:
        raise ImageDecodeError('image data is empty', image_format=token)
    try:
        image = PILImage.open(io.BytesIO(data), formats=[token])
        image.load()
    except (OSError, ValueError, SyntaxError, PILImage.DecompressionBombError) as exc:
        raise ImageDecodeError(f'cannot decode image as {token}: {exc}', image_format=token) from exc

    if image.mode not in {'RGB', 'L', 'RGBA', 'CMYK'}:
        has_alpha = 'A' in image.mode or 'transparency' in image.info
        image = image.convert('RGBA' if has_alpha else 'RGB')
    return image


class RecordingCanvas:
    """reportlab-backed ``PageCanvas`` that keeps every page editable.

    reportlab's canvas only moves forward, so drawing operations are kept
    as a display list per page and replayed in ``export_as_blob``. Text
    drawn with a ``slot`` name can be rewritten later on any page.
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = A4,
        margins: PageMargins | None = None,
        font_name: str = 'Helvetica',
        bold_font_name: str = 'Helvetica-Bold',
        font_size: float = 10,
        title: str | None = None,
        author: str | None = None,
        invariant: bool = True,
    ):
        self.page_size = page_size
        self.margins = margins or PageMargins()
        self.font_name = font_name
        self.bold_font_name = bold_font_name
        self.font_size = font_size
        self.title = title
        self.author = author
        self.invariant = invariant
        self._pages: list[RecordedPage] = []
        self._active: int | None = None

    # -- page management -------------------------------------------------

    def start_new_page(self) -> int:
        self._pages.append(RecordedPage())
        self._active = len(self._pages) - 1
        return len(self._pages)

    def set_active_page(self, page_number: int) -> None:
        if not 1 <= page_number <= len(self._pages):
            raise ValueError(f'page {page_number} does not exist (document has {len(self._pages)} pages)')
        self._active = page_number - 1

    def current_page_count(self) -> int:
        return len(self._pages)

    @property
    def active_page(self) -> int:
        if self._active is None:
            return 0
        return self._active + 1

    def _page(self) -> RecordedPage:
        if self._active is None:
            raise RuntimeError('no active page; call start_new_page() first')
        return self._pages[self._active]

    # -- drawing ---------------------------------------------------------

    def draw_text(
        self,
        lines: str | Sequence[str],
        x: float,
        y: float,
        *,
        font_name: str | None = None,
        bold: bool = False,
        font_size: float | None = None,
        leading: float | None = None,
        color: str = DEFAULT_TEXT_COLOR,
        align: str = 'left',
        slot: str | None = None,
    ) -> float:
        """Draw *lines* with the first baseline at *y*; return the next free baseline."""
        page = self._page()
        size = float(font_size or self.font_size)
        step = float(leading or size * 1.35)
        op = TextOp(
            x=x,
            y=y,
            lines=_as_lines(lines),
            font_name=font_name or (self.bold_font_name if bold else self.font_name),
            font_size=size,
            leading=step,
            color=color,
            align=align,
            slot=slot,
        )
        if slot is not None and slot in page.slots:
            page.ops[page.slots[slot]] = op
        else:
            page.ops.append(op)
            if slot is not None:
                page.slots[slot] = len(page.ops) - 1
        return y - step * len(op.lines)

    def overwrite_text(self, page_number: int, slot: str, lines: str | Sequence[str]) -> None:
        if not 1 <= page_number <= len(self._pages):
            raise ValueError(f'page {page_number} does not exist')
        page = self._pages[page_number - 1]
        if slot not in page.slots:
            raise KeyError(f'no text slot {slot!r} on page {page_number}')
        op = page.ops[page.slots[slot]]
        op.lines = _as_lines(lines)

    def draw_image(
        self,
        data: bytes,
        fmt: str,
        x: float,
        y: float,
        w: float,
        h: float,
    ) -> tuple[float, float, float, float]:
        """Decode *data* strictly as *fmt* and place it inside the box.

        Raises ``ImageDecodeError`` when the bytes are not a valid *fmt*
        image; nothing is recorded in that case.
        """
        page = self._page()
        image = _decode_image(data, fmt)
        src_w, src_h = image.size
        fitted = fit_rect_preserve_aspect(src_w, src_h, x, y, w, h)
        page.ops.append(ImageOp(ImageReader(image), *fitted))
        return fitted

    def draw_rect(
        self,
        x: float,
        y: float,
        w: float,
        h: float,
        *,
        stroke_color: str | None = TABLE_GRID,
        fill_color: str | None = None,
        line_width: float = 0.6,
    ) -> None:
        self._page().ops.append(RectOp(x, y, w, h, stroke_color, fill_color, line_width))

    def draw_line(
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        *,
        color: str = TABLE_GRID,
        line_width: float = 0.7,
    ) -> None:
        self._page().ops.append(LineOp(x1, y1, x2, y2, color, line_width))

    def _table_styles(self) -> tuple[ParagraphStyle, ParagraphStyle]:
        size = max(7.0, self.font_size - 1)
        body = ParagraphStyle(
            'InventoryCell',
            fontName=self.font_name,
            fontSize=size,
            leading=size * 1.3,
            textColor=colors.HexColor(DEFAULT_TEXT_COLOR),
        )
        header = ParagraphStyle(
            'InventoryHeader',
            parent=body,
            fontName=self.bold_font_name,
        )
        return header, body

    def draw_table(
        self,
        rows: Sequence[Sequence[str]],
        headers: Sequence[str],
        start_y: float,
        column_widths: Sequence[float],
    ) -> int:
        """Draw a table from *start_y* down, continuing on new pages.

        The header row repeats on every continuation page. Returns the
        number of physical pages the table touched, counting the page it
        starts on.
        """
        self._page()
        header_style, body_style = self._table_styles()

        def cell(value: str, style: ParagraphStyle) -> Paragraph:
            return Paragraph(escape_reserved_characters(value, OutputFormat.markup), style)

        data = [[cell(str(h), header_style) for h in headers]]
        data.extend([cell(str(value), body_style) for value in row] for row in rows)

        table = Table(data, colWidths=list(column_widths), repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ('BOX', (0, 0), (-1, -1), 0.8, colors.HexColor(TABLE_GRID)),
                    ('INNERGRID', (0, 0), (-1, -1), 0.5, colors.HexColor(TABLE_GRID)),
                    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(TABLE_HEADER_BG)),
                    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
                    ('LEFTPADDING', (0, 0), (-1, -1), 5),
                    ('RIGHTPADDING', (0, 0), (-1, -1), 5),
                    ('TOPPADDING', (0, 0), (-1, -1), 3.5),
                    ('BOTTOMPADDING', (0, 0), (-1, -1), 3.5),
                ]
            )
        )

        width = float(sum(column_widths))
        x = self.margins.left
        top = start_y
        pages_used = 1
        pending: Table | None = table

        while pending is not None:
            avail_height = top - self.margins.bottom
            _, height = pending.wrap(width, avail_height)
            if height <= avail_height:
                self._page().ops.append(TableOp(pending, x, top - height))
                break

            parts = pending.split(width, avail_height)
            if not parts:
                if top < self.margins.top:
                    self.start_new_page()
                    pages_used += 1
                    top = self.margins.top
                    continue
                # one row taller than a whole page; draw it and let it clip
                logger.warning('Table row taller than the page body; output will be clipped')
                self._page().ops.append(TableOp(pending, x, top - height))
                break

            head = parts[0]
            _, head_height = head.wrap(width, avail_height)
            self._page().ops.append(TableOp(head, x, top - head_height))
            pending = parts[1] if len(parts) > 1 else None
            if pending is not None:
                self.start_new_page()
                pages_used += 1
                top = self.margins.top

        return pages_used

    # -- inspection / output ---------------------------------------------

    def page_text(self, page_number: int) -> list[str]:
        if not 1 <= page_number <= len(self._pages):
            raise ValueError(f'page {page_number} does not exist')
        text: list[str] = []
        for op in self._pages[page_number - 1].ops:
            text.extend(op.plain_text())
        return text

    def slot_text(self, page_number: int, slot: str) -> list[str]:
        page = self._pages[page_number - 1]
        return list(page.ops[page.slots[slot]].lines)

    def export_as_blob(self) -> bytes:
        if not self._pages:
            raise RuntimeError('cannot export a document without pages')

        buffer = io.BytesIO()
        pdf = Canvas(buffer, pagesize=self.page_size, invariant=1 if self.invariant else 0)
        if self.title:
            pdf.setTitle(self.title)
        if self.author:
            pdf.setAuthor(self.author)
        pdf.setProducer('inventoryreport')

        for page in self._pages:
            for op in page.ops:
                op.draw(pdf)
            pdf.showPage()
        pdf.save()
        return buffer.getvalue()
