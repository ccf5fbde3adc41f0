"""Page geometry for the inventory report.

Pure numbers shared by the canvas, the section renderers and the letterhead
chrome, so the drawing code only deals with content.
"""

from __future__ import annotations

from dataclasses import dataclass

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm

PAGE_WIDTH, PAGE_HEIGHT = A4

MARGIN_X = 18 * mm
HEADER_HEIGHT = 30 * mm
FOOTER_HEIGHT = 28 * mm

CONTENT_LEFT = MARGIN_X
CONTENT_RIGHT = PAGE_WIDTH - MARGIN_X
CONTENT_WIDTH = CONTENT_RIGHT - CONTENT_LEFT
CONTENT_TOP = PAGE_HEIGHT - HEADER_HEIGHT - 6 * mm
CONTENT_BOTTOM = FOOTER_HEIGHT + 4 * mm

BLOCK_GAP = 6 * mm
IMAGE_BOX_WIDTH = 78 * mm
TEXT_COLUMN_GAP = 8 * mm


@dataclass(frozen=True)
class PageMargins:
    left: float = CONTENT_LEFT
    right: float = MARGIN_X
    top: float = CONTENT_TOP
    bottom: float = CONTENT_BOTTOM


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @property
    def top(self) -> float:
        return self.y + self.height


def fit_rect_preserve_aspect(
    src_w: float,
    src_h: float,
    box_x: float,
    box_y: float,
    box_w: float,
    box_h: float,
) -> tuple[float, float, float, float]:
    """Return (x, y, w, h) fitted inside box while preserving src aspect."""
    if src_w <= 0 or src_h <= 0:
        return box_x, box_y, box_w, box_h
    src_ratio = src_w / src_h
    box_ratio = box_w / box_h if box_h else src_ratio
    if box_ratio > src_ratio:
        h = box_h
        w = h * src_ratio
        x = box_x + (box_w - w) / 2
        y = box_y
    else:
        w = box_w
        h = w / src_ratio
        x = box_x
        y = box_y + (box_h - h) / 2
    return x, y, w, h


def split_image_and_text(box: Box) -> tuple[Box, Box]:
    """Split a block into an image box on the left and a text column on the right."""
    image_width = min(IMAGE_BOX_WIDTH, box.width * 0.5)
    image_box = Box(box.x, box.y, image_width, box.height)
    text_x = box.x + image_width + TEXT_COLUMN_GAP
    text_box = Box(text_x, box.y, max(1.0, box.x + box.width - text_x), box.height)
    return image_box, text_box
