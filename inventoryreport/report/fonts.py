from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from ..config import Settings


logger = logging.getLogger(__name__)

FALLBACK_FONT = 'Helvetica'
FALLBACK_BOLD_FONT = 'Helvetica-Bold'

_FONT_AVAILABLE_CACHE: dict[str, bool] = {}


@dataclass(frozen=True)
class ReportFonts:
    regular: str
    bold: str


def font_available(font_name: str | None) -> bool:
    token = str(font_name or '').strip()
    if not token:
        return False
    cached = _FONT_AVAILABLE_CACHE.get(token)
    if cached is not None:
        return cached
    try:
        pdfmetrics.getFont(token)
    except KeyError:
        _FONT_AVAILABLE_CACHE[token] = False
        return False
    _FONT_AVAILABLE_CACHE[token] = True
    return True


def register_ttf_font(font_name: str, font_path: Path) -> bool:
    if font_name in pdfmetrics.getRegisteredFontNames():
        return True
    try:
        pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
    except Exception as exc:
        logger.warning('Failed to register PDF font %s from %s: %s', font_name, font_path, exc)
        return False
    _FONT_AVAILABLE_CACHE[font_name] = True
    return True


def _resolve(font_name: str, font_path: Path | None, fallback: str) -> str:
    if font_path is not None and not register_ttf_font(font_name, font_path):
        return fallback
    if font_available(font_name):
        return font_name
    logger.warning('PDF font %s is not available; using %s', font_name, fallback)
    return fallback


def resolve_report_fonts(settings: Settings) -> ReportFonts:
    """Register configured TrueType fonts and return the names to draw with."""
    return ReportFonts(
        regular=_resolve(settings.pdf_font_name, settings.pdf_font_path, FALLBACK_FONT),
        bold=_resolve(settings.pdf_bold_font_name, settings.pdf_bold_font_path, FALLBACK_BOLD_FONT),
    )
