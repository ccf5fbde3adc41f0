from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from xml.sax.saxutils import escape

from markdown_it import MarkdownIt
from reportlab.pdfbase import pdfmetrics


_MONTH_ABBREVIATIONS = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec',
)

_LATEX_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ('\\', '\\textbackslash{}'),
    ('&', '\\&'),
    ('%', '\\%'),
    ('$', '\\$'),
    ('#', '\\#'),
    ('_', '\\_'),
    ('{', '\\{'),
    ('}', '\\}'),
    ('~', '\\textasciitilde{}'),
    ('^', '\\textasciicircum{}'),
    ('<', '\\textless{}'),
    ('>', '\\textgreater{}'),
)

_MARKDOWN_PARSER: MarkdownIt | None = None
ELLIPSIS = '…'


class OutputFormat(str, Enum):
    canvas = 'canvas'
    markup = 'markup'
    latex = 'latex'


def _normalize_newlines(value: str) -> str:
    return str(value or '').replace('\r\n', '\n').replace('\r', '\n')


def measure_text(text: str, *, font_name: str, font_size: float) -> float:
    if not text:
        return 0.0
    return float(pdfmetrics.stringWidth(text, font_name, font_size))


def _split_word_by_width(word: str, *, max_width: float, font_name: str, font_size: float) -> list[str]:
    chunks: list[str] = []
    current = ''
    for char in word:
        candidate = f'{current}{char}'
        if measure_text(candidate, font_name=font_name, font_size=font_size) <= max_width:
            current = candidate
            continue
        if current:
            chunks.append(current)
            current = char
            continue
        # a single glyph wider than the box still has to go somewhere
        chunks.append(char)
        current = ''
    if current:
        chunks.append(current)
    return chunks


def _wrap_paragraph(paragraph: str, *, max_width: float, font_name: str, font_size: float) -> list[str]:
    words = paragraph.split()
    if not words:
        return ['']

    lines: list[str] = []
    current = ''
    for word in words:
        candidate = f'{current} {word}' if current else word
        if measure_text(candidate, font_name=font_name, font_size=font_size) <= max_width:
            current = candidate
            continue

        if current:
            lines.append(current)
            current = ''

        if measure_text(word, font_name=font_name, font_size=font_size) <= max_width:
            current = word
            continue

        chunks = _split_word_by_width(word, max_width=max_width, font_name=font_name, font_size=font_size)
        lines.extend(chunks[:-1])
        current = chunks[-1] if chunks else ''

    if current:
        lines.append(current)
    return lines


def wrap_text(
    text: str,
    max_width: float,
    *,
    font_name: str = 'Helvetica',
    font_size: float = 10,
) -> list[str]:
    """Greedy word wrap of *text* to *max_width* points.

    Explicit newlines are kept as line breaks (a blank line stays blank).
    The result depends only on the arguments, so measuring a block and then
    drawing it always yields the same lines.
    """
    if max_width <= 0:
        raise ValueError('max_width must be positive')

    source = _normalize_newlines(text)
    if not source.strip():
        return []

    lines: list[str] = []
    for paragraph in source.split('\n'):
        lines.extend(
            _wrap_paragraph(paragraph, max_width=max_width, font_name=font_name, font_size=font_size)
        )

    while lines and not lines[-1]:
        lines.pop()
    return lines


def clip_lines(lines: list[str], max_lines: int) -> list[str]:
    if max_lines <= 0:
        return []
    if len(lines) <= max_lines:
        return list(lines)
    clipped = list(lines[:max_lines])
    clipped[-1] = clipped[-1].rstrip(' .,;:') + ELLIPSIS
    return clipped


def _parse_iso(value: str) -> datetime:
    token = str(value or '').strip()
    if token.endswith('Z'):
        token = token[:-1] + '+00:00'
    return datetime.fromisoformat(token)


def format_date(iso_value: str) -> str:
    """Render an ISO date as DD/MM/YYYY; unparseable input is returned as-is."""
    try:
        parsed = _parse_iso(iso_value)
    except (TypeError, ValueError):
        return iso_value
    return parsed.strftime('%d/%m/%Y')


def format_timestamp(iso_value: str) -> str:
    """Render an ISO timestamp as ``DD Mon YYYY HH:MM``."""
    try:
        parsed = _parse_iso(iso_value)
    except (TypeError, ValueError):
        return iso_value
    month = _MONTH_ABBREVIATIONS[parsed.month - 1]
    return f'{parsed.day:02d} {month} {parsed.year} {parsed.hour:02d}:{parsed.minute:02d}'


def escape_reserved_characters(text: str, output: OutputFormat = OutputFormat.canvas) -> str:
    value = str(text or '')
    if output == OutputFormat.canvas:
        return value
    if output == OutputFormat.markup:
        return escape(value).replace('\n', '<br/>')
    for needle, replacement in _LATEX_REPLACEMENTS:
        value = value.replace(needle, replacement)
    return value


def _markdown_parser() -> MarkdownIt:
    global _MARKDOWN_PARSER
    if _MARKDOWN_PARSER is None:
        _MARKDOWN_PARSER = MarkdownIt('commonmark')
    return _MARKDOWN_PARSER


def markdown_to_plain_text(text: str) -> str:
    """Flatten Markdown from an LLM answer into plain paragraphs.

    Headings and paragraphs become their own lines, list items are prefixed
    with a bullet, and inline emphasis and code markers are dropped.
    """
    source = _normalize_newlines(text).strip()
    if not source:
        return ''

    tokens = _markdown_parser().parse(source)
    blocks: list[str] = []
    list_depth = 0
    for token in tokens:
        if token.type in {'bullet_list_open', 'ordered_list_open'}:
            list_depth += 1
            continue
        if token.type in {'bullet_list_close', 'ordered_list_close'}:
            list_depth = max(0, list_depth - 1)
            continue
        if token.type == 'fence' or token.type == 'code_block':
            blocks.append(token.content.rstrip('\n'))
            continue
        if token.type != 'inline':
            continue

        parts: list[str] = []
        for child in token.children or []:
            if child.type in {'text', 'code_inline'}:
                parts.append(child.content)
            elif child.type in {'softbreak', 'hardbreak'}:
                parts.append(' ')
        line = re.sub(r'[ \t]+', ' ', ''.join(parts)).strip()
        if not line:
            continue
        if list_depth:
            line = '• ' + line
        blocks.append(line)

    return '\n'.join(blocks)
