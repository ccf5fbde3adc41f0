"""Fixed section order of the inventory report and when each section exists.

Both the Contents page and the assembler's page bookkeeping read
``present_sections``; nothing else decides whether a section is printed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..types import Report
from .references import has_image_analysis

COVER = 'Cover'
CONTENTS = 'Contents'
DISCLAIMERS = 'Disclaimers'
PROPERTY_OVERVIEW = 'Property Overview'
REPORT_CONTEXT = 'Report Context'
INVENTORY_ITEMS = 'Inventory Items'
IMAGE_ANALYSIS = 'Image Analysis'


def _always(report: Report) -> bool:
    return True


def has_report_context(report: Report) -> bool:
    return bool(str(report.prompt or '').strip())


@dataclass(frozen=True)
class SectionSpec:
    name: str
    is_present: Callable[[Report], bool]
    chrome: bool = True
    in_contents: bool = True


SECTION_PLAN: tuple[SectionSpec, ...] = (
    SectionSpec(COVER, _always, chrome=False, in_contents=False),
    SectionSpec(CONTENTS, _always),
    SectionSpec(DISCLAIMERS, _always),
    SectionSpec(PROPERTY_OVERVIEW, _always),
    SectionSpec(REPORT_CONTEXT, has_report_context),
    SectionSpec(INVENTORY_ITEMS, _always),
    SectionSpec(IMAGE_ANALYSIS, has_image_analysis),
)


def present_sections(report: Report) -> list[SectionSpec]:
    return [section for section in SECTION_PLAN if section.is_present(report)]


def contents_sections(report: Report) -> list[SectionSpec]:
    return [section for section in present_sections(report) if section.in_contents]


def contents_slot(section_name: str) -> str:
    return f'contents:{section_name}'
