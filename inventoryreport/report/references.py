"""Positional reference numbers and the flat image-analysis list.

Reference numbers are derived from sequence positions every time they are
needed and never stored, so deleting an item renumbers everything after it.
Group ``1`` belongs to the property photos; inventory item ``i`` (0-based)
owns group ``i + 2``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..types import Report

PROPERTY_OVERVIEW_TITLE = 'Property Overview'
NO_ANALYSIS_TEXT = 'No analysis available'


@dataclass(frozen=True)
class ImageEntry:
    reference: str
    title: str
    image_url: str
    analysis: str

    @property
    def label(self) -> str:
        return f'{self.title} — Ref {self.reference}'


def inventory_reference(item_index: int) -> str:
    return str(item_index + 1)


def property_image_reference(pair_index: int) -> str:
    if pair_index < 1:
        raise ValueError('pair 0 is shown in the property overview and has no reference number')
    return f'1.{pair_index}'


def item_image_reference(item_index: int, image_index: int) -> str:
    return f'{item_index + 2}.{image_index + 1}'


def _analysis_or_placeholder(value: str | None) -> str:
    text = str(value or '').strip()
    return text or NO_ANALYSIS_TEXT


def build_image_entries(report: Report) -> list[ImageEntry]:
    entries: list[ImageEntry] = []

    for pair_index, pair in enumerate(report.property.image_response_pairs):
        if pair_index == 0:
            continue
        entries.append(
            ImageEntry(
                reference=property_image_reference(pair_index),
                title=PROPERTY_OVERVIEW_TITLE,
                image_url=pair.image_url,
                analysis=_analysis_or_placeholder(pair.response),
            )
        )

    for item_index, item in enumerate(report.items):
        # one analysis per item, shared by every photo of that item
        analysis = _analysis_or_placeholder(item.ai_analysis)
        for image_index, image_url in enumerate(item.images):
            entries.append(
                ImageEntry(
                    reference=item_image_reference(item_index, image_index),
                    title=item.description,
                    image_url=image_url,
                    analysis=analysis,
                )
            )

    return entries


def has_image_analysis(report: Report) -> bool:
    if len(report.property.image_response_pairs) > 1:
        return True
    return any(item.images for item in report.items)
