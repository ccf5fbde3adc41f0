"""Edits applied to a report by the editor.

Every function returns an updated copy and leaves its input untouched.
Reference numbers are derived from positions, so removing an item or pair
renumbers everything after it.
"""

from __future__ import annotations

from typing import Any

from .types import ImageResponsePair, InventoryItem, PropertyInfo, Report, new_id


MAX_PAIRS_FROM_ITEMS = 3

_REPORT_FIELDS = {'title', 'date', 'prompt'}
_PROPERTY_FIELDS = {'address', 'type'}
_ITEM_FIELDS = {'description', 'condition', 'notes', 'ai_analysis', 'images'}


def _check_field(field: str, allowed: set[str]) -> None:
    if field not in allowed:
        raise ValueError(f'unknown or read-only field: {field}')


def _revalidate(report: Report, **changes: Any) -> Report:
    payload = report.model_dump()
    payload.update(changes)
    return Report.model_validate(payload)


def _check_index(report: Report, index: int) -> None:
    if not 0 <= index < len(report.items):
        raise IndexError(f'item index out of range: {index}')


def update_report_field(report: Report, field: str, value: Any) -> Report:
    _check_field(field, _REPORT_FIELDS)
    return _revalidate(report, **{field: value})


def update_property_field(report: Report, field: str, value: Any) -> Report:
    _check_field(field, _PROPERTY_FIELDS)
    prop = report.property.model_dump()
    prop[field] = value
    return _revalidate(report, property=PropertyInfo.model_validate(prop).model_dump())


def add_item(report: Report) -> Report:
    item = InventoryItem(description=f'New Item {len(report.items) + 1}', ai_analysis='')
    return _revalidate(report, items=[*report.model_dump()['items'], item.model_dump()])


def update_item(report: Report, index: int, field: str, value: Any) -> Report:
    _check_index(report, index)
    _check_field(field, _ITEM_FIELDS)
    items = report.model_dump()['items']
    items[index][field] = value
    return _revalidate(report, items=items)


def remove_item(report: Report, index: int) -> Report:
    _check_index(report, index)
    items = report.model_dump()['items']
    del items[index]
    return _revalidate(report, items=items)


def set_pairs(report: Report, pairs: list[ImageResponsePair]) -> Report:
    prop = report.property.model_dump()
    prop['image_response_pairs'] = [pair.model_dump() for pair in pairs]
    return _revalidate(report, property=prop)


def add_pair(report: Report, image_url: str, response: str = '') -> Report:
    pair = ImageResponsePair(image_url=image_url, response=response)
    return set_pairs(report, [*report.property.image_response_pairs, pair])


def update_pair(report: Report, pair_id: str, *, image_url: str | None = None, response: str | None = None) -> Report:
    pairs: list[ImageResponsePair] = []
    found = False
    for pair in report.property.image_response_pairs:
        if pair.id == pair_id:
            found = True
            pair = pair.model_copy(
                update={
                    'image_url': pair.image_url if image_url is None else image_url,
                    'response': pair.response if response is None else response,
                }
            )
        pairs.append(pair)
    if not found:
        raise KeyError(pair_id)
    return set_pairs(report, pairs)


def remove_pair(report: Report, pair_id: str) -> Report:
    pairs = [pair for pair in report.property.image_response_pairs if pair.id != pair_id]
    if len(pairs) == len(report.property.image_response_pairs):
        raise KeyError(pair_id)
    return set_pairs(report, pairs)


def add_item_images_as_pairs(report: Report) -> tuple[Report, int]:
    """Append pairs built from the first image and analysis of up to three items.

    Only items that have both an image and an analysis contribute. Returns the
    updated report and the number of pairs added.
    """
    new_pairs: list[ImageResponsePair] = []
    for item in report.items:
        if item.images and item.ai_analysis:
            new_pairs.append(
                ImageResponsePair(id=new_id('pair'), image_url=item.images[0], response=item.ai_analysis)
            )
            if len(new_pairs) >= MAX_PAIRS_FROM_ITEMS:
                break
    if not new_pairs:
        return report, 0
    return set_pairs(report, [*report.property.image_response_pairs, *new_pairs]), len(new_pairs)
