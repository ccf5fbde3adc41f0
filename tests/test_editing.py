from __future__ import annotations

import pytest
from pydantic import ValidationError

from builders import make_item, make_report, png_url

from inventoryreport import editing
from inventoryreport.report.references import build_image_entries
from inventoryreport.types import Condition


def test_field_updates_return_copies() -> None:
    report = make_report()
    renamed = editing.update_report_field(report, 'title', 'Check-out Report')
    moved = editing.update_property_field(renamed, 'address', '1 New Road')

    assert report.title == 'Property Inventory Report'
    assert renamed.title == 'Check-out Report'
    assert moved.property.address == '1 New Road'
    assert report.property.address == '12 Test Street'


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(ValueError):
        editing.update_report_field(make_report(), 'id', 'report-other')
    with pytest.raises(ValueError):
        editing.update_property_field(make_report(), 'image_response_pairs', [])


def test_add_update_and_remove_items() -> None:
    report = editing.add_item(make_report(items=[make_item('Sofa')]))
    assert report.items[-1].description == 'New Item 2'
    assert report.items[-1].condition == Condition.good

    report = editing.update_item(report, 1, 'condition', 'Poor')
    assert report.items[1].condition == Condition.poor
    with pytest.raises(ValidationError):
        editing.update_item(report, 1, 'condition', 'Broken')
    with pytest.raises(IndexError):
        editing.update_item(report, 5, 'notes', 'x')

    report = editing.remove_item(report, 0)
    assert [item.description for item in report.items] == ['New Item 2']


def test_removing_an_item_renumbers_image_references() -> None:
    report = make_report(
        items=[
            make_item('Chair', images=[png_url()]),
            make_item('Desk', images=[png_url()]),
        ]
    )
    trimmed = editing.remove_item(report, 0)
    assert [(entry.title, entry.reference) for entry in build_image_entries(trimmed)] == [('Desk', '2.1')]


def test_pairs_can_be_added_updated_and_removed() -> None:
    report = editing.add_pair(make_report(), png_url(), 'Front elevation')
    pair_id = report.property.image_response_pairs[0].id

    report = editing.update_pair(report, pair_id, response='Rear elevation')
    assert report.property.image_response_pairs[0].response == 'Rear elevation'

    report = editing.remove_pair(report, pair_id)
    assert report.property.image_response_pairs == []
    with pytest.raises(KeyError):
        editing.remove_pair(report, pair_id)


def test_item_images_become_pairs_up_to_three() -> None:
    items = [make_item(f'Item {n}', images=[png_url()], analysis=f'Analysis {n}') for n in range(5)]
    items.insert(0, make_item('No analysis', images=[png_url()]))
    report, added = editing.add_item_images_as_pairs(make_report(items=items))

    assert added == 3
    assert [pair.response for pair in report.property.image_response_pairs] == [
        'Analysis 0',
        'Analysis 1',
        'Analysis 2',
    ]


def test_item_images_as_pairs_without_candidates() -> None:
    report = make_report(items=[make_item('Bare')])
    updated, added = editing.add_item_images_as_pairs(report)
    assert added == 0
    assert updated is report
