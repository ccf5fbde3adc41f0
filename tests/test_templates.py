from __future__ import annotations

import pytest

from builders import make_item, make_report

from inventoryreport import templates
from inventoryreport.exceptions import StorageError
from inventoryreport.types import Condition


def test_builtin_templates() -> None:
    catalog = templates.list_templates()
    assert [template.id for template in catalog] == [
        'property-inspection',
        'inventory-assessment',
        'damage-assessment',
        'maintenance-checklist',
    ]
    damage = templates.get_template('damage-assessment')
    assert damage.fields.title == 'Damage Assessment Report'
    assert [item.condition for item in damage.fields.default_items] == [
        Condition.poor,
        Condition.poor,
        Condition.fair,
        Condition.poor,
    ]
    assert not any(template.is_custom for template in catalog)


def test_search_templates_by_name_description_or_category() -> None:
    assert [template.id for template in templates.search_templates('insurance')] == ['damage-assessment']
    assert [template.id for template in templates.search_templates('CATALOGING')] == ['inventory-assessment']
    assert len(templates.search_templates('')) == 4


def test_custom_template_from_report_round_trips() -> None:
    report = make_report(title='Studio flat', items=[make_item('Kettle', notes='Limescale')])
    template = templates.create_template_from_report(report, 'Studio', 'Small flat checklist')

    assert template.category == 'Custom'
    assert template.is_custom
    assert template.fields.property_type == 'Residential'
    assert template.fields.default_items[0].notes == 'Limescale'

    templates.save_template(template)
    assert templates.list_templates()[-1].id == template.id
    assert templates.get_template(template.id).name == 'Studio'
    assert templates.group_by_category(templates.list_templates())['Custom'][0].id == template.id

    assert templates.delete_template(template.id) is True
    assert templates.delete_template(template.id) is False
    assert len(templates.list_templates()) == 4


def test_builtin_templates_cannot_be_deleted_or_replaced() -> None:
    with pytest.raises(StorageError):
        templates.delete_template('property-inspection')
    builtin = templates.get_template('property-inspection')
    with pytest.raises(StorageError):
        templates.save_template(builtin)
