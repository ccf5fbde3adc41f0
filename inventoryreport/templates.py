from __future__ import annotations

import logging
import threading

from pydantic import ValidationError

from .exceptions import StorageError
from .storage import append_event, read_json, safe_key, templates_path, write_json_atomic
from .types import Condition, Report, ReportTemplate, TemplateFields, TemplateItem, new_id


logger = logging.getLogger(__name__)

_TEMPLATES_LOCK = threading.RLock()

CUSTOM_CATEGORY = 'Custom'


def _item(description: str, notes: str, condition: Condition = Condition.good) -> TemplateItem:
    return TemplateItem(description=description, condition=condition, notes=notes)


def _builtin(
    template_id: str,
    name: str,
    description: str,
    category: str,
    icon: str,
    title: str,
    property_type: str,
    items: list[TemplateItem],
) -> ReportTemplate:
    return ReportTemplate(
        id=template_id,
        name=name,
        description=description,
        category=category,
        icon=icon,
        fields=TemplateFields(title=title, property_type=property_type, default_items=items),
    )


def builtin_templates() -> list[ReportTemplate]:
    return [
        _builtin(
            'property-inspection',
            'Property Inspection',
            'Comprehensive property condition assessment for real estate',
            'Real Estate',
            '🏠',
            'Property Inspection Report',
            'Residential',
            [
                _item('Roof Condition', 'Inspect for leaks, missing tiles, or damage'),
                _item('Electrical System', 'Check outlets, breakers, and wiring'),
                _item('Plumbing System', 'Test water pressure and check for leaks'),
                _item('HVAC System', 'Inspect heating and cooling systems'),
                _item('Foundation', 'Check for cracks or settling issues'),
            ],
        ),
        _builtin(
            'inventory-assessment',
            'Inventory Assessment',
            'Business inventory evaluation and cataloging',
            'Business',
            '📦',
            'Business Inventory Report',
            'Commercial',
            [
                _item('Office Equipment', 'Computers, printers, and office furniture'),
                _item('Machinery', 'Industrial equipment and tools'),
                _item('Inventory Stock', 'Product inventory and supplies'),
                _item('Safety Equipment', 'Fire extinguishers, first aid, emergency exits'),
            ],
        ),
        _builtin(
            'damage-assessment',
            'Damage Assessment',
            'Insurance claim documentation and damage evaluation',
            'Insurance',
            '⚠️',
            'Damage Assessment Report',
            'Residential',
            [
                _item('Exterior Damage', 'Document visible exterior damage', Condition.poor),
                _item('Interior Damage', 'Assess interior damage and affected areas', Condition.poor),
                _item('Personal Property', 'Inventory damaged personal belongings', Condition.fair),
                _item('Structural Issues', 'Note any structural damage or safety concerns', Condition.poor),
            ],
        ),
        _builtin(
            'maintenance-checklist',
            'Maintenance Checklist',
            'Regular maintenance and service inspection',
            'Maintenance',
            '🔧',
            'Maintenance Inspection Report',
            'Commercial',
            [
                _item('Fire Safety Systems', 'Test alarms, sprinklers, and emergency lighting'),
                _item('Security Systems', 'Check cameras, locks, and access controls'),
                _item('Building Systems', 'HVAC, electrical, and plumbing maintenance'),
                _item('Exterior Maintenance', 'Landscaping, parking, and building exterior'),
            ],
        ),
    ]


def _load_custom() -> list[ReportTemplate]:
    path = templates_path()
    if not path.exists():
        return []
    try:
        payload = read_json(path)
    except (OSError, ValueError) as exc:
        logger.warning('Ignoring unreadable template store %s: %s', path, exc)
        return []
    rows = payload.get('templates') if isinstance(payload, dict) else None
    templates: list[ReportTemplate] = []
    for row in rows if isinstance(rows, list) else []:
        try:
            template = ReportTemplate.model_validate(row)
        except ValidationError as exc:
            logger.warning('Skipping invalid custom template: %s', exc)
            continue
        templates.append(template.model_copy(update={'is_custom': True}))
    return templates


def _save_custom(templates: list[ReportTemplate]) -> None:
    write_json_atomic(
        templates_path(),
        {'templates': [template.model_dump(mode='json', by_alias=True) for template in templates]},
    )


def list_custom_templates() -> list[ReportTemplate]:
    with _TEMPLATES_LOCK:
        return _load_custom()


def list_templates() -> list[ReportTemplate]:
    """Built-in templates first, then custom ones in the order they were saved."""
    return builtin_templates() + list_custom_templates()


def get_template(template_id: str) -> ReportTemplate | None:
    for template in list_templates():
        if template.id == template_id:
            return template
    return None


def search_templates(term: str) -> list[ReportTemplate]:
    needle = str(term or '').strip().lower()
    templates = list_templates()
    if not needle:
        return templates
    return [
        template
        for template in templates
        if needle in template.name.lower()
        or needle in template.description.lower()
        or needle in template.category.lower()
    ]


def group_by_category(templates: list[ReportTemplate]) -> dict[str, list[ReportTemplate]]:
    grouped: dict[str, list[ReportTemplate]] = {}
    for template in templates:
        grouped.setdefault(template.category, []).append(template)
    return grouped


def save_template(template: ReportTemplate) -> ReportTemplate:
    safe_key(template.id)
    if template.id in {builtin.id for builtin in builtin_templates()}:
        raise StorageError(f'Cannot overwrite built-in template: {template.id}')
    stored = template.model_copy(update={'is_custom': True})
    with _TEMPLATES_LOCK:
        templates = [existing for existing in _load_custom() if existing.id != stored.id]
        templates.append(stored)
        _save_custom(templates)
    append_event('template_saved', template_id=stored.id, name=stored.name)
    return stored


def delete_template(template_id: str) -> bool:
    """Delete a custom template. Built-in templates cannot be deleted."""
    if template_id in {builtin.id for builtin in builtin_templates()}:
        raise StorageError(f'Cannot delete built-in template: {template_id}')
    with _TEMPLATES_LOCK:
        templates = _load_custom()
        kept = [template for template in templates if template.id != template_id]
        if len(kept) == len(templates):
            return False
        _save_custom(kept)
    append_event('template_deleted', template_id=template_id)
    return True


def create_template_from_report(report: Report, name: str, description: str) -> ReportTemplate:
    return ReportTemplate(
        id=new_id('custom'),
        name=name,
        description=description,
        category=CUSTOM_CATEGORY,
        icon='📋',
        fields=TemplateFields(
            title=report.title,
            property_type=report.property.type,
            default_items=[
                TemplateItem(description=item.description, condition=item.condition, notes=item.notes)
                for item in report.items
            ],
        ),
        is_custom=True,
    )
