from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today_iso() -> str:
    return date.today().isoformat()


def new_id(prefix: str) -> str:
    return f'{prefix}-{uuid4().hex[:12]}'


def _duplicate_ids(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for value in ids:
        if value in seen and value not in duplicates:
            duplicates.append(value)
        seen.add(value)
    return duplicates


class _CamelModel(BaseModel):
    # JSON uses the browser app's camelCase keys; Python code uses snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Condition(str, Enum):
    good = 'Good'
    fair = 'Fair'
    poor = 'Poor'


class ImageResponsePair(_CamelModel):
    id: str = Field(default_factory=lambda: new_id('pair'))
    image_url: str
    response: str = ''


class InventoryItem(_CamelModel):
    id: str = Field(default_factory=lambda: new_id('item'))
    description: str
    condition: Condition = Condition.good
    notes: str = ''
    ai_analysis: str | None = None
    images: list[str] = Field(default_factory=list)

    @field_validator('notes', mode='before')
    @classmethod
    def _none_notes(cls, value: Any) -> Any:
        return '' if value is None else value


class PropertyInfo(_CamelModel):
    address: str = 'Property Address'
    type: str = 'Residential'
    image_response_pairs: list[ImageResponsePair] = Field(default_factory=list)

    @model_validator(mode='after')
    def _unique_pair_ids(self) -> PropertyInfo:
        duplicates = _duplicate_ids([pair.id for pair in self.image_response_pairs])
        if duplicates:
            raise ValueError(f'duplicate image response pair id(s): {", ".join(duplicates)}')
        return self


class Report(_CamelModel):
    id: str = Field(default_factory=lambda: new_id('report'))
    title: str = 'Property Inventory Report'
    date: str = Field(default_factory=today_iso)
    prompt: str = ''
    property: PropertyInfo = Field(default_factory=PropertyInfo)
    items: list[InventoryItem] = Field(default_factory=list)

    @field_validator('prompt', mode='before')
    @classmethod
    def _none_prompt(cls, value: Any) -> Any:
        return '' if value is None else value

    @model_validator(mode='after')
    def _unique_item_ids(self) -> Report:
        duplicates = _duplicate_ids([item.id for item in self.items])
        if duplicates:
            raise ValueError(f'duplicate inventory item id(s): {", ".join(duplicates)}')
        return self

    def to_json_payload(self) -> dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)


class DraftRecord(_CamelModel):
    id: str = Field(default_factory=lambda: new_id('draft'))
    data: Report
    last_modified: datetime = Field(default_factory=utcnow)
    is_template: bool = False


class TemplateItem(_CamelModel):
    description: str
    condition: Condition = Condition.good
    notes: str = ''


class TemplateFields(_CamelModel):
    title: str
    property_type: str
    default_items: list[TemplateItem] = Field(default_factory=list)


class ReportTemplate(_CamelModel):
    id: str
    name: str
    description: str
    category: str
    icon: str = ''
    fields: TemplateFields
    created_at: datetime = Field(default_factory=utcnow)
    is_custom: bool = False


class SourceImage(BaseModel):
    """An uploaded photo waiting for analysis."""

    id: str = Field(default_factory=lambda: new_id('img'))
    data_url: str
    name: str | None = None
