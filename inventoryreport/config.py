from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'Property Inventory Report Builder'

    data_dir: Path = Field(default=Path('./data'))

    # OpenAI-compatible vision endpoint
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices('OPENAI_API_KEY', 'API_KEY', 'LLM_API_KEY'),
    )
    openai_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices('BASE_URL', 'OPENAI_BASE_URL', 'LLM_BASE_URL'),
    )
    vision_model: str = 'gpt-4o-mini'
    vision_temperature: float = 0.2
    vision_max_tokens: int = 800
    vision_timeout_seconds: int = 60

    # Remote images are fetched into data URLs before export
    image_fetch_timeout_seconds: int = 20
    max_image_bytes: int = 15 * 1024 * 1024

    # Letterhead identity
    company_name: str = 'PROPERTY INVENTORY COMPANY'
    company_tagline: str = 'THE PROFESSIONAL INVENTORY COMPANY'
    company_address: str = 'Unit 9, Spaces Business Centre, Ingate Place, SW8 3NS'
    company_phone: str = '+44 (0) 2073241802'
    company_email: str = 'bookings@propertyinventory.co.uk'
    company_website: str = 'propertyinventory.co.uk'
    company_registration: str = '12345678'

    # PDF export
    pdf_font_name: str = 'Helvetica'
    pdf_bold_font_name: str = 'Helvetica-Bold'
    # optional TrueType files registered under the names above
    pdf_font_path: Path | None = None
    pdf_bold_font_path: Path | None = None
    pdf_body_font_size: float = 10
    # Fixed document id / timestamps so identical reports give identical bytes
    pdf_invariant: bool = True

    # Drafts
    max_drafts: int = 10


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
