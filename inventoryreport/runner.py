from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Sequence

from .adapters.images import preload_remote_images
from .adapters.llm import BasicLLMClient, BasicLLMConfig
from .adapters.vision import ImageAnalysisProvider, OpenAIVisionProvider, analyze_images
from .config import get_settings
from .report.assembler import assemble_document
from .storage import append_event, exports_dir, write_bytes_atomic
from .types import InventoryItem, PropertyInfo, Report, ReportTemplate, SourceImage


logger = logging.getLogger(__name__)

SAMPLE_ITEM_DESCRIPTION = 'Sample Item'
SAMPLE_ITEM_NOTES = 'Generated from prompt analysis'


def build_vision_provider() -> OpenAIVisionProvider:
    return OpenAIVisionProvider(BasicLLMClient(BasicLLMConfig.from_settings(get_settings())))


def enhance_items_with_analysis(items: Sequence[InventoryItem], results: dict[str, str]) -> list[InventoryItem]:
    """Attach analysis text to items by id; items without a result are copied unchanged."""
    enhanced: list[InventoryItem] = []
    for item in items:
        if item.id in results:
            enhanced.append(item.model_copy(update={'ai_analysis': results[item.id]}))
        else:
            enhanced.append(item.model_copy())
    return enhanced


def _template_items(template: ReportTemplate) -> list[InventoryItem]:
    return [
        InventoryItem(description=row.description, condition=row.condition, notes=row.notes)
        for row in template.fields.default_items
    ]


async def generate_report(
    prompt: str,
    images: Sequence[SourceImage],
    *,
    provider: ImageAnalysisProvider,
    template: ReportTemplate | None = None,
) -> Report:
    """Build a new report from a prompt and uploaded photos.

    Each photo becomes one inventory item carrying its analysis. A photo
    whose analysis failed keeps ``ai_analysis`` unset and the PDF shows the
    "No analysis available" placeholder for it.
    """
    prompt = str(prompt or '')
    if not prompt.strip() and not images:
        raise ValueError('Provide a prompt or at least one image to generate a report')

    results = await analyze_images(provider, prompt, images) if images else {}
    if images and len(results) < len(images):
        logger.warning('Analysis missing for %s of %s image(s)', len(images) - len(results), len(images))

    image_items = [
        InventoryItem(
            id=f'item-{image.id}',
            description=f'Item {index + 1}',
            images=[image.data_url],
        )
        for index, image in enumerate(images)
    ]
    image_items = enhance_items_with_analysis(
        image_items,
        {f'item-{image_id}': text for image_id, text in results.items()},
    )

    items = _template_items(template) if template is not None else []
    items.extend(image_items)
    if not items:
        items.append(InventoryItem(description=SAMPLE_ITEM_DESCRIPTION, notes=SAMPLE_ITEM_NOTES, ai_analysis=''))

    fields: dict = {'prompt': prompt, 'items': items}
    if template is not None:
        fields['title'] = template.fields.title
        fields['property'] = PropertyInfo(type=template.fields.property_type)
    report = Report(**fields)

    logger.info('Generated report %s with %s item(s)', report.id, len(report.items))
    append_event('report_generated', report_id=report.id, items=len(report.items))
    return report


def default_pdf_filename(report: Report) -> str:
    title = re.sub(r'\s+', '_', report.title.strip()) or 'report'
    filename = f'{title}_{report.date}.pdf'
    # path separators would escape the export directory
    return filename.replace('/', '-').replace('\\', '-')


def export_report_pdf(
    report: Report,
    output_path: Path | None = None,
    *,
    fetch_remote_images: bool = False,
) -> Path:
    if fetch_remote_images:
        report = asyncio.run(preload_remote_images(report))

    document = assemble_document(report)
    target = Path(output_path) if output_path is not None else exports_dir() / default_pdf_filename(report)
    write_bytes_atomic(target, document.pdf_bytes)

    logger.info('Exported report %s to %s (%s pages)', report.id, target, document.page_count)
    append_event('report_exported', report_id=report.id, path=str(target), pages=document.page_count)
    return target
