from __future__ import annotations

import logging
from typing import Protocol, Sequence

from openai import OpenAIError

from ..exceptions import AnalysisError
from ..types import SourceImage
from .llm import BasicLLMClient


logger = logging.getLogger(__name__)

ANALYSIS_INSTRUCTION = (
    'Please provide a detailed but concise assessment of this image for a property inventory report.'
)
EMPTY_ANALYSIS_TEXT = 'Analysis not available'


class ImageAnalysisProvider(Protocol):
    async def analyze(self, image_url: str, context_prompt: str) -> str: ...


def build_analysis_prompt(context_prompt: str) -> str:
    context = str(context_prompt or '').strip()
    if not context:
        return ANALYSIS_INSTRUCTION
    return f'{context}\n{ANALYSIS_INSTRUCTION}'


class OpenAIVisionProvider:
    """Image analysis through an OpenAI-compatible chat completions endpoint."""

    def __init__(self, llm: BasicLLMClient):
        self.llm = llm

    async def analyze(self, image_url: str, context_prompt: str) -> str:
        if not self.llm.configured:
            raise AnalysisError('vision provider is not configured; set OPENAI_API_KEY')

        cfg = self.llm.cfg
        try:
            response = await self.llm.client().chat.completions.create(
                model=cfg.model,
                temperature=cfg.temperature,
                max_tokens=cfg.max_tokens,
                messages=[
                    {
                        'role': 'user',
                        'content': [
                            {'type': 'text', 'text': build_analysis_prompt(context_prompt)},
                            {'type': 'image_url', 'image_url': {'url': image_url}},
                        ],
                    }
                ],
            )
        except OpenAIError as exc:
            raise AnalysisError(f'image analysis request failed: {exc}') from exc

        choices = list(response.choices or [])
        if not choices:
            return EMPTY_ANALYSIS_TEXT
        text = str(choices[0].message.content or '').strip()
        return text or EMPTY_ANALYSIS_TEXT


async def analyze_images(
    provider: ImageAnalysisProvider,
    prompt: str,
    images: Sequence[SourceImage],
) -> dict[str, str]:
    """Analyse each image in turn; failed images are left out of the result."""
    results: dict[str, str] = {}
    for image in images:
        try:
            results[image.id] = await provider.analyze(image.data_url, prompt)
        except AnalysisError as exc:
            logger.warning('Image analysis failed for %s: %s', image.id, exc)
            continue
        logger.info('Analysed image %s', image.id)
    return results
