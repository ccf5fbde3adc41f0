from __future__ import annotations

from dataclasses import dataclass

from openai import AsyncOpenAI

from ..config import Settings


@dataclass
class BasicLLMConfig:
    base_url: str | None
    api_key: str | None
    model: str
    timeout_seconds: int
    temperature: float = 0.2
    max_tokens: int = 800

    @classmethod
    def from_settings(cls, settings: Settings) -> BasicLLMConfig:
        return cls(
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key,
            model=settings.vision_model,
            timeout_seconds=settings.vision_timeout_seconds,
            temperature=settings.vision_temperature,
            max_tokens=settings.vision_max_tokens,
        )


class BasicLLMClient:
    """Lazily built async OpenAI client shared by the vision adapter."""

    def __init__(self, cfg: BasicLLMConfig):
        self.cfg = cfg
        self._client: AsyncOpenAI | None = None

    @property
    def configured(self) -> bool:
        return bool(self.cfg.api_key)

    def client(self) -> AsyncOpenAI:
        if not self.configured:
            raise RuntimeError('LLM client is not configured')
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.cfg.api_key,
                base_url=self.cfg.base_url,
                timeout=max(30, int(self.cfg.timeout_seconds)),
            )
        return self._client
