"""Shared test doubles for provider-backed extractors."""

from __future__ import annotations

import json

from pagelens.core.config import PipelineConfig
from pagelens.services.ai.common.providers.base import BaseProvider, ProviderResult

SAMPLE_IMAGE = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


class StubProvider(BaseProvider):
    """Replays queued responses; an ``Exception`` item is raised instead."""

    name = "stub"

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def generate(
        self,
        prompt: str,
        *,
        image_data_url: str | None = None,
        system_prompt: str | None = None,
        model: str = "",
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout_seconds: float = 30.0,
    ) -> ProviderResult:
        self.calls.append(
            {
                "prompt": prompt,
                "image_data_url": image_data_url,
                "system_prompt": system_prompt,
                "model": model,
            }
        )
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, dict):
            item = json.dumps(item)
        return ProviderResult(raw_text=item, model=model or "stub-model", provider=self.name)


def make_config(**overrides) -> PipelineConfig:
    """Config routing OCR to "openai" and vision to "claude" (both stubbed in tests)."""
    values = dict(
        ocr_backend="model",
        ocr_provider="openai",
        vision_provider="claude",
        allowed_providers=("openai", "claude", "mock"),
        provider_keys={"openai": "sk-test", "claude": "sk-ant-test"},
        timeout_seconds=1.0,
        budget_seconds=10.0,
        max_retries=1,
    )
    values.update(overrides)
    return PipelineConfig(**values)


def route_providers(ocr: BaseProvider, vision: BaseProvider):
    """``side_effect`` for patching ``router.get_provider``."""

    def _get(provider_name: str, config: PipelineConfig) -> BaseProvider:
        return ocr if provider_name == "openai" else vision

    return _get


def ocr_payload(raw_text: str = "", confidence: float = 90, **fields) -> dict:
    payload = {
        "rawText": raw_text,
        "title": "",
        "price": "",
        "rating": "",
        "reviewCount": "",
        "confidence": confidence,
    }
    payload.update(fields)
    return payload


def vision_payload(**fields) -> dict:
    payload = {
        "title": "",
        "price": "",
        "rating": "",
        "reviewCount": "",
        "primaryImagePresent": False,
        "visualAssets": [],
        "features": [],
        "apiDependencies": [],
    }
    payload.update(fields)
    return payload
