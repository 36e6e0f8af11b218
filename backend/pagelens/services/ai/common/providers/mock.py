"""Mock provider: deterministic responses for tests and fallback."""

from __future__ import annotations

import json
import time

from .base import BaseProvider, ProviderResult

MOCK_OCR_RESPONSE = {
    "rawText": "",
    "title": "",
    "price": "",
    "rating": "",
    "reviewCount": "",
    "confidence": 0,
}

MOCK_VISION_RESPONSE = {
    "title": "",
    "price": "",
    "rating": "",
    "reviewCount": "",
    "primaryImagePresent": False,
    "visualAssets": [],
    "features": [],
    "apiDependencies": [],
}


class MockProvider(BaseProvider):
    name = "mock"

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
        t0 = time.monotonic()
        # OCR prompts ask for rawText; everything else gets the structured shape.
        payload = MOCK_OCR_RESPONSE if '"rawText"' in prompt else MOCK_VISION_RESPONSE
        text = json.dumps(payload)
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
