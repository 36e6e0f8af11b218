"""Anthropic / Claude provider."""

from __future__ import annotations

import logging
import time
from typing import Any

from .base import BaseProvider, ProviderResult, split_data_url

logger = logging.getLogger(__name__)


class ClaudeProvider(BaseProvider):
    name = "claude"

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

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
        import httpx

        model = model or "claude-3-5-haiku-20241022"
        t0 = time.monotonic()

        content: list[dict[str, Any]] = []
        if image_data_url:
            media_type, payload = split_data_url(image_data_url)
            content.append(
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": media_type, "data": payload},
                }
            )
        content.append({"type": "text", "text": prompt})

        body: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if system_prompt:
            body["system"] = system_prompt

        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            resp = await client.post(
                "https://api.anthropic.com/v1/messages",
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": "2023-06-01",
                    "content-type": "application/json",
                },
                json=body,
            )
            resp.raise_for_status()
            data = resp.json()

        elapsed = (time.monotonic() - t0) * 1000
        text = "".join(block.get("text", "") for block in data.get("content", []) if block.get("type") == "text")
        usage = data.get("usage", {})

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("input_tokens", 0),
            completion_tokens=usage.get("output_tokens", 0),
            latency_ms=round(elapsed, 2),
        )
