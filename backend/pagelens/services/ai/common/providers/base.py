"""Abstract base for all model providers."""

from __future__ import annotations

import abc
import re
from dataclasses import dataclass

IMAGE_DATA_PREFIX = "data:image"

_DATA_URL_RE = re.compile(r"^data:(?P<media_type>image/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


def split_data_url(data_url: str) -> tuple[str, str]:
    """Return ``(media_type, base64_payload)`` for an image data URL.

    Raises ``ValueError`` when *data_url* is not a base64 image data URL.
    """
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ValueError("Not a base64 image data URL")
    return match.group("media_type"), match.group("data")


class BaseProvider(abc.ABC):
    """Contract that every provider must implement.

    A provider takes one prompt plus an optional image and returns a single
    text completion. Nothing downstream depends on the model family.
    """

    name: str = "base"

    @abc.abstractmethod
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
        """Send *prompt* (and optionally an image) and return a ``ProviderResult``."""
