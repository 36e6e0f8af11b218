"""AI Router: resolves provider + model for an extraction scope."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pagelens.core.config import PipelineConfig

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)

SCOPES = ("ocr", "vision")


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + model for one scope."""

    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float
    max_retries: int
    budget_seconds: float


def resolve(scope: str, config: PipelineConfig) -> ResolvedConfig:
    """Resolve provider + model for *scope* (``"ocr"`` or ``"vision"``).

    Resolution chain:
      1. Scope-specific provider/model from the pipeline config.
      2. ``"mock"`` when no provider is configured.

    Model validation: if the resolved model is not in the allowlist for
    that provider, we fall back to the first allowed model.
    """
    if scope not in SCOPES:
        raise ValueError(f"Unknown AI scope {scope!r}; valid: {SCOPES}")

    if scope == "ocr":
        provider_name, model = config.ocr_provider, config.ocr_model
    else:
        provider_name, model = config.vision_provider, config.vision_model

    provider_name = provider_name or "mock"

    allowed_models = config.allowed_models.get(provider_name, [])
    if allowed_models and model and model not in allowed_models:
        logger.warning(
            "Model %r not in allowlist for %r, using first allowed: %r",
            model,
            provider_name,
            allowed_models[0],
        )
        model = allowed_models[0]

    if allowed_models and not model:
        model = allowed_models[0]

    return ResolvedConfig(
        provider=get_provider(provider_name, config),
        model=model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout_seconds=config.timeout_seconds,
        max_retries=config.max_retries,
        budget_seconds=config.budget_seconds,
    )
