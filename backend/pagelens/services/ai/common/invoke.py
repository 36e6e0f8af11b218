"""Budgeted model call with at most one retry."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from .providers.base import ProviderResult
from .router import ResolvedConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Do not start a retry with less than this much budget left.
MIN_RETRY_BUDGET_SECONDS = 0.5


@dataclass
class InvokeResult:
    """Accepted value plus call metadata."""

    value: object
    provider_result: ProviderResult
    attempts: int
    total_latency_ms: float


class InvokeFailed(Exception):
    """Every attempt failed; ``last_error`` holds the final cause."""

    def __init__(self, attempts: int, last_error: Exception | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"All {attempts} attempts failed: {last_error}")


async def generate_with_retry(
    config: ResolvedConfig,
    prompt: str,
    accept: Callable[[str], T],
    *,
    image_data_url: str | None = None,
    system_prompt: str | None = None,
    scope: str = "",
) -> InvokeResult:
    """Call the resolved provider and hand the completion to *accept*.

    *accept* returns the parsed value or raises to mark the attempt failed.
    Budget logic:
      - ``budget_seconds`` = total wall-clock budget for the scope.
      - ``timeout_seconds`` = per-call timeout passed to the provider.
      - Retry if remaining budget > 0.5s AND attempts < ``max_retries + 1``.
    """
    max_attempts = min(config.max_retries, 1) + 1
    t0 = time.monotonic()
    attempts = 0
    last_error: Exception | None = None

    while attempts < max_attempts:
        remaining = config.budget_seconds - (time.monotonic() - t0)
        if attempts > 0 and remaining < MIN_RETRY_BUDGET_SECONDS:
            logger.info("%s: budget exhausted (%.2fs remaining), stopping retries", scope, remaining)
            break

        attempts += 1
        try:
            result = await config.provider.generate(
                prompt,
                image_data_url=image_data_url,
                system_prompt=system_prompt,
                model=config.model,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                timeout_seconds=config.timeout_seconds,
            )
            value = accept(result.raw_text)
        except Exception as exc:
            logger.warning("%s: attempt %d failed: %s", scope, attempts, exc)
            last_error = exc
            continue

        return InvokeResult(
            value=value,
            provider_result=result,
            attempts=attempts,
            total_latency_ms=round((time.monotonic() - t0) * 1000, 2),
        )

    raise InvokeFailed(attempts, last_error)
