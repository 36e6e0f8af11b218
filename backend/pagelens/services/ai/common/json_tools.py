"""JSON extraction and validation for model responses.

Model output is parsed in two steps: the whole text as JSON, then the
first fenced code block. The outcome is either ``JsonOk`` carrying the
validated value or ``JsonFailure`` carrying a typed reason; callers branch
on the variant instead of checking for ``None``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

FAILURE_EMPTY = "empty"
FAILURE_INVALID_JSON = "invalid_json"
FAILURE_SCHEMA = "schema"

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?([\s\S]*?)```")


@dataclass(frozen=True)
class JsonOk(Generic[M]):
    value: M


@dataclass(frozen=True)
class JsonFailure:
    reason: str  # empty | invalid_json | schema
    detail: str = ""


def load_json_object(text: str) -> dict[str, Any] | JsonFailure:
    """Return the JSON object in *text*, or a ``JsonFailure``.

    Strategy:
    1. ``json.loads`` on the stripped text.
    2. ``json.loads`` on the contents of the first fenced code block.
    """
    if not text or not text.strip():
        return JsonFailure(FAILURE_EMPTY, "response was empty")

    stripped = text.strip()
    candidates = [stripped]
    fence = _FENCE_RE.search(stripped)
    if fence:
        candidates.append(fence.group(1).strip())

    last_error = "no JSON object found"
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError as exc:
            last_error = str(exc)
            continue
        if isinstance(parsed, dict):
            return parsed
        last_error = f"expected a JSON object, got {type(parsed).__name__}"

    return JsonFailure(FAILURE_INVALID_JSON, last_error)


def parse_model_json(text: str, model: type[M]) -> JsonOk[M] | JsonFailure:
    """Parse *text* and validate it against *model*."""
    loaded = load_json_object(text)
    if isinstance(loaded, JsonFailure):
        return loaded

    try:
        return JsonOk(model.model_validate(loaded))
    except ValidationError as exc:
        logger.debug("Schema validation failed for %s: %s", model.__name__, exc)
        return JsonFailure(FAILURE_SCHEMA, f"{exc.error_count()} validation error(s)")
