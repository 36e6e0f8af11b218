"""Pattern rules that pull title/price/rating/review count out of OCR text.

Rules are evaluated in table order; the first rule that matches a field
wins and fields never look at each other.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from .contracts import OCRSignals

DEFAULT_TITLE_MIN_LENGTH = 8

_LETTER_RE = re.compile(r"[^\W\d_]")


@dataclass(frozen=True)
class SignalRule:
    field: str
    pattern: re.Pattern[str]
    transform: Callable[[re.Match[str]], str]


def _whole(match: re.Match[str]) -> str:
    return match.group(0).strip()


def _first_group(match: re.Match[str]) -> str:
    return match.group(1)


def _strip_separators(match: re.Match[str]) -> str:
    return match.group(1).replace(",", "")


SIGNAL_RULES: tuple[SignalRule, ...] = (
    SignalRule(
        field="price",
        pattern=re.compile(r"(?:[$€£¥₹]|\bUSD)\s?\d{1,4}(?:\.\d{2})?"),
        transform=_whole,
    ),
    SignalRule(
        field="rating",
        pattern=re.compile(r"(\d+(?:\.\d+)?)\s*(?:out\s+of\s+5|stars?\b)", re.IGNORECASE),
        transform=_first_group,
    ),
    SignalRule(
        field="review_count",
        pattern=re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)\s*(?:reviews?|ratings?)\b", re.IGNORECASE),
        transform=_strip_separators,
    ),
)


def extract_title(text: str, min_length: int = DEFAULT_TITLE_MIN_LENGTH) -> str:
    """First trimmed line with at least one letter and *min_length* chars."""
    for line in text.splitlines():
        candidate = line.strip()
        if len(candidate) >= min_length and _LETTER_RE.search(candidate):
            return candidate
    return ""


def extract_signals(text: str, *, title_min_length: int = DEFAULT_TITLE_MIN_LENGTH) -> OCRSignals:
    """Derive normalised signals from raw OCR *text*."""
    text = text or ""
    values: dict[str, str] = {"title": extract_title(text, title_min_length)}
    for rule in SIGNAL_RULES:
        if values.get(rule.field):
            continue
        match = rule.pattern.search(text)
        if match:
            values[rule.field] = rule.transform(match)
    return OCRSignals(**values)
