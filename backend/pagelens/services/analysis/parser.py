"""Re-parse analysis markdown into typed ``Feature`` records.

Accepts the output of ``report.render_report`` as well as free-form model
prose that follows a similar template. Field extraction, data-type
resolution and dependency scanning are driven by the ordered rule tables
below; within each table the first match wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .codegen import generate_mock_data
from .contracts import AnalysisStructure, DataType, Feature
from .errors import ParseError
from .report import PLACEHOLDER_VALUES

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldRule:
    field: str
    labels: tuple[str, ...]  # synonyms, tried in order


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("description", ("Description",)),
    FieldRule("data_displayed", ("Data displayed", "Data Displayed", "Data shown", "Displayed data")),
    FieldRule("data_type", ("Data type", "Type")),
    FieldRule("position", ("Position",)),
    FieldRule("styling", ("Visual styling", "Styling")),
    FieldRule("api_source", ("Likely API/source", "Likely source", "Source")),
    FieldRule("required", ("Required for implementation",)),
)

EXPLICIT_TYPE_ALIASES: dict[str, DataType] = {
    "text": DataType.TEXT,
    "string": DataType.TEXT,
    "number": DataType.NUMBER,
    "numeric": DataType.NUMBER,
    "price": DataType.NUMBER,
    "image": DataType.IMAGE,
    "photo": DataType.IMAGE,
    "rating": DataType.RATING,
    "review": DataType.RATING,
    "list": DataType.LIST,
    "action": DataType.ACTION,
    "button": DataType.ACTION,
    "badge": DataType.BADGE,
    "label": DataType.BADGE,
    "other": DataType.OTHER,
}


@dataclass(frozen=True)
class TypeRule:
    data_type: DataType
    name_keywords: tuple[str, ...]
    data_keywords: tuple[str, ...] = ()


TYPE_KEYWORD_RULES: tuple[TypeRule, ...] = (
    TypeRule(DataType.RATING, ("rating", "star"), ("out of 5",)),
    TypeRule(DataType.IMAGE, ("image", "photo")),
    TypeRule(DataType.NUMBER, ("price", "count")),
    TypeRule(DataType.LIST, ("review", "list")),
    TypeRule(DataType.ACTION, ("button", "action", "cart", "add to")),
    TypeRule(DataType.BADGE, ("badge", "label")),
)

DEFAULT_DATA_TYPE = DataType.TEXT

_FEATURE_BLOCK_RE = re.compile(
    r"^###[ \t]+([^\n]*)\n?([\s\S]*?)(?=^#{1,3}[ \t]|\Z)",
    re.MULTILINE,
)
_DEPENDENCIES_RE = re.compile(
    r"^##[ \t]+Data Dependencies[^\n]*\n([\s\S]*?)(?=^##[ \t]|\Z)",
    re.MULTILINE | re.IGNORECASE,
)
_DEPENDENCY_LINE_RE = re.compile(
    r"^[ \t]*[-•*][ \t]*(?:\*\*)?([A-Za-z][A-Za-z0-9 /&.-]*?(?:API|Database))(?![A-Za-z])",
    re.MULTILINE,
)
_BRACKETED_HEADING_RE = re.compile(r"\[(.+)\]")
_LEADING_BULLET_RE = re.compile(r"^[-*•]\s*")
_TYPE_TOKEN_RE = re.compile(r"[a-z]+")


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def _label_pattern(label: str) -> re.Pattern[str]:
    return re.compile(
        r"^[ \t]*(?:[-*•][ \t]*)?(?:\*\*)?"
        + re.escape(label)
        + r"(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?[ \t]*([^\n]+)",
        re.MULTILINE | re.IGNORECASE,
    )


_LABEL_PATTERNS: dict[str, re.Pattern[str]] = {
    label: _label_pattern(label) for rule in FIELD_RULES for label in rule.labels
}


def clean_extracted_value(value: str) -> str:
    value = _LEADING_BULLET_RE.sub("", value.strip())
    value = value.replace("**", "").strip()
    for quote in ('"', "'"):
        if len(value) >= 2 and value.startswith(quote) and value.endswith(quote):
            value = value[1:-1]
    return value.strip()


def extract_field(block: str, labels: tuple[str, ...]) -> str:
    """Value of the first label in *labels* present in *block*, or ``""``."""
    for label in labels:
        pattern = _LABEL_PATTERNS.get(label) or _label_pattern(label)
        match = pattern.search(block)
        if match:
            value = clean_extracted_value(match.group(1))
            if value:
                return value
    return ""


def extract_fields(block: str) -> dict[str, str]:
    fields = {rule.field: extract_field(block, rule.labels) for rule in FIELD_RULES}
    return {field: "" if value in PLACEHOLDER_VALUES else value for field, value in fields.items()}


# ---------------------------------------------------------------------------
# Data type resolution
# ---------------------------------------------------------------------------


def normalize_explicit_type(raw: str) -> DataType | None:
    token = _TYPE_TOKEN_RE.search(raw.lower())
    if not token:
        return None
    return EXPLICIT_TYPE_ALIASES.get(token.group(0))


def infer_data_type(name: str, data_displayed: str) -> DataType:
    lowered_name = name.lower()
    lowered_data = data_displayed.lower()
    for rule in TYPE_KEYWORD_RULES:
        if any(k in lowered_name for k in rule.name_keywords):
            return rule.data_type
        if any(k in lowered_data for k in rule.data_keywords):
            return rule.data_type
    return DEFAULT_DATA_TYPE


def resolve_data_type(explicit: str, name: str, data_displayed: str) -> DataType:
    if explicit:
        normalized = normalize_explicit_type(explicit)
        if normalized is not None:
            return normalized
        logger.debug("Unknown data type %r for %r, inferring from keywords", explicit, name)
    return infer_data_type(name, data_displayed)


def resolve_mvp(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered.startswith("no"):
        return False
    return True


# ---------------------------------------------------------------------------
# Blocks and features
# ---------------------------------------------------------------------------


def heading_name(heading: str) -> str:
    """Feature name from a block heading: the whole of `[Name]`, else text up to the first `]`."""
    heading = heading.strip()
    match = _BRACKETED_HEADING_RE.fullmatch(heading)
    if match:
        return match.group(1).strip()
    if heading.startswith("["):
        heading = heading[1:]
    return heading.split("]", 1)[0].strip()


def extract_feature_blocks(text: str) -> list[tuple[str, str]]:
    """Return ``(name, body)`` for every ``### [Name]`` block in *text*."""
    blocks: list[tuple[str, str]] = []
    for match in _FEATURE_BLOCK_RE.finditer(text or ""):
        name = heading_name(match.group(1))
        if name:
            blocks.append((name, match.group(2)))
    if not blocks:
        raise ParseError("no feature blocks found")
    return blocks


def parse_feature(name: str, body: str) -> Feature:
    fields = extract_fields(body)
    data_type = resolve_data_type(fields["data_type"], name, fields["data_displayed"])
    return Feature(
        name=name,
        description=fields["data_displayed"] or fields["description"],
        data_type=data_type,
        position=fields["position"],
        styling=fields["styling"],
        api_source=fields["api_source"],
        is_mvp=resolve_mvp(fields["required"]),
        mock_data=generate_mock_data(data_type, name),
    )


def extract_api_dependencies(text: str) -> list[str]:
    section = _DEPENDENCIES_RE.search(text or "")
    if not section:
        return []
    apis: list[str] = []
    for match in _DEPENDENCY_LINE_RE.finditer(section.group(1)):
        api = match.group(1).strip()
        if api and api not in apis:
            apis.append(api)
    return apis


def parse_analysis(text: str) -> AnalysisStructure:
    """Parse an analysis document; missing sections yield empty lists."""
    try:
        blocks = extract_feature_blocks(text)
    except ParseError as exc:
        logger.info("Analysis parse: %s; returning no features", exc)
        blocks = []

    return AnalysisStructure(
        features=[parse_feature(name, body) for name, body in blocks],
        api_dependencies=extract_api_dependencies(text),
        raw_text=text or "",
    )
