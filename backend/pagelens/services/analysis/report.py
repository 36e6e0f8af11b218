"""Markdown rendering of a fused analysis.

Section order and the fallback lines are part of the observable output;
``parser.parse_analysis`` reads this format back.
"""

from __future__ import annotations

import re

from pagelens.services.ai.vision.contracts import ApiDependency, FeatureDescriptor

from .contracts import FusedOutput

REPORT_TITLE = "# Product Page Feature Analysis"
FEATURES_HEADING = "## Feature Inventory"
DEPENDENCIES_HEADING = "## Data Dependencies Map"
CROSS_CHECK_HEADING = "## Cross-Check"
SUMMARY_HEADING = "## Confidence Summary"

FALLBACK_DEPENDENCIES = (
    "- Product Catalog API: title, description, images",
    "- Pricing API: price, currency, discounts",
    "- Reviews API: rating, review count",
)
NO_CONFLICTS_LINE = "- No conflicts detected between OCR and vision extraction."
NO_FEATURES_LINE = "_No features were detected in this snapshot._"
NOT_SPECIFIED = "Not specified"
UNKNOWN_SOURCE = "Unknown"
# Stand-ins for empty fields; the parser reads them back as "".
PLACEHOLDER_VALUES = frozenset({NOT_SPECIFIED, UNKNOWN_SOURCE})

_WHITESPACE_RE = re.compile(r"\s+")


def _one_line(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value or "").strip()


def render_feature(feature: FeatureDescriptor) -> list[str]:
    return [
        f"### [{_one_line(feature.name)}]",
        f"- **Description**: {_one_line(feature.description) or NOT_SPECIFIED}",
        f"- **Data displayed**: {_one_line(feature.data_displayed) or NOT_SPECIFIED}",
        f"- **Data type**: {feature.data_type}",
        f"- **Position**: {_one_line(feature.position) or NOT_SPECIFIED}",
        f"- **Visual styling**: {_one_line(feature.styling) or NOT_SPECIFIED}",
        f"- **Likely API/source**: {_one_line(feature.api_source) or UNKNOWN_SOURCE}",
        f"- **Required for implementation**: {'Yes' if feature.is_mvp else 'No'}",
        "",
    ]


def render_dependency(dependency: ApiDependency) -> str:
    line = f"- {_one_line(dependency.name)}"
    if dependency.fields:
        line += ": " + ", ".join(_one_line(f) for f in dependency.fields)
    return line


def render_report(fused: FusedOutput) -> str:
    """Serialize *fused* into the markdown report."""
    lines: list[str] = [REPORT_TITLE, "", FEATURES_HEADING, ""]

    if fused.features:
        for feature in fused.features:
            lines.extend(render_feature(feature))
    else:
        lines.extend([NO_FEATURES_LINE, ""])

    lines.extend([DEPENDENCIES_HEADING, ""])
    if fused.api_dependencies:
        lines.extend(render_dependency(dep) for dep in fused.api_dependencies)
    else:
        lines.extend(FALLBACK_DEPENDENCIES)
    lines.append("")

    lines.extend([CROSS_CHECK_HEADING, ""])
    if fused.cross_check:
        lines.extend(f"- {_one_line(issue)}" for issue in fused.cross_check)
    else:
        lines.append(NO_CONFLICTS_LINE)
    lines.append("")

    summary = fused.summary
    lines.extend(
        [
            SUMMARY_HEADING,
            "",
            f"- OCR confidence: {summary.ocr_confidence:.1f}%",
            f"- Visual assets detected: {summary.visual_assets_detected}",
            f"- Primary product image present: {'Yes' if summary.primary_image_present else 'No'}",
        ]
    )
    return "\n".join(lines) + "\n"
