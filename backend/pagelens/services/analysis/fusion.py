"""Fusion of OCR and structured-vision results into one feature list.

``fuse`` is a pure function of its inputs plus ``FusionPolicy``: the same
OCR/vision pair always yields the same ``FusedOutput``. Malformed inputs
degrade to their empty defaults instead of raising.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pagelens.services.ai.common.providers.base import IMAGE_DATA_PREFIX
from pagelens.services.ai.ocr.contracts import OCRResult, OCRSignals
from pagelens.services.ai.vision.contracts import FeatureDescriptor, VisionResult, VisualAsset

from .contracts import FusedOutput, FusedSummary

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_OCR_TITLE_THRESHOLD = 75.0
DEFAULT_MAX_ASSET_ROLLUP = 8

FUSED_FIELDS = ("title", "price", "rating", "review_count")
NUMERIC_FIELDS = frozenset({"price", "rating", "review_count", "reviewCount"})

_PRIMARY_IMAGE_RE = re.compile(r"\b(primary|main|hero|product)\b.*\b(image|photo|picture)s?\b", re.IGNORECASE)


@dataclass(frozen=True)
class FusionPolicy:
    """Tunable policy constants for fusion."""

    ocr_title_threshold: float = DEFAULT_OCR_TITLE_THRESHOLD
    max_asset_rollup: int = DEFAULT_MAX_ASSET_ROLLUP


def pick_preferred_value(
    field: str,
    ocr_value: str,
    vision_value: str,
    ocr_confidence: float,
    threshold: float = DEFAULT_OCR_TITLE_THRESHOLD,
) -> str:
    """Choose one value for *field* from the OCR and vision readings.

    - both empty → ``""``
    - one side empty → the other side
    - numeric fields (price/rating/review count) → vision
    - title-like fields → OCR when ``ocr_confidence >= threshold``, else vision
    """
    ocr_value = (ocr_value or "").strip()
    vision_value = (vision_value or "").strip()

    if not ocr_value and not vision_value:
        return ""
    if not vision_value:
        return ocr_value
    if not ocr_value:
        return vision_value
    if field in NUMERIC_FIELDS:
        return vision_value
    return ocr_value if ocr_confidence >= threshold else vision_value


def is_image_payload(value: str) -> bool:
    return (value or "").lstrip().lower().startswith(IMAGE_DATA_PREFIX)


def denotes_primary_image(name: str) -> bool:
    return bool(_PRIMARY_IMAGE_RE.search(name or ""))


def format_count(value: str) -> str:
    """``"12345"`` → ``"12,345"``; anything non-numeric is returned as-is."""
    digits = value.replace(",", "").strip()
    if digits.isdigit():
        return f"{int(digits):,}"
    return value.strip()


def rating_sentence(rating: str, review_count: str) -> str:
    parts: list[str] = []
    if rating:
        lowered = rating.lower()
        parts.append(rating if ("out of" in lowered or "star" in lowered) else f"{rating} out of 5 stars")
    if review_count:
        count = format_count(review_count)
        parts.append(f"from {count} reviews" if rating else f"{count} reviews")
    return " ".join(parts)


def summarize_assets(assets: tuple[VisualAsset, ...], limit: int) -> str:
    shown = [f"{a.type} ({a.label})" if a.label else a.type for a in assets[:limit]]
    summary = ", ".join(shown)
    if len(assets) > limit:
        summary += f" and {len(assets) - limit} more"
    return summary


def _coerce(model: type[M], value: Any, default: M) -> M:
    if isinstance(value, model):
        return value
    if isinstance(value, dict):
        try:
            return model.model_validate(value)
        except ValidationError:
            logger.warning("Fusion: invalid %s input, using default", model.__name__)
    elif value is not None:
        logger.warning("Fusion: unexpected %s input type %s, using default", model.__name__, type(value).__name__)
    return default


def _leaks_payload(feature: FeatureDescriptor) -> bool:
    return is_image_payload(feature.data_displayed) or is_image_payload(feature.description)


def _has_feature_named(features: list[FeatureDescriptor], keyword: str) -> bool:
    return any(keyword in f.name.lower() for f in features)


def _synthesize(resolved: dict[str, str], existing: list[FeatureDescriptor]) -> list[FeatureDescriptor]:
    synthesized: list[FeatureDescriptor] = []

    if resolved["title"] and not _has_feature_named(existing, "title"):
        synthesized.append(
            FeatureDescriptor(
                name="Product Title",
                description="Main product name shown at the top of the product details",
                data_displayed=resolved["title"],
                data_type="text",
                position="Top of product details",
                styling="Large bold heading",
                api_source="Product Catalog API",
            )
        )

    if resolved["price"] and not _has_feature_named(existing, "price"):
        synthesized.append(
            FeatureDescriptor(
                name="Price",
                description="Current selling price of the product",
                data_displayed=resolved["price"],
                data_type="number",
                position="Below the product title",
                styling="Prominent, emphasised price text",
                api_source="Pricing API",
            )
        )

    if (resolved["rating"] or resolved["review_count"]) and not _has_feature_named(existing, "rating"):
        synthesized.append(
            FeatureDescriptor(
                name="Rating and Review Summary",
                description="Average star rating with the number of customer reviews",
                data_displayed=rating_sentence(resolved["rating"], resolved["review_count"]),
                data_type="rating",
                position="Near the product title",
                styling="Star icons followed by review count link",
                api_source="Reviews API",
            )
        )

    return synthesized


def _cross_check(signals: OCRSignals, vision: VisionResult) -> list[str]:
    issues: list[str] = []
    ocr_title, vision_title = signals.title.strip(), vision.title.strip()
    if ocr_title and vision_title and ocr_title.lower() != vision_title.lower():
        issues.append(f'Title mismatch: OCR read "{ocr_title}" but vision reported "{vision_title}"')
    ocr_price, vision_price = signals.price.strip(), vision.price.strip()
    if ocr_price and vision_price and ocr_price != vision_price:
        issues.append(f'Price mismatch: OCR read "{ocr_price}" but vision reported "{vision_price}"')
    return issues


def fuse(
    ocr: OCRResult | None,
    ocr_signals: OCRSignals | None,
    vision: VisionResult | None,
    policy: FusionPolicy = FusionPolicy(),
) -> FusedOutput:
    """Merge OCR and vision readings into a single ``FusedOutput``."""
    ocr = _coerce(OCRResult, ocr, OCRResult.empty())
    signals = _coerce(OCRSignals, ocr_signals, ocr.signals or OCRSignals())
    vision = _coerce(VisionResult, vision, VisionResult())

    # 1. Field resolution
    resolved = {
        field: pick_preferred_value(
            field,
            getattr(signals, field),
            getattr(vision, field),
            ocr.confidence,
            policy.ocr_title_threshold,
        )
        for field in FUSED_FIELDS
    }

    # 2. Drop vision features that echo the raw snapshot
    vision_features = [f for f in vision.features if not _leaks_payload(f)]
    dropped = len(vision.features) - len(vision_features)
    if dropped:
        logger.info("Fusion: dropped %d feature(s) carrying image payloads", dropped)

    # 3. Synthesis, prepended ahead of model-reported features
    features = _synthesize(resolved, vision_features) + vision_features

    # 4. Visual-asset rollup
    if vision.visual_assets:
        features.append(
            FeatureDescriptor(
                name="Visual Assets",
                description=f"{len(vision.visual_assets)} visual asset(s) detected on the page",
                data_displayed=summarize_assets(vision.visual_assets, policy.max_asset_rollup),
                data_type="image",
                position="Throughout the page",
                styling="Product imagery, logos and icons",
                api_source="Media CDN",
                is_mvp=False,
            )
        )

    # 5. Cross-check
    cross_check = _cross_check(signals, vision)

    # 6. Final leak filter
    features = [f for f in features if not (denotes_primary_image(f.name) and _leaks_payload(f))]

    # 7. Summary
    return FusedOutput(
        features=tuple(features),
        api_dependencies=vision.api_dependencies,
        cross_check=tuple(cross_check),
        summary=FusedSummary(
            ocr_confidence=ocr.confidence,
            visual_assets_detected=len(vision.visual_assets),
            primary_image_present=vision.primary_image_present,
        ),
    )
