"""Snapshot analysis pipeline.

input → extractor selection → (OCR ∥ vision) → fusion → markdown report.

The pipeline is a function of ``(content, PipelineConfig)``; it never reads
the environment. Extractor failures degrade to empty results and only a
missing payload, or an image that yields nothing at all, is an error.
"""

from __future__ import annotations

import asyncio
import logging
import time

from pagelens.core.config import PipelineConfig
from pagelens.services.ai.common.providers.base import IMAGE_DATA_PREFIX
from pagelens.services.ai.ocr.contracts import OCRResult, OCRSignals
from pagelens.services.ai.ocr.service import recognize_text, text_snapshot_result
from pagelens.services.ai.ocr.signals import extract_signals
from pagelens.services.ai.vision.service import analyze_structure

from .codegen import dump_mock_dataset, generate_component_css, generate_component_markup
from .contracts import AnalysisResult, AnalysisStructure, LayoutSection
from .errors import InputError, UpstreamFatalError
from .fusion import FusionPolicy, fuse
from .layout import generate_layout
from .parser import parse_analysis
from .report import render_report

logger = logging.getLogger(__name__)

MODE_IMAGE = "image"
MODE_TEXT = "text"


def detect_mode(content: str) -> str:
    return MODE_IMAGE if content.lstrip().startswith(IMAGE_DATA_PREFIX) else MODE_TEXT


def resolve_signals(ocr: OCRResult, config: PipelineConfig) -> OCRSignals:
    """Signals from the OCR engine when it supplied them, else pattern rules."""
    if ocr.signals is not None:
        return ocr.signals
    return extract_signals(ocr.text, title_min_length=config.title_min_length)


async def analyze_snapshot(content: str | None, config: PipelineConfig) -> AnalysisResult:
    """Analyse one snapshot and return the markdown report plus metadata."""
    if content is None or not content.strip():
        raise InputError("no content")

    content = content.strip()
    mode = detect_mode(content)
    t0 = time.monotonic()

    if mode == MODE_IMAGE:
        ocr, vision = await asyncio.gather(
            recognize_text(content, config),
            analyze_structure(content, config),
        )
    else:
        ocr = text_snapshot_result(content)
        vision = await analyze_structure(content, config)

    signals = resolve_signals(ocr, config)

    if mode == MODE_IMAGE and not ocr.text.strip() and signals.is_empty() and vision.is_empty():
        raise UpstreamFatalError("Both OCR and vision extraction failed and no usable text was recovered")

    fused = fuse(ocr, signals, vision, FusionPolicy(ocr_title_threshold=config.ocr_title_threshold))
    report = render_report(fused)

    logger.info(
        "Analysed %s snapshot: ocr=%s (%.1f%%), vision=%s, features=%d, cross_check=%d in %.0fms",
        mode,
        ocr.engine,
        ocr.confidence,
        "empty" if vision.is_empty() else "ok",
        len(fused.features),
        len(fused.cross_check),
        (time.monotonic() - t0) * 1000,
    )

    return AnalysisResult(
        report=report,
        mode=mode,
        ocr_confidence=fused.summary.ocr_confidence,
        cross_check_issues=len(fused.cross_check),
        fused=fused,
    )


def analyze_markdown(text: str) -> tuple[AnalysisStructure, list[LayoutSection]]:
    """Parse an analysis document and lay out its features."""
    structure = parse_analysis(text)
    return structure, generate_layout(structure.features)


def build_implementation(text: str, component_name: str = "ProductDisplay") -> dict[str, object]:
    """Markup, stylesheet and mock data for the features in *text*."""
    structure, sections = analyze_markdown(text)
    return {
        "code": generate_component_markup(sections, component_name),
        "css": generate_component_css(),
        "mock_data": dump_mock_dataset(structure.features),
        "sections": sections,
    }
