"""Snapshot analysis endpoints: analyze, structure, implementation."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from pagelens.core.config import PipelineConfig, get_pipeline_config, get_settings
from pagelens.services.analysis.contracts import Feature, LayoutSection
from pagelens.services.analysis.errors import InputError, UpstreamFatalError

router = APIRouter()

logger = logging.getLogger(__name__)


# --- Analyze ---


class AnalyzeRequest(BaseModel):
    content: str | None = None


class AnalyzeMeta(BaseModel):
    mode: str
    ocr_confidence: float
    cross_check_issues: int


class AnalyzeResponse(BaseModel):
    result: str
    meta: AnalyzeMeta


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Inventory the UI features of a product page snapshot",
)
async def analyze_endpoint(
    body: AnalyzeRequest,
    config: PipelineConfig = Depends(get_pipeline_config),
):
    from pagelens.services.analysis.pipeline import analyze_snapshot

    if body.content and len(body.content) > get_settings().max_content_chars:
        raise HTTPException(413, "content too large")

    try:
        result = await analyze_snapshot(body.content, config)
    except InputError as exc:
        raise HTTPException(400, str(exc)) from exc
    except UpstreamFatalError as exc:
        logger.error("Analysis failed: %s", exc)
        raise HTTPException(500, str(exc)) from exc

    return AnalyzeResponse(
        result=result.report,
        meta=AnalyzeMeta(
            mode=result.mode,
            ocr_confidence=result.ocr_confidence,
            cross_check_issues=result.cross_check_issues,
        ),
    )


# --- Structure / implementation from an analysis document ---


class StructureRequest(BaseModel):
    analysis: str = Field(default="", max_length=500_000)


class StructureResponse(BaseModel):
    features: list[Feature]
    api_dependencies: list[str]
    sections: list[LayoutSection]


@router.post(
    "/analyze/structure",
    response_model=StructureResponse,
    summary="Parse an analysis report into features and layout sections",
)
def structure_endpoint(body: StructureRequest):
    from pagelens.services.analysis.pipeline import analyze_markdown

    structure, sections = analyze_markdown(body.analysis)
    return StructureResponse(
        features=structure.features,
        api_dependencies=structure.api_dependencies,
        sections=sections,
    )


class ImplementationRequest(BaseModel):
    analysis: str = Field(default="", max_length=500_000)
    component_name: str = Field(default="ProductDisplay", min_length=1, max_length=80)


class ImplementationResponse(BaseModel):
    code: str
    css: str
    mock_data: str
    sections: list[LayoutSection]


@router.post(
    "/analyze/implementation",
    response_model=ImplementationResponse,
    summary="Generate illustrative markup and mock data from an analysis report",
)
def implementation_endpoint(body: ImplementationRequest):
    from pagelens.services.analysis.pipeline import build_implementation

    return ImplementationResponse(**build_implementation(body.analysis, body.component_name))
