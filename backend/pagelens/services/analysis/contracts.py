"""Contracts for feature analysis: fused output, parsed features, layout."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pagelens.services.ai.ocr.contracts import clamp_confidence
from pagelens.services.ai.vision.contracts import ApiDependency, FeatureDescriptor


class DataType(StrEnum):
    TEXT = "text"
    NUMBER = "number"
    IMAGE = "image"
    RATING = "rating"
    LIST = "list"
    ACTION = "action"
    BADGE = "badge"
    OTHER = "other"


class SectionType(StrEnum):
    HERO = "hero"
    HIGHLIGHTED = "highlighted"
    DETAILED = "detailed"
    LIST = "list"
    GRID = "grid"
    ACTIONS = "actions"


class SectionLayout(StrEnum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    GRID = "grid"


# ---------------------------------------------------------------------------
# Fusion output
# ---------------------------------------------------------------------------


class FusedSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    ocr_confidence: float = 0.0
    visual_assets_detected: int = 0
    primary_image_present: bool = False

    @field_validator("ocr_confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)


class FusedOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    features: tuple[FeatureDescriptor, ...] = ()
    api_dependencies: tuple[ApiDependency, ...] = ()
    cross_check: tuple[str, ...] = ()
    summary: FusedSummary = FusedSummary()


# ---------------------------------------------------------------------------
# Parsed features and layout
# ---------------------------------------------------------------------------


class Feature(BaseModel):
    """One visible UI element recovered from an analysis document."""

    name: str
    description: str = ""
    data_type: DataType = DataType.TEXT
    position: str = ""
    styling: str = ""
    api_source: str = ""
    is_mvp: bool = True
    mock_data: Any = None


class AnalysisStructure(BaseModel):
    features: list[Feature] = Field(default_factory=list)
    api_dependencies: list[str] = Field(default_factory=list)
    raw_text: str = ""


class LayoutSection(BaseModel):
    type: SectionType
    title: str | None = None
    features: list[Feature] = Field(default_factory=list)
    layout: SectionLayout | None = None


class AnalysisResult(BaseModel):
    """Everything the HTTP layer needs to answer an analyze request."""

    report: str
    mode: str  # image | text
    ocr_confidence: float = 0.0
    cross_check_issues: int = 0
    fused: FusedOutput = FusedOutput()
