"""OCR scope contracts: OCRResult, line detail and extracted signals."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

ENGINE_PIXEL = "pixel"
ENGINE_MODEL = "model"
ENGINE_TEXT = "text"
ENGINE_NONE = "none"


def clamp_confidence(value: object) -> float:
    """Coerce *value* to a float in [0, 100]; junk becomes 0."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return max(0.0, min(100.0, number))


class OCRSignals(BaseModel):
    """Normalised fields pulled from OCR text. Empty string when unmatched."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = ""
    price: str = ""
    rating: str = ""
    review_count: str = Field(default="", validation_alias=AliasChoices("reviewCount", "review_count"))

    @field_validator("title", "price", "rating", "review_count", mode="before")
    @classmethod
    def _stringify(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    def is_empty(self) -> bool:
        return not (self.title or self.price or self.rating or self.review_count)


class OCRLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    confidence: float = 0.0
    bbox: tuple[int, int, int, int] | None = None  # left, top, width, height

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)


class OCRResult(BaseModel):
    """Output of one text-recognition pass. Immutable after creation."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    confidence: float = 0.0
    lines: tuple[OCRLine, ...] = ()
    signals: OCRSignals | None = None
    engine: str = ENGINE_NONE

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)

    @classmethod
    def empty(cls, engine: str = ENGINE_NONE) -> "OCRResult":
        """Zero-confidence default used when recognition fails."""
        return cls(engine=engine)


class ModelOCRPayload(BaseModel):
    """Strict JSON shape requested from the model-based OCR prompt."""

    raw_text: str = Field(default="", validation_alias=AliasChoices("rawText", "raw_text"))
    title: str = ""
    price: str = ""
    rating: str = ""
    review_count: str = Field(default="", validation_alias=AliasChoices("reviewCount", "review_count"))
    confidence: float = 0.0

    @field_validator("raw_text", "title", "price", "rating", "review_count", mode="before")
    @classmethod
    def _stringify(cls, v):
        if v is None:
            return ""
        if isinstance(v, (dict, list)):
            raise ValueError("expected a scalar value")
        return str(v).strip()

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)
