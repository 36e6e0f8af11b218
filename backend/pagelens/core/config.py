from dataclasses import dataclass, field
from functools import lru_cache
import json
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

OCR_BACKENDS = ("pixel", "model")


def _parse_list_value(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )

    docs_enabled: bool = True
    openapi_enabled: bool = True
    expose_error_details: bool = False

    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)

    openai_api_key: str = ""
    anthropic_api_key: str = ""

    ocr_backend: str = Field(
        default="model",
        validation_alias=AliasChoices("OCR_BACKEND", "USE_TESSERACT_OCR"),
    )
    tesseract_cmd: str = ""
    tesseract_lang: str = "eng"

    ai_ocr_provider: str = "openai"
    ai_ocr_model: str = ""
    ai_vision_provider: str = "openai"
    ai_vision_model: str = ""
    ai_allowed_providers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["openai", "claude", "mock"]
    )
    ai_allowed_models: dict[str, list[str]] = Field(default_factory=dict)

    ai_timeout_seconds: float = 30.0
    ai_budget_seconds: float = 60.0
    ai_max_retries: int = Field(default=1, ge=0, le=1)
    ai_temperature: float = 0.0
    ai_max_tokens: int = 2000

    ocr_title_confidence_threshold: float = Field(default=75.0, ge=0, le=100)
    title_min_length: int = Field(default=8, ge=1)
    max_content_chars: int = 10 * 1024 * 1024

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_csv(cls, value):
        return _parse_list_value(value)

    @field_validator("ai_allowed_providers", mode="before")
    @classmethod
    def _split_providers(cls, value):
        return [item.lower() for item in _parse_list_value(value)]

    @field_validator("ai_allowed_models", mode="before")
    @classmethod
    def _parse_models(cls, value):
        if value is None:
            return {}
        return value

    @field_validator("ocr_backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value):
        # USE_TESSERACT_OCR=true|false is accepted as a legacy switch.
        raw = str(value or "").strip().lower()
        if raw in {"1", "true", "yes", "tesseract"}:
            return "pixel"
        if raw in {"", "0", "false", "no"}:
            return "model"
        if raw not in OCR_BACKENDS:
            msg = f"OCR backend must be one of {OCR_BACKENDS}, got {value!r}"
            raise ValueError(msg)
        return raw


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable snapshot of everything the analysis pipeline reads.

    Built once per process (or per test) from ``Settings`` and passed
    explicitly; pipeline code never looks at the environment itself.
    """

    ocr_backend: str = "model"
    ocr_provider: str = "mock"
    ocr_model: str = ""
    vision_provider: str = "mock"
    vision_model: str = ""
    allowed_providers: tuple[str, ...] = ("mock",)
    allowed_models: dict[str, list[str]] = field(default_factory=dict)
    provider_keys: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 30.0
    budget_seconds: float = 60.0
    max_retries: int = 1
    temperature: float = 0.0
    max_tokens: int = 2000
    ocr_title_threshold: float = 75.0
    title_min_length: int = 8
    tesseract_cmd: str = ""
    tesseract_lang: str = "eng"

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineConfig":
        return cls(
            ocr_backend=settings.ocr_backend,
            ocr_provider=settings.ai_ocr_provider.lower().strip(),
            ocr_model=settings.ai_ocr_model.strip(),
            vision_provider=settings.ai_vision_provider.lower().strip(),
            vision_model=settings.ai_vision_model.strip(),
            allowed_providers=tuple(settings.ai_allowed_providers),
            allowed_models=dict(settings.ai_allowed_models),
            provider_keys={
                "openai": settings.openai_api_key,
                "claude": settings.anthropic_api_key,
            },
            timeout_seconds=settings.ai_timeout_seconds,
            budget_seconds=settings.ai_budget_seconds,
            max_retries=min(settings.ai_max_retries, 1),
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
            ocr_title_threshold=settings.ocr_title_confidence_threshold,
            title_min_length=settings.title_min_length,
            tesseract_cmd=settings.tesseract_cmd,
            tesseract_lang=settings.tesseract_lang,
        )


@lru_cache

def get_settings() -> Settings:
    return Settings()


@lru_cache

def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig.from_settings(get_settings())
