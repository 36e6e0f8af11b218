"""Vision scope contracts: structured description of a product page."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..ocr.contracts import clamp_confidence

ASSET_TYPES = frozenset(
    {
        "product_image",
        "thumbnail",
        "logo",
        "icon",
        "badge",
        "banner",
        "button",
        "other",
    }
)

FEATURE_DATA_TYPES = ("text", "number", "image", "rating", "list", "action", "badge", "other")


def _text(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, (dict, list)):
        return ""
    return str(v).strip()


def _objects_only(v: Any) -> list[Any]:
    """Coerce an array-valued field: non-arrays become [], non-objects are dropped."""
    if not isinstance(v, (list, tuple)):
        return []
    return [item for item in v if isinstance(item, (dict, BaseModel))]


def _item_name(item: Any) -> str:
    if isinstance(item, dict):
        return _text(item.get("name"))
    return _text(getattr(item, "name", None))


class VisualAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "other"
    label: str = ""
    position: str = ""
    confidence: float = 0.0

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, v):
        value = _text(v).lower().replace(" ", "_").replace("-", "_")
        return value if value in ASSET_TYPES else "other"

    @field_validator("label", "position", mode="before")
    @classmethod
    def _stringify(cls, v):
        return _text(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)


class FeatureDescriptor(BaseModel):
    """One UI feature as reported by the vision pass or synthesised by fusion."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    data_displayed: str = Field(default="", validation_alias=AliasChoices("dataDisplayed", "data_displayed"))
    data_type: str = Field(default="text", validation_alias=AliasChoices("dataType", "data_type"))
    position: str = ""
    styling: str = ""
    api_source: str = Field(default="", validation_alias=AliasChoices("apiSource", "api_source"))
    is_mvp: bool = Field(default=True, validation_alias=AliasChoices("isMVP", "isMvp", "is_mvp"))

    @field_validator("name", mode="before")
    @classmethod
    def _name_required(cls, v):
        value = _text(v)
        if not value:
            raise ValueError("feature name is required")
        return value

    @field_validator("description", "data_displayed", "position", "styling", "api_source", mode="before")
    @classmethod
    def _stringify(cls, v):
        return _text(v)

    @field_validator("data_type", mode="before")
    @classmethod
    def _known_data_type(cls, v):
        value = _text(v).lower()
        return value if value in FEATURE_DATA_TYPES else "other"

    @field_validator("is_mvp", mode="before")
    @classmethod
    def _bool(cls, v):
        if isinstance(v, str):
            value = v.strip().lower()
            return value not in {"no", "false", "0"} if value else True
        return True if v is None else bool(v)


class ApiDependency(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    fields: tuple[str, ...] = ()

    @field_validator("name", mode="before")
    @classmethod
    def _name_required(cls, v):
        value = _text(v)
        if not value:
            raise ValueError("dependency name is required")
        return value

    @field_validator("fields", mode="before")
    @classmethod
    def _unique_fields(cls, v):
        if isinstance(v, str):
            v = [part for part in v.split(",")]
        if not isinstance(v, (list, tuple, set)):
            return ()
        seen: list[str] = []
        for item in v:
            value = _text(item)
            if value and value not in seen:
                seen.append(value)
        return tuple(seen)


class VisionResult(BaseModel):
    """Structured-vision output. ``VisionResult()`` is the empty default."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = ""
    price: str = ""
    rating: str = ""
    review_count: str = Field(default="", validation_alias=AliasChoices("reviewCount", "review_count"))
    primary_image_present: bool = Field(
        default=False,
        validation_alias=AliasChoices("primaryImagePresent", "primary_image_present"),
    )
    visual_assets: tuple[VisualAsset, ...] = Field(
        default=(),
        validation_alias=AliasChoices("visualAssets", "visual_assets"),
    )
    features: tuple[FeatureDescriptor, ...] = ()
    api_dependencies: tuple[ApiDependency, ...] = Field(
        default=(),
        validation_alias=AliasChoices("apiDependencies", "api_dependencies"),
    )

    @field_validator("title", "price", "rating", "review_count", mode="before")
    @classmethod
    def _stringify(cls, v):
        return _text(v)

    @field_validator("primary_image_present", mode="before")
    @classmethod
    def _bool(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in {"true", "yes", "1"}
        return bool(v)

    @field_validator("visual_assets", mode="before")
    @classmethod
    def _coerce_array(cls, v):
        return _objects_only(v)

    @field_validator("features", "api_dependencies", mode="before")
    @classmethod
    def _coerce_named(cls, v):
        # Nameless entries carry nothing we can render.
        return [item for item in _objects_only(v) if _item_name(item)]

    def is_empty(self) -> bool:
        return not (
            self.title
            or self.price
            or self.rating
            or self.review_count
            or self.primary_image_present
            or self.visual_assets
            or self.features
            or self.api_dependencies
        )
