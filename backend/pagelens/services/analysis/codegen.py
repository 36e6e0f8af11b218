"""Illustrative markup and mock data generated from parsed features."""

from __future__ import annotations

import html
import json
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .contracts import Feature, LayoutSection

PLACEHOLDER_IMAGE_URL = "https://via.placeholder.com/300x200?text=Product+Image"

_KEY_STRIP_RE = re.compile(r"[^\w]")
_SPACES_RE = re.compile(r"\s+")
_CLASS_RE = re.compile(r"[^a-z0-9]+")


def generate_mock_data(data_type: str, name: str) -> Any:
    """Sample value for a feature of *data_type*."""
    lowered = name.lower()
    if data_type == "rating":
        return {"stars": 4.5, "count": 2341}
    if data_type == "number":
        return 29.99 if "price" in lowered else 1234
    if data_type == "image":
        return PLACEHOLDER_IMAGE_URL
    if data_type == "list":
        return [
            {"id": 1, "text": "Sample item 1"},
            {"id": 2, "text": "Sample item 2"},
            {"id": 3, "text": "Sample item 3"},
        ]
    if data_type == "action":
        return {"label": "Click Action"}
    if data_type == "badge":
        return {"label": "New", "color": "#4CAF50"}
    return "Sample Product Title" if "title" in lowered else "Sample content"


def data_key(name: str) -> str:
    return _KEY_STRIP_RE.sub("", _SPACES_RE.sub("_", name.strip().lower()))


def generate_mock_dataset(features: list[Feature]) -> dict[str, Any]:
    dataset: dict[str, Any] = {}
    for feature in features:
        mock = feature.mock_data
        if mock is None:
            mock = generate_mock_data(feature.data_type, feature.name)
        dataset[data_key(feature.name)] = mock
    return dataset


def _feature_markup(feature: Feature, dataset: dict[str, Any]) -> str:
    name = html.escape(feature.name)
    value = dataset.get(data_key(feature.name))
    data_type = str(feature.data_type)

    if data_type == "rating" and isinstance(value, dict):
        stars = float(value.get("stars", 0))
        filled = int(stars)
        return (
            f'<div class="feature feature-rating"><h3>{name}</h3>'
            f'<span class="stars">{"★" * filled}{"☆" * (5 - filled)}</span> '
            f'<span class="rating-value">{stars}</span> '
            f'<span class="rating-count">({value.get("count", 0)} reviews)</span></div>'
        )
    if data_type == "number":
        return f'<div class="feature feature-number"><label>{name}:</label> <span class="value">{value}</span></div>'
    if data_type == "image":
        return (
            f'<div class="feature feature-image"><h3>{name}</h3>'
            f'<img src="{html.escape(str(value))}" alt="{name}" /></div>'
        )
    if data_type == "list" and isinstance(value, list):
        items = "".join(
            f"<li>{html.escape(str(item.get('text', item) if isinstance(item, dict) else item))}</li>" for item in value
        )
        return f'<div class="feature feature-list"><h3>{name}</h3><ul>{items}</ul></div>'
    if data_type == "action" and isinstance(value, dict):
        return f'<div class="feature feature-action"><button type="button">{html.escape(str(value.get("label", name)))}</button></div>'
    if data_type == "badge" and isinstance(value, dict):
        return (
            f'<div class="feature feature-badge"><span style="background-color: {html.escape(str(value.get("color", "")))}">'
            f'{html.escape(str(value.get("label", "")))}</span></div>'
        )
    return f'<div class="feature feature-text"><h3>{name}</h3><p>{html.escape(str(value))}</p></div>'


def generate_component_markup(sections: list[LayoutSection], component_name: str = "ProductDisplay") -> str:
    """HTML for *sections*, one element per feature, grouped by section."""
    features = [f for section in sections for f in section.features]
    dataset = generate_mock_dataset(features)
    root_class = _CLASS_RE.sub("-", component_name.lower()).strip("-") or "product-display"

    parts = [f'<div class="{root_class}" data-component="{html.escape(component_name)}">']
    for section in sections:
        layout = f" layout-{section.layout}" if section.layout else ""
        parts.append(f'  <section class="section section-{section.type}{layout}">')
        if section.title:
            parts.append(f"    <h2>{html.escape(section.title)}</h2>")
        for feature in section.features:
            parts.append(f"    {_feature_markup(feature, dataset)}")
        parts.append("  </section>")
    parts.append("</div>")
    return "\n".join(parts) + "\n"


def dump_mock_dataset(features: list[Feature]) -> str:
    return json.dumps(generate_mock_dataset(features), indent=2, ensure_ascii=False)


def generate_component_css() -> str:
    return """.section {
  margin-bottom: 2rem;
}

.layout-horizontal {
  display: flex;
  flex-wrap: wrap;
  gap: 1rem;
}

.feature {
  margin-bottom: 1.5rem;
  padding: 1rem;
  background: #f9f9f9;
  border-left: 4px solid #282c34;
  border-radius: 4px;
}

.feature h3 {
  margin: 0 0 0.5rem 0;
  font-size: 16px;
  color: #282c34;
  text-transform: uppercase;
}

.feature-rating { border-left-color: #ffc107; }
.stars { font-size: 20px; color: #ffc107; letter-spacing: 2px; }
.rating-count { font-size: 13px; color: #999; }
.feature-number { border-left-color: #2196f3; }
.feature-image { border-left-color: #9c27b0; }
.feature-image img { max-width: 100%; max-height: 300px; border-radius: 4px; }
.feature-list { border-left-color: #ff9800; }
.feature-list ul { list-style: none; padding: 0; margin: 0.5rem 0 0 0; }
.feature-action { border-left-color: #4caf50; }
.feature-action button {
  background: #282c34;
  color: white;
  border: none;
  padding: 12px 24px;
  border-radius: 4px;
  cursor: pointer;
}
.feature-badge { border-left-color: #e91e63; }
.feature-badge span { display: inline-block; padding: 6px 12px; border-radius: 12px; color: white; }
.feature-text p { margin: 0.5rem 0 0 0; color: #666; line-height: 1.6; }
"""
