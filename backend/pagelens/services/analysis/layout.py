"""Group parsed features into ordered page sections.

Each rule claims the still-unclaimed features matching its predicate, in
table order, so every feature lands in exactly one section. Rules that
claim nothing produce no section.
"""

from __future__ import annotations

from dataclasses import dataclass

from .contracts import DataType, Feature, LayoutSection, SectionLayout, SectionType


@dataclass(frozen=True)
class LayoutRule:
    section: SectionType
    title: str | None = None
    name_keywords: tuple[str, ...] = ()
    data_types: tuple[DataType, ...] = ()
    cap: int | None = None
    layout: SectionLayout | None = None
    claims_all: bool = False

    def matches(self, feature: Feature) -> bool:
        if self.claims_all:
            return True
        if feature.data_type in self.data_types:
            return True
        name = feature.name.lower()
        return any(keyword in name for keyword in self.name_keywords)


LAYOUT_RULES: tuple[LayoutRule, ...] = (
    LayoutRule(
        SectionType.HERO,
        name_keywords=("title", "price", "rating", "star"),
        cap=3,
    ),
    LayoutRule(
        SectionType.HIGHLIGHTED,
        name_keywords=("review", "available", "availability", "stock"),
        cap=3,
        layout=SectionLayout.HORIZONTAL,
    ),
    LayoutRule(
        SectionType.DETAILED,
        title="About This Product",
        name_keywords=("description", "about", "specification"),
        data_types=(DataType.TEXT,),
        cap=2,
    ),
    LayoutRule(
        SectionType.LIST,
        title="Key Features",
        name_keywords=("feature", "benefit", "key"),
        data_types=(DataType.LIST,),
    ),
    LayoutRule(
        SectionType.GRID,
        title="Options",
        name_keywords=("color", "size", "option", "variant", "available"),
        layout=SectionLayout.HORIZONTAL,
    ),
    LayoutRule(
        SectionType.ACTIONS,
        name_keywords=("button", "add", "buy", "cart", "wishlist"),
        data_types=(DataType.ACTION,),
        layout=SectionLayout.HORIZONTAL,
    ),
    LayoutRule(
        SectionType.DETAILED,
        title="Additional Information",
        claims_all=True,
    ),
)


def generate_layout(features: list[Feature]) -> list[LayoutSection]:
    """Partition *features* into sections following ``LAYOUT_RULES``."""
    sections: list[LayoutSection] = []
    # Claimed by index so repeated records are still placed exactly once.
    claimed: set[int] = set()

    for rule in LAYOUT_RULES:
        picked: list[int] = [i for i, f in enumerate(features) if i not in claimed and rule.matches(f)]
        if rule.cap is not None:
            picked = picked[: rule.cap]
        if not picked:
            continue
        claimed.update(picked)
        sections.append(
            LayoutSection(
                type=rule.section,
                title=rule.title,
                features=[features[i] for i in picked],
                layout=rule.layout,
            )
        )

    return sections
