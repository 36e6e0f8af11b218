"""Tests for layout sectioning and illustrative markup generation."""

import json
import unittest

from pagelens.services.analysis.codegen import (
    PLACEHOLDER_IMAGE_URL,
    data_key,
    dump_mock_dataset,
    generate_component_css,
    generate_component_markup,
    generate_mock_data,
    generate_mock_dataset,
)
from pagelens.services.analysis.contracts import DataType, Feature, SectionLayout, SectionType
from pagelens.services.analysis.layout import LAYOUT_RULES, generate_layout
from pagelens.services.analysis.pipeline import analyze_markdown, build_implementation


def _f(name, data_type=DataType.TEXT, **kwargs):
    return Feature(name=name, data_type=data_type, **kwargs)


PAGE_FEATURES = [
    _f("Product Title"),
    _f("Price", DataType.NUMBER),
    _f("Rating and Review Summary", DataType.RATING),
    _f("Customer Reviews", DataType.LIST),
    _f("Product Description"),
    _f("Key Features", DataType.LIST),
    _f("Color Options", DataType.OTHER),
    _f("Add to Cart Button", DataType.ACTION),
    _f("Shipping Info", DataType.BADGE),
]


class LayoutTests(unittest.TestCase):
    def test_rule_table_ends_with_catch_all(self):
        self.assertTrue(LAYOUT_RULES[-1].claims_all)
        self.assertEqual(LAYOUT_RULES[0].section, SectionType.HERO)

    def test_sections_for_typical_page(self):
        sections = generate_layout(PAGE_FEATURES)
        summary = [(s.type, s.title, [f.name for f in s.features]) for s in sections]
        self.assertEqual(
            summary,
            [
                (SectionType.HERO, None, ["Product Title", "Price", "Rating and Review Summary"]),
                (SectionType.HIGHLIGHTED, None, ["Customer Reviews"]),
                (SectionType.DETAILED, "About This Product", ["Product Description"]),
                (SectionType.LIST, "Key Features", ["Key Features"]),
                (SectionType.GRID, "Options", ["Color Options"]),
                (SectionType.ACTIONS, None, ["Add to Cart Button"]),
                (SectionType.DETAILED, "Additional Information", ["Shipping Info"]),
            ],
        )
        self.assertEqual(sections[1].layout, SectionLayout.HORIZONTAL)
        self.assertIsNone(sections[0].layout)

    def test_partition_is_exact(self):
        features = PAGE_FEATURES + [_f("Star Badge", DataType.BADGE), _f("Notes"), _f("More Notes")]
        sections = generate_layout(features)
        placed = [f.name for s in sections for f in s.features]
        self.assertEqual(sorted(placed), sorted(f.name for f in features))
        self.assertEqual(len(placed), len(set(placed)))

    def test_hero_cap(self):
        features = [_f("Product Title"), _f("Price", DataType.NUMBER), _f("Star Rating"), _f("Title Badge", DataType.BADGE)]
        sections = generate_layout(features)
        self.assertEqual([f.name for f in sections[0].features], ["Product Title", "Price", "Star Rating"])
        self.assertEqual(sections[-1].title, "Additional Information")
        self.assertEqual([f.name for f in sections[-1].features], ["Title Badge"])

    def test_about_section_cap(self):
        features = [_f("Description"), _f("Materials"), _f("Care Instructions")]
        sections = generate_layout(features)
        self.assertEqual([f.name for f in sections[0].features], ["Description", "Materials"])
        self.assertEqual([f.name for f in sections[1].features], ["Care Instructions"])

    def test_identical_records_each_placed_once(self):
        features = [_f("Notes", DataType.OTHER), _f("Notes", DataType.OTHER)]
        sections = generate_layout(features)
        self.assertEqual(len(sections), 1)
        self.assertEqual(len(sections[0].features), 2)

    def test_empty_input(self):
        self.assertEqual(generate_layout([]), [])


class MockDataTests(unittest.TestCase):
    def test_per_type_samples(self):
        self.assertEqual(generate_mock_data("rating", "Stars"), {"stars": 4.5, "count": 2341})
        self.assertEqual(generate_mock_data("number", "Sale Price"), 29.99)
        self.assertEqual(generate_mock_data("number", "Units Sold"), 1234)
        self.assertEqual(generate_mock_data("image", "Gallery"), PLACEHOLDER_IMAGE_URL)
        self.assertEqual(len(generate_mock_data("list", "Bullets")), 3)
        self.assertEqual(generate_mock_data("action", "Buy"), {"label": "Click Action"})
        self.assertEqual(generate_mock_data("badge", "New"), {"label": "New", "color": "#4CAF50"})
        self.assertEqual(generate_mock_data("text", "Product Title"), "Sample Product Title")
        self.assertEqual(generate_mock_data("other", "Notes"), "Sample content")

    def test_data_key(self):
        self.assertEqual(data_key("  Add to Cart! "), "add_to_cart")
        self.assertEqual(data_key("Rating & Reviews"), "rating__reviews")

    def test_dataset_prefers_feature_mock_data(self):
        features = [_f("Price", DataType.NUMBER, mock_data=9.5), _f("Product Title")]
        self.assertEqual(generate_mock_dataset(features), {"price": 9.5, "product_title": "Sample Product Title"})

    def test_dump_is_json(self):
        dumped = dump_mock_dataset([_f("Stars", DataType.RATING)])
        self.assertEqual(json.loads(dumped), {"stars": {"stars": 4.5, "count": 2341}})


class MarkupTests(unittest.TestCase):
    def test_markup_follows_sections(self):
        sections = generate_layout(PAGE_FEATURES)
        markup = generate_component_markup(sections, "Product Display")

        self.assertTrue(markup.startswith('<div class="product-display" data-component="Product Display">'))
        self.assertIn('<section class="section section-hero">', markup)
        self.assertIn('<section class="section section-actions layout-horizontal">', markup)
        self.assertIn("<h2>Additional Information</h2>", markup)
        self.assertIn('<button type="button">Click Action</button>', markup)
        self.assertIn('<span class="stars">★★★★☆</span>', markup)
        self.assertIn("<li>Sample item 1</li>", markup)
        self.assertLess(markup.index("section-hero"), markup.index("section-actions"))

    def test_names_are_escaped(self):
        sections = generate_layout([_f("<script>alert(1)</script>")])
        markup = generate_component_markup(sections)
        self.assertNotIn("<script>", markup)
        self.assertIn("&lt;script&gt;", markup)

    def test_css(self):
        css = generate_component_css()
        self.assertIn(".feature-rating", css)
        self.assertIn(".layout-horizontal", css)


class PipelineDocumentTests(unittest.TestCase):
    DOC = "\n".join(
        [
            "### [Product Title]",
            "- **Data displayed**: Acme Lamp",
            "- **Data type**: text",
            "",
            "### [Add to Cart]",
            "- **Data type**: action",
            "",
            "## Data Dependencies Map",
            "- Cart API: sku",
        ]
    )

    def test_analyze_markdown(self):
        structure, sections = analyze_markdown(self.DOC)
        self.assertEqual([f.name for f in structure.features], ["Product Title", "Add to Cart"])
        self.assertEqual(structure.api_dependencies, ["Cart API"])
        self.assertEqual([s.type for s in sections], [SectionType.HERO, SectionType.ACTIONS])

    def test_build_implementation(self):
        bundle = build_implementation(self.DOC, "LampPage")
        self.assertIn('data-component="LampPage"', bundle["code"])
        self.assertEqual(json.loads(bundle["mock_data"])["add_to_cart"], {"label": "Click Action"})
        self.assertIn(".feature", bundle["css"])
        self.assertEqual(len(bundle["sections"]), 2)

    def test_document_without_features(self):
        bundle = build_implementation("nothing useful")
        self.assertEqual(bundle["sections"], [])
        self.assertEqual(json.loads(bundle["mock_data"]), {})


if __name__ == "__main__":
    unittest.main()
