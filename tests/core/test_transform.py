"""Tests for docgen.core.transform: Astro path rewrites and frontmatter."""

import pytest

from docgen.core.frontmatter import parse_frontmatter
from docgen.core.transform import (
    AstroTransformer,
    OutputTransform,
    TransformOptions,
    format_concept_title,
    get_transformer,
    strip_lines,
)


@pytest.fixture
def transformer():
    return AstroTransformer()


# ─── Path rewrites ───────────────────────────────────────────────────────


class TestRewritePaths:
    """Test relative asset reference rewriting."""

    def test_markdown_image(self, transformer):
        out = transformer.rewrite_paths("![Diagram](./images/arch.png)", "/docs/flow")
        assert out == "![Diagram](/docs/flow/images/arch.png)"

    def test_html_img_keeps_attributes(self, transformer):
        out = transformer.rewrite_paths('<img alt="x" src="./images/a.svg" width="40">', "/docs/flow")
        assert out == '<img alt="x" src="/docs/flow/images/a.svg" width="40">'

    def test_asciicast_src(self, transformer):
        out = transformer.rewrite_paths('{"src": "./asciicasts/demo.cast"}', "/docs/flow")
        assert out == '{"src": "/docs/flow/asciicasts/demo.cast"}'

    def test_video(self, transformer):
        out = transformer.rewrite_paths("![Demo](./videos/demo.mp4)", "/docs/flow")
        assert out == "![Demo](/docs/flow/videos/demo.mp4)"

    def test_other_links_untouched(self, transformer):
        content = "[link](./other.md) ![x](https://example.com/a.png)"
        assert transformer.rewrite_paths(content, "/docs/flow") == content


# ─── Frontmatter ─────────────────────────────────────────────────────────


class TestStandardDoc:
    """Test package doc transform."""

    def test_replaces_frontmatter(self, transformer):
        content = "---\ntitle: Old\nstatus: dev\n---\n\n# Overview\n![a](./images/a.png)\n"
        out = transformer.transform_standard_doc(
            content,
            TransformOptions(
                package_name="flow", title="Overview", description='A "quoted" tool', version="v1.0.0",
                category="Tools", order=3,
            ),
        )
        fm = parse_frontmatter(out)
        assert fm.fields["title"] == "Overview"
        assert fm.fields["description"] == 'A "quoted" tool'
        assert fm.fields["package"] == "flow"
        assert fm.fields["version"] == "v1.0.0"
        assert fm.fields["order"] == 3
        assert "status" not in fm.fields
        assert fm.body.startswith("\n# Overview")
        assert "/docs/flow/images/a.png" in out

    def test_adds_frontmatter_when_absent(self, transformer):
        out = transformer.transform_standard_doc("# Body\n", TransformOptions(package_name="flow", title="T"))
        assert out.startswith('---\ntitle: "T"\n')
        assert out.endswith("---\n\n# Body\n")


class TestWebsiteSection:
    """Test sub-collection transform."""

    def test_adds_block_when_absent(self, transformer):
        out = transformer.transform_website_section("# Intro\n", TransformOptions(section_name="overview"))
        fm = parse_frontmatter(out)
        assert fm.fields == {"category": "Overview", "package": "Documentation"}

    def test_keeps_existing_fields(self, transformer):
        content = "---\ntitle: Intro\ncategory: Custom\n---\n# Intro\n"
        out = transformer.transform_website_section(content, TransformOptions(section_name="overview"))
        fm = parse_frontmatter(out)
        assert fm.fields["category"] == "Custom"
        assert fm.fields["package"] == "Documentation"
        assert fm.fields["title"] == "Intro"
        assert fm.body == "# Intro\n"

    def test_unchanged_when_complete(self, transformer):
        content = "---\ncategory: A\npackage: B\n---\n# Intro\n"
        assert transformer.transform_website_section(content, TransformOptions(section_name="x")) == content

    def test_rewrites_to_collection_path(self, transformer):
        out = transformer.transform_website_section("![a](./images/a.png)", TransformOptions(section_name="overview"))
        assert "/docs/overview/images/a.png" in out


class TestConceptDoc:
    def test_replaces_frontmatter(self, transformer):
        out = transformer.transform_concept_doc(
            "---\nid: x\n---\n# Body\n",
            title="CLI Output",
            package_name="flow",
            category="Tools",
            order=2001,
            concept_title="Output",
            concept_id="cli-output",
        )
        fm = parse_frontmatter(out)
        assert fm.fields["order"] == 2001
        assert fm.fields["concept_id"] == "cli-output"
        assert "id" not in fm.fields
        assert out.endswith("# Body\n")


# ─── Helpers ─────────────────────────────────────────────────────────────


class TestStripLines:
    def test_zero_is_noop(self):
        assert strip_lines("a\nb", 0) == ("a\nb", False)

    def test_strips_leading_lines(self):
        assert strip_lines("a\nb\nc\n", 2) == ("c\n", False)

    def test_too_short_is_empty(self):
        assert strip_lines("a\nb", 2) == ("", True)


class TestConceptTitle:
    @pytest.mark.parametrize(
        "name,expected",
        [("cli-output-destinations", "CLI Output Destinations"), ("api_usage", "API Usage"), ("overview", "Overview")],
    )
    def test_format(self, name, expected):
        assert format_concept_title(name) == expected


class TestGetTransformer:
    def test_none(self):
        assert get_transformer(OutputTransform.NONE) is None

    def test_astro_from_string(self):
        assert isinstance(get_transformer("astro"), AstroTransformer)

    def test_unknown_raises(self):
        with pytest.raises(ValueError):
            get_transformer("hugo")
