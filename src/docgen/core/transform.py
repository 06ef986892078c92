"""
Content transforms applied while copying markdown into an output tree.

Manifesto:
    Authors write relative links (``./images/diagram.png``) because that is
    what renders correctly in the authoring area. The site generator serves
    every unit from ``/docs/<unit>/``, so the same links must be absolute by
    the time they reach the output tree. Batch and watch paths both go
    through this module so a page looks the same however it was built.

Architecture:
    ::

        TransformOptions ──► AstroTransformer
                                 │
                                 ├── transform_standard_doc()   package docs
                                 │      rewrite paths + replace frontmatter
                                 │
                                 ├── transform_website_section() sub-collections
                                 │      rewrite paths + augment frontmatter
                                 │
                                 └── transform_concept_doc()     concept pages
                                        strip frontmatter + concept frontmatter

Features:
    - Markdown image, HTML ``<img>``, asciinema ``"src"`` and video rewrites
    - Frontmatter replacement for package docs
    - Frontmatter augmentation (``category``/``package`` only when missing)
    - Leading-line strip (``agg_strip_lines``)
    - Acronym-aware concept titles (``cli-output`` -> ``CLI Output``)

Tags:
    docgen, markdown, astro, transform, frontmatter
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .frontmatter import parse_frontmatter, strip_frontmatter

CHANGELOG_ORDER = 999
CONCEPT_ORDER_BASE = 2000

_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(\./images/([^)]+)\)")
_HTML_IMG_RE = re.compile(r'<img\s+([^>]*\s)?src="\./images/([^"]+)"([^>]*)>')
_ASCIICAST_RE = re.compile(r'("src":\s*")(\./asciicasts/)([^"]+)(")')
_VIDEO_RE = re.compile(r"!\[([^\]]*)\]\(\./videos/([^)]+)\)")

_ACRONYMS = {
    "cli": "CLI",
    "tui": "TUI",
    "api": "API",
    "ui": "UI",
    "id": "ID",
    "llm": "LLM",
}

_SECTION_CATEGORIES = {
    "overview": "Overview",
    "concepts": "Concepts",
}


class OutputTransform(str, Enum):
    """Output-format transforms selectable on the command line."""

    NONE = "none"
    ASTRO = "astro"


@dataclass
class TransformOptions:
    """Metadata injected into transformed pages."""

    # package documentation
    package_name: str = ""
    title: str = ""
    description: str = ""
    version: str = ""
    category: str = ""
    order: int = 0

    # website sub-collections
    section_name: str = ""
    package_label: str = "Documentation"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def strip_lines(content: str, count: int) -> tuple[str, bool]:
    """Drop the first ``count`` lines of ``content``.

    Returns the remaining text and whether the file was too short, in which
    case the result is empty.
    """
    if count <= 0:
        return content, False
    lines = content.split("\n")
    if len(lines) > count:
        return "\n".join(lines[count:]), False
    return "", True


def format_concept_title(name: str) -> str:
    """``cli-output-destinations`` -> ``CLI Output Destinations``."""
    parts = [p for p in re.split(r"[-_]", name) if p]
    return " ".join(_ACRONYMS.get(p.lower(), p.lower().capitalize()) for p in parts)


class AstroTransformer:
    """Rewrites relative asset paths and manages frontmatter for Astro."""

    def rewrite_paths(self, content: str, base_url: str) -> str:
        """Rewrite relative asset references to absolute ``base_url`` paths."""
        content = _IMAGE_RE.sub(lambda m: f"![{m.group(1)}]({base_url}/images/{m.group(2)})", content)
        content = _HTML_IMG_RE.sub(
            lambda m: f'<img {m.group(1) or ""}src="{base_url}/images/{m.group(2)}"{m.group(3)}>',
            content,
        )
        content = _ASCIICAST_RE.sub(
            lambda m: f"{m.group(1)}{base_url}/asciicasts/{m.group(3)}{m.group(4)}", content
        )
        content = _VIDEO_RE.sub(lambda m: f"![{m.group(1)}]({base_url}/videos/{m.group(2)})", content)
        return content

    def transform_standard_doc(self, content: str, opts: TransformOptions) -> str:
        """Package docs: absolute asset paths and a freshly generated frontmatter."""
        content = self.rewrite_paths(content, f"/docs/{opts.package_name}")
        return self.ensure_frontmatter(content, opts)

    def transform_website_section(self, content: str, opts: TransformOptions) -> str:
        """Sub-collection files: absolute asset paths, author frontmatter kept."""
        content = self.rewrite_paths(content, f"/docs/{opts.section_name}")
        return self.augment_frontmatter(content, opts)

    def transform_concept_doc(
        self,
        content: str,
        *,
        title: str,
        package_name: str,
        category: str,
        order: int,
        concept_title: str,
        concept_id: str,
    ) -> str:
        body = strip_frontmatter(content)
        return (
            "---\n"
            f'title: "{_escape(title)}"\n'
            f'package: "{_escape(package_name)}"\n'
            f'category: "{_escape(category)}"\n'
            f"order: {order}\n"
            f'concept_title: "{_escape(concept_title)}"\n'
            f'concept_id: "{_escape(concept_id)}"\n'
            "---\n\n"
            f"{body}"
        )

    def ensure_frontmatter(self, content: str, opts: TransformOptions) -> str:
        """Replace any existing frontmatter with one built from ``opts``."""
        frontmatter = (
            "---\n"
            f'title: "{_escape(opts.title)}"\n'
            f'description: "{_escape(opts.description)}"\n'
            f'package: "{_escape(opts.package_name)}"\n'
            f'version: "{_escape(opts.version)}"\n'
            f'category: "{_escape(opts.category)}"\n'
            f"order: {opts.order}\n"
            "---\n\n"
        )
        parsed = parse_frontmatter(content)
        if parsed.present:
            content = parsed.body.lstrip("\n")
        return frontmatter + content

    def augment_frontmatter(self, content: str, opts: TransformOptions) -> str:
        """Add ``category`` and ``package`` to the frontmatter when missing."""
        category = opts.category or _SECTION_CATEGORIES.get(opts.section_name, opts.section_name)

        parsed = parse_frontmatter(content)
        if not parsed.present:
            return (
                f'---\ncategory: "{_escape(category)}"\n'
                f'package: "{_escape(opts.package_label)}"\n---\n\n{content}'
            )

        new_fields = []
        if "category" not in parsed.fields:
            new_fields.append(f'category: "{_escape(category)}"')
        if "package" not in parsed.fields:
            new_fields.append(f'package: "{_escape(opts.package_label)}"')
        if not new_fields:
            return content

        return "---\n" + parsed.raw + "\n" + "\n".join(new_fields) + "\n---\n" + parsed.body


def get_transformer(transform: OutputTransform | str) -> AstroTransformer | None:
    """Transformer for ``transform``, or None when output is copied verbatim."""
    transform = OutputTransform(transform)
    if transform is OutputTransform.ASTRO:
        return AstroTransformer()
    return None


__all__ = [
    "CHANGELOG_ORDER",
    "CONCEPT_ORDER_BASE",
    "OutputTransform",
    "TransformOptions",
    "AstroTransformer",
    "strip_lines",
    "format_concept_title",
    "get_transformer",
]
