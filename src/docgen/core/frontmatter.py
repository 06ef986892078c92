"""Leading ``---`` frontmatter blocks in markdown files.

Sections-mode content is authored directly as markdown, so its visibility
comes from the file itself::

    ---
    title: Getting started
    status: dev
    order: 2
    ---

    # Getting started

A file without a block (or without a ``status:`` key) is production.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .status import PublicationStatus, resolve_status

_FRONTMATTER_RE = re.compile(r"^---\n(.*?)\n---[ \t]*(?:\n|$)", re.DOTALL)
_STRIP_RE = re.compile(r"^---\n.*?\n---\n*", re.DOTALL)
_LEADING_NUMBER_RE = re.compile(r"^(\d+)-")


@dataclass
class Frontmatter:
    """Parsed frontmatter: the raw block, its fields, and the body after it."""

    raw: str | None
    fields: dict[str, Any] = field(default_factory=dict)
    body: str = ""

    @property
    def present(self) -> bool:
        return self.raw is not None

    @property
    def status(self) -> PublicationStatus:
        return resolve_status(self.fields.get("status"), default=PublicationStatus.PRODUCTION)

    @property
    def title(self) -> str:
        value = self.fields.get("title")
        return str(value) if value is not None else ""

    @property
    def order(self) -> int | None:
        """Declared ``order``; None when absent or not a number."""
        value = self.fields.get("order")
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


def _scan_lines(block: str) -> dict[str, Any]:
    """Line-by-line ``key: value`` scan for blocks that are not valid YAML."""
    fields: dict[str, Any] = {}
    for line in block.splitlines():
        key, sep, value = line.strip().partition(":")
        if sep and key:
            fields[key.strip()] = value.strip().strip("\"'")
    return fields


def parse_frontmatter(content: str) -> Frontmatter:
    """Split ``content`` into its frontmatter fields and body."""
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return Frontmatter(raw=None, body=content)

    block = match.group(1)
    try:
        loaded = yaml.safe_load(block)
    except yaml.YAMLError:
        loaded = None
    fields = loaded if isinstance(loaded, dict) else _scan_lines(block)
    return Frontmatter(raw=block, fields=fields, body=content[match.end():])


def strip_frontmatter(content: str) -> str:
    """Remove a leading frontmatter block and the blank lines after it."""
    return _STRIP_RE.sub("", content, count=1)


def order_from_filename(filename: str) -> int:
    """``01-intro.md`` -> 1; filenames without a numeric prefix -> 0."""
    match = _LEADING_NUMBER_RE.match(Path(filename).stem)
    return int(match.group(1)) if match else 0


__all__ = [
    "Frontmatter",
    "parse_frontmatter",
    "strip_frontmatter",
    "order_from_filename",
]
