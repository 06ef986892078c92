"""
Content generators: sections whose file is produced rather than authored.

The aggregator never needs to know how a generated page came to be. A
generator is handed the package's content root, the section config and a
destination path; it either leaves a file at that path or raises
``GenerationError``.

Only deterministic generators run during aggregation. The bundled one is
``CaptureGenerator``, which crawls a CLI's ``--help`` output::

    sections:
      - name: cli
        title: CLI Reference
        type: capture
        binary: grove
        format: plain          # or "styled" (default)
        depth: 3               # default 5
        subcommand_order: [init, build]

Tags:
    docgen, generator, capture, cli-reference
"""

from __future__ import annotations

import html
import os
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

from docgen.core.config import SectionConfig
from docgen.core.errors import GenerationError
from docgen.core.logging import get_logger
from docgen.workspace.locator import ContentRoot

DEFAULT_CAPTURE_DEPTH = 5
FORMAT_STYLED = "styled"
FORMAT_PLAIN = "plain"

_ANSI_RE = re.compile(
    r"[\u001B\u009B][\[\]()#;?]*(?:(?:(?:[a-zA-Z\d]*(?:;[a-zA-Z\d]*)*)?\u0007)"
    r"|(?:(?:\d{1,4}(?:;\d{0,4})*)?[\dA-PRZcf-ntqry=><~]))"
)
_SGR_RE = re.compile(r"\x1b\[([0-9;]*)m")
_SKIPPED_SUBCOMMANDS = {"help", "completion"}


@runtime_checkable
class ContentGenerator(Protocol):
    """Deposits a section's file at ``dest`` or raises ``GenerationError``."""

    def generate(self, root: ContentRoot, section: SectionConfig, dest: Path) -> None: ...


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def _sgr_classes(params: str) -> list[str]:
    classes: list[str] = []
    for code in params.split(";"):
        if code in ("", "0"):
            return []
        n = int(code)
        if 1 <= n <= 4:
            classes.append(("term-bold", "term-dim", "term-italic", "term-underline")[n - 1])
        elif 30 <= n <= 37:
            classes.append(f"term-fg-{n - 30}")
        elif 90 <= n <= 97:
            classes.append(f"term-fg-{n - 90 + 8}")
        elif 40 <= n <= 47:
            classes.append(f"term-bg-{n - 40}")
        elif 100 <= n <= 107:
            classes.append(f"term-bg-{n - 100 + 8}")
    return classes


def ansi_to_html(text: str) -> str:
    """Convert SGR escape codes to ``<span class="term-...">`` markup."""
    out: list[str] = []
    open_span = False
    last = 0
    for match in _SGR_RE.finditer(text):
        out.append(html.escape(text[last:match.start()], quote=False))
        if open_span:
            out.append("</span>")
            open_span = False
        classes = _sgr_classes(match.group(1))
        if classes:
            out.append(f'<span class="{" ".join(classes)}">')
            open_span = True
        last = match.end()
    out.append(html.escape(text[last:], quote=False))
    if open_span:
        out.append("</span>")
    return "".join(out)


def parse_subcommands(help_text: str) -> list[str]:
    """Subcommand names listed under a ``COMMANDS`` / ``Available Commands:`` heading."""
    names: list[str] = []
    in_commands = False
    for line in help_text.splitlines():
        trimmed = line.strip()
        upper = trimmed.upper()
        if upper == "COMMANDS" or upper.startswith("AVAILABLE COMMANDS"):
            in_commands = True
            continue
        if not in_commands:
            continue
        if "FLAGS" in upper:
            break
        if len(trimmed) > 2 and trimmed.upper() == trimmed and " " not in trimmed:
            break
        if not trimmed or trimmed.startswith('Use "'):
            continue
        name = trimmed.split()[0]
        if len(name) > 1 and not any(c in name for c in ":-."):
            names.append(name)
    return names


@dataclass
class CommandNode:
    name: str
    full_name: str
    help_output: str = ""
    raw_output: str = ""
    children: list[CommandNode] = field(default_factory=list)


def _run_help(argv: list[str], force_color: bool) -> str:
    env = dict(os.environ, COLUMNS="80")
    if force_color:
        env.update(CLICOLOR_FORCE="1", FORCE_COLOR="1")
    result = subprocess.run(
        [*argv, "--help"],
        capture_output=True,
        text=True,
        env=env,
        timeout=30,
        check=False,
    )
    # Some tools exit non-zero on --help; the output is still usable.
    return result.stdout + result.stderr


class CaptureGenerator:
    """Renders a CLI reference page from recursive ``--help`` output."""

    def __init__(
        self,
        logger: Any = None,
        runner: Callable[[list[str], bool], str] | None = None,
    ):
        self.logger = logger or get_logger(__name__)
        self.runner = runner or _run_help

    def generate(self, root: ContentRoot, section: SectionConfig, dest: Path) -> None:
        if not section.binary:
            raise GenerationError(
                f"capture section '{section.name}' has no 'binary'"
            ).with_context(package=root.package_name, section=section.name)

        styled = section.format != FORMAT_PLAIN
        depth = section.depth if section.depth > 0 else DEFAULT_CAPTURE_DEPTH

        self.logger.info(
            "capture.crawling", package=root.package_name, section=section.name, binary=section.binary
        )
        try:
            tree = self.crawl(section.binary, depth, force_color=styled)
        except (OSError, subprocess.SubprocessError) as e:
            raise GenerationError(f"failed to run {section.binary}: {e}", cause=e).with_context(
                package=root.package_name, section=section.name
            )

        if section.subcommand_order:
            self.sort_children(tree, section.subcommand_order)

        content = self.render_styled(tree) if styled else self.render_plain(tree)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(content, encoding="utf-8")
        except OSError as e:
            raise GenerationError(f"failed to write {dest}: {e}", cause=e).with_context(
                package=root.package_name, section=section.name, path=str(dest)
            )

    # ── Crawl ─────────────────────────────────────────────────

    def crawl(self, binary: str, max_depth: int, *, force_color: bool = False) -> CommandNode:
        root = CommandNode(name=binary, full_name=binary)
        self._crawl(root, 0, max_depth, force_color)
        return root

    def _crawl(self, node: CommandNode, depth: int, max_depth: int, force_color: bool) -> None:
        if depth >= max_depth:
            return
        node.raw_output = self.runner(node.full_name.split(), force_color)
        node.help_output = strip_ansi(node.raw_output)

        for name in parse_subcommands(node.help_output):
            if name in _SKIPPED_SUBCOMMANDS:
                continue
            child = CommandNode(name=name, full_name=f"{node.full_name} {name}")
            self.logger.debug("capture.subcommand", command=child.full_name)
            node.children.append(child)
            self._crawl(child, depth + 1, max_depth, force_color)

    def sort_children(self, node: CommandNode, priority: list[str]) -> None:
        """Listed subcommands first in the given order, the rest alphabetical."""
        rank = {name: i for i, name in enumerate(priority)}
        node.children.sort(key=lambda c: (0, rank[c.name], "") if c.name in rank else (1, 0, c.name))
        for child in node.children:
            self.sort_children(child, priority)

    # ── Render ────────────────────────────────────────────────

    def render_plain(self, root: CommandNode) -> str:
        parts = ["# Command Reference\n\n", f"Reference documentation for `{root.name}` CLI.\n\n"]
        self._render(root, 2, parts, styled=False)
        return "".join(parts)

    def render_styled(self, root: CommandNode) -> str:
        parts = ["# CLI Reference\n\n", f"Complete command reference for `{root.name}`.\n\n"]
        self._render(root, 2, parts, styled=True)
        return "".join(parts)

    def _render(self, node: CommandNode, level: int, parts: list[str], *, styled: bool) -> None:
        parts.append(f"{'#' * level} {node.full_name}\n\n")
        if styled:
            parts.append(f'<div class="terminal">\n{ansi_to_html(node.raw_output.strip())}\n</div>\n\n')
        else:
            parts.append(f"```text\n{node.help_output.strip()}\n```\n\n")
        for child in node.children:
            self._render(child, min(level + 1, 4), parts, styled=styled)


def default_generators(logger: Any = None) -> dict[str, ContentGenerator]:
    """Generators keyed by section ``type``."""
    return {"capture": CaptureGenerator(logger=logger)}


__all__ = [
    "ContentGenerator",
    "CaptureGenerator",
    "CommandNode",
    "default_generators",
    "ansi_to_html",
    "parse_subcommands",
    "strip_ansi",
]
