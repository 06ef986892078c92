"""
CLI utility helpers: consoles, error output, and component wiring.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from docgen.aggregation.aggregator import AggregationResult
from docgen.core.errors import DocgenError
from docgen.core.logging import configure_logging
from docgen.core.settings import DocgenSettings
from docgen.workspace.discovery import DiscoveryService
from docgen.workspace.locator import SourceLocator

console = Console()
err_console = Console(stderr=True)


# ── Logging ──────────────────────────────────────────────────────────────


def setup_logging(ctx: typer.Context, *, quiet: bool = False) -> None:
    """(Re)configure logging from the root options stored on ``ctx.obj``."""
    opts = ctx.obj or {}
    level = "WARNING" if quiet else opts.get("log_level", "INFO")
    configure_logging(level=level, json_format=opts.get("json_logs"))


# ── Component wiring ─────────────────────────────────────────────────────


def make_components(settings: DocgenSettings) -> tuple[SourceLocator, DiscoveryService]:
    """Locator and discovery service configured from process settings."""
    return (
        SourceLocator(settings.notebook_root),
        DiscoveryService(settings.ecosystem_paths),
    )


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: DocgenError) -> typer.Exit:
    """Print a setup failure and return the exit to raise."""
    err_console.print(f"[bold red]Error[/bold red] ({error.__class__.__name__}): {error.message}")
    return typer.Exit(code=1)


def print_summary(result: AggregationResult) -> None:
    """Render an aggregation result as a Rich table."""
    manifest = result.manifest
    if not manifest.packages and not manifest.website_sections:
        err_console.print(
            "[bold yellow]Warning:[/bold yellow] no packages were aggregated. "
            "Check settings.ecosystems and DOCGEN_ECOSYSTEM_PATHS."
        )

    table = Table(title="Aggregated documentation", show_lines=False, pad_edge=False)
    table.add_column("Unit")
    table.add_column("Kind")
    table.add_column("Sections", justify="right")
    table.add_column("Version")
    for package in manifest.packages:
        table.add_row(package.name, "package", str(len(package.sections)), package.version)
    for section in manifest.website_sections:
        table.add_row(section.name, "collection", str(len(section.files)), "")
    console.print(table)

    if result.skipped:
        console.print(f"[dim]Skipped: {', '.join(result.skipped)}[/dim]")
    console.print(f"Manifest: [cyan]{Path(result.manifest_path)}[/cyan]")
