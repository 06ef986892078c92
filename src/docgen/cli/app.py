"""
Root Typer application for the docgen CLI.

Commands:
    docgen aggregate   full rebuild into an output directory
    docgen watch       live incremental rebuild into a website tree
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from docgen.cli.utils import console, fail, make_components, print_summary, setup_logging
from docgen.core.errors import DocgenError, SetupError
from docgen.core.settings import get_settings
from docgen.core.status import BuildMode
from docgen.core.transform import OutputTransform

app = Typer(
    name="docgen",
    help="docgen: aggregate package documentation and keep a website tree in sync.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("docgen-aggregator")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"docgen {v}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level (default: DOCGEN_LOG_LEVEL or INFO)."),
    json_logs: bool | None = typer.Option(None, "--json-logs/--console-logs", help="Force JSON or console logs."),
) -> None:
    """docgen CLI: aggregate and watch package documentation."""
    settings = get_settings()
    ctx.obj = {
        "log_level": (log_level or settings.log_level).upper(),
        "json_logs": json_logs if json_logs is not None else settings.json_logs,
    }
    setup_logging(ctx)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("aggregate")
def aggregate(
    output_dir: Path = typer.Option(Path("dist"), "--output-dir", "-o", help="Directory for aggregated docs."),
    mode: str = typer.Option("prod", "--mode", "-m", help="Build mode: dev or prod."),
    transform: OutputTransform = typer.Option(
        OutputTransform.NONE, "--transform", "-t", help="Output transform (astro rewrites paths and frontmatter)."
    ),
) -> None:
    """Aggregate documentation from every enabled package into OUTPUT_DIR."""
    from docgen.aggregation.aggregator import Aggregator

    settings = get_settings()
    locator, discovery = make_components(settings)
    try:
        build_mode = BuildMode.parse(mode)
        result = Aggregator(locator, discovery).aggregate(output_dir, mode=build_mode, transform=transform)
    except DocgenError as e:
        raise fail(e) from e
    print_summary(result)


@app.command("watch")
def watch(
    ctx: typer.Context,
    website_dir: Path = typer.Option(Path("."), "--website-dir", help="Path to the website root."),
    mode: str | None = typer.Option(None, "--mode", "-m", help="Build mode: dev or prod (default: DOCGEN_MODE or dev)."),
    debounce: int | None = typer.Option(None, "--debounce", min=1, help="Debounce interval in milliseconds."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
) -> None:
    """Watch documentation sources and rebuild changed packages into WEBSITE_DIR."""
    from docgen.watch.engine import WatchEngine

    settings = get_settings()
    if quiet:
        setup_logging(ctx, quiet=True)

    locator, discovery = make_components(settings)
    try:
        engine = WatchEngine(
            website_dir,
            BuildMode.parse(mode or settings.mode),
            locator,
            discovery,
            debounce_ms=debounce or settings.debounce_ms,
        )
        engine.setup()
    except SetupError as e:
        raise fail(e) from e

    if not quiet:
        console.print(
            f"Watching [bold]{len(engine.units)}[/bold] package(s) "
            f"in [cyan]{engine.mode.value}[/cyan] mode. Press Ctrl-C to stop."
        )
    engine.run()
