"""
Command-line interface for docref.

Usage:
    docref check docs/source
    docref check docs/source --format markdown --output report.md
    docref symbols docs/source --kind term
    docref extract docs/source/reference/glossary.txt --json
    docref stats docs/source

Exit codes for ``check``:
    0  no issue at or above ``--fail-on``
    1  at least one issue at or above ``--fail-on``
    2  the run could not complete (bad config, missing root, unreadable file)
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typer import Typer

from docref import __version__
from docref.config import DocrefSettings, load_settings
from docref.errors import DocrefError, SourceError
from docref.graph.schema import SymbolKind
from docref.logging import configure_logging, get_logger
from docref.orchestrator import CorpusValidator
from docref.renderers import TextRenderer, get_renderer
from docref.report import Severity

logger = get_logger(__name__)

app = Typer(
    name="docref",
    help="docref: validate cross-references in a reStructuredText corpus.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


class ReportFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("docref")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"docref {v}")
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
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR). Logs go to stderr."
    ),
    log_json: bool | None = typer.Option(
        None, "--log-json/--log-console", help="Force JSON or console log format."
    ),
) -> None:
    """docref: content-addressed cross-reference validation for reStructuredText."""
    ctx.obj = {"log_level": log_level, "log_json": log_json}


# ── Helpers ──────────────────────────────────────────────────────────────


def _fail(error: DocrefError) -> NoReturn:
    logger.debug("command_failed", **error.to_dict())
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}")
    raise typer.Exit(code=2)


def _settings(ctx: typer.Context, root: Path, config: Path | None = None, **overrides) -> DocrefSettings:
    """Load settings and configure logging from them."""
    options = ctx.obj or {}
    settings = load_settings(
        root,
        config_path=config,
        log_level=options.get("log_level"),
        log_json=options.get("log_json"),
        **overrides,
    )
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    return settings


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def check(
    ctx: typer.Context,
    root: Path = typer.Argument(Path("."), help="Corpus root directory."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file (default: ROOT/docref.yaml)."),
    report_format: ReportFormat = typer.Option(ReportFormat.TEXT, "--format", "-f", help="Report format."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the report to a file."),
    fail_on: Severity | None = typer.Option(None, "--fail-on", help="Lowest severity that fails the run."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Rescan every document."),
) -> None:
    """Validate every reference, definition and code example in the corpus."""
    try:
        settings = _settings(
            ctx, root, config, fail_on=fail_on, use_cache=False if no_cache else None
        )
        report = CorpusValidator(settings).validate()
        renderer = get_renderer(report_format.value)(report, fail_on=settings.fail_on)

        if output is not None:
            try:
                output.write_text(renderer.render(), encoding="utf-8")
            except OSError as e:
                raise SourceError(f"Cannot write report: {output}", cause=e).with_context(path=str(output))
            TextRenderer(report, fail_on=settings.fail_on).print_summary(console)
            console.print(f"Report written to [bold]{escape(str(output))}[/bold]")
        elif isinstance(renderer, TextRenderer):
            renderer.print_to(console)
        else:
            typer.echo(renderer.render(), nl=False)
    except DocrefError as e:
        _fail(e)

    if not report.passed(settings.fail_on):
        raise typer.Exit(code=1)


@app.command()
def symbols(
    ctx: typer.Context,
    root: Path = typer.Argument(Path("."), help="Corpus root directory."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file."),
    kind: SymbolKind | None = typer.Option(None, "--kind", "-k", help="Only show one symbol kind."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List every declared symbol and where it is defined."""
    try:
        settings = _settings(ctx, root, config)
        table = CorpusValidator(settings).build_symbol_table()
    except DocrefError as e:
        _fail(e)

    exported = {
        key: decls
        for key, decls in table.to_dict().items()
        if kind is None or _kind_of(key, kind)
    }
    if as_json:
        typer.echo(json.dumps(exported, indent=2))
        return

    out = Table(title=f"Symbols ({len(exported)})")
    out.add_column("Symbol", style="bold")
    out.add_column("Defined at")
    for key, decls in exported.items():
        locations = ", ".join(
            f"{d['document']}:{d['line']}" if d.get("line") else d["document"] for d in decls
        )
        out.add_row(escape(key), escape(locations))
    console.print(out)


def _kind_of(key: str, kind: SymbolKind) -> bool:
    prefix = key.split(":", 1)[0]
    if kind is SymbolKind.OBJECT:
        return prefix not in {k.value for k in SymbolKind}
    return prefix == kind.value


@app.command()
def extract(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="A single reStructuredText file."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file (default: FILE_DIR/docref.yaml)."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show what the extractor finds in one file (no corpus, no cache)."""
    try:
        settings = _settings(ctx, file.parent, config)
        facts = CorpusValidator(settings).extract_file(file)
    except DocrefError as e:
        _fail(e)

    if as_json:
        typer.echo(json.dumps(facts.to_dict(), indent=2))
        return

    out = Table(title=str(file))
    out.add_column("Line", justify="right")
    out.add_column("What")
    out.add_column("Detail")
    rows = []
    for decl in facts.declarations:
        label = decl.objtype or decl.kind.value
        rows.append((decl.line, "declares", f"{label} {decl.name}"))
    for ref in facts.references:
        rows.append((ref.line, "references", f"{ref.role} {ref.target}"))
    for block in facts.code_blocks:
        rows.append((block.line, "code", block.language))
    for use in facts.unknown_roles:
        rows.append((use.line, "unknown role", use.role))
    for line, what, detail in sorted(rows, key=lambda r: r[0]):
        out.add_row(str(line), what, escape(detail))
    console.print(out)
    if facts.orphan:
        console.print("[dim]document is marked :orphan:[/dim]", emoji=False)


@app.command()
def stats(
    ctx: typer.Context,
    root: Path = typer.Argument(Path("."), help="Corpus root directory."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show corpus statistics."""
    try:
        settings = _settings(ctx, root, config)
        data = CorpusValidator(settings).get_stats()
    except DocrefError as e:
        _fail(e)

    if as_json:
        typer.echo(json.dumps(data, indent=2))
        return

    out = Table(title="Corpus statistics")
    out.add_column("Metric", style="bold")
    out.add_column("Value", justify="right")
    for key, value in data.items():
        if isinstance(value, dict):
            for sub, count in value.items():
                out.add_row(f"{key}.{sub}", str(count))
        else:
            out.add_row(key, str(value))
    console.print(out)
