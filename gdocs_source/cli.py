#!/usr/bin/env python3
"""
gdocs-source CLI - Command-Line Interface

Commands:
    import    Fetch Google Docs, convert them to Markdown, report results.
    auth      Run the OAuth consent flow and persist the token.

Global options (accepted before every command):
    --config PATH       Load a custom .env file.
    --log-level LEVEL   Override GDOCS_LOG_LEVEL for this invocation.

Exit codes:
    0   All documents imported (or action succeeded).
    1   At least one document failed.
    2   Fatal error (configuration, authentication, listing).

Usage::

    python -m gdocs_source --help
    python -m gdocs_source import
    python -m gdocs_source import --out content/posts --no-images
    python -m gdocs_source import --json
    python -m gdocs_source --config ./site.env auth

Version: 0.1.0
"""

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from . import __version__
from .config import SourceOptions, get_settings
from .google.auth import GoogleAuth
from .google.drive import slugify
from .graph import InMemoryContentGraph
from .logger import configure_logging, get_logger
from .markdown import MarkdownDocument
from .models import BatchImportResult
from .source import GoogleDocsSource

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _exit_code(result: BatchImportResult) -> int:
    """0 when every document was imported; 1 otherwise."""
    return 0 if result.failed == 0 else 1


def _load_env_file(path: str) -> None:
    """Load *path* into ``os.environ`` without overriding explicit vars.

    Raises:
        click.ClickException: If the file does not exist.
    """
    if not Path(path).is_file():
        raise click.ClickException(f"Cannot read config file {path!r}")
    load_dotenv(path, override=False)


def _write_documents(graph: InMemoryContentGraph, type_name: str, out_dir: Path) -> int:
    """Write each node of *type_name* as ``<out_dir>/<slug>.md``.

    Titles that slugify to a name already written this run get the node
    id appended (``<slug>-<id>.md``).

    Returns:
        Number of files written.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    written = 0
    used = set()
    for node in graph.get_collection(type_name).all_nodes():
        node_slug = slugify(str(node['id'])) or str(node['id'])
        slug = slugify(str(node.get('title') or '')) or node_slug
        if slug in used:
            slug = f"{slug}-{node_slug}"
        used.add(slug)
        document = MarkdownDocument.from_node(node)
        (out_dir / f"{slug}.md").write_text(document.render(), encoding="utf-8")
        written += 1
    return written


def make_results_table(result: BatchImportResult) -> Table:
    """Build a Rich Table with one row per document."""
    table = Table(
        show_header=True,
        header_style="bold dim",
        box=box.SIMPLE,
        padding=(0, 1),
    )

    table.add_column("Document", style="bold", min_width=12)
    table.add_column("Title")
    table.add_column("Status", min_width=8)
    table.add_column("Images", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Details", style="dim")

    for item in result.results:
        status = (
            Text("✓ OK", style="bold green") if item.success
            else Text("✗ FAILED", style="bold red")
        )
        table.add_row(
            item.document_id,
            item.title or "",
            status,
            str(len(item.images)),
            f"{item.processing_time_ms:.0f}ms",
            item.error or "",
        )

    return table


def print_import_results(result: BatchImportResult, console: Console) -> None:
    """Print the per-document table and a one-line footer."""
    style = "bold green" if result.failed == 0 else "bold yellow"

    console.print()
    console.print("  [bold blue]GOOGLE DOCS IMPORT[/bold blue]")
    console.print()
    console.print(make_results_table(result))
    console.print(Text.from_markup(
        f"  [{style}]{result.imported}/{result.total}[/{style}] imported"
        f"  ·  [bold]{result.failed}[/bold] failed"
        f"  ·  [bold]{result.refs_created}[/bold] reference nodes"
        f"  ·  [bold]{result.images}[/bold] images"
    ))
    console.print()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__, prog_name="gdocs-source")
@click.option(
    "--config",
    "config_path",
    default=None,
    metavar="PATH",
    help="Path to a custom .env file.",
)
@click.option(
    "--log-level",
    "log_level",
    default=None,
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    metavar="LEVEL",
    help="Override GDOCS_LOG_LEVEL for this invocation.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """Import Google Docs from Drive folders as Markdown.

    Configuration is read from GDOCS_* environment variables or a .env
    file. Global options (--config, --log-level) must come BEFORE the
    subcommand.

    \b
    Examples:
        gdocs-source import --out content/posts
        gdocs-source --log-level DEBUG import --json
        gdocs-source --config ./site.env auth
    """
    ctx.ensure_object(dict)

    if config_path:
        _load_env_file(config_path)
        get_settings.cache_clear()

    if log_level:
        os.environ["GDOCS_LOG_LEVEL"] = log_level.upper()
        get_settings.cache_clear()


# ---------------------------------------------------------------------------
# import command
# ---------------------------------------------------------------------------

@cli.command("import")
@click.option(
    "--out",
    "out_dir",
    default=None,
    type=click.Path(file_okay=False),
    metavar="DIR",
    help="Write each imported document as DIR/<slug>.md.",
)
@click.option(
    "--no-images",
    is_flag=True,
    default=False,
    help="Keep remote image URLs instead of downloading them.",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    default=False,
    help="Output raw JSON instead of the Rich table.",
)
def import_cmd(out_dir: Optional[str], no_images: bool, output_json: bool) -> None:
    """Import every Google Doc in the configured Drive folders.

    \b
    Examples:
        gdocs-source import
        gdocs-source import --out content/posts --no-images
        gdocs-source import --json
    """
    console = Console(highlight=False)

    try:
        settings = get_settings()
        overrides = {'download_images': False} if no_images else {}
        options = SourceOptions.from_settings(settings, **overrides)
        options.validate()
    except Exception as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(2)

    configure_logging(settings)
    log = get_logger(__name__)

    graph = InMemoryContentGraph()
    source = GoogleDocsSource(options)

    try:
        result = asyncio.run(source.load(graph))
    except Exception as exc:
        console.print(f"[bold red]Import failed:[/bold red] {exc}")
        sys.exit(2)

    log.info(
        "import_complete",
        imported=result.imported,
        failed=result.failed,
        refs_created=result.refs_created,
    )

    if out_dir:
        written = _write_documents(graph, options.type_name, Path(out_dir))
        log.info("documents_written", count=written, out_dir=out_dir)

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(_exit_code(result))

    print_import_results(result, console)
    if out_dir:
        console.print(f"  [dim]Markdown written to[/dim] {out_dir}")
        console.print()

    sys.exit(_exit_code(result))


# ---------------------------------------------------------------------------
# auth command
# ---------------------------------------------------------------------------

@cli.command("auth")
def auth_cmd() -> None:
    """Run the OAuth consent flow and save the token.

    The token is written to GDOCS_TOKEN_PATH and reused by later
    imports until it can no longer be refreshed.
    """
    console = Console(highlight=False)

    try:
        settings = get_settings()
        options = SourceOptions.from_settings(settings)
        if not options.client_id or not options.client_secret:
            raise click.UsageError("GDOCS_CLIENT_ID and GDOCS_CLIENT_SECRET are required")
    except Exception as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(2)

    configure_logging(settings)

    auth = GoogleAuth(
        client_id=options.client_id,
        client_secret=options.client_secret,
        token_path=options.token_path,
        scopes=options.scopes,
        redirect_uris=options.redirect_uris,
        access_type=options.access_type,
    )

    try:
        asyncio.run(auth.authenticate())
    except Exception as exc:
        console.print(f"[bold red]Authentication failed:[/bold red] {exc}")
        sys.exit(2)

    console.print(f"  [bold green]✓[/bold green] Token saved to {auth.token_path}")


if __name__ == "__main__":
    cli()
