"""
CLI for tagscope.

Builds ctags/cscope/gtags databases for a source tree, finding source
files by extension and, for extensionless files, by content.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from tagscope import __version__
from tagscope.cli.ui import render_driver_list, render_inspection, render_run_summary
from tagscope.core.config import TagscopeConfig, load_config
from tagscope.core.errors import ConfigurationError, TagscopeError
from tagscope.core.sniffers import available_sniffers, select_sniffer
from tagscope.services import EXIT_CONFIGURATION_ERROR, IndexingService

# Initialize Rich Consoles
console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="tagscope",
    help="Build tag and cross-reference databases for a source tree.",
    add_completion=False,
)


def get_service(
    config: TagscopeConfig, progress_callback: Optional[Callable[[int, int], None]] = None
) -> IndexingService:
    """Create the indexing service for a run."""
    return IndexingService(config=config, progress_callback=progress_callback)


def configure_logging(level: str, fmt: str) -> None:
    """Send log records to stderr through Rich."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=fmt,
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _split_patterns(values: Optional[list[str]]) -> list[str]:
    """Flatten repeated, comma-separated --exclude values."""
    patterns: list[str] = []
    for value in values or []:
        patterns.extend(item.strip() for item in value.split(",") if item.strip())
    return patterns


def _fail(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}", highlight=False)
    raise typer.Exit(EXIT_CONFIGURATION_ERROR)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"tagscope {__version__}")
        raise typer.Exit()


@app.command()
def main(
    root: Path = typer.Argument(Path("."), help="Directory to index"),
    driver: Optional[str] = typer.Option(
        None, "--driver", "-d", help="Run only this driver (ctags, cscope, gtags)"
    ),
    exclude: Optional[list[str]] = typer.Option(
        None,
        "--exclude",
        "-x",
        help="Exclude a name, directory (trailing /) or glob. Repeatable, comma-separated.",
    ),
    jobs: Optional[int] = typer.Option(
        None, "--jobs", "-j", min=1, help="Number of classification workers"
    ),
    inspect: bool = typer.Option(
        False, "--inspect", "-i", help="Show how every file is classified; build nothing"
    ),
    list_drivers: bool = typer.Option(
        False, "--list-drivers", help="List backend drivers and content sniffers"
    ),
    sniffer: Optional[str] = typer.Option(
        None, "--sniffer", help="Content sniffer to use (magic, xdg-mime, file)"
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Database directory, relative to ROOT"
    ),
    require_all: bool = typer.Option(
        False, "--require-all", help="Fail if any driver fails"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (YAML or JSON)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print every indexed file and debug logs"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only report errors"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
):
    """Index ROOT (default: the current directory)."""
    try:
        cfg = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(f"Invalid configuration: {e}")

    # Command-line options win over file and environment settings
    if driver:
        cfg.drivers.pinned = driver
    if output_dir:
        cfg.drivers.output_dir = output_dir
    if require_all:
        cfg.drivers.require_all = True
    if sniffer:
        cfg.classify.sniffer = sniffer
    if jobs is not None:
        cfg.scan.jobs = jobs
    cfg.scan.exclude_patterns = cfg.scan.exclude_patterns + _split_patterns(exclude)
    if verbose:
        cfg.logging.level = "DEBUG"
    elif quiet:
        cfg.logging.level = "ERROR"

    configure_logging(cfg.logging.level, cfg.logging.format)

    if list_drivers:
        service = get_service(cfg)
        try:
            active = select_sniffer(cfg.classify.sniffer or None).name
        except ConfigurationError:
            active = None
        render_driver_list(
            console,
            service.driver_registry,
            service.installed_drivers(),
            available_sniffers(),
            active,
        )
        return

    try:
        if inspect:
            service = get_service(cfg)
            explained = service.inspect_directory(root)
            render_inspection(console, service.content_sniffer().name, explained)
            return

        if quiet:
            result = get_service(cfg).index_directory(root)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=err_console,
                transient=True,
            ) as progress:
                task = progress.add_task("Classifying...", total=None)

                def update_progress(done: int, total: int) -> None:
                    progress.update(task, completed=done, total=total)

                result = get_service(cfg, update_progress).index_directory(root)
    except TagscopeError as e:
        _fail(str(e))

    if verbose:
        for path in result.files:
            console.print(path, highlight=False, markup=False, soft_wrap=True)

    if not quiet or not result.ok:
        render_run_summary(console, result)

    raise typer.Exit(result.exit_code)
