"""
UI components module for the tagscope CLI.

Renders driver listings, inspection lines and run summaries with Rich.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tagscope.core.classifier import Classification
from tagscope.core.file_scanner import FileEntry
from tagscope.core.sniffers import ContentSniffer
from tagscope.services.drivers import DriverRegistry
from tagscope.services.indexing_models import RunResult

# Failure diagnostics shown per driver
MAX_DIAGNOSTIC_LINES = 10


def inspect_reason(classification: Classification) -> str:
    """Short tag telling how a file was classified."""
    if classification.method == "extension":
        return "Include [.ext]"
    if classification.method == "mime":
        return "Include [mime]"
    return "Exclude [----]"


def format_inspect_line(entry: FileEntry, classification: Classification) -> str:
    """
    One inspection line: reason, MIME type (blank for extension hits), path.

    Example:
        Include [mime]: text/x-shellscript            bin/deploy
    """
    mime = classification.mime_type or ""
    return f"{inspect_reason(classification)}: {mime:29} {entry.path}"


def render_inspection(
    console: Console,
    sniffer_name: str,
    explained: list[tuple[FileEntry, Classification]],
) -> None:
    """Print the sniffer in use and one line per candidate file."""
    console.print(f"Sniffer: {sniffer_name}", highlight=False)
    for entry, classification in explained:
        console.print(
            Text(format_inspect_line(entry, classification)),
            highlight=False,
            soft_wrap=True,
        )


def render_driver_list(
    console: Console,
    registry: DriverRegistry,
    installed: dict[str, str],
    sniffers: list[ContentSniffer],
    active_sniffer: str | None,
) -> None:
    """
    List drivers and content sniffers in priority order.

    Installed drivers are marked ``(*)``, missing ones ``(!)``. The sniffer
    that would be used is marked ``(*)``, unusable ones ``(!)``.
    """
    console.print("[bold]Drivers:[/bold]")
    for i, driver in enumerate(registry.drivers):
        if driver.name in installed:
            line = f"[{i}] {driver.name} (*) {installed[driver.name]}"
        else:
            line = f"[{i}] {driver.name} (!)"
        console.print(Text(line), highlight=False, soft_wrap=True)

    console.print("[bold]Sniffers:[/bold]")
    for i, sniffer in enumerate(sniffers):
        line = f"[{i}] {sniffer.name}"
        if not sniffer.usable():
            line += " (!)"
        elif sniffer.name == active_sniffer:
            line += " (*)"
        console.print(Text(line), highlight=False, soft_wrap=True)


def render_run_summary(console: Console, result: RunResult) -> None:
    """
    Render the summary panel, the per-driver table and any failures.

    Args:
        console: Rich Console instance for output.
        result: Outcome of the run.
    """
    summary = Table.grid(padding=1)
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Total Files:", str(result.total_files))
    summary.add_row("Drivers Run:", str(len(result.results)))
    summary.add_row("Duration:", f"{result.duration_seconds:.2f}s")
    if result.missing:
        summary.add_row("Not Installed:", f"[yellow]{', '.join(result.missing)}[/yellow]")
    if result.failures:
        summary.add_row("Failed Drivers:", f"[red]{len(result.failures)}[/red]")

    if result.ok:
        title, style = "[bold green]Indexing Complete[/bold green]", "green"
    else:
        title, style = "[bold red]Indexing Failed[/bold red]", "red"

    console.print(Panel(summary, title=title, border_style=style, expand=False))

    if result.results:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Driver", style="bold")
        table.add_column("Status")
        table.add_column("Artifacts")
        table.add_column("Time", justify="right")
        for driver_result in result.results:
            status = "[green]ok[/green]" if driver_result.ok else "[red]failed[/red]"
            table.add_row(
                driver_result.driver,
                status,
                ", ".join(driver_result.artifacts),
                f"{driver_result.duration_seconds:.2f}s",
            )
        console.print(table)

    for failure in result.failures:
        console.print(f"\n[bold red]{failure}[/bold red]", highlight=False)
        lines = failure.diagnostics.splitlines()
        for line in lines[-MAX_DIAGNOSTIC_LINES:]:
            console.print(Text(f"  {line}"), highlight=False)
        if len(lines) > MAX_DIAGNOSTIC_LINES:
            console.print(f"  ... {len(lines) - MAX_DIAGNOSTIC_LINES} earlier lines omitted")
