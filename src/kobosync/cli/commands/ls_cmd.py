# ABOUTME: The `kobosync ls` command for listing books on the device.
# ABOUTME: Displays a Rich table of the reconciled metadata cache.

import json as json_lib
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from kobosync.cli.context import cli_session
from kobosync.cli.options import device_options
from kobosync.core.library import DeviceLibrary
from kobosync.metadata.mapping import metadata_to_dict

console = Console()


@click.command("ls")
@device_options
@click.option(
    "--series",
    "series_filter",
    default=None,
    help="Filter by series name.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    default=False,
    help="Output the cached records as JSON.",
)
def ls(
    onboard_mount: Path,
    sd_mount: Path | None,
    config_file: Path | None,
    log_level: str,
    series_filter: str | None,
    json_output: bool,
) -> None:
    """List all books on the device."""
    with cli_session(console, onboard_mount, sd_mount, config_file, log_level) as session:
        records = DeviceLibrary(session).get_metadata()

    if series_filter:
        records = [md for md in records if md.series == series_filter]

    if json_output:
        click.echo(json_lib.dumps([metadata_to_dict(md) for md in records], indent=2))
        return

    if not records:
        console.print("[yellow]No books on the device.[/yellow]")
        return

    table = Table()
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Series")
    table.add_column("Path", style="dim")

    for metadata in records:
        series_display = ""
        if metadata.series:
            idx = metadata.series_index
            if idx is not None:
                series_display = f"{metadata.series} #{idx:g}"
            else:
                series_display = metadata.series

        table.add_row(
            metadata.title or "[dim]untitled[/dim]",
            metadata.author or "[dim]unknown[/dim]",
            series_display,
            metadata.lpath,
        )

    console.print(table)
    console.print(f"\n[dim]{len(records)} book(s)[/dim]")
