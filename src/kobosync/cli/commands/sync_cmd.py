# ABOUTME: The `kobosync sync` command: one full session against a mounted Kobo.
# ABOUTME: Writes back pending metadata, reconciles the cache, waits for thumbnails.

from pathlib import Path

import click
from rich.console import Console

from kobosync.cli.context import cli_session
from kobosync.cli.options import device_options

console = Console()


@click.command("sync")
@device_options
def sync(
    onboard_mount: Path,
    sd_mount: Path | None,
    config_file: Path | None,
    log_level: str,
) -> None:
    """Reconcile the metadata cache with the device catalog."""
    with cli_session(console, onboard_mount, sd_mount, config_file, log_level) as session:
        result = session.reconcile_result

        if session.written_back:
            console.print(
                f"[green]{session.written_back} catalog row(s) updated"
                " from pending metadata[/green]"
            )

        parts = [f"[bold]{result.total}[/bold] book(s) on device"]
        if result.synthesized:
            parts.append(f"[green]{result.synthesized} new[/green]")
        if result.dropped:
            parts.append(f"[yellow]{result.dropped} removed from cache[/yellow]")
        if result.enrichment_failed:
            parts.append(f"[red]{result.enrichment_failed} unreadable[/red]")
        console.print(", ".join(parts))
