# ABOUTME: The `kobosync covers` command: regenerate cover thumbnails from EPUB covers.
# ABOUTME: Feeds every EPUB's embedded cover through the thumbnail pipeline.

import logging
from pathlib import Path

import click
from rich.console import Console

from kobosync.cli.context import cli_session
from kobosync.cli.options import device_options
from kobosync.formats.epub import EpubReadError, read_cover_image

logger = logging.getLogger(__name__)

console = Console()


@click.command("covers")
@device_options
def covers(
    onboard_mount: Path,
    sd_mount: Path | None,
    config_file: Path | None,
    log_level: str,
) -> None:
    """Regenerate cover thumbnails for every EPUB on the device."""
    scheduled = 0
    skipped = 0
    with cli_session(console, onboard_mount, sd_mount, config_file, log_level) as session:
        if not session.thumbnails.cover_types():
            console.print(
                "[yellow]Thumbnail generation is disabled (generate_level = none).[/yellow]"
            )
            return

        for content_id, metadata in session.store.items():
            if metadata.extension not in ("epub", "kepub"):
                continue
            path = session.storage.book_path(content_id)
            try:
                cover = read_cover_image(path)
            except EpubReadError as exc:
                logger.warning("Cannot read cover from %s: %s", path, exc)
                cover = None
            if not cover:
                skipped += 1
                continue
            if session.thumbnails.submit(content_id, cover):
                scheduled += 1
            else:
                skipped += 1

        console.print("Waiting for thumbnail generation to complete")

    console.print(f"[green]{scheduled} cover(s) generated[/green], {skipped} skipped")
