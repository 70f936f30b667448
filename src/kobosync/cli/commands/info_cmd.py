# ABOUTME: The `kobosync info` command for displaying what kobosync knows about the device.
# ABOUTME: Shows the model, cover sizes, storage in use and the device info file.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from kobosync.cli.context import cli_session
from kobosync.cli.options import device_options
from kobosync.core.library import DeviceLibrary
from kobosync.device.profile import CoverType

console = Console()


@click.command("info")
@device_options
def info(
    onboard_mount: Path,
    sd_mount: Path | None,
    config_file: Path | None,
    log_level: str,
) -> None:
    """Show device model, cover sizes and device info."""
    with cli_session(console, onboard_mount, sd_mount, config_file, log_level) as session:
        library = DeviceLibrary(session)
        profile = session.profile
        device_info = library.get_device_info()
        options = library.device_options()
        book_count = len(session.store)

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=16)
    table.add_column("Value")

    table.add_row("Model", profile.name)
    if profile.model_id:
        table.add_row("Model ID", profile.model_id)
    if profile.firmware:
        table.add_row("Firmware", ".".join(str(part) for part in profile.firmware))
    for cover in CoverType:
        width, height = profile.cover_size(cover)
        table.add_row(cover.firmware_name, f"{width}x{height}")
    table.add_row("Storage", str(session.storage.root))
    table.add_row("Device name", device_info.device_name)
    table.add_row("Store UUID", device_info.device_store_uuid)
    table.add_row("Location", device_info.location_code)
    table.add_row("Formats", ", ".join(options.extensions))
    table.add_row("Books", str(book_count))

    console.print(table)
