# ABOUTME: Shared Click options for kobosync CLI commands.
# ABOUTME: Provides one decorator for the mount points, config file and log level flags.

from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

DEFAULT_ONBOARD_MOUNT = Path("/mnt/onboard")

onboard_option = click.option(
    "--onboard-mount",
    "onboard_mount",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=DEFAULT_ONBOARD_MOUNT,
    show_default=True,
    help="Mount point of the device's internal storage.",
)

sd_option = click.option(
    "--sd-mount",
    "sd_mount",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Mount point of the SD card, if one is inserted.",
)

config_option = click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to ku.toml (default: <onboard>/.adds/kobo-uncaged/config/ku.toml).",
)

log_level_option = click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Diagnostic log level (written to stderr).",
)


def device_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply every option a session-opening command needs."""
    for option in (log_level_option, config_option, sd_option, onboard_option):
        func = option(func)
    return func
