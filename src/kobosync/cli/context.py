# ABOUTME: Opens a sync session for a CLI command and turns fatal errors into status + exit 1.
# ABOUTME: Keeps the short user-facing message separate from the diagnostic log.

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from kobosync.config import ConfigError, SyncOptions, config_path, load_options
from kobosync.core.session import SyncSession, session_scope
from kobosync.logging_config import setup_logging
from kobosync.metadata.jsonfile import CacheCorruptError

logger = logging.getLogger(__name__)


def resolve_options(console: Console, onboard_mount: Path, config_file: Path | None) -> SyncOptions:
    """Load options, falling back to defaults (with a warning) if the file is unreadable."""
    try:
        return load_options(config_file or config_path(onboard_mount))
    except ConfigError as exc:
        logger.warning("%s", exc)
        console.print(f"[yellow]Warning:[/yellow] {escape(str(exc))}")
        console.print("[yellow]Using default options.[/yellow]")
        return SyncOptions()


@contextmanager
def cli_session(
    console: Console,
    onboard_mount: Path,
    sd_mount: Path | None,
    config_file: Path | None,
    log_level: str,
) -> Iterator[SyncSession]:
    """Yield an open session; on a fatal error print a short message and exit 1."""
    options = resolve_options(console, onboard_mount, config_file)
    setup_logging("DEBUG" if options.enable_debug else log_level)

    try:
        with session_scope(onboard_mount, sd_mount, options) as session:
            yield session
    except (sqlite3.Error, CacheCorruptError) as exc:
        logger.exception("Session failed")
        console.print(f"[red]Sync failed:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc
