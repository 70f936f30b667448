# ABOUTME: Applies metadata left pending by the previous session back onto catalog rows.
# ABOUTME: Updates stay uncommitted; the session commits and clears the pending file once it opens.

import logging
import sqlite3
from decimal import Decimal

from kobosync.db.catalog import NickelCatalog
from kobosync.device.identity import lpath_to_content_id
from kobosync.metadata.journal import UpdateJournal

logger = logging.getLogger(__name__)

# Row-level failures; anything else from sqlite3 means the catalog itself is unusable.
_ROW_ERRORS = (sqlite3.IntegrityError, sqlite3.DataError)


def format_series_number(index: float) -> str:
    """Shortest fixed-point text for a series index: 2.0 -> "2", 1e-05 -> "0.00001"."""
    text = format(Decimal(repr(float(index))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def apply_pending_updates(catalog: NickelCatalog, journal: UpdateJournal, prefix: str) -> int:
    """Write pending description/series fields into the catalog's open transaction.

    Empty comments or series, and a zero series index, are written as NULL.
    A row-level failure is logged and the rest still run. Neither the commit
    nor the removal of the pending file happens here: both are left to the
    caller, after the rest of session startup has succeeded.

    Returns:
        The number of catalog rows updated.

    Raises:
        CacheCorruptError: If the pending file exists but cannot be parsed.
        sqlite3.Error: If the catalog cannot be written at all.
    """
    pending = journal.load_pending()
    if not pending:
        return 0

    logger.info("Writing back %d pending update(s)", len(pending))
    updated = 0
    for metadata in pending:
        content_id = lpath_to_content_id(metadata.lpath, prefix)
        series_number = None
        series_number_float = None
        if metadata.series_index:
            series_number = format_series_number(metadata.series_index)
            series_number_float = metadata.series_index
        try:
            found = catalog.update_book_metadata(
                content_id,
                description=metadata.comments or None,
                series=metadata.series or None,
                series_number=series_number,
                series_number_float=series_number_float,
            )
        except _ROW_ERRORS as exc:
            logger.warning("Failed to update catalog row %s: %s", content_id, exc)
            continue
        if found:
            updated += 1
        else:
            logger.info("No catalog row yet for %s", content_id)
    return updated
