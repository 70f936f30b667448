# ABOUTME: SQLite connection management for the firmware-owned Kobo catalog (KoboReader.sqlite).
# ABOUTME: Opens the existing database read-write; never creates it or touches its schema.

import logging
import sqlite3
from pathlib import Path
from urllib.parse import quote

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(".kobo") / "KoboReader.sqlite"


def catalog_path(root: Path) -> Path:
    """Location of the catalog database under a device mount point."""
    return root / CATALOG_PATH


def open_catalog(root: Path) -> sqlite3.Connection:
    """Open the Kobo catalog database under root.

    Uses a SQLite URI with mode=rw so a missing database is an error rather
    than silently created. Sets sqlite3.Row factory for dict-like column access.

    Args:
        root: The device's internal storage mount point (where .kobo lives).

    Returns:
        A configured sqlite3.Connection.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened.
    """
    db_path = catalog_path(root)
    logger.info("Opening catalog %s", db_path)
    conn = sqlite3.connect(f"file:{quote(str(db_path))}?mode=rw", uri=True)
    conn.row_factory = sqlite3.Row
    # Fail now rather than on the first query if the file is not a database.
    try:
        conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
    except sqlite3.Error:
        conn.close()
        raise
    return conn
