# ABOUTME: Queries and the narrow write-back against the Kobo catalog's `content` table.
# ABOUTME: Only Description, Series and both SeriesNumber columns are written, in one transaction.

import logging
import sqlite3
from collections.abc import Iterator

from kobosync.db.mapping import CatalogRow, row_to_catalog_row

logger = logging.getLogger(__name__)

EPUB_MIME_TYPES: frozenset[str] = frozenset(
    {"application/epub+zip", "application/x-kobo-epub+zip"}
)

_BOOKS_QUERY = """
    SELECT ContentID, Title, Attribution, Description, Publisher, Series, SeriesNumber,
           ContentType, MimeType
    FROM content
    WHERE ContentType = 6
    AND MimeType NOT LIKE 'image%'
    AND (IsDownloaded = 'true' OR IsDownloaded = 1)
    AND ___FileSize > 0
    AND Accessibility = -1
    AND ContentID LIKE ?
    ORDER BY ContentID
"""

_UPDATE_METADATA = """
    UPDATE content SET
    Description = ?,
    Series = ?,
    SeriesNumber = ?,
    SeriesNumberFloat = ?
    WHERE ContentID = ?
"""


class NickelCatalog:
    """Wraps a sqlite3 connection to the firmware catalog."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def iter_books(self, prefix: str) -> Iterator[CatalogRow]:
        """Yield visible, downloaded, non-empty books stored under prefix.

        Raises:
            sqlite3.Error: On query or row scan failure.
        """
        cursor = self._conn.execute(_BOOKS_QUERY, (prefix + "%",))
        for row in cursor:
            yield row_to_catalog_row(row)

    def query_books(self, prefix: str) -> list[CatalogRow]:
        """All books stored under prefix, ordered by ContentID."""
        return list(self.iter_books(prefix))

    def update_book_metadata(
        self,
        content_id: str,
        *,
        description: str | None,
        series: str | None,
        series_number: str | None,
        series_number_float: float | None,
    ) -> bool:
        """Write back the catalog fields this engine owns for one book.

        The change is part of the open transaction; it becomes durable only
        on commit() and is discarded by rollback() or close().

        Returns:
            True if a row with this exact ContentID was updated.
        """
        cursor = self._conn.execute(
            _UPDATE_METADATA,
            (description, series, series_number, series_number_float, content_id),
        )
        return cursor.rowcount > 0

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        """Close the connection. Uncommitted changes are rolled back."""
        self._conn.close()
