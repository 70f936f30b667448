# ABOUTME: Converts catalog `content` rows into CatalogRow and synthesized BookMetadata.
# ABOUTME: Attribution is split into authors; unparsable series numbers are left unset.

from dataclasses import dataclass
from typing import Any

from kobosync.metadata.types import BookMetadata


@dataclass
class CatalogRow:
    """The catalog columns this engine reads for one book."""

    content_id: str
    title: str | None
    attribution: str | None
    description: str | None
    publisher: str | None
    series: str | None
    series_number: str | None
    content_type: int
    mime_type: str


def row_to_catalog_row(row: Any) -> CatalogRow:
    """Convert a sqlite3.Row (or dict) from the books query to a CatalogRow."""
    return CatalogRow(
        content_id=row["ContentID"],
        title=row["Title"],
        attribution=row["Attribution"],
        description=row["Description"],
        publisher=row["Publisher"],
        series=row["Series"],
        series_number=row["SeriesNumber"],
        content_type=int(row["ContentType"]),
        mime_type=row["MimeType"] or "",
    )


def split_attribution(attribution: str | None) -> list[str]:
    """Split the catalog's comma-joined attribution into trimmed author names."""
    if not attribution:
        return []
    return [name.strip() for name in attribution.split(",") if name.strip()]


def parse_series_number(text: str | None) -> float | None:
    """Parse the textual SeriesNumber column, or None if it is not a number."""
    if text is None:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def catalog_row_to_metadata(row: CatalogRow, lpath: str) -> BookMetadata:
    """Synthesize a BookMetadata from catalog columns alone."""
    return BookMetadata(
        lpath=lpath,
        title=row.title or "",
        authors=split_attribution(row.attribution),
        comments=row.description,
        publisher=row.publisher,
        series=row.series,
        series_index=parse_series_number(row.series_number),
    )
