# ABOUTME: Core metadata record for a book on the device, as cached in metadata.calibre.
# ABOUTME: Known fields are typed and optional; unrecognised keys ride along in `extra`.

from dataclasses import dataclass, field
from typing import Any


@dataclass
class BookMetadata:
    """Structured metadata for one book on the device.

    This is the record that flows between the catalog reconciler, the side-cache,
    the update journal and the desktop app. Every field may be absent: catalog
    rows are sparse and sideloaded books may carry almost nothing. Keys the
    desktop app sends that we do not model are kept verbatim in `extra` so they
    survive a load/save cycle.
    """

    lpath: str = ""
    title: str = ""
    authors: list[str] = field(default_factory=list)
    uuid: str | None = None
    identifiers: dict[str, str] = field(default_factory=dict)
    title_sort: str | None = None
    author_sort: str | None = None
    author_sort_map: dict[str, str] = field(default_factory=dict)
    author_link_map: dict[str, str] = field(default_factory=dict)
    series: str | None = None
    series_index: float | None = None
    publisher: str | None = None
    languages: list[str] = field(default_factory=list)
    comments: str | None = None
    timestamp: str | None = None
    pubdate: str | None = None
    last_modified: str | None = None
    size: int = 0
    user_metadata: dict[str, Any] = field(default_factory=dict)
    user_categories: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def author(self) -> str:
        """Convenience property: joined author string for display."""
        return ", ".join(self.authors) if self.authors else ""

    @property
    def extension(self) -> str:
        """Lowercase file extension of lpath, without the dot."""
        name = self.lpath.rsplit("/", 1)[-1]
        if "." not in name:
            return ""
        return name.rsplit(".", 1)[-1].lower()
