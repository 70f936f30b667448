# ABOUTME: Shared pytest fixtures for kobosync tests.
# ABOUTME: Builds a fake Kobo mount (catalog, version file, books), sample EPUBs and cover images.

import sqlite3
from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pytest
from ebooklib import epub
from PIL import Image

from kobosync.device.identity import ONBOARD_PREFIX, lpath_to_content_id

CONTENT_DDL = """
CREATE TABLE content (
    ContentID TEXT NOT NULL PRIMARY KEY,
    ContentType TEXT NOT NULL,
    MimeType TEXT NOT NULL,
    Title TEXT,
    Attribution TEXT,
    Description TEXT,
    Publisher TEXT,
    Series TEXT,
    SeriesNumber TEXT,
    SeriesNumberFloat REAL,
    IsDownloaded BOOL DEFAULT 1,
    ___FileSize INT,
    Accessibility INT DEFAULT -1
)
"""

CLARA_HD_VERSION = (
    "N418170000000,4.1.15,4.20.14622,4.1.15,4.1.15,00000000-0000-0000-0000-000000000376"
)


@pytest.fixture
def kobo_root(tmp_path: Path) -> Path:
    """A fake internal-storage mount with an empty catalog and a Clara HD version file."""
    root = tmp_path / "onboard"
    (root / ".kobo").mkdir(parents=True)
    conn = sqlite3.connect(root / ".kobo" / "KoboReader.sqlite")
    conn.execute(CONTENT_DDL)
    conn.commit()
    conn.close()
    (root / ".kobo" / "version").write_text(CLARA_HD_VERSION)
    return root


@pytest.fixture
def sd_root(tmp_path: Path) -> Path:
    """A fake SD card mount (no catalog of its own)."""
    root = tmp_path / "sd"
    root.mkdir()
    return root


@pytest.fixture
def catalog_rows(kobo_root: Path) -> Callable[[str], list[sqlite3.Row]]:
    """Read rows straight from the fake catalog, bypassing kobosync."""

    def _rows(query: str, *params: object) -> list[sqlite3.Row]:
        conn = sqlite3.connect(kobo_root / ".kobo" / "KoboReader.sqlite")
        conn.row_factory = sqlite3.Row
        try:
            return conn.execute(query, params).fetchall()
        finally:
            conn.close()

    return _rows


@pytest.fixture
def add_catalog_book(kobo_root: Path) -> Callable[..., str]:
    """Factory: insert a catalog row and (optionally) its book file. Returns the ContentID."""

    def _add(
        lpath: str,
        *,
        title: str | None = None,
        attribution: str | None = None,
        description: str | None = None,
        publisher: str | None = None,
        series: str | None = None,
        series_number: str | None = None,
        mime_type: str = "application/epub+zip",
        content: bytes | None = b"not really a book",
        size: int | None = None,
        root: Path | None = None,
        prefix: str = ONBOARD_PREFIX,
        content_type: int = 6,
        is_downloaded: str = "true",
        accessibility: int = -1,
    ) -> str:
        content_id = lpath_to_content_id(lpath, prefix)
        if content is not None:
            book_path = (root or kobo_root) / content_id.removeprefix(prefix)
            book_path.parent.mkdir(parents=True, exist_ok=True)
            book_path.write_bytes(content)
        if size is None:
            size = len(content) if content else 1

        conn = sqlite3.connect(kobo_root / ".kobo" / "KoboReader.sqlite")
        conn.execute(
            "INSERT INTO content (ContentID, ContentType, MimeType, Title, Attribution, "
            "Description, Publisher, Series, SeriesNumber, IsDownloaded, ___FileSize, "
            "Accessibility) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                content_id,
                str(content_type),
                mime_type,
                title,
                attribution,
                description,
                publisher,
                series,
                series_number,
                is_downloaded,
                size,
                accessibility,
            ),
        )
        conn.commit()
        conn.close()
        return content_id

    return _add


@pytest.fixture
def cover_jpeg() -> bytes:
    """A 600x900 JPEG cover image."""
    buffer = BytesIO()
    Image.new("RGB", (600, 900), "navy").save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def epub_factory(cover_jpeg: bytes) -> Callable[..., Path]:
    """Factory: write an EPUB with calibre-style metadata to a path."""

    def _build(
        path: Path,
        *,
        title: str = "The Name of the Rose",
        authors: tuple[tuple[str, str | None], ...] = (("Umberto Eco", "aut"),),
        description: str | None = "A mystery set in a medieval monastery &amp; its library.",
        calibre_uuid: str | None = "5b1d0ce1-9b2f-4c3e-a0b4-7d7e2f9a1c11",
        isbn: str | None = "9780156001311",
        series: str | None = "Monastery Mysteries",
        series_index: str | None = "2",
        with_cover: bool = True,
    ) -> Path:
        book = epub.EpubBook()
        book.set_identifier("urn:uuid:0f8a4b1e-2d7c-4f3a-9e6b-1c5d8a7b3e20")
        book.set_title(title)
        book.set_language("en")
        for index, (name, role) in enumerate(authors):
            book.add_author(name, role=role, uid=f"creator{index}")

        book.add_metadata("DC", "publisher", "Harcourt")
        book.add_metadata("DC", "date", "1983-01-01")
        if description is not None:
            book.add_metadata("DC", "description", description)
        if calibre_uuid is not None:
            book.add_metadata(
                "DC",
                "identifier",
                calibre_uuid,
                {"{http://www.idpf.org/2007/opf}scheme": "calibre"},
            )
        if isbn is not None:
            book.add_metadata(
                "DC", "identifier", isbn, {"{http://www.idpf.org/2007/opf}scheme": "ISBN"}
            )
        if series is not None:
            book.add_metadata(None, "meta", "", {"name": "calibre:series", "content": series})
        if series_index is not None:
            book.add_metadata(
                None, "meta", "", {"name": "calibre:series_index", "content": series_index}
            )
        book.add_metadata(
            None, "meta", "", {"name": "calibre:title_sort", "content": f"{title}, The"}
        )

        if with_cover:
            book.set_cover("cover.jpg", cover_jpeg)

        chapter = epub.EpubHtml(title="Chapter 1", file_name="chap01.xhtml", lang="en")
        chapter.content = b"<html><body><h1>Chapter 1</h1><p>Content.</p></body></html>"
        book.add_item(chapter)

        book.toc = [epub.Link("chap01.xhtml", "Chapter 1", "chap01")]
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())
        book.spine = ["nav", chapter]

        path.parent.mkdir(parents=True, exist_ok=True)
        epub.write_epub(str(path), book)
        return path

    return _build


@pytest.fixture
def sample_epub(tmp_path: Path, epub_factory: Callable[..., Path]) -> Path:
    """A valid EPUB with calibre metadata and a cover."""
    return epub_factory(tmp_path / "name_of_the_rose.epub")


@pytest.fixture
def corrupt_epub(tmp_path: Path) -> Path:
    """A file that is not a valid EPUB."""
    filepath = tmp_path / "corrupt.epub"
    filepath.write_text("this is not a valid epub file")
    return filepath
