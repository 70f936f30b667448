# ABOUTME: EPUB package metadata extraction using ebooklib, behind a ContainerReader protocol.
# ABOUTME: Defensive wrapper that turns any parse failure into EpubReadError.

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

import ebooklib
from ebooklib import epub

logger = logging.getLogger(__name__)

_DC_NS = epub.NAMESPACES["DC"]


class EpubReadError(Exception):
    """Raised when an EPUB file cannot be read or parsed."""


@dataclass
class PackageMetadata:
    """What a book container says about itself, before any interpretation."""

    identifiers: list[tuple[str, str]] = field(default_factory=list)
    title: str | None = None
    creators: list[tuple[str, str | None]] = field(default_factory=list)
    description: str | None = None
    languages: list[str] = field(default_factory=list)
    publisher: str | None = None
    date: str | None = None
    meta: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class ContainerReader(Protocol):
    """Protocol for book container parsers.

    Given a file path, return the package metadata the container declares.
    """

    def read(self, path: Path) -> PackageMetadata: ...


def _attr(attrs: dict[str, str], name: str) -> str | None:
    """Look up an attribute regardless of namespace spelling ("opf:role", "{ns}role")."""
    for key, value in attrs.items():
        if key == name or key.endswith("}" + name) or key.endswith(":" + name):
            return value
    return None


def _dc_values(book: epub.EpubBook, name: str) -> list[tuple[str, dict[str, str]]]:
    entries = book.metadata.get(_DC_NS, {}).get(name, [])
    return [(str(value).strip(), attrs or {}) for value, attrs in entries if value]


def _first_dc(book: epub.EpubBook, name: str) -> str | None:
    values = _dc_values(book, name)
    return values[0][0] if values else None


def _walk_meta(book: epub.EpubBook) -> tuple[dict[str, str], dict[str, str]]:
    """Collect <meta name=... content=...> pairs and EPUB3 role refinements.

    ebooklib files <meta> elements under whatever namespace-ish key their
    name prefix or property suggests, so every bucket is scanned.
    """
    named: dict[str, str] = {}
    roles: dict[str, str] = {}
    for namespace, names in book.metadata.items():
        if namespace == _DC_NS:
            continue
        for entries in names.values():
            for value, attrs in entries:
                attrs = attrs or {}
                if "name" in attrs and "content" in attrs:
                    named[attrs["name"]] = attrs["content"]
                elif attrs.get("property") == "role" and attrs.get("refines") and value:
                    roles[attrs["refines"].lstrip("#")] = str(value).strip()
    return named, roles


def _open(path: Path) -> epub.EpubBook:
    if not path.exists():
        raise EpubReadError(f"File not found: {path}")
    try:
        return epub.read_epub(str(path), options={"ignore_ncx": True})
    except Exception as exc:
        raise EpubReadError(f"Failed to read EPUB: {path}: {exc}") from exc


def read_package_metadata(path: Path) -> PackageMetadata:
    """Extract package (OPF) metadata from an EPUB or kepub file.

    Args:
        path: Path to the EPUB file.

    Returns:
        PackageMetadata with the raw declared values.

    Raises:
        EpubReadError: If the file cannot be read or parsed.
    """
    book = _open(path)
    named, roles = _walk_meta(book)

    identifiers = []
    for value, attrs in _dc_values(book, "identifier"):
        identifiers.append(((_attr(attrs, "scheme") or "").strip(), value))

    creators = []
    for name, attrs in _dc_values(book, "creator"):
        role = _attr(attrs, "role") or roles.get(attrs.get("id", ""))
        creators.append((name, role))

    return PackageMetadata(
        identifiers=identifiers,
        title=_first_dc(book, "title"),
        creators=creators,
        description=_first_dc(book, "description"),
        languages=[value for value, _ in _dc_values(book, "language")],
        publisher=_first_dc(book, "publisher"),
        date=_first_dc(book, "date"),
        meta=named,
    )


def read_cover_image(path: Path) -> bytes | None:
    """Extract cover image data from an EPUB, if present.

    Raises:
        EpubReadError: If the file cannot be read or parsed.
    """
    book = _open(path)
    named, _ = _walk_meta(book)

    cover_id = named.get("cover")
    if cover_id:
        cover_item = book.get_item_with_id(cover_id)
        if cover_item is not None:
            return cover_item.get_content()

    for item in book.get_items():
        if item.get_type() == ebooklib.ITEM_COVER:
            return item.get_content()

    # Fallback: look for images with "cover" in the id or filename
    for item in book.get_items():
        item_id = item.get_id() or ""
        item_name = item.get_name() or ""
        if item.get_type() == ebooklib.ITEM_IMAGE and (
            "cover" in item_id.lower() or "cover" in item_name.lower()
        ):
            return item.get_content()

    return None


class EpubContainerReader:
    """ContainerReader backed by ebooklib."""

    def read(self, path: Path) -> PackageMetadata:
        return read_package_metadata(path)
