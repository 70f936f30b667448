# ABOUTME: Book operations the desktop-protocol layer calls: list, fetch, save, open, delete.
# ABOUTME: Every change flows through the update journal so the next session can write it back.

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO

from kobosync.config import GENERATE_ALL, GENERATE_PARTIAL
from kobosync.core.reconciler import stat_book
from kobosync.core.session import SyncSession
from kobosync.device.info import DeviceInfo, save_device_info
from kobosync.device.profile import CoverType
from kobosync.metadata.types import BookMetadata

logger = logging.getLogger(__name__)

_EXTENSIONS = ["epub", "mobi", "pdf", "cbz", "cbr", "txt", "html", "rtf"]


class BookNotFoundError(Exception):
    """Raised when a ContentID is not in the metadata store."""


@dataclass
class BookEntry:
    """The summary the desktop app uses to decide what is on the device."""

    content_id: str
    lpath: str
    last_modified: str | None
    extension: str


@dataclass
class DeviceOptions:
    """What the desktop app should send: formats in order of preference, model, cover size."""

    extensions: list[str]
    model: str
    thumbnail_size: tuple[int, int]


class DeviceLibrary:
    """Book-level operations bound to one open session."""

    def __init__(self, session: SyncSession) -> None:
        self._session = session

    @property
    def session(self) -> SyncSession:
        return self._session

    def device_options(self) -> DeviceOptions:
        """Preferred formats, model name and the cover size the desktop should send."""
        session = self._session
        if session.options.prefer_kepub:
            extensions = ["kepub", *_EXTENSIONS]
        else:
            extensions = ["epub", "kepub", *_EXTENSIONS[1:]]

        level = session.options.thumbnail.generate_level
        if level == GENERATE_ALL:
            cover = CoverType.FULL
        elif level == GENERATE_PARTIAL:
            cover = CoverType.LIB_FULL
        else:
            cover = CoverType.LIB_GRID
        return DeviceOptions(
            extensions=extensions,
            model=session.profile.name,
            thumbnail_size=session.profile.cover_size(cover),
        )

    def list_books(self) -> list[BookEntry]:
        """Summaries of every book in the store, in store order."""
        return [
            BookEntry(
                content_id=content_id,
                lpath=metadata.lpath,
                last_modified=metadata.last_modified,
                extension=metadata.extension,
            )
            for content_id, metadata in self._session.store.items()
        ]

    def get_metadata(self, content_ids: Iterable[str] | None = None) -> list[BookMetadata]:
        """Full metadata for the given books, or for all books.

        Unknown ContentIDs are skipped.
        """
        store = self._session.store
        if content_ids is None:
            return [metadata for _, metadata in store.items()]
        wanted = set(content_ids)
        return [metadata for content_id, metadata in store.items() if content_id in wanted]

    def _persist(self) -> None:
        self._session.store.save()
        self._session.journal.flush()

    @contextmanager
    def save_book(
        self,
        metadata: BookMetadata,
        *,
        last_book: bool,
        cover: bytes | None = None,
    ) -> Iterator[BinaryIO]:
        """Open the destination file for a book being sent to the device.

        The caller writes the book's bytes into the yielded file. Once the
        block exits cleanly the metadata is recorded (with size and mtime from
        the written file) before the cover is handed to the thumbnail pipeline.
        The last book of a batch also persists the side-cache and pending updates.
        If the block raises, the partial file is removed.
        """
        storage = self._session.storage
        content_id = storage.content_id(metadata.lpath)
        path = storage.book_path(content_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("wb") as handle:
            try:
                yield handle
            except BaseException:
                handle.close()
                path.unlink(missing_ok=True)
                raise

        stat_book(metadata, path)
        self._session.journal.accumulate(content_id, metadata)
        logger.info("Saved %s (%d bytes)", content_id, metadata.size)

        if cover:
            self._session.thumbnails.submit(content_id, cover)
        if last_book:
            self._persist()

    def update_metadata(self, records: Iterable[BookMetadata], *, last_book: bool = True) -> int:
        """Record metadata changes for books already on the device.

        Returns:
            The number of records accumulated.
        """
        storage = self._session.storage
        count = 0
        for metadata in records:
            self._session.journal.accumulate(storage.content_id(metadata.lpath), metadata)
            count += 1
        if last_book:
            self._persist()
        return count

    def open_book(self, content_id: str, offset: int = 0) -> tuple[BinaryIO, int]:
        """Open a book for sending to the desktop app.

        Returns:
            The open file positioned at offset, and the number of bytes left to read.

        Raises:
            BookNotFoundError: If content_id is not a known book.
            OSError: If the file cannot be opened.
        """
        if content_id not in self._session.store:
            raise BookNotFoundError(f"Book not found: {content_id}")
        path = self._session.storage.book_path(content_id)
        handle = path.open("rb")
        size = path.stat().st_size
        offset = max(0, min(offset, size))
        handle.seek(offset)
        return handle, size - offset

    def delete_book(self, content_id: str) -> None:
        """Remove a book file and forget its metadata.

        Raises:
            BookNotFoundError: If content_id is not a known book.
        """
        session = self._session
        if content_id not in session.store:
            raise BookNotFoundError(f"Book not found: {content_id}")

        path = session.storage.book_path(content_id)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Book file already gone: %s", path)

        session.store.remove(content_id)
        session.journal.discard(content_id)
        session.store.save()
        logger.info("Deleted %s", content_id)

    def get_device_info(self) -> DeviceInfo:
        return self._session.device_info

    def set_device_info(self, info: DeviceInfo) -> None:
        """Replace and persist the device info the desktop app sent."""
        self._session.device_info = info
        save_device_info(self._session.storage.root, info)
