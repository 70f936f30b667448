# ABOUTME: Integration tests for opening and closing sync sessions against a fake Kobo.
# ABOUTME: Covers idempotent reconciliation, next-session write-back and fatal startup errors.

import json
import sqlite3
from collections.abc import Callable
from pathlib import Path

import pytest

from kobosync.config import SyncOptions
from kobosync.core.library import DeviceLibrary
from kobosync.core.session import open_session, select_storage, session_scope
from kobosync.device.identity import ONBOARD_PREFIX, SD_PREFIX
from kobosync.device.info import DEVICE_INFO_FILE
from kobosync.formats.epub import PackageMetadata
from kobosync.metadata.journal import PENDING_UPDATE_FILE
from kobosync.metadata.jsonfile import CacheCorruptError
from kobosync.metadata.store import METADATA_CACHE_FILE


class TestOpenSession:
    """Tests for session startup."""

    def test_reconciles_and_writes_files(
        self, kobo_root: Path, add_catalog_book: Callable[..., str]
    ) -> None:
        """A first session builds the cache and generates device info."""
        content_id = add_catalog_book("a.pdf", title="A", mime_type="application/pdf")

        with session_scope(kobo_root) as session:
            assert session.reconcile_result.synthesized == 1
            assert content_id in session.store
            assert session.profile.name == "Clara HD"

        assert (kobo_root / METADATA_CACHE_FILE).exists()
        assert (kobo_root / DEVICE_INFO_FILE).exists()
        assert not (kobo_root / PENDING_UPDATE_FILE).exists()

    def test_second_session_is_idempotent(
        self,
        kobo_root: Path,
        add_catalog_book: Callable[..., str],
        epub_factory: Callable[..., Path],
    ) -> None:
        """With no changes in between, the cache file is byte-identical."""
        add_catalog_book("b.pdf", mime_type="application/pdf")
        add_catalog_book("Eco/Rose.epub", content=None)
        epub_factory(kobo_root / "Eco" / "Rose.epub")

        with session_scope(kobo_root):
            pass
        first = (kobo_root / METADATA_CACHE_FILE).read_bytes()

        with session_scope(kobo_root) as session:
            assert session.reconcile_result.cached == 2
            assert session.reconcile_result.synthesized == 0
        assert (kobo_root / METADATA_CACHE_FILE).read_bytes() == first

    def test_close_is_idempotent(self, kobo_root: Path) -> None:
        """close() can be called twice."""
        session = open_session(kobo_root)
        session.close()
        session.close()

    def test_missing_catalog(self, tmp_path: Path) -> None:
        """No catalog is fatal and nothing is written."""
        with pytest.raises(sqlite3.OperationalError):
            open_session(tmp_path)
        assert not (tmp_path / METADATA_CACHE_FILE).exists()

    def test_corrupt_cache_is_fatal(
        self,
        kobo_root: Path,
        add_catalog_book: Callable[..., str],
        catalog_rows: Callable[..., list[sqlite3.Row]],
    ) -> None:
        """A corrupt side-cache aborts before any pending write-back."""
        content_id = add_catalog_book("a.epub", description="Original")
        (kobo_root / METADATA_CACHE_FILE).write_text("{oops")
        (kobo_root / PENDING_UPDATE_FILE).write_text(
            json.dumps([{"lpath": "a.epub", "comments": "Changed"}])
        )

        with pytest.raises(CacheCorruptError):
            open_session(kobo_root)

        row = catalog_rows("SELECT Description FROM content WHERE ContentID = ?", content_id)[0]
        assert row["Description"] == "Original"
        assert (kobo_root / PENDING_UPDATE_FILE).exists()
        assert (kobo_root / METADATA_CACHE_FILE).read_text() == "{oops"

    def test_unusable_catalog_keeps_pending_updates(self, kobo_root: Path) -> None:
        """A catalog without a usable content table aborts and persists nothing."""
        conn = sqlite3.connect(kobo_root / ".kobo" / "KoboReader.sqlite")
        conn.execute("ALTER TABLE content RENAME TO content_broken")
        conn.commit()
        conn.close()
        (kobo_root / PENDING_UPDATE_FILE).write_text(
            json.dumps([{"lpath": "a.epub", "comments": "Changed"}])
        )

        with pytest.raises(sqlite3.Error):
            open_session(kobo_root)

        assert (kobo_root / PENDING_UPDATE_FILE).exists()
        assert not (kobo_root / DEVICE_INFO_FILE).exists()
        assert not (kobo_root / METADATA_CACHE_FILE).exists()

    def test_failed_reconcile_rolls_back_write_back(
        self,
        kobo_root: Path,
        add_catalog_book: Callable[..., str],
        catalog_rows: Callable[..., list[sqlite3.Row]],
    ) -> None:
        """A catalog error during reconciliation undoes the applied pending updates."""
        content_id = add_catalog_book("a.epub", description="Original")
        (kobo_root / PENDING_UPDATE_FILE).write_text(
            json.dumps([{"lpath": "a.epub", "comments": "Changed"}])
        )

        class FailingReader:
            def read(self, path: Path) -> PackageMetadata:
                raise sqlite3.OperationalError("disk I/O error")

        with pytest.raises(sqlite3.OperationalError):
            open_session(kobo_root, reader=FailingReader())

        row = catalog_rows("SELECT Description FROM content WHERE ContentID = ?", content_id)[0]
        assert row["Description"] == "Original"
        assert (kobo_root / PENDING_UPDATE_FILE).exists()
        assert not (kobo_root / DEVICE_INFO_FILE).exists()


class TestWriteBackAcrossSessions:
    """Metadata changed in one session reaches the catalog in the next."""

    def test_update_then_next_session(
        self,
        kobo_root: Path,
        add_catalog_book: Callable[..., str],
        catalog_rows: Callable[..., list[sqlite3.Row]],
    ) -> None:
        """update_metadata -> pending file -> catalog columns on the next open."""
        content_id = add_catalog_book("Foo/Bar.kepub", title="Bar", mime_type="application/pdf")

        with session_scope(kobo_root) as session:
            md = session.store.get(content_id)
            md.comments = "New description"
            md.series = "Foo"
            md.series_index = 2.5
            DeviceLibrary(session).update_metadata([md])

        assert (kobo_root / PENDING_UPDATE_FILE).exists()

        with session_scope(kobo_root) as session:
            assert session.written_back == 1

        row = catalog_rows("SELECT * FROM content WHERE ContentID = ?", content_id)[0]
        assert row["Description"] == "New description"
        assert row["Series"] == "Foo"
        assert row["SeriesNumber"] == "2.5"
        assert row["SeriesNumberFloat"] == 2.5
        assert not (kobo_root / PENDING_UPDATE_FILE).exists()


class TestStorageSelection:
    """Tests for choosing internal storage or the SD card."""

    def test_sd_preferred_and_mounted(self, kobo_root: Path, sd_root: Path) -> None:
        """The SD card is used when mounted and preferred."""
        storage = select_storage(kobo_root, sd_root, SyncOptions(prefer_sd_card=True))
        assert storage.root == sd_root
        assert storage.prefix == SD_PREFIX
        assert storage.use_sd_card

    def test_sd_not_mounted(self, kobo_root: Path) -> None:
        """Without an SD mount the preference is ignored."""
        storage = select_storage(kobo_root, None, SyncOptions(prefer_sd_card=True))
        assert storage.prefix == ONBOARD_PREFIX

    def test_sd_session(
        self, kobo_root: Path, sd_root: Path, add_catalog_book: Callable[..., str]
    ) -> None:
        """An SD session reconciles SD books and keeps its files on the card."""
        add_catalog_book("internal.pdf", mime_type="application/pdf")
        card_id = add_catalog_book(
            "card.pdf", mime_type="application/pdf", prefix=SD_PREFIX, root=sd_root
        )

        with session_scope(kobo_root, sd_root, SyncOptions(prefer_sd_card=True)) as session:
            assert list(session.store) == [card_id]
            assert session.store.get(card_id).size > 0
            assert session.device_info.location_code == "A"

        assert (sd_root / METADATA_CACHE_FILE).exists()
        assert not (kobo_root / METADATA_CACHE_FILE).exists()
