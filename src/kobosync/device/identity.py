# ABOUTME: Pure conversions between library-relative paths (lpaths) and Kobo ContentIDs.
# ABOUTME: Also derives cover image ids and the firmware's hashed image-cache layout.

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ONBOARD_PREFIX = "file:///mnt/onboard/"
SD_PREFIX = "file:///mnt/sd/"

# Kobo stores a repackaged ".kepub" as "<name>.kepub.epub" on disk and in the catalog.
KEPUB_SUFFIX = ".kepub"
KEPUB_CONTENT_SUFFIX = ".epub"

_IMAGE_ID_TRANSLATION = str.maketrans({" ": "_", "/": "_", ":": "_", ".": "_"})


def is_kepub_lpath(lpath: str) -> bool:
    """Whether a library-relative path names a kepub (source of the derived format)."""
    return lpath.endswith(KEPUB_SUFFIX)


def is_kepub_content_id(content_id: str) -> bool:
    """Whether a ContentID names a device-repackaged kepub."""
    return content_id.endswith(KEPUB_SUFFIX + KEPUB_CONTENT_SUFFIX)


def lpath_to_content_id(lpath: str, prefix: str) -> str:
    """Convert a library-relative path to a ContentID under the given storage prefix.

    Example:
        >>> lpath_to_content_id("Foo/Bar.kepub", ONBOARD_PREFIX)
        'file:///mnt/onboard/Foo/Bar.kepub.epub'
    """
    if is_kepub_lpath(lpath):
        lpath += KEPUB_CONTENT_SUFFIX
    return prefix + lpath


def content_id_to_lpath(content_id: str, prefix: str) -> str:
    """Convert a ContentID back to its library-relative path.

    A ContentID without the expected prefix is returned unchanged. That means
    the catalog holds something we did not put there; it is not an error.
    """
    if not content_id.startswith(prefix):
        logger.debug("ContentID %s does not start with %s", content_id, prefix)
        return content_id
    lpath = content_id[len(prefix):]
    if is_kepub_content_id(lpath):
        lpath = lpath[: -len(KEPUB_CONTENT_SUFFIX)]
    return lpath


def content_id_to_path(root: Path, content_id: str, prefix: str) -> Path:
    """Absolute path of the book file a ContentID refers to.

    Unlike the lpath, the on-disk name keeps the ".kepub.epub" suffix.
    """
    return root / content_id.removeprefix(prefix)


def image_id_from_content_id(content_id: str) -> str:
    """Derive the firmware image id used to name cover files."""
    return content_id.translate(_IMAGE_ID_TRANSLATION)


def _image_hash(image_id: str) -> int:
    h = 0
    for byte in image_id.encode("utf-8"):
        h = (h << 4) + byte
        h ^= (h & 0xF0000000) >> 23
        h &= 0x0FFFFFFF
    return h


def cover_relpath(image_id: str, cover_name: str) -> Path:
    """Relative path of a cover file inside the image cache.

    The firmware spreads covers over two directory levels keyed by a hash
    of the image id.
    """
    h = _image_hash(image_id)
    dir1 = str(h & 0xFF)
    dir2 = str((h & 0xFF00) >> 8)
    return Path(dir1) / dir2 / f"{image_id} - {cover_name}.parsed"
