# ABOUTME: Background generation of the firmware's cover rasters (full, library full, grid).
# ABOUTME: One worker unit per cover type; shutdown() is a join barrier over all of them.

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from pathlib import Path

from PIL import Image

from kobosync.config import GENERATE_ALL, GENERATE_PARTIAL, ThumbnailOptions
from kobosync.device.identity import cover_relpath, image_id_from_content_id
from kobosync.device.profile import CoverType, DeviceProfile

logger = logging.getLogger(__name__)

ONBOARD_IMAGE_DIR = Path(".kobo-images")
SD_IMAGE_DIR = Path("koboExtStorage") / "images-cache"

RESAMPLE_FILTERS: dict[str, Image.Resampling] = {
    "bilinear": Image.Resampling.BILINEAR,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos2": Image.Resampling.LANCZOS,
    "lanczos3": Image.Resampling.LANCZOS,
}

_DEFAULT_WORKERS = 3


def cover_types_for_level(level: str) -> list[CoverType]:
    """Cover rasters to generate for a thumbnail generation level."""
    if level == GENERATE_ALL:
        return [CoverType.FULL, CoverType.LIB_FULL, CoverType.LIB_GRID]
    if level == GENERATE_PARTIAL:
        return [CoverType.LIB_FULL, CoverType.LIB_GRID]
    return []


class ThumbnailPipeline:
    """Resizes and writes cover images on a worker pool.

    The outstanding-unit counter and its condition variable are owned here,
    so callers can block on join() before the process exits and be sure no
    cover file is still being written.
    """

    def __init__(
        self,
        root: Path,
        profile: DeviceProfile,
        options: ThumbnailOptions,
        *,
        use_sd_card: bool = False,
        max_workers: int = _DEFAULT_WORKERS,
    ) -> None:
        self.image_dir = root / (SD_IMAGE_DIR if use_sd_card else ONBOARD_IMAGE_DIR)
        self._profile = profile
        self._options = options
        self._resample = RESAMPLE_FILTERS.get(options.resize_algorithm, Image.Resampling.BICUBIC)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="thumb")
        self._pending = 0
        self._cond = threading.Condition()
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of scheduled units that have not finished yet."""
        with self._cond:
            return self._pending

    def cover_types(self) -> list[CoverType]:
        return cover_types_for_level(self._options.generate_level)

    def cover_path(self, content_id: str, cover: CoverType) -> Path:
        """Where the firmware expects a given cover raster for a book."""
        image_id = image_id_from_content_id(content_id)
        return self.image_dir / cover_relpath(image_id, cover.firmware_name)

    def submit(self, content_id: str, image_bytes: bytes) -> int:
        """Decode a cover once and schedule one unit per configured cover type.

        A cover that cannot be decoded is logged and nothing is scheduled.

        Returns:
            The number of units scheduled.
        """
        if self._closed:
            raise RuntimeError("ThumbnailPipeline has been shut down")

        covers = self.cover_types()
        if not covers:
            return 0

        try:
            with Image.open(BytesIO(image_bytes)) as raw:
                image = raw.convert("RGB")
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            logger.warning("Cannot decode cover for %s: %s", content_id, exc)
            return 0

        for cover in covers:
            with self._cond:
                self._pending += 1
            self._executor.submit(self._run_unit, content_id, image, cover)
        return len(covers)

    def _run_unit(self, content_id: str, image: Image.Image, cover: CoverType) -> None:
        try:
            self._write_cover(content_id, image, cover)
        except Exception:
            logger.exception("Failed to generate %s cover for %s", cover.firmware_name, content_id)
        finally:
            with self._cond:
                self._pending -= 1
                self._cond.notify_all()

    def _write_cover(self, content_id: str, image: Image.Image, cover: CoverType) -> None:
        size = image.size
        target = self._profile.resize_for(cover, size)
        dest = self.cover_path(content_id, cover)

        if target == size:
            logger.debug("Skipped resize of %s cover: already %s", cover.firmware_name, size)
            resized = image
        else:
            logger.debug("Resizing %s cover from %s to %s", cover.firmware_name, size, target)
            resized = image.resize(target, resample=self._resample)

        dest.parent.mkdir(parents=True, exist_ok=True)
        resized.save(dest, format="JPEG", quality=self._options.jpeg_quality)

    def join(self) -> None:
        """Block until every scheduled unit has finished or logged its failure."""
        with self._cond:
            self._cond.wait_for(lambda: self._pending == 0)

    def shutdown(self) -> None:
        """Join all outstanding units, then release the worker pool."""
        pending = self.pending
        if pending:
            logger.info("Waiting for %d thumbnail unit(s) to complete", pending)
        self.join()
        self._closed = True
        self._executor.shutdown(wait=True)
