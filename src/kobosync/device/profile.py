# ABOUTME: Per-model device constants (screen and thumbnail sizes) for Kobo e-readers.
# ABOUTME: Parses .kobo/version to pick a profile; falls back to a generic default silently.

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

VERSION_FILE = Path(".kobo") / "version"

LIB_FULL_SIZE = (355, 530)
LIB_GRID_SIZE = (149, 223)


class CoverType(Enum):
    """The three cover rasters the firmware reads from its image cache."""

    FULL = "N3_FULL"
    LIB_FULL = "N3_LIBRARY_FULL"
    LIB_GRID = "N3_LIBRARY_GRID"

    @property
    def firmware_name(self) -> str:
        return self.value


@dataclass(frozen=True)
class DeviceProfile:
    """Immutable constants for one Kobo model."""

    model_id: str
    name: str
    full_cover: tuple[int, int]
    lib_full: tuple[int, int] = LIB_FULL_SIZE
    lib_grid: tuple[int, int] = LIB_GRID_SIZE
    firmware: tuple[int, ...] = ()

    def cover_size(self, cover: CoverType) -> tuple[int, int]:
        """Target bounding box for a cover type on this device."""
        if cover is CoverType.FULL:
            return self.full_cover
        if cover is CoverType.LIB_FULL:
            return self.lib_full
        return self.lib_grid

    def resize_for(self, cover: CoverType, size: tuple[int, int]) -> tuple[int, int]:
        """Size a source image should be resampled to for the given cover type.

        Keeps the aspect ratio and fits inside the cover's bounds. Full covers
        are never upscaled; library thumbnails are.
        """
        return fit_keep_aspect(size, self.cover_size(cover), expand=cover is not CoverType.FULL)


def fit_keep_aspect(
    size: tuple[int, int], bounds: tuple[int, int], *, expand: bool
) -> tuple[int, int]:
    """Scale size to fit within bounds while preserving aspect ratio."""
    width, height = size
    if width == 0 or height == 0:
        return size
    scale = min(bounds[0] / width, bounds[1] / height)
    if scale >= 1.0 and not expand:
        return size
    return max(1, round(width * scale)), max(1, round(height * scale))


def _model(suffix: str, name: str, full_cover: tuple[int, int]) -> DeviceProfile:
    model_id = f"00000000-0000-0000-0000-000000000{suffix}"
    return DeviceProfile(model_id=model_id, name=name, full_cover=full_cover)


KNOWN_DEVICES: dict[str, DeviceProfile] = {
    profile.model_id: profile
    for profile in (
        _model("310", "Touch A/B", (600, 800)),
        _model("320", "Touch C", (600, 800)),
        _model("330", "Glo", (758, 1024)),
        _model("340", "Mini", (600, 800)),
        _model("350", "Aura HD", (1080, 1440)),
        _model("360", "Aura", (758, 1024)),
        _model("370", "Aura H2O", (1080, 1430)),
        _model("371", "Glo HD", (1072, 1448)),
        _model("372", "Touch 2.0", (600, 800)),
        _model("373", "Aura ONE", (1404, 1872)),
        _model("374", "Aura H2O Edition 2 v1", (1080, 1440)),
        _model("375", "Aura Edition 2 v1", (758, 1024)),
        _model("376", "Clara HD", (1072, 1448)),
        _model("377", "Forma", (1440, 1920)),
        _model("378", "Aura H2O Edition 2 v2", (1080, 1440)),
        _model("379", "Aura Edition 2 v2", (758, 1024)),
        _model("380", "Forma 32GB", (1440, 1920)),
        _model("381", "Aura ONE Limited Edition", (1404, 1872)),
        _model("382", "Nia", (758, 1024)),
        _model("384", "Libra H2O", (1264, 1680)),
    )
}

DEFAULT_PROFILE = DeviceProfile(model_id="", name="eReader", full_cover=(1072, 1448))


def parse_version_descriptor(text: str) -> tuple[str, tuple[int, ...]] | None:
    """Extract (model_id, firmware version) from the contents of .kobo/version.

    Returns None when the descriptor is too short to hold both fields.
    """
    fields = [f.strip() for f in text.strip().split(",")]
    if len(fields) < 3 or not fields[-1]:
        return None
    firmware: list[int] = []
    for part in fields[2].split("."):
        try:
            firmware.append(int(part))
        except ValueError:
            firmware.append(0)
    return fields[-1], tuple(firmware)


def load_device_profile(root: Path) -> DeviceProfile:
    """Select the device profile for the Kobo mounted at root.

    Best-effort: a missing or malformed version file, or an unknown model,
    yields DEFAULT_PROFILE.
    """
    try:
        text = (root / VERSION_FILE).read_text(encoding="utf-8", errors="replace")
    except OSError:
        logger.debug("No version file under %s, using default profile", root)
        return DEFAULT_PROFILE

    parsed = parse_version_descriptor(text)
    if parsed is None:
        return DEFAULT_PROFILE
    model_id, firmware = parsed

    known = KNOWN_DEVICES.get(model_id)
    if known is None:
        logger.info("Unknown model id %s, using default profile", model_id)
        return DeviceProfile(
            model_id=model_id,
            name=DEFAULT_PROFILE.name,
            full_cover=DEFAULT_PROFILE.full_cover,
            firmware=firmware,
        )
    return DeviceProfile(
        model_id=known.model_id,
        name=known.name,
        full_cover=known.full_cover,
        firmware=firmware,
    )
