# ABOUTME: The driveinfo.calibre file: a stable device store uuid, location code and name.
# ABOUTME: Generated once when absent; unknown keys written by the desktop app are preserved.

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from kobosync.device.profile import DeviceProfile
from kobosync.metadata.jsonfile import CacheCorruptError, read_json_file, write_json_file

logger = logging.getLogger(__name__)

DEVICE_INFO_FILE = "driveinfo.calibre"

_KNOWN_KEYS = ("device_store_uuid", "location_code", "device_name")


@dataclass
class DeviceInfo:
    """Identity of this storage location as seen by the desktop companion app."""

    device_store_uuid: str
    location_code: str = "main"
    device_name: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            device_store_uuid=self.device_store_uuid,
            location_code=self.location_code,
            device_name=self.device_name,
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeviceInfo":
        return cls(
            device_store_uuid=str(data.get("device_store_uuid") or ""),
            location_code=str(data.get("location_code") or "main"),
            device_name=str(data.get("device_name") or ""),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


def generate_device_info(profile: DeviceProfile, *, use_sd_card: bool = False) -> DeviceInfo:
    """Create a fresh DeviceInfo for a device that has never been connected."""
    return DeviceInfo(
        device_store_uuid=str(uuid.uuid4()),
        location_code="A" if use_sd_card else "main",
        device_name=f"Kobo {profile.name}",
    )


def resolve_device_info(
    root: Path, profile: DeviceProfile, *, use_sd_card: bool = False
) -> tuple[DeviceInfo, bool]:
    """Read driveinfo.calibre from root, generating what is missing, without writing it.

    Returns:
        The device info, and whether it differs from what is on disk and needs saving.

    Raises:
        CacheCorruptError: If the file exists with unparsable content.
    """
    data = read_json_file(root / DEVICE_INFO_FILE)
    if data is None:
        info = generate_device_info(profile, use_sd_card=use_sd_card)
        logger.info("Generated device info %s", info.device_store_uuid)
        return info, True

    if not isinstance(data, dict):
        raise CacheCorruptError(f"{DEVICE_INFO_FILE} does not hold a JSON object")

    info = DeviceInfo.from_dict(data)
    if not info.device_store_uuid:
        info.device_store_uuid = str(uuid.uuid4())
        return info, True
    return info, False


def load_device_info(
    root: Path, profile: DeviceProfile, *, use_sd_card: bool = False
) -> DeviceInfo:
    """Read driveinfo.calibre from root, generating and saving it if absent or empty.

    Raises:
        CacheCorruptError: If the file exists with unparsable content.
    """
    info, changed = resolve_device_info(root, profile, use_sd_card=use_sd_card)
    if changed:
        save_device_info(root, info)
    return info


def save_device_info(root: Path, info: DeviceInfo) -> None:
    """Rewrite driveinfo.calibre with the given info."""
    write_json_file(root / DEVICE_INFO_FILE, info.to_dict())
