# ABOUTME: Device layer: ContentID mapping, per-model profiles, and the device info file.
# ABOUTME: Everything here is keyed on a storage root and its ContentID prefix.

from kobosync.device.identity import (
    ONBOARD_PREFIX,
    SD_PREFIX,
    content_id_to_lpath,
    content_id_to_path,
    is_kepub_content_id,
    lpath_to_content_id,
)
from kobosync.device.info import (
    DeviceInfo,
    load_device_info,
    resolve_device_info,
    save_device_info,
)
from kobosync.device.profile import CoverType, DeviceProfile, load_device_profile

__all__ = [
    "ONBOARD_PREFIX",
    "SD_PREFIX",
    "CoverType",
    "DeviceInfo",
    "DeviceProfile",
    "content_id_to_lpath",
    "content_id_to_path",
    "is_kepub_content_id",
    "load_device_info",
    "load_device_profile",
    "lpath_to_content_id",
    "resolve_device_info",
    "save_device_info",
]
