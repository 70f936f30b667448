# ABOUTME: User options read from the on-device TOML config (ku.toml).
# ABOUTME: Missing file means defaults; out-of-range values are reset with a warning.

import dataclasses
import logging
import tomllib
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(".adds") / "kobo-uncaged" / "config" / "ku.toml"

GENERATE_NONE = "none"
GENERATE_PARTIAL = "partial"
GENERATE_ALL = "all"
GENERATE_LEVELS = (GENERATE_NONE, GENERATE_PARTIAL, GENERATE_ALL)

RESIZE_ALGORITHMS = ("bilinear", "bicubic", "lanczos2", "lanczos3")


class ConfigError(Exception):
    """Raised when the config file exists but cannot be read or parsed."""


@dataclasses.dataclass
class ThumbnailOptions:
    generate_level: str = GENERATE_ALL
    resize_algorithm: str = "bicubic"
    jpeg_quality: int = 90

    def validate(self) -> None:
        """Reset any out-of-range value to its default."""
        defaults = ThumbnailOptions()
        level = str(self.generate_level).lower()
        if level not in GENERATE_LEVELS:
            logger.warning("Unknown generate_level %r, using %r", level, defaults.generate_level)
            level = defaults.generate_level
        self.generate_level = level

        algorithm = str(self.resize_algorithm).lower()
        if algorithm not in RESIZE_ALGORITHMS:
            logger.warning(
                "Unknown resize_algorithm %r, using %r", algorithm, defaults.resize_algorithm
            )
            algorithm = defaults.resize_algorithm
        self.resize_algorithm = algorithm

        if not isinstance(self.jpeg_quality, int) or not 1 <= self.jpeg_quality <= 100:
            logger.warning(
                "jpeg_quality %r out of range, using %d",
                self.jpeg_quality,
                defaults.jpeg_quality,
            )
            self.jpeg_quality = defaults.jpeg_quality


@dataclasses.dataclass
class SyncOptions:
    prefer_sd_card: bool = False
    prefer_kepub: bool = True
    enable_debug: bool = False
    thumbnail: ThumbnailOptions = dataclasses.field(default_factory=ThumbnailOptions)


def config_path(root: Path) -> Path:
    return root / CONFIG_PATH


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    return value if isinstance(value, dict) else {}


def options_from_dict(data: dict[str, Any]) -> SyncOptions:
    """Build SyncOptions from a parsed TOML document.

    Accepts both snake_case keys and the CamelCase keys older config files use.
    """

    def pick(source: dict[str, Any], key: str, camel: str, default: Any) -> Any:
        if key in source:
            return source[key]
        return source.get(camel, default)

    defaults = SyncOptions()
    thumb_data = _section(data, "thumbnail") or _section(data, "Thumbnail")
    thumbnail = ThumbnailOptions(
        generate_level=pick(
            thumb_data, "generate_level", "GenerateLevel", defaults.thumbnail.generate_level
        ),
        resize_algorithm=pick(
            thumb_data, "resize_algorithm", "ResizeAlgorithm", defaults.thumbnail.resize_algorithm
        ),
        jpeg_quality=pick(
            thumb_data, "jpeg_quality", "JpegQuality", defaults.thumbnail.jpeg_quality
        ),
    )
    thumbnail.validate()
    return SyncOptions(
        prefer_sd_card=bool(pick(data, "prefer_sd_card", "PreferSDCard", defaults.prefer_sd_card)),
        prefer_kepub=bool(pick(data, "prefer_kepub", "PreferKepub", defaults.prefer_kepub)),
        enable_debug=bool(pick(data, "enable_debug", "EnableDebug", defaults.enable_debug)),
        thumbnail=thumbnail,
    )


def load_options(path: Path) -> SyncOptions:
    """Load options from a TOML file.

    Returns defaults when the file does not exist.

    Raises:
        ConfigError: If the file exists but cannot be read or parsed.
    """
    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return SyncOptions()
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Error reading config file {path}: {exc}") from exc
    return options_from_dict(data)
