# ABOUTME: Read/write helpers for the JSON files kept at the storage root.
# ABOUTME: Absent or empty files read as None; anything else unparsable is CacheCorruptError.

import json
from pathlib import Path
from typing import Any


class CacheCorruptError(Exception):
    """Raised when a non-empty JSON cache file cannot be parsed."""


def read_json_file(path: Path) -> Any | None:
    """Load JSON from path.

    Returns:
        The decoded document, or None if the file is missing or empty.

    Raises:
        CacheCorruptError: If the file has content that is not valid JSON.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        raise CacheCorruptError(f"Failed to read {path}: {exc}") from exc

    if not text.strip():
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise CacheCorruptError(f"Invalid JSON in {path}: {exc}") from exc


def write_json_file(path: Path, data: Any) -> None:
    """Serialize data to path, creating parent directories and replacing any prior content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
