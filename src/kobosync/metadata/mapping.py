# ABOUTME: Converts between BookMetadata and the JSON objects stored in the side-cache.
# ABOUTME: Uses calibre's driver key names and round-trips unknown keys through `extra`.

from typing import Any

from kobosync.metadata.types import BookMetadata

_STRING_FIELDS = (
    "uuid",
    "title_sort",
    "author_sort",
    "series",
    "publisher",
    "comments",
    "timestamp",
    "pubdate",
    "last_modified",
)
_DICT_FIELDS = (
    "identifiers",
    "author_sort_map",
    "author_link_map",
    "user_metadata",
    "user_categories",
)
_LIST_FIELDS = ("authors", "languages")
_KNOWN_KEYS = frozenset(
    {"lpath", "title", "series_index", "size", *_STRING_FIELDS, *_DICT_FIELDS, *_LIST_FIELDS}
)


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def metadata_to_dict(metadata: BookMetadata) -> dict[str, Any]:
    """Convert a BookMetadata instance to a JSON-ready dict.

    Passthrough keys from `extra` are written first so a modelled field of
    the same name always wins.
    """
    data: dict[str, Any] = dict(metadata.extra)
    data["lpath"] = metadata.lpath
    data["title"] = metadata.title
    data["series_index"] = metadata.series_index
    data["size"] = metadata.size
    for name in _STRING_FIELDS:
        data[name] = getattr(metadata, name)
    for name in _LIST_FIELDS:
        data[name] = list(getattr(metadata, name))
    for name in _DICT_FIELDS:
        data[name] = dict(getattr(metadata, name))
    return data


def dict_to_metadata(data: dict[str, Any]) -> BookMetadata:
    """Convert a side-cache JSON object back to a BookMetadata instance.

    Missing or null keys fall back to field defaults.
    """
    metadata = BookMetadata(
        lpath=str(data.get("lpath") or ""),
        title=str(data.get("title") or ""),
        series_index=_to_float(data.get("series_index")),
        size=_to_int(data.get("size")),
        extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
    )
    for name in _STRING_FIELDS:
        value = data.get(name)
        setattr(metadata, name, str(value) if value is not None else None)
    for name in _LIST_FIELDS:
        value = data.get(name)
        setattr(metadata, name, [str(v) for v in value] if isinstance(value, list) else [])
    for name in _DICT_FIELDS:
        value = data.get(name)
        setattr(metadata, name, dict(value) if isinstance(value, dict) else {})
    return metadata
