"""
Normalization of persisted clip and section shapes.

Everything on disk is human-editable JSON with no embedded version, and
field names have changed across releases. These functions repair whatever
they are given into the current shape. They are pure and never raise for
malformed input: the worst case is a best-effort default.
"""

import math
import re
from typing import Any

from .types import (
    DEFAULT_SCHEMA,
    DEFAULT_SECTIONS,
    EXPORT_BASE,
    Clip,
    Section,
)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")

# Characters not allowed in exported file names on any platform
_INVALID_FILENAME_RE = re.compile(r'[\\/?%*:|"<>]')

# data/<anything except exports...> is ambiguous: it is the primary store
_DATA_SUBPATH_RE = re.compile(r"^data/(?!exports)")

SLUG_FALLBACK = "tab"
MAX_FILENAME_LENGTH = 80

# Retired schema field that was replaced by "open"
_LEGACY_SCHEMA_FIELD = "sourceurl"


def slugify(name: Any) -> str:
    """Convert a tab name to an id-safe slug.

    Lowercases, turns each run of non-alphanumerics into one hyphen and
    trims hyphens. Never returns an empty string.
    """
    base = str(name if name is not None else "").lower()
    slug = _NON_ALNUM_RE.sub("-", base).strip("-")
    return slug or SLUG_FALLBACK


def slugify_title(title: Any) -> str:
    """Like slugify(), but an empty result stays empty."""
    base = str(title if title is not None else "").lower().strip()
    return _NON_ALNUM_RE.sub("-", base).strip("-")


def canonical_export_path(name: Any, export_base: str = EXPORT_BASE) -> str:
    """Default export folder for a tab name."""
    return f"{export_base.rstrip('/')}/{slugify(name)}"


def normalize_export_path(path: Any, name: Any, export_base: str = EXPORT_BASE) -> str:
    """Rewrite export paths that point into the primary data directory.

    The bare data root and any data/ subpath outside data/exports would
    mirror clips over the store itself, so they are replaced with the
    canonical export folder for the tab. Empty stays empty (mirroring off);
    any other explicit path is kept as given.
    """
    raw = path.strip() if isinstance(path, str) else ""
    if not raw:
        return ""
    lowered = raw.lower().replace("\\", "/")
    if lowered in ("data", "data/", "data/exports", "data/exports/"):
        return canonical_export_path(name or SLUG_FALLBACK, export_base)
    if _DATA_SUBPATH_RE.match(lowered):
        return canonical_export_path(name or SLUG_FALLBACK, export_base)
    return raw


def sanitize_filename(name: Any, max_length: int = MAX_FILENAME_LENGTH) -> str:
    """Strip path-unsafe characters, collapse whitespace to underscores, truncate."""
    text = str(name if name is not None else "")
    text = _INVALID_FILENAME_RE.sub("_", text)
    text = _WHITESPACE_RE.sub("_", text)
    return text[:max_length]


def normalize_tags(raw: Any) -> list[str]:
    """Coerce a tag list or comma-separated string to a list of tags."""
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = ["" if item is None else str(item) for item in raw]
    else:
        return []
    return [item.strip() for item in items if item and item.strip()]


def _normalize_screenshots(raw: Any) -> list[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [s.strip() for s in raw if isinstance(s, str) and s.strip()]


def normalize_clip(raw: Any) -> Clip:
    """Return a repaired copy of a clip.

    Unknown keys are kept. Legacy appearanceColor/userColor are folded into
    color and removed.
    """
    clip: Clip = dict(raw) if isinstance(raw, dict) else {}

    for key in ("title", "text"):
        if not isinstance(clip.get(key), str):
            clip[key] = "" if clip.get(key) is None else str(clip[key])

    clip["tags"] = normalize_tags(clip.get("tags"))
    clip["screenshots"] = _normalize_screenshots(clip.get("screenshots"))

    if not clip.get("sectionId") and clip.get("section"):
        legacy = clip["section"]
        if isinstance(legacy, dict):
            legacy = legacy.get("id")
        if isinstance(legacy, str) and legacy.strip():
            clip["sectionId"] = legacy.strip()

    legacy_color = clip.get("appearanceColor") or clip.get("userColor")
    if clip.get("color") in (None, "") and legacy_color:
        clip["color"] = legacy_color
    clip.pop("appearanceColor", None)
    clip.pop("userColor", None)

    clip.setdefault("icon", None)
    clip.setdefault("color", None)
    return clip


def normalize_schema(schema: Any) -> list[str]:
    """Clamp a section schema to the recognized field vocabulary."""
    if not isinstance(schema, (list, tuple)) or not schema:
        return list(DEFAULT_SCHEMA)
    filtered: list[str] = []
    for field_name in schema:
        if field_name in DEFAULT_SCHEMA and field_name not in filtered:
            filtered.append(field_name)
    has_legacy = any(
        isinstance(f, str) and f.lower() == _LEGACY_SCHEMA_FIELD for f in schema
    )
    if has_legacy and "open" not in filtered:
        filtered.append("open")
    return filtered or list(DEFAULT_SCHEMA)


def normalize_clip_order(order: Any) -> list[str]:
    """Deduplicate a clip order list, keeping string ids only."""
    if not isinstance(order, (list, tuple)):
        return []
    seen: set[str] = set()
    result = []
    for clip_id in order:
        if isinstance(clip_id, str) and clip_id and clip_id not in seen:
            seen.add(clip_id)
            result.append(clip_id)
    return result


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def normalize_section(raw: Any, index: int, export_base: str = EXPORT_BASE) -> Section:
    """
    Repair one persisted section (tab).

    Args:
        raw: Section as read from disk (any shape)
        index: Position in the persisted list, used for defaults

    Returns:
        A section dict in the current shape. Unknown keys are preserved.
        Running the result through again returns an equal dict.
    """
    section: Section = dict(raw) if isinstance(raw, dict) else {}

    section_id = section.get("id")
    section["id"] = section_id if isinstance(section_id, str) and section_id else f"tab-{index}"

    label = _text(section.get("label")) or _text(section.get("name")) or f"Tab {index + 1}"
    section["label"] = label
    section["name"] = label

    section["locked"] = bool(section.get("locked"))

    export_name = label or section["id"]
    export_raw = _text(section.get("exportPath")) or _text(section.get("exportFolder"))
    export_path = normalize_export_path(export_raw, export_name, export_base)
    section["exportPath"] = export_path
    section["exportFolder"] = export_path

    section["color"] = _text(section.get("color"))
    section["icon"] = _text(section.get("icon"))

    order = section.get("order")
    section["order"] = order if _is_number(order) else index

    section["schema"] = normalize_schema(section.get("schema"))
    section["clipOrder"] = normalize_clip_order(section.get("clipOrder"))
    return section


def default_sections(export_base: str = EXPORT_BASE) -> list[Section]:
    """The sections a fresh data directory starts with."""
    return [
        normalize_section({"id": section_id, "label": label, "order": i}, i, export_base)
        for i, (section_id, label) in enumerate(DEFAULT_SECTIONS)
    ]


def normalize_sections(raw: Any, export_base: str = EXPORT_BASE) -> list[Section]:
    """Normalize a persisted section list and sort it by display order.

    When several entries share an id, the first one wins.
    """
    if not isinstance(raw, list):
        return default_sections(export_base)
    sections: list[Section] = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        section = normalize_section(item, i, export_base)
        if section["id"] in seen:
            continue
        seen.add(section["id"])
        sections.append(section)
    return sorted(sections, key=lambda s: s["order"])


def normalize_clips(raw: Any) -> list[Clip]:
    """Normalize a persisted clip list, dropping entries that are not objects."""
    if not isinstance(raw, list):
        return []
    return [normalize_clip(item) for item in raw if isinstance(item, dict)]
