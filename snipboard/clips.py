"""
Clip collection: save (create or merge), delete, filter and sort.

Saving writes the whole clip collection and then mirrors the clip to its
section's export folder. Deleting is refused per clip for clips that live in
a locked section.
"""

import locale
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .errors import LockedError, NotFoundError, ValidationError
from .export import ExportMirror
from .normalize import normalize_clip
from .screenshots import delete_screenshot_file
from .store import SnipStore, build_search_index
from .types import (
    ALL_SECTIONS_ID,
    DEFAULT_SECTION_ID,
    SORT_MODES,
    Clip,
    Section,
    generate_clip_id,
    now_ms,
)

logger = logging.getLogger(__name__)

# Most specific timestamp first
_TIMESTAMP_KEYS = ("updatedAt", "capturedAt", "createdAt")

__all__ = [
    "ClipRegistry",
    "DeleteResult",
    "build_search_index",
    "filter_clips",
    "sort_clips",
]


@dataclass
class DeleteResult:
    """Outcome of a multi-clip delete. Each id lands in exactly one list."""
    deleted: list[str] = field(default_factory=list)
    blocked: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def _parse_tag_filters(tag_filters: Any) -> list[str]:
    if isinstance(tag_filters, str):
        items = tag_filters.split(",")
    elif isinstance(tag_filters, (list, tuple)):
        items = [str(t) for t in tag_filters]
    else:
        return []
    return [t.strip().lower() for t in items if t and t.strip()]


def filter_clips(
    clips: Iterable[Clip],
    search_index: dict[str, str],
    section_id: Optional[str] = ALL_SECTIONS_ID,
    search_text: str = "",
    tag_filters: Any = "",
) -> list[Clip]:
    """
    Select clips for display.

    Args:
        section_id: "all" (or empty) for every clip, else exact sectionId match
        search_text: Case-insensitive substring matched against the search index
        tag_filters: Comma-separated tags; a clip must carry every one of them
    """
    needle = (search_text or "").strip().lower()
    wanted_tags = _parse_tag_filters(tag_filters)
    result = []
    for clip in clips:
        if section_id and section_id != ALL_SECTIONS_ID and clip.get("sectionId") != section_id:
            continue
        if needle:
            haystack = search_index.get(clip.get("id"))
            if haystack is None:
                haystack = build_search_index([clip]).get(clip.get("id"), "")
            if needle not in haystack:
                continue
        if wanted_tags:
            clip_tags = {str(t).strip().lower() for t in clip.get("tags") or []}
            if not all(t in clip_tags for t in wanted_tags):
                continue
        result.append(clip)
    return result


def _timestamp(clip: Clip) -> float:
    for key in _TIMESTAMP_KEYS:
        value = clip.get(key)
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0
    return 0.0


def _title_key(clip: Clip) -> str:
    title = str(clip.get("title") or "").casefold()
    try:
        return locale.strxfrm(title)
    except (ValueError, OSError):
        return title


def sort_clips(clips: Iterable[Clip], mode: str = "default", section: Optional[Section] = None) -> list[Clip]:
    """
    Sort clips for display.

    Modes:
        newest / oldest: by updatedAt, else capturedAt, else createdAt (missing = 0)
        title: locale-aware, case-insensitive
        default: the section's manual clipOrder; clips not listed follow
            in their original relative order
    """
    clips = list(clips)
    if mode == "newest":
        return sorted(clips, key=_timestamp, reverse=True)
    if mode == "oldest":
        return sorted(clips, key=_timestamp)
    if mode == "title":
        return sorted(clips, key=_title_key)

    clip_order = section.get("clipOrder") if section else None
    if not clip_order:
        return clips
    rank = {clip_id: i for i, clip_id in enumerate(clip_order)}
    unlisted = len(rank)
    return sorted(clips, key=lambda c: rank.get(c.get("id"), unlisted))


class ClipRegistry:
    """Owns the list of clips held by a SnipStore."""

    def __init__(self, store: SnipStore, mirror: Optional[ExportMirror] = None):
        self._store = store
        self._mirror = mirror or ExportMirror(store.paths.export_root)

    @property
    def clips(self) -> list[Clip]:
        return self._store.clips

    def get(self, clip_id: str) -> Clip:
        clip = self._store.find_clip(clip_id)
        if clip is None:
            raise NotFoundError(f"Clip not found: {clip_id}", clip_id=clip_id)
        return clip

    def _persist(self) -> None:
        if not self._store.save_clips():
            logger.warning("Clip changes kept in memory but not written to disk")

    # -------------------------------------------------------------------------
    # Write operations
    # -------------------------------------------------------------------------

    def upsert_clip(self, partial: dict[str, Any], *, mirror: bool = True) -> Clip:
        """
        Create a clip, or merge into the existing one with the same id.

        Merging is a shallow overwrite: every key in ``partial`` replaces the
        stored value, keys not in ``partial`` are kept. The id never changes.
        A new clip always gets a freshly generated id.
        Moving a clip to another section removes its mirror from the old
        section's export folder.

        Returns:
            The stored clip
        """
        if not isinstance(partial, dict):
            raise ValidationError("Clip must be an object")

        existing = self._store.find_clip(partial.get("id")) if partial.get("id") else None
        previous_section_id = existing.get("sectionId") if existing is not None else None
        if existing is not None:
            clip_id = existing["id"]
            existing.update({k: v for k, v in partial.items() if k != "id"})
            repaired = normalize_clip(existing)
            existing.clear()
            existing.update(repaired)
            existing["id"] = clip_id
            existing["updatedAt"] = now_ms()
            clip = existing
            logger.info("Updated clip %s", clip_id)
        else:
            clip = normalize_clip({k: v for k, v in partial.items() if k != "id"})
            clip["id"] = generate_clip_id()
            if not clip.get("sectionId"):
                clip["sectionId"] = DEFAULT_SECTION_ID
            now = now_ms()
            clip.setdefault("createdAt", now)
            if not clip.get("capturedAt"):
                clip["capturedAt"] = now
            self._store.clips.append(clip)
            logger.info("Created clip %s in section %s", clip["id"], clip["sectionId"])

        self._persist()
        if mirror:
            self._mirror.mirror(clip, self._store.sections)
        if previous_section_id:
            self._mirror.remove_stale(clip, previous_section_id, self._store.sections)
        return clip

    def delete_clip(self, clip_id: str) -> Clip:
        """
        Remove one clip.

        Raises:
            NotFoundError: unknown id
            LockedError: the clip's section is locked
        """
        clip = self.get(clip_id)
        if self._store.is_section_locked(clip.get("sectionId")):
            raise LockedError(
                f"Clip {clip_id} is in locked section '{clip.get('sectionId')}'",
                clip_id=clip_id,
            )
        self._store.clips.remove(clip)
        self._store.selected_clip_ids.discard(clip_id)
        self._persist()
        logger.info("Deleted clip %s", clip_id)
        return clip

    def delete_clips(self, ids: Iterable[str]) -> DeleteResult:
        """Delete several clips. Locked ones are skipped, the rest still go."""
        if isinstance(ids, str):
            ids = [ids]
        result = DeleteResult()
        wanted = list(dict.fromkeys(i for i in (ids or []) if i))
        for clip_id in wanted:
            clip = self._store.find_clip(clip_id)
            if clip is None:
                result.missing.append(clip_id)
            elif self._store.is_section_locked(clip.get("sectionId")):
                result.blocked.append(clip_id)
            else:
                self._store.clips.remove(clip)
                self._store.selected_clip_ids.discard(clip_id)
                result.deleted.append(clip_id)
        if result.deleted:
            self._persist()
            logger.info("Deleted %d clips (%d blocked)", len(result.deleted), len(result.blocked))
        return result

    def remove_screenshot(self, clip_id: str, filename: str) -> Clip:
        """Drop a screenshot reference from a clip and delete the image file."""
        clip = self.get(clip_id)
        delete_screenshot_file(self._store.paths.screenshots_dir, filename)
        clip["screenshots"] = [s for s in clip.get("screenshots") or [] if s != filename]
        self._persist()
        return clip

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    def filter_clips(
        self,
        section_id: Optional[str] = ALL_SECTIONS_ID,
        search_text: str = "",
        tag_filters: Any = "",
    ) -> list[Clip]:
        return filter_clips(
            self._store.clips, self._store.search_index,
            section_id, search_text, tag_filters,
        )

    def sort_clips(self, clips: Iterable[Clip], mode: str = "default", section: Optional[Section] = None) -> list[Clip]:
        if mode not in SORT_MODES:
            mode = "default"
        return sort_clips(clips, mode, section)

    def visible_clips(self, sort_mode: str = "default") -> list[Clip]:
        """Clips for the store's active section, search text and tag filter."""
        store = self._store
        clips = self.filter_clips(store.active_section_id, store.search_text, store.tag_filter)
        return self.sort_clips(clips, sort_mode, store.find_section(store.active_section_id))
