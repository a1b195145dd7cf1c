"""
In-process application state and its persistence.

One SnipStore is created per process and handed to every component that
needs it (registries, export mirror, HTTP bridge). It is loaded once at
startup and every mutating operation writes the affected document back
before returning.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

from .file_store import read_json, write_json
from .migrate import migrate_data_files
from .normalize import normalize_clips, normalize_sections
from .paths import DataPaths
from .types import DEFAULT_SECTION_ID, EXPORT_BASE, Clip, Section, generate_clip_id

logger = logging.getLogger(__name__)


def build_search_index(clips: Iterable[Clip]) -> dict[str, str]:
    """Map clip id -> lowercase "title text notes tags" for substring search."""
    index: dict[str, str] = {}
    for clip in clips:
        tags = clip.get("tags")
        tags_text = " ".join(str(t) for t in tags) if isinstance(tags, list) else ""
        entry = f"{clip.get('title') or ''} {clip.get('text') or ''} {clip.get('notes') or ''} {tags_text}"
        index[clip.get("id")] = entry.lower()
    return index


@dataclass
class SnipStore:
    """
    Loaded sections and clips plus the transient UI state around them.

    Attributes:
        paths: Locations of the persisted documents
        sections: Normalized sections, in display order
        clips: Normalized clips, in insertion order
        active_section_id: Section currently shown ("all" for every clip), inbox on a fresh directory
        selected_clip_ids: Current multi-selection
        search_text: Free-text filter
        tag_filter: Comma-separated tag filter
        search_index: Derived from clips, rebuilt whenever they change
    """
    paths: DataPaths
    export_base: str = EXPORT_BASE
    legacy_dirs: list[Path] = field(default_factory=list)
    legacy_base_dir: Optional[Path] = None

    sections: list[Section] = field(default_factory=list)
    clips: list[Clip] = field(default_factory=list)
    active_section_id: str = DEFAULT_SECTION_ID
    selected_clip_ids: set[str] = field(default_factory=set)
    search_text: str = ""
    tag_filter: str = ""
    search_index: dict[str, str] = field(default_factory=dict)

    def load(self) -> "SnipStore":
        """Migrate legacy files, then read and normalize every document."""
        migrate_data_files(self.paths, self.legacy_dirs, self.legacy_base_dir)

        tabs_doc = read_json(self.paths.tabs_file, None)
        raw_sections: Any = None
        active = DEFAULT_SECTION_ID
        if isinstance(tabs_doc, list):
            raw_sections = tabs_doc
        elif isinstance(tabs_doc, dict):
            if isinstance(tabs_doc.get("tabs"), list) and tabs_doc["tabs"]:
                raw_sections = tabs_doc["tabs"]
            if isinstance(tabs_doc.get("activeTabId"), str) and tabs_doc["activeTabId"]:
                active = tabs_doc["activeTabId"]
        if raw_sections is None:
            raw_sections = read_json(self.paths.sections_file, None)

        self.sections = normalize_sections(raw_sections, self.export_base)
        self.active_section_id = active
        self.clips = normalize_clips(read_json(self.paths.clips_file, []))
        if self._assign_missing_clip_ids():
            self.save_clips()
        else:
            self.rebuild_search_index()
        logger.debug(
            "Loaded %d sections and %d clips from %s",
            len(self.sections), len(self.clips), self.paths.data_dir,
        )
        return self

    def _assign_missing_clip_ids(self) -> int:
        """Give clips written without an id (or with a duplicate one) a fresh id."""
        seen: set[str] = set()
        assigned = 0
        for clip in self.clips:
            clip_id = clip.get("id")
            if not isinstance(clip_id, str) or not clip_id or clip_id in seen:
                clip["id"] = generate_clip_id()
                while clip["id"] in seen:
                    clip["id"] = generate_clip_id()
                assigned += 1
            seen.add(clip["id"])
        if assigned:
            logger.info("Assigned ids to %d clips loaded without one", assigned)
        return assigned

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save_sections(self) -> bool:
        """Write the tabs document and the sections collection."""
        tabs_ok = write_json(
            self.paths.tabs_file,
            {"tabs": self.sections, "activeTabId": self.active_section_id},
        )
        sections_ok = write_json(self.paths.sections_file, self.sections)
        return tabs_ok and sections_ok

    def save_clips(self) -> bool:
        """Write the clips collection and refresh the search index."""
        self.rebuild_search_index()
        return write_json(self.paths.clips_file, self.clips)

    def load_config_document(self) -> dict[str, Any]:
        """Free-form UI configuration (config.json)."""
        data = read_json(self.paths.config_file, {})
        return data if isinstance(data, dict) else {}

    def save_config_document(self, data: dict[str, Any]) -> bool:
        return write_json(self.paths.config_file, data)

    def rebuild_search_index(self) -> None:
        self.search_index = build_search_index(self.clips)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find_section(self, section_id: str) -> Optional[Section]:
        for section in self.sections:
            if section["id"] == section_id:
                return section
        return None

    def find_clip(self, clip_id: str) -> Optional[Clip]:
        for clip in self.clips:
            if clip.get("id") == clip_id:
                return clip
        return None

    def is_section_locked(self, section_id: Optional[str]) -> bool:
        if not section_id:
            return False
        section = self.find_section(section_id)
        return bool(section and section.get("locked"))

    def snapshot(self) -> dict[str, Any]:
        """Sections, clips and the active tab, as handed to the UI."""
        return {
            "sections": [dict(s) for s in self.sections],
            "clips": [dict(c) for c in self.clips],
            "activeTabId": self.active_section_id,
        }
