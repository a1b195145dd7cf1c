"""
Section (tab) lifecycle: create, rename, lock, style, export path, schema,
ordering and per-section clip ordering.

Every operation mutates the store's section list in place and writes it back
before returning. Unknown ids raise NotFoundError without touching anything.
"""

import logging
import secrets
from typing import Any, Iterable, Optional

from .errors import (
    LockedError,
    NotFoundError,
    PersistenceError,
    ReservedNameError,
    ValidationError,
)
from .normalize import (
    normalize_clip_order,
    normalize_export_path,
    normalize_schema,
    normalize_section,
    slugify,
)
from .store import SnipStore
from .types import (
    ALL_SECTIONS_ID,
    DEFAULT_SCHEMA,
    PROTECTED_SECTION_IDS,
    Section,
    is_reserved_section_id,
)

logger = logging.getLogger(__name__)

DEFAULT_SECTION_NAME = "Section"


class SectionRegistry:
    """Owns the list of sections held by a SnipStore."""

    def __init__(self, store: SnipStore):
        self._store = store

    @property
    def sections(self) -> list[Section]:
        return self._store.sections

    def get(self, section_id: str) -> Section:
        """Return a section or raise NotFoundError."""
        section = self._store.find_section(section_id)
        if section is None:
            raise NotFoundError(f"Section not found: {section_id}", section_id=section_id)
        return section

    def _persist(self) -> None:
        if not self._store.save_sections():
            logger.warning("Section changes kept in memory but not written to disk")

    def _resequence(self) -> None:
        for i, section in enumerate(self._store.sections):
            section["order"] = i

    # -------------------------------------------------------------------------
    # Create / delete
    # -------------------------------------------------------------------------

    def create_section(self, name: Any) -> Section:
        """
        Create and persist a new section.

        Raises:
            ReservedNameError: the derived id is reserved
            PersistenceError: the section could not be written
        """
        label = str(name).strip() if name is not None else ""
        label = label or DEFAULT_SECTION_NAME
        section_id = slugify(label)
        if is_reserved_section_id(section_id):
            raise ReservedNameError(
                f"'{label}' is a reserved name", section_id=section_id,
            )
        if self._store.find_section(section_id) is not None:
            section_id = f"{section_id}-{secrets.token_hex(2)}"

        next_order = max((s["order"] for s in self.sections), default=-1) + 1
        section = normalize_section(
            {
                "id": section_id,
                "label": label,
                "locked": False,
                "exportPath": "",
                "color": "",
                "icon": "",
                "order": next_order,
                "schema": list(DEFAULT_SCHEMA),
                "clipOrder": [],
            },
            len(self.sections),
            self._store.export_base,
        )
        self.sections.append(section)
        if not self._store.save_sections():
            self.sections.remove(section)
            raise PersistenceError(f"Could not save new section '{label}'")
        logger.info("Created section %s", section_id)
        return section

    def delete_section(self, section_id: str) -> Section:
        """
        Remove a section. Clips that reference it are left alone.

        Raises:
            NotFoundError: unknown id
            LockedError: section is locked or protected
        """
        section = self.get(section_id)
        if section.get("locked"):
            raise LockedError(f"Section '{section['label']}' is locked", section_id=section_id)
        if section_id.lower() in PROTECTED_SECTION_IDS:
            raise LockedError(f"Cannot delete protected section '{section_id}'", section_id=section_id)
        self.sections.remove(section)
        self._resequence()
        if self._store.active_section_id == section_id:
            self._store.active_section_id = ALL_SECTIONS_ID
        self._persist()
        logger.info("Deleted section %s", section_id)
        return section

    # -------------------------------------------------------------------------
    # Field updates
    # -------------------------------------------------------------------------

    def rename_section(self, section_id: str, name: Any) -> Section:
        section = self.get(section_id)
        label = str(name).strip() if name is not None else ""
        if not label:
            raise ValidationError("Invalid name")
        section["label"] = label
        section["name"] = label
        self._persist()
        return section

    def set_locked(self, section_id: str, locked: bool) -> Section:
        section = self.get(section_id)
        section["locked"] = bool(locked)
        self._persist()
        return section

    def set_color(self, section_id: str, color: Optional[str]) -> Section:
        section = self.get(section_id)
        section["color"] = color or ""
        self._persist()
        return section

    def set_icon(self, section_id: str, icon: Optional[str]) -> Section:
        section = self.get(section_id)
        section["icon"] = icon or ""
        self._persist()
        return section

    def set_export_path(self, section_id: str, path: Optional[str]) -> Section:
        """Set the mirror folder; empty disables mirroring."""
        section = self.get(section_id)
        export_path = normalize_export_path(
            str(path) if path else "", section["label"], self._store.export_base,
        )
        section["exportPath"] = export_path
        section["exportFolder"] = export_path
        self._persist()
        return section

    def set_schema(self, section_id: str, fields: Iterable[str]) -> Section:
        section = self.get(section_id)
        section["schema"] = normalize_schema(list(fields) if fields is not None else None)
        self._persist()
        return section

    def update_section(self, section_id: str, patch: dict[str, Any]) -> Section:
        """Apply several field changes in a single write."""
        section = self.get(section_id)
        if not isinstance(patch, dict):
            raise ValidationError("Section patch must be an object")
        name = patch.get("name", patch.get("label"))
        if name is not None:
            label = str(name).strip()
            if not label:
                raise ValidationError("Invalid name")
            section["label"] = section["name"] = label
        if "locked" in patch:
            section["locked"] = bool(patch["locked"])
        if "color" in patch:
            section["color"] = patch["color"] or ""
        if "icon" in patch:
            section["icon"] = patch["icon"] or ""
        if "exportPath" in patch or "exportFolder" in patch:
            raw = patch.get("exportPath", patch.get("exportFolder")) or ""
            export_path = normalize_export_path(str(raw), section["label"], self._store.export_base)
            section["exportPath"] = section["exportFolder"] = export_path
        if "schema" in patch:
            section["schema"] = normalize_schema(patch["schema"])
        self._persist()
        return section

    def set_active_section(self, section_id: str) -> str:
        if section_id != ALL_SECTIONS_ID:
            self.get(section_id)
        self._store.active_section_id = section_id
        self._persist()
        return section_id

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def reorder_sections(self, source_id: str, target_id: Optional[str]) -> list[Section]:
        """
        Move a section to just before another one.

        An unknown target moves the source to the end. Moving a section
        before itself leaves the order unchanged. Order values are
        re-sequenced to 0..n-1.
        """
        source = self.get(source_id)
        sections = self.sections
        if target_id == source_id:
            self._resequence()
            self._persist()
            return sections
        sections.remove(source)
        target_index = next(
            (i for i, s in enumerate(sections) if s["id"] == target_id), len(sections),
        )
        sections.insert(target_index, source)
        self._resequence()
        self._persist()
        return sections

    def apply_section_order(self, ordered_ids: Iterable[str]) -> list[Section]:
        """Bulk reorder. Unknown ids are ignored, unlisted sections keep their relative order at the end."""
        remaining = list(self.sections)
        by_id = {s["id"]: s for s in remaining}
        ordered: list[Section] = []
        for section_id in ordered_ids or []:
            section = by_id.pop(section_id, None)
            if section is not None:
                ordered.append(section)
        ordered.extend(s for s in remaining if s["id"] in by_id)
        self.sections[:] = ordered
        self._resequence()
        self._persist()
        return self.sections

    def displayed_clip_ids(self, section_id: str) -> list[str]:
        """Clip ids of a section in manual order: listed first, then by insertion."""
        section = self.get(section_id)
        in_section = [c["id"] for c in self._store.clips if c.get("sectionId") == section_id]
        present = set(in_section)
        listed = [cid for cid in section.get("clipOrder", []) if cid in present]
        listed_set = set(listed)
        return listed + [cid for cid in in_section if cid not in listed_set]

    def reorder_clips_within_section(
        self,
        section_id: str,
        clip_id: str,
        before_clip_id: Optional[str] = None,
    ) -> list[str]:
        """Move a clip before another within one section's manual order.

        Only that section's clipOrder changes. A missing or unknown
        ``before_clip_id`` moves the clip to the end.
        """
        section = self.get(section_id)
        if self._store.find_clip(clip_id) is None:
            raise NotFoundError(f"Clip not found: {clip_id}", clip_id=clip_id)
        order = [cid for cid in self.displayed_clip_ids(section_id) if cid != clip_id]
        index = order.index(before_clip_id) if before_clip_id in order else len(order)
        order.insert(index, clip_id)
        section["clipOrder"] = order
        self._persist()
        return order

    def set_clip_order(self, section_id: str, ordered_clip_ids: Iterable[str]) -> list[str]:
        section = self.get(section_id)
        section["clipOrder"] = normalize_clip_order(list(ordered_clip_ids or []))
        self._persist()
        return section["clipOrder"]
