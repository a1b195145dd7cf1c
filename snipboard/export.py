"""
Best-effort mirroring of clips into a section's export folder.

The mirror is a convenience copy for other tools to pick up. It is never the
source of truth: failures are logged and swallowed, and the caller's save
has already succeeded by the time the mirror runs.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from .file_store import write_json
from .normalize import sanitize_filename
from .types import Clip, Section, now_ms

logger = logging.getLogger(__name__)

EXPORT_FIELDS = (
    "id",
    "sectionId",
    "title",
    "text",
    "notes",
    "tags",
    "sourceUrl",
    "sourceTitle",
    "capturedAt",
    "screenshots",
    "icon",
    "color",
)


def clip_to_export(clip: Clip) -> dict:
    """Canonical subset of a clip written to the export folder.

    icon and color are always present, even when unset.
    """
    legacy_color = clip.get("appearanceColor", clip.get("userColor"))
    return {
        "id": clip.get("id"),
        "sectionId": clip.get("sectionId"),
        "title": clip.get("title") or "",
        "text": clip.get("text") or "",
        "notes": clip.get("notes") or "",
        "tags": clip.get("tags") or [],
        "sourceUrl": clip.get("sourceUrl") or "",
        "sourceTitle": clip.get("sourceTitle") or "",
        "capturedAt": clip.get("capturedAt") or now_ms(),
        "screenshots": clip.get("screenshots") or [],
        "icon": clip.get("icon"),
        "color": clip["color"] if "color" in clip else legacy_color,
    }


def export_filename(section_id: str, clip_id: str) -> str:
    return f"{sanitize_filename(section_id)}_{sanitize_filename(clip_id)}.json"


class ExportMirror:
    """Writes clip mirrors below each section's configured export path."""

    def __init__(self, export_root: Optional[Path] = None):
        """
        Args:
            export_root: Directory relative export paths are resolved against
        """
        self._export_root = export_root

    def export_dir(self, section: Section) -> Optional[Path]:
        """Resolved export folder of a section, or None when mirroring is off."""
        raw = section.get("exportPath") or ""
        if not raw:
            return None
        path = Path(raw).expanduser()
        if not path.is_absolute() and self._export_root is not None:
            path = self._export_root / path
        return path

    def mirror(self, clip: Clip, sections: Iterable[Section]) -> Optional[Path]:
        """
        Write a clip's mirror file, replacing any earlier mirror of it.

        Returns:
            Path written, or None if skipped or failed
        """
        try:
            section_id = clip.get("sectionId")
            clip_id = clip.get("id")
            if not section_id or not clip_id:
                return None
            section = next((s for s in sections if s.get("id") == section_id), None)
            if section is None:
                logger.debug("Section %s not found, skipping mirror of %s", section_id, clip_id)
                return None
            folder = self.export_dir(section)
            if folder is None:
                logger.debug("Export folder not set for section %s, skipping mirror", section_id)
                return None
            target = folder / export_filename(section_id, clip_id)
            if not write_json(target, clip_to_export(clip)):
                return None
            logger.info("Mirrored clip %s to %s", clip_id, target)
            return target
        except Exception as e:
            logger.error("Failed to mirror clip to export folder: %s", e)
            return None

    def mirror_path(self, section_id: Optional[str], clip_id: Optional[str], sections: Iterable[Section]) -> Optional[Path]:
        """Where a clip's mirror lives for a given section, or None when that section has none."""
        if not section_id or not clip_id:
            return None
        section = next((s for s in sections if s.get("id") == section_id), None)
        if section is None:
            return None
        folder = self.export_dir(section)
        if folder is None:
            return None
        return folder / export_filename(section_id, clip_id)

    def remove_stale(self, clip: Clip, previous_section_id: Optional[str], sections: Iterable[Section]) -> bool:
        """
        Delete the mirror a clip left behind in its previous section's folder.

        Returns:
            True if a file was removed
        """
        sections = list(sections)
        clip_id = clip.get("id")
        old = self.mirror_path(previous_section_id, clip_id, sections)
        if old is None or old == self.mirror_path(clip.get("sectionId"), clip_id, sections):
            return False
        try:
            old.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Failed to remove old clip export file %s: %s", old, e)
            return False
        logger.info("Removed stale mirror %s", old)
        return True
