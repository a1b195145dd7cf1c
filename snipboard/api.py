"""
Core API for SnipBoard.

SnipBoard owns the single store of a process and the registries built on
it. The UI and the HTTP bridge both go through one SnipBoard instance, so
they never hold diverging copies of the data.

Example:
    board = SnipBoard()
    section = board.create_section("Prompts")
    board.save_clip({"title": "Greeting", "text": "hello", "sectionId": section["id"]})
"""

import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from .clips import ClipRegistry, DeleteResult
from .config import AppConfig, load_config, save_config
from .export import ExportMirror
from .paths import DataPaths, get_default_data_dir
from .screenshots import save_screenshot
from .sections import SectionRegistry
from .store import SnipStore
from .types import Clip, Section

logger = logging.getLogger(__name__)

# Native collaborators supplied by the desktop shell
FolderPicker = Callable[[], Optional[str]]
ScreenCapturer = Callable[[], Optional[str]]


class SnipBoard:
    """
    Clip and section manager backed by a JSON data directory.

    Registry errors (ValidationError, NotFoundError, LockedError,
    PersistenceError) propagate to the caller unchanged.
    """

    def __init__(
        self,
        data_dir: Optional[str | Path] = None,
        *,
        config: Optional[AppConfig] = None,
        folder_picker: Optional[FolderPicker] = None,
        screen_capturer: Optional[ScreenCapturer] = None,
    ) -> None:
        """
        Open (or initialize) a data directory.

        Args:
            data_dir: Data directory. Uses SNIPBOARD_DATA_DIR or ~/.snipboard if not given.
            config: Pre-loaded AppConfig (skips reading snipboard.toml)
            folder_picker: Returns a folder chosen by the user, or None if cancelled
            screen_capturer: Returns a PNG data URL of the screen, or None
        """
        if config is not None:
            self._config = config
            self._data_dir = Path(config.path)
        else:
            self._data_dir = Path(data_dir).expanduser().resolve() if data_dir else get_default_data_dir()
            if (self._data_dir / "snipboard.toml").exists():
                self._config = load_config(self._data_dir)
            else:
                self._config = AppConfig(path=self._data_dir)

        self._paths = DataPaths(self._data_dir)
        self._store = SnipStore(
            paths=self._paths,
            export_base=self._config.export_base,
            legacy_dirs=list(self._config.legacy_dirs),
            legacy_base_dir=self._config.legacy_base_dir,
        ).load()

        # Written after load so a legacy data root can still be copied in
        if not self._config.exists():
            try:
                save_config(self._config)
            except (OSError, RuntimeError) as e:
                logger.warning("Could not write %s: %s", self._config.config_path, e)

        from .logging_config import configure_ops_log
        self._ops_log_handler = configure_ops_log(self._data_dir)

        self._mirror = ExportMirror(self._paths.export_root)
        self.sections = SectionRegistry(self._store)
        self.clips = ClipRegistry(self._store, self._mirror)
        self._folder_picker = folder_picker
        self._screen_capturer = screen_capturer

    @property
    def store(self) -> SnipStore:
        return self._store

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def paths(self) -> DataPaths:
        return self._paths

    def close(self) -> None:
        """Detach the operations log handler."""
        if self._ops_log_handler is not None:
            logging.getLogger("snipboard").removeHandler(self._ops_log_handler)
            self._ops_log_handler.close()
            self._ops_log_handler = None

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_data(self) -> dict[str, Any]:
        """All sections and clips plus the active tab id."""
        return self._store.snapshot()

    def list_clips(
        self,
        section_id: str = "all",
        search_text: str = "",
        tag_filters: str = "",
        sort_mode: str = "default",
    ) -> list[Clip]:
        clips = self.clips.filter_clips(section_id, search_text, tag_filters)
        return self.clips.sort_clips(clips, sort_mode, self._store.find_section(section_id))

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def create_section(self, name: str) -> Section:
        return self.sections.create_section(name)

    def rename_section(self, section_id: str, name: str) -> Section:
        return self.sections.rename_section(section_id, name)

    def delete_section(self, section_id: str) -> Section:
        return self.sections.delete_section(section_id)

    def set_section_locked(self, section_id: str, locked: bool) -> Section:
        return self.sections.set_locked(section_id, locked)

    def set_section_color(self, section_id: str, color: Optional[str]) -> Section:
        return self.sections.set_color(section_id, color)

    def set_section_icon(self, section_id: str, icon: Optional[str]) -> Section:
        return self.sections.set_icon(section_id, icon)

    def set_section_export_path(self, section_id: str, path: Optional[str]) -> Section:
        return self.sections.set_export_path(section_id, path)

    def set_section_schema(self, section_id: str, fields: Iterable[str]) -> Section:
        return self.sections.set_schema(section_id, fields)

    def update_section(self, section_id: str, patch: dict[str, Any]) -> Section:
        return self.sections.update_section(section_id, patch)

    def reorder_sections(self, source_id: str, target_id: Optional[str]) -> list[Section]:
        return self.sections.reorder_sections(source_id, target_id)

    def save_section_order(self, ordered_ids: Iterable[str]) -> list[Section]:
        return self.sections.apply_section_order(ordered_ids)

    def set_active_section(self, section_id: str) -> str:
        return self.sections.set_active_section(section_id)

    # -------------------------------------------------------------------------
    # Clips
    # -------------------------------------------------------------------------

    def save_clip(self, clip: dict[str, Any], *, mirror: bool = True) -> Clip:
        return self.clips.upsert_clip(clip, mirror=mirror)

    def delete_clip(self, clip_id: str) -> Clip:
        return self.clips.delete_clip(clip_id)

    def delete_clips(self, ids: Iterable[str]) -> DeleteResult:
        return self.clips.delete_clips(ids)

    def reorder_clips(self, section_id: str, clip_id: str, before_clip_id: Optional[str] = None) -> list[str]:
        return self.sections.reorder_clips_within_section(section_id, clip_id, before_clip_id)

    def set_clip_order(self, section_id: str, ordered_clip_ids: Iterable[str]) -> list[str]:
        return self.sections.set_clip_order(section_id, ordered_clip_ids)

    # -------------------------------------------------------------------------
    # Screenshots and native collaborators
    # -------------------------------------------------------------------------

    def save_screenshot(self, data_url: str, filename: Optional[str] = None) -> str:
        """Store an image data URL, returning the stored file name."""
        return save_screenshot(self._paths.screenshots_dir, data_url, filename).name

    def remove_screenshot(self, clip_id: str, filename: str) -> Clip:
        return self.clips.remove_screenshot(clip_id, filename)

    def capture_screenshot(self) -> Optional[str]:
        """Capture the screen via the native collaborator and store it."""
        if self._screen_capturer is None:
            logger.info("No screen capturer configured")
            return None
        data_url = self._screen_capturer()
        if not data_url:
            return None
        return self.save_screenshot(data_url)

    def choose_export_folder(self) -> Optional[str]:
        """Ask the native folder picker for a directory; None if cancelled."""
        if self._folder_picker is None:
            return None
        chosen = self._folder_picker()
        return str(chosen) if chosen else None
