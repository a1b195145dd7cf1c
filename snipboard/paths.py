"""
Filesystem layout of a SnipBoard data directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path

CLIPS_FILENAME = "clips.json"
SECTIONS_FILENAME = "sections.json"
TABS_FILENAME = "tabs.json"
CONFIG_DOC_FILENAME = "config.json"
SCREENSHOTS_DIRNAME = "screenshots"
SECTION_DIRNAME = "sections"


def get_default_data_dir() -> Path:
    """Data directory from SNIPBOARD_DATA_DIR, else ~/.snipboard."""
    env = os.environ.get("SNIPBOARD_DATA_DIR")
    if env:
        return Path(env).expanduser().resolve()
    return Path.home() / ".snipboard"


@dataclass(frozen=True)
class DataPaths:
    """Canonical locations of every persisted document."""
    data_dir: Path

    @property
    def clips_file(self) -> Path:
        return self.data_dir / CLIPS_FILENAME

    @property
    def sections_file(self) -> Path:
        return self.data_dir / SECTIONS_FILENAME

    @property
    def tabs_file(self) -> Path:
        return self.data_dir / TABS_FILENAME

    @property
    def config_file(self) -> Path:
        """Free-form JSON configuration document (UI preferences)."""
        return self.data_dir / CONFIG_DOC_FILENAME

    @property
    def screenshots_dir(self) -> Path:
        return self.data_dir / SCREENSHOTS_DIRNAME

    @property
    def section_dir(self) -> Path:
        return self.data_dir / SECTION_DIRNAME

    @property
    def export_root(self) -> Path:
        """Directory that relative export paths are resolved against."""
        return self.data_dir

    def documents(self) -> dict[str, Path]:
        """Document file name -> canonical path, for migration."""
        return {
            CLIPS_FILENAME: self.clips_file,
            SECTIONS_FILENAME: self.sections_file,
            TABS_FILENAME: self.tabs_file,
            CONFIG_DOC_FILENAME: self.config_file,
        }

    def ensure(self) -> None:
        """Create the data directory and its subdirectories."""
        for d in (self.data_dir, self.screenshots_dir, self.section_dir):
            d.mkdir(parents=True, exist_ok=True)
