"""
One-time relocation of legacy data files into the canonical data directory.

Safe to run on every startup: nothing is touched unless the legacy source
exists and the canonical destination does not. Each entry is attempted
independently; a failure is logged and the rest still run.
"""

import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional

from .paths import SCREENSHOTS_DIRNAME, DataPaths

logger = logging.getLogger(__name__)


def migrate_legacy_base_dir(legacy_base: Optional[Path], data_dir: Path) -> bool:
    """Copy a whole legacy data root if the data directory doesn't exist yet."""
    if legacy_base is None:
        return False
    try:
        if legacy_base.is_dir() and not data_dir.exists():
            data_dir.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(legacy_base, data_dir)
            logger.info("Migrated data from legacy path %s to %s", legacy_base, data_dir)
            return True
    except OSError as e:
        logger.warning("Legacy data migration failed: %s", e)
    return False


def _move(src: Path, dst: Path) -> bool:
    try:
        if src.exists() and not dst.exists():
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src), str(dst))
            logger.info("Migrated %s -> %s", src, dst)
            return True
    except OSError as e:
        logger.warning("Migration move failed: %s: %s", src, e)
    return False


def migrate_data_files(
    paths: DataPaths,
    legacy_dirs: Iterable[Path] = (),
    legacy_base: Optional[Path] = None,
) -> list[tuple[Path, Path]]:
    """
    Move legacy documents and screenshots into their canonical locations.

    Args:
        paths: Canonical data layout
        legacy_dirs: Older data directories to pull files from, in priority order
        legacy_base: Older data root copied wholesale if the data dir is absent

    Returns:
        (source, destination) pairs that were moved
    """
    migrate_legacy_base_dir(legacy_base, paths.data_dir)

    moved: list[tuple[Path, Path]] = []
    legacy_dirs = [Path(d) for d in legacy_dirs]

    for legacy in legacy_dirs:
        for filename, target in paths.documents().items():
            src = legacy / filename
            if _move(src, target):
                moved.append((src, target))

    # Screenshots before ensure(), which would create the destination
    for legacy in legacy_dirs:
        src = legacy / SCREENSHOTS_DIRNAME
        if src.is_dir() and _move(src, paths.screenshots_dir):
            moved.append((src, paths.screenshots_dir))

    try:
        paths.ensure()
    except OSError as e:
        logger.warning("Could not create data directories under %s: %s", paths.data_dir, e)
    return moved
