"""
JSON document storage.

Each concern (clips, sections, tabs, config) is one JSON file that is read
whole and rewritten whole. Reads never raise; writes replace the file
atomically and report failure through the return value.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def read_json(path: Path, fallback: Any) -> Any:
    """
    Read a JSON document.

    Returns ``fallback`` if the file is missing, empty, unreadable or not
    valid JSON. Failures are logged, never raised.
    """
    path = Path(path)
    try:
        if not path.exists():
            return fallback
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to read %s: %s", path, e)
        return fallback
    if not raw.strip():
        return fallback
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.warning("Failed to parse JSON in %s: %s", path, e)
        return fallback


def write_json(path: Path, value: Any) -> bool:
    """
    Write a JSON document, replacing any previous version.

    The document is written to a temp file next to the target and moved
    into place, so a failed write leaves the prior version intact.

    Returns:
        True on success, False if the write failed (already logged)
    """
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(value, indent=2, ensure_ascii=False) + "\n"
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
        tmp_name = None
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error("Failed to write JSON %s: %s", path, e)
        return False
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
