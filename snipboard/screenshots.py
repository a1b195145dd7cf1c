"""
Screenshot files referenced by clips.

Images arrive as base64 data URLs (from the screen-capture collaborator or
the editor) and are stored as plain files in the screenshots directory.
Clips only hold the file names.
"""

import base64
import binascii
import logging
import re
import secrets
from pathlib import Path
from typing import Iterable, Optional

from .errors import ValidationError
from .normalize import sanitize_filename
from .types import now_ms

logger = logging.getLogger(__name__)

MAX_SCREENSHOT_BYTES = 10 * 1024 * 1024  # 10 MB
ALLOWED_IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/jpg"})

_DATA_URL_HEADER_RE = re.compile(r"^data:([^;]+);base64$", re.IGNORECASE)


def _fallback_name() -> str:
    return f"shot-{now_ms()}-{secrets.token_hex(6)}.png"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """
    Split a base64 image data URL into (mime type, bytes).

    Raises:
        ValidationError: not a data URL, unsupported type, or too large
    """
    if not isinstance(data_url, str) or "," not in data_url:
        raise ValidationError("Invalid screenshot payload: malformed data URL")
    header, payload = data_url.split(",", 1)
    match = _DATA_URL_HEADER_RE.match(header.strip())
    mime = match.group(1).lower() if match else ""
    if mime not in ALLOWED_IMAGE_MIME_TYPES:
        raise ValidationError("Invalid screenshot payload: unsupported image type")
    padding = 2 if payload.endswith("==") else 1 if payload.endswith("=") else 0
    estimated = (len(payload) * 3) // 4 - padding
    if estimated <= 0 or estimated > MAX_SCREENSHOT_BYTES:
        raise ValidationError("Invalid screenshot payload: file too large or empty")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid screenshot payload: {e}") from e
    return mime, data


def save_screenshot(screenshots_dir: Path, data_url: str, filename: Optional[str] = None) -> Path:
    """Decode and store an image, returning the written path."""
    _, data = decode_data_url(data_url)
    raw_name = filename.strip() if isinstance(filename, str) and filename.strip() else _fallback_name()
    name = sanitize_filename(raw_name) or _fallback_name()
    screenshots_dir.mkdir(parents=True, exist_ok=True)
    path = screenshots_dir / name
    path.write_bytes(data)
    logger.info("Saved screenshot %s (%d bytes)", name, len(data))
    return path


def _check_name(filename: str) -> str:
    name = (filename or "").strip()
    if not name or ".." in name or "/" in name or "\\" in name or name.startswith("."):
        raise ValidationError("Invalid screenshot filename")
    return name


def resolve_screenshot(filename: str, directories: Iterable[Path]) -> Optional[Path]:
    """
    Locate a stored screenshot by file name.

    Directories are searched in order (current location first, then any
    legacy location).

    Raises:
        ValidationError: the name tries to leave the screenshots directory
    """
    name = _check_name(filename)
    for directory in directories:
        base = Path(directory).resolve()
        candidate = (base / name).resolve()
        if candidate.parent != base:
            raise ValidationError("Invalid screenshot filename")
        if candidate.is_file():
            return candidate
    return None


def delete_screenshot_file(screenshots_dir: Path, filename: str) -> bool:
    """Delete a stored screenshot. A missing file is not an error."""
    name = _check_name(filename)
    path = screenshots_dir / name
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Failed to delete screenshot file %s: %s", path, e)
        return False
