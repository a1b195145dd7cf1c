"""
Error types and error logging for SnipBoard.

Registries raise these; the HTTP bridge and CLI turn them into status codes
and messages. Full tracebacks go to a log file so users only see a clean
message.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class SnipBoardError(Exception):
    """Base class for errors reported to the caller."""

    status = 500

    def __init__(self, message: str = "", **details):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(SnipBoardError):
    """Malformed or insufficient input. Nothing was persisted."""

    status = 400


class ReservedNameError(ValidationError):
    """A section name maps to a reserved id."""


class NotFoundError(SnipBoardError):
    """Referenced section or clip id does not exist."""

    status = 404


class LockedError(SnipBoardError):
    """Operation refused because the section is locked or protected."""

    status = 409


class PersistenceError(SnipBoardError):
    """A write failed and the operation is meaningless without it."""

    status = 500


def _error_log_path() -> Path:
    """Resolve error log path, respecting SNIPBOARD_DATA_DIR."""
    data_dir = os.environ.get("SNIPBOARD_DATA_DIR")
    if data_dir:
        return Path(data_dir) / "snipboard-errors.log"
    return Path.home() / ".snipboard" / "snipboard-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name or route)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
