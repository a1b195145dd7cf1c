"""
SnipBoard: clips and sections persisted as JSON, with a local HTTP bridge
for the browser extension.

Basic usage:
    from snipboard import SnipBoard

    board = SnipBoard()
    clip = board.save_clip({"title": "Greeting", "text": "hello"})
    board.list_clips("inbox", search_text="hello")
"""

from .api import SnipBoard
from .clips import DeleteResult
from .errors import (
    LockedError,
    NotFoundError,
    PersistenceError,
    ReservedNameError,
    SnipBoardError,
    ValidationError,
)
from .types import Clip, Section

__version__ = "0.3.0"

__all__ = [
    "SnipBoard",
    "Clip",
    "Section",
    "DeleteResult",
    "SnipBoardError",
    "ValidationError",
    "ReservedNameError",
    "NotFoundError",
    "LockedError",
    "PersistenceError",
]
