"""
Data types and shared constants for SnipBoard.

Clips and sections are plain JSON objects (dicts) so that keys written by
other versions of the app survive a load/save round trip.
"""

import secrets
import time
from typing import Any

# A clip or section as stored on disk
Clip = dict[str, Any]
Section = dict[str, Any]

DEFAULT_SECTION_ID = "inbox"
ALL_SECTIONS_ID = "all"

# Section ids that collide with UI actions and may never be used
RESERVED_SECTION_IDS = frozenset({"delete", "open", "save", "drag", "all"})

# Sections that can never be deleted
PROTECTED_SECTION_IDS = frozenset({"inbox"})

# Editor fields a section schema may enable, in display order
DEFAULT_SCHEMA = (
    "title",
    "text",
    "screenshots",
    "tags",
    "sourceTitle",
    "open",
    "capturedAt",
    "notes",
)

EXPORT_BASE = "data/exports"

SORT_MODES = ("default", "newest", "oldest", "title")

DEFAULT_SECTIONS = (
    ("inbox", "Inbox"),
    ("common-prompts", "Common Prompts"),
    ("black-skies", "Black Skies"),
    ("errors", "Errors"),
    ("misc", "Misc"),
)


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def generate_clip_id() -> str:
    """New clip id in the form clip-<epoch ms>-<random hex>."""
    return f"clip-{now_ms()}-{secrets.token_hex(6)}"


def is_reserved_section_id(section_id: str) -> bool:
    """True if a section id collides with a reserved UI id.

    Every operation that introduces a new section id goes through this check.
    """
    if not isinstance(section_id, str):
        return False
    return section_id.strip().lower() in RESERVED_SECTION_IDS
