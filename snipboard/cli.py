"""
CLI interface for SnipBoard.

Usage:
    snipboard serve
    snipboard list --section inbox --tags "a,b"
    snipboard add --title "Greeting" --text "hello" --tag x --tag y
    snipboard push --text "hello from the shell"
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

import httpx
import typer
from typing_extensions import Annotated

from .api import SnipBoard
from .errors import SnipBoardError, log_exception
from .logging_config import configure_quiet_mode, enable_debug_mode
from .migrate import migrate_data_files
from .paths import DataPaths, get_default_data_dir
from .types import SORT_MODES

# Timeout for talking to a running bridge
PUSH_TIMEOUT = 10.0


# Configure quiet mode by default (suppress verbose library output)
# Set SNIPBOARD_VERBOSE=1 to enable debug mode via environment
if os.environ.get("SNIPBOARD_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"snipboard {version('snipboard')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_data_dir_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _data_dir_callback(value: Optional[Path]):
    global _data_dir_override
    if value is not None:
        _data_dir_override = value


app = typer.Typer(
    name="snipboard",
    help="Clip and section manager with a local ingestion bridge.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v", help="Enable debug logging", callback=_verbose_callback, is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j", help="Output as JSON", callback=_json_callback, is_eager=True,
    )] = False,
    data_dir: Annotated[Optional[Path], typer.Option(
        "--data-dir", "-d", envvar="SNIPBOARD_DATA_DIR",
        help="Data directory (default: ~/.snipboard)", callback=_data_dir_callback,
    )] = None,
    version: Annotated[Optional[bool], typer.Option(
        "--version", help="Show version and exit", callback=_version_callback, is_eager=True,
    )] = None,
):
    """Clip and section manager with a local ingestion bridge."""


def _get_board() -> SnipBoard:
    try:
        return SnipBoard(_data_dir_override)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _fail(e: Exception, context: str) -> NoReturn:
    if isinstance(e, SnipBoardError):
        typer.echo(f"Error: {e.message}", err=True)
    else:
        log_path = log_exception(e, context)
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
    raise typer.Exit(1)


def _emit(value: Any, text: str) -> None:
    if _json_output:
        typer.echo(json.dumps(value, ensure_ascii=False, indent=2))
    else:
        typer.echo(text)


def _format_section(section: dict) -> str:
    flags = " [locked]" if section.get("locked") else ""
    export = f" -> {section['exportPath']}" if section.get("exportPath") else ""
    return f"{section['id']}\t{section['label']}{flags}{export}"


def _format_clip(clip: dict) -> str:
    lines = (clip.get("text") or "").splitlines()
    title = clip.get("title") or (lines[0] if lines else "")
    tags = f"  #{' #'.join(clip['tags'])}" if clip.get("tags") else ""
    return f"{clip['id']}\t{clip.get('sectionId', '')}\t{title[:80]}{tags}"


# -----------------------------------------------------------------------------
# Reads
# -----------------------------------------------------------------------------

@app.command("sections")
def list_sections():
    """List sections in display order."""
    board = _get_board()
    sections = board.store.sections
    _emit(sections, "\n".join(_format_section(s) for s in sections) or "No sections.")


@app.command("list")
def list_clips(
    section: Annotated[str, typer.Option("--section", "-s", help="Section id, or 'all'")] = "all",
    search: Annotated[str, typer.Option("--search", "-q", help="Case-insensitive text search")] = "",
    tags: Annotated[str, typer.Option("--tags", "-t", help="Comma-separated tags (all must match)")] = "",
    sort: Annotated[str, typer.Option("--sort", help=f"One of: {', '.join(SORT_MODES)}")] = "default",
):
    """List clips, filtered and sorted."""
    if sort not in SORT_MODES:
        typer.echo(f"Error: unknown sort mode '{sort}' (use {', '.join(SORT_MODES)})", err=True)
        raise typer.Exit(1)
    board = _get_board()
    clips = board.list_clips(section, search, tags, sort)
    _emit(clips, "\n".join(_format_clip(c) for c in clips) or "No clips.")


# -----------------------------------------------------------------------------
# Sections
# -----------------------------------------------------------------------------

@app.command("section-add")
def section_add(name: Annotated[str, typer.Argument(help="Display name")]):
    """Create a section."""
    board = _get_board()
    try:
        section = board.create_section(name)
    except SnipBoardError as e:
        _fail(e, "section-add")
    _emit(section, f"Created {section['id']}")


@app.command("section-rename")
def section_rename(
    section_id: Annotated[str, typer.Argument(help="Section id")],
    name: Annotated[str, typer.Argument(help="New display name")],
):
    """Rename a section (its id stays the same)."""
    board = _get_board()
    try:
        section = board.rename_section(section_id, name)
    except SnipBoardError as e:
        _fail(e, "section-rename")
    _emit(section, f"Renamed {section_id} to '{section['label']}'")


@app.command("section-delete")
def section_delete(section_id: Annotated[str, typer.Argument(help="Section id")]):
    """Delete a section. Its clips are kept."""
    board = _get_board()
    try:
        board.delete_section(section_id)
    except SnipBoardError as e:
        _fail(e, "section-delete")
    _emit({"ok": True, "id": section_id}, f"Deleted {section_id}")


@app.command("section-lock")
def section_lock(section_id: Annotated[str, typer.Argument(help="Section id")]):
    """Lock a section against deletion of it and its clips."""
    board = _get_board()
    try:
        section = board.set_section_locked(section_id, True)
    except SnipBoardError as e:
        _fail(e, "section-lock")
    _emit(section, f"Locked {section_id}")


@app.command("section-unlock")
def section_unlock(section_id: Annotated[str, typer.Argument(help="Section id")]):
    """Unlock a section."""
    board = _get_board()
    try:
        section = board.set_section_locked(section_id, False)
    except SnipBoardError as e:
        _fail(e, "section-unlock")
    _emit(section, f"Unlocked {section_id}")


@app.command("section-move")
def section_move(
    section_id: Annotated[str, typer.Argument(help="Section to move")],
    before: Annotated[Optional[str], typer.Option("--before", "-b", help="Place before this section (default: end)")] = None,
):
    """Move a section in display order."""
    board = _get_board()
    try:
        sections = board.reorder_sections(section_id, before)
    except SnipBoardError as e:
        _fail(e, "section-move")
    _emit(sections, "\n".join(_format_section(s) for s in sections))


@app.command("section-export")
def section_export(
    section_id: Annotated[str, typer.Argument(help="Section id")],
    path: Annotated[str, typer.Argument(help="Export folder ('' disables mirroring)")],
):
    """Set the folder clips of a section are mirrored to."""
    board = _get_board()
    try:
        section = board.set_section_export_path(section_id, path)
    except SnipBoardError as e:
        _fail(e, "section-export")
    message = f"Mirroring {section_id} to {section['exportPath']}" if section["exportPath"] else f"Mirroring disabled for {section_id}"
    _emit(section, message)


@app.command("section-schema")
def section_schema(
    section_id: Annotated[str, typer.Argument(help="Section id")],
    fields: Annotated[list[str], typer.Argument(help="Editor fields to show")],
):
    """Choose which editor fields a section shows."""
    board = _get_board()
    try:
        section = board.set_section_schema(section_id, fields)
    except SnipBoardError as e:
        _fail(e, "section-schema")
    _emit(section, f"{section_id}: {', '.join(section['schema'])}")


# -----------------------------------------------------------------------------
# Clips
# -----------------------------------------------------------------------------

@app.command("add")
def add_clip(
    text: Annotated[Optional[str], typer.Option("--text", help="Clip text (default: stdin)")] = None,
    title: Annotated[str, typer.Option("--title", help="Clip title")] = "",
    notes: Annotated[str, typer.Option("--notes", help="Notes")] = "",
    tag: Annotated[Optional[list[str]], typer.Option("--tag", "-t", help="Tag (repeatable)")] = None,
    section: Annotated[str, typer.Option("--section", "-s", help="Section id")] = "inbox",
    clip_id: Annotated[Optional[str], typer.Option("--id", help="Update the clip with this id")] = None,
    source_url: Annotated[str, typer.Option("--url", help="Source URL")] = "",
):
    """Save a clip (create, or update with --id)."""
    if text is None and not sys.stdin.isatty():
        text = sys.stdin.read() or None
    partial: dict[str, Any] = {"sectionId": section}
    if text is not None:
        partial["text"] = text
    if title:
        partial["title"] = title
    if notes:
        partial["notes"] = notes
    if tag:
        partial["tags"] = tag
    if source_url:
        partial["sourceUrl"] = source_url
    if clip_id:
        partial["id"] = clip_id
    elif not partial.get("text") and not partial.get("title"):
        typer.echo("Error: Specify --title or --text", err=True)
        raise typer.Exit(1)

    board = _get_board()
    try:
        clip = board.save_clip(partial)
    except SnipBoardError as e:
        _fail(e, "add")
    _emit(clip, clip["id"])


@app.command("delete")
def delete_clips(ids: Annotated[list[str], typer.Argument(help="Clip ids")]):
    """Delete clips. Clips in locked sections are skipped."""
    board = _get_board()
    result = board.delete_clips(ids)
    lines = [f"Deleted {cid}" for cid in result.deleted]
    lines += [f"Locked, skipped {cid}" for cid in result.blocked]
    lines += [f"Not found: {cid}" for cid in result.missing]
    _emit(
        {"deleted": result.deleted, "blocked": result.blocked, "missing": result.missing},
        "\n".join(lines),
    )
    if result.blocked or result.missing:
        raise typer.Exit(1)


@app.command("push")
def push_clip(
    text: Annotated[str, typer.Option("--text", help="Clip text")] = "",
    title: Annotated[str, typer.Option("--title", help="Clip title")] = "",
    tags: Annotated[str, typer.Option("--tags", help="Comma-separated tags")] = "",
    section: Annotated[str, typer.Option("--section", "-s", help="Section id")] = "",
    url: Annotated[Optional[str], typer.Option("--url", help="Bridge URL (default from config)")] = None,
):
    """Send a clip to a running bridge, like the browser extension does."""
    if url is None:
        board = _get_board()
        bridge = board.config.bridge
        url = f"http://{bridge.host}:{bridge.port}"
    payload = {"title": title, "text": text, "tags": tags}
    if section:
        payload["sectionId"] = section
    try:
        resp = httpx.post(f"{url.rstrip('/')}/add-clip", json=payload, timeout=PUSH_TIMEOUT)
    except httpx.HTTPError as e:
        typer.echo(f"Error: could not reach bridge at {url}: {e}", err=True)
        raise typer.Exit(1)
    try:
        data = resp.json()
    except ValueError:
        data = {"ok": False, "error": resp.text}
    if resp.status_code != 200 or not data.get("ok"):
        typer.echo(f"Error: {resp.status_code} {data.get('error', '')}".rstrip(), err=True)
        raise typer.Exit(1)
    clip = data.get("clip") or {}
    _emit(data, clip.get("id", "ok"))


# -----------------------------------------------------------------------------
# Maintenance
# -----------------------------------------------------------------------------

@app.command("serve")
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Port")] = None,
):
    """Run the ingestion bridge for the browser extension."""
    from dataclasses import replace

    from .bridge import run_bridge

    board = _get_board()
    config = board.config.bridge
    if host or port:
        config = replace(config, host=host or config.host, port=port or config.port)
    typer.echo(f"Listening on http://{config.host}:{config.port}", err=True)
    try:
        run_bridge(board, config)
    except OSError as e:
        _fail(e, "serve")
    finally:
        board.close()


@app.command("migrate")
def migrate(
    legacy_dir: Annotated[list[Path], typer.Argument(help="Legacy data directories")],
):
    """Move documents from legacy data directories into the data directory."""
    paths = DataPaths(_data_dir_override or get_default_data_dir())
    moved = migrate_data_files(paths, legacy_dir)
    _emit(
        [{"from": str(src), "to": str(dst)} for src, dst in moved],
        "\n".join(f"{src} -> {dst}" for src, dst in moved) or "Nothing to migrate.",
    )


def main():
    app()


if __name__ == "__main__":
    main()
