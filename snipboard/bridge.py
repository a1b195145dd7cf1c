"""
Local HTTP bridge for the browser extension.

Routes:
- POST /add-clip: create a clip from a JSON payload
- GET /screenshots/{filename}: serve a stored screenshot
- GET /health: liveness check

The bridge shares the process's SnipBoard instance with every other caller,
so requests go through the same registries as the UI. Handlers run on one
event loop and each registry call completes before the next request is
served.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional

from aiohttp import web

from .api import SnipBoard
from .config import BridgeConfig
from .errors import SnipBoardError, ValidationError, log_exception
from .normalize import normalize_tags
from .paths import SCREENSHOTS_DIRNAME
from .screenshots import resolve_screenshot
from .types import DEFAULT_SECTION_ID, now_ms

logger = logging.getLogger(__name__)

BOARD_KEY = web.AppKey("board", SnipBoard)
BRIDGE_CONFIG_KEY = web.AppKey("bridge_config", BridgeConfig)
MISSING_SCREENSHOTS_KEY = web.AppKey("missing_screenshots", set)

EXTENSION_ORIGIN_PREFIX = "chrome-extension://"


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def normalize_clip_payload(payload: Any) -> dict[str, Any]:
    """
    Turn an /add-clip request body into clip fields.

    Raises:
        ValidationError: payload is not an object or has neither title nor text
    """
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object")

    title = _text(payload.get("title")).strip()
    text = _text(payload.get("text"))
    if not title and not text:
        raise ValidationError("Payload must include title or text")

    section_candidate = payload.get("sectionId") or payload.get("section") or ""
    section_id = section_candidate.strip() if isinstance(section_candidate, str) else ""

    try:
        captured_at = float(payload.get("capturedAt"))
    except (TypeError, ValueError):
        captured_at = 0
    if not math.isfinite(captured_at) or captured_at <= 0:
        captured_at = now_ms()

    screenshots = payload.get("screenshots")
    clip = {
        "title": title,
        "text": text,
        "notes": _text(payload.get("notes")),
        "tags": normalize_tags(payload.get("tags")),
        "screenshots": [s for s in screenshots if isinstance(s, str) and s] if isinstance(screenshots, list) else [],
        "sectionId": section_id or DEFAULT_SECTION_ID,
        "sourceUrl": _text(payload.get("sourceUrl")),
        "sourceTitle": _text(payload.get("sourceTitle")),
        "capturedAt": int(captured_at),
    }
    if isinstance(payload.get("id"), str) and payload["id"]:
        clip["id"] = payload["id"]
    return clip


def is_allowed_origin(origin: str, allowed: list[str]) -> bool:
    if not origin:
        return False
    return origin in allowed or origin.startswith(EXTENSION_ORIGIN_PREFIX)


def _apply_cors(request: web.Request, headers) -> None:
    config = request.app[BRIDGE_CONFIG_KEY]
    origin = (request.headers.get("Origin") or "").strip()
    if is_allowed_origin(origin, config.allowed_origins):
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"
    headers["Access-Control-Allow-Methods"] = "POST, GET, OPTIONS"
    headers["Access-Control-Allow-Headers"] = "Content-Type"


@web.middleware
async def cors_middleware(request: web.Request, handler):
    try:
        resp = await handler(request)
    except web.HTTPException as exc:
        _apply_cors(request, exc.headers)
        raise
    _apply_cors(request, resp.headers)
    return resp


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"ok": False, "error": message}, status=status)


async def handle_options(request: web.Request) -> web.Response:
    return web.Response(status=204)


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"ok": True})


async def handle_add_clip(request: web.Request) -> web.Response:
    logger.info("POST /add-clip")
    board = request.app[BOARD_KEY]
    try:
        raw = await request.read()
    except web.HTTPRequestEntityTooLarge:
        return _error(413, "Request body too large")

    if not raw.strip():
        return _error(400, "Missing request body")
    try:
        payload = json.loads(raw)
    except ValueError as e:
        return _error(400, f"Invalid JSON: {e}")

    try:
        clip = board.save_clip(normalize_clip_payload(payload))
    except SnipBoardError as e:
        logger.info("Rejected clip: %s", e.message)
        return _error(e.status, e.message or type(e).__name__)
    except Exception as e:
        logger.error("Unexpected error saving clip: %s", e)
        log_exception(e, "POST /add-clip")
        return _error(500, str(e) or "Unexpected error")

    return web.json_response({"ok": True, "clip": clip})


async def handle_get_screenshot(request: web.Request) -> web.StreamResponse:
    board = request.app[BOARD_KEY]
    filename = request.match_info.get("filename", "")
    directories = [board.paths.screenshots_dir]
    directories += [d / SCREENSHOTS_DIRNAME for d in board.config.legacy_dirs]
    try:
        path = resolve_screenshot(filename, directories)
    except ValidationError as e:
        return _error(400, e.message)

    if path is None:
        missing = request.app[MISSING_SCREENSHOTS_KEY]
        if filename not in missing:
            logger.warning("Screenshot not found: %s", filename)
            missing.add(filename)
        return web.Response(status=404)
    return web.FileResponse(path)


def create_app(board: SnipBoard, config: Optional[BridgeConfig] = None) -> web.Application:
    """Build the aiohttp application for a SnipBoard instance."""
    config = config or board.config.bridge
    app = web.Application(
        middlewares=[cors_middleware],
        client_max_size=config.max_body_bytes,
    )
    app[BOARD_KEY] = board
    app[BRIDGE_CONFIG_KEY] = config
    app[MISSING_SCREENSHOTS_KEY] = set()

    app.router.add_post("/add-clip", handle_add_clip)
    app.router.add_route("OPTIONS", "/add-clip", handle_options)
    app.router.add_get("/screenshots/{filename}", handle_get_screenshot)
    app.router.add_route("OPTIONS", "/screenshots/{filename}", handle_options)
    app.router.add_get("/health", handle_health)
    return app


async def start_bridge(board: SnipBoard, config: Optional[BridgeConfig] = None) -> web.AppRunner:
    """Start the bridge on the running event loop. Call runner.cleanup() to stop."""
    config = config or board.config.bridge
    runner = web.AppRunner(create_app(board, config))
    await runner.setup()
    site = web.TCPSite(runner, config.host, config.port)
    await site.start()
    logger.info("Listening on http://%s:%d", config.host, config.port)
    return runner


def run_bridge(board: SnipBoard, config: Optional[BridgeConfig] = None) -> None:
    """Serve until interrupted."""
    config = config or board.config.bridge
    logger.info("Starting bridge on http://%s:%d", config.host, config.port)
    web.run_app(create_app(board, config), host=config.host, port=config.port, print=None)
