"""
Tests for the HTTP ingestion bridge.

Each test drives the aiohttp app through TestServer/TestClient on a private
event loop.
"""

import asyncio
import json
from unittest.mock import patch

import pytest
from aiohttp import test_utils

from snipboard.bridge import create_app, is_allowed_origin, normalize_clip_payload
from snipboard.config import BridgeConfig
from snipboard.errors import ValidationError


def _run(board, scenario, config=None):
    async def main():
        async with test_utils.TestClient(test_utils.TestServer(create_app(board, config))) as client:
            return await scenario(client)
    return asyncio.run(main())


class TestNormalizePayload:

    def test_defaults(self):
        clip = normalize_clip_payload({"title": " T ", "tags": "x, y"})
        assert clip["title"] == "T"
        assert clip["sectionId"] == "inbox"
        assert clip["tags"] == ["x", "y"]
        assert clip["capturedAt"] > 0
        assert "id" not in clip

    def test_legacy_section_key(self):
        assert normalize_clip_payload({"text": "t", "section": "errors"})["sectionId"] == "errors"

    @pytest.mark.parametrize("captured", [None, -5, 0, "soon", float("nan")])
    def test_bad_captured_at_replaced(self, captured):
        assert normalize_clip_payload({"text": "t", "capturedAt": captured})["capturedAt"] > 1_000_000

    def test_captured_at_kept(self):
        assert normalize_clip_payload({"text": "t", "capturedAt": 1234})["capturedAt"] == 1234

    def test_screenshots_filtered(self):
        clip = normalize_clip_payload({"text": "t", "screenshots": ["a.png", "", 3]})
        assert clip["screenshots"] == ["a.png"]

    @pytest.mark.parametrize("payload", [{}, {"title": "   "}, [], "text", {"text": ""}])
    def test_rejected(self, payload):
        with pytest.raises(ValidationError):
            normalize_clip_payload(payload)

    def test_allowed_origins(self):
        allowed = ["https://chatgpt.com"]
        assert is_allowed_origin("https://chatgpt.com", allowed)
        assert is_allowed_origin("chrome-extension://abcdef", allowed)
        assert not is_allowed_origin("https://evil.example", allowed)
        assert not is_allowed_origin("", allowed)


class TestAddClip:

    def test_end_to_end_with_mirror(self, board):
        board.set_section_export_path("inbox", "exports/inbox")

        async def scenario(client):
            resp = await client.post("/add-clip", json={"title": "T", "text": "hello", "tags": "x, y"})
            return resp.status, await resp.json()

        status, body = _run(board, scenario)
        assert status == 200
        assert body["ok"] is True
        clip_id = body["clip"]["id"]

        saved = json.loads(board.paths.clips_file.read_text())
        stored = next(c for c in saved if c["id"] == clip_id)
        assert stored["sectionId"] == "inbox"
        assert stored["tags"] == ["x", "y"]
        assert stored["capturedAt"] > 0

        mirror = board.paths.data_dir / "exports" / "inbox" / f"inbox_{clip_id}.json"
        assert json.loads(mirror.read_text())["text"] == "hello"

    def test_empty_object_rejected(self, board):
        async def scenario(client):
            resp = await client.post("/add-clip", json={})
            return resp.status, await resp.json()

        status, body = _run(board, scenario)
        assert 400 <= status < 500
        assert body["ok"] is False
        assert board.store.clips == []
        assert not board.paths.clips_file.exists()

    @pytest.mark.parametrize("raw", [b"", b"{oops", b"[1, 2]"])
    def test_bad_body(self, board, raw):
        async def scenario(client):
            resp = await client.post("/add-clip", data=raw, headers={"Content-Type": "application/json"})
            return resp.status

        assert _run(board, scenario) == 400
        assert board.store.clips == []

    def test_body_too_large(self, board):
        config = BridgeConfig(max_body_bytes=64)

        async def scenario(client):
            resp = await client.post("/add-clip", json={"text": "x" * 500})
            return resp.status

        assert _run(board, scenario, config) == 413
        assert board.store.clips == []

    def test_unexpected_error_is_500(self, board):
        async def scenario(client):
            resp = await client.post("/add-clip", json={"text": "t"})
            ok = await client.get("/health")
            return resp.status, await resp.json(), ok.status

        with patch.object(board, "save_clip", side_effect=RuntimeError("disk on fire")):
            status, body, health = _run(board, scenario)
        assert status == 500
        assert body == {"ok": False, "error": "disk on fire"}
        assert health == 200

    def test_update_existing_clip(self, board):
        clip = board.save_clip({"title": "old", "text": "body"})

        async def scenario(client):
            resp = await client.post("/add-clip", json={"id": clip["id"], "title": "new"})
            return resp.status

        assert _run(board, scenario) == 200
        assert len(board.store.clips) == 1
        assert board.store.clips[0]["title"] == "new"


class TestCors:

    def test_allowed_origin_echoed(self, board):
        async def scenario(client):
            resp = await client.options("/add-clip", headers={"Origin": "https://chatgpt.com"})
            return resp.status, resp.headers

        status, headers = _run(board, scenario)
        assert status == 204
        assert headers["Access-Control-Allow-Origin"] == "https://chatgpt.com"
        assert "POST" in headers["Access-Control-Allow-Methods"]
        assert headers["Access-Control-Allow-Headers"] == "Content-Type"

    def test_extension_origin(self, board):
        async def scenario(client):
            resp = await client.post(
                "/add-clip", json={"text": "t"}, headers={"Origin": "chrome-extension://abc"},
            )
            return resp.headers.get("Access-Control-Allow-Origin")

        assert _run(board, scenario) == "chrome-extension://abc"

    def test_other_origin_not_echoed(self, board):
        async def scenario(client):
            resp = await client.post(
                "/add-clip", json={}, headers={"Origin": "https://evil.example"},
            )
            return resp.headers.get("Access-Control-Allow-Origin")

        assert _run(board, scenario) is None


class TestScreenshots:

    def test_serves_file(self, board):
        (board.paths.screenshots_dir / "a.png").write_bytes(b"png-bytes")

        async def scenario(client):
            resp = await client.get("/screenshots/a.png")
            return resp.status, await resp.read()

        assert _run(board, scenario) == (200, b"png-bytes")

    def test_legacy_location(self, tmp_path, data_dir):
        from snipboard.api import SnipBoard
        from snipboard.config import AppConfig

        legacy = tmp_path / "legacy"
        (legacy / "screenshots").mkdir(parents=True)
        (legacy / "screenshots" / "old.png").write_bytes(b"old")
        data_dir.mkdir(parents=True)
        (data_dir / "screenshots").mkdir()
        b = SnipBoard(config=AppConfig(path=data_dir, legacy_dirs=[legacy]))

        async def scenario(client):
            resp = await client.get("/screenshots/old.png")
            return resp.status

        try:
            assert _run(b, scenario) == 200
        finally:
            b.close()

    def test_missing(self, board):
        async def scenario(client):
            first = await client.get("/screenshots/none.png")
            second = await client.get("/screenshots/none.png")
            return first.status, second.status

        assert _run(board, scenario) == (404, 404)

    def test_rejects_suspicious_names(self, board):
        async def scenario(client):
            resp = await client.get("/screenshots/.hidden")
            return resp.status

        assert _run(board, scenario) == 400
