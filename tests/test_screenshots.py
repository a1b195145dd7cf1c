"""Tests for screenshot storage and lookup."""

import base64
from pathlib import Path

import pytest

from snipboard.errors import ValidationError
from snipboard.screenshots import (
    decode_data_url,
    delete_screenshot_file,
    resolve_screenshot,
    save_screenshot,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _data_url(data: bytes = PNG_BYTES, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


class TestDecode:

    def test_png(self):
        mime, data = decode_data_url(_data_url())
        assert mime == "image/png"
        assert data == PNG_BYTES

    def test_jpeg(self):
        assert decode_data_url(_data_url(mime="image/JPEG"))[0] == "image/jpeg"

    @pytest.mark.parametrize("bad", [
        "not a data url",
        "data:image/gif;base64,R0lGOD",
        "data:image/png;base64,",
        "data:image/png;base64,@@@@",
        None,
    ])
    def test_rejected(self, bad):
        with pytest.raises(ValidationError):
            decode_data_url(bad)


class TestSaveAndResolve:

    def test_save_with_name(self, tmp_path: Path):
        path = save_screenshot(tmp_path / "shots", _data_url(), "my shot.png")
        assert path.name == "my_shot.png"
        assert path.read_bytes() == PNG_BYTES

    def test_save_generated_name(self, tmp_path: Path):
        path = save_screenshot(tmp_path, _data_url())
        assert path.name.startswith("shot-")
        assert path.suffix == ".png"

    def test_resolve_prefers_first_dir(self, tmp_path: Path):
        current, legacy = tmp_path / "current", tmp_path / "legacy"
        current.mkdir()
        legacy.mkdir()
        (legacy / "a.png").write_bytes(b"old")
        assert resolve_screenshot("a.png", [current, legacy]) == (legacy / "a.png").resolve()
        (current / "a.png").write_bytes(b"new")
        assert resolve_screenshot("a.png", [current, legacy]) == (current / "a.png").resolve()

    def test_resolve_missing(self, tmp_path: Path):
        assert resolve_screenshot("none.png", [tmp_path, tmp_path / "nope"]) is None

    @pytest.mark.parametrize("name", ["../secret", "a/b.png", "a\\b.png", ".hidden", ""])
    def test_resolve_rejects_traversal(self, tmp_path: Path, name):
        with pytest.raises(ValidationError):
            resolve_screenshot(name, [tmp_path])

    def test_delete(self, tmp_path: Path):
        (tmp_path / "a.png").write_bytes(b"x")
        assert delete_screenshot_file(tmp_path, "a.png") is True
        assert delete_screenshot_file(tmp_path, "a.png") is False
