"""Tests for snipboard.clips: upsert, delete, filter and sort."""

import json

import pytest

from snipboard.clips import ClipRegistry, build_search_index, filter_clips, sort_clips
from snipboard.errors import LockedError, NotFoundError, ValidationError
from snipboard.sections import SectionRegistry
from snipboard.store import SnipStore


@pytest.fixture
def clips(store: SnipStore) -> ClipRegistry:
    return ClipRegistry(store)


@pytest.fixture
def sections(store: SnipStore) -> SectionRegistry:
    return SectionRegistry(store)


class TestUpsert:

    def test_create_defaults(self, clips, store):
        clip = clips.upsert_clip({"title": "Hi", "text": "hello"})
        assert clip["id"].startswith("clip-")
        assert clip["sectionId"] == "inbox"
        assert clip["capturedAt"] > 0
        assert clip["createdAt"] > 0
        assert clip["tags"] == []
        assert clip["icon"] is None and clip["color"] is None
        saved = json.loads(store.paths.clips_file.read_text())
        assert [c["id"] for c in saved] == [clip["id"]]

    def test_unknown_id_replaced(self, clips):
        clip = clips.upsert_clip({"id": "mine", "text": "t"})
        assert clip["id"] != "mine"
        assert clip["id"].startswith("clip-")

    def test_merge_changes_only_given_keys(self, clips):
        clip = clips.upsert_clip({"title": "A", "text": "body", "tags": ["t1"], "notes": "n"})
        before = dict(clip)

        updated = clips.upsert_clip({"id": clip["id"], "title": "X"})

        assert updated is clip
        assert updated["title"] == "X"
        for key in ("id", "text", "tags", "notes", "sectionId", "capturedAt", "createdAt"):
            assert updated[key] == before[key]
        assert "updatedAt" in updated
        assert len(clips.clips) == 1

    def test_merge_normalizes(self, clips):
        clip = clips.upsert_clip({"text": "t"})
        clips.upsert_clip({"id": clip["id"], "tags": "a, b"})
        assert clip["tags"] == ["a", "b"]

    def test_search_index_rebuilt(self, clips, store):
        clip = clips.upsert_clip({"title": "Alpha", "text": "Beta", "tags": ["Gamma"]})
        assert store.search_index[clip["id"]] == "alpha beta  gamma"

    def test_not_a_dict(self, clips):
        with pytest.raises(ValidationError):
            clips.upsert_clip(["nope"])

    def test_mirror_written_when_export_path_set(self, clips, sections, store):
        sections.set_export_path("inbox", "mirror/inbox")
        clip = clips.upsert_clip({"text": "mirrored"})
        mirror = store.paths.data_dir / "mirror" / "inbox" / f"inbox_{clip['id']}.json"
        assert json.loads(mirror.read_text())["text"] == "mirrored"

    def test_mirror_skipped(self, clips, sections, store):
        sections.set_export_path("inbox", "mirror/inbox")
        clips.upsert_clip({"text": "quiet"}, mirror=False)
        assert not (store.paths.data_dir / "mirror").exists()

    def test_move_removes_old_mirror(self, clips, sections, store):
        sections.set_export_path("inbox", "a")
        sections.set_export_path("misc", "b")
        clip = clips.upsert_clip({"text": "moving"})
        old = store.paths.data_dir / "a" / f"inbox_{clip['id']}.json"
        assert old.exists()

        clips.upsert_clip({"id": clip["id"], "sectionId": "misc"})

        assert not old.exists()
        new = store.paths.data_dir / "b" / f"misc_{clip['id']}.json"
        assert json.loads(new.read_text())["sectionId"] == "misc"

    def test_move_without_mirror_still_cleans_up(self, clips, sections, store):
        sections.set_export_path("inbox", "a")
        clip = clips.upsert_clip({"text": "moving"})
        clips.upsert_clip({"id": clip["id"], "sectionId": "errors"}, mirror=False)
        assert list((store.paths.data_dir / "a").iterdir()) == []


class TestDelete:

    def test_delete(self, clips, store):
        clip = clips.upsert_clip({"text": "t"})
        store.selected_clip_ids.add(clip["id"])
        clips.delete_clip(clip["id"])
        assert clips.clips == []
        assert store.selected_clip_ids == set()
        assert json.loads(store.paths.clips_file.read_text()) == []

    def test_unknown(self, clips):
        with pytest.raises(NotFoundError):
            clips.delete_clip("ghost")

    def test_locked_section(self, clips, sections):
        clip = clips.upsert_clip({"text": "t", "sectionId": "errors"})
        sections.set_locked("errors", True)
        with pytest.raises(LockedError):
            clips.delete_clip(clip["id"])
        assert len(clips.clips) == 1

    def test_delete_many(self, clips, sections):
        free = clips.upsert_clip({"text": "a"})
        locked = clips.upsert_clip({"text": "b", "sectionId": "errors"})
        sections.set_locked("errors", True)

        result = clips.delete_clips([free["id"], locked["id"], "ghost", free["id"]])

        assert result.deleted == [free["id"]]
        assert result.blocked == [locked["id"]]
        assert result.missing == ["ghost"]
        assert [c["id"] for c in clips.clips] == [locked["id"]]

    def test_remove_screenshot(self, clips, store):
        store.paths.screenshots_dir.mkdir(parents=True, exist_ok=True)
        (store.paths.screenshots_dir / "a.png").write_bytes(b"x")
        clip = clips.upsert_clip({"text": "t", "screenshots": ["a.png", "b.png"]})

        clips.remove_screenshot(clip["id"], "a.png")
        clips.remove_screenshot(clip["id"], "b.png")

        assert clip["screenshots"] == []
        assert not (store.paths.screenshots_dir / "a.png").exists()


class TestFilter:

    @pytest.fixture
    def sample(self):
        data = [
            {"id": "1", "sectionId": "inbox", "title": "Alpha", "text": "", "tags": ["a"]},
            {"id": "2", "sectionId": "inbox", "title": "Beta", "text": "needle", "tags": ["a", "b", "c"]},
            {"id": "3", "sectionId": "misc", "title": "Gamma", "text": "", "notes": "NEEDLE", "tags": ["A", "B"]},
        ]
        return data, build_search_index(data)

    def test_all_tags_required(self, sample):
        data, index = sample
        result = filter_clips(data, index, tag_filters="a,b")
        assert [c["id"] for c in result] == ["2", "3"]

    def test_section(self, sample):
        data, index = sample
        assert [c["id"] for c in filter_clips(data, index, "misc")] == ["3"]
        assert len(filter_clips(data, index, "all")) == 3
        assert len(filter_clips(data, index, "")) == 3

    def test_search_case_insensitive(self, sample):
        data, index = sample
        assert [c["id"] for c in filter_clips(data, index, search_text="Needle")] == ["2", "3"]

    def test_search_without_index(self, sample):
        data, _ = sample
        assert [c["id"] for c in filter_clips(data, {}, search_text="gamma")] == ["3"]

    def test_dangling_section_excluded(self, sample):
        data, index = sample
        data.append({"id": "4", "sectionId": "deleted", "tags": []})
        assert filter_clips(data, index, "inbox", search_text="") == data[:2]


class TestSort:

    def test_default_uses_clip_order(self):
        data = [
            {"id": "new", "capturedAt": 300},
            {"id": "listed", "capturedAt": 100},
            {"id": "other", "capturedAt": 200},
        ]
        result = sort_clips(data, "default", {"clipOrder": ["listed"]})
        assert [c["id"] for c in result] == ["listed", "new", "other"]

    def test_default_without_section(self):
        data = [{"id": "b"}, {"id": "a"}]
        assert sort_clips(data, "default") == data

    def test_newest_and_oldest(self):
        data = [
            {"id": "old", "capturedAt": 100},
            {"id": "edited", "capturedAt": 50, "updatedAt": 500},
            {"id": "none"},
        ]
        assert [c["id"] for c in sort_clips(data, "newest")] == ["edited", "old", "none"]
        assert [c["id"] for c in sort_clips(data, "oldest")] == ["none", "old", "edited"]

    def test_title_case_insensitive(self):
        data = [{"id": "1", "title": "beta"}, {"id": "2", "title": "Alpha"}, {"id": "3"}]
        assert [c["id"] for c in sort_clips(data, "title")] == ["3", "2", "1"]

    def test_unknown_mode_is_default(self, clips, store):
        store.clips.extend([{"id": "x", "sectionId": "inbox"}, {"id": "y", "sectionId": "inbox"}])
        section = store.find_section("inbox")
        section["clipOrder"] = ["y"]
        result = clips.sort_clips(store.clips, "sideways", section)
        assert [c["id"] for c in result] == ["y", "x"]

    def test_visible_clips_uses_state(self, clips, store):
        clips.upsert_clip({"text": "one", "tags": ["k"]})
        clips.upsert_clip({"text": "two", "sectionId": "misc", "tags": ["k"]})
        store.active_section_id = "misc"
        store.tag_filter = "K"
        assert [c["text"] for c in clips.visible_clips()] == ["two"]
