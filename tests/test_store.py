"""Tests for the video library store and its persistence."""

from __future__ import annotations

import itertools
import json
import threading
from unittest.mock import MagicMock

import pytest

from videostreamer.core.errors import DuplicateEntry, IndexOutOfRange, InvalidURL
from videostreamer.core.models import VideoEntry, VideoInfo, VideoType
from videostreamer.core.persistence import JsonPersistence
from videostreamer.core.store import VideoStore


def _entry(n: int) -> VideoEntry:
    return VideoEntry(url=f"https://example.com/{n}.mp4")


@pytest.fixture
def filled(store):
    for n in range(4):
        store.add(_entry(n), len(store))
    return store


class TestAdd:
    def test_add_inserts_at_index(self, store):
        store.add(_entry(1))
        store.add(_entry(2))
        store.add(_entry(3), 1)
        assert [e.url for e in store] == [
            "https://example.com/2.mp4",
            "https://example.com/3.mp4",
            "https://example.com/1.mp4",
        ]

    def test_duplicate_is_rejected_and_count_unchanged(self, filled):
        before = filled.entries
        with pytest.raises(DuplicateEntry):
            filled.add(VideoEntry(url="https://example.com/2.mp4"))
        assert len(filled) == 4
        assert filled.entries == before

    def test_index_past_end_is_rejected(self, filled):
        with pytest.raises(IndexOutOfRange):
            filled.add(_entry(9), 6)
        assert len(filled) == 4
        assert "https://example.com/9.mp4" not in filled

    def test_add_from_string_goes_to_top(self, filled):
        entry = filled.add_from_string("https://youtu.be/dQw4w9WgXcQ")
        assert filled[0] is entry
        assert entry.type is VideoType.CATALOG_IDENTIFIER

    def test_add_from_string_invalid(self, filled):
        with pytest.raises(InvalidURL):
            filled.add_from_string("nope")
        assert len(filled) == 4


class TestRemove:
    def test_remove_returns_entry_and_drops_cache(self, filled):
        url = filled[1].url
        filled.cache.put(url, MagicMock(spec=VideoInfo))
        removed = filled.remove(1)
        assert removed.url == url
        assert url not in filled
        assert url not in filled.cache
        assert len(filled) == 3

    def test_removed_url_can_be_added_again(self, filled):
        entry = filled.remove(0)
        filled.add(entry)
        assert filled[0] is entry

    @pytest.mark.parametrize("index", [-1, 4, 100])
    def test_out_of_range(self, filled, index):
        with pytest.raises(IndexOutOfRange):
            filled.remove(index)
        assert len(filled) == 4


class TestMove:
    def test_every_valid_move_is_a_permutation(self, filled):
        original = filled.entries
        for src, dst in itertools.product(range(4), repeat=2):
            moved = filled[src]
            filled.move(src, dst)
            current = filled.entries
            assert len(current) == len(original)
            assert sorted(map(id, current)) == sorted(map(id, original))
            assert current[dst] is moved

    def test_move_places_entry(self, filled):
        moved = filled[0]
        filled.move(0, 3)
        assert filled[3] is moved
        assert filled[0].url == "https://example.com/1.mp4"

    def test_out_of_range_is_noop(self, filled):
        before = filled.entries
        with pytest.raises(IndexOutOfRange):
            filled.move(0, 4)
        with pytest.raises(IndexOutOfRange):
            filled.move(-1, 0)
        assert filled.entries == before


class TestPersistence:
    def test_persist_then_restore(self, filled, tmp_path):
        filled[2].last_played_time = 31.0
        filled.mark_downloaded(filled[3], "/videos/3.mp4")
        filled.persist().join()

        other = VideoStore(JsonPersistence(tmp_path / "videos.json"))
        other.restore()
        assert [e.url for e in other] == [e.url for e in filled]
        assert other[2].last_played_time == 31.0
        assert other[3].is_downloaded
        with pytest.raises(DuplicateEntry):
            other.add(_entry(0))

    def test_persist_snapshot_is_isolated(self, filled, tmp_path):
        thread = filled.persist()
        filled.remove(0)
        thread.join()
        data = json.loads((tmp_path / "videos.json").read_text(encoding="utf-8"))
        assert len(data["videos"]) == 4

    def test_slow_first_save_does_not_lose_later_change(self, store, tmp_path):
        started = threading.Event()
        release = threading.Event()
        save_all = store.persistence.save_all
        calls = []

        def slow_save(entries):
            calls.append(len(entries))
            if len(calls) == 1:
                started.set()
                release.wait(5)
            save_all(entries)

        store.persistence.save_all = slow_save
        store.add(_entry(1))
        first = store.persist()
        assert started.wait(5)
        store.add(_entry(2))
        second = store.persist()
        release.set()
        first.join(5)
        second.join(5)

        data = json.loads((tmp_path / "videos.json").read_text(encoding="utf-8"))
        assert [v["url"] for v in data["videos"]] == [
            "https://example.com/2.mp4",
            "https://example.com/1.mp4",
        ]

    def test_restore_missing_file_is_empty(self, tmp_path):
        store = VideoStore(JsonPersistence(tmp_path / "missing.json"))
        store.restore()
        assert len(store) == 0

    def test_restore_skips_duplicates_and_bad_records(self, tmp_path):
        path = tmp_path / "videos.json"
        path.write_text(json.dumps({"videos": [
            {"url": "https://example.com/a.mp4"},
            {"url": "https://example.com/a.mp4", "last_played_time": 4},
            {"type": "url"},
            {"url": "https://example.com/b.mp4", "type": "bogus"},
            {"url": "https://youtu.be/dQw4w9WgXcQ", "type": "youtube"},
        ]}), encoding="utf-8")
        store = VideoStore(JsonPersistence(path))
        store.restore()
        assert [e.url for e in store] == ["https://example.com/a.mp4", "https://youtu.be/dQw4w9WgXcQ"]
        assert store[0].last_played_time is None


    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"videos": "nope"}'])
    def test_unreadable_file_is_set_aside(self, tmp_path, content):
        path = tmp_path / "videos.json"
        path.write_text(content, encoding="utf-8")
        store = VideoStore(JsonPersistence(path))
        store.restore()

        assert len(store) == 0
        assert not path.exists()
        assert (tmp_path / "videos.json.bad").read_text(encoding="utf-8") == content

    def test_non_object_record_is_skipped(self, tmp_path):
        path = tmp_path / "videos.json"
        path.write_text(json.dumps({"videos": [7, {"url": "https://example.com/a.mp4"}]}), encoding="utf-8")
        store = VideoStore(JsonPersistence(path))
        store.restore()
        assert [e.url for e in store] == ["https://example.com/a.mp4"]


class TestFetchInfo:
    def test_result_is_cached_on_main_thread(self, filled, dispatcher):
        info = MagicMock(spec=VideoInfo)
        client = MagicMock()
        client.get_video_info.return_value = info
        callback = MagicMock()

        filled.fetch_info(filled[0], client, callback).join()
        assert filled[0].url not in filled.cache
        dispatcher.process_pending()

        assert filled.cache.get(filled[0].url) is info
        callback.assert_called_once_with(info, None)

    def test_removed_entry_is_not_cached(self, filled, dispatcher):
        client = MagicMock()
        client.get_video_info.return_value = MagicMock(spec=VideoInfo)
        entry = filled[0]

        filled.fetch_info(entry, client).join()
        filled.remove(0)
        dispatcher.process_pending()
        assert entry.url not in filled.cache

    def test_error_is_reported(self, filled, dispatcher):
        client = MagicMock()
        client.get_video_info.side_effect = ValueError("Failed to fetch metadata: 404")
        callback = MagicMock()

        filled.fetch_info(filled[0], client, callback).join()
        dispatcher.process_pending()

        info, error = callback.call_args[0]
        assert info is None
        assert isinstance(error, ValueError)
        assert len(filled.cache) == 0
