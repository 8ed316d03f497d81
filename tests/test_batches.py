import json
import os

import pytest

from mapscraper.errors import BatchWriteError
from mapscraper.extractors.schemas import DetailRecord, RecordStatus
from mapscraper.storage.batches import BatchStore, batch_filename


def _record(url: str, name: str, status: RecordStatus = RecordStatus.OK) -> DetailRecord:
    return DetailRecord(keyword="sofa", region="تهران", maps_url=url, name=name, status=status)


def _touch_order(paths) -> None:
    # Give every file a distinct, increasing mtime regardless of filesystem resolution.
    for offset, path in enumerate(paths):
        os.utime(path, ns=(1_700_000_000_000_000_000 + offset * 1_000_000_000,) * 2)


def test_batch_filename_sanitises_partition_key() -> None:
    assert batch_filename("sofa_تهران", "run-00001") == "sofa_تهران_part_run_00001.json"
    assert batch_filename("a b/c", 3) == "a_b_c_part_3.json"


def test_write_batch_produces_json_array_without_leftovers(tmp_path) -> None:
    store = BatchStore(tmp_path / "temp")

    path = store.write_batch([_record("u1", "A"), _record("u2", "B")], "sofa_تهران", 1)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert [item["maps_url"] for item in data] == ["u1", "u2"]
    assert data[0]["region"] == "تهران"
    assert [p.name for p in (tmp_path / "temp").iterdir()] == [path.name]


def test_merge_is_idempotent(tmp_path) -> None:
    store = BatchStore(tmp_path)
    paths = [
        store.write_batch([_record("u1", "A"), _record("u2", "B")], "p", 1),
        store.write_batch([_record("u3", "C")], "p", 2),
    ]
    _touch_order(paths)

    first = store.merge_all()
    second = store.merge_all()

    assert first == second
    assert [r.maps_url for r in first] == ["u1", "u2", "u3"]


def test_later_batch_wins_on_same_maps_url(tmp_path) -> None:
    store = BatchStore(tmp_path)
    # Names sort in the opposite order of writes, so ordering must come from mtime.
    older = store.write_batch([_record("u1", "stale", RecordStatus.ERROR)], "zzz", 1)
    newer = store.write_batch([_record("u1", "fresh")], "aaa", 2)
    _touch_order([older, newer])

    merged = store.merge_all()

    assert len(merged) == 1
    assert merged[0].name == "fresh"
    assert merged[0].status is RecordStatus.OK


def test_corrupt_and_foreign_files_are_skipped(tmp_path) -> None:
    store = BatchStore(tmp_path)
    good = store.write_batch([_record("u1", "A")], "p", 1)
    (tmp_path / "broken_part_2.json").write_text("[{", encoding="utf-8")
    (tmp_path / "object_part_3.json").write_text('{"maps_url": "u9"}', encoding="utf-8")
    (tmp_path / "invalid_part_4.json").write_text('[{"name": "no url"}]', encoding="utf-8")
    (tmp_path / "p_part_5.json.abc.tmp").write_text("[]", encoding="utf-8")
    _touch_order([good])

    merged = store.merge_all()

    assert [r.maps_url for r in merged] == ["u1"]


def test_crash_before_rename_leaves_no_visible_batch(tmp_path, monkeypatch) -> None:
    store = BatchStore(tmp_path)
    store.write_batch([_record("u1", "A")], "p", 1)

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", failing_replace)
    with pytest.raises(BatchWriteError):
        store.write_batch([_record("u2", "B")], "p", 2)
    monkeypatch.undo()

    assert sorted(p.name for p in tmp_path.iterdir()) == ["p_part_1.json"]
    assert [r.maps_url for r in store.merge_all()] == ["u1"]


def test_merge_of_missing_directory_is_empty(tmp_path) -> None:
    assert BatchStore(tmp_path / "nope").merge_all() == []
