"""Tests for codeplan.cache."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from codeplan.cache import (
    CacheParseError,
    CacheReadError,
    CacheStore,
    Task,
    load_records,
    parse_timestamp,
    record_from_dict,
)

from conftest import WriteCache, make_task


class TestParseTimestamp:
    def test_zulu_suffix(self) -> None:
        assert parse_timestamp("2021-10-01T09:00:00Z") == datetime(
            2021, 10, 1, 9, 0, tzinfo=timezone.utc
        )

    def test_fractional_seconds(self) -> None:
        assert parse_timestamp("2021-10-01T09:00:00.250+00:00").microsecond == 250000

    def test_not_a_string(self) -> None:
        with pytest.raises(ValueError):
            parse_timestamp(1633078800)


class TestRecordFromDict:
    def test_task_fields(self) -> None:
        task = record_from_dict(Task, make_task(4))
        assert task.id == 4
        assert task.content_preview == "Task 4"
        assert task.finish_date.year == 2021

    def test_extra_keys_ignored(self) -> None:
        raw = {**make_task(1), "owner": "someone"}
        assert record_from_dict(Task, raw).id == 1

    def test_missing_field(self) -> None:
        raw = make_task(1)
        del raw["content"]
        with pytest.raises(ValueError, match="content"):
            record_from_dict(Task, raw)

    def test_string_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="id"):
            record_from_dict(Task, {**make_task(1), "id": "1"})

    def test_bool_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            record_from_dict(Task, {**make_task(1), "id": True})

    def test_records_are_immutable(self) -> None:
        task = record_from_dict(Task, make_task(1))
        with pytest.raises(AttributeError):
            task.id = 2  # type: ignore[misc]


class TestLoadRecords:
    def test_keeps_file_order(self, tmp_path: Path) -> None:
        path = tmp_path / "task.json"
        path.write_text(json.dumps([make_task(2), make_task(1), make_task(3)]))
        assert [t.id for t in load_records(path, Task)] == [2, 1, 3]

    def test_empty_array(self, tmp_path: Path) -> None:
        path = tmp_path / "task.json"
        path.write_text("[]")
        assert load_records(path, Task) == []

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CacheReadError) as info:
            load_records(tmp_path / "task.json", Task)
        assert info.value.path == tmp_path / "task.json"

    def test_truncated_json(self, tmp_path: Path) -> None:
        path = tmp_path / "task.json"
        path.write_text(json.dumps([make_task(1)])[:-10])
        with pytest.raises(CacheParseError, match="invalid JSON"):
            load_records(path, Task)

    def test_deeply_nested_json(self, tmp_path: Path) -> None:
        path = tmp_path / "task.json"
        path.write_text("[" * 200000 + "]" * 200000)
        with pytest.raises(CacheParseError, match="nesting too deep"):
            load_records(path, Task)

    def test_not_an_array(self, tmp_path: Path) -> None:
        path = tmp_path / "task.json"
        path.write_text(json.dumps(make_task(1)))
        with pytest.raises(CacheParseError, match="array"):
            load_records(path, Task)

    def test_bad_record_names_position(self, tmp_path: Path) -> None:
        path = tmp_path / "task.json"
        path.write_text(json.dumps([make_task(1), {"id": 2}]))
        with pytest.raises(CacheParseError, match="record 1"):
            load_records(path, Task)


class TestCacheStore:
    def test_reads_all_three(self, write_cache: WriteCache) -> None:
        store = write_cache(tasks=3, comments=2, projects=1)
        assert [t.id for t in store.read_tasks()] == [1, 2, 3]
        assert [c.id for c in store.read_comments()] == [1, 2]
        assert store.read_projects()[0].customer_name == "ACME"

    def test_rereads_on_every_call(self, write_cache: WriteCache) -> None:
        store = write_cache(tasks=3)
        assert len(store.read_tasks()) == 3
        write_cache(tasks=1)
        assert len(store.read_tasks()) == 1

    def test_paths(self, tmp_path: Path) -> None:
        store = CacheStore(tmp_path)
        assert store.task_path == tmp_path / "task.json"
        assert store.comment_path == tmp_path / "comment.json"
        assert store.project_path == tmp_path / "project.json"
