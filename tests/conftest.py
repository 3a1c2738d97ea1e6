"""Shared fixtures: cache directories populated with sample records."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from codeplan.cache import COMMENT_FILE, PROJECT_FILE, TASK_FILE, CacheStore


def make_task(task_id: int) -> dict[str, Any]:
    return {
        "id": task_id,
        "project": "Website",
        "content_preview": f"Task {task_id}",
        "content": f"Full description of task {task_id}",
        "begin_date": "2021-10-01T09:00:00Z",
        "end_date": "2021-10-08T18:00:00Z",
        "finish_date": "2021-10-07T17:30:00Z",
    }


def make_comment(comment_id: int) -> dict[str, Any]:
    return {
        "id": comment_id,
        "task_preview": f"Task {comment_id}",
        "content": f"Comment {comment_id}",
        "created_at": "2021-10-02T10:15:00Z",
    }


def make_project(project_id: int) -> dict[str, Any]:
    return {
        "id": project_id,
        "name": f"Project {project_id}",
        "customer_name": "ACME",
        "customer_document": "12.345.678/0001-90",
        "customer_contact": "ops@acme.example",
        "created_at": "2021-09-15T08:00:00Z",
    }


WriteCache = Callable[..., CacheStore]


@pytest.fixture
def write_cache(tmp_path: Path) -> WriteCache:
    """Write the given number of records (or raw text) to each cache file."""

    def _write(
        tasks: int | str | None = 3,
        comments: int | str | None = 2,
        projects: int | str | None = 1,
    ) -> CacheStore:
        cache_dir = tmp_path / "cache"
        cache_dir.mkdir(exist_ok=True)
        for name, value, factory in (
            (TASK_FILE, tasks, make_task),
            (COMMENT_FILE, comments, make_comment),
            (PROJECT_FILE, projects, make_project),
        ):
            path = cache_dir / name
            if value is None:
                path.unlink(missing_ok=True)
            elif isinstance(value, str):
                path.write_text(value, encoding="utf-8")
            else:
                records = [factory(i) for i in range(1, value + 1)]
                path.write_text(json.dumps(records), encoding="utf-8")
        return CacheStore(cache_dir)

    return _write
