"""Read-only access to the three cache files written by the updater.

Each file is a JSON array of records. The dashboard re-reads a file every
time it needs one, so nothing here holds state between calls.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

TASK_FILE = "task.json"
COMMENT_FILE = "comment.json"
PROJECT_FILE = "project.json"


# ── Errors ─────────────────────────────────────────────────────────────────


class CacheError(Exception):
    """A cache file could not be turned into records."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class CacheReadError(CacheError):
    """The file is missing or unreadable."""


class CacheParseError(CacheError):
    """The file does not hold a list of well-formed records."""


# ── Records ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Task:
    id: int
    project: str
    content_preview: str
    content: str
    begin_date: datetime
    end_date: datetime
    finish_date: datetime


@dataclass(frozen=True)
class Comment:
    id: int
    task_preview: str
    content: str
    created_at: datetime


@dataclass(frozen=True)
class Project:
    id: int
    name: str
    customer_name: str
    customer_document: str
    customer_contact: str
    created_at: datetime


Record = TypeVar("Record", Task, Comment, Project)

_FIELD_KINDS: dict[str, type] = {"int": int, "str": str, "datetime": datetime}


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed)."""
    if not isinstance(value, str):
        raise ValueError(f"expected a timestamp string, got {type(value).__name__}")
    return datetime.fromisoformat(value)


def _coerce(name: str, kind: type, value: Any) -> Any:
    if kind is datetime:
        return parse_timestamp(value)
    # bool is an int subclass; a JSON true/false is never a valid id
    if kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValueError(f"field '{name}' must be an integer")
    if kind is str and not isinstance(value, str):
        raise ValueError(f"field '{name}' must be a string")
    return value


def record_from_dict(cls: type[Record], raw: Any) -> Record:
    """Build one record from a decoded JSON object. Extra keys are ignored."""
    if not isinstance(raw, dict):
        raise ValueError(f"expected an object, got {type(raw).__name__}")
    values: dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in raw:
            raise ValueError(f"missing field '{f.name}'")
        type_name = f.type if isinstance(f.type, str) else f.type.__name__
        values[f.name] = _coerce(f.name, _FIELD_KINDS[type_name], raw[f.name])
    return cls(**values)


def load_records(path: Path, cls: type[Record]) -> list[Record]:
    """Read and parse a whole cache file.

    Raises:
        CacheReadError: the file is missing or unreadable.
        CacheParseError: the content is not a JSON array of ``cls`` records.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CacheReadError(path, str(e)) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CacheParseError(path, f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise CacheParseError(path, "invalid JSON: nesting too deep") from e
    if not isinstance(data, list):
        raise CacheParseError(path, "expected a JSON array")

    records: list[Record] = []
    for index, raw in enumerate(data):
        try:
            records.append(record_from_dict(cls, raw))
        except ValueError as e:
            raise CacheParseError(path, f"record {index}: {e}") from e
    return records


class CacheStore:
    """The three cache files under one directory."""

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir

    @property
    def task_path(self) -> Path:
        return self.cache_dir / TASK_FILE

    @property
    def comment_path(self) -> Path:
        return self.cache_dir / COMMENT_FILE

    @property
    def project_path(self) -> Path:
        return self.cache_dir / PROJECT_FILE

    def read_tasks(self) -> list[Task]:
        return load_records(self.task_path, Task)

    def read_comments(self) -> list[Comment]:
        return load_records(self.comment_path, Comment)

    def read_projects(self) -> list[Project]:
        return load_records(self.project_path, Project)
