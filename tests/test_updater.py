"""Tests for codeplan.client and codeplan.updater."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from codeplan.cache import CacheStore
from codeplan.client import CodeplanAPIError, CodeplanClient
from codeplan.updater import main, update_cache, write_atomic

from conftest import make_comment, make_project, make_task

SERVER = "http://tasks:4000"


def _response(payload: Any = None, status: int = 200) -> MagicMock:
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(response=resp)
    return resp


def _session(routes: dict[str, Any]) -> MagicMock:
    """Session whose GETs answer from *routes* (path -> payload or exception)."""
    session = MagicMock(spec=requests.Session)
    session.headers = {}

    def request(method: str, url: str, timeout: float) -> MagicMock:
        answer = routes[url.removeprefix(SERVER)]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, MagicMock):
            return answer
        return _response(answer)

    session.request.side_effect = request
    return session


def _good_routes() -> dict[str, Any]:
    return {
        "/tasks/": [make_task(1), make_task(2)],
        "/tasks/comments/": [make_comment(1)],
        "/projects/": [make_project(1), make_project(2), make_project(3)],
    }


class TestClient:
    def test_sets_accept_header(self) -> None:
        session = _session(_good_routes())
        CodeplanClient(SERVER, session=session)
        assert session.headers["Accept"] == "application/json"

    def test_strips_trailing_slash(self) -> None:
        session = _session(_good_routes())
        CodeplanClient(SERVER + "/", session=session).get_tasks()
        session.request.assert_called_once_with("GET", f"{SERVER}/tasks/", timeout=10.0)

    def test_http_error_carries_status(self) -> None:
        session = _session({"/tasks/": _response(status=503)})
        with pytest.raises(CodeplanAPIError) as info:
            CodeplanClient(SERVER, session=session).get_tasks()
        assert info.value.status_code == 503

    def test_timeout(self) -> None:
        session = _session({"/tasks/": requests.Timeout()})
        with pytest.raises(CodeplanAPIError, match="timed out after 2.5s"):
            CodeplanClient(SERVER, timeout=2.5, session=session).get_tasks()

    def test_connection_error(self) -> None:
        session = _session({"/projects/": requests.ConnectionError("refused")})
        with pytest.raises(CodeplanAPIError, match="refused"):
            CodeplanClient(SERVER, session=session).get_projects()

    def test_non_array_rejected(self) -> None:
        session = _session({"/tasks/comments/": {"detail": "nope"}})
        with pytest.raises(CodeplanAPIError, match="array"):
            CodeplanClient(SERVER, session=session).get_comments()

    def test_non_json_rejected(self) -> None:
        resp = _response()
        resp.json.side_effect = ValueError("no json")
        session = _session({"/tasks/": resp})
        with pytest.raises(CodeplanAPIError, match="JSON"):
            CodeplanClient(SERVER, session=session).get_tasks()


class TestWriteAtomic:
    def test_writes_json_and_leaves_no_temp_files(self, tmp_path: Path) -> None:
        target = tmp_path / "cache" / "task.json"
        write_atomic(target, [make_task(1)])
        assert json.loads(target.read_text(encoding="utf-8")) == [make_task(1)]
        assert [p.name for p in target.parent.iterdir()] == ["task.json"]

    def test_failed_write_keeps_old_file(self, tmp_path: Path) -> None:
        target = tmp_path / "task.json"
        target.write_text("[]")
        with pytest.raises(TypeError):
            write_atomic(target, [object()])
        assert target.read_text() == "[]"
        assert [p.name for p in tmp_path.iterdir()] == ["task.json"]


class TestUpdateCache:
    def test_writes_all_three_files(self, tmp_path: Path) -> None:
        client = CodeplanClient(SERVER, session=_session(_good_routes()))
        counts = update_cache(client, tmp_path)
        assert counts == {"task.json": 2, "comment.json": 1, "project.json": 3}
        store = CacheStore(tmp_path)
        assert [t.id for t in store.read_tasks()] == [1, 2]
        assert len(store.read_projects()) == 3

    def test_failure_leaves_previous_cache(self, tmp_path: Path) -> None:
        previous = json.dumps([make_task(9)])
        (tmp_path / "task.json").write_text(previous)
        routes = _good_routes()
        routes["/projects/"] = _response(status=500)
        client = CodeplanClient(SERVER, session=_session(routes))
        with pytest.raises(CodeplanAPIError):
            update_cache(client, tmp_path)
        assert (tmp_path / "task.json").read_text() == previous
        assert not (tmp_path / "comment.json").exists()


class TestMain:
    def test_success(self, tmp_path: Path) -> None:
        session = _session(_good_routes())
        with patch("codeplan.client.requests.Session", return_value=session):
            main(["--cache-dir", str(tmp_path), "--server", SERVER])
        assert (tmp_path / "comment.json").exists()

    def test_failure_exits_1(self, tmp_path: Path) -> None:
        session = _session({"/tasks/": requests.ConnectionError("down")})
        with patch("codeplan.client.requests.Session", return_value=session):
            with pytest.raises(SystemExit) as info:
                main(["--cache-dir", str(tmp_path), "--server", SERVER])
        assert info.value.code == 1
        assert list(tmp_path.iterdir()) == []
