"""
codeplan API client
Thin wrapper over the remote task service used by the helper programs
"""

from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

TASKS_PATH = "/tasks/"
COMMENTS_PATH = "/tasks/comments/"
PROJECTS_PATH = "/projects/"


class CodeplanAPIError(Exception):
    """Raised when a request to the task service fails"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CodeplanClient:
    """Client for the task service.

    Args:
        server_url: Base URL, e.g. ``http://localhost:4000``
        timeout: Per-request timeout in seconds
        session: Optional pre-built ``requests.Session``
    """

    def __init__(
        self,
        server_url: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def _request(self, method: str, path: str) -> requests.Response:
        url = f"{self.server_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            raise CodeplanAPIError(f"{method} {url} timed out after {self.timeout}s") from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise CodeplanAPIError(f"{method} {url} returned HTTP {status}", status) from e
        except requests.RequestException as e:
            raise CodeplanAPIError(f"{method} {url} failed: {e}") from e
        return response

    def fetch_collection(self, path: str) -> list[Any]:
        """GET a collection endpoint and return the decoded JSON array."""
        response = self._request("GET", path)
        try:
            data = response.json()
        except ValueError as e:
            raise CodeplanAPIError(f"{path} did not return JSON") from e
        if not isinstance(data, list):
            raise CodeplanAPIError(f"{path} did not return a JSON array")
        return data

    def get_tasks(self) -> list[Any]:
        return self.fetch_collection(TASKS_PATH)

    def get_comments(self) -> list[Any]:
        return self.fetch_collection(COMMENTS_PATH)

    def get_projects(self) -> list[Any]:
        return self.fetch_collection(PROJECTS_PATH)

    def complete_task(self, task_id: int) -> None:
        """Mark a task as complete"""
        self._request("POST", f"/tasks/{task_id}/complete")

    def delete_task(self, task_id: int) -> None:
        """Delete a task"""
        self._request("DELETE", f"/tasks/{task_id}")
