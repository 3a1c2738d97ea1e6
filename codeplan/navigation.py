"""Menu state machine, per-view selection and key dispatch.

The dashboard's whole mutable state is the active menu item plus one
selection index per list view. Every key press that needs a collection
length re-reads that collection from the cache; nothing is remembered
between frames.
"""

from __future__ import annotations

import curses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

from codeplan.cache import CacheError, CacheStore
from codeplan.events import Input, Tick
from codeplan.operations import RemoteOperations

logger = logging.getLogger(__name__)


class MenuItem(Enum):
    HOME = 0
    MONITOR = 1
    COMMENTS = 2
    PROJECTS = 3
    LICENSE = 4
    # Rendered in place of a list view whose cache cannot be loaded; no key
    # selects it.
    ERROR = 5


LIST_VIEWS = (MenuItem.MONITOR, MenuItem.COMMENTS, MenuItem.PROJECTS)

MENU_KEYS: dict[int, MenuItem] = {
    ord("i"): MenuItem.HOME,
    ord("t"): MenuItem.MONITOR,
    ord("c"): MenuItem.COMMENTS,
    ord("p"): MenuItem.PROJECTS,
    ord("l"): MenuItem.LICENSE,
}
QUIT_KEY = ord("s")
REFRESH_KEY = ord("u")
COMPLETE_KEY = ord("f")
DELETE_KEY = ord("d")


# ── Selection arithmetic ───────────────────────────────────────────────────


def select_next(index: int, length: int) -> int:
    """Move down one row, wrapping from the last row to the first."""
    if length <= 0:
        return index
    if index >= length - 1:
        return 0
    return index + 1


def select_previous(index: int, length: int) -> int:
    """Move up one row, wrapping from the first row to the last.

    An index left past the end by a shrinking refresh lands on the last row.
    """
    if length <= 0:
        return index
    if index == 0 or index > length - 1:
        return length - 1
    return index - 1


def task_identifier(index: int) -> int:
    """Remote id of the task shown at list position *index*.

    The server numbers tasks 1..N in the same order it returns them, so the
    id is the position plus one. Filtering or re-sorting the task list
    before display would break this.
    """
    return index + 1


# ── State ──────────────────────────────────────────────────────────────────


@dataclass
class DashboardState:
    active: MenuItem = MenuItem.HOME
    selected: dict[MenuItem, int] = field(
        default_factory=lambda: {view: 0 for view in LIST_VIEWS}
    )

    def selection(self, view: MenuItem) -> int:
        return self.selected[view]


class Controller:
    """Applies one event at a time to the dashboard state."""

    def __init__(
        self,
        cache: CacheStore,
        operations: RemoteOperations,
        state: DashboardState | None = None,
    ) -> None:
        self.cache = cache
        self.operations = operations
        self.state = state if state is not None else DashboardState()
        self._readers: dict[MenuItem, Callable[[], Sequence[Any]]] = {
            MenuItem.MONITOR: cache.read_tasks,
            MenuItem.COMMENTS: cache.read_comments,
            MenuItem.PROJECTS: cache.read_projects,
        }

    def handle(self, event: Input | Tick) -> bool:
        """Process one event. Returns False when the dashboard should exit."""
        if isinstance(event, Tick):
            self.operations.poll()
            return True
        return self.handle_key(event.key)

    def handle_key(self, key: int) -> bool:
        state = self.state
        if key == QUIT_KEY:
            return False
        if key in MENU_KEYS:
            state.active = MENU_KEYS[key]
        elif key == REFRESH_KEY:
            self.operations.refresh()
        elif key in (COMPLETE_KEY, DELETE_KEY):
            if state.active is MenuItem.MONITOR:
                self._mutate_selected_task(key)
        elif key == curses.KEY_DOWN:
            self._move(select_next)
        elif key == curses.KEY_UP:
            self._move(select_previous)
        return True

    def load(self, view: MenuItem) -> Sequence[Any]:
        """Read the collection behind a list view.

        Raises:
            CacheError: the cache file is missing, unreadable or malformed.
        """
        return self._readers[view]()

    def _length(self, view: MenuItem) -> int | None:
        try:
            return len(self.load(view))
        except CacheError as e:
            logger.debug("ignoring key for %s: %s", view.name.lower(), e)
            return None

    def _move(self, step: Callable[[int, int], int]) -> None:
        view = self.state.active
        if view not in LIST_VIEWS:
            return
        length = self._length(view)
        if not length:
            return
        self.state.selected[view] = step(self.state.selected[view], length)

    def _mutate_selected_task(self, key: int) -> None:
        action = "complete" if key == COMPLETE_KEY else "delete"
        index = self.state.selected[MenuItem.MONITOR]
        length = self._length(MenuItem.MONITOR)
        if length is None or index >= length:
            logger.warning("not sending %s: no task at position %d", action, index)
            return
        task_id = task_identifier(index)
        if key == COMPLETE_KEY:
            self.operations.complete_task(task_id)
        else:
            self.operations.delete_task(task_id)
