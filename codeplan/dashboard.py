"""Interactive terminal dashboard for the codeplan task cache.

Shows the cached tasks, comments and projects written by ``codeplan-updater``
using curses, and hands refresh/complete/delete requests to helper processes
without waiting for them.

Usage:
    codeplan-tui
    codeplan-tui --interval 0.5 --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import logging
import os
import signal
import sys
import textwrap
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Sequence

from codeplan.cache import CacheError, CacheStore, Comment, Project, Task
from codeplan.config import dump_default_config, helper_command, load_config
from codeplan.events import CursesKeySource, EventProducer, EventSourceError, Input
from codeplan.log import setup_logging
from codeplan.navigation import LIST_VIEWS, Controller, MenuItem
from codeplan.operations import FAILED, SUCCEEDED, RemoteOperations

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────────────────

MIN_WIDTH = 40
MIN_HEIGHT = 12

# Curses colour-pair IDs
C_NORMAL = 1
C_WARNING = 2
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5

MENU: list[tuple[str, MenuItem | None]] = [
    ("i", MenuItem.HOME),
    ("t", MenuItem.MONITOR),
    ("c", MenuItem.COMMENTS),
    ("p", MenuItem.PROJECTS),
    ("l", MenuItem.LICENSE),
    ("s", None),
]
MENU_TITLES: dict[MenuItem | None, str] = {
    MenuItem.HOME: "Home",
    MenuItem.MONITOR: "Tasks",
    MenuItem.COMMENTS: "Comments",
    MenuItem.PROJECTS: "Projects",
    MenuItem.LICENSE: "License",
    None: "Quit",
}

HOME_TEXT = [
    "codeplan terminal UI",
    "",
    "Press 'i' for this page, 't' for the task monitor, 'c' for comments,",
    "'p' for projects, 'u' to sync with the server and 's' to quit.",
]
LICENSE_TEXT = [
    "",
    "codeplan TUI by Open Build 2021 - all rights reserved.",
]
ERROR_TEXT = [
    "",
    "Something went wrong :(",
    "",
]

# Last cache error written to the log, so a broken file is reported once
# rather than on every frame.
_last_cache_error: str | None = None


# ── Colour helpers ─────────────────────────────────────────────────────────


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)


# ── Frame model ────────────────────────────────────────────────────────────


def fmt_timestamp(value: datetime) -> str:
    """Timestamp as shown in detail panels."""
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    if value.tzinfo is not None:
        text += f" {value.tzname()}"
    return text


@dataclass(frozen=True)
class ViewLayout:
    title: str
    label: Callable[[Any], str]
    headers: list[str]
    detail: Callable[[Any], list[str]]


VIEW_LAYOUTS: dict[MenuItem, ViewLayout] = {
    MenuItem.MONITOR: ViewLayout(
        title="Monitor",
        label=lambda t: t.content_preview,
        headers=["Project", "Description", "Begins", "Due"],
        detail=lambda t: [
            t.project,
            t.content,
            fmt_timestamp(t.begin_date),
            fmt_timestamp(t.end_date),
        ],
    ),
    MenuItem.COMMENTS: ViewLayout(
        title="Comments",
        label=lambda c: c.task_preview,
        headers=["Comment", "Commented at"],
        detail=lambda c: [c.content, fmt_timestamp(c.created_at)],
    ),
    MenuItem.PROJECTS: ViewLayout(
        title="Projects",
        label=lambda p: p.name,
        headers=["Customer", "Customer doc.", "Customer contact", "Created"],
        detail=lambda p: [
            p.customer_name,
            p.customer_document,
            p.customer_contact,
            fmt_timestamp(p.created_at),
        ],
    ),
}


@dataclass
class ListPanel:
    """Everything needed to draw one list view and its detail pane."""

    title: str
    items: list[str]
    selected: int
    headers: list[str]
    detail: list[str] | None = None
    notice: str = ""


@dataclass
class Frame:
    active: MenuItem
    shown: MenuItem
    panel: ListPanel | None = None
    error: str = ""
    hint: str = "No actions available"
    status: str = ""
    status_color: int = C_DIM
    lines: list[str] = field(default_factory=lambda: list[str]())


def _printable(text: str) -> str:
    """Replace control characters so one record stays on one screen line."""
    return "".join(ch if ch.isprintable() else " " for ch in text)


def build_list_panel(
    view: MenuItem, records: Sequence[Task | Comment | Project], selected: int
) -> ListPanel:
    """Describe a list view without ever indexing past the records."""
    layout = VIEW_LAYOUTS[view]
    panel = ListPanel(
        title=layout.title,
        items=[_printable(layout.label(r)) for r in records],
        selected=selected,
        headers=layout.headers,
    )
    if not records:
        panel.notice = "No records"
    elif selected >= len(records):
        panel.notice = "Selection out of range, press Up or Down"
    else:
        panel.detail = [_printable(value) for value in layout.detail(records[selected])]
    return panel


def _operation_status(operations: RemoteOperations) -> tuple[str, int]:
    op = operations.latest
    if op is None:
        return "", C_DIM
    if op.status == SUCCEEDED:
        return op.describe(), C_NORMAL
    if op.status == FAILED:
        return op.describe(), C_CRITICAL
    return op.describe(), C_WARNING


def build_frame(controller: Controller) -> Frame:
    """Read whatever the active view needs from disk and describe the frame."""
    global _last_cache_error

    active = controller.state.active
    frame = Frame(active=active, shown=active)
    frame.status, frame.status_color = _operation_status(controller.operations)

    if active is MenuItem.HOME:
        frame.lines = HOME_TEXT
    elif active is MenuItem.LICENSE:
        frame.lines = LICENSE_TEXT
    elif active in LIST_VIEWS:
        try:
            records = controller.load(active)
        except CacheError as e:
            if str(e) != _last_cache_error:
                logger.error("cannot show %s: %s", active.name.lower(), e)
                _last_cache_error = str(e)
            frame.shown = MenuItem.ERROR
            frame.error = str(e)
        else:
            _last_cache_error = None
            frame.panel = build_list_panel(
                active, records, controller.state.selection(active)
            )
            if active is MenuItem.MONITOR and records:
                frame.hint = "(f) Mark as complete | (d) Delete"

    return frame


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors and unprintable text."""
    try:
        win.addstr(*args)
    except (curses.error, ValueError):
        pass


def _draw_box(
    win: curses.window,
    y: int,
    x: int,
    h: int,
    w: int,
    title: str = "",
) -> curses.window | None:
    """Draw a bordered box and return the inner sub-window."""
    max_y, max_x = win.getmaxyx()
    h = min(h, max_y - y)
    w = min(w, max_x - x)
    if h < 3 or w < 4:
        return None
    try:
        sub = win.subwin(h, w, y, x)
        sub.box()
        if title and len(title) + 4 < w:
            sub.addstr(
                0, 2, f" {title} ", curses.color_pair(C_TITLE) | curses.A_BOLD
            )
        return sub
    except curses.error:
        return None


def _draw_centered(
    win: curses.window, w: int, lines: list[str], attr: int, first_row: int = 1
) -> None:
    for i, line in enumerate(lines):
        text = line[: w - 4]
        _safe(win, first_row + i, max(1, (w - len(text)) // 2), text, attr)


# ── Panel renderers ────────────────────────────────────────────────────────


def draw_menu(win: curses.window, y: int, w: int, frame: Frame) -> None:
    box = _draw_box(win, y, 0, 3, w, "Menu")
    if not box:
        return
    x = 2
    for key, item in MENU:
        label = f"{key}:{MENU_TITLES[item]}"
        if x + len(label) >= w - 2:
            break
        attr = curses.color_pair(C_DIM)
        if item is frame.active:
            attr = curses.color_pair(C_TITLE) | curses.A_REVERSE | curses.A_BOLD
        _safe(box, 1, x, key, attr | curses.A_UNDERLINE)
        _safe(box, label[1:], attr)
        x += len(label) + 1
        if x < w - 2:
            _safe(box, 1, x - 1, "|", curses.color_pair(C_DIM))


def draw_paragraph(
    win: curses.window, y: int, w: int, h: int, title: str, lines: list[str]
) -> None:
    box = _draw_box(win, y, 0, h, w, title)
    if not box:
        return
    _draw_centered(box, w, lines, curses.color_pair(C_DIM) | curses.A_BOLD)


def draw_error(win: curses.window, y: int, w: int, h: int, message: str) -> None:
    box = _draw_box(win, y, 0, h, w, "Error")
    if not box:
        return
    attr = curses.color_pair(C_CRITICAL)
    _draw_centered(box, w, ERROR_TEXT, attr | curses.A_BOLD)
    wrapped = textwrap.wrap(message, max(10, w - 8)) or [""]
    _draw_centered(box, w, wrapped, attr, first_row=1 + len(ERROR_TEXT))
    _draw_centered(
        box,
        w,
        ["Retrying on every frame; press 'u' to refresh the cache."],
        curses.color_pair(C_DIM),
        first_row=2 + len(ERROR_TEXT) + len(wrapped),
    )


def draw_list_panel(
    win: curses.window, y: int, w: int, h: int, panel: ListPanel
) -> None:
    list_w = max(16, w // 4)
    box = _draw_box(win, y, 0, h, list_w, panel.title)
    if box:
        rows = h - 2
        first = max(0, min(panel.selected, len(panel.items) - 1) - rows + 1)
        for row, index in enumerate(range(first, min(len(panel.items), first + rows))):
            text = f" {panel.items[index]}"[: list_w - 2].ljust(list_w - 2)
            attr = curses.color_pair(C_DIM)
            if index == panel.selected:
                attr = curses.A_REVERSE | curses.A_BOLD
            _safe(box, row + 1, 1, text, attr)

    detail = _draw_box(win, y, list_w, h, w - list_w, "Details")
    if not detail:
        return
    inner_w = w - list_w - 4
    if panel.detail is None:
        _safe(detail, 1, 2, panel.notice[:inner_w], curses.color_pair(C_WARNING))
        return
    row = 1
    label_w = max(len(header) for header in panel.headers) + 2
    for header, value in zip(panel.headers, panel.detail):
        if row >= h - 1:
            break
        _safe(detail, row, 2, f"{header}:"[:inner_w], curses.color_pair(C_TITLE) | curses.A_BOLD)
        for line in textwrap.wrap(value, max(10, inner_w - label_w)) or [""]:
            if row >= h - 1:
                break
            _safe(detail, row, 2 + label_w, line, curses.color_pair(C_DIM))
            row += 1


def draw_options(win: curses.window, y: int, w: int, frame: Frame) -> None:
    box = _draw_box(win, y, 0, 3, w, "Options")
    if not box:
        return
    _safe(box, 1, 2, frame.hint[: w - 4], curses.color_pair(C_DIM))
    if frame.status:
        status = frame.status[: max(0, w - len(frame.hint) - 8)]
        if status:
            _safe(box, 1, w - len(status) - 2, status, curses.color_pair(frame.status_color))


# ── Header ─────────────────────────────────────────────────────────────────


def _draw_header(win: curses.window, w: int) -> None:
    ts = time.strftime("%H:%M:%S")
    attr = curses.color_pair(C_TITLE) | curses.A_REVERSE
    _safe(win, 0, 0, " " * (w - 1), attr)
    _safe(win, 0, 1, "codeplan", attr | curses.A_BOLD)
    hint = "u: sync  s: quit"
    _safe(win, 0, max(0, w - len(hint) - 2), hint, attr)
    _safe(win, 0, (w - len(ts)) // 2, ts, attr)


def draw_frame(win: curses.window, frame: Frame) -> None:
    max_y, max_x = win.getmaxyx()
    if max_y < MIN_HEIGHT or max_x < MIN_WIDTH:
        _safe(win, 0, 0, f"Terminal too small (need {MIN_WIDTH}x{MIN_HEIGHT}+)")
        return

    _draw_header(win, max_x)
    draw_menu(win, 1, max_x, frame)
    body_y = 4
    body_h = max_y - body_y - 3

    if frame.shown is MenuItem.ERROR:
        draw_error(win, body_y, max_x, body_h, frame.error)
    elif frame.panel is not None:
        draw_list_panel(win, body_y, max_x, body_h, frame.panel)
    else:
        title = MENU_TITLES.get(frame.shown, "")
        draw_paragraph(win, body_y, max_x, body_h, title, frame.lines)

    draw_options(win, max_y - 3, max_x, frame)


# ── Main loop ──────────────────────────────────────────────────────────────


def build_operations(config: dict[str, Any], cache_dir: Path) -> RemoteOperations:
    server = str(config["server_url"])
    return RemoteOperations(
        updater_cmd=helper_command(
            config,
            "updater",
            "codeplan.updater",
            ["--cache-dir", str(cache_dir.resolve()), "--server", server],
        ),
        task_control_cmd=helper_command(
            config, "task_control", "codeplan.task_control", ["--server", server]
        ),
    )


class ResizeWatch:
    """Take SIGWINCH away from ncurses while the dashboard runs.

    ncurses otherwise resizes its windows inside ``getch``, which runs on the
    input thread. The flag is read and cleared by the drawing thread only.
    """

    def __init__(self) -> None:
        self.pending = False
        self._previous: Any = None

    def _on_signal(self, signum: int, frame: Any) -> None:
        self.pending = True

    def __enter__(self) -> ResizeWatch:
        self._previous = signal.signal(signal.SIGWINCH, self._on_signal)
        return self

    def __exit__(self, *exc: object) -> None:
        # None means the old handler was installed outside Python (ncurses)
        signal.signal(
            signal.SIGWINCH, signal.SIG_DFL if self._previous is None else self._previous
        )


def apply_resize(stdscr: curses.window) -> None:
    """Resize curses to the current terminal size and force a full repaint."""
    cols, lines = os.get_terminal_size(sys.__stdout__.fileno())
    curses.resizeterm(lines, cols)
    stdscr.clear()


def _dashboard_loop(
    stdscr: curses.window, config: dict[str, Any], cache_dir: Path, interval: float
) -> None:
    _init_colors()
    curses.curs_set(0)

    # Keys are read on the producer thread from this window only.
    input_win = curses.newwin(1, 1, 0, 0)
    input_win.refresh()
    producer = EventProducer(CursesKeySource(input_win), interval)
    controller = Controller(CacheStore(cache_dir), build_operations(config, cache_dir))

    with ResizeWatch() as resize:
        producer.start()
        try:
            while True:
                frame = build_frame(controller)
                stdscr.erase()
                draw_frame(stdscr, frame)
                stdscr.refresh()

                event = producer.next_event()
                if resize.pending:
                    resize.pending = False
                    apply_resize(stdscr)
                if event == Input(curses.KEY_RESIZE):
                    continue
                if not controller.handle(event):
                    return
        finally:
            producer.stop(timeout=interval * 2)


# ── CLI entry point ────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Terminal dashboard for the codeplan task cache.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between redraw ticks (default: 0.2)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        metavar="DIR",
        help="Directory holding task.json, comment.json and project.json",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    config = load_config(args.config)
    cache_dir: Path = args.cache_dir or Path(config["cache_dir"])
    interval = args.interval if args.interval is not None else float(config["tick_interval"])

    setup_logging(str(config["log_level"]), Path(config["log_file"]))
    logger.info("dashboard starting (cache: %s, tick: %ss)", cache_dir, interval)

    # Arrow keys arrive as escape sequences; don't wait a full second for them.
    os.environ.setdefault("ESCDELAY", "25")
    try:
        curses.wrapper(_dashboard_loop, config, cache_dir, interval)
    except KeyboardInterrupt:
        pass
    except EventSourceError as e:
        logger.error("dashboard stopped: %s", e)
        print(f"codeplan: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    logger.info("dashboard stopped")


if __name__ == "__main__":
    main()
