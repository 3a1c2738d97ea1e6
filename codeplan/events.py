"""Background producer merging key presses and redraw ticks into one queue.

A single daemon thread polls the input source for at most the time left
until the next tick, forwards any key immediately, and emits a ``Tick`` once
the tick interval has elapsed. The main loop is the only consumer.
"""

from __future__ import annotations

import curses
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol, Union

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.2  # seconds


# ── Event types ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Input:
    key: int


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class ProducerFailed:
    """Sent once when the producer dies; nothing follows it."""

    error: Exception


Event = Union[Input, Tick, ProducerFailed]


class EventSourceError(RuntimeError):
    """The producer thread could not read input and has stopped."""


# ── Input sources ──────────────────────────────────────────────────────────


class KeySource(Protocol):
    def poll(self, timeout: float) -> int | None:
        """Wait up to *timeout* seconds for a key; None if none arrived."""
        ...


class CursesKeySource:
    """Reads keys from a dedicated, never-drawn curses window.

    The window is never written to, so ``getch`` on it does not repaint the
    screen the main thread is drawing on. Terminal resizes are handled on the
    main thread (see ``dashboard.ResizeWatch``), not inside this ``getch``.
    """

    def __init__(self, win: curses.window) -> None:
        self._win = win
        self._win.keypad(True)

    def poll(self, timeout: float) -> int | None:
        self._win.timeout(max(0, int(timeout * 1000)))
        key = self._win.getch()
        return None if key == -1 else key


# ── Producer ───────────────────────────────────────────────────────────────


class EventProducer:
    def __init__(
        self,
        source: KeySource,
        interval: float = TICK_INTERVAL,
        events: queue.Queue[Event] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.interval = interval
        self.events: queue.Queue[Event] = events if events is not None else queue.Queue()
        self._clock = clock
        self._last_tick = clock()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def step(self) -> None:
        """Run one poll/tick iteration."""
        remaining = max(0.0, self.interval - (self._clock() - self._last_tick))
        key = self.source.poll(remaining)
        if key is not None:
            self.events.put(Input(key))
        if self._clock() - self._last_tick >= self.interval:
            self.events.put(Tick())
            self._last_tick = self._clock()

    def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                self.step()
            except Exception as e:
                logger.exception("event producer failed")
                self.events.put(ProducerFailed(e))
                return

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run, name="codeplan-events", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def next_event(self) -> Input | Tick:
        """Block until the next event.

        Raises:
            EventSourceError: the producer died; the loop cannot continue.
        """
        event = self.events.get()
        if isinstance(event, ProducerFailed):
            raise EventSourceError(f"input source failed: {event.error}") from event.error
        return event
