"""Out-of-process remote operations: cache refresh and task mutations.

Every request starts a detached helper process and is tracked as an
``Operation``. Nothing here ever waits on a child: ``poll()`` is called from
the dashboard's tick handler and only collects children that have already
exited.
"""

from __future__ import annotations

import logging
import subprocess
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

REFRESH = "refresh"
COMPLETE = "complete"
DELETE = "delete"

RUNNING = "running"
SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass
class Operation:
    """One helper invocation and what became of it."""

    kind: str
    argv: list[str]
    task_id: int | None = None
    status: str = RUNNING
    returncode: int | None = None
    error: str = ""
    started_at: float = field(default_factory=time.monotonic)
    process: Any = field(default=None, repr=False)

    @property
    def finished(self) -> bool:
        return self.status != RUNNING

    def describe(self) -> str:
        target = f" task {self.task_id}" if self.task_id is not None else ""
        text = f"{self.kind}{target}: {self.status}"
        if self.status == FAILED:
            if self.error:
                text += f" ({self.error})"
            elif self.returncode is not None:
                text += f" (exit {self.returncode})"
        return text


class RemoteOperations:
    """Launches the updater and task-control helpers without blocking."""

    def __init__(
        self,
        updater_cmd: list[str],
        task_control_cmd: list[str],
        popen: Callable[..., Any] = subprocess.Popen,
        history: int = 50,
    ) -> None:
        self.updater_cmd = list(updater_cmd)
        self.task_control_cmd = list(task_control_cmd)
        self._popen = popen
        self._running: list[Operation] = []
        self.history: deque[Operation] = deque(maxlen=history)

    # ── Requests ──────────────────────────────────────────────────────────

    def refresh(self) -> Operation:
        return self._spawn(REFRESH, list(self.updater_cmd))

    def complete_task(self, task_id: int) -> Operation:
        return self._spawn(
            COMPLETE, [*self.task_control_cmd, COMPLETE, str(task_id)], task_id
        )

    def delete_task(self, task_id: int) -> Operation:
        return self._spawn(
            DELETE, [*self.task_control_cmd, DELETE, str(task_id)], task_id
        )

    def _spawn(self, kind: str, argv: list[str], task_id: int | None = None) -> Operation:
        op = Operation(kind=kind, argv=argv, task_id=task_id)
        self.history.append(op)
        try:
            op.process = self._popen(
                argv,
                start_new_session=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            op.status = FAILED
            op.error = e.strerror or str(e)
            logger.error("could not start %s helper %s: %s", kind, argv[0], e)
            return op
        self._running.append(op)
        logger.info("started %s (pid %s): %s", kind, op.process.pid, " ".join(argv))
        return op

    # ── Completion ────────────────────────────────────────────────────────

    def poll(self) -> list[Operation]:
        """Collect helpers that have exited since the last call."""
        done: list[Operation] = []
        for op in self._running:
            code = op.process.poll()
            if code is None:
                continue
            op.returncode = code
            op.status = SUCCEEDED if code == 0 else FAILED
            op.process = None
            done.append(op)
            log = logger.info if code == 0 else logger.warning
            log("%s %s (exit status %s)", op.kind, op.status, code)
        if done:
            self._running = [op for op in self._running if not op.finished]
        return done

    @property
    def running(self) -> list[Operation]:
        return list(self._running)

    @property
    def latest(self) -> Operation | None:
        return self.history[-1] if self.history else None
