"""Send one task mutation to the task service.

Usage:
    codeplan-task-control complete 3
    codeplan-task-control --server http://localhost:4000 delete 3
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from codeplan.client import CodeplanAPIError, CodeplanClient
from codeplan.config import load_config
from codeplan.log import setup_logging

logger = logging.getLogger(__name__)

ACTIONS = ("complete", "delete")


def _task_id(value: str) -> int:
    try:
        task_id = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a task id: {value!r}") from None
    if task_id < 1:
        raise argparse.ArgumentTypeError(f"task ids start at 1, got {task_id}")
    return task_id


def run_action(client: CodeplanClient, action: str, task_id: int) -> None:
    if action == "complete":
        client.complete_task(task_id)
    elif action == "delete":
        client.delete_task(task_id)
    else:
        raise ValueError(f"unknown action: {action}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Mark a task as complete or delete it on the task service.",
    )
    parser.add_argument("--config", type=Path, default=None, metavar="PATH")
    parser.add_argument("--server", default=None, metavar="URL")
    parser.add_argument("action", choices=ACTIONS)
    parser.add_argument("task_id", type=_task_id)
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(str(config["log_level"]))
    client = CodeplanClient(
        args.server or str(config["server_url"]),
        timeout=float(config["request_timeout"]),
    )

    try:
        run_action(client, args.action, args.task_id)
    except CodeplanAPIError as e:
        logger.error("%s task %d failed: %s", args.action, args.task_id, e)
        sys.exit(1)
    logger.info("%s task %d: done", args.action, args.task_id)


if __name__ == "__main__":
    main()
