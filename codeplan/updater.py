"""Refresh the three cache files from the task service.

All three collections are downloaded before anything is written, so a failed
run leaves the previous cache untouched. Each file is written to a temporary
file next to it and renamed into place, so a reader never sees half a file.

Usage:
    codeplan-updater
    codeplan-updater --cache-dir ./cache --server http://localhost:4000
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any

from codeplan.cache import COMMENT_FILE, PROJECT_FILE, TASK_FILE
from codeplan.client import CodeplanAPIError, CodeplanClient
from codeplan.config import load_config
from codeplan.log import setup_logging

logger = logging.getLogger(__name__)


def write_atomic(path: Path, data: Any) -> None:
    """Write *data* as JSON to *path* via a temporary file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def update_cache(client: CodeplanClient, cache_dir: Path) -> dict[str, int]:
    """Download every collection, then replace the cache files.

    Returns:
        Record count per cache file name.

    Raises:
        CodeplanAPIError: any download failed; no file was written.
    """
    collections = {
        TASK_FILE: client.get_tasks(),
        COMMENT_FILE: client.get_comments(),
        PROJECT_FILE: client.get_projects(),
    }
    for name, records in collections.items():
        write_atomic(cache_dir / name, records)
    return {name: len(records) for name, records in collections.items()}


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Download tasks, comments and projects into the local cache.",
    )
    parser.add_argument("--config", type=Path, default=None, metavar="PATH")
    parser.add_argument("--cache-dir", type=Path, default=None, metavar="DIR")
    parser.add_argument("--server", default=None, metavar="URL")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(str(config["log_level"]))
    cache_dir: Path = args.cache_dir or Path(config["cache_dir"])
    client = CodeplanClient(
        args.server or str(config["server_url"]),
        timeout=float(config["request_timeout"]),
    )

    try:
        counts = update_cache(client, cache_dir)
    except CodeplanAPIError as e:
        logger.error("cache not updated: %s", e)
        sys.exit(1)
    except OSError as e:
        logger.error("cannot write cache in %s: %s", cache_dir, e)
        sys.exit(1)
    logger.info(
        "cache updated in %s: %s",
        cache_dir,
        ", ".join(f"{name}={count}" for name, count in counts.items()),
    )


if __name__ == "__main__":
    main()
