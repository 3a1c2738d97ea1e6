"""Settings for the dashboard and its helper programs.

Values come from a TOML file layered over ``DEFAULT_CONFIG``. The file is
``--config PATH`` when given, else ``~/.config/codeplan/config.toml`` if it
exists. An unusable explicit file is fatal; an unusable default file is
reported and skipped.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any, NoReturn

DEFAULT_CONFIG: dict[str, Any] = {
    "server_url": "http://localhost:4000",
    "cache_dir": "cache",
    "tick_interval": 0.2,
    "request_timeout": 10.0,
    "log_file": "codeplan.log",
    "log_level": "INFO",
    "helpers": {
        "updater": [],
        "task_control": [],
    },
}

_DEFAULT_PATH = Path.home() / ".config" / "codeplan" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Layer *overlay* on *base*; tables are combined one level deep."""
    out = {**base, **overlay}
    for key in base.keys() & overlay.keys():
        if isinstance(base[key], dict) and isinstance(overlay[key], dict):
            out[key] = {**base[key], **overlay[key]}
    return out


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return tomllib.load(f)


def _fail(message: str) -> NoReturn:
    print(f"codeplan: {message}", file=sys.stderr)
    raise SystemExit(1)


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Return ``DEFAULT_CONFIG`` with the user's TOML file layered on top.

    Exits with status 1 when *path* is given but missing or malformed.
    """
    overlay: dict[str, Any] = {}
    if path is not None:
        if not path.is_file():
            _fail(f"config file not found: {path}")
        try:
            overlay = _read_toml(path)
        except tomllib.TOMLDecodeError as e:
            _fail(f"invalid TOML in {path}: {e}")
    elif _DEFAULT_PATH.is_file():
        try:
            overlay = _read_toml(_DEFAULT_PATH)
        except tomllib.TOMLDecodeError as e:
            print(
                f"codeplan: warning: ignoring invalid TOML in {_DEFAULT_PATH} ({e})",
                file=sys.stderr,
            )
    return _deep_merge(DEFAULT_CONFIG, overlay)


def helper_command(
    config: dict[str, Any], name: str, module: str, default_args: list[str] | None = None
) -> list[str]:
    """Return the argv prefix for a helper program.

    An empty (or missing) ``[helpers]`` entry means "run the bundled module
    with the current interpreter", followed by *default_args*. A configured
    command is used exactly as given.
    """
    configured = config.get("helpers", {}).get(name) or []
    if configured:
        return [str(part) for part in configured]
    return [sys.executable, "-m", module, *(default_args or [])]


def _toml_list(values: list[str]) -> str:
    return "[" + ", ".join(f'"{v}"' for v in values) + "]"


def dump_default_config() -> str:
    """Render ``DEFAULT_CONFIG`` as a commented TOML document."""
    lines = [
        "# codeplan configuration",
        "# Place this file at ~/.config/codeplan/config.toml",
        "",
        f'server_url = "{DEFAULT_CONFIG["server_url"]}"',
        f'cache_dir = "{DEFAULT_CONFIG["cache_dir"]}"',
        f"tick_interval = {DEFAULT_CONFIG['tick_interval']}",
        f"request_timeout = {DEFAULT_CONFIG['request_timeout']}",
        f'log_file = "{DEFAULT_CONFIG["log_file"]}"',
        f'log_level = "{DEFAULT_CONFIG["log_level"]}"',
        "",
        "# Command prefixes for the helper programs; empty runs the bundled module",
        "[helpers]",
    ]

    for key, argv in DEFAULT_CONFIG["helpers"].items():
        lines.append(f"{key} = {_toml_list(argv)}")

    return "\n".join([*lines, ""])
