"""Filesystem path helpers for user-supplied WordPress locations.

normalize_path() always returns an absolute-ish path with exactly one
trailing slash. Accepted inputs:

    /            -> /
    ./ or .      -> {cwd}/
    ~/test       -> {home}/test/
    ./test/      -> {cwd}/test/
    test         -> {cwd}/test/
"""

from __future__ import annotations

import os
from pathlib import Path

from wpsnapshots.platform_utils import get_home_dir

_ROOT = "/"
_ANCHORS = (".", "/", "\\", "~")


def trailing_slash(path: str | os.PathLike[str]) -> str:
    """Return path with exactly one trailing slash."""
    return str(path).rstrip("/") + "/"


def normalize_path(path: str) -> str:
    """Normalize a user-supplied path. Idempotent for a fixed cwd and home."""
    path = path.strip()

    if path == _ROOT:
        return path

    if path == ".":
        path = "./"
    elif not path.startswith(_ANCHORS):
        # Relative path without an anchor: treat as relative to cwd
        path = "./" + path

    if path.startswith("./"):
        path = os.getcwd().rstrip("/") + "/" + path[2:]

    if path.startswith("~"):
        path = str(get_home_dir()).rstrip("/") + path[1:]

    return trailing_slash(path)


def is_wp_present(path: str | os.PathLike[str]) -> bool:
    """True if a WordPress install (wp-settings.php) lives in path."""
    return Path(trailing_slash(path), "wp-settings.php").exists()


def locate_wp_config(path: str | os.PathLike[str]) -> Path | None:
    """Find wp-config.php in path or its parent (WordPress allows both)."""
    base = Path(trailing_slash(path))
    for candidate in (base / "wp-config.php", base / ".." / "wp-config.php"):
        if candidate.exists():
            return candidate.resolve()
    return None
