"""Shared pytest fixtures for wpsnapshots tests."""

import shutil
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from wpsnapshots.cache_manager import CacheDirectoryManager
from wpsnapshots.platform_utils import HostOS, detect_host_os
from wpsnapshots.settings import Settings

# ============================================================================
# Platform Markers
# ============================================================================

skip_on_windows = pytest.mark.skipif(
    detect_host_os() is HostOS.WINDOWS,
    reason="Requires POSIX /usr/bin/env and executable scripts",
)

requires_tar = pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")


# ============================================================================
# Fake External Tools
# ============================================================================
# Export tests never need a real MySQL server: a small Python script stands in
# for mysqldump/mysql. It echoes its argv and the MYSQL_PWD it received as SQL
# comments, so tests can assert exactly what the tool was given.

_FAKE_TOOL_TEMPLATE = """#!{python}
import os
import sys

print("-- argv: " + repr(sys.argv[1:]))
print("-- pwd: " + repr(os.environ.get("MYSQL_PWD")))
{body}
sys.exit({exit_code})
"""


@pytest.fixture
def fake_tool(tmp_path: Path) -> Callable[..., Path]:
    """Factory for executable stand-ins of external tools.

    Usage:
        def test_something(fake_tool):
            mysqldump = fake_tool("mysqldump", body='print("CREATE TABLE wp_posts;")')
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(name: str, *, body: str = "", exit_code: int = 0) -> Path:
        script = bin_dir / name
        script.write_text(_FAKE_TOOL_TEMPLATE.format(python=sys.executable, body=body, exit_code=exit_code))
        script.chmod(0o755)
        return script

    return _make


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache" / ".wpsnapshots"


@pytest.fixture
def cache(cache_root: Path) -> CacheDirectoryManager:
    return CacheDirectoryManager(cache_root)


@pytest.fixture
def make_settings(cache_root: Path) -> Callable[..., Settings]:
    """Settings pointing at the temp cache root, with overrides."""

    def _make(**overrides: object) -> Settings:
        return Settings(**{"cache_dir": cache_root, "command_timeout_seconds": 30, **overrides})

    return _make


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """Minimal WordPress-shaped file tree."""
    site = tmp_path / "site"
    (site / "wp-content" / "uploads" / "2024").mkdir(parents=True)
    (site / "wp-content" / "themes").mkdir()
    (site / "wp-settings.php").write_text("<?php\n")
    (site / "index.php").write_text("<?php // Silence is golden.\n")
    (site / "wp-content" / "uploads" / "2024" / "photo.jpg").write_bytes(b"\xff\xd8\xff")
    (site / "wp-content" / "themes" / "style.css").write_text("body {}\n")
    return site
