"""wp-config.php generation from a template.

Every supplied constant is (re)defined at the end of the file, just before
the wp-settings.php bootstrap, and any earlier definition of the same name is
dropped. Re-running with the same constants therefore produces the same bytes.
"""

from __future__ import annotations

import contextlib
import math
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Final

import aiofiles
import aiofiles.os

from wpsnapshots import constants
from wpsnapshots._logging import get_logger
from wpsnapshots.exceptions import ConfigWriteError

logger = get_logger(__name__)

ConstantValue = str | int | bool | float

_BOOTSTRAP_RE: Final = re.compile(r"^\s*require.+wp-settings\.php")
_CONSTANT_NAME_RE: Final = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_CONTROL_CHAR_RE: Final = re.compile(r"[\x00-\x1f\x7f]")

# Double-quoted PHP escapes; any other control character is written as \xHH
_DOUBLE_QUOTED_ESCAPES: Final = {"\\": "\\\\", '"': '\\"', "$": "\\$", "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _define_re(name: str) -> re.Pattern[str]:
    """Matches a define() whose first argument is exactly ``name``."""
    return re.compile(r"define\(\s*([\"'])" + re.escape(name) + r"\1\s*,")


def _double_quoted(value: str) -> str:
    escaped = "".join(
        _DOUBLE_QUOTED_ESCAPES.get(char) or (f"\\x{ord(char):02x}" if _CONTROL_CHAR_RE.match(char) else char)
        for char in value
    )
    return f'"{escaped}"'


def php_literal(value: ConstantValue) -> str:
    """Render a Python value as a single-line PHP literal for define().

    Strings with control characters (newlines, tabs, ...) use a double-quoted
    literal with escape sequences so the define() never spans lines.

    Raises:
        ValueError: Non-finite float (PHP has no literal for inf/nan)
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Cannot write non-finite number {value!r} to wp-config.php")
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value)
    if _CONTROL_CHAR_RE.search(text):
        return _double_quoted(text)
    escaped = text.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def render_config(template: str, config_constants: Mapping[str, ConstantValue]) -> str:
    """Rewrite template text with config_constants defined before the bootstrap.

    Raises:
        ValueError: A constant name is not a valid PHP identifier
    """
    for name in config_constants:
        if not _CONSTANT_NAME_RE.match(name):
            raise ValueError(f"Invalid constant name: {name!r}")

    define_patterns = [_define_re(name) for name in config_constants]

    lines = [
        line
        for line in template.split("\n")
        if not _BOOTSTRAP_RE.search(line) and not any(p.search(line) for p in define_patterns)
    ]
    lines.extend(f"define( '{name}', {php_literal(value)} );" for name, value in config_constants.items())
    lines.append(constants.WP_SETTINGS_REQUIRE)
    return "\n".join(lines)


async def create_config_file(
    destination: Path,
    template: Path,
    config_constants: Mapping[str, ConstantValue] | None = None,
) -> Path:
    """Write ``destination`` from ``template`` with the given constants.

    The result is written to a sibling temp file and renamed over the
    destination, so readers never see a half-written config.

    Raises:
        ConfigWriteError: Template unreadable or destination not writable
    """
    try:
        async with aiofiles.open(template, encoding="utf-8", newline="") as f:
            template_text = await f.read()
    except OSError as e:
        raise ConfigWriteError(
            f"Cannot read config template {template}: {e.strerror or e}",
            context={"template": str(template)},
        ) from e

    content = render_config(template_text, config_constants or {})

    tmp_path = destination.parent / f"{destination.name}{constants.TMP_SUFFIX}"
    try:
        async with aiofiles.open(tmp_path, "w", encoding="utf-8", newline="") as f:
            await f.write(content)
        await aiofiles.os.replace(tmp_path, destination)
    except OSError as e:
        with contextlib.suppress(OSError):
            await aiofiles.os.remove(tmp_path)
        raise ConfigWriteError(
            f"Cannot write {destination}: {e.strerror or e}",
            context={"destination": str(destination)},
        ) from e

    logger.info("Config written", extra={"destination": str(destination), "constants": sorted(config_constants or {})})
    return destination


_DB_DEFINE_RE: Final = re.compile(
    r"""define\(\s*(["'])(DB_NAME|DB_USER|DB_PASSWORD|DB_HOST)\1\s*,\s*(["'])(.*?)(?<!\\)\3\s*\)"""
)
_TABLE_PREFIX_RE: Final = re.compile(r"""^\s*\$table_prefix\s*=\s*(["'])(.*?)\1\s*;""", re.MULTILINE)


def read_db_settings(config_path: Path) -> dict[str, str]:
    """Database constants and table prefix defined in an existing wp-config.php.

    Only literal string definitions are recognized. Keys present in the
    result: any of DB_NAME, DB_USER, DB_PASSWORD, DB_HOST, table_prefix.
    """
    text = config_path.read_text(encoding="utf-8", errors="replace")
    found = {m.group(2): m.group(4).replace("\\'", "'").replace('\\"', '"') for m in _DB_DEFINE_RE.finditer(text)}
    if prefix := _TABLE_PREFIX_RE.search(text):
        found["table_prefix"] = prefix.group(2)
    return found
