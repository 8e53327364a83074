"""MySQL client command construction and helpers.

The password is never part of the argument vector (where any local user can
read it from the process table). It travels in MYSQL_PWD, set only in the
child's environment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from wpsnapshots import constants
from wpsnapshots._logging import get_logger
from wpsnapshots.commands import CommandSpec
from wpsnapshots.exceptions import CommandSpawnError
from wpsnapshots.models import HostSpec
from wpsnapshots.subprocess_utils import run_command

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

logger = get_logger(__name__)


@dataclass(frozen=True)
class MysqlConnection:
    """Credentials for the MySQL client tools."""

    host: str
    user: str
    password: str = ""
    database: str | None = None

    def __repr__(self) -> str:
        return f"MysqlConnection(host={self.host!r}, user={self.user!r}, database={self.database!r})"


def parse_mysql_host(raw_host: str) -> HostSpec:
    """Split ``host[:port-or-socket]`` into a HostSpec.

    Exactly one ``:`` separates host and extra. An ASCII-digit extra is a TCP
    port, any other non-empty extra is a socket path. Anything else (no
    colon, several colons) keeps the whole string as the host.
    """
    parts = raw_host.split(":")
    if len(parts) != 2:
        return HostSpec(host=raw_host)

    host, extra = parts[0], parts[1].strip()
    if extra.isascii() and extra.isdigit():
        return HostSpec(host=host, port=int(extra))
    if extra:
        return HostSpec(host=host, socket=extra)
    return HostSpec(host=host)


def mysql_host_to_args(raw_host: str) -> dict[str, Any]:
    """Client options for a raw host string.

    Example:
        >>> mysql_host_to_args("db.example.com:3306")
        {'host': 'db.example.com', 'port': 3306, 'protocol': 'tcp'}
    """
    return parse_mysql_host(raw_host).to_args()


def build_mysql_command(
    executable: str,
    connection: MysqlConnection,
    options: Mapping[str, Any] | None = None,
    suffix: Iterable[str] = (),
    stdout_path: Path | None = None,
) -> CommandSpec:
    """CommandSpec for any MySQL client tool (mysql, mysqldump).

    Connection options come first (host, port/socket, user), then the
    caller's options, then the suffix (database and table names).
    """
    assoc_args: dict[str, Any] = {
        **mysql_host_to_args(connection.host),
        "user": connection.user,
        **(options or {}),
    }
    # Never let a password slip into argv through caller options
    assoc_args.pop("pass", None)
    assoc_args.pop("password", None)

    return CommandSpec(
        executable=executable,
        options=tuple(assoc_args.items()),
        suffix=tuple(suffix),
        secret_env={constants.MYSQL_PASSWORD_ENV: connection.password},
        stdout_path=stdout_path,
    )


def build_export_command(
    host: str,
    credentials: MysqlConnection,
    extra_args: Mapping[str, Any] | None = None,
    output_path: Path | None = None,
    *,
    tables: Iterable[str] = (),
    mysqldump_bin: str = "mysqldump",
) -> CommandSpec:
    """mysqldump invocation exporting ``credentials.database`` to ``output_path``.

    Args:
        host: Raw ``host[:port-or-socket]`` string (overrides credentials.host)
        credentials: User, password and database
        extra_args: Additional mysqldump options
        output_path: Where the SQL is written (stdout redirect)
        tables: Restrict the dump to these tables (all when empty)
        mysqldump_bin: mysqldump executable
    """
    if not credentials.database:
        raise ValueError("A database name is required to export")

    connection = MysqlConnection(
        host=host,
        user=credentials.user,
        password=credentials.password,
        database=credentials.database,
    )
    options: dict[str, Any] = {
        "single-transaction": True,
        "quick": True,
        "lock-tables": "false",
        "default-character-set": "utf8mb4",
        **(extra_args or {}),
    }
    return build_mysql_command(
        mysqldump_bin,
        connection,
        options,
        suffix=(credentials.database, *tables),
        stdout_path=output_path,
    )


@runtime_checkable
class TableSource(Protocol):
    """Anything that can enumerate the tables of the site database."""

    async def show_tables(self) -> list[str]: ...


class MysqlCliTableSource:
    """TableSource backed by ``mysql --execute="SHOW TABLES"``."""

    def __init__(self, connection: MysqlConnection, *, mysql_bin: str = "mysql", timeout: float | None = None) -> None:
        self.connection = connection
        self.mysql_bin = mysql_bin
        self.timeout = timeout

    async def show_tables(self) -> list[str]:
        spec = build_mysql_command(
            self.mysql_bin,
            self.connection,
            {"batch": True, "skip-column-names": True, "execute": "SHOW TABLES"},
            suffix=(self.connection.database,) if self.connection.database else (),
        )
        result = await run_command(spec, capture_output=True, timeout=self.timeout)
        output = (result.stdout or b"").decode()
        return [line.strip() for line in output.splitlines() if line.strip()]


async def list_tables(source: TableSource, prefix: str | None = constants.DEFAULT_TABLE_PREFIX) -> list[str]:
    """Tables of the site, optionally only those starting with ``prefix``."""
    tables = await source.show_tables()
    if not prefix:
        return tables
    return [table for table in tables if table.startswith(prefix)]


async def check_mysql_connection(
    connection: MysqlConnection,
    *,
    mysql_bin: str = "mysql",
    timeout: float | None = None,
) -> bool:
    """True if the credentials can open a session.

    Uses the recoverable mode of run_command: a refused login is an
    answer here, not a reason to abort.
    """
    spec = build_mysql_command(
        mysql_bin,
        connection,
        {"batch": True, "execute": "SELECT 1"},
        suffix=(connection.database,) if connection.database else (),
    )
    try:
        result = await run_command(spec, exit_on_error=False, capture_output=True, timeout=timeout)
    except CommandSpawnError:
        logger.warning("mysql client not available", extra={"mysql_bin": mysql_bin})
        return False
    return result.ok

