"""Tests for MySQL command construction and helpers."""

from collections.abc import Callable
from pathlib import Path

import pytest

from tests.conftest import skip_on_windows
from wpsnapshots.exceptions import CommandExitError
from wpsnapshots.models import HostSpec
from wpsnapshots.mysql import (
    MysqlCliTableSource,
    MysqlConnection,
    TableSource,
    build_export_command,
    build_mysql_command,
    check_mysql_connection,
    list_tables,
    mysql_host_to_args,
    parse_mysql_host,
)
from wpsnapshots.platform_utils import HostOS

CREDS = MysqlConnection(host="ignored", user="wp", password="hunter2", database="wordpress")


# ============================================================================
# Host Parsing
# ============================================================================


class TestHostParsing:
    def test_host_and_port(self) -> None:
        assert mysql_host_to_args("db.example.com:3306") == {
            "host": "db.example.com",
            "port": 3306,
            "protocol": "tcp",
        }

    def test_host_and_socket(self) -> None:
        assert mysql_host_to_args("db.example.com:/tmp/mysql.sock") == {
            "host": "db.example.com",
            "socket": "/tmp/mysql.sock",
        }

    def test_host_only(self) -> None:
        assert mysql_host_to_args("db.example.com") == {"host": "db.example.com"}

    def test_empty_extra_is_host_only(self) -> None:
        assert parse_mysql_host("localhost:") == HostSpec(host="localhost")

    @pytest.mark.parametrize("extra", ["²", "٣٣٠٦"])
    def test_non_ascii_digits_are_socket(self, extra: str) -> None:
        assert parse_mysql_host(f"db:{extra}") == HostSpec(host="db", socket=extra)

    def test_several_colons_keep_whole_host(self) -> None:
        assert parse_mysql_host("::1") == HostSpec(host="::1")

    def test_port_and_socket_are_exclusive(self) -> None:
        with pytest.raises(ValueError, match="mutually exclusive"):
            HostSpec(host="h", port=1, socket="/s")


# ============================================================================
# Command Construction
# ============================================================================


class TestBuildMysqlCommand:
    def test_password_never_in_argv(self) -> None:
        spec = build_mysql_command("mysql", CREDS, {"password": "leak", "pass": "leak"})
        argv = spec.to_argv(HostOS.LINUX)
        assert not any("hunter2" in arg or "leak" in arg for arg in argv)
        assert spec.secret_env == {"MYSQL_PWD": "hunter2"}

    def test_connection_options_first(self) -> None:
        conn = MysqlConnection(host="db:3307", user="wp")
        spec = build_mysql_command("mysql", conn, {"batch": True}, suffix=("wordpress",))
        assert spec.to_argv(HostOS.WINDOWS) == [
            "mysql",
            "--host=db",
            "--port=3307",
            "--protocol=tcp",
            "--user=wp",
            "--batch",
            "wordpress",
        ]

    def test_repr_hides_password(self) -> None:
        assert "hunter2" not in repr(CREDS)


class TestBuildExportCommand:
    def test_layout(self, tmp_path: Path) -> None:
        out = tmp_path / "data.sql"
        spec = build_export_command("localhost:/var/run/mysqld.sock", CREDS, output_path=out)
        assert spec.to_argv(HostOS.LINUX) == [
            "/usr/bin/env",
            "mysqldump",
            "--host=localhost",
            "--socket=/var/run/mysqld.sock",
            "--user=wp",
            "--single-transaction",
            "--quick",
            "--lock-tables=false",
            "--default-character-set=utf8mb4",
            "wordpress",
        ]
        assert spec.stdout_path == out
        assert spec.secret_env == {"MYSQL_PWD": "hunter2"}

    def test_tables_follow_database(self) -> None:
        spec = build_export_command("localhost", CREDS, tables=["wp_posts", "wp_options"])
        assert spec.suffix == ("wordpress", "wp_posts", "wp_options")

    def test_extra_args_override_defaults(self) -> None:
        spec = build_export_command("localhost", CREDS, {"quick": False, "add-drop-table": True})
        argv = spec.to_argv(HostOS.WINDOWS)
        assert "--quick" not in argv
        assert "--add-drop-table" in argv

    def test_hostile_values_stay_single_arguments(self) -> None:
        creds = MysqlConnection(host="x", user="wp; rm -rf /", password="p", database="db$(id)")
        spec = build_export_command("localhost", creds)
        argv = spec.to_argv(HostOS.WINDOWS)
        assert "--user=wp; rm -rf /" in argv
        assert argv[-1] == "db$(id)"

    def test_requires_database(self) -> None:
        with pytest.raises(ValueError, match="database name"):
            build_export_command("localhost", MysqlConnection(host="h", user="u"))

    def test_custom_binary(self) -> None:
        spec = build_export_command("localhost", CREDS, mysqldump_bin="/opt/mysql/bin/mysqldump")
        assert spec.executable == "/opt/mysql/bin/mysqldump"


# ============================================================================
# Table Enumeration
# ============================================================================


class StaticTables:
    def __init__(self, tables: list[str]) -> None:
        self.tables = tables

    async def show_tables(self) -> list[str]:
        return list(self.tables)


class TestListTables:
    async def test_prefix_filter(self) -> None:
        source = StaticTables(["wp_posts", "wp_options", "other_table", "wp2_posts"])
        assert await list_tables(source, "wp_") == ["wp_posts", "wp_options"]

    async def test_no_prefix_returns_all(self) -> None:
        source = StaticTables(["a", "b"])
        assert await list_tables(source, None) == ["a", "b"]
        assert await list_tables(source, "") == ["a", "b"]

    def test_static_source_satisfies_protocol(self) -> None:
        assert isinstance(StaticTables([]), TableSource)


@skip_on_windows
class TestMysqlCli:
    async def test_table_source_parses_output(self, fake_tool: Callable[..., Path]) -> None:
        mysql = fake_tool("mysql", body='print("wp_posts")\nprint("wp_options")')
        source = MysqlCliTableSource(CREDS, mysql_bin=str(mysql), timeout=30)
        tables = await list_tables(source, "wp_")
        assert tables == ["wp_posts", "wp_options"]

    async def test_table_source_failure_raises(self, fake_tool: Callable[..., Path]) -> None:
        mysql = fake_tool("mysql", exit_code=1)
        with pytest.raises(CommandExitError):
            await MysqlCliTableSource(CREDS, mysql_bin=str(mysql)).show_tables()

    async def test_check_connection_ok(self, fake_tool: Callable[..., Path]) -> None:
        mysql = fake_tool("mysql")
        assert await check_mysql_connection(CREDS, mysql_bin=str(mysql), timeout=30) is True

    async def test_check_connection_refused(self, fake_tool: Callable[..., Path]) -> None:
        mysql = fake_tool("mysql", exit_code=1)
        assert await check_mysql_connection(CREDS, mysql_bin=str(mysql), timeout=30) is False

    async def test_check_connection_missing_client(self) -> None:
        assert await check_mysql_connection(CREDS, mysql_bin="wpsnapshots-no-such-mysql") is False
