"""Tests for wp-config.php generation and parsing."""

from pathlib import Path
from unittest.mock import patch

import pytest

from wpsnapshots import constants
from wpsnapshots.exceptions import ConfigWriteError
from wpsnapshots.wp_config import create_config_file, php_literal, read_db_settings, render_config

TEMPLATE = """<?php
define( 'DB_NAME', 'database_name_here' );
define( 'DB_USER', 'username_here' );
define( 'DB_PASSWORD', 'password_here' );
define( 'DB_HOST', 'localhost' );
define('WP_DEBUG', false);

$table_prefix = 'wp_';

/* That's all, stop editing! Happy publishing. */

if ( ! defined( 'ABSPATH' ) ) {
\tdefine( 'ABSPATH', __DIR__ . '/' );
}

require_once ABSPATH . 'wp-settings.php';
"""


class TestPhpLiteral:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (True, "true"),
            (False, "false"),
            (42, "42"),
            (1.5, "1.5"),
            ("plain", "'plain'"),
            ("it's", "'it\\'s'"),
            ("C:\\path", "'C:\\\\path'"),
        ],
    )
    def test_literals(self, value, expected: str) -> None:
        assert php_literal(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("a\nb", '"a\\nb"'),
            ("tab\there", '"tab\\there"'),
            ("cr\r\n$x \"q\" \\", '"cr\\r\\n\\$x \\"q\\" \\\\"'),
            ("bell\x07", '"bell\\x07"'),
        ],
    )
    def test_control_characters_use_double_quotes(self, value: str, expected: str) -> None:
        assert php_literal(value) == expected
        assert "\n" not in php_literal(value)

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_rejected(self, value: float) -> None:
        with pytest.raises(ValueError, match="non-finite"):
            php_literal(value)


class TestRenderConfig:
    def test_constants_before_bootstrap(self) -> None:
        out = render_config(TEMPLATE, {"DB_NAME": "wp", "WP_DEBUG": True})
        lines = out.split("\n")
        assert lines[-1] == constants.WP_SETTINGS_REQUIRE
        assert lines[-3:-1] == ["define( 'DB_NAME', 'wp' );", "define( 'WP_DEBUG', true );"]

    def test_earlier_definitions_replaced(self) -> None:
        out = render_config(TEMPLATE, {"DB_NAME": "wp"})
        assert "database_name_here" not in out
        assert out.count("'DB_NAME'") == 1

    def test_single_bootstrap_line(self) -> None:
        out = render_config(TEMPLATE, {})
        assert out.count("wp-settings.php") == 1

    def test_unrelated_content_preserved(self) -> None:
        out = render_config(TEMPLATE, {"DB_NAME": "wp"})
        assert "$table_prefix = 'wp_';" in out
        assert "define( 'DB_USER', 'username_here' );" in out
        assert "\tdefine( 'ABSPATH', __DIR__ . '/' );" in out

    def test_double_quoted_definition_replaced(self) -> None:
        out = render_config('<?php\ndefine("WP_HOME", "http://old");\n', {"WP_HOME": "http://new"})
        assert "http://old" not in out

    def test_similar_names_not_touched(self) -> None:
        out = render_config("<?php\ndefine('DB_NAME_OLD', 'x');\n", {"DB_NAME": "wp"})
        assert "define('DB_NAME_OLD', 'x');" in out

    def test_name_as_value_not_touched(self) -> None:
        out = render_config("<?php\ndefine('WP_HOME', 'DB_NAME');\n", {"DB_NAME": "wp"})
        assert "define('WP_HOME', 'DB_NAME');" in out
        assert out.count("define( 'DB_NAME', 'wp' );") == 1

    def test_idempotent(self) -> None:
        config = {"DB_NAME": "wp", "DB_PASSWORD": "p'w\\d", "WP_DEBUG": False, "WP_MEMORY": 256}
        once = render_config(TEMPLATE, config)
        assert render_config(once, config) == once

    def test_multiline_value_idempotent(self) -> None:
        config = {"DB_PASSWORD": "line1\nline2"}
        once = render_config(TEMPLATE, config)
        twice = render_config(once, config)
        assert twice == once
        assert twice.count("'DB_PASSWORD'") == 1
        assert "line2" not in twice.replace("line1\\nline2", "")

    def test_non_finite_value_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-finite"):
            render_config(TEMPLATE, {"WP_RATIO": float("nan")})

    @pytest.mark.parametrize("name", ["", "1ABC", "A-B", "A'B", "A B", "X);//"])
    def test_invalid_constant_name(self, name: str) -> None:
        with pytest.raises(ValueError, match="Invalid constant name"):
            render_config(TEMPLATE, {name: "x"})


class TestCreateConfigFile:
    async def test_writes_destination(self, tmp_path: Path) -> None:
        template = tmp_path / "wp-config-sample.php"
        template.write_text(TEMPLATE)
        destination = tmp_path / "wp-config.php"

        result = await create_config_file(destination, template, {"DB_NAME": "wp"})

        assert result == destination
        assert destination.read_text() == render_config(TEMPLATE, {"DB_NAME": "wp"})
        assert not (tmp_path / "wp-config.php.tmp").exists()

    async def test_rerun_is_byte_identical(self, tmp_path: Path) -> None:
        template = tmp_path / "wp-config-sample.php"
        template.write_text(TEMPLATE)
        destination = tmp_path / "wp-config.php"
        config = {"DB_NAME": "wp", "WP_DEBUG": True}

        await create_config_file(destination, template, config)
        first = destination.read_bytes()
        await create_config_file(destination, destination, config)
        assert destination.read_bytes() == first

    async def test_crlf_template_kept(self, tmp_path: Path) -> None:
        template = tmp_path / "wp-config-sample.php"
        template.write_bytes(b"<?php\r\ndefine( 'A', 1 );\r\n")
        destination = tmp_path / "wp-config.php"
        await create_config_file(destination, template, {})
        assert destination.read_bytes().startswith(b"<?php\r\n")

    async def test_missing_template(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigWriteError, match="Cannot read config template"):
            await create_config_file(tmp_path / "wp-config.php", tmp_path / "absent.php")

    async def test_unwritable_destination_keeps_original(self, tmp_path: Path) -> None:
        template = tmp_path / "wp-config-sample.php"
        template.write_text(TEMPLATE)
        destination = tmp_path / "wp-config.php"
        destination.write_text("original")

        with patch("wpsnapshots.wp_config.aiofiles.os.replace", side_effect=OSError(28, "No space left on device")):
            with pytest.raises(ConfigWriteError, match="No space left"):
                await create_config_file(destination, template, {"DB_NAME": "wp"})

        assert destination.read_text() == "original"
        assert not (tmp_path / "wp-config.php.tmp").exists()

    async def test_missing_directory(self, tmp_path: Path) -> None:
        template = tmp_path / "wp-config-sample.php"
        template.write_text(TEMPLATE)
        with pytest.raises(ConfigWriteError, match="Cannot write"):
            await create_config_file(tmp_path / "absent" / "wp-config.php", template)


class TestReadDbSettings:
    def test_reads_credentials_and_prefix(self, tmp_path: Path) -> None:
        config = tmp_path / "wp-config.php"
        config.write_text(
            "<?php\n"
            "define( 'DB_NAME', 'site_db' );\n"
            'define("DB_USER", "site_user");\n'
            "define( 'DB_PASSWORD', 'p\\'w' );\n"
            "define( 'DB_HOST', 'db:3306' );\n"
            "$table_prefix = 'custom_';\n"
        )
        assert read_db_settings(config) == {
            "DB_NAME": "site_db",
            "DB_USER": "site_user",
            "DB_PASSWORD": "p'w",
            "DB_HOST": "db:3306",
            "table_prefix": "custom_",
        }

    def test_non_literal_values_ignored(self, tmp_path: Path) -> None:
        config = tmp_path / "wp-config.php"
        config.write_text("<?php\ndefine( 'DB_NAME', getenv('DB_NAME') );\n")
        assert read_db_settings(config) == {}
