"""Constants for wpsnapshots artifacts, commands and download URLs."""

from typing import Final

# ============================================================================
# Cache Layout
# ============================================================================

CACHE_DIR_NAME: Final[str] = ".wpsnapshots"
"""Cache root directory name, created under the user's home directory."""

CACHE_DIR_MODE: Final[int] = 0o700
"""Permissions for the cache root and snapshot slots (owner only)."""

DB_ARTIFACT: Final[str] = "data.sql.gz"
"""Gzipped SQL dump artifact name."""

FILES_ARTIFACT: Final[str] = "files.tar.gz"
"""Gzipped tarball of the site file tree."""

META_FILE: Final[str] = "meta.json"
"""Snapshot metadata sidecar written once all artifacts are committed."""

TMP_SUFFIX: Final[str] = ".tmp"
"""Suffix for in-progress artifacts. Never counted as cached."""

SNAPSHOT_ID_BYTES: Final[int] = 16
"""Random bytes per snapshot id (128 bits, rendered as 32 hex chars)."""

# ============================================================================
# External Commands
# ============================================================================

ENV_PREFIX: Final[str] = "/usr/bin/env"
"""Interpreter-lookup prefix forced on non-Windows hosts."""

MYSQL_PASSWORD_ENV: Final[str] = "MYSQL_PWD"
"""Environment variable the MySQL client tools read the password from."""

DEFAULT_DB_HOST: Final[str] = "localhost"

DEFAULT_TABLE_PREFIX: Final[str] = "wp_"

DEFAULT_COMMAND_TIMEOUT_SECONDS: Final[int] = 3600
"""Upper bound for a single export command (large databases take a while)."""

# ============================================================================
# WordPress Config / Downloads
# ============================================================================

WP_SETTINGS_REQUIRE: Final[str] = "require_once(ABSPATH . 'wp-settings.php');"
"""Bootstrap include appended as the last line of a generated wp-config.php."""

NIGHTLY_DOWNLOAD_URL: Final[str] = "https://wordpress.org/nightly-builds/wordpress-latest.zip"

VERSION_CHECK_URL: Final[str] = "https://api.wordpress.org/core/version-check/1.7/"
"""Version-check endpoint consulted when resolving the "latest" release."""

DEFAULT_LOCALE: Final[str] = "en_US"

DEFAULT_HTTP_TIMEOUT_SECONDS: Final[float] = 15.0
