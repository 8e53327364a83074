"""Runtime configuration from environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wpsnapshots import constants
from wpsnapshots.platform_utils import get_home_dir


class Settings(BaseSettings):
    """Runtime configuration from environment variables.

    All settings can be overridden via environment variables with WPSNAPSHOTS_ prefix.
    Example: WPSNAPSHOTS_MYSQLDUMP_BIN=/opt/mysql/bin/mysqldump
    """

    model_config = SettingsConfigDict(
        env_prefix="WPSNAPSHOTS_",
        extra="ignore",
    )

    # Cache root: {home}/.wpsnapshots
    cache_dir: Path = Field(default_factory=lambda: get_home_dir() / constants.CACHE_DIR_NAME)

    # External tools (looked up on PATH through /usr/bin/env on POSIX)
    mysql_bin: str = "mysql"
    mysqldump_bin: str = "mysqldump"
    tar_bin: str = "tar"

    # Deadline for each external command
    command_timeout_seconds: float = Field(default=constants.DEFAULT_COMMAND_TIMEOUT_SECONDS, gt=0)

    # WordPress download lookup
    version_check_url: str = constants.VERSION_CHECK_URL
    http_timeout_seconds: float = Field(default=constants.DEFAULT_HTTP_TIMEOUT_SECONDS, gt=0)
    lookup_attempts: int = Field(default=3, ge=1, le=10)
    """Attempts for the "latest" version lookup when the caller opts into retry."""
