"""Data models for wpsnapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from wpsnapshots import constants
from wpsnapshots.exceptions import InputValidationError
from wpsnapshots.validation import not_empty_validator, slug_validator


class SnapshotRequest(BaseModel):
    """Everything needed to assemble one snapshot.

    Built by the CLI/prompt layer; the assembly core only reads it.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    project: str = Field(description="Project slug, lowercased")
    description: str = Field(description="Human description of the snapshot")
    path: str = Field(default=".", description="Path to the WordPress root (normalized during assembly)")

    db_host: str = Field(default=constants.DEFAULT_DB_HOST, description="host, host:port or host:/path/to/socket")
    db_name: str | None = None
    db_user: str | None = None
    db_password: SecretStr = Field(default=SecretStr(""))
    table_prefix: str | None = Field(
        default=constants.DEFAULT_TABLE_PREFIX,
        description="Only dump tables with this prefix (None dumps the whole database)",
    )

    contains_db: bool = True
    contains_files: bool = True
    exclude: frozenset[str] = Field(default_factory=frozenset)
    small: bool = False
    no_scrub: bool = False
    repository: str = Field(default="default", description="Target repository name (used by the remote layer)")

    @field_validator("project")
    @classmethod
    def _validate_project(cls, value: str) -> str:
        return slug_validator(value)

    @field_validator("description")
    @classmethod
    def _validate_description(cls, value: str) -> str:
        return not_empty_validator(value)

    @model_validator(mode="after")
    def _validate_contents(self) -> SnapshotRequest:
        if not (self.contains_db or self.contains_files):
            raise InputValidationError("A snapshot must include either a database or files.")
        if self.contains_db and not (self.db_name and self.db_user):
            raise InputValidationError("Database name and user are required to include the database.")
        return self

    @property
    def expected_artifacts(self) -> frozenset[str]:
        """Artifact file names this request produces."""
        return expected_artifacts(contains_db=self.contains_db, contains_files=self.contains_files)


def expected_artifacts(*, contains_db: bool, contains_files: bool) -> frozenset[str]:
    """Artifact names required for a snapshot with the given contents."""
    names: set[str] = set()
    if contains_db:
        names.add(constants.DB_ARTIFACT)
    if contains_files:
        names.add(constants.FILES_ARTIFACT)
    return frozenset(names)


@dataclass(frozen=True)
class HostSpec:
    """MySQL host split into host plus either a TCP port or a socket path."""

    host: str
    port: int | None = None
    socket: str | None = None

    def __post_init__(self) -> None:
        if self.port is not None and self.socket is not None:
            raise ValueError("port and socket are mutually exclusive")

    def to_args(self) -> dict[str, Any]:
        """Client options for this host, in command-line order."""
        args: dict[str, Any] = {"host": self.host}
        if self.port is not None:
            args["port"] = self.port
            args["protocol"] = "tcp"
        elif self.socket is not None:
            args["socket"] = self.socket
        return args


@dataclass(frozen=True)
class CacheEntry:
    """A snapshot slot in the local cache and the artifacts it must hold."""

    id: str
    directory: Path
    expected_artifacts: frozenset[str]

    @property
    def artifact_paths(self) -> list[Path]:
        return [self.directory / name for name in sorted(self.expected_artifacts)]


class SnapshotMeta(BaseModel):
    """meta.json sidecar describing a cached snapshot."""

    model_config = ConfigDict(extra="ignore")

    id: str
    project: str
    description: str
    repository: str
    author: str | None = None
    created: datetime
    contains_db: bool
    contains_files: bool
    table_prefix: str | None = None
    exclude: list[str] = Field(default_factory=list)
    small: bool = False
    no_scrub: bool = False
    wpsnapshots_version: str
    artifact_sizes: dict[str, int] = Field(default_factory=dict)
