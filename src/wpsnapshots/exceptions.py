"""Exception hierarchy for wpsnapshots.

All exceptions inherit from SnapshotError base class.

Hierarchy:
    SnapshotError (base)
    ├── InputValidationError        ← bad slug, empty description, no content
    ├── CacheDirectoryError         ← cache root/slot missing or not writable
    ├── CommandError (external tool failures)
    │   ├── CommandSpawnError       ← executable could not be started
    │   ├── CommandExitError        ← tool exited non-zero
    │   └── CommandTimeoutError     ← tool exceeded its deadline
    ├── DownloadUrlLookupError      ← version-check lookup failed (recoverable)
    └── ConfigWriteError            ← wp-config template unreadable / unwritable

Every error carries an ``exit_code``. The core never terminates the process
itself; the CLI maps an uncaught SnapshotError to ``sys.exit(exit_code)``.
"""

from __future__ import annotations

from typing import Any


class SnapshotError(Exception):
    """Base exception for all wpsnapshots errors with structured context.

    Attributes:
        message: Human-readable error message
        context: Dictionary of structured error context for logging/debugging
        exit_code: Process status the CLI exits with when this error is fatal
    """

    exit_code: int = 1

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class InputValidationError(SnapshotError, ValueError):
    """Invalid user input (slug, description, request flags).

    Recoverable: the interactive layer re-prompts instead of aborting.
    Also a ValueError so pydantic validators can raise it directly.
    """

    exit_code = 2


class CacheDirectoryError(SnapshotError):
    """Cache root or snapshot slot could not be created or is not writable."""


class CommandError(SnapshotError):
    """Base for external command (mysqldump, mysql, tar) failures."""


class CommandSpawnError(CommandError):
    """The external command could not be started at all.

    Typically the executable is missing from PATH.
    """


class CommandExitError(CommandError):
    """The external command exited with a non-zero status.

    Only raised when the caller asked for exit-on-error; the CLI
    terminates with the same status the tool returned.
    """

    def __init__(self, message: str, exit_code: int, context: dict[str, Any] | None = None):
        super().__init__(message, context)
        self.exit_code = exit_code


class CommandTimeoutError(CommandError):
    """The external command did not finish within its deadline and was killed."""

    exit_code = 124  # Matches `timeout` command


class DownloadUrlLookupError(SnapshotError):
    """Resolving a WordPress download URL failed.

    Always recoverable: the caller decides whether to retry or give up.
    """


class ConfigWriteError(SnapshotError):
    """wp-config.php template could not be read or the result written."""
