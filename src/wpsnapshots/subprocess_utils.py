"""External process execution.

run_command() spawns a CommandSpec without a shell, with stdin/stderr
inherited so the user sees tool output and prompts, and waits for it under a
deadline. Secrets are merged into a child-local copy of the environment; the
parent's os.environ is never touched, so concurrent exports cannot observe
each other's credentials.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING

from wpsnapshots import constants
from wpsnapshots._logging import get_logger
from wpsnapshots.exceptions import CommandExitError, CommandSpawnError, CommandTimeoutError
from wpsnapshots.platform_utils import ProcessWrapper

if TYPE_CHECKING:
    from wpsnapshots.commands import CommandSpec

logger = get_logger(__name__)

# Exit statuses /usr/bin/env uses when it cannot start the target command
_ENV_NOT_EXECUTABLE = 126
_ENV_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished external command."""

    exit_code: int
    stdout: bytes | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def build_child_env(secret_env: dict[str, str] | None) -> dict[str, str] | None:
    """Child environment: parent env plus secrets, or None to inherit unchanged."""
    if not secret_env:
        return None
    return {**os.environ, **secret_env}


async def run_command(
    spec: CommandSpec,
    *,
    exit_on_error: bool = True,
    timeout: float | None = None,
    capture_output: bool = False,
) -> CommandResult:
    """Run an external command to completion.

    Args:
        spec: Command to run
        exit_on_error: If True, a non-zero exit raises CommandExitError carrying
            the tool's status (the CLI exits with it). If False, the status is
            returned for the caller to inspect.
        timeout: Seconds before the process is killed (None waits forever)
        capture_output: Collect stdout instead of inheriting it. Ignored when
            the command redirects stdout to a file.

    Returns:
        CommandResult with the exit code (and stdout when captured)

    Raises:
        CommandSpawnError: Process could not be started (regardless of exit_on_error)
        CommandExitError: Non-zero exit and exit_on_error is True
        CommandTimeoutError: Deadline exceeded; the process was killed
    """
    argv = spec.argv
    command_str = spec.to_shell()
    logger.info("Running command", extra={"command": command_str})

    stdout_file: IO[bytes] | None = None
    try:
        if spec.stdout_path is not None:
            stdout_file = spec.stdout_path.open("wb")
            stdout: IO[bytes] | int | None = stdout_file
        elif capture_output:
            stdout = asyncio.subprocess.PIPE
        else:
            stdout = None

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=None,
                stdout=stdout,
                stderr=None,
                env=build_child_env(dict(spec.secret_env)),
            )
        except OSError as e:
            raise CommandSpawnError(
                f"Could not start {spec.executable}: {e.strerror or e}",
                context={"command": command_str, "errno": e.errno},
            ) from e

        process = ProcessWrapper(proc)
        try:
            async with asyncio.timeout(timeout):
                out, _ = await process.communicate()
        except TimeoutError as e:
            await _kill(process)
            raise CommandTimeoutError(
                f"{spec.executable} did not finish within {timeout} seconds",
                context={"command": command_str, "timeout": timeout},
            ) from e
        except asyncio.CancelledError:
            await _kill(process)
            raise
    finally:
        if stdout_file is not None:
            stdout_file.close()

    exit_code = await process.wait()  # already reaped by communicate()

    if argv[0] == constants.ENV_PREFIX and exit_code in (_ENV_NOT_EXECUTABLE, _ENV_NOT_FOUND):
        raise CommandSpawnError(
            f"Could not start {spec.executable}: command not found or not executable",
            context={"command": command_str, "exit_code": exit_code},
        )

    if exit_code != 0:
        logger.warning("Command failed", extra={"command": command_str, "exit_code": exit_code})
        if exit_on_error:
            raise CommandExitError(
                f"{spec.executable} exited with status {exit_code}",
                exit_code=exit_code,
                context={"command": command_str},
            )

    return CommandResult(exit_code=exit_code, stdout=out if capture_output and stdout_file is None else None)


async def _kill(process: ProcessWrapper) -> None:
    """Kill a stalled child and reap it so no zombie is left behind."""
    logger.warning("Killing command", extra={"pid": process.pid})
    await process.kill()
    await process.wait()
