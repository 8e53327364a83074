"""Cross-platform OS detection and process utilities.

Uses psutil's built-in OS detection constants for platform identification.
Provides the /usr/bin/env prefix normalization for external commands and a
PID-reuse safe process wrapper.
"""

import asyncio
import contextlib
import os
from enum import Enum, auto
from functools import cache
from pathlib import Path

import psutil

from wpsnapshots import constants


class HostOS(Enum):
    """Supported host operating systems."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()
    """Other POSIX systems (BSDs, etc.). Treated like Linux for command prefixing."""


@cache
def detect_host_os() -> HostOS:
    """Detect current host operating system using psutil constants.

    Example:
        >>> match detect_host_os():
        ...     case HostOS.WINDOWS:
        ...         pass  # no /usr/bin/env
        ...     case _:
        ...         pass  # force /usr/bin/env
    """
    if psutil.WINDOWS:
        return HostOS.WINDOWS
    if psutil.LINUX:
        return HostOS.LINUX
    if psutil.MACOS:
        return HostOS.MACOS
    return HostOS.UNKNOWN


def is_windows() -> bool:
    """True when running on Windows."""
    return detect_host_os() is HostOS.WINDOWS


def get_home_dir() -> Path:
    """Resolve the user's home directory.

    Prefers the HOME environment variable (what the user's shell sees),
    falling back to the platform lookup when it is unset or empty.
    """
    home = os.environ.get("HOME", "").strip()
    if home:
        return Path(home)
    return Path.home()


def force_env_on_nix_systems(argv: list[str], host_os: HostOS | None = None) -> list[str]:
    """Normalize the /usr/bin/env prefix of a command vector.

    On non-Windows hosts the command is always run through ``/usr/bin/env``
    so PATH lookup behaves the same regardless of how the process is
    spawned. On Windows the prefix does not exist and is stripped.

    Args:
        argv: Command vector (executable first)
        host_os: Override for the detected host OS

    Returns:
        New command vector with the prefix added or removed
    """
    host_os = host_os or detect_host_os()
    has_prefix = bool(argv) and argv[0] == constants.ENV_PREFIX

    if host_os is HostOS.WINDOWS:
        return argv[1:] if has_prefix else list(argv)
    return list(argv) if has_prefix else [constants.ENV_PREFIX, *argv]


class ProcessWrapper:
    """PID-reuse safe process wrapper using psutil.

    Wraps asyncio.subprocess.Process with psutil.Process so that killing a
    stalled export never signals an unrelated process that reused the PID.
    """

    def __init__(self, async_proc: asyncio.subprocess.Process) -> None:
        self.async_proc = async_proc
        self.psutil_proc: psutil.Process | None = None

        if async_proc.pid:
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                # Process already died or inaccessible
                self.psutil_proc = psutil.Process(async_proc.pid)

    async def is_running(self) -> bool:
        """Check if process is still running (PID-reuse safe)."""
        if not self.psutil_proc:
            return self.async_proc.returncode is None

        try:
            return await asyncio.to_thread(self.psutil_proc.is_running)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False

    @property
    def pid(self) -> int | None:
        """Process ID."""
        return self.async_proc.pid

    @property
    def returncode(self) -> int | None:
        """Process return code (None if still running)."""
        return self.async_proc.returncode

    async def wait(self) -> int:
        """Wait for process to complete and return its exit code."""
        return await self.async_proc.wait()

    async def communicate(self, input: bytes | None = None) -> tuple[bytes, bytes]:
        """Wait for process to terminate and return stdout/stderr."""
        return await self.async_proc.communicate(input)

    async def kill(self) -> None:
        """Kill process (SIGKILL) without blocking the event loop."""
        if self.psutil_proc and await self.is_running():
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                await asyncio.to_thread(self.psutil_proc.kill)
        else:
            with contextlib.suppress(ProcessLookupError):
                self.async_proc.kill()
