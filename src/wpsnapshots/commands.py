"""External command construction.

Commands are built as argument vectors and spawned without a shell, so option
values reach the tool as single literal arguments no matter what characters
they contain. The shell rendering (to_shell) exists only for logs and is
quoted for the host platform.
"""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from wpsnapshots.platform_utils import HostOS, detect_host_os, force_env_on_nix_systems

if TYPE_CHECKING:
    from pathlib import Path


def assoc_args_to_argv(assoc_args: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> list[str]:
    """Render key/value options as ``--key`` / ``--key=value`` tokens.

    - ``True`` renders a bare flag
    - list/tuple/set values render one ``--key=value`` token per element
    - ``False`` and ``None`` are omitted
    - anything else renders ``--key=value`` with the value unescaped; the
      vector is never joined into a shell string for execution
    """
    items = assoc_args.items() if isinstance(assoc_args, Mapping) else assoc_args
    argv: list[str] = []
    for key, value in items:
        if value is True:
            argv.append(f"--{key}")
        elif value is False or value is None:
            continue
        elif isinstance(value, (list, tuple, set, frozenset)):
            elements = sorted(value) if isinstance(value, (set, frozenset)) else value
            argv.extend(assoc_args_to_argv([(key, v) for v in elements]))
        else:
            argv.append(f"--{key}={value}")
    return argv


@dataclass(frozen=True)
class CommandSpec:
    """A fully described external command invocation.

    Attributes:
        executable: Tool name or path (resolved through PATH)
        options: Ordered, unescaped (key, value) option pairs
        suffix: Trailing positional arguments, passed through verbatim
        secret_env: Secrets delivered through the child's environment only
        stdout_path: File the child's stdout is redirected to (None inherits)
    """

    executable: str
    options: tuple[tuple[str, Any], ...] = ()
    suffix: tuple[str, ...] = ()
    secret_env: Mapping[str, str] = field(default_factory=dict, repr=False)
    stdout_path: Path | None = None

    def to_argv(self, host_os: HostOS | None = None) -> list[str]:
        """Final argument vector including the platform env prefix."""
        return force_env_on_nix_systems(
            [self.executable, *assoc_args_to_argv(self.options), *self.suffix],
            host_os,
        )

    @property
    def argv(self) -> list[str]:
        return self.to_argv()

    def to_shell(self, host_os: HostOS | None = None) -> str:
        """Quoted, human-readable form of the command. Secrets are never included."""
        host_os = host_os or detect_host_os()
        argv = self.to_argv(host_os)
        if host_os is HostOS.WINDOWS:
            rendered = subprocess.list2cmdline(argv)
            target = subprocess.list2cmdline([str(self.stdout_path)]) if self.stdout_path else ""
        else:
            rendered = shlex.join(argv)
            target = shlex.quote(str(self.stdout_path)) if self.stdout_path else ""
        if self.secret_env:
            names = " ".join(f"{name}=***" for name in sorted(self.secret_env))
            rendered = f"{names} {rendered}"
        return f"{rendered} > {target}" if target else rendered


def build_archive_command(
    tar_bin: str,
    source: Path,
    output_path: Path,
    exclude: Iterable[str] = (),
) -> CommandSpec:
    """tar invocation that archives the contents of ``source`` into a gzipped tarball.

    Exclusions are given relative to ``source`` (e.g. ``./wp-content/uploads``).
    """
    return CommandSpec(
        executable=tar_bin,
        options=(("exclude", sorted(exclude)),),
        suffix=("-czf", str(output_path), "-C", str(source), "."),
    )
