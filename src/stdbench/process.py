"""Subprocess execution for toolchain commands and test binaries.

Every external command except the comparator goes through
:func:`run_command`.  A command that cannot be started or exits
nonzero means the environment is broken, so it is never retried: a
:class:`CommandError` is raised and the run ends.
"""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path

from stdbench.logging import get_logger

log = get_logger("process")


class CommandError(RuntimeError):
    """An external command failed to start or exited nonzero."""

    def __init__(
        self,
        command: str,
        reason: str,
        output: str = "",
        returncode: int | None = None,
    ) -> None:
        self.command = command
        self.reason = reason
        self.output = output
        self.returncode = returncode
        super().__init__(f"{command} failed ({reason}):\n{output}")


def command_string(args: Sequence[str]) -> str:
    """Reconstruct a command line for display."""
    return " ".join(shlex.quote(str(a)) for a in args)


def run_command(
    args: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    verbosity: int = 0,
) -> str:
    """Run a command and return its combined stdout and stderr, stripped.

    Args:
        args: Program and arguments.  A relative program path containing
            a separator (``bin/go``) is resolved against *cwd*.
        cwd: Working directory for the subprocess.
        env: Complete environment for the subprocess, or ``None`` to
            inherit the current one.
        verbosity: At 2 or more the raw output is logged.

    Raises:
        CommandError: If the command cannot be started or exits nonzero.
    """
    argv = [str(a) for a in args]
    cmd = command_string(argv)
    if cwd is not None and "/" in argv[0] and not Path(argv[0]).is_absolute():
        argv[0] = str(Path(cwd) / argv[0])

    log.debug("Running %s", cmd)
    try:
        proc = subprocess.run(
            argv,
            cwd=str(cwd) if cwd is not None else None,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise CommandError(cmd, str(exc)) from exc

    output = proc.stdout or ""
    if proc.returncode != 0:
        raise CommandError(
            cmd,
            f"exit status {proc.returncode}",
            output=output,
            returncode=proc.returncode,
        )
    if verbosity >= 2:
        log.debug("%s", output)
    return output.strip()
