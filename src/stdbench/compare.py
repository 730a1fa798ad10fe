"""Handing accumulated benchmark output to the external comparator.

The comparator (``benchstat`` by default) reads two files of raw
benchmark output and prints a statistical summary of the differences.
Its output is returned as text and never interpreted here.  A broken
comparator is logged but does not stop the run.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from stdbench.config import BenchConfig, flatten_name, write_scratch
from stdbench.logging import get_logger
from stdbench.process import command_string

log = get_logger("compare")


def compare(
    label: str,
    before: str,
    after: str,
    config: BenchConfig,
    scratch_dir: Path,
) -> str:
    """Compare two blobs of benchmark output and return the report.

    Args:
        label: Package identifier (or ``"all"``) naming the input files.
        before: Accumulated output from the "before" root.
        after: Accumulated output from the "after" root.

    Returns:
        The comparator's combined output, stripped.  May be empty if
        the comparator could not be started.
    """
    flat = flatten_name(label)
    before_file = write_scratch(scratch_dir, f"before-{flat}.bench", before)
    after_file = write_scratch(scratch_dir, f"after-{flat}.bench", after)

    argv = [config.comparator, str(before_file), str(after_file)]
    cmd = command_string(argv)
    log.debug("Running %s", cmd)
    try:
        proc = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        log.warning("%s failed (%s)", cmd, exc)
        return ""

    output = proc.stdout or ""
    if proc.returncode != 0:
        log.warning("%s failed (exit status %d)", cmd, proc.returncode)
    if config.verbosity >= 2:
        log.debug("%s", output)
    return output.strip()


def head_lines(report: str, limit: int = 50) -> list[str]:
    """Return at most *limit* lines from the start of *report*."""
    if not report:
        return []
    return report.split("\n")[:limit]
