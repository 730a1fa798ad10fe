"""Queries against a toolchain root: version, standard packages, source dirs."""

from __future__ import annotations

from stdbench.config import BenchConfig
from stdbench.process import run_command


def version(root: str, config: BenchConfig) -> str:
    """Return the toolchain's version report, for display only."""
    return run_command(
        [config.tool, "version"],
        cwd=root,
        verbosity=config.verbosity,
    )


def filter_commands(names: list[str], command_prefix: str) -> list[str]:
    """Drop identifiers under the reserved command namespace, keeping order."""
    return [name for name in names if not name.startswith(command_prefix)]


def list_packages(root: str, config: BenchConfig) -> list[str]:
    """List the standard package set of *root*, excluding command packages.

    The order is the tool's own listing order.
    """
    out = run_command(
        [config.tool, "list", "std"],
        cwd=root,
        verbosity=config.verbosity,
    )
    names = [line for line in out.split("\n") if line]
    return filter_commands(names, config.command_prefix)


def package_dir(root: str, package: str, config: BenchConfig) -> str:
    """Return the source directory of *package* within *root*."""
    return run_command(
        [config.tool, "list", "-f", "{{.Dir}}", package],
        cwd=root,
        verbosity=config.verbosity,
    )
