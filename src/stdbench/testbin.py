"""Compiling per-package test binaries and running them.

Each package is compiled once per toolchain root into the scratch
directory.  A package without tests builds successfully but produces
no binary; it is left out of the result rather than treated as an
error.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from stdbench.config import BenchConfig, flatten_name
from stdbench.logging import get_logger
from stdbench.process import run_command
from stdbench.toolchain import package_dir

log = get_logger("testbin")


@dataclass(frozen=True)
class CompiledTest:
    """A compiled test binary and the directory it must run from."""

    binary: Path
    dir: str  # Package source dir; tests load fixtures relative to it


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


def build_env(root: str, config: BenchConfig) -> dict[str, str]:
    """Build the minimal environment for the test-build subcommand.

    Only the root variable plus ``PATH`` and ``GOPATH`` are passed, so
    the invoking shell's toolchain settings cannot leak into the build.
    """
    return {
        config.root_env_var: root,
        "PATH": os.environ.get("PATH", ""),
        "GOPATH": os.environ.get("GOPATH", ""),
    }


def binary_path(scratch_dir: Path, label: str, package: str) -> Path:
    """Return the deterministic scratch path for a package's test binary."""
    return scratch_dir / f"{label}-{flatten_name(package)}.test"


def compile_test(
    root: str,
    label: str,
    package: str,
    config: BenchConfig,
    scratch_dir: Path,
) -> CompiledTest | None:
    """Compile the tests of one package against *root*.

    Returns:
        The compiled test, or ``None`` if the package has no tests.

    Raises:
        CommandError: If the build subcommand itself fails.
    """
    path = binary_path(scratch_dir, label, package)
    run_command(
        [
            config.tool,
            "test",
            "-c",
            f"-ldflags={config.ldflags}",
            f"-gcflags={config.gcflags}",
            "-o",
            str(path),
            package,
        ],
        cwd=root,
        env=build_env(root, config),
        verbosity=config.verbosity,
    )
    if not path.exists():
        log.debug("No tests in %s (%s)", package, label)
        return None
    return CompiledTest(binary=path, dir=package_dir(root, package, config))


def compile_tests(
    root: str,
    label: str,
    packages: list[str],
    config: BenchConfig,
    scratch_dir: Path,
) -> dict[str, CompiledTest]:
    """Compile every package in order; packages without tests are omitted."""
    tests: dict[str, CompiledTest] = {}
    for package in packages:
        test = compile_test(root, label, package, config, scratch_dir)
        if test is not None:
            tests[package] = test
    return tests


# ---------------------------------------------------------------------------
# Running
# ---------------------------------------------------------------------------


def correctness_args(config: BenchConfig) -> list[str]:
    """Arguments for the one-off run that checks tests pass."""
    return [f"-test.run={config.run_filter}"]


def benchmark_args(config: BenchConfig) -> list[str]:
    """Arguments for a benchmark run: no tests, only matching benchmarks."""
    return [
        "-test.run=NONE",
        f"-test.bench={config.bench_filter}",
        f"-test.benchmem={config.benchmem_flag}",
        f"-test.benchtime={config.benchtime}",
    ]


def run_test(test: CompiledTest, args: list[str], config: BenchConfig) -> str:
    """Run a compiled test binary from its package directory.

    Raises:
        CommandError: If the binary exits nonzero, e.g. a failing test.
    """
    if config.verbosity > 1:
        args = ["-test.v", *args]
    return run_command(
        [str(test.binary), *args],
        cwd=test.dir,
        verbosity=config.verbosity,
    )
