"""Before/after benchmark loop.

Orchestrates:
1. Querying both toolchain roots and resolving the package set
2. Compiling test binaries against each root
3. A correctness pass over every compiled binary
4. An open-ended loop that benchmarks each package on both roots,
   accumulates the output and re-runs the comparator over everything
   collected so far

Only packages with a test binary on both sides are benchmarked.  Every
iteration adds samples, so later comparisons carry more statistical
weight; the loop runs until interrupted unless ``max_iterations`` is
set.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

import click

from stdbench.compare import compare, head_lines
from stdbench.config import BenchConfig, format_duration
from stdbench.logging import get_logger
from stdbench.testbin import (
    CompiledTest,
    benchmark_args,
    compile_tests,
    correctness_args,
    run_test,
)
from stdbench.toolchain import list_packages, version

log = get_logger("loop")

STD = "std"


# ---------------------------------------------------------------------------
# Accumulated output
# ---------------------------------------------------------------------------


class Accumulator:
    """Per-package benchmark output for one side, appended every iteration."""

    def __init__(self) -> None:
        self._text: dict[str, str] = {}

    def add(self, package: str, output: str) -> str:
        """Append one run's output and return the package's full text."""
        self._text[package] = self._text.get(package, "") + "\n" + output + "\n"
        return self._text[package]

    def get(self, package: str) -> str:
        return self._text.get(package, "")

    def joined(self, packages: list[str]) -> str:
        """Concatenate the full history of *packages*, in order."""
        return "".join(self.get(p) for p in packages)


def no_benchmarks_ran(before: str, after: str, sentinel: str = "PASS") -> bool:
    """Whether both sides ran but matched no benchmarks.

    A test binary that runs no benchmarks prints only the test
    framework's success line (``PASS``).  The comparison is skipped
    when every non-blank line on both sides is exactly that line; any
    other output, on either side, is compared.
    """

    def only_sentinel(text: str) -> bool:
        lines = [line for line in text.split("\n") if line.strip()]
        return bool(lines) and all(line == sentinel for line in lines)

    return only_sentinel(before) and only_sentinel(after)


# ---------------------------------------------------------------------------
# BenchLoop
# ---------------------------------------------------------------------------


class BenchLoop:
    """Runs the A/B comparison described by a BenchConfig.

    Usage::

        with scratch_directory(config.keep_scratch) as scratch:
            BenchLoop(config, scratch).run()
    """

    def __init__(
        self,
        config: BenchConfig,
        scratch_dir: Path,
        *,
        echo: Callable[[str], None] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.config = config
        self.scratch_dir = scratch_dir
        self.echo = echo or click.echo
        self.sleep = sleep or time.sleep
        self.packages: list[str] = []
        self.before_tests: dict[str, CompiledTest] = {}
        self.after_tests: dict[str, CompiledTest] = {}
        self.before_benches = Accumulator()
        self.after_benches = Accumulator()
        self.iterations = 0

    def run(self) -> None:
        """Prepare both sides, then benchmark until interrupted.

        Raises:
            CommandError: If any toolchain command or test binary fails.
        """
        self.prepare()
        limit = self.config.max_iterations
        while limit is None or self.iterations < limit:
            self.iterate()

    def prepare(self) -> None:
        """Query, compile and correctness-test both roots."""
        config = self.config
        start = time.monotonic()

        log.info("Before: %s (%s)", config.before_root, version(config.before_root, config))
        log.info("After: %s (%s)", config.after_root, version(config.after_root, config))

        self.packages = self.resolve_packages()
        log.info("Using temp dir %s", self.scratch_dir)

        log.info("Compiling before tests")
        self.before_tests = compile_tests(
            config.before_root, "before", self.packages, config, self.scratch_dir
        )
        log.info("Compiling after tests")
        self.after_tests = compile_tests(
            config.after_root, "after", self.packages, config, self.scratch_dir
        )

        log.info("Running before tests")
        for test in self.before_tests.values():
            run_test(test, correctness_args(config), config)
        log.info("Running after tests")
        for test in self.after_tests.values():
            run_test(test, correctness_args(config), config)

        log.info("Elapsed: %s", format_duration(time.monotonic() - start))

    def resolve_packages(self) -> list[str]:
        """Expand ``std`` into the before root's standard packages."""
        if self.config.packages and self.config.packages[0] == STD:
            return list_packages(self.config.before_root, self.config)
        return list(self.config.packages)

    def paired_packages(self) -> list[str]:
        """Packages with a test binary on both sides, in package order."""
        return [p for p in self.packages if p in self.before_tests and p in self.after_tests]

    def iterate(self) -> None:
        """Run one benchmark round over every paired package."""
        self.iterations += 1
        n = self.iterations
        config = self.config
        args = benchmark_args(config)

        for pkg in self.paired_packages():
            start = time.monotonic()

            log.debug("Running before benchmarks: %s", pkg)
            before = self.before_benches.add(pkg, run_test(self.before_tests[pkg], args, config))
            self.sleep(config.sleep)

            log.debug("Running after benchmarks: %s", pkg)
            after = self.after_benches.add(pkg, run_test(self.after_tests[pkg], args, config))

            if no_benchmarks_ran(before, after, config.no_op_sentinel):
                continue

            elapsed = format_duration(time.monotonic() - start)
            self.echo(f"--- {pkg}, {n} iter ({elapsed})")
            out = compare(pkg, before, after, config, self.scratch_dir)
            self.echo(f"{out}\n\n")
            self.sleep(config.sleep)

        if len(self.packages) > 1:
            self.report_all()

    def report_all(self) -> None:
        """Compare the whole history of all packages and print its head."""
        self.echo(f"--- ALL, {self.iterations} iter")
        out = compare(
            "all",
            self.before_benches.joined(self.packages),
            self.after_benches.joined(self.packages),
            self.config,
            self.scratch_dir,
        )
        for line in head_lines(out, self.config.report_head_lines):
            self.echo(line)
        self.echo("\n\n")
