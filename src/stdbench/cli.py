"""Command-line interface for stdbench.

Compiles the tests of the given packages against two toolchain roots,
checks they pass, then benchmarks both sides in a loop and prints
comparator reports until interrupted.
"""

from __future__ import annotations

from pathlib import Path

import click

from stdbench import __version__
from stdbench.config import (
    ScratchError,
    config_from_profile,
    load_profile,
    parse_duration,
    scratch_directory,
    validate_config,
)
from stdbench.logging import setup_logging
from stdbench.loop import BenchLoop
from stdbench.options import CountingCommand, CountParamType, resolve_verbosity
from stdbench.process import CommandError


class DurationParamType(click.ParamType):
    """Click parameter for Go-style durations (``500ms``, ``2s``, ``1m``)."""

    name = "duration"

    def convert(
        self,
        value: object,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> float:
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_duration(str(value))
        except ValueError as exc:
            self.fail(str(exc), param, ctx)


@click.command(cls=CountingCommand)
@click.version_option(version=__version__)
@click.argument("packages", nargs=-1)
@click.option(
    "--before", "before_root", type=str, default=None, help="Toolchain root for 'before'."
)
@click.option("--after", "after_root", type=str, default=None, help="Toolchain root for 'after'.")
@click.option(
    "--run",
    "run_filter",
    type=str,
    default=None,
    help="Test filter for the correctness pass (-test.run, default: NONE).",
)
@click.option(
    "--bench",
    "bench_filter",
    type=str,
    default=None,
    help="Benchmark filter (-test.bench, default: '.').",
)
@click.option(
    "--benchmem/--no-benchmem",
    default=None,
    help="Report memory allocation statistics (-test.benchmem).",
)
@click.option(
    "--benchtime",
    type=str,
    default=None,
    help="Minimum time per benchmark (-test.benchtime, default: 1s).",
)
@click.option("--ldflags", type=str, default=None, help="Passed to the test build as -ldflags.")
@click.option("--gcflags", type=str, default=None, help="Passed to the test build as -gcflags.")
@click.option(
    "--sleep",
    type=DurationParamType(),
    default=None,
    help="Time to sleep between benchmark runs (e.g. 500ms, 2s).",
)
@click.option(
    "--iterations",
    "max_iterations",
    type=int,
    default=None,
    help="Stop after this many iterations (default: run until interrupted).",
)
@click.option(
    "--keep-scratch/--clean-scratch",
    default=None,
    help="Keep the scratch directory with test binaries on exit.",
)
@click.option("--tool", type=str, default=None, help="Toolchain driver relative to each root.")
@click.option("--comparator", type=str, default=None, help="Benchmark comparison command.")
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML profile with option defaults.",
)
@click.option(
    "-v",
    "--verbose",
    type=CountParamType(),
    multiple=True,
    help="Increase verbosity (repeatable), or set it with -v=N (N, true or false).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Also write a DEBUG log to this file.",
)
def main(  # noqa: PLR0913
    packages: tuple[str, ...],
    before_root: str | None,
    after_root: str | None,
    run_filter: str | None,
    bench_filter: str | None,
    benchmem: bool | None,
    benchtime: str | None,
    ldflags: str | None,
    gcflags: str | None,
    sleep: float | None,
    max_iterations: int | None,
    keep_scratch: bool | None,
    tool: str | None,
    comparator: str | None,
    profile_path: Path | None,
    verbose: tuple[str, ...],
    log_file: Path | None,
) -> None:
    """A/B benchmark the tests of PACKAGES under two toolchain roots.

    PACKAGES are package paths, or the single word ``std`` for the whole
    standard library of the --before root (command packages excluded).

    \b
    Examples:
        stdbench --before ~/go-base --after ~/go strconv encoding/json
        stdbench --before ~/go-base --after ~/go --bench Parse -v std
        stdbench --profile jit.yaml --iterations 5 --keep-scratch std
    """
    verbosity = resolve_verbosity(verbose) if verbose else None

    cli_overrides: dict[str, object] = {
        "packages": list(packages),
        "before_root": before_root,
        "after_root": after_root,
        "run_filter": run_filter,
        "bench_filter": bench_filter,
        "benchmem": benchmem,
        "benchtime": benchtime,
        "ldflags": ldflags,
        "gcflags": gcflags,
        "sleep": sleep,
        "max_iterations": max_iterations,
        "keep_scratch": keep_scratch,
        "tool": tool,
        "comparator": comparator,
        "verbosity": verbosity,
    }

    try:
        profile_data = load_profile(profile_path) if profile_path else {}
        config = config_from_profile(profile_data, cli_overrides=cli_overrides)
    except (ValueError, TypeError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    errors = validate_config(config)
    if errors:
        for e in errors:
            click.echo(f"Error: {e.field}: {e.message}", err=True)
        raise SystemExit(1)

    setup_logging(verbosity=config.verbosity, log_file=log_file)

    try:
        with scratch_directory(config.keep_scratch) as scratch:
            BenchLoop(config, scratch).run()
    except (CommandError, ScratchError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nInterrupted.", err=True)
        raise SystemExit(0)  # noqa: B904
