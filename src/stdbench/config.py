"""Benchmark configuration, profile loading and the scratch directory.

Handles:
- The resolved configuration passed to every component.
- Loading option defaults from YAML profiles.
- Merging CLI options over profile values.
- Parsing and formatting Go-style durations.
- Validating the final configuration before execution.
- Creating (and optionally removing) the process-wide scratch directory.
"""

from __future__ import annotations

import re
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from stdbench.logging import get_logger

log = get_logger("config")


# ---------------------------------------------------------------------------
# BenchConfig
# ---------------------------------------------------------------------------


@dataclass
class BenchConfig:
    """Resolved configuration for an A/B benchmark run."""

    # Toolchain roots
    before_root: str = ""
    after_root: str = ""

    # Package identifiers as given on the command line ("std" expands)
    packages: list[str] = field(default_factory=list)

    # Test binary flags
    run_filter: str = "NONE"
    bench_filter: str = "."
    benchmem: bool = False
    benchtime: str = "1s"  # Passed through untouched, e.g. "2s" or "100x"
    ldflags: str = ""
    gcflags: str = ""

    # Loop control
    sleep: float = 0.0  # Seconds between runs
    max_iterations: int | None = None  # None = run until interrupted

    # Output
    verbosity: int = 0
    report_head_lines: int = 50

    # Scratch directory policy
    keep_scratch: bool = False

    # Toolchain conventions
    tool: str = "bin/go"  # Driver, relative to each root
    root_env_var: str = "GOROOT"
    command_prefix: str = "cmd/"
    comparator: str = "benchstat"
    no_op_sentinel: str = "PASS"

    @property
    def benchmem_flag(self) -> str:
        """The ``-test.benchmem`` value as the test binary expects it."""
        return "true" if self.benchmem else "false"

    def root_for(self, label: str) -> str:
        """Return the toolchain root for ``"before"`` or ``"after"``."""
        if label == "before":
            return self.before_root
        if label == "after":
            return self.after_root
        raise ValueError(f"Unknown label: {label!r}")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str


def validate_config(config: BenchConfig) -> list[ValidationError]:
    """Validate a benchmark configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not config.packages:
        errors.append(
            ValidationError(
                field="packages",
                message="must provide at least one package (or 'std')",
            )
        )

    for label in ("before", "after"):
        if not config.root_for(label):
            errors.append(
                ValidationError(
                    field=f"{label}_root",
                    message=f"No toolchain root given for '{label}'.",
                )
            )

    if not valid_benchtime(config.benchtime):
        errors.append(
            ValidationError(
                field="benchtime",
                message=(
                    f"Invalid benchtime {config.benchtime!r}: "
                    f"expected a duration like 1s or 500ms, or a count like 100x."
                ),
            )
        )

    if config.sleep < 0:
        errors.append(
            ValidationError(
                field="sleep",
                message=f"Sleep cannot be negative (got {config.sleep}).",
            )
        )

    if config.max_iterations is not None and config.max_iterations <= 0:
        errors.append(
            ValidationError(
                field="max_iterations",
                message=f"Iterations must be positive (got {config.max_iterations}).",
            )
        )

    if config.verbosity < 0:
        errors.append(
            ValidationError(
                field="verbosity",
                message=f"Verbosity cannot be negative (got {config.verbosity}).",
            )
        )

    if config.report_head_lines <= 0:
        errors.append(
            ValidationError(
                field="report_head_lines",
                message=f"Report head must be positive (got {config.report_head_lines}).",
            )
        )

    return errors


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a Go-style duration such as ``300ms`` or ``1h2m3.5s``.

    A bare ``0`` is accepted.  Returns the duration in seconds.

    Raises:
        ValueError: If *text* is not a valid duration.
    """
    orig = text
    text = text.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        if text[0] == "-":
            sign = -1.0
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration {orig!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        m = _DURATION_PART.match(text, pos)
        if m is None:
            raise ValueError(f"invalid duration {orig!r}")
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    return sign * total


_BENCHTIME_COUNT = re.compile(r"\d+x")


def valid_benchtime(text: str) -> bool:
    """Whether *text* is a ``-test.benchtime`` value: a duration or ``Nx``."""
    if _BENCHTIME_COUNT.fullmatch(text):
        return True
    try:
        return parse_duration(text) >= 0
    except ValueError:
        return False


def format_duration(seconds: float) -> str:
    """Format seconds the way progress messages show elapsed time."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{int(minutes)}m{secs:.2f}s"
    hours, minutes = divmod(minutes, 60)
    return f"{int(hours)}h{int(minutes)}m{secs:.2f}s"


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load option defaults from a YAML file.

    Profile format::

        before: /src/go-base
        after: /src/go
        bench: "Benchmark(Encode|Decode)"
        benchmem: true
        benchtime: 2s
        sleep: 500ms
        keep_scratch: true
        packages: [encoding/json, strconv]

    Keys are :class:`BenchConfig` field names; ``before``, ``after``,
    ``run`` and ``bench`` are accepted as aliases for the root and
    filter fields.

    Returns:
        The parsed YAML as a dict.
    """
    import yaml

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    try:
        data = yaml.safe_load(profile_path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid profile {profile_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")
    return data


_PROFILE_ALIASES = {
    "before": "before_root",
    "after": "after_root",
    "run": "run_filter",
    "bench": "bench_filter",
}


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> BenchConfig:
    """Build a BenchConfig from profile data and CLI values.

    CLI values that are not ``None`` (or, for ``packages``, non-empty)
    take precedence over profile values, which take precedence over
    the BenchConfig defaults.

    Raises:
        ValueError: On unknown profile keys or malformed values.
    """
    known = {f.name for f in fields(BenchConfig)}
    values: dict[str, Any] = {}

    for key, value in profile_data.items():
        name = _PROFILE_ALIASES.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown profile key '{key}'")
        values[name] = value

    for name, value in (cli_overrides or {}).items():
        if value is None:
            continue
        if name == "packages" and not value:
            continue
        values[name] = value

    if isinstance(values.get("sleep"), str):
        values["sleep"] = parse_duration(values["sleep"])
    if "packages" in values:
        packages = values["packages"]
        if isinstance(packages, str):
            packages = packages.split()
        if not isinstance(packages, (list, tuple)):
            raise ValueError("Profile 'packages' must be a list of package names")
        values["packages"] = [str(p) for p in packages]
    if "benchtime" in values:
        values["benchtime"] = str(values["benchtime"])

    return BenchConfig(**values)


# ---------------------------------------------------------------------------
# Scratch directory
# ---------------------------------------------------------------------------


class ScratchError(RuntimeError):
    """The scratch directory or a file inside it could not be written."""


@contextmanager
def scratch_directory(keep: bool = False) -> Iterator[Path]:
    """Create the scratch directory for the run.

    The directory is removed when the block exits, however it exits,
    unless *keep* is True.
    """
    try:
        path = Path(tempfile.mkdtemp(prefix="stdbench-"))
    except OSError as exc:
        raise ScratchError(f"could not create scratch directory: {exc}") from exc

    try:
        yield path
    finally:
        if keep:
            log.info("Leaving temp dir %s", path)
        else:
            log.debug("Removing temp dir %s", path)
            shutil.rmtree(path, ignore_errors=True)


def write_scratch(scratch_dir: Path, filename: str, data: str) -> Path:
    """Write *data* to *filename* inside the scratch directory."""
    path = scratch_dir / filename
    try:
        path.write_text(data, encoding="utf-8")
    except OSError as exc:
        raise ScratchError(f"could not write {path}: {exc}") from exc
    return path


def flatten_name(name: str) -> str:
    """Make a package identifier safe for use in a flat file name."""
    return name.replace("/", "-")
