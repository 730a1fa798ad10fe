"""Tests for stdbench.config — configuration, profiles and scratch space."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from stdbench.config import (
    BenchConfig,
    ScratchError,
    config_from_profile,
    flatten_name,
    format_duration,
    load_profile,
    parse_duration,
    scratch_directory,
    valid_benchtime,
    validate_config,
    write_scratch,
)


def _make_config(**kwargs: object) -> BenchConfig:
    """Create a BenchConfig that passes validation."""
    defaults: dict[str, object] = {
        "before_root": "/tmp/root-a",
        "after_root": "/tmp/root-b",
        "packages": ["strconv"],
    }
    defaults.update(kwargs)
    return BenchConfig(**defaults)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# BenchConfig
# ---------------------------------------------------------------------------


class TestBenchConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = BenchConfig()
        self.assertEqual(config.run_filter, "NONE")
        self.assertEqual(config.bench_filter, ".")
        self.assertEqual(config.benchtime, "1s")
        self.assertEqual(config.sleep, 0.0)
        self.assertIsNone(config.max_iterations)
        self.assertFalse(config.keep_scratch)
        self.assertEqual(config.report_head_lines, 50)

    def test_benchmem_flag(self) -> None:
        self.assertEqual(BenchConfig().benchmem_flag, "false")
        self.assertEqual(BenchConfig(benchmem=True).benchmem_flag, "true")

    def test_root_for(self) -> None:
        config = _make_config()
        self.assertEqual(config.root_for("before"), "/tmp/root-a")
        self.assertEqual(config.root_for("after"), "/tmp/root-b")
        with self.assertRaises(ValueError):
            config.root_for("during")


class TestValidateConfig(unittest.TestCase):
    def test_valid(self) -> None:
        self.assertEqual(validate_config(_make_config()), [])

    def test_no_packages(self) -> None:
        errors = validate_config(_make_config(packages=[]))
        self.assertEqual([e.field for e in errors], ["packages"])
        self.assertIn("at least one package", errors[0].message)

    def test_missing_roots(self) -> None:
        errors = validate_config(_make_config(before_root="", after_root=""))
        self.assertEqual({e.field for e in errors}, {"before_root", "after_root"})

    def test_negative_sleep(self) -> None:
        errors = validate_config(_make_config(sleep=-1.0))
        self.assertEqual([e.field for e in errors], ["sleep"])

    def test_zero_iterations(self) -> None:
        errors = validate_config(_make_config(max_iterations=0))
        self.assertEqual([e.field for e in errors], ["max_iterations"])

    def test_negative_verbosity(self) -> None:
        errors = validate_config(_make_config(verbosity=-1))
        self.assertEqual([e.field for e in errors], ["verbosity"])

    def test_bad_benchtime(self) -> None:
        errors = validate_config(_make_config(benchtime="soon"))
        self.assertEqual([e.field for e in errors], ["benchtime"])
        self.assertIn("100x", errors[0].message)

    def test_benchtime_durations_and_counts_accepted(self) -> None:
        for benchtime in ("2s", "500ms", "1m30s", "0", "100x"):
            with self.subTest(benchtime=benchtime):
                self.assertEqual(validate_config(_make_config(benchtime=benchtime)), [])


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------


class TestParseDuration(unittest.TestCase):
    def test_seconds(self) -> None:
        self.assertEqual(parse_duration("2s"), 2.0)

    def test_milliseconds(self) -> None:
        self.assertAlmostEqual(parse_duration("300ms"), 0.3)

    def test_fractional(self) -> None:
        self.assertAlmostEqual(parse_duration("1.5s"), 1.5)

    def test_compound(self) -> None:
        self.assertAlmostEqual(parse_duration("1h2m3s"), 3723.0)

    def test_bare_zero(self) -> None:
        self.assertEqual(parse_duration("0"), 0.0)

    def test_negative(self) -> None:
        self.assertEqual(parse_duration("-1s"), -1.0)

    def test_invalid(self) -> None:
        for text in ("", "5", "1x", "s", "1s junk"):
            with self.subTest(text=text), self.assertRaises(ValueError):
                parse_duration(text)


class TestFormatDuration(unittest.TestCase):
    def test_seconds(self) -> None:
        self.assertEqual(format_duration(1.234), "1.23s")

    def test_minutes(self) -> None:
        self.assertEqual(format_duration(65.5), "1m5.50s")

    def test_hours(self) -> None:
        self.assertEqual(format_duration(3723.0), "1h2m3.00s")


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class TestLoadProfile(unittest.TestCase):
    def test_load_mapping(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "profile.yaml"
            path.write_text("before: /a\nafter: /b\nbenchmem: true\n")
            data = load_profile(path)
        self.assertEqual(data, {"before": "/a", "after": "/b", "benchmem": True})

    def test_empty_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "profile.yaml"
            path.write_text("")
            self.assertEqual(load_profile(path), {})

    def test_not_a_mapping(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "profile.yaml"
            path.write_text("- a\n- b\n")
            with self.assertRaises(ValueError):
                load_profile(path)

    def test_missing(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_profile(Path("/nonexistent/profile.yaml"))


class TestConfigFromProfile(unittest.TestCase):
    def test_aliases_and_durations(self) -> None:
        config = config_from_profile(
            {
                "before": "/a",
                "after": "/b",
                "run": "TestParse",
                "bench": "BenchmarkParse",
                "sleep": "500ms",
                "benchtime": 2,
                "packages": "strconv encoding/json",
            }
        )
        self.assertEqual(config.before_root, "/a")
        self.assertEqual(config.after_root, "/b")
        self.assertEqual(config.run_filter, "TestParse")
        self.assertEqual(config.bench_filter, "BenchmarkParse")
        self.assertAlmostEqual(config.sleep, 0.5)
        self.assertEqual(config.benchtime, "2")
        self.assertEqual(config.packages, ["strconv", "encoding/json"])

    def test_cli_overrides_profile(self) -> None:
        config = config_from_profile(
            {"bench_filter": "Old", "packages": ["a"], "benchmem": True},
            cli_overrides={
                "bench_filter": "New",
                "packages": ["b"],
                "benchmem": None,
            },
        )
        self.assertEqual(config.bench_filter, "New")
        self.assertEqual(config.packages, ["b"])
        self.assertTrue(config.benchmem)

    def test_empty_cli_packages_keep_profile(self) -> None:
        config = config_from_profile({"packages": ["a"]}, cli_overrides={"packages": []})
        self.assertEqual(config.packages, ["a"])

    def test_unknown_key(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            config_from_profile({"iterations_per_second": 3})
        self.assertIn("iterations_per_second", str(ctx.exception))

    def test_bad_packages(self) -> None:
        with self.assertRaises(ValueError):
            config_from_profile({"packages": 3})


# ---------------------------------------------------------------------------
# Scratch directory
# ---------------------------------------------------------------------------


class TestScratchDirectory(unittest.TestCase):
    def test_removed_on_exit(self) -> None:
        with scratch_directory() as path:
            self.assertTrue(path.is_dir())
            (path / "before-a.test").write_text("x")
        self.assertFalse(path.exists())

    def test_removed_on_error(self) -> None:
        with self.assertRaises(RuntimeError):
            with scratch_directory() as path:
                raise RuntimeError("boom")
        self.assertFalse(path.exists())

    def test_kept(self) -> None:
        with scratch_directory(keep=True) as path:
            pass
        try:
            self.assertTrue(path.is_dir())
        finally:
            path.rmdir()

    def test_write_scratch(self) -> None:
        with scratch_directory() as path:
            written = write_scratch(path, "before-all.bench", "data")
            self.assertEqual(written, path / "before-all.bench")
            self.assertEqual(written.read_text(), "data")

    def test_write_scratch_failure(self) -> None:
        with self.assertRaises(ScratchError):
            write_scratch(Path("/nonexistent/scratch"), "f.bench", "data")

    def test_flatten_name(self) -> None:
        self.assertEqual(flatten_name("encoding/json"), "encoding-json")
        self.assertEqual(flatten_name("strconv"), "strconv")


class TestLoadProfileSyntax(unittest.TestCase):
    def test_invalid_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "profile.yaml"
            path.write_text("before: [unclosed\n")
            with self.assertRaises(ValueError):
                load_profile(path)


class TestValidBenchtime(unittest.TestCase):
    def test_iteration_count(self) -> None:
        self.assertTrue(valid_benchtime("1x"))
        self.assertFalse(valid_benchtime("x"))
        self.assertFalse(valid_benchtime("10X"))

    def test_negative_duration_rejected(self) -> None:
        self.assertFalse(valid_benchtime("-1s"))

    def test_missing_unit_rejected(self) -> None:
        self.assertFalse(valid_benchtime("100"))
        self.assertFalse(valid_benchtime(""))
