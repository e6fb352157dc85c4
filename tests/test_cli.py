"""Tests for the command-line interface."""

import json
import logging

import pytest

from prime360.cli import (
    EXIT_FAILED,
    EXIT_INTERRUPTED,
    EXIT_INVALID,
    EXIT_PASSED,
    EXIT_VIOLATED,
    build_parser,
    describe_result,
    exit_status,
    format_summary_table,
    main,
    print_run_results,
)
from prime360.utils.run_manager import RunManager
from prime360.verification.results import RangeResult, ScaleStatus, Summary


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers bound to captured streams between tests."""
    yield
    logger = logging.getLogger("prime360")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def make_result(m, status=ScaleStatus.PASSED, exhaustive=True):
    return RangeResult(
        m=m, range_start=(m - 1) * 360, range_end=m * 360,
        prime_count=10, checked_count=10,
        success_count=10 if status is ScaleStatus.PASSED else 9,
        max_distance=90 if status is ScaleStatus.PASSED else 190,
        exhaustive=exhaustive, status=status,
        missed_primes=[] if status is ScaleStatus.PASSED else [m * 360 - 1],
    )


class TestParser:
    """Tests for argument parsing."""

    def test_positional_defaults(self):
        """Test default positional parameters."""
        args = build_parser().parse_args([])
        assert (args.max_m, args.min_m, args.max_primes_per_range) == (10, 1, 100_000)

    def test_positional_order(self):
        """max_m, min_m, max_primes_per_range in that order."""
        args = build_parser().parse_args(["20", "5", "50"])
        assert (args.max_m, args.min_m, args.max_primes_per_range) == (20, 5, 50)


class TestMain:
    """Tests for main entry point."""

    def test_passing_run(self, capsys):
        """A small run passes and prints the summary table."""
        assert main(["3", "1", "--no-progress"]) == EXIT_PASSED
        out = capsys.readouterr().out
        assert "Result: PASSED" in out
        assert "Range end" in out
        assert "exhaustive" in out

    def test_sampled_run(self, capsys):
        """Sampled scales are flagged in the output."""
        assert main(["2", "1", "5", "--no-progress"]) == EXIT_PASSED
        out = capsys.readouterr().out
        assert "sampled" in out
        assert "weaker evidence" in out

    @pytest.mark.parametrize("argv", [
        ["1", "5"],
        ["5", "0"],
        ["5", "1", "0"],
        ["5", "1", "10", "--workers", "-1"],
        ["5", "1", "10", "--memory-limit-mb", "0"],
    ])
    def test_invalid_parameters(self, argv, capsys):
        """Invalid combinations fail fast with exit status 2."""
        assert main(argv + ["--no-progress"]) == EXIT_INVALID
        captured = capsys.readouterr()
        assert "Invalid parameters" in captured.err
        assert "Starting" not in captured.out

    def test_save_run(self, tmp_path, capsys):
        """--save-run records config, results and status."""
        assert main(["2", "--no-progress", "--save-run", "--output-dir", str(tmp_path)]) == EXIT_PASSED
        run = RunManager(tmp_path).get_latest_run()
        assert run.metadata.status == "passed"
        with open(run.run_dir / "results.json") as f:
            results = json.load(f)
        assert [r["m"] for r in results["results"]] == [1, 2]
        assert run.log_path.exists()

        assert main(["--list-runs", "--output-dir", str(tmp_path)]) == EXIT_PASSED
        assert run.metadata.run_id in capsys.readouterr().out

    def test_show_latest(self, tmp_path, capsys):
        """--show-latest prints the stored results of the newest run."""
        assert main(["--show-latest", "--output-dir", str(tmp_path)]) == EXIT_PASSED
        assert "No runs found" in capsys.readouterr().out

        assert main(["3", "--no-progress", "--save-run", "--output-dir", str(tmp_path)]) == EXIT_PASSED
        capsys.readouterr()
        assert main(["--show-latest", "--output-dir", str(tmp_path)]) == EXIT_PASSED
        out = capsys.readouterr().out
        assert RunManager(tmp_path).get_latest_run().metadata.run_id in out
        assert "result: passed" in out
        assert "scales: 3" in out

    def test_print_run_results_reports_problems(self, tmp_path, capsys):
        """Violated and failed scales from a stored run are listed."""
        run = RunManager(tmp_path).create_run("verify", "m1-2", {})
        summary = Summary([make_result(1, ScaleStatus.VIOLATED), RangeResult.failed(2, 360, 720, "boom")])
        run.save_results(summary.to_dict(), summary=summary.headline())
        print_run_results(RunManager(tmp_path).get_latest_run())
        out = capsys.readouterr().out
        assert "Scale m=1 VIOLATED" in out
        assert "Scale m=2 FAILED: boom" in out


class TestReporting:
    """Tests for exit status and formatting helpers."""

    def test_exit_status(self):
        """Violations and failures are distinguished."""
        passed = Summary([make_result(1)])
        violated = Summary([make_result(1), make_result(2, ScaleStatus.VIOLATED)])
        failed = Summary([make_result(1), RangeResult.failed(2, 360, 720, "boom")])
        interrupted = Summary([make_result(1)], interrupted=True)
        assert exit_status(passed) == EXIT_PASSED
        assert exit_status(violated) == EXIT_VIOLATED
        assert exit_status(failed) == EXIT_FAILED
        assert exit_status(interrupted) == EXIT_INTERRUPTED
        interrupted_violation = Summary(
            [make_result(1), make_result(2, ScaleStatus.VIOLATED)], interrupted=True,
        )
        assert exit_status(interrupted_violation) == EXIT_VIOLATED
        assert exit_status(Summary()) == EXIT_FAILED

    def test_table(self):
        """The table shows each scale with its mode."""
        summary = Summary([
            make_result(1),
            make_result(2, exhaustive=False),
            RangeResult.failed(3, 720, 1080, "boom"),
        ])
        table = format_summary_table(summary)
        assert "exhaustive" in table
        assert "sampled" in table
        assert "failed" in table
        assert "1080" in table

    def test_describe_result(self):
        """Only scales that did not pass get an inline message."""
        assert describe_result(make_result(1)) is None
        assert "359" in describe_result(make_result(1, ScaleStatus.VIOLATED))
        assert "boom" in describe_result(RangeResult.failed(2, 360, 720, "boom"))
