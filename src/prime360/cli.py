"""Command-line interface for prime360."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

import psutil

from prime360.config import (
    DEFAULT_MEMORY_LIMIT,
    SAMPLING_MODES,
    TOLERANCE,
    VerifierConfig,
)
from prime360.errors import InvalidParameters
from prime360.utils.logs import setup_logger
from prime360.utils.run_manager import Run, RunManager
from prime360.verification.driver import ScaleDriver
from prime360.verification.progress import ProgressTracker
from prime360.verification.results import RangeResult, ScaleStatus, Summary

EXIT_PASSED = 0
EXIT_VIOLATED = 1
EXIT_INVALID = 2
EXIT_FAILED = 3
EXIT_INTERRUPTED = 130


def default_workers() -> int:
    """Physical core count, falling back to logical cores."""
    return max(1, psutil.cpu_count(logical=False) or psutil.cpu_count() or 1)


def exit_status(summary: Summary) -> int:
    """Map a summary to the process exit status.

    A violation found before an interrupt still reports as a violation.
    """
    if summary.violations:
        return EXIT_VIOLATED
    if summary.interrupted:
        return EXIT_INTERRUPTED
    if summary.failures or not summary.passed:
        return EXIT_FAILED
    return EXIT_PASSED


def format_summary_table(summary: Summary) -> str:
    """Render the per-scale table printed at the end of a run."""
    lines = [
        f"{'Scale':>8} {'Range end':>14} {'Primes':>8} {'Checked':>8} "
        f"{'Success':>8} {'Max dist':>9} {'Mode':<11}",
        "-" * 72,
    ]
    for r in summary.results:
        max_dist = "-" if r.status is ScaleStatus.FAILED else str(r.max_distance)
        lines.append(
            f"{r.m:>8} {r.range_end:>14} {r.prime_count:>8} {r.checked_count:>8} "
            f"{r.success_rate * 100:>7.1f}% {max_dist:>9} {r.mode:<11}"
        )
    return "\n".join(lines)


def describe_result(r: RangeResult) -> Optional[str]:
    """Inline message for scales that did not pass."""
    if r.status is ScaleStatus.FAILED:
        return f"  Scale m={r.m} FAILED: {r.error}"
    if r.status is ScaleStatus.VIOLATED:
        missed = ", ".join(str(p) for p in r.missed_primes)
        return (
            f"  Scale m={r.m}: {r.checked_count - r.success_count} of {r.checked_count} "
            f"primes in ({r.range_start}, {r.range_end}] beyond {TOLERANCE} "
            f"(max distance {r.max_distance}); missed: {missed}"
        )
    return None


def print_runs(runs: Sequence[Run]):
    """Print stored runs, most recent first."""
    if not runs:
        print("No runs found")
        return

    print(f"{'Run ID':<55} {'Type':<8} {'Status':<12}")
    print("-" * 80)
    for run in runs:
        print(f"{run.metadata.run_id:<55} {run.metadata.run_type:<8} {run.metadata.status:<12}")
        summary = run.metadata.summary
        if summary:
            print(f"  -> scales={summary.get('scales')} primes={summary.get('total_primes')} "
                  f"max_distance={summary.get('max_distance')}")
    print()
    print(f"Total: {len(runs)} runs shown")


def print_run_results(run: Optional[Run]):
    """Print the stored summary of one run and the scales that did not pass."""
    if run is None:
        print("No runs found")
        return

    results = run.load_results()
    print(f"Run {run.metadata.run_id} ({run.metadata.status})")
    if results is None:
        print("  No results recorded")
        return

    for key, value in results.get('summary', {}).items():
        print(f"  {key}: {value}")
    for r in results.get('results', []):
        if r['status'] == ScaleStatus.FAILED.value:
            print(f"  Scale m={r['m']} FAILED: {r['error']}")
        elif r['status'] == ScaleStatus.VIOLATED.value:
            print(f"  Scale m={r['m']} VIOLATED: max distance {r['max_distance']}, "
                  f"missed {r['missed_primes']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prime360",
        description=(
            "Check that every prime in ((m-1)*360, m*360] lies within "
            f"{TOLERANCE} of a divisor of m*360 or of the recursive sequence "
            "seeded at (m-1)*360+181."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("max_m", nargs="?", type=int, default=10, help="Last scale (default: 10)")
    parser.add_argument("min_m", nargs="?", type=int, default=1, help="First scale (default: 1)")
    parser.add_argument("max_primes_per_range", nargs="?", type=int, default=100_000,
                        help="Primes evaluated per scale before sampling (default: 100000)")
    parser.add_argument("--workers", type=int, default=1,
                        help="Worker processes; 0 uses the physical core count (default: 1)")
    parser.add_argument("--batch-size", type=int, default=10_000,
                        help="Items per unit of work (default: 10000)")
    parser.add_argument("--chunk-size", type=int, default=10,
                        help="Scales dispatched together (default: 10)")
    parser.add_argument("--memory-limit-mb", type=int, default=DEFAULT_MEMORY_LIMIT // (1024 * 1024),
                        help="Memory ceiling for exact sieving in MiB (default: 256)")
    parser.add_argument("--sampling", choices=SAMPLING_MODES, default="random",
                        help="How oversized ranges are sampled (default: random)")
    parser.add_argument("--seed", type=int, default=0, help="Sampling seed (default: 0)")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("--save-run", action="store_true", help="Record the run under --output-dir")
    parser.add_argument("--output-dir", default="output", help="Base directory for run records")
    parser.add_argument("--log-file", default=None, help="Write a detailed log to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress details")
    parser.add_argument("--list-runs", action="store_true", help="List recorded runs and exit")
    parser.add_argument("--show-latest", action="store_true",
                        help="Print the results of the most recent recorded run and exit")
    return parser


def config_from_args(args: argparse.Namespace) -> VerifierConfig:
    """Build and validate the run configuration."""
    if args.workers < 0:
        raise InvalidParameters(f"workers must be >= 0, got {args.workers}")
    if args.memory_limit_mb < 1:
        raise InvalidParameters(f"memory limit must be >= 1 MiB, got {args.memory_limit_mb}")
    config = VerifierConfig(
        max_m=args.max_m,
        min_m=args.min_m,
        max_primes_per_range=args.max_primes_per_range,
        workers=args.workers or default_workers(),
        batch_size=args.batch_size,
        memory_limit=args.memory_limit_mb * 1024 * 1024,
        sampling=args.sampling,
        seed=args.seed,
        scale_chunk_size=args.chunk_size,
    )
    return config.validate()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_runs:
        print_runs(RunManager(args.output_dir).list_runs())
        return EXIT_PASSED

    if args.show_latest:
        print_run_results(RunManager(args.output_dir).get_latest_run())
        return EXIT_PASSED

    try:
        config = config_from_args(args)
    except InvalidParameters as e:
        print(f"Invalid parameters: {e}", file=sys.stderr)
        return EXIT_INVALID

    run = None
    log_file = Path(args.log_file) if args.log_file else None
    if args.save_run:
        run = RunManager(args.output_dir).create_run(
            "verify", f"m{config.min_m}-{config.max_m}", config.to_dict()
        )
        log_file = log_file or run.log_path
    setup_logger(log_file, verbose=args.verbose)

    print(f"Starting prime pattern check from scale m={config.min_m} to m={config.max_m}")
    print(f"Using tolerance = {TOLERANCE}")
    print(f"Maximum primes to check per range: {config.max_primes_per_range:,}")
    print(f"Workers: {config.workers}")

    start = time.perf_counter()
    with ProgressTracker(total_scales=config.scale_count, show=not args.no_progress) as tracker:
        def report(result: RangeResult):
            message = describe_result(result)
            if message:
                tracker.write(message)

        summary = ScaleDriver(config, tracker=tracker).run(on_result=report)
        snapshot = tracker.snapshot()
    elapsed = time.perf_counter() - start

    print()
    print(format_summary_table(summary))
    print()
    print(f"Scales completed: {snapshot.scales_completed}/{config.scale_count}")
    print(f"Primes checked: {snapshot.primes_checked:,} of {summary.total_primes:,} found")
    print(f"Max distance: {summary.max_distance}")
    if summary.sampled:
        print(f"Sampled scales (weaker evidence): {len(summary.sampled)}")
    print(f"Total execution time: {elapsed:.2f}s")

    status = exit_status(summary)
    verdict = {
        EXIT_PASSED: "PASSED",
        EXIT_VIOLATED: "VIOLATED",
        EXIT_FAILED: "FAILED",
        EXIT_INTERRUPTED: "INTERRUPTED",
    }[status]
    print(f"Result: {verdict}")

    if run is not None:
        run.save_results(summary.to_dict(), summary=summary.headline())
        run.complete(status=verdict.lower())
        print(f"Run saved to {run.run_dir}")

    return status


if __name__ == "__main__":
    sys.exit(main())
