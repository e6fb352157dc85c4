#!/usr/bin/env python
"""List and manage verification runs.

Usage:
    python list_runs.py                    # List recent runs
    python list_runs.py --limit 50         # Show more runs
    python list_runs.py --latest           # Show the latest run's results
    python list_runs.py --cleanup --keep 5 # Clean old runs (dry-run)
    python list_runs.py --cleanup --keep 5 --force  # Actually delete
"""

import argparse

from prime360.cli import print_run_results, print_runs
from prime360.utils.run_manager import RunManager


def main():
    parser = argparse.ArgumentParser(description="List and manage verification runs")
    parser.add_argument("--output-dir", default="output", help="Base output directory")
    parser.add_argument("--type", type=str, help="Filter by run type")
    parser.add_argument("--limit", type=int, default=20, help="Maximum runs to show (default: 20)")
    parser.add_argument("--cleanup", action="store_true", help="Clean up old runs")
    parser.add_argument("--keep", type=int, default=10,
                        help="Number of runs to keep when cleaning (default: 10)")
    parser.add_argument("--force", action="store_true", help="Actually delete (default is dry-run)")
    parser.add_argument("--latest", action="store_true", help="Show results of the most recent run")

    args = parser.parse_args()

    manager = RunManager(args.output_dir)

    if args.cleanup:
        print(f"Cleaning up runs, keeping {args.keep} most recent...")
        deleted = manager.cleanup_old_runs(keep_count=args.keep, dry_run=not args.force)
        if deleted:
            action = "Deleted" if args.force else "Would delete"
            print(f"{action} {len(deleted)} runs:")
            for run_id in deleted:
                print(f"  - {run_id}")
        else:
            print("No runs to clean up")
        return

    if args.latest:
        print_run_results(manager.get_latest_run(run_type=args.type))
        return

    print_runs(manager.list_runs(run_type=args.type, limit=args.limit))


if __name__ == "__main__":
    main()
