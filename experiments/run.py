#!/usr/bin/env python3
"""
CLI entry point for experiment pipeline.

Usage:
    # Run single experiment
    python -m experiments.run configs/baseline.yaml

    # Run multiple experiments
    python -m experiments.run configs/baseline.yaml configs/strong_l2.yaml

    # List all experiments
    python -m experiments.run --list

    # Compare experiments
    python -m experiments.run --compare
"""

import argparse
import logging
import sys
from pathlib import Path

from .runner import ExperimentRunner


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="PAYG credit model experiment pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m experiments.run configs/baseline.yaml
  python -m experiments.run configs/baseline.yaml configs/strong_l2.yaml
  python -m experiments.run --list
  python -m experiments.run --compare
        """,
    )

    parser.add_argument(
        "configs",
        nargs="*",
        help="Path(s) to YAML config file(s)",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List all past experiments",
    )
    parser.add_argument(
        "--compare",
        action="store_true",
        help="Compare all experiments (sorted by test AUC)",
    )
    parser.add_argument(
        "--stop-on-failure",
        action="store_true",
        help="Stop batch run if any experiment errors",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    runner = ExperimentRunner()

    # List experiments
    if args.list:
        df = runner.list_experiments()
        if df.empty:
            print("No experiments found.")
        else:
            print(df.to_string(index=False))
        return 0

    # Compare experiments
    if args.compare:
        df = runner.list_experiments()
        if df.empty:
            print("No experiments found.")
        else:
            if "auc_roc" in df.columns:
                df = df.sort_values("auc_roc", ascending=False)
            print("\nExperiment Comparison (sorted by test AUC):\n")
            print(df.to_string(index=False))
        return 0

    # Run experiments
    if not args.configs:
        parser.print_help()
        return 1

    # Resolve config paths relative to experiments/ directory
    experiments_dir = Path(__file__).parent

    results = []
    for config_path in args.configs:
        path = Path(config_path)

        if not path.is_absolute() and (experiments_dir / path).exists():
            path = experiments_dir / path

        if not path.exists():
            print(f"Config not found: {config_path}")
            if args.stop_on_failure:
                return 1
            continue

        try:
            print(f"\n{'=' * 60}")
            print(f"Running: {path.name}")
            print("=" * 60)

            result = runner.run_from_yaml(path.resolve())
            results.append(result)

            print(result.summary())

            if result.passed:
                print(f"\nArtifacts saved to: {result.artifact_path}")

        except Exception as e:
            print(f"ERROR: {e}")
            if args.stop_on_failure:
                return 1

    # Summary
    if len(results) > 1:
        print(f"\n{'=' * 60}")
        print("BATCH SUMMARY")
        print("=" * 60)
        passed = sum(1 for r in results if r.passed)
        print(f"Total: {len(results)}, Passed: {passed}, Failed: {len(results) - passed}")

        print("\nResults:")
        for r in results:
            status = "PASS" if r.passed else "FAIL"
            auc = r.metrics.get("test_auc_roc", 0)
            print(f"  [{status}] {r.config.name}: AUC {auc:.3f}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
