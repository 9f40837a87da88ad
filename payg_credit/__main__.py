#!/usr/bin/env python3
"""
CLI entry point for batch scoring.

Usage:
    # Score a CSV with the bundled reference model
    python -m payg_credit customers.csv

    # Score with a trained artifact and write results
    python -m payg_credit customers.csv --model artifacts/model.yaml --output scores.csv

    # Include per-feature impacts and a category summary
    python -m payg_credit customers.csv --explain --summary
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from .artifacts import REFERENCE_MODEL_PATH
from .config import ScoringConfig
from .errors import CreditScoringError
from .scorer import CreditScorer


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="python -m payg_credit",
        description="PAYG customer credit scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m payg_credit customers.csv
  python -m payg_credit customers.csv --model artifacts/model.yaml --output scores.csv
  python -m payg_credit customers.csv --explain --summary
        """,
    )

    parser.add_argument("input", help="CSV of raw customer records")
    parser.add_argument(
        "--model",
        default=str(REFERENCE_MODEL_PATH),
        help="Model artifact (.yaml or .joblib); default: bundled reference model",
    )
    parser.add_argument("--config", help="ScoringConfig YAML file")
    parser.add_argument("--output", help="Write scored CSV here instead of stdout")
    parser.add_argument(
        "--explain",
        action="store_true",
        help="Add per-feature impact columns",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print counts by location type and risk category",
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

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input not found: {input_path}", file=sys.stderr)
        return 1

    try:
        config = ScoringConfig.from_yaml(args.config) if args.config else None
        scorer = CreditScorer.from_path(args.model, config)
        df = pd.read_csv(input_path, dtype={"customer_id": str})
        result = scorer.score(df, explain=args.explain)
    except CreditScoringError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    columns = ["customer_id", "RISK_PROBABILITY", "RISK_CATEGORY", "RECOMMENDED_ACTION"]
    columns += result.impact_columns
    output = result.df[columns]

    if args.output:
        output.to_csv(args.output, index=False)
        print(f"Scored {len(output)} customers with model {result.model_version} -> {args.output}")
    else:
        print(output.to_string(index=False))

    if args.summary:
        print("\nRisk summary:\n")
        print(result.summary().to_string())

    return 0


if __name__ == "__main__":
    sys.exit(main())
