"""
SubtypeConsensus classify command.

Loads raw subject records, runs the full pipeline and writes the consensus
table plus a JSON run summary.

Usage:
    subtypeconsensus classify --input cohort.csv --output results/cohort
    subtypeconsensus classify --input cohort.csv --output results/cohort \\
        --config run.yaml --seed 7 --on-collision raise
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from subtypeconsensus.config import PipelineConfig, load_config
from subtypeconsensus.core.errors import SubtypingError
from subtypeconsensus.io.loaders import load_subjects
from subtypeconsensus.io.writers import write_results
from subtypeconsensus.pipeline import MAJORITY_COLUMN, STRICT_COLUMN, SubtypingPipeline

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the classify subcommand."""
    parser = subparsers.add_parser(
        "classify",
        help="Assign consensus subtypes to a cohort",
        description=(
            "Normalize trait measurements, cluster with three algorithms,\n"
            "canonicalize cluster labels and vote on a consensus subtype."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output Files:
  {output}.consensus.csv   ID, normalized features, per-backend labels, consensus labels
  {output}.summary.json    QC counts, regression diagnostics, group labels and centroids, consensus counts

Config values are overridden by explicitly given command-line options.
        """
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        required=True,
        help="Subject table (CSV/TSV) with ID, age, BMI, traits and assay columns"
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        required=True,
        help="Output base path (without extension)"
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="YAML or JSON pipeline configuration"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the k-means and Gaussian mixture backends (default: 42)"
    )

    parser.add_argument(
        "--on-collision",
        choices=["priority", "raise"],
        default=None,
        help="Label collision policy (default: priority)"
    )

    parser.add_argument(
        "--delimiter",
        default=None,
        help="Input field separator (default: auto-detect)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )

    parser.set_defaults(func=run_classify)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Config file values, overridden by explicitly given CLI options."""
    data = load_config(args.config) if args.config else {}
    if args.seed is not None:
        data["seed"] = args.seed
    if args.on_collision is not None:
        data["on_collision"] = args.on_collision
    return PipelineConfig.from_dict(data)


def run_classify(args: argparse.Namespace) -> int:
    """Execute the classify command."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    start_time = datetime.now()

    print(f"\n{'='*80}")
    print("  Consensus Subtype Classification")
    print(f"{'='*80}")
    print(f"Started: {start_time.strftime('%Y-%m-%d %H:%M:%S')}\n")

    if not args.input.exists():
        print(f"ERROR: Input file not found: {args.input}", file=sys.stderr)
        return 1

    try:
        config = build_config(args)
        subjects = load_subjects(args.input, delimiter=args.delimiter)
        result = SubtypingPipeline(config).run(subjects)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except SubtypingError as e:
        print(f"ERROR: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    paths = write_results(result, args.output)

    summary = result.summary()
    print("\nData quality:")
    print(result.qc.summary())
    print("\nConsensus (majority):")
    for label, count in summary[MAJORITY_COLUMN].items():
        print(f"  {label:<15} {count:>6}")
    print("\nConsensus (strict):")
    for label, count in summary[STRICT_COLUMN].items():
        print(f"  {label:<15} {count:>6}")
    if result.collisions:
        print(f"\nLabel collisions (metabolic priority): {', '.join(result.collisions)}")

    duration = (datetime.now() - start_time).total_seconds()
    print(f"\nComplete! Duration: {duration:.1f}s")
    for kind, path in paths.items():
        print(f"  {kind}: {path}")

    return 0
