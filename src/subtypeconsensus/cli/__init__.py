"""
SubtypeConsensus CLI - Command-line interface for consensus subtyping.

Commands:
    subtypeconsensus classify   - Normalize, cluster and assign consensus subtypes
"""

import argparse
import sys
from typing import Optional, List

from subtypeconsensus import __version__


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for subtypeconsensus."""
    parser = argparse.ArgumentParser(
        prog="subtypeconsensus",
        description="Consensus subtype assignment from three clustering algorithms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  classify      Normalize traits, cluster three ways and vote on subtypes

Examples:
  subtypeconsensus classify --input cohort.csv --output results/cohort
  subtypeconsensus classify --input cohort.tsv --output results/cohort --config run.yaml --seed 7
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from subtypeconsensus.cli import classify
    classify.register_parser(subparsers)

    parsed_args = parser.parse_args(args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
