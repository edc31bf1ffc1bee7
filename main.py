#!/usr/bin/env python3
"""Portfolio Insights - Debt payoff plans and portfolio health insights."""

import argparse
import json
import logging
import sqlite3
import sys
from pathlib import Path
from portfolio_insights.database.models import init_database
from portfolio_insights.database.operations import SqliteSnapshotSource
from portfolio_insights.database.json_store import JsonSnapshotSource
from portfolio_insights.services.insights_engine import generate_report_from_source
from portfolio_insights.services.validation import InvalidSnapshotError
from portfolio_insights.utils.config import Config
from portfolio_insights.utils.export import ReportExporter, report_to_dict

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--config', type=Path, help="Path to config.json")
    parser.add_argument('--store', choices=['sqlite', 'json'], help="Storage backend")
    parser.add_argument('--path', type=Path, help="Database or JSON document path")
    parser.add_argument('--age', type=int, help="Age for age-based insights")

    commands = parser.add_subparsers(dest='command', required=True)
    commands.add_parser('report', help="Print the insights report as JSON")
    export = commands.add_parser('export', help="Write the report to .xlsx or .json")
    export.add_argument('output', type=Path)
    commands.add_parser('init-db', help="Create the sqlite schema")
    return parser


def open_source(store: str, path: Path):
    """Return the snapshot source for the configured backend."""
    if store == 'json':
        return JsonSnapshotSource(path)
    return SqliteSnapshotSource(path)


def main(argv=None):
    """Run the Portfolio Insights command line."""
    args = build_parser().parse_args(argv)
    config = Config(args.config)

    logging.basicConfig(
        level=config.get('log_level', 'WARNING'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    store = args.store or config.get('store')
    path = args.path or config.store_path(store)
    age = args.age if args.age is not None else config.get('age')

    if args.command == 'init-db':
        init_database(path)
        print(f"Initialized database at {path}")
        return 0

    try:
        report = generate_report_from_source(open_source(store, path), age=age)
    except InvalidSnapshotError as e:
        logger.error("Invalid portfolio data: %s", e)
        return 1
    except FileNotFoundError as e:
        logger.error("Portfolio store not found: %s", e)
        return 1
    except sqlite3.Error as e:
        logger.error("Could not read database %s: %s", path, e)
        return 1

    if args.command == 'export':
        ReportExporter().export(str(args.output), report, config.export_format_for(args.output))
        print(f"Exported report to {args.output}")
    else:
        print(json.dumps(report_to_dict(report), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
