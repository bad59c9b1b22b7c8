#!/usr/bin/env python
"""
Command-line interface for the OSM relation resolver

Usage:
    python cli.py load north.json south.json --output report.json
    python cli.py anomalies extract.json --kind turn_restriction_bad
"""

import os
import sys
import json
import argparse
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from loguru import logger
from osm_resolver.config import LoaderConfig, FloorNumbering
from osm_resolver.osm.annotations import AnomalyKind
from osm_resolver.pipeline import OSMLoadPipeline


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def build_config(args) -> LoaderConfig:
    floor_numbering = FloorNumbering.LITERAL if args.literal_floors else FloorNumbering.US
    return LoaderConfig(floor_numbering=floor_numbering)


def cmd_load(args):
    """Load extracts and write the load report"""
    setup_logging(args.verbose)

    missing = [p for p in args.inputs if not os.path.exists(p)]
    if missing:
        logger.error(f"Input file not found: {', '.join(missing)}")
        return 1

    output_path = args.output or f"osm_load_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"

    pipeline = OSMLoadPipeline(build_config(args))

    try:
        report = pipeline.run(args.inputs)
    except Exception as e:
        logger.error(f"Failed to load OSM data: {e}")
        return 1

    pipeline.save(report, output_path)

    logger.info(f"✓ Generated: {output_path}")
    logger.info(f"  Ways: {report.counts.ways}, nodes: {report.counts.nodes}")
    logger.info(f"  Walkable areas: {report.counts.walkable_areas}, "
                f"park and ride areas: {report.counts.park_and_ride_areas}")
    logger.info(f"  Anomalies: {report.counts.anomalies}")

    if args.summary:
        print(json.dumps(report.counts.model_dump(), indent=2))

    return 0


def cmd_anomalies(args):
    """Load extracts and print anomalies as JSON lines"""
    setup_logging(args.verbose)

    pipeline = OSMLoadPipeline(build_config(args))
    try:
        report = pipeline.run(args.inputs)
    except Exception as e:
        logger.error(f"Failed to load OSM data: {e}")
        return 1

    kinds = {AnomalyKind(k) for k in args.kind} if args.kind else None
    for anomaly in report.anomalies:
        if kinds is None or anomaly.kind in kinds:
            print(anomaly.model_dump_json())

    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="OSM relation resolver CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Load two overlapping extracts:
    python cli.py load north.json south.json --output report.json

  List turn restriction problems:
    python cli.py anomalies extract.json --kind turn_restriction_bad
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("inputs", nargs="+", help="Overpass JSON extracts")
    common.add_argument("--literal-floors", action="store_true",
                        help="Use level/layer values as-is instead of US floor numbering")

    load_parser = subparsers.add_parser("load", parents=[common], help="Load extracts and write a report")
    load_parser.add_argument("--output", "-o", help="Output JSON file")
    load_parser.add_argument("--summary", "-s", action="store_true", help="Print counts to stdout")
    load_parser.set_defaults(func=cmd_load)

    anomalies_parser = subparsers.add_parser("anomalies", parents=[common], help="Print load anomalies")
    anomalies_parser.add_argument("--kind", action="append", choices=[k.value for k in AnomalyKind],
                                  help="Only show this anomaly kind (repeatable)")
    anomalies_parser.set_defaults(func=cmd_anomalies)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
