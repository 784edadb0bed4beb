"""
Turf replay tool.

Replays a recorded fix log through a tracking session and reports the run,
or unions stored territory rings.

    python main.py replay run.csv [--json summary.json] [--debug]
    python main.py unify territories.json [--json merged.json]
"""

import sys
import json
import logging
import argparse
from typing import List, Optional

import config
from turf_core.proto import Fix, RunSummary
from turf_core.localization import FixGateConfig, SignalConditionerConfig
from turf_core.domain import (
    PathTrackerConfig,
    TerritoryGeometryConfig,
    TerritoryGeometryEngine,
    TrackingSession,
    TrackingSessionConfig,
)
from turf_core.io import FixLogFormatError, load_fixes, load_rings, summary_to_dict
from turf_core.metrics import get_metrics

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)


def build_session_config(owner_id: Optional[str] = None) -> TrackingSessionConfig:
    """Session configuration from the dicts in config.py."""
    return TrackingSessionConfig(
        gate_config=FixGateConfig(**config.FIX_GATE_CONFIG),
        conditioner_config=SignalConditionerConfig(**config.CONDITIONER_CONFIG),
        tracker_config=PathTrackerConfig(**config.TRACKER_CONFIG),
        geometry_config=TerritoryGeometryConfig(**config.GEOMETRY_CONFIG),
        search_largest_loop=config.REPLAY_CONFIG["search_largest_loop"],
        owner_id=owner_id,
    )


class RunReplayer:
    """Feeds recorded fixes through one tracking session."""

    def __init__(self, owner_id: Optional[str] = None):
        self.session = TrackingSession(build_session_config(owner_id))
        self.fix_count = 0
        self.appended_count = 0

    def replay(self, fixes: List[Fix]) -> RunSummary:
        """
        Replay fixes in file order and finish the run.

        Args:
            fixes: Recorded raw fixes

        Returns:
            RunSummary of the replayed run
        """
        self.session.start()
        for fix in fixes:
            update = self.session.process_fix(fix)
            self.fix_count += 1
            if update.appended:
                self.appended_count += 1
        return self.session.finish()


def print_summary(summary: RunSummary):
    """Print human-readable run summary."""
    print("\n" + "=" * 60)
    print("  RUN SUMMARY")
    print("=" * 60)
    print(f"  Segments:        {len(summary.segments)}")
    print(f"  Points:          {len(summary.path)}")
    print(f"  Distance:        {summary.total_distance_m:.1f} m")
    print(f"  Closed loop:     {summary.is_closed_loop}")
    print(f"  Captured area:   {summary.captured_area_m2:.0f} m²")
    if summary.largest_loop is not None:
        print(f"  Largest loop:    {summary.largest_loop.area_m2():.0f} m² "
              f"({summary.largest_loop.vertex_count} points)")
    print("=" * 60)


def cmd_replay(args) -> int:
    try:
        fixes = load_fixes(args.file, fmt=args.format)
    except (OSError, FixLogFormatError) as e:
        logger.error(f"Cannot read fix log: {e}")
        return 1

    replayer = RunReplayer(owner_id=args.owner)
    summary = replayer.replay(fixes)
    logger.info(f"Replayed {replayer.fix_count} fixes, {replayer.appended_count} path points")

    print_summary(summary)
    if args.json:
        with open(args.json, 'w', encoding='utf-8') as fh:
            json.dump(summary_to_dict(summary), fh, indent=2)
        logger.info(f"Summary written to {args.json}")

    if config.REPLAY_CONFIG["print_metrics"]:
        get_metrics().print_summary()
    return 0


def cmd_unify(args) -> int:
    try:
        rings = load_rings(args.file)
    except (OSError, FixLogFormatError) as e:
        logger.error(f"Cannot read territories: {e}")
        return 1

    engine = TerritoryGeometryEngine(TerritoryGeometryConfig(**config.GEOMETRY_CONFIG))
    if isinstance(rings, dict):
        territory_set = engine.unify_territory_set(rings)
        result = territory_set.to_dict()
        for owner in territory_set.owners:
            print(f"{owner}: {len(territory_set.territories_for(owner))} territories, "
                  f"{territory_set.total_area_m2(owner):.0f} m²")
    else:
        merged = engine.unify_territories(rings)
        result = [[list(p) for p in ring] for ring in merged]
        print(f"{len(rings)} rings unified into {len(merged)} territories")

    if args.json:
        with open(args.json, 'w', encoding='utf-8') as fh:
            json.dump(result, fh, indent=2)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point."""
    parser = argparse.ArgumentParser(description='Turf run replay and territory tools')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    replay = subparsers.add_parser('replay', help='Replay a recorded fix log')
    replay.add_argument('file', help='CSV or JSON-lines fix log')
    replay.add_argument('--format', choices=['csv', 'jsonl'], default=None,
                        help='Log format (inferred from suffix by default)')
    replay.add_argument('--owner', default=None, help='Owner id for the territory')
    replay.add_argument('--json', default=None, help='Write summary JSON here')
    replay.set_defaults(func=cmd_replay)

    unify = subparsers.add_parser('unify', help='Union stored territory rings')
    unify.add_argument('file', help='JSON list of rings or owner -> rings mapping')
    unify.add_argument('--json', default=None, help='Write merged rings JSON here')
    unify.set_defaults(func=cmd_unify)

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
