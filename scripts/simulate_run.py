#!/usr/bin/env python3
"""
Synthetic run verification script.

Generates a jittered city-block run, injects receiver glitches, replays it
through a tracking session and checks:
- Glitches are gated or rejected
- The run is detected as a closed loop
- Captured area is close to the block's nominal area
- Two overlapping block territories merge into one claim
"""

import sys
import os
from typing import List

import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from main import build_session_config
from turf_core.proto import Fix, TerritoryPolygon
from turf_core.localization import offset
from turf_core.domain import (
    TrackingSession,
    TerritoryGeometryEngine,
    block_area,
    claim_territory,
    densify,
    fixes_along,
    generate_block_path,
)
from turf_core.metrics import get_metrics


def print_header(title: str):
    """Print formatted section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def print_status(check: str, passed: bool, details: str = ""):
    """Print check status with formatting."""
    status = "✓ PASS" if passed else "✗ FAIL"
    color = "\033[92m" if passed else "\033[91m"
    reset = "\033[0m"

    print(f"{color}{status}{reset} {check}")
    if details:
        print(f"       {details}")


def build_fixes(rng: np.random.Generator) -> List[Fix]:
    """Block run with a null-island fix and a teleport glitch mixed in."""
    center = config.REPLAY_CONFIG["simulation_center"]
    size_m = config.REPLAY_CONFIG["simulation_block_size_m"]

    path = generate_block_path(center, size_m, rng=rng)
    path = densify(path, config.REPLAY_CONFIG["simulation_spacing_m"])
    fixes = fixes_along(path, interval_ms=config.REPLAY_CONFIG["simulation_interval_ms"])

    glitch_at = len(fixes) // 3
    base = fixes[glitch_at]
    far = offset(base.position, 400.0, 0.0)
    glitches = [
        Fix(0.0, 0.0, 5.0, base.timestamp_millis + 500),
        Fix(far[0], far[1], 5.0, base.timestamp_millis + 1000),
    ]
    return fixes[:glitch_at + 1] + glitches + fixes[glitch_at + 1:]


def verify_session_run(rng: np.random.Generator) -> bool:
    print_header("Tracking Session Replay")

    size_m = config.REPLAY_CONFIG["simulation_block_size_m"]
    session = TrackingSession(build_session_config(owner_id="sim"))
    session.start()
    for fix in build_fixes(rng):
        session.process_fix(fix)
    summary = session.finish()

    metrics = get_metrics()
    gated = metrics.get_drop_count('null_island') + metrics.get_drop_count('teleport_jump')
    print_status("Glitches gated", gated == 2, f"{gated} gated")

    print_status("Closed loop detected", summary.is_closed_loop,
                 f"{len(summary.path)} points, {summary.total_distance_m:.0f}m")

    expected = block_area(size_m)
    ratio = summary.captured_area_m2 / expected
    area_ok = 0.75 <= ratio <= 1.1
    print_status("Captured area near nominal", area_ok,
                 f"{summary.captured_area_m2:.0f}m² vs {expected:.0f}m² ({ratio:.2f})")

    return gated == 2 and summary.is_closed_loop and area_ok


def verify_claim_merge(rng: np.random.Generator) -> bool:
    print_header("Territory Claim Merge")

    center = config.REPLAY_CONFIG["simulation_center"]
    size_m = config.REPLAY_CONFIG["simulation_block_size_m"]
    engine = TerritoryGeometryEngine()

    first = TerritoryPolygon(ring=generate_block_path(center, size_m, rng=rng), owner_id="sim")
    shifted = offset(center, 0.0, size_m)
    second = generate_block_path(shifted, size_m, rng=rng)

    result = claim_territory([first], second, engine=engine, owner_id="sim")
    merged_area = result.territories[0].area_m2()
    grew = merged_area > first.area_m2()

    print_status("Overlapping claim merged", result.was_merged and len(result.territories) == 1,
                 f"{len(result.territories)} territories")
    print_status("Merged territory grew", grew,
                 f"{first.area_m2():.0f}m² -> {merged_area:.0f}m²")
    return result.was_merged and grew


def main():
    print("=" * 70)
    print("  Turf Synthetic Run Verification")
    print("=" * 70)

    rng = np.random.default_rng(config.REPLAY_CONFIG["simulation_seed"])
    results = {
        'session_run': verify_session_run(rng),
        'claim_merge': verify_claim_merge(rng),
    }

    print_header("Verification Summary")
    for check, result in results.items():
        print_status(check.replace('_', ' ').title(), result)

    passed = sum(results.values())
    print(f"\nResult: {passed}/{len(results)} checks passed")
    return 0 if passed == len(results) else 1


if __name__ == "__main__":
    sys.exit(main())
