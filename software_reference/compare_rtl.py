#!/usr/bin/env python3
"""
Utility to compare software reference against RTL implementation.

Runs the almanac through the software StageChain and through the Amaranth
simulation of LowestLocation, then reports whether both agree.
"""

import argparse
import sys
import time

from software_reference.almanac import (
    lowest_location,
    lowest_location_for_ranges,
    parse_input,
    read_input,
    seed_ranges,
)


# Simulation runs a few hundred cycles per seed; keep part 2 runs small
DEFAULT_MAX_SEEDS = 10_000


def run_software(chain, ranges, part):
    """Run software reference implementation."""
    start_time = time.time()
    if part == 1:
        result = lowest_location(chain, [start for start, _ in ranges])
    else:
        result = lowest_location_for_ranges(chain, ranges, workers=1)

    return {
        'result': result,
        'elapsed': time.time() - start_time,
    }


def run_rtl(chain, ranges, max_intervals, max_stages, vcd_file=None):
    """Run RTL implementation in the Amaranth simulator."""
    from amaranth_benchs.simulation import simulate_lowest_location

    start_time = time.time()
    stats = simulate_lowest_location(
        chain, ranges, max_intervals=max_intervals, max_stages=max_stages, vcd_file=vcd_file,
    )
    stats['elapsed'] = time.time() - start_time
    return stats


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Compare software reference against RTL implementation'
    )
    parser.add_argument('input_file', help='Almanac input file')
    parser.add_argument('--part', type=int, choices=(1, 2), default=1,
                        help='Puzzle part to compare (default: 1)')
    parser.add_argument('--max-seeds', type=int, default=DEFAULT_MAX_SEEDS,
                        help=f'Skip the RTL run above this many seeds (default: {DEFAULT_MAX_SEEDS})')
    parser.add_argument('--max-intervals', type=int, default=256, help='RTL interval BRAM depth')
    parser.add_argument('--max-stages', type=int, default=8, help='RTL stage table size')
    parser.add_argument('--vcd', help='Write RTL waveform to this file')
    args = parser.parse_args(argv)

    try:
        chain, seeds = parse_input(read_input(args.input_file))
        ranges = [(seed, 1) for seed in seeds] if args.part == 1 else seed_ranges(seeds)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    total_seeds = sum(length for _, length in ranges)

    print("=" * 70)
    print(f"RTL vs Software Reference Comparison - Part {args.part}")
    print("=" * 70)
    print()

    # Run software reference
    print("Running software reference...")
    sw_stats = run_software(chain, ranges, args.part)

    print(f"  Result: {sw_stats['result']}")
    print(f"  Time: {sw_stats['elapsed']:.3f}s")
    print(f"  Stages: {len(chain)}")
    print(f"  Intervals: {sum(len(stage) for stage in chain.stages)}")
    print(f"  Seeds: {total_seeds}")
    print()

    if total_seeds > args.max_seeds:
        print(f"  RTL run skipped ({total_seeds} seeds > --max-seeds {args.max_seeds})")
        print()
        return 0

    print("Running RTL simulation...")
    try:
        rtl_stats = run_rtl(chain, ranges, args.max_intervals, args.max_stages, args.vcd)
    except ValueError as e:
        print(f"  RTL run skipped ({e})")
        print()
        return 0

    print(f"  Result: {rtl_stats['result']}")
    print(f"  Time: {rtl_stats['elapsed']:.3f}s")
    print(f"  Cycles: {rtl_stats['cycles']}")
    print(f"  Projected: {rtl_stats['projected']}")
    print()

    # Compare results
    print("=" * 70)
    print("Comparison")
    print("=" * 70)

    if sw_stats['result'] != rtl_stats['result']:
        print("✗ Results differ:")
        print(f"    Software: {sw_stats['result']}")
        print(f"    RTL:      {rtl_stats['result']}")
        return 1

    print(f"✓ Results match: {sw_stats['result']}")
    if rtl_stats['projected']:
        print(f"  {rtl_stats['cycles'] / rtl_stats['projected']:.1f} cycles per seed")

    print()
    print("✓ All checks passed!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
