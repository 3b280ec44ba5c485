"""
LowestLocation RTL testbench.

Runs the complete hardware pipeline (range enumerator + StageProjector +
running minimum) and compares part one and part two answers with the
software reference.
"""

import os
import sys

import pytest
from hypothesis import given, settings, strategies as st

from amaranth_benchs.simulation import simulate_lowest_location
from software_reference.almanac import (
    lowest_location,
    lowest_location_for_ranges,
    parse_input,
    read_input,
    seed_ranges,
)
from software_reference import compare_rtl
from software_reference.stage_chain import StageChain


EXAMPLE_INPUT = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                             "..", "testcases", "example_input.txt")


def test_part_one_example():
    chain, seeds = parse_input(read_input(EXAMPLE_INPUT))

    stats = simulate_lowest_location(chain, [(seed, 1) for seed in seeds])

    assert stats['result'] == lowest_location(chain, seeds) == 35
    assert stats['projected'] == len(seeds)


def test_part_two_example():
    chain, seeds = parse_input(read_input(EXAMPLE_INPUT))
    ranges = seed_ranges(seeds)

    stats = simulate_lowest_location(chain, ranges)

    assert stats['result'] == lowest_location_for_ranges(chain, ranges, workers=1) == 46
    assert stats['projected'] == 14 + 13


def test_zero_length_ranges_are_skipped():
    chain = StageChain().add_map(["1 5 3"])

    stats = simulate_lowest_location(chain, [(6, 0), (5, 2), (100, 0)])

    assert stats['result'] == 1
    assert stats['projected'] == 2


def test_no_values_reports_nothing():
    chain = StageChain().add_map(["1 5 3"])

    assert simulate_lowest_location(chain, [])['result'] is None
    assert simulate_lowest_location(chain, [(5, 0)])['result'] is None


def test_minimum_carries_across_ranges():
    chain = StageChain().add_map(["0 10 1"])

    # Only 10 maps below its own value, and it sits in the last range
    assert simulate_lowest_location(chain, [(20, 3), (9, 3)])['result'] == 0
    assert simulate_lowest_location(chain, [(9, 3), (20, 3)])['result'] == 0
    assert simulate_lowest_location(chain, [(20, 3), (11, 2)])['result'] == 11


@given(
    st.lists(
        st.tuples(st.integers(min_value=0, max_value=120), st.integers(min_value=0, max_value=6)),
        min_size=1,
        max_size=4,
    )
)
@settings(max_examples=15, deadline=None)
def test_random_ranges_match_software(ranges):
    """Property: hardware minimum equals the software minimum over the same ranges."""
    chain, _ = parse_input(read_input(EXAMPLE_INPUT))

    stats = simulate_lowest_location(chain, ranges)

    assert stats['result'] == lowest_location_for_ranges(chain, ranges, workers=1)
    assert stats['projected'] == sum(length for _, length in ranges)


@pytest.mark.parametrize("part", [1, 2])
def test_compare_rtl_example(part, capsys):
    assert compare_rtl.main([EXAMPLE_INPUT, "--part", str(part)]) == 0

    out = capsys.readouterr().out
    assert f"Results match: {35 if part == 1 else 46}" in out


def test_compare_rtl_skips_large_inputs(capsys):
    assert compare_rtl.main([EXAMPLE_INPUT, "--part", "2", "--max-seeds", "10"]) == 0

    out = capsys.readouterr().out
    assert "RTL run skipped" in out
    assert "Running RTL simulation" not in out
    assert "Results match" not in out


def test_compare_rtl_skips_oversized_chains(capsys):
    assert compare_rtl.main([EXAMPLE_INPUT, "--max-stages", "4"]) == 0

    assert "RTL run skipped (7 stages exceed max_stages=4)" in capsys.readouterr().out


if __name__ == "__main__":
    print("=" * 80)
    print("Amaranth HDL LowestLocation Verification Suite")
    print("=" * 80)

    sys.exit(pytest.main([__file__, "-v", "--tb=short"]))
