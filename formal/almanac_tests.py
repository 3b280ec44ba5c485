"""
Tests for the almanac driver: input parsing, part one, and the parallel
part two reduction.
"""

import os

import pytest
from hypothesis import given, strategies as st, settings
from hypothesis.strategies import integers, lists, tuples

from software_reference import almanac
from software_reference.almanac import (
    lowest_location,
    lowest_location_for_ranges,
    lowest_location_in_range,
    parse_input,
    read_input,
    seed_ranges,
    split_range,
)
from software_reference.stage_chain import ParseError, StageChain


EXAMPLE_INPUT = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                             "..", "testcases", "example_input.txt")


@pytest.fixture(scope="module")
def example():
    return parse_input(read_input(EXAMPLE_INPUT))


def test_read_input_skips_blank_lines(tmp_path):
    path = tmp_path / "input.txt"
    path.write_text("seeds: 1 2\n\n  a map:  \n0 1 1\n\n")

    assert read_input(path) == ["seeds: 1 2", "a map:", "0 1 1"]


def test_parse_example(example):
    chain, seeds = example

    assert seeds == [79, 14, 55, 13]
    assert len(chain) == 7
    assert [len(stage) for stage in chain.stages] == [2, 3, 4, 2, 3, 2, 2]


def test_example_locations(example):
    chain, seeds = example

    assert [chain.project(seed) for seed in seeds] == [82, 43, 86, 35]


def test_part_one_example(example):
    chain, seeds = example

    assert lowest_location(chain, seeds) == 35


def test_part_two_example(example):
    chain, seeds = example

    assert lowest_location_for_ranges(chain, seed_ranges(seeds), workers=1) == 46


def test_part_two_example_with_pool(example):
    chain, seeds = example

    assert lowest_location_for_ranges(chain, seed_ranges(seeds), workers=2, chunk_size=4) == 46


def test_parse_input_headers_without_lines():
    lines = ["seeds: 1 2", "a-to-b map:", "b-to-c map:", "10 0 5", "c-to-d map:"]

    chain, seeds = parse_input(lines)

    # Only the non-empty block makes a stage; the trailing header adds an empty one
    assert seeds == [1, 2]
    assert len(chain) == 2
    assert chain.project(1) == 11


def test_parse_input_without_maps():
    chain, seeds = parse_input(["seeds: 5 6"])

    assert seeds == [5, 6]
    assert lowest_location(chain, seeds) == 5


def test_parse_input_errors():
    with pytest.raises(ParseError):
        parse_input([])
    with pytest.raises(ParseError):
        parse_input(["seeds: 1 two"])
    with pytest.raises(ParseError):
        parse_input(["seeds: 1 2", "a map:", "1 2"])


def test_lowest_location_without_seeds():
    assert lowest_location(StageChain(), []) is None


def test_seed_ranges():
    assert seed_ranges([79, 14, 55, 13]) == [(79, 14), (55, 13)]
    assert seed_ranges([]) == []


def test_seed_ranges_odd_length():
    with pytest.raises(ParseError):
        seed_ranges([79, 14, 55])


def test_split_range():
    assert split_range(10, 7, 3) == [(10, 3), (13, 3), (16, 1)]
    assert split_range(10, 6, 3) == [(10, 3), (13, 3)]
    assert split_range(10, 0, 3) == []

    with pytest.raises(ValueError):
        split_range(0, 1, 0)


def test_lowest_location_in_range():
    chain = StageChain().add_map(["0 10 1"])

    assert lowest_location_in_range(chain, 8, 5) == 0
    assert lowest_location_in_range(chain, 11, 5) == 11
    assert lowest_location_in_range(chain, 8, 0) is None


def test_empty_ranges_give_none():
    chain = StageChain()

    assert lowest_location_for_ranges(chain, [], workers=1) is None
    assert lowest_location_for_ranges(chain, [(5, 0)], workers=1) is None


@given(
    lists(tuples(integers(min_value=0, max_value=500), integers(min_value=0, max_value=60)),
          max_size=5),
    integers(min_value=1, max_value=50),
)
@settings(max_examples=100)
def test_partition_invariance(ranges, chunk_size):
    """
    Property: the range minimum does not depend on how ranges are chunked,
    and equals a plain sequential scan.
    """
    chain = StageChain().add_map(["0 100 20", "300 0 50"]).add_map(["7 300 10"])

    expected = min((chain.project(v) for start, length in ranges
                    for v in range(start, start + length)), default=None)

    assert lowest_location_for_ranges(chain, ranges, workers=1, chunk_size=chunk_size) == expected


def test_parallel_equals_sequential(example):
    chain, _ = example
    ranges = [(0, 100), (40, 30), (90, 5)]

    sequential = lowest_location_for_ranges(chain, ranges, workers=1)
    parallel = lowest_location_for_ranges(chain, ranges, workers=3, chunk_size=7)

    assert parallel == sequential


def test_verbose_progress(example, capsys):
    chain, seeds = example

    lowest_location_for_ranges(chain, seed_ranges(seeds), workers=1, chunk_size=5, verbose=True)

    err = capsys.readouterr().err
    # 14 seeds -> 3 chunks, 13 seeds -> 3 chunks
    assert err.count("best") == 6
    assert "[6/6]" in err


def test_main_both_parts(capsys):
    assert almanac.main([EXAMPLE_INPUT, "--workers", "1"]) == 0

    out = capsys.readouterr().out
    assert "part 1: 35" in out
    assert "part 2: 46" in out


def test_main_single_part(capsys):
    assert almanac.main([EXAMPLE_INPUT, "--part", "2", "--workers", "1", "--chunk-size", "3"]) == 0

    assert capsys.readouterr().out.strip() == "part 2: 46"


def test_main_reports_errors(tmp_path, capsys):
    path = tmp_path / "bad.txt"
    path.write_text("seeds: 1 2 3\n")

    # Part 1 works, part 2 needs seed pairs
    assert almanac.main([str(path)]) == 1

    captured = capsys.readouterr()
    assert "part 1: 1" in captured.out
    assert "error:" in captured.err
    assert almanac.main([str(tmp_path / "missing.txt")]) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
