"""
Property-based tests for the seed projection engine using Hypothesis.

This module verifies the interval store and the stage chain by testing
invariant properties that must hold for all valid almanacs.
"""

import pytest
from hypothesis import given, strategies as st, settings
from hypothesis.strategies import integers, lists

from software_reference.interval_store import Interval, IntervalStore, IntervalStoreBuilder
from software_reference.stage_chain import ParseError, StageChain


# Strategy for generating one stage: disjoint (dst, src, length) entries in random order
@st.composite
def stage_entries(draw, max_intervals=8):
    """Generate map entries whose source blocks never overlap."""
    count = draw(integers(min_value=0, max_value=max_intervals))
    entries = []
    src = draw(integers(min_value=0, max_value=1000))
    for _ in range(count):
        length = draw(integers(min_value=1, max_value=1000))
        dst = draw(integers(min_value=0, max_value=10**6))
        entries.append((dst, src, length))
        src += length + draw(integers(min_value=0, max_value=100))
    return draw(st.permutations(entries))


chains_strategy = lists(stage_entries(), min_size=0, max_size=6)
values_strategy = integers(min_value=0, max_value=20000)


def map_lines(entries):
    """Format (dst, src, length) entries as map lines."""
    return [f"{dst} {src} {length}" for dst, src, length in entries]


def build_chain(stages):
    chain = StageChain()
    for entries in stages:
        chain.add_map(map_lines(entries))
    return chain


def covering_entries(entries, value):
    """All entries whose source block contains value (brute force)."""
    return [(dst, src, length) for dst, src, length in entries if src <= value < src + length]


# Property 1: Uncovered values pass through a stage unchanged
@given(stage_entries(), values_strategy)
def test_identity_law(entries, value):
    """
    Property: if no interval covers value, the stage leaves it unchanged.
    """
    if covering_entries(entries, value):
        return

    chain = build_chain([entries])
    assert chain.project(value) == value


# Property 2: Covered values keep their offset within the interval
@given(stage_entries().filter(bool), st.data())
def test_interval_law(entries, data):
    """
    Property: for (s, e, d) and s <= v <= e, one stage maps v to d + (v - s).
    """
    dst, src, length = data.draw(st.sampled_from(entries))
    value = data.draw(integers(min_value=src, max_value=src + length - 1))

    chain = build_chain([entries])
    assert chain.project(value) == dst + (value - src)


# Property 3: Single match per value
@given(stage_entries(), values_strategy)
def test_single_match(entries, value):
    """
    Property: find_interval agrees with a linear scan, which finds at most one interval.
    """
    matches = covering_entries(entries, value)
    assert len(matches) <= 1

    store = StageChain().add_map(map_lines(entries)).stages[0]
    found = store.find_interval(value)

    if matches:
        dst, src, length = matches[0]
        assert found == Interval(src, src + length - 1, dst)
    else:
        assert found is None


# Property 4: Finalized stores are sorted by source start
@given(stage_entries())
def test_finalized_store_is_sorted(entries):
    store = StageChain().add_map(map_lines(entries)).stages[0]
    starts = [interval.src_start for interval in store]

    assert starts == sorted(starts)
    assert len(store) == len(entries)


# Property 5: Chain composition, left to right
@given(chains_strategy, values_strategy)
@settings(max_examples=200)
def test_chain_composition(stages, value):
    """
    Property: projecting through [A, B, C] equals projecting through A, then B, then C.
    """
    chain = build_chain(stages)

    running = value
    for entries in stages:
        running = build_chain([entries]).project(running)

    assert chain.project(value) == running


# Property 6: Splitting a chain anywhere composes back to the whole chain
@given(chains_strategy, values_strategy, st.data())
def test_chain_split_composition(stages, value, data):
    cut = data.draw(integers(min_value=0, max_value=len(stages)))
    head, tail = build_chain(stages[:cut]), build_chain(stages[cut:])

    assert build_chain(stages).project(value) == tail.project(head.project(value))


# Property 7: Empty chain is the identity
@given(values_strategy)
def test_zero_stages_identity(value):
    assert StageChain().project(value) == value


# Property 8: Interval boundaries map to distinct destination ends
@given(stage_entries().filter(bool), st.data())
def test_boundaries(entries, data):
    """
    Property: src_start maps to dst_start and src_end to dst_start + length - 1.
    """
    dst, src, length = data.draw(st.sampled_from(entries))
    chain = build_chain([entries])

    assert chain.project(src) == dst
    assert chain.project(src + length - 1) == dst + length - 1


# Property 9: Input order of a stage does not matter
@given(stage_entries(), values_strategy)
def test_order_independence(entries, value):
    forward = build_chain([entries])
    backward = build_chain([list(reversed(entries))])

    assert forward.project(value) == backward.project(value)


# Concrete test cases
def test_scenario_single_stage():
    """Stage "12 40 4", "1 5 3", "7 10 2"."""
    chain = StageChain().add_map(["12 40 4", "1 5 3", "7 10 2"])

    assert len(chain) == 1
    assert chain.project(100) == 100
    assert chain.project(5) == 1
    assert chain.project(11) == 8
    assert chain.project(0) == 0


def test_scenario_boundaries():
    chain = StageChain().add_map(["12 40 4", "1 5 3", "7 10 2"])

    assert [chain.project(v) for v in (40, 43, 44)] == [12, 15, 44]
    assert [chain.project(v) for v in (4, 5, 7, 8)] == [4, 1, 3, 8]
    assert [chain.project(v) for v in (9, 10, 11, 12)] == [9, 7, 8, 12]


def test_find_interval_gaps():
    builder = IntervalStoreBuilder()
    builder.add_interval(10, 19, 100)
    builder.add_interval(0, 4, 50)
    store = builder.finalize()

    assert store.find_interval(5) is None
    assert store.find_interval(20) is None
    assert store.find_interval(0) == Interval(0, 4, 50)
    assert store.find_interval(19) == Interval(10, 19, 100)
    assert store.project(12) == 102
    assert store.project(7) == 7


def test_empty_store():
    store = IntervalStore([])

    assert len(store) == 0
    assert store.find_interval(0) is None


def test_builder_is_sealed_after_finalize():
    builder = IntervalStoreBuilder()
    builder.add_interval(0, 1, 2)
    builder.finalize()

    with pytest.raises(RuntimeError):
        builder.add_interval(3, 4, 5)
    with pytest.raises(RuntimeError):
        builder.finalize()


def test_large_values():
    """Values beyond 32 bits keep full precision."""
    chain = StageChain().add_map([f"{2**40} {2**63} {2**20}"])

    assert chain.project(2**63 + 7) == 2**40 + 7
    assert chain.project(2**63 - 1) == 2**63 - 1


def test_parse_seeds():
    assert StageChain.parse_seeds("seeds: 79 14 55 13") == [79, 14, 55, 13]
    assert StageChain.parse_seeds("1 2  3") == [1, 2, 3]
    assert StageChain.parse_seeds("seeds:") == []


@pytest.mark.parametrize("line", [
    "seeds: 79 x 55", "seeds: 1 -2", "seeds: 1.5", "seeds: 1_0", "seeds: \u0663",
    f"seeds: {2**64}",
])
def test_parse_seeds_errors(line):
    with pytest.raises(ParseError):
        StageChain.parse_seeds(line)


@pytest.mark.parametrize("line", [
    "1 2", "1 2 3 4", "a 2 3", "1 -2 3", "", "1_0 2 3", "1 2 ３",
    f"0 {2**64} 1", f"0 {2**64 - 1} 5", f"{2**64 - 1} 0 5",
])
def test_parse_map_line_errors(line):
    with pytest.raises(ParseError):
        StageChain.parse_map_line(line)


def test_parse_map_line():
    assert StageChain.parse_map_line("50 98 2") == Interval(98, 99, 50)
    assert StageChain.parse_map_line("50 98 0") is None


def test_parse_64_bit_limits():
    """Blocks may end exactly on the largest 64-bit value."""
    top = 2**64 - 1

    assert StageChain.parse_seeds(f"seeds: {top} +5") == [top, 5]
    assert StageChain.parse_map_line(f"0 {top - 4} 5") == Interval(top - 4, top, 0)
    assert StageChain.parse_map_line(f"{top - 4} 0 5") == Interval(0, 4, top - 4)
    assert StageChain.parse_map_line(f"{top} {top} 1") == Interval(top, top, top)


def test_builder_rejects_inverted_interval():
    builder = IntervalStoreBuilder()

    with pytest.raises(ValueError):
        builder.add_interval(5, 4, 0)

    builder.add_interval(5, 5, 0)
    assert builder.finalize().project(5) == 0


def test_add_map_is_all_or_nothing():
    chain = StageChain().add_map(["50 98 2"])

    with pytest.raises(ParseError):
        chain.add_map(["52 50 48", "oops"])

    assert len(chain) == 1
    assert chain.project(98) == 50
    assert chain.project(50) == 50


def test_add_map_chains():
    chain = StageChain().add_map(["10 0 5"]).add_map(["100 10 5"])

    assert len(chain) == 2
    assert chain.project(3) == 103


if __name__ == "__main__":
    # Run pytest
    pytest.main([__file__, "-v", "--tb=short"])
