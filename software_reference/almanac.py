#!/usr/bin/env python3
"""
Almanac - Lowest Location for Seeds and Seed Ranges

Reads the almanac, builds the StageChain and reports:
    - part 1: lowest location among the listed seeds
    - part 2: lowest location among every seed of every (start, length) pair

Part 2 is a brute force scan. Each seed range is split into sub-ranges that
are projected independently on a multiprocessing pool, then reduced with min.
Since min is commutative and associative the answer does not depend on the
chunk size or the number of workers.
"""

import argparse
import os
import sys
import time
from multiprocessing import Pool
from typing import List, Optional, Sequence, Tuple

from software_reference.stage_chain import ParseError, StageChain


DEFAULT_CHUNK_SIZE = 1_000_000
MAP_SUFFIX = "map:"


def read_input(filename):
    """
    Read the almanac file.

    Args:
        filename: Path to input file

    Returns:
        list: Non-empty lines, stripped
    """
    with open(filename) as f:
        return [line.strip() for line in f if line.strip()]


def parse_input(lines):
    """
    Build the stage chain and the seed list from almanac lines.

    Args:
        lines: Non-empty, stripped lines (see read_input)

    Returns:
        tuple: (chain, seeds)

    Raises:
        ParseError: on empty input or any malformed line
    """
    if not lines:
        raise ParseError("no seeds found")

    seeds = StageChain.parse_seeds(lines[0])
    chain = StageChain()
    block = []

    for line in lines[1:]:
        if line.endswith(MAP_SUFFIX):
            # A header closes the previous block; headers with no lines add nothing
            if block:
                chain.add_map(block)
                block = []
            continue

        block.append(line)

    chain.add_map(block)
    return chain, seeds


def lowest_location(chain: StageChain, seeds: Sequence[int]) -> Optional[int]:
    """Part 1: lowest projected value among the seeds, None without seeds."""
    return min((chain.project(seed) for seed in seeds), default=None)


def seed_ranges(seeds: Sequence[int]) -> List[Tuple[int, int]]:
    """
    Pair consecutive seeds as (start, length).

    Raises:
        ParseError: if the seed list has an odd number of values
    """
    if len(seeds) % 2:
        raise ParseError(f"seed ranges need an even number of values, got {len(seeds)}")
    return [(seeds[i], seeds[i + 1]) for i in range(0, len(seeds), 2)]


def split_range(start: int, length: int, chunk_size: int = DEFAULT_CHUNK_SIZE):
    """
    Partition [start, start + length) into contiguous sub-ranges.

    Returns:
        list: (start, length) pairs of at most chunk_size values each
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    chunks = []
    end = start + length
    while start < end:
        step = min(chunk_size, end - start)
        chunks.append((start, step))
        start += step
    return chunks


def lowest_location_in_range(chain: StageChain, start: int, length: int) -> Optional[int]:
    """Lowest projected value over start .. start + length - 1, None if empty."""
    project = chain.project
    return min((project(seed) for seed in range(start, start + length)), default=None)


# Chain shared by pool workers, installed once per process by _init_worker
_worker_chain: Optional[StageChain] = None


def _init_worker(chain):
    global _worker_chain
    _worker_chain = chain


def _lowest_in_subrange(task, chain=None):
    if chain is None:
        chain = _worker_chain
    start, length = task
    return task, lowest_location_in_range(chain, start, length)


def lowest_location_for_ranges(chain, ranges, workers=None, chunk_size=DEFAULT_CHUNK_SIZE,
                               verbose=False):
    """
    Part 2: lowest projected value over every value of every range.

    Args:
        chain: Finalized StageChain
        ranges: (start, length) pairs, see seed_ranges
        workers: Worker processes (default: os.cpu_count()); <= 1 runs in-process
        chunk_size: Maximum values per sub-range handed to a worker
        verbose: Print per sub-range progress to stderr

    Returns:
        int: Lowest location, or None when every range is empty
    """
    tasks = [chunk for start, length in ranges for chunk in split_range(start, length, chunk_size)]
    if workers is None:
        workers = os.cpu_count() or 1

    if workers <= 1 or len(tasks) <= 1:
        results = (_lowest_in_subrange(task, chain) for task in tasks)
        return _reduce_lowest(results, len(tasks), verbose)

    with Pool(processes=workers, initializer=_init_worker, initargs=(chain,)) as pool:
        return _reduce_lowest(pool.imap_unordered(_lowest_in_subrange, tasks), len(tasks), verbose)


def _reduce_lowest(results, total, verbose):
    best = None
    for done, ((start, length), lowest) in enumerate(results, 1):
        if lowest is not None and (best is None or lowest < best):
            best = lowest
        if verbose:
            print(f"    [{done}/{total}] {start}+{length}: {lowest} (best {best})", file=sys.stderr)
    return best


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Lowest location for almanac seeds (part 1) and seed ranges (part 2)"
    )
    parser.add_argument("input_file", help="Almanac input file")
    parser.add_argument("--part", type=int, choices=(1, 2), help="Run only one part")
    parser.add_argument("--workers", type=int, default=None,
                        help="Worker processes for part 2 (default: CPU count)")
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE,
                        help=f"Seeds per part 2 work item (default: {DEFAULT_CHUNK_SIZE})")
    parser.add_argument("--verbose", action="store_true", help="Print part 2 progress to stderr")
    args = parser.parse_args(argv)

    try:
        chain, seeds = parse_input(read_input(args.input_file))

        if args.part in (None, 1):
            print(f"part 1: {lowest_location(chain, seeds)}")

        if args.part in (None, 2):
            ranges = seed_ranges(seeds)
            start_time = time.time()
            lowest = lowest_location_for_ranges(
                chain, ranges, workers=args.workers, chunk_size=args.chunk_size,
                verbose=args.verbose,
            )
            print(f"part 2: {lowest}")
            if args.verbose:
                total = sum(length for _, length in ranges)
                print(f"    {total} seeds in {time.time() - start_time:.3f}s", file=sys.stderr)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
