"""
Stage Chain - Seed Projection Engine

Threads a value through every almanac map in order. Each map is a finalized
IntervalStore; values not covered by a map pass through it unchanged.
"""

from typing import Iterable, List, Optional

from software_reference.interval_store import Interval, IntervalStore, IntervalStoreBuilder


SEEDS_PREFIX = "seeds:"

U64_MAX = 2**64 - 1


class ParseError(ValueError):
    """Malformed seed line, map line or seed list."""


def _parse_unsigned(token: str, line: str) -> int:
    digits = token[1:] if token.startswith("+") else token
    if not (digits.isascii() and digits.isdigit()):
        raise ParseError(f"invalid integer {token!r} in {line!r}")
    number = int(digits)
    if number > U64_MAX:
        raise ParseError(f"value {token!r} does not fit in 64 bits in {line!r}")
    return number


class StageChain:
    """Ordered sequence of finalized interval stores."""

    def __init__(self):
        self._stages: List[IntervalStore] = []

    def __len__(self):
        return len(self._stages)

    @property
    def stages(self):
        return tuple(self._stages)

    @staticmethod
    def parse_seeds(line: str) -> List[int]:
        """
        Parse the seed line.

        Args:
            line: Text such as "seeds: 79 14 55 13" (the prefix is optional)

        Returns:
            list: Seed values in input order

        Raises:
            ParseError: on a token that is not an unsigned 64-bit integer
        """
        text = line.strip()
        if text.startswith(SEEDS_PREFIX):
            text = text[len(SEEDS_PREFIX):]
        return [_parse_unsigned(token, line) for token in text.split()]

    @staticmethod
    def parse_map_line(line: str) -> Optional[Interval]:
        """
        Decode one "dst_start src_start length" map line.

        Returns:
            Interval, or None for a zero-length line (it covers no value)

        Raises:
            ParseError: on bad tokens, a token count other than three, or a
                block that does not fit in 64 bits
        """
        tokens = line.split()
        if len(tokens) != 3:
            raise ParseError(f"expected 3 integers, got {len(tokens)} in {line!r}")

        dst_start, src_start, length = (_parse_unsigned(token, line) for token in tokens)
        if length == 0:
            return None
        # Both blocks must stay inside the 64-bit value range
        if max(src_start, dst_start) + length - 1 > U64_MAX:
            raise ParseError(f"block of {length} values runs past 64 bits in {line!r}")
        return Interval(src_start, src_start + length - 1, dst_start)

    def add_map(self, lines: Iterable[str]) -> "StageChain":
        """
        Build one stage from its map lines and append it to the chain.

        Every line is parsed before the chain is touched, so a ParseError
        leaves the chain as it was.

        Returns:
            StageChain: self, for chaining
        """
        builder = IntervalStoreBuilder()
        for line in lines:
            interval = self.parse_map_line(line)
            if interval is not None:
                builder.add_interval(interval.src_start, interval.src_end, interval.dst_start)

        self._stages.append(builder.finalize())
        return self

    def project(self, value: int) -> int:
        """Project value through every stage, in chain order."""
        for stage in self._stages:
            value = stage.project(value)
        return value
