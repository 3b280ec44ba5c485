"""
Lowest Location - Hardware RTL Implementation

Complete system: range enumerator -> StageProjector -> running minimum.

Part one feeds each seed as a range of length 1; part two feeds the
(start, length) seed pairs directly. Every value of every range goes
through the projector, the smallest projected value is kept.

System Architecture:
    (start, length) ranges -> Enumerator -> StageProjector -> Min tracker
                                 FSM          BRAM + search     register

Throughput:
    One value in flight at a time; the enumerator issues the next value
    the cycle after the projector reports the previous one.
"""

from amaranth import *
from rtl.stage_projector import StageProjector


class LowestLocation(Elaboratable):
    """
    Lowest projected value over a sequence of seed ranges.

    Ports:
        Input (interval loading phase, forwarded to StageProjector):
            - src_start_in, src_end_in, dst_start_in, interval_valid_in
            - stage_end_in, clear

        Input (range phase):
            - range_start_in: First seed of the range (64-bit)
            - range_length_in: Number of seeds in the range (64-bit)
            - range_last_in: This is the last range of the query
            - range_valid_in: Range data valid (sampled while ready)

        Output:
            - min_out: Lowest projected value so far (64-bit)
            - found: At least one value was projected
            - done: Last range exhausted, min_out is final
            - projected_count: Values projected in the current query

        Control:
            - ready: Accepting a new range
    """

    def __init__(self, max_intervals=256, max_stages=8, width=64):
        self.max_intervals = max_intervals
        self.max_stages = max_stages
        self.width = width

        # Interval load interface
        self.src_start_in = Signal(width)
        self.src_end_in = Signal(width)
        self.dst_start_in = Signal(width)
        self.interval_valid_in = Signal()
        self.stage_end_in = Signal()
        self.clear = Signal()

        # Range input interface
        self.range_start_in = Signal(width)
        self.range_length_in = Signal(width)
        self.range_last_in = Signal()
        self.range_valid_in = Signal()

        # Output interface
        self.min_out = Signal(width)
        self.found = Signal()
        self.done = Signal()
        self.projected_count = Signal(width)

        # Control
        self.ready = Signal()

    def elaborate(self, platform):
        m = Module()

        projector = StageProjector(
            max_intervals=self.max_intervals,
            max_stages=self.max_stages,
            width=self.width,
        )
        m.submodules.projector = projector

        # Expose submodule for testbench access
        self.projector = projector

        # Loading goes straight to the projector
        m.d.comb += [
            projector.src_start_in.eq(self.src_start_in),
            projector.src_end_in.eq(self.src_end_in),
            projector.dst_start_in.eq(self.dst_start_in),
            projector.interval_valid_in.eq(self.interval_valid_in),
            projector.stage_end_in.eq(self.stage_end_in),
            projector.clear.eq(self.clear),
        ]

        # Enumerator state
        cursor = Signal(self.width)
        remaining = Signal(self.width)
        last = Signal()

        # Running minimum
        best = Signal(self.width)
        found = Signal()
        projected = Signal(self.width)

        m.d.comb += [
            projector.value_in.eq(cursor),
            self.min_out.eq(best),
            self.found.eq(found),
            self.projected_count.eq(projected),
        ]

        with m.FSM():

            with m.State("IDLE"):
                m.d.comb += self.ready.eq(1)

                with m.If(self.clear):
                    m.d.sync += [
                        best.eq(0),
                        found.eq(0),
                        projected.eq(0),
                    ]

                with m.Elif(self.range_valid_in):
                    m.d.sync += [
                        cursor.eq(self.range_start_in),
                        remaining.eq(self.range_length_in),
                        last.eq(self.range_last_in),
                    ]
                    m.next = "ISSUE"

            with m.State("ISSUE"):
                with m.If(remaining == 0):
                    # Range exhausted
                    with m.If(last):
                        m.d.sync += self.done.eq(1)
                        m.next = "DONE"
                    with m.Else():
                        m.next = "IDLE"

                with m.Elif(projector.ready):
                    m.d.comb += projector.value_valid_in.eq(1)
                    m.d.sync += [
                        cursor.eq(cursor + 1),
                        remaining.eq(remaining - 1),
                    ]
                    m.next = "WAIT"

            with m.State("WAIT"):
                with m.If(projector.valid_out):
                    with m.If(~found | (projector.value_out < best)):
                        m.d.sync += [
                            best.eq(projector.value_out),
                            found.eq(1),
                        ]
                    m.d.sync += projected.eq(projected + 1)
                    m.next = "ISSUE"

            with m.State("DONE"):
                m.d.comb += self.ready.eq(1)
                m.d.sync += self.done.eq(1)

                # Start over: a new query, or clear everything
                with m.If(self.clear | self.range_valid_in):
                    m.d.sync += [
                        self.done.eq(0),
                        best.eq(0),
                        found.eq(0),
                        projected.eq(0),
                    ]
                    with m.If(self.clear):
                        m.next = "IDLE"
                    with m.Else():
                        m.d.sync += [
                            cursor.eq(self.range_start_in),
                            remaining.eq(self.range_length_in),
                            last.eq(self.range_last_in),
                        ]
                        m.next = "ISSUE"

        return m


if __name__ == "__main__":
    import sys
    from amaranth.back import verilog

    output_path = sys.argv[1] if len(sys.argv) > 1 else "lowest_location.v"

    top = LowestLocation(max_intervals=256, max_stages=8, width=64)
    v = verilog.convert(top, name="top", ports=[
        # Interval load interface
        top.src_start_in, top.src_end_in, top.dst_start_in,
        top.interval_valid_in, top.stage_end_in, top.clear,
        # Range input interface
        top.range_start_in, top.range_length_in, top.range_last_in, top.range_valid_in,
        # Output interface
        top.min_out, top.found, top.done, top.projected_count,
        # Control
        top.ready,
    ])

    with open(output_path, "w") as f:
        f.write(v)
    print(f"Generated {output_path}")
