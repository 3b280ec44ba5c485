"""
Stage Projector - Hardware RTL Implementation

Projects one value at a time through every almanac map, using a binary
search over the intervals of each stage.

Architecture:
    1. Load the intervals of every stage into BRAM, one stage after another,
       each stage sorted by source start (IntervalStore order)
    2. Close every stage with a stage_end_in pulse; the stage table records
       the [first, last + 1) slice of BRAM owned by each stage
    3. For each value, walk the stages in order:
       - binary search the stage slice for an interval containing the value
       - on a hit, replace the value with dst_start + (value - src_start)
       - on a miss, keep the value (identity)
    4. Present the projected value with a one-cycle valid_out pulse

Components:
    - BRAM storage for src_start, src_end and dst_start
    - Stage table (registers) with the BRAM slice of each stage
    - Binary search FSM

Latency:
    Per stage: 2 cycles plus 3 cycles per search step,
    at most ceil(log2(n + 1)) steps for a stage with n intervals.
"""

from amaranth import *
from amaranth.lib.memory import Memory


class StageProjector(Elaboratable):
    """
    Hardware module that projects a value through all loaded stages.

    Ports:
        Input (interval loading phase, while ready):
            - src_start_in: Interval source start (64-bit)
            - src_end_in: Interval source end, inclusive (64-bit)
            - dst_start_in: Interval destination start (64-bit)
            - interval_valid_in: Write the interval into the next slot
            - stage_end_in: Close the current stage
            - clear: Forget every loaded interval and stage

        Input (projection phase):
            - value_in: Value to project (64-bit)
            - value_valid_in: Start a projection (sampled while ready)

        Output:
            - value_out: Projected value (64-bit)
            - valid_out: One-cycle pulse when value_out is updated
            - interval_count_out: Intervals loaded so far
            - stage_count_out: Stages closed so far

        Control:
            - ready: Idle, accepting loads and values

    Only one of clear, interval_valid_in, stage_end_in and value_valid_in
    is honoured per cycle, in that priority order.
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

        # Projection interface
        self.value_in = Signal(width)
        self.value_valid_in = Signal()
        self.value_out = Signal(width)
        self.valid_out = Signal()

        # Status
        self.interval_count_out = Signal(range(max_intervals + 1))
        self.stage_count_out = Signal(range(max_stages + 1))
        self.ready = Signal()

    def elaborate(self, platform):
        m = Module()

        # BRAM storage for intervals of all stages
        m.submodules.src_start_mem = src_start_mem = Memory(
            shape=unsigned(self.width), depth=self.max_intervals, init=[])
        m.submodules.src_end_mem = src_end_mem = Memory(
            shape=unsigned(self.width), depth=self.max_intervals, init=[])
        m.submodules.dst_start_mem = dst_start_mem = Memory(
            shape=unsigned(self.width), depth=self.max_intervals, init=[])

        src_start_rd = src_start_mem.read_port()
        src_start_wr = src_start_mem.write_port()
        src_end_rd = src_end_mem.read_port()
        src_end_wr = src_end_mem.write_port()
        dst_start_rd = dst_start_mem.read_port()
        dst_start_wr = dst_start_mem.write_port()

        # Load state
        interval_count = Signal(range(self.max_intervals + 1))
        stage_count = Signal(range(self.max_stages + 1))
        stage_base = Signal(range(self.max_intervals + 1))

        # Stage table: stage i owns BRAM slots [stage_lo[i], stage_hi[i])
        stage_lo = Array(Signal(range(self.max_intervals + 1), name=f"stage_lo_{i}")
                         for i in range(self.max_stages))
        stage_hi = Array(Signal(range(self.max_intervals + 1), name=f"stage_hi_{i}")
                         for i in range(self.max_stages))

        # Projection state
        stage = Signal(range(self.max_stages + 1))
        current = Signal(self.width)

        # Binary search bounds, half-open [left, right)
        left = Signal(range(self.max_intervals + 1))
        right = Signal(range(self.max_intervals + 1))
        mid = Signal(range(self.max_intervals + 1))

        # Reads always follow mid; data arrives one cycle later
        m.d.comb += [
            src_start_rd.addr.eq(mid),
            src_end_rd.addr.eq(mid),
            dst_start_rd.addr.eq(mid),
            self.interval_count_out.eq(interval_count),
            self.stage_count_out.eq(stage_count),
        ]

        m.d.sync += self.valid_out.eq(0)

        with m.FSM():

            with m.State("IDLE"):
                m.d.comb += self.ready.eq(1)

                with m.If(self.clear):
                    m.d.sync += [
                        interval_count.eq(0),
                        stage_count.eq(0),
                        stage_base.eq(0),
                    ]

                with m.Elif(self.interval_valid_in):
                    with m.If(interval_count < self.max_intervals):
                        m.d.comb += [
                            src_start_wr.addr.eq(interval_count),
                            src_start_wr.data.eq(self.src_start_in),
                            src_start_wr.en.eq(1),
                            src_end_wr.addr.eq(interval_count),
                            src_end_wr.data.eq(self.src_end_in),
                            src_end_wr.en.eq(1),
                            dst_start_wr.addr.eq(interval_count),
                            dst_start_wr.data.eq(self.dst_start_in),
                            dst_start_wr.en.eq(1),
                        ]
                        m.d.sync += interval_count.eq(interval_count + 1)

                with m.Elif(self.stage_end_in):
                    with m.If(stage_count < self.max_stages):
                        m.d.sync += [
                            stage_lo[stage_count].eq(stage_base),
                            stage_hi[stage_count].eq(interval_count),
                            stage_base.eq(interval_count),
                            stage_count.eq(stage_count + 1),
                        ]

                with m.Elif(self.value_valid_in):
                    m.d.sync += [
                        current.eq(self.value_in),
                        stage.eq(0),
                    ]
                    m.next = "STAGE_SETUP"

            with m.State("STAGE_SETUP"):
                with m.If(stage == stage_count):
                    # All stages applied
                    m.d.sync += [
                        self.value_out.eq(current),
                        self.valid_out.eq(1),
                    ]
                    m.next = "IDLE"

                with m.Else():
                    m.d.sync += [
                        left.eq(stage_lo[stage]),
                        right.eq(stage_hi[stage]),
                    ]
                    m.next = "SEARCH_SETUP"

            with m.State("SEARCH_SETUP"):
                with m.If(left >= right):
                    # Not covered by this stage: identity
                    m.d.sync += stage.eq(stage + 1)
                    m.next = "STAGE_SETUP"

                with m.Else():
                    m.d.sync += mid.eq((left + right) >> 1)
                    m.next = "SEARCH_READ"

            with m.State("SEARCH_READ"):
                # Wait for memory read (1 cycle latency)
                m.next = "SEARCH_COMPARE"

            with m.State("SEARCH_COMPARE"):
                with m.If(current < src_start_rd.data):
                    # Go Left
                    m.d.sync += right.eq(mid)
                    m.next = "SEARCH_SETUP"

                with m.Elif(current > src_end_rd.data):
                    # Go Right
                    m.d.sync += left.eq(mid + 1)
                    m.next = "SEARCH_SETUP"

                with m.Else():
                    # Found: keep the offset inside the interval
                    m.d.sync += [
                        current.eq(dst_start_rd.data + (current - src_start_rd.data)),
                        stage.eq(stage + 1),
                    ]
                    m.next = "STAGE_SETUP"

        return m


if __name__ == "__main__":
    import sys
    from amaranth.back import verilog

    output_path = sys.argv[1] if len(sys.argv) > 1 else "stage_projector.v"

    top = StageProjector(max_intervals=256, max_stages=8, width=64)
    v = verilog.convert(top, name="top", ports=[
        # Interval load interface
        top.src_start_in, top.src_end_in, top.dst_start_in,
        top.interval_valid_in, top.stage_end_in, top.clear,
        # Projection interface
        top.value_in, top.value_valid_in, top.value_out, top.valid_out,
        # Status
        top.interval_count_out, top.stage_count_out, top.ready,
    ])

    with open(output_path, "w") as f:
        f.write(v)
    print(f"Generated {output_path}")
