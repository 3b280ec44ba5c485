"""
Simulation drivers for the almanac RTL.

Shared by the testbenches and by software_reference.compare_rtl: both load a
software StageChain into the hardware, run the Amaranth simulator and hand
back plain Python values.
"""

from amaranth.sim import Simulator

from rtl.lowest_location import LowestLocation
from rtl.stage_projector import StageProjector


# Upper bound on cycles for one projection (8 stages x 256 intervals needs < 250)
MAX_CYCLES_PER_VALUE = 1000


def check_capacity(chain, max_intervals, max_stages):
    """Raise ValueError if the chain does not fit in the hardware tables."""
    interval_count = sum(len(stage) for stage in chain.stages)
    if interval_count > max_intervals:
        raise ValueError(f"{interval_count} intervals exceed max_intervals={max_intervals}")
    if len(chain) > max_stages:
        raise ValueError(f"{len(chain)} stages exceed max_stages={max_stages}")


async def load_chain(ctx, dut, chain):
    """Stream every stage of chain into dut, in IntervalStore order."""
    for stage in chain.stages:
        for interval in stage:
            ctx.set(dut.src_start_in, interval.src_start)
            ctx.set(dut.src_end_in, interval.src_end)
            ctx.set(dut.dst_start_in, interval.dst_start)
            ctx.set(dut.interval_valid_in, 1)
            await ctx.tick()

        ctx.set(dut.interval_valid_in, 0)
        ctx.set(dut.stage_end_in, 1)
        await ctx.tick()
        ctx.set(dut.stage_end_in, 0)


def _run(sim, vcd_file):
    if vcd_file:
        with sim.write_vcd(vcd_file):
            sim.run()
    else:
        sim.run()


def simulate_projection(chain, values, max_intervals=64, max_stages=8, vcd_file=None):
    """
    Simulate StageProjector and return the projected values.

    Args:
        chain: Software StageChain whose stages are loaded into the hardware
        values: Values to project, in order
        max_intervals: BRAM depth of the projector
        max_stages: Stage table size of the projector
        vcd_file: Optional waveform output path

    Returns:
        list: Projected values, one per input value
    """
    check_capacity(chain, max_intervals, max_stages)

    dut = StageProjector(max_intervals=max_intervals, max_stages=max_stages, width=64)
    outputs = []

    async def testbench(ctx):
        await load_chain(ctx, dut, chain)

        loaded = ctx.get(dut.stage_count_out)
        if loaded != len(chain):
            raise AssertionError(f"loaded {loaded} stages, expected {len(chain)}")

        for value in values:
            ctx.set(dut.value_in, value)
            ctx.set(dut.value_valid_in, 1)
            await ctx.tick()
            ctx.set(dut.value_valid_in, 0)

            for _ in range(MAX_CYCLES_PER_VALUE):
                if ctx.get(dut.valid_out):
                    break
                await ctx.tick()
            else:
                raise TimeoutError(f"no projection for {value} after {MAX_CYCLES_PER_VALUE} cycles")

            outputs.append(ctx.get(dut.value_out))

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)
    _run(sim, vcd_file)

    return outputs


def simulate_lowest_location(chain, ranges, max_intervals=256, max_stages=8, vcd_file=None):
    """
    Simulate LowestLocation over (start, length) ranges.

    Args:
        chain: Software StageChain whose stages are loaded into the hardware
        ranges: (start, length) pairs; part one passes (seed, 1) per seed
        max_intervals: BRAM depth of the projector
        max_stages: Stage table size of the projector
        vcd_file: Optional waveform output path

    Returns:
        dict: 'result' (lowest location or None), 'projected' and 'cycles'
    """
    check_capacity(chain, max_intervals, max_stages)

    # The hardware only finishes on a range flagged as last
    ranges = list(ranges) or [(0, 0)]
    total_values = sum(length for _, length in ranges)
    max_cycles = (total_values + len(ranges) + 1) * MAX_CYCLES_PER_VALUE

    dut = LowestLocation(max_intervals=max_intervals, max_stages=max_stages, width=64)
    stats = {'result': None, 'projected': 0, 'cycles': 0}

    async def testbench(ctx):
        await load_chain(ctx, dut, chain)

        cycles = 0
        for index, (start, length) in enumerate(ranges):
            while not ctx.get(dut.ready):
                await ctx.tick()
                cycles += 1
                if cycles > max_cycles:
                    raise TimeoutError(f"range {index} not accepted after {cycles} cycles")

            ctx.set(dut.range_start_in, start)
            ctx.set(dut.range_length_in, length)
            ctx.set(dut.range_last_in, int(index == len(ranges) - 1))
            ctx.set(dut.range_valid_in, 1)
            await ctx.tick()
            cycles += 1
            ctx.set(dut.range_valid_in, 0)

        while not ctx.get(dut.done):
            await ctx.tick()
            cycles += 1
            if cycles > max_cycles:
                raise TimeoutError(f"did not finish after {cycles} cycles")

        if ctx.get(dut.found):
            stats['result'] = ctx.get(dut.min_out)
        stats['projected'] = ctx.get(dut.projected_count)
        stats['cycles'] = cycles

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(testbench)
    _run(sim, vcd_file)

    return stats
