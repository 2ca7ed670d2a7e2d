"""CPU utilization from two per-core tick snapshots."""

from __future__ import annotations

from node_sampler.core.schemas import CpuAverage
from node_sampler.monitoring.base import CpuSnapshot, CpuTicks


def core_percentages(previous: CpuTicks, current: CpuTicks) -> tuple[float, float, float]:
    """Split one core's tick delta into system/user/idle percentages.

    A core that did not advance at all (zero total ticks) is reported as fully
    idle.
    """
    system_ticks = current.system - previous.system
    user_ticks = current.user - previous.user
    idle_ticks = current.idle - previous.idle

    total_ticks = system_ticks + user_ticks + idle_ticks
    if total_ticks == 0:
        return 0.0, 0.0, 100.0

    return (
        system_ticks / total_ticks * 100.0,
        user_ticks / total_ticks * 100.0,
        idle_ticks / total_ticks * 100.0,
    )


def calculate_average_cpu(previous: CpuSnapshot, current: CpuSnapshot) -> CpuAverage:
    """Average per-core utilization between two snapshots.

    Each category is averaged independently and unweighted across cores.

    Args:
        previous: Snapshot from the previous cycle
        current: Snapshot from this cycle, same core ordering

    Returns:
        CpuAverage with system/user/idle percentages

    Raises:
        ValueError: If the snapshots are empty or the core count changed
    """
    if len(previous) != len(current):
        raise ValueError(f"CPU core count changed from {len(previous)} to {len(current)}")
    if not current:
        raise ValueError("Empty CPU snapshot")

    per_core = [core_percentages(prev, curr) for prev, curr in zip(previous, current)]
    system, user, idle = (sum(values) / len(values) for values in zip(*per_core))

    return CpuAverage(system=system, user=user, idle=idle)
