"""Network throughput from two interface counter snapshots.

Also holds the interface selection rules: the tracked interface is chosen once
and then re-resolved by name on every cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from node_sampler.core.schemas import NetworkTraffic
from node_sampler.monitoring.base import InterfaceSnapshot

logger = logging.getLogger(__name__)


def calculate_network_traffic(
    previous: InterfaceSnapshot | None,
    current: InterfaceSnapshot | None,
    interval_seconds: float,
) -> NetworkTraffic | None:
    """Compute per-second byte rates between two snapshots.

    Args:
        previous: Snapshot from the previous cycle (None if not seeded)
        current: Snapshot from this cycle (None if the interface is gone)
        interval_seconds: Sampling interval length

    Returns:
        NetworkTraffic, or None when a snapshot is missing, the snapshots belong
        to different interfaces, or a counter went backwards (interface reset)

    Raises:
        ValueError: If interval_seconds is not positive
    """
    if interval_seconds <= 0:
        raise ValueError(f"Interval must be positive, got {interval_seconds}")
    if previous is None or current is None:
        return None
    if previous.name != current.name:
        logger.debug(f"Interface changed from {previous.name} to {current.name}")
        return None

    in_delta = current.in_bytes - previous.in_bytes
    out_delta = current.out_bytes - previous.out_bytes
    if in_delta < 0 or out_delta < 0:
        logger.debug(f"Counters of {current.name} went backwards, skipping rates")
        return None

    return NetworkTraffic(
        in_bytes_per_second=in_delta / interval_seconds,
        out_bytes_per_second=out_delta / interval_seconds,
    )


def select_network_interface(
    interfaces: Iterable[InterfaceSnapshot],
) -> InterfaceSnapshot | None:
    """Pick the busiest ethernet interface.

    Only ethernet-class interfaces with traffic in both directions qualify;
    the highest outbound byte count wins and ties keep enumeration order.
    """
    best: InterfaceSnapshot | None = None
    for iface in interfaces:
        if not (iface.ethernet and iface.in_bytes > 0 and iface.out_bytes > 0):
            continue
        if best is None or iface.out_bytes > best.out_bytes:
            best = iface
    return best


def find_network_interface(
    interfaces: Iterable[InterfaceSnapshot], name: str
) -> InterfaceSnapshot | None:
    """Return the snapshot for ``name``, or None if it has disappeared."""
    for iface in interfaces:
        if iface.name == name:
            return iface
    return None
