"""Monitoring module - host counters, delta calculators and container accounting.

Provides:
- ProcfsHostProvider: host counters from procfs/sysfs
- DockerContainerProvider: container state and "die" events from Docker
- calculate_average_cpu / calculate_network_traffic: counter deltas to rates
- ContainerRuntimeAccountant: container-seconds per sampling window
"""

from __future__ import annotations

from node_sampler.monitoring.accountant import (
    ContainerRuntimeAccountant,
    container_seconds,
    finished_run_seconds,
)
from node_sampler.monitoring.base import (
    ContainerObservation,
    ContainerProvider,
    CpuSnapshot,
    CpuTicks,
    DiskUsage,
    HostCounterProvider,
    InterfaceSnapshot,
)
from node_sampler.monitoring.cpu import calculate_average_cpu
from node_sampler.monitoring.memory import parse_memory_counters
from node_sampler.monitoring.network import (
    calculate_network_traffic,
    find_network_interface,
    select_network_interface,
)
from node_sampler.monitoring.procfs_provider import ProcfsHostProvider

__all__ = [
    "ContainerObservation",
    "ContainerProvider",
    "ContainerRuntimeAccountant",
    "CpuSnapshot",
    "CpuTicks",
    "DiskUsage",
    "HostCounterProvider",
    "InterfaceSnapshot",
    "ProcfsHostProvider",
    "calculate_average_cpu",
    "calculate_network_traffic",
    "container_seconds",
    "find_network_interface",
    "finished_run_seconds",
    "parse_memory_counters",
    "select_network_interface",
]
