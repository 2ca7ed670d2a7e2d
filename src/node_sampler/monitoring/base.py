"""Raw counter types and provider interfaces.

Providers are the only place that touches the host or the container runtime.
The calculators and the accountant consume the plain data types defined here,
so they can be exercised with fixed fixtures.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CpuTicks:
    """Cumulative tick counters of one logical core."""

    system: int
    user: int
    idle: int


# One entry per logical core, in provider order
CpuSnapshot = tuple[CpuTicks, ...]


@dataclass(frozen=True)
class InterfaceSnapshot:
    """Cumulative byte counters of one network interface."""

    name: str
    in_bytes: int
    out_bytes: int
    ethernet: bool = True


@dataclass(frozen=True)
class DiskUsage:
    """Filesystem usage in bytes."""

    free: int
    available: int
    used: int
    total: int


@dataclass(frozen=True)
class ContainerObservation:
    """State of one container as seen at poll or event time.

    Timestamps are timezone-aware UTC datetimes, or None when the runtime
    reported nothing usable.
    """

    container_id: str
    started_at: datetime | None
    finished_at: datetime | None
    is_running: bool


DiedCallback = Callable[[ContainerObservation], None]


class HostCounterProvider(ABC):
    """Source of raw host counters.

    Implementations:
    - ProcfsHostProvider: Linux procfs/sysfs and statvfs
    """

    @abstractmethod
    def read_cpu_snapshot(self) -> CpuSnapshot:
        """Read per-core tick counters."""

    @abstractmethod
    def list_ethernet_interfaces(self) -> Sequence[InterfaceSnapshot]:
        """List ethernet-class interfaces in enumeration order."""

    @abstractmethod
    def read_interface_snapshot(self, name: str) -> InterfaceSnapshot | None:
        """Read counters of the named interface, or None if it is gone."""

    @abstractmethod
    def read_memory_counters(self) -> list[str]:
        """Read raw memory counter lines (meminfo format)."""

    @abstractmethod
    def read_load_average(self) -> tuple[float, float, float]:
        """Read the 1, 5 and 15 minute load averages."""

    @abstractmethod
    def read_disk_usage(self, path: str) -> DiskUsage:
        """Read usage of the filesystem holding ``path``."""


class ContainerProvider(ABC):
    """Source of container lifecycle state.

    Implementations:
    - DockerContainerProvider: Docker Engine API via the docker SDK
    """

    @abstractmethod
    def list_containers(self) -> list[ContainerObservation]:
        """List every container the runtime still knows about."""

    @abstractmethod
    def on_container_died(self, callback: DiedCallback) -> None:
        """Register ``callback`` for containers reaching the "died" state."""

    def close(self) -> None:
        """Release resources held by the provider."""
