"""Host counter provider backed by Linux procfs and sysfs.

Counters sourced:
- /proc/stat: per-core cpuN tick lines
- /proc/net/dev: per-interface byte counters
- /sys/class/net/<iface>/type: link type (1 = ethernet)
- /proc/meminfo: memory counters
- /proc/loadavg: load averages
- statvfs(2): filesystem usage
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from node_sampler.core.constants import (
    DEFAULT_PROC_ROOT,
    DEFAULT_SYS_CLASS_NET,
    ETHERNET_ARP_TYPE,
)
from node_sampler.monitoring.base import (
    CpuSnapshot,
    CpuTicks,
    DiskUsage,
    HostCounterProvider,
    InterfaceSnapshot,
)
from node_sampler.monitoring.network import find_network_interface

logger = logging.getLogger(__name__)


class ProcfsHostProvider(HostCounterProvider):
    """Reads host counters directly from procfs and sysfs.

    Both roots are configurable so a host's /proc can be bind-mounted into
    the agent container (or replaced by a fixture tree in tests).
    """

    def __init__(
        self,
        proc_root: Path | str = DEFAULT_PROC_ROOT,
        sys_class_net: Path | str = DEFAULT_SYS_CLASS_NET,
    ) -> None:
        self._proc_root = Path(proc_root)
        self._sys_class_net = Path(sys_class_net)

    def read_cpu_snapshot(self) -> CpuSnapshot:
        """Read /proc/stat per-core lines.

        Format:
            cpu  2255 34 2290 22625563 6290 127 456 0 0 0
            cpu0 1132 34 1441 11311718 3675 127 438 0 0 0
            cpu1 1123 0 849 11313845 2614 0 18 0 0 0

        The aggregate "cpu" line is skipped; nice time is not counted as user.
        """
        cores: list[CpuTicks] = []
        content = (self._proc_root / "stat").read_text()
        for line in content.splitlines():
            parts = line.split()
            if not parts or not parts[0].startswith("cpu") or parts[0] == "cpu":
                continue
            # cpuN user nice system idle ...
            user, _nice, system, idle = (int(v) for v in parts[1:5])
            cores.append(CpuTicks(system=system, user=user, idle=idle))
        return tuple(cores)

    def list_ethernet_interfaces(self) -> list[InterfaceSnapshot]:
        return [iface for iface in self._read_net_dev() if iface.ethernet]

    def read_interface_snapshot(self, name: str) -> InterfaceSnapshot | None:
        return find_network_interface(self._read_net_dev(), name)

    def read_memory_counters(self) -> list[str]:
        return (self._proc_root / "meminfo").read_text().splitlines()

    def read_load_average(self) -> tuple[float, float, float]:
        """Read /proc/loadavg.

        Format:
            0.52 0.58 0.59 1/389 12345
        """
        parts = (self._proc_root / "loadavg").read_text().split()
        return float(parts[0]), float(parts[1]), float(parts[2])

    def read_disk_usage(self, path: str) -> DiskUsage:
        stat = os.statvfs(path)
        total = stat.f_blocks * stat.f_frsize
        free = stat.f_bfree * stat.f_frsize
        return DiskUsage(
            free=free,
            available=stat.f_bavail * stat.f_frsize,
            used=total - free,
            total=total,
        )

    def _read_net_dev(self) -> list[InterfaceSnapshot]:
        """Read /proc/net/dev.

        Format (after two header lines):
            eth0: 1234 10 0 0 0 0 0 0 5678 12 0 0 0 0 0 0

        Receive bytes is the first column, transmit bytes the ninth.
        """
        interfaces: list[InterfaceSnapshot] = []
        content = (self._proc_root / "net" / "dev").read_text()
        for line in content.splitlines()[2:]:
            name, sep, counters = line.partition(":")
            if not sep:
                continue
            fields = counters.split()
            try:
                in_bytes = int(fields[0])
                out_bytes = int(fields[8])
            except (IndexError, ValueError):
                logger.debug(f"Malformed /proc/net/dev line: {line!r}")
                continue
            name = name.strip()
            interfaces.append(
                InterfaceSnapshot(
                    name=name,
                    in_bytes=in_bytes,
                    out_bytes=out_bytes,
                    ethernet=self._is_ethernet(name),
                )
            )
        return interfaces

    def _is_ethernet(self, name: str) -> bool:
        type_path = self._sys_class_net / name / "type"
        try:
            return int(type_path.read_text().strip()) == ETHERNET_ARP_TYPE
        except (FileNotFoundError, ValueError, PermissionError):
            return False
