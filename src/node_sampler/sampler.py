"""Fixed-interval node sampler.

This module implements the sampling loop that turns raw host and container
counters into one MetricsSnapshot per interval:
- CPU utilization from per-core tick deltas
- Network throughput of the busiest ethernet interface
- Container-seconds of runtime accounted to the window
- Memory, load average and filesystem usage read as-is

All state carried between cycles (previous CPU and interface snapshots, the
container window) lives on the Sampler instance. The loop runs in a
background thread and samples at the configured interval.
"""

from __future__ import annotations

import logging
import socket
import threading
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from node_sampler.core.constants import DEFAULT_FILESYSTEM_PATH, PUBLISH_INTERVAL
from node_sampler.core.schemas import (
    CpuAverage,
    FilesystemUsage,
    LoadAverage,
    MemoryStats,
    MetricsSnapshot,
    NetworkTraffic,
    SamplerConfig,
    UsageStats,
)
from node_sampler.monitoring.accountant import ContainerRuntimeAccountant, utc_now
from node_sampler.monitoring.base import (
    ContainerObservation,
    ContainerProvider,
    CpuSnapshot,
    HostCounterProvider,
    InterfaceSnapshot,
)
from node_sampler.monitoring.cpu import calculate_average_cpu
from node_sampler.monitoring.memory import parse_memory_counters
from node_sampler.monitoring.network import calculate_network_traffic, select_network_interface
from node_sampler.sinks import (
    JsonLinesPublisher,
    LoggingExporter,
    LoggingPublisher,
    MetricsExporter,
    MetricsPublisher,
    flatten_metrics,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Sampler:
    """Samples host and container metrics once per interval.

    Example:
        ```python
        sampler = Sampler(
            host=ProcfsHostProvider(),
            containers=DockerContainerProvider(),
            publishers=[LoggingPublisher()],
            interval_seconds=60,
        )
        sampler.start()
        # ...
        sampler.stop()
        ```
    """

    def __init__(
        self,
        host: HostCounterProvider,
        containers: ContainerProvider | None = None,
        publishers: Sequence[MetricsPublisher] = (),
        exporters: Sequence[MetricsExporter] = (),
        interval_seconds: float = PUBLISH_INTERVAL,
        filesystem_path: str = DEFAULT_FILESYSTEM_PATH,
        node_id: str | None = None,
        node_name: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the sampler and take the baseline readings.

        Args:
            host: Source of host counters
            containers: Source of container state (None disables runtime accounting)
            publishers: Receive every snapshot
            exporters: Receive every leaf metric
            interval_seconds: Length of one sampling window
            filesystem_path: Filesystem whose usage is reported
            node_id: Identifier stamped on every snapshot
            node_name: Key prefix for exported metrics
            clock: Returns the current timezone-aware time
        """
        if interval_seconds <= 0:
            raise ValueError(f"Interval must be positive, got {interval_seconds}")

        self._host = host
        self._containers = containers
        self._publishers = list(publishers)
        self._exporters = list(exporters)
        self._interval_seconds = interval_seconds
        self._filesystem_path = filesystem_path
        self._node_id = node_id
        self._node_name = node_name or socket.gethostname()
        self._clock = clock

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        # Baselines for the first cycle
        self._accountant = ContainerRuntimeAccountant(clock=clock)
        self._previous_cpu: CpuSnapshot | None = self._read("CPU counters", host.read_cpu_snapshot)
        self._interface_name: str | None = None
        self._previous_interface: InterfaceSnapshot | None = None
        self._resolve_interface()

        if containers is not None:
            containers.on_container_died(self._accountant.on_container_died)

    @property
    def accountant(self) -> ContainerRuntimeAccountant:
        return self._accountant

    @property
    def interface_name(self) -> str | None:
        return self._interface_name

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    def start(self) -> None:
        """Start the background sampling thread."""
        if self._thread is not None:
            logger.warning("Sampler already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name="node-sampler", daemon=True)
        self._thread.start()
        logger.info(f"Sampling every {self._interval_seconds}s")

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop scheduling cycles; an in-progress cycle runs to completion."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        if self._containers is not None:
            self._containers.close()

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Sleep, sample, sleep... until ``stop_event`` is set."""
        stop_event = stop_event if stop_event is not None else self._stop_event
        while not stop_event.wait(self._interval_seconds):
            try:
                self.sample()
            except Exception:
                logger.exception("Sampling cycle failed")

    def sample(self) -> MetricsSnapshot:
        """Run one sampling cycle and hand the snapshot to the sinks.

        Returns:
            The snapshot that was published
        """
        now = self._clock()

        cpu_average = self._sample_cpu()
        network = self._sample_network()
        container_seconds = self._close_window(now)

        memory = self._read_memory()
        load = self._read_load()
        filesystem = self._read_filesystem()

        snapshot = MetricsSnapshot(
            id=self._node_id,
            memory=memory,
            usage=UsageStats(container_seconds=container_seconds),
            load=load,
            filesystem=[filesystem] if filesystem is not None else [],
            cpu_average=cpu_average,
            network=network,
            time=now,
        )
        self._emit(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Delta metrics
    # ------------------------------------------------------------------

    def _sample_cpu(self) -> CpuAverage | None:
        current = self._read("CPU counters", self._host.read_cpu_snapshot)
        if current is None:
            # Keep the old baseline; the next delta spans two intervals
            return None

        previous, self._previous_cpu = self._previous_cpu, current
        if previous is None:
            return None

        try:
            return calculate_average_cpu(previous, current)
        except ValueError as e:
            logger.warning(f"Skipping CPU average: {e}")
            return None

    def _sample_network(self) -> NetworkTraffic | None:
        if self._interface_name is None:
            # Nothing was eligible yet; try again and seed on success
            self._resolve_interface()
            return None

        current = self._read(
            f"interface {self._interface_name}",
            self._host.read_interface_snapshot,
            self._interface_name,
        )
        if current is None and self._previous_interface is not None:
            logger.info(f"Interface {self._interface_name} disappeared, omitting network stats")

        previous, self._previous_interface = self._previous_interface, current
        return calculate_network_traffic(previous, current, self._interval_seconds)

    def _resolve_interface(self) -> None:
        interfaces = self._read("network interfaces", self._host.list_ethernet_interfaces)
        selected = select_network_interface(interfaces or [])
        if selected is None:
            logger.debug("No eligible network interface found")
            return

        logger.info(f"Tracking network interface {selected.name}")
        self._interface_name = selected.name
        self._previous_interface = selected

    def _close_window(self, now: datetime) -> int:
        observations: list[ContainerObservation] = []
        if self._containers is not None:
            observations = self._read("containers", self._containers.list_containers) or []
        return self._accountant.close_window(observations, now)

    # ------------------------------------------------------------------
    # Instantaneous metrics
    # ------------------------------------------------------------------

    def _read_memory(self) -> MemoryStats | None:
        lines = self._read("memory counters", self._host.read_memory_counters)
        if lines is None:
            return None
        return parse_memory_counters(lines)

    def _read_load(self) -> LoadAverage | None:
        values = self._read("load average", self._host.read_load_average)
        if values is None:
            return None
        return LoadAverage.from_tuple(values)

    def _read_filesystem(self) -> FilesystemUsage | None:
        disk = self._read(
            f"disk usage of {self._filesystem_path}",
            self._host.read_disk_usage,
            self._filesystem_path,
        )
        if disk is None:
            return None
        return FilesystemUsage(
            name=self._filesystem_path,
            free=disk.free,
            available=disk.available,
            used=disk.used,
            total=disk.total,
        )

    # ------------------------------------------------------------------
    # Sinks
    # ------------------------------------------------------------------

    def _emit(self, snapshot: MetricsSnapshot) -> None:
        for publisher in self._publishers:
            try:
                publisher.publish(snapshot)
            except Exception:
                logger.exception(f"Publishing via {type(publisher).__name__} failed")

        if not self._exporters:
            return

        try:
            gauges = flatten_metrics(snapshot, self._node_name)
        except Exception:
            logger.exception("Flattening metrics for export failed")
            return

        for exporter in self._exporters:
            try:
                for key, value in gauges:
                    exporter.export(key, value)
            except Exception:
                logger.exception(f"Exporting via {type(exporter).__name__} failed")

    def _read(self, what: str, reader: Callable[..., T], *args: Any) -> T | None:
        """Call a provider, turning any failure into a missing value."""
        try:
            return reader(*args)
        except Exception as e:
            logger.warning(f"Could not read {what}: {e}")
            return None


def build_sampler(config: SamplerConfig) -> Sampler:
    """Wire providers and sinks from a SamplerConfig.

    Docker is used when enabled and reachable; otherwise container runtime is
    not accounted and the filesystem defaults to "/".
    """
    from node_sampler.monitoring.docker_provider import DockerContainerProvider
    from node_sampler.monitoring.procfs_provider import ProcfsHostProvider

    host = ProcfsHostProvider(proc_root=config.proc_root, sys_class_net=config.sys_class_net)

    containers: DockerContainerProvider | None = None
    node_id = node_name = docker_root = None
    if config.docker_enabled:
        if DockerContainerProvider.is_available():
            containers = DockerContainerProvider()
            try:
                node_id = containers.node_id
                node_name = containers.node_name
                docker_root = containers.docker_root_dir
            except Exception as e:
                logger.warning(f"Could not read Docker info: {e}")
        else:
            logger.warning("Docker not available - container runtime will not be accounted")

    if config.filesystem_path is not None:
        filesystem_path = str(config.filesystem_path)
    else:
        filesystem_path = docker_root or DEFAULT_FILESYSTEM_PATH

    publishers: list[MetricsPublisher] = [LoggingPublisher()]
    if config.output_path is not None:
        publishers.append(JsonLinesPublisher(config.output_path))

    return Sampler(
        host=host,
        containers=containers,
        publishers=publishers,
        exporters=[LoggingExporter()],
        interval_seconds=config.interval_seconds,
        filesystem_path=filesystem_path,
        node_id=node_id,
        node_name=config.node_name or node_name,
    )
