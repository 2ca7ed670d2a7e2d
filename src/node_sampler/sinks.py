"""Publish and export sinks for metrics snapshots.

Two kinds of consumers receive every snapshot:
- Publishers get the whole MetricsSnapshot (e.g. an RPC notification or a file)
- Exporters get one ``export(key, value)`` call per leaf metric (statsd-style gauges)

Both are best-effort: the Sampler logs their failures and carries on.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from node_sampler.core.schemas import MetricsSnapshot

logger = logging.getLogger(__name__)


class MetricsPublisher(ABC):
    """Receives one MetricsSnapshot per sampling cycle."""

    @abstractmethod
    def publish(self, snapshot: MetricsSnapshot) -> None:
        pass


class MetricsExporter(ABC):
    """Receives one gauge per leaf metric per sampling cycle."""

    @abstractmethod
    def export(self, key: str, value: float) -> None:
        pass


class LoggingPublisher(MetricsPublisher):
    """Logs each snapshot as a JSON payload."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def publish(self, snapshot: MetricsSnapshot) -> None:
        logger.log(self._level, f"Node stats: {json.dumps(snapshot.to_payload())}")


class JsonLinesPublisher(MetricsPublisher):
    """Appends each snapshot as one JSON object per line."""

    def __init__(self, path: Path | str) -> None:
        """Initialize the publisher.

        Args:
            path: Output file; parent directories are created on first write
        """
        self.path = Path(path)

    def publish(self, snapshot: MetricsSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(snapshot.to_payload()) + "\n")


class LoggingExporter(MetricsExporter):
    """Logs every gauge at DEBUG level."""

    def export(self, key: str, value: float) -> None:
        logger.debug(f"gauge {key}={value}")


def filesystem_key(name: str) -> str:
    """Turn a mount path into a dotted key segment ("/var/lib/docker" -> "var.lib.docker")."""
    return ".".join(part for part in name.split("/") if part) or "root"


def flatten_metrics(snapshot: MetricsSnapshot, key_base: str) -> list[tuple[str, float]]:
    """Flatten a snapshot into (key, value) gauges.

    Metrics absent from the snapshot produce no keys.

    Args:
        snapshot: Snapshot to flatten
        key_base: Prefix of every key, typically the node name

    Returns:
        List of (key, value) pairs in a stable order
    """
    gauges: list[tuple[str, float]] = []

    if snapshot.load is not None:
        gauges.append((f"{key_base}.cpu.load.1m", snapshot.load.one_minute))
        gauges.append((f"{key_base}.cpu.load.5m", snapshot.load.five_minutes))
        gauges.append((f"{key_base}.cpu.load.15m", snapshot.load.fifteen_minutes))

    if snapshot.cpu_average is not None:
        gauges.append((f"{key_base}.cpu_average.system", snapshot.cpu_average.system))
        gauges.append((f"{key_base}.cpu_average.user", snapshot.cpu_average.user))
        gauges.append((f"{key_base}.cpu_average.idle", snapshot.cpu_average.idle))

    if snapshot.memory is not None:
        for field in ("active", "free", "total"):
            value = getattr(snapshot.memory, field)
            if value is not None:
                gauges.append((f"{key_base}.memory.{field}", value))

    if snapshot.network is not None:
        gauges.append(
            (f"{key_base}.network.in_bytes_per_second", snapshot.network.in_bytes_per_second)
        )
        gauges.append(
            (f"{key_base}.network.out_bytes_per_second", snapshot.network.out_bytes_per_second)
        )

    gauges.append((f"{key_base}.usage.container_seconds", snapshot.usage.container_seconds))

    for fs in snapshot.filesystem:
        name = filesystem_key(fs.name)
        gauges.append((f"{key_base}.filesystem.{name}.free", fs.free))
        gauges.append((f"{key_base}.filesystem.{name}.available", fs.available))
        gauges.append((f"{key_base}.filesystem.{name}.used", fs.used))
        gauges.append((f"{key_base}.filesystem.{name}.total", fs.total))

    return gauges
