"""Tests for publish/export sinks."""

import json
import logging
from datetime import UTC, datetime

from node_sampler.core.schemas import (
    CpuAverage,
    FilesystemUsage,
    LoadAverage,
    MemoryStats,
    MetricsSnapshot,
    NetworkTraffic,
    UsageStats,
)
from node_sampler.sinks import (
    JsonLinesPublisher,
    LoggingPublisher,
    filesystem_key,
    flatten_metrics,
)


def make_snapshot(**overrides) -> MetricsSnapshot:
    data = {
        "id": "NODE",
        "memory": MemoryStats(total=2048, free=1024, active=512, used=1024),
        "usage": UsageStats(container_seconds=42),
        "load": LoadAverage(one_minute=1.0, five_minutes=0.5, fifteen_minutes=0.25),
        "filesystem": [
            FilesystemUsage(name="/var/lib/docker", free=4, available=3, used=6, total=10)
        ],
        "cpu_average": CpuAverage(system=10.0, user=20.0, idle=70.0),
        "network": NetworkTraffic(in_bytes_per_second=100.0, out_bytes_per_second=50.0),
        "time": datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
    }
    data.update(overrides)
    return MetricsSnapshot(**data)


class TestFlattenMetrics:
    """Tests for flatten_metrics."""

    def test_keys(self):
        """Test the full key set of a complete snapshot."""
        gauges = dict(flatten_metrics(make_snapshot(), "node-1"))

        assert gauges == {
            "node-1.cpu.load.1m": 1.0,
            "node-1.cpu.load.5m": 0.5,
            "node-1.cpu.load.15m": 0.25,
            "node-1.cpu_average.system": 10.0,
            "node-1.cpu_average.user": 20.0,
            "node-1.cpu_average.idle": 70.0,
            "node-1.memory.active": 512,
            "node-1.memory.free": 1024,
            "node-1.memory.total": 2048,
            "node-1.network.in_bytes_per_second": 100.0,
            "node-1.network.out_bytes_per_second": 50.0,
            "node-1.usage.container_seconds": 42,
            "node-1.filesystem.var.lib.docker.free": 4,
            "node-1.filesystem.var.lib.docker.available": 3,
            "node-1.filesystem.var.lib.docker.used": 6,
            "node-1.filesystem.var.lib.docker.total": 10,
        }

    def test_absent_metrics_have_no_keys(self):
        """Test omitted metrics are not exported as zeros."""
        snapshot = make_snapshot(network=None, cpu_average=None, load=None, memory=None)

        keys = [key for key, _ in flatten_metrics(snapshot, "n")]

        assert not any(".network." in k or ".cpu" in k or ".memory." in k for k in keys)
        assert "n.usage.container_seconds" in keys

    def test_filesystem_key(self):
        assert filesystem_key("/var/lib/docker") == "var.lib.docker"
        assert filesystem_key("/") == "root"


class TestPublishers:
    """Tests for the bundled publishers."""

    def test_json_lines(self, tmp_path):
        """Test one JSON object is appended per snapshot."""
        path = tmp_path / "out" / "stats.jsonl"
        publisher = JsonLinesPublisher(path)

        publisher.publish(make_snapshot())
        publisher.publish(make_snapshot(usage=UsageStats(container_seconds=7)))

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["load"] == {"1m": 1.0, "5m": 0.5, "15m": 0.25}
        assert first["usage"]["container_seconds"] == 42
        assert json.loads(lines[1])["usage"]["container_seconds"] == 7

    def test_logging_publisher(self, caplog):
        with caplog.at_level(logging.INFO, logger="node_sampler.sinks"):
            LoggingPublisher().publish(make_snapshot())

        assert "Node stats" in caplog.text
        assert '"container_seconds": 42' in caplog.text
