"""Core module - configuration and schemas."""

from __future__ import annotations

from node_sampler.core.config import load_config
from node_sampler.core.constants import KILOBYTE, PUBLISH_INTERVAL
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

__all__ = [
    "KILOBYTE",
    "PUBLISH_INTERVAL",
    "CpuAverage",
    "FilesystemUsage",
    "LoadAverage",
    "load_config",
    "MemoryStats",
    "MetricsSnapshot",
    "NetworkTraffic",
    "SamplerConfig",
    "UsageStats",
]
