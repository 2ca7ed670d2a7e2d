"""Pydantic schemas for the node sampler.

This module defines the data contracts used throughout the sampler, including
the sampler configuration and the metrics snapshot produced once per cycle.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from node_sampler.core.constants import (
    DEFAULT_PROC_ROOT,
    DEFAULT_SYS_CLASS_NET,
    PUBLISH_INTERVAL,
)


class SamplerConfig(BaseModel):
    """Top-level sampler configuration.

    This is the main configuration loaded from YAML/JSON files.

    Attributes:
        node_name: Key prefix for exported metrics (defaults to the Docker node name)
        interval_seconds: Length of one sampling window
        filesystem_path: Path whose filesystem usage is reported
            (defaults to the Docker root dir, or "/" without Docker)
        proc_root: Root of the procfs tree to read host counters from
        sys_class_net: Directory holding per-interface sysfs attributes
        docker_enabled: Account container runtime via the Docker daemon
        output_path: Optional JSON-lines file receiving every snapshot
        log_level: Logging level for the CLI
    """

    node_name: str | None = Field(default=None, description="Metric key prefix")
    interval_seconds: int = Field(
        default=PUBLISH_INTERVAL, ge=1, le=3600, description="Sampling interval"
    )
    filesystem_path: Path | None = Field(default=None, description="Filesystem to report")
    proc_root: Path = Field(default=Path(DEFAULT_PROC_ROOT))
    sys_class_net: Path = Field(default=Path(DEFAULT_SYS_CLASS_NET))
    docker_enabled: bool = Field(default=True)
    output_path: Path | None = Field(default=None, description="JSON-lines output file")
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the logging level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


# =============================================================================
# METRICS SNAPSHOT
# =============================================================================


class MemoryStats(BaseModel):
    """Host memory quantities in bytes.

    Fields missing from the counter source stay None; ``used`` is only set
    when both ``total`` and ``free`` were found.
    """

    model_config = ConfigDict(frozen=True)

    total: int | None = Field(default=None, ge=0)
    free: int | None = Field(default=None, ge=0)
    active: int | None = Field(default=None, ge=0)
    inactive: int | None = Field(default=None, ge=0)
    cached: int | None = Field(default=None, ge=0)
    buffers: int | None = Field(default=None, ge=0)
    used: int | None = Field(default=None)


class LoadAverage(BaseModel):
    """1, 5 and 15 minute load averages."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    one_minute: float = Field(alias="1m", ge=0)
    five_minutes: float = Field(alias="5m", ge=0)
    fifteen_minutes: float = Field(alias="15m", ge=0)

    @classmethod
    def from_tuple(cls, values: tuple[float, float, float]) -> LoadAverage:
        one, five, fifteen = values
        return cls(one_minute=one, five_minutes=five, fifteen_minutes=fifteen)


class FilesystemUsage(BaseModel):
    """Usage of one filesystem in bytes."""

    model_config = ConfigDict(frozen=True)

    name: str
    free: int = Field(ge=0)
    available: int = Field(ge=0)
    used: int = Field(ge=0)
    total: int = Field(ge=0)


class CpuAverage(BaseModel):
    """CPU utilization percentages averaged across cores."""

    model_config = ConfigDict(frozen=True)

    system: float = Field(ge=0)
    user: float = Field(ge=0)
    idle: float = Field(ge=0)


class NetworkTraffic(BaseModel):
    """Throughput of the tracked network interface."""

    model_config = ConfigDict(frozen=True)

    in_bytes_per_second: float = Field(ge=0)
    out_bytes_per_second: float = Field(ge=0)


class UsageStats(BaseModel):
    """Container usage accounted for one sampling window."""

    model_config = ConfigDict(frozen=True)

    container_seconds: int = Field(default=0, ge=0)


class MetricsSnapshot(BaseModel):
    """Output of one sampling cycle.

    Metrics whose source could not be read during the cycle are None rather
    than zero, so consumers can tell "nothing happened" from "unknown".
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Node identifier")
    memory: MemoryStats | None = None
    usage: UsageStats = Field(default_factory=UsageStats)
    load: LoadAverage | None = None
    filesystem: list[FilesystemUsage] = Field(default_factory=list)
    cpu_average: CpuAverage | None = None
    network: NetworkTraffic | None = None
    time: datetime

    def to_payload(self) -> dict:
        """Convert to a JSON-compatible dict using the published key names."""
        return self.model_dump(mode="json", by_alias=True)
