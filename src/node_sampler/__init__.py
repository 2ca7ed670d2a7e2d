"""Node sampler - periodic host and container telemetry."""

from __future__ import annotations

from node_sampler.core.schemas import (
    CpuAverage,
    MetricsSnapshot,
    NetworkTraffic,
    SamplerConfig,
)
from node_sampler.sampler import Sampler

__version__ = "0.1.0"

__all__ = [
    "CpuAverage",
    "MetricsSnapshot",
    "NetworkTraffic",
    "Sampler",
    "SamplerConfig",
    "__version__",
]
