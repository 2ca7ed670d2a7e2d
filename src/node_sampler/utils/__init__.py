"""Utils module - Shared utilities."""

from __future__ import annotations

from node_sampler.utils.logging import setup_logging

__all__ = ["setup_logging"]
