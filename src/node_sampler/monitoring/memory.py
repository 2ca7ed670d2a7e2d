"""Parse meminfo-style counters into named byte quantities."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from node_sampler.core.constants import KILOBYTE
from node_sampler.core.schemas import MemoryStats

logger = logging.getLogger(__name__)

# meminfo key -> MemoryStats field
MEMINFO_FIELDS = {
    "MemTotal": "total",
    "MemFree": "free",
    "Active": "active",
    "Inactive": "inactive",
    "Cached": "cached",
    "Buffers": "buffers",
}

_MEMINFO_LINE = re.compile(r"^(\w+):\s+(\d+)\s+kB\s*$")


def parse_memory_counters(lines: Iterable[str]) -> MemoryStats:
    """Reduce meminfo lines to a MemoryStats.

    Format:
        MemTotal:       16318576 kB
        MemFree:         1371012 kB
        ...

    Args:
        lines: Raw counter lines

    Returns:
        MemoryStats in bytes. Unrecognized or malformed lines are ignored and
        missing keys stay None; ``used`` is omitted unless both total and free
        were present.
    """
    values: dict[str, int] = {}
    for line in lines:
        match = _MEMINFO_LINE.match(line.strip())
        if match is None:
            continue
        key, amount = match.groups()
        field = MEMINFO_FIELDS.get(key)
        if field is not None:
            values[field] = int(amount) * KILOBYTE

    if "total" in values and "free" in values:
        values["used"] = values["total"] - values["free"]
    else:
        logger.debug("MemTotal or MemFree missing, omitting used memory")

    return MemoryStats(**values)
