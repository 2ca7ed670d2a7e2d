"""Shared constants for the node sampler.

Centralized constants to avoid duplication and ensure consistency across modules.
"""

from __future__ import annotations

# Default publish interval in seconds
PUBLISH_INTERVAL = 60

# /proc/meminfo reports kilobytes
KILOBYTE = 1024

# ARPHRD_ETHER, as reported by /sys/class/net/<iface>/type
ETHERNET_ARP_TYPE = 1

DEFAULT_PROC_ROOT = "/proc"
DEFAULT_SYS_CLASS_NET = "/sys/class/net"
DEFAULT_FILESYSTEM_PATH = "/"
