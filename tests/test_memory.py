"""Tests for the memory snapshot parser."""

from node_sampler.monitoring.memory import parse_memory_counters

MEMINFO = """\
MemTotal:       16318576 kB
MemFree:         1371012 kB
MemAvailable:    9423144 kB
Buffers:          402220 kB
Cached:          7412956 kB
SwapCached:            0 kB
Active:          7780192 kB
Inactive:        5840232 kB
Active(anon):    5342268 kB
HugePages_Total:       0
"""


class TestParseMemoryCounters:
    """Tests for parse_memory_counters."""

    def test_minimal(self):
        """Test total/free are converted to bytes and used is derived."""
        memory = parse_memory_counters(["MemTotal: 1024 kB", "MemFree: 512 kB"])

        assert memory.total == 1048576
        assert memory.free == 524288
        assert memory.used == 524288

    def test_full_meminfo(self):
        """Test every recognized key of a real meminfo file."""
        memory = parse_memory_counters(MEMINFO.splitlines())

        assert memory.total == 16318576 * 1024
        assert memory.free == 1371012 * 1024
        assert memory.buffers == 402220 * 1024
        assert memory.cached == 7412956 * 1024
        assert memory.active == 7780192 * 1024
        assert memory.inactive == 5840232 * 1024
        assert memory.used == (16318576 - 1371012) * 1024

    def test_missing_keys_stay_absent(self):
        """Test missing keys are None, not zero."""
        memory = parse_memory_counters(["MemTotal: 2048 kB", "Cached: 10 kB"])

        assert memory.total == 2048 * 1024
        assert memory.free is None
        assert memory.active is None
        assert memory.used is None

    def test_garbage_is_ignored(self):
        """Test malformed and unknown lines are skipped."""
        memory = parse_memory_counters(["", "not a counter", "MemFree: lots kB", "Bogus: 1 kB"])

        assert memory.model_dump() == {
            "total": None,
            "free": None,
            "active": None,
            "inactive": None,
            "cached": None,
            "buffers": None,
            "used": None,
        }
