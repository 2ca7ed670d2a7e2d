"""Tests for the container runtime accountant."""

import threading
from datetime import UTC, datetime, timedelta

import pytest

from node_sampler.monitoring.accountant import (
    ContainerRuntimeAccountant,
    container_seconds,
    finished_run_seconds,
)
from node_sampler.monitoring.base import ContainerObservation

W0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


def at(seconds: float) -> datetime:
    """Time ``seconds`` after W0."""
    return W0 + timedelta(seconds=seconds)


def running(cid: str, started: float) -> ContainerObservation:
    return ContainerObservation(cid, started_at=at(started), finished_at=None, is_running=True)


def exited(cid: str, started: float, finished: float) -> ContainerObservation:
    return ContainerObservation(cid, started_at=at(started), finished_at=at(finished), is_running=False)


class TestContainerSeconds:
    """Tests for the per-container window rule."""

    def test_running_since_before_window(self):
        """Test a container running before the window counts the whole window."""
        assert container_seconds(running("a", -500), since=W0, now=at(60)) == 60

    def test_running_started_inside_window(self):
        """Test a container started inside the window counts from its start."""
        assert container_seconds(running("a", 20), since=W0, now=at(60)) == 40

    def test_exited_inside_window(self):
        """Test a run fully inside the window counts its whole length."""
        assert container_seconds(exited("a", 10, 25), since=W0, now=at(60)) == 15

    def test_exited_straddling_window_start(self):
        """Test a run that began before the window counts from the window start."""
        assert container_seconds(exited("a", -100, 30), since=W0, now=at(60)) == 30

    def test_exited_before_window(self):
        """Test a run that ended before the window contributes nothing."""
        assert container_seconds(exited("a", -100, -10), since=W0, now=at(60)) == 0

    def test_exited_after_window_end(self):
        """Test a run reported as ending after the window closes is cut at its end."""
        assert container_seconds(exited("a", 10, 62), since=W0, now=at(60)) == 50
        assert container_seconds(exited("a", 65, 70), since=W0, now=at(60)) == 0

    def test_unordered_run(self):
        """Test a run whose finish precedes its start contributes nothing."""
        assert container_seconds(exited("a", 30, 10), since=W0, now=at(60)) == 0

    def test_missing_timestamps(self):
        """Test unusable timestamps contribute nothing."""
        no_start = ContainerObservation("a", started_at=None, finished_at=at(5), is_running=False)
        no_finish = ContainerObservation("b", started_at=at(5), finished_at=None, is_running=False)

        assert container_seconds(no_start, since=W0, now=at(60)) == 0
        assert container_seconds(no_finish, since=W0, now=at(60)) == 0

    def test_finished_run_is_clipped_at_window_start(self):
        """Test the event rule only counts time after the window start."""
        assert finished_run_seconds(exited("a", 10, 40), since=W0) == 30
        assert finished_run_seconds(exited("a", -50, 40), since=W0) == 40
        assert finished_run_seconds(exited("a", -50, -5), since=W0) == 0


class TestContainerRuntimeAccountant:
    """Tests for ContainerRuntimeAccountant."""

    def test_run_inside_window_counted_once(self):
        """Test a run inside [W0, W1] counts T1 - T0 there and nothing later."""
        accountant = ContainerRuntimeAccountant(window_start=W0)
        observation = exited("a", 10, 35)

        assert accountant.close_window([observation], now=at(60)) == 25
        # Still listed by the runtime in the next window
        assert accountant.close_window([observation], now=at(120)) == 0

    def test_running_across_two_windows(self):
        """Test a long-running container splits its time across windows."""
        accountant = ContainerRuntimeAccountant(window_start=W0)
        observation = running("a", -30)

        first = accountant.close_window([observation], now=at(60))
        second = accountant.close_window([observation], now=at(100))

        assert first == 60
        assert second == 40
        assert first + second + 30 == (at(100) - at(-30)).total_seconds()

    def test_window_start_advances(self):
        """Test the window moves forward on close and never backwards."""
        accountant = ContainerRuntimeAccountant(window_start=W0)

        accountant.close_window([], now=at(60))
        assert accountant.window_start == at(60)

        accountant.close_window([], now=at(30))
        assert accountant.window_start == at(60)

    def test_pending_drained_once(self):
        """Test event runtime is reported once and the accumulator resets."""
        accountant = ContainerRuntimeAccountant(window_start=W0)

        accountant.on_container_died(exited("a", 5, 20))
        assert accountant.pending_seconds == 15

        assert accountant.close_window([], now=at(60)) == 15
        assert accountant.pending_seconds == 0
        assert accountant.close_window([], now=at(120)) == 0

    def test_events_accumulate(self):
        """Test several deaths in one window add up."""
        accountant = ContainerRuntimeAccountant(window_start=W0)

        accountant.on_container_died(exited("a", 1, 11))
        accountant.on_container_died(exited("b", 2, 22))
        accountant.on_container_died(exited("c", 3, 33))

        assert accountant.close_window([], now=at(60)) == 10 + 20 + 30

    def test_event_and_poll_do_not_double_count(self):
        """Test a died container still listed at poll time is counted once."""
        accountant = ContainerRuntimeAccountant(window_start=W0)
        observation = exited("a", 10, 40)

        accountant.on_container_died(observation)

        assert accountant.close_window([observation], now=at(60)) == 30

    def test_stale_running_observation_after_event(self):
        """Test a poll listing a container as running after its death event is ignored."""
        accountant = ContainerRuntimeAccountant(window_start=W0)

        accountant.on_container_died(exited("a", 10, 40))

        assert accountant.close_window([running("a", 10)], now=at(60)) == 30

    def test_restart_after_event_is_counted(self):
        """Test a container restarted after dying counts both runs."""
        accountant = ContainerRuntimeAccountant(window_start=W0)

        accountant.on_container_died(exited("a", 10, 20))

        assert accountant.close_window([running("a", 50)], now=at(60)) == 10 + 10

    def test_event_for_run_straddling_window(self):
        """Test a death event only adds the part of the run inside the window."""
        accountant = ContainerRuntimeAccountant(window_start=W0)
        observation = running("a", -30)

        assert accountant.close_window([observation], now=at(60)) == 60

        accountant.on_container_died(exited("a", -30, 75))
        assert accountant.close_window([], now=at(120)) == 15

    def test_poll_of_run_ending_after_close_is_split(self):
        """Test a run seen finished past the window end is split across windows."""
        accountant = ContainerRuntimeAccountant(window_start=W0)
        observation = exited("a", 10, 62)

        first = accountant.close_window([observation], now=at(60))
        second = accountant.close_window([observation], now=at(120))

        assert (first, second) == (50, 2)
        assert first + second == 52

    def test_event_for_run_ending_after_close_is_carried(self):
        """Test event runtime past the window end is reported in the next window."""
        accountant = ContainerRuntimeAccountant(window_start=W0)
        observation = exited("a", 10, 62)

        accountant.on_container_died(observation)
        first = accountant.close_window([observation], now=at(60))
        assert accountant.pending_seconds == 2
        second = accountant.close_window([observation], now=at(120))

        assert (first, second) == (50, 2)
        assert accountant.pending_seconds == 0
        assert accountant.close_window([observation], now=at(180)) == 0

    def test_failing_observation_is_skipped(self):
        """Test one bad observation does not abort the pass."""
        accountant = ContainerRuntimeAccountant(window_start=W0)
        naive = ContainerObservation(
            "bad", started_at=datetime(2024, 5, 1, 12, 0, 10), finished_at=None, is_running=True
        )

        assert accountant.close_window([naive, exited("a", 10, 30)], now=at(60)) == 20

    def test_default_clock(self):
        """Test the injected clock supplies window bounds."""
        times = iter([W0, at(45)])
        accountant = ContainerRuntimeAccountant(clock=lambda: next(times))

        assert accountant.window_start == W0
        assert accountant.close_window([running("a", -10)]) == 45

    def test_polled_seconds_leaves_window_open(self):
        """Test polled_seconds does not advance the window."""
        accountant = ContainerRuntimeAccountant(window_start=W0)

        assert accountant.polled_seconds([running("a", 15)], now=at(60)) == 45
        assert accountant.window_start == W0

    def test_concurrent_events_are_not_lost(self):
        """Test events racing with window closes are all accounted."""
        accountant = ContainerRuntimeAccountant(window_start=W0)
        durations = list(range(1, 201))
        closes: list[int] = []
        start = threading.Barrier(2)

        def fire_events() -> None:
            start.wait()
            for i, d in enumerate(durations):
                # Runs end after every close but the last, so they are carried
                accountant.on_container_died(exited(f"c{i}", 10_000, 10_000 + d))

        def close_windows() -> None:
            start.wait()
            for i in range(50):
                closes.append(accountant.close_window([], now=at(i + 1)))

        threads = [threading.Thread(target=fire_events), threading.Thread(target=close_windows)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        closes.append(accountant.close_window([], now=at(20_000)))
        assert sum(closes) == sum(durations)


@pytest.mark.parametrize(
    "observation,expected",
    [
        (running("a", -10), 60),
        (running("a", 0), 60),
        (exited("a", 0, 30), 30),
        (exited("a", -1, 30), 30),
    ],
)
def test_window_boundaries(observation, expected):
    """Test starts exactly at the window start."""
    assert container_seconds(observation, since=W0, now=at(60)) == expected
