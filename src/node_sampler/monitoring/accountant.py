"""Container runtime accounting per sampling window.

Containers are only discovered by polling "list all known containers", so the
runtime of a window is rebuilt from two sources:

- Poll-time reconciliation: every container still known to the runtime at the
  end of the window contributes the part of its run that overlaps the window.
- Event-driven accumulation: a "died" notification immediately adds the
  in-window part of the finished run to ``pending_seconds``. This covers
  containers that started and were removed between two polls.

A container settled by the event path is skipped by the next poll of the same
run, so a run is never counted twice. Both paths clip at ``window_start``,
and runs reported as ending after the window closes are split at its end,
which makes accounting window-additive: a run is split across the windows it
spans and every second lands in exactly one of them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from node_sampler.monitoring.base import ContainerObservation

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


def container_seconds(observation: ContainerObservation, since: datetime, now: datetime) -> float:
    """Seconds of ``observation``'s run that fall inside ``[since, now]``.

    Args:
        observation: Container state at poll time
        since: Start of the current window
        now: End of the current window

    Returns:
        Non-negative seconds; 0.0 when the timestamps are unusable
    """
    started_at = observation.started_at
    finished_at = observation.finished_at
    if started_at is None:
        return 0.0

    if observation.is_running:
        if started_at < since:
            # Already running when the window opened
            return max(0.0, (now - since).total_seconds())
        return max(0.0, (now - started_at).total_seconds())

    if finished_at is None or not started_at < finished_at:
        return 0.0
    # Clipped to the window on both ends; the part of a run that straddles
    # either boundary belongs to the neighbouring window
    end = min(finished_at, now)
    return max(0.0, (end - max(started_at, since)).total_seconds())


def finished_run_seconds(observation: ContainerObservation, since: datetime) -> float:
    """Seconds of a completed run that fall after ``since``.

    Used for "died" notifications, where the run is known to be over whatever
    the runtime reports for ``is_running``.
    """
    started_at = observation.started_at
    finished_at = observation.finished_at
    if started_at is None or finished_at is None or not started_at < finished_at:
        return 0.0
    return max(0.0, (finished_at - max(started_at, since)).total_seconds())


class ContainerRuntimeAccountant:
    """Accounts container-seconds of runtime for each sampling window.

    ``pending_seconds``, ``window_start`` and the set of runs settled by events
    are shared between the event listener thread and the sampling thread; a
    single lock guards all three, and ``close_window`` holds it for the whole
    reconciliation so a concurrent event is either fully in this window or
    fully in the next one.

    Example:
        ```python
        accountant = ContainerRuntimeAccountant()
        provider.on_container_died(accountant.on_container_died)
        # ... once per interval ...
        seconds = accountant.close_window(provider.list_containers())
        ```
    """

    def __init__(
        self,
        window_start: datetime | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the accountant.

        Args:
            window_start: Start of the first window (defaults to now)
            clock: Returns the current timezone-aware time
        """
        self._clock = clock
        self._window_start = window_start if window_start is not None else clock()
        self._pending_seconds = 0.0
        self._settled: dict[str, ContainerObservation] = {}
        self._lock = threading.Lock()

    @property
    def window_start(self) -> datetime:
        with self._lock:
            return self._window_start

    @property
    def pending_seconds(self) -> float:
        with self._lock:
            return self._pending_seconds

    def on_container_died(self, observation: ContainerObservation) -> None:
        """Add the in-window part of a finished run to the pending total."""
        with self._lock:
            try:
                seconds = finished_run_seconds(observation, self._window_start)
            except TypeError as e:
                # Naive and aware timestamps mixed
                logger.debug(f"Unusable timestamps for {observation.container_id[:12]}: {e}")
                return
            self._pending_seconds += seconds
            if observation.finished_at is not None:
                self._settled[observation.container_id] = observation

        logger.debug(
            f"Container {observation.container_id[:12]} died, "
            f"{seconds:.0f}s added to pending runtime"
        )

    def polled_seconds(
        self, observations: Iterable[ContainerObservation], now: datetime | None = None
    ) -> float:
        """Sum the in-window runtime of polled containers without closing the window."""
        now = now if now is not None else self._clock()
        with self._lock:
            return self._polled_seconds(observations, self._window_start, now)

    def close_window(
        self, observations: Iterable[ContainerObservation], now: datetime | None = None
    ) -> int:
        """Close the current window and return its container runtime.

        Polled runtime is computed against the old window start, pending event
        runtime is drained, and only then is the window advanced to ``now``.
        Event runtime reported past ``now`` stays pending for the next window.

        Args:
            observations: Containers listed at poll time
            now: End of the window (defaults to the clock)

        Returns:
            Whole container-seconds accounted to the closed window
        """
        now = now if now is not None else self._clock()
        with self._lock:
            since = self._window_start
            polled = self._polled_seconds(observations, since, now)
            carried = self._carried_seconds(since, now)
            carried_total = sum(carried.values())
            pending = self._pending_seconds - carried_total
            self._pending_seconds = carried_total
            self._settled = {cid: self._settled[cid] for cid in carried}
            if now > self._window_start:
                self._window_start = now

        total = polled + pending
        logger.debug(f"Window closed: {polled:.0f}s polled + {pending:.0f}s from events")
        return int(total)

    def _polled_seconds(
        self,
        observations: Iterable[ContainerObservation],
        since: datetime,
        now: datetime,
    ) -> float:
        seconds = 0.0
        for observation in observations:
            if self._is_settled(observation):
                continue
            try:
                seconds += container_seconds(observation, since, now)
            except Exception as e:
                logger.debug(f"Skipping container {observation.container_id[:12]}: {e}")
        return seconds

    def _is_settled(self, observation: ContainerObservation) -> bool:
        """Check whether the observed run was already accounted by an event.

        A container restarted after its "died" event has a newer start and is
        accounted normally.
        """
        settled = self._settled.get(observation.container_id)
        if settled is None:
            return False
        if observation.started_at is None:
            return True
        try:
            return observation.started_at <= settled.finished_at
        except TypeError:
            return True

    def _carried_seconds(self, since: datetime, now: datetime) -> dict[str, float]:
        """Event runtime of settled runs that falls after ``now``, per container."""
        carried: dict[str, float] = {}
        for container_id, settled in self._settled.items():
            try:
                start = max(settled.started_at, since, now)
                excess = (settled.finished_at - start).total_seconds()
            except TypeError:
                continue
            if excess > 0:
                carried[container_id] = excess
        return carried
