"""Container lifecycle provider backed by the Docker Engine API.

Polls container state with ``containers.list`` and streams "die" events on a
background thread, feeding them to a registered callback.
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import docker
from docker.errors import DockerException, NotFound

from node_sampler.monitoring.base import ContainerObservation, ContainerProvider, DiedCallback

if TYPE_CHECKING:
    from docker.models.containers import Container

logger = logging.getLogger(__name__)

# RFC 3339 with up to nanosecond precision, as emitted by the Docker daemon
_DOCKER_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)

# Delay before re-subscribing after the event stream breaks
EVENT_RETRY_SECONDS = 5.0


def parse_docker_timestamp(value: str | None) -> datetime | None:
    """Parse a Docker state timestamp into an aware UTC datetime.

    Returns None for empty or malformed values and for the zero time
    ("0001-01-01T00:00:00Z") Docker reports for containers that never
    started or never finished.
    """
    if not value:
        return None

    match = _DOCKER_TIMESTAMP.match(value.strip())
    if match is None:
        logger.debug(f"Unparseable Docker timestamp: {value!r}")
        return None

    base, fraction, offset = match.groups()
    # datetime only holds microseconds
    micros = (fraction or "")[:6].ljust(6, "0")
    if offset == "Z":
        offset = "+00:00"

    try:
        parsed = datetime.fromisoformat(f"{base}.{micros}{offset}").astimezone(UTC)
    except ValueError as e:
        logger.debug(f"Invalid Docker timestamp {value!r}: {e}")
        return None

    if parsed.year <= 1:
        return None
    return parsed


def observation_from_attrs(container_id: str, attrs: dict[str, Any]) -> ContainerObservation:
    """Build a ContainerObservation from ``docker inspect`` attributes."""
    state = attrs.get("State") or {}
    return ContainerObservation(
        container_id=container_id,
        started_at=parse_docker_timestamp(state.get("StartedAt")),
        finished_at=parse_docker_timestamp(state.get("FinishedAt")),
        is_running=bool(state.get("Running", False)),
    )


class DockerContainerProvider(ContainerProvider):
    """ContainerProvider implementation using the docker SDK.

    Example:
        ```python
        provider = DockerContainerProvider()
        provider.on_container_died(accountant.on_container_died)
        observations = provider.list_containers()
        provider.close()
        ```
    """

    def __init__(self, client: docker.DockerClient | None = None) -> None:
        """Initialize the provider.

        Args:
            client: Docker client (defaults to ``docker.from_env()``)
        """
        self._client = client if client is not None else docker.from_env()
        self._info: dict[str, Any] | None = None
        self._callbacks: list[DiedCallback] = []
        self._closed = threading.Event()
        self._thread: threading.Thread | None = None
        self._stream: Any = None
        self._lock = threading.Lock()

    @staticmethod
    def is_available() -> bool:
        """Check if the Docker daemon is reachable."""
        try:
            client = docker.from_env()
            client.ping()
            return True
        except Exception:
            return False

    def info(self) -> dict[str, Any]:
        """Return (and cache) the daemon's ``docker info`` payload."""
        if self._info is None:
            self._info = self._client.info()
        return self._info

    @property
    def node_id(self) -> str | None:
        return self.info().get("ID")

    @property
    def node_name(self) -> str | None:
        return self.info().get("Name")

    @property
    def docker_root_dir(self) -> str | None:
        return self.info().get("DockerRootDir")

    def list_containers(self) -> list[ContainerObservation]:
        """List running and exited containers still known to the daemon."""
        observations: list[ContainerObservation] = []
        containers: list[Container] = self._client.containers.list(all=True, ignore_removed=True)
        for container in containers:
            try:
                observations.append(observation_from_attrs(container.id, container.attrs))
            except Exception as e:
                logger.debug(f"Skipping container {container.short_id}: {e}")
        return observations

    def on_container_died(self, callback: DiedCallback) -> None:
        """Register ``callback`` and start the event listener thread if needed."""
        with self._lock:
            self._callbacks.append(callback)
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._event_loop, name="docker-events", daemon=True
                )
                self._thread.start()
                logger.debug("Started Docker event listener")

    def close(self) -> None:
        """Stop the event listener."""
        self._closed.set()
        stream = self._stream
        if stream is not None:
            try:
                stream.close()
            except Exception as e:
                logger.debug(f"Error closing event stream: {e}")
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _event_loop(self) -> None:
        """Background loop consuming "die" events, re-subscribing on errors."""
        while not self._closed.is_set():
            try:
                self._stream = self._client.events(
                    decode=True, filters={"type": "container", "event": "die"}
                )
                for event in self._stream:
                    if self._closed.is_set():
                        break
                    self._handle_event(event)
            except Exception as e:
                if self._closed.is_set():
                    break
                logger.warning(f"Docker event stream failed: {e}")
            self._closed.wait(EVENT_RETRY_SECONDS)

    def _handle_event(self, event: dict[str, Any]) -> None:
        container_id = event.get("id") or (event.get("Actor") or {}).get("ID")
        if not container_id:
            return

        try:
            container = self._client.containers.get(container_id)
        except NotFound:
            # Removed together with its exit (e.g. --rm); nothing left to inspect
            logger.debug(f"Container {container_id[:12]} vanished before inspection")
            return
        except DockerException as e:
            logger.debug(f"Could not inspect container {container_id[:12]}: {e}")
            return

        observation = observation_from_attrs(container_id, container.attrs)
        for callback in list(self._callbacks):
            try:
                callback(observation)
            except Exception:
                logger.exception(f"Died callback failed for {container_id[:12]}")
