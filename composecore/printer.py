"""Collects container events and passes their logs to a consumer."""

from __future__ import annotations

import abc
import logging
import queue
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable

logger = logging.getLogger(__name__)


class ContainerEventType(Enum):
    """Kinds of events a LogPrinter receives."""

    ATTACH = auto()
    EXIT = auto()
    STOPPED = auto()
    LOG = auto()
    USER_CANCEL = auto()


@dataclass
class ContainerEvent:
    """Something that happened to a container of the project."""

    type: ContainerEventType
    container: str = ""
    service: str = ""
    line: str = ""
    exit_code: int = 0
    restarting: bool = False


class LogConsumer(abc.ABC):
    """Receiver of container logs and status messages."""

    @abc.abstractmethod
    def log(self, container: str, service: str, message: str) -> None:
        """Handle one log line of a container."""

    @abc.abstractmethod
    def status(self, container: str, message: str) -> None:
        """Handle a status message about a container."""

    @abc.abstractmethod
    def register(self, container: str) -> None:
        """Note that a container is now followed."""


class LogPrinter:
    """Watches the project's containers and forwards their logs."""

    def __init__(self, consumer: LogConsumer) -> None:
        self.consumer = consumer
        self._queue: queue.Queue[ContainerEvent] = queue.Queue()

    def handle_event(self, event: ContainerEvent) -> None:
        """Queue an event for ``run`` to process."""
        self._queue.put(event)

    def cancel(self) -> None:
        """Ask ``run`` to stop forwarding logs."""
        self._queue.put(ContainerEvent(type=ContainerEventType.USER_CANCEL))

    def run(
        self,
        cascade_stop: bool = False,
        exit_code_from: str = "",
        stop_fn: Callable[[], object] | None = None,
        timeout: float | None = None,
    ) -> int:
        """Process events until the last attached container terminates.

        Returns the exit code selected by ``exit_code_from`` when
        ``cascade_stop`` is set, otherwise 0. Raises TimeoutError once
        ``timeout`` seconds have passed without finishing.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        aborting = False
        exit_code = 0
        containers: set[str] = set()
        while True:
            try:
                if deadline is None:
                    event = self._queue.get()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise queue.Empty
                    event = self._queue.get(timeout=remaining)
            except queue.Empty:
                raise TimeoutError("log printer timed out") from None

            container = event.container
            if event.type is ContainerEventType.USER_CANCEL:
                aborting = True
            elif event.type is ContainerEventType.ATTACH:
                if container in containers:
                    continue
                containers.add(container)
                self.consumer.register(container)
            elif event.type in (ContainerEventType.EXIT, ContainerEventType.STOPPED):
                if not event.restarting:
                    containers.discard(container)
                if not aborting:
                    self.consumer.status(container, f"exited with code {event.exit_code}")
                if cascade_stop:
                    if not aborting:
                        aborting = True
                        print("Aborting on container exit...")
                        if stop_fn is not None:
                            stop_fn()
                    if not exit_code_from:
                        exit_code_from = event.service
                    if exit_code_from == event.service:
                        logger.error("%d", event.exit_code)
                        exit_code = event.exit_code
                if not containers:
                    return exit_code
            elif event.type is ContainerEventType.LOG:
                if not aborting:
                    self.consumer.log(container, event.service, event.line)