"""Background poll loop that copies new file bytes into a sink."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional, Protocol

from .config import DEFAULT_POLL_INTERVAL
from .source import TailSource

logger = logging.getLogger(__name__)


class Sink(Protocol):
    def write(self, data: bytes) -> int: ...


class PollerState(Enum):
    CREATED = "CREATED"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"


class Poller:
    """Runs one daemon thread that polls a `TailSource` every *interval*.

    Shutdown is a handshake: `stop` sets the cancellation event, and the
    thread sets the ``stopped`` event on its way out, whatever the reason it
    exits.  Callers that own the source must `wait` for that acknowledgment
    before closing it.  State transitions happen under ``_lock`` so that
    both halves of the handshake run exactly once.
    """

    def __init__(self, source: TailSource, sink: Sink, *, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self._source = source
        self._sink = sink
        self.interval = interval

        self._state = PollerState.CREATED
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.error: Optional[BaseException] = None
        self.bytes_forwarded = 0

    @property
    def state(self) -> PollerState:
        with self._lock:
            return self._state

    @property
    def running(self) -> bool:
        return self.state is PollerState.RUNNING

    def start(self) -> None:
        with self._lock:
            if self._state is not PollerState.CREATED:
                raise RuntimeError(f"poller already {self._state.value.lower()}")
            self._state = PollerState.RUNNING
            self._thread = threading.Thread(
                target=self._run, name=f"tailbuffer-poller:{self._source.path}", daemon=True
            )
        self._thread.start()
        logger.info("Tailing file: %s", self._source.path)

    def stop(self) -> None:
        """Request shutdown.  Non-blocking and safe to call repeatedly."""
        with self._lock:
            if self._state is PollerState.RUNNING:
                self._state = PollerState.STOPPING
                self._cancel.set()
            elif self._state is PollerState.CREATED:
                # never started: nothing to wait for
                self._state = PollerState.STOPPED
                self._stopped.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop has exited.  Returns False on timeout."""
        return self._stopped.wait(timeout)

    def _run(self) -> None:
        try:
            while not self._cancel.wait(self.interval):
                if not self._poll():
                    break
        finally:
            with self._lock:
                self._state = PollerState.STOPPED
                self._stopped.set()
            logger.info("Stopped tailing %s after %d bytes", self._source.path, self.bytes_forwarded)

    def _poll(self) -> bool:
        """Forward one chunk; return False when the tail must end."""
        try:
            data = self._source.read_new_bytes()
            if data:
                self._sink.write(data)
        except Exception as exc:
            self.error = exc
            logger.warning("Tail of %s terminated: %s", self._source.path, exc)
            return False
        if data:
            self.bytes_forwarded += len(data)
            logger.debug("Forwarded %d bytes from %s (offset %d)", len(data), self._source.path, self._source.offset)
        return True
