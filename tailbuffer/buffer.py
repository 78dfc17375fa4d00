"""`FileBuffer`: a match buffer that fills itself from a growing file.

Typical use in a test::

    with new_buffer(log_path) as out:
        start_subprocess(log_path)
        out.eventually_say("listening on port")
        out.eventually_say("ready")

Closing stops the tail but keeps everything already read matchable.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import BufferConfig
from .match_buffer import MatchBuffer, PatternLike
from .poller import Poller
from .source import TailSource

logger = logging.getLogger(__name__)


class BufferState(Enum):
    CREATED = "CREATED"
    RUNNING = "RUNNING"
    CLOSED = "CLOSED"


class FileBuffer:
    """Tails *path* on a background thread into a `MatchBuffer`.

    The file is opened before anything else happens: if that fails the OS
    error propagates and no thread is started.
    """

    def __init__(self, path: str | Path, config: Optional[BufferConfig] = None) -> None:
        self._cfg = config or BufferConfig()
        self._state = BufferState.CREATED
        self._close_lock = threading.Lock()

        self._source = TailSource.open(path, chunk_size=self._cfg.poller.chunk_size)
        try:
            self._buffer = MatchBuffer(self._cfg.match)
            self._poller = Poller(self._source, self._buffer, interval=self._cfg.poller.poll_interval)
            self._poller.start()
        except BaseException:
            self._source.close()
            raise
        self._state = BufferState.RUNNING

    @property
    def path(self) -> str:
        return self._source.path

    @property
    def state(self) -> BufferState:
        with self._close_lock:
            return self._state

    @property
    def running(self) -> bool:
        """True while the background tail is still polling."""
        return self._poller.running

    @property
    def error(self) -> Optional[BaseException]:
        """The error that ended the tail early, if any."""
        return self._poller.error

    def buffer(self) -> MatchBuffer:
        return self._buffer

    def close(self) -> None:
        """Stop tailing and release the file.

        Idempotent and safe to call from several threads at once.  Blocks
        until the poll loop has acknowledged the stop, which takes at most
        one poll interval plus one read.
        """
        self._poller.stop()
        self._poller.wait()

        with self._close_lock:
            if self._state is BufferState.CLOSED:
                return
            try:
                self._source.close()
            finally:
                self._buffer.close()
                self._state = BufferState.CLOSED
        logger.debug("Closed buffer for %s", self.path)

    # ── matching shortcuts ─────────────────────────────────────

    def say(self, pattern: PatternLike):
        return self._buffer.say(pattern)

    def eventually_say(
        self,
        pattern: PatternLike,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
    ):
        return self._buffer.eventually_say(pattern, timeout=timeout, interval=interval)

    def __enter__(self) -> "FileBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<FileBuffer {self.path!r} {self.state.value}>"


def new_buffer(path: str | Path, config: Optional[BufferConfig] = None) -> FileBuffer:
    """Open *path* and start tailing it; see `FileBuffer`."""
    return FileBuffer(path, config)
