"""Append-only byte buffer with a forward-only read cursor.

`MatchBuffer` is the sink the poller writes into and the object test code
asserts against.  `say()` searches the unread region for a regular
expression and, on success, moves the cursor past the match so the next
assertion only sees later output.  `eventually_say()` and `wait_for()` poll
`say()` until it succeeds, the deadline passes, or the buffer is closed.
"""

from __future__ import annotations

import asyncio
import re
import threading
import time
from typing import Any, Optional, Pattern, Union

from .config import MatchConfig
from .errors import BufferClosedError, MatchTimeoutError

PatternLike = Union[str, bytes, Pattern[bytes]]


def _compile(pattern: PatternLike) -> Pattern[bytes]:
    if isinstance(pattern, str):
        pattern = pattern.encode("utf-8")
    if isinstance(pattern, bytes):
        return re.compile(pattern)
    if isinstance(pattern.pattern, str):
        raise TypeError("compiled patterns must be bytes patterns")
    return pattern


class MatchBuffer:
    """Thread-safe byte sink supporting sequential pattern matching.

    One thread writes while any number of threads match; every access to
    the contents and the cursor happens under a single lock.
    """

    def __init__(self, config: Optional[MatchConfig] = None) -> None:
        self._cfg = config or MatchConfig()
        self._data = bytearray()
        self._cursor = 0
        self._closed = False
        self._lock = threading.Lock()

    # ── writing ────────────────────────────────────────────────

    def write(self, data: bytes) -> int:
        """Append *data* atomically and return the number of bytes written."""
        with self._lock:
            if self._closed:
                raise BufferClosedError("attempt to write to a closed buffer")
            self._data.extend(data)
            return len(data)

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    # ── reading ────────────────────────────────────────────────

    def contents(self) -> bytes:
        """Return everything written so far, matched or not."""
        with self._lock:
            return bytes(self._data)

    def unread(self) -> bytes:
        """Return the bytes after the read cursor."""
        with self._lock:
            return bytes(self._data[self._cursor:])

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def say(self, pattern: PatternLike) -> Optional["re.Match[bytes]"]:
        """Search the unread region for *pattern*.

        On a match the cursor advances to the end of it and the match object
        is returned (offsets are relative to the start of the buffer, and
        groups come back as ``bytearray`` slices, which compare equal to
        ``bytes``).  Returns ``None`` and leaves the cursor untouched
        otherwise.
        """
        regex = _compile(pattern)
        with self._lock:
            return self._say_locked(regex)

    def _say_locked(self, regex: Pattern[bytes]) -> Optional["re.Match[bytes]"]:
        match = regex.search(self._data, self._cursor)
        if match is not None:
            self._cursor = match.end()
        return match

    def _attempt(self, regex: Pattern[bytes]) -> tuple:
        # (match, closed) read under one lock so a close cannot slip between them
        with self._lock:
            return self._say_locked(regex), self._closed

    # ── waiting ────────────────────────────────────────────────

    def eventually_say(
        self,
        pattern: PatternLike,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> "re.Match[bytes]":
        """Block until *pattern* appears in the unread region.

        Raises `MatchTimeoutError` once *timeout* seconds pass, or
        `BufferClosedError` as soon as the buffer is closed without a match.
        """
        regex = _compile(pattern)
        timeout = self._cfg.timeout if timeout is None else timeout
        interval = self._cfg.interval if interval is None else interval
        deadline = time.monotonic() + timeout

        while True:
            match, closed = self._attempt(regex)
            if match is not None:
                return match
            if closed:
                raise BufferClosedError(f"buffer closed before {regex.pattern!r} appeared")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise MatchTimeoutError(regex.pattern, timeout, self.unread())
            time.sleep(min(interval, remaining))

    async def wait_for(
        self,
        pattern: PatternLike,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> "re.Match[bytes]":
        """Async variant of `eventually_say` that yields to the event loop."""
        regex = _compile(pattern)
        timeout = self._cfg.timeout if timeout is None else timeout
        interval = self._cfg.interval if interval is None else interval
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            match, closed = self._attempt(regex)
            if match is not None:
                return match
            if closed:
                raise BufferClosedError(f"buffer closed before {regex.pattern!r} appeared")
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise MatchTimeoutError(regex.pattern, timeout, self.unread())
            await asyncio.sleep(min(interval, remaining))

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"<MatchBuffer size={len(self._data)} cursor={self._cursor}"
                f"{' closed' if self._closed else ''}>"
            )


# ── buffer providers ───────────────────────────────────────────


def as_match_buffer(target: Any) -> MatchBuffer:
    """Return *target* itself, or ``target.buffer()`` for buffer providers."""
    if isinstance(target, MatchBuffer):
        return target
    provider = getattr(target, "buffer", None)
    if callable(provider):
        buf = provider()
        if isinstance(buf, MatchBuffer):
            return buf
    raise TypeError(f"{type(target).__name__} is neither a MatchBuffer nor a buffer provider")


def say(target: Any, pattern: PatternLike) -> Optional["re.Match[bytes]"]:
    return as_match_buffer(target).say(pattern)


def eventually_say(
    target: Any,
    pattern: PatternLike,
    timeout: Optional[float] = None,
    interval: Optional[float] = None,
) -> "re.Match[bytes]":
    return as_match_buffer(target).eventually_say(pattern, timeout=timeout, interval=interval)
