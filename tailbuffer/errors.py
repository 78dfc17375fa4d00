"""Exception hierarchy shared by the tail source, poller and match buffer."""

from __future__ import annotations


class TailBufferError(Exception):
    """Base class for every error raised by tailbuffer itself.

    Failures to open the target file are *not* wrapped: they surface as the
    built-in ``OSError`` subclasses raised by ``open()``.
    """


class SourceError(TailBufferError):
    """The tailed file can no longer be read."""


class SourceClosedError(SourceError):
    """A read was attempted after the source was closed."""


class SourceTruncatedError(SourceError):
    """The file shrank below the number of bytes already delivered."""

    def __init__(self, path: str, offset: int, size: int) -> None:
        super().__init__(f"{path} truncated to {size} bytes, already read {offset}")
        self.path = path
        self.offset = offset
        self.size = size


class SourceRemovedError(SourceError):
    """The file was unlinked while it was being tailed."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path} was removed while tailing")
        self.path = path


class BufferClosedError(TailBufferError):
    """The match buffer is closed and will never grow again."""


class MatchTimeoutError(TailBufferError, TimeoutError):
    """A pattern did not appear before the deadline."""

    def __init__(self, pattern: bytes, timeout: float, unread: bytes) -> None:
        super().__init__(
            f"timed out after {timeout:g}s waiting for {pattern!r}; unread content: {unread!r}"
        )
        self.pattern = pattern
        self.timeout = timeout
        self.unread = unread
