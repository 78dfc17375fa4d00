"""Offset-tracked reads of a file that another process appends to."""

from __future__ import annotations

import errno
import logging
import os
import threading
from pathlib import Path
from typing import BinaryIO, Optional

from .config import DEFAULT_CHUNK_SIZE
from .errors import SourceClosedError, SourceRemovedError, SourceTruncatedError

logger = logging.getLogger(__name__)


class TailSource:
    """Owns a read handle on *path* and the offset of the first unread byte.

    Every read seeks to the stored offset explicitly rather than trusting the
    handle's own position, so "nothing new" is simply an empty read at an
    unchanged offset.  Only the poller thread calls `read_new_bytes`; the
    offset therefore needs no lock.  `close` may race between caller threads
    and is guarded.
    """

    def __init__(self, path: str | Path, handle: BinaryIO, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size!r}")
        self.path = str(path)
        self.chunk_size = chunk_size
        self._handle: Optional[BinaryIO] = handle
        self._offset = 0
        self._close_lock = threading.Lock()

    @classmethod
    def open(cls, path: str | Path, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> "TailSource":
        """Open *path* read-only; OS errors propagate unchanged."""
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size!r}")
        handle = open(path, "rb", buffering=0)
        try:
            source = cls(path, handle, chunk_size=chunk_size)
        except BaseException:
            handle.close()
            raise
        logger.debug("Opened %s for tailing", path)
        return source

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def closed(self) -> bool:
        return self._handle is None

    def read_new_bytes(self) -> bytes:
        """Return up to ``chunk_size`` bytes appended since the last read.

        An empty result means the file has not grown.  Truncation below the
        current offset and removal of the file are reported as errors.
        """
        handle = self._handle
        if handle is None:
            raise SourceClosedError(f"{self.path} is closed")

        st = os.fstat(handle.fileno())
        if st.st_size < self._offset:
            raise SourceTruncatedError(self.path, self._offset, st.st_size)
        if st.st_nlink == 0:
            raise SourceRemovedError(self.path)
        if st.st_size == self._offset:
            return b""

        handle.seek(self._offset, os.SEEK_SET)
        data = handle.read(self.chunk_size) or b""
        self._offset += len(data)
        return data

    def close(self) -> None:
        """Release the handle.  Later calls are no-ops.

        ``EBADF`` from the underlying close means the descriptor is already
        gone and is treated as success.
        """
        with self._close_lock:
            handle, self._handle = self._handle, None
            if handle is None:
                return
            try:
                handle.close()
            except OSError as exc:
                if exc.errno != errno.EBADF:
                    raise
                logger.debug("Handle for %s was already invalid", self.path)

    def __repr__(self) -> str:
        state = "closed" if self._handle is None else "open"
        return f"<TailSource {self.path!r} offset={self._offset} {state}>"
