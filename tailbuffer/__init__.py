"""Tail a growing file into a buffer that supports sequential matching."""

from .buffer import BufferState, FileBuffer, new_buffer
from .config import BufferConfig, MatchConfig, PollerConfig, load_config
from .errors import (
    BufferClosedError,
    MatchTimeoutError,
    SourceClosedError,
    SourceError,
    SourceRemovedError,
    SourceTruncatedError,
    TailBufferError,
)
from .match_buffer import MatchBuffer, as_match_buffer, eventually_say, say
from .poller import Poller, PollerState
from .source import TailSource

__all__ = [
    "BufferClosedError",
    "BufferConfig",
    "BufferState",
    "FileBuffer",
    "MatchBuffer",
    "MatchConfig",
    "MatchTimeoutError",
    "Poller",
    "PollerConfig",
    "PollerState",
    "SourceClosedError",
    "SourceError",
    "SourceRemovedError",
    "SourceTruncatedError",
    "TailBufferError",
    "TailSource",
    "as_match_buffer",
    "eventually_say",
    "load_config",
    "new_buffer",
    "say",
]
