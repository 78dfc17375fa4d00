"""Configuration loader — reads YAML and applies sensible defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml


DEFAULT_POLL_INTERVAL = 0.05  # seconds between reads
DEFAULT_CHUNK_SIZE = 10 * 1024  # max bytes forwarded per poll


@dataclass
class PollerConfig:
    """Background tail loop parameters."""

    poll_interval: float = DEFAULT_POLL_INTERVAL
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval!r}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size!r}")


@dataclass
class MatchConfig:
    """Defaults for the ``eventually_say`` family of matchers."""

    timeout: float = 1.0
    interval: float = 0.01

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ValueError(f"timeout must not be negative, got {self.timeout!r}")
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval!r}")


@dataclass
class BufferConfig:
    """Top-level configuration for a file buffer."""

    poller: PollerConfig = field(default_factory=PollerConfig)
    match: MatchConfig = field(default_factory=MatchConfig)


def load_config(path: str | Path | None = None) -> BufferConfig:
    """Load configuration from *path* (YAML), falling back to defaults.

    A missing file or an empty document yields the defaults.  Unknown keys in
    the ``poller`` or ``match`` sections raise ``TypeError``.
    """
    raw: Dict[str, Any] = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}

    poller_kw = raw.get("poller") or {}
    match_kw = raw.get("match") or {}

    return BufferConfig(
        poller=PollerConfig(**poller_kw),
        match=MatchConfig(**match_kw),
    )
