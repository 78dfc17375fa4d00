"""Tests for the match buffer and its sequential matchers."""

from __future__ import annotations

import asyncio
import re
import threading
import time

import pytest

from tailbuffer.config import MatchConfig
from tailbuffer.errors import BufferClosedError, MatchTimeoutError
from tailbuffer.match_buffer import MatchBuffer, as_match_buffer, eventually_say, say


# ── say ────────────────────────────────────────────────────────


def test_say_advances_cursor_past_match() -> None:
    buf = MatchBuffer()
    buf.write(b"AB")

    assert buf.say("A") is not None
    assert buf.unread() == b"B"

    buf.write(b"CD")
    assert buf.unread() == b"BCD"
    assert buf.contents() == b"ABCD"


def test_say_does_not_rematch_consumed_content() -> None:
    buf = MatchBuffer()
    buf.write(b"This is a line of text")

    assert buf.say("This is a line of text")
    assert buf.say("This is a line of text") is None


def test_failed_say_leaves_cursor_alone() -> None:
    buf = MatchBuffer()
    buf.write(b"hello world")
    buf.say("hello")
    cursor = buf.cursor

    assert buf.say("missing") is None
    assert buf.cursor == cursor


def test_say_treats_pattern_as_regex() -> None:
    buf = MatchBuffer()
    buf.write(b"port=8080\n")

    match = buf.say(rb"port=(\d+)")
    assert match is not None
    assert match.group(1) == b"8080"


def test_say_accepts_compiled_bytes_pattern() -> None:
    buf = MatchBuffer()
    buf.write(b"ready")
    assert buf.say(re.compile(b"rea.y"))


def test_say_rejects_compiled_str_pattern() -> None:
    with pytest.raises(TypeError):
        MatchBuffer().say(re.compile("text"))


# ── writing / closing ──────────────────────────────────────────


def test_write_after_close_raises() -> None:
    buf = MatchBuffer()
    buf.write(b"before")
    buf.close()

    with pytest.raises(BufferClosedError):
        buf.write(b"after")
    assert buf.contents() == b"before"


def test_contents_are_immutable_snapshots() -> None:
    buf = MatchBuffer()
    buf.write(b"one")
    snapshot = buf.contents()
    pending = buf.unread()

    buf.write(b"two")
    assert type(snapshot) is bytes
    assert type(pending) is bytes
    assert snapshot == b"one"
    assert buf.contents() == b"onetwo"


def test_closed_buffer_is_still_matchable() -> None:
    buf = MatchBuffer()
    buf.write(b"kept")
    buf.close()

    assert buf.closed
    assert buf.say("kept")


# ── concurrent access ──────────────────────────────────────────


def test_writes_stay_atomic_under_concurrent_matching() -> None:
    """One writer appends numbered chunks while several threads match."""
    buf = MatchBuffer()
    chunks = [b"<%04d:payload>" % i for i in range(500)]
    expected = b"".join(chunks)
    done = threading.Event()
    errors: list = []

    def _writer() -> None:
        try:
            for chunk in chunks:
                buf.write(chunk)
        finally:
            done.set()

    def _reader() -> None:
        last_cursor = 0
        try:
            while True:
                finished = done.is_set()
                snapshot = buf.contents()
                assert expected.startswith(snapshot)
                # every write is a whole chunk, never a fragment
                assert snapshot.count(b"<") == snapshot.count(b">")

                pending = buf.unread()
                assert pending in expected

                match = buf.say(rb"<\d{4}:payload>")
                cursor = buf.cursor
                assert cursor >= last_cursor
                if match is not None:
                    assert match.end() <= cursor
                last_cursor = cursor
                if finished:
                    return
        except AssertionError as exc:
            errors.append(exc)

    readers = [threading.Thread(target=_reader) for _ in range(4)]
    writer = threading.Thread(target=_writer)
    for t in readers:
        t.start()
    writer.start()
    writer.join(timeout=10.0)
    for t in readers:
        t.join(timeout=10.0)

    assert errors == []
    assert not any(t.is_alive() for t in readers)
    assert buf.contents() == expected
    assert buf.cursor <= len(expected)


# ── eventually_say ─────────────────────────────────────────────


def test_eventually_say_waits_for_late_write() -> None:
    buf = MatchBuffer()

    def _late_write() -> None:
        time.sleep(0.05)
        buf.write(b"late arrival")

    writer = threading.Thread(target=_late_write)
    writer.start()
    try:
        match = buf.eventually_say("late arrival", timeout=2.0)
    finally:
        writer.join()
    assert match.group(0) == b"late arrival"


def test_eventually_say_times_out() -> None:
    buf = MatchBuffer(MatchConfig(timeout=0.05, interval=0.01))
    buf.write(b"something else")

    with pytest.raises(MatchTimeoutError) as info:
        buf.eventually_say("never")
    assert isinstance(info.value, TimeoutError)
    assert info.value.unread == b"something else"


def test_eventually_say_fails_fast_when_closed() -> None:
    buf = MatchBuffer()
    buf.close()

    start = time.monotonic()
    with pytest.raises(BufferClosedError):
        buf.eventually_say("never", timeout=5.0)
    assert time.monotonic() - start < 1.0


def test_eventually_say_matches_in_sequence() -> None:
    buf = MatchBuffer()
    buf.write(b"This is a line of text\nand this is another")

    buf.eventually_say("This is a line of text")
    buf.eventually_say("\nand this is another")
    assert buf.unread() == b""


# ── wait_for (async) ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_wait_for_matches_written_content() -> None:
    buf = MatchBuffer()

    async def _writer() -> None:
        await asyncio.sleep(0.05)
        buf.write(b"async line\n")

    task = asyncio.create_task(_writer())
    match = await buf.wait_for("async line", timeout=2.0)
    await task
    assert match.group(0) == b"async line"


@pytest.mark.asyncio
async def test_wait_for_times_out() -> None:
    buf = MatchBuffer()
    with pytest.raises(MatchTimeoutError):
        await buf.wait_for("never", timeout=0.05)


# ── buffer providers ───────────────────────────────────────────


class _Provider:
    def __init__(self, buf: MatchBuffer) -> None:
        self._buf = buf

    def buffer(self) -> MatchBuffer:
        return self._buf


def test_helpers_accept_buffer_providers() -> None:
    buf = MatchBuffer()
    buf.write(b"provided")
    provider = _Provider(buf)

    assert as_match_buffer(provider) is buf
    assert say(provider, "pro")
    assert eventually_say(provider, "vided", timeout=0.1)


def test_as_match_buffer_rejects_other_objects() -> None:
    with pytest.raises(TypeError):
        as_match_buffer(object())
