"""Relay a chat-completions SSE byte stream into live deltas.

The gateway sends ``data: {...}`` lines terminated by ``data: [DONE]``.  Bytes
arrive in arbitrarily sized chunks, so a :class:`StreamRelay` keeps a small
state machine per response:

* accumulate: decode the chunk incrementally and append it to the text buffer;
* extract-line: cut the buffer at the next ``\\n`` and drop a trailing ``\\r``;
* parse-or-reinsert: decode the ``data:`` payload as JSON, or put the line
  back at the head of the buffer when it does not parse yet and wait for the
  next chunk.  A line that still does not parse once more bytes have arrived
  is malformed and skipped.

Every content delta is handed on as soon as it is decoded while the full reply
and the latest ``usage.total_tokens`` are kept for persistence.
"""

from __future__ import annotations

import codecs
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, AsyncIterable, Awaitable, Callable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"

DeltaCallback = Callable[[str], Union[None, Awaitable[None]]]
DoneCallback = Callable[[int], Union[None, Awaitable[None]]]

# Returned by the line parser when a data line is not valid JSON yet.
_INCOMPLETE = object()


@dataclass
class StreamState:
    text_buffer: str = ""
    accumulated_reply: str = ""
    tokens_used: int = 0
    done: bool = False


@dataclass(frozen=True)
class RelayResult:
    reply: str
    tokens_used: int


class StreamRelay:
    """Single-use parser for one streamed response."""

    def __init__(self) -> None:
        self.state = StreamState()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._started = False
        self._stalled_line: Optional[str] = None

    @property
    def reply(self) -> str:
        return self.state.accumulated_reply

    @property
    def tokens_used(self) -> int:
        return self.state.tokens_used

    def result(self) -> RelayResult:
        return RelayResult(reply=self.state.accumulated_reply, tokens_used=self.state.tokens_used)

    async def iter_deltas(self, byte_stream: AsyncIterable[bytes]) -> AsyncGenerator[str, None]:
        """Yield content deltas from ``byte_stream`` in arrival order.

        The byte source is closed when iteration ends, fails or is abandoned.
        """
        if self._started:
            raise RuntimeError("StreamRelay instances are single-use")
        self._started = True

        try:
            async for chunk in byte_stream:
                if not chunk:
                    continue
                self.state.text_buffer += self._decoder.decode(chunk)
                for delta in self._drain():
                    yield delta
                if self.state.done:
                    break

            if not self.state.done:
                self.state.text_buffer += self._decoder.decode(b"", final=True)
                for delta in self._flush():
                    yield delta
        finally:
            await _close(byte_stream)

    async def relay(
        self,
        byte_stream: AsyncIterable[bytes],
        on_delta: DeltaCallback,
        on_done: DoneCallback,
    ) -> RelayResult:
        """Forward each delta to ``on_delta`` and the final usage to ``on_done``."""
        deltas = self.iter_deltas(byte_stream)
        try:
            async for delta in deltas:
                await _maybe_await(on_delta(delta))
        finally:
            await deltas.aclose()
        await _maybe_await(on_done(self.state.tokens_used))
        logger.debug(
            "Relay finished: %d character(s), %d token(s)",
            len(self.state.accumulated_reply),
            self.state.tokens_used,
        )
        return self.result()

    def _drain(self) -> Iterator[str]:
        state = self.state
        while not state.done:
            index = state.text_buffer.find("\n")
            if index == -1:
                break
            line = state.text_buffer[:index]
            state.text_buffer = state.text_buffer[index + 1 :]
            if line.endswith("\r"):
                line = line[:-1]

            outcome = self._parse_line(line)
            if outcome is _INCOMPLETE:
                if line == self._stalled_line:
                    # Still unparseable after more bytes arrived.
                    logger.debug("Skipping malformed stream line: %s", line)
                    self._stalled_line = None
                    continue
                self._stalled_line = line
                state.text_buffer = line + "\n" + state.text_buffer
                break
            if outcome:
                yield outcome  # type: ignore[misc]

    def _flush(self) -> Iterator[str]:
        state = self.state
        leftover, state.text_buffer = state.text_buffer, ""
        if not leftover.strip():
            return
        for raw in leftover.split("\n"):
            line = raw[:-1] if raw.endswith("\r") else raw
            outcome = self._parse_line(line)
            if state.done:
                break
            if outcome is _INCOMPLETE:
                logger.debug("Dropping unparseable trailing stream line: %s", line)
                continue
            if outcome:
                yield outcome  # type: ignore[misc]

    def _parse_line(self, line: str) -> Any:
        if not line.strip() or line.startswith(":"):
            return None
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_MARKER:
            self.state.done = True
            return None

        try:
            frame = json.loads(payload)
        except ValueError:
            return _INCOMPLETE
        return self._apply_frame(frame)

    def _apply_frame(self, frame: Any) -> Optional[str]:
        if not isinstance(frame, dict):
            logger.debug("Skipping non-object stream frame: %r", frame)
            return None

        usage = frame.get("usage")
        if isinstance(usage, dict):
            total = usage.get("total_tokens")
            if isinstance(total, int) and not isinstance(total, bool):
                self.state.tokens_used = total

        content = _extract_delta(frame)
        if content:
            self.state.accumulated_reply += content
        return content


def _extract_delta(frame: dict) -> Optional[str]:
    choices = frame.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value


async def _close(byte_stream: Any) -> None:
    aclose = getattr(byte_stream, "aclose", None)
    if aclose is not None:
        await aclose()


async def relay(
    byte_stream: AsyncIterable[bytes],
    on_delta: DeltaCallback,
    on_done: DoneCallback,
) -> RelayResult:
    """Relay one streamed response; see :meth:`StreamRelay.relay`."""
    return await StreamRelay().relay(byte_stream, on_delta, on_done)
