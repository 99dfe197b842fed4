"""Tests for the SSE stream relay."""

import asyncio
import json

import pytest

from support_chat.relay import StreamRelay, relay

BASIC_STREAM = (
    b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n'
    b'data: {"choices":[{"delta":{"content":"lo"}}]}\n'
    b'data: {"usage":{"total_tokens":12}}\n'
    b"data: [DONE]\n"
)


async def _chunks(*chunks):
    for chunk in chunks:
        yield chunk


def _split(data, size):
    return [data[i : i + size] for i in range(0, len(data), size)]


def _frame(content):
    return ("data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n").encode("utf-8")


async def _run(*chunks):
    deltas = []
    done = []
    result = await relay(_chunks(*chunks), deltas.append, done.append)
    return deltas, done, result


class TestRelay:
    """Delta delivery and usage accounting."""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        deltas, done, result = await _run(BASIC_STREAM)

        assert deltas == ["Hel", "lo"]
        assert done == [12]
        assert result.reply == "Hello"
        assert result.tokens_used == 12

    @pytest.mark.asyncio
    async def test_split_at_every_byte_position(self):
        for index in range(1, len(BASIC_STREAM)):
            deltas, done, _ = await _run(BASIC_STREAM[:index], BASIC_STREAM[index:])
            assert deltas == ["Hel", "lo"], index
            assert done == [12], index

    @pytest.mark.asyncio
    async def test_arbitrary_chunk_sizes_with_multibyte_text(self):
        stream = _frame("héllo ") + _frame("wörld 🚀") + b'data: {"usage":{"total_tokens":7}}\r\n' + b"data: [DONE]\r\n"
        expected, expected_done, _ = await _run(stream)

        assert expected == ["héllo ", "wörld 🚀"]
        for size in range(1, 12):
            deltas, done, _ = await _run(*_split(stream, size))
            assert deltas == expected, size
            assert done == expected_done, size

    @pytest.mark.asyncio
    async def test_done_marker_stops_processing(self):
        stream = _frame("kept") + b"data: [DONE]\n" + _frame("dropped") + b'data: {"usage":{"total_tokens":99}}\n'

        deltas, done, result = await _run(stream)

        assert deltas == ["kept"]
        assert done == [0]
        assert result.reply == "kept"

    @pytest.mark.asyncio
    async def test_done_marker_stops_reading_source(self):
        pulled = []

        async def source():
            for chunk in (_frame("a") + b"data: [DONE]\n", _frame("b")):
                pulled.append(chunk)
                yield chunk

        deltas = []
        await relay(source(), deltas.append, lambda tokens: None)

        assert deltas == ["a"]
        assert len(pulled) == 1

    @pytest.mark.asyncio
    async def test_comments_blank_and_foreign_lines_are_ignored(self):
        stream = (
            b": keep-alive\n"
            b"\n"
            b"event: message\n"
            b"id: 4\n"
            + _frame("ok")
            + b"data:[DONE]-not-a-prefix-match\n"
            + b"data: [DONE]\n"
        )

        deltas, done, _ = await _run(stream)

        assert deltas == ["ok"]
        assert done == [0]

    @pytest.mark.asyncio
    async def test_frames_without_content_are_skipped(self):
        stream = (
            b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n'
            b'data: {"choices":[]}\n'
            b"data: 42\n"
            b'data: ["list"]\n'
            b'data: {"choices":[{"delta":{"content":null}}]}\n'
            + _frame("x")
            + b"data: [DONE]\n"
        )

        deltas, _, _ = await _run(stream)

        assert deltas == ["x"]

    @pytest.mark.asyncio
    async def test_last_usage_wins(self):
        stream = (
            b'data: {"usage":{"total_tokens":3}}\n'
            b'data: {"choices":[{"delta":{"content":"a"}}],"usage":{"total_tokens":5}}\n'
            b'data: {"usage":{"total_tokens":"9"}}\n'
        )

        deltas, done, _ = await _run(stream)

        assert deltas == ["a"]
        assert done == [5]

    @pytest.mark.asyncio
    async def test_stream_without_done_marker_flushes_tail(self):
        stream = _frame("one") + _frame("two").rstrip(b"\n")

        deltas, done, _ = await _run(*_split(stream, 5))

        assert deltas == ["one", "two"]
        assert done == [0]

    @pytest.mark.asyncio
    async def test_unparseable_tail_is_swallowed(self):
        deltas, done, _ = await _run(_frame("ok") + b'data: {"choices":[{"del')

        assert deltas == ["ok"]
        assert done == [0]

    @pytest.mark.asyncio
    async def test_invalid_line_waits_for_more_bytes_then_is_skipped(self):
        deltas = []
        relay_ = StreamRelay()
        stream = relay_.iter_deltas(_chunks(b"data: {broken\n", _frame("after"), b"data: [DONE]\n"))

        async for delta in stream:
            deltas.append(delta)

        assert deltas == ["after"]
        assert relay_.reply == "after"

    @pytest.mark.asyncio
    async def test_invalid_line_followed_by_end_of_stream(self):
        deltas, done, _ = await _run(b"data: {broken\n" + _frame("later"))

        assert deltas == ["later"]
        assert done == [0]

    @pytest.mark.asyncio
    async def test_empty_stream_reports_zero_tokens(self):
        deltas, done, result = await _run()

        assert deltas == []
        assert done == [0]
        assert result.reply == ""

    @pytest.mark.asyncio
    async def test_async_callbacks_are_awaited(self):
        deltas = []
        done = []

        async def on_delta(delta):
            await asyncio.sleep(0)
            deltas.append(delta)

        async def on_done(tokens):
            done.append(tokens)

        await relay(_chunks(BASIC_STREAM), on_delta, on_done)

        assert deltas == ["Hel", "lo"]
        assert done == [12]


class TestRelayLifecycle:
    """Closing, cancellation and reuse."""

    @pytest.mark.asyncio
    async def test_source_is_closed_after_relay(self):
        closed = []

        class Source:
            def __init__(self, chunks):
                self._chunks = list(chunks)

            def __aiter__(self):
                return self

            async def __anext__(self):
                if not self._chunks:
                    raise StopAsyncIteration
                return self._chunks.pop(0)

            async def aclose(self):
                closed.append(True)

        await relay(Source([BASIC_STREAM]), lambda d: None, lambda t: None)

        assert closed == [True]

    @pytest.mark.asyncio
    async def test_cancellation_propagates_without_on_done(self):
        started = asyncio.Event()
        done = []

        async def hanging():
            yield _frame("first")
            started.set()
            await asyncio.sleep(3600)
            yield _frame("never")

        task = asyncio.create_task(relay(hanging(), lambda d: None, done.append))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert done == []

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self):
        async def failing():
            yield _frame("partial")
            raise ConnectionError("reset by peer")

        deltas = []
        done = []
        with pytest.raises(ConnectionError):
            await relay(failing(), deltas.append, done.append)

        assert deltas == ["partial"]
        assert done == []

    @pytest.mark.asyncio
    async def test_relay_is_single_use(self):
        relay_ = StreamRelay()
        await relay_.relay(_chunks(BASIC_STREAM), lambda d: None, lambda t: None)

        with pytest.raises(RuntimeError):
            await relay_.relay(_chunks(BASIC_STREAM), lambda d: None, lambda t: None)
