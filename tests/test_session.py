"""
Tests for TranscriptionSession: slicing, out-of-order answers, drain, completion, teardown.
"""

import asyncio

import pytest

from dictation.client.api import SliceApiError
from dictation.client.session import PendingCounter, SessionState, TranscriptionSession
from tests.fakes import FakeApi, FakeSource, settle


async def record_slices(session, source, chunks):
    """Feed each chunk and cut it as its own slice."""
    for chunk in chunks:
        source.feed(chunk)
        await settle()
        session.cut_slice()


@pytest.mark.asyncio
async def test_slice_one_answering_before_slice_zero_merges_in_index_order():
    source = FakeSource()
    api = FakeApi(texts={0: "hello", 1: "world"}, gated={0, 1}, final_text="Hello world.")
    shown = []
    session = TranscriptionSession(source, api, slice_ms=60_000, on_text=shown.append)

    await session.start()
    source.feed(b"first")
    await settle()
    assert session.cut_slice() == 0
    source.feed(b"second")
    await settle()
    await session.stop()

    await settle()
    # both uploads are in flight before either answers
    assert api.submissions == [(b"first", 0, "t-1"), (b"second", 1, "t-1")]

    api.gates[1].set()
    await settle()
    assert session.partials == {1: "world"}
    assert session.merged_text == "world"

    api.gates[0].set()
    await settle()
    await session.wait_idle()
    assert shown.index("world") < shown.index("hello world")
    assert shown[-1] == "Hello world."
    assert session.merged_text == "Hello world."


@pytest.mark.asyncio
async def test_later_slices_arriving_out_of_order_keep_index_order():
    source = FakeSource()
    api = FakeApi(texts={0: "one", 1: "two", 2: "three"}, gated={1, 2})
    session = TranscriptionSession(source, api, slice_ms=60_000)
    await session.start()
    await record_slices(session, source, [b"a", b"b", b"c"])

    api.gates[2].set()
    await settle()
    assert session.merged_text == "one three"
    api.gates[1].set()
    await settle()
    assert session.merged_text == "one two three"
    # every slice carries the id opened at start
    assert [tid for _, _, tid in api.submissions] == ["t-1", "t-1", "t-1"]
    assert api.created == 1
    await session.aclose()


@pytest.mark.asyncio
async def test_stop_releases_microphone_before_uploads_finish():
    source = FakeSource()
    api = FakeApi(texts={0: "hello"}, gated={0}, final_text="Hello.")
    session = TranscriptionSession(source, api, slice_ms=60_000)
    await session.start()
    source.feed(b"pcm")
    await settle()

    await session.stop()
    assert source.closed
    assert session.pending == 1
    assert session.state is SessionState.DRAINING
    assert session.status.transcribing
    assert api.completed == []

    api.gates[0].set()
    await session.wait_idle()
    assert api.completed == ["t-1"]
    assert session.state is SessionState.IDLE


@pytest.mark.asyncio
async def test_completion_success_resets_run_state():
    source = FakeSource()
    api = FakeApi(texts={0: "hello"}, final_text="Hello.")
    session = TranscriptionSession(source, api, slice_ms=60_000)
    await session.start()
    source.feed(b"pcm")
    await settle()
    await session.stop()
    await session.wait_idle()

    assert session.merged_text == "Hello."
    assert session.partials == {}
    assert session.transcription_id is None
    assert session.status.last_error is None

    # ready for another run, indices start again at 0
    await session.start()
    assert source.open_count == 2
    source.feed(b"again")
    await settle()
    assert session.cut_slice() == 0
    await session.aclose()


@pytest.mark.asyncio
async def test_failed_slice_leaves_gap_and_failed_completion_keeps_merged_text():
    source = FakeSource()
    api = FakeApi(
        texts={0: "hello", 1: "lost", 2: "there"},
        failing={1},
        complete_error=SliceApiError("server down", status_code=500),
    )
    session = TranscriptionSession(source, api, slice_ms=60_000)
    await session.start()
    await record_slices(session, source, [b"a", b"b", b"c"])
    await session.stop()
    await session.wait_idle()

    assert session.merged_text == "hello there"
    assert session.partials == {0: "hello", 2: "there"}
    assert "server down" in session.status.last_error
    assert session.state is SessionState.IDLE
    # a failed slice is not retried
    assert [index for _, index, _ in api.submissions] == [0, 1, 2]


@pytest.mark.asyncio
async def test_slice_error_code_is_reported():
    source = FakeSource()
    api = FakeApi(failing={0})
    statuses = []
    session = TranscriptionSession(source, api, slice_ms=60_000, on_status=statuses.append)
    await session.start()
    source.feed(b"a")
    await settle()
    await session.stop()
    await session.wait_idle()

    assert session.status.last_error.startswith("insufficient_quota")
    # nothing was transcribed, so there is nothing to complete
    assert api.completed == []
    assert api.discarded == ["t-1"]
    assert statuses[-1].state is SessionState.IDLE


@pytest.mark.asyncio
async def test_status_shows_formatting_while_completing():
    source = FakeSource()
    api = FakeApi(texts={0: "hi"}, final_text="Hi.")
    api.complete_gate = asyncio.Event()
    session = TranscriptionSession(source, api, slice_ms=60_000)
    await session.start()
    source.feed(b"a")
    await settle()
    await session.stop()
    await settle()

    assert session.state is SessionState.COMPLETING
    assert session.status.formatting
    assert not session.status.transcribing
    with pytest.raises(RuntimeError):
        await session.start()

    api.complete_gate.set()
    await session.wait_idle()
    assert not session.status.formatting


@pytest.mark.asyncio
async def test_timer_cuts_slices_periodically():
    source = FakeSource()
    api = FakeApi(texts={0: "tick"})
    session = TranscriptionSession(source, api, slice_ms=10)
    await session.start()
    source.feed(b"a")
    await asyncio.sleep(0.1)
    assert [index for _, index, _ in api.submissions] == [0]
    assert session.merged_text == "tick"
    await session.aclose()


@pytest.mark.asyncio
async def test_empty_buffer_is_not_sliced():
    source = FakeSource()
    api = FakeApi()
    session = TranscriptionSession(source, api, slice_ms=60_000)
    await session.start()
    assert session.cut_slice() is None
    await session.stop()
    await session.wait_idle()
    assert api.submissions == []
    assert session.state is SessionState.IDLE


@pytest.mark.asyncio
async def test_teardown_releases_source_and_cancels_work():
    source = FakeSource()
    api = FakeApi(gated={0})
    async with TranscriptionSession(source, api, slice_ms=60_000) as session:
        await session.start()
        source.feed(b"a")
        await settle()
        session.cut_slice()
        await settle()
        assert session.pending == 1
    assert source.closed
    assert session.state is SessionState.IDLE
    assert session.pending == 0


@pytest.mark.asyncio
async def test_pending_counter_wait():
    counter = PendingCounter()
    await asyncio.wait_for(counter.wait(), timeout=0.1)
    counter.increment()
    counter.increment()
    waiter = asyncio.ensure_future(counter.wait())
    counter.decrement()
    await settle()
    assert not waiter.done()
    counter.decrement()
    await asyncio.wait_for(waiter, timeout=0.1)
    assert counter.count == 0


@pytest.mark.asyncio
async def test_failed_open_fails_slices_and_skips_completion():
    source = FakeSource()
    api = FakeApi(texts={0: "lost"}, create_error=SliceApiError("Unauthorized", status_code=401))
    session = TranscriptionSession(source, api, slice_ms=60_000)
    await session.start()
    source.feed(b"a")
    await settle()
    await session.stop()
    await session.wait_idle()

    assert api.submissions == []
    assert api.completed == [] and api.discarded == []
    assert session.status.last_error == "Unauthorized"
    assert session.state is SessionState.IDLE


@pytest.mark.asyncio
async def test_capture_failure_still_drains_and_completes():
    source = FakeSource()
    api = FakeApi(texts={0: "hello"}, final_text="Hello.")
    session = TranscriptionSession(source, api, slice_ms=60_000)
    await session.start()
    source.feed(b"a")
    await settle()
    source.fail(OSError("input device lost"))
    await settle()

    await session.stop()
    await session.wait_idle()

    assert [index for _, index, _ in api.submissions] == [0]
    assert api.completed == ["t-1"]
    assert session.merged_text == "Hello."
    assert "input device lost" in session.status.last_error
    assert session.state is SessionState.IDLE
    # not stuck: a new run can start
    await session.start()
    await session.aclose()
