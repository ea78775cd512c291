"""
TranscriptionSession: client-side recording orchestrator.

idle -> recording -> draining -> completing -> idle

- recording: an empty transcription is opened on the server in the background, so
  every slice, the first included, is sent with its id and none waits on another.
  A capture task buffers raw chunks from the audio source; a cutter task
  turns the buffer into a slice every slice_ms and submits it without waiting for the
  answer. Each answer updates the partial map and the displayed merged text.
- stop: cancels the cutter, releases the audio source at once, flushes what is left
  in the buffer as a last slice. Uploads already in flight are not cancelled.
- draining: waits until every submitted slice has answered or failed.
- completing: asks the server to merge + format. A run where no slice produced text
  discards its transcription instead. On success the final text replaces
  the merged text and the run state is cleared; on failure the merged text stays.

Slice indices are assigned at cut time on the event loop, so they are strictly
increasing; answers may arrive in any order and failed slices leave gaps.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from dictation.client.api import SliceApi, SliceResult
from dictation.client.audio import AudioSource
from dictation.config import get_settings
from dictation.processing.merge import merge_partials

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    DRAINING = "draining"
    COMPLETING = "completing"


@dataclass
class SessionStatus:
    """What the UI shows: still transcribing, formatting, or an error."""

    state: SessionState
    transcribing: bool = False
    formatting: bool = False
    last_error: str | None = None


class PendingCounter:
    """Outstanding-submission count; wait() returns once it is back to zero."""

    def __init__(self) -> None:
        self._count = 0
        self._zero = asyncio.Event()
        self._zero.set()

    @property
    def count(self) -> int:
        return self._count

    def increment(self) -> None:
        self._count += 1
        self._zero.clear()

    def decrement(self) -> None:
        self._count = max(0, self._count - 1)
        if self._count == 0:
            self._zero.set()

    async def wait(self) -> None:
        await self._zero.wait()


class TranscriptionSession:
    def __init__(
        self,
        source: AudioSource,
        api: SliceApi,
        slice_ms: int | None = None,
        on_text: Callable[[str], None] | None = None,
        on_status: Callable[[SessionStatus], None] | None = None,
    ) -> None:
        self._source = source
        self._api = api
        self._slice_sec = (slice_ms or get_settings().SLICE_MS) / 1000.0
        self._on_text = on_text
        self._on_status = on_status

        self._state = SessionState.IDLE
        self._partials: dict[int, str] = {}
        self._next_index = 0
        self._transcription_id: str | None = None
        self._merged_text = ""
        self._last_error: str | None = None
        self._buffer: list[bytes] = []

        self._pending = PendingCounter()
        self._open_task: asyncio.Task | None = None
        self._capture_task: asyncio.Task | None = None
        self._cutter_task: asyncio.Task | None = None
        self._completion_task: asyncio.Task | None = None
        self._submissions: set[asyncio.Task] = set()

    # --- read-only views ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def merged_text(self) -> str:
        return self._merged_text

    @property
    def transcription_id(self) -> str | None:
        return self._transcription_id

    @property
    def partials(self) -> dict[int, str]:
        return dict(self._partials)

    @property
    def pending(self) -> int:
        return self._pending.count

    @property
    def status(self) -> SessionStatus:
        return SessionStatus(
            state=self._state,
            transcribing=self._pending.count > 0,
            formatting=self._state is SessionState.COMPLETING,
            last_error=self._last_error,
        )

    # --- lifecycle ---

    async def start(self) -> None:
        """idle -> recording. Raises RuntimeError when a previous run is still finishing."""
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Session is {self._state.value}, cannot start")
        self._reset_run_state()
        self._last_error = None
        self._set_text("")

        await self._source.open()
        self._state = SessionState.RECORDING
        self._open_task = asyncio.create_task(self._open_transcription())
        self._capture_task = asyncio.create_task(self._capture())
        self._cutter_task = asyncio.create_task(self._cutter())
        self._emit_status()
        logger.info("Recording started (slice every %.1fs)", self._slice_sec)

    async def stop(self) -> None:
        """
        recording -> draining. Returns once the microphone is released and the last
        slice is dispatched; draining and completion continue in the background.
        """
        if self._state is not SessionState.RECORDING:
            return
        await self._cancel_cutter()
        self._state = SessionState.DRAINING
        self._source.close()
        self._emit_status()

        # Chunks captured before close are still queued in the source
        if self._capture_task is not None:
            try:
                await self._capture_task
            except Exception as e:
                self._record_error(e)
                logger.error("Audio capture failed: %s", self._last_error)
            self._capture_task = None
        self.cut_slice()

        self._completion_task = asyncio.create_task(self._finish())
        logger.info("Recording stopped; %d slice(s) outstanding", self._pending.count)

    async def wait_idle(self) -> None:
        """Wait for drain + completion of the last run."""
        task = self._completion_task
        if task is not None:
            await task

    async def aclose(self) -> None:
        """Teardown on any exit path: stop timers, release the device, cancel outstanding work."""
        await self._cancel_cutter()
        self._source.close()
        tasks = [t for t in (self._capture_task, self._completion_task, self._open_task) if t is not None]
        tasks.extend(self._submissions)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._capture_task = None
        self._completion_task = None
        self._open_task = None
        self._state = SessionState.IDLE

    async def __aenter__(self) -> "TranscriptionSession":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # --- slicing ---

    def cut_slice(self) -> int | None:
        """Turn the buffered audio into the next slice and submit it. Returns its index, None if empty."""
        if not self._buffer:
            return None
        pcm = b"".join(self._buffer)
        self._buffer = []
        index = self._next_index
        self._next_index += 1
        audio = self._source.encode(pcm)

        self._pending.increment()
        task = asyncio.create_task(self._submit(audio, index))
        self._submissions.add(task)
        task.add_done_callback(self._submissions.discard)
        self._emit_status()
        return index

    async def _capture(self) -> None:
        while True:
            chunk = await self._source.read()
            if chunk is None:
                break
            if chunk:
                self._buffer.append(chunk)

    async def _cutter(self) -> None:
        while True:
            await asyncio.sleep(self._slice_sec)
            self.cut_slice()

    async def _cancel_cutter(self) -> None:
        task, self._cutter_task = self._cutter_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _submit(self, audio: bytes, index: int) -> None:
        try:
            result = await self._send(audio, index)
            self._accept(result)
        except Exception as e:
            # No retry: the index stays a gap in the partial map
            self._record_error(e)
            logger.error("Slice %s failed: %s", index, self._last_error)
        finally:
            self._pending.decrement()
            self._emit_status()

    async def _open_transcription(self) -> str:
        transcription_id = await self._api.create_transcription()
        self._transcription_id = transcription_id
        logger.info("Transcription %s opened", transcription_id)
        return transcription_id

    async def _send(self, audio: bytes, index: int) -> SliceResult:
        transcription_id = None
        if self._open_task is not None:
            # shield: a cancelled upload must not cancel the shared open call
            transcription_id = await asyncio.shield(self._open_task)
        return await self._api.submit_slice(audio, index, transcription_id)

    def _accept(self, result: SliceResult) -> None:
        if result.transcription_id and self._transcription_id is None:
            self._transcription_id = result.transcription_id
        self._partials[result.index] = result.text or ""
        self._set_text(merge_partials(self._partials))

    # --- drain + complete ---

    async def _finish(self) -> None:
        try:
            await self._pending.wait()
            self._set_text(merge_partials(self._partials))
            transcription_id = await self._opened_transcription_id()
            if transcription_id is None:
                logger.info("No transcription was opened; nothing to complete")
                self._reset_run_state()
                return
            if not self._partials:
                logger.info("No slice was transcribed; discarding transcription %s", transcription_id)
                try:
                    await self._api.discard(transcription_id)
                except Exception as e:
                    logger.warning("Discarding transcription %s failed: %s", transcription_id, e)
                self._reset_run_state()
                return

            self._state = SessionState.COMPLETING
            self._emit_status()
            try:
                final_text = await self._api.complete(transcription_id)
            except Exception as e:
                self._record_error(e)
                logger.error("Completing transcription %s failed: %s", transcription_id, self._last_error)
                return

            if final_text:
                self._set_text(final_text)
            self._reset_run_state()
            logger.info("Transcription %s completed", transcription_id)
        finally:
            self._state = SessionState.IDLE
            self._emit_status()

    async def _opened_transcription_id(self) -> str | None:
        task = self._open_task
        if task is None:
            return None
        try:
            return await asyncio.shield(task)
        except Exception as e:
            self._record_error(e)
            return None

    # --- helpers ---

    def _reset_run_state(self) -> None:
        self._partials = {}
        self._next_index = 0
        self._transcription_id = None
        self._buffer = []
        self._open_task = None

    def _record_error(self, e: Exception) -> None:
        code = getattr(e, "code", None)
        self._last_error = f"{code}: {e}" if code else str(e)

    def _set_text(self, text: str) -> None:
        self._merged_text = text
        if self._on_text is not None:
            self._on_text(text)

    def _emit_status(self) -> None:
        if self._on_status is not None:
            self._on_status(self.status)
