"""
Audio sources for the recording client.

A source owns the capture hardware: open() acquires it, read() yields raw PCM chunks
(16-bit, little-endian) and returns None once the source is closed and every chunk
captured before that has been read, close() releases the hardware. close() must be
idempotent and must not wait for anything else (pending uploads in particular).

Slices are sent as standalone WAV files so each one decodes on its own.
"""
from __future__ import annotations

import asyncio
import io
import logging
import wave
from abc import ABC, abstractmethod

from dictation.config import get_settings

logger = logging.getLogger(__name__)


def encode_wav(pcm_bytes: bytes, sample_rate: int, channels: int = 1, sample_width: int = 2) -> bytes:
    """Wrap raw PCM in a WAV container: header once, all frames, in memory."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm_bytes)
    return buf.getvalue()


class AudioSource(ABC):
    """Scoped capture resource. See module docstring for the read/close contract."""

    def __init__(
        self,
        sample_rate: int | None = None,
        channels: int | None = None,
        sample_width: int | None = None,
    ) -> None:
        settings = get_settings()
        self.sample_rate = sample_rate or settings.SAMPLE_RATE
        self.channels = channels or settings.CHANNELS
        self.sample_width = sample_width or settings.SAMPLE_WIDTH

    @abstractmethod
    async def open(self) -> None:
        """Acquire the input device and start capturing."""
        ...

    @abstractmethod
    async def read(self) -> bytes | None:
        """Next captured chunk; None when closed and drained."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the input device. Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    def encode(self, pcm_bytes: bytes) -> bytes:
        """Encode one slice of captured PCM for upload."""
        return encode_wav(pcm_bytes, self.sample_rate, self.channels, self.sample_width)


class MicrophoneSource(AudioSource):
    """
    Default input device via sounddevice (PortAudio). The PortAudio callback runs on its
    own thread; chunks are handed to the event loop with call_soon_threadsafe.
    """

    def __init__(
        self,
        device: int | str | None = None,
        blocksize: int = 1600,
        sample_rate: int | None = None,
        channels: int | None = None,
    ) -> None:
        super().__init__(sample_rate=sample_rate, channels=channels, sample_width=2)
        self._device = device
        self._blocksize = blocksize
        self._stream = None
        self._queue: asyncio.Queue[bytes | None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    async def open(self) -> None:
        import sounddevice as sd

        if self._stream is not None:
            return
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[bytes | None] = asyncio.Queue()

        def callback(indata, frames, time_info, status) -> None:
            if status:
                logger.debug("Input stream status: %s", status)
            loop.call_soon_threadsafe(queue.put_nowait, bytes(indata))

        stream = sd.RawInputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="int16",
            blocksize=self._blocksize,
            device=self._device,
            callback=callback,
        )
        stream.start()
        self._queue = queue
        self._loop = loop
        self._stream = stream
        logger.info("Microphone opened (%s Hz, %s ch)", self.sample_rate, self.channels)

    async def read(self) -> bytes | None:
        if self._queue is None:
            return None
        return await self._queue.get()

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        finally:
            # Queued behind the chunks the last callbacks scheduled
            if self._queue is not None and self._loop is not None:
                self._loop.call_soon(self._queue.put_nowait, None)
            logger.info("Microphone released")

    @property
    def is_open(self) -> bool:
        return self._stream is not None
