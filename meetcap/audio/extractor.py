"""Audio frame extraction: down-mix, silence gating and PCM16 conversion.

Each inbound track gets a TrackReader. The transport pushes frames into
the reader's bounded queue; the reader's consumer pulls AudioChunk objects
out in capture order.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import numpy as np
import structlog

from meetcap.audio.frame import AudioFrame, ContributingSource

logger = structlog.get_logger()

PCM16_NEGATIVE_SCALE = 32768.0
PCM16_POSITIVE_SCALE = 32767.0


class FrameDecodeError(ValueError):
    """Raised when a frame's samples cannot be read in any layout."""


def _planar_channels(frame: AudioFrame) -> np.ndarray:
    if frame.closed:
        raise FrameDecodeError("frame already closed")
    if frame.planar is None:
        raise FrameDecodeError("no planar buffer")
    if len(frame.planar) % 4:
        raise FrameDecodeError("planar buffer is not float32 aligned")
    samples = np.frombuffer(frame.planar, dtype="<f4")
    if samples.size != frame.channels * frame.frames:
        raise FrameDecodeError(
            f"planar buffer holds {samples.size} samples, "
            f"expected {frame.channels}x{frame.frames}"
        )
    return samples.reshape(frame.channels, frame.frames)


def _interleaved_channels(frame: AudioFrame) -> np.ndarray:
    if frame.closed:
        raise FrameDecodeError("frame already closed")
    if frame.interleaved is None:
        raise FrameDecodeError("no interleaved buffer")
    if len(frame.interleaved) % 4:
        raise FrameDecodeError("interleaved buffer is not float32 aligned")
    samples = np.frombuffer(frame.interleaved, dtype="<f4")
    if samples.size != frame.channels * frame.frames:
        raise FrameDecodeError(
            f"interleaved buffer holds {samples.size} samples, "
            f"expected {frame.frames}x{frame.channels}"
        )
    return samples.reshape(frame.frames, frame.channels).T


def downmix(channels: np.ndarray) -> np.ndarray:
    """Average a (channels, frames) array into one mono float32 channel.

    Args:
        channels: Samples shaped (channels, frames)

    Returns:
        Mono samples; a single channel is returned unchanged
    """
    channels = np.ascontiguousarray(channels, dtype=np.float32)
    if channels.ndim == 1:
        return channels.copy()
    if channels.shape[0] == 1:
        return channels[0].copy()
    return channels.mean(axis=0, dtype=np.float64).astype(np.float32)


def extract_mono(frame: AudioFrame) -> np.ndarray:
    """Read a frame as mono samples.

    Planar layout is tried first; interleaved is the fallback when planar
    data is missing or malformed.

    Raises:
        FrameDecodeError: Neither layout could be read
    """
    try:
        channels = _planar_channels(frame)
    except FrameDecodeError as planar_error:
        try:
            channels = _interleaved_channels(frame)
        except FrameDecodeError as interleaved_error:
            raise FrameDecodeError(
                f"planar: {planar_error}; interleaved: {interleaved_error}"
            ) from interleaved_error
    return downmix(channels)


def peak_amplitude(samples: np.ndarray) -> float:
    """Maximum absolute sample value, 0.0 for an empty buffer."""
    if samples.size == 0:
        return 0.0
    return float(np.max(np.abs(samples)))


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float samples to little-endian signed 16-bit PCM.

    Values are clipped to [-1, 1]; negatives scale by 32768 and
    non-negatives by 32767, so -1.0 maps to -32768 and 1.0 to 32767.
    """
    clipped = np.clip(np.nan_to_num(samples.astype(np.float64)), -1.0, 1.0)
    scaled = np.where(
        clipped < 0, clipped * PCM16_NEGATIVE_SCALE, clipped * PCM16_POSITIVE_SCALE
    )
    return scaled.astype("<i2").tobytes()


class SilenceGate:
    """Suppress long runs of silence.

    The first run_limit consecutive silent chunks pass; further silent
    chunks are suppressed until a non-silent chunk resets the run. A
    run_limit of None never suppresses.
    """

    def __init__(self, threshold: float = 0.0001, run_limit: int | None = 30):
        self.threshold = threshold
        self.run_limit = run_limit
        self.consecutive_silent = 0
        self.suppressed = 0

    def is_silent(self, peak: float) -> bool:
        return peak < self.threshold

    def admit(self, silent: bool) -> bool:
        """Decide whether a chunk should be written.

        Args:
            silent: Whether the chunk's peak is below the threshold

        Returns:
            True to write the chunk, False to suppress it
        """
        if not silent:
            self.consecutive_silent = 0
            return True

        self.consecutive_silent += 1
        if self.run_limit is not None and self.consecutive_silent > self.run_limit:
            self.suppressed += 1
            return False
        return True


@dataclass
class AudioChunk:
    """PCM16 mono bytes extracted from one frame."""

    key: str
    data: bytes
    sample_rate: int
    channels: int
    peak: float
    silent: bool
    suppressed: bool = False
    first: bool = False
    sources: list[ContributingSource] = field(default_factory=list)


_END_OF_STREAM = object()


class TrackReader:
    """Bounded per-track frame queue and its chunk producer.

    push() blocks while the queue is full, which holds the page's frame
    loop back. Every frame is closed exactly once: after processing, when
    dropped, or when discarded on shutdown.
    """

    def __init__(
        self,
        key: str,
        gate: SilenceGate | None = None,
        maxsize: int = 64,
    ):
        """Initialize reader.

        Args:
            key: Track key chunks are tagged with
            gate: Silence gate; defaults to one that never suppresses
            maxsize: Frames buffered before push() waits
        """
        self.key = key
        self.gate = gate or SilenceGate(run_limit=None)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._accepting = True
        self._finished = False
        self._format_reported = False
        self.frames_received = 0
        self.frames_failed = 0
        self.frames_dropped = 0

    @property
    def accepting(self) -> bool:
        return self._accepting and not self._finished

    @property
    def suppressed(self) -> int:
        return self.gate.suppressed

    async def push(self, frame: AudioFrame) -> bool:
        """Queue a frame for processing.

        Returns:
            False if the reader no longer accepts frames (frame released)
        """
        if not self.accepting:
            frame.close()
            self.frames_dropped += 1
            return False
        self.frames_received += 1
        await self._queue.put(frame)
        return True

    def stop_accepting(self) -> None:
        """Refuse new frames; queued frames still drain."""
        self._accepting = False

    async def finish(self) -> None:
        """Mark end of stream after the queued frames."""
        if self._finished:
            return
        self._finished = True
        await self._queue.put(_END_OF_STREAM)

    async def chunks(self) -> AsyncIterator[AudioChunk]:
        """Yield chunks in capture order until finish() is reached."""
        try:
            while True:
                item = await self._queue.get()
                if item is _END_OF_STREAM:
                    return
                try:
                    chunk = self._process(item)
                except Exception as e:
                    self.frames_failed += 1
                    logger.warning(
                        "frame processing failed", key=self.key, error=str(e)
                    )
                    continue
                finally:
                    item.close()
                yield chunk
        finally:
            self._discard_pending()

    def _process(self, frame: AudioFrame) -> AudioChunk:
        mono = extract_mono(frame)
        peak = peak_amplitude(mono)
        silent = self.gate.is_silent(peak)
        admitted = self.gate.admit(silent)

        first = not self._format_reported
        self._format_reported = True

        return AudioChunk(
            key=self.key,
            data=float_to_pcm16(mono) if admitted else b"",
            sample_rate=frame.sample_rate,
            channels=frame.channels,
            peak=peak,
            silent=silent,
            suppressed=not admitted,
            first=first,
            sources=list(frame.sources),
        )

    def _discard_pending(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if item is not _END_OF_STREAM:
                item.close()
