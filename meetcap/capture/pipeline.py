"""CapturePipeline connects transport events to storage.

Each inbound track gets a TrackReader and one consumer task. The consumer
pulls chunks in capture order, resolves a speaker per written chunk and
appends the bytes to the track's artifact, so writes for one track are
strictly sequential while tracks proceed independently.
"""

import asyncio

import structlog

from meetcap.attribution.resolver import SpeakerResolver
from meetcap.audio.extractor import AudioChunk, SilenceGate, TrackReader
from meetcap.audio.frame import AudioFrame
from meetcap.storage.session import MIXED_STEM, RecordingSession
from meetcap.transport.schemas import InboundTrack, StreamMapping

logger = structlog.get_logger()


class CapturePipeline:
    """TrackListener that extracts, attributes and stores inbound audio."""

    def __init__(
        self,
        session: RecordingSession,
        resolver: SpeakerResolver,
        *,
        silence_threshold: float = 0.0001,
        silence_run_limit: int | None = 30,
        queue_size: int = 64,
        drain_timeout: float = 30.0,
    ):
        """Initialize pipeline.

        Args:
            session: Storage for tracks and the mixed recording
            resolver: Speaker attribution for written chunks
            silence_threshold: Peak below which a chunk counts as silent
            silence_run_limit: Silent chunks written before suppression starts
            queue_size: Frames buffered per track before the page is held back
            drain_timeout: Seconds stop() waits for readers to drain
        """
        self._session = session
        self._resolver = resolver
        self._threshold = silence_threshold
        self._run_limit = silence_run_limit
        self._queue_size = queue_size
        self._drain_timeout = drain_timeout

        self._tracks: dict[str, InboundTrack] = {}
        self._readers: dict[str, TrackReader] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._mixed: TrackReader | None = None
        self._accepting = True

    @property
    def readers(self) -> dict[str, TrackReader]:
        return dict(self._readers)

    # TrackListener

    async def on_track_open(self, track: InboundTrack) -> None:
        if not self._accepting:
            logger.info("track opened after capture stopped", key=track.key)
            return
        if track.key in self._readers:
            return

        record = await self._session.on_track_open(track)
        if record is None:
            return

        reader = TrackReader(
            track.key,
            gate=SilenceGate(self._threshold, self._run_limit),
            maxsize=self._queue_size,
        )
        self._tracks[track.key] = track
        self._readers[track.key] = reader
        self._tasks[track.key] = asyncio.create_task(
            self._consume_track(track, reader), name=f"reader-{track.key}"
        )

    async def on_frame(self, key: str, frame: AudioFrame) -> None:
        reader = self._readers.get(key)
        if reader is None:
            frame.close()
            logger.debug("frame for unknown track dropped", key=key)
            return
        await reader.push(frame)

    async def on_track_ended(self, key: str) -> None:
        reader = self._readers.get(key)
        if reader is None:
            logger.debug("end for unknown track ignored", key=key)
            return
        await self._session.on_track_close(key)
        await reader.finish()

    async def on_mixed_frame(self, frame: AudioFrame) -> None:
        if not self._accepting:
            frame.close()
            return
        if self._mixed is None:
            self._mixed = TrackReader(MIXED_STEM, maxsize=self._queue_size)
            self._tasks[MIXED_STEM] = asyncio.create_task(
                self._consume_mixed(self._mixed), name="reader-mixed"
            )
        await self._mixed.push(frame)

    async def on_stream_map(self, mappings: list[StreamMapping]) -> None:
        changed = self._resolver.association.associate_many(mappings)
        if changed:
            logger.info("stream associations updated", changed=changed)
            await self._session.log_activity(f"stream-map changed={changed}")

    # Consumers

    async def _consume_track(self, track: InboundTrack, reader: TrackReader) -> None:
        try:
            async for chunk in reader.chunks():
                try:
                    await self._store_chunk(track, chunk)
                except Exception as e:
                    logger.error("chunk handling failed", key=track.key, error=str(e))
        finally:
            self._session.note_suppressed(track.key, reader.suppressed)
            logger.info(
                "track drained",
                key=track.key,
                frames=reader.frames_received,
                failed=reader.frames_failed,
                suppressed=reader.suppressed,
            )

    async def _store_chunk(self, track: InboundTrack, chunk: AudioChunk) -> None:
        if chunk.first:
            await self._session.on_track_meta(track.key, chunk.sample_rate, chunk.channels)
        if chunk.suppressed:
            return

        resolution = await self._resolver.resolve(track, chunk.sources)
        await self._session.attribute(track.key, resolution.participant_id)
        await self._session.write_chunk(track.key, chunk.data)

    async def _consume_mixed(self, reader: TrackReader) -> None:
        async for chunk in reader.chunks():
            try:
                if chunk.first:
                    await self._session.on_mixed_meta(chunk.sample_rate, chunk.channels)
                await self._session.write_mixed(chunk.data)
            except Exception as e:
                logger.error("mixed chunk handling failed", error=str(e))

    # Shutdown

    async def stop(self) -> None:
        """Stop accepting frames, drain every reader and wait for writes."""
        if not self._accepting and not self._tasks:
            return
        self._accepting = False

        readers = list(self._readers.values())
        if self._mixed is not None:
            readers.append(self._mixed)
        for reader in readers:
            reader.stop_accepting()
        for reader in readers:
            await reader.finish()

        tasks = list(self._tasks.values())
        self._tasks.clear()
        if not tasks:
            return

        done, pending = await asyncio.wait(tasks, timeout=self._drain_timeout)
        for task in pending:
            logger.warning("reader did not drain in time", task=task.get_name())
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("capture pipeline stopped", readers=len(done), cancelled=len(pending))
