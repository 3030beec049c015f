"""RecordingSession owns the on-disk state of one capture run.

Layout under the session root:

    meeting_metadata.json
    activity.log
    mixed_audio.wav
    tracks/
        tracks_index.json
        track_<key>.json
        track_<key>.pcm16le.raw   (while open)
        track_<key>.wav           (after close)
    participants/
        participants_summary.json
        <participant_id>/info.json

In-memory records are the source of truth; every metadata document is
rewritten in full after each change, so a failed write is repaired by the
next successful one.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

import structlog
from pydantic import ValidationError

from meetcap.models import AudioTrack, Participant, SessionMetadata, safe_name, utc_now
from meetcap.storage.atomic import AtomicJsonWriter
from meetcap.storage.finalizer import DEFAULT_SAMPLE_RATE, finalize_raw
from meetcap.transport.schemas import InboundTrack

logger = structlog.get_logger()

MIXED_STEM = "mixed_audio"


class SessionError(RuntimeError):
    """Raised when the session root or its initial documents cannot be created."""


@dataclass
class RawArtifact:
    """A raw payload file with its exclusive handle and write lock."""

    path: Path
    handle: BinaryIO | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    finalized: bool = False
    bytes_written: int = 0


def _write_all(handle: BinaryIO, data: bytes) -> None:
    handle.write(data)
    handle.flush()


def _append_line(path: Path, line: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(line if line.endswith("\n") else line + "\n")


class RecordingSession:
    """Persistent state for one capture run.

    Features:
    - Per-track raw artifacts, each with its own lock
    - Atomic, per-path serialized metadata documents
    - Audit trail in activity.log
    - Idempotent close() that finalizes every artifact
    """

    def __init__(
        self,
        root: Path,
        meeting_url: str,
        bot_name: str,
        run_id: str | None = None,
        fallback_sample_rate: int = DEFAULT_SAMPLE_RATE,
        writer: AtomicJsonWriter | None = None,
    ):
        """Initialize session. Nothing touches disk until open().

        Args:
            root: Session root directory
            meeting_url: URL of the meeting being captured
            bot_name: Display name the bot joined with
            run_id: Unique run id, generated when omitted
            fallback_sample_rate: Container rate for tracks that never reported one
            writer: Metadata writer, shared if several sessions write the same tree
        """
        self.root = Path(root)
        self.tracks_dir = self.root / "tracks"
        self.participants_dir = self.root / "participants"
        self.metadata_path = self.root / "meeting_metadata.json"
        self.activity_log = self.root / "activity.log"
        self.tracks_index_path = self.tracks_dir / "tracks_index.json"
        self.summary_path = self.participants_dir / "participants_summary.json"

        self.metadata = SessionMetadata(
            meeting_url=meeting_url,
            bot_name=bot_name,
            run_id=run_id or uuid.uuid4().hex,
        )
        self.tracks: dict[str, AudioTrack] = {}
        self.participants: dict[str, Participant] = {}

        self._fallback_rate = fallback_sample_rate
        self._writer = writer or AtomicJsonWriter()
        self._artifacts: dict[str, RawArtifact] = {}
        self._mixed: RawArtifact | None = None
        self._mixed_rate: int | None = None
        self._opened = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    async def open(self) -> None:
        """Create the directory layout and the initial documents.

        Raises:
            SessionError: The root is not writable
        """
        try:
            for directory in (self.root, self.tracks_dir, self.participants_dir):
                directory.mkdir(parents=True, exist_ok=True)
            await self._writer.write(self.metadata_path, self.metadata.document())
            await self._writer.write(self.tracks_index_path, {})
            await self._writer.write(self.summary_path, {})
        except OSError as e:
            raise SessionError(f"Cannot open recording session at {self.root}: {e}") from e

        self._opened = True
        logger.info("recording session opened", root=str(self.root), run_id=self.metadata.run_id)
        await self.log_activity(
            f"session-open run_id={self.metadata.run_id} url={self.metadata.meeting_url}"
        )

    async def log_activity(self, message: str) -> None:
        """Append a timestamped line to activity.log."""
        line = f"[{utc_now().isoformat()}] {message}"
        try:
            await asyncio.to_thread(_append_line, self.activity_log, line)
        except OSError as e:
            logger.error("activity log write failed", path=str(self.activity_log), error=str(e))

    # Tracks

    async def on_track_open(self, info: InboundTrack | dict) -> AudioTrack | None:
        """Register a track and allocate its raw artifact.

        Returns:
            The track record, or None if the session is not accepting tracks
        """
        if not self.is_open:
            logger.warning("track opened outside an open session", info=str(info))
            return None

        track = info if isinstance(info, InboundTrack) else InboundTrack.model_validate(info)
        existing = self.tracks.get(track.key)
        if existing is not None:
            logger.debug("track already registered", key=track.key)
            return existing

        record = AudioTrack.for_key(
            track.key,
            track_id=track.track_id,
            stream_id=track.stream_id,
            mid=track.mid,
            stem=self._unique_stem(track.key),
        )
        self.tracks[track.key] = record

        raw_path = self.tracks_dir / record.raw
        artifact = RawArtifact(path=raw_path)
        try:
            artifact.handle = raw_path.open("ab")
        except OSError as e:
            logger.error(
                "cannot open track artifact",
                key=track.key,
                path=str(raw_path),
                error=str(e),
            )
        self._artifacts[track.key] = artifact

        await self._write_track(record)
        await self.log_activity(
            f"track-open {track.key} trackId={track.track_id or ''} "
            f"mid={track.mid or ''} stream={track.stream_id or ''}"
        )
        return record

    def _unique_stem(self, key: str) -> str:
        stem = f"track_{safe_name(key)}"
        taken = {t.wav.removesuffix(".wav") for t in self.tracks.values()}
        candidate, n = stem, 1
        while candidate in taken:
            n += 1
            candidate = f"{stem}_{n}"
        return candidate

    async def on_track_meta(
        self, key: str, sample_rate: int | None = None, channels: int | None = None
    ) -> None:
        """Back-fill the sample format once the first frame has been decoded."""
        record = self.tracks.get(key)
        if record is None:
            logger.debug("format for unknown track ignored", key=key)
            return
        if sample_rate:
            record.sample_rate = sample_rate
        if channels:
            record.channels = channels
        await self._write_track(record)

    async def on_track_close(self, key: str) -> None:
        """Stamp ended_at. The raw artifact stays in place for finalization."""
        record = self.tracks.get(key)
        if record is None:
            logger.debug("close for unknown track ignored", key=key)
            return
        if record.is_open:
            record.ended_at = utc_now()
        await self._write_track(record)
        await self.log_activity(f"track-close {key} bytes={record.bytes_written}")

    async def write_chunk(self, key: str, data: bytes) -> bool:
        """Append PCM bytes to a track's raw artifact.

        Returns:
            True if the bytes were written
        """
        artifact = self._artifacts.get(key)
        if artifact is None:
            logger.warning("chunk for unknown track dropped", key=key, bytes=len(data))
            return False

        if not await self._append(artifact, data, key):
            return False

        record = self.tracks[key]
        record.bytes_written += len(data)
        record.chunks_written += 1
        return True

    def note_suppressed(self, key: str, count: int) -> None:
        """Record how many silent chunks the extractor suppressed."""
        record = self.tracks.get(key)
        if record is not None:
            record.chunks_suppressed = count

    async def attribute(self, key: str, participant_id: str) -> None:
        """Link a track to the participant its audio was attributed to."""
        record = self.tracks.get(key)
        if record is None or record.participant_id == participant_id:
            return

        record.participant_id = participant_id
        participant = self.participants.get(participant_id)
        if participant is not None and key not in participant.tracks:
            participant.tracks.append(key)
            await self._write_participant(participant)
            await self._write_summary()

        await self._write_track(record)
        await self.log_activity(f"track-attributed {key} participant={participant_id}")

    # Mixed recording

    async def on_mixed_meta(self, sample_rate: int | None, channels: int | None = None) -> None:
        if sample_rate and self._mixed_rate != sample_rate:
            self._mixed_rate = sample_rate
            logger.info("mixed audio format", sample_rate=sample_rate, channels=channels)

    async def write_mixed(self, data: bytes) -> bool:
        """Append PCM bytes to the session-wide mixed recording."""
        if not self.is_open:
            logger.debug("mixed chunk outside an open session dropped", bytes=len(data))
            return False
        if self._mixed is None:
            path = self.root / f"{MIXED_STEM}.pcm16le.raw"
            self._mixed = RawArtifact(path=path)
            try:
                self._mixed.handle = path.open("ab")
            except OSError as e:
                logger.error("cannot open mixed artifact", path=str(path), error=str(e))
            await self.log_activity("mixed-open")
        return await self._append(self._mixed, data, MIXED_STEM)

    async def _append(self, artifact: RawArtifact, data: bytes, key: str) -> bool:
        async with artifact.lock:
            if artifact.finalized:
                logger.debug("write after finalization dropped", key=key, bytes=len(data))
                return False
            if artifact.handle is None:
                return False
            try:
                await asyncio.to_thread(_write_all, artifact.handle, data)
            except OSError as e:
                logger.error(
                    "artifact write failed",
                    key=key,
                    path=str(artifact.path),
                    error=str(e),
                )
                return False
            artifact.bytes_written += len(data)
        return True

    # Participants

    async def on_participants(self, participants: list[Participant | dict]) -> None:
        """Upsert participants and rewrite their documents."""
        for item in participants:
            try:
                incoming = (
                    item if isinstance(item, Participant) else Participant.model_validate(item)
                )
            except ValidationError as e:
                logger.warning("malformed participant record skipped", error=str(e))
                continue

            pid = incoming.participant_id
            existing = self.participants.get(pid)
            if existing is None:
                entry = incoming.model_copy(deep=True)
                entry.tracks = sorted(
                    set(entry.tracks)
                    | {k for k, t in self.tracks.items() if t.participant_id == pid}
                )
                self.participants[pid] = entry
                participant_dir = self.participants_dir / safe_name(pid)
                try:
                    participant_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    logger.error(
                        "cannot create participant directory",
                        id=pid,
                        path=str(participant_dir),
                        error=str(e),
                    )
                await self.log_activity(f'participant-add {pid} "{entry.display_name}"')
            else:
                if existing.observe(incoming.display_name, incoming.last_seen):
                    await self.log_activity(f'participant-rename {pid} "{existing.display_name}"')
                entry = existing

            await self._write_participant(entry)

        await self._write_summary()

    # Documents

    async def _write_document(self, path: Path, document: Any) -> None:
        try:
            await self._writer.write(path, document)
        except OSError as e:
            logger.error("metadata write failed", path=str(path), error=str(e))

    async def _write_track(self, record: AudioTrack) -> None:
        await self._write_document(self.tracks_dir / record.meta, record.document())
        await self._write_document(
            self.tracks_index_path, {k: t.document() for k, t in self.tracks.items()}
        )

    async def _write_participant(self, participant: Participant) -> None:
        path = self.participants_dir / safe_name(participant.participant_id) / "info.json"
        await self._write_document(path, participant.document())

    async def _write_summary(self) -> None:
        await self._write_document(
            self.summary_path,
            {pid: p.summary() for pid, p in self.participants.items()},
        )

    # Shutdown

    async def _finalize(
        self, artifact: RawArtifact, wav_path: Path, sample_rate: int | None
    ) -> Path | None:
        async with artifact.lock:
            if artifact.finalized:
                return None
            artifact.finalized = True
            if artifact.handle is None:
                return None
            try:
                artifact.handle.close()
                return await asyncio.to_thread(
                    finalize_raw, artifact.path, wav_path, sample_rate, self._fallback_rate
                )
            except OSError as e:
                logger.error("finalization failed", path=str(artifact.path), error=str(e))
                return None

    async def close(self) -> None:
        """Finalize every artifact and write the final documents.

        Safe to call more than once and on a session that never opened.
        """
        if self._closed:
            return
        self._closed = True
        if not self._opened:
            return

        now = utc_now()
        for key, record in self.tracks.items():
            if record.is_open:
                record.ended_at = now
            wav = await self._finalize(
                self._artifacts[key], self.tracks_dir / record.wav, record.sample_rate
            )
            if wav is not None:
                await self.log_activity(f"track-finalized {key} wav={record.wav}")

        if self._mixed is not None:
            wav = await self._finalize(
                self._mixed, self.root / f"{MIXED_STEM}.wav", self._mixed_rate
            )
            if wav is not None:
                self.metadata.mixed_audio = wav.name

        for participant in self.participants.values():
            if participant.leave_time is None:
                participant.leave_time = now

        self.metadata.ended_at = now

        for record in self.tracks.values():
            await self._write_document(self.tracks_dir / record.meta, record.document())
        await self._write_document(
            self.tracks_index_path, {k: t.document() for k, t in self.tracks.items()}
        )
        for participant in self.participants.values():
            await self._write_participant(participant)
        await self._write_summary()
        await self._write_document(self.metadata_path, self.metadata.document())

        await self.log_activity(
            f"session-close tracks={len(self.tracks)} "
            f"participants={len(self.participants)}"
        )
        logger.info(
            "recording session closed",
            root=str(self.root),
            tracks=len(self.tracks),
            participants=len(self.participants),
        )
