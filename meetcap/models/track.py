"""Audio track model: one inbound audio transport and its recording."""

from datetime import datetime

from pydantic import AliasChoices, Field

from meetcap.models.base import RecordModel, safe_name, utc_now


class AudioTrack(RecordModel):
    """An inbound audio transport observed in the page.

    Sample rate and channel count stay None until the first decoded
    frame arrives.
    """

    key: str = Field(min_length=1, description="Unique per transport object")
    track_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("track_id", "trackId"),
        serialization_alias="trackId",
    )
    stream_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("stream_id", "streamId"),
        serialization_alias="streamId",
    )
    mid: str | None = Field(default=None, description="Transceiver media id")
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: datetime | None = None
    sample_rate: int | None = Field(default=None, gt=0)
    channels: int | None = Field(default=None, gt=0)
    wav: str = Field(description="Finalized container filename")
    meta: str = Field(description="Per-track metadata filename")
    participant_id: str | None = Field(
        default=None, description="Most recent attributed participant"
    )
    bytes_written: int = 0
    chunks_written: int = 0
    chunks_suppressed: int = 0

    @classmethod
    def for_key(
        cls,
        key: str,
        track_id: str | None = None,
        stream_id: str | None = None,
        mid: str | None = None,
        stem: str | None = None,
    ) -> "AudioTrack":
        """Build a new track with filenames derived from its key."""
        stem = stem or f"track_{safe_name(key)}"
        return cls(
            key=key,
            track_id=track_id,
            stream_id=stream_id,
            mid=mid,
            wav=f"{stem}.wav",
            meta=f"{stem}.json",
        )

    @property
    def raw(self) -> str:
        """Raw payload filename while the track is open."""
        return self.wav.removesuffix(".wav") + ".pcm16le.raw"

    @property
    def is_open(self) -> bool:
        return self.ended_at is None
