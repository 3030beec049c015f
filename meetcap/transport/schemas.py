"""Payload schemas for track and roster events crossing the page/host bridge."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class BridgeModel(BaseModel):
    """Base for bridge payloads: accept camelCase or snake_case keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InboundTrack(BridgeModel):
    """An inbound audio transport announced by the page hook."""

    key: str = Field(min_length=1)
    track_id: str | None = Field(
        default=None, validation_alias=AliasChoices("track_id", "trackId")
    )
    stream_id: str | None = Field(
        default=None, validation_alias=AliasChoices("stream_id", "streamId")
    )
    mid: str | None = None

    @property
    def association_id(self) -> str:
        """Identifier used for stream-to-participant association."""
        return self.stream_id or self.track_id or self.key


class StreamMapping(BridgeModel):
    """Page-provided association of a stream or source id with a participant."""

    stream_id: str = Field(validation_alias=AliasChoices("stream_id", "streamId"))
    participant_id: str = Field(
        validation_alias=AliasChoices("participant_id", "participantId")
    )

    @field_validator("stream_id", "participant_id", mode="before")
    @classmethod
    def id_as_str(cls, v: object) -> str:
        return str(v)
