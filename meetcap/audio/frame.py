"""Decoded audio frames handed over by the page hook."""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ContributingSource(BaseModel):
    """Per-source energy reported by a mixed inbound audio transport."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source: str = Field(description="Contributing source identifier")
    audio_level: float = Field(
        default=0.0,
        ge=0.0,
        validation_alias=AliasChoices("audio_level", "audioLevel"),
    )

    @field_validator("source", mode="before")
    @classmethod
    def source_as_str(cls, v: object) -> str:
        """Source ids arrive as numbers; associations are keyed by string."""
        return str(v)


class FramePayload(BaseModel):
    """Wire form of one frame: float32 little-endian samples as base64."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sample_rate: int = Field(
        gt=0, validation_alias=AliasChoices("sample_rate", "sampleRate")
    )
    channels: int = Field(
        gt=0, validation_alias=AliasChoices("channels", "numberOfChannels")
    )
    frames: int = Field(
        ge=0, validation_alias=AliasChoices("frames", "numberOfFrames")
    )
    layout: Literal["planar", "interleaved"] = "planar"
    data: str = ""
    sources: list[ContributingSource] = Field(default_factory=list)


@dataclass
class AudioFrame:
    """One frame of float32 samples in planar and/or interleaved layout.

    Buffers are released by close(); a closed frame cannot be decoded.
    """

    sample_rate: int
    channels: int
    frames: int
    planar: bytes | None = None
    interleaved: bytes | None = None
    sources: list[ContributingSource] = field(default_factory=list)
    closed: bool = False

    @classmethod
    def from_payload(cls, payload: FramePayload | dict) -> "AudioFrame":
        """Build a frame from the bridge payload.

        Undecodable base64 leaves both buffers empty so extraction fails
        for this frame only.
        """
        if isinstance(payload, dict):
            payload = FramePayload.model_validate(payload)

        try:
            data = base64.b64decode(payload.data, validate=True)
        except (binascii.Error, ValueError):
            data = None

        return cls(
            sample_rate=payload.sample_rate,
            channels=payload.channels,
            frames=payload.frames,
            planar=data if payload.layout == "planar" else None,
            interleaved=data if payload.layout == "interleaved" else None,
            sources=list(payload.sources),
        )

    def close(self) -> None:
        """Release sample buffers. Safe to call more than once."""
        self.planar = None
        self.interleaved = None
        self.closed = True
