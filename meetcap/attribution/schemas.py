"""Speaker attribution schemas."""

from enum import Enum

from pydantic import BaseModel, Field


class ResolutionSource(str, Enum):
    """How a chunk's speaker was determined."""

    CONTRIBUTING_SOURCE = "contributing_source"
    STREAM = "stream"
    DIRECTORY = "directory"
    PLACEHOLDER = "placeholder"


class Resolution(BaseModel):
    """Result of attributing one chunk to a participant."""

    participant_id: str = Field(description="Attributed participant")
    display_name: str = Field(description="Participant name at resolution time")
    source: ResolutionSource = Field(description="How the match was determined")
    stream_id: str = Field(description="Association key of the track")
    associated: bool = Field(
        default=False, description="True if this resolution created a new association"
    )
