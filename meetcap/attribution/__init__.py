"""Speaker attribution for inbound audio."""

from meetcap.attribution.association import StreamAssociation
from meetcap.attribution.resolver import (
    UNKNOWN_SPEAKER_NAME,
    SpeakerResolver,
    placeholder_id_for,
)
from meetcap.attribution.schemas import Resolution, ResolutionSource

__all__ = [
    "UNKNOWN_SPEAKER_NAME",
    "Resolution",
    "ResolutionSource",
    "SpeakerResolver",
    "StreamAssociation",
    "placeholder_id_for",
]
