"""Audio frame extraction."""

from meetcap.audio.extractor import (
    AudioChunk,
    FrameDecodeError,
    SilenceGate,
    TrackReader,
    downmix,
    extract_mono,
    float_to_pcm16,
    peak_amplitude,
)
from meetcap.audio.frame import AudioFrame, ContributingSource, FramePayload

__all__ = [
    "AudioChunk",
    "AudioFrame",
    "ContributingSource",
    "FrameDecodeError",
    "FramePayload",
    "SilenceGate",
    "TrackReader",
    "downmix",
    "extract_mono",
    "float_to_pcm16",
    "peak_amplitude",
]
