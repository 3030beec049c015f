"""Recording storage: session layout, atomic metadata, WAV finalization."""

from meetcap.storage.atomic import AtomicJsonWriter, write_text_atomic
from meetcap.storage.finalizer import DEFAULT_SAMPLE_RATE, WAV_HEADER_BYTES, finalize_raw
from meetcap.storage.session import RawArtifact, RecordingSession, SessionError

__all__ = [
    "DEFAULT_SAMPLE_RATE",
    "WAV_HEADER_BYTES",
    "AtomicJsonWriter",
    "RawArtifact",
    "RecordingSession",
    "SessionError",
    "finalize_raw",
    "write_text_atomic",
]
