"""Persisted records for a capture run."""

from meetcap.models.base import RecordModel, safe_name, utc_now
from meetcap.models.participant import UNKNOWN_NAME, Participant
from meetcap.models.session import SessionMetadata
from meetcap.models.track import AudioTrack

__all__ = [
    "UNKNOWN_NAME",
    "AudioTrack",
    "Participant",
    "RecordModel",
    "SessionMetadata",
    "safe_name",
    "utc_now",
]
