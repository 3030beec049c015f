"""Capture run orchestration."""

from meetcap.capture.joiner import (
    AdmissionTimeoutError,
    GoogleMeetJoiner,
    JoinError,
    MeetingJoiner,
)
from meetcap.capture.pipeline import CapturePipeline
from meetcap.capture.runner import record_meeting, run_capture, session_root

__all__ = [
    "AdmissionTimeoutError",
    "CapturePipeline",
    "GoogleMeetJoiner",
    "JoinError",
    "MeetingJoiner",
    "record_meeting",
    "run_capture",
    "session_root",
]
