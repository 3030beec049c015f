"""Pytest configuration and fixtures."""

import base64
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import numpy as np
import pytest

from meetcap.audio.frame import AudioFrame
from meetcap.capture.joiner import AdmissionTimeoutError
from meetcap.config import Settings
from meetcap.storage.session import RecordingSession


def encode_payload(
    channels: np.ndarray,
    sample_rate: int = 16000,
    layout: str = "planar",
    sources: list[dict] | None = None,
) -> dict:
    """Bridge payload for samples shaped (channels, frames)."""
    samples = np.atleast_2d(np.asarray(channels, dtype="<f4"))
    data = samples if layout == "planar" else samples.T
    return {
        "sampleRate": sample_rate,
        "channels": samples.shape[0],
        "frames": samples.shape[1],
        "layout": layout,
        "data": base64.b64encode(np.ascontiguousarray(data, dtype="<f4").tobytes()).decode(),
        "sources": sources or [],
    }


class FakeHost:
    """In-memory HostTransport; tests drive the interceptor directly."""

    def __init__(
        self,
        snapshots: list[dict] | None = None,
        attached: bool = True,
        install_error: Exception | None = None,
    ):
        self.snapshots = snapshots or []
        self.attached = attached
        self.install_error = install_error
        self.interceptor = None
        self.activated = False
        self.on_activate: Callable | None = None

    async def install_interceptor(self, interceptor) -> None:
        if self.install_error:
            raise self.install_error
        self.interceptor = interceptor

    async def interceptor_installed(self) -> bool:
        return self.attached

    async def activate_capture(self) -> None:
        self.activated = True
        if self.on_activate is not None:
            await self.on_activate(self.interceptor)

    async def snapshot_participants(self) -> list[dict]:
        return list(self.snapshots)


class FakeJoiner:
    """MeetingJoiner that admits immediately unless told otherwise."""

    def __init__(self, admit: bool = True):
        self.admit = admit
        self.joined: tuple[str, str] | None = None
        self.left = False

    async def join(self, meeting_url: str, bot_name: str) -> None:
        self.joined = (meeting_url, bot_name)

    async def wait_for_admission(self, timeout: float) -> None:
        if not self.admit:
            raise AdmissionTimeoutError(f"Not admitted within {timeout:.0f}s")

    async def leave(self) -> None:
        self.left = True


@pytest.fixture
def make_payload() -> Callable[..., dict]:
    """Factory for frame payloads from (channels, frames) sample arrays."""
    return encode_payload


@pytest.fixture
def make_frame() -> Callable[..., AudioFrame]:
    """Factory for decoded frames from (channels, frames) sample arrays."""

    def factory(channels, sample_rate: int = 16000, layout: str = "planar", sources=None):
        return AudioFrame.from_payload(encode_payload(channels, sample_rate, layout, sources))

    return factory


@pytest.fixture
def fake_host_class() -> type[FakeHost]:
    return FakeHost


@pytest.fixture
def fake_joiner_class() -> type[FakeJoiner]:
    return FakeJoiner


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings tuned for fast tests."""
    return Settings(
        output_dir=tmp_path / "recordings",
        bot_name="Meetcap",
        capture_seconds=0.05,
        admission_timeout_seconds=1,
        settle_seconds=0,
        scrape_interval_seconds=60,
        scrape_timeout_seconds=0.5,
    )


@pytest.fixture
async def session(tmp_path: Path) -> AsyncIterator[RecordingSession]:
    """Opened recording session under a temp directory."""
    s = RecordingSession(
        tmp_path / "run",
        meeting_url="https://meet.example.com/abc-defg-hij",
        bot_name="Meetcap",
        run_id="run-0001",
    )
    await s.open()
    yield s
    await s.close()
