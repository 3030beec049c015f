"""Host transport and track listener protocols.

A host transport is whatever environment constructs the meeting's peer
connections (a browser page, in practice). It installs the interception
hook and forwards what the hook observes to a TransportInterceptor.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from meetcap.audio.frame import AudioFrame
from meetcap.transport.schemas import InboundTrack, StreamMapping

if TYPE_CHECKING:
    from meetcap.transport.interceptor import TransportInterceptor


@runtime_checkable
class TrackListener(Protocol):
    """Consumer of transport events.

    Listeners implement this protocol for structural subtyping;
    they don't need to inherit, just implement the methods.
    """

    async def on_track_open(self, track: InboundTrack) -> None:
        """An inbound audio transport was observed."""
        ...

    async def on_frame(self, key: str, frame: AudioFrame) -> None:
        """A decoded frame arrived for a track.

        The listener owns the frame and must close it.
        """
        ...

    async def on_track_ended(self, key: str) -> None:
        """The transport signalled end of stream."""
        ...

    async def on_mixed_frame(self, frame: AudioFrame) -> None:
        """A frame of the page's mixed-down output arrived."""
        ...

    async def on_stream_map(self, mappings: list[StreamMapping]) -> None:
        """The page reported stream-to-participant associations."""
        ...


@runtime_checkable
class HostTransport(Protocol):
    """Environment that owns the peer connections being observed."""

    async def install_interceptor(self, interceptor: "TransportInterceptor") -> None:
        """Install the hook so every later peer connection is observed.

        Must run before the meeting's own scripts construct connections.
        """
        ...

    async def interceptor_installed(self) -> bool:
        """Check that the hook is live in the current document."""
        ...

    async def activate_capture(self) -> None:
        """Start delivering frames, including for tracks held since join."""
        ...

    async def snapshot_participants(self) -> list[dict]:
        """Serialize the participant elements currently in the UI."""
        ...
