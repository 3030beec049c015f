"""Transport interception: observing inbound audio in the host page."""

from meetcap.transport.base import HostTransport, TrackListener
from meetcap.transport.interceptor import TransportInterceptor
from meetcap.transport.schemas import InboundTrack, StreamMapping

__all__ = [
    "HostTransport",
    "InboundTrack",
    "StreamMapping",
    "TrackListener",
    "TransportInterceptor",
]
