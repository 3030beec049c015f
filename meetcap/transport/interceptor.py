"""Host-side half of transport interception.

The page hook observes peer connections and calls into a
TransportInterceptor through the host's bridge. The interceptor validates
each event, keeps the registry of inbound tracks, and fans events out to
registered listeners.
"""

from collections.abc import Iterable

import structlog
from pydantic import ValidationError

from meetcap.audio.frame import AudioFrame, FramePayload
from meetcap.transport.base import HostTransport, TrackListener
from meetcap.transport.schemas import InboundTrack, StreamMapping

logger = structlog.get_logger()


class TransportInterceptor:
    """Registry of observed inbound tracks and listener fan-out.

    Features:
    - Delivery to listeners in registration order
    - Error isolation (one listener failure doesn't affect others)
    - Per-listener frame copies, so each listener owns what it receives
    """

    def __init__(self, listeners: Iterable[TrackListener] = ()):
        self._listeners: list[TrackListener] = list(listeners)
        self.tracks: dict[str, InboundTrack] = {}
        self.ended: set[str] = set()
        self.installed = False

    def add_listener(self, listener: TrackListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TrackListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def open_tracks(self) -> list[str]:
        return [key for key in self.tracks if key not in self.ended]

    async def install(self, host: HostTransport) -> bool:
        """Install the page hook through the host.

        A failure is logged and leaves capture detached; it is not raised.

        Returns:
            True if the host accepted the hook
        """
        try:
            await host.install_interceptor(self)
        except Exception as e:
            logger.error("interceptor install failed", error=str(e))
            self.installed = False
            return False
        self.installed = True
        logger.info("interceptor installed")
        return True

    async def verify(self, host: HostTransport) -> bool:
        """Confirm the hook is live in the loaded page."""
        try:
            attached = self.installed and await host.interceptor_installed()
        except Exception as e:
            logger.error("interceptor check failed", error=str(e))
            attached = False
        if not attached:
            logger.error("capture never attached", installed=self.installed)
        return attached

    # Bridge entry points

    async def track_opened(self, payload: dict) -> None:
        try:
            track = InboundTrack.model_validate(payload)
        except ValidationError as e:
            logger.warning("malformed track announcement dropped", error=str(e))
            return
        if track.key in self.tracks:
            logger.debug("duplicate track announcement", key=track.key)
            return
        self.tracks[track.key] = track
        logger.info(
            "inbound audio track",
            key=track.key,
            track_id=track.track_id,
            stream_id=track.stream_id,
            mid=track.mid,
        )
        await self._dispatch("on_track_open", track)

    async def frame_received(self, key: str, payload: dict) -> None:
        try:
            frame_payload = FramePayload.model_validate(payload)
        except ValidationError as e:
            logger.warning("malformed frame dropped", key=key, error=str(e))
            return
        for listener in list(self._listeners):
            frame = AudioFrame.from_payload(frame_payload)
            try:
                await listener.on_frame(key, frame)
            except Exception as e:
                frame.close()
                logger.error("track listener failed", handler="on_frame", key=key, error=str(e))

    async def track_ended(self, key: str) -> None:
        if key in self.ended:
            return
        self.ended.add(key)
        logger.info("inbound audio track ended", key=key)
        await self._dispatch("on_track_ended", key)

    async def mixed_frame_received(self, payload: dict) -> None:
        try:
            frame_payload = FramePayload.model_validate(payload)
        except ValidationError as e:
            logger.warning("malformed mixed frame dropped", error=str(e))
            return
        for listener in list(self._listeners):
            frame = AudioFrame.from_payload(frame_payload)
            try:
                await listener.on_mixed_frame(frame)
            except Exception as e:
                frame.close()
                logger.error("track listener failed", handler="on_mixed_frame", error=str(e))

    async def stream_map_received(self, pairs: list[dict]) -> None:
        mappings: list[StreamMapping] = []
        for pair in pairs or []:
            try:
                mappings.append(StreamMapping.model_validate(pair))
            except ValidationError as e:
                logger.debug("malformed stream mapping skipped", error=str(e))
        if mappings:
            await self._dispatch("on_stream_map", mappings)

    def page_log(self, message: str) -> None:
        logger.info("page", message=message)

    async def _dispatch(self, handler: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                await getattr(listener, handler)(*args)
            except Exception as e:
                logger.error("track listener failed", handler=handler, error=str(e))
