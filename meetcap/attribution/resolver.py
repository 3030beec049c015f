"""SpeakerResolver attributes audio chunks to participants.

Resolution pipeline (in order):
1. Contributing source (loudest source above threshold with a known association)
2. Stream association (the track's stream id, or track id without one)
3. Directory (earliest-seen real participant, approximate)
4. Placeholder (shared unattributed identity, or one derived from the track)

Steps 3 and 4 create a stream association so later chunks stop at step 2.
Steps 2 and 3 also learn the chunk's single active contributing source, so
step 1 can attribute that source wherever it is heard next.
"""

import structlog

from meetcap.attribution.association import StreamAssociation
from meetcap.attribution.schemas import Resolution, ResolutionSource
from meetcap.audio.frame import ContributingSource
from meetcap.directory.directory import ParticipantDirectory
from meetcap.models import UNKNOWN_NAME, safe_name
from meetcap.transport.schemas import InboundTrack

logger = structlog.get_logger()

UNKNOWN_SPEAKER_NAME = "Unknown Speaker"


def placeholder_id_for(track: InboundTrack) -> str:
    """Placeholder participant id derived from the track's own identifier."""
    return f"unknown_{safe_name(track.track_id or track.key)}"


class SpeakerResolver:
    """Best-effort speaker attribution for inbound audio.

    resolve() never raises: an unresolvable chunk is attributed to a
    placeholder so it is still written.
    """

    def __init__(
        self,
        directory: ParticipantDirectory,
        association: StreamAssociation | None = None,
        level_threshold: float = 0.01,
    ):
        """Initialize resolver.

        Args:
            directory: Participant roster consulted in steps 3 and 4
            association: Stream-to-participant table, owned by this resolver
            level_threshold: Minimum contributing-source level treated as speech
        """
        self._directory = directory
        self.association = association or StreamAssociation()
        self._threshold = level_threshold

    async def resolve(
        self,
        track: InboundTrack,
        sources: list[ContributingSource] | None = None,
    ) -> Resolution:
        """Attribute a chunk from track to a participant.

        Args:
            track: The track the chunk was read from
            sources: Contributing-source telemetry delivered with the frame

        Returns:
            Resolution naming the participant and the step that matched
        """
        stream_id = track.association_id
        try:
            return await self._resolve(track, stream_id, sources or [])
        except Exception as e:
            logger.error("attribution failed", key=track.key, error=str(e))
            return Resolution(
                participant_id=placeholder_id_for(track),
                display_name=UNKNOWN_SPEAKER_NAME,
                source=ResolutionSource.PLACEHOLDER,
                stream_id=stream_id,
            )

    async def _resolve(
        self,
        track: InboundTrack,
        stream_id: str,
        sources: list[ContributingSource],
    ) -> Resolution:
        # Step 1: contributing source
        participant_id = self._loudest_known_source(sources)
        if participant_id:
            return self._result(participant_id, ResolutionSource.CONTRIBUTING_SOURCE, stream_id)

        # Step 2: existing stream association
        participant_id = self.association.get(stream_id)
        if participant_id:
            self._learn_source(sources, participant_id)
            return self._result(participant_id, ResolutionSource.STREAM, stream_id)

        logger.debug("no stream association", key=track.key, stream_id=stream_id)

        # Step 3: first real participant in the directory
        participant = self._directory.first_known()
        if participant is not None:
            self.association.associate(stream_id, participant.participant_id)
            self._learn_source(sources, participant.participant_id)
            logger.info(
                "stream attributed from directory",
                key=track.key,
                stream_id=stream_id,
                participant_id=participant.participant_id,
            )
            return self._result(
                participant.participant_id,
                ResolutionSource.DIRECTORY,
                stream_id,
                associated=True,
            )

        # Step 4: placeholder
        participant = self._directory.placeholder
        if participant is None:
            participant = await self._directory.register_placeholder(
                placeholder_id_for(track), UNKNOWN_SPEAKER_NAME
            )
        self.association.associate(stream_id, participant.participant_id)
        logger.info(
            "stream attributed to placeholder",
            key=track.key,
            stream_id=stream_id,
            participant_id=participant.participant_id,
        )
        return self._result(
            participant.participant_id,
            ResolutionSource.PLACEHOLDER,
            stream_id,
            associated=True,
        )

    def _learn_source(self, sources: list[ContributingSource], participant_id: str) -> None:
        """Associate the single active contributing source with participant_id.

        With more than one source above the threshold the speaker is ambiguous
        and nothing is learned.
        """
        active = [s for s in sources if s.audio_level >= self._threshold]
        if len(active) != 1:
            return
        self.association.associate(active[0].source, participant_id)
        logger.debug(
            "contributing source learned",
            source=active[0].source,
            participant_id=participant_id,
        )

    def _loudest_known_source(self, sources: list[ContributingSource]) -> str | None:
        """Participant of the loudest associated source above the threshold."""
        for source in sorted(sources, key=lambda s: s.audio_level, reverse=True):
            if source.audio_level < self._threshold:
                break
            participant_id = self.association.get(source.source)
            if participant_id:
                return participant_id
        if sources:
            logger.debug("no associated contributing source", count=len(sources))
        return None

    def _result(
        self,
        participant_id: str,
        source: ResolutionSource,
        stream_id: str,
        associated: bool = False,
    ) -> Resolution:
        participant = self._directory.get(participant_id)
        return Resolution(
            participant_id=participant_id,
            display_name=participant.display_name if participant else UNKNOWN_NAME,
            source=source,
            stream_id=stream_id,
            associated=associated,
        )
