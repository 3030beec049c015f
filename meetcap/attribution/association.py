"""Stream-to-participant association table."""

from collections.abc import Iterable

import structlog

from meetcap.transport.schemas import StreamMapping

logger = structlog.get_logger()


class StreamAssociation:
    """Many-to-one mapping from stream (or source) ids to participant ids.

    An association, once made, is kept for the rest of the run unless the
    page explicitly remaps the id.
    """

    def __init__(self) -> None:
        self._by_stream: dict[str, str] = {}

    def get(self, stream_id: str | None) -> str | None:
        if not stream_id:
            return None
        return self._by_stream.get(stream_id)

    def associate(self, stream_id: str, participant_id: str) -> bool:
        """Record an association.

        Returns:
            True if the mapping was new or changed
        """
        if self._by_stream.get(stream_id) == participant_id:
            return False
        self._by_stream[stream_id] = participant_id
        logger.debug("stream associated", stream_id=stream_id, participant_id=participant_id)
        return True

    def associate_many(self, pairs: Iterable[StreamMapping | dict]) -> int:
        """Apply page-provided mappings.

        Returns:
            Number of mappings that were new or changed
        """
        changed = 0
        for pair in pairs:
            mapping = (
                pair if isinstance(pair, StreamMapping) else StreamMapping.model_validate(pair)
            )
            if self.associate(mapping.stream_id, mapping.participant_id):
                changed += 1
        return changed

    def streams_for(self, participant_id: str) -> list[str]:
        return [s for s, p in self._by_stream.items() if p == participant_id]

    def __contains__(self, stream_id: object) -> bool:
        return stream_id in self._by_stream

    def __len__(self) -> int:
        return len(self._by_stream)
