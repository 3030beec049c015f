"""Participant directory built from periodic roster scrapes.

The directory is the single in-memory roster for a capture run. It is
refreshed on a schedule, consulted by the speaker resolver, and pushes
every change to the recording session.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime

import structlog
from pydantic import ValidationError
from rapidfuzz import fuzz, process, utils

from meetcap.directory.strategies import ElementSnapshot, ParticipantRef, extract_participant
from meetcap.models import UNKNOWN_NAME, Participant, safe_name, utc_now

logger = structlog.get_logger()

PLACEHOLDER_ID = "unattributed"
PLACEHOLDER_NAME = "Unattributed Audio"
GENERATED_ID_PREFIX = "dom_"
SELF_NAMES = frozenset({"you"})

SnapshotSource = Callable[[], Awaitable[list[ElementSnapshot | dict]]]
UpdateHandler = Callable[[list[Participant]], Awaitable[None]]


class ParticipantDirectory:
    """Roster of participants observed in the meeting UI.

    Features:
    - Bounded scrapes (a slow or failing page yields no new data)
    - Upsert by stable id, fuzzy merge for names without one
    - Placeholder identities for audio nobody can be attributed to
    - Change notification to a single async handler
    """

    def __init__(
        self,
        snapshot: SnapshotSource | None = None,
        *,
        bot_name: str | None = None,
        timeout: float = 5.0,
        match_threshold: float = 0.9,
        on_update: UpdateHandler | None = None,
    ):
        """Initialize directory.

        Args:
            snapshot: Coroutine function returning the page's participant elements
            bot_name: The capturing bot's own display name, never attributed
            timeout: Seconds a single scrape may take
            match_threshold: Similarity (0-1) for merging names without an id
            on_update: Called with all participants after each change
        """
        self._snapshot = snapshot
        self._timeout = timeout
        self._threshold = match_threshold
        self._on_update = on_update
        self._participants: dict[str, Participant] = {}
        self._self_names = set(SELF_NAMES)
        if bot_name:
            self._self_names.add(bot_name.strip().lower())

    @property
    def participants(self) -> list[Participant]:
        """All participants, earliest seen first."""
        return sorted(self._participants.values(), key=lambda p: p.first_seen)

    def get(self, participant_id: str) -> Participant | None:
        return self._participants.get(participant_id)

    def __len__(self) -> int:
        return len(self._participants)

    def is_self(self, display_name: str) -> bool:
        return display_name.strip().lower() in self._self_names

    async def refresh(self) -> int:
        """Scrape the page once and merge the results.

        Returns:
            Number of participants observed by this scrape
        """
        if self._snapshot is None:
            return 0

        try:
            raw = await asyncio.wait_for(self._snapshot(), timeout=self._timeout)
        except TimeoutError:
            logger.warning("participant scrape timed out", timeout=self._timeout)
            return 0
        except Exception as e:
            logger.warning("participant scrape failed", error=str(e))
            return 0

        refs = list(self._extract(raw or []))
        now = utc_now()
        for ref in refs:
            self.upsert(ref, at=now)

        if not refs and not self._participants:
            self._add_placeholder(PLACEHOLDER_ID, PLACEHOLDER_NAME, now)
            logger.info("no participants found, added placeholder", id=PLACEHOLDER_ID)

        if refs or self._participants:
            await self._notify()

        logger.debug("participant scrape complete", found=len(refs), total=len(self))
        return len(refs)

    def _extract(self, raw: Iterable[ElementSnapshot | dict]) -> Iterable[ParticipantRef]:
        for item in raw:
            try:
                snapshot = (
                    item
                    if isinstance(item, ElementSnapshot)
                    else ElementSnapshot.model_validate(item)
                )
            except ValidationError as e:
                logger.debug("skipping malformed participant element", error=str(e))
                continue
            ref = extract_participant(snapshot)
            if ref is not None:
                yield ref

    def upsert(self, ref: ParticipantRef, at: datetime | None = None) -> Participant:
        """Insert or update a participant.

        Re-observation updates the display name and last_seen; an entry is
        never duplicated.
        """
        at = at or utc_now()
        participant_id = ref.participant_id or self._match_unidentified(ref.display_name)

        existing = self._participants.get(participant_id)
        if existing is not None:
            name = ref.display_name if ref.display_name != UNKNOWN_NAME else None
            if existing.observe(name, at):
                logger.info(
                    "participant renamed",
                    id=participant_id,
                    display_name=existing.display_name,
                )
            return existing

        participant = Participant(
            participant_id=participant_id,
            display_name=ref.display_name,
            first_seen=at,
            last_seen=at,
        )
        self._participants[participant_id] = participant
        logger.info(
            "participant joined",
            id=participant_id,
            display_name=participant.display_name,
            strategy=ref.strategy,
        )
        return participant

    def _match_unidentified(self, display_name: str) -> str:
        """Find the generated id for a name scraped without a stable id."""
        choices = {
            pid: p.display_name
            for pid, p in self._participants.items()
            if pid.startswith(GENERATED_ID_PREFIX)
        }
        if choices and display_name != UNKNOWN_NAME:
            result = process.extractOne(
                display_name,
                choices,
                scorer=fuzz.token_sort_ratio,
                processor=utils.default_process,
                score_cutoff=self._threshold * 100,
            )
            if result:
                _name, _score, participant_id = result
                return participant_id
        return f"{GENERATED_ID_PREFIX}{safe_name(display_name.lower().replace(' ', '_'))}"

    def first_known(self) -> Participant | None:
        """Earliest-seen real participant other than the bot itself."""
        candidates = [
            p
            for p in self._participants.values()
            if not p.placeholder
            and p.display_name != UNKNOWN_NAME
            and not self.is_self(p.display_name)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda p: p.first_seen)

    @property
    def placeholder(self) -> Participant | None:
        """The shared unattributed placeholder, if one was created."""
        return self._participants.get(PLACEHOLDER_ID)

    async def register_placeholder(self, participant_id: str, display_name: str) -> Participant:
        """Get or create a placeholder identity and publish the change."""
        existing = self._participants.get(participant_id)
        if existing is not None:
            return existing
        participant = self._add_placeholder(participant_id, display_name, utc_now())
        await self._notify()
        return participant

    def _add_placeholder(
        self, participant_id: str, display_name: str, at: datetime
    ) -> Participant:
        participant = Participant(
            participant_id=participant_id,
            display_name=display_name,
            first_seen=at,
            last_seen=at,
            placeholder=True,
        )
        self._participants[participant_id] = participant
        return participant

    async def _notify(self) -> None:
        if self._on_update is None:
            return
        try:
            await self._on_update(self.participants)
        except Exception as e:
            logger.error("participant update handler failed", error=str(e))
