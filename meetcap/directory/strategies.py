"""Participant extraction strategies over scraped roster elements.

Strategies run in priority order:
1. Data attributes (stable participant id, declared display name)
2. Accessibility label ("Video tile of Jane Doe", "Speaker: Jane Doe")
3. Text heuristics over the element's visible spans

The id comes from the first strategy that yields one; the name from the
first strategy whose name survives cleanup.
"""

import re
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from meetcap.directory.sanitize import clean_display_name
from meetcap.models import UNKNOWN_NAME

ID_ATTRIBUTES = ("data-participant-id", "data-requested-participant-id")
NAME_ATTRIBUTES = ("data-display-name", "data-self-name")

_ARIA_PREFIX = re.compile(r"^\s*(?:video tile of|speaker:)\s*(.+)$", re.IGNORECASE)
_STATUS_SPAN = re.compile(r"^(?:HD|SD|Live|Mic|Video)$", re.IGNORECASE)


class ElementSnapshot(BaseModel):
    """Serializable view of one participant element in the page."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    attributes: dict[str, str] = Field(default_factory=dict)
    aria_label: str | None = Field(default=None, alias="ariaLabel")
    name_text: str | None = Field(
        default=None, alias="nameText", description="Text of the name label element"
    )
    text: str = ""
    span_texts: list[str] = Field(default_factory=list, alias="spanTexts")


class ParticipantRef(BaseModel):
    """Participant identity extracted from one element."""

    participant_id: str | None = None
    display_name: str = UNKNOWN_NAME
    strategy: str = Field(description="Strategy that supplied the name")


Strategy = Callable[[ElementSnapshot], tuple[str | None, str | None]]


def from_data_attributes(snapshot: ElementSnapshot) -> tuple[str | None, str | None]:
    """Stable id and declared name from data-* attributes or the name label."""
    participant_id = next(
        (snapshot.attributes[a] for a in ID_ATTRIBUTES if snapshot.attributes.get(a)),
        None,
    )
    name = next(
        (snapshot.attributes[a] for a in NAME_ATTRIBUTES if snapshot.attributes.get(a)),
        None,
    )
    return participant_id, name or snapshot.name_text


def from_aria_label(snapshot: ElementSnapshot) -> tuple[str | None, str | None]:
    if not snapshot.aria_label:
        return None, None
    match = _ARIA_PREFIX.match(snapshot.aria_label)
    return None, match.group(1) if match else None


def from_text_heuristics(snapshot: ElementSnapshot) -> tuple[str | None, str | None]:
    """First visible span that cleans to a name, else the first such text line."""
    for span in snapshot.span_texts:
        span = span.strip()
        if len(span) < 2 or _STATUS_SPAN.match(span):
            continue
        if any(ch.isalpha() for ch in span) and _usable(span):
            return None, span

    for line in snapshot.text.splitlines():
        line = line.strip()
        if line and _usable(line):
            return None, line
    return None, None


def _usable(candidate: str) -> bool:
    """Icon ligatures and control labels clean away to nothing."""
    return clean_display_name(candidate) != UNKNOWN_NAME


STRATEGIES: list[tuple[str, Strategy]] = [
    ("data_attributes", from_data_attributes),
    ("aria_label", from_aria_label),
    ("text_heuristics", from_text_heuristics),
]


def extract_participant(snapshot: ElementSnapshot) -> ParticipantRef | None:
    """Combine the strategies into one participant reference.

    Returns:
        ParticipantRef, or None when no strategy found an id or a name
    """
    participant_id: str | None = None
    display_name: str | None = None
    source = ""

    for strategy_name, strategy in STRATEGIES:
        found_id, found_name = strategy(snapshot)
        if participant_id is None and found_id:
            participant_id = found_id
        if display_name is None and found_name:
            cleaned = clean_display_name(found_name)
            if cleaned != UNKNOWN_NAME:
                display_name = cleaned
                source = strategy_name
        if participant_id and display_name:
            break

    if participant_id is None and display_name is None:
        return None

    return ParticipantRef(
        participant_id=participant_id,
        display_name=display_name or UNKNOWN_NAME,
        strategy=source or "data_attributes",
    )
