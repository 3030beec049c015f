"""Display-name cleanup for names scraped from the meeting UI.

Scraped tile text mixes the participant's name with button labels, icon
ligatures and duplicated renderings of the same name.
"""

import re

from meetcap.models import UNKNOWN_NAME

MAX_NAME_LENGTH = 30
MAX_NAME_TOKENS = 3

UI_PHRASES = (
    "keep_outline",
    "Pin",
    "mic_none",
    "mic_off",
    "You can't remotely mute this participant",
    "You can't unmute someone else",
    "You can't unmute",
    "more_vert",
    "More options",
    "visual_effects",
    "Backgrounds and effects",
    "Remove this tile",
    "Others might still see your full video.",
    "devices",
)


def _phrase_pattern(phrase: str) -> str:
    # Icon ligatures (mic_off, more_vert) are rendered glued onto the name;
    # plain words only match whole.
    if "_" in phrase:
        return re.escape(phrase)
    return rf"(?<!\w){re.escape(phrase)}(?!\w)"


# Longest first so a phrase is removed before any phrase it contains.
_UI_PATTERN = re.compile(
    "|".join(_phrase_pattern(p) for p in sorted(UI_PHRASES, key=len, reverse=True)),
    re.IGNORECASE,
)

# Symbol and icon-font blocks. General punctuation U+2010-U+2027 (dashes,
# curly quotes) is kept since it occurs in real names.
_GLYPHS = re.compile(
    "[\u2000-\u200f\u2028-\u2bff\ue000-\uf8ff\U0001f000-\U0001faff\ufe0f]"
)


def strip_ui_phrases(text: str) -> str:
    return _UI_PATTERN.sub(" ", text)


def strip_glyphs(text: str) -> str:
    return _GLYPHS.sub(" ", text)


def _drop_repeated_tail(tokens: list[str]) -> list[str]:
    """Drop a trailing repeat of the leading tokens.

    ["Jane", "Doe", "Jane", "Doe"] and ["Jane", "Doe", "Jane"] both become
    ["Jane", "Doe"]; ["Jane", "Jane"] becomes ["Jane"].
    """
    n = len(tokens)
    for k in range((n + 1) // 2, n):
        tail = tokens[k:]
        if tail == tokens[: len(tail)]:
            return tokens[:k]
    return tokens


def _unglue(tokens: list[str]) -> list[str] | None:
    """Undo a repeat of the name glued onto one of its own tokens.

    "Jane DoeJane" splits into ["Jane", "Doe"] + ["Jane"]. The split is kept
    only when everything after it repeats the start of the name, so a
    surname that merely contains the first name is left alone.
    """
    first = tokens[0]
    for j in range(1, len(tokens)):
        idx = tokens[j].find(first, 1)
        if idx <= 0:
            continue
        head = tokens[:j] + [tokens[j][:idx]]
        tail = [tokens[j][idx:]] + tokens[j + 1 :]
        if len(tail) <= len(head) and head[: len(tail)] == tail:
            return head
    return None


def collapse_duplicates(name: str) -> str:
    """Collapse a name rendered twice into a single copy.

    Examples:
        "Jane DoeJane" -> "Jane Doe"
        "Jane Doe Jane Doe" -> "Jane Doe"
        "Jane Jane" -> "Jane"
    """
    tokens = name.split()
    if len(tokens) < 2:
        return name

    unglued = _unglue(tokens)
    if unglued is not None:
        return " ".join(unglued)

    return " ".join(_drop_repeated_tail(tokens))


def truncate_name(name: str) -> str:
    """Shorten overlong names to three tokens or thirty characters."""
    if len(name) <= MAX_NAME_LENGTH:
        return name
    tokens = name.split()
    if len(tokens) > MAX_NAME_TOKENS:
        return " ".join(tokens[:MAX_NAME_TOKENS])
    return name[:MAX_NAME_LENGTH].rstrip()


def clean_display_name(raw: str | None) -> str:
    """Turn raw tile text into a display name.

    Args:
        raw: Text scraped from a participant element

    Returns:
        Cleaned name, or "Unknown" when nothing usable remains
    """
    if not raw:
        return UNKNOWN_NAME

    text = strip_glyphs(strip_ui_phrases(raw))
    text = " ".join(text.split())
    if not text:
        return UNKNOWN_NAME

    return truncate_name(collapse_duplicates(text)) or UNKNOWN_NAME
