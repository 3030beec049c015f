"""Participant directory: roster scraping, name cleanup, scheduling."""

from meetcap.directory.directory import (
    PLACEHOLDER_ID,
    PLACEHOLDER_NAME,
    ParticipantDirectory,
)
from meetcap.directory.sanitize import clean_display_name, collapse_duplicates
from meetcap.directory.scheduler import directory_refresh_lifespan, refresh_directory
from meetcap.directory.strategies import (
    ElementSnapshot,
    ParticipantRef,
    extract_participant,
    from_aria_label,
    from_data_attributes,
    from_text_heuristics,
)

__all__ = [
    "PLACEHOLDER_ID",
    "PLACEHOLDER_NAME",
    "ElementSnapshot",
    "ParticipantDirectory",
    "ParticipantRef",
    "clean_display_name",
    "collapse_duplicates",
    "directory_refresh_lifespan",
    "extract_participant",
    "from_aria_label",
    "from_data_attributes",
    "from_text_heuristics",
    "refresh_directory",
]
