"""Participant model for people heard or seen in a session."""

from datetime import datetime

from pydantic import AliasChoices, Field, field_validator

from meetcap.models.base import RecordModel, utc_now

UNKNOWN_NAME = "Unknown"


class Participant(RecordModel):
    """A participant observed during a capture run.

    Participants come from:
    - Directory scrapes of the meeting roster
    - Placeholder identities synthesized when attribution finds no one
    """

    participant_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("participant_id", "id"),
        serialization_alias="id",
        description="Stable participant identifier",
    )
    display_name: str = Field(default=UNKNOWN_NAME, description="Sanitized display name")
    first_seen: datetime = Field(default_factory=utc_now)
    last_seen: datetime = Field(default_factory=utc_now)
    leave_time: datetime | None = Field(
        default=None, description="Stamped when the session ends"
    )
    placeholder: bool = Field(
        default=False, description="True for synthesized, unattributed identities"
    )
    tracks: list[str] = Field(
        default_factory=list, description="Track keys attributed to this participant"
    )

    @field_validator("display_name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        """Fall back to the unknown name rather than storing blanks."""
        return v.strip() or UNKNOWN_NAME

    def observe(self, display_name: str | None, at: datetime | None = None) -> bool:
        """Record a re-observation.

        Returns:
            True if the display name changed
        """
        self.last_seen = at or utc_now()
        if display_name and display_name.strip() and display_name != self.display_name:
            self.display_name = display_name.strip()
            return True
        return False

    def summary(self) -> dict:
        """Compact form stored in participants_summary.json."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            include={"participant_id", "display_name", "first_seen", "last_seen"},
        )
