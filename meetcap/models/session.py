"""Top-level metadata for one capture run."""

from datetime import datetime

from pydantic import Field

from meetcap.models.base import RecordModel, utc_now


class SessionMetadata(RecordModel):
    """Contents of meeting_metadata.json."""

    meeting_url: str = Field(description="URL the bot joined")
    bot_name: str = Field(description="Display name used by the bot")
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: datetime | None = None
    run_id: str = Field(min_length=1, description="Unique id of this capture run")
    mixed_audio: str | None = Field(
        default=None, description="Finalized mixed-down container, if any"
    )
