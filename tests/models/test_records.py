"""Tests for persisted record models."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from meetcap.models import (
    UNKNOWN_NAME,
    AudioTrack,
    Participant,
    SessionMetadata,
    safe_name,
    utc_now,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("spaces/abc/devices/12", "spaces_abc_devices_12"),
        ("track-1", "track-1"),
        ("..", "_"),
        ("{4f2a}", "_4f2a_"),
    ],
)
def test_safe_name(raw: str, expected: str):
    assert safe_name(raw) == expected


class TestParticipant:
    """Tests for Participant."""

    def test_blank_name_becomes_unknown(self):
        assert Participant(participant_id="p1", display_name="  ").display_name == UNKNOWN_NAME

    def test_requires_id(self):
        with pytest.raises(ValidationError):
            Participant(participant_id="", display_name="Jane")

    def test_accepts_id_alias(self):
        assert Participant.model_validate({"id": "p1"}).participant_id == "p1"

    def test_observe_updates_name_and_last_seen(self):
        participant = Participant(participant_id="p1", display_name="Jane")
        later = utc_now() + timedelta(seconds=10)

        assert participant.observe("Jane Doe", later) is True
        assert participant.display_name == "Jane Doe"
        assert participant.last_seen == later

    def test_observe_without_name_keeps_name(self):
        participant = Participant(participant_id="p1", display_name="Jane")

        assert participant.observe(None) is False
        assert participant.display_name == "Jane"

    def test_document_uses_id_key(self):
        document = Participant(participant_id="p1", display_name="Jane").document()

        assert document["id"] == "p1"
        assert "participant_id" not in document
        assert document["leave_time"] is None

    def test_summary_fields(self):
        summary = Participant(participant_id="p1", display_name="Jane").summary()

        assert set(summary) == {"id", "display_name", "first_seen", "last_seen"}


class TestAudioTrack:
    """Tests for AudioTrack."""

    def test_filenames_from_key(self):
        track = AudioTrack.for_key("{abc}", track_id="track-1")

        assert track.wav == "track__abc_.wav"
        assert track.meta == "track__abc_.json"
        assert track.raw == "track__abc_.pcm16le.raw"

    def test_explicit_stem(self):
        track = AudioTrack.for_key("t1", stem="track_t1_2")

        assert track.wav == "track_t1_2.wav"

    def test_format_unknown_until_reported(self):
        track = AudioTrack.for_key("t1")

        assert track.sample_rate is None
        assert track.channels is None
        assert track.is_open is True

    def test_document_aliases(self):
        document = AudioTrack.for_key("t1", track_id="x", stream_id="s").document()

        assert document["trackId"] == "x"
        assert document["streamId"] == "s"


def test_session_metadata_document():
    metadata = SessionMetadata(meeting_url="https://meet/x", bot_name="Meetcap", run_id="r1")

    document = metadata.document()

    assert document["run_id"] == "r1"
    assert document["ended_at"] is None
    assert document["mixed_audio"] is None
