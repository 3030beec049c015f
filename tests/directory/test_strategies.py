"""Tests for participant extraction strategies."""

from meetcap.directory.strategies import (
    ElementSnapshot,
    extract_participant,
    from_aria_label,
    from_data_attributes,
    from_text_heuristics,
)


class TestFromDataAttributes:
    """Tests for from_data_attributes."""

    def test_id_and_declared_name(self):
        snapshot = ElementSnapshot(
            attributes={
                "data-participant-id": "spaces/abc/devices/12",
                "data-display-name": "Jane Doe",
            }
        )
        assert from_data_attributes(snapshot) == ("spaces/abc/devices/12", "Jane Doe")

    def test_name_label_used_without_declared_name(self):
        snapshot = ElementSnapshot(
            attributes={"data-participant-id": "p1"}, name_text="Bob Smith"
        )
        assert from_data_attributes(snapshot) == ("p1", "Bob Smith")

    def test_nothing_found(self):
        assert from_data_attributes(ElementSnapshot()) == (None, None)


class TestFromAriaLabel:
    """Tests for from_aria_label."""

    def test_video_tile_prefix(self):
        snapshot = ElementSnapshot(aria_label="Video tile of Carol Danvers")
        assert from_aria_label(snapshot) == (None, "Carol Danvers")

    def test_speaker_prefix(self):
        snapshot = ElementSnapshot(aria_label="Speaker: Carol")
        assert from_aria_label(snapshot) == (None, "Carol")

    def test_unrelated_label(self):
        snapshot = ElementSnapshot(aria_label="Turn off microphone")
        assert from_aria_label(snapshot) == (None, None)


class TestFromTextHeuristics:
    """Tests for from_text_heuristics."""

    def test_skips_status_spans(self):
        snapshot = ElementSnapshot(span_texts=["HD", "Mic", "", "Dana Scully"])
        assert from_text_heuristics(snapshot) == (None, "Dana Scully")

    def test_falls_back_to_first_text_line(self):
        snapshot = ElementSnapshot(text="\n  Eve Polastri\nmore_vert")
        assert from_text_heuristics(snapshot) == (None, "Eve Polastri")

    def test_skips_icon_ligature_spans(self):
        snapshot = ElementSnapshot(span_texts=["mic_off", "more_vert", "Jane Doe"])
        assert from_text_heuristics(snapshot) == (None, "Jane Doe")

    def test_skips_icon_ligature_lines(self):
        snapshot = ElementSnapshot(text="mic_off\nJane Doe")
        assert from_text_heuristics(snapshot) == (None, "Jane Doe")


class TestExtractParticipant:
    """Tests for extract_participant."""

    def test_data_attributes_win(self):
        snapshot = ElementSnapshot(
            attributes={"data-participant-id": "p1", "data-display-name": "Jane Doe"},
            aria_label="Video tile of Someone Else",
        )
        ref = extract_participant(snapshot)

        assert ref is not None
        assert ref.participant_id == "p1"
        assert ref.display_name == "Jane Doe"
        assert ref.strategy == "data_attributes"

    def test_name_cleaned(self):
        snapshot = ElementSnapshot(
            attributes={"data-participant-id": "p1"}, name_text="Jane DoeJane"
        )
        ref = extract_participant(snapshot)

        assert ref is not None
        assert ref.display_name == "Jane Doe"

    def test_id_from_attributes_name_from_aria(self):
        snapshot = ElementSnapshot(
            attributes={"data-participant-id": "p2"},
            aria_label="Video tile of Bob Smith",
        )
        ref = extract_participant(snapshot)

        assert ref is not None
        assert ref.participant_id == "p2"
        assert ref.display_name == "Bob Smith"
        assert ref.strategy == "aria_label"

    def test_name_only(self):
        ref = extract_participant(ElementSnapshot(span_texts=["Dana Scully"]))

        assert ref is not None
        assert ref.participant_id is None
        assert ref.display_name == "Dana Scully"
        assert ref.strategy == "text_heuristics"

    def test_id_with_unusable_name(self):
        snapshot = ElementSnapshot(
            attributes={"data-participant-id": "p3"}, span_texts=["more_vert"]
        )
        ref = extract_participant(snapshot)

        assert ref is not None
        assert ref.participant_id == "p3"
        assert ref.display_name == "Unknown"

    def test_name_after_icon_span(self):
        snapshot = ElementSnapshot.model_validate(
            {"spanTexts": ["mic_off", "Jane Doe"], "text": "mic_off\nJane Doe"}
        )
        ref = extract_participant(snapshot)

        assert ref is not None
        assert ref.display_name == "Jane Doe"
        assert ref.strategy == "text_heuristics"

    def test_nothing_extractable(self):
        assert extract_participant(ElementSnapshot(span_texts=["HD"])) is None

    def test_snapshot_from_page_json(self):
        snapshot = ElementSnapshot.model_validate(
            {
                "attributes": {},
                "ariaLabel": "Speaker: Frank",
                "nameText": None,
                "text": "",
                "spanTexts": [],
            }
        )
        ref = extract_participant(snapshot)

        assert ref is not None
        assert ref.display_name == "Frank"
