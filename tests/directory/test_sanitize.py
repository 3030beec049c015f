"""Tests for display-name cleanup."""

import pytest

from meetcap.directory.sanitize import clean_display_name, collapse_duplicates


class TestCollapseDuplicates:
    """Tests for collapse_duplicates."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Jane DoeJane", "Jane Doe"),
            ("Jane DoeJane Doe", "Jane Doe"),
            ("Jane Doe Jane Doe", "Jane Doe"),
            ("Jane Jane", "Jane"),
            ("Jane Doe", "Jane Doe"),
            ("Ben Benjamin", "Ben Benjamin"),
            ("Li Lili", "Li Lili"),
            ("Ann MacAnnie", "Ann MacAnnie"),
            ("Ann MacAnn Smith", "Ann MacAnn Smith"),
            ("Jane", "Jane"),
        ],
    )
    def test_collapse(self, raw: str, expected: str):
        assert collapse_duplicates(raw) == expected


class TestCleanDisplayName:
    """Tests for clean_display_name."""

    def test_strips_ui_phrases(self):
        assert clean_display_name("mic_off Jane Doe more_vert") == "Jane Doe"

    @pytest.mark.parametrize(
        "raw",
        ["Jane Doekeep_outlinemore_vert", "Jane Doemic_off", "mic_noneJane Doe"],
    )
    def test_strips_glued_icon_ligatures(self, raw: str):
        assert clean_display_name(raw) == "Jane Doe"

    def test_strips_phrases_case_insensitively(self):
        assert clean_display_name("Jane Doe MORE OPTIONS") == "Jane Doe"

    def test_longer_phrase_removed_whole(self):
        raw = "Jane Doe You can't unmute someone else"
        assert clean_display_name(raw) == "Jane Doe"

    def test_phrase_inside_word_is_kept(self):
        """'Pin' is only removed as a whole word."""
        assert clean_display_name("Pinky Tuscadero Pin") == "Pinky Tuscadero"

    def test_strips_icon_glyphs(self):
        assert clean_display_name("\ue8b8 Jane Doe \u2b50") == "Jane Doe"

    def test_keeps_cjk_names(self):
        assert clean_display_name("王小明") == "王小明"

    def test_keeps_typographic_apostrophe(self):
        assert clean_display_name("Conan O\u2019Brien") == "Conan O\u2019Brien"

    def test_collapses_whitespace(self):
        assert clean_display_name("  Jane \n\t Doe  ") == "Jane Doe"

    def test_collapses_duplicated_rendering(self):
        assert clean_display_name("Jane DoeJane keep_outline") == "Jane Doe"

    def test_truncates_to_first_tokens(self):
        raw = "Alexandria Catherine Montgomery Smith-Jones"
        assert clean_display_name(raw) == "Alexandria Catherine Montgomery"

    def test_truncates_long_token_by_characters(self):
        result = clean_display_name("Maximiliandertausendundeinste Schmidt")
        assert result == "Maximiliandertausendundeinste"
        assert len(result) <= 30

    @pytest.mark.parametrize("raw", [None, "", "   ", "more_vert", "\ue8b8"])
    def test_unknown_when_empty(self, raw):
        assert clean_display_name(raw) == "Unknown"
