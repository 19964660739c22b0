"""Tests for answer encoding and timer formatting helpers."""

import pytest

from legacy_letters.core.utils import decode_answer, encode_answer, format_hms


class TestAnswerCodec:
    def test_string_stored_unchanged(self):
        assert encode_answer("My Loved Ones") == "My Loved Ones"

    def test_list_stored_as_json_array(self):
        assert encode_answer(["Faith", "Family"]) == '["Faith", "Family"]'

    def test_non_ascii_kept_readable(self):
        assert encode_answer(["café"]) == '["café"]'

    def test_list_decoded_back(self):
        assert decode_answer(encode_answer(["Honest", "Loving"])) == ["Honest", "Loving"]

    def test_empty_list_decoded(self):
        assert decode_answer("[]") == []

    @pytest.mark.parametrize(
        "raw",
        [
            "[not json",
            "[1, 2]",
            '["a", 3]',
            "plain text",
            '{"a": 1}',
            "",
        ],
    )
    def test_anything_else_returned_raw(self, raw):
        assert decode_answer(raw) == raw

    def test_none_becomes_empty_string(self):
        assert decode_answer(None) == ""


class TestFormatHms:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "00:00:00"),
            (59, "00:00:59"),
            (61, "00:01:01"),
            (1200, "00:20:00"),
            (7200, "02:00:00"),
            (7199, "01:59:59"),
        ],
    )
    def test_zero_padded(self, seconds, expected):
        assert format_hms(seconds) == expected

    def test_negative_clamped(self):
        assert format_hms(-5) == "00:00:00"
