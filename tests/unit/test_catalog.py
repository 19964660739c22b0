"""Tests for the section catalog and answer validation."""

import pytest

from legacy_letters.core.exceptions import (
    InvalidAnswerError,
    QuestionNotFoundError,
    SectionOutOfRangeError,
)
from legacy_letters.core.models import QuestionType
from legacy_letters.services.questionnaire.catalog import (
    SECTIONS,
    SIGNATURE_QUESTION_ID,
    TOTAL_SECTIONS,
    find_question,
    get_section,
    validate_answer,
)


class TestCatalog:
    def test_sections_numbered_in_order(self):
        assert [s.id for s in SECTIONS] == list(range(1, TOTAL_SECTIONS + 1))
        assert TOTAL_SECTIONS == 8

    def test_question_ids_unique(self):
        ids = [q.id for s in SECTIONS for q in s.questions]
        assert len(ids) == len(set(ids))

    def test_signature_question_in_final_thoughts(self):
        assert SIGNATURE_QUESTION_ID in [q.id for q in get_section(7).questions]

    @pytest.mark.parametrize("section_id", [0, TOTAL_SECTIONS + 1, -1])
    def test_get_section_out_of_range(self, section_id):
        with pytest.raises(SectionOutOfRangeError):
            get_section(section_id)


class TestFindQuestion:
    def test_catalog_question(self):
        assert find_question("q1_1").type == QuestionType.dropdown

    def test_child_field(self):
        question = find_question("q3_child_2_wishes")
        assert question.id == "q3_child_2_wishes"
        assert question.type == QuestionType.textarea

    def test_spouse_select_uses_owner_options(self):
        question = find_question("q3_spouse_0_select")
        assert question.type == QuestionType.dropdown
        assert "My Wife" in question.options

    def test_additional_story(self):
        question = find_question("q2_4_additional_1")
        assert question.type == QuestionType.story

    def test_additional_story_on_non_story_question(self):
        with pytest.raises(QuestionNotFoundError):
            find_question("q1_1_additional_1")

    def test_unknown(self):
        with pytest.raises(QuestionNotFoundError):
            find_question("q99_1")


class TestValidateAnswer:
    def test_text(self):
        assert validate_answer(find_question("q7_5"), "John Doe") == "John Doe"

    def test_text_rejects_list(self):
        with pytest.raises(InvalidAnswerError):
            validate_answer(find_question("q7_5"), ["John"])

    def test_dropdown_option(self):
        assert validate_answer(find_question("q1_1"), "My Loved Ones") == "My Loved Ones"

    def test_dropdown_custom_text_limit(self):
        question = find_question("q1_2")
        assert validate_answer(question, "x" * 140) == "x" * 140
        with pytest.raises(InvalidAnswerError):
            validate_answer(question, "x" * 141)

    def test_multiselect_limit(self):
        question = find_question("q6_4")
        five = question.options[:5]
        assert validate_answer(question, five) == five
        with pytest.raises(InvalidAnswerError):
            validate_answer(question, question.options[:6])

    def test_multiselect_custom_text_not_counted(self):
        question = find_question("q6_4")
        value = question.options[:5] + ["Patience"]
        assert validate_answer(question, value) == value

    def test_multiselect_single_custom_answer(self):
        with pytest.raises(InvalidAnswerError):
            validate_answer(find_question("q6_4"), ["one", "two"])

    def test_multiselect_accepts_legacy_string(self):
        assert validate_answer(find_question("q2_2"), "Honest") == ["Honest"]
        assert validate_answer(find_question("q2_2"), "") == []

    def test_section_container_not_answerable(self):
        with pytest.raises(InvalidAnswerError):
            validate_answer(find_question("q3_child"), "x")
