"""
Tests for answer snapshot validation.
"""
import pytest

from quizhub.core.answer_validation import (
    MultipleChoiceAnswer,
    TextAnswer,
    VocabularyAnswer,
    dump_answers,
    validate_answer,
    validate_answers,
)
from quizhub.core.error_responses import ErrorKind, ServiceError
from tests.factories import mc_answer, text_answer, vocabulary_answer


def _validation_message(answers) -> str:
    with pytest.raises(ServiceError) as exc_info:
        validate_answers(answers)
    assert exc_info.value.kind == ErrorKind.VALIDATION_ERROR
    assert exc_info.value.status_code == 400
    return exc_info.value.message


class TestValidateAnswersList:
    """Tests for the list-level contract."""

    @pytest.mark.parametrize("answers", [None, [], "answers", {"a": 1}])
    def test_missing_or_empty_answers_rejected(self, answers):
        assert _validation_message(answers) == "answers must be non-empty"

    def test_dispatches_on_question_collection(self):
        parsed = validate_answers(
            [mc_answer(), vocabulary_answer(), text_answer("listening")]
        )

        assert isinstance(parsed[0], MultipleChoiceAnswer)
        assert isinstance(parsed[1], VocabularyAnswer)
        assert isinstance(parsed[2], TextAnswer)

    def test_fails_fast_with_index_of_first_bad_record(self):
        bad = mc_answer()
        bad["options"] = bad["options"][:1]
        worse = text_answer()
        del worse["question_text"]

        message = _validation_message([mc_answer(), bad, worse])

        assert message.startswith("answers[1]:")
        assert "options" in message

    def test_non_object_record_rejected(self):
        assert _validation_message(["A"]) == "answers[0]: answer must be an object"

    def test_missing_collection_rejected(self):
        record = text_answer()
        del record["question_collection"]

        assert "question_collection is required" in _validation_message([record])


class TestMultipleChoiceAnswer:
    """Tests for multiple-choice records."""

    def test_single_option_rejected(self):
        record = mc_answer()
        record["options"] = [{"label": "A", "text": "only"}]

        with pytest.raises(ValueError):
            validate_answer(record)

    def test_label_outside_a_to_e_rejected(self):
        with pytest.raises(ValueError):
            validate_answer(mc_answer(correct=["F"]))

    def test_option_label_outside_a_to_e_rejected(self):
        record = mc_answer()
        record["options"].append({"label": "Z", "text": "nope"})

        with pytest.raises(ValueError):
            validate_answer(record)

    def test_map_form_correct_answers_normalized(self):
        record = mc_answer()
        record["correct_answers"] = {"A": True}

        assert validate_answer(record).correct_answers == ["A"]
        assert (
            validate_answer(record).correct_answers
            == validate_answer(mc_answer(correct=["A"])).correct_answers
        )

    def test_empty_correct_answers_rejected(self):
        record = mc_answer()
        record["correct_answers"] = []

        with pytest.raises(ValueError):
            validate_answer(record)

    def test_user_answers_may_be_empty_or_absent(self):
        assert validate_answer(mc_answer(picked=[])).user_answers == []

        record = mc_answer()
        del record["user_answers"]
        assert validate_answer(record).user_answers == []

    def test_blank_question_text_rejected(self):
        record = mc_answer()
        record["question_text"] = "   "

        with pytest.raises(ValueError):
            validate_answer(record)

    def test_blank_option_text_rejected(self):
        record = mc_answer()
        record["options"][0]["text"] = ""

        with pytest.raises(ValueError):
            validate_answer(record)


class TestIsCorrectStrictness:
    """is_correct must be a real boolean in every record kind."""

    @pytest.mark.parametrize("value", ["true", 1, 0, None])
    @pytest.mark.parametrize("factory", [mc_answer, vocabulary_answer, text_answer])
    def test_non_boolean_is_correct_rejected(self, factory, value):
        record = factory()
        record["is_correct"] = value

        with pytest.raises(ValueError):
            validate_answer(record)


class TestVocabularyAnswer:
    """Tests for vocabulary records."""

    def test_valid_record_with_empty_user_answer(self):
        parsed = validate_answer(vocabulary_answer())

        assert parsed.user_answer == ""
        assert parsed.question_mode == "word_to_meaning"

    def test_unknown_question_mode_rejected(self):
        record = vocabulary_answer()
        record["question_mode"] = "spelling_bee"

        with pytest.raises(ValueError):
            validate_answer(record)

    @pytest.mark.parametrize("field", ["word", "meaning", "example_sentence"])
    def test_required_text_fields(self, field):
        record = vocabulary_answer()
        record[field] = ""

        with pytest.raises(ValueError):
            validate_answer(record)


class TestTextAnswer:
    """Tests for grammar, listening, spelling and other free-text records."""

    @pytest.mark.parametrize("collection", ["grammar", "listening", "spelling"])
    def test_generic_collections_accepted(self, collection):
        parsed = validate_answer(text_answer(collection))

        assert parsed.question_collection == collection

    def test_correct_answer_must_be_string(self):
        record = text_answer()
        record["correct_answer"] = 42

        with pytest.raises(ValueError):
            validate_answer(record)


class TestDumpAnswers:
    """Tests for the stored snapshot form."""

    def test_question_id_preserved_when_given(self):
        record = text_answer()
        record["question_id"] = "q-123"

        dumped = dump_answers(validate_answers([record, text_answer()]))

        assert dumped[0]["question_id"] == "q-123"
        assert "question_id" not in dumped[1]

    def test_unknown_fields_dropped(self):
        record = mc_answer()
        record["total_questions"] = 99

        dumped = dump_answers(validate_answers([record]))

        assert "total_questions" not in dumped[0]
