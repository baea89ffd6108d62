"""
Answer snapshot validation for test result submissions.

A submission carries one record per question. Records are a tagged union
keyed by ``question_collection``:

- ``multiple_choices`` -> MultipleChoiceAnswer
- ``vocabularies``     -> VocabularyAnswer
- anything else        -> TextAnswer (grammar, listening, spelling, ...)

Validation checks shape only. ``is_correct`` is asserted by the caller and
is never recomputed here.
"""
from typing import Any, Dict, List, Literal, Optional, Sequence, Type, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
)
from typing_extensions import Annotated

from quizhub.core.error_responses import ErrorMessages, raise_validation_error

MULTIPLE_CHOICE_COLLECTION = "multiple_choices"
VOCABULARY_COLLECTION = "vocabularies"

OPTION_LABELS = ("A", "B", "C", "D", "E")
OptionLabel = Literal["A", "B", "C", "D", "E"]

MIN_OPTIONS = 2


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must be a non-empty string")
    return value


NonEmptyText = Annotated[StrictStr, AfterValidator(_require_text)]


class _AnswerBase(BaseModel):
    """Fields shared by every answer record."""

    model_config = ConfigDict(extra="ignore")

    question_id: Optional[StrictStr] = None
    question_collection: NonEmptyText
    is_correct: StrictBool


class AnswerOption(BaseModel):
    """One labelled option of a multiple-choice question."""

    model_config = ConfigDict(extra="ignore")

    label: OptionLabel
    text: NonEmptyText


class MultipleChoiceAnswer(_AnswerBase):
    """Snapshot of a multiple-choice question and the labels the user picked."""

    question_collection: Literal["multiple_choices"]
    question_text: NonEmptyText
    options: List[AnswerOption] = Field(..., min_length=MIN_OPTIONS)
    correct_answers: List[OptionLabel]
    # An unanswered question is valid
    user_answers: List[OptionLabel] = Field(default_factory=list)

    @field_validator("correct_answers", mode="before")
    @classmethod
    def normalize_correct_answers(cls, v: Any) -> Any:
        """Accept either a list of labels or a mapping keyed by label."""
        if isinstance(v, dict):
            return list(v.keys())
        return v

    @field_validator("correct_answers")
    @classmethod
    def validate_correct_answers(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("must contain at least one label")
        return sorted(set(v))


class VocabularyAnswer(_AnswerBase):
    """Snapshot of a vocabulary question in either direction."""

    question_collection: Literal["vocabularies"]
    word: NonEmptyText
    meaning: NonEmptyText
    example_sentence: NonEmptyText
    question_mode: Literal["word_to_meaning", "meaning_to_word"]
    correct_answer: StrictStr
    user_answer: StrictStr


class TextAnswer(_AnswerBase):
    """Free-text answer used by grammar, listening, spelling and similar tests."""

    question_text: NonEmptyText
    correct_answer: StrictStr
    user_answer: StrictStr


AnswerRecord = Union[MultipleChoiceAnswer, VocabularyAnswer, TextAnswer]

_MODEL_BY_COLLECTION: Dict[str, Type[_AnswerBase]] = {
    MULTIPLE_CHOICE_COLLECTION: MultipleChoiceAnswer,
    VOCABULARY_COLLECTION: VocabularyAnswer,
}


def _describe(error: ValidationError) -> str:
    """Render the first pydantic error as 'field.path: message'."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def validate_answer(record: Any) -> AnswerRecord:
    """
    Validate a single answer record against its question-shape contract.

    Raises:
        ValueError: With a human-readable reason when the record is malformed
    """
    if not isinstance(record, dict):
        raise ValueError("answer must be an object")

    collection = record.get("question_collection")
    if not isinstance(collection, str) or not collection.strip():
        raise ValueError("question_collection is required")

    model = _MODEL_BY_COLLECTION.get(collection, TextAnswer)
    try:
        return model.model_validate(record)  # type: ignore[return-value]
    except ValidationError as e:
        raise ValueError(_describe(e)) from e


def validate_answers(answers: Any) -> List[AnswerRecord]:
    """
    Validate a submitted answer list, failing on the first violation.

    Args:
        answers: Raw answer records from the request payload

    Returns:
        Parsed answer records in submission order

    Raises:
        ServiceError: VALIDATION_ERROR for an empty list or the first malformed record
    """
    if not isinstance(answers, (list, tuple)) or not answers:
        raise_validation_error(ErrorMessages.ANSWERS_REQUIRED)

    parsed: List[AnswerRecord] = []
    for index, record in enumerate(answers):
        try:
            parsed.append(validate_answer(record))
        except ValueError as e:
            raise_validation_error(ErrorMessages.invalid_answer(index, str(e)))
    return parsed


def dump_answers(answers: Sequence[AnswerRecord]) -> List[Dict[str, Any]]:
    """Serialize parsed answers into the JSON snapshot stored on the result."""
    return [answer.model_dump(exclude_none=True) for answer in answers]
