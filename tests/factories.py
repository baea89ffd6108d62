"""
Payload builders shared by the test modules.
"""
from typing import Any, Dict, List, Optional


def mc_answer(
    is_correct: bool = True,
    correct: Optional[List[str]] = None,
    picked: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """A valid multiple-choice answer record."""
    return {
        "question_collection": "multiple_choices",
        "question_text": "Pick the correct form.",
        "options": [
            {"label": "A", "text": "has went"},
            {"label": "B", "text": "has gone"},
        ],
        "correct_answers": correct or ["B"],
        "user_answers": picked if picked is not None else ["B"],
        "is_correct": is_correct,
    }


def vocabulary_answer(is_correct: bool = False) -> Dict[str, Any]:
    return {
        "question_collection": "vocabularies",
        "word": "ephemeral",
        "meaning": "lasting a very short time",
        "example_sentence": "Fame in the age of social media is ephemeral.",
        "question_mode": "word_to_meaning",
        "correct_answer": "lasting a very short time",
        "user_answer": "",
        "is_correct": is_correct,
    }


def text_answer(collection: str = "grammar", is_correct: bool = True) -> Dict[str, Any]:
    return {
        "question_collection": collection,
        "question_text": "She ___ (go) to school every day.",
        "correct_answer": "goes",
        "user_answer": "goes" if is_correct else "go",
        "is_correct": is_correct,
    }
