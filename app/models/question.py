import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from app.utils.code_detection import has_code_content

OPTION_COUNT = 4
OPTION_LETTERS = 'ABCD'


def coerce_marks(value) -> int:
    """Marks are a positive integer, falling back to 1."""
    try:
        marks = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 1
    return marks if marks >= 1 else 1


def coerce_negative_marks(value) -> float:
    """Negative marks are a non-negative number, falling back to 0."""
    try:
        negative = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(negative) or math.isinf(negative) or negative < 0:
        return 0.0
    return negative


@dataclass(frozen=True)
class Question:
    """A parsed multiple-choice question. Exactly four options, one correct."""

    text: str
    options: Tuple[str, ...]
    correct_option: int = 0
    marks: int = 1
    negative_marks: float = 0.0
    is_code_question: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'options', tuple(self.options))

        if len(self.options) != OPTION_COUNT:
            raise ValueError(f"A question needs exactly {OPTION_COUNT} options, got {len(self.options)}")
        if not isinstance(self.correct_option, int) or not 0 <= self.correct_option < OPTION_COUNT:
            raise ValueError(f"Invalid correct option index: {self.correct_option}")
        if self.marks < 1:
            raise ValueError("Marks must be at least 1")
        if self.negative_marks < 0:
            raise ValueError("Negative marks cannot be negative")

    @classmethod
    def build(cls, text, options, correct_option=0, marks=1, negative_marks=0):
        """Lenient constructor used by the parsers."""
        return cls(
            text=text,
            options=tuple(options),
            correct_option=correct_option,
            marks=coerce_marks(marks),
            negative_marks=coerce_negative_marks(negative_marks),
            is_code_question=has_code_content(text)
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        """Build from the wire format. Raises ValueError on invalid data."""
        return cls(
            text=data['question_text'],
            options=tuple(data['options']),
            correct_option=data['correct_option'],
            marks=data.get('marks', 1),
            negative_marks=data.get('negative_marks', 0),
            is_code_question=has_code_content(data['question_text'])
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'question_text': self.text,
            'options': list(self.options),
            'correct_option': self.correct_option,
            'marks': self.marks,
            'negative_marks': self.negative_marks,
            'is_code_question': self.is_code_question
        }
