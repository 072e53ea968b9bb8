"""
Answer Evaluator - Objective answer checking.

Features:
    - Exact matching for choice and true/false questions
    - Case/whitespace-insensitive matching for fill-in-the-blank (single or multi-blank)
    - Element-wise matching for ordering and matching questions
    - Subjective types are never scored here; they come back as pending
"""

from dataclasses import dataclass
from typing import Any, Optional

from .models import Outcome, Question, QuestionType


@dataclass(frozen=True)
class EvaluationResult:
    """Result of evaluating one answer.

    Attributes:
        outcome: CORRECT / INCORRECT for objective types, PENDING for subjective ones
        feedback: Short explanation suitable for the student
    """
    outcome: Outcome
    feedback: str

    @property
    def is_correct(self) -> Optional[bool]:
        if self.outcome == Outcome.PENDING:
            return None
        return self.outcome == Outcome.CORRECT


_TRUE_WORDS = {"true", "t", "yes", "y", "1"}
_FALSE_WORDS = {"false", "f", "no", "n", "0"}


class AnswerEvaluator:
    """
    Stateless decision procedure, invoked once per (question, answer) pair.

    Usage:
        evaluator = AnswerEvaluator()
        result = evaluator.evaluate(question, "B")
    """

    PENDING_FEEDBACK = "Answer recorded. Pending manual grading."

    def evaluate(self, question: Question, student_answer: Any) -> EvaluationResult:
        qtype = question.type

        if not qtype.is_objective:
            return EvaluationResult(Outcome.PENDING, self.PENDING_FEEDBACK)

        if qtype == QuestionType.CHOICE:
            correct = self._match_choice(student_answer, question.correct_answer)
        elif qtype == QuestionType.BOOLEAN:
            correct = self._match_boolean(student_answer, question.correct_answer)
        elif qtype in (QuestionType.FILL_BLANK, QuestionType.ORDERING):
            correct = self._match_blanks(student_answer, question.correct_answer)
        else:
            correct = self._match_pairs(student_answer, question.correct_answer)

        if correct:
            return EvaluationResult(Outcome.CORRECT, "Correct answer!")
        return EvaluationResult(
            Outcome.INCORRECT,
            f"Incorrect. The correct answer is: {self._display(question.correct_answer)}"
        )

    # ==================== Matchers ====================

    def _match_choice(self, given: Any, expected: Any) -> bool:
        if given is None:
            return False
        return str(given).strip() == str(expected).strip()

    def _match_boolean(self, given: Any, expected: Any) -> bool:
        given_bool = self._to_bool(given)
        expected_bool = self._to_bool(expected)
        if given_bool is None or expected_bool is None:
            return False
        return given_bool == expected_bool

    def _match_blanks(self, given: Any, expected: Any) -> bool:
        """Single blank or ordered list of blanks; every blank must match."""
        given_is_list = isinstance(given, (list, tuple))
        expected_is_list = isinstance(expected, (list, tuple))

        if given_is_list and expected_is_list:
            if len(given) != len(expected):
                return False
            return all(self._normalize(g) == self._normalize(e) for g, e in zip(given, expected))
        if given_is_list or expected_is_list:
            return False
        return self._normalize(given) == self._normalize(expected)

    def _match_pairs(self, given: Any, expected: Any) -> bool:
        if not isinstance(given, dict) or not isinstance(expected, dict):
            return False
        given_map = {self._normalize(k): self._normalize(v) for k, v in given.items()}
        expected_map = {self._normalize(k): self._normalize(v) for k, v in expected.items()}
        return given_map == expected_map

    # ==================== Normalization ====================

    @staticmethod
    def _normalize(value: Any) -> str:
        if value is None:
            return ""
        return " ".join(str(value).split()).casefold()

    @staticmethod
    def _to_bool(value: Any) -> Optional[bool]:
        if isinstance(value, bool):
            return value
        if value is None:
            return None
        word = str(value).strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        return None

    @staticmethod
    def _display(value: Any) -> str:
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value)
        return str(value)
