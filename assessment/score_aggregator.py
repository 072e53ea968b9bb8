"""
Score Aggregator - Combines per-question outcomes into an exam result.

Features:
    - Objective auto-grading via AnswerEvaluator
    - Subjective scores: manual override > AI assist > pending
    - Configurable, validated (monotonic) letter grade table
    - Outcome classification for reporting (correct / partial / incorrect / pending / unanswered)
"""

import logging
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .answer_evaluator import AnswerEvaluator
from .models import (
    Answer,
    AssessmentValidationError,
    ExamResult,
    Outcome,
    Question,
    QuestionResult,
    ResultStatus,
    validate_score,
)

logger = logging.getLogger(__name__)


class GradeTable:
    """
    Percentage -> letter grade.

    Bands are (minimum percentage, letter) from best to worst; anything below
    the last band gets the floor letter. Construction rejects tables that are
    not strictly descending, so a higher percentage can never map to a worse
    letter.
    """

    DEFAULT_BANDS = ((90.0, "A"), (80.0, "B"), (70.0, "C"), (60.0, "D"))
    DEFAULT_FLOOR = "F"

    def __init__(self, bands: Sequence[Tuple[float, str]] = DEFAULT_BANDS, floor: str = DEFAULT_FLOOR):
        bands = tuple(bands)
        previous = None
        for minimum, letter in bands:
            if isinstance(minimum, bool) or not isinstance(minimum, (int, float)):
                raise AssessmentValidationError(f"Grade band {letter!r}: threshold {minimum!r} is not a number")
            if not 0 <= minimum <= 100:
                raise AssessmentValidationError(f"Grade band {letter!r}: threshold {minimum} outside [0, 100]")
            if previous is not None and minimum >= previous:
                raise AssessmentValidationError("Grade bands must be strictly descending")
            previous = minimum

        letters = [letter for _, letter in bands] + [floor]
        if len(set(letters)) != len(letters):
            raise AssessmentValidationError("Grade letters must be distinct")

        self.bands = bands
        self.floor = floor

    def grade(self, percentage: float) -> str:
        for minimum, letter in self.bands:
            if percentage >= minimum:
                return letter
        return self.floor


class ScoreAggregator:
    """
    Pure, idempotent exam scoring.

    Usage:
        aggregator = ScoreAggregator()
        result = aggregator.aggregate(questions, answers)
    """

    # Outcome classification ratios (final_score / marks)
    CORRECT_RATIO = 0.7
    PARTIAL_RATIO = 0.4

    def __init__(self, grade_table: Optional[GradeTable] = None,
                 evaluator: Optional[AnswerEvaluator] = None):
        self.grade_table = grade_table or GradeTable()
        self.evaluator = evaluator or AnswerEvaluator()

    # ==================== Public API ====================

    def aggregate(self, questions: Sequence[Question], answers: Iterable[Answer],
                  attempt_id: Optional[str] = None) -> ExamResult:
        """
        Score an attempt.

        Args:
            questions: The exam's questions
            answers: Submitted answers, matched by question_id; missing = unanswered
            attempt_id: Only used for log context

        Returns:
            ExamResult with totals, percentage, grade and per-question outcomes
        """
        answer_map = self.validate(questions, answers)

        results = [self.grade_question(q, answer_map.get(q.id)) for q in questions]

        total_score = sum(r.final_score for r in results)
        max_score = sum(q.marks for q in questions)
        percentage = 0.0 if max_score == 0 else 100.0 * total_score / max_score
        percentage = max(0.0, min(100.0, percentage))

        pending = [r.question_id for r in results if r.outcome == Outcome.PENDING]
        if pending:
            status = ResultStatus.PENDING
            grade = None
            logger.info("Attempt %s has %d answer(s) awaiting manual review: %s",
                        attempt_id, len(pending), pending)
        else:
            status = ResultStatus.COMPLETED
            grade = self.grade_table.grade(percentage)

        return ExamResult(
            total_score=total_score,
            max_score=max_score,
            percentage=percentage,
            grade=grade,
            status=status,
            per_question_outcome={r.question_id: r.outcome for r in results},
            question_results=results,
            pending_question_ids=pending,
        )

    def grade_question(self, question: Question, answer: Optional[Answer]) -> QuestionResult:
        """Grade one question in isolation. Safe to run concurrently."""
        if answer is None or answer.is_blank:
            return QuestionResult(question.id, Outcome.UNANSWERED, 0, question.marks, "No answer provided")

        if question.type.is_objective:
            evaluation = self.evaluator.evaluate(question, answer.student_answer)
            final_score = question.marks if evaluation.is_correct else 0
            return QuestionResult(
                question.id, self.classify(final_score, question.marks),
                final_score, question.marks, evaluation.feedback
            )

        if answer.manual_score is not None:
            final_score, feedback = answer.manual_score, answer.manual_feedback or answer.ai_feedback
        elif answer.ai_score is not None:
            final_score, feedback = answer.ai_score, answer.ai_feedback
        else:
            return QuestionResult(question.id, Outcome.PENDING, 0, question.marks,
                                  AnswerEvaluator.PENDING_FEEDBACK)

        return QuestionResult(
            question.id, self.classify(final_score, question.marks),
            final_score, question.marks, feedback
        )

    def classify(self, final_score: float, marks: float) -> Outcome:
        ratio = final_score / marks
        if ratio >= self.CORRECT_RATIO:
            return Outcome.CORRECT
        if ratio >= self.PARTIAL_RATIO:
            return Outcome.PARTIAL
        return Outcome.INCORRECT

    # ==================== Validation ====================

    def validate(self, questions: Sequence[Question],
                 answers: Iterable[Answer]) -> Dict[str, Answer]:
        """
        Reject malformed submissions before anything is scored.

        Returns:
            Answers indexed by question id
        """
        question_map: Dict[str, Question] = {}
        for q in questions:
            if q.id in question_map:
                raise AssessmentValidationError(f"Duplicate question id: {q.id}")
            question_map[q.id] = q

        answer_map: Dict[str, Answer] = {}
        for a in answers:
            question = question_map.get(a.question_id)
            if question is None:
                raise AssessmentValidationError(f"Answer for unknown question: {a.question_id}")
            if a.question_id in answer_map:
                raise AssessmentValidationError(f"Duplicate answer for question: {a.question_id}")
            validate_score(a.ai_score, question.marks, f"answer {a.question_id} ai_score")
            validate_score(a.manual_score, question.marks, f"answer {a.question_id} manual_score")
            answer_map[a.question_id] = a
        return answer_map


def marks_from_percentage(score: float, marks: float) -> float:
    """Convert a 0-100 grading-assist score into marks, clamped to [0, marks]."""
    percent = max(0.0, min(100.0, float(score)))
    return min(marks, round(marks * percent / 100.0, 2))
