"""
Assessment Engine - Wires profiling, adaptive generation and grading together.

Flows:
    attempts -> PerformanceProfileBuilder -> AdaptiveDifficultySelector
             -> text-generation service (or template) -> adaptive exam
    answers  -> (grading assist) -> AnswerEvaluator / ScoreAggregator
             -> exam result -> attempt record -> profile refresh
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from assessment.adaptive_selector import AUTO, AdaptiveDifficultySelector
from assessment.generation_policy import GenerationOutcome
from assessment.generation_request import GenerationRequest
from assessment.mastery_tracker import MasteryTracker, ProfileStore, UpsertResult
from assessment.models import (
    Answer,
    AttemptAnswer,
    AttemptRecord,
    ExamResult,
    PerformanceAnalysis,
    Question,
    ResultStatus,
)
from assessment.profile_builder import PerformanceProfileBuilder
from assessment.score_aggregator import ScoreAggregator, marks_from_percentage

logger = logging.getLogger(__name__)


@dataclass
class AdaptiveExam:
    request: GenerationRequest
    analysis: PerformanceAnalysis
    questions: List[Question]
    used_fallback: bool
    profile_update: Optional[UpsertResult] = None

    @property
    def total_marks(self) -> float:
        return sum(q.marks for q in self.questions)


@dataclass
class GradedAttempt:
    result: ExamResult
    answers: List[Answer]
    profile_update: Optional[UpsertResult] = None


class AssessmentEngine:
    """
    Facade over the assessment components.

    Args:
        store: Profile persistence
        question_writer: Text-generation callable; None means always use the template exam
        grading_assist: Object with grade(question, answer) -> AssistGrade, optional
    """

    def __init__(self, store: ProfileStore, question_writer: Optional[Callable] = None,
                 grading_assist: Any = None,
                 builder: Optional[PerformanceProfileBuilder] = None,
                 selector: Optional[AdaptiveDifficultySelector] = None,
                 aggregator: Optional[ScoreAggregator] = None,
                 tracker: Optional[MasteryTracker] = None):
        self.question_writer = question_writer
        self.grading_assist = grading_assist
        self.builder = builder or PerformanceProfileBuilder()
        self.selector = selector or AdaptiveDifficultySelector()
        self.aggregator = aggregator or ScoreAggregator()
        self.tracker = tracker or MasteryTracker(store)

    # ==================== Profiling ====================

    def analyze(self, student_id: str, subject: str,
                attempts: Sequence[AttemptRecord]) -> PerformanceAnalysis:
        """Analysis from the stored profile and recent attempts. Does not write."""
        stored = self.tracker.get_profile(student_id, subject)
        return self.builder.build(stored, attempts)

    def refresh_profile(self, student_id: str, subject: str,
                        attempts: Sequence[AttemptRecord]) -> UpsertResult:
        result = self.tracker.upsert(
            student_id, subject, lambda current: self.builder.build(current, attempts)
        )
        if result.conflict:
            logger.warning("Profile refresh dropped for student=%s subject=%s", student_id, subject)
        return result

    # ==================== Adaptive Exams ====================

    def generate_adaptive_exam(self, student_id: str, subject: str, grade_level: int,
                               attempts: Sequence[AttemptRecord], target_difficulty: str = AUTO,
                               focus_areas: Optional[List[str]] = None,
                               question_count: int = AdaptiveDifficultySelector.DEFAULT_QUESTIONS) -> AdaptiveExam:
        analysis = self.analyze(student_id, subject, attempts)
        request = self.selector.build_request(
            analysis, subject, grade_level,
            target_difficulty=target_difficulty,
            focus_areas=focus_areas,
            question_count=question_count,
        )

        context = f"student={student_id} subject={subject}"
        if self.question_writer is None:
            logger.info("No question writer configured (%s); using template exam", context)
            outcome = GenerationOutcome(self.selector.policy.fallback_factory(request),
                                        used_fallback=True, attempts=0)
        else:
            outcome = self.selector.generate(request, self.question_writer, context=context)

        profile_update = self.refresh_profile(student_id, subject, attempts)

        return AdaptiveExam(
            request=request,
            analysis=analysis,
            questions=outcome.questions,
            used_fallback=outcome.used_fallback,
            profile_update=profile_update,
        )

    # ==================== Grading ====================

    def grade_attempt(self, questions: Sequence[Question], answers: Sequence[Answer],
                      student_id: Optional[str] = None, subject: Optional[str] = None,
                      attempt_id: Optional[str] = None,
                      history: Optional[Sequence[AttemptRecord]] = None) -> GradedAttempt:
        """
        Grade a submitted attempt.

        Subjective answers without any score are sent to the grading assist when
        one is configured. When `history` is given (prior attempts, most recent
        first) and the result is final, the profile is refreshed with this
        attempt included. Malformed submissions are rejected before any
        answer reaches the grading assist.
        """
        answers = list(answers)
        self.aggregator.validate(questions, answers)
        answers = self.assist_answers(questions, answers, attempt_id=attempt_id)
        result = self.aggregator.aggregate(questions, answers, attempt_id=attempt_id)

        profile_update = None
        if history is not None and student_id and subject:
            if result.status == ResultStatus.COMPLETED:
                record = attempt_record_from_result(questions, answers, result, attempt_id)
                profile_update = self.refresh_profile(student_id, subject, [record, *history])
            else:
                logger.info("Attempt %s awaits manual review; profile for student=%s subject=%s not refreshed",
                            attempt_id, student_id, subject)

        return GradedAttempt(result=result, answers=list(answers), profile_update=profile_update)

    def assist_answers(self, questions: Sequence[Question], answers: Sequence[Answer],
                       attempt_id: Optional[str] = None) -> List[Answer]:
        """Fill ai_score/ai_feedback for ungraded subjective answers. Failures leave them pending."""
        if self.grading_assist is None:
            return list(answers)

        by_id = {q.id: q for q in questions}
        assisted = []
        for answer in answers:
            question = by_id.get(answer.question_id)
            needs_assist = (
                question is not None
                and not question.type.is_objective
                and not answer.is_blank
                and answer.manual_score is None
                and answer.ai_score is None
            )
            if not needs_assist:
                assisted.append(answer)
                continue

            try:
                grade = self.grading_assist.grade(question, answer.student_answer)
            except Exception as exc:
                logger.warning("Grading assist failed for attempt=%s question=%s: %s",
                               attempt_id, answer.question_id, exc)
                assisted.append(answer)
                continue

            assisted.append(Answer(
                question_id=answer.question_id,
                student_answer=answer.student_answer,
                ai_score=marks_from_percentage(grade.score, question.marks),
                ai_feedback=grade.feedback,
                manual_score=answer.manual_score,
                manual_feedback=answer.manual_feedback,
            ))
        return assisted


def attempt_record_from_result(questions: Sequence[Question], answers: Sequence[Answer],
                               result: ExamResult, attempt_id: Optional[str] = None) -> AttemptRecord:
    """Turn a graded attempt into the history record the profile builder reads."""
    answer_map = {a.question_id: a for a in answers}
    score_map = {r.question_id: r.final_score for r in result.question_results}

    lines = []
    for q in questions:
        answer = answer_map.get(q.id)
        lines.append(AttemptAnswer(
            question_id=q.id,
            question_type=q.type,
            marks=q.marks,
            score_earned=score_map.get(q.id),
            answer=None if answer is None or answer.is_blank else answer.student_answer,
            topic=q.topic,
        ))

    return AttemptRecord(percentage=result.percentage, answers=lines, attempt_id=attempt_id)
