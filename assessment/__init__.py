"""
Assessment module - Performance profiling, adaptive exam parameters, and grading.

Components:
    - models: Questions, answers, attempts, profiles, results
    - profile_builder: Attempt history -> performance analysis
    - adaptive_selector: Analysis -> generation request (+ validated generation)
    - generation_policy: Bounded retries/backoff with template fallback
    - template_exam: Deterministic fallback exam
    - answer_evaluator: Objective answer checking
    - score_aggregator: Per-question results -> score, percentage, grade
    - mastery_tracker: Conflict-safe profile upserts
"""

from .models import (
    Answer,
    AssessmentValidationError,
    AttemptAnswer,
    AttemptRecord,
    Difficulty,
    ExamResult,
    Outcome,
    PerformanceAnalysis,
    PerformanceProfile,
    Question,
    QuestionType,
    ResultStatus,
    Trend,
)
from .answer_evaluator import AnswerEvaluator, EvaluationResult
from .score_aggregator import GradeTable, ScoreAggregator
from .profile_builder import PerformanceProfileBuilder, ProfileThresholds
from .generation_request import GenerationRequest, MixPolicy, adaptive_marks
from .generation_policy import GenerationError, GenerationOutcome, GenerationPolicy
from .template_exam import build_template_exam
from .adaptive_selector import AdaptiveDifficultySelector
from .mastery_tracker import InMemoryProfileStore, MasteryTracker, ProfileStore, UpsertResult

__all__ = [
    "Answer",
    "AssessmentValidationError",
    "AttemptAnswer",
    "AttemptRecord",
    "Difficulty",
    "ExamResult",
    "Outcome",
    "PerformanceAnalysis",
    "PerformanceProfile",
    "Question",
    "QuestionType",
    "ResultStatus",
    "Trend",
    "AnswerEvaluator",
    "EvaluationResult",
    "GradeTable",
    "ScoreAggregator",
    "PerformanceProfileBuilder",
    "ProfileThresholds",
    "GenerationRequest",
    "MixPolicy",
    "adaptive_marks",
    "GenerationError",
    "GenerationOutcome",
    "GenerationPolicy",
    "build_template_exam",
    "AdaptiveDifficultySelector",
    "InMemoryProfileStore",
    "MasteryTracker",
    "ProfileStore",
    "UpsertResult",
]
