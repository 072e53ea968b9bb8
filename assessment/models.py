"""
Assessment Models - Shared types for profiling, generation and grading.

Contents:
    - Enums: question types, difficulty, trend, per-question outcome
    - Exam side: Question, Answer, QuestionResult, ExamResult
    - History side: AttemptAnswer, AttemptRecord
    - Profile side: PerformanceProfile, PerformanceAnalysis
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, asdict


class AssessmentValidationError(ValueError):
    """Raised when input data is malformed. Nothing is scored or analyzed."""


# ==================== Enums ====================

class QuestionType(str, Enum):
    """Question type tags, valued with the wire names the platform stores."""
    CHOICE = "MULTIPLE_CHOICE"
    BOOLEAN = "TRUE_FALSE"
    FILL_BLANK = "FILL_BLANKS"
    SHORT_TEXT = "SHORT_ANSWER"
    LONG_TEXT = "LONG_ANSWER"
    NUMERIC_PROBLEM = "MATH_PROBLEM"
    MATCHING = "MATCHING"
    ORDERING = "ORDERING"
    CODING = "CODING"
    DIAGRAM = "DIAGRAM"

    @property
    def is_objective(self) -> bool:
        return self in OBJECTIVE_TYPES

    @classmethod
    def parse(cls, raw: Any) -> "QuestionType":
        """Accept wire names, enum names and the aliases generators emit."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise AssessmentValidationError(f"Invalid question type: {raw!r}")

        key = raw.strip().upper().replace("-", "_").replace(" ", "_")
        key = _TYPE_ALIASES.get(key, key)

        for member in cls:
            if key in (member.value, member.name):
                return member
        raise AssessmentValidationError(f"Unknown question type: {raw!r}")


OBJECTIVE_TYPES = frozenset({
    QuestionType.CHOICE,
    QuestionType.BOOLEAN,
    QuestionType.FILL_BLANK,
    QuestionType.MATCHING,
    QuestionType.ORDERING,
})

_TYPE_ALIASES = {
    "FILL_IN_THE_BLANKS": "FILL_BLANKS",
    "FILL_IN_THE_BLANK": "FILL_BLANKS",
    "ESSAY": "LONG_ANSWER",
    "MCQ": "MULTIPLE_CHOICE",
}


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, raw: Any) -> "Difficulty":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise AssessmentValidationError(f"Unknown difficulty: {raw!r}") from None

    @property
    def preference(self) -> int:
        """Numeric 1-10 form stored as the profile's difficulty preference."""
        return DIFFICULTY_PREFERENCE[self]

    @classmethod
    def from_preference(cls, value: float) -> "Difficulty":
        """Nearest difficulty for a stored 1-10 preference."""
        return min(DIFFICULTY_PREFERENCE, key=lambda d: abs(DIFFICULTY_PREFERENCE[d] - value))


DIFFICULTY_PREFERENCE = {
    Difficulty.EASY: 3,
    Difficulty.MEDIUM: 5,
    Difficulty.HARD: 8,
}


class Trend(str, Enum):
    IMPROVING = "IMPROVING"
    DECLINING = "DECLINING"
    STABLE = "STABLE"


class Outcome(str, Enum):
    """Per-question outcome used for reporting."""
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PARTIAL = "partial"
    PENDING = "pending"
    UNANSWERED = "unanswered"


class ResultStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"


# ==================== Validation Helpers ====================

def validate_marks(value: Any, context: str = "question") -> float:
    """Marks must be a finite positive number. Never coerced."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AssessmentValidationError(f"{context}: marks must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise AssessmentValidationError(f"{context}: marks must be positive, got {value!r}")
    return value


def validate_score(value: Any, marks: float, context: str) -> Optional[float]:
    """Optional score in [0, marks]."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise AssessmentValidationError(f"{context}: score must be a number, got {value!r}")
    if value < 0 or value > marks:
        raise AssessmentValidationError(f"{context}: score {value} outside [0, {marks}]")
    return value


# ==================== Exam Side ====================

@dataclass(frozen=True)
class Question:
    """A question as authored (by an instructor, the generator or the template)."""
    id: str
    type: QuestionType
    marks: float
    topic: str = "general"
    difficulty: Difficulty = Difficulty.MEDIUM
    correct_answer: Any = None
    text: str = ""
    options: Optional[List[str]] = None
    grading_rubric: Optional[Dict[str, Any]] = None
    sample_answer: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise AssessmentValidationError("question: id is required")
        context = f"question {self.id}"
        object.__setattr__(self, "type", QuestionType.parse(self.type))
        object.__setattr__(self, "difficulty", Difficulty.parse(self.difficulty))
        validate_marks(self.marks, context)
        if self.type.is_objective and self.correct_answer is None:
            raise AssessmentValidationError(f"{context}: objective question needs a correct answer")

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["type"] = self.type.value
        data["difficulty"] = self.difficulty.value
        return data


@dataclass(frozen=True)
class Answer:
    """A submitted answer plus whatever scoring is already known for it."""
    question_id: str
    student_answer: Any = None
    ai_score: Optional[float] = None
    ai_feedback: Optional[str] = None
    manual_score: Optional[float] = None
    manual_feedback: Optional[str] = None

    @property
    def is_blank(self) -> bool:
        if self.student_answer is None:
            return True
        if isinstance(self.student_answer, str):
            return not self.student_answer.strip()
        if isinstance(self.student_answer, (list, tuple, dict)):
            return len(self.student_answer) == 0
        return False


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    outcome: Outcome
    final_score: float
    marks: float
    feedback: Optional[str] = None


@dataclass(frozen=True)
class ExamResult:
    total_score: float
    max_score: float
    percentage: float
    grade: Optional[str]
    status: ResultStatus
    per_question_outcome: Dict[str, Outcome]
    question_results: List[QuestionResult] = field(default_factory=list)
    pending_question_ids: List[str] = field(default_factory=list)

    @property
    def needs_manual_review(self) -> bool:
        return bool(self.pending_question_ids)

    def to_dict(self) -> Dict:
        return {
            "total_score": self.total_score,
            "max_score": self.max_score,
            "percentage": self.percentage,
            "grade": self.grade,
            "status": self.status.value,
            "needs_manual_review": self.needs_manual_review,
            "pending_question_ids": list(self.pending_question_ids),
            "per_question_outcome": {qid: o.value for qid, o in self.per_question_outcome.items()},
            "question_results": [
                {
                    "question_id": r.question_id,
                    "outcome": r.outcome.value,
                    "final_score": r.final_score,
                    "marks": r.marks,
                    "feedback": r.feedback,
                }
                for r in self.question_results
            ],
        }


# ==================== History Side ====================

@dataclass(frozen=True)
class AttemptAnswer:
    """One graded line of a completed attempt."""
    question_id: str
    question_type: QuestionType
    marks: float
    score_earned: Optional[float] = None
    answer: Any = None
    topic: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "question_type", QuestionType.parse(self.question_type))
        validate_marks(self.marks, f"attempt answer {self.question_id}")
        validate_score(self.score_earned, self.marks, f"attempt answer {self.question_id}")

    @property
    def is_scored(self) -> bool:
        return self.answer is not None and self.score_earned is not None


@dataclass(frozen=True)
class AttemptRecord:
    """Immutable history of one completed exam attempt."""
    percentage: float
    answers: List[AttemptAnswer] = field(default_factory=list)
    attempt_id: Optional[str] = None
    submitted_at: Optional[datetime] = None

    def __post_init__(self):
        p = self.percentage
        if isinstance(p, bool) or not isinstance(p, (int, float)) or not math.isfinite(p) or not 0 <= p <= 100:
            raise AssessmentValidationError(f"attempt {self.attempt_id}: percentage {p!r} outside [0, 100]")


# ==================== Profile Side ====================

@dataclass
class PerformanceProfile:
    """Persisted per-student-per-subject summary."""
    student_id: str
    subject: str
    skill_level: int = 5
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    preferred_question_types: List[str] = field(default_factory=list)
    difficulty_preference: float = DIFFICULTY_PREFERENCE[Difficulty.MEDIUM]
    trend: Trend = Trend.STABLE
    updated_at: Optional[datetime] = None
    version: int = 0  # storage revision, bumped on every write

    def to_dict(self) -> Dict:
        return {
            "student_id": self.student_id,
            "subject": self.subject,
            "skill_level": self.skill_level,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "preferred_question_types": list(self.preferred_question_types),
            "difficulty_preference": self.difficulty_preference,
            "trend": self.trend.value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version,
        }


@dataclass
class PerformanceAnalysis:
    """Profile-shaped output of the profile builder plus derived metrics."""
    skill_level: int = 5
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    preferred_question_types: List[str] = field(default_factory=list)
    difficulty_preference: float = DIFFICULTY_PREFERENCE[Difficulty.MEDIUM]
    trend: Trend = Trend.STABLE
    average_score: float = 0.0
    recommended_difficulty: Difficulty = Difficulty.MEDIUM
    recommended_topics: List[str] = field(default_factory=list)
    attempts_analyzed: int = 0

    def to_dict(self) -> Dict:
        return {
            "skill_level": self.skill_level,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "preferred_question_types": list(self.preferred_question_types),
            "difficulty_preference": self.difficulty_preference,
            "trend": self.trend.value,
            "average_score": self.average_score,
            "recommended_difficulty": self.recommended_difficulty.value,
            "recommended_topics": list(self.recommended_topics),
            "attempts_analyzed": self.attempts_analyzed,
        }
