"""
Adaptive Difficulty Selector - Performance analysis -> generation request.

Features:
    - Difficulty: explicit target or the analysis' recommendation ("auto")
    - Topic focus: caller override, else the student's weaknesses
    - Skill-scaled marks per question
    - Advisory 60/30/10 weakness/strength/novel mix
    - Validation of generator output, with retries and a template fallback
"""

from typing import Any, Dict, List, Optional

from .generation_policy import GenerationError, GenerationOutcome, GenerationPolicy, Generator
from .generation_request import BASE_MARKS, GenerationRequest, MixPolicy, adaptive_marks
from .models import (
    AssessmentValidationError,
    Difficulty,
    PerformanceAnalysis,
    Question,
)


AUTO = "auto"


class AdaptiveDifficultySelector:
    """Builds generation requests and runs them through the generation policy."""

    MIN_QUESTIONS = 5
    MAX_QUESTIONS = 50
    DEFAULT_QUESTIONS = 20
    MIN_GRADE_LEVEL = 1
    MAX_GRADE_LEVEL = 12

    def __init__(self, policy: Optional[GenerationPolicy] = None,
                 mix_policy: Optional[MixPolicy] = None):
        self.policy = policy or GenerationPolicy()
        self.mix_policy = mix_policy or MixPolicy()

    # ==================== Request Building ====================

    def build_request(self, analysis: PerformanceAnalysis, subject: str, grade_level: int,
                      target_difficulty: str = AUTO, focus_areas: Optional[List[str]] = None,
                      question_count: int = DEFAULT_QUESTIONS) -> GenerationRequest:
        if not subject or not subject.strip():
            raise AssessmentValidationError("subject is required")
        if not self.MIN_GRADE_LEVEL <= grade_level <= self.MAX_GRADE_LEVEL:
            raise AssessmentValidationError(f"grade_level {grade_level} outside "
                                            f"[{self.MIN_GRADE_LEVEL}, {self.MAX_GRADE_LEVEL}]")
        if not self.MIN_QUESTIONS <= question_count <= self.MAX_QUESTIONS:
            raise AssessmentValidationError(f"question_count {question_count} outside "
                                            f"[{self.MIN_QUESTIONS}, {self.MAX_QUESTIONS}]")

        difficulty = self.select_difficulty(analysis, target_difficulty)
        topics = [t for t in (focus_areas or analysis.weaknesses) if t] or None

        request = GenerationRequest(
            subject=subject,
            grade_level=grade_level,
            difficulty=difficulty,
            question_count=question_count,
            topics=topics,
            marks_per_question=adaptive_marks(difficulty, analysis.skill_level),
            mark_weighting={d.value: adaptive_marks(d, analysis.skill_level) for d in BASE_MARKS},
            mix_policy=self.mix_policy,
            student_profile_summary={
                "skill_level": analysis.skill_level,
                "strengths": list(analysis.strengths),
                "weaknesses": list(analysis.weaknesses),
                "recommended_topics": list(analysis.recommended_topics),
                "preferred_question_types": list(analysis.preferred_question_types),
                "trend": analysis.trend.value,
            },
        )
        request.instructions = self.render_instructions(request)
        return request

    def select_difficulty(self, analysis: PerformanceAnalysis, target: Any = AUTO) -> Difficulty:
        if target is None or str(target).strip().lower() == AUTO:
            return analysis.recommended_difficulty
        return Difficulty.parse(target)

    def render_instructions(self, request: GenerationRequest) -> str:
        summary = request.student_profile_summary
        mix = request.mix_policy
        weaknesses = ", ".join(summary.get("weaknesses", [])) or "balanced coverage"
        strengths = ", ".join(summary.get("strengths", [])) or "general skills"
        focus = ", ".join(request.topics) if request.topics else "general coverage"

        return (
            f"Generate an adaptive exam that:\n"
            f"1. Focuses on weak areas: {weaknesses}\n"
            f"2. Reinforces strengths: {strengths}\n"
            f"3. Targets skill level: {summary.get('skill_level')}/10\n"
            f"4. Emphasizes topics: {focus}\n"
            f"5. Provides appropriate challenge for {request.difficulty.value} difficulty\n"
            f"Mix: {mix.weaknesses:.0%} weak areas, {mix.strengths:.0%} strengths, "
            f"{mix.novel:.0%} new challenges."
        )

    # ==================== Generation ====================

    def generate(self, request: GenerationRequest, generator: Generator,
                 context: str = "") -> GenerationOutcome:
        """Call the generator under the policy; never raises on generator failure."""
        return self.policy.execute(request, generator, self.parse_questions, context)

    def parse_questions(self, raw: Any, request: GenerationRequest) -> List[Question]:
        """
        Accept a generator response only if it is a non-empty list where every
        record has question text, a known type, a non-negative mark value and
        an id no other record uses.
        """
        if isinstance(raw, dict):
            raw = raw.get("questions")
        if not isinstance(raw, list) or not raw:
            raise GenerationError("empty or missing question list")

        skill = request.student_profile_summary.get("skill_level", 5)
        questions = []
        for i, record in enumerate(raw):
            if not isinstance(record, dict):
                raise GenerationError(f"question {i + 1} is not an object")
            try:
                questions.append(self._to_question(record, i, request, skill))
            except AssessmentValidationError as exc:
                raise GenerationError(f"question {i + 1}: {exc}") from exc

        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            raise GenerationError(f"repeated question ids: {ids}")
        return questions

    def _to_question(self, record: Dict, index: int, request: GenerationRequest,
                     skill_level: int) -> Question:
        text = record.get("question")
        if not isinstance(text, str) or not text.strip():
            raise AssessmentValidationError("missing question text")

        difficulty = Difficulty.parse(record.get("difficulty") or request.difficulty)

        marks = record.get("marks")
        if marks is None or marks == 0:
            marks = adaptive_marks(difficulty, skill_level)
        elif isinstance(marks, bool) or not isinstance(marks, (int, float)) or marks < 0:
            raise AssessmentValidationError(f"invalid marks {marks!r}")

        rubric = dict(record.get("gradingRubric") or {})
        for extra in ("adaptiveReason", "learningObjective"):
            if record.get(extra):
                rubric[extra] = record[extra]

        default_topic = request.topics[0] if request.topics else request.subject
        return Question(
            id=str(record.get("id") or f"q{index + 1}"),
            type=record.get("type"),
            marks=marks,
            topic=record.get("topic") or default_topic,
            difficulty=difficulty,
            correct_answer=record.get("correctAnswer"),
            text=text.strip(),
            options=record.get("options") or None,
            grading_rubric=rubric or None,
            sample_answer=record.get("sampleAnswer"),
        )
