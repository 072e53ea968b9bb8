"""Tests for the adaptive selector, generation policy and template exam"""

import threading

import pytest

from assessment.adaptive_selector import AdaptiveDifficultySelector
from assessment.generation_policy import GenerationError, GenerationPolicy
from assessment.generation_request import adaptive_marks
from assessment.models import (
    AssessmentValidationError,
    Difficulty,
    PerformanceAnalysis,
    QuestionType,
)
from assessment.template_exam import build_template_exam


def make_selector(**policy_kwargs):
    sleeps = []
    policy = GenerationPolicy(sleep=sleeps.append, **policy_kwargs)
    return AdaptiveDifficultySelector(policy=policy), sleeps


def analysis(**kwargs):
    defaults = dict(skill_level=6, weaknesses=["fractions"], strengths=["geometry"],
                    recommended_difficulty=Difficulty.MEDIUM)
    defaults.update(kwargs)
    return PerformanceAnalysis(**defaults)


def record(**overrides):
    data = {"type": "MULTIPLE_CHOICE", "question": "2 + 2 = ?", "options": ["3", "4"],
            "correctAnswer": "4", "marks": 5, "difficulty": "medium", "topic": "arithmetic"}
    data.update(overrides)
    return data


# ==================== Marks ====================

@pytest.mark.parametrize("difficulty,skill,expected", [
    (Difficulty.MEDIUM, 6, 5),
    (Difficulty.EASY, 1, 2),
    (Difficulty.HARD, 10, 12),
    (Difficulty.MEDIUM, 5, 4),
    (Difficulty.HARD, 3, 4),
])
def test_adaptive_marks(difficulty, skill, expected):
    assert adaptive_marks(difficulty, skill) == expected


# ==================== Request Building ====================

def test_auto_difficulty_uses_recommendation():
    selector, _ = make_selector()
    request = selector.build_request(analysis(recommended_difficulty=Difficulty.HARD), "math", 7)
    assert request.difficulty == Difficulty.HARD
    assert request.marks_per_question == 8


def test_explicit_difficulty_overrides_recommendation():
    selector, _ = make_selector()
    request = selector.build_request(analysis(recommended_difficulty=Difficulty.HARD), "math", 7,
                                     target_difficulty="easy")
    assert request.difficulty == Difficulty.EASY
    assert request.marks_per_question == 3


def test_focus_areas_override_weaknesses():
    selector, _ = make_selector()
    request = selector.build_request(analysis(), "math", 7, focus_areas=["algebra"])
    assert request.topics == ["algebra"]


def test_topics_fall_back_to_weaknesses_then_none():
    selector, _ = make_selector()
    assert selector.build_request(analysis(), "math", 7).topics == ["fractions"]
    assert selector.build_request(analysis(weaknesses=[]), "math", 7).topics is None


def test_request_carries_profile_summary_and_instructions():
    selector, _ = make_selector()
    request = selector.build_request(analysis(), "math", 7, question_count=10)

    assert request.question_count == 10
    assert request.mark_weighting == {"easy": 3, "medium": 5, "hard": 8}
    assert request.student_profile_summary["skill_level"] == 6
    assert request.student_profile_summary["strengths"] == ["geometry"]
    assert "fractions" in request.instructions
    assert "60% weak areas" in request.instructions
    assert request.to_dict()["difficulty"] == "medium"


@pytest.mark.parametrize("kwargs", [
    dict(subject="", grade_level=7),
    dict(subject="math", grade_level=0),
    dict(subject="math", grade_level=13),
    dict(subject="math", grade_level=7, question_count=4),
    dict(subject="math", grade_level=7, question_count=51),
    dict(subject="math", grade_level=7, target_difficulty="impossible"),
])
def test_invalid_request_parameters_rejected(kwargs):
    selector, _ = make_selector()
    with pytest.raises(AssessmentValidationError):
        selector.build_request(analysis(), **kwargs)


# ==================== Parsing ====================

def test_parse_questions_accepts_list_and_wrapped_dict():
    selector, _ = make_selector()
    request = selector.build_request(analysis(), "math", 7)

    from_list = selector.parse_questions([record()], request)
    from_dict = selector.parse_questions({"questions": [record()]}, request)

    assert from_list == from_dict
    assert from_list[0].id == "q1"
    assert from_list[0].type == QuestionType.CHOICE
    assert from_list[0].correct_answer == "4"


def test_parse_questions_fills_missing_marks_and_topic():
    selector, _ = make_selector()
    request = selector.build_request(analysis(skill_level=10), "math", 7)

    question = selector.parse_questions([record(marks=None, topic=None, difficulty="hard")], request)[0]
    assert question.marks == 12
    assert question.topic == "fractions"


def test_parse_questions_keeps_adaptive_notes_in_rubric():
    selector, _ = make_selector()
    request = selector.build_request(analysis(), "math", 7)
    question = selector.parse_questions(
        [record(type="SHORT_ANSWER", correctAnswer=None, adaptiveReason="targets fractions",
                gradingRubric={"criteria": "clear"})],
        request,
    )[0]
    assert question.grading_rubric == {"criteria": "clear", "adaptiveReason": "targets fractions"}


@pytest.mark.parametrize("raw", [
    None,
    [],
    {"questions": []},
    ["not a dict"],
    [record(question="")],
    [record(type="INTERPRETIVE_DANCE")],
    [record(marks=-1)],
    [record(marks="five")],
    [record(correctAnswer=None)],
    [record(id="1"), record(id="1", question="3 + 3 = ?")],
    [record(id="q2"), record()],
])
def test_parse_questions_rejects_invalid_output(raw):
    selector, _ = make_selector()
    request = selector.build_request(analysis(), "math", 7)
    with pytest.raises(GenerationError):
        selector.parse_questions(raw, request)


# ==================== Generation Policy ====================

def test_generation_succeeds_first_try():
    selector, sleeps = make_selector()
    request = selector.build_request(analysis(), "math", 7)
    calls = []

    def generator(req, timeout):
        calls.append(timeout)
        return [record()]

    outcome = selector.generate(request, generator)
    assert not outcome.used_fallback
    assert outcome.attempts == 1
    assert calls == [30.0]
    assert sleeps == []


def test_generation_retries_with_backoff_then_succeeds():
    selector, sleeps = make_selector()
    request = selector.build_request(analysis(), "math", 7)
    responses = iter([TimeoutError("slow"), [], [record()]])

    def generator(req, timeout):
        response = next(responses)
        if isinstance(response, Exception):
            raise response
        return response

    outcome = selector.generate(request, generator)
    assert not outcome.used_fallback
    assert outcome.attempts == 3
    assert sleeps == [1.0, 2.0]


def test_generation_falls_back_after_three_failures():
    selector, sleeps = make_selector()
    request = selector.build_request(analysis(), "math", 7, question_count=6)
    calls = []

    def generator(req, timeout):
        calls.append(req)
        raise ConnectionError("service down")

    outcome = selector.generate(request, generator)
    assert outcome.used_fallback
    assert len(calls) == 3
    assert sleeps == [1.0, 2.0]
    assert "ConnectionError" in outcome.error
    assert outcome.questions == build_template_exam(request)
    assert len(outcome.questions) == 6


def test_generator_ignoring_timeout_is_abandoned():
    selector, _ = make_selector(timeout=0.05)
    request = selector.build_request(analysis(), "math", 7, question_count=5)
    release = threading.Event()

    def stuck_generator(req, timeout):
        release.wait(5)
        return [record()]

    try:
        outcome = selector.generate(request, stuck_generator)
    finally:
        release.set()

    assert outcome.used_fallback
    assert outcome.attempts == 3
    assert "timeout" in outcome.error


def test_policy_delay_repeats_last_backoff():
    policy = GenerationPolicy(max_attempts=5, backoff=(1, 2))
    assert [policy.delay_before(n) for n in range(1, 6)] == [0.0, 1, 2, 2, 2]


def test_policy_rejects_bad_settings():
    with pytest.raises(ValueError):
        GenerationPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        GenerationPolicy(timeout=0)


# ==================== Template Exam ====================

def test_template_exam_is_deterministic():
    selector, _ = make_selector()
    request = selector.build_request(analysis(weaknesses=["fractions", "decimals"]), "math", 7,
                                     question_count=5)
    first = build_template_exam(request)

    assert first == build_template_exam(request)
    assert [q.id for q in first] == ["template-1", "template-2", "template-3", "template-4", "template-5"]
    assert [q.topic for q in first] == ["fractions", "decimals", "fractions", "decimals", "fractions"]
    assert all(q.type == QuestionType.SHORT_TEXT for q in first)
    assert all(q.marks == request.marks_per_question for q in first)


def test_template_exam_uses_subject_without_topics():
    selector, _ = make_selector()
    request = selector.build_request(analysis(weaknesses=[]), "biology", 5, question_count=5)
    assert {q.topic for q in build_template_exam(request)} == {"biology"}


def test_repeated_ids_trigger_retry_then_fallback():
    selector, _ = make_selector()
    request = selector.build_request(analysis(), "math", 7, question_count=5)

    def generator(req, timeout):
        return [record(id="1"), record(id="1")]

    outcome = selector.generate(request, generator)
    assert outcome.used_fallback
    assert "repeated question ids" in outcome.error
