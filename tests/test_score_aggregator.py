"""Tests for assessment/score_aggregator.py"""

import pytest

from assessment.models import (
    Answer,
    AssessmentValidationError,
    Outcome,
    Question,
    QuestionType,
    ResultStatus,
)
from assessment.score_aggregator import GradeTable, ScoreAggregator, marks_from_percentage


aggregator = ScoreAggregator()


def test_choice_and_boolean_end_to_end():
    questions = [
        Question(id="q1", type=QuestionType.CHOICE, marks=5, correct_answer="B"),
        Question(id="q2", type=QuestionType.BOOLEAN, marks=5, correct_answer="true"),
    ]
    answers = [
        Answer(question_id="q1", student_answer="B"),
        Answer(question_id="q2", student_answer="false"),
    ]

    result = aggregator.aggregate(questions, answers)

    assert result.total_score == 5
    assert result.max_score == 10
    assert result.percentage == 50
    assert result.grade == "F"
    assert result.status == ResultStatus.COMPLETED
    assert result.per_question_outcome == {"q1": Outcome.CORRECT, "q2": Outcome.INCORRECT}


def test_subjective_prefers_manual_then_ai_then_pending():
    questions = [
        Question(id="s1", type=QuestionType.SHORT_TEXT, marks=10),
        Question(id="s2", type=QuestionType.LONG_TEXT, marks=10),
        Question(id="s3", type=QuestionType.LONG_TEXT, marks=10),
    ]
    answers = [
        Answer(question_id="s1", student_answer="x", ai_score=2, manual_score=9),
        Answer(question_id="s2", student_answer="y", ai_score=5),
        Answer(question_id="s3", student_answer="z"),
    ]

    result = aggregator.aggregate(questions, answers)
    scores = {r.question_id: r.final_score for r in result.question_results}

    assert scores == {"s1": 9, "s2": 5, "s3": 0}
    assert result.per_question_outcome["s1"] == Outcome.CORRECT
    assert result.per_question_outcome["s2"] == Outcome.PARTIAL
    assert result.per_question_outcome["s3"] == Outcome.PENDING


def test_pending_answers_block_final_grade():
    questions = [Question(id="s1", type=QuestionType.SHORT_TEXT, marks=4)]
    result = aggregator.aggregate(questions, [Answer(question_id="s1", student_answer="essay")])

    assert result.status == ResultStatus.PENDING
    assert result.grade is None
    assert result.needs_manual_review
    assert result.pending_question_ids == ["s1"]


def test_missing_and_blank_answers_are_unanswered():
    questions = [
        Question(id="q1", type=QuestionType.CHOICE, marks=2, correct_answer="A"),
        Question(id="q2", type=QuestionType.SHORT_TEXT, marks=2),
    ]
    result = aggregator.aggregate(questions, [Answer(question_id="q2", student_answer="   ")])

    assert result.per_question_outcome == {"q1": Outcome.UNANSWERED, "q2": Outcome.UNANSWERED}
    assert result.total_score == 0
    assert result.grade == "F"


def test_outcome_ratio_boundaries():
    assert aggregator.classify(7, 10) == Outcome.CORRECT
    assert aggregator.classify(6.99, 10) == Outcome.PARTIAL
    assert aggregator.classify(4, 10) == Outcome.PARTIAL
    assert aggregator.classify(3.99, 10) == Outcome.INCORRECT


def test_final_score_never_exceeds_marks():
    questions = [
        Question(id="q1", type=QuestionType.CHOICE, marks=3, correct_answer="A"),
        Question(id="q2", type=QuestionType.FILL_BLANK, marks=2.5, correct_answer="x"),
        Question(id="q3", type=QuestionType.LONG_TEXT, marks=6),
    ]
    answers = [
        Answer(question_id="q1", student_answer="A"),
        Answer(question_id="q2", student_answer="X"),
        Answer(question_id="q3", student_answer="text", manual_score=6),
    ]
    result = aggregator.aggregate(questions, answers)

    for r in result.question_results:
        assert 0 <= r.final_score <= r.marks
    assert result.percentage == 100


def test_scores_above_marks_are_rejected():
    questions = [Question(id="s1", type=QuestionType.SHORT_TEXT, marks=5)]
    with pytest.raises(AssessmentValidationError):
        aggregator.aggregate(questions, [Answer(question_id="s1", student_answer="a", manual_score=6)])
    with pytest.raises(AssessmentValidationError):
        aggregator.aggregate(questions, [Answer(question_id="s1", student_answer="a", ai_score=-1)])


def test_malformed_input_is_rejected():
    with pytest.raises(AssessmentValidationError):
        Question(id="q1", type=QuestionType.CHOICE, marks=0, correct_answer="A")
    with pytest.raises(AssessmentValidationError):
        Question(id="q1", type=QuestionType.CHOICE, marks="5", correct_answer="A")
    with pytest.raises(AssessmentValidationError):
        Question(id="q1", type=QuestionType.CHOICE, marks=5)

    questions = [Question(id="q1", type=QuestionType.CHOICE, marks=5, correct_answer="A")]
    with pytest.raises(AssessmentValidationError):
        aggregator.aggregate(questions, [Answer(question_id="nope", student_answer="A")])
    with pytest.raises(AssessmentValidationError):
        aggregator.aggregate(questions, [Answer(question_id="q1", student_answer="A"),
                                         Answer(question_id="q1", student_answer="B")])


def test_empty_exam_has_zero_percentage():
    result = aggregator.aggregate([], [])
    assert result.max_score == 0
    assert result.percentage == 0


def test_aggregation_is_idempotent():
    questions = [
        Question(id="q1", type=QuestionType.CHOICE, marks=5, correct_answer="B"),
        Question(id="q2", type=QuestionType.SHORT_TEXT, marks=5),
    ]
    answers = [
        Answer(question_id="q1", student_answer="B"),
        Answer(question_id="q2", student_answer="text", ai_score=3.5),
    ]
    assert aggregator.aggregate(questions, answers) == aggregator.aggregate(questions, answers)


def test_default_grade_table_is_monotonic():
    table = GradeTable()
    percentages = [p / 2 for p in range(0, 201)]
    order = "ABCDF"
    ranks = [order.index(table.grade(p)) for p in percentages]
    assert ranks == sorted(ranks, reverse=True)
    assert table.grade(90) == "A"
    assert table.grade(89.99) == "B"
    assert table.grade(59.99) == "F"


def test_grade_table_rejects_non_monotonic_bands():
    with pytest.raises(AssessmentValidationError):
        GradeTable(bands=[(80, "A"), (90, "B")])
    with pytest.raises(AssessmentValidationError):
        GradeTable(bands=[(90, "A"), (80, "A")])
    with pytest.raises(AssessmentValidationError):
        GradeTable(bands=[(120, "A")])


def test_grade_table_rejects_non_numeric_threshold():
    with pytest.raises(AssessmentValidationError):
        GradeTable(bands=[("ninety", "A")])
    with pytest.raises(AssessmentValidationError):
        GradeTable(bands=[(True, "A")])


def test_custom_grade_table():
    aggregator_pass_fail = ScoreAggregator(grade_table=GradeTable(bands=[(50, "P")], floor="NP"))
    questions = [Question(id="q1", type=QuestionType.CHOICE, marks=2, correct_answer="A")]
    result = aggregator_pass_fail.aggregate(questions, [Answer(question_id="q1", student_answer="A")])
    assert result.grade == "P"


def test_marks_from_percentage_clamps():
    assert marks_from_percentage(50, 8) == 4
    assert marks_from_percentage(150, 8) == 8
    assert marks_from_percentage(-10, 8) == 0


def test_validate_indexes_answers_without_scoring():
    questions = [
        Question(id="q1", type=QuestionType.CHOICE, marks=2, correct_answer="A"),
        Question(id="q2", type=QuestionType.SHORT_TEXT, marks=4),
    ]
    answers = [Answer(question_id="q2", student_answer="text", ai_score=3)]

    assert aggregator.validate(questions, answers) == {"q2": answers[0]}

    duplicate_questions = questions + [Question(id="q1", type=QuestionType.CHOICE, marks=2, correct_answer="B")]
    with pytest.raises(AssessmentValidationError):
        aggregator.validate(duplicate_questions, [])
