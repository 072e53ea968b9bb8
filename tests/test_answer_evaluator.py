"""Tests for assessment/answer_evaluator.py"""

from assessment.answer_evaluator import AnswerEvaluator
from assessment.models import Outcome, Question, QuestionType


evaluator = AnswerEvaluator()


def make_question(qtype, correct=None, marks=5):
    return Question(id="q1", type=qtype, marks=marks, correct_answer=correct)


def test_choice_exact_match():
    q = make_question(QuestionType.CHOICE, "B")
    assert evaluator.evaluate(q, "B").outcome == Outcome.CORRECT
    assert evaluator.evaluate(q, " B ").outcome == Outcome.CORRECT
    assert evaluator.evaluate(q, "C").outcome == Outcome.INCORRECT
    assert evaluator.evaluate(q, None).outcome == Outcome.INCORRECT


def test_boolean_normalizes_words_and_bools():
    q = make_question(QuestionType.BOOLEAN, "true")
    assert evaluator.evaluate(q, True).is_correct is True
    assert evaluator.evaluate(q, "TRUE").is_correct is True
    assert evaluator.evaluate(q, "false").is_correct is False
    assert evaluator.evaluate(q, "maybe").is_correct is False


def test_fill_blank_ignores_case_and_whitespace():
    q = make_question(QuestionType.FILL_BLANK, "paris")
    result = evaluator.evaluate(q, " Paris ")
    assert result.outcome == Outcome.CORRECT


def test_fill_blank_multiple_blanks_all_must_match():
    q = make_question(QuestionType.FILL_BLANK, ["Oxygen", "Hydrogen"])
    assert evaluator.evaluate(q, ["oxygen", " hydrogen"]).is_correct is True
    assert evaluator.evaluate(q, ["oxygen", "helium"]).is_correct is False
    assert evaluator.evaluate(q, ["oxygen"]).is_correct is False
    assert evaluator.evaluate(q, "oxygen").is_correct is False


def test_ordering_and_matching():
    ordering = make_question(QuestionType.ORDERING, ["a", "b", "c"])
    assert evaluator.evaluate(ordering, ["A", "B", "C"]).is_correct is True
    assert evaluator.evaluate(ordering, ["b", "a", "c"]).is_correct is False

    matching = make_question(QuestionType.MATCHING, {"H2O": "water", "NaCl": "salt"})
    assert evaluator.evaluate(matching, {"nacl": "Salt", "h2o": "Water"}).is_correct is True
    assert evaluator.evaluate(matching, {"h2o": "salt", "nacl": "water"}).is_correct is False


def test_subjective_types_are_pending_never_scored():
    for qtype in (QuestionType.SHORT_TEXT, QuestionType.LONG_TEXT, QuestionType.NUMERIC_PROBLEM):
        result = evaluator.evaluate(make_question(qtype, "anything"), "anything")
        assert result.outcome == Outcome.PENDING
        assert result.is_correct is None


def test_incorrect_feedback_names_correct_answer():
    q = make_question(QuestionType.CHOICE, "B")
    assert "B" in evaluator.evaluate(q, "A").feedback
