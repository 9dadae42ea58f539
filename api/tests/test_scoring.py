"""Tests for quiz answer normalization and scoring."""

from decimal import Decimal
from uuid import uuid4

import pytest

from src.quizzes.models import QuizQuestion
from src.quizzes.scoring import InvalidAnswersError, normalize_answers, score_answers


@pytest.fixture
def questions() -> list[QuizQuestion]:
    """Three one-point questions; correct options are 0, 1 and 2."""
    quiz_id = uuid4()
    return [
        QuizQuestion(
            quiz_id=quiz_id,
            position=order,
            id=uuid4(),
            question=f"Questao {order}",
            options=["A", "B", "C"],
            correct_answer=order - 1,
        )
        for order in (1, 2, 3)
    ]


class TestNormalizeAnswers:
    def test_mapping_keys_are_orders(self, questions) -> None:
        assert normalize_answers(questions, {"1": 0, 3: 2}) == {1: 0, 3: 2}

    def test_list_index_answers_next_order(self, questions) -> None:
        assert normalize_answers(questions, [0, 1, 2]) == {1: 0, 2: 1, 3: 2}

    def test_none_means_unanswered(self, questions) -> None:
        assert normalize_answers(questions, [0, None, 2]) == {1: 0, 3: 2}

    def test_unknown_question_order(self, questions) -> None:
        with pytest.raises(InvalidAnswersError) as exc_info:
            normalize_answers(questions, {4: 0})
        assert exc_info.value.code == "unknown_question"

    def test_list_longer_than_quiz(self, questions) -> None:
        with pytest.raises(InvalidAnswersError) as exc_info:
            normalize_answers(questions, [0, 1, 2, 0])
        assert exc_info.value.code == "unknown_question"

    @pytest.mark.parametrize("choice", [3, -1, True, "1"])
    def test_invalid_option(self, questions, choice) -> None:
        with pytest.raises(InvalidAnswersError) as exc_info:
            normalize_answers(questions, {1: choice})
        assert exc_info.value.code == "invalid_option"


class TestScoreAnswers:
    def test_all_correct(self, questions) -> None:
        assert score_answers(questions, {1: 0, 2: 1, 3: 2}) == (3, 3, Decimal("100.00"))

    def test_two_of_three(self, questions) -> None:
        score, max_score, percentage = score_answers(questions, {1: 0, 2: 1, 3: 0})
        assert (score, max_score) == (2, 3)
        assert percentage == Decimal("66.67")

    def test_unanswered_scores_zero(self, questions) -> None:
        assert score_answers(questions, {}) == (0, 3, Decimal("0.00"))

    def test_weighted_points(self) -> None:
        quiz_id = uuid4()
        weighted = [
            QuizQuestion(quiz_id, 1, uuid4(), "Q1", ["A", "B"], 0, points=3),
            QuizQuestion(quiz_id, 2, uuid4(), "Q2", ["A", "B"], 1, points=1),
        ]
        assert score_answers(weighted, {1: 0, 2: 0}) == (3, 4, Decimal("75.00"))
