"""Quiz answer normalization and scoring.

Answers arrive either as a mapping of question order to option index, or as
a list where index i answers the question with order i + 1. Both forms are
normalized to `{order: option_index}` before scoring.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

from src.core.exceptions import ValidationError
from src.core.percent import ratio_percent

from .models import QuizQuestion


class InvalidAnswersError(ValidationError):
    """Submitted answers do not match the quiz."""

    default_code = "invalid_answers"


def normalize_answers(
    questions: Sequence[QuizQuestion],
    answers: Mapping[Any, Any] | Sequence[Any],
) -> dict[int, int]:
    """Validate answers against the quiz and key them by question order.

    `None` entries mean "unanswered" and are dropped.

    Raises:
        InvalidAnswersError: Unknown question order, or an option index that
            is negative, out of range or not an integer
    """
    if isinstance(answers, Mapping):
        items = list(answers.items())
    elif isinstance(answers, Sequence) and not isinstance(answers, str | bytes):
        items = list(enumerate(answers, start=1))
    else:
        msg = "Respostas devem ser um objeto ou uma lista"
        raise InvalidAnswersError(msg)

    by_order = {q.position: q for q in questions}
    normalized: dict[int, int] = {}

    for raw_order, choice in items:
        try:
            order = int(raw_order)
        except (TypeError, ValueError) as e:
            msg = f"Questao invalida: {raw_order!r}"
            raise InvalidAnswersError(msg, code="unknown_question") from e

        question = by_order.get(order)
        if question is None:
            msg = f"Questao {order} nao existe neste quiz"
            raise InvalidAnswersError(msg, code="unknown_question")

        if choice is None:
            continue

        if isinstance(choice, bool) or not isinstance(choice, int):
            msg = f"Resposta da questao {order} deve ser um indice inteiro"
            raise InvalidAnswersError(msg, code="invalid_option")

        if not 0 <= choice < len(question.options):
            msg = f"Opcao {choice} fora do intervalo na questao {order}"
            raise InvalidAnswersError(msg, code="invalid_option")

        normalized[order] = choice

    return normalized


def score_answers(
    questions: Sequence[QuizQuestion],
    answers: Mapping[int, int],
) -> tuple[int, int, Decimal]:
    """Score normalized answers against the answer key.

    Returns:
        Tuple of (score, max_score, percentage). Unanswered questions earn 0;
        percentage is 0 when max_score is 0.
    """
    max_score = sum(q.points for q in questions)
    score = sum(
        q.points for q in questions if answers.get(q.position) == q.correct_answer
    )
    return score, max_score, ratio_percent(score, max_score)
