from __future__ import annotations

from uuid import uuid4

import pytest

from cpd_service.core.errors import NotFoundError, ValidationError
from cpd_service.models.quiz import Quiz
from cpd_service.repos.store import store
from cpd_service.services.quizzes import QuizService


@pytest.fixture
def quizzes() -> QuizService:
    return QuizService(store)


def _quiz(**kwargs) -> Quiz:
    kwargs.setdefault("title", "Suitability basics")
    kwargs.setdefault("answer_key", [0, 1, 2, 3])
    quiz = Quiz.new(**kwargs)
    store.quizzes.add(quiz)
    return quiz


def test_passing_attempt_with_hours_issues_certificate(quizzes) -> None:
    quiz = _quiz(hours=1.0, pass_mark=75)
    result = quizzes.submit_attempt("test-user", quiz.id, [0, 1, 2, 0])

    assert result.attempt.score == 75
    assert result.attempt.passed is True
    assert result.correct == 3
    assert result.attempts_remaining == 2
    assert result.issuance.created is True
    assert result.issuance.record.title == "Quiz: Suitability basics"


def test_failed_attempt_issues_nothing(quizzes) -> None:
    quiz = _quiz(hours=1.0)
    result = quizzes.submit_attempt("test-user", quiz.id, [3, 3, 3, 3])
    assert result.attempt.passed is False
    assert result.issuance is None
    assert store.records.list_by_user("test-user") == []


def test_quiz_without_hours_only_grades(quizzes) -> None:
    quiz = _quiz()
    result = quizzes.submit_attempt("test-user", quiz.id, [0, 1, 2, 3])
    assert result.attempt.score == 100
    assert result.issuance is None


def test_scores_round_half_up(quizzes) -> None:
    quiz = _quiz(answer_key=[0] * 8)
    # 5/8 = 62.5%
    result = quizzes.submit_attempt("test-user", quiz.id, [0, 0, 0, 0, 0, 1, 1, 1])
    assert result.attempt.score == 63


def test_attempt_limit(quizzes) -> None:
    quiz = _quiz(max_attempts=2)
    quizzes.submit_attempt("test-user", quiz.id, [3, 3, 3, 3])
    quizzes.submit_attempt("test-user", quiz.id, [3, 3, 3, 3])
    with pytest.raises(ValidationError):
        quizzes.submit_attempt("test-user", quiz.id, [0, 1, 2, 3])
    assert len(store.quiz_attempts.list_for("test-user", quiz.id)) == 2

    # Another user has their own allowance
    assert quizzes.submit_attempt("other", quiz.id, [0, 1, 2, 3]).attempt.passed


def test_wrong_answer_count_is_rejected(quizzes) -> None:
    quiz = _quiz()
    with pytest.raises(ValidationError):
        quizzes.submit_attempt("test-user", quiz.id, [0, 1])


def test_unknown_quiz(quizzes) -> None:
    with pytest.raises(NotFoundError):
        quizzes.submit_attempt("test-user", uuid4(), [0])


def test_passing_again_returns_the_first_certificate(quizzes) -> None:
    quiz = _quiz(hours=2.0, pass_mark=50)
    first = quizzes.submit_attempt("test-user", quiz.id, [0, 1, 2, 3])
    second = quizzes.submit_attempt("test-user", quiz.id, [0, 1, 0, 0])

    assert second.attempt.passed is True
    assert second.issuance.created is False
    assert second.issuance.certificate.id == first.issuance.certificate.id
    assert [r.hours for r in store.records.list_by_user("test-user")] == [2.0]
