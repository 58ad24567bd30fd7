from __future__ import annotations

from fastapi.testclient import TestClient

from cpd_service.models.quiz import Quiz
from cpd_service.repos.store import store
from tests.conftest import auth


def _quiz(**kwargs) -> Quiz:
    quiz = Quiz.new(title="AML essentials", answer_key=[1, 0, 2], **kwargs)
    store.quizzes.add(quiz)
    return quiz


def _attempt(client, token, quiz, answers):
    return client.post(
        f"/v1/quizzes/{quiz.id}/attempts", json={"answers": answers}, headers=auth(token)
    )


def test_passing_attempt_issues_certificate(client: TestClient, token: str) -> None:
    quiz = _quiz(hours=0.5, pass_mark=60)
    resp = _attempt(client, token, quiz, [1, 0, 0])
    assert resp.status_code == 201
    data = resp.json()
    assert data["score"] == 67
    assert data["passed"] is True
    assert data["correct"] == 2
    assert data["total"] == 3
    assert data["passMark"] == 60
    assert data["attemptsRemaining"] == 2
    assert data["cpdRecordId"] is not None
    assert data["certificate"]["hours"] == 0.5


def test_failing_attempt(client: TestClient, token: str) -> None:
    quiz = _quiz(hours=0.5)
    data = _attempt(client, token, quiz, [0, 0, 0]).json()
    assert data["passed"] is False
    assert data["certificate"] is None
    assert data["cpdRecordId"] is None


def test_attempts_run_out(client: TestClient, token: str) -> None:
    quiz = _quiz(max_attempts=1)
    assert _attempt(client, token, quiz, [0, 0, 0]).status_code == 201
    resp = _attempt(client, token, quiz, [1, 0, 2])
    assert resp.status_code == 400
    assert "maximum attempts" in resp.json()["detail"]


def test_unknown_quiz_is_404(client: TestClient, token: str) -> None:
    resp = client.post(
        "/v1/quizzes/00000000-0000-0000-0000-000000000000/attempts",
        json={"answers": [1]},
        headers=auth(token),
    )
    assert resp.status_code == 404
