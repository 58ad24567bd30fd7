from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Quiz:
    id: UUID
    title: str
    answer_key: list[int] = field(default_factory=list)  # correct option per question
    pass_mark: int = 70
    max_attempts: int = 3
    hours: float = 0.0
    category: str = "general"
    activity_type: str = "structured"
    activity_id: UUID | None = None
    active: bool = True

    @staticmethod
    def new(
        *,
        title: str,
        answer_key: list[int],
        pass_mark: int = 70,
        max_attempts: int = 3,
        hours: float = 0.0,
        category: str = "general",
        activity_type: str = "structured",
        activity_id: UUID | None = None,
    ) -> Quiz:
        return Quiz(
            id=uuid4(),
            title=title,
            answer_key=list(answer_key),
            pass_mark=pass_mark,
            max_attempts=max_attempts,
            hours=hours,
            category=category,
            activity_type=activity_type,
            activity_id=activity_id,
        )


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    id: UUID
    user_id: str
    quiz_id: UUID
    score: int
    passed: bool
    answers: list[int] = field(default_factory=list)
    completed_at: datetime | None = None

    @staticmethod
    def new(
        *, user_id: str, quiz_id: UUID, score: int, passed: bool, answers: list[int]
    ) -> QuizAttempt:
        return QuizAttempt(
            id=uuid4(),
            user_id=user_id,
            quiz_id=quiz_id,
            score=score,
            passed=passed,
            answers=list(answers),
            completed_at=datetime.now(timezone.utc),
        )
