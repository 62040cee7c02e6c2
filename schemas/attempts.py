from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AttemptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    created_at: datetime | None
    user_id: str | None = None
    session_id: str | None = None
    question_id: str
    question_type: str
    seed: int | None = None
    is_correct: bool
    score: float
    time_spent: float = 0
    competencies: list[str] = []
    # usually excluded in list views
    feedback: list[Any] | None = None


class CompetencyProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    competency_tag: str
    attempts: int
    successes: int
    last_attempt: datetime | None = None
