# schemas/marking.py
from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from schemas.base import CamelModel
from schemas.validation import UserAnswer, ValidationResult

# ---------- Evaluate ----------


class EvaluateRequest(BaseModel):
    expr: str
    context: Dict[str, float] = Field(default_factory=dict)


class EvaluateResponse(BaseModel):
    ok: bool
    value: Optional[float] = None
    feedback: Optional[str] = None


# ---------- Validate ----------


class ValidateRequest(CamelModel):
    question_id: str
    answer: UserAnswer
    # seed of the variant the learner was shown; the template's own answer is used without it
    seed: Optional[int] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class ValidateResponse(CamelModel):
    result: ValidationResult
    question_id: str
    attempt_id: Optional[int] = None
