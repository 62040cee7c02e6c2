from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Optional, Sequence

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bank import QuestionBank
from db import SessionLocal
from deps.bank import get_bank
from engine.formula import FormulaError, evaluate
from engine.generator import instantiate
from engine.validation import validate_answer
from models import Attempt, CompetencyProgress
from schemas.marking import EvaluateRequest, EvaluateResponse, ValidateRequest, ValidateResponse
from schemas.validation import ValidationResult
from settings import DEFAULT_VALIDATION_CONFIG

logger = logging.getLogger(__name__)

router = APIRouter(tags=["marking"])


# --- Persistence helpers ----------------------------------------------------------

PROGRESS_RETRIES = 2


def _apply_progress(db, user_id: str, tags: Sequence[str], is_correct: bool) -> None:
    now = datetime.now(UTC)
    for tag in dict.fromkeys(tags):
        # increment in SQL so concurrent submissions never lose a count
        updated = db.execute(
            update(CompetencyProgress)
            .where(CompetencyProgress.user_id == user_id, CompetencyProgress.competency_tag == tag)
            .values(
                attempts=CompetencyProgress.attempts + 1,
                successes=CompetencyProgress.successes + (1 if is_correct else 0),
                last_attempt=now,
            )
        ).rowcount
        if not updated:
            db.add(
                CompetencyProgress(
                    user_id=user_id,
                    competency_tag=tag,
                    attempts=1,
                    successes=1 if is_correct else 0,
                    last_attempt=now,
                )
            )


def _update_competency_progress(user_id: str, tags: Sequence[str], is_correct: bool) -> None:
    for attempt in range(1, PROGRESS_RETRIES + 1):
        try:
            with SessionLocal() as db:
                _apply_progress(db, user_id, tags, is_correct)
                db.commit()
            return
        except IntegrityError:
            # a concurrent first submission created the row; the next pass updates it
            logger.info("Competency progress race for %s (attempt %d)", user_id, attempt)
        except SQLAlchemyError:
            logger.exception("Could not update competency progress for %s", user_id)
            return
    logger.error("Gave up updating competency progress for %s", user_id)


def _record_attempt(
    req: ValidateRequest, question_type: str, result: ValidationResult
) -> Optional[int]:
    """Store the attempt, then the progress; a storage failure never fails the submission."""
    try:
        with SessionLocal() as db:
            attempt = Attempt(
                user_id=req.user_id,
                session_id=req.session_id,
                question_id=req.question_id,
                question_type=question_type,
                seed=req.seed,
                is_correct=result.is_correct,
                score=result.score,
                time_spent=req.answer.time_spent,
                feedback=[f.model_dump(by_alias=True, exclude_none=True) for f in result.feedback],
                competencies=list(result.competencies_assessed),
            )
            db.add(attempt)
            db.commit()
            attempt_id = attempt.id
    except SQLAlchemyError:
        logger.exception("Could not record attempt for question %s", req.question_id)
        return None

    # committed separately so a progress conflict cannot roll the attempt back
    if req.user_id:
        _update_competency_progress(req.user_id, result.competencies_assessed, result.is_correct)
    return attempt_id


# --- Endpoints --------------------------------------------------------------------


@router.post("/evaluate", response_model=EvaluateResponse)
def evaluate_expression(req: EvaluateRequest):
    try:
        return {"ok": True, "value": evaluate(req.expr, req.context)}
    except FormulaError as e:
        return {"ok": False, "value": None, "feedback": str(e)}


@router.post("/validate", response_model=ValidateResponse, response_model_exclude_none=True)
def validate(req: ValidateRequest, bank: QuestionBank = Depends(get_bank)):
    template = bank.get(req.question_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Question non trouvée")

    # The learner answered the variant built from this seed
    question = instantiate(template, req.seed) if req.seed is not None else template
    result = validate_answer(question, req.answer, DEFAULT_VALIDATION_CONFIG)
    attempt_id = _record_attempt(req, template.type, result)

    return ValidateResponse(result=result, question_id=req.question_id, attempt_id=attempt_id)
