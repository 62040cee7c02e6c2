from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from bank import QuestionBank
from deps.bank import get_bank

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/reload")
def reload_questions(bank: QuestionBank = Depends(get_bank)):
    """Re-read every template file; quizzes built afterwards see the new bank."""
    n = bank.reload()
    logger.info("Question bank reloaded on request: %d templates", n)
    return {"ok": True, "count": n, "directory": str(bank.directory)}
