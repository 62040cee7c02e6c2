# routers/attempts.py

from fastapi import APIRouter, HTTPException

from db import SessionLocal
from models import Attempt, CompetencyProgress
from schemas.attempts import AttemptOut, CompetencyProgressOut

router = APIRouter(tags=["attempts"])


@router.get("/attempts/recent-list")
def attempts_recent(limit: int = 20, user_id: str | None = None):
    limit = max(1, min(limit, 100))

    with SessionLocal() as db:
        query = db.query(Attempt)
        if user_id:
            query = query.filter(Attempt.user_id == user_id)
        items = query.order_by(Attempt.created_at.desc(), Attempt.id.desc()).limit(limit).all()

    # exclude the potentially large feedback list
    rows = [AttemptOut.model_validate(a).model_dump(exclude={"feedback"}) for a in items]
    return {"ok": True, "items": rows, "count": len(rows)}


@router.get("/attempts/{attempt_id}", response_model=AttemptOut)
def get_attempt(attempt_id: int):
    with SessionLocal() as db:
        a = db.get(Attempt, attempt_id)
        if not a:
            raise HTTPException(status_code=404, detail="Attempt not found")
        return AttemptOut.model_validate(a)


@router.get("/progress/{user_id}")
def get_progress(user_id: str):
    with SessionLocal() as db:
        rows = (
            db.query(CompetencyProgress)
            .filter(CompetencyProgress.user_id == user_id)
            .order_by(CompetencyProgress.competency_tag)
            .all()
        )
        competencies = [CompetencyProgressOut.model_validate(r).model_dump() for r in rows]

    attempts = sum(c["attempts"] for c in competencies)
    successes = sum(c["successes"] for c in competencies)
    return {
        "ok": True,
        "userId": user_id,
        "competencies": competencies,
        "attempts": attempts,
        "successes": successes,
    }
