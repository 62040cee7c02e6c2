# routers/health.py
"""Readiness checks for the database, its migration state and the question bank."""

import logging
from collections import Counter
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from alembic.config import Config
from alembic.script import ScriptDirectory
from bank import QuestionBank
from db import engine
from deps.bank import get_bank
from engine.courses import DEFAULT_COURSE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _script_directory() -> ScriptDirectory:
    cfg = Config(str(_PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    return ScriptDirectory.from_config(cfg)


def _current_revision(conn) -> Optional[str]:
    try:
        return conn.execute(text("SELECT version_num FROM alembic_version")).scalar_one_or_none()
    except SQLAlchemyError:
        # no alembic_version table: never migrated
        return None


@router.get("/db")
def health_db():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database check failed: %s", e)
        raise HTTPException(status_code=500, detail=f"db_error: {type(e).__name__}: {e}")
    return {"ok": True}


@router.get("/migrations")
def health_migrations():
    heads = list(_script_directory().get_heads())
    try:
        with engine.connect() as conn:
            db_version = _current_revision(conn)
    except SQLAlchemyError as e:
        logger.warning("Could not read the migration state: %s", e)
        return {"ok": False, "error": f"db_connect_failed: {e}", "code_heads": heads, "db_version": None}

    synced = db_version in heads
    return {"ok": synced, "synced": synced, "db_version": db_version, "code_heads": heads}


@router.get("/bank")
def health_bank(bank: QuestionBank = Depends(get_bank)):
    questions = bank.all()
    by_course = Counter(q.course_id or DEFAULT_COURSE for q in questions)
    return {
        "ok": bool(questions),
        "directory": str(bank.directory),
        "templates": len(questions),
        "active": sum(1 for q in questions if q.active),
        "byCourse": dict(by_course),
    }
