from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from bank import QuestionBank
from deps.bank import get_bank
from engine.courses import COURSES, DEFAULT_COURSE, module_ids_for_course
from engine.generator import (
    default_seed,
    generate_quiz,
    instantiate,
    preview_parameter_ranges,
    supports_variants,
)
from schemas.questions import CourseId, InstantiatedQuestion, QuestionTemplate, QuizOut

router = APIRouter(tags=["questions"])


def _get_or_404(bank: QuestionBank, qid: str) -> QuestionTemplate:
    q = bank.get(qid)
    if q is None:
        raise HTTPException(status_code=404, detail="question not found")
    return q


@router.get("/courses")
def list_courses():
    return [c.model_dump() for c in COURSES]


@router.get("/questions", response_model=List[QuestionTemplate], response_model_exclude_none=True)
def list_questions(
    course_id: Optional[CourseId] = None,
    module_id: Optional[int] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    bank: QuestionBank = Depends(get_bank),
):
    if module_id is not None:
        qs = bank.by_module(module_id, course_id)
    elif course_id is not None:
        qs = bank.by_course(course_id)
    else:
        qs = bank.all()

    if limit is not None:
        qs = qs[:limit]
    return qs


@router.get(
    "/questions/{qid}", response_model=QuestionTemplate, response_model_exclude_none=True
)
def get_question_detail(qid: str, bank: QuestionBank = Depends(get_bank)):
    return _get_or_404(bank, qid)


@router.get(
    "/questions/{qid}/instantiate",
    response_model=InstantiatedQuestion,
    response_model_exclude_none=True,
)
def instantiate_question(
    qid: str,
    seed: Optional[int] = Query(default=None, description="Omit for today's shared variant"),
    bank: QuestionBank = Depends(get_bank),
):
    return instantiate(_get_or_404(bank, qid), seed)


@router.get("/questions/{qid}/preview")
def preview_question(qid: str, bank: QuestionBank = Depends(get_bank)):
    q = _get_or_404(bank, qid)
    return {"supportsVariants": supports_variants(q), "parameters": preview_parameter_ranges(q)}


@router.get("/quiz", response_model=QuizOut, response_model_exclude_none=True)
def get_quiz(
    module_id: int,
    count: int = Query(default=5, ge=1, le=50),
    seed: Optional[int] = None,
    course_id: Optional[CourseId] = None,
    bank: QuestionBank = Depends(get_bank),
):
    if course_id is not None:
        valid = module_ids_for_course(course_id)
        if module_id not in valid:
            raise HTTPException(
                status_code=400,
                detail=f"Module ID invalide pour le cours {course_id}. Valides: {', '.join(map(str, valid))}",
            )

    # pick the seed here so the client can replay the same quiz
    actual_seed = seed if seed is not None else default_seed()
    questions = generate_quiz(bank, module_id, count, actual_seed, course_id)
    return QuizOut(
        questions=questions,
        course_id=course_id or DEFAULT_COURSE,
        module_id=module_id,
        count=len(questions),
        seed=actual_seed,
    )
