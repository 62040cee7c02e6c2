# engine/generator.py
"""
Turns question templates into concrete variants.

The same (template, seed) pair always produces the same instantiated
question, which is what makes the "daily variant" shared by every learner
and keeps test fixtures reproducible.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union

from engine.compare import format_number
from engine.courses import DEFAULT_COURSE
from engine.formula import FormulaError, evaluate_formula
from engine.rng import create_seed, random_in_range, round_to, seeded_random, shuffle_with_seed
from schemas.questions import Answer, GivenValue, InstantiatedQuestion, QuestionTemplate

logger = logging.getLogger(__name__)

DEFAULT_DECIMAL_PLACES = 2
PREVIEW_SEED = 12345
PREVIEW_EXAMPLES = 5
DIFFICULTIES = ("beginner", "intermediate", "advanced")


def _numeric_context(givens: Mapping[str, GivenValue]) -> Dict[str, float]:
    context: Dict[str, float] = {}
    for key, value in givens.items():
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            context[key] = value
        elif isinstance(value, str):
            try:
                context[key] = float(value)
            except ValueError:
                continue
    return context


def _given_to_str(value: GivenValue) -> str:
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def _substitute(statement: str, givens: Mapping[str, GivenValue]) -> str:
    # unknown {tokens} are left as they are
    for key, value in givens.items():
        statement = statement.replace("{" + key + "}", _given_to_str(value))
    return statement


def _apply_formula(
    template: QuestionTemplate, givens: Mapping[str, GivenValue]
) -> Union[Answer, List[Answer]]:
    """
    Recompute the template answer(s) from the instantiated givens.

    Named formula results are matched to answers by `Answer.variable`;
    anything else is paired by position. Any formula error falls back to the
    template answer so a broken template never blocks a quiz.
    """
    try:
        results = evaluate_formula(template.answer_formula or "", _numeric_context(givens))
    except FormulaError as e:
        logger.error(
            "Could not evaluate answer formula for question %s (%r): %s",
            template.id,
            template.answer_formula,
            e,
        )
        return template.answer

    by_name = {r.name: r.value for r in results if r.name}

    if isinstance(template.answer, list):
        answers: List[Answer] = []
        for i, ans in enumerate(template.answer):
            if ans.variable and ans.variable in by_name:
                value = by_name[ans.variable]
            elif len(results) == 1:
                value = results[0].value
            elif i < len(results):
                value = results[i].value
            else:
                answers.append(ans)
                continue
            answers.append(ans.model_copy(update={"value": value}))
        return answers

    ans = template.answer
    return ans.model_copy(update={"value": by_name.get(ans.variable, results[0].value)})


def _dump_answer(answer: Union[Answer, List[Answer]]) -> Any:
    if isinstance(answer, list):
        return [a.model_dump() for a in answer]
    return answer.model_dump()


def supports_variants(template: QuestionTemplate) -> bool:
    return bool(template.parameters)


def instantiate(template: QuestionTemplate, seed: Optional[int] = None) -> InstantiatedQuestion:
    """
    Build the concrete question a learner sees.

    Without a seed the daily seed of the question is used. Templates without
    parameters are returned as authored, only stamped with the seed.
    """
    actual_seed = seed if seed is not None else create_seed(template.id)
    base = template.model_dump(exclude={"parameters", "answer_formula"})
    base["course_id"] = template.course_id or DEFAULT_COURSE
    base["seed"] = actual_seed

    if not template.parameters:
        base["instantiated_givens"] = dict(template.givens)
        base["instantiated_answer"] = _dump_answer(template.answer)
        return InstantiatedQuestion.model_validate(base)

    rng = seeded_random(actual_seed)
    givens: Dict[str, GivenValue] = dict(template.givens)
    for key, param in template.parameters.items():
        value = random_in_range(param.min, param.max, param.step, rng)
        places = param.decimal_places if param.decimal_places is not None else DEFAULT_DECIMAL_PLACES
        givens[key] = round_to(value, places)

    answer = _apply_formula(template, givens) if template.answer_formula else template.answer

    base["statement"] = _substitute(template.statement, givens)
    base["instantiated_givens"] = givens
    base["instantiated_answer"] = _dump_answer(answer)
    return InstantiatedQuestion.model_validate(base)


def generate_daily_variant(template: QuestionTemplate, today: Optional[date] = None) -> InstantiatedQuestion:
    # without a date, create_seed uses the current UTC day
    day = today.isoformat() if today is not None else None
    return instantiate(template, create_seed(template.id, day))


def default_seed() -> int:
    return int(time.time() * 1000)


def generate_quiz(
    bank,
    module_id: int,
    count: int = 5,
    seed: Optional[int] = None,
    course_id: Optional[str] = None,
) -> List[InstantiatedQuestion]:
    """
    Pick up to `count` active templates of a module and instantiate them.

    Question i of the quiz is instantiated with seed + i.
    """
    questions = bank.by_module(module_id, course_id)
    if not questions:
        return []

    actual_seed = seed if seed is not None else default_seed()
    selected = shuffle_with_seed(questions, actual_seed)[: max(count, 0)]
    return [instantiate(q, actual_seed + i) for i, q in enumerate(selected)]


def generate_balanced_quiz(
    bank,
    module_id: int,
    counts: Mapping[str, int],
    seed: Optional[int] = None,
    course_id: Optional[str] = None,
) -> List[InstantiatedQuestion]:
    """Like generate_quiz, but draws a fixed number of questions per difficulty."""
    questions = bank.by_module(module_id, course_id)
    actual_seed = seed if seed is not None else default_seed()

    selected: List[QuestionTemplate] = []
    for offset, difficulty in enumerate(DIFFICULTIES, 1):
        pool = [q for q in questions if q.difficulty == difficulty]
        wanted = max(counts.get(difficulty, 0), 0)
        selected.extend(shuffle_with_seed(pool, actual_seed + offset)[:wanted])

    ordered = shuffle_with_seed(selected, actual_seed)
    return [instantiate(q, actual_seed + i) for i, q in enumerate(ordered)]


def preview_parameter_ranges(template: QuestionTemplate) -> Dict[str, Dict[str, Any]]:
    """Range of every parameter plus a few sorted sample draws, for authors."""
    if not template.parameters:
        return {}

    rng = seeded_random(PREVIEW_SEED)
    preview: Dict[str, Dict[str, Any]] = {}
    for key, param in template.parameters.items():
        examples = [random_in_range(param.min, param.max, param.step, rng) for _ in range(PREVIEW_EXAMPLES)]
        preview[key] = {"min": param.min, "max": param.max, "examples": sorted(examples)}
    return preview
