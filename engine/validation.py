# engine/validation.py
"""
Scores a learner's answer against an (instantiated) question.

`validate_answer` dispatches on the question type; every strategy returns a
ValidationResult and none of them raises on missing or malformed learner
input.
"""

from __future__ import annotations

import logging
import math
import re
from typing import List, Optional, Sequence, Union

from engine.compare import (
    angles_are_similar,
    distance,
    format_number,
    is_approximately_equal,
    parse_numeric_answer,
    percent_error,
    units_are_equivalent,
)
from schemas.questions import Answer, CommonMistake, Force, InstantiatedQuestion, QuestionBase
from schemas.validation import (
    DCLValidation,
    EquationValidation,
    FeedbackItem,
    NumericValidation,
    UserAnswer,
    ValidationConfig,
    ValidationResult,
)

logger = logging.getLogger(__name__)

MISTAKE_VALUE_TOLERANCE = 2  # percent
EXTRA_EQUATION_PENALTY = 20
PARTIAL_CREDIT_CEILING = 50
WRONG_UNIT_SCORE = 80
MULTI_STEP_PASS_SCORE = 90

_UNKNOWN_FORCE = "Force inconnue"


def _round(x: float) -> int:
    # Math.round semantics: halves go up
    return int(math.floor(x + 0.5))


def _failed(feedback: List[FeedbackItem], competencies: Sequence[str], **details) -> ValidationResult:
    return ValidationResult(
        is_correct=False,
        score=0,
        partial_credit=0,
        feedback=feedback,
        competencies_assessed=list(competencies),
        **details,
    )


def _expected_answer(question: QuestionBase) -> Union[Answer, List[Answer]]:
    if isinstance(question, InstantiatedQuestion):
        return question.instantiated_answer
    return question.answer


def validate_answer(
    question: QuestionBase,
    user_answer: UserAnswer,
    config: Optional[ValidationConfig] = None,
) -> ValidationResult:
    config = config or ValidationConfig()

    if question.type == "mcq":
        result = validate_mcq(question, user_answer)
    elif question.type == "numeric":
        result = validate_numeric(
            _expected_answer(question), user_answer, question.common_mistakes, config, question.tags
        )
    elif question.type == "dcl":
        result = validate_dcl(question, user_answer, config)
    elif question.type == "equation":
        result = validate_equations(question, user_answer)
    elif question.type == "multi-step":
        result = validate_multi_step(question, user_answer, config)
    else:
        logger.warning("No validator for question %s of type %r", question.id, question.type)
        result = _failed(
            [FeedbackItem(type="error", target="final-answer", message="Type de question non supporté")],
            question.tags,
        )

    if user_answer.time_spent:
        result = result.model_copy(update={"time_spent": user_answer.time_spent})
    return result


# --- MCQ ----------------------------------------------------------------------------


def validate_mcq(question: QuestionBase, user_answer: UserAnswer) -> ValidationResult:
    if not question.options or not user_answer.selected_option:
        return _failed(
            [FeedbackItem(type="error", target="final-answer", message="Aucune réponse sélectionnée")],
            question.tags,
        )

    selected = next((o for o in question.options if o.id == user_answer.selected_option), None)
    correct = next((o for o in question.options if o.is_correct), None)

    if selected is not None and selected.is_correct:
        return ValidationResult(
            is_correct=True,
            score=100,
            partial_credit=100,
            feedback=[
                FeedbackItem(
                    type="success",
                    target="final-answer",
                    message=selected.feedback or "Bonne réponse!",
                )
            ],
            competencies_assessed=list(question.tags),
        )

    return _failed(
        [
            FeedbackItem(
                type="error",
                target="final-answer",
                message=(selected.feedback if selected else None) or "Réponse incorrecte",
                suggestion=f"La bonne réponse était: {correct.text}" if correct else None,
            )
        ],
        question.tags,
    )


# --- Numeric ------------------------------------------------------------------------


def check_common_mistakes(value: float, mistakes: Sequence[CommonMistake]) -> Optional[CommonMistake]:
    """First authored mistake that matches `value`, if any."""
    for mistake in mistakes:
        if mistake.pattern_type == "value":
            try:
                target = float(mistake.pattern)
            except ValueError:
                logger.warning("Common mistake value %r is not a number", mistake.pattern)
                continue
            if is_approximately_equal(value, target, MISTAKE_VALUE_TOLERANCE, "percent"):
                return mistake
        elif mistake.pattern_type == "range":
            if (
                mistake.min_value is not None
                and mistake.max_value is not None
                and mistake.min_value <= value <= mistake.max_value
            ):
                return mistake
        elif mistake.pattern_type == "regex":
            try:
                if re.search(mistake.pattern, format_number(value)):
                    return mistake
            except re.error:
                logger.warning("Invalid common mistake pattern %r", mistake.pattern)
    return None


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def validate_numeric(
    expected_answer: Union[Answer, List[Answer]],
    user_answer: UserAnswer,
    common_mistakes: Sequence[CommonMistake],
    config: ValidationConfig,
    competencies: Sequence[str] = (),
) -> ValidationResult:
    if isinstance(expected_answer, list):
        expected = expected_answer[0] if expected_answer else None
    else:
        expected = expected_answer
    if expected is None:
        return _failed(
            [FeedbackItem(type="error", target="final-answer", message="Aucune réponse attendue définie")],
            competencies,
        )

    user_value = user_answer.numeric_value
    user_unit = user_answer.unit or ""
    if user_value is None and user_answer.raw_input:
        user_value, parsed_unit = parse_numeric_answer(user_answer.raw_input)
        user_unit = user_unit or parsed_unit

    if user_value is None:
        return _failed(
            [FeedbackItem(type="error", target="final-answer", message="Aucune valeur numérique fournie")],
            competencies,
            numeric_validation=NumericValidation(
                is_within_tolerance=False,
                percent_error=100,
                absolute_error=abs(expected.value),
                unit_correct=False,
                sign_correct=True,
            ),
        )

    feedback: List[FeedbackItem] = []

    # annotation only, never changes the score
    mistake = check_common_mistakes(user_value, common_mistakes)
    if mistake:
        feedback.append(
            FeedbackItem(
                type="warning",
                target="calculation",
                message=mistake.message,
                suggestion=mistake.hint or None,
            )
        )

    tolerance = expected.tolerance if expected.tolerance is not None else config.default_numeric_tolerance
    tolerance_type = expected.tolerance_type or config.default_tolerance_type
    within = is_approximately_equal(user_value, expected.value, tolerance, tolerance_type)

    # zero agrees with either sign
    sign_correct = _sign(user_value) == _sign(expected.value) or user_value == 0 or expected.value == 0

    unit_correct = (
        not config.require_correct_units
        or not expected.unit
        or units_are_equivalent(user_unit, expected.unit)
    )

    pct_error = percent_error(user_value, expected.value)
    numeric_validation = NumericValidation(
        is_within_tolerance=within,
        percent_error=pct_error,
        absolute_error=abs(user_value - expected.value),
        unit_correct=unit_correct,
        sign_correct=sign_correct,
    )

    is_correct = within and (unit_correct or not config.require_correct_units)

    score = 0
    if is_correct:
        score = 100
    elif config.enable_partial_credit:
        if sign_correct and pct_error < PARTIAL_CREDIT_CEILING:
            score = max(0, _round(PARTIAL_CREDIT_CEILING - pct_error))
        if within and not unit_correct:
            score = WRONG_UNIT_SCORE

    if is_correct:
        feedback.append(FeedbackItem(type="success", target="final-answer", message="Bonne réponse!"))
    else:
        if not sign_correct:
            feedback.append(
                FeedbackItem(
                    type="error",
                    target="calculation",
                    message="Attention au signe de votre réponse",
                    suggestion="Vérifiez la convention de signes pour les axes",
                )
            )
        if not within:
            feedback.append(
                FeedbackItem(
                    type="error",
                    target="final-answer",
                    message=f"Valeur incorrecte (erreur de {pct_error:.1f}%)",
                    suggestion=f"La réponse attendue était {format_number(expected.value)} {expected.unit}".rstrip(),
                )
            )
        if not unit_correct:
            feedback.append(
                FeedbackItem(
                    type="warning",
                    target="units",
                    message=f'Unité incorrecte: "{user_unit}"',
                    suggestion=f"L'unité attendue était: {expected.unit}",
                )
            )

    return ValidationResult(
        is_correct=is_correct,
        score=score,
        partial_credit=score,
        feedback=feedback,
        competencies_assessed=list(competencies),
        numeric_validation=numeric_validation,
    )


# --- Free-body diagram --------------------------------------------------------------


def _forces_match(placed: Force, expected: Force, config: ValidationConfig) -> bool:
    if placed.name and placed.name == expected.name:
        return True
    return distance(placed.application_point, expected.application_point) < config.dcl_position_tolerance and (
        angles_are_similar(placed.angle, expected.angle, config.dcl_angle_tolerance)
    )


def validate_dcl(question: QuestionBase, user_answer: UserAnswer, config: ValidationConfig) -> ValidationResult:
    if question.diagram is None:
        return _failed(
            [
                FeedbackItem(
                    type="error",
                    target="dcl-forces",
                    message="Pas de schéma défini pour cette question",
                )
            ],
            question.tags,
        )

    expected_forces = question.diagram.correct_forces
    expected_supports = question.diagram.correct_supports
    placed_forces = user_answer.placed_forces or []
    placed_supports = user_answer.placed_supports or []

    missing: List[str] = []
    wrong_directions: List[str] = []
    for expected in expected_forces:
        found = next((pf for pf in placed_forces if _forces_match(pf, expected, config)), None)
        if found is None:
            missing.append(expected.name)
        elif not angles_are_similar(found.angle, expected.angle, config.dcl_angle_tolerance):
            wrong_directions.append(expected.name)

    extra = [
        placed.name or _UNKNOWN_FORCE
        for placed in placed_forces
        if not any(_forces_match(placed, expected, config) for expected in expected_forces)
    ]

    supports_correct = all(
        any(
            ps.type == expected.type
            and distance(ps.position, expected.position) < config.dcl_position_tolerance
            for ps in placed_supports
        )
        for expected in expected_supports
    )

    dcl_validation = DCLValidation(
        forces_present=not missing,
        forces_correct=not missing and not wrong_directions and not extra,
        supports_correct=supports_correct,
        directions_correct=not wrong_directions,
        missing_forces=missing,
        extra_forces=extra,
        wrong_directions=wrong_directions,
    )

    total = len(expected_forces) + len(expected_supports)
    correct_elements = (len(expected_forces) - len(missing) - len(wrong_directions)) + (
        len(expected_supports) if supports_correct else 0
    )
    if total:
        score = _round(correct_elements / total * 100)
    else:
        # nothing to draw: only an empty diagram is right
        score = 0 if extra else 100

    feedback: List[FeedbackItem] = []
    if missing:
        feedback.append(
            FeedbackItem(
                type="error",
                target="dcl-forces",
                message=f"Forces manquantes: {', '.join(missing)}",
                suggestion="Identifiez toutes les forces agissant sur le corps",
            )
        )
    if extra:
        feedback.append(
            FeedbackItem(
                type="warning",
                target="dcl-forces",
                message=f"Forces en trop: {', '.join(extra)}",
                suggestion="Vérifiez si ces forces agissent réellement sur le corps isolé",
            )
        )
    if wrong_directions:
        feedback.append(
            FeedbackItem(
                type="error",
                target="dcl-directions",
                message=f"Directions incorrectes: {', '.join(wrong_directions)}",
                suggestion="Vérifiez le sens des forces (vers le corps ou s'éloignant)",
            )
        )
    if not supports_correct:
        feedback.append(
            FeedbackItem(
                type="error",
                target="dcl-supports",
                message="Appuis incorrects ou manquants",
                suggestion="Vérifiez le type d'appui et les réactions associées",
            )
        )

    is_correct = score == 100
    if is_correct:
        feedback.append(
            FeedbackItem(
                type="success",
                target="dcl-forces",
                message="DCL correct! Toutes les forces et appuis sont bien identifiés.",
            )
        )

    return ValidationResult(
        is_correct=is_correct,
        score=score,
        partial_credit=score,
        feedback=feedback,
        competencies_assessed=list(question.tags),
        dcl_validation=dcl_validation,
    )


# --- Equation selection -------------------------------------------------------------


def validate_equations(question: QuestionBase, user_answer: UserAnswer) -> ValidationResult:
    if question.equations is None:
        return _failed(
            [
                FeedbackItem(
                    type="error",
                    target="equation-selection",
                    message="Pas d'équations définies pour cette question",
                )
            ],
            question.tags,
        )

    required = question.equations.required
    selected = user_answer.selected_equations or []

    missing = [eq for eq in required if eq not in selected]
    wrong = [eq for eq in selected if eq not in required]

    equation_validation = EquationValidation(
        equations_selected=bool(selected),
        equations_correct=not missing and not wrong,
        missing_equations=missing,
        wrong_equations=wrong,
    )

    base = _round((len(required) - len(missing)) / len(required) * 100) if required else 100
    score = max(0, base - len(wrong) * EXTRA_EQUATION_PENALTY)

    feedback: List[FeedbackItem] = []
    if missing:
        feedback.append(
            FeedbackItem(
                type="error",
                target="equation-selection",
                message=f"Équations manquantes: {', '.join(missing)}",
                suggestion="Pour un problème d'équilibre 2D, vous avez besoin de ΣFx=0, ΣFy=0 et ΣM=0",
            )
        )
    if wrong:
        feedback.append(
            FeedbackItem(
                type="warning",
                target="equation-selection",
                message=f"Équations non nécessaires: {', '.join(wrong)}",
            )
        )

    is_correct = not missing and not wrong
    if is_correct:
        feedback.append(
            FeedbackItem(
                type="success",
                target="equation-selection",
                message="Bonnes équations sélectionnées!",
            )
        )

    return ValidationResult(
        is_correct=is_correct,
        score=score,
        partial_credit=score,
        feedback=feedback,
        competencies_assessed=list(question.tags),
        equation_validation=equation_validation,
    )


# --- Multi-step ---------------------------------------------------------------------


def validate_multi_step(
    question: QuestionBase, user_answer: UserAnswer, config: ValidationConfig
) -> ValidationResult:
    """
    Weighted average of the steps the learner actually went through.

    The weighted sum is divided by the number of steps run, not by the sum of
    the weights, so a weight of 1.0 means "this step alone is worth 100".
    """
    feedback: List[FeedbackItem] = []
    total = 0.0
    steps = 0

    if question.diagram is not None and user_answer.placed_forces is not None:
        dcl = validate_dcl(question, user_answer, config)
        feedback.extend(dcl.feedback)
        total += dcl.score * config.dcl_weight
        steps += 1

    if question.equations is not None and user_answer.selected_equations is not None:
        eq = validate_equations(question, user_answer)
        feedback.extend(eq.feedback)
        total += eq.score * config.equation_weight
        steps += 1

    if user_answer.final_answer is not None:
        calc = validate_numeric(
            _expected_answer(question),
            user_answer.model_copy(update={"numeric_value": user_answer.final_answer}),
            question.common_mistakes,
            config,
            question.tags,
        )
        feedback.extend(calc.feedback)
        total += calc.score * config.calculation_weight
        steps += 1

    score = min(100, max(0, _round(total / steps))) if steps else 0
    return ValidationResult(
        is_correct=score >= MULTI_STEP_PASS_SCORE,
        score=score,
        partial_credit=score,
        feedback=feedback,
        competencies_assessed=list(question.tags),
    )
