import pytest

from engine.generator import instantiate
from engine.validation import check_common_mistakes, validate_answer
from schemas.validation import UserAnswer, ValidationConfig


def _force(name, x, y, angle):
    return {"name": name, "applicationPoint": {"x": x, "y": y}, "angle": angle}


def _messages(result):
    return [f.message for f in result.feedback]


# --- MCQ -----------------------------------------------------------------------


def test_mcq_correct_option(bank):
    r = validate_answer(bank.get("m1-mcq-01"), UserAnswer(selected_option="b"))
    assert r.is_correct and r.score == 100
    assert _messages(r) == ["Bonne réponse!"]


def test_mcq_wrong_option_reveals_answer(bank):
    r = validate_answer(bank.get("m1-mcq-01"), UserAnswer(selected_option="a"))
    assert not r.is_correct and r.score == 0
    assert r.feedback[0].message == "Le sinus donne la composante verticale."
    assert r.feedback[0].suggestion == "La bonne réponse était: F·cos(θ)"


def test_mcq_nothing_selected(bank):
    r = validate_answer(bank.get("m1-mcq-01"), UserAnswer())
    assert r.score == 0
    assert _messages(r) == ["Aucune réponse sélectionnée"]


# --- Numeric -------------------------------------------------------------------


def test_numeric_within_tolerance(bank):
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(numeric_value=103, unit="N"))
    assert r.is_correct and r.score == 100
    assert r.numeric_validation.is_within_tolerance
    assert r.competencies_assessed == ["resultant"]


def test_numeric_partial_credit(bank):
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(numeric_value=120, unit="N"))
    assert not r.is_correct
    assert r.score == 30
    assert r.numeric_validation.percent_error == pytest.approx(20)
    assert "Valeur incorrecte (erreur de 20.0%)" in _messages(r)


def test_numeric_partial_credit_disabled(bank):
    config = ValidationConfig(enable_partial_credit=False)
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(numeric_value=120, unit="N"), config)
    assert r.score == 0


def test_numeric_wrong_unit(bank):
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(numeric_value=100, unit="kN"))
    assert not r.is_correct
    assert r.score == 80
    assert not r.numeric_validation.unit_correct
    assert 'Unité incorrecte: "kN"' in _messages(r)


def test_numeric_units_not_required(bank):
    config = ValidationConfig(require_correct_units=False)
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(numeric_value=100, unit="kN"), config)
    assert r.is_correct and r.score == 100


def test_numeric_wrong_sign(bank):
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(numeric_value=-100, unit="N"))
    assert r.score == 0
    assert not r.numeric_validation.sign_correct
    assert "Attention au signe de votre réponse" in _messages(r)


def test_numeric_raw_input_is_parsed(bank):
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(raw_input="101,5 newtons"))
    assert r.is_correct


def test_numeric_missing_value(bank):
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(unit="N"))
    assert r.score == 0
    assert _messages(r) == ["Aucune valeur numérique fournie"]
    assert r.numeric_validation.percent_error == 100


def test_common_mistake_is_annotation_only(bank):
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(numeric_value=20, unit="N"))
    assert r.score == 0
    warning = r.feedback[0]
    assert warning.type == "warning"
    assert warning.message == "Vous avez soustrait les forces"
    assert warning.suggestion == "Elles tirent dans le même sens"


def test_common_mistake_kinds(bank):
    mistakes = bank.get("m1-num-decomp").common_mistakes
    assert check_common_mistakes(101, mistakes).category == "formula"
    assert check_common_mistakes(-50, mistakes).category == "sign"
    assert check_common_mistakes(173.2, mistakes) is None


def test_numeric_against_instantiated_answer(bank):
    q = instantiate(bank.get("m1-num-decomp"), 42)
    expected = q.instantiated_answer.value
    r = validate_answer(q, UserAnswer(numeric_value=expected * 1.01, unit="N"))
    assert r.is_correct


def test_time_spent_is_carried(bank):
    r = validate_answer(bank.get("m1-num-fixed"), UserAnswer(numeric_value=100, unit="N", time_spent=12.5))
    assert r.time_spent == 12.5


# --- Free-body diagram ---------------------------------------------------------


def _complete_dcl():
    return {
        "placedForces": [_force("W", 105, 98, 268), _force("T", 100, 60, 90)],
        "placedSupports": [{"type": "cable", "position": {"x": 102, "y": 22}}],
    }


def test_dcl_matched_within_window(bank):
    r = validate_answer(bank.get("m2-dcl-01"), UserAnswer.model_validate(_complete_dcl()))
    assert r.is_correct and r.score == 100
    assert r.dcl_validation.forces_correct
    assert _messages(r) == ["DCL correct! Toutes les forces et appuis sont bien identifiés."]


def test_dcl_unnamed_force_matches_by_position(bank):
    answer = _complete_dcl()
    answer["placedForces"][1] = {"applicationPoint": {"x": 104, "y": 65}, "angle": 97}
    r = validate_answer(bank.get("m2-dcl-01"), UserAnswer.model_validate(answer))
    assert r.score == 100
    assert r.dcl_validation.extra_forces == []



def test_dcl_missing_force_and_support(bank):
    answer = UserAnswer.model_validate({"placedForces": [_force("W", 100, 100, 270)]})
    r = validate_answer(bank.get("m2-dcl-01"), answer)
    assert r.score == 33
    assert r.dcl_validation.missing_forces == ["T"]
    assert not r.dcl_validation.supports_correct
    assert "Forces manquantes: T" in _messages(r)
    assert "Appuis incorrects ou manquants" in _messages(r)


def test_dcl_wrong_direction(bank):
    answer = _complete_dcl()
    answer["placedForces"][0] = _force("W", 100, 100, 90)
    r = validate_answer(bank.get("m2-dcl-01"), UserAnswer.model_validate(answer))
    assert r.score == 67
    assert r.dcl_validation.wrong_directions == ["W"]
    assert "Directions incorrectes: W" in _messages(r)


def test_dcl_extra_force_is_reported(bank):
    answer = _complete_dcl()
    answer["placedForces"].append({"applicationPoint": {"x": 300, "y": 250}, "angle": 0})
    r = validate_answer(bank.get("m2-dcl-01"), UserAnswer.model_validate(answer))
    assert r.dcl_validation.extra_forces == ["Force inconnue"]
    assert "Forces en trop: Force inconnue" in _messages(r)
    # extras are reported but do not cost points
    assert r.score == 100


def test_dcl_without_schema(bank):
    r = validate_answer(bank.get("m3-eq-01").model_copy(update={"type": "dcl"}), UserAnswer(placed_forces=[]))
    assert r.score == 0
    assert _messages(r) == ["Pas de schéma défini pour cette question"]


# --- Equation selection --------------------------------------------------------


def test_equations_missing_one(bank):
    r = validate_answer(bank.get("m3-eq-01"), UserAnswer(selected_equations=["Fx", "Fy"]))
    assert not r.is_correct
    assert r.score == 67
    assert r.equation_validation.missing_equations == ["M"]


def test_equations_extra_penalty(bank):
    r = validate_answer(bank.get("m3-eq-01"), UserAnswer(selected_equations=["Fx", "Fy", "M", "Fz"]))
    assert not r.is_correct
    assert r.score == 80
    assert r.equation_validation.wrong_equations == ["Fz"]


def test_equations_all_correct(bank):
    r = validate_answer(bank.get("m3-eq-01"), UserAnswer(selected_equations=["M", "Fy", "Fx"]))
    assert r.is_correct and r.score == 100


# --- Multi-step ----------------------------------------------------------------


def _perfect_multi_step(q):
    by = q.instantiated_answer[0].value
    return UserAnswer.model_validate(
        {
            "placedForces": [_force("P", 200, 100, 270)],
            "placedSupports": [
                {"type": "pin", "position": {"x": 0, "y": 100}},
                {"type": "roller", "position": {"x": 400, "y": 100}},
            ],
            "selectedEquations": ["Fx", "Fy", "M"],
            "finalAnswer": by,
            "unit": "N",
        }
    )


def test_multi_step_divides_by_steps_run(bank):
    q = instantiate(bank.get("m3-multi-01"), 4)
    r = validate_answer(q, _perfect_multi_step(q))
    # (100*0.3 + 100*0.3 + 100*0.4) / 3
    assert r.score == 33
    assert not r.is_correct


def test_multi_step_unit_weights(bank):
    q = instantiate(bank.get("m3-multi-01"), 4)
    config = ValidationConfig(dcl_weight=1, equation_weight=1, calculation_weight=1)
    r = validate_answer(q, _perfect_multi_step(q), config)
    assert r.score == 100 and r.is_correct


def test_multi_step_only_final_answer(bank):
    q = instantiate(bank.get("m3-multi-01"), 4)
    config = ValidationConfig(calculation_weight=1, require_correct_units=False)
    r = validate_answer(q, UserAnswer(final_answer=q.instantiated_answer[0].value), config)
    assert r.score == 100 and r.is_correct


def test_multi_step_nothing_submitted(bank):
    r = validate_answer(bank.get("m3-multi-01"), UserAnswer())
    assert r.score == 0 and not r.is_correct


# --- Dispatch ------------------------------------------------------------------


def test_unsupported_type(bank):
    r = validate_answer(bank.get("w1-sketch-01"), UserAnswer())
    assert r.score == 0
    assert _messages(r) == ["Type de question non supporté"]
