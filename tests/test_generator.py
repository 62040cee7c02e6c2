import logging
import math
from collections import Counter
from datetime import date

import pytest

from engine.generator import (
    generate_balanced_quiz,
    generate_daily_variant,
    generate_quiz,
    instantiate,
    preview_parameter_ranges,
    supports_variants,
)
from engine import rng
from engine.rng import create_seed


def test_instantiate_is_deterministic(bank):
    t = bank.get("m1-num-decomp")
    assert instantiate(t, 42).model_dump() == instantiate(t, 42).model_dump()


def test_parameters_drawn_on_lattice_and_answer_recomputed(bank):
    t = bank.get("m1-num-decomp")
    for seed in range(20):
        q = instantiate(t, seed)
        F = q.instantiated_givens["F"]
        theta = q.instantiated_givens["theta"]
        assert 100 <= F <= 500 and (F - 100) % 50 == 0
        assert 20 <= theta <= 60 and (theta - 20) % 5 == 0
        assert q.seed == seed
        assert q.instantiated_answer.value == pytest.approx(F * math.cos(math.radians(theta)))
        assert q.instantiated_answer.unit == "N"


def test_statement_substitution_leaves_unknown_tokens(bank):
    q = instantiate(bank.get("m1-num-decomp"), 7)
    F = q.instantiated_givens["F"]
    assert f"{int(F)} N" in q.statement
    assert "{F}" not in q.statement and "{theta}" not in q.statement
    assert "{note}" in q.statement


def test_template_is_not_mutated(bank):
    t = bank.get("m1-num-decomp")
    before = t.model_dump()
    instantiate(t, 3)
    assert t.model_dump() == before


def test_template_without_parameters_is_returned_verbatim(bank):
    t = bank.get("m1-num-fixed")
    q = instantiate(t, 5)
    assert q.seed == 5
    assert q.statement == t.statement
    assert q.instantiated_givens == t.givens
    assert q.instantiated_answer.value == 100
    assert not supports_variants(t)


def test_broken_formula_falls_back_to_template_answer(bank, caplog):
    t = bank.get("m1-broken-formula")
    with caplog.at_level(logging.ERROR, logger="engine.generator"):
        q = instantiate(t, 1)
    assert q.instantiated_answer.value == 42
    assert "m1-broken-formula" in caplog.text


def test_named_formula_results_pair_by_variable(bank):
    t = bank.get("m3-multi-01")
    q = instantiate(t, 11)
    L = q.instantiated_givens["L"]
    P = q.instantiated_givens["P"]
    by, ay = q.instantiated_answer
    assert by.variable == "By" and by.value == pytest.approx(P * 2 / L)
    assert ay.variable == "Ay" and ay.value == pytest.approx(P - P * 2 / L)


def test_course_defaults_to_statics(bank):
    q = instantiate(bank.get("m1-mcq-01"), 1)
    assert q.course_id == "statics"
    q = instantiate(bank.get("k1-num-01"), 1)
    assert q.course_id == "kinematics"
    assert q.instantiated_answer.value == pytest.approx(q.instantiated_givens["v0"] * q.instantiated_givens["t"])


def test_daily_variant_uses_date_seed(bank):
    t = bank.get("m1-num-decomp")
    day = date(2026, 1, 15)
    daily = generate_daily_variant(t, day)
    assert daily.seed == create_seed(t.id, "2026-01-15")
    assert daily.model_dump() == instantiate(t, daily.seed).model_dump()


def test_quiz_uses_consecutive_seeds(bank):
    quiz = generate_quiz(bank, 1, count=10, seed=42, course_id="statics")
    assert [q.seed for q in quiz] == [42, 43, 44, 45]
    assert {q.id for q in quiz} == {"m1-mcq-01", "m1-num-decomp", "m1-num-fixed", "m1-broken-formula"}


def test_quiz_is_reproducible_and_bounded(bank):
    a = generate_quiz(bank, 1, count=2, seed=9, course_id="statics")
    b = generate_quiz(bank, 1, count=2, seed=9, course_id="statics")
    assert len(a) == 2
    assert [q.model_dump() for q in a] == [q.model_dump() for q in b]


def test_quiz_without_course_spans_courses(bank):
    quiz = generate_quiz(bank, 1, count=10, seed=1)
    assert "k1-num-01" in {q.id for q in quiz}
    assert "m1-inactive" not in {q.id for q in quiz}


def test_quiz_for_empty_module(bank):
    assert generate_quiz(bank, 9, seed=1) == []


def test_balanced_quiz_respects_counts(bank):
    quiz = generate_balanced_quiz(
        bank, 1, {"beginner": 1, "intermediate": 1}, seed=3, course_id="statics"
    )
    assert Counter(q.difficulty for q in quiz) == {"beginner": 1, "intermediate": 1}
    assert [q.seed for q in quiz] == [3, 4]


def test_preview_parameter_ranges(bank):
    preview = preview_parameter_ranges(bank.get("m1-num-decomp"))
    assert set(preview) == {"F", "theta"}
    f = preview["F"]
    assert f["min"] == 100 and f["max"] == 500
    assert len(f["examples"]) == 5
    assert f["examples"] == sorted(f["examples"])
    assert all(100 <= x <= 500 for x in f["examples"])
    assert preview_parameter_ranges(bank.get("m1-num-fixed")) == {}


def test_daily_variant_defaults_to_the_utc_day(bank, monkeypatch):
    monkeypatch.setattr(rng, "utc_today", lambda: date(2026, 3, 1))
    t = bank.get("m1-num-decomp")
    expected_seed = create_seed(t.id, "2026-03-01")
    assert generate_daily_variant(t).seed == expected_seed
    assert instantiate(t).seed == expected_seed
