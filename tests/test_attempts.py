from fastapi.testclient import TestClient
from sqlalchemy import BigInteger
from sqlalchemy.exc import IntegrityError

from db import SessionLocal
from engine.generator import default_seed
from main import app
from models import Attempt, CompetencyProgress
from routers import marking

client = TestClient(app)


def _submit(question_id, answer, **extra):
    r = client.post("/validate", json={"questionId": question_id, "answer": answer, **extra})
    assert r.status_code == 200
    return r.json()


def test_get_attempt_roundtrip():
    body = _submit("m1-num-fixed", {"numericValue": 103, "unit": "N", "timeSpent": 30}, sessionId="s-1")
    attempt_id = body.get("attemptId")
    assert isinstance(attempt_id, int)

    r = client.get(f"/attempts/{attempt_id}")
    assert r.status_code == 200
    a = r.json()
    assert a["id"] == attempt_id
    assert a["question_id"] == "m1-num-fixed"
    assert a["is_correct"] is True
    assert a["score"] == 100
    assert a["time_spent"] == 30
    assert a["session_id"] == "s-1"
    assert "created_at" in a


def test_get_attempt_404():
    r = client.get("/attempts/999999")
    assert r.status_code == 404


def test_recent_list_by_user():
    _submit("m1-mcq-01", {"selectedOption": "a"}, userId="u-recent")
    _submit("m1-mcq-01", {"selectedOption": "b"}, userId="u-recent")

    r = client.get("/attempts/recent-list", params={"user_id": "u-recent"})
    body = r.json()
    assert body["ok"] is True
    assert body["count"] == 2
    assert [i["score"] for i in body["items"]] == [100, 0]
    assert "feedback" not in body["items"][0]


def test_competency_progress():
    _submit("m1-num-decomp", {"numericValue": 173.21, "unit": "N"}, userId="u-progress")
    _submit("m1-num-decomp", {"numericValue": 10, "unit": "N"}, userId="u-progress")

    r = client.get("/progress/u-progress")
    body = r.json()
    assert body["userId"] == "u-progress"
    tags = {c["competency_tag"]: c for c in body["competencies"]}
    assert set(tags) == {"trigonometry", "decomposition"}
    assert tags["trigonometry"]["attempts"] == 2
    assert tags["trigonometry"]["successes"] == 1
    assert body["attempts"] == 4 and body["successes"] == 2


def test_progress_unknown_user():
    body = client.get("/progress/nobody").json()
    assert body["competencies"] == [] and body["attempts"] == 0


def test_attempt_keeps_an_epoch_millisecond_seed():
    seed = default_seed()
    assert seed > 2**31

    body = _submit("m1-num-decomp", {"numericValue": 1, "unit": "N"}, seed=seed, userId="u-seed")
    attempt_id = body.get("attemptId")
    assert isinstance(attempt_id, int)
    assert client.get(f"/attempts/{attempt_id}").json()["seed"] == seed


def test_seed_column_is_64_bit():
    assert isinstance(Attempt.__table__.c.seed.type, BigInteger)


def test_concurrent_first_progress_row_keeps_attempt_and_counts(monkeypatch):
    real_apply = marking._apply_progress
    calls = []

    def racing_apply(db, user_id, tags, is_correct):
        calls.append(user_id)
        if len(calls) == 1:
            # another request inserts the same (user, tag) row first
            with SessionLocal() as other:
                other.add(
                    CompetencyProgress(user_id=user_id, competency_tag="resultant", attempts=1, successes=1)
                )
                other.commit()
            raise IntegrityError("INSERT INTO competency_progress", {}, Exception("UNIQUE constraint failed"))
        real_apply(db, user_id, tags, is_correct)

    monkeypatch.setattr(marking, "_apply_progress", racing_apply)

    body = _submit("m1-num-fixed", {"numericValue": 100, "unit": "N"}, userId="u-race")
    assert isinstance(body.get("attemptId"), int)
    assert len(calls) == 2

    progress = client.get("/progress/u-race").json()
    [row] = progress["competencies"]
    assert row["competency_tag"] == "resultant"
    assert row["attempts"] == 2 and row["successes"] == 2


def test_progress_failure_does_not_drop_attempt(monkeypatch):
    def always_conflicting(db, user_id, tags, is_correct):
        raise IntegrityError("INSERT INTO competency_progress", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(marking, "_apply_progress", always_conflicting)

    body = _submit("m1-mcq-01", {"selectedOption": "b"}, userId="u-conflict")
    attempt_id = body.get("attemptId")
    assert isinstance(attempt_id, int)
    assert client.get(f"/attempts/{attempt_id}").json()["user_id"] == "u-conflict"
    assert client.get("/progress/u-conflict").json()["attempts"] == 0
