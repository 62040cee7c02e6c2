# tests/conftest.py
import os
import tempfile
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures" / "questions"

# must be set before db / settings are imported anywhere
_TMP_DIR = Path(tempfile.mkdtemp(prefix="physquiz-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'grading-test.db'}"
os.environ["QUESTIONS_DIR"] = str(FIXTURES_DIR)

import models  # noqa: E402,F401
from bank import QuestionBank  # noqa: E402
from db import Base, engine  # noqa: E402

Base.metadata.create_all(engine)


@pytest.fixture
def bank():
    b = QuestionBank(FIXTURES_DIR)
    b.load()
    return b
