# bank.py
"""Question-template repository backed by JSON / JSONL files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from engine.courses import DEFAULT_COURSE
from schemas.questions import QuestionTemplate

logger = logging.getLogger(__name__)


def _iter_jsonl(p: Path) -> Iterable[Dict[str, Any]]:
    with p.open("r", encoding="utf-8") as f:
        for idx, line in enumerate(f, 1):
            s = line.strip()
            if not s or s.startswith("#") or s.startswith("//"):
                continue
            try:
                yield json.loads(s)
            except json.JSONDecodeError:
                # Skip malformed rows instead of dropping the whole file
                logger.warning("Skipping malformed line %d in %s", idx, p)
                continue


def _iter_json(p: Path) -> Iterable[Dict[str, Any]]:
    with p.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError:
            logger.warning("Skipping unreadable question file %s", p)
            data = []
    # either a bare list or {"questions": [...]}
    if isinstance(data, dict):
        data = data.get("questions", [])
    if isinstance(data, list):
        for obj in data:
            yield obj


class QuestionBank:
    """
    Loads every template under `directory` once and answers lookups from memory.

    One instance is created by the app (see main.py) and handed to the routers;
    tests build their own against fixture directories.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)
        self._questions: Optional[List[QuestionTemplate]] = None

    def load(self) -> List[QuestionTemplate]:
        if self._questions is None:
            self.reload()
        return self._questions or []

    def reload(self) -> int:
        questions: List[QuestionTemplate] = []

        if self.directory.exists():
            for p in sorted(self.directory.rglob("*")):
                if not p.is_file():
                    continue
                suf = p.suffix.lower()
                if suf == ".jsonl":
                    source = _iter_jsonl(p)
                elif suf == ".json":
                    source = _iter_json(p)
                else:
                    continue

                for raw in source:
                    try:
                        questions.append(QuestionTemplate.model_validate(raw))
                    except ValidationError as e:
                        # Skip invalid records
                        qid = raw.get("id") if isinstance(raw, dict) else None
                        logger.warning(
                            "Skipping invalid question %s in %s: %d error(s)", qid, p, e.error_count()
                        )
        else:
            logger.warning("Question directory does not exist: %s", self.directory)

        self._questions = questions
        logger.info("Loaded %d question templates from %s", len(questions), self.directory)
        return len(questions)

    # --- Lookups ------------------------------------------------------------------

    def all(self) -> List[QuestionTemplate]:
        return list(self.load())

    def get(self, question_id: str) -> Optional[QuestionTemplate]:
        return next((q for q in self.load() if q.id == question_id), None)

    def by_course(self, course_id: str) -> List[QuestionTemplate]:
        return [q for q in self.load() if (q.course_id or DEFAULT_COURSE) == course_id]

    def by_module(self, module_id: int, course_id: Optional[str] = None) -> List[QuestionTemplate]:
        return [
            q
            for q in self.load()
            if q.module == module_id
            and q.active
            and (course_id is None or (q.course_id or DEFAULT_COURSE) == course_id)
        ]

    def by_competency(self, tag: str) -> List[QuestionTemplate]:
        return [q for q in self.load() if tag in q.tags and q.active]

    def by_difficulty(self, difficulty: str) -> List[QuestionTemplate]:
        return [q for q in self.load() if q.difficulty == difficulty and q.active]
