# schemas/questions.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field

from schemas.base import CamelModel

CourseId = Literal["statics", "kinematics", "waves_modern"]
Difficulty = Literal["beginner", "intermediate", "advanced"]
QuestionType = Literal[
    "mcq",
    "numeric",
    "dcl",
    "equation",
    "multi-step",
    # rendered and checked by the web client only
    "wave-sketch",
    "wave-match",
    "parameter-identify",
]
ToleranceType = Literal["absolute", "percent"]
SupportType = Literal["pin", "roller", "fixed", "cable", "link"]
GivenValue = Union[int, float, str]


# ---------- Diagram elements ----------


class Point2D(CamelModel):
    x: float
    y: float


class Force(CamelModel):
    id: str = ""
    name: str = ""
    magnitude: Optional[float] = None
    angle: float  # degrees, canvas convention
    application_point: Point2D
    color: Optional[str] = None
    is_unknown: Optional[bool] = None


class Support(CamelModel):
    id: str = ""
    type: SupportType
    position: Point2D
    angle: Optional[float] = None  # roller direction
    reactions: List[str] = Field(default_factory=list)


class SchemaElement(CamelModel):
    id: str
    type: Literal["beam", "point", "joint", "member", "load", "dimension"]
    start: Optional[Point2D] = None
    end: Optional[Point2D] = None
    position: Optional[Point2D] = None
    label: Optional[str] = None
    length: Optional[float] = None


class DiagramSchema(CamelModel):
    type: Literal["beam", "truss", "frame", "point"] = "beam"
    width: float = 0
    height: float = 0
    elements: List[SchemaElement] = Field(default_factory=list)
    correct_forces: List[Force] = Field(default_factory=list)
    correct_supports: List[Support] = Field(default_factory=list)


# ---------- Equations / options / answers ----------


class EquationForm(CamelModel):
    id: str
    latex: str = ""
    terms: List[str] = Field(default_factory=list)
    accepted_variants: Optional[List[str]] = None


class EquationSet(CamelModel):
    required: List[str]
    forms: List[EquationForm] = Field(default_factory=list)


class MCQOption(CamelModel):
    id: str
    text: str = ""
    is_correct: bool = False
    feedback: Optional[str] = None


class Answer(CamelModel):
    variable: str = ""
    value: float
    unit: str = ""
    tolerance: Optional[float] = None
    tolerance_type: Optional[ToleranceType] = None
    significant_figures: Optional[int] = None


class CommonMistake(CamelModel):
    pattern: str = ""  # regex, or the mistaken value
    pattern_type: Literal["regex", "value", "range"]
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    message: str
    hint: str = ""
    category: Literal["sign", "unit", "formula", "concept", "calculation"] = "calculation"


class ParameterDef(CamelModel):
    min: float
    max: float
    step: float = Field(gt=0)
    unit: str = ""
    decimal_places: Optional[int] = None


# ---------- Questions ----------


class QuestionBase(CamelModel):
    id: str
    course_id: Optional[CourseId] = None
    module: int
    tags: List[str] = Field(default_factory=list)
    difficulty: Difficulty = "beginner"
    type: QuestionType
    active: bool = True

    title: str = ""
    statement: str
    statement_image: Optional[str] = None

    givens: Dict[str, GivenValue] = Field(default_factory=dict)
    unknowns: List[str] = Field(default_factory=list)

    diagram: Optional[DiagramSchema] = Field(default=None, alias="schema")
    equations: Optional[EquationSet] = None
    options: Optional[List[MCQOption]] = None

    wave_sketch: Optional[Dict[str, Any]] = None
    wave_match: Optional[Dict[str, Any]] = None
    parameter_identify: Optional[Dict[str, Any]] = None

    answer: Union[Answer, List[Answer]] = Field(default_factory=list)

    hints: List[str] = Field(default_factory=list)
    common_mistakes: List[CommonMistake] = Field(default_factory=list)
    explanation: str = ""
    solution_steps: Optional[List[str]] = None

    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class QuestionTemplate(QuestionBase):
    parameters: Optional[Dict[str, ParameterDef]] = None
    # plain expression, JSON array of expressions, or JSON object of named expressions
    answer_formula: Optional[str] = None


class InstantiatedQuestion(QuestionBase):
    model_config = ConfigDict(frozen=True)

    course_id: CourseId = "statics"
    seed: int
    instantiated_givens: Dict[str, GivenValue]
    instantiated_answer: Union[Answer, List[Answer]]


class QuizOut(CamelModel):
    questions: List[InstantiatedQuestion]
    course_id: CourseId
    module_id: int
    count: int
    seed: int
