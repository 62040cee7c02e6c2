# schemas/validation.py
from __future__ import annotations

from typing import Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import ConfigDict, Field

from schemas.base import CamelModel
from schemas.questions import Force, Point2D, ToleranceType

FeedbackType = Literal["success", "error", "warning", "hint", "info"]
ValidationTarget = Literal[
    "dcl-forces",
    "dcl-supports",
    "dcl-directions",
    "equation-selection",
    "equation-terms",
    "equation-signs",
    "calculation",
    "units",
    "final-answer",
]


class FeedbackItem(CamelModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    type: FeedbackType
    target: ValidationTarget
    message: str
    suggestion: Optional[str] = None
    related_hint: Optional[int] = None


class DCLValidation(CamelModel):
    forces_present: bool
    forces_correct: bool
    supports_correct: bool
    directions_correct: bool
    missing_forces: List[str] = Field(default_factory=list)
    extra_forces: List[str] = Field(default_factory=list)
    wrong_directions: List[str] = Field(default_factory=list)


class EquationValidation(CamelModel):
    equations_selected: bool
    equations_correct: bool
    terms_correct: bool = True
    signs_correct: bool = True
    missing_equations: List[str] = Field(default_factory=list)
    wrong_equations: List[str] = Field(default_factory=list)


class NumericValidation(CamelModel):
    is_within_tolerance: bool
    percent_error: float
    absolute_error: float
    unit_correct: bool
    sign_correct: bool


class ValidationResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    is_correct: bool
    score: int = Field(ge=0, le=100)
    partial_credit: int = Field(ge=0, le=100)
    feedback: List[FeedbackItem] = Field(default_factory=list)
    competencies_assessed: List[str] = Field(default_factory=list)

    dcl_validation: Optional[DCLValidation] = None
    equation_validation: Optional[EquationValidation] = None
    numeric_validation: Optional[NumericValidation] = None

    time_spent: Optional[float] = None


# ---------- Learner submission ----------


class PlacedSupport(CamelModel):
    id: str = ""
    type: str
    position: Point2D


class UserAnswer(CamelModel):
    question_id: str = ""
    timestamp: Optional[float] = None
    time_spent: float = 0  # seconds

    # mcq
    selected_option: Optional[str] = None

    # numeric; raw_input ("12.5 kN") is parsed when numeric_value is absent
    numeric_value: Optional[float] = None
    unit: Optional[str] = None
    raw_input: Optional[str] = None

    # dcl
    placed_forces: Optional[List[Force]] = None
    placed_supports: Optional[List[PlacedSupport]] = None

    # equation
    selected_equations: Optional[List[str]] = None
    equation_terms: Optional[Dict[str, List[str]]] = None

    # multi-step
    intermediate_values: Optional[Dict[str, float]] = None
    final_answer: Optional[float] = None


class ValidationConfig(CamelModel):
    default_numeric_tolerance: float = 2
    default_tolerance_type: ToleranceType = "percent"

    enable_partial_credit: bool = True
    dcl_weight: float = 0.3
    equation_weight: float = 0.3
    calculation_weight: float = 0.4

    require_correct_units: bool = True

    # free-body diagram matching windows
    dcl_position_tolerance: float = 20
    dcl_angle_tolerance: float = 15
