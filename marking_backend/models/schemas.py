from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


Category = Literal["igcse", "alevel", "gp"]


class QuestionType(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: Category
    requires_marking_scheme: bool = False
    description: str = ""


class QuestionTotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    components: Dict[str, int]  # component -> max points, in report order


class EvaluateRequest(BaseModel):
    question_type: str
    student_response: str
    # None serializes as JSON null; the service treats "" as a provided value
    marking_scheme: Optional[str] = None
    command_word: Optional[str] = None
    text_type: Optional[str] = None
    insert_document: Optional[str] = None
    user_id: Optional[str] = None


class EvaluateResponse(BaseModel):
    """
    Loosely-typed remote result. The per-component `<component>_marks`
    fields are dynamic and stay in the extras, untouched, so the mapper
    sees exactly what the service sent.
    """
    model_config = ConfigDict(extra="allow")

    feedback: Optional[str] = None
    grade: Optional[str] = None
    improvement_suggestions: Optional[List[str]] = None
    improvements: Optional[List[str]] = None
    strengths: Optional[List[str]] = None
    next_steps: Optional[List[str]] = None
    short_id: Optional[str] = None

    def field(self, name: str) -> Any:
        if name in type(self).model_fields:
            return getattr(self, name)
        return (self.model_extra or {}).get(name)


class MarkScore(BaseModel):
    criterion_id: str
    criterion_title: str
    band: Optional[str] = None
    score: float
    max_score: float
    weight: float
    reasoning: str


class EvaluationResult(BaseModel):
    question_type: str
    total: float
    total_max: float
    weighted_score: float
    scores: List[MarkScore] = Field(default_factory=list)
    summary: str
    grade: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    improvement_suggestions: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)
    short_id: Optional[str] = None
