from __future__ import annotations

import logging
from typing import List, Optional

from ..config import DEFAULT_USER_ID, MarkingSettings
from ..models.schemas import (
    EvaluateRequest,
    EvaluateResponse,
    EvaluationResult,
    MarkScore,
    QuestionTotal,
)
from . import marking_client
from .criteria import (
    component_field,
    get_marking_guide,
    get_question_totals,
    get_question_type,
)
from .errors import ConfigurationError, UnknownQuestionType

logger = logging.getLogger(__name__)

NO_FEEDBACK = "No feedback provided."
NO_SUMMARY = "Evaluation completed."


def criterion_title(component: str) -> str:
    # per-word first letter only: "ao1" -> "Ao1", not "AO1"
    return " ".join(w[:1].upper() + w[1:] for w in component.replace("_", " ").split(" "))


def _numeric(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def map_marks_to_components(totals: QuestionTotal, response: EvaluateResponse) -> List[MarkScore]:
    """
    One MarkScore per registered component, in registry order.
    A missing or non-numeric `<component>_marks` field scores 0; it is not an error.
    """
    if totals.total == 0:
        raise ConfigurationError("Question total is 0; component weights are undefined")

    reasoning = response.feedback or NO_FEEDBACK
    scores: List[MarkScore] = []
    for component, max_score in totals.components.items():
        field = component_field(component)
        value = _numeric(response.field(field))
        if value is None:
            logger.debug("[evaluation] %s missing or non-numeric; scoring 0", field)
        scores.append(
            MarkScore(
                criterion_id=component,
                criterion_title=criterion_title(component),
                score=value if value is not None else 0,
                max_score=max_score,
                weight=max_score / totals.total,
                reasoning=reasoning,
            )
        )
    return scores


def build_result(question_type: str, totals: QuestionTotal, response: EvaluateResponse) -> EvaluationResult:
    scores = map_marks_to_components(totals, response)
    return EvaluationResult(
        question_type=question_type,
        total=sum(s.score for s in scores),
        total_max=totals.total,
        weighted_score=sum(s.score * s.weight for s in scores),
        scores=scores,
        summary=response.feedback or NO_SUMMARY,
        grade=response.grade,
        strengths=response.strengths or [],
        improvement_suggestions=response.improvement_suggestions or [],
        next_steps=response.next_steps or [],
        short_id=response.short_id,
    )


async def evaluate_essay(
    question_type: str,
    essay: str,
    *,
    command_word: Optional[str] = None,
    text_type: Optional[str] = None,
    insert_document: Optional[str] = None,
    user_id: Optional[str] = None,
    settings: MarkingSettings,
) -> EvaluationResult:
    question = get_question_type(question_type)
    totals = get_question_totals(question_type)
    if question is None or totals is None:
        raise UnknownQuestionType(question_type)
    if totals.total == 0:
        raise ConfigurationError(f"{question_type}: total is 0; component weights are undefined")

    request = EvaluateRequest(
        question_type=question_type,
        student_response=essay,
        marking_scheme=get_marking_guide(question_type) if question.requires_marking_scheme else None,
        command_word=command_word,
        text_type=text_type,
        insert_document=insert_document,
        user_id=user_id or DEFAULT_USER_ID,
    )
    response = await marking_client.call_evaluate_endpoint(request, settings)

    result = build_result(question_type, totals, response)
    logger.info(
        "[evaluation] question_type=%s total=%s/%s weighted=%.2f",
        question_type, result.total, result.total_max, result.weighted_score,
    )
    return result
