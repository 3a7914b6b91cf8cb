from __future__ import annotations

import re
from typing import Dict, List, Optional

from ..models.schemas import QuestionType, QuestionTotal
from .errors import ConfigurationError, UnknownQuestionType


QUESTION_TYPES: Dict[str, QuestionType] = {
    q.id: q
    for q in [
        QuestionType(
            id="igcse_summary",
            name="Paper 1 Q1f - Summary",
            category="igcse",
            requires_marking_scheme=True,
            description="Summarise the ideas in Text A in your own words (max 120 words).",
        ),
        QuestionType(
            id="igcse_writers_effect",
            name="Paper 1 Q2d - Writer's Effect",
            category="igcse",
            requires_marking_scheme=True,
            description="Explain how the writer's language choices in two paragraphs create effect.",
        ),
        QuestionType(
            id="igcse_extended_q3",
            name="Paper 1 Q3 - Extended Response",
            category="igcse",
            requires_marking_scheme=True,
            description="Write a response in a given form (speech, journal, interview, article, report) using Text C.",
        ),
        QuestionType(
            id="igcse_directed",
            name="Paper 2 Q1 - Directed Writing",
            category="igcse",
            description="Evaluate and synthesise ideas from two texts in a letter, article or speech.",
        ),
        QuestionType(
            id="igcse_narrative",
            name="Paper 2 Q2 - Narrative",
            category="igcse",
            description="Write a story of 350-450 words from a given title or opening.",
        ),
        QuestionType(
            id="igcse_descriptive",
            name="Paper 2 Q2 - Descriptive",
            category="igcse",
            description="Write a description of 350-450 words of a place, person or scene.",
        ),
        QuestionType(
            id="alevel_directed",
            name="AS Paper 1 Q1(a) - Directed Writing",
            category="alevel",
            description="Write a text for a specified audience and purpose based on the source.",
        ),
        QuestionType(
            id="alevel_comparative",
            name="AS Paper 1 Q1(b) - Comparative Analysis",
            category="alevel",
            requires_marking_scheme=True,
            description="Compare the style and language of your directed writing with the source.",
        ),
        QuestionType(
            id="alevel_text_analysis",
            name="AS Paper 1 Q2 - Text Analysis",
            category="alevel",
            description="Analyse the form, structure and language of an unseen text.",
        ),
        QuestionType(
            id="alevel_language_change",
            name="A Level Paper 3 - Language Change",
            category="alevel",
            description="Analyse how the texts and data illustrate change in English over time.",
        ),
        QuestionType(
            id="alevel_reflective_commentary",
            name="A Level Paper 4 - Reflective Commentary",
            category="alevel",
            description="Reflect on the choices made in your own writing.",
        ),
        QuestionType(
            id="gp_essay",
            name="General Paper - Essay",
            category="gp",
            description="Argue a position on a general-interest question in 600-700 words.",
        ),
        QuestionType(
            id="gp_comprehension",
            name="General Paper - Comprehension",
            category="gp",
            description="Answer comprehension questions and evaluate the arguments of a passage.",
        ),
    ]
}

QUESTION_TOTALS: Dict[str, QuestionTotal] = {
    "igcse_summary": QuestionTotal(total=15, components={"reading": 10, "writing": 5}),
    "igcse_writers_effect": QuestionTotal(total=15, components={"reading": 15}),
    "igcse_extended_q3": QuestionTotal(total=25, components={"reading": 15, "writing": 10}),
    "igcse_directed": QuestionTotal(total=40, components={"reading": 15, "writing": 25}),
    "igcse_narrative": QuestionTotal(total=40, components={"content_structure": 16, "style_accuracy": 24}),
    "igcse_descriptive": QuestionTotal(total=40, components={"content_structure": 16, "style_accuracy": 24}),
    "alevel_directed": QuestionTotal(total=15, components={"ao1": 5, "ao2": 10}),
    "alevel_comparative": QuestionTotal(total=25, components={"ao1": 5, "ao3": 20}),
    "alevel_text_analysis": QuestionTotal(total=25, components={"ao1": 5, "ao3": 20}),
    "alevel_language_change": QuestionTotal(total=25, components={"ao1": 5, "ao2": 5, "ao3": 15}),
    "alevel_reflective_commentary": QuestionTotal(total=10, components={"ao3": 10}),
    "gp_essay": QuestionTotal(total=30, components={"ao1": 6, "ao2": 12, "ao3": 12}),
    "gp_comprehension": QuestionTotal(total=50, components={"ao1": 20, "ao2": 20, "ao3": 10}),
}

# Per-form variants the service accepts; marked with the parent's rubric.
QUESTION_TYPE_ALIASES: Dict[str, str] = {
    **{f"igcse_directed_{form}": "igcse_directed" for form in ("speech", "letter", "article")},
    **{
        f"igcse_extended_q3_{form}": "igcse_extended_q3"
        for form in ("speech", "journal", "interview", "article", "report")
    },
    **{
        f"alevel_directed_{form}": "alevel_directed"
        for form in ("leaflet", "speech", "report", "article", "letter", "blog", "review", "diary", "story")
    },
}

MARKING_GUIDES: Dict[str, str] = {
    "igcse_summary": (
        "Reading (10 marks): award one mark per relevant idea selected from the text, "
        "up to 10. Writing (5 marks): reward concision, organisation and use of own words; "
        "responses over 120 words or copied wholesale from the text cannot reach the top band."
    ),
    "igcse_writers_effect": (
        "Reading (15 marks): choose 4 or more precise words or phrases from each paragraph. "
        "Top band explains meaning and effect of imagery with insight and precision; "
        "mid band explains some effects with general comments; "
        "low band identifies words with little or no explanation."
    ),
    "igcse_extended_q3": (
        "Reading (15 marks): develops and evaluates ideas from the text, using supporting detail, "
        "and addresses all three bullet points. Writing (10 marks): clear register for the form "
        "and audience, well-sequenced, in the student's own words."
    ),
    "alevel_comparative": (
        "AO1 (5 marks): appropriate comparative style and conventions. "
        "AO3 (20 marks): analysis of how form, structure and language differ between the "
        "student's directed response and the source, with effects explained."
    ),
}

# Numeric fields the marking service returns, one per component.
MARK_FIELDS = frozenset({
    "reading_marks",
    "writing_marks",
    "ao1_marks",
    "ao2_marks",
    "ao3_marks",
    "content_structure_marks",
    "style_accuracy_marks",
})

# Exam labels shown in the UI -> backend slug
QUESTION_LABELS: Dict[str, str] = {
    "Paper 2 Q2 - Narrative": "igcse_narrative",
    "Paper 2 Q2 - Descriptive": "igcse_descriptive",
    "Paper 2 Q1 - Directed Writing": "igcse_directed",
    "Paper 1 Q1f - Summary": "igcse_summary",
    "Paper 1 Q2d - Writer's Effect": "igcse_writers_effect",
    "Paper 1 Q3 - Extended Response": "igcse_extended_q3",
    "Paper 1 Q2(a-c) - Comprehension and Vocabulary": "igcse_extended_q3",
    "Paper 1 Q1 (a-e) - Simple Comprehension": "igcse_extended_q3",
}
_QUESTION_LABELS_LOWER = {label.lower(): slug for label, slug in QUESTION_LABELS.items()}

_COMPONENT_NAME = re.compile(r"^[a-z][a-z0-9_]*$")


def _registered(question_type: str) -> str:
    return QUESTION_TYPE_ALIASES.get(question_type, question_type)


def get_question_type(question_type: str) -> Optional[QuestionType]:
    return QUESTION_TYPES.get(_registered(question_type))


def get_question_totals(question_type: str) -> Optional[QuestionTotal]:
    return QUESTION_TOTALS.get(_registered(question_type))


def get_marking_guide(question_type: str) -> Optional[str]:
    return MARKING_GUIDES.get(_registered(question_type))


def component_field(component: str) -> str:
    return f"{component}_marks"


def resolve_question_type(question_type: str) -> str:
    """
    Map a UI label ("Paper 2 Q2 - Narrative") or a backend slug to the slug.
    Labels match case-insensitively; slugs must match exactly.
    """
    trimmed = (question_type or "").strip()
    if not trimmed:
        raise UnknownQuestionType(question_type or "", "Question type is required for marking.")

    mapped = QUESTION_LABELS.get(trimmed) or _QUESTION_LABELS_LOWER.get(trimmed.lower())
    if mapped:
        return mapped
    if trimmed in QUESTION_TYPES or trimmed in QUESTION_TYPE_ALIASES:
        return trimmed

    raise UnknownQuestionType(
        trimmed,
        f'Unsupported question type "{trimmed}". Use one of: {", ".join(QUESTION_LABELS)}.',
    )


def validate_registry() -> List[str]:
    """
    Check every totals entry against the question types and the service's
    known mark fields. Hard problems raise ConfigurationError; soft ones come
    back as warnings for the caller to log.
    """
    problems: List[str] = []
    warnings: List[str] = []

    for qid, totals in QUESTION_TOTALS.items():
        qtype = QUESTION_TYPES.get(qid)
        if qtype is None:
            problems.append(f"{qid}: totals registered without a question type")
        if totals.total <= 0:
            problems.append(f"{qid}: total must be positive, got {totals.total}")
        for component in totals.components:
            field = component_field(component)
            if not _COMPONENT_NAME.match(component) or field not in MARK_FIELDS:
                problems.append(f"{qid}: component {component!r} maps to unknown field {field!r}")
        component_sum = sum(totals.components.values())
        if totals.total > 0 and component_sum > totals.total:
            warnings.append(f"{qid}: components sum to {component_sum}, above total {totals.total}")
        if qtype is not None and qtype.requires_marking_scheme and qid not in MARKING_GUIDES:
            warnings.append(f"{qid}: requires a marking scheme but no guide is registered")

    for qid in QUESTION_TYPES:
        if qid not in QUESTION_TOTALS:
            warnings.append(f"{qid}: question type has no totals; evaluations will be rejected")

    for alias, parent in QUESTION_TYPE_ALIASES.items():
        if alias in QUESTION_TYPES:
            problems.append(f"{alias}: registered both as a question type and as a variant")
        if parent not in QUESTION_TYPES:
            problems.append(f"{alias}: variant of unregistered question type {parent!r}")

    if problems:
        raise ConfigurationError("Invalid marking registry: " + "; ".join(problems))
    return warnings
