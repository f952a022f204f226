from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from talentbridge.types import QuestionResponse

logger = logging.getLogger(__name__)

UNMAPPED_QUESTION_TEXT = "Question not found"
UNMAPPED_CATEGORY = "general"


@dataclass(slots=True)
class CatalogueQuestion:
    id: str
    question_text: str
    category: str = "general"
    order_index: int = 0
    is_active: bool = True
    question_type: str = "open_ended"

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "category": self.category,
            "order_index": self.order_index,
            "is_active": self.is_active,
        }


DEFAULT_QUESTIONS: tuple[CatalogueQuestion, ...] = (
    CatalogueQuestion(
        id="q1",
        question_text="Describe the biggest failure in your career and what it taught you.",
        category="problem_solving",
        order_index=1,
    ),
    CatalogueQuestion(
        id="q2",
        question_text=(
            "Tell us about a time you had to work in a team with difficult people. "
            "How did you resolve the situation?"
        ),
        category="teamwork",
        order_index=2,
    ),
    CatalogueQuestion(
        id="q3",
        question_text="Describe a project or initiative you started on your own, without direction from management.",
        category="initiative",
        order_index=3,
    ),
    CatalogueQuestion(
        id="q4",
        question_text="How do you usually make important decisions? Walk us through your process with a concrete example.",
        category="decision_making",
        order_index=4,
    ),
    CatalogueQuestion(
        id="q5",
        question_text=(
            "Tell us about a time you had to learn something completely new for your job. "
            "How did you approach it?"
        ),
        category="learning",
        order_index=5,
    ),
    CatalogueQuestion(
        id="q6",
        question_text="Describe a situation where you disagreed with a management decision. How did you react?",
        category="leadership",
        order_index=6,
    ),
    CatalogueQuestion(
        id="q7",
        question_text="What motivates you most at work? Give specific examples.",
        category="motivation",
        order_index=7,
    ),
)


def build_lookup(catalogue: Iterable[CatalogueQuestion]) -> dict[str, CatalogueQuestion]:
    """Index the catalogue by real id, 1-based position and q-prefixed position."""
    catalogue = list(catalogue)
    lookup: dict[str, CatalogueQuestion] = {}
    for position, question in enumerate(catalogue, start=1):
        lookup.setdefault(str(position), question)
        lookup.setdefault(f"q{position}", question)
    # Real ids win over positional aliases.
    for question in catalogue:
        lookup[question.id] = question
    return lookup


def map_question_responses(
    responses: Mapping[str, str],
    catalogue: Iterable[CatalogueQuestion],
) -> list[QuestionResponse]:
    """Resolve submitted answers against the question catalogue.

    Unknown ids are kept with placeholder text so that a stale client can
    still submit.
    """
    catalogue = list(catalogue)
    lookup = build_lookup(catalogue)

    mapped: list[QuestionResponse] = []
    for question_id, response_text in responses.items():
        question = lookup.get(str(question_id))
        if question is None:
            logger.warning("Question id %s not found in catalogue", question_id)
            mapped.append(
                QuestionResponse(
                    question_id=str(question_id),
                    question_text=UNMAPPED_QUESTION_TEXT,
                    response_text=str(response_text),
                    category=UNMAPPED_CATEGORY,
                )
            )
            continue

        mapped.append(
            QuestionResponse(
                question_id=question.id,
                question_text=question.question_text,
                response_text=str(response_text),
                category=question.category or UNMAPPED_CATEGORY,
            )
        )
    return mapped
