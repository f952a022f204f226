from __future__ import annotations

import logging

from talentbridge.core.questions import DEFAULT_QUESTIONS
from talentbridge.db.repositories import Repository

logger = logging.getLogger(__name__)


async def seed_default_questions(repo: Repository) -> tuple[int, int]:
    """Insert the built-in questionnaire when the table is empty.

    Returns ``(inserted, existing)``.
    """
    existing = await repo.count_questions()
    if existing > 0:
        return 0, existing

    inserted = await repo.add_questions(
        {
            "question_text": question.question_text,
            "question_type": question.question_type,
            "category": question.category,
            "order_index": question.order_index,
            "is_active": question.is_active,
        }
        for question in DEFAULT_QUESTIONS
    )
    logger.info("Seeded %s default questions", inserted)
    return inserted, 0
