from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from talentbridge.config import Settings, get_settings
from talentbridge.core.personality import PersonalityAnalyzer, validate_personality_analysis
from talentbridge.core.questions import DEFAULT_QUESTIONS, CatalogueQuestion, map_question_responses
from talentbridge.core.tasks import TaskScheduler
from talentbridge.db.base import utcnow
from talentbridge.db.repositories import Repository
from talentbridge.db.session import Store
from talentbridge.types import PersonalityAnalysisResult, QuestionResponse, ServiceResponse

logger = logging.getLogger(__name__)

ANALYSIS_VERSION = "1.0"
INTERNAL_ERROR_MESSAGE = "Internal error during personality analysis"
QUEUED_MESSAGE = "Personality analysis queued"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def result_columns(result: PersonalityAnalysisResult) -> dict[str, Any]:
    return {
        "problem_solving_style": result.problem_solving_style,
        "initiative_level": result.initiative_level,
        "work_preference": result.work_preference,
        "motivational_factors": result.motivational_factors,
        "growth_areas": result.growth_areas,
        "communication_style": result.communication_style,
        "leadership_potential": result.leadership_potential,
        "analytical_score": result.analytical_score,
        "creative_score": result.creative_score,
        "leadership_score": result.leadership_score,
        "teamwork_score": result.teamwork_score,
        "trait_scores": dict(result.trait_scores),
        "ai_confidence_score": result.confidence_score,
        "personality_summary": result.personality_summary,
        "strengths": list(result.strengths),
        "development_areas": list(result.development_areas),
        "ideal_work_environment": result.ideal_work_environment,
        "analysis_notes": result.analysis_notes,
        "analysis_version": ANALYSIS_VERSION,
    }


async def load_question_catalogue(repo: Repository) -> list[CatalogueQuestion]:
    """Active questions by order, or the built-in set when none are stored."""
    rows = await repo.list_active_questions()
    if not rows:
        return list(DEFAULT_QUESTIONS)
    return [
        CatalogueQuestion(
            id=row.id,
            question_text=row.question_text,
            category=row.category or "general",
            order_index=row.order_index,
            is_active=row.is_active,
            question_type=row.question_type,
        )
        for row in rows
    ]


class PersonalityPipeline:
    """Questionnaire submission, background analysis and status lookup.

    A submission always restarts the user's analysis at ``queued``. Processing
    then moves it to ``processing`` and ends in ``completed`` or ``failed``.
    """

    def __init__(
        self,
        store: Store,
        analyzer: PersonalityAnalyzer,
        settings: Settings | None = None,
        scheduler: TaskScheduler | None = None,
    ):
        self.store = store
        self.analyzer = analyzer
        self.settings = settings or get_settings()
        self.scheduler = scheduler

    async def submit(
        self,
        user_id: str | None,
        responses: Mapping[str, str] | None,
        scheduler: TaskScheduler | None = None,
    ) -> ServiceResponse:
        if not user_id:
            return ServiceResponse.error(401, "Unauthorized")
        if not responses:
            return ServiceResponse.error(400, "No responses provided")

        async with self.store.restricted(user_id) as repo:
            try:
                catalogue = await load_question_catalogue(repo)
            except SQLAlchemyError:
                logger.exception("Failed to load question catalogue")
                return ServiceResponse.error(500, "Failed to fetch questions from database")

            mapped = map_question_responses(responses, catalogue)

            try:
                await repo.delete_responses(user_id)
            except SQLAlchemyError:
                logger.exception("Failed to delete previous responses user_id=%s", user_id)
                return ServiceResponse.error(500, "Failed to reset previous test responses")

            try:
                await repo.insert_responses(
                    user_id,
                    (
                        {
                            "question_id": item.question_id,
                            "question_text": item.question_text,
                            "category": item.category,
                            "response_text": item.response_text,
                            "order_index": index,
                        }
                        for index, item in enumerate(mapped, start=1)
                    ),
                )
            except SQLAlchemyError:
                logger.warning("Failed to store raw responses user_id=%s; continuing", user_id, exc_info=True)

            try:
                await repo.mark_analysis_queued(user_id)
            except SQLAlchemyError:
                logger.exception("Failed to queue personality analysis user_id=%s", user_id)
                return ServiceResponse.error(500, "Failed to queue personality analysis")

            try:
                await repo.set_completion_flags(
                    user_id,
                    personality_assessment_completed=True,
                    ai_analysis_completed=False,
                )
            except SQLAlchemyError:
                logger.warning("Failed to update completion flags user_id=%s", user_id, exc_info=True)

        await self._dispatch(user_id, mapped, scheduler or self.scheduler)
        return ServiceResponse(
            status_code=200,
            body={"success": True, "status": "queued", "message": QUEUED_MESSAGE},
        )

    async def _dispatch(
        self,
        user_id: str,
        responses: list[QuestionResponse],
        scheduler: TaskScheduler | None,
    ) -> None:
        if self.settings.personality_processing_mode == "inline":
            await self.process(user_id, responses)
            return
        if self.settings.is_test:
            logger.debug("Test mode: personality processing not scheduled user_id=%s", user_id)
            return
        if scheduler is None:
            logger.warning("No scheduler available; personality analysis left queued user_id=%s", user_id)
            return
        scheduler.schedule(self.process, user_id, responses)

    async def process(self, user_id: str, responses: list[QuestionResponse]) -> None:
        """Run the analysis to a terminal state. Never raises."""
        try:
            await self._run(user_id, responses)
        except Exception:
            logger.exception("Personality analysis crashed user_id=%s", user_id)
            try:
                async with self.store.elevated() as repo:
                    await repo.upsert_analysis(
                        user_id,
                        {
                            "status": "failed",
                            "error_message": INTERNAL_ERROR_MESSAGE,
                            "processed_at": utcnow(),
                        },
                    )
            except Exception:
                logger.exception("Failed to record analysis failure user_id=%s", user_id)

    async def _run(self, user_id: str, responses: list[QuestionResponse]) -> None:
        async with self.store.elevated() as repo:
            await repo.upsert_analysis(user_id, {"status": "processing", "error_message": None})

            result = await self.analyzer.analyze_personality(responses)
            if not result.success or result.data is None:
                await self._mark_failed(repo, user_id, result.error or "Failed to analyze personality")
                return

            report = validate_personality_analysis(result.data)
            if not report.valid:
                logger.warning("Invalid analysis result user_id=%s errors=%s", user_id, report.errors)
                await self._mark_failed(
                    repo,
                    user_id,
                    "AI analysis produced invalid results: " + "; ".join(report.errors),
                )
                return

            await repo.upsert_analysis(
                user_id,
                {
                    **result_columns(result.data),
                    "status": "completed",
                    "processed_at": utcnow(),
                    "error_message": None,
                },
            )
            try:
                await repo.set_completion_flags(user_id, ai_analysis_completed=True)
            except SQLAlchemyError:
                logger.warning("Failed to set ai_analysis_completed user_id=%s", user_id, exc_info=True)

        logger.info("Personality analysis completed user_id=%s", user_id)

    async def _mark_failed(self, repo: Repository, user_id: str, message: str) -> None:
        await repo.upsert_analysis(
            user_id,
            {"status": "failed", "error_message": message, "processed_at": utcnow()},
        )
        try:
            await repo.set_completion_flags(user_id, ai_analysis_completed=False)
        except SQLAlchemyError:
            logger.warning("Failed to clear ai_analysis_completed user_id=%s", user_id, exc_info=True)
        logger.info("Personality analysis failed user_id=%s error=%s", user_id, message)

    async def status(self, user_id: str | None) -> ServiceResponse:
        if not user_id:
            return ServiceResponse.error(401, "Unauthorized")

        try:
            async with self.store.restricted(user_id) as repo:
                analysis = await repo.get_analysis(user_id)
        except SQLAlchemyError:
            logger.exception("Failed to fetch personality status user_id=%s", user_id)
            return ServiceResponse.error(500, "Failed to fetch status")

        if analysis is None:
            body: dict[str, Any] = {
                "success": True,
                "status": None,
                "queuedAt": None,
                "processedAt": None,
                "error": None,
                "lastUpdated": None,
                "isReady": False,
            }
        else:
            body = {
                "success": True,
                "status": analysis.status,
                "queuedAt": _iso(analysis.queued_at),
                "processedAt": _iso(analysis.processed_at),
                "error": analysis.error_message,
                "lastUpdated": _iso(analysis.updated_at),
                "isReady": analysis.status == "completed",
            }
        return ServiceResponse(status_code=200, body=body)
