from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from talentbridge.api.deps import (
    get_current_user_id,
    get_match_queue,
    get_match_scorer,
    get_pipeline,
    get_resume_service,
    get_store,
)
from talentbridge.api.schemas import (
    MatchScoreQueueRequest,
    MatchScoreResponse,
    PersonalityAnalyzeRequest,
    QuestionOut,
    QuestionsResponse,
    ResumeParseRequest,
    SeedQuestionsResponse,
)
from talentbridge.core.match_queue import MatchScoreQueue
from talentbridge.core.match_scorer import MatchScorer
from talentbridge.core.match_service import can_request_match_score, get_job_match_score
from talentbridge.core.personality_pipeline import PersonalityPipeline, load_question_catalogue
from talentbridge.core.questions import DEFAULT_QUESTIONS
from talentbridge.core.resume_service import ResumeService
from talentbridge.core.tasks import ResponseTaskScheduler
from talentbridge.db.seed import seed_default_questions
from talentbridge.db.session import Store
from talentbridge.types import ServiceResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


def render(response: ServiceResponse) -> JSONResponse:
    return JSONResponse(response.body, status_code=response.status_code)


def unauthorized() -> JSONResponse:
    return render(ServiceResponse.error(401, "Unauthorized"))


@router.get("/personality/questions", response_model=QuestionsResponse)
async def list_questions(
    user_id: str | None = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    if not user_id:
        return unauthorized()

    try:
        async with store.restricted(user_id) as repo:
            catalogue = await load_question_catalogue(repo)
    except SQLAlchemyError:
        logger.exception("Failed to load questions; serving defaults")
        catalogue = list(DEFAULT_QUESTIONS)
    return QuestionsResponse(questions=[QuestionOut(**question.as_dict()) for question in catalogue])


@router.post("/personality/questions/seed", response_model=SeedQuestionsResponse)
async def seed_questions(
    user_id: str | None = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    if not user_id:
        return unauthorized()

    try:
        async with store.elevated() as repo:
            inserted, existing = await seed_default_questions(repo)
    except SQLAlchemyError:
        logger.exception("Failed to seed questions")
        return render(ServiceResponse.error(500, "Failed to seed questions"))

    if existing:
        return SeedQuestionsResponse(message="Questions already exist in database", count=existing)
    return SeedQuestionsResponse(message="Default questions seeded successfully", count=inserted)


@router.post("/personality/analyze")
async def analyze_personality(
    payload: PersonalityAnalyzeRequest,
    background_tasks: BackgroundTasks,
    user_id: str | None = Depends(get_current_user_id),
    pipeline: PersonalityPipeline = Depends(get_pipeline),
) -> JSONResponse:
    result = await pipeline.submit(user_id, payload.responses, ResponseTaskScheduler(background_tasks))
    return render(result)


@router.get("/personality/status")
async def personality_status(
    user_id: str | None = Depends(get_current_user_id),
    pipeline: PersonalityPipeline = Depends(get_pipeline),
) -> JSONResponse:
    return render(await pipeline.status(user_id))


@router.post("/resume/parse")
async def parse_resume(
    payload: ResumeParseRequest,
    user_id: str | None = Depends(get_current_user_id),
    service: ResumeService = Depends(get_resume_service),
) -> JSONResponse:
    result = await service.parse_resume(
        user_id,
        payload.raw_text,
        filename=payload.filename,
        file_type=payload.file_type,
        auto_apply=payload.auto_apply,
    )
    return render(result)


@router.get("/jobs/{job_id}/match-score", response_model=MatchScoreResponse)
async def job_match_score(
    job_id: str,
    user_id: str | None = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    scorer: MatchScorer = Depends(get_match_scorer),
):
    if not user_id:
        return unauthorized()

    try:
        async with store.restricted(user_id) as repo:
            allowed = await can_request_match_score(repo, job_id, user_id)
    except SQLAlchemyError:
        logger.exception("Failed to authorize match score lookup job_id=%s", job_id)
        return render(ServiceResponse.error(500, "Failed to calculate match score"))
    if not allowed:
        return render(ServiceResponse.error(403, "Forbidden"))

    async with store.elevated() as repo:
        summary = await get_job_match_score(repo, scorer, job_id, user_id)
    if summary is None:
        return render(ServiceResponse.error(500, "Failed to calculate match score"))
    return MatchScoreResponse(job_id=job_id, **summary.as_dict())


@router.post("/match-scores/queue")
async def queue_match_score(
    payload: MatchScoreQueueRequest,
    user_id: str | None = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    queue: MatchScoreQueue = Depends(get_match_queue),
) -> JSONResponse:
    if not user_id:
        return unauthorized()
    if not payload.job_id:
        return render(ServiceResponse.error(400, "Invalid jobId"))

    try:
        async with store.restricted(user_id) as repo:
            allowed = await can_request_match_score(repo, payload.job_id, user_id)
    except SQLAlchemyError:
        logger.exception("Failed to authorize match score request")
        return render(ServiceResponse.error(500, "Failed to enqueue AI scoring"))
    if not allowed:
        return render(ServiceResponse.error(403, "Forbidden"))

    queue.enqueue(payload.job_id, user_id)
    return JSONResponse({"success": True})
