from __future__ import annotations

from fastapi import Header, Request

from talentbridge.config import Settings
from talentbridge.core.match_queue import MatchScoreQueue
from talentbridge.core.match_scorer import MatchScorer
from talentbridge.core.personality import PersonalityAnalyzer
from talentbridge.core.personality_pipeline import PersonalityPipeline
from talentbridge.core.resume_parser import ResumeParser
from talentbridge.core.resume_service import ResumeService
from talentbridge.db.session import Store
from talentbridge.llm.extraction import ExtractionClient


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    """Identity handed over by the upstream auth layer; ``None`` when absent."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_extraction_client(request: Request) -> ExtractionClient:
    return request.app.state.extraction_client


def get_pipeline(request: Request) -> PersonalityPipeline:
    settings = get_settings_from_app(request)
    analyzer = PersonalityAnalyzer(get_extraction_client(request), settings)
    return PersonalityPipeline(get_store(request), analyzer, settings)


def get_resume_service(request: Request) -> ResumeService:
    settings = get_settings_from_app(request)
    parser = ResumeParser(get_extraction_client(request), settings)
    return ResumeService(get_store(request), parser, settings)


def get_match_scorer(request: Request) -> MatchScorer:
    return MatchScorer(get_extraction_client(request), get_settings_from_app(request))


def get_match_queue(request: Request) -> MatchScoreQueue:
    return MatchScoreQueue(get_store(request), get_match_scorer(request), request.app.state.task_queue)
