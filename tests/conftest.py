from __future__ import annotations

import asyncio
import copy
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest

from talentbridge.config import Settings
from talentbridge.db.session import Store
from talentbridge.types import AIResult

PERSONALITY_PAYLOAD: dict[str, Any] = {
    "problem_solving_style": "Breaks problems into structured steps and checks assumptions with data.",
    "initiative_level": "High; starts improvements without waiting to be asked.",
    "work_preference": "Collaborative",
    "motivational_factors": "Shipping work that measurably helps the team.",
    "growth_areas": "Delegation",
    "communication_style": "Direct and clear",
    "leadership_potential": "Emerging team lead",
    "analytical_score": 85,
    "creative_score": 70,
    "leadership_score": 80,
    "teamwork_score": 88,
    "trait_scores": {"resilience": 77},
    "personality_summary": "A structured, team-minded problem solver.",
    "strengths": ["analysis", "collaboration"],
    "development_areas": ["delegation"],
    "ideal_work_environment": "Small product team",
    "confidence_score": 0.85,
    "analysis_notes": "Consistent answers.",
}

RESUME_PAYLOAD: dict[str, Any] = {
    "personal_info": {
        "full_name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "+1 555 0100",
        "location": "Berlin",
        "linkedin_url": "linkedin.com/in/janedoe",
        "github_url": "https://github.com/janedoe",
    },
    "professional_summary": "Backend engineer.",
    "experience": [
        {
            "job_title": "Backend Engineer",
            "company_name": "Acme",
            "start_date": "2021-03",
            "end_date": None,
            "is_current": False,
            "description": "APIs and data pipelines",
        },
        {
            "job_title": "Intern",
            "company_name": "Globex",
            "start_date": "2019-06",
            "end_date": "2019-09",
            "is_current": False,
            "description": "Testing",
            "achievements": ["Automated regression suite"],
        },
    ],
    "education": [
        {
            "institution_name": "TU Berlin",
            "degree": "BSc",
            "field_of_study": "Computer Science",
            "start_date": "2016-10",
            "end_date": "2020-07",
        }
    ],
    "skills": [
        {"name": "Python", "category": "technical", "proficiency_level": 5},
        {"name": "SQL", "category": "technical", "proficiency_level": 4},
    ],
    "confidence_scores": {
        "overall": 0.9,
        "personal_info": 0.95,
        "experience": 0.9,
        "education": 0.85,
        "skills": 0.8,
    },
}

MATCH_PAYLOAD: dict[str, Any] = {
    "overall_score": 82,
    "skills_match_score": 90,
    "experience_match_score": 75,
    "culture_fit_score": 80,
    "personality_match_score": 84,
    "match_explanation": "Strong backend overlap.",
    "strengths": ["Python depth", "API experience"],
    "potential_concerns": "Limited leadership experience.",
    "confidence_score": 0.8,
    "recommendations": ["Discuss team size"],
}

RESUME_TEXT = (
    "Jane Doe - jane@example.com - Berlin\n"
    "Backend Engineer at Acme since 2021, building APIs and data pipelines in Python and SQL.\n"
    "BSc Computer Science, TU Berlin, 2020.\n"
)


class ScriptedExtractionClient:
    """Stands in for the model: replays queued replies and records every call.

    A reply is a payload dict, an ``AIResult`` or an exception to raise. The
    last reply repeats once the queue runs dry.
    """

    def __init__(self, *replies: Any):
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def extract(self, *, instruction, payload, schema, model_type):
        self.calls.append({"instruction": instruction, "payload": payload, "schema": schema})
        if not self.replies:
            return AIResult.fail("no scripted reply")
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, AIResult):
            return reply
        data = copy.deepcopy(reply)
        return AIResult.ok(model_type.model_validate(data), confidence=data.get("confidence_score", 0.85))


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        app_env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'talentbridge.db'}",
        data_dir=tmp_path / "data",
        openai_api_key="",
        local_llm_enabled=False,
        ai_retry_attempts=3,
        ai_retry_base_delay_sec=0.0,
        match_score_batch_delay_sec=0.0,
        personality_processing_mode="deferred",
    )


@pytest.fixture
def inline_settings(settings: Settings) -> Settings:
    return settings.model_copy(update={"personality_processing_mode": "inline"})


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def personality_payload() -> dict[str, Any]:
    return copy.deepcopy(PERSONALITY_PAYLOAD)


@pytest.fixture
def resume_payload() -> dict[str, Any]:
    return copy.deepcopy(RESUME_PAYLOAD)


@pytest.fixture
def match_payload() -> dict[str, Any]:
    return copy.deepcopy(MATCH_PAYLOAD)


@pytest.fixture
def resume_text() -> str:
    return RESUME_TEXT


@pytest.fixture
def scripted_client() -> type[ScriptedExtractionClient]:
    return ScriptedExtractionClient


@pytest.fixture
def with_store(settings: Settings) -> Callable[[Callable[[Store], Awaitable[Any]]], Any]:
    """Run ``scenario(store)`` against a fresh schema on its own event loop."""

    def _run(scenario: Callable[[Store], Awaitable[Any]], *, store_settings: Settings | None = None) -> Any:
        async def _main() -> Any:
            store = Store(store_settings or settings)
            await store.create_all()
            try:
                return await scenario(store)
            finally:
                await store.dispose()

        return asyncio.run(_main())

    return _run
