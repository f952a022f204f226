from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
import uvicorn

from talentbridge.api.app import create_app
from talentbridge.config import get_settings
from talentbridge.core.match_scorer import MatchScorer
from talentbridge.core.match_service import calculate_match_score_for_job_user_with_client
from talentbridge.core.personality import PersonalityAnalyzer
from talentbridge.core.personality_pipeline import PersonalityPipeline, load_question_catalogue
from talentbridge.core.resume_parser import ResumeParser
from talentbridge.core.resume_service import ResumeService
from talentbridge.db.init import init_database
from talentbridge.db.session import Store
from talentbridge.errors import MatchScoreError, RecordNotFound
from talentbridge.llm.extraction import StructuredExtractionClient
from talentbridge.logging_config import configure_logging

app = typer.Typer(help="TalentBridge CLI")

T = TypeVar("T")


def run_with_store(operation: Callable[[Store], Awaitable[T]]) -> T:
    """Open the store, make sure the schema exists, run ``operation`` and close."""
    configure_logging()

    async def _main() -> T:
        store = Store(get_settings())
        try:
            await init_database(store)
            return await operation(store)
        finally:
            await store.dispose()

    return asyncio.run(_main())


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@app.command("init")
def init_cmd() -> None:
    """Initialize database, directories, and seed the default questionnaire."""
    configure_logging()

    async def _init() -> dict[str, int]:
        store = Store(get_settings())
        try:
            return await init_database(store)
        finally:
            await store.dispose()

    result = asyncio.run(_init())
    echo_json({"ok": True, **result})


@app.command("questions")
def questions_cmd() -> None:
    """List the active personality questionnaire."""

    async def _list(store: Store) -> list[dict[str, object]]:
        async with store.elevated() as repo:
            catalogue = await load_question_catalogue(repo)
        return [question.as_dict() for question in catalogue]

    echo_json(run_with_store(_list))


@app.command("resume-parse")
def resume_parse(
    user_id: str = typer.Option(..., "--user-id"),
    file: Path = typer.Option(..., "--file", exists=True, readable=True),
    auto_apply: bool = typer.Option(True, "--auto-apply/--no-auto-apply"),
) -> None:
    """Parse a plain-text resume for a user and optionally apply it to their profile."""
    raw_text = file.read_text(encoding="utf-8")
    settings = get_settings()

    async def _parse(store: Store) -> Any:
        parser = ResumeParser(StructuredExtractionClient(settings), settings)
        service = ResumeService(store, parser, settings)
        return await service.parse_resume(user_id, raw_text, filename=file.name, auto_apply=auto_apply)

    response = run_with_store(_parse)
    echo_json(response.body)
    if response.status_code >= 400:
        raise typer.Exit(code=1)


@app.command("match-score")
def match_score(
    job_id: str = typer.Option(..., "--job-id"),
    user_id: str = typer.Option(..., "--user-id"),
) -> None:
    """Score a candidate against a job and store the result."""
    settings = get_settings()

    async def _score(store: Store) -> dict[str, Any]:
        scorer = MatchScorer(StructuredExtractionClient(settings), settings)
        async with store.elevated() as repo:
            row = await calculate_match_score_for_job_user_with_client(repo, scorer, job_id, user_id)
        return {
            "job_id": row.job_id,
            "candidate_id": row.candidate_id,
            "overall_score": row.overall_score,
            "skills_match_score": row.skills_match_score,
            "experience_match_score": row.experience_match_score,
            "culture_fit_score": row.culture_fit_score,
            "personality_match_score": row.personality_match_score,
            "match_explanation": row.match_explanation,
        }

    try:
        echo_json(run_with_store(_score))
    except (RecordNotFound, MatchScoreError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


@app.command("personality-status")
def personality_status(user_id: str = typer.Option(..., "--user-id")) -> None:
    """Show where a user's personality analysis stands."""
    settings = get_settings()

    async def _status(store: Store) -> Any:
        analyzer = PersonalityAnalyzer(StructuredExtractionClient(settings), settings)
        return await PersonalityPipeline(store, analyzer, settings).status(user_id)

    echo_json(run_with_store(_status).body)


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    settings = get_settings()
    app_instance = create_app(settings)
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
