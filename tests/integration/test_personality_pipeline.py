from __future__ import annotations

import asyncio

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from talentbridge.core.personality import PersonalityAnalyzer
from talentbridge.core.personality_pipeline import INTERNAL_ERROR_MESSAGE, PersonalityPipeline
from talentbridge.core.questions import DEFAULT_QUESTIONS, map_question_responses
from talentbridge.core.tasks import BackgroundTaskQueue
from talentbridge.db.models import PersonalityAnalysis
from talentbridge.db.repositories import Repository
from talentbridge.db.session import Store
from talentbridge.types import AIResult

ANSWERS = {"q1": "I enjoy structured analytical work", "q2": "I thrive in collaborative teams"}


async def _seed_user(store: Store) -> str:
    async with store.elevated() as repo:
        user = await repo.create_user(email="candidate@example.com", full_name="Candidate")
        await repo.create_or_update_profile(user.id, {"headline": "Engineer"})
        return user.id


def _pipeline(store: Store, settings, client, scheduler=None) -> PersonalityPipeline:
    return PersonalityPipeline(store, PersonalityAnalyzer(client, settings), settings, scheduler)


def _mapped_answers():
    return map_question_responses(ANSWERS, DEFAULT_QUESTIONS)


async def _store_error(*args, **kwargs):
    raise OperationalError("statement", {}, Exception("database is locked"))


async def _analysis_rows(store: Store) -> int:
    async with store.session() as session:
        return await session.scalar(select(func.count()).select_from(PersonalityAnalysis))


def test_submit_requires_identity_and_responses(with_store, settings, scripted_client) -> None:
    async def scenario(store: Store) -> None:
        pipeline = _pipeline(store, settings, scripted_client())

        unauthorized = await pipeline.submit(None, ANSWERS)
        assert unauthorized.status_code == 401
        assert unauthorized.body == {"success": False, "error": "Unauthorized"}

        user_id = await _seed_user(store)
        for empty in (None, {}):
            response = await pipeline.submit(user_id, empty)
            assert response.status_code == 400
            assert response.body["error"] == "No responses provided"

        status = await pipeline.status(None)
        assert status.status_code == 401

    with_store(scenario)


def test_submit_queues_and_records_responses(with_store, settings, scripted_client) -> None:
    client = scripted_client()

    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, client)

        response = await pipeline.submit(user_id, {**ANSWERS, "stale": "unknown question"})
        assert response.status_code == 200
        assert response.body["success"] is True
        assert response.body["status"] == "queued"

        async with store.elevated() as repo:
            analysis = await repo.get_analysis(user_id)
            assert analysis.status == "queued"
            assert analysis.queued_at is not None
            assert analysis.processed_at is None

            rows = await repo.list_responses(user_id)
            assert [row.question_id for row in rows] == ["q1", "q2", "stale"]
            assert rows[2].question_text == "Question not found"
            assert rows[2].category == "general"

            user = await repo.get_user(user_id)
            profile = await repo.get_profile(user_id)
            assert user.personality_assessment_completed is True
            assert user.ai_analysis_completed is False
            assert profile.personality_assessment_completed is True

        status = await pipeline.status(user_id)
        assert status.body["status"] == "queued"
        assert status.body["isReady"] is False

    with_store(scenario)
    assert client.calls == []


def test_resubmission_restarts_at_queued(with_store, settings, scripted_client, personality_payload) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client(personality_payload))

        await pipeline.submit(user_id, ANSWERS)
        await pipeline.process(user_id, _mapped_answers())
        assert (await pipeline.status(user_id)).body["status"] == "completed"

        await pipeline.submit(user_id, {"q3": "Started a migration project"})

        status = await pipeline.status(user_id)
        assert status.body["status"] == "queued"
        assert status.body["processedAt"] is None
        assert status.body["error"] is None
        async with store.elevated() as repo:
            rows = await repo.list_responses(user_id)
            user = await repo.get_user(user_id)
        assert [row.question_id for row in rows] == ["q3"]
        assert user.ai_analysis_completed is False

    with_store(scenario)


def test_concurrent_queueing_keeps_one_analysis_row(with_store, settings) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)

        async def queue_once() -> str:
            async with store.restricted(user_id) as repo:
                return (await repo.mark_analysis_queued(user_id)).id

        ids = await asyncio.gather(*(queue_once() for _ in range(4)))

        assert len(set(ids)) == 1
        assert await _analysis_rows(store) == 1
        async with store.elevated() as repo:
            assert (await repo.get_analysis(user_id)).status == "queued"

    with_store(scenario)


def test_overlapping_submissions_end_with_one_terminal_analysis(
    with_store, settings, scripted_client, personality_payload
) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client(personality_payload))

        async def submit_and_process() -> int:
            response = await pipeline.submit(user_id, ANSWERS)
            await pipeline.process(user_id, _mapped_answers())
            return response.status_code

        codes = await asyncio.gather(*(submit_and_process() for _ in range(4)))

        assert codes == [200, 200, 200, 200]
        assert await _analysis_rows(store) == 1
        assert (await pipeline.status(user_id)).body["status"] == "completed"

    with_store(scenario)


def test_overlapping_runs_update_the_same_analysis(with_store, settings, scripted_client, personality_payload) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client(personality_payload))

        await asyncio.gather(pipeline.process(user_id, _mapped_answers()), pipeline.process(user_id, _mapped_answers()))

        assert await _analysis_rows(store) == 1
        status = await pipeline.status(user_id)
        assert status.body["status"] == "completed"
        assert status.body["isReady"] is True

    with_store(scenario)


def test_process_success_completes_analysis(with_store, settings, scripted_client, personality_payload) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client(personality_payload))
        await pipeline.submit(user_id, ANSWERS)

        await pipeline.process(user_id, _mapped_answers())

        status = await pipeline.status(user_id)
        assert status.body["status"] == "completed"
        assert status.body["isReady"] is True
        assert status.body["error"] is None
        assert status.body["processedAt"] is not None

        async with store.elevated() as repo:
            analysis = await repo.get_analysis(user_id)
            assert analysis.analytical_score == 85
            assert analysis.teamwork_score == 88
            assert analysis.ai_confidence_score == 0.85
            assert analysis.trait_scores == {"resilience": 77}
            user = await repo.get_user(user_id)
            profile = await repo.get_profile(user_id)
            assert user.ai_analysis_completed is True
            assert profile.ai_analysis_completed is True

    with_store(scenario)


def test_upstream_failure_ends_failed(with_store, settings, scripted_client) -> None:
    client = scripted_client(AIResult.fail("AI generation failed: 503"))

    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, client)
        await pipeline.submit(user_id, ANSWERS)

        await pipeline.process(user_id, _mapped_answers())

        status = await pipeline.status(user_id)
        assert status.body["status"] == "failed"
        assert status.body["isReady"] is False
        assert status.body["error"] == "Failed after 3 retries: AI generation failed: 503"
        assert status.body["processedAt"] is not None
        async with store.elevated() as repo:
            assert (await repo.get_user(user_id)).ai_analysis_completed is False

    with_store(scenario)
    assert len(client.calls) == 3


def test_invalid_ai_output_ends_failed(with_store, settings, scripted_client, personality_payload) -> None:
    personality_payload["analytical_score"] = 140

    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client(personality_payload))
        await pipeline.submit(user_id, ANSWERS)

        await pipeline.process(user_id, _mapped_answers())

        status = await pipeline.status(user_id)
        assert status.body["status"] == "failed"
        assert "analytical_score" in status.body["error"]

    with_store(scenario)


def test_unexpected_exception_is_contained(with_store, settings, scripted_client) -> None:
    client = scripted_client(RuntimeError("model client crashed"))

    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, client)
        await pipeline.submit(user_id, ANSWERS)

        await pipeline.process(user_id, _mapped_answers())

        status = await pipeline.status(user_id)
        assert status.body["status"] == "failed"
        assert status.body["error"] == INTERNAL_ERROR_MESSAGE

    with_store(scenario)


def test_process_never_raises_even_when_store_is_down(with_store, settings, scripted_client, monkeypatch) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client())
        monkeypatch.setattr(Repository, "upsert_analysis", _store_error)

        await pipeline.process(user_id, _mapped_answers())

    with_store(scenario)


def test_raw_response_insert_failure_is_not_fatal(with_store, settings, scripted_client, monkeypatch) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client())
        monkeypatch.setattr(Repository, "insert_responses", _store_error)

        response = await pipeline.submit(user_id, ANSWERS)

        assert response.status_code == 200
        assert (await pipeline.status(user_id)).body["status"] == "queued"

    with_store(scenario)


def test_delete_failure_is_fatal(with_store, settings, scripted_client, monkeypatch) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client())
        monkeypatch.setattr(Repository, "delete_responses", _store_error)

        response = await pipeline.submit(user_id, ANSWERS)

        assert response.status_code == 500
        assert response.body == {"success": False, "error": "Failed to reset previous test responses"}

    with_store(scenario)


def test_queue_upsert_failure_is_fatal(with_store, settings, scripted_client, monkeypatch) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client())
        monkeypatch.setattr(Repository, "upsert_analysis", _store_error)

        response = await pipeline.submit(user_id, ANSWERS)

        assert response.status_code == 500
        assert response.body["success"] is False

    with_store(scenario)


def test_completion_flag_failure_is_not_fatal(with_store, settings, scripted_client, monkeypatch) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client())
        monkeypatch.setattr(Repository, "set_completion_flags", _store_error)

        response = await pipeline.submit(user_id, ANSWERS)

        assert response.status_code == 200

    with_store(scenario)


def test_status_store_failure_is_500(with_store, settings, scripted_client, monkeypatch) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, settings, scripted_client())
        monkeypatch.setattr(Repository, "get_analysis", _store_error)

        response = await pipeline.status(user_id)

        assert response.status_code == 500
        assert response.body == {"success": False, "error": "Failed to fetch status"}

    with_store(scenario)


def test_status_without_submission_is_empty(with_store, settings, scripted_client) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        response = await _pipeline(store, settings, scripted_client()).status(user_id)

        assert response.body["status"] is None
        assert response.body["isReady"] is False

    with_store(scenario)


def test_inline_mode_processes_before_returning(
    with_store, inline_settings, scripted_client, personality_payload
) -> None:
    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        pipeline = _pipeline(store, inline_settings, scripted_client(personality_payload))

        response = await pipeline.submit(user_id, ANSWERS)

        assert response.body["status"] == "queued"
        assert (await pipeline.status(user_id)).body["status"] == "completed"

    with_store(scenario, store_settings=inline_settings)


def test_deferred_mode_hands_off_to_scheduler(with_store, settings, scripted_client, personality_payload) -> None:
    production = settings.model_copy(update={"app_env": "development"})

    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        queue = BackgroundTaskQueue()
        pipeline = _pipeline(store, production, scripted_client(personality_payload), queue)

        response = await pipeline.submit(user_id, ANSWERS)
        assert response.status_code == 200
        assert queue.pending == 1

        await queue.drain()
        await asyncio.sleep(0)
        assert (await pipeline.status(user_id)).body["status"] == "completed"

    with_store(scenario, store_settings=production)


def test_test_mode_suppresses_background_processing(with_store, settings, scripted_client) -> None:
    client = scripted_client()

    async def scenario(store: Store) -> None:
        user_id = await _seed_user(store)
        queue = BackgroundTaskQueue()
        pipeline = _pipeline(store, settings, client, queue)

        await pipeline.submit(user_id, ANSWERS)

        assert queue.pending == 0
        assert (await pipeline.status(user_id)).body["status"] == "queued"

    with_store(scenario)
    assert client.calls == []
