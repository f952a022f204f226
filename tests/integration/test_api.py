from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from talentbridge.api.app import create_app
from talentbridge.db.repositories import Repository
from talentbridge.db.session import Store


async def _seed_listing(store: Store) -> dict[str, str]:
    async with store.elevated() as repo:
        employer = await repo.create_user(email="hr@acme.example", full_name="Acme HR", role="employer")
        seeker = await repo.create_user(email="jane@example.com", full_name="Jane Doe", skills=["Python"])
        published = await repo.create_job(
            owner_id=employer.id, title="Backend Engineer", required_skills=["Python"], status="published"
        )
        draft = await repo.create_job(owner_id=employer.id, title="Staff Engineer")
        return {"seeker": seeker.id, "employer": employer.id, "published": published.id, "draft": draft.id}


async def _match_score(store: Store, job_id: str, user_id: str):
    async with store.elevated() as repo:
        return await repo.get_match_score(job_id, user_id)


def _as(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


def test_health(settings, scripted_client) -> None:
    with TestClient(create_app(settings, extraction_client=scripted_client())) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_routes_require_identity(settings, scripted_client) -> None:
    with TestClient(create_app(settings, extraction_client=scripted_client())) as client:
        responses = [
            client.get("/api/personality/questions"),
            client.post("/api/personality/questions/seed"),
            client.post("/api/personality/analyze", json={"responses": {"q1": "answer"}}),
            client.get("/api/personality/status"),
            client.post("/api/resume/parse", json={"raw_text": "x" * 200}),
            client.get("/api/jobs/some-job/match-score"),
            client.post("/api/match-scores/queue", json={"jobId": "some-job"}),
            client.get("/api/personality/status", headers=_as("   ")),
        ]

    for response in responses:
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Unauthorized"}


def test_startup_seeds_questions(settings, scripted_client) -> None:
    with TestClient(create_app(settings, extraction_client=scripted_client())) as client:
        listed = client.get("/api/personality/questions", headers=_as("user-1"))
        seeded = client.post("/api/personality/questions/seed", headers=_as("user-1"))

    questions = listed.json()["questions"]
    assert listed.status_code == 200
    assert len(questions) == 7
    assert questions[0]["order_index"] == 1
    assert seeded.json() == {"success": True, "message": "Questions already exist in database", "count": 7}


def test_analyze_queues_and_reports_status(settings, scripted_client, with_store) -> None:
    client_fake = scripted_client()
    with TestClient(create_app(settings, extraction_client=client_fake)) as client:
        user_id = with_store(_seed_listing)["seeker"]

        empty = client.post("/api/personality/analyze", json={"responses": {}}, headers=_as(user_id))
        queued = client.post(
            "/api/personality/analyze",
            json={"responses": {"q1": "I like data", "q2": "I like people"}},
            headers=_as(user_id),
        )
        status = client.get("/api/personality/status", headers=_as(user_id))

    assert empty.status_code == 400
    assert empty.json()["error"] == "No responses provided"
    assert queued.status_code == 200
    assert queued.json() == {"success": True, "status": "queued", "message": "Personality analysis queued"}
    assert status.json()["status"] == "queued"
    assert status.json()["isReady"] is False
    assert client_fake.calls == []


def test_resume_parse_route(settings, scripted_client, resume_payload, resume_text, with_store) -> None:
    with TestClient(create_app(settings, extraction_client=scripted_client(resume_payload))) as client:
        user_id = with_store(_seed_listing)["seeker"]

        too_short = client.post("/api/resume/parse", json={"raw_text": "tiny"}, headers=_as(user_id))
        parsed = client.post(
            "/api/resume/parse",
            json={"raw_text": resume_text, "filename": "cv.txt"},
            headers=_as(user_id),
        )

    assert too_short.status_code == 400
    assert parsed.status_code == 200
    body = parsed.json()
    assert body["success"] is True
    assert body["confidence"] == 0.9
    assert "skills (+1)" in body["fieldsUpdated"]


def test_job_match_score_route(settings, scripted_client, match_payload, with_store) -> None:
    with TestClient(create_app(settings, extraction_client=scripted_client(match_payload))) as client:
        listing = with_store(_seed_listing)

        allowed = client.get(f"/api/jobs/{listing['published']}/match-score", headers=_as(listing["seeker"]))
        forbidden = client.get(f"/api/jobs/{listing['draft']}/match-score", headers=_as(listing["seeker"]))
        not_a_seeker = client.get(f"/api/jobs/{listing['draft']}/match-score", headers=_as(listing["employer"]))

    assert allowed.status_code == 200
    assert allowed.json() == {
        "success": True,
        "job_id": listing["published"],
        "score": 82.0,
        "explanation": "Strong backend overlap.",
        "confidence": 0.8,
    }
    assert forbidden.status_code == 403
    assert not_a_seeker.status_code == 500
    assert not_a_seeker.json()["error"] == "Failed to calculate match score"


def test_match_score_queue_route(settings, scripted_client, match_payload, with_store) -> None:
    with TestClient(create_app(settings, extraction_client=scripted_client(match_payload))) as client:
        listing = with_store(_seed_listing)
        seeker = _as(listing["seeker"])

        missing = client.post("/api/match-scores/queue", json={}, headers=seeker)
        forbidden = client.post("/api/match-scores/queue", json={"jobId": listing["draft"]}, headers=seeker)
        accepted = client.post("/api/match-scores/queue", json={"jobId": listing["published"]}, headers=seeker)

    assert missing.status_code == 400
    assert missing.json()["error"] == "Invalid jobId"
    assert forbidden.status_code == 403
    assert accepted.status_code == 200
    assert accepted.json() == {"success": True}

    row = with_store(lambda store: _match_score(store, listing["published"], listing["seeker"]))
    assert row is not None
    assert row.overall_score == 82


def test_job_match_score_store_failure_is_structured(settings, scripted_client, with_store, monkeypatch) -> None:
    async def locked(*args, **kwargs):
        raise OperationalError("statement", {}, Exception("database is locked"))

    with TestClient(create_app(settings, extraction_client=scripted_client())) as client:
        listing = with_store(_seed_listing)
        monkeypatch.setattr(Repository, "get_application", locked)

        response = client.get(f"/api/jobs/{listing['published']}/match-score", headers=_as(listing["seeker"]))

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to calculate match score"}
