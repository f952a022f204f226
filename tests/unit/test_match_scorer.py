from __future__ import annotations

import asyncio

from talentbridge.core.match_scorer import MatchScorer, build_candidate_summary, build_job_summary
from talentbridge.types import (
    AIResult,
    CandidateData,
    CandidateExperience,
    CandidatePersonality,
    CandidateSkill,
    JobData,
)


def _job() -> JobData:
    return JobData(
        title="Backend Engineer",
        description="Build APIs",
        requirements="3+ years Python",
        responsibilities="Own services",
        experience_level="mid",
        job_type="full_time",
        location="Berlin",
        remote_allowed=True,
        company_culture="Innovative culture",
        required_skills=["Python", "SQL"],
        preferred_skills=["Kubernetes"],
    )


def _candidate(name: str = "Jane Doe", *, personality: bool = True) -> CandidateData:
    return CandidateData(
        full_name=name,
        current_job_title="Engineer",
        skills=[CandidateSkill(name="Python", proficiency_level=5)],
        experience=[CandidateExperience(job_title="Engineer", company_name="Acme", years=3, description="APIs")],
        personality_analysis=CandidatePersonality(analytical_score=85, strengths=["focus"]) if personality else None,
    )


def test_job_summary_lists_job_fields() -> None:
    summary = build_job_summary(_job())

    assert "Title: Backend Engineer" in summary
    assert "Location: Berlin (Remote allowed)" in summary
    assert "Required Skills: Python, SQL" in summary
    assert "Company Culture: Innovative culture" in summary


def test_job_summary_marks_missing_culture() -> None:
    job = _job().model_copy(update={"company_culture": "", "remote_allowed": False})
    summary = build_job_summary(job)

    assert "Company Culture: Not specified" in summary
    assert "Location: Berlin\n" in summary


def test_candidate_summary_includes_personality_when_present() -> None:
    summary = build_candidate_summary(_candidate())

    assert "Name: Jane Doe" in summary
    assert "Total Experience: Not specified years" in summary
    assert "Python (Level 5/5)" in summary
    assert "Engineer at Acme (3 years): APIs" in summary
    assert "- Analytical Score: 85/100" in summary
    assert "- Creative Score: 75/100" in summary
    assert "Remote Preference: No" in summary


def test_candidate_summary_without_personality() -> None:
    summary = build_candidate_summary(_candidate(personality=False))

    assert "Personality analysis not available" in summary


def test_calculate_match_score_embeds_both_summaries(settings, scripted_client, match_payload) -> None:
    client = scripted_client(match_payload)
    scorer = MatchScorer(client, settings)

    result = asyncio.run(scorer.calculate_match_score(_job(), _candidate()))

    assert result.success is True
    assert result.data.overall_score == 82
    assert result.data.strengths == "Python depth; API experience"
    payload = client.calls[0]["payload"]
    assert "JOB DETAILS:" in payload
    assert "CANDIDATE PROFILE:" in payload


def test_batch_scoring_pauses_between_batches(settings, scripted_client, match_payload, sleep_recorder) -> None:
    settings = settings.model_copy(update={"match_score_batch_delay_sec": 1.0})
    client = scripted_client(match_payload)
    scorer = MatchScorer(client, settings, sleep=sleep_recorder)
    candidates = [_candidate(f"Candidate {index}") for index in range(7)]

    results = asyncio.run(scorer.calculate_batch_match_scores(_job(), candidates))

    assert [candidate.full_name for candidate, _ in results] == [c.full_name for c in candidates]
    assert all(result.success for _, result in results)
    assert sleep_recorder.delays == [1.0, 1.0]
    assert len(client.calls) == 7


def test_quick_score_falls_back_to_fifty(settings, scripted_client) -> None:
    scorer = MatchScorer(scripted_client(AIResult.fail("down")), settings)
    score = asyncio.run(
        scorer.get_quick_match_score(
            job_title="Backend Engineer",
            job_requirements="Python",
            candidate_skills=["Python"],
            candidate_experience="3 years",
        )
    )
    assert score == 50.0

    scorer = MatchScorer(scripted_client({"score": 91}), settings)
    score = asyncio.run(
        scorer.get_quick_match_score(
            job_title="Backend Engineer",
            job_requirements="Python",
            candidate_skills=["Python"],
            candidate_experience="3 years",
        )
    )
    assert score == 91
