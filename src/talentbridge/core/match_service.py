from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from talentbridge.core.match_scorer import MatchScorer
from talentbridge.db.models import Company, Job, MatchScore, PersonalityAnalysis, User
from talentbridge.db.repositories import Repository
from talentbridge.errors import MatchScoreError, RecordNotFound
from talentbridge.types import (
    CandidateData,
    CandidateEducation,
    CandidateExperience,
    CandidatePersonality,
    CandidateSkill,
    JobData,
)

logger = logging.getLogger(__name__)

PENDING_SCORE = 75.0
PENDING_EXPLANATION = "Match score pending AI analysis"
PENDING_CONFIDENCE = 0.5


@dataclass(slots=True)
class MatchScoreSummary:
    score: float
    explanation: str | None = None
    confidence: float | None = None

    @classmethod
    def from_row(cls, row: MatchScore) -> MatchScoreSummary:
        return cls(
            score=row.overall_score,
            explanation=row.match_explanation or None,
            confidence=row.ai_confidence_score,
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def job_data_from(job: Job, company: Company | None) -> JobData:
    culture = ""
    if company is not None:
        culture = company.company_culture or company.description or ""
    return JobData(
        title=job.title,
        description=job.description,
        requirements=job.requirements,
        responsibilities=job.responsibilities,
        experience_level=job.experience_level,
        job_type=job.job_type,
        location=job.location,
        remote_allowed=job.remote_allowed,
        company_culture=culture,
        required_skills=list(job.required_skills or []),
        preferred_skills=list(job.preferred_skills or []),
    )


def _proficiency(level: Any) -> int:
    try:
        return int(level) or 3
    except (TypeError, ValueError):
        return 3


def _candidate_skills(raw: list[Any]) -> list[CandidateSkill]:
    skills: list[CandidateSkill] = []
    seen: set[str] = set()
    for item in raw or []:
        if isinstance(item, str):
            name, level = item, None
        elif isinstance(item, dict):
            name, level = str(item.get("name") or ""), item.get("proficiency_level")
        else:
            continue
        key = name.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        skills.append(CandidateSkill(name=name.strip(), proficiency_level=_proficiency(level)))
    return skills


def _candidate_experience(raw: list[dict[str, Any]]) -> list[CandidateExperience]:
    return [
        CandidateExperience(
            job_title=str(item.get("job_title") or item.get("position") or ""),
            company_name=str(item.get("company_name") or item.get("company") or ""),
            description=str(item.get("description") or ""),
            years=item.get("years"),
        )
        for item in raw or []
        if isinstance(item, dict)
    ]


def _candidate_education(raw: list[dict[str, Any]]) -> list[CandidateEducation]:
    return [
        CandidateEducation(
            degree=str(item.get("degree") or ""),
            field_of_study=str(item.get("field_of_study") or ""),
            institution_name=str(item.get("institution_name") or item.get("institution") or ""),
        )
        for item in raw or []
        if isinstance(item, dict)
    ]


def candidate_data_from(user: User, analysis: PersonalityAnalysis | None) -> CandidateData:
    personality = None
    if analysis is not None:
        personality = CandidatePersonality(
            problem_solving_style=analysis.problem_solving_style or "",
            work_preference=analysis.work_preference or "",
            analytical_score=analysis.analytical_score if analysis.analytical_score is not None else 75,
            creative_score=analysis.creative_score if analysis.creative_score is not None else 75,
            leadership_score=analysis.leadership_score if analysis.leadership_score is not None else 75,
            teamwork_score=analysis.teamwork_score if analysis.teamwork_score is not None else 75,
            strengths=list(analysis.strengths or []),
        )

    return CandidateData(
        full_name=user.full_name,
        experience_years=user.experience_years,
        current_job_title=user.current_job_title,
        skills=_candidate_skills(user.skills),
        experience=_candidate_experience(user.experiences),
        education=_candidate_education(user.educations),
        personality_analysis=personality,
        preferred_location=user.preferred_location or user.location,
        remote_preference=user.remote_preference,
    )


async def calculate_match_score_for_job_user_with_client(
    repo: Repository,
    scorer: MatchScorer,
    job_id: str,
    user_id: str,
) -> MatchScore:
    """Score one (job, candidate) pair and upsert the cached row.

    ``repo`` is expected to be elevated: it reads the job, the employer's
    company and the candidate's completed analysis regardless of ownership.
    """
    job = await repo.get_job(job_id)
    if job is None:
        raise RecordNotFound(f"job {job_id} not found")

    user = await repo.get_user(user_id)
    if user is None:
        raise RecordNotFound(f"user {user_id} not found")
    if user.role != "job_seeker":
        raise RecordNotFound(f"user {user_id} is not a job seeker")

    company = await repo.get_company(job.company_id) if job.company_id else None
    analysis = await repo.get_completed_analysis(user_id)

    result = await scorer.calculate_match_score(job_data_from(job, company), candidate_data_from(user, analysis))
    if not result.success or result.data is None:
        raise MatchScoreError(result.error or "Failed to calculate match score")

    match = result.data
    try:
        row = await repo.upsert_match_score(
            job_id,
            user_id,
            {
                "overall_score": match.overall_score,
                "skills_match_score": match.skills_match_score,
                "experience_match_score": match.experience_match_score,
                "culture_fit_score": match.culture_fit_score,
                "personality_match_score": match.personality_match_score,
                "match_explanation": match.match_explanation,
                "strengths": match.strengths,
                "potential_concerns": match.potential_concerns,
                "recommendations": list(match.recommendations),
                "ai_confidence_score": result.confidence,
            },
        )
    except SQLAlchemyError as exc:
        raise MatchScoreError(f"Failed to save match score: {exc}") from exc

    logger.info("Match score saved job_id=%s user_id=%s score=%s", job_id, user_id, row.overall_score)
    return row


async def get_job_match_score(
    repo: Repository,
    scorer: MatchScorer,
    job_id: str,
    user_id: str,
) -> MatchScoreSummary | None:
    """Return the cached score, computing it on a miss. ``None`` when scoring fails."""
    try:
        cached = await repo.get_match_score(job_id, user_id)
        if cached is not None:
            return MatchScoreSummary.from_row(cached)

        row = await calculate_match_score_for_job_user_with_client(repo, scorer, job_id, user_id)
    except (RecordNotFound, MatchScoreError, SQLAlchemyError) as exc:
        logger.warning("Match score unavailable job_id=%s user_id=%s: %s", job_id, user_id, exc)
        return None
    return MatchScoreSummary.from_row(row)


async def get_batch_job_match_scores(
    repo: Repository,
    job_ids: list[str],
    user_id: str,
) -> dict[str, MatchScoreSummary]:
    """Cached scores for a listing; jobs without one get a pending placeholder."""
    scores: dict[str, MatchScoreSummary] = {}
    for job_id in job_ids:
        cached = await repo.get_match_score(job_id, user_id)
        if cached is not None:
            scores[job_id] = MatchScoreSummary.from_row(cached)
        else:
            scores[job_id] = MatchScoreSummary(
                score=PENDING_SCORE,
                explanation=PENDING_EXPLANATION,
                confidence=PENDING_CONFIDENCE,
            )
    return scores


async def can_request_match_score(repo: Repository, job_id: str, requester_id: str) -> bool:
    """A requester may score a job they own, a published job, or one they applied to."""
    if await repo.get_application(job_id, requester_id) is not None:
        return True

    job = await repo.get_job(job_id)
    if job is None:
        return False
    return job.owner_id == requester_id or job.status == "published"
