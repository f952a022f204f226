from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel

from talentbridge.config import Settings, get_settings
from talentbridge.llm.extraction import ExtractionClient
from talentbridge.llm.prompts import MATCH_SCORE_INSTRUCTION, MATCH_SCORE_PROMPT, MATCH_SCORE_SCHEMA
from talentbridge.llm.retry import Sleep, with_rate_limit
from talentbridge.types import AIResult, CandidateData, JobData, MatchScoreResult

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"
QUICK_SCORE_FALLBACK = 50.0

QUICK_MATCH_INSTRUCTION = (
    "You are a quick job-candidate matcher. Provide only a single number from 0-100 representing match quality."
)


class QuickMatchScore(BaseModel):
    score: float


def _num(value: float | int | None) -> str:
    if value is None:
        return NOT_SPECIFIED
    return f"{value:g}"


def build_job_summary(job: JobData) -> str:
    location = job.location + (" (Remote allowed)" if job.remote_allowed else "")
    return "\n".join(
        [
            "JOB DETAILS:",
            f"Title: {job.title}",
            f"Experience Level: {job.experience_level}",
            f"Job Type: {job.job_type}",
            f"Location: {location}",
            "",
            f"Description: {job.description}",
            f"Requirements: {job.requirements}",
            f"Responsibilities: {job.responsibilities}",
            "",
            f"Required Skills: {', '.join(job.required_skills)}",
            f"Preferred Skills: {', '.join(job.preferred_skills)}",
            f"Company Culture: {job.company_culture or NOT_SPECIFIED}",
        ]
    )


def build_candidate_summary(candidate: CandidateData) -> str:
    skills = ", ".join(f"{skill.name} (Level {skill.proficiency_level}/5)" for skill in candidate.skills)
    experience = "\n".join(
        f"{item.job_title} at {item.company_name} ({_num(item.years)} years): {item.description}"
        for item in candidate.experience
    )
    education = "\n".join(
        f"{item.degree} in {item.field_of_study} from {item.institution_name}" for item in candidate.education
    )

    personality = candidate.personality_analysis
    if personality is None:
        personality_block = "Personality analysis not available"
    else:
        personality_block = "\n".join(
            [
                "PERSONALITY ANALYSIS:",
                f"- Problem Solving Style: {personality.problem_solving_style}",
                f"- Work Preference: {personality.work_preference}",
                f"- Analytical Score: {_num(personality.analytical_score)}/100",
                f"- Creative Score: {_num(personality.creative_score)}/100",
                f"- Leadership Score: {_num(personality.leadership_score)}/100",
                f"- Teamwork Score: {_num(personality.teamwork_score)}/100",
                f"- Key Strengths: {', '.join(personality.strengths)}",
            ]
        )

    return "\n".join(
        [
            "CANDIDATE PROFILE:",
            f"Name: {candidate.full_name}",
            f"Current Title: {candidate.current_job_title or NOT_SPECIFIED}",
            f"Total Experience: {_num(candidate.experience_years)} years",
            f"Preferred Location: {candidate.preferred_location or NOT_SPECIFIED}",
            f"Remote Preference: {'Yes' if candidate.remote_preference else 'No'}",
            "",
            f"SKILLS: {skills}",
            "",
            "EXPERIENCE:",
            experience,
            "",
            "EDUCATION:",
            education,
            "",
            personality_block,
        ]
    )


class MatchScorer:
    def __init__(self, client: ExtractionClient, settings: Settings | None = None, *, sleep: Sleep = asyncio.sleep):
        self.client = client
        self.settings = settings or get_settings()
        self._sleep = sleep

    async def calculate_match_score(self, job: JobData, candidate: CandidateData) -> AIResult[MatchScoreResult]:
        payload = MATCH_SCORE_PROMPT.format(
            job_summary=build_job_summary(job),
            candidate_summary=build_candidate_summary(candidate),
        )
        return await with_rate_limit(
            lambda: self.client.extract(
                instruction=MATCH_SCORE_INSTRUCTION,
                payload=payload,
                schema=MATCH_SCORE_SCHEMA,
                model_type=MatchScoreResult,
            ),
            self.settings.ai_retry_attempts,
            base_delay=self.settings.ai_retry_base_delay_sec,
            sleep=self._sleep,
        )

    async def calculate_batch_match_scores(
        self, job: JobData, candidates: list[CandidateData]
    ) -> list[tuple[CandidateData, AIResult[MatchScoreResult]]]:
        """Score candidates a few at a time, pausing between batches."""
        batch_size = self.settings.match_score_batch_size
        results: list[tuple[CandidateData, AIResult[MatchScoreResult]]] = []
        for start in range(0, len(candidates), batch_size):
            batch = candidates[start : start + batch_size]
            batch_results = await asyncio.gather(
                *(self.calculate_match_score(job, candidate) for candidate in batch)
            )
            results.extend(zip(batch, batch_results))

            if start + batch_size < len(candidates):
                await self._sleep(self.settings.match_score_batch_delay_sec)
        return results

    async def get_quick_match_score(
        self,
        *,
        job_title: str,
        job_requirements: str,
        candidate_skills: list[str],
        candidate_experience: str,
    ) -> float:
        """Single-number estimate for real-time listings; 50 when the model cannot answer."""
        payload = "\n".join(
            [
                f"Job: {job_title}",
                f"Requirements: {job_requirements}",
                f"Candidate Skills: {', '.join(candidate_skills)}",
                f"Experience: {candidate_experience}",
                "",
                "Match score (0-100 only):",
            ]
        )
        try:
            result = await self.client.extract(
                instruction=QUICK_MATCH_INSTRUCTION,
                payload=payload,
                schema={"score": "number 0-100"},
                model_type=QuickMatchScore,
            )
        except Exception:
            logger.exception("Quick match score failed")
            return QUICK_SCORE_FALLBACK
        if not result.success or result.data is None:
            return QUICK_SCORE_FALLBACK
        return result.data.score
