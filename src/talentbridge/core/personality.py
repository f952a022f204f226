from __future__ import annotations

import asyncio
import logging

from talentbridge.config import Settings, get_settings
from talentbridge.llm.extraction import ExtractionClient
from talentbridge.llm.prompts import PERSONALITY_INSTRUCTION, PERSONALITY_PROMPT, PERSONALITY_SCHEMA
from talentbridge.llm.retry import Sleep, with_rate_limit
from talentbridge.types import AIResult, PersonalityAnalysisResult, QuestionResponse, ValidationReport

logger = logging.getLogger(__name__)

REQUIRED_NARRATIVE_FIELDS = (
    "problem_solving_style",
    "initiative_level",
    "work_preference",
    "motivational_factors",
)
CORE_SCORE_FIELDS = (
    "analytical_score",
    "creative_score",
    "leadership_score",
    "teamwork_score",
)


def format_responses(responses: list[QuestionResponse]) -> str:
    return "\n".join(
        f"Question {index} ({response.category or 'general'}): {response.question_text}\n"
        f"Response: {response.response_text}\n"
        for index, response in enumerate(responses, start=1)
    )


def validate_personality_analysis(result: PersonalityAnalysisResult) -> ValidationReport:
    """Collect every constraint the analysis violates."""
    errors: list[str] = []

    for field_name in REQUIRED_NARRATIVE_FIELDS:
        value = getattr(result, field_name)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"Missing or empty {field_name}")

    for field_name in CORE_SCORE_FIELDS:
        value = getattr(result, field_name)
        if value is None or not 0 <= value <= 100:
            errors.append(f"Invalid {field_name}: must be a number between 0-100")

    if result.confidence_score is None or not 0 <= result.confidence_score <= 1:
        errors.append("Invalid confidence_score: must be a number between 0-1")

    for trait, value in result.trait_scores.items():
        if not 0 <= value <= 100:
            errors.append(f"Invalid trait score '{trait}': must be a number between 0-100")

    return ValidationReport(valid=not errors, errors=errors)


def format_personality_summary(result: PersonalityAnalysisResult) -> str:
    scores = {
        "analytical": result.analytical_score or 0,
        "creative": result.creative_score or 0,
        "leadership": result.leadership_score or 0,
        "teamwork": result.teamwork_score or 0,
    }
    top = sorted(scores, key=lambda key: scores[key], reverse=True)[:2]

    parts = [result.personality_summary.strip()] if result.personality_summary else []
    sentence = f"Key strengths include {' and '.join(top)} capabilities"
    if result.work_preference:
        sentence += f", with {result.work_preference.strip().lower()} work preferences"
    parts.append(sentence + ".")
    return " ".join(parts)


class PersonalityAnalyzer:
    def __init__(self, client: ExtractionClient, settings: Settings | None = None, *, sleep: Sleep = asyncio.sleep):
        self.client = client
        self.settings = settings or get_settings()
        self._sleep = sleep

    async def analyze_personality(self, responses: list[QuestionResponse]) -> AIResult[PersonalityAnalysisResult]:
        if not responses:
            return AIResult.fail("No questionnaire responses provided")

        payload = PERSONALITY_PROMPT.format(responses_text=format_responses(responses))
        logger.info("Analyzing personality from %s responses", len(responses))
        return await with_rate_limit(
            lambda: self.client.extract(
                instruction=PERSONALITY_INSTRUCTION,
                payload=payload,
                schema=PERSONALITY_SCHEMA,
                model_type=PersonalityAnalysisResult,
            ),
            self.settings.ai_retry_attempts,
            base_delay=self.settings.ai_retry_base_delay_sec,
            sleep=self._sleep,
        )
