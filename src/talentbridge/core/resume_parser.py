from __future__ import annotations

import asyncio
import logging
import re

from talentbridge.config import Settings, get_settings
from talentbridge.llm.extraction import ExtractionClient
from talentbridge.llm.prompts import RESUME_PARSER_INSTRUCTION, RESUME_PARSER_PROMPT, RESUME_SCHEMA
from talentbridge.llm.retry import Sleep, with_rate_limit
from talentbridge.types import AIResult, ConfidenceScores, ResumeParsingResult

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DEFAULT_CONFIDENCE_SCORES = ConfidenceScores(
    overall=0.7,
    personal_info=0.8,
    experience=0.7,
    education=0.7,
    skills=0.6,
)


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


class ResumeParser:
    def __init__(self, client: ExtractionClient, settings: Settings | None = None, *, sleep: Sleep = asyncio.sleep):
        self.client = client
        self.settings = settings or get_settings()
        self._sleep = sleep

    async def parse_resume_with_ai(self, raw_text: str, filename: str | None = None) -> AIResult[ResumeParsingResult]:
        payload = RESUME_PARSER_PROMPT.format(
            filename_line=f"Filename: {filename}\n" if filename else "",
            resume_text=raw_text,
        )
        return await with_rate_limit(
            lambda: self.client.extract(
                instruction=RESUME_PARSER_INSTRUCTION,
                payload=payload,
                schema=RESUME_SCHEMA,
                model_type=ResumeParsingResult,
            ),
            self.settings.ai_retry_attempts,
            base_delay=self.settings.ai_retry_base_delay_sec,
            sleep=self._sleep,
        )

    async def parse_and_validate_resume(
        self, raw_text: str, filename: str | None = None
    ) -> AIResult[ResumeParsingResult]:
        result = await self.parse_resume_with_ai(raw_text, filename)
        if not result.success or result.data is None:
            return result

        data = result.data
        personal = data.personal_info
        if personal is None or not (personal.full_name or "").strip() or not (personal.email or "").strip():
            logger.info("Resume parse rejected: missing name or email")
            return AIResult.fail(
                "Missing required personal information (name or email)",
                code="missing_required_fields",
            )

        if not is_valid_email(personal.email):
            logger.info("Resume parse rejected: invalid email format")
            return AIResult.fail("Invalid email format", code="invalid_email_format")

        for entry in [*data.experience, *data.education]:
            entry.is_current = bool(entry.is_current) or entry.end_date is None
            if entry.achievements is None:
                entry.achievements = []

        if data.confidence_scores is None:
            data.confidence_scores = DEFAULT_CONFIDENCE_SCORES.model_copy()

        return AIResult.ok(data, confidence=data.confidence_scores.overall)
