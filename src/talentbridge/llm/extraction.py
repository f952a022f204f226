from __future__ import annotations

import json
import logging
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from talentbridge.config import Settings, get_settings
from talentbridge.errors import AIConfigurationError
from talentbridge.llm.prompts import STRUCTURED_OUTPUT_PROMPT
from talentbridge.llm.providers import InvalidJSONOutput, LLMProvider, ProviderPool, parse_json
from talentbridge.types import AIResult

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ExtractionClient(Protocol):
    async def extract(
        self,
        *,
        instruction: str,
        payload: str,
        schema: dict[str, Any],
        model_type: type[ModelT],
    ) -> AIResult[ModelT]: ...


class StructuredExtractionClient:
    """Calls the configured model and coerces its reply into a pydantic model.

    Model-side problems (HTTP errors, timeouts, refusals, malformed JSON, shape
    mismatches) come back as failed ``AIResult`` values. Only a missing provider
    configuration raises.
    """

    def __init__(self, settings: Settings | None = None, provider: LLMProvider | None = None):
        self.settings = settings or get_settings()
        self._provider = provider
        self._pool = ProviderPool(self.settings)

    def provider(self) -> LLMProvider:
        provider = self._provider or self._pool.selected()
        if provider is None:
            raise AIConfigurationError(
                f"AI provider '{self.settings.ai_provider}' is not configured; "
                "set OPENAI_API_KEY or enable LOCAL_LLM_ENABLED"
            )
        return provider

    async def extract(
        self,
        *,
        instruction: str,
        payload: str,
        schema: dict[str, Any],
        model_type: type[ModelT],
    ) -> AIResult[ModelT]:
        provider = self.provider()
        prompt = STRUCTURED_OUTPUT_PROMPT.format(
            payload=payload.strip(),
            schema_json=json.dumps(schema, indent=2, ensure_ascii=False),
        )

        try:
            response = await provider.complete_text(prompt=prompt, system=instruction.strip())
        except Exception as exc:
            logger.warning("AI generation failed provider=%s error=%s", provider.config.name, exc)
            return AIResult.fail(f"AI generation failed: {exc}")

        try:
            data = parse_json(response.content)
        except InvalidJSONOutput as exc:
            logger.warning("Failed to parse JSON model output provider=%s", provider.config.name)
            logger.debug("Raw model output: %s", response.content)
            return AIResult.fail(f"Invalid JSON response from AI: {exc}", code="invalid_ai_output")

        try:
            parsed = model_type.model_validate(data)
        except ValidationError as exc:
            logger.warning("AI output did not match %s: %s", model_type.__name__, exc.error_count())
            return AIResult.fail(
                f"AI response did not match expected shape: {exc.errors()[0]['msg']}",
                code="invalid_ai_output",
            )

        return AIResult.ok(parsed, confidence=self._confidence_from(data))

    def _confidence_from(self, data: dict[str, Any]) -> float:
        value = data.get("confidence_score")
        if isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1:
            return float(value)
        return self.settings.ai_default_confidence
