from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from openai import AsyncOpenAI

from talentbridge.config import Settings
from talentbridge.types import ModelResponse

logger = logging.getLogger(__name__)

_FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


class InvalidJSONOutput(ValueError):
    pass


@dataclass(slots=True, frozen=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    timeout_sec: int
    model: str

    @classmethod
    def openai(cls, settings: Settings) -> ProviderConfig:
        return cls(
            name="openai",
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key,
            timeout_sec=settings.openai_timeout_sec,
            model=settings.openai_model_extractor,
        )

    @classmethod
    def local(cls, settings: Settings) -> ProviderConfig:
        return cls(
            name="local",
            base_url=settings.local_llm_base_url,
            api_key=settings.local_llm_api_key,
            timeout_sec=settings.local_llm_timeout_sec,
            model=settings.local_llm_model,
        )


def is_missing_endpoint(exc: Exception) -> bool:
    """True when the server has no Responses API (OpenAI-compatible local servers)."""
    if getattr(exc, "status_code", None) == 404:
        return True
    message = str(exc).lower()
    return "404" in message or "not found" in message


def chat_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    content = getattr(getattr(choices[0], "message", None), "content", None)
    if content is None:
        return ""
    if isinstance(content, list):
        # Some compatible servers return content parts instead of a string.
        return "".join(str(part.get("text", "")) if isinstance(part, dict) else str(part) for part in content)
    return str(content)


def _dump(response: Any, api_path: str) -> dict[str, Any]:
    raw = response.model_dump() if hasattr(response, "model_dump") else {}
    if not isinstance(raw, dict):
        raw = {"raw": raw}
    return {**raw, "api_path": api_path}


class LLMProvider:
    """Text completion against one OpenAI-compatible endpoint.

    The Responses API is tried first. Once the server answers that it does not
    exist, the provider sticks to chat completions for the rest of its life.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = AsyncOpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )
        self.responses_supported: bool | None = None

    async def complete_text(self, *, prompt: str, system: str = "", model: str | None = None) -> ModelResponse:
        model = model or self.config.model
        if self.responses_supported is not False:
            try:
                response = await self._responses(model, prompt, system)
            except Exception as exc:
                if not is_missing_endpoint(exc):
                    raise
                logger.warning(
                    "Responses API missing on provider=%s base_url=%s, using chat completions: %s",
                    self.config.name,
                    self.config.base_url,
                    exc,
                )
                self.responses_supported = False
            else:
                self.responses_supported = True
                return response
        return await self._chat(model, prompt, system)

    async def _responses(self, model: str, prompt: str, system: str) -> ModelResponse:
        request: dict[str, Any] = {
            "model": model,
            "input": [{"role": "user", "content": [{"type": "input_text", "text": prompt}]}],
        }
        if system:
            request["instructions"] = system
        response = await self.client.responses.create(**request)
        return ModelResponse(content=getattr(response, "output_text", "") or "", raw=_dump(response, "responses"))

    async def _chat(self, model: str, prompt: str, system: str) -> ModelResponse:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        response = await self.client.chat.completions.create(model=model, messages=messages)
        return ModelResponse(content=chat_text(response), raw=_dump(response, "chat_completions"))


def parse_json(content: str) -> dict[str, Any]:
    """Decode a model reply into a JSON object.

    Accepts a bare object, a fenced ```json block, or an object surrounded by
    prose. Raises InvalidJSONOutput for anything else.
    """
    text = content.strip()
    if not text:
        raise InvalidJSONOutput("empty response")

    fenced = _FENCED_OBJECT.search(text)
    if fenced:
        text = fenced.group(1)
    elif not text.startswith("{") and "{" in text and "}" in text:
        text = text[text.index("{") : text.rindex("}") + 1]

    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidJSONOutput(str(exc)) from exc
    if not isinstance(value, dict):
        raise InvalidJSONOutput(f"expected a JSON object, got {type(value).__name__}")
    return value


class ProviderPool:
    """Lazily built providers keyed by name; only configured ones are created."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._providers: dict[str, LLMProvider] = {}
        self._enabled: dict[str, Callable[[], bool]] = {
            "openai": lambda: bool(settings.openai_api_key),
            "local": lambda: settings.local_llm_enabled,
        }

    def get(self, name: str) -> LLMProvider | None:
        if not self._enabled[name]():
            return None
        if name not in self._providers:
            self._providers[name] = LLMProvider(getattr(ProviderConfig, name)(self.settings))
        return self._providers[name]

    def selected(self) -> LLMProvider | None:
        return self.get(self.settings.ai_provider)
