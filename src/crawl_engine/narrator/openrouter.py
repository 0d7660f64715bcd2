"""LLM narrator backed by OpenRouter through the openai SDK.

This narrator raises on any failure; wrap it in a
:class:`~crawl_engine.narrator.resilient.ResilientNarrator` before
handing it to the engine.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from crawl_engine.core.config import NarratorSettings, get_settings
from crawl_engine.core.exceptions import (
    ConfigurationError,
    NarratorResponseError,
    NarratorUnavailableError,
)
from crawl_engine.core.logging import get_logger
from crawl_engine.models.enums import EventType
from crawl_engine.models.records import ItemDraft
from crawl_engine.narrator import prompts
from crawl_engine.narrator.base import BonusStat, NarratorContext, StatBoost


logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


class _EventTypeAnswer(BaseModel):
    event_type: EventType


def extract_json(text: str) -> dict[str, Any]:
    """Pull the JSON object out of a model reply.

    Args:
        text: Raw reply, possibly wrapped in a markdown code fence.

    Returns:
        The decoded object.

    Raises:
        NarratorResponseError: If no JSON object can be decoded.
    """
    cleaned = _CODE_FENCE.sub("", text.strip()).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        raise NarratorResponseError("No JSON object in narrator reply")
    try:
        decoded = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as exc:
        raise NarratorResponseError(f"Invalid JSON in narrator reply: {exc}") from exc
    if not isinstance(decoded, dict):
        raise NarratorResponseError("Narrator reply is not a JSON object")
    return decoded


class OpenRouterNarrator:
    """Narrator that asks an OpenRouter-hosted model for content.

    Args:
        settings: Narrator settings; read from the environment if omitted.
        client: Pre-built OpenAI-compatible client, mainly for tests.
    """

    def __init__(
        self,
        settings: NarratorSettings | None = None,
        *,
        client: Any | None = None,
    ) -> None:
        self._settings = settings or get_settings().narrator
        self._client: Any = client
        logger.info(
            "OpenRouterNarrator initialized",
            model=self._settings.model,
            timeout_seconds=self._settings.timeout_seconds,
        )

    @property
    def model(self) -> str:
        return self._settings.model

    def _get_client(self) -> Any:
        """Get or create the OpenAI client configured for OpenRouter."""
        if self._client is None:
            try:
                from openai import OpenAI
            except ImportError as exc:
                raise ConfigurationError(
                    "openai package not installed",
                    details={"package": "openai"},
                ) from exc

            api_key = self._settings.api_key
            if api_key is None:
                raise ConfigurationError(
                    "OpenRouter API key not configured",
                    config_key="api_key",
                )

            self._client = OpenAI(
                api_key=api_key.get_secret_value(),
                base_url=self._settings.base_url,
                timeout=self._settings.timeout_seconds,
                max_retries=0,
                default_headers={"X-Title": "Dungeon Crawl Campaign Engine"},
            )

        return self._client

    def _chat(self, operation: str, user_prompt: str, *, max_tokens: int = 300) -> str:
        """Send one chat completion and return the reply text.

        Raises:
            NarratorUnavailableError: If the service cannot be reached.
            NarratorResponseError: If the reply is empty.
        """
        from openai import APIConnectionError, APIStatusError, RateLimitError

        client = self._get_client()
        messages = [
            {"role": "system", "content": prompts.NARRATOR_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

        @retry(
            retry=retry_if_exception_type(RateLimitError),
            stop=stop_after_attempt(self._settings.max_retries + 1),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
            reraise=True,
        )
        def _call() -> str:
            try:
                response = client.chat.completions.create(
                    model=self._settings.model,
                    messages=messages,
                    temperature=self._settings.temperature,
                    max_tokens=max_tokens,
                )
            except RateLimitError:
                logger.warning("Rate limited, retrying...", operation=operation)
                raise
            except APIConnectionError as exc:
                raise NarratorUnavailableError(
                    f"Failed to connect to OpenRouter: {exc}",
                    model=self._settings.model,
                    operation=operation,
                ) from exc
            except APIStatusError as exc:
                raise NarratorUnavailableError(
                    f"OpenRouter API error: {exc}",
                    model=self._settings.model,
                    operation=operation,
                    details={"status_code": exc.status_code},
                ) from exc
            return response.choices[0].message.content or ""

        try:
            text = _call()
        except RateLimitError as exc:
            raise NarratorUnavailableError(
                "OpenRouter rate limit persisted",
                model=self._settings.model,
                operation=operation,
            ) from exc

        if not text.strip():
            raise NarratorResponseError(
                "Empty narrator reply",
                model=self._settings.model,
                operation=operation,
            )
        logger.debug("Narrator replied", operation=operation, length=len(text))
        return text

    def _chat_json(self, operation: str, user_prompt: str, model: type[BaseModel]) -> Any:
        payload = extract_json(self._chat(operation, user_prompt))
        payload = {key: value for key, value in payload.items() if key in model.model_fields}
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            raise NarratorResponseError(
                f"Narrator reply has the wrong shape: {exc.error_count()} errors",
                model=self._settings.model,
                operation=operation,
            ) from exc

    # -------------------------------------------------------------------------
    # Narrator contract
    # -------------------------------------------------------------------------

    def generate_event_type(self, context: NarratorContext) -> EventType:
        answer = self._chat_json(
            "generate_event_type",
            prompts.event_type_prompt(context),
            _EventTypeAnswer,
        )
        return answer.event_type

    def generate_description(
        self,
        event_type: EventType,
        context: NarratorContext,
        loot: ItemDraft | None = None,
    ) -> str:
        return self._chat(
            "generate_description",
            prompts.description_prompt(event_type, context, loot),
        ).strip()

    def request_stat_boost(self, context: NarratorContext, event_type: EventType) -> StatBoost:
        return self._chat_json(
            "request_stat_boost",
            prompts.stat_boost_prompt(context, event_type),
            StatBoost,
        )

    def request_item_drop(self, context: NarratorContext) -> ItemDraft:
        return self._chat_json(
            "request_item_drop",
            prompts.item_drop_prompt(context),
            ItemDraft,
        )

    def request_bonus_stat(self, context: NarratorContext) -> BonusStat:
        return self._chat_json(
            "request_bonus_stat",
            prompts.bonus_stat_prompt(context),
            BonusStat,
        )


__all__ = [
    "extract_json",
    "OpenRouterNarrator",
]
