"""Tests for the OpenRouter narrator with a fake client."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from pydantic import SecretStr

from crawl_engine.core.config import NarratorSettings
from crawl_engine.core.exceptions import ConfigurationError, NarratorResponseError
from crawl_engine.models import EventType, StatType
from crawl_engine.narrator.base import NarratorContext, RecentEvent
from crawl_engine.narrator.openrouter import OpenRouterNarrator, extract_json
from crawl_engine.narrator.prompts import event_type_prompt


class FakeCompletions:
    """Stands in for ``client.chat.completions``."""

    def __init__(self, replies: list[str]) -> None:
        self.replies = replies
        self.requests: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.requests.append(kwargs)
        content = self.replies.pop(0)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_narrator(*replies: str) -> tuple[OpenRouterNarrator, FakeCompletions]:
    completions = FakeCompletions(list(replies))
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    settings = NarratorSettings(api_key=SecretStr("test-key"), model="test/model")
    return OpenRouterNarrator(settings, client=client), completions


@pytest.fixture
def context() -> NarratorContext:
    return NarratorContext(
        campaign_id=1,
        character_name="Ayla",
        current_health=30,
        max_health=50,
        attack=12,
        defense=5,
        next_event_number=4,
        recent_events=[
            RecentEvent(event_number=3, event_type=EventType.DESCRIPTIVE, message="A quiet hall."),
        ],
    )


class TestExtractJson:
    """Tests for reply parsing."""

    def test_plain_object(self) -> None:
        assert extract_json('{"event_type": "Combat"}') == {"event_type": "Combat"}

    def test_code_fence(self) -> None:
        reply = '```json\n{"stat_type": "attack", "base_value": 3}\n```'

        assert extract_json(reply) == {"stat_type": "attack", "base_value": 3}

    def test_surrounding_prose(self) -> None:
        assert extract_json('Sure! {"value": 4} Enjoy.') == {"value": 4}

    @pytest.mark.parametrize("reply", ["no json here", "{broken", "[1, 2]"])
    def test_unusable_reply(self, reply: str) -> None:
        with pytest.raises(NarratorResponseError):
            extract_json(reply)


class TestOpenRouterNarrator:
    """Tests for the narrator contract over a fake client."""

    def test_event_type(self, context: NarratorContext) -> None:
        narrator, completions = make_narrator('{"event_type": "Item_Drop"}')

        assert narrator.generate_event_type(context) == EventType.ITEM_DROP
        request = completions.requests[0]
        assert request["model"] == "test/model"
        assert "event number 4" in request["messages"][1]["content"]

    def test_stat_boost_ignores_extra_keys(self, context: NarratorContext) -> None:
        narrator, _ = make_narrator('{"stat_type": "defense", "base_value": -2, "mood": "grim"}')

        boost = narrator.request_stat_boost(context, EventType.ENVIRONMENTAL)

        assert boost.stat_type == StatType.DEFENSE
        assert boost.base_value == -2

    def test_item_drop(self, context: NarratorContext) -> None:
        narrator, _ = make_narrator(
            '{"name": "Moss Salve", "stat_modified": "health", "stat_value": 8, "rarity": 5}'
        )

        item = narrator.request_item_drop(context)

        assert item.name == "Moss Salve"
        assert item.stat_value == 8

    def test_description_is_stripped(self, context: NarratorContext) -> None:
        narrator, _ = make_narrator("  Water drips somewhere ahead.  \n")

        assert narrator.generate_description(EventType.DESCRIPTIVE, context) == (
            "Water drips somewhere ahead."
        )

    def test_wrong_shape_raises(self, context: NarratorContext) -> None:
        narrator, _ = make_narrator('{"event_type": "Dance"}')

        with pytest.raises(NarratorResponseError):
            narrator.generate_event_type(context)

    def test_empty_reply_raises(self, context: NarratorContext) -> None:
        narrator, _ = make_narrator("   ")

        with pytest.raises(NarratorResponseError):
            narrator.generate_description(EventType.COMBAT, context)

    def test_missing_api_key(self, context: NarratorContext) -> None:
        narrator = OpenRouterNarrator(NarratorSettings(api_key=None))

        with pytest.raises(ConfigurationError):
            narrator.generate_event_type(context)


class TestPrompts:
    """Tests for prompt rendering."""

    def test_history_in_prompt(self, context: NarratorContext) -> None:
        prompt = event_type_prompt(context)

        assert "3. [Descriptive] A quiet hall." in prompt
        assert "HP 30/50" in prompt
