"""Prompt templates for the LLM narrator.

The wording here is not a contract; only the JSON shapes the prompts ask
for are parsed.
"""

from __future__ import annotations

from crawl_engine.models.enums import EventType
from crawl_engine.models.records import ItemDraft
from crawl_engine.narrator.base import NarratorContext


NARRATOR_SYSTEM_PROMPT = """You are the narrator of a dark-fantasy dungeon crawl.

RULES:
1. Write in second person, present tense, two or three sentences at most.
2. Never decide mechanical outcomes (damage, dice, hit points). The game engine does that.
3. When asked for JSON, answer with a single JSON object and nothing else.
"""


def _character_line(context: NarratorContext) -> str:
    return (
        f"Hero: {context.character_name} "
        f"(HP {context.current_health}/{context.max_health}, "
        f"ATK {context.attack}, DEF {context.defense})"
    )


def event_type_prompt(context: NarratorContext) -> str:
    options = ", ".join(f'"{event_type}"' for event_type in EventType)
    return f"""{_character_line(context)}
This will be event number {context.next_event_number}.

Recent events:
{context.history_text()}

Choose what happens next. Keep the pace varied: roughly 15% Descriptive,
15% Environmental, 15% Combat and 55% Item_Drop, and avoid repeating the
same type many times in a row.

Answer as JSON: {{"event_type": one of {options}}}"""


def description_prompt(
    event_type: EventType,
    context: NarratorContext,
    loot: ItemDraft | None = None,
) -> str:
    lines = [
        _character_line(context),
        "",
        "Recent events:",
        context.history_text(),
        "",
        f"Describe the next event. Its type is {event_type}.",
    ]
    if event_type is EventType.ENVIRONMENTAL:
        lines.append("End with something the hero could choose to investigate.")
    if context.enemy_name:
        lines.append(f"The enemy is a {context.enemy_name}.")
    if loot is not None:
        lines.append(f"The hero finds: {loot.name} ({loot.description}).")
    lines.append("Answer with plain text only.")
    return "\n".join(lines)


def stat_boost_prompt(context: NarratorContext, event_type: EventType) -> str:
    return f"""{_character_line(context)}

Recent events:
{context.history_text()}

The hero interacts with the latest {event_type} event. Propose the effect on one stat.
Use a negative value for harmful outcomes. Health values range -10 to 20;
attack and defense values range -3 to 5.

Answer as JSON: {{"stat_type": "health" | "attack" | "defense", "base_value": integer}}"""


def item_drop_prompt(context: NarratorContext) -> str:
    return f"""{_character_line(context)}

Recent events:
{context.history_text()}

Invent one consumable item fitting the story so far. Most items help; a few are cursed
and carry a negative value.

Answer as JSON: {{"name": string, "stat_modified": "health" | "attack" | "defense",
"stat_value": integer, "rarity": integer 1-100, "description": string}}"""


def bonus_stat_prompt(context: NarratorContext) -> str:
    foe = f" over a {context.enemy_name}" if context.enemy_name else ""
    return f"""{_character_line(context)}

The hero just won a decisive victory{foe}.
Grant a permanent bonus to one stat, between 2 and 10.

Answer as JSON: {{"stat_type": "health" | "attack" | "defense", "value": integer}}"""


__all__ = [
    "NARRATOR_SYSTEM_PROMPT",
    "event_type_prompt",
    "description_prompt",
    "stat_boost_prompt",
    "item_drop_prompt",
    "bonus_stat_prompt",
]
