"""Prompt builders for fact extraction and memory reconciliation."""

from __future__ import annotations

import re
from typing import Any

JSON_FACTS_INSTRUCTION = (
    "You MUST return a valid JSON object with a 'facts' key containing "
    "an array of strings."
)

FACT_RETRIEVAL_PROMPT = """\
You are a Personal Information Organizer, specialized in accurately storing \
facts, user memories, and preferences. Your job is to pull relevant pieces of \
information out of conversations and organize them into distinct, manageable \
facts so they can be retrieved to personalize future interactions.

Types of information to remember:

1. Personal preferences: likes, dislikes and specific preferences about food, \
products, activities and entertainment.
2. Important personal details: names, relationships and important dates.
3. Plans and intentions: upcoming events, trips, goals and other plans.
4. Activity and service preferences: dining, travel, hobbies and services.
5. Health and wellness: dietary restrictions, fitness routines and other \
health-related information.
6. Professional details: job titles, work habits, career goals and \
professional preferences.
7. Miscellaneous: anything else relevant to the user that does not fit the \
categories above.

Examples:

Input: "Hi."
Output: {"facts" : []}

Input: "There are branches of trees."
Output: {"facts" : []}

Input: "Hi, I am looking for a restaurant in San Francisco."
Output: {"facts" : ["Looking for a restaurant in San Francisco"]}

Input: "Yesterday, I had a mass on my left shoulder."
Output: {"facts" : ["Had a mass on left shoulder"]}

Input: "I recently tried the tasting menu at Aster in San Francisco and I loved it!"
Output: {"facts" : ["Tried tasting menu at Aster in San Francisco", \
"Loved the tasting menu at Aster"]}

Input: "Hi, my name is John. I am a software engineer."
Output: {"facts" : ["Name is John", "Is a software engineer"]}

Input: "Me and my wife are planning to go to Paris next month."
Output: {"facts" : ["Planning a trip to Paris next month", "Has a wife"]}

Return the facts and preferences in the JSON format shown above. Do not \
return anything that is not relevant to the user's personal information.

""" + JSON_FACTS_INSTRUCTION + """ If there are no relevant facts, return \
{"facts": []}."""

UPDATE_MEMORY_PROMPT = """\
You are a smart memory manager which controls the memory of a system.
You can perform four operations: (1) ADD a new memory, (2) UPDATE an existing \
memory, (3) DELETE an existing memory, and (4) do NONE (no changes needed).

Existing Memories:
{existing_memories}

New Information:
{new_facts}

Instructions:
- If the new information contradicts an existing memory, UPDATE the existing memory.
- If the new information is already covered by an existing memory, do NONE.
- If the new information is entirely new, ADD it.
- If an existing memory is no longer relevant based on new info, DELETE it.
- Only use IDs that appear in Existing Memories; use "new" for ADD.
- Be concise in your memory updates.

Respond with a JSON object containing a "memory" array. Each item should have:
- "id": the memory ID (for UPDATE/DELETE) or "new" (for ADD)
- "event": "ADD", "UPDATE", "DELETE", or "NONE"
- "old_memory": the old memory text (for UPDATE/DELETE)
- "text": the new/updated memory text

Example:
{{"memory": [
  {{"id": "0", "event": "UPDATE", "old_memory": "Likes pizza", "text": "Loves pepperoni pizza"}},
  {{"id": "new", "event": "ADD", "text": "Is planning a trip to Japan"}},
  {{"id": "1", "event": "DELETE", "old_memory": "Likes sushi", "text": "No longer likes sushi"}},
  {{"id": "2", "event": "NONE", "old_memory": "Has a dog named Max", "text": "Has a dog named Max"}}
]}}"""

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*")


def get_fact_retrieval_messages(
    parsed_messages: str,
    custom_prompt: str | None = None,
) -> tuple[str, str]:
    """Build the (system, user) prompt pair for fact extraction.

    A custom prompt that never mentions JSON gets the facts-array
    instruction appended, so the response stays parseable.
    """
    if custom_prompt:
        system_prompt = custom_prompt
        if "json" not in custom_prompt.lower():
            system_prompt = f"{custom_prompt}\n\n{JSON_FACTS_INSTRUCTION}"
    else:
        system_prompt = FACT_RETRIEVAL_PROMPT

    return system_prompt, f"Input:\n{parsed_messages}"


def get_update_memory_messages(
    existing_memories: list[dict[str, Any]],
    new_facts: list[str],
) -> str:
    """Build the single-message reconciliation prompt.

    Args:
        existing_memories: Candidates as ``{"id", "text"}`` dicts, labelled
            with their temporary ids
        new_facts: Facts extracted from the current input

    Returns:
        Prompt text
    """
    existing_text = "\n".join(
        f"ID: {m['id']} - {m['text']}" for m in existing_memories
    )
    facts_text = "\n".join(f"- {fact}" for fact in new_facts)
    return UPDATE_MEMORY_PROMPT.format(
        existing_memories=existing_text or "(none)",
        new_facts=facts_text,
    )


def remove_code_blocks(text: str) -> str:
    """Strip markdown code fences (``` and ```json) and surrounding whitespace."""
    return _CODE_FENCE_RE.sub("", text).strip()
