"""Tests for prompt builders and response sanitizing."""

from memloom.prompts import (
    FACT_RETRIEVAL_PROMPT,
    JSON_FACTS_INSTRUCTION,
    get_fact_retrieval_messages,
    get_update_memory_messages,
    remove_code_blocks,
)


class TestFactRetrievalMessages:
    def test_default_prompt(self):
        system, user = get_fact_retrieval_messages("I like tea")
        assert system == FACT_RETRIEVAL_PROMPT
        assert user == "Input:\nI like tea"
        assert "facts" in system

    def test_custom_prompt_without_json_gets_instruction(self):
        system, _ = get_fact_retrieval_messages("text", custom_prompt="Find hobbies.")
        assert system == f"Find hobbies.\n\n{JSON_FACTS_INSTRUCTION}"

    def test_custom_prompt_json_check_is_case_insensitive(self):
        prompt = "Return Json with facts."
        system, _ = get_fact_retrieval_messages("text", custom_prompt=prompt)
        assert system == prompt


class TestUpdateMemoryMessages:
    def test_lists_candidates_and_facts(self):
        prompt = get_update_memory_messages(
            [{"id": "0", "text": "Likes pizza"}, {"id": "1", "text": "Has a dog"}],
            ["Loves pizza", "Dog is named Max"],
        )
        assert "ID: 0 - Likes pizza\nID: 1 - Has a dog" in prompt
        assert "- Loves pizza\n- Dog is named Max" in prompt
        assert '"memory"' in prompt

    def test_no_candidates(self):
        prompt = get_update_memory_messages([], ["Likes tea"])
        assert "Existing Memories:\n(none)" in prompt


class TestRemoveCodeBlocks:
    def test_json_fence(self):
        assert remove_code_blocks('```json\n{"facts": []}\n```') == '{"facts": []}'

    def test_plain_fence(self):
        assert remove_code_blocks('```\n{"a": 1}\n```  ') == '{"a": 1}'

    def test_unfenced_text_is_trimmed(self):
        assert remove_code_blocks('  {"a": 1}\n') == '{"a": 1}'
