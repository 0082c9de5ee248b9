"""OpenAI-compatible chat completion backend."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger

from ..config import LLMConfig
from ..env_config import env_config

try:
    from openai import AsyncOpenAI
except ImportError:
    logger.warning("openai not installed. Install with: pip install openai")
    AsyncOpenAI = None


class OpenAILLM:
    """LLM backed by the OpenAI chat completions API.

    Works with any OpenAI-compatible server (Ollama, LM Studio, vLLM) via
    ``base_url``. When the model answers with tool calls, the response is
    returned as a dict instead of plain text.
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        api_key: str | None = None,
        client=None,
    ):
        """Initialize LLM client.

        Args:
            config: Generation model configuration
            api_key: API key (defaults to MEMLOOM_OPENAI_API_KEY)
            client: Pre-built ``AsyncOpenAI`` client, mainly for tests
        """
        self._config = config or LLMConfig()
        if client is None:
            if AsyncOpenAI is None:
                raise ImportError(
                    "openai is required for OpenAILLM. "
                    "Install with: pip install openai"
                )
            client = AsyncOpenAI(
                api_key=api_key or env_config.openai_api_key,
                base_url=self._config.base_url,
            )
        self._client = client
        logger.debug(
            f"OpenAILLM initialized (base_url: {self._config.base_url}, "
            f"model: {self._config.model})"
        )

    async def generate_response(
        self,
        messages: list[dict[str, Any]],
        response_format: dict[str, str] | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> str | dict[str, Any]:
        params: dict[str, Any] = {
            "model": self._config.model,
            "messages": [
                {
                    "role": msg["role"],
                    "content": (
                        msg["content"]
                        if isinstance(msg["content"], str)
                        else json.dumps(msg["content"])
                    ),
                }
                for msg in messages
            ],
            "temperature": self._config.temperature,
        }
        if self._config.max_tokens is not None:
            params["max_tokens"] = self._config.max_tokens
        if response_format:
            params["response_format"] = response_format
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"

        completion = await self._client.chat.completions.create(**params)
        message = completion.choices[0].message

        if message.tool_calls:
            return {
                "content": message.content or "",
                "role": message.role,
                "tool_calls": [
                    {
                        "name": call.function.name,
                        "arguments": call.function.arguments,
                    }
                    for call in message.tool_calls
                ],
            }

        return message.content or ""
