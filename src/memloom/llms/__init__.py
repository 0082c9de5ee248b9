"""Generation backends implementing the ``LLM`` port."""

from .openai_llm import OpenAILLM

__all__ = ["OpenAILLM"]
