"""
Environment configuration module.

Centralizes all environment variable access with sensible defaults.
Load values from .env file or system environment variables.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default fallback."""
    return os.getenv(key, default)


def get_env_optional(key: str) -> str | None:
    """Get environment variable, treating an empty value as unset."""
    value = os.getenv(key)
    return value or None


@dataclass
class EnvConfig:
    """Adapter defaults read from the environment."""

    openai_api_key: str | None = field(
        default_factory=lambda: get_env_optional("MEMLOOM_OPENAI_API_KEY")
    )
    openai_base_url: str | None = field(
        default_factory=lambda: get_env_optional("MEMLOOM_OPENAI_BASE_URL")
    )
    llm_model: str = field(
        default_factory=lambda: get_env("MEMLOOM_LLM_MODEL", "gpt-4.1-nano")
    )
    embedding_model: str | None = field(
        default_factory=lambda: get_env_optional("MEMLOOM_EMBEDDING_MODEL")
    )
    history_db_path: str = field(
        default_factory=lambda: get_env(
            "MEMLOOM_HISTORY_DB_PATH", "./memory/history.db"
        )
    )


env_config = EnvConfig()
