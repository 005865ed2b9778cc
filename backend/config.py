# backend/config.py
"""
Runtime configuration.

Settings are read once from the environment (after python-dotenv has loaded
`.env`) and passed explicitly into the gateway and the history store, so tests
can build their own Settings or collaborators without touching os.environ.

Env vars:
  ANTHROPIC_API_KEY      credential for the Messages API (checked at first use)
  ANTHROPIC_BASE_URL     optional API base URL override
  QUERY_LLM_MODEL        default: claude-sonnet-4-20250514
  QUERY_LLM_MAX_TOKENS   default: 4000
  QUERY_LLM_TIMEOUT      seconds, default: 60
  MOCK_LLM               true to return a canned query without network access
  DATABASE_URL           default: sqlite:///./query_history.db
  HISTORY_LIMIT          default number of history rows listed (10)
  CORS_ALLOW_ORIGINS     comma-separated, default: *
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TIMEOUT = 60.0
DEFAULT_DATABASE_URL = "sqlite:///./query_history.db"
DEFAULT_HISTORY_LIMIT = 10


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes")


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass
class Settings:
    anthropic_api_key: str = ""
    anthropic_base_url: Optional[str] = None
    llm_model: str = DEFAULT_MODEL
    llm_max_tokens: int = DEFAULT_MAX_TOKENS
    llm_timeout: float = DEFAULT_TIMEOUT
    mock_llm: bool = False
    database_url: str = DEFAULT_DATABASE_URL
    history_limit: int = DEFAULT_HISTORY_LIMIT
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        return cls(
            anthropic_api_key=env.get("ANTHROPIC_API_KEY", "").strip(),
            anthropic_base_url=env.get("ANTHROPIC_BASE_URL", "").strip() or None,
            llm_model=env.get("QUERY_LLM_MODEL", "").strip() or DEFAULT_MODEL,
            llm_max_tokens=int(env.get("QUERY_LLM_MAX_TOKENS", DEFAULT_MAX_TOKENS)),
            llm_timeout=float(env.get("QUERY_LLM_TIMEOUT", DEFAULT_TIMEOUT)),
            mock_llm=_flag(env.get("MOCK_LLM")),
            database_url=env.get("DATABASE_URL", DEFAULT_DATABASE_URL).strip(),
            history_limit=int(env.get("HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT)),
            cors_allow_origins=_split(env.get("CORS_ALLOW_ORIGINS", "*")) or ["*"],
        )
