"""
Runtime configuration.

Settings are read once from environment variables (optionally seeded from
a .env file) and handed to the components that need them. Nothing in the
pipeline reads os.environ directly.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError

MAX_BATCH_SIZE = 20


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _get_float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Process configuration for providers, store and pipeline tuning."""

    openai_api_key: str = ""
    db_path: Path = Path("data/talentmatch.db")
    embedding_model: str = "text-embedding-3-large"
    neural_model: str = "gpt-4o-mini"
    llm_model: str = "gpt-4o"
    expansion_model: str = "gpt-4o"
    batch_size: int = 10
    batch_delay: float = 1.0
    cluster_delay: float = 0.5
    max_concurrency: int = 5
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    pipeline_timeout: Optional[float] = None
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    def __post_init__(self):
        if not 1 <= self.batch_size <= MAX_BATCH_SIZE:
            raise ConfigurationError(
                f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {self.batch_size}"
            )
        if self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be at least 1")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries cannot be negative")
        if self.batch_delay < 0 or self.cluster_delay < 0:
            raise ConfigurationError("delays cannot be negative")
        if self.pipeline_timeout is not None and self.pipeline_timeout <= 0:
            raise ConfigurationError("pipeline_timeout must be positive when set")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY", "").strip(),
            db_path=Path(env.get("TALENTMATCH_DB_PATH", "data/talentmatch.db")),
            embedding_model=env.get("TALENTMATCH_EMBEDDING_MODEL", "text-embedding-3-large"),
            neural_model=env.get("TALENTMATCH_NEURAL_MODEL", "gpt-4o-mini"),
            llm_model=env.get("TALENTMATCH_LLM_MODEL", "gpt-4o"),
            expansion_model=env.get("TALENTMATCH_EXPANSION_MODEL", "gpt-4o"),
            batch_size=_get_int(env, "TALENTMATCH_BATCH_SIZE", 10),
            batch_delay=_get_float(env, "TALENTMATCH_BATCH_DELAY", 1.0),
            cluster_delay=_get_float(env, "TALENTMATCH_CLUSTER_DELAY", 0.5),
            max_concurrency=_get_int(env, "TALENTMATCH_MAX_CONCURRENCY", 5),
            max_retries=_get_int(env, "TALENTMATCH_MAX_RETRIES", 3),
            retry_base_delay=_get_float(env, "TALENTMATCH_RETRY_BASE_DELAY", 1.0),
            retry_max_delay=_get_float(env, "TALENTMATCH_RETRY_MAX_DELAY", 30.0),
            pipeline_timeout=_get_float(env, "TALENTMATCH_PIPELINE_TIMEOUT", None),
            log_level=env.get("TALENTMATCH_LOG_LEVEL", "INFO"),
            log_dir=Path(env.get("TALENTMATCH_LOG_DIR", "logs")),
        )

    def require_api_key(self) -> str:
        """Return the provider API key or fail fast at startup."""
        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY not set. Set env var or add it to .env.")
        return self.openai_api_key
