# status: complete

import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from utils.logger import get_logger

load_dotenv()

logger = get_logger(__name__)


_provider_cache = None
_provider_lock = threading.Lock()


def get_provider_map() -> Dict[str, Any]:
    """Get map of all available provider instances (cached as singletons)."""
    global _provider_cache

    if _provider_cache is not None:
        return _provider_cache

    with _provider_lock:
        if _provider_cache is not None:
            return _provider_cache

        from chat.providers import Groq, OpenRouter

        _provider_cache = {
            "groq": Groq(),
            "openrouter": OpenRouter(),
        }

        return _provider_cache


def reset_provider_cache() -> None:
    """Drop cached providers so the next lookup re-reads the environment."""
    global _provider_cache
    with _provider_lock:
        _provider_cache = None


@dataclass(frozen=True)
class ExecutionLimits:
    """Retry budgets and safety ceilings for one request."""

    max_iterations: int = 100
    element_retry_limit: int = 3
    task_failure_limit: int = 3
    candidate_limit: int = 5
    confirmation_timeout_ms: int = 60000
    observation_window: int = 5


class Config:
    """Configuration class for agent settings."""

    DEFAULT_PROVIDER = "groq"
    DEFAULT_MODEL = "openai/gpt-oss-120b"

    PLANNER_TEMPERATURE = 0.3
    RESPONSE_TEMPERATURE = 0.7
    ORACLE_MAX_RETRIES = 2

    MAX_ITERATIONS = 100
    ELEMENT_RETRY_LIMIT = 3
    TASK_FAILURE_LIMIT = 3
    CANDIDATE_LIMIT = 5
    CONFIRMATION_TIMEOUT_MS = 60000
    MAX_PLAN_STEPS = 10

    LARGE_TASK_TOKEN_THRESHOLD = 50000
    VERY_LARGE_TASK_TOKEN_THRESHOLD = 100000

    TIKTOKEN_ENCODING = "cl100k_base"
    FALLBACK_CHARS_PER_TOKEN = 4

    @classmethod
    def _env_int(cls, env_key: str, default: int) -> int:
        raw = os.getenv(env_key)
        if raw is None or raw == "":
            return default
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer value %r for %s", raw, env_key)
            return default
        if value < 0:
            logger.warning("Ignoring negative value %r for %s", raw, env_key)
            return default
        return value

    @classmethod
    def _env_float(cls, env_key: str, default: float) -> float:
        raw = os.getenv(env_key)
        if raw is None or raw == "":
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning("Ignoring non-numeric value %r for %s", raw, env_key)
            return default

    @classmethod
    def get_default_provider(cls) -> str:
        """Get the default provider name, validated against available providers."""
        requested = os.getenv("AGENT_PROVIDER", cls.DEFAULT_PROVIDER).lower()
        available_providers = list(get_provider_map().keys())
        if requested in available_providers:
            return requested
        return available_providers[0] if available_providers else cls.DEFAULT_PROVIDER

    @classmethod
    def get_default_model(cls) -> str:
        """Get the default model name."""
        return os.getenv("AGENT_MODEL", cls.DEFAULT_MODEL)

    @classmethod
    def get_planner_temperature(cls) -> float:
        return cls._env_float("AGENT_PLANNER_TEMPERATURE", cls.PLANNER_TEMPERATURE)

    @classmethod
    def get_response_temperature(cls) -> float:
        return cls._env_float("AGENT_RESPONSE_TEMPERATURE", cls.RESPONSE_TEMPERATURE)

    @classmethod
    def get_oracle_max_retries(cls) -> int:
        return cls._env_int("AGENT_ORACLE_MAX_RETRIES", cls.ORACLE_MAX_RETRIES)

    @classmethod
    def get_max_plan_steps(cls) -> int:
        return cls._env_int("AGENT_MAX_PLAN_STEPS", cls.MAX_PLAN_STEPS)

    @classmethod
    def get_task_token_thresholds(cls) -> Dict[str, int]:
        return {
            "large": cls._env_int("AGENT_LARGE_TASK_TOKENS", cls.LARGE_TASK_TOKEN_THRESHOLD),
            "very_large": cls._env_int("AGENT_VERY_LARGE_TASK_TOKENS", cls.VERY_LARGE_TASK_TOKEN_THRESHOLD),
        }

    @classmethod
    def get_execution_limits(cls) -> ExecutionLimits:
        """Build execution limits from class defaults and environment overrides."""
        return ExecutionLimits(
            max_iterations=max(1, cls._env_int("AGENT_MAX_ITERATIONS", cls.MAX_ITERATIONS)),
            element_retry_limit=cls._env_int("AGENT_ELEMENT_RETRY_LIMIT", cls.ELEMENT_RETRY_LIMIT),
            task_failure_limit=cls._env_int("AGENT_TASK_FAILURE_LIMIT", cls.TASK_FAILURE_LIMIT),
            candidate_limit=cls._env_int("AGENT_CANDIDATE_LIMIT", cls.CANDIDATE_LIMIT),
            confirmation_timeout_ms=cls._env_int("AGENT_CONFIRMATION_TIMEOUT_MS", cls.CONFIRMATION_TIMEOUT_MS),
        )

    @classmethod
    def get_defaults(cls, provider: Optional[str] = None) -> Dict[str, Any]:
        """Get all defaults as a dictionary."""
        limits = cls.get_execution_limits()
        return {
            "provider": provider or cls.get_default_provider(),
            "model": cls.get_default_model(),
            "planner_temperature": cls.get_planner_temperature(),
            "response_temperature": cls.get_response_temperature(),
            "oracle_max_retries": cls.get_oracle_max_retries(),
            "max_plan_steps": cls.get_max_plan_steps(),
            "max_iterations": limits.max_iterations,
            "element_retry_limit": limits.element_retry_limit,
            "task_failure_limit": limits.task_failure_limit,
            "candidate_limit": limits.candidate_limit,
            "confirmation_timeout_ms": limits.confirmation_timeout_ms,
        }
