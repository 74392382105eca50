# status: complete

from typing import Any, Dict, Optional

from utils.config import Config, get_provider_map
from utils.logger import get_logger
from utils.retry_handler import RetryHandler

logger = get_logger(__name__)


class OracleError(RuntimeError):
    """Raised when the completion model cannot produce text."""


class Chat:
    """
    Completion oracle over the configured providers.

    Callers hand in a system prompt and a user prompt and get plain text
    back. Provider output is always a stream; it is consumed by
    concatenation and never parsed for structure here.
    """

    def __init__(self, provider: Optional[str] = None, model: Optional[str] = None,
                 providers: Optional[Dict[str, Any]] = None, retry_handler: Optional[RetryHandler] = None):
        self.providers = providers if providers is not None else get_provider_map()
        self.provider = provider or Config.get_default_provider()
        self.model = model or Config.get_default_model()
        self._retry_handler = retry_handler

    def get_available_providers(self) -> Dict[str, bool]:
        """Get list of available providers"""
        return {name: provider.is_available() for name, provider in self.providers.items()}

    def is_configured(self) -> bool:
        provider = self.providers.get(self.provider)
        return provider is not None and provider.is_available()

    def complete(self, system_prompt: str, user_prompt: str, role: str = "agent",
                 temperature: Optional[float] = None, max_retries: Optional[int] = None) -> str:
        """
        Run one completion and return the concatenated answer text.

        Args:
            system_prompt: System message
            user_prompt: User message
            role: Caller label used in logs (planner, replanner, goal_check, ...)
            temperature: Sampling temperature, provider default when None
            max_retries: Transport-level retries for rate limits and overloads

        Raises:
            OracleError: provider missing, or the stream failed after retries
        """
        provider = self.providers.get(self.provider)
        if provider is None or not provider.is_available():
            raise OracleError(f"Provider {self.provider} is not available. Check the API key in .env")

        retries = Config.get_oracle_max_retries() if max_retries is None else max_retries
        handler = self._retry_handler or RetryHandler(max_retries=retries)
        config_params = {}
        if temperature is not None:
            config_params["temperature"] = temperature

        attempt = 0
        while True:
            text, error = self._consume_stream(provider, system_prompt, user_prompt, config_params)
            if error is None:
                logger.debug(f"[ORACLE] {role} completion received ({len(text)} chars)")
                return text

            should_retry, delay = handler.should_retry(error, attempt, logger)
            if not should_retry:
                logger.error(f"[ORACLE] {role} completion failed: {error}")
                raise OracleError(f"{self.provider} API error: {error}")
            handler.sleep(delay)
            attempt += 1

    def _consume_stream(self, provider, system_prompt: str, user_prompt: str,
                        config_params: Dict[str, Any]) -> tuple[str, Optional[str]]:
        parts = []
        for chunk in provider.generate_text_stream(system_prompt, user_prompt, model=self.model, **config_params):
            chunk_type = chunk.get("type")
            if chunk_type == "answer":
                parts.append(chunk.get("content", ""))
            elif chunk_type == "error":
                return "".join(parts), str(chunk.get("content", "unknown error"))
        return "".join(parts), None
