# status: complete

import os
from typing import Any, Dict, Generator

from dotenv import load_dotenv

from utils.logger import get_logger
from .base import build_messages

load_dotenv()

logger = get_logger(__name__)


class Groq:
    """
    Groq API
    """

    AVAILABLE_MODELS = {
        "openai/gpt-oss-120b": {
            "name": "GPT-OSS 120B",
            "supports_reasoning": True
        },
        "openai/gpt-oss-20b": {
            "name": "GPT-OSS 20B",
            "supports_reasoning": True
        },
        "meta-llama/llama-4-maverick-17b-128e-instruct": {
            "name": "Llama 4 Maverick 17B",
            "supports_reasoning": False
        },
        "moonshotai/kimi-k2-instruct-0905": {
            "name": "Kimi K2 Instruct",
            "supports_reasoning": False
        },
    }

    def __init__(self):
        self.name = "groq"
        self.api_key = os.getenv("GROQ_API_KEY")
        self.status = "enabled" if self.api_key else "disabled"
        self.client = None

        if self.api_key:
            try:
                from groq import Groq as GroqClient
                self.client = GroqClient(api_key=self.api_key)
                logger.info("Groq text generation client initialized successfully")
            except Exception as e:
                logger.error(f"Failed to initialize Groq client: {str(e)}")
                self.status = "disabled"

    def is_available(self) -> bool:
        return self.status == "enabled" and self.client is not None

    def get_available_models(self) -> Dict[str, Any]:
        """Get available models for this provider"""
        return self.AVAILABLE_MODELS.copy()

    def generate_text_stream(self, system_prompt: str, prompt: str, model: str = "",
                             **config_params) -> Generator[Dict[str, Any], None, None]:
        """Generate streaming text for a system/user prompt pair"""
        if not self.is_available():
            yield {"type": "error", "content": "Groq provider not available (GROQ_API_KEY missing)"}
            return

        request_params = {
            "model": model,
            "messages": build_messages(system_prompt, prompt),
            "stream": True
        }

        for key, value in config_params.items():
            if key in ["temperature", "max_completion_tokens", "max_tokens", "top_p", "stop"]:
                if key == "max_tokens":
                    request_params["max_completion_tokens"] = value
                else:
                    request_params[key] = value

        try:
            response = self.client.chat.completions.create(**request_params)

            for chunk in response:
                if chunk.choices and len(chunk.choices) > 0:
                    delta = chunk.choices[0].delta
                    if delta.content:
                        yield {"type": "answer", "content": delta.content}

            yield {"type": "complete"}

        except Exception as e:
            logger.error(f"Groq streaming API request failed: {str(e)}")
            yield {"type": "error", "content": str(e)}
