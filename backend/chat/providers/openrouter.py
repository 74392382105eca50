# status: complete

import json
import os
from typing import Any, Dict, Generator

import requests
from dotenv import load_dotenv

from utils.logger import get_logger
from .base import build_messages

load_dotenv()

logger = get_logger(__name__)


class OpenRouter:
    """
    OpenRouter API
    """

    AVAILABLE_MODELS = {
        "openai/gpt-4o-mini": {
            "name": "GPT-4o mini",
            "supports_reasoning": False
        },
        "anthropic/claude-3.5-sonnet": {
            "name": "Claude 3.5 Sonnet",
            "supports_reasoning": False
        },
        "openai/gpt-oss-120b": {
            "name": "GPT OSS 120B",
            "supports_reasoning": True
        },
    }

    BASE_URL = "https://openrouter.ai/api/v1/chat/completions"

    def __init__(self):
        self.name = "openrouter"
        self.api_key = os.getenv("OPENROUTER_API_KEY")
        self.status = "enabled" if self.api_key else "disabled"

        if self.api_key:
            logger.info("OpenRouter client initialized successfully")
        else:
            logger.warning("OpenRouter API key not found, provider disabled")

    def is_available(self) -> bool:
        return self.status == "enabled" and self.api_key is not None

    def get_available_models(self) -> Dict[str, Any]:
        """Get available models for this provider"""
        return self.AVAILABLE_MODELS.copy()

    def generate_text_stream(self, system_prompt: str, prompt: str, model: str = "",
                             **config_params) -> Generator[Dict[str, Any], None, None]:
        """Generate streaming text for a system/user prompt pair"""
        if not self.is_available():
            yield {"type": "error", "content": "OpenRouter provider not available (OPENROUTER_API_KEY missing)"}
            return

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "tabpilot"
        }

        data = {
            "model": model,
            "messages": build_messages(system_prompt, prompt),
            "stream": True
        }

        for key, value in config_params.items():
            if key in ["temperature", "max_tokens", "top_p"]:
                data[key] = value

        try:
            response = requests.post(self.BASE_URL, headers=headers, json=data, stream=True, timeout=30)
            response.raise_for_status()

            for line in response.iter_lines():
                if not line:
                    continue
                line_str = line.decode('utf-8')
                if not line_str.startswith('data: '):
                    continue
                line_str = line_str[6:]
                if line_str == '[DONE]':
                    break

                try:
                    chunk = json.loads(line_str)
                except json.JSONDecodeError:
                    logger.warning(f"Failed to parse chunk: {line_str}")
                    continue

                if chunk.get("error"):
                    yield {"type": "error", "content": str(chunk["error"])}
                    return

                if "choices" in chunk and len(chunk["choices"]) > 0:
                    content = chunk["choices"][0].get("delta", {}).get("content", "")
                    if content:
                        yield {"type": "answer", "content": content}

            yield {"type": "complete"}

        except requests.exceptions.RequestException as e:
            logger.error(f"OpenRouter streaming API request failed: {str(e)}")
            yield {"type": "error", "content": str(e)}
