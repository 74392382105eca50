# status: complete

from typing import Any, Dict, Generator, List


class DisabledProvider:
    """Base class for disabled/placeholder providers"""

    def __init__(self, name: str = "DisabledProvider"):
        self.name = name
        self.status = "disabled"

    def is_available(self) -> bool:
        return False

    def get_available_models(self) -> dict:
        return {}

    def generate_text_stream(self, system_prompt: str, prompt: str, model: str = "",
                             **config_params) -> Generator[Dict[str, Any], None, None]:
        yield {"type": "error", "content": f"{self.name} provider not available"}


def build_messages(system_prompt: str, prompt: str) -> List[Dict[str, str]]:
    """OpenAI-style message list shared by every chat-completions provider"""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages
