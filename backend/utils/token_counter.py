# status: complete

from utils.config import Config
from utils.logger import get_logger

logger = get_logger(__name__)

_encoding = None


def _get_encoding():
    global _encoding
    if _encoding is None:
        import tiktoken
        _encoding = tiktoken.get_encoding(Config.TIKTOKEN_ENCODING)
    return _encoding


def count_tokens(text: str) -> int:
    """
    Count tokens with tiktoken's cl100k_base encoding.
    Fallback: 1 token ≈ 4 characters.
    """
    if not text:
        return 0
    try:
        return len(_get_encoding().encode(text))
    except Exception as e:
        logger.warning(f"tiktoken counting failed: {e}, using fallback")
        return max(1, len(text) // Config.FALLBACK_CHARS_PER_TOKEN)


def estimate_task_tokens(user_message: str, system_prompt: str) -> int:
    """
    Rough size estimate for a whole request before it runs.

    Adds a fixed overhead for tool output and reasoning, then scales by the
    number of chained actions the message mentions (capped at 5x).
    """
    overhead = 20000
    lowered = user_message.lower()
    action_count = 1 + sum(lowered.count(keyword) for keyword in (" then ", " after ", " next ", " also ", " finally "))
    base = count_tokens(user_message) + count_tokens(system_prompt) + overhead
    return base * min(action_count, 5)
