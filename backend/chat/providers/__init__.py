# status: complete

from .groq import Groq
from .openrouter import OpenRouter
from .base import DisabledProvider

__all__ = ['Groq', 'OpenRouter', 'DisabledProvider']
