"""Concrete implementations of provider interfaces."""

from .chat.lark import LarkAdapter
from .llm.gemini import GeminiAdapter
from .secrets import EnvCredentialProvider

__all__ = [
    "EnvCredentialProvider",
    "GeminiAdapter",
    "LarkAdapter",
]
