"""Protocol definitions for pluggable adapters."""

from .chat import ChatProvider
from .llm import LLMProvider
from .secrets import CredentialProvider

__all__ = ["ChatProvider", "CredentialProvider", "LLMProvider"]
