"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like credentials, prompts,
cache keys and token counts, ensuring consistency and type safety.
"""

from typing import NewType, Optional, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
ApiKey = NewType("ApiKey", str)                # One opaque provider credential
PromptText = NewType("PromptText", str)        # Prompt sent to a model
ProcessedOutput = NewType("ProcessedOutput", str)

# === Caching Context ===
CacheKey = NewType("CacheKey", str)

# === Conversation Context ===
MessageRole = NewType("MessageRole", str)      # 'user', 'model', 'system'
ConversationID = NewType("ConversationID", str)
OwnerID = NewType("OwnerID", str)              # Email or local profile name


class TokenUsage(TypedDict):
    """Represents token usage information from an AI call."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class GeoLocation(TypedDict):
    latitude: float
    longitude: float
    label: Optional[str]
