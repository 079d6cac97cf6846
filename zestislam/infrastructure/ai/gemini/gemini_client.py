"""Concrete implementation of the AIModel interface for Google Gemini.

Talks to Gemini through its OpenAI-compatible endpoint using the official
openai library, so one SDK and one error taxonomy cover the provider.
"""

import logging
from typing import Optional

from openai import (
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
    AuthenticationError,
    OpenAI,
    RateLimitError,
)

from zestislam.domain.models.common import ApiKey
from zestislam.infrastructure.ai.base_client import ChatCompletionsClient, SdkErrors

logger = logging.getLogger(__name__)

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class GeminiClient(ChatCompletionsClient):
    """Gemini implementation of the AIModel interface, bound to one API key."""

    PROVIDER = "gemini"
    DEFAULT_MODEL = "gemini-2.5-pro"
    FAST_MODEL = "gemini-2.5-flash"
    ERRORS = SdkErrors(
        authentication=AuthenticationError,
        rate_limit=RateLimitError,
        status=APIStatusError,
        connection=APIConnectionError,
        response_validation=APIResponseValidationError,
    )

    def __init__(
        self,
        api_key: ApiKey,
        model: Optional[str] = None,
        fast_model: Optional[str] = None,
        base_url: str = GEMINI_OPENAI_BASE_URL,
        timeout: float = 60.0,
    ):
        """Initializes the Gemini client.

        Args:
            api_key: The credential to use; obtained from the credential pool.
            model: Model for conversations.
            fast_model: Model for single structured lookups.
            base_url: OpenAI-compatible endpoint.
            timeout: Per-request timeout in seconds.
        """
        if not api_key:
            raise ValueError("Gemini API key must be a non-empty string.")
        super().__init__(model=model, fast_model=fast_model)
        # Retries are owned by the ResilientInvoker, not the SDK
        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        logger.debug(f"GeminiClient created for models: {self.model} / {self.fast_model}")
