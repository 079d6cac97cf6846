"""Concrete implementation of the AIModel interface using the Groq API.

Groq serves as the alternate provider; it has its own credential pool
(GROQ_API_KEY, GROQ_API_KEY1..N).
"""

import logging
from typing import Optional

from groq import (
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
    AuthenticationError,
    Groq,
    RateLimitError,
)

from zestislam.domain.models.common import ApiKey
from zestislam.infrastructure.ai.base_client import ChatCompletionsClient, SdkErrors

logger = logging.getLogger(__name__)


class GroqClient(ChatCompletionsClient):
    """Groq implementation of the AIModel interface, bound to one API key."""

    PROVIDER = "groq"
    DEFAULT_MODEL = "llama-3.3-70b-versatile"
    FAST_MODEL = "llama-3.1-8b-instant"
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
        timeout: float = 60.0,
    ):
        if not api_key:
            raise ValueError("Groq API key must be a non-empty string.")
        super().__init__(model=model, fast_model=fast_model)
        self.client = Groq(api_key=api_key, timeout=timeout, max_retries=0)
        logger.debug(f"GroqClient created for models: {self.model} / {self.fast_model}")
