"""Shared implementation for providers exposing an OpenAI-style chat completions API.

Hides the specifics of the SDK client and translates requests/responses
between the domain model and the provider format. SDK exceptions are
translated into the project's RemoteInvocationError family, keeping the
status code so the error classifier can decide on retry and rotation.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from zestislam.domain.interfaces.ai_model import AIModel
from zestislam.domain.models.ai import ChatMessage, StructuredAIResponse
from zestislam.domain.models.common import MessageRole, PromptText, TokenUsage
from zestislam.domain.models.errors import (
    RemoteInvocationError,
    TerminalRemoteFailure,
    TransientRemoteFailure,
)

logger = logging.getLogger(__name__)

# Stored conversation roles ('model') mapped to chat-completions roles
ROLE_MAP = {
    "model": "assistant",
    "ai": "assistant",
    "assistant": "assistant",
    "user": "user",
    "system": "system",
}


@dataclass(frozen=True)
class SdkErrors:
    """The exception classes of one provider SDK, in translation order."""
    authentication: type
    rate_limit: type
    status: type
    connection: type
    response_validation: type


class ChatCompletionsClient(AIModel):
    """Base client; subclasses construct `self.client` and set provider details."""

    PROVIDER = "openai-compatible"
    DEFAULT_MODEL = ""
    FAST_MODEL = ""
    ERRORS: SdkErrors

    client: Any

    def __init__(self, model: Optional[str] = None, fast_model: Optional[str] = None):
        self.model = model or self.DEFAULT_MODEL
        self.fast_model = fast_model or self.FAST_MODEL or self.model

    # --- Request helpers ---

    @staticmethod
    def _to_provider_messages(
        messages: List[ChatMessage], system_instruction: Optional[str]
    ) -> List[Dict[str, str]]:
        provider_messages: List[Dict[str, str]] = []
        if system_instruction:
            provider_messages.append({"role": "system", "content": system_instruction})
        for message in messages:
            role = ROLE_MAP.get(str(message["role"]).lower(), "user")
            provider_messages.append({"role": role, "content": message["content"]})
        return provider_messages

    def _parse_response(self, response: Any) -> StructuredAIResponse:
        """Parses the chat completion object returned by the SDK."""
        try:
            choice = response.choices[0]
            content = choice.message.content or ""
            token_usage = None
            if getattr(response, "usage", None):
                token_usage = TokenUsage(
                    prompt_tokens=response.usage.prompt_tokens,
                    completion_tokens=response.usage.completion_tokens,
                    total_tokens=response.usage.total_tokens,
                )
            return StructuredAIResponse(
                content=content,
                token_usage=token_usage,
                model_name=getattr(response, "model", None),
                finish_reason=getattr(choice, "finish_reason", None),
            )
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            logger.error(f"Failed to parse {self.PROVIDER} response structure: {e}")
            raise TerminalRemoteFailure(f"Invalid response structure from {self.PROVIDER}: {e}") from e

    def _translate_error(self, error: Exception) -> RemoteInvocationError:
        """Maps an SDK exception onto the project's error taxonomy."""
        errors = self.ERRORS
        status = getattr(error, "status_code", None)
        if isinstance(error, errors.authentication):
            return TerminalRemoteFailure(f"{self.PROVIDER} authentication error: {error}", status_code=status or 401)
        if isinstance(error, errors.rate_limit):
            return TransientRemoteFailure(f"{self.PROVIDER} rate limit exceeded: {error}", status_code=status or 429)
        if isinstance(error, errors.status):
            return RemoteInvocationError(f"{self.PROVIDER} API error: {error}", status_code=status)
        if isinstance(error, errors.connection):
            return TransientRemoteFailure(f"{self.PROVIDER} connection error: {error}", rotate_credential=False)
        if isinstance(error, errors.response_validation):
            return TerminalRemoteFailure(f"{self.PROVIDER} response validation error: {error}")
        return RemoteInvocationError(f"Unexpected {self.PROVIDER} error: {type(error).__name__}: {error}")

    async def _create_completion(self, **request: Any) -> StructuredAIResponse:
        start_time = time.perf_counter()
        try:
            # The SDK client is synchronous; keep the event loop free
            response = await asyncio.to_thread(self.client.chat.completions.create, **request)
        except Exception as e:
            translated = self._translate_error(e)
            logger.warning(f"{self.PROVIDER} call failed: {translated}")
            raise translated from e

        structured_response = self._parse_response(response)
        structured_response.latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Received response from {self.PROVIDER} in {structured_response.latency_ms:.2f}ms. "
            f"Usage: {structured_response.token_usage}"
        )
        return structured_response

    # --- AIModel Interface Implementation ---

    async def send_messages(
        self,
        messages: List[ChatMessage],
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> StructuredAIResponse:
        logger.debug(f"Sending {len(messages)} messages to {self.PROVIDER} model: {self.model}")
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": self._to_provider_messages(messages, system_instruction),
        }
        if temperature is not None:
            request["temperature"] = temperature
        return await self._create_completion(**request)

    async def generate(
        self,
        prompt: PromptText,
        system_instruction: Optional[str] = None,
        json_output: bool = False,
        model: Optional[str] = None,
    ) -> StructuredAIResponse:
        messages = [ChatMessage(role=MessageRole("user"), content=prompt)]
        request: Dict[str, Any] = {
            "model": model or self.fast_model,
            "messages": self._to_provider_messages(messages, system_instruction),
        }
        if json_output:
            request["response_format"] = {"type": "json_object"}
        return await self._create_completion(**request)
