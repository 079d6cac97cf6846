"""Interface for AI Language Models (LLMs).

Defines the contract every provider client implements so feature adapters
can stay provider-agnostic. A client instance is bound to exactly one
credential; a new instance is built for every attempt so that credential
rotation takes effect on the next try.
"""

import abc
from typing import List, Optional

from ..models.ai import ChatMessage, StructuredAIResponse
from ..models.common import PromptText


class AIModel(abc.ABC):
    """Abstract Base Class for AI language model interactions."""

    @abc.abstractmethod
    async def send_messages(
        self,
        messages: List[ChatMessage],
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> StructuredAIResponse:
        """Sends a conversation to the model asynchronously.

        Args:
            messages: The conversation so far, oldest first.
            system_instruction: Optional system prompt prepended to the conversation.
            temperature: Optional sampling temperature.

        Returns:
            A StructuredAIResponse containing the reply and metadata.

        Raises:
            RemoteInvocationError: If the provider call fails.
        """
        pass

    @abc.abstractmethod
    async def generate(
        self,
        prompt: PromptText,
        system_instruction: Optional[str] = None,
        json_output: bool = False,
        model: Optional[str] = None,
    ) -> StructuredAIResponse:
        """Sends a single prompt to the model asynchronously.

        Args:
            prompt: The prompt text.
            system_instruction: Optional system prompt.
            json_output: Ask the provider for a JSON response body.
            model: Overrides the client's default model for this call.

        Returns:
            A StructuredAIResponse; when json_output is set the content is
            expected (but not guaranteed) to be serialized JSON.

        Raises:
            RemoteInvocationError: If the provider call fails.
        """
        pass
