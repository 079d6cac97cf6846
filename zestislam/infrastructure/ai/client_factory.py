"""Builds provider clients bound to the credential pool's active key.

Feature adapters call create() inside the operation they hand to the
ResilientInvoker, so an attempt that follows a rotation is made with the
next credential.
"""

import logging
from typing import Callable, Dict, Optional

from zestislam.domain.interfaces.ai_model import AIModel
from zestislam.domain.models.common import ApiKey
from zestislam.infrastructure.ai.gemini.gemini_client import GeminiClient
from zestislam.infrastructure.ai.groq.groq_client import GroqClient
from zestislam.infrastructure.credentials.credential_pool import CredentialPool

logger = logging.getLogger(__name__)

ClientBuilder = Callable[..., AIModel]

CLIENT_BUILDERS: Dict[str, ClientBuilder] = {
    "gemini": GeminiClient,
    "groq": GroqClient,
}


class AIClientFactory:
    """Creates AIModel instances for one provider from its credential pool."""

    def __init__(
        self,
        credential_pool: CredentialPool,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        fast_model: Optional[str] = None,
        builder: Optional[ClientBuilder] = None,
    ):
        """Initializes the factory.

        Args:
            credential_pool: Pool providing the active credential.
            provider: Provider name; defaults to the pool's provider.
            model: Conversation model override.
            fast_model: Structured-lookup model override.
            builder: Callable(api_key=..., model=..., fast_model=...) returning an
                AIModel; looked up from CLIENT_BUILDERS when None.
        """
        self.credential_pool = credential_pool
        self.provider = provider or credential_pool.provider
        self.model = model
        self.fast_model = fast_model
        if builder is None:
            if self.provider not in CLIENT_BUILDERS:
                raise ValueError(
                    f"Unknown AI provider '{self.provider}'. Available: {', '.join(sorted(CLIENT_BUILDERS))}"
                )
            builder = CLIENT_BUILDERS[self.provider]
        self._builder = builder

    def create(self) -> AIModel:
        """Builds a client for the active credential.

        Raises:
            CredentialPoolEmpty: If the provider has no configured credential.
        """
        api_key: ApiKey = self.credential_pool.get_active()
        logger.debug(
            f"Creating {self.provider} client with key #{self.credential_pool.cursor + 1}/{self.credential_pool.size}"
        )
        return self._builder(api_key=api_key, model=self.model, fast_model=self.fast_model)
