"""
Embedding providers.

The model is fixed per deployment; vectors from different models must
never be compared, so a provider instance always uses one model.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI

from ..config import Settings
from ..errors import ScorerError, ValidationError
from .openai_client import build_client, call_with_backoff


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Return the embedding vector for text. Raises ValidationError on empty text."""
        raise NotImplementedError


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Provider that uses the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "text-embedding-3-large",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.client = build_client(api_key, client)
        self.model = model
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIEmbeddingProvider":
        return cls(
            api_key=settings.require_api_key(),
            model=settings.embedding_model,
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
        )

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty for embedding generation")

        response = await call_with_backoff(
            lambda: self.client.embeddings.create(model=self.model, input=text.strip()),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
        )

        if not response.data:
            raise ScorerError("No embedding data returned from provider")
        return list(response.data[0].embedding)
