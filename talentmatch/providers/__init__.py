"""Embedding and language-model providers."""

from .embeddings import EmbeddingProvider, OpenAIEmbeddingProvider
from .scorer import LanguageModelScorer, OpenAIScorer

__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "LanguageModelScorer",
    "OpenAIScorer",
]
