"""
EmbeddingProvider: abstract base for text embedding services.

Providers turn text into fixed-length float vectors. The dimension is a
property of the provider's model and is discovered by the store at setup time
by embedding a sample string.
"""

from __future__ import annotations

import abc


class EmbeddingProvider(abc.ABC):
    """Abstract embeddings provider."""

    def __init__(self, model: str, url: str, timeout: float = 30.0):
        self.model = model
        self.url = url.rstrip("/")
        self.timeout = timeout

    @abc.abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts in one call, preserving order."""
        ...

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query string."""
        vectors = await self.embed_documents([text])
        return vectors[0]

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.model!r} url={self.url!r}>"
