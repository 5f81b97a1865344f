"""
Ollama embeddings: calls the /api/embed endpoint, which accepts a list of
inputs and returns one vector per input.
"""

from __future__ import annotations

import logging

import httpx

from edgevec.embeddings.base import EmbeddingProvider

logger = logging.getLogger(__name__)


class OllamaEmbeddings(EmbeddingProvider):
    """Embeddings from a local Ollama instance."""

    def __init__(self, model: str, url: str = "http://localhost:11434", timeout: float = 30.0):
        super().__init__(model, url, timeout)

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        async with httpx.AsyncClient() as client:
            try:
                resp = await client.post(
                    f"{self.url}/api/embed",
                    json={"model": self.model, "input": list(texts)},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise RuntimeError(
                        f"Embedding model '{self.model}' not found. "
                        f"Run: ollama pull {self.model}"
                    ) from e
                raise
            try:
                data = resp.json()
            except Exception as e:
                raise RuntimeError(
                    f"Embedding endpoint returned non-JSON response: {resp.text[:200]}"
                ) from e
        embeddings = data.get("embeddings")
        if not embeddings or len(embeddings) != len(texts) or not all(embeddings):
            raise RuntimeError(
                f"Embedding model '{self.model}' returned {len(embeddings or [])} "
                f"embeddings for {len(texts)} inputs"
            )
        logger.debug("Embedded %d texts with %s", len(texts), self.model)
        return embeddings
