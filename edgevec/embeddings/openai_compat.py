"""
OpenAI-compatible embeddings.

Works with any service that implements POST /v1/embeddings:
- OpenAI
- vLLM
- LocalAI
- llama.cpp server (--embedding)
"""

from __future__ import annotations

import logging
import os
import re

import httpx

from edgevec.embeddings.base import EmbeddingProvider

logger = logging.getLogger(__name__)


class OpenAICompatibleEmbeddings(EmbeddingProvider):
    """Embeddings from an OpenAI-compatible /v1/embeddings endpoint."""

    def __init__(
        self,
        model: str,
        url: str = "https://api.openai.com",
        timeout: float = 30.0,
        api_key: str = "",
    ):
        super().__init__(model, url, timeout)
        # Resolve ${ENV_VAR} references
        self.api_key = re.sub(
            r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), api_key or ""
        )

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.url}/v1/embeddings",
                json={"model": self.model, "input": list(texts)},
                headers=headers,
            )
            if resp.status_code >= 400:
                raise RuntimeError(
                    f"Embedding request failed: HTTP {resp.status_code}: {resp.text[:200]}"
                )
            try:
                data = resp.json()
            except Exception as e:
                raise RuntimeError(
                    f"Embedding endpoint returned non-JSON response: {resp.text[:200]}"
                ) from e

        items = sorted(data.get("data", []), key=lambda d: d.get("index", 0))
        embeddings = [item.get("embedding") for item in items]
        if len(embeddings) != len(texts) or not all(embeddings):
            raise RuntimeError(
                f"Embedding model '{self.model}' returned {len(embeddings)} "
                f"embeddings for {len(texts)} inputs"
            )
        logger.debug("Embedded %d texts with %s", len(texts), self.model)
        return embeddings
