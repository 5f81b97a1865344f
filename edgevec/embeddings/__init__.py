"""
Embeddings provider factory.

Usage:
    from edgevec.embeddings import make_embedder
    embedder = make_embedder("ollama", model="nomic-embed-text", url="http://localhost:11434")
"""

from .base import EmbeddingProvider

_REGISTRY: dict[str, type[EmbeddingProvider]] = {}


def _register():
    global _REGISTRY
    if _REGISTRY:
        return
    from .ollama import OllamaEmbeddings
    from .openai_compat import OpenAICompatibleEmbeddings
    _REGISTRY["ollama"] = OllamaEmbeddings
    _REGISTRY["openai"] = OpenAICompatibleEmbeddings
    _REGISTRY["openai_compat"] = OpenAICompatibleEmbeddings


def make_embedder(provider: str, **kwargs) -> EmbeddingProvider:
    """
    Instantiate an embeddings provider by name.

    Raises:
        ValueError: If the provider is not registered.
    """
    _register()
    cls = _REGISTRY.get(provider)
    if cls is None:
        available = ", ".join(_REGISTRY.keys())
        raise ValueError(
            f"Unknown embedding provider: '{provider}'. "
            f"Available: {available}"
        )
    return cls(**kwargs)


__all__ = ["EmbeddingProvider", "make_embedder"]
