"""
edgevec: hybrid vector and full-text retrieval over a remote edge SQL
database.
"""

__version__ = "0.1.0"

from edgevec.models import (  # noqa: E402
    Document,
    Filter,
    FullTextSearchOptions,
    HybridSearchOptions,
    SearchResult,
    SetupOptions,
    SimilaritySearchOptions,
    WriteOptions,
)
from edgevec.errors import EdgeVecError, SearchError, SetupError, WriteError  # noqa: E402
from edgevec.vector_store import VectorStore  # noqa: E402

__all__ = [
    "Document",
    "Filter",
    "FullTextSearchOptions",
    "HybridSearchOptions",
    "SearchResult",
    "SetupOptions",
    "SimilaritySearchOptions",
    "WriteOptions",
    "EdgeVecError",
    "SearchError",
    "SetupError",
    "WriteError",
    "VectorStore",
]
