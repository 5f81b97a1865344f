"""
Data models for the hybrid store.
These define the shape of data flowing between the facade, the statement
builder and the result merger.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

# Origin tags carried in metadata["searchtype"]
SIMILARITY = "similarity"
FULLTEXT = "fulltextsearch"
ERROR = "error"

OPERATORS = (
    "=", "!=", "<>", ">", "<", ">=", "<=",
    "LIKE", "NOT LIKE",
    "IN", "NOT IN",
    "IS NULL", "IS NOT NULL",
)

MODES = ("vector", "hybrid")

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(name: str) -> str:
    """Return name if it is a plain SQL identifier, else raise ValueError."""
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


@dataclass
class Document:
    """A piece of text plus arbitrary metadata, owned by the caller."""
    content: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class Row:
    """A document paired with its embedding, ready to be rendered as an INSERT."""
    content: str
    embedding: list[float]
    metadata: dict[str, Any]

    @classmethod
    def from_document(cls, document: Document, embedding: list[float]) -> Row:
        return cls(
            content=document.content,
            embedding=list(embedding),
            metadata=dict(document.metadata or {}),
        )


@dataclass(frozen=True)
class Filter:
    """A single WHERE condition. A list of filters is ANDed together."""
    operator: str
    column: str
    value: str = ""

    def __post_init__(self):
        op = self.operator.strip().upper()
        if op not in OPERATORS:
            raise ValueError(
                f"Unknown filter operator: '{self.operator}'. "
                f"Available: {', '.join(OPERATORS)}"
            )
        object.__setattr__(self, "operator", op)
        validate_identifier(self.column)

    @classmethod
    def parse(cls, text: str) -> Filter:
        """
        Parse "column OP value" as typed on the command line.

        The operator is matched longest-first so "NOT LIKE" wins over "LIKE"
        and ">=" wins over ">". It must be followed by whitespace or the end
        of the text, so "INX" is not read as IN.
        """
        text = text.strip()
        column, _, rest = text.partition(" ")
        rest = rest.strip()
        for op in sorted(OPERATORS, key=len, reverse=True):
            if not rest.upper().startswith(op):
                continue
            tail = rest[len(op):]
            if tail and not tail[0].isspace():
                continue
            value = tail.strip()
            return cls(operator=op, column=column, value=value)
        raise ValueError(f"Cannot parse filter: {text!r}")


@dataclass
class SearchResult:
    """
    One hit from a search.

    score is 1 - cosine distance for similarity hits and the FTS5 rank for
    full-text hits. The two are not comparable.
    """
    id: str | None
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float = 0.0

    @property
    def search_type(self) -> str:
        return self.metadata.get("searchtype", "")

    @property
    def is_error(self) -> bool:
        return self.search_type == ERROR

    def to_document(self) -> Document:
        return Document(content=self.content, metadata=dict(self.metadata), id=self.id)

    @classmethod
    def from_error(cls, error: Exception | str) -> SearchResult:
        """Build the synthetic result returned in place of a failed search."""
        if isinstance(error, Exception):
            payload = getattr(error, "to_dict", lambda: {"message": str(error)})()
        else:
            payload = {"message": error}
        return cls(
            id=None,
            content=json.dumps(payload),
            metadata={"searchtype": ERROR},
            score=0.0,
        )


# ---------------------------------------------------------------------------
# Option records
# ---------------------------------------------------------------------------

@dataclass
class SearchOptions:
    """Filter and projection shared by every search shape."""
    filter: list[Filter] | None = None
    metadata_items: list[str] | None = None

    def __post_init__(self):
        if self.metadata_items:
            for item in self.metadata_items:
                validate_identifier(item)


@dataclass
class SimilaritySearchOptions(SearchOptions):
    kvector: int = 4


@dataclass
class FullTextSearchOptions(SearchOptions):
    kfts: int = 4


@dataclass
class HybridSearchOptions(SearchOptions):
    kfts: int = 2
    kvector: int = 2


@dataclass
class SetupOptions:
    """columns are only used in expanded-metadata mode."""
    columns: list[str] = field(default_factory=list)
    mode: str = "vector"

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"Unknown setup mode: '{self.mode}'. Available: {', '.join(MODES)}")
        for col in self.columns:
            validate_identifier(col)


@dataclass
class WriteOptions:
    """columns: metadata keys written as their own columns in expanded mode."""
    columns: list[str] | None = None
