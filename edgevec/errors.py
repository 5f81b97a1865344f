"""
Error taxonomy.

Setup and write failures are raised. Search failures are built as
SearchError, logged, and folded into a single synthetic result with
metadata {"searchtype": "error"} instead of being raised.
"""

from __future__ import annotations


class EdgeVecError(Exception):
    """Base for every failure surfaced by the store."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def to_dict(self) -> dict:
        return {"message": self.message, "operation": self.operation}


class SetupError(EdgeVecError):
    """Database or table creation failed. Re-run setup; it is idempotent."""


class WriteError(EdgeVecError):
    """A chunk insert failed. Remaining chunks of that write were not sent."""

    def __init__(self, message: str, operation: str = "", chunk_index: int = -1):
        super().__init__(message, operation)
        self.chunk_index = chunk_index

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["chunk_index"] = self.chunk_index
        return d


class SearchError(EdgeVecError):
    """A query call failed."""
