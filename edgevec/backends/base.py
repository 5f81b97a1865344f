"""
DatabaseService: abstract base for remote SQL database services.

The store only needs a handful of primitives:
  provisioning       list_databases, create_database, database_ready
  existence check    list_tables
  writes             execute
  reads              query

Implementations never raise for transport or API failures; they return a
DatabaseResponse with ok=False and an error message. The caller decides
whether that is fatal.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class DatabaseResponse:
    """Standardized response from any database service."""
    ok: bool
    status_code: int = 200
    data: dict = field(default_factory=dict)
    backend_name: str = ""
    latency_ms: float = 0.0
    error: str = ""

    @property
    def results(self) -> list[dict]:
        """Per-statement results as [{"columns": [...], "rows": [[...]]}]."""
        return self.data.get("results", [])

    @property
    def rows(self) -> list[list]:
        """All rows of all statement results, flattened in order."""
        rows: list[list] = []
        for result in self.results:
            if not result.get("rows") or not result.get("columns"):
                continue
            rows.extend(result["rows"])
        return rows

    @property
    def databases(self) -> list[dict]:
        return self.data.get("databases", [])


class DatabaseService(abc.ABC):
    """
    Abstract remote database service.
    Each implementation knows how to provision databases and run statements.
    """

    def __init__(self, name: str, url: str, timeout: int = 60):
        self.name = name
        self.url = url.rstrip("/")
        self.timeout = timeout

    @abc.abstractmethod
    async def list_databases(self) -> DatabaseResponse:
        """data = {"databases": [{"name": ..., "id": ..., "status": ...}]}"""
        ...

    @abc.abstractmethod
    async def create_database(self, db_name: str) -> DatabaseResponse:
        ...

    async def database_ready(self, db_name: str) -> bool:
        """
        Whether the database accepts statements yet.

        Default: ready as soon as it is listed. Services that report a
        provisioning status should override this.
        """
        resp = await self.list_databases()
        if not resp.ok:
            return False
        return any(db.get("name") == db_name for db in resp.databases)

    @abc.abstractmethod
    async def list_tables(self, db_name: str) -> DatabaseResponse:
        """data = {"results": [{"columns": [...], "rows": [[schema, name, ...]]}]}"""
        ...

    @abc.abstractmethod
    async def execute(self, db_name: str, statements: list[str]) -> DatabaseResponse:
        """Run a batch of write statements, all-or-nothing from the caller's view."""
        ...

    @abc.abstractmethod
    async def query(self, db_name: str, statements: list[str]) -> DatabaseResponse:
        """data = {"results": [{"columns": [...], "rows": [[...]]}]}"""
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} url={self.url!r}>"
