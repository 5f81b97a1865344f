"""
Shared fakes: an in-memory database service that records every call, and a
deterministic embedder. Neither touches the network.
"""

import re

import pytest

from edgevec.backends.base import DatabaseService, DatabaseResponse
from edgevec.embeddings.base import EmbeddingProvider

_CREATE_RE = re.compile(
    r"CREATE\s+(?:VIRTUAL\s+)?(TABLE|INDEX)\s+(IF\s+NOT\s+EXISTS\s+)?(\w+)", re.IGNORECASE
)


class FakeDatabase(DatabaseService):
    """
    Records calls; CREATE TABLE statements make tables appear in list_tables.

    Like SQLite, a CREATE TABLE or CREATE INDEX without IF NOT EXISTS fails
    when the object already exists. Statements before the failing one stay
    applied.
    """

    def __init__(self, databases=None, tables=None):
        super().__init__("fake", "http://fake")
        self.databases = [{"name": n, "id": i, "status": "created"} for i, n in enumerate(databases or [])]
        self.tables = list(tables or [])
        self.indexes = [f"{t}_idx" for t in self.tables if not t.endswith("_fts")]
        self.calls: list[tuple] = []
        self.executed: list[list[str]] = []
        self.queried: list[list[str]] = []
        self.query_rows: list[list] = []
        self.fail: dict[str, str] = {}
        self.fail_execute_at: int | None = None
        self.ready_after = 0

    def _fail(self, op):
        return DatabaseResponse(ok=False, status_code=500, backend_name=self.name, error=self.fail[op])

    async def list_databases(self):
        self.calls.append(("list_databases",))
        if "list_databases" in self.fail:
            return self._fail("list_databases")
        return DatabaseResponse(ok=True, data={"databases": list(self.databases)})

    async def create_database(self, db_name):
        self.calls.append(("create_database", db_name))
        if "create_database" in self.fail:
            return self._fail("create_database")
        self.databases.append({"name": db_name, "id": len(self.databases), "status": "created"})
        return DatabaseResponse(ok=True)

    async def database_ready(self, db_name):
        self.calls.append(("database_ready", db_name))
        if self.ready_after > 0:
            self.ready_after -= 1
            return False
        return await super().database_ready(db_name)

    async def list_tables(self, db_name):
        self.calls.append(("list_tables", db_name))
        if "list_tables" in self.fail:
            return self._fail("list_tables")
        rows = [["main", t, "table", 4, 0, 0] for t in self.tables]
        columns = ["schema", "name", "type", "ncol", "wr", "strict"]
        return DatabaseResponse(ok=True, data={"results": [{"columns": columns, "rows": rows}]})

    async def execute(self, db_name, statements):
        self.calls.append(("execute", db_name))
        index = len(self.executed)
        self.executed.append(list(statements))
        if "execute" in self.fail or self.fail_execute_at == index:
            return DatabaseResponse(ok=False, status_code=500, error=self.fail.get("execute", "chunk rejected"))
        for sql in statements:
            m = _CREATE_RE.match(sql.strip())
            if not m:
                continue
            kind, guarded, name = m.group(1).upper(), m.group(2), m.group(3)
            existing = self.tables if kind == "TABLE" else self.indexes
            if name in existing:
                if guarded:
                    continue
                return DatabaseResponse(ok=False, status_code=400, error=f"{kind.lower()} {name} already exists")
            existing.append(name)
        return DatabaseResponse(ok=True)

    async def query(self, db_name, statements):
        self.calls.append(("query", db_name))
        self.queried.append(list(statements))
        if "query" in self.fail:
            return self._fail("query")
        sql = statements[0]
        # Hand back only the rows for the channel this statement asks for
        tag = "fulltextsearch" if "_fts" in sql.split("FROM", 1)[-1] else "similarity"
        rows = [r for r in self.query_rows if f'"searchtype": "{tag}"' in r[2]]
        columns = ["id", "content", "metadata", "score"]
        return DatabaseResponse(ok=True, data={"results": [{"columns": columns, "rows": rows}]})


class FakeEmbedder(EmbeddingProvider):
    """3-dimensional vectors derived from text length."""

    def __init__(self, dimension=3):
        super().__init__("fake-embed", "http://fake")
        self.dimension = dimension
        self.calls: list[list[str]] = []

    async def embed_documents(self, texts):
        self.calls.append(list(texts))
        return [[float(len(t))] + [0.5] * (self.dimension - 1) for t in texts]


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def make_db():
    """Factory for FakeDatabase with preset databases/tables."""
    return FakeDatabase
