"""
Schema provisioner: makes sure the database and tables exist.

Setup is idempotent: the database is created only if it is not listed, and
the table batch is executed only if the main table (and in hybrid mode the
<table>_fts shadow table) is missing. Partial schema is never rolled back;
re-running setup is the recovery path, so every DDL statement is guarded
with IF NOT EXISTS.

Hybrid mode keeps <table>_fts in sync through three triggers on the main
table. Nothing in this package writes to <table>_fts directly.
"""

from __future__ import annotations

import asyncio
import logging

from edgevec.backends.base import DatabaseService, DatabaseResponse
from edgevec.errors import SetupError
from edgevec.models import validate_identifier

logger = logging.getLogger(__name__)

# 15 x 1s matches the fixed settle delay the store needed after creation
DEFAULT_READY_ATTEMPTS = 15
DEFAULT_READY_INTERVAL = 1.0


def _metadata_columns_sql(expanded: bool, columns: list[str], fmt: str, plain: str) -> str:
    """Trailing ", ..." column fragment shared by every DDL statement."""
    if expanded:
        if not columns:
            return ""
        return "," + ",".join(fmt.format(col=col) for col in columns)
    return "," + plain


def schema_statements(
    table_name: str,
    dimension: int,
    expanded_metadata: bool,
    columns: list[str],
    mode: str,
) -> list[str]:
    """DDL batch for a fresh table. Vector mode stops after the vector index."""
    t = validate_identifier(table_name)
    for col in columns:
        validate_identifier(col)
    if dimension < 1:
        raise SetupError(f"Invalid embedding dimension: {dimension}", "setup")

    meta_cols = _metadata_columns_sql(expanded_metadata, columns, "{col} TEXT", "metadata JSON")
    statements = [
        f"CREATE TABLE IF NOT EXISTS {t} ("
        f"id INTEGER PRIMARY KEY AUTOINCREMENT, "
        f"content TEXT NOT NULL, "
        f"embedding F32_BLOB({int(dimension)})"
        f"{meta_cols})",
        f"CREATE INDEX IF NOT EXISTS {t}_idx ON {t} ("
        f"libsql_vector_idx(embedding, 'metric=cosine', "
        f"'compress_neighbors=float8', 'max_neighbors=20'))",
    ]
    if mode != "hybrid":
        return statements

    fts_cols = _metadata_columns_sql(expanded_metadata, columns, "{col}", "metadata")
    insert_cols = _metadata_columns_sql(expanded_metadata, columns, "{col}", "metadata")
    insert_vals = _metadata_columns_sql(expanded_metadata, columns, "new.{col}", "new.metadata")
    update_sets = _metadata_columns_sql(
        expanded_metadata, columns, "{col} = new.{col}", "metadata = new.metadata",
    )
    statements += [
        f"CREATE VIRTUAL TABLE IF NOT EXISTS {t}_fts USING fts5("
        f"content, id UNINDEXED{fts_cols}, tokenize = 'porter')",
        f"CREATE TRIGGER IF NOT EXISTS insert_into_{t}_fts "
        f"AFTER INSERT ON {t} BEGIN "
        f"INSERT INTO {t}_fts(id, content{insert_cols}) "
        f"VALUES(new.id, new.content{insert_vals}); END",
        f"CREATE TRIGGER IF NOT EXISTS update_{t}_fts "
        f"AFTER UPDATE ON {t} BEGIN "
        f"UPDATE {t}_fts SET content = new.content{update_sets} "
        f"WHERE id = old.id; END",
        f"CREATE TRIGGER IF NOT EXISTS delete_{t}_fts "
        f"AFTER DELETE ON {t} BEGIN "
        f"DELETE FROM {t}_fts WHERE id = old.id; END",
    ]
    return statements


def tables_ready(tables: list[str], table_name: str, mode: str) -> bool:
    if not tables:
        return False
    if mode == "hybrid":
        return table_name in tables and f"{table_name}_fts" in tables
    return table_name in tables


def _check(resp: DatabaseResponse, message: str) -> DatabaseResponse:
    if not resp.ok:
        logger.error("%s: %s", message, resp.error)
        raise SetupError(resp.error or message, message)
    return resp


class SchemaProvisioner:
    """Creates the database and table set for one VectorStore."""

    def __init__(
        self,
        database: DatabaseService,
        db_name: str,
        table_name: str,
        expanded_metadata: bool = False,
        ready_attempts: int = DEFAULT_READY_ATTEMPTS,
        ready_interval: float = DEFAULT_READY_INTERVAL,
    ):
        self.database = database
        self.db_name = db_name
        self.table_name = validate_identifier(table_name)
        self.expanded_metadata = expanded_metadata
        self.ready_attempts = ready_attempts
        self.ready_interval = ready_interval

    async def setup(self, columns: list[str], mode: str, dimension: int) -> bool:
        """
        Ensure database and tables exist.

        Returns True if the table batch was executed, False if the tables
        were already in place.

        Raises:
            SetupError: on any failed database call or readiness timeout.
        """
        await self.ensure_database()
        await self.wait_until_ready()
        tables = await self.existing_tables()
        if tables_ready(tables, self.table_name, mode):
            logger.info("Tables for '%s' already exist (mode=%s), skipping", self.table_name, mode)
            return False

        statements = schema_statements(
            self.table_name, dimension, self.expanded_metadata, columns, mode,
        )
        logger.info(
            "Creating tables for '%s' (mode=%s, dimension=%d, %d statements)",
            self.table_name, mode, dimension, len(statements),
        )
        _check(
            await self.database.execute(self.db_name, statements),
            "Error setting up tables",
        )
        return True

    async def ensure_database(self) -> None:
        resp = _check(await self.database.list_databases(), "Error getting databases")
        if any(db.get("name") == self.db_name for db in resp.databases):
            return
        logger.info("Creating database '%s'", self.db_name)
        _check(await self.database.create_database(self.db_name), "Error creating database")

    async def wait_until_ready(self) -> None:
        """Poll the service until the database reports ready."""
        for attempt in range(1, self.ready_attempts + 1):
            if await self.database.database_ready(self.db_name):
                logger.debug("Database '%s' ready after %d check(s)", self.db_name, attempt)
                return
            if attempt < self.ready_attempts:
                await asyncio.sleep(self.ready_interval)
        timeout = self.ready_attempts * self.ready_interval
        raise SetupError(
            f"Database '{self.db_name}' not ready after {timeout:.0f}s",
            "Error waiting for database",
        )

    async def existing_tables(self) -> list[str]:
        resp = _check(await self.database.list_tables(self.db_name), "Error getting tables")
        # PRAGMA table_list rows: (schema, name, type, ncol, wr, strict)
        return [str(row[1]) for row in resp.rows if len(row) > 1]
