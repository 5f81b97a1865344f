"""
VectorStore: hybrid retrieval facade over a remote SQL database.

Owns the write path (embed → rows → INSERT statements → chunks → execute)
and the three read paths (similarity, full-text, hybrid). Embedding is
delegated to an EmbeddingProvider, SQL execution to a DatabaseService.

Error signalling differs between paths:
  setup_database / add_documents / add_vectors raise SetupError / WriteError.
  similarity_search / full_text_search / hybrid_search never raise for
  database failures; they return a single SearchResult tagged
  metadata["searchtype"] == "error" with score 0. Check result.is_error.
"""

from __future__ import annotations

import json
import logging

from edgevec.backends import DatabaseService, make_database
from edgevec.backends.base import DatabaseResponse
from edgevec.chunking import MAX_CHUNK_BYTES, MAX_CHUNK_COUNT, chunk_statements
from edgevec.embeddings import EmbeddingProvider, make_embedder
from edgevec.errors import SearchError, WriteError
from edgevec.merge import merge_results
from edgevec.models import (
    Document,
    FullTextSearchOptions,
    HybridSearchOptions,
    Row,
    SearchResult,
    SetupOptions,
    SimilaritySearchOptions,
    WriteOptions,
)
from edgevec.schema import (
    DEFAULT_READY_ATTEMPTS,
    DEFAULT_READY_INTERVAL,
    SchemaProvisioner,
)
from edgevec.statements import StatementBuilder

logger = logging.getLogger(__name__)


def map_rows(resp: DatabaseResponse) -> list[SearchResult]:
    """Turn (id, content, metadata_json, score) rows into SearchResults."""
    return [
        SearchResult(
            id=str(int(row[0])),
            content=str(row[1]),
            metadata=json.loads(str(row[2])),
            score=float(row[3]),
        )
        for row in resp.rows
    ]


class VectorStore:
    """
    Hybrid vector + full-text store backed by one table in a remote database.

    Embedding stays here; the database service only sees SQL text.
    """

    def __init__(
        self,
        database: DatabaseService,
        embedder: EmbeddingProvider,
        table_name: str,
        db_name: str,
        expanded_metadata: bool = False,
        columns: list[str] | None = None,
        max_chunk_count: int = MAX_CHUNK_COUNT,
        max_chunk_bytes: int = MAX_CHUNK_BYTES,
        ready_attempts: int = DEFAULT_READY_ATTEMPTS,
        ready_interval: float = DEFAULT_READY_INTERVAL,
    ):
        self.database = database
        self.embedder = embedder
        self.table_name = table_name
        self.db_name = db_name
        self.expanded_metadata = expanded_metadata
        self.columns = list(columns) if columns else None
        self.max_chunk_count = max_chunk_count
        self.max_chunk_bytes = max_chunk_bytes

        self.statements = StatementBuilder(table_name, expanded_metadata)
        self.provisioner = SchemaProvisioner(
            database,
            db_name,
            table_name,
            expanded_metadata=expanded_metadata,
            ready_attempts=ready_attempts,
            ready_interval=ready_interval,
        )

        logger.info(
            "VectorStore initialised (database=%s, table=%s.%s, expanded=%s, embedder=%s)",
            type(database).__name__, db_name, table_name, expanded_metadata,
            type(embedder).__name__,
        )

    @classmethod
    async def create(
        cls,
        database: DatabaseService,
        embedder: EmbeddingProvider,
        setup_options: SetupOptions,
        **kwargs,
    ) -> VectorStore:
        """Construct a store and provision its schema."""
        store = cls(database, embedder, **kwargs)
        await store.setup_database(setup_options)
        return store

    @classmethod
    def from_config(cls, cfg: dict) -> VectorStore:
        """Build database client, embedder and store from a loaded config dict."""
        db_cfg = cfg.get("database", {})
        emb_cfg = cfg.get("embedding", {})
        store_cfg = cfg.get("store", {})
        chunk_cfg = cfg.get("chunking", {})
        setup_cfg = cfg.get("setup", {})

        database = make_database(
            db_cfg.get("provider", "azion"),
            url=db_cfg.get("url", ""),
            token=db_cfg.get("token", ""),
            timeout=int(db_cfg.get("timeout", 60)),
        )
        embed_kwargs = {
            "model": emb_cfg.get("model", ""),
            "url": emb_cfg.get("url", ""),
            "timeout": float(emb_cfg.get("timeout", 30)),
        }
        if emb_cfg.get("api_key"):
            embed_kwargs["api_key"] = emb_cfg["api_key"]
        embedder = make_embedder(emb_cfg.get("provider", "ollama"), **embed_kwargs)

        return cls(
            database,
            embedder,
            table_name=store_cfg.get("table_name", "documents"),
            db_name=db_cfg.get("name", "vectorstore"),
            expanded_metadata=bool(store_cfg.get("expanded_metadata", False)),
            columns=store_cfg.get("columns") or None,
            max_chunk_count=int(chunk_cfg.get("max_count", MAX_CHUNK_COUNT)),
            max_chunk_bytes=int(chunk_cfg.get("max_bytes", MAX_CHUNK_BYTES)),
            ready_attempts=int(setup_cfg.get("ready_attempts", DEFAULT_READY_ATTEMPTS)),
            ready_interval=float(setup_cfg.get("ready_interval", DEFAULT_READY_INTERVAL)),
        )

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    async def embedding_dimension(self) -> int:
        return len(await self.embedder.embed_query("test"))

    async def setup_database(self, options: SetupOptions) -> bool:
        """
        Create the database and tables if missing.

        In expanded mode options.columns become the metadata columns and are
        remembered as the default write columns.

        Raises:
            SetupError: if any database call fails.
        """
        columns = list(options.columns)
        if self.expanded_metadata and columns and self.columns is None:
            self.columns = columns
        dimension = await self.embedding_dimension()
        created = await self.provisioner.setup(columns, options.mode, dimension)
        logger.info("Database '%s' ready (tables created: %s)", self.db_name, created)
        return created

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_documents(
        self,
        documents: list[Document],
        options: WriteOptions | None = None,
    ) -> int:
        """Embed all documents in one call and insert them."""
        if not documents:
            return 0
        vectors = await self.embedder.embed_documents([doc.content for doc in documents])
        return await self.add_vectors(vectors, documents, options)

    async def add_vectors(
        self,
        vectors: list[list[float]],
        documents: list[Document],
        options: WriteOptions | None = None,
    ) -> int:
        """
        Insert pre-computed vectors. vectors[i] belongs to documents[i].

        Chunks are executed one at a time, in order. The first failing chunk
        raises WriteError; chunks already sent stay written.
        """
        rows = [Row.from_document(doc, vec) for vec, doc in zip(vectors, documents)]
        columns = options.columns if options and options.columns is not None else self.columns
        statements = self.statements.insert_statements(rows, columns)
        chunks = chunk_statements(statements, self.max_chunk_count, self.max_chunk_bytes)

        logger.info("Inserting %d rows in %d chunk(s)", len(rows), len(chunks))
        for i, chunk in enumerate(chunks):
            logger.debug("Inserting chunk %d/%d (%d statements)", i + 1, len(chunks), len(chunk))
            resp = await self.database.execute(self.db_name, chunk)
            if not resp.ok:
                logger.error("Error inserting chunk %d/%d: %s", i + 1, len(chunks), resp.error)
                raise WriteError(resp.error or "Error inserting chunk", "insert", chunk_index=i)
        return len(rows)

    # ------------------------------------------------------------------
    # Searches
    # ------------------------------------------------------------------

    async def _run_search(self, sql: str, operation: str) -> list[SearchResult]:
        resp = await self.database.query(self.db_name, [sql])
        if not resp.ok:
            return self._search_error(SearchError(resp.error or f"Error performing {operation}", operation))
        try:
            return map_rows(resp)
        except (ValueError, TypeError, IndexError) as e:
            return self._search_error(SearchError(f"Malformed result row: {e}", operation))

    @staticmethod
    def _search_error(error: SearchError) -> list[SearchResult]:
        logger.error("%s failed: %s", error.operation, error.message)
        return [SearchResult.from_error(error)]

    async def similarity_search_by_vector(
        self,
        vector: list[float],
        options: SimilaritySearchOptions,
    ) -> list[SearchResult]:
        sql = self.statements.similarity_query(
            vector, options.kvector, options.filter, options.metadata_items,
        )
        return await self._run_search(sql, "similarity search")

    async def similarity_search(
        self,
        query: str,
        options: SimilaritySearchOptions | None = None,
    ) -> list[SearchResult]:
        """Top-kvector nearest neighbours of the embedded query."""
        options = options or SimilaritySearchOptions()
        vector = await self.embedder.embed_query(query)
        return await self.similarity_search_by_vector(vector, options)

    async def full_text_search(
        self,
        query: str,
        options: FullTextSearchOptions | None = None,
    ) -> list[SearchResult]:
        """Top-kfts FTS5 matches for the words in query."""
        options = options or FullTextSearchOptions()
        sql = self.statements.full_text_query(
            query, options.kfts, options.filter, options.metadata_items,
        )
        if sql is None:
            return []
        return await self._run_search(sql, "full-text search")

    async def hybrid_search(
        self,
        query: str,
        options: HybridSearchOptions | None = None,
    ) -> list[SearchResult]:
        """
        Full-text hits first, then similarity hits, each under its own quota.

        A document found by both searches is reported once, as a full-text hit.
        """
        options = options or HybridSearchOptions()
        fts_results = await self.full_text_search(
            query,
            FullTextSearchOptions(
                kfts=options.kfts,
                filter=options.filter,
                metadata_items=options.metadata_items,
            ),
        )
        if any(r.is_error for r in fts_results):
            return fts_results

        vector_results = await self.similarity_search(
            query,
            SimilaritySearchOptions(
                kvector=options.kvector,
                filter=options.filter,
                metadata_items=options.metadata_items,
            ),
        )
        if any(r.is_error for r in vector_results):
            return vector_results

        return merge_results(fts_results + vector_results, options.kfts, options.kvector)
