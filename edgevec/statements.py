"""
Statement builder: renders the SQL sent to the edge database.

The database API accepts statement text only (no bound parameters), so values
are inlined. Text values are sanitized by replacing single and double quotes
with a space; identifiers are validated as plain names before use. The vector
and full-text queries rely on libSQL's vector_top_k / vector_distance_cos and
on an FTS5 shadow table named <table>_fts.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from edgevec.models import (
    FULLTEXT,
    SIMILARITY,
    Filter,
    Row,
    validate_identifier,
)

logger = logging.getLogger(__name__)

_NON_WORD_RE = re.compile(r"[^a-zA-Z0-9\s]")


def sanitize(value: Any) -> str:
    """Strip quote characters from a text value (lossy, not escaping)."""
    return str(value).replace("'", " ").replace('"', " ")


def vector_literal(vector: list[float]) -> str:
    """Render floats as a libSQL vector('[...]') expression."""
    return "vector('[" + ",".join(str(float(x)) for x in vector) + "]')"


def fts_terms(query: str) -> str:
    """
    Turn free text into an FTS5 MATCH expression.

    Everything that is not an ASCII letter, digit or whitespace is dropped and
    the remaining words are ORed. Words are lower-cased so AND, NOT and NEAR
    are searched as terms, not read as FTS5 operators. Returns "" if nothing
    searchable is left.
    """
    words = _NON_WORD_RE.sub("", str(query)).lower().split()
    return " OR ".join(words)


def extract_metadata_columns(rows: list[Row]) -> list[str]:
    """Ordered union of metadata keys across rows (first-seen order)."""
    columns: list[str] = []
    for row in rows:
        for key in (row.metadata or {}):
            if key not in columns:
                columns.append(key)
    return columns


class StatementBuilder:
    """Builds INSERT and SELECT statements for one table."""

    def __init__(self, table_name: str, expanded_metadata: bool = False):
        self.table_name = validate_identifier(table_name)
        self.expanded_metadata = expanded_metadata

    @property
    def fts_table(self) -> str:
        return f"{self.table_name}_fts"

    @property
    def index_name(self) -> str:
        return f"{self.table_name}_idx"

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_statement(self, row: Row, columns: list[str]) -> str:
        if self.expanded_metadata:
            names = ["content", "embedding", *columns]
            values = [f"'{sanitize(row.content)}'", vector_literal(row.embedding)]
            for col in columns:
                value = (row.metadata or {}).get(col)
                values.append("NULL" if value is None else f"'{sanitize(value)}'")
        else:
            names = ["content", "embedding", "metadata"]
            # Only single quotes are stripped so the JSON stays parseable
            metadata = json.dumps(row.metadata or {}).replace("'", " ")
            values = [
                f"'{sanitize(row.content)}'",
                vector_literal(row.embedding),
                f"'{metadata}'",
            ]
        return (
            f"INSERT INTO {self.table_name} ({', '.join(names)}) "
            f"VALUES ({', '.join(values)})"
        )

    def insert_statements(self, rows: list[Row], columns: list[str] | None = None) -> list[str]:
        """
        One INSERT per row.

        In expanded mode, columns are the metadata keys written as their own
        columns; when omitted, every key seen in the batch is used.
        """
        if self.expanded_metadata:
            if columns is None:
                columns = extract_metadata_columns(rows)
            for col in columns:
                validate_identifier(col)
        else:
            columns = []
        return [self.insert_statement(row, columns) for row in rows]

    # ------------------------------------------------------------------
    # Query fragments
    # ------------------------------------------------------------------

    def metadata_projection(self, metadata_items: list[str] | None, search_type: str) -> str:
        """SELECT expression producing the metadata JSON for each hit."""
        if not metadata_items:
            return f"json_object('searchtype', '{search_type}') as metadata"

        for item in metadata_items:
            validate_identifier(item)

        if self.expanded_metadata:
            pairs = ", ".join(f"'{item}', {item}" for item in metadata_items)
            return f"json_object('searchtype','{search_type}',{pairs}) as metadata"

        pairs = ", ".join(f"'{item}', metadata->>'$.{item}'" for item in metadata_items)
        return (
            f"json_patch(json_object({pairs}), "
            f"'{{\"searchtype\":\"{search_type}\"}}') as metadata"
        )

    @staticmethod
    def filter_clause(filters: list[Filter] | None) -> str:
        """AND-joined WHERE fragment, prefixed with AND, or "" when empty."""
        if not filters:
            return ""
        clauses = []
        for f in filters:
            if f.operator in ("IN", "NOT IN"):
                # Caller supplies a pre-formatted list, e.g. "'a', 'b'"
                clauses.append(f"{f.column} {f.operator} ({f.value})")
            elif f.operator in ("IS NULL", "IS NOT NULL"):
                clauses.append(f"{f.column} {f.operator}")
            else:
                clauses.append(f"{f.column} {f.operator} '{sanitize(f.value)}'")
        return "AND " + " AND ".join(clauses)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def similarity_query(
        self,
        vector: list[float],
        k: int,
        filters: list[Filter] | None = None,
        metadata_items: list[str] | None = None,
    ) -> str:
        metadata = self.metadata_projection(metadata_items, SIMILARITY)
        vec = vector_literal(vector)
        where = self.filter_clause(filters)
        return (
            f"SELECT id, content, {metadata}, "
            f"1 - vector_distance_cos(embedding, {vec}) as similarity "
            f"FROM {self.table_name} "
            f"WHERE rowid IN vector_top_k('{self.index_name}', {vec}, {int(k)}) {where}"
        ).rstrip()

    def full_text_query(
        self,
        query: str,
        k: int,
        filters: list[Filter] | None = None,
        metadata_items: list[str] | None = None,
    ) -> str | None:
        """Returns None when the query has no searchable words."""
        terms = fts_terms(query)
        if not terms:
            logger.debug("Full-text query %r has no searchable terms", query)
            return None
        metadata = self.metadata_projection(metadata_items, FULLTEXT)
        where = self.filter_clause(filters)
        match = f"{self.fts_table} MATCH '{terms}'"
        if where:
            match = f"{match} {where}"
        return (
            f"SELECT id, content, {metadata}, rank as bm25_similarity "
            f"FROM {self.fts_table} "
            f"WHERE {match} "
            f"LIMIT {int(k)}"
        )
