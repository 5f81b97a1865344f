"""
Tests for SQL statement rendering.
Run with: pytest tests/test_statements.py
"""

import json

import pytest

from edgevec.models import Filter, Row
from edgevec.statements import (
    StatementBuilder,
    extract_metadata_columns,
    fts_terms,
    sanitize,
    vector_literal,
)


@pytest.fixture
def plain():
    return StatementBuilder("docs")


@pytest.fixture
def expanded():
    return StatementBuilder("docs", expanded_metadata=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_sanitize_strips_quotes():
    """Single and double quotes become spaces; nothing is doubled."""
    assert sanitize("it's \"fine\"") == "it s  fine "
    assert "''" not in sanitize("a''b")


def test_vector_literal():
    """Floats render inside vector('[...]')."""
    assert vector_literal([0.1, 2, -3.5]) == "vector('[0.1,2.0,-3.5]')"


def test_fts_terms_or_joined():
    """Punctuation is dropped and words are ORed."""
    assert fts_terms("hello, world!") == "hello OR world"


def test_fts_terms_collapses_whitespace():
    """Runs of whitespace do not produce empty terms."""
    assert fts_terms("  edge   sql  ") == "edge OR sql"


def test_fts_terms_operator_words_lowercased():
    """Query words that spell FTS5 operators stay plain terms."""
    assert fts_terms("cats AND dogs NOT NEAR Birds") == "cats OR and OR dogs OR not OR near OR birds"
    assert fts_terms("OR") == "or"


def test_fts_terms_empty():
    """Only punctuation leaves nothing to search."""
    assert fts_terms("?!'\"") == ""


def test_extract_metadata_columns_first_seen_order():
    """Union of keys across rows keeps first-seen order."""
    rows = [
        Row("a", [0.0], {"topic": "x", "lang": "en"}),
        Row("b", [0.0], {"author": "y", "topic": "z"}),
    ]
    assert extract_metadata_columns(rows) == ["topic", "lang", "author"]


def test_invalid_table_name():
    """Table names must be plain identifiers."""
    with pytest.raises(ValueError):
        StatementBuilder("docs; DROP TABLE x")


# ---------------------------------------------------------------------------
# Inserts
# ---------------------------------------------------------------------------

def test_plain_insert(plain):
    """Plain mode writes content, vector and the JSON metadata."""
    row = Row("hello", [1.0, 2.0], {"topic": "x"})
    sql = plain.insert_statements([row])[0]
    assert sql.startswith("INSERT INTO docs (content, embedding, metadata) VALUES (")
    assert "'hello'" in sql
    assert "vector('[1.0,2.0]')" in sql
    assert "'" + json.dumps({"topic": "x"}) + "'" in sql


def test_plain_insert_strips_quotes_from_content(plain):
    """A single quote in content is replaced, not escaped."""
    row = Row("it's here", [1.0], {})
    sql = plain.insert_statements([row])[0]
    assert "'it s here'" in sql
    assert "it's" not in sql


def test_plain_insert_metadata_json_stays_valid(plain):
    """Only single quotes are removed from the metadata JSON."""
    row = Row("x", [1.0], {"title": "O'Neil \"quoted\""})
    sql = plain.insert_statements([row])[0]
    payload = sql.rsplit(", '", 1)[1].rstrip(")").rstrip("'")
    assert json.loads(payload) == {"title": 'O Neil "quoted"'}


def test_expanded_insert_declared_columns(expanded):
    """Expanded mode writes one value per declared column, NULL when missing."""
    row = Row("hello", [1.0], {"topic": "news"})
    sql = expanded.insert_statements([row], columns=["topic", "author"])[0]
    assert "(content, embedding, topic, author)" in sql
    assert sql.endswith("'news', NULL)")


def test_expanded_insert_infers_columns(expanded):
    """Without declared columns every key in the batch becomes a column."""
    rows = [Row("a", [1.0], {"topic": "x"}), Row("b", [1.0], {"lang": "en"})]
    stmts = expanded.insert_statements(rows)
    assert all("(content, embedding, topic, lang)" in s for s in stmts)
    assert stmts[0].endswith("'x', NULL)")
    assert stmts[1].endswith("NULL, 'en')")


def test_expanded_insert_sanitizes_values(expanded):
    """Metadata values are sanitized text in expanded mode."""
    row = Row("c", [1.0], {"author": "O'Neil", "year": 2024})
    sql = expanded.insert_statements([row], columns=["author", "year"])[0]
    assert "'O Neil'" in sql
    assert "'2024'" in sql


def test_expanded_insert_rejects_bad_column(expanded):
    """Metadata keys that are not identifiers cannot become columns."""
    with pytest.raises(ValueError):
        expanded.insert_statements([Row("c", [1.0], {"bad key": 1})])


# ---------------------------------------------------------------------------
# Projection and filters
# ---------------------------------------------------------------------------

def test_projection_without_items(plain):
    """No items: only the search type tag."""
    assert plain.metadata_projection(None, "similarity") == \
        "json_object('searchtype', 'similarity') as metadata"


def test_projection_plain_items(plain):
    """Plain mode extracts keys from the JSON column and patches in the tag."""
    proj = plain.metadata_projection(["topic"], "similarity")
    assert proj == (
        "json_patch(json_object('topic', metadata->>'$.topic'), "
        "'{\"searchtype\":\"similarity\"}') as metadata"
    )


def test_projection_expanded_items(expanded):
    """Expanded mode selects named columns."""
    proj = expanded.metadata_projection(["topic", "lang"], "fulltextsearch")
    assert proj == (
        "json_object('searchtype','fulltextsearch','topic', topic, 'lang', lang) as metadata"
    )


def test_filter_clause_empty():
    assert StatementBuilder.filter_clause(None) == ""
    assert StatementBuilder.filter_clause([]) == ""


def test_filter_clause_operators():
    """Comparison quotes the value; IN wraps verbatim; IS NULL has no value."""
    filters = [
        Filter("=", "topic", "news"),
        Filter("IN", "lang", "'en', 'pt'"),
        Filter("is not null", "author"),
        Filter(">=", "year", "2020"),
    ]
    assert StatementBuilder.filter_clause(filters) == (
        "AND topic = 'news' AND lang IN ('en', 'pt') "
        "AND author IS NOT NULL AND year >= '2020'"
    )


def test_filter_value_sanitized():
    """Quotes in comparison values are stripped."""
    clause = StatementBuilder.filter_clause([Filter("LIKE", "title", "%it's%")])
    assert clause == "AND title LIKE '%it s%'"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def test_similarity_query(plain):
    """Similarity query uses the vector index and cosine distance."""
    sql = plain.similarity_query([1.0, 0.0], 5, [Filter("=", "topic", "x")])
    assert "SELECT id, content, json_object('searchtype', 'similarity') as metadata" in sql
    assert "1 - vector_distance_cos(embedding, vector('[1.0,0.0]')) as similarity" in sql
    assert "FROM docs " in sql
    assert "vector_top_k('docs_idx', vector('[1.0,0.0]'), 5)" in sql
    assert sql.endswith("AND topic = 'x'")


def test_similarity_query_without_filters(plain):
    """No trailing whitespace when there are no filters."""
    sql = plain.similarity_query([1.0], 3)
    assert sql.endswith("vector('[1.0]'), 3)")


def test_full_text_query(plain):
    """Full-text query matches ORed terms on the shadow table."""
    sql = plain.full_text_query("edge, sql!", 4, [Filter("=", "topic", "x")], ["topic"])
    assert "FROM docs_fts" in sql
    assert "WHERE docs_fts MATCH 'edge OR sql' AND topic = 'x'" in sql
    assert "rank as bm25_similarity" in sql
    assert "'{\"searchtype\":\"fulltextsearch\"}'" in sql
    assert sql.endswith("LIMIT 4")


def test_full_text_query_no_terms(plain):
    """Nothing searchable yields no statement."""
    assert plain.full_text_query("!!!", 4) is None
