"""
Tests for config loading.
Run with: pytest tests/test_config.py
"""

import pytest

from edgevec import config as config_mod
from edgevec.vector_store import VectorStore
from edgevec.backends.azion import AzionSQLBackend
from edgevec.embeddings.openai_compat import OpenAICompatibleEmbeddings


@pytest.fixture(autouse=True)
def reset_cache():
    config_mod._config = None
    yield
    config_mod._config = None


def test_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        config_mod.load_config(tmp_path / "nope.yaml")


def test_defaults_fill_missing_sections(tmp_path):
    """A partial file is layered over the defaults."""
    path = tmp_path / "config.yaml"
    path.write_text("store:\n  table_name: articles\n")
    cfg = config_mod.load_config(path)
    assert cfg["store"]["table_name"] == "articles"
    assert cfg["store"]["mode"] == "hybrid"
    assert cfg["chunking"]["max_count"] == 1000


def test_env_vars_resolved(tmp_path, monkeypatch):
    monkeypatch.setenv("EDGEVEC_TEST_TOKEN", "tok-123")
    path = tmp_path / "config.yaml"
    path.write_text("database:\n  token: ${EDGEVEC_TEST_TOKEN}\n  name: db_${EDGEVEC_TEST_TOKEN}\n")
    cfg = config_mod.load_config(path)
    assert cfg["database"]["token"] == "tok-123"
    assert cfg["database"]["name"] == "db_tok-123"


def test_empty_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    cfg = config_mod.load_config(path)
    assert cfg["database"]["provider"] == "azion"


def test_get_config_caches(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("store:\n  table_name: first\n")
    config_mod.load_config(path)
    path.write_text("store:\n  table_name: second\n")
    assert config_mod.get_config()["store"]["table_name"] == "first"


def test_store_from_config(tmp_path):
    """from_config wires the configured providers and limits."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "database:\n  token: t\n  name: kb\n"
        "embedding:\n  provider: openai\n  model: text-embedding-3-small\n"
        "  url: http://emb\n  api_key: k\n"
        "store:\n  table_name: notes\n  expanded_metadata: true\n  columns: [topic]\n"
        "chunking:\n  max_count: 50\n  max_bytes: 1000\n"
    )
    store = VectorStore.from_config(config_mod.load_config(path))
    assert isinstance(store.database, AzionSQLBackend)
    assert isinstance(store.embedder, OpenAICompatibleEmbeddings)
    assert store.db_name == "kb"
    assert store.table_name == "notes"
    assert store.expanded_metadata
    assert store.columns == ["topic"]
    assert store.max_chunk_count == 50
    assert store.max_chunk_bytes == 1000
