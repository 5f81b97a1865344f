"""
Config loader for edgevec.
Reads config.yaml once. All other modules import from here.
${ENV_VAR} references in string values are resolved at load time, after
.env has been loaded.
"""

import os
import re
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

_config: dict | None = None

DEFAULTS: dict = {
    "database": {
        "provider": "azion",
        "url": "https://api.azion.com",
        "token": "${AZION_TOKEN}",
        "name": "vectorstore",
        "timeout": 60,
    },
    "embedding": {
        "provider": "ollama",
        "url": "http://localhost:11434",
        "model": "nomic-embed-text",
        "timeout": 30,
    },
    "store": {
        "table_name": "documents",
        "expanded_metadata": False,
        "columns": [],
        "mode": "hybrid",
    },
    "chunking": {
        "max_count": 1000,
        "max_bytes": 838860,
    },
    "setup": {
        "ready_attempts": 15,
        "ready_interval": 1.0,
    },
    "logging": {
        "level": "INFO",
    },
}


def _resolve_env_vars(value: str) -> str:
    """Replace ${ENV_VAR} patterns with actual environment variable values."""
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, "")
    return re.sub(r"\$\{(\w+)\}", replacer, value)


def _walk_and_resolve(obj):
    """Recursively resolve env vars in all string values."""
    if isinstance(obj, dict):
        return {k: _walk_and_resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_walk_and_resolve(v) for v in obj]
    elif isinstance(obj, str):
        return _resolve_env_vars(obj)
    return obj


def _merge(base: dict, override: dict) -> dict:
    """Section-wise merge: keys in override win, missing keys keep defaults."""
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in base.items()}
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None, reload: bool = False) -> dict:
    """Load and cache config from YAML file, layered over DEFAULTS."""
    global _config
    if _config is not None and not reload and path is None:
        return _config

    config_path = Path(path) if path else _CONFIG_PATH
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    _config = _walk_and_resolve(_merge(DEFAULTS, raw))
    return _config


def get_config() -> dict:
    """Return cached config, loading if necessary."""
    if _config is None:
        return load_config()
    return _config
