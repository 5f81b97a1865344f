"""
Database service factory.

Usage:
    from edgevec.backends import make_database
    database = make_database("azion", token="${AZION_TOKEN}")

Adding a new database service:
    1. Create edgevec/backends/<name>.py implementing DatabaseService.
    2. Add an entry to _REGISTRY below.
    3. Set  database.provider: <name>  in config.yaml.
    No other changes required.
"""

from .base import DatabaseResponse, DatabaseService

_REGISTRY: dict[str, type[DatabaseService]] = {}


def _register():
    """Lazy-import services to avoid hard dependencies at import time."""
    global _REGISTRY
    if _REGISTRY:
        return
    from .azion import AzionSQLBackend
    _REGISTRY["azion"] = AzionSQLBackend


def make_database(provider: str, **kwargs) -> DatabaseService:
    """
    Instantiate a database service by name.

    Args:
        provider: Registry key (e.g. "azion").
        **kwargs: Passed directly to the service constructor.

    Raises:
        ValueError: If the provider is not registered.
    """
    _register()
    cls = _REGISTRY.get(provider)
    if cls is None:
        available = ", ".join(_REGISTRY.keys())
        raise ValueError(
            f"Unknown database provider: '{provider}'. "
            f"Available: {available}"
        )
    return cls(**kwargs)


__all__ = ["DatabaseResponse", "DatabaseService", "make_database"]
