"""
Azion Edge SQL backend: remote libSQL databases over the Azion v4 REST API.

Endpoints used:
  GET  /v4/edge_sql/databases               list databases
  POST /v4/edge_sql/databases               create database
  POST /v4/edge_sql/databases/{id}/query    run statements (reads and writes)

Databases are addressed by id; names are resolved through the list endpoint
and cached per instance. Authentication is a personal token sent as
"Authorization: Token <token>".
"""

from __future__ import annotations

import logging
import os
import re
import time

import httpx

from edgevec.backends.base import DatabaseService, DatabaseResponse

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.azion.com"

# Statuses reported while a database is still being provisioned
_PENDING_STATUSES = {"creating", "pending", "provisioning"}


def _resolve_env(value: str) -> str:
    """Resolve ${ENV_VAR} references in a config value."""
    if not value:
        return ""
    return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), value)


class AzionSQLBackend(DatabaseService):
    """Azion Edge SQL database service."""

    def __init__(
        self,
        name: str = "azion",
        url: str = DEFAULT_URL,
        timeout: int = 60,
        token: str = "",
        page_size: int = 100,
    ):
        super().__init__(name, url or DEFAULT_URL, timeout)
        self.token = _resolve_env(token)
        self.page_size = page_size
        self._ids: dict[str, int] = {}

    def _headers(self) -> dict:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Token {self.token}"
        return headers

    async def _request(self, method: str, path: str, body: dict | None = None, params: dict | None = None) -> DatabaseResponse:
        """Single HTTP call. Never raises; failures come back as ok=False."""
        if not self.token:
            return DatabaseResponse(
                ok=False, status_code=401, backend_name=self.name,
                error="No Azion API token configured",
            )
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(
                    method,
                    f"{self.url}{path}",
                    json=body,
                    params=params,
                    headers=self._headers(),
                )
                latency = (time.monotonic() - t0) * 1000
                if resp.status_code >= 400:
                    return DatabaseResponse(
                        ok=False,
                        status_code=resp.status_code,
                        backend_name=self.name,
                        latency_ms=latency,
                        error=f"HTTP {resp.status_code}: {resp.text[:200]}",
                    )
                data = resp.json() if resp.content else {}
                return DatabaseResponse(
                    ok=True,
                    status_code=resp.status_code,
                    data=data,
                    backend_name=self.name,
                    latency_ms=latency,
                )
        except httpx.TimeoutException:
            latency = (time.monotonic() - t0) * 1000
            logger.warning("Azion backend '%s' timed out after %.0fms", self.name, latency)
            return DatabaseResponse(
                ok=False, backend_name=self.name, latency_ms=latency,
                error=f"Timeout after {self.timeout}s",
            )
        except Exception as e:
            latency = (time.monotonic() - t0) * 1000
            logger.warning("Azion backend '%s' %s %s failed: %s", self.name, method, path, e)
            return DatabaseResponse(
                ok=False, backend_name=self.name, latency_ms=latency,
                error=str(e),
            )

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def list_databases(self) -> DatabaseResponse:
        """Every database on the account, following pages until count is reached."""
        entries: list[dict] = []
        page = 1
        while True:
            resp = await self._request(
                "GET", "/v4/edge_sql/databases",
                params={"page": page, "page_size": self.page_size},
            )
            if not resp.ok:
                return resp
            results = resp.data.get("results", []) or []
            entries.extend(results)
            total = resp.data.get("count")
            if not results or len(results) < self.page_size:
                break
            if total is not None and len(entries) >= int(total):
                break
            page += 1
        databases = [
            {"id": db.get("id"), "name": db.get("name"), "status": db.get("status", "")}
            for db in entries
        ]
        for db in databases:
            if db["name"] and db["id"] is not None:
                self._ids[db["name"]] = db["id"]
        resp.data = {"databases": databases}
        return resp

    async def create_database(self, db_name: str) -> DatabaseResponse:
        resp = await self._request("POST", "/v4/edge_sql/databases", body={"name": db_name})
        if resp.ok:
            created = resp.data.get("data", resp.data)
            if isinstance(created, dict) and created.get("id") is not None:
                self._ids[db_name] = created["id"]
            logger.info("Azion database '%s' requested", db_name)
        return resp

    async def database_ready(self, db_name: str) -> bool:
        resp = await self.list_databases()
        if not resp.ok:
            return False
        for db in resp.databases:
            if db.get("name") == db_name:
                return str(db.get("status", "")).lower() not in _PENDING_STATUSES
        return False

    async def _database_id(self, db_name: str) -> int | None:
        if db_name not in self._ids:
            await self.list_databases()
        return self._ids.get(db_name)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_results(data: dict) -> tuple[list[dict], str]:
        """
        Flatten the query payload into [{"columns", "rows"}] plus any error.

        The API wraps each statement as {"results": {"columns", "rows"}} under
        "data"; a failed statement carries an "error" entry instead.
        """
        results: list[dict] = []
        errors: list[str] = []
        items = data.get("data", data.get("results", []))
        if isinstance(items, dict):
            items = [items]
        for item in items or []:
            if not isinstance(item, dict):
                continue
            if item.get("error"):
                errors.append(str(item["error"]))
                continue
            result = item.get("results", item)
            results.append({
                "columns": result.get("columns", []),
                "rows": result.get("rows", []),
            })
        if str(data.get("state", "")).lower() == "failed" and not errors:
            errors.append("statement batch failed")
        return results, "; ".join(errors)

    async def _run(self, db_name: str, statements: list[str]) -> DatabaseResponse:
        db_id = await self._database_id(db_name)
        if db_id is None:
            return DatabaseResponse(
                ok=False, status_code=404, backend_name=self.name,
                error=f"Database '{db_name}' not found",
            )
        resp = await self._request(
            "POST", f"/v4/edge_sql/databases/{db_id}/query",
            body={"statements": list(statements)},
        )
        if not resp.ok:
            return resp
        results, error = self._normalize_results(resp.data)
        if error:
            return DatabaseResponse(
                ok=False, status_code=resp.status_code, backend_name=self.name,
                latency_ms=resp.latency_ms, error=error,
            )
        resp.data = {"results": results}
        return resp

    async def list_tables(self, db_name: str) -> DatabaseResponse:
        return await self._run(db_name, ["PRAGMA table_list"])

    async def execute(self, db_name: str, statements: list[str]) -> DatabaseResponse:
        return await self._run(db_name, statements)

    async def query(self, db_name: str, statements: list[str]) -> DatabaseResponse:
        return await self._run(db_name, statements)
