"""Turso database connection using the Hrana-over-HTTP (v2 pipeline) API."""
from typing import Any, Optional

import httpx

from .models import ResultSet


Statement = tuple[str, list]


class DatabaseError(Exception):
    """Raised when the database rejects a statement."""


def _encode_value(value: Any) -> dict:
    """Encode a Python value as a Hrana typed value."""
    if value is None:
        return {"type": "null"}
    if isinstance(value, bool):
        return {"type": "integer", "value": str(int(value))}
    if isinstance(value, int):
        return {"type": "integer", "value": str(value)}
    if isinstance(value, float):
        return {"type": "float", "value": value}
    return {"type": "text", "value": str(value)}


def _decode_value(value: Any) -> Any:
    """Decode a Hrana typed value into a Python value."""
    if not isinstance(value, dict):
        return value
    kind = value.get("type")
    if kind == "null":
        return None
    if kind == "integer":
        return int(value["value"])
    if kind == "float":
        return float(value["value"])
    return value.get("value")


def _statement(sql: str, args: Optional[list] = None) -> dict:
    return {"sql": sql, "args": [_encode_value(a) for a in (args or [])]}


def _parse_execute_result(result: dict) -> ResultSet:
    """Convert a Hrana execute result into a ResultSet."""
    cols = [c["name"] for c in result.get("cols", [])]
    rows = [
        {cols[i]: _decode_value(val) for i, val in enumerate(row)}
        for row in result.get("rows", [])
    ]
    last_rowid = result.get("last_insert_rowid")
    return ResultSet(
        rows=rows,
        affected_row_count=int(result.get("affected_row_count") or 0),
        last_insert_rowid=int(last_rowid) if last_rowid is not None else None,
    )


class TursoDatabase:
    """Async client for a Turso/libSQL database over HTTP."""

    def __init__(
        self,
        url: str,
        auth_token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = url.replace("libsql://", "https://").rstrip("/")
        self.auth_token = auth_token
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _pipeline(self, requests: list[dict]) -> list[dict]:
        try:
            response = await self._client.post(
                f"{self.base_url}/v2/pipeline",
                headers={
                    "Authorization": f"Bearer {self.auth_token}",
                    "Content-Type": "application/json",
                },
                json={"requests": requests + [{"type": "close"}]},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DatabaseError(f"Turso request failed: {e}") from e

        results = response.json().get("results", [])
        for res in results:
            if res.get("type") == "error":
                raise DatabaseError(res.get("error", {}).get("message", "Unknown error"))
        return results

    async def execute(self, sql: str, args: Optional[list] = None) -> ResultSet:
        """Execute a single SQL statement."""
        results = await self._pipeline([{"type": "execute", "stmt": _statement(sql, args)}])
        return _parse_execute_result(results[0]["response"]["result"])

    async def batch(self, statements: list[Statement], transactional: bool = True) -> list[ResultSet]:
        """Execute multiple SQL statements in order.

        Transactional batches run as a conditional Hrana batch: each step
        only runs if the previous one succeeded, and a failed step rolls the
        whole batch back.
        """
        if not transactional:
            results = await self._pipeline([
                {"type": "execute", "stmt": _statement(sql, args)} for sql, args in statements
            ])
            return [_parse_execute_result(r["response"]["result"]) for r in results[:len(statements)]]

        steps: list[dict] = [{"stmt": _statement("BEGIN")}]
        for sql, args in statements:
            steps.append({
                "condition": {"type": "ok", "step": len(steps) - 1},
                "stmt": _statement(sql, args),
            })
        commit_step = len(steps)
        steps.append({
            "condition": {"type": "ok", "step": commit_step - 1},
            "stmt": _statement("COMMIT"),
        })
        steps.append({
            "condition": {"type": "not", "cond": {"type": "ok", "step": commit_step}},
            "stmt": _statement("ROLLBACK"),
        })

        results = await self._pipeline([{"type": "batch", "batch": {"steps": steps}}])
        batch_result = results[0]["response"]["result"]

        for error in batch_result.get("step_errors", []):
            if error:
                raise DatabaseError(error.get("message", "Batch step failed"))

        step_results = batch_result.get("step_results", [])
        return [_parse_execute_result(r or {}) for r in step_results[1:commit_step]]

    async def close(self) -> None:
        await self._client.aclose()
