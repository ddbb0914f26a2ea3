"""Analysis history persisted in the Supabase ``analysis_history`` table.

Row shape::

    id uuid, user_id uuid, framework text, filename text,
    results jsonb (categories), summary jsonb, created_at timestamptz

Rows are immutable once written; only their owner can delete them.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional


from mapmygap.config import get_settings
from mapmygap.errors import PersistenceError, ResponseParseError
from mapmygap.models.analysis import AnalysisResult, AnalysisSummary, CategoryResult
from mapmygap.models.history import HistoryEntry
from mapmygap.services.response_normalizer import normalize_categories
from mapmygap.services.scoring import compute_score, compute_summary

logger = logging.getLogger(__name__)

TABLE = "analysis_history"


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return None
    return value


def _stored_summary(summary_data: Any) -> AnalysisSummary:
    """Rebuild a summary from stored counts, deriving total and score from them."""
    if not isinstance(summary_data, dict):
        return compute_summary([])
    try:
        counts = {
            key: int(summary_data.get(key) or 0)
            for key in ("covered", "partial", "gaps")
        }
    except (TypeError, ValueError):
        return compute_summary([])
    if any(v < 0 for v in counts.values()):
        return compute_summary([])
    return AnalysisSummary(
        total=sum(counts.values()),
        score=compute_score(counts["covered"], counts["partial"], counts["gaps"]),
        **counts,
    )


def row_to_entry(row: dict) -> HistoryEntry:
    """Build a HistoryEntry from a table row.

    ``results`` and ``summary`` may come back as JSON strings. The summary is
    always recomputed from the results; stored counts are used only when the
    row holds no readable control results.
    """
    raw_results = _load_json(row.get("results")) or []
    try:
        results: list[CategoryResult] = normalize_categories(raw_results)
    except ResponseParseError as e:
        logger.warning(f"History row {row.get('id')} has unreadable results: {e}")
        results = []

    if any(category.results for category in results):
        summary = compute_summary(results)
    else:
        summary = _stored_summary(_load_json(row.get("summary")))

    return HistoryEntry(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        framework=row.get("framework") or "",
        filename=row.get("filename") or "",
        results=results,
        summary=summary,
        created_at=row.get("created_at"),
    )


async def _default_client():
    from mapmygap.db.supabase import get_async_supabase_client_async

    return await get_async_supabase_client_async()


class HistoryStore:
    """CRUD over ``analysis_history`` with a per-call timeout."""

    def __init__(
        self,
        client_factory: Callable[[], Awaitable[Any]] = _default_client,
        timeout: Optional[float] = None,
    ) -> None:
        self._client_factory = client_factory
        self.timeout = timeout or get_settings().history_timeout_seconds

    async def _execute(self, action: str, build_query: Callable[[Any], Any]) -> Any:
        """Run a query built from the client, mapping every failure to PersistenceError."""
        try:
            client = await self._client_factory()
            query = build_query(client.table(TABLE))
            return await asyncio.wait_for(query.execute(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"History {action} timed out after {self.timeout:g}s")
            raise PersistenceError(f"History {action} timed out") from None
        except Exception as e:
            logger.error(f"History {action} failed: {e}")
            raise PersistenceError(f"History {action} failed") from e

    async def save_analysis(
        self, user_id: str, result: AnalysisResult, filename: str
    ) -> HistoryEntry:
        """Insert one analysis for ``user_id`` and return the stored entry."""
        row = {
            "user_id": user_id,
            "framework": result.framework.value,
            "filename": filename,
            "results": [c.model_dump(mode="json") for c in result.categories],
            "summary": result.summary.model_dump(mode="json"),
        }
        response = await self._execute("save", lambda t: t.insert(row))
        if not response.data:
            raise PersistenceError("History save returned no row")
        try:
            entry = row_to_entry(response.data[0])
        except Exception as e:
            logger.error(f"History save returned an unreadable row: {e}")
            raise PersistenceError("History save returned an unreadable row") from e
        logger.info(f"Saved history entry {entry.id} ({entry.framework})")
        return entry

    async def list_recent(
        self, user_id: str, limit: int = 10, offset: int = 0
    ) -> list[HistoryEntry]:
        """Return the user's entries, newest first."""
        response = await self._execute(
            "list",
            lambda t: t.select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1),
        )
        return [row_to_entry(row) for row in response.data or []]

    async def delete_entry(self, user_id: str, entry_id: str) -> int:
        """Delete one entry owned by ``user_id``. Returns rows removed (0 or 1)."""
        response = await self._execute(
            "delete",
            lambda t: t.delete().eq("id", entry_id).eq("user_id", user_id),
        )
        deleted = len(response.data or [])
        logger.info(f"Deleted {deleted} history entry for id {entry_id}")
        return deleted

    async def delete_all(self, user_id: str) -> int:
        """Delete every entry owned by ``user_id``."""
        response = await self._execute(
            "clear", lambda t: t.delete().eq("user_id", user_id)
        )
        deleted = len(response.data or [])
        logger.info(f"Cleared {deleted} history entries")
        return deleted
