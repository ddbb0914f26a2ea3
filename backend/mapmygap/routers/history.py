"""Analysis history router. Every operation is scoped to the signed-in user."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from mapmygap.auth.dependencies import get_current_user
from mapmygap.config import Settings, get_settings
from mapmygap.dependencies import get_history_store
from mapmygap.errors import PersistenceError
from mapmygap.models.history import HistoryDeleteResponse, HistoryListResponse
from mapmygap.services.history_store import HistoryStore

router = APIRouter(prefix="/history", tags=["history"])


def _require_store(store: Optional[HistoryStore]) -> HistoryStore:
    if store is None:
        raise PersistenceError("Analysis history is not configured")
    return store


@router.get("", response_model=HistoryListResponse)
async def list_history(
    page: int = Query(1, ge=1, description="1-based page number"),
    store: Optional[HistoryStore] = Depends(get_history_store),
    settings: Settings = Depends(get_settings),
    current_user: dict = Depends(get_current_user),
) -> HistoryListResponse:
    """List the caller's past analyses, newest first."""
    store = _require_store(store)
    page_size = settings.history_page_size
    # One extra row tells us whether another page exists
    entries = await store.list_recent(
        current_user["user_id"], limit=page_size + 1, offset=(page - 1) * page_size
    )
    return HistoryListResponse(
        entries=entries[:page_size],
        page=page,
        page_size=page_size,
        has_more=len(entries) > page_size,
    )


@router.delete("/{entry_id}", response_model=HistoryDeleteResponse)
async def delete_history_entry(
    entry_id: str,
    store: Optional[HistoryStore] = Depends(get_history_store),
    current_user: dict = Depends(get_current_user),
) -> HistoryDeleteResponse:
    """Delete one of the caller's analyses."""
    store = _require_store(store)
    deleted = await store.delete_entry(current_user["user_id"], entry_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="History entry not found")
    return HistoryDeleteResponse(deleted=deleted)


@router.delete("", response_model=HistoryDeleteResponse)
async def clear_history(
    store: Optional[HistoryStore] = Depends(get_history_store),
    current_user: dict = Depends(get_current_user),
) -> HistoryDeleteResponse:
    """Delete all of the caller's analyses."""
    store = _require_store(store)
    deleted = await store.delete_all(current_user["user_id"])
    return HistoryDeleteResponse(deleted=deleted)
