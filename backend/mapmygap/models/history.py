"""Analysis history models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mapmygap.models.analysis import AnalysisSummary, CategoryResult


class HistoryEntry(BaseModel):
    """A persisted analysis, owned by one user."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    framework: str
    filename: str
    results: list[CategoryResult] = Field(default_factory=list)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    created_at: Optional[datetime] = None


class HistoryListResponse(BaseModel):
    """Response for GET /history."""

    entries: list[HistoryEntry]
    page: int
    page_size: int
    has_more: bool


class HistoryDeleteResponse(BaseModel):
    status: str = "deleted"
    deleted: int = Field(default=0, description="Number of entries removed")
