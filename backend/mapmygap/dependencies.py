"""FastAPI dependency providers.

The AI client lives on ``app.state`` (built once in the lifespan); everything
else is resolved per request. Tests override these via
``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, Request

from mapmygap.config import Settings, get_settings
from mapmygap.services.ai_client import AIClient
from mapmygap.services.control_text_generator import ControlTextGenerator
from mapmygap.services.document_text_extractor import DocumentTextExtractor
from mapmygap.services.framework_catalog import FrameworkCatalog, get_framework_catalog
from mapmygap.services.gap_analyzer import GapAnalyzer
from mapmygap.services.history_store import HistoryStore


def get_ai_client(request: Request) -> AIClient:
    client = getattr(request.app.state, "ai_client", None)
    return client if client is not None else AIClient()


def get_catalog() -> FrameworkCatalog:
    return get_framework_catalog()


def get_document_extractor() -> DocumentTextExtractor:
    return DocumentTextExtractor()


def get_history_store(
    settings: Settings = Depends(get_settings),
) -> Optional[HistoryStore]:
    """History store, or None when Supabase is not configured."""
    if not settings.history_configured:
        return None
    return HistoryStore(timeout=settings.history_timeout_seconds)


def get_gap_analyzer(
    catalog: FrameworkCatalog = Depends(get_catalog),
    ai_client: AIClient = Depends(get_ai_client),
    settings: Settings = Depends(get_settings),
) -> GapAnalyzer:
    return GapAnalyzer(catalog, ai_client, settings)


def get_control_text_generator(
    catalog: FrameworkCatalog = Depends(get_catalog),
    ai_client: AIClient = Depends(get_ai_client),
    settings: Settings = Depends(get_settings),
) -> ControlTextGenerator:
    return ControlTextGenerator(catalog, ai_client, settings)
