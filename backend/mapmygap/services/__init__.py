from mapmygap.services.ai_client import (
    AIClient,
    AIFailureKind,
    AIInvocationResult,
    create_ai_client,
)
from mapmygap.services.control_text_generator import (
    ControlTextGenerator,
    ControlTextOutcome,
)
from mapmygap.services.document_text_extractor import (
    DocumentTextExtractor,
    ExtractionResult,
)
from mapmygap.services.framework_catalog import (
    FrameworkCatalog,
    get_framework_catalog,
    reset_framework_catalog,
)
from mapmygap.services.gap_analyzer import GapAnalyzer, document_hash
from mapmygap.services.history_store import HistoryStore

__all__ = [
    # AI invocation
    "AIClient",
    "AIFailureKind",
    "AIInvocationResult",
    "create_ai_client",
    # Control text
    "ControlTextGenerator",
    "ControlTextOutcome",
    # Document extraction
    "DocumentTextExtractor",
    "ExtractionResult",
    # Framework catalog
    "FrameworkCatalog",
    "get_framework_catalog",
    "reset_framework_catalog",
    # Gap analysis
    "GapAnalyzer",
    "document_hash",
    # History
    "HistoryStore",
]
